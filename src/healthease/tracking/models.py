# models.py
# Shared data structures and enums used across the map simulation.

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


# ---------------------------------------------------------------------------
# Coordinate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LatLng:
    """Immutable geographic coordinate."""
    lat: float
    lng: float

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


# ---------------------------------------------------------------------------
# Map objects
# ---------------------------------------------------------------------------

class ObjectKind(Enum):
    AMBULANCE   = "ambulance"
    DELIVERY    = "delivery"
    USER        = "user"
    PHARMACY    = "pharmacy"
    DESTINATION = "destination"


USER_OBJECT_ID = "user_loc"


def ambulance_object_id(ambulance_id: str) -> str:
    return f"amb_{ambulance_id}"


@dataclass
class MapObject:
    """A drawable entity owned by the MapState registry."""
    id: str
    kind: ObjectKind
    position: LatLng
    label: str = ""
    icon: Optional[str] = None
    color: str = "#1976d2"
    trail: List[LatLng] = field(default_factory=list)
    meta: Any = None                     # backing record, if any

    def move_to(self, position: LatLng, trail_cap: Optional[int] = None) -> None:
        """Set the position and, when trail_cap is given, append it to the trail."""
        self.position = position
        if trail_cap is not None:
            self.trail.append(position)
            if len(self.trail) > trail_cap:
                del self.trail[: len(self.trail) - trail_cap]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "position": self.position.to_dict(),
            "label": self.label,
            "trail_length": len(self.trail),
        }


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

@dataclass
class DispatchSession:
    """One ambulance moving from origin to target along linear waypoints."""
    ambulance_id: str
    name: str
    origin: LatLng
    target: LatLng
    waypoints: List[LatLng]
    speed_mps: float
    total_distance_km: float
    current: Optional[LatLng] = None
    waypoint_index: int = 0
    covered_distance_km: float = 0.0
    cancelled: bool = False

    def __post_init__(self) -> None:
        if self.current is None:
            self.current = self.origin

    @property
    def object_id(self) -> str:
        return ambulance_object_id(self.ambulance_id)

    @property
    def remaining_distance_km(self) -> float:
        return max(0.0, self.total_distance_km - self.covered_distance_km)


@dataclass
class DeliverySession:
    """The single medicine delivery courier; heads straight for its destination."""
    order_id: str
    medicine: str
    shop_position: LatLng
    destination: LatLng
    speed_mps: float
    current: Optional[LatLng] = None
    running: bool = False

    def __post_init__(self) -> None:
        if self.current is None:
            self.current = self.shop_position

    @property
    def object_id(self) -> str:
        return f"del_{self.order_id}"

    @property
    def shop_object_id(self) -> str:
        return f"shop_{self.order_id}"

    @property
    def destination_object_id(self) -> str:
        return f"dest_{self.order_id}"


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BoundingBox:
    """Padded geographic rectangle used for projection."""
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, point: LatLng) -> bool:
        return (self.min_lat <= point.lat <= self.max_lat
                and self.min_lng <= point.lng <= self.max_lng)


# ---------------------------------------------------------------------------
# Frame results
# ---------------------------------------------------------------------------

class SessionEvent(Enum):
    DISPATCHED       = "dispatched"
    ARRIVED          = "arrived"
    CANCELLED        = "cancelled"
    DELIVERY_ARRIVED = "delivery_arrived"


@dataclass
class FrameEvent:
    """Something notable that happened during a tracker update."""
    event: SessionEvent
    subject_id: str
    message: str
    position: Optional[LatLng] = None
