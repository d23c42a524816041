"""Typed snapshots of the records served by the HealthEase backend.

The backend documents have optional fields and legacy aliases (``_id``/``id``,
``pharmacy``/``shop``, ...). Every defaulting rule lives in the ``from_dict``
constructors here so the rest of the code can rely on plain attributes.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from .tracking.sim_config import BUSY_PATTERN, EN_ROUTE_PATTERN


# ==================== HELPERS ====================
def _record_id(d: Dict[str, Any]) -> str:
    value = d.get("_id", d.get("id"))
    return "" if value is None else str(value)


def _to_str(value: Any, default: str) -> str:
    if value is None or value == "":
        return default
    return str(value)


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_date(value: Any) -> Optional[date]:
    """Accept ISO dates or datetimes (``2025-01-31``, ``2025-01-31T00:00:00.000Z``)."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


# ==================== RECORDS ====================
@dataclass
class Ambulance:
    """Ambulance as listed by ``GET /ambulances``."""

    id: str
    name: str
    status: str = "Available"
    speed_kmph: float = 40.0
    location: Optional[Tuple[float, float]] = None  # (lat, lng)
    demo: bool = False  # synthetic entity added client-side

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Ambulance":
        rid = _record_id(d)
        loc = d.get("location")
        if not isinstance(loc, dict):
            loc = {}
        lat = _to_float(loc.get("lat"))
        lng = _to_float(loc.get("lng", loc.get("lon")))
        speed = _to_float(d.get("speedKmph"))
        return Ambulance(
            id=rid,
            name=_to_str(d.get("name"), f"Amb-{rid}"),
            status=_to_str(d.get("status"), "Available"),
            speed_kmph=speed if speed and speed > 0 else 40.0,
            location=(lat, lng) if lat is not None and lng is not None else None,
            demo=bool(d.get("__demo") or d.get("demo")),
        )

    @property
    def is_busy(self) -> bool:
        return re.search(BUSY_PATTERN, self.status, re.IGNORECASE) is not None

    @property
    def is_en_route(self) -> bool:
        return re.search(EN_ROUTE_PATTERN, self.status, re.IGNORECASE) is not None

    @property
    def can_dispatch(self) -> bool:
        return self.demo or not self.is_busy

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "_id": self.id,
            "name": self.name,
            "status": self.status,
            "speedKmph": self.speed_kmph,
        }
        if self.location is not None:
            out["location"] = {"lat": self.location[0], "lng": self.location[1]}
        if self.demo:
            out["__demo"] = True
        return out


@dataclass
class Doctor:
    """Doctor with optional leave date."""

    id: str
    name: str
    specialization: str = "General"
    available: bool = True
    availability_times: List[str] = field(default_factory=list)
    on_leave_until: Optional[date] = None

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Doctor":
        available = d.get("available")
        times = d.get("availabilityTimes")
        return Doctor(
            id=_record_id(d),
            name=_to_str(d.get("name"), ""),
            specialization=_to_str(d.get("specialization"), "General"),
            available=True if available is None else bool(available),
            availability_times=[str(t) for t in times] if isinstance(times, list) else [],
            on_leave_until=parse_date(d.get("onLeaveUntil")),
        )

    def is_on_leave(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self.on_leave_until is not None and self.on_leave_until > today

    def badge_text(self, today: Optional[date] = None) -> str:
        if self.is_on_leave(today):
            return f"On leave until {self.on_leave_until.isoformat()}"
        return "Available" if self.available else "Unavailable"

    def schedule_text(self) -> str:
        if not self.availability_times:
            return "No schedule provided"
        return " • ".join(self.availability_times)


@dataclass
class Appointment:
    id: str
    patient: str
    date: Optional[date]
    disease: str = "General"
    status: str = "Booked"
    doctor_id: Optional[str] = None

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Appointment":
        doc = d.get("doctorId")
        if isinstance(doc, dict):  # populated by the backend
            doc = _record_id(doc)
        return Appointment(
            id=_record_id(d),
            patient=_to_str(d.get("patientName") or d.get("patient"), "Unknown"),
            date=parse_date(d.get("date")),
            disease=_to_str(d.get("disease"), "General"),
            status=_to_str(d.get("status"), "Booked"),
            doctor_id=str(doc) if doc else None,
        )


@dataclass
class Medicine:
    id: str
    name: str
    pharmacy: str = "Pharmacy"
    price: Optional[float] = None
    stock: int = 0

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Medicine":
        stock = _to_float(d.get("stock"))
        return Medicine(
            id=_record_id(d),
            name=_to_str(d.get("name"), ""),
            pharmacy=_to_str(d.get("pharmacy") or d.get("shop"), "Pharmacy"),
            price=_to_float(d.get("price")),
            stock=int(stock) if stock is not None else 0,
        )

    @property
    def in_stock(self) -> bool:
        return self.stock > 0

    def summary(self) -> str:
        price = "N/A" if self.price is None else f"{self.price:g}"
        return f"{self.pharmacy} • ₹{price} • Stock: {self.stock}"


@dataclass
class TelecallRequest:
    id: str
    hospital_name: str
    reason: str = ""
    phone: str = "N/A"
    available: bool = True

    @staticmethod
    def from_dict(d: Dict[str, Any], index: int = 0) -> "TelecallRequest":
        if "busy" in d:
            available = not bool(d["busy"])
        else:
            available = bool(d.get("available", True))
        return TelecallRequest(
            id=_record_id(d),
            hospital_name=_to_str(d.get("hospitalName") or d.get("hospital"), f"Hospital {index + 1}"),
            reason=_to_str(d.get("reason") or d.get("issue"), ""),
            phone=_to_str(d.get("phone") or d.get("contact") or d.get("mobile"), "N/A"),
            available=available,
        )


# ==================== LIST PARSING ====================
def parse_list(payload: Any, record_type) -> list:
    """Convert a JSON array into records; non-list payloads yield []."""
    if not isinstance(payload, list):
        return []
    if record_type is TelecallRequest:
        return [TelecallRequest.from_dict(d, i) for i, d in enumerate(payload) if isinstance(d, dict)]
    return [record_type.from_dict(d) for d in payload if isinstance(d, dict)]
