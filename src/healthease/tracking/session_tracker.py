# session_tracker.py
# State machine for every moving entity on the map.
# Call dispatch()/place_order() to start sessions, then update(dt) once per frame.

import logging
import math
import random
import time
from typing import Dict, List, Optional, Tuple

from ..records import Ambulance, Medicine
from .geo_utils import blend, haversine_distance, linear_waypoints, random_nearby
from .map_state import MapState
from .models import (
    DeliverySession,
    DispatchSession,
    FrameEvent,
    LatLng,
    MapObject,
    ObjectKind,
    SessionEvent,
    ambulance_object_id,
)
from .sim_config import SimConfig

logger = logging.getLogger(__name__)


def waypoint_count(distance_m: float, config: Optional[SimConfig] = None) -> int:
    """Number of waypoints so that no segment is longer than segment_length_m."""
    config = config or SimConfig()
    return max(config.min_waypoints, math.ceil(distance_m / config.segment_length_m))


class SessionTracker:
    """
    Tracks active ambulance dispatches and the single delivery order.

    Usage:
        tracker = SessionTracker(map_state, config)
        ok, msg = tracker.dispatch(ambulance, LatLng(12.96, 77.59))

        # Inside the frame loop:
        events = tracker.update(dt)
    """

    def __init__(
        self,
        map_state: MapState,
        config: Optional[SimConfig] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or SimConfig()
        self.map_state = map_state
        self.rng = rng or random.Random()
        self._sessions: Dict[str, DispatchSession] = {}
        self._delivery: Optional[DeliverySession] = None

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def sessions(self) -> Dict[str, DispatchSession]:
        return dict(self._sessions)

    @property
    def delivery(self) -> Optional[DeliverySession]:
        return self._delivery

    def is_active(self, ambulance_id: str) -> bool:
        return ambulance_id in self._sessions

    def get(self, ambulance_id: str) -> Optional[DispatchSession]:
        return self._sessions.get(ambulance_id)

    @property
    def has_active_sessions(self) -> bool:
        return bool(self._sessions) or bool(self._delivery and self._delivery.running)

    # ------------------------------------------------------------------
    # Ambulance dispatch
    # ------------------------------------------------------------------

    def ensure_ambulance_object(self, ambulance: Ambulance) -> Optional[MapObject]:
        """Return the ambulance's map object, creating it from the record location."""
        obj_id = ambulance_object_id(ambulance.id)
        obj = self.map_state.get(obj_id)
        if obj is None and ambulance.location is not None:
            pos = LatLng(*ambulance.location)
            obj = self.map_state.add(MapObject(
                id=obj_id,
                kind=ObjectKind.AMBULANCE,
                position=pos,
                label=ambulance.name,
                icon=self.config.ambulance_icon,
                trail=[pos],
                meta=ambulance,
            ))
        return obj

    def dispatch(self, ambulance: Ambulance, target: Optional[LatLng]) -> Tuple[bool, str]:
        """
        Start moving an ambulance towards target.

        Args:
            ambulance: Backend (or synthetic) ambulance record.
            target:    Destination; None when the user gave neither
                       coordinates nor a location.

        Returns:
            (success, message)
        """
        obj = self.ensure_ambulance_object(ambulance)

        if ambulance.id in self._sessions:
            s = self._sessions[ambulance.id]
            return True, (
                f"{s.name} already dispatched — tracking "
                f"({s.remaining_distance_km:.2f} km remaining)"
            )

        if not ambulance.can_dispatch:
            return False, f"{ambulance.name} is marked {ambulance.status} and cannot be dispatched."

        if target is None:
            return False, "Provide address or use my location"

        if obj is not None:
            start = obj.position
        elif ambulance.location is not None:
            start = LatLng(*ambulance.location)
        else:
            start = LatLng(
                target.lat + (self.rng.random() * 0.02 + 0.01),
                target.lng + (self.rng.random() * 0.02 + 0.01),
            )

        total_m = haversine_distance(start.lat, start.lng, target.lat, target.lng)
        speed_kmph = ambulance.speed_kmph
        if not speed_kmph or speed_kmph <= 0:
            speed_kmph = self.config.default_speed_kmph
        points = linear_waypoints(
            start.lat, start.lng, target.lat, target.lng,
            waypoint_count(total_m, self.config),
        )

        session = DispatchSession(
            ambulance_id=ambulance.id,
            name=ambulance.name,
            origin=start,
            target=target,
            waypoints=[LatLng(lat, lng) for lat, lng in points],
            speed_mps=speed_kmph * 1000 / 3600,
            total_distance_km=total_m / 1000,
        )
        self._sessions[ambulance.id] = session

        if obj is None:
            obj = self.map_state.add(MapObject(
                id=session.object_id,
                kind=ObjectKind.AMBULANCE,
                position=start,
                label=ambulance.name,
                icon=self.config.ambulance_icon,
                meta=ambulance,
            ))
        obj.position = start
        obj.trail = [start]
        self.map_state.invalidate_bounds()

        logger.info(
            f"Dispatched {session.name}: {start} → {target}, "
            f"{session.total_distance_km:.2f} km, {len(session.waypoints)} waypoints"
        )
        return True, f"{session.name} dispatched — {session.total_distance_km:.2f} km"

    def cancel(self, ambulance_id: str) -> Tuple[bool, str]:
        """Cancel a dispatch; the ambulance stays where it currently is."""
        if not ambulance_id:
            return False, "Invalid ambulance id"
        session = self._sessions.pop(ambulance_id, None)
        if session is None:
            return False, "No active dispatch for this ambulance"
        session.cancelled = True
        logger.info(f"Dispatch of {session.name} cancelled at {session.current}")
        return True, "Ambulance dispatch cancelled"

    # ------------------------------------------------------------------
    # Delivery orders
    # ------------------------------------------------------------------

    def place_order(self, medicine: Medicine, destination: LatLng) -> DeliverySession:
        """Create the (paused) delivery session and its shop/destination markers."""
        if self._delivery is not None:
            self.cancel_order()

        lo, hi = self.config.shop_distance_m
        shop_lat, shop_lng = self._random_nearby(destination, lo + self.rng.random() * (hi - lo))
        vlo, vhi = self.config.delivery_speed_kmph
        speed_kmph = vlo + self.rng.random() * (vhi - vlo)

        delivery = DeliverySession(
            order_id=f"order_{int(time.time() * 1000)}",
            medicine=medicine.name,
            shop_position=LatLng(shop_lat, shop_lng),
            destination=destination,
            speed_mps=speed_kmph * 1000 / 3600,
        )
        self._delivery = delivery

        self.map_state.add(MapObject(
            id=delivery.shop_object_id,
            kind=ObjectKind.PHARMACY,
            position=delivery.shop_position,
            label=medicine.pharmacy,
            color="#2e7d32",
        ))
        self.map_state.add(MapObject(
            id=delivery.destination_object_id,
            kind=ObjectKind.DESTINATION,
            position=destination,
            label="Delivery destination",
            color="#1976d2",
        ))
        logger.info(f"Order {delivery.order_id} placed: {medicine.name} from {medicine.pharmacy}")
        return delivery

    def start_delivery(self) -> Tuple[bool, str]:
        if self._delivery is None:
            return False, "No delivery"
        if self._delivery.running:
            return False, "Already tracking"
        self._delivery.running = True
        return True, "Tracking delivery"

    def stop_delivery(self) -> None:
        if self._delivery is not None:
            self._delivery.running = False

    def cancel_order(self) -> Tuple[bool, str]:
        if self._delivery is None:
            return False, "No active order."
        order_id = self._delivery.order_id
        self._delivery = None
        self.map_state.remove_where(
            lambda o: o.id.startswith(("shop_", "dest_", "del_"))
        )
        logger.info(f"Order {order_id} cancelled")
        return True, "Order cancelled."

    # ------------------------------------------------------------------
    # Core method — call once per frame
    # ------------------------------------------------------------------

    def update(self, dt: float) -> List[FrameEvent]:
        """
        Advance every active session by dt seconds.

        Args:
            dt: Elapsed seconds since the previous frame.

        Returns:
            Notable events (arrivals) produced during this frame.
        """
        dt = max(0.0, dt)
        events: List[FrameEvent] = []

        for amb_id, s in list(self._sessions.items()):
            if s.cancelled:
                del self._sessions[amb_id]
                continue
            event = self._advance_dispatch(s, dt)
            if event is not None:
                events.append(event)

        if self._delivery is not None and self._delivery.running:
            event = self._advance_delivery(self._delivery, dt)
            if event is not None:
                events.append(event)

        return events

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _advance_dispatch(self, s: DispatchSession, dt: float) -> Optional[FrameEvent]:
        cur = s.current
        next_wp = s.waypoints[s.waypoint_index]
        remaining = haversine_distance(cur.lat, cur.lng, next_wp.lat, next_wp.lng)
        obj = self.map_state.get(s.object_id)

        if remaining < self.config.arrival_threshold_m:
            if s.waypoint_index < len(s.waypoints) - 1:
                s.waypoint_index += 1
                return None

            # Final waypoint: snap exactly to the target
            s.covered_distance_km += remaining / 1000
            s.current = s.target
            if obj is not None:
                obj.move_to(s.target, self.config.ambulance_trail_cap)
            del self._sessions[s.ambulance_id]
            self.map_state.invalidate_bounds()
            logger.info(f"{s.name} arrived after {s.covered_distance_km:.2f} km")
            return FrameEvent(
                event=SessionEvent.ARRIVED,
                subject_id=s.ambulance_id,
                message=f"{s.name} arrived — {s.total_distance_km:.2f} km",
                position=s.target,
            )

        move = min(s.speed_mps * dt, remaining)
        lat, lng = blend(cur.lat, cur.lng, next_wp.lat, next_wp.lng, move / remaining)
        s.current = LatLng(lat, lng)
        s.covered_distance_km += move / 1000
        if obj is not None:
            obj.move_to(s.current, self.config.ambulance_trail_cap)
        self._keep_in_bounds(s.current)
        return None

    def _advance_delivery(self, d: DeliverySession, dt: float) -> Optional[FrameEvent]:
        cur = d.current
        dest = d.destination
        remaining = haversine_distance(cur.lat, cur.lng, dest.lat, dest.lng)
        obj = self.map_state.get(d.object_id)

        if remaining < self.config.arrival_threshold_m:
            d.current = dest
            d.running = False
            if obj is not None:
                obj.move_to(dest, self.config.delivery_trail_cap)
            logger.info(f"Delivery {d.order_id} arrived")
            return FrameEvent(
                event=SessionEvent.DELIVERY_ARRIVED,
                subject_id=d.order_id,
                message="Delivery arrived!",
                position=dest,
            )

        move = min(d.speed_mps * dt, remaining)
        lat, lng = blend(cur.lat, cur.lng, dest.lat, dest.lng, move / remaining)
        d.current = LatLng(lat, lng)
        if obj is None:
            self.map_state.add(MapObject(
                id=d.object_id,
                kind=ObjectKind.DELIVERY,
                position=d.current,
                label="Delivery",
                icon=self.config.delivery_icon,
                trail=[d.current],
            ))
        else:
            obj.move_to(d.current, self.config.delivery_trail_cap)
        self._keep_in_bounds(d.current)
        return None

    def _keep_in_bounds(self, position: LatLng) -> None:
        if not self.map_state.bounds.contains(position):
            self.map_state.invalidate_bounds()

    def _random_nearby(self, center: LatLng, meters: float) -> Tuple[float, float]:
        return random_nearby(center.lat, center.lng, meters, self.rng)

    # ------------------------------------------------------------------
    # Status text
    # ------------------------------------------------------------------

    def status_lines(self) -> List[str]:
        """Summary overlay lines: one per dispatch plus the running delivery."""
        lines = [
            f"{s.name} — Covered: {s.covered_distance_km:.2f} / {s.total_distance_km:.2f} km"
            for s in self._sessions.values()
        ]
        d = self._delivery
        if d is not None and d.running:
            rem_km = haversine_distance(
                d.current.lat, d.current.lng, d.destination.lat, d.destination.lng
            ) / 1000
            lines.append(f"Delivery ({d.medicine}) — Remaining: {rem_km:.2f} km")
        return lines

    def badge_for(self, ambulance: Ambulance) -> Tuple[str, Optional[str]]:
        """
        List badge and optional remaining-distance text for an ambulance row.

        Returns:
            (badge, remaining) — badge is "Tracking", "Busy", "En-route" or
            "Available"; remaining is "Remaining: x.xx km" while tracking.
        """
        s = self._sessions.get(ambulance.id)
        if s is not None:
            return "Tracking", f"Remaining: {s.remaining_distance_km:.2f} km"
        if ambulance.is_busy:
            return "Busy", None
        if ambulance.is_en_route:
            return "En-route", None
        return "Available", None
