# simulator.py
# Public entry point for the map simulation.
# Owns no business logic — wires the specialist modules into one context.

import logging
import random
import threading
import time
from typing import Callable, List, Optional, Tuple

import numpy as np

from ..api_client import ApiClient, ApiError
from ..booking import AppointmentRequest, check_appointment, check_delivery_details, check_order, check_payment
from ..notifier import Notifier
from ..records import Ambulance
from ..validation import parse_coords
from .data_sync import DataSync
from .geo_utils import random_nearby
from .icon_cache import IconCache
from .map_state import MapState
from .models import FrameEvent, LatLng, SessionEvent
from .renderer import Renderer
from .scheduler import AnimationScheduler
from .session_tracker import SessionTracker
from .sim_config import SimConfig
from .sim_logger import SimLogger

logger = logging.getLogger(__name__)


class MapSimulation:
    """
    One map session: registry, sessions, scheduler, renderer and sync.

    Typical lifecycle:
        sim = MapSimulation(SimConfig())
        sim.refresh_all()
        sim.set_user_location(12.9667, 77.5995)
        sim.dispatch("amb-1")

        # Host frame loop:
        sim.tick()

    Args:
        config:     Optional SimConfig; defaults to SimConfig().
        client:     ApiClient; one is built from config when omitted.
        rng:        Random source shared by the tracker and demo fill-in.
        icon_fetch: Optional icon byte loader passed to IconCache.
        clock:      Monotonic time source for scheduler and notifier.
    """

    def __init__(
        self,
        config: Optional[SimConfig] = None,
        client: Optional[ApiClient] = None,
        rng: Optional[random.Random] = None,
        icon_fetch: Optional[Callable[[str], bytes]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or SimConfig()
        self.rng = rng or random.Random()
        self.lock = threading.RLock()

        self.client = client or ApiClient(self.config)
        self.map_state = MapState(self.config)
        self.tracker = SessionTracker(self.map_state, self.config, self.rng)
        self.sync = DataSync(self.client, self.map_state, self.tracker, self.lock, self.config, self.rng)
        self.notifier = Notifier(self.config, clock=clock)
        self.icons = IconCache(on_ready=self._on_icon_ready, fetch=icon_fetch)
        self.renderer = Renderer(self.config, self.icons)
        self.scheduler = AnimationScheduler(self._frame, self.config, clock=clock)
        self.sim_logger = SimLogger(self.config)

        self.last_frame: Optional[np.ndarray] = None

    # ------------------------------------------------------------------
    # Backend data
    # ------------------------------------------------------------------

    def refresh_all(self) -> dict:
        results = self.sync.refresh_all()
        self._recompute_and_render()
        return results

    def refresh_ambulances(self) -> bool:
        ok = self.sync.refresh_ambulances()
        self._recompute_and_render()
        return ok

    def start_auto_refresh(self) -> None:
        self.sync.start_periodic(on_refresh=self.render)

    @property
    def ambulances(self) -> List[Ambulance]:
        return self.sync.ambulances

    def ambulance_rows(self) -> List[Tuple[Ambulance, str, Optional[str], bool]]:
        """
        Rows for the ambulance list.

        Returns:
            (ambulance, badge, remaining_text, dispatch_enabled) per ambulance.
        """
        rows = []
        with self.lock:
            for amb in self.sync.ambulances:
                badge, remaining = self.tracker.badge_for(amb)
                enabled = self.tracker.is_active(amb.id) or amb.can_dispatch
                rows.append((amb, badge, remaining, enabled))
        return rows

    # ------------------------------------------------------------------
    # User location
    # ------------------------------------------------------------------

    def set_user_location(self, lat: float, lng: float) -> None:
        with self.lock:
            self.map_state.set_user_location(LatLng(lat, lng))
        self._recompute_and_render()

    # ------------------------------------------------------------------
    # Ambulance dispatch
    # ------------------------------------------------------------------

    def dispatch(self, ambulance_id: str, coords_text: str = "") -> Tuple[bool, str]:
        """
        Dispatch an ambulance to typed coordinates or the user's location.

        Args:
            ambulance_id: Id of a listed ambulance.
            coords_text:  "lat,lon"; empty means use the user location.

        Returns:
            (success, message)
        """
        amb = self.sync.find_ambulance(ambulance_id)
        if amb is None:
            msg = f"Unknown ambulance: {ambulance_id}"
            self.notifier.info(msg, transient=True)
            return False, msg

        target: Optional[LatLng] = None
        if coords_text and coords_text.strip():
            try:
                target = LatLng(*parse_coords(coords_text))
            except ValueError as e:
                self.notifier.info(str(e), transient=True)
                return False, str(e)

        with self.lock:
            if target is None:
                target = self.map_state.user_location
            already = self.tracker.is_active(amb.id)
            ok, msg = self.tracker.dispatch(amb, target)

        self.notifier.info(msg, transient=already or not ok)
        if ok and not already:
            self.sim_logger.log_event(FrameEvent(SessionEvent.DISPATCHED, amb.id, msg, target))
            self.scheduler.ensure_running()
        self._recompute_and_render()
        return ok, msg

    def cancel(self, ambulance_id: str) -> Tuple[bool, str]:
        with self.lock:
            session = self.tracker.get(ambulance_id)
            ok, msg = self.tracker.cancel(ambulance_id)
        self.notifier.info(msg, transient=not ok)
        if ok:
            self.sim_logger.log_event(
                FrameEvent(SessionEvent.CANCELLED, ambulance_id, msg, session.current)
            )
        self.render()
        return ok, msg

    # ------------------------------------------------------------------
    # Medicine delivery
    # ------------------------------------------------------------------

    def place_order(
        self,
        medicine_id: str,
        address: str,
        mobile: str,
        payment: str = "cod",
        **payment_details: str,
    ) -> Tuple[bool, str]:
        """
        Validate and place a demo medicine order.

        The address is read as "lat,lon"; anything else falls back to a
        random point near the demo centre.
        """
        med = self.sync.find_medicine(medicine_id)
        if med is None:
            return False, f"Unknown medicine: {medicine_id}"
        for ok, msg in (
            check_order(med),
            check_delivery_details(address, mobile),
            check_payment(payment, **payment_details),
        ):
            if not ok:
                self.notifier.info(msg, transient=True)
                return False, msg

        try:
            dest = LatLng(*parse_coords(address))
        except ValueError:
            dest = LatLng(*random_nearby(*self.config.demo_center, 2000, self.rng))

        with self.lock:
            self.tracker.place_order(med, dest)
        msg = "Order placed (demo). Start delivery tracking to animate."
        self.notifier.info(msg)
        self._recompute_and_render()
        return True, msg

    def start_delivery(self) -> Tuple[bool, str]:
        with self.lock:
            ok, msg = self.tracker.start_delivery()
        self.notifier.info(msg, transient=True)
        if ok:
            self.scheduler.ensure_running()
        return ok, msg

    def stop_delivery(self) -> None:
        with self.lock:
            self.tracker.stop_delivery()

    def cancel_order(self) -> Tuple[bool, str]:
        with self.lock:
            ok, msg = self.tracker.cancel_order()
        self.notifier.info(msg, transient=True)
        self.render()
        return ok, msg

    # ------------------------------------------------------------------
    # Appointments
    # ------------------------------------------------------------------

    def book_appointment(self, request: AppointmentRequest) -> Tuple[bool, str]:
        ok, msg = check_appointment(request, self.sync.doctors)
        if not ok:
            return False, msg
        try:
            self.client.create_appointment(request.to_payload())
        except ApiError as e:
            logger.error(f"Booking failed: {e}")
            return False, f"Booking failed: {e}"
        self.sync.refresh_appointments()
        return True, "Appointment booked!"

    def cancel_appointment(self, appointment_id: str) -> Tuple[bool, str]:
        try:
            ok = self.client.cancel_appointment(appointment_id)
        except ApiError as e:
            logger.error(f"Cancel failed: {e}")
            return False, "Cancel failed"
        self.sync.refresh_appointments()
        return (True, "Cancelled") if ok else (False, "Cancel failed")

    # ------------------------------------------------------------------
    # Frames
    # ------------------------------------------------------------------

    def tick(self, now: Optional[float] = None) -> bool:
        return self.scheduler.tick(now)

    def step(self, dt: float) -> bool:
        return self.scheduler.step(dt)

    def run(self, max_seconds: Optional[float] = None) -> int:
        return self.scheduler.run(max_seconds)

    def status_lines(self) -> List[str]:
        with self.lock:
            return self.tracker.status_lines()

    def render(self) -> np.ndarray:
        with self.lock:
            frame = self.renderer.render(self.map_state, status_lines=self.tracker.status_lines())
            self.last_frame = frame
        return frame

    def save_frame(self, path: str) -> bool:
        frame = self.last_frame if self.last_frame is not None else self.render()
        return self.renderer.save(frame, path)

    def save_snapshot(self) -> bool:
        with self.lock:
            return self.sim_logger.save_snapshot(self.map_state, self.tracker.status_lines())

    def close(self) -> None:
        self.sync.stop_periodic()
        self.icons.shutdown()
        self.notifier.close()
        self.client.close()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _frame(self, dt: float) -> bool:
        with self.lock:
            events = self.tracker.update(dt)
            keep = self.tracker.has_active_sessions
        for e in events:
            self.notifier.info(e.message, transient=True)
            self.sim_logger.log_event(e)
        self.render()
        return keep

    def _recompute_and_render(self) -> None:
        with self.lock:
            self.map_state.recompute_bounds()
        self.render()

    def _on_icon_ready(self, ref: str) -> None:
        self.render()
