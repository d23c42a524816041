# data_sync.py
# Pulls backend snapshots and merges them into the map without disturbing
# ambulances that are currently animated.

import logging
import random
import threading
import time
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from ..api_client import ApiClient, ApiError
from ..records import Ambulance, Appointment, Doctor, Medicine, TelecallRequest
from .geo_utils import random_nearby
from .map_state import MapState
from .models import LatLng, MapObject, ObjectKind, ambulance_object_id
from .session_tracker import SessionTracker
from .sim_config import SimConfig

logger = logging.getLogger(__name__)


# Inline text shown in a panel when its list could not be fetched
LOAD_FAILED: Dict[str, str] = {
    "ambulances":   "Failed to load ambulances",
    "doctors":      "Doctors load failed",
    "appointments": "Load failed",
    "medicines":    "Medicines load failed",
    "telecalls":    "Load failed",
}


def _base36(n: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    out = ""
    while n:
        n, r = divmod(n, 36)
        out = digits[r] + out
    return out or "0"


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def make_synthetic_ambulances(
    count: int,
    taken_ids: Iterable[str],
    config: Optional[SimConfig] = None,
    rng: Optional[random.Random] = None,
    start_index: int = 0,
) -> List[Ambulance]:
    """
    Generate demo ambulances scattered around the demo centre.

    Ids look like ``demo_<token>_<i>`` and never collide with taken_ids.
    """
    config = config or SimConfig()
    rng = rng or random.Random()
    taken: Set[str] = set(taken_ids)
    token = _base36(int(time.time() * 1000))[-6:]
    clat, clng = config.demo_center
    out: List[Ambulance] = []

    for i in range(start_index, start_index + count):
        demo_id = f"demo_{token}_{i}"
        suffix = 0
        while demo_id in taken:
            suffix += 1
            demo_id = f"demo_{token}_{i}_{suffix}"
        taken.add(demo_id)

        radius = config.demo_base_radius_m + i * config.demo_radius_step_m
        out.append(Ambulance(
            id=demo_id,
            name=f"Ambulance {chr(65 + i % 26)}",
            status="Busy" if i % 3 == 0 else "Available",
            speed_kmph=40.0 + i * 2,
            location=random_nearby(clat, clng, radius, rng),
            demo=True,
        ))
    return out


def reconcile_ambulances(
    map_state: MapState,
    ambulances: List[Ambulance],
    is_active: Callable[[str], bool],
    config: Optional[SimConfig] = None,
) -> Tuple[int, int, int]:
    """
    Merge an ambulance snapshot into map_state.

    Objects of ambulances under an active session are left untouched; all
    others take the snapshot's position, name and record. Ambulance objects
    missing from the snapshot are removed unless still active.

    Returns:
        (created, updated, removed) counts.
    """
    config = config or SimConfig()
    created = updated = 0

    for amb in ambulances:
        if not amb.id:
            continue
        obj = map_state.get(ambulance_object_id(amb.id))
        if obj is None:
            if amb.location is not None:
                pos = LatLng(*amb.location)
                map_state.add(MapObject(
                    id=ambulance_object_id(amb.id),
                    kind=ObjectKind.AMBULANCE,
                    position=pos,
                    label=amb.name,
                    icon=config.ambulance_icon,
                    trail=[pos],
                    meta=amb,
                ))
                created += 1
        elif not is_active(amb.id):
            if amb.location is not None:
                obj.position = LatLng(*amb.location)
            obj.label = amb.name or obj.label
            obj.meta = amb
            updated += 1

    allowed = {ambulance_object_id(a.id) for a in ambulances if a.id}
    removed = map_state.remove_where(
        lambda o: o.kind == ObjectKind.AMBULANCE
        and o.id not in allowed
        and not is_active(o.id[len("amb_"):])
    )
    map_state.invalidate_bounds()
    return created, updated, len(removed)


# ---------------------------------------------------------------------------
# Sync layer
# ---------------------------------------------------------------------------

class DataSync:
    """
    Holds the latest backend lists and keeps the map in step with them.

    Args:
        client:   ApiClient used for every fetch.
        map_state: Registry to reconcile into.
        tracker:  SessionTracker consulted for active sessions.
        lock:     Lock shared with the frame loop.
        config:   SimConfig.
        rng:      Random source for synthetic ambulances.
    """

    def __init__(
        self,
        client: ApiClient,
        map_state: MapState,
        tracker: SessionTracker,
        lock: Optional[threading.RLock] = None,
        config: Optional[SimConfig] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or SimConfig()
        self.client = client
        self.map_state = map_state
        self.tracker = tracker
        self.lock = lock or threading.RLock()
        self.rng = rng or random.Random()

        self.ambulances: List[Ambulance] = []
        self.doctors: List[Doctor] = []
        self.appointments: List[Appointment] = []
        self.medicines: List[Medicine] = []
        self.telecalls: List[TelecallRequest] = []
        self.errors: Dict[str, str] = {}

        self._synthetic: List[Ambulance] = []
        self._timer: Optional[threading.Timer] = None
        self._stopped = threading.Event()
        self._running = False
        self._generation = 0

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_ambulance(self, ambulance_id: str) -> Optional[Ambulance]:
        return next((a for a in self.ambulances if a.id == ambulance_id), None)

    def find_medicine(self, medicine_id: str) -> Optional[Medicine]:
        return next((m for m in self.medicines if m.id == medicine_id), None)

    # ------------------------------------------------------------------
    # Fetches
    # ------------------------------------------------------------------

    def refresh_ambulances(self) -> bool:
        """Fetch ambulances, top up with demo entries and reconcile the map."""
        try:
            fetched = self.client.list_ambulances()
        except ApiError as e:
            logger.error(f"Ambulance refresh failed: {e}")
            self.errors["ambulances"] = LOAD_FAILED["ambulances"]
            return False

        with self.lock:
            self.ambulances = self._with_synthetic(fetched)
            created, updated, removed = reconcile_ambulances(
                self.map_state, self.ambulances, self.tracker.is_active, self.config
            )
            self.errors.pop("ambulances", None)
        logger.info(
            f"{len(self.ambulances)} ambulances listed "
            f"({len(fetched)} from backend; +{created} ~{updated} -{removed} on map)"
        )
        return True

    def refresh_doctors(self) -> bool:
        return self._refresh("doctors", self.client.list_doctors)

    def refresh_appointments(self) -> bool:
        return self._refresh("appointments", self.client.list_appointments)

    def refresh_medicines(self) -> bool:
        return self._refresh("medicines", self.client.list_medicines)

    def refresh_telecalls(self) -> bool:
        return self._refresh("telecalls", self.client.list_telecalls)

    def refresh_all(self) -> Dict[str, bool]:
        return {
            "ambulances":   self.refresh_ambulances(),
            "doctors":      self.refresh_doctors(),
            "appointments": self.refresh_appointments(),
            "medicines":    self.refresh_medicines(),
            "telecalls":    self.refresh_telecalls(),
        }

    # ------------------------------------------------------------------
    # Periodic refresh
    # ------------------------------------------------------------------

    def start_periodic(self, on_refresh: Optional[Callable[[], None]] = None) -> None:
        """Refresh appointments and ambulances every refresh_interval_s."""
        with self.lock:
            if self._running:
                logger.debug("Periodic refresh already running")
                return
            self._running = True
            self._generation += 1
            generation = self._generation
            self._stopped.clear()

        def _run() -> None:
            if self._stopped.is_set() or generation != self._generation:
                return
            try:
                self.refresh_appointments()
                self.refresh_ambulances()
                if on_refresh is not None:
                    on_refresh()
            except Exception as e:
                logger.error(f"Periodic refresh failed: {e}")
            self._schedule(_run, generation)

        self._schedule(_run, generation)

    def stop_periodic(self) -> None:
        self._stopped.set()
        with self.lock:
            self._running = False
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _schedule(self, fn: Callable[[], None], generation: int) -> None:
        with self.lock:
            if self._stopped.is_set() or generation != self._generation:
                return
            self._timer = threading.Timer(self.config.refresh_interval_s, fn)
            self._timer.daemon = True
            self._timer.start()

    def _refresh(self, name: str, fetch: Callable[[], list]) -> bool:
        try:
            records = fetch()
        except ApiError as e:
            logger.error(f"{name.capitalize()} refresh failed: {e}")
            self.errors[name] = LOAD_FAILED[name]
            return False
        with self.lock:
            setattr(self, name, records)
            self.errors.pop(name, None)
        return True

    def _with_synthetic(self, fetched: List[Ambulance]) -> List[Ambulance]:
        """Append demo ambulances until min_visible_ambulances is reached."""
        needed = self.config.min_visible_ambulances - len(fetched)
        if needed <= 0:
            return list(fetched)

        real_ids = {a.id for a in fetched}
        # Reuse earlier demo entries so they don't jump around on every refresh
        kept = [a for a in self._synthetic if a.id not in real_ids][:needed]
        if len(kept) < needed:
            kept += make_synthetic_ambulances(
                needed - len(kept),
                real_ids | {a.id for a in kept},
                self.config,
                self.rng,
                start_index=len(kept),
            )
        self._synthetic = kept
        return list(fetched) + kept
