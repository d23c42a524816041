# sim_config.py
# All tuneable constants in one place.
# Pass a SimConfig instance to every module that needs settings.

import os
from dataclasses import dataclass, field
from typing import Tuple


# ---------------------------------------------------------------------------
# Status patterns and icon references
# ---------------------------------------------------------------------------

BUSY_PATTERN: str = r"busy|unavailable|occupied"
EN_ROUTE_PATTERN: str = r"pending|en[- ]?route|dispatched|enroute"

AMB_ICON: str = "https://cdn-icons-png.flaticon.com/512/2966/2966327.png"
DEL_ICON: str = "https://cdn-icons-png.flaticon.com/512/259/259538.png"

# (min_lat, max_lat, min_lng, max_lng) used when nothing is on the map (India)
DEFAULT_REGION: Tuple[float, float, float, float] = (8.0, 38.0, 68.0, 98.0)

# Bengaluru, where demo ambulances are spawned
DEMO_CENTER: Tuple[float, float] = (12.9716, 77.5946)


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass
class SimConfig:
    # Dispatch / motion
    arrival_threshold_m: float = 6.0        # closer than this → waypoint reached
    segment_length_m: float = 150.0         # target spacing between waypoints
    min_waypoints: int = 20
    default_speed_kmph: float = 35.0        # when an ambulance record has none
    ambulance_trail_cap: int = 250
    delivery_trail_cap: int = 200

    # Delivery orders
    delivery_speed_kmph: Tuple[float, float] = (25.0, 40.0)
    shop_distance_m: Tuple[float, float] = (3000.0, 11000.0)

    # Demo fill-in
    min_visible_ambulances: int = 6
    demo_center: Tuple[float, float] = DEMO_CENTER
    demo_base_radius_m: float = 1500.0
    demo_radius_step_m: float = 300.0

    # Projection
    default_region: Tuple[float, float, float, float] = DEFAULT_REGION
    pad_ratio: float = 0.12
    pad_constant_deg: float = 0.01

    # Rendering
    canvas_size: Tuple[int, int] = (960, 640)   # (width, height)
    grid_divisions: int = 6
    vehicle_icon_px: int = 36
    marker_icon_px: int = 18
    dot_radius_px: int = 8
    label_offset_px: Tuple[int, int] = (14, 6)
    ambulance_icon: str = AMB_ICON
    delivery_icon: str = DEL_ICON

    # Notifications
    transient_banner_s: float = 4.0
    speak_notices: bool = False

    # Backend
    api_base: str = "http://localhost:5000/api"
    request_timeout_s: float = 10.0
    refresh_interval_s: float = 20.0
    extra_headers: dict = field(default_factory=dict)

    # Scheduler
    frame_interval_s: float = 1.0 / 30

    # Logging
    log_dir: str = "logs"
    session_log_filename: str = "sim_session.jsonl"
    snapshot_filename: str = "map_snapshot.json"

    @property
    def session_log_filepath(self) -> str:
        return os.path.join(self.log_dir, self.session_log_filename)

    @property
    def snapshot_filepath(self) -> str:
        return os.path.join(self.log_dir, self.snapshot_filename)

    @classmethod
    def from_env(cls, **overrides) -> "SimConfig":
        """Build a config, letting HEALTHEASE_API override the backend URL."""
        api = os.environ.get("HEALTHEASE_API")
        if api and "api_base" not in overrides:
            overrides["api_base"] = api.rstrip("/")
        return cls(**overrides)
