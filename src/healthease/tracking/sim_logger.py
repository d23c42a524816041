# sim_logger.py
# Handles all file I/O for the map simulation.
# Appends session events as JSON lines and saves map snapshots as JSON.

import json
import logging
import os
from datetime import datetime
from typing import List, Optional

from .map_state import MapState
from .models import FrameEvent
from .sim_config import SimConfig

# Standard Python logger — configure at app entry point if needed
logger = logging.getLogger(__name__)


class SimLogger:
    """
    Persists dispatch history and map snapshots.

    Args:
        config: SimConfig instance for file paths and directories.
    """

    def __init__(self, config: Optional[SimConfig] = None) -> None:
        self.config = config or SimConfig()
        os.makedirs(self.config.log_dir, exist_ok=True)

    # ------------------------------------------------------------------
    # Session event logging
    # ------------------------------------------------------------------

    def log_event(self, event: FrameEvent) -> None:
        """Append a single session event to the session log file."""
        entry = {
            "timestamp": datetime.now().isoformat(),
            "event": event.event.value,
            "subject": event.subject_id,
            "message": event.message,
            "position": event.position.to_dict() if event.position else None,
        }
        try:
            with open(self.config.session_log_filepath, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except IOError as e:
            logger.error(f"Failed to write event log: {e}")

    def read_events(self) -> List[dict]:
        path = self.config.session_log_filepath
        try:
            with open(path, "r", encoding="utf-8") as f:
                return [json.loads(line) for line in f if line.strip()]
        except (IOError, ValueError) as e:
            logger.error(f"Failed to read event log {path}: {e}")
            return []

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def save_snapshot(self, map_state: MapState, status_lines: List[str]) -> bool:
        """
        Write every map object and the status overlay to JSON.

        Returns:
            True on success, False on failure.
        """
        filepath = self.config.snapshot_filepath
        b = map_state.bounds
        try:
            data = {
                "saved_at": datetime.now().isoformat(),
                "bounds": {
                    "min_lat": b.min_lat, "max_lat": b.max_lat,
                    "min_lng": b.min_lng, "max_lng": b.max_lng,
                },
                "objects": [o.to_dict() for o in map_state],
                "status": status_lines,
            }
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            logger.info(f"Snapshot saved to {filepath} ({len(data['objects'])} objects).")
            return True
        except IOError as e:
            logger.error(f"Failed to save snapshot to {filepath}: {e}")
            return False
