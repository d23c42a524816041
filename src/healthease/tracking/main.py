# main.py
# Entry point — loads backend data, dispatches one ambulance and animates it
# in real time, writing the final frame and a snapshot to the log directory.
#
# Usage: python -m healthease.tracking.main --target 12.9667,77.5995
# Point HEALTHEASE_API at the backend if it is not on localhost:5000.

import argparse
import logging
import os

from ..validation import parse_coords
from .sim_config import SimConfig
from .simulator import MapSimulation

# ------------------------------------------------------------------
# Logging setup — configure once here, all modules inherit
# ------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)

# User position used when --user is not given (MG Road, Bengaluru)
DEFAULT_USER = "12.9719,77.5946"


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="HealthEase ambulance dispatch map demo")
    p.add_argument("--user", default=DEFAULT_USER, help="User location as lat,lon")
    p.add_argument("--target", default="", help="Dispatch target as lat,lon (default: user location)")
    p.add_argument("--ambulance", default="", help="Ambulance id (default: first dispatchable)")
    p.add_argument("--max-seconds", type=float, default=None, help="Stop the animation after N seconds")
    p.add_argument("--log-dir", default="logs")
    p.add_argument("--speak", action="store_true", help="Read notices aloud")
    return p.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)

    # ------------------------------------------------------------------
    # Config — tweak thresholds or paths here, not inside the modules
    # ------------------------------------------------------------------
    config = SimConfig.from_env(log_dir=args.log_dir, speak_notices=args.speak)
    sim = MapSimulation(config)

    try:
        # 1. Load backend snapshot (demo ambulances fill any gap)
        if not sim.client.health():
            print(f"[Main] Backend at {config.api_base} is not answering; using demo data.")
        results = sim.refresh_all()
        for panel, ok in results.items():
            if not ok:
                print(f"[Main] {sim.sync.errors.get(panel, 'Load failed')}")

        lat, lng = parse_coords(args.user)
        sim.set_user_location(lat, lng)

        # 2. Pick an ambulance
        amb_id = args.ambulance
        if not amb_id:
            candidates = [a for a in sim.ambulances if a.can_dispatch]
            if not candidates:
                print("[Main] No dispatchable ambulance.")
                return
            amb_id = candidates[0].id

        success, msg = sim.dispatch(amb_id, args.target)
        print(f"[Main] {msg}")
        if not success:
            return

        print("\n--- Animation Active ---")
        frames = sim.run(args.max_seconds)

        for line in sim.status_lines():
            print(f"  {line}")
        print(f"\n--- {frames} frames ---")

        frame_path = os.path.join(config.log_dir, "final_frame.png")
        sim.save_frame(frame_path)
        sim.save_snapshot()
        print(f"    Frame and logs written to: {config.log_dir}/")
    finally:
        sim.close()


if __name__ == "__main__":
    main()
