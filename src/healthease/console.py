"""Interactive console for the dispatch map.

Drives a MapSimulation from typed commands instead of a browser. Frames are
advanced explicitly with ``tick`` so the console never blocks on animation.

Run:
    python -m healthease.console [--speak]
"""

import argparse
import logging
import traceback
from typing import List

from .booking import AppointmentRequest, filter_doctors
from .notifier import Speaker
from .tracking.sim_config import SimConfig
from .tracking.simulator import MapSimulation
from .validation import parse_coords

logger = logging.getLogger(__name__)

HELP = """Commands:
  refresh                        reload backend lists
  list                           ambulances with status badges
  meds                           medicines with stock
  doctors [query]                search doctors by name or symptom
  appts                          booked appointments
  book <doctor_id> <YYYY-MM-DD> <mobile> <name...>
  cancelappt <appointment_id>    cancel an appointment
  calls                          telecalling requests
  loc <lat,lon>                  set your location
  dispatch <amb_id> [lat,lon]    dispatch to coordinates or your location
  cancel <amb_id>                cancel a dispatch
  order <med_id> <lat,lon> <mobile> [upi|card|cod]
  track | untrack | cancelorder  delivery controls
  tick <seconds> [fps]           advance the animation
  status                         session summary
  render <path.png>              save the current frame
  quit"""


def parse_float(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        raise ValueError(f"Number expected, got: {text!r}") from None


def run_command(sim: MapSimulation, line: str) -> List[str]:
    """Execute one console command and return the lines to print."""
    parts = line.split()
    cmd = parts[0].lower()
    args = parts[1:]

    if cmd == "help":
        return [HELP]

    if cmd == "refresh":
        results = sim.refresh_all()
        return [f"{k}: {'ok' if ok else sim.sync.errors.get(k)}" for k, ok in results.items()]

    if cmd == "list":
        if not sim.ambulances:
            return ["No ambulances available"]
        out = []
        for amb, badge, remaining, enabled in sim.ambulance_rows():
            loc = (f"{amb.location[0]:.5f}, {amb.location[1]:.5f}"
                   if amb.location else "Location unknown")
            extra = f" {remaining}" if remaining else ""
            flag = "" if enabled else " (dispatch disabled)"
            out.append(f"{amb.id:<24} {amb.name:<16} [{badge}]{extra} {loc}{flag}")
        return out

    if cmd == "meds":
        if not sim.sync.medicines:
            return ["No medicines found"]
        return [f"{m.id:<24} {m.name:<20} {m.summary()}" for m in sim.sync.medicines]

    if cmd == "doctors":
        found = filter_doctors(sim.sync.doctors, " ".join(args))
        if not found:
            return ["No doctors found"]
        return [
            f"{d.id:<24} {d.name:<20} {d.specialization:<18} [{d.badge_text()}] {d.schedule_text()}"
            for d in found
        ]

    if cmd == "appts":
        if not sim.sync.appointments:
            return ["No appointments"]
        return [
            f"{a.id:<24} {a.patient:<20} {a.date.isoformat() if a.date else '-'} {a.disease} [{a.status}]"
            for a in sim.sync.appointments
        ]

    if cmd == "book":
        if len(args) < 4:
            raise ValueError("book <doctor_id> <YYYY-MM-DD> <mobile> <name...>")
        request = AppointmentRequest(
            patient_name=" ".join(args[3:]), mobile=args[2], date=args[1], doctor_id=args[0]
        )
        return [sim.book_appointment(request)[1]]

    if cmd == "cancelappt":
        return [sim.cancel_appointment(args[0] if args else "")[1]]

    if cmd == "calls":
        if not sim.sync.telecalls:
            return ["No telecalling requests"]
        return [
            f"{c.hospital_name:<24} {c.phone:<14} {'Available' if c.available else 'Busy'} {c.reason}"
            for c in sim.sync.telecalls
        ]

    if cmd == "loc":
        lat, lng = parse_coords(" ".join(args))
        sim.set_user_location(lat, lng)
        return [f"Location set to {lat:.6f}, {lng:.6f}"]

    if cmd == "dispatch":
        if not args:
            raise ValueError("dispatch needs an ambulance id")
        _, msg = sim.dispatch(args[0], " ".join(args[1:]))
        return [msg]

    if cmd == "cancel":
        _, msg = sim.cancel(args[0] if args else "")
        return [msg]

    if cmd == "order":
        if len(args) < 3:
            raise ValueError("order <med_id> <lat,lon> <mobile> [upi|card|cod]")
        payment = args[3] if len(args) > 3 else "cod"
        details = {}
        if payment == "upi":
            details["upi"] = input("UPI ID: ").strip()
        elif payment == "card":
            details["number"] = input("Card number: ").strip()
            details["expiry"] = input("Expiry (MM/YY): ").strip()
            details["cvv"] = input("CVV: ").strip()
        _, msg = sim.place_order(args[0], args[1], args[2], payment, **details)
        return [msg]

    if cmd == "track":
        return [sim.start_delivery()[1]]

    if cmd == "untrack":
        sim.stop_delivery()
        return ["Delivery tracking paused"]

    if cmd == "cancelorder":
        return [sim.cancel_order()[1]]

    if cmd == "tick":
        seconds = parse_float(args[0]) if args else 1.0
        fps = parse_float(args[1]) if len(args) > 1 else 10.0
        frames = max(1, int(seconds * fps))
        for _ in range(frames):
            if not sim.step(1.0 / fps):
                break
        return sim.status_lines() or ["No active sessions"]

    if cmd == "status":
        lines = sim.status_lines() or ["No active sessions"]
        banner = sim.notifier.banner
        return lines + ([f"Notice: {banner}"] if banner else [])

    if cmd == "render":
        path = args[0] if args else "frame.png"
        sim.render()
        return [f"Saved {path}" if sim.save_frame(path) else f"Could not write {path}"]

    return ["Unknown command. Type 'help'."]


def main(argv=None) -> None:
    p = argparse.ArgumentParser(description="HealthEase dispatch console")
    p.add_argument("--speak", action="store_true", help="Read results aloud")
    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    sim = MapSimulation(SimConfig.from_env())
    speaker = Speaker() if args.speak else None
    print(HELP)
    run_command(sim, "refresh")

    try:
        while True:
            line = input("> ").strip()
            if not line:
                continue
            if line.lower() in ("q", "quit", "exit"):
                break
            try:
                for out in run_command(sim, line):
                    print(out)
                    if speaker is not None:
                        speaker.say(out)
            except ValueError as e:
                print("[ERR]", e)
            except Exception as e:
                logger.debug(traceback.format_exc())
                print("[ERR]", f"Error: {e}")
    finally:
        if speaker is not None:
            speaker.close()
        sim.close()


if __name__ == "__main__":
    main()
