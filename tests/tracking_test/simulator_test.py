import json
from datetime import date, timedelta

from healthease.booking import AppointmentRequest
from healthease.records import Ambulance, Doctor, Medicine
from healthease.tracking.models import LatLng
from healthease.validation import COORDS_HINT

USER = (12.9667, 77.5995)


def seed(fake_client):
    fake_client.ambulances = [
        Ambulance(id="a1", name="Unit 1", status="Available", speed_kmph=40, location=(12.9719, 77.5946)),
        Ambulance(id="a2", name="Unit 2", status="Busy", location=(12.98, 77.60)),
    ]
    fake_client.medicines = [
        Medicine(id="m1", name="Paracetamol", pharmacy="City Pharmacy", price=20, stock=5),
        Medicine(id="m0", name="Insulin", pharmacy="City Pharmacy", price=300, stock=0),
    ]


def run_until_idle(sim, dt=0.5, limit=10_000):
    for _ in range(limit):
        if not sim.step(dt):
            break


def test_malformed_coordinates_do_not_mutate(make_sim, fake_client):
    seed(fake_client)
    sim = make_sim()
    sim.refresh_all()
    sim.set_user_location(*USER)
    ok, msg = sim.dispatch("a1", "twelve,seventy")
    assert not ok
    assert msg == COORDS_HINT
    assert sim.tracker.sessions == {}
    assert not sim.scheduler.is_running
    assert sim.notifier.banner == COORDS_HINT


def test_dispatch_to_user_location_and_arrive(make_sim, fake_client, config):
    seed(fake_client)
    sim = make_sim()
    sim.refresh_all()
    sim.set_user_location(*USER)

    ok, msg = sim.dispatch("a1")
    assert ok and "dispatched" in msg
    assert sim.scheduler.is_running
    run_until_idle(sim)

    assert sim.map_state.get("amb_a1").position == LatLng(*USER)
    assert not sim.scheduler.is_running
    assert sim.notifier.history[-1].text.startswith("Unit 1 arrived")
    events = [e["event"] for e in sim.sim_logger.read_events()]
    assert events == ["dispatched", "arrived"]
    assert sim.last_frame.shape == (300, 400, 3)


def test_dispatch_needs_a_target(make_sim, fake_client):
    seed(fake_client)
    sim = make_sim()
    sim.refresh_all()
    assert sim.dispatch("a1") == (False, "Provide address or use my location")


def test_unknown_and_busy_ambulances(make_sim, fake_client):
    seed(fake_client)
    sim = make_sim()
    sim.refresh_all()
    ok, msg = sim.dispatch("zzz", "12.9,77.5")
    assert not ok and msg == "Unknown ambulance: zzz"
    ok, msg = sim.dispatch("a2", "12.9,77.5")
    assert not ok and "cannot be dispatched" in msg


def test_ambulance_rows_disable_busy(make_sim, fake_client):
    seed(fake_client)
    sim = make_sim()
    sim.refresh_all()
    rows = {amb.id: (badge, enabled) for amb, badge, _, enabled in sim.ambulance_rows()}
    assert rows["a1"] == ("Available", True)
    assert rows["a2"] == ("Busy", False)
    assert len(rows) == sim.config.min_visible_ambulances


def test_cancel_is_logged(make_sim, fake_client):
    seed(fake_client)
    sim = make_sim()
    sim.refresh_all()
    sim.dispatch("a1", "12.9667,77.5995")
    sim.step(1.0)
    assert sim.cancel("a1") == (True, "Ambulance dispatch cancelled")
    assert sim.cancel("a1") == (False, "No active dispatch for this ambulance")
    assert [e["event"] for e in sim.sim_logger.read_events()] == ["dispatched", "cancelled"]


def test_failed_refresh_keeps_going(make_sim, fake_client):
    fake_client.ambulances_error = "boom"
    sim = make_sim()
    results = sim.refresh_all()
    assert results["ambulances"] is False
    assert sim.sync.errors["ambulances"] == "Failed to load ambulances"
    assert sim.ambulances == []


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

def test_order_and_delivery(make_sim, fake_client):
    seed(fake_client)
    sim = make_sim()
    sim.refresh_all()
    ok, msg = sim.place_order("m1", "12.97,77.60", "9876543210", "upi", upi="me@okbank")
    assert ok and msg.startswith("Order placed (demo).")
    delivery = sim.tracker.delivery
    assert delivery.destination == LatLng(12.97, 77.60)

    assert sim.start_delivery() == (True, "Tracking delivery")
    run_until_idle(sim, dt=2.0)
    assert delivery.current == delivery.destination
    assert sim.notifier.history[-1].text == "Delivery arrived!"

    assert sim.cancel_order() == (True, "Order cancelled.")
    assert sim.tracker.delivery is None


def test_order_rejections(make_sim, fake_client):
    seed(fake_client)
    sim = make_sim()
    sim.refresh_all()
    assert sim.place_order("m0", "addr", "9876543210") == (
        False, "Medicine not available at selected pharmacy."
    )
    assert sim.place_order("m1", "", "9876543210") == (False, "Enter delivery address")
    assert sim.place_order("m1", "addr", "123") == (False, "Enter 10-digit mobile")
    assert sim.place_order("m1", "addr", "9876543210", "upi", upi="bad") == (
        False, "Invalid UPI format. Payment failed (demo)."
    )
    assert sim.tracker.delivery is None


def test_text_address_lands_near_demo_center(make_sim, fake_client):
    seed(fake_client)
    sim = make_sim()
    sim.refresh_all()
    ok, _ = sim.place_order("m1", "MG Road, Bengaluru", "9876543210")
    assert ok
    dest = sim.tracker.delivery.destination
    assert abs(dest.lat - 12.9716) < 0.02
    assert abs(dest.lng - 77.5946) < 0.02


# ---------------------------------------------------------------------------
# Appointments and output
# ---------------------------------------------------------------------------

def test_book_appointment_posts_payload(make_sim, fake_client):
    fake_client.doctors = [Doctor(id="d1", name="Dr Rao", specialization="Cardiologist")]
    sim = make_sim()
    sim.refresh_all()
    day = (date.today() + timedelta(days=3)).isoformat()
    ok, msg = sim.book_appointment(AppointmentRequest("Asha Kumar", "9876543210", day, "d1", "heart"))
    assert (ok, msg) == (True, "Appointment booked!")
    assert fake_client.posted == [
        {"patientName": "Asha Kumar", "disease": "heart", "date": day, "doctorId": "d1"}
    ]


def test_book_appointment_rejects_leave(make_sim, fake_client):
    leave = date.today() + timedelta(days=5)
    fake_client.doctors = [Doctor(id="d1", name="Dr Rao", on_leave_until=leave)]
    sim = make_sim()
    sim.refresh_all()
    ok, msg = sim.book_appointment(
        AppointmentRequest("Asha Kumar", "9876543210", leave.isoformat(), "d1")
    )
    assert not ok and "on leave" in msg
    assert fake_client.posted == []


def test_snapshot_and_frame_files(make_sim, fake_client, config, tmp_path):
    seed(fake_client)
    sim = make_sim()
    sim.refresh_all()
    sim.set_user_location(*USER)
    assert sim.save_snapshot()
    with open(config.snapshot_filepath, encoding="utf-8") as f:
        snap = json.load(f)
    ids = {o["id"] for o in snap["objects"]}
    assert {"user_loc", "amb_a1", "amb_a2"} <= ids
    assert sim.save_frame(str(tmp_path / "frame.png"))
