from datetime import date

from healthease.records import (
    Ambulance,
    Appointment,
    Doctor,
    Medicine,
    TelecallRequest,
    parse_date,
    parse_list,
)


def test_ambulance_defaults():
    a = Ambulance.from_dict({"_id": "x1"})
    assert a.name == "Amb-x1"
    assert a.status == "Available"
    assert a.speed_kmph == 40.0
    assert a.location is None
    assert not a.demo


def test_ambulance_full_record():
    a = Ambulance.from_dict({
        "id": 7, "name": "Unit 7", "status": "En route", "speedKmph": "55",
        "location": {"lat": "12.9", "lng": 77.5},
    })
    assert a.id == "7"
    assert a.speed_kmph == 55.0
    assert a.location == (12.9, 77.5)
    assert a.is_en_route and not a.is_busy


def test_ambulance_with_partial_location_has_none():
    assert Ambulance.from_dict({"_id": "a", "location": {"lat": 12.9}}).location is None


def test_busy_status_blocks_dispatch_unless_demo():
    busy = Ambulance(id="a", name="A", status="Occupied")
    assert busy.is_busy and not busy.can_dispatch
    demo = Ambulance(id="d", name="D", status="Busy", demo=True)
    assert demo.can_dispatch


def test_ambulance_to_dict():
    a = Ambulance(id="a", name="A", location=(1.0, 2.0), demo=True)
    assert a.to_dict() == {
        "_id": "a", "name": "A", "status": "Available", "speedKmph": 40.0,
        "location": {"lat": 1.0, "lng": 2.0}, "__demo": True,
    }


def test_doctor_leave_and_badges():
    d = Doctor.from_dict({
        "_id": "d1", "name": "Dr Rao", "onLeaveUntil": "2030-05-01T00:00:00.000Z",
        "availabilityTimes": ["Mon 10-12", "Thu 3-5"],
    })
    today = date(2030, 4, 1)
    assert d.specialization == "General"
    assert d.is_on_leave(today)
    assert d.badge_text(today) == "On leave until 2030-05-01"
    assert not d.is_on_leave(date(2030, 5, 1))
    assert d.badge_text(date(2030, 6, 1)) == "Available"
    assert d.schedule_text() == "Mon 10-12 • Thu 3-5"
    assert Doctor(id="x", name="X", available=False).badge_text() == "Unavailable"
    assert Doctor(id="x", name="X").schedule_text() == "No schedule provided"


def test_appointment_with_populated_doctor():
    appt = Appointment.from_dict({
        "_id": "p1", "patientName": "Asha", "date": "2030-01-02",
        "doctorId": {"_id": "d1", "name": "Dr Rao"},
    })
    assert appt.doctor_id == "d1"
    assert appt.date == date(2030, 1, 2)
    assert appt.status == "Booked"
    assert appt.disease == "General"


def test_medicine_aliases_and_summary():
    m = Medicine.from_dict({"_id": "m", "name": "Dolo", "shop": "Apollo", "price": 30, "stock": 2})
    assert m.pharmacy == "Apollo"
    assert m.in_stock
    assert m.summary() == "Apollo • ₹30 • Stock: 2"
    empty = Medicine.from_dict({"_id": "n", "name": "X"})
    assert not empty.in_stock
    assert empty.summary() == "Pharmacy • ₹N/A • Stock: 0"


def test_telecall_defaults_use_position():
    calls = parse_list([{"_id": "t1"}, {"_id": "t2", "busy": True, "contact": "108"}], TelecallRequest)
    assert [c.hospital_name for c in calls] == ["Hospital 1", "Hospital 2"]
    assert calls[0].available and calls[0].phone == "N/A"
    assert not calls[1].available and calls[1].phone == "108"


def test_parse_list_ignores_garbage():
    assert parse_list({"error": "nope"}, Ambulance) == []
    assert [a.id for a in parse_list([{"_id": "a"}, "junk", None], Ambulance)] == ["a"]


def test_parse_date_variants():
    assert parse_date("2030-01-31") == date(2030, 1, 31)
    assert parse_date("") is None
    assert parse_date("not a date") is None


def test_non_string_fields_are_coerced():
    a = Ambulance.from_dict({"_id": 5, "name": 101, "status": 3, "location": "12.9,77.5"})
    assert (a.id, a.name, a.status) == ("5", "101", "3")
    assert a.location is None
    d = Doctor.from_dict({"_id": "d", "name": 7, "specialization": 9, "availabilityTimes": [10, "Fri"]})
    assert (d.name, d.specialization, d.availability_times) == ("7", "9", ["10", "Fri"])
    assert Doctor.from_dict({"_id": "d", "availabilityTimes": "Mon"}).availability_times == []
    m = Medicine.from_dict({"_id": "m", "name": 42, "pharmacy": 1})
    assert (m.name, m.pharmacy) == ("42", "1")
    t = TelecallRequest.from_dict({"hospitalName": 12, "phone": 108, "reason": 0})
    assert (t.hospital_name, t.phone, t.reason) == ("12", "108", "0")
    appt = Appointment.from_dict({"_id": "p", "patientName": 3, "disease": 4, "status": 5})
    assert (appt.patient, appt.disease, appt.status) == ("3", "4", "5")


def test_non_positive_speed_uses_default():
    assert Ambulance.from_dict({"_id": "a", "speedKmph": -30}).speed_kmph == 40.0
    assert Ambulance.from_dict({"_id": "a", "speedKmph": 0}).speed_kmph == 40.0
    assert Ambulance.from_dict({"_id": "a", "speedKmph": 55}).speed_kmph == 55.0
