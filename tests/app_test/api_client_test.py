import json

import httpx
import pytest

from healthease.api_client import ApiClient, ApiError
from healthease.tracking.sim_config import SimConfig


def make_client(handler, **config_kwargs):
    config = SimConfig(api_base="http://backend.test/api", **config_kwargs)
    return ApiClient(config, transport=httpx.MockTransport(handler))


def test_lists_are_parsed_into_records():
    seen = []

    def handler(request):
        seen.append(request.url.path)
        return httpx.Response(200, json=[
            {"_id": "a1", "name": "Unit 1", "location": {"lat": 12.9, "lng": 77.5}},
            {"_id": "a2"},
        ])

    client = make_client(handler)
    ambs = client.list_ambulances()
    assert seen == ["/api/ambulances"]
    assert [a.id for a in ambs] == ["a1", "a2"]
    assert ambs[1].name == "Amb-a2"
    client.close()


def test_telecalls_use_telecalling_endpoint():
    def handler(request):
        assert request.url.path == "/api/telecalling"
        return httpx.Response(200, json=[{"hospitalName": "City"}])

    client = make_client(handler)
    assert client.list_telecalls()[0].hospital_name == "City"


def test_server_error_becomes_api_error():
    client = make_client(lambda request: httpx.Response(500, text="oops"))
    with pytest.raises(ApiError):
        client.list_doctors()


def test_invalid_json_becomes_api_error():
    client = make_client(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(ApiError):
        client.list_medicines()


def test_connection_failure_becomes_api_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = make_client(handler)
    with pytest.raises(ApiError):
        client.list_appointments()


def test_non_list_payload_yields_empty_list():
    client = make_client(lambda request: httpx.Response(200, json={"error": "nope"}))
    assert client.list_ambulances() == []


def test_create_appointment_posts_json():
    bodies = []

    def handler(request):
        assert request.method == "POST"
        body = json.loads(request.content)
        bodies.append(body)
        return httpx.Response(201, json={"_id": "p1", **body})

    client = make_client(handler)
    appt = client.create_appointment({"patientName": "Asha", "date": "2030-01-02"})
    assert bodies == [{"patientName": "Asha", "date": "2030-01-02"}]
    assert appt.id == "p1" and appt.patient == "Asha"


def test_post_error_carries_backend_message():
    client = make_client(lambda request: httpx.Response(400, json={"error": "Doctor on leave"}))
    with pytest.raises(ApiError, match="Doctor on leave"):
        client.create_appointment({})


def test_cancel_and_health():
    def handler(request):
        if request.url.path == "/api/appointments/p1/cancel":
            return httpx.Response(200, json={"ok": True})
        if request.url.path == "/api/health":
            return httpx.Response(200, json={"ok": True})
        return httpx.Response(404)

    client = make_client(handler)
    assert client.cancel_appointment("p1") is True
    assert client.health() is True


def test_health_false_when_down():
    client = make_client(lambda request: httpx.Response(503))
    assert client.health() is False


def test_extra_headers_are_sent():
    def handler(request):
        assert request.headers["X-Token"] == "abc"
        return httpx.Response(200, json=[])

    client = make_client(handler, extra_headers={"X-Token": "abc"})
    assert client.list_doctors() == []


def test_string_location_is_ignored_not_fatal():
    client = make_client(lambda request: httpx.Response(200, json=[{"_id": "x", "location": "12.9,77.5"}]))
    (amb,) = client.list_ambulances()
    assert amb.id == "x" and amb.location is None


def test_unparseable_record_becomes_api_error():
    client = make_client(lambda request: httpx.Response(200, json=[{"_id": "m", "stock": "1e400"}]))
    with pytest.raises(ApiError, match="malformed Medicine"):
        client.list_medicines()


def test_non_object_post_reply_becomes_api_error():
    client = make_client(lambda request: httpx.Response(201, json=["unexpected"]))
    with pytest.raises(ApiError):
        client.create_appointment({"patientName": "Asha"})
