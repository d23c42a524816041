# api_client.py
# Thin httpx wrapper around the HealthEase REST backend.
# Returns typed records; HTTP and decoding errors propagate as ApiError.

import logging
from typing import Any, Dict, List, Optional

import httpx

from .records import Ambulance, Appointment, Doctor, Medicine, TelecallRequest, parse_list
from .tracking.sim_config import SimConfig

logger = logging.getLogger(__name__)


class ApiError(RuntimeError):
    """Raised when the backend cannot be reached or answers with an error."""


class ApiClient:
    """
    Synchronous client for the backend endpoints the front end uses.

    Args:
        config:    SimConfig for base URL and timeout.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        config: Optional[SimConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.config = config or SimConfig()
        self._client = httpx.Client(
            base_url=self.config.api_base.rstrip("/") + "/",
            timeout=httpx.Timeout(self.config.request_timeout_s, connect=5.0),
            headers={"User-Agent": "HealthEase-Map/0.1", **self.config.extra_headers},
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Raw JSON
    # ------------------------------------------------------------------

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            r = self._client.get(path.lstrip("/"), params=params)
            r.raise_for_status()
            return r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ApiError(f"GET {path} failed: {e}") from e

    def post_json(self, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        try:
            r = self._client.post(path.lstrip("/"), json=payload or {})
        except httpx.HTTPError as e:
            raise ApiError(f"POST {path} failed: {e}") from e
        if r.is_error:
            try:
                detail = r.json().get("error") or r.text
            except ValueError:
                detail = r.text
            raise ApiError(f"POST {path} failed ({r.status_code}): {detail}")
        try:
            return r.json()
        except ValueError as e:
            raise ApiError(f"POST {path} returned invalid JSON: {e}") from e

    def get_records(self, path: str, record_type) -> list:
        """GET a JSON array and convert it; malformed records raise ApiError."""
        payload = self.get_json(path)
        try:
            return parse_list(payload, record_type)
        except (AttributeError, TypeError, ValueError, OverflowError) as e:
            raise ApiError(f"GET {path} returned a malformed {record_type.__name__}: {e}") from e

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Typed endpoints
    # ------------------------------------------------------------------

    def list_ambulances(self) -> List[Ambulance]:
        return self.get_records("ambulances", Ambulance)

    def list_doctors(self) -> List[Doctor]:
        return self.get_records("doctors", Doctor)

    def list_appointments(self) -> List[Appointment]:
        return self.get_records("appointments", Appointment)

    def list_medicines(self) -> List[Medicine]:
        return self.get_records("medicines", Medicine)

    def list_telecalls(self) -> List[TelecallRequest]:
        return self.get_records("telecalling", TelecallRequest)

    def create_appointment(self, payload: Dict[str, Any]) -> Appointment:
        data = self.post_json("appointments", payload)
        if not isinstance(data, dict):
            raise ApiError("POST appointments returned no appointment record")
        appt = Appointment.from_dict(data)
        logger.info(f"Appointment booked for {appt.patient} on {appt.date}")
        return appt

    def cancel_appointment(self, appointment_id: str) -> bool:
        data = self.post_json(f"appointments/{appointment_id}/cancel")
        return bool(isinstance(data, dict) and data.get("ok"))

    def health(self) -> bool:
        try:
            data = self.get_json("health")
        except ApiError as e:
            logger.warning(f"Backend health check failed: {e}")
            return False
        return bool(isinstance(data, dict) and data.get("ok"))
