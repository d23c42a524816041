import sys
from pathlib import Path
from typing import List, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from healthease.api_client import ApiError
from healthease.records import Ambulance, Doctor, Medicine
from healthease.tracking.sim_config import SimConfig


class FakeClient:
    """In-memory stand-in for ApiClient; set *_error to simulate failures."""

    def __init__(self) -> None:
        self.ambulances: List[Ambulance] = []
        self.doctors: List[Doctor] = []
        self.medicines: List[Medicine] = []
        self.appointments: list = []
        self.telecalls: list = []
        self.ambulances_error: Optional[str] = None
        self.posted: list = []

    def list_ambulances(self):
        if self.ambulances_error:
            raise ApiError(self.ambulances_error)
        return list(self.ambulances)

    def list_doctors(self):
        return list(self.doctors)

    def list_appointments(self):
        return list(self.appointments)

    def list_medicines(self):
        return list(self.medicines)

    def list_telecalls(self):
        return list(self.telecalls)

    def create_appointment(self, payload):
        self.posted.append(payload)
        return payload

    def cancel_appointment(self, appointment_id):
        return True

    def close(self):
        pass


def no_icon(ref: str) -> bytes:
    raise OSError("icons disabled in tests")


@pytest.fixture
def config(tmp_path) -> SimConfig:
    return SimConfig(log_dir=str(tmp_path / "logs"), canvas_size=(400, 300))


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def make_sim(config, fake_client):
    """Factory for MapSimulation wired to the fake client with icons disabled."""
    import random

    from healthease.tracking.simulator import MapSimulation

    sims = []

    def _make(**overrides):
        sim = MapSimulation(
            overrides.pop("config", config),
            client=overrides.pop("client", fake_client),
            rng=random.Random(7),
            icon_fetch=no_icon,
            **overrides,
        )
        sims.append(sim)
        return sim

    yield _make
    for sim in sims:
        sim.close()
