"""
Pytest configuration and shared fixtures
"""
import asyncio
from datetime import date
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from caretrend.api.utils import get_gateway
from caretrend.core.exceptions import TransportFailure
from caretrend.database.rest import RestGateway
from caretrend.database.storage import (
    APPOINTMENTS_FILE,
    HEALTH_SAMPLES_FILE,
    LAB_PANELS_FILE,
    PATIENTS_FILE,
    JsonFileGateway,
    write_json,
)
from caretrend.main import app
from caretrend.services.status.computation import REQUIRED_LAB_FIELDS

TODAY = date(2026, 10, 17)


class FlakyGateway(JsonFileGateway):
    """
    JSON gateway that raises TransportFailure for chosen patients or months
    """
    def __init__(self, data_dir, failing_patients=(), failing_lab_months=(), fail_patient_list=False):
        super().__init__(data_dir)
        self.failing_patients = set(failing_patients)
        self.failing_lab_months = set(failing_lab_months)
        self.fail_patient_list = fail_patient_list

    async def list_patients(self, doctor_ids):
        if self.fail_patient_list:
            raise TransportFailure(message="patient list unavailable")
        return await super().list_patients(doctor_ids)

    async def latest_lab_panel(self, patient_id):
        if patient_id in self.failing_patients:
            raise TransportFailure(message=f"lab fetch failed for {patient_id}")
        return await super().latest_lab_panel(patient_id)

    async def all_health_samples(self, patient_id):
        if patient_id in self.failing_patients:
            raise TransportFailure(message=f"sample fetch failed for {patient_id}")
        return await super().all_health_samples(patient_id)

    async def lab_panels_between(self, patient_ids, date_range):
        # Month queries are padded by a day on each side; the 15th identifies the month
        for month in self.failing_lab_months:
            year, number = month.split("-")
            if date_range.contains(date(int(year), int(number), 15)):
                raise TransportFailure(message="lab query failed")
        return await super().lab_panels_between(patient_ids, date_range)


class SlowGateway(JsonFileGateway):
    """
    JSON gateway whose sample fetches never finish; records starts and cancellations
    """
    def __init__(self, data_dir):
        super().__init__(data_dir)
        self.started = []
        self.cancelled = []

    async def all_health_samples(self, patient_id):
        self.started.append(patient_id)
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled.append(patient_id)
            raise


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def data_dir(tmp_path) -> Path:
    """Temporary data directory for the JSON gateway"""
    return tmp_path


@pytest.fixture
def seed(data_dir):
    """Write record lists into the temporary data directory"""
    def _seed(patients=None, lab_panels=None, health_samples=None, appointments=None):
        if patients is not None:
            write_json(str(data_dir / PATIENTS_FILE), patients)
        if lab_panels is not None:
            write_json(str(data_dir / LAB_PANELS_FILE), lab_panels)
        if health_samples is not None:
            write_json(str(data_dir / HEALTH_SAMPLES_FILE), health_samples)
        if appointments is not None:
            write_json(str(data_dir / APPOINTMENTS_FILE), appointments)
    return _seed


@pytest.fixture
def gateway(data_dir):
    return JsonFileGateway(str(data_dir))


@pytest.fixture
def flaky_gateway(data_dir):
    """Factory for a gateway that fails on chosen units"""
    def _make(**kwargs):
        return FlakyGateway(str(data_dir), **kwargs)
    return _make


@pytest.fixture
def slow_gateway(data_dir):
    return SlowGateway(str(data_dir))


@pytest.fixture
def rest_store():
    """
    Factory for a RestGateway answered by in-memory tables

    Supports the eq. and in.() filters; other filters are ignored.
    """
    def _make(tables):
        def handler(request: httpx.Request):
            rows = list(tables.get(request.url.path.rsplit("/", 1)[-1], []))
            for key, value in request.url.params.multi_items():
                if value.startswith("eq."):
                    rows = [row for row in rows if str(row.get(key)) == value[3:]]
                elif value.startswith("in.("):
                    wanted = value[4:-1].split(",")
                    rows = [row for row in rows if str(row.get(key)) in wanted]
            return httpx.Response(200, json=rows)
        return RestGateway("https://store.test", transport=httpx.MockTransport(handler))
    return _make


@pytest.fixture
def make_patient():
    """Patient row with every profile field filled in"""
    def _make(patient_id, doctor_id="doc-1", created_at="2026-10-01T09:00:00", **overrides):
        row = {
            "patient_id": patient_id,
            "first_name": "Ana",
            "last_name": "Reyes",
            "email": f"{patient_id}@example.com",
            "date_of_birth": "1970-03-14",
            "contact_info": "555-0100",
            "emergency_contact_number": "555-0199",
            "address": "12 Rizal St",
            "gender": "Female",
            "allergies": "None",
            "diabetes_type": "Type 2",
            "smoking_status": "Never",
            "phase": "Pre-Operative",
            "risk_classification": "low",
            "preferred_doctor_id": doctor_id,
            "created_at": created_at,
        }
        row.update(overrides)
        return row
    return _make


@pytest.fixture
def make_panel():
    """Lab panel row with every required value filled in"""
    def _make(patient_id, date_submitted="2026-10-01", **overrides):
        row = {"patient_id": patient_id, "date_submitted": date_submitted}
        row.update({field: 5.0 for field in REQUIRED_LAB_FIELDS})
        row.update(overrides)
        return row
    return _make


@pytest.fixture
def client(gateway):
    """Test client wired to the temporary JSON gateway"""
    app.dependency_overrides[get_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()
