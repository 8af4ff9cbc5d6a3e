"""
Simple JSON file storage

- Using JSON files for local runs and demos to avoid database setup complexity
- One file per record type under a data directory
- Missing file means no records yet; an unreadable file is a transport failure
- Easy to swap for the REST gateway by changing GATEWAY_BACKEND
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from caretrend.core.exceptions import TransportFailure
from caretrend.database.gateway import DataGateway
from caretrend.database.schemas import (
    Appointment,
    AppointmentScope,
    DateRange,
    HealthSample,
    LabPanel,
    Patient,
)
from caretrend.services.utils import timestamp_sort_key

logger = logging.getLogger(__name__)

PATIENTS_FILE = "patients.json"
LAB_PANELS_FILE = "lab_panels.json"
HEALTH_SAMPLES_FILE = "health_samples.json"
APPOINTMENTS_FILE = "appointments.json"

RecordT = TypeVar("RecordT", bound=BaseModel)


def read_json(filepath: str) -> List[Dict[str, Any]]:
    """
    Read JSON file, return empty list if not found
    
    Raises TransportFailure if the file exists but cannot be read or parsed
    """
    path = Path(filepath)
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except FileNotFoundError:
        return []
    except (OSError, json.JSONDecodeError) as e:
        raise TransportFailure(
            message=f"Failed to read {path.name}",
            detail={"path": str(path), "error": str(e)},
        )
    if not isinstance(data, list):
        raise TransportFailure(
            message=f"Expected a list of records in {path.name}",
            detail={"path": str(path)},
        )
    return data


def write_json(filepath: str, data: List[Dict[str, Any]]):
    """
    Write data to JSON file (used for seeding local data)
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(data, f, indent=2, default=str)


class JsonFileGateway(DataGateway):
    """
    DataGateway backed by JSON files in data_dir
    
    Files are re-read on every call; nothing is cached between queries.
    """
    def __init__(self, data_dir: str = "data"):
        self.data_dir = Path(data_dir)

    def _load(self, filename: str, model: Type[RecordT]) -> List[RecordT]:
        records = []
        for row in read_json(str(self.data_dir / filename)):
            try:
                records.append(model.model_validate(row))
            except ValidationError as e:
                logger.warning(f"Skipping malformed row in {filename}: {e.error_count()} error(s)")
        return records

    async def list_patients(self, doctor_ids: List[str]) -> List[Patient]:
        wanted = set(doctor_ids)
        patients = [
            p for p in self._load(PATIENTS_FILE, Patient)
            if p.preferred_doctor_id in wanted
        ]
        return sorted(patients, key=lambda p: p.patient_id or "")

    async def get_patient(self, patient_id: str) -> Optional[Patient]:
        for patient in self._load(PATIENTS_FILE, Patient):
            if patient.patient_id == patient_id:
                return patient
        return None

    async def latest_lab_panel(self, patient_id: str) -> Optional[LabPanel]:
        panels = await self.all_lab_panels(patient_id)
        return panels[-1] if panels else None

    async def all_lab_panels(self, patient_id: str) -> List[LabPanel]:
        panels = [
            panel for panel in self._load(LAB_PANELS_FILE, LabPanel)
            if panel.patient_id == patient_id
        ]
        return sorted(panels, key=lambda panel: timestamp_sort_key(panel.date_submitted))

    async def lab_panels_between(self, patient_ids: List[str], date_range: DateRange) -> List[LabPanel]:
        wanted = set(patient_ids)
        return [
            panel for panel in self._load(LAB_PANELS_FILE, LabPanel)
            if panel.patient_id in wanted
            and panel.date_submitted is not None
            and date_range.contains(panel.date_submitted.date())
        ]

    async def all_health_samples(self, patient_id: str) -> List[HealthSample]:
        return [
            sample for sample in self._load(HEALTH_SAMPLES_FILE, HealthSample)
            if sample.patient_id == patient_id
        ]

    async def all_appointments(self, scope: AppointmentScope, date_range: DateRange) -> List[Appointment]:
        # Stored timestamps are compared as text, the same way the remote store filters them
        start, end = date_range.start.isoformat(), date_range.end.isoformat()
        appointments = []
        for appointment in self._load(APPOINTMENTS_FILE, Appointment):
            if scope.secretary_id:
                if appointment.secretary_id != scope.secretary_id:
                    continue
            elif appointment.doctor_id not in scope.doctor_ids:
                continue
            if start <= appointment.date_part < end:
                appointments.append(appointment)
        return sorted(appointments, key=lambda a: a.appointment_datetime)
