"""
Read-only query surface consumed by the status and aggregation services

Every method distinguishes an explicit "nothing there" answer (None / empty
list) from a failed call (TransportFailure). Services rely on that split to
pick conservative defaults instead of surfacing an error.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from caretrend.database.schemas import (
    Appointment,
    AppointmentScope,
    DateRange,
    HealthSample,
    LabPanel,
    Patient,
)


class DataGateway(ABC):
    """Abstract record source"""

    @abstractmethod
    async def list_patients(self, doctor_ids: List[str]) -> List[Patient]:
        """Patients whose preferred doctor is one of doctor_ids, ordered by patient_id"""

    @abstractmethod
    async def get_patient(self, patient_id: str) -> Optional[Patient]:
        """Single patient, or None"""

    @abstractmethod
    async def latest_lab_panel(self, patient_id: str) -> Optional[LabPanel]:
        """Most recent lab panel by date_submitted, or None"""

    @abstractmethod
    async def all_lab_panels(self, patient_id: str) -> List[LabPanel]:
        """Every lab panel for the patient, ascending by date_submitted"""

    @abstractmethod
    async def lab_panels_between(self, patient_ids: List[str], date_range: DateRange) -> List[LabPanel]:
        """Lab panels for any of patient_ids submitted inside date_range"""

    @abstractmethod
    async def all_health_samples(self, patient_id: str) -> List[HealthSample]:
        """Every health sample for the patient, in no particular order"""

    @abstractmethod
    async def all_appointments(self, scope: AppointmentScope, date_range: DateRange) -> List[Appointment]:
        """Appointments in scope whose stored date falls inside date_range"""
