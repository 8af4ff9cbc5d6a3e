"""
REST store gateway

- Talks to a PostgREST-style API (/rest/v1/<table>) with httpx
- Every call opens a short-lived AsyncClient, matching the rest of the codebase
- Timeouts, connection errors and non-2xx answers become TransportFailure
- 404 and empty bodies are "no data", never an error
- Malformed rows are skipped with a warning, like the JSON file gateway
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type, TypeVar

import httpx
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

logger = logging.getLogger(__name__)

PATIENTS_TABLE = "patients"
LAB_PANELS_TABLE = "patient_labs"
HEALTH_SAMPLES_TABLE = "health_metrics"
APPOINTMENTS_TABLE = "appointments"

Params = Sequence[Tuple[str, str]]
RecordT = TypeVar("RecordT", bound=BaseModel)


def _in_filter(values: Sequence[str]) -> str:
    """PostgREST list filter: in.(a,b,c)"""
    return "in.(" + ",".join(values) + ")"


class RestGateway(DataGateway):
    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        # Injected transport lets tests answer requests without a network
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _select(self, table: str, params: Params) -> List[Dict[str, Any]]:
        """
        Run one read query against a table
        
        Returns:
            List of row dictionaries (empty when the store has nothing)
        
        Raises:
            TransportFailure if the call could not be completed
        """
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self._headers(),
                transport=self._transport,
            ) as client:
                response = await client.get(f"/rest/v1/{table}", params=list(params))
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout querying {table}")
            raise TransportFailure(message=f"Timeout querying {table}", detail={"table": table}) from e
        except httpx.HTTPError as e:
            logger.warning(f"Error querying {table}: {str(e)}")
            raise TransportFailure(message=f"Error querying {table}", detail={"table": table, "error": str(e)}) from e

        if response.status_code == 404:
            return []
        if response.status_code >= 400:
            logger.warning(f"Store returned status {response.status_code} for {table}")
            raise TransportFailure(
                message=f"Store returned status {response.status_code} for {table}",
                detail={"table": table, "status": response.status_code},
            )
        if not response.content:
            return []
        try:
            rows = response.json()
        except ValueError as e:
            raise TransportFailure(message=f"Invalid JSON from {table}", detail={"table": table}) from e
        if isinstance(rows, dict):
            rows = [rows]
        return rows

    def _parse(self, table: str, rows: List[Dict[str, Any]], model: Type[RecordT]) -> List[RecordT]:
        records = []
        for row in rows:
            try:
                records.append(model.model_validate(row))
            except ValidationError as e:
                logger.warning(f"Skipping malformed row from {table}: {e.error_count()} error(s)")
        return records

    async def list_patients(self, doctor_ids: List[str]) -> List[Patient]:
        if not doctor_ids:
            return []
        rows = await self._select(PATIENTS_TABLE, [
            ("select", "*"),
            ("preferred_doctor_id", _in_filter(doctor_ids)),
            ("order", "patient_id.asc"),
        ])
        return self._parse(PATIENTS_TABLE, rows, Patient)

    async def get_patient(self, patient_id: str) -> Optional[Patient]:
        rows = await self._select(PATIENTS_TABLE, [
            ("select", "*"),
            ("patient_id", f"eq.{patient_id}"),
            ("limit", "1"),
        ])
        records = self._parse(PATIENTS_TABLE, rows, Patient)
        return records[0] if records else None

    async def latest_lab_panel(self, patient_id: str) -> Optional[LabPanel]:
        rows = await self._select(LAB_PANELS_TABLE, [
            ("select", "*"),
            ("patient_id", f"eq.{patient_id}"),
            ("order", "date_submitted.desc"),
            ("limit", "1"),
        ])
        records = self._parse(LAB_PANELS_TABLE, rows, LabPanel)
        return records[0] if records else None

    async def all_lab_panels(self, patient_id: str) -> List[LabPanel]:
        rows = await self._select(LAB_PANELS_TABLE, [
            ("select", "*"),
            ("patient_id", f"eq.{patient_id}"),
            ("order", "date_submitted.asc"),
        ])
        return self._parse(LAB_PANELS_TABLE, rows, LabPanel)

    async def lab_panels_between(self, patient_ids: List[str], date_range: DateRange) -> List[LabPanel]:
        if not patient_ids:
            return []
        rows = await self._select(LAB_PANELS_TABLE, [
            ("select", "*"),
            ("patient_id", _in_filter(patient_ids)),
            ("date_submitted", f"gte.{date_range.start.isoformat()}"),
            ("date_submitted", f"lt.{date_range.end.isoformat()}"),
        ])
        return self._parse(LAB_PANELS_TABLE, rows, LabPanel)

    async def all_health_samples(self, patient_id: str) -> List[HealthSample]:
        rows = await self._select(HEALTH_SAMPLES_TABLE, [
            ("select", "*"),
            ("patient_id", f"eq.{patient_id}"),
        ])
        return self._parse(HEALTH_SAMPLES_TABLE, rows, HealthSample)

    async def all_appointments(self, scope: AppointmentScope, date_range: DateRange) -> List[Appointment]:
        params: List[Tuple[str, str]] = [("select", "*")]
        if scope.secretary_id:
            params.append(("secretary_id", f"eq.{scope.secretary_id}"))
        else:
            params.append(("doctor_id", _in_filter(scope.doctor_ids)))
        params.extend([
            ("appointment_datetime", f"gte.{date_range.start.isoformat()}"),
            ("appointment_datetime", f"lt.{date_range.end.isoformat()}"),
            ("order", "appointment_datetime.asc"),
        ])
        rows = await self._select(APPOINTMENTS_TABLE, params)
        return self._parse(APPOINTMENTS_TABLE, rows, Appointment)
