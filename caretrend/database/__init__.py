"""
Database module

Contains the record/result models, the gateway contract and its adapters.
"""

# Export schemas
from caretrend.database.schemas import (
    Patient,
    LabPanel,
    HealthSample,
    Appointment,
    AppointmentState,
    AppointmentScope,
    AppointmentView,
    DateRange,
    LabStatus,
    ProfileStatus,
    ComplianceCategory,
)

# Export gateways
from caretrend.database.gateway import DataGateway
from caretrend.database.storage import JsonFileGateway, read_json, write_json
from caretrend.database.rest import RestGateway

__all__ = [
    # Schemas
    "Patient",
    "LabPanel",
    "HealthSample",
    "Appointment",
    "AppointmentState",
    "AppointmentScope",
    "AppointmentView",
    "DateRange",
    "LabStatus",
    "ProfileStatus",
    "ComplianceCategory",
    # Gateways
    "DataGateway",
    "JsonFileGateway",
    "RestGateway",
    "read_json",
    "write_json",
]
