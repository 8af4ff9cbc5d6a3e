"""
Data models

- Source records (patients, lab panels, health samples, appointments) as read from the store
- Derived results (classifications, compliance, trends) returned to callers
- Pydantic provides validation and JSON serialization for the API layer
- Source records ignore unknown columns so store schema drift does not break reads
"""
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _coerce_timestamp(value: Any) -> Any:
    """
    Accept datetime, date or ISO string; return a naive UTC datetime

    Aware timestamps are converted to UTC before dropping tzinfo so that
    month bucketing compares like with like.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class LabStatus(str, Enum):
    AWAITING = "Awaiting"
    SUBMITTED = "Submitted"


class ProfileStatus(str, Enum):
    PENDING = "Pending"
    FINALIZED = "Finalized"


class ComplianceCategory(str, Enum):
    FULL_COMPLIANCE = "FullCompliance"
    MISSING_LOGS = "MissingLogs"
    NON_COMPLIANT = "NonCompliant"


class BadgeColor(str, Enum):
    BLOCKED = "blocked"
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    WHITE = "white"
    BLACK = "black"


class AppointmentState(str, Enum):
    PENDING = "Pending"
    IN_QUEUE = "InQueue"
    CANCELLED = "Cancelled"
    FINISHED = "Finished"


class AppointmentView(str, Enum):
    TODAY = "today"
    UPCOMING = "upcoming"


# ---------------------------------------------------------------------------
# Source records
# ---------------------------------------------------------------------------

class Patient(BaseModel):
    """
    Patient record

    Demographics are free text as entered by clinic staff; completeness is
    judged by the profile status rule, not by validation here.
    """
    model_config = ConfigDict(extra="ignore")
    patient_id: Optional[str]               = Field(None, description="Patient unique identifier")
    first_name: Optional[str]               = Field(None, description="First name")
    middle_name: Optional[str]              = Field(None, description="Middle name (not required for a finalized profile)")
    last_name: Optional[str]                = Field(None, description="Last name")
    email: Optional[str]                    = Field(None, description="Email address")
    date_of_birth: Optional[str]            = Field(None, description="Date of birth (format: YYYY-MM-DD)")
    contact_info: Optional[str]             = Field(None, description="Phone number")
    emergency_contact_number: Optional[str] = Field(None, description="Emergency contact phone number")
    address: Optional[str]                  = Field(None, description="Home address")
    gender: Optional[str]                   = Field(None, description="Gender")
    allergies: Optional[str]                = Field(None, description="Known allergies ('None' is a valid answer)")
    diabetes_type: Optional[str]            = Field(None, description="Diabetes type (e.g., 'Type 1', 'Type 2')")
    smoking_status: Optional[str]           = Field(None, description="Smoking status")
    phase: Optional[str]                    = Field(None, description="Surgical phase: 'PreOperative' or 'PostOperative'")
    risk_classification: Optional[str]      = Field(None, description="Latest known risk stored on the patient row")
    preferred_doctor_id: Optional[str]      = Field(None, description="Assigned doctor ID")
    created_at: Optional[datetime]          = Field(None, description="Registration timestamp")

    @field_validator("created_at", mode="before")
    @classmethod
    def validate_created_at(cls, value: Any) -> Any:
        return _coerce_timestamp(value)


# Lab values may arrive as numbers or as raw form strings; "" means not entered
LabValue = Optional[Union[float, str]]


class LabPanel(BaseModel):
    """
    One batch submission of required laboratory values
    """
    model_config = ConfigDict(extra="ignore")
    lab_id: Optional[str]              = Field(None, description="Lab panel identifier")
    patient_id: str                    = Field(..., description="Patient ID this panel belongs to")
    date_submitted: Optional[datetime] = Field(None, description="Submission date")
    hba1c: LabValue                    = Field(None, description="Glycated hemoglobin (%)")
    ucr: LabValue                      = Field(None, description="Urine creatinine ratio")
    got_ast: LabValue                  = Field(None, description="GOT (AST) U/L")
    gpt_alt: LabValue                  = Field(None, description="GPT (ALT) U/L")
    cholesterol: LabValue              = Field(None, description="Total cholesterol mg/dL")
    triglycerides: LabValue            = Field(None, description="Triglycerides mg/dL")
    hdl_cholesterol: LabValue          = Field(None, description="HDL cholesterol mg/dL")
    ldl_cholesterol: LabValue          = Field(None, description="LDL cholesterol mg/dL")
    urea: LabValue                     = Field(None, description="Urea mg/dL")
    bun: LabValue                      = Field(None, description="Blood urea nitrogen mg/dL")
    uric: LabValue                     = Field(None, description="Uric acid mg/dL")
    egfr: LabValue                     = Field(None, description="Estimated GFR mL/min/1.73m2")

    @field_validator("date_submitted", mode="before")
    @classmethod
    def validate_date_submitted(cls, value: Any) -> Any:
        return _coerce_timestamp(value)


class HealthSample(BaseModel):
    """
    One periodic measurement submitted by (or for) a patient
    """
    model_config = ConfigDict(extra="ignore")
    metric_id: Optional[str]            = Field(None, description="Sample identifier")
    patient_id: str                     = Field(..., description="Patient ID this sample belongs to")
    submission_date: Optional[datetime] = Field(None, description="Submission timestamp")
    blood_glucose: LabValue             = Field(None, description="Blood glucose mg/dL")
    bp_systolic: Optional[float]        = Field(None, description="Systolic blood pressure mmHg")
    bp_diastolic: Optional[float]       = Field(None, description="Diastolic blood pressure mmHg")
    wound_photo_url: Optional[str]      = Field(None, description="Reference to the uploaded wound photo")
    risk_classification: Optional[str]  = Field(None, description="Risk: low, moderate, high, ppd or unknown")
    risk_score: Optional[float]         = Field(None, description="Numeric risk score")

    @field_validator("submission_date", mode="before")
    @classmethod
    def validate_submission_date(cls, value: Any) -> Any:
        return _coerce_timestamp(value)


class Appointment(BaseModel):
    """
    Scheduled appointment

    appointment_datetime is kept exactly as stored; its date portion is
    compared as text and never shifted through a timezone.
    """
    model_config = ConfigDict(extra="ignore")
    appointment_id: Optional[str]      = Field(None, description="Appointment identifier")
    patient_id: Optional[str]          = Field(None, description="Patient ID")
    doctor_id: Optional[str]           = Field(None, description="Doctor ID")
    secretary_id: Optional[str]        = Field(None, description="Secretary who booked the appointment")
    appointment_datetime: str          = Field(..., description="Stored timestamp text, e.g. '2026-10-17T09:30:00'")
    appointment_state: AppointmentState = Field(default=AppointmentState.PENDING, description="Pending, InQueue, Cancelled or Finished")
    notes: Optional[str]               = Field(None, description="Free text notes")

    @field_validator("appointment_datetime", mode="before")
    @classmethod
    def validate_appointment_datetime(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        return value

    @field_validator("appointment_state", mode="before")
    @classmethod
    def validate_appointment_state(cls, value: Any) -> Any:
        # Missing state means the appointment was never touched after booking
        if value is None or value == "":
            return AppointmentState.PENDING
        if isinstance(value, str):
            compact = value.replace(" ", "").replace("-", "").replace("_", "").lower()
            for state in AppointmentState:
                if state.value.lower() == compact:
                    return state
        return value

    @property
    def date_part(self) -> str:
        """Calendar date portion of the stored timestamp, verbatim"""
        text = self.appointment_datetime.strip()
        for separator in ("T", " "):
            if separator in text:
                return text.split(separator, 1)[0]
        return text[:10]


# ---------------------------------------------------------------------------
# Query shapes
# ---------------------------------------------------------------------------

class DateRange(BaseModel):
    """
    Half-open calendar window [start, end)
    """
    start: date = Field(..., description="First day included")
    end: date   = Field(..., description="First day excluded")

    @model_validator(mode="after")
    def validate_order(self) -> "DateRange":
        if self.end < self.start:
            raise ValueError("end must not be before start")
        return self

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end


class AppointmentScope(BaseModel):
    """
    Whose appointments a query covers: one secretary, or a set of doctors
    """
    secretary_id: Optional[str] = Field(None, description="Secretary ID")
    doctor_ids: List[str]       = Field(default_factory=list, description="Doctor IDs")

    @property
    def is_empty(self) -> bool:
        return not self.secretary_id and not self.doctor_ids


# ---------------------------------------------------------------------------
# Derived results
# ---------------------------------------------------------------------------

class ClassificationBadge(BaseModel):
    color: BadgeColor = Field(..., description="Risk color, or 'blocked' while labs are awaited")
    phase: str        = Field(..., description="Short phase label (PreOp, PostOp, or stored value)")
    label: str        = Field(..., description="Display label '<color> <phase>'")


class PatientClassification(BaseModel):
    """
    Point-in-time status labels for one patient
    """
    patient_id: str                     = Field(..., description="Patient ID")
    lab_status: LabStatus               = Field(..., description="Awaiting or Submitted")
    profile_status: ProfileStatus       = Field(..., description="Pending or Finalized")
    badge: ClassificationBadge          = Field(..., description="Combined phase/risk badge")
    risk_classification: Optional[str]  = Field(None, description="Risk used to color the badge")


class ClassificationBatch(BaseModel):
    items: List[PatientClassification] = Field(default_factory=list, description="One entry per patient in scope")
    failed_units: List[str]            = Field(default_factory=list, description="Patient IDs that fell back to defaults")


class ComplianceEvaluation(BaseModel):
    """
    Compliance category for one patient, with the evidence behind it
    """
    patient_id: str               = Field(..., description="Patient ID")
    category: ComplianceCategory  = Field(..., description="FullCompliance, MissingLogs or NonCompliant")
    has_glucose: bool             = Field(False, description="Any blood glucose ever submitted")
    has_bp: bool                  = Field(False, description="Any blood pressure ever submitted")
    has_wound_photo: bool         = Field(False, description="Any wound photo ever submitted")
    submitted_count: int          = Field(0, description="Number of metric kinds with evidence (0-3)")
    is_high_risk: bool            = Field(False, description="Latest known risk is high")
    error: Optional[str]          = Field(None, description="Set when samples could not be fetched and the default was used")


class ComplianceSnapshot(BaseModel):
    full: int                               = Field(0, description="Patients in FullCompliance")
    missing: int                            = Field(0, description="Patients in MissingLogs")
    non_compliant: int                      = Field(0, description="Patients in NonCompliant")
    total: int                              = Field(0, description="Patients evaluated")
    evaluations: List[ComplianceEvaluation] = Field(default_factory=list, description="Per-patient results")
    failed_units: List[str]                 = Field(default_factory=list, description="Patient IDs that fell back to MissingLogs")


class TrendPoint(BaseModel):
    key: str   = Field(..., description="Month key YYYY-MM")
    label: str = Field(..., description="Display label, e.g. 'Oct 2026'")
    count: int = Field(0, description="Value for the month")


class ComplianceTrend(BaseModel):
    full: List[TrendPoint]          = Field(default_factory=list, description="FullCompliance per cohort month")
    missing: List[TrendPoint]       = Field(default_factory=list, description="MissingLogs per cohort month")
    non_compliant: List[TrendPoint] = Field(default_factory=list, description="NonCompliant per cohort month")


class TrendReport(BaseModel):
    """
    Rolling monthly trend series, oldest month first
    """
    months: int                        = Field(..., description="Number of points in every series")
    registrations: List[TrendPoint]    = Field(default_factory=list, description="Patients registered per month")
    lab_submissions: List[TrendPoint]  = Field(default_factory=list, description="Distinct patients submitting labs per month")
    compliance: ComplianceTrend        = Field(default_factory=ComplianceTrend, description="Compliance counts per registration cohort")
    failed_units: List[str]            = Field(default_factory=list, description="Months or patients replaced by defaults")


class WoundPhoto(BaseModel):
    url: str                            = Field(..., description="Photo reference")
    submission_date: Optional[datetime] = Field(None, description="When the sample was submitted")


class AppointmentHistoryBucket(BaseModel):
    start: date                = Field(..., description="First day of the week window")
    end: date                  = Field(..., description="Last day of the week window")
    label: str                 = Field(..., description="Display label, e.g. 'Oct 04 - Oct 10'")
    counts: Dict[str, int]     = Field(default_factory=dict, description="Appointments per state")
    total: int                 = Field(0, description="All appointments in the window")


class ReportOverview(BaseModel):
    """
    Distribution counts for the report widgets
    """
    total_patients: int              = Field(0, description="Patients in scope")
    risk_counts: Dict[str, int]      = Field(default_factory=dict, description="low/moderate/high/ppd/unknown")
    phase_counts: Dict[str, int]     = Field(default_factory=dict, description="PreOp/PostOp/other")
    lab_status_counts: Dict[str, int] = Field(default_factory=dict, description="Awaiting/Submitted")
    profile_status_counts: Dict[str, int] = Field(default_factory=dict, description="Pending/Finalized")
    compliance: ComplianceSnapshot   = Field(default_factory=ComplianceSnapshot, description="Current compliance snapshot")
    failed_units: List[str]          = Field(default_factory=list, description="Patient IDs that fell back to defaults")
