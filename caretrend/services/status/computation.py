"""
Patient status computation service

Computes point-in-time status labels for a patient:
- Lab status from the most recent lab panel (all-or-nothing completeness)
- Profile status from demographic completeness
- Classification badge combining surgical phase and risk color
"""
import logging
from typing import List, Optional, Sequence

from caretrend.core.exceptions import InvalidArgument, TransportFailure
from caretrend.database.gateway import DataGateway
from caretrend.database.schemas import (
    BadgeColor,
    ClassificationBadge,
    ClassificationBatch,
    LabPanel,
    LabStatus,
    Patient,
    PatientClassification,
    ProfileStatus,
)
from caretrend.services.utils import gather_bounded, is_blank, normalize_risk

logger = logging.getLogger(__name__)

# Every one of these must be filled in for a panel to count as submitted
REQUIRED_LAB_FIELDS = (
    "hba1c",
    "ucr",
    "got_ast",
    "gpt_alt",
    "cholesterol",
    "triglycerides",
    "hdl_cholesterol",
    "ldl_cholesterol",
    "urea",
    "bun",
    "uric",
    "egfr",
)

# Demographics required for a finalized profile (middle name is optional)
PROFILE_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "date_of_birth",
    "contact_info",
    "emergency_contact_number",
    "address",
    "gender",
    "allergies",
    "diabetes_type",
    "smoking_status",
)

PHASE_LABELS = {
    "preoperative": "PreOp",
    "pre-operative": "PreOp",
    "postoperative": "PostOp",
    "post-operative": "PostOp",
}

RISK_COLORS = {
    "low": BadgeColor.GREEN,
    "moderate": BadgeColor.YELLOW,
    "high": BadgeColor.RED,
    "ppd": BadgeColor.WHITE,
}


def determine_lab_status(panel: Optional[LabPanel]) -> LabStatus:
    """
    Determine lab status from the most recent lab panel

    Args:
        panel: Latest panel for the patient, or None if the patient has none

    Returns:
        SUBMITTED only if every required field is present and non-empty, else AWAITING
    """
    if panel is None:
        return LabStatus.AWAITING
    for field in REQUIRED_LAB_FIELDS:
        if is_blank(getattr(panel, field)):
            return LabStatus.AWAITING
    return LabStatus.SUBMITTED


def determine_profile_status(patient: Patient) -> ProfileStatus:
    """
    Determine profile status from demographic completeness

    No partial credit: one blank field keeps the profile PENDING.
    """
    for field in PROFILE_FIELDS:
        if is_blank(getattr(patient, field)):
            return ProfileStatus.PENDING
    return ProfileStatus.FINALIZED


def phase_label(phase: Optional[str]) -> str:
    """Short phase label; unknown values are passed through unchanged"""
    if phase is None:
        return ""
    return PHASE_LABELS.get(phase.strip().lower(), phase)


def classification_badge(
    patient: Patient,
    lab_status: LabStatus,
    risk_classification: Optional[str],
) -> ClassificationBadge:
    """
    Build the phase/risk badge for a patient

    Args:
        patient: Patient record (phase is read from it)
        lab_status: Lab status; AWAITING blocks any risk coloring
        risk_classification: Latest known risk label (case-insensitive)

    Returns:
        ClassificationBadge with color, short phase and display label
    """
    phase = phase_label(patient.phase)
    if lab_status == LabStatus.AWAITING:
        color = BadgeColor.BLOCKED
    else:
        color = RISK_COLORS.get(normalize_risk(risk_classification), BadgeColor.BLACK)
    label = f"{color.value} {phase}".strip()
    return ClassificationBadge(color=color, phase=phase, label=label)


def build_classification(
    patient: Patient,
    panel: Optional[LabPanel],
    risk_classification: Optional[str] = None,
) -> PatientClassification:
    """
    Pure classification over already-fetched records

    risk_classification defaults to the risk stored on the patient row.
    """
    if risk_classification is None:
        risk_classification = patient.risk_classification
    lab_status = determine_lab_status(panel)
    return PatientClassification(
        patient_id=patient.patient_id,
        lab_status=lab_status,
        profile_status=determine_profile_status(patient),
        badge=classification_badge(patient, lab_status, risk_classification),
        risk_classification=risk_classification,
    )


def _require_patient_id(patient: Optional[Patient]) -> str:
    if patient is None or is_blank(patient.patient_id):
        raise InvalidArgument(message="Patient reference is required", code="MISSING_PATIENT_ID")
    return patient.patient_id


async def classify_patient(
    gateway: DataGateway,
    patient: Patient,
    risk_classification: Optional[str] = None,
) -> PatientClassification:
    """
    Classify one patient

    Fetches the latest lab panel; an explicit "no panel" answer yields AWAITING,
    while a failed fetch is re-raised as TransportFailure.
    """
    patient_id = _require_patient_id(patient)
    panel = await gateway.latest_lab_panel(patient_id)
    return build_classification(patient, panel, risk_classification)


async def classify_patients(
    gateway: DataGateway,
    patients: Sequence[Patient],
    limit: Optional[int] = None,
) -> ClassificationBatch:
    """
    Classify many patients concurrently

    A transport failure for one patient degrades only that patient to the
    conservative AWAITING lab status and lists it in failed_units.
    """
    for patient in patients:
        _require_patient_id(patient)

    async def classify_one(patient: Patient):
        try:
            return await classify_patient(gateway, patient), None
        except TransportFailure as e:
            logger.warning(f"Lab panel fetch failed for patient {patient.patient_id}: {e.message}")
            return build_classification(patient, None), patient.patient_id

    results = await gather_bounded(classify_one, list(patients), limit)
    failed: List[str] = [patient_id for _, patient_id in results if patient_id]
    return ClassificationBatch(items=[item for item, _ in results], failed_units=failed)
