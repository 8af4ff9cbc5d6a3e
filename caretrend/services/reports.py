"""
Report overview service

Distribution counts behind the report widgets: risk levels, surgical phases,
lab/profile status and the current compliance snapshot, all for the patients
of a set of doctors.
"""
import asyncio
import logging
from typing import Optional, Sequence

from caretrend.core.exceptions import InvalidArgument, TransportFailure
from caretrend.database.gateway import DataGateway
from caretrend.database.schemas import ComplianceSnapshot, LabStatus, ProfileStatus, ReportOverview
from caretrend.services.compliance.evaluator import PATIENT_LIST_UNIT, evaluate_many, summarize
from caretrend.services.status.computation import classify_patients, phase_label
from caretrend.services.utils import RISK_LEVELS, normalize_risk

logger = logging.getLogger(__name__)


def _empty_counts():
    risk_counts = {level: 0 for level in RISK_LEVELS + ("unknown",)}
    phase_counts = {"PreOp": 0, "PostOp": 0}
    lab_status_counts = {status.value: 0 for status in LabStatus}
    profile_status_counts = {status.value: 0 for status in ProfileStatus}
    return risk_counts, phase_counts, lab_status_counts, profile_status_counts


async def report_overview(
    gateway: DataGateway,
    doctor_ids: Sequence[str],
    limit: Optional[int] = None,
) -> ReportOverview:
    """
    Build the overview for every patient of the given doctors

    Risk counts use the risk stored on each patient row. If the patient list
    itself cannot be fetched the overview is all zeros and failed_units
    holds "patients".
    """
    doctor_ids = [d for d in doctor_ids if d]
    if not doctor_ids:
        raise InvalidArgument(message="At least one doctor ID is required", code="MISSING_SCOPE")

    risk_counts, phase_counts, lab_status_counts, profile_status_counts = _empty_counts()

    try:
        patients = await gateway.list_patients(doctor_ids)
    except TransportFailure as e:
        logger.warning(f"Patient list fetch failed, returning empty overview: {e.message}")
        return ReportOverview(
            risk_counts=risk_counts,
            phase_counts=phase_counts,
            lab_status_counts=lab_status_counts,
            profile_status_counts=profile_status_counts,
            compliance=ComplianceSnapshot(failed_units=[PATIENT_LIST_UNIT]),
            failed_units=[PATIENT_LIST_UNIT],
        )
    patients = [p for p in patients if p.patient_id]

    classifications, evaluations = await asyncio.gather(
        classify_patients(gateway, patients, limit),
        evaluate_many(gateway, [p.patient_id for p in patients], limit),
    )

    for patient in patients:
        risk_counts[normalize_risk(patient.risk_classification)] += 1
        phase = phase_label(patient.phase) or "Unassigned"
        phase_counts[phase] = phase_counts.get(phase, 0) + 1

    for item in classifications.items:
        lab_status_counts[item.lab_status.value] += 1
        profile_status_counts[item.profile_status.value] += 1

    compliance = summarize(evaluations)
    failed_units = list(dict.fromkeys(classifications.failed_units + compliance.failed_units))

    return ReportOverview(
        total_patients=len(patients),
        risk_counts=risk_counts,
        phase_counts=phase_counts,
        lab_status_counts=lab_status_counts,
        profile_status_counts=profile_status_counts,
        compliance=compliance,
        failed_units=failed_units,
    )
