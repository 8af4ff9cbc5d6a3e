"""
Compliance evaluation service

Categorizes a patient from their entire health-sample history:
- FullCompliance: glucose, blood pressure and wound photo have each been submitted at least once
- MissingLogs: at least one metric kind never submitted, unless the patient is
  high risk with no evidence at all
- NonCompliant: high risk and nothing ever submitted

evaluate_samples holds the policy; the live view and the historical trends
both call it so they can never disagree.
"""
import logging
from typing import Iterable, List, Optional, Sequence

from caretrend.core.exceptions import InvalidArgument, TransportFailure
from caretrend.database.gateway import DataGateway
from caretrend.database.schemas import (
    ComplianceCategory,
    ComplianceEvaluation,
    ComplianceSnapshot,
    HealthSample,
    WoundPhoto,
)
from caretrend.services.utils import gather_bounded, is_blank, timestamp_sort_key

logger = logging.getLogger(__name__)

# failed_units entry when the patient list itself could not be fetched
PATIENT_LIST_UNIT = "patients"


def _newest_first(samples: Iterable[HealthSample]) -> List[HealthSample]:
    return sorted(samples, key=lambda s: timestamp_sort_key(s.submission_date), reverse=True)


def latest_risk(samples: Iterable[HealthSample]) -> Optional[str]:
    """
    Risk classification from the most recent sample that has one

    Returns None if no sample ever recorded a risk.
    """
    for sample in _newest_first(samples):
        if sample.risk_classification is not None:
            return sample.risk_classification
    return None


def categorize(submitted_count: int, is_high_risk: bool) -> ComplianceCategory:
    """
    Map evidence to a category

    Absence of data only escalates to NON_COMPLIANT when risk is known to be high.
    """
    if submitted_count >= 3:
        return ComplianceCategory.FULL_COMPLIANCE
    if submitted_count > 0 or not is_high_risk:
        return ComplianceCategory.MISSING_LOGS
    return ComplianceCategory.NON_COMPLIANT


def evaluate_samples(patient_id: str, samples: Sequence[HealthSample]) -> ComplianceEvaluation:
    """
    Evaluate compliance over a patient's complete sample history

    Args:
        patient_id: Patient the samples belong to
        samples: Every sample for the patient, any order

    Returns:
        ComplianceEvaluation with the category and the per-metric flags
    """
    has_glucose = False
    has_bp = False
    has_wound_photo = False

    # One pass; a metric submitted once, however long ago, counts
    for sample in samples:
        if not is_blank(sample.blood_glucose):
            has_glucose = True
        if sample.bp_systolic is not None or sample.bp_diastolic is not None:
            has_bp = True
        if sample.wound_photo_url is not None:
            has_wound_photo = True

    submitted_count = sum([has_glucose, has_bp, has_wound_photo])
    risk = latest_risk(samples)
    is_high_risk = risk is not None and risk.strip().lower() == "high"

    return ComplianceEvaluation(
        patient_id=patient_id,
        category=categorize(submitted_count, is_high_risk),
        has_glucose=has_glucose,
        has_bp=has_bp,
        has_wound_photo=has_wound_photo,
        submitted_count=submitted_count,
        is_high_risk=is_high_risk,
    )


def fallback_evaluation(patient_id: str, error: str) -> ComplianceEvaluation:
    """Conservative, non-escalating result used when samples cannot be fetched"""
    return ComplianceEvaluation(
        patient_id=patient_id,
        category=ComplianceCategory.MISSING_LOGS,
        error=error,
    )


async def evaluate_compliance(gateway: DataGateway, patient_id: str) -> ComplianceEvaluation:
    """
    Fetch a patient's samples once and evaluate them

    A transport failure does not raise: the patient falls back to MISSING_LOGS
    and the returned evaluation carries the error message.
    """
    if is_blank(patient_id):
        raise InvalidArgument(message="Patient reference is required", code="MISSING_PATIENT_ID")
    try:
        samples = await gateway.all_health_samples(patient_id)
    except TransportFailure as e:
        logger.warning(f"Health sample fetch failed for patient {patient_id}: {e.message}")
        return fallback_evaluation(patient_id, e.message)
    return evaluate_samples(patient_id, samples)


async def evaluate_many(
    gateway: DataGateway,
    patient_ids: Sequence[str],
    limit: Optional[int] = None,
) -> List[ComplianceEvaluation]:
    """Evaluate many patients concurrently, results in input order"""
    return await gather_bounded(lambda pid: evaluate_compliance(gateway, pid), list(patient_ids), limit)


def summarize(evaluations: Sequence[ComplianceEvaluation]) -> ComplianceSnapshot:
    """
    Tally evaluations into a snapshot

    full + missing + non_compliant always equals total.
    """
    snapshot = ComplianceSnapshot(total=len(evaluations), evaluations=list(evaluations))
    for evaluation in evaluations:
        if evaluation.category == ComplianceCategory.FULL_COMPLIANCE:
            snapshot.full += 1
        elif evaluation.category == ComplianceCategory.NON_COMPLIANT:
            snapshot.non_compliant += 1
        else:
            snapshot.missing += 1
        if evaluation.error:
            snapshot.failed_units.append(evaluation.patient_id)
    return snapshot


async def compliance_snapshot(
    gateway: DataGateway,
    doctor_ids: Sequence[str],
    limit: Optional[int] = None,
) -> ComplianceSnapshot:
    """
    Current compliance counts for every patient of the given doctors

    If the patient list cannot be fetched the snapshot is empty and
    failed_units holds "patients".
    """
    try:
        patients = await gateway.list_patients(list(doctor_ids))
    except TransportFailure as e:
        logger.warning(f"Patient list fetch failed, returning empty snapshot: {e.message}")
        return ComplianceSnapshot(failed_units=[PATIENT_LIST_UNIT])
    evaluations = await evaluate_many(gateway, [p.patient_id for p in patients], limit)
    return summarize(evaluations)


def wound_photo_gallery(samples: Sequence[HealthSample]) -> List[WoundPhoto]:
    """Samples that carry a wound photo, newest first"""
    return [
        WoundPhoto(url=sample.wound_photo_url, submission_date=sample.submission_date)
        for sample in _newest_first(samples)
        if not is_blank(sample.wound_photo_url)
    ]
