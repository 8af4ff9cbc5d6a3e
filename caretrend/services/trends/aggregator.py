"""
Trend aggregation service

Builds rolling monthly series (oldest month first, current month last):
- Registrations: patients registered in each month
- Lab submissions: distinct patients with a lab panel submitted in each month
- Compliance: each month's registration cohort, evaluated on their full sample history

A record belongs to the month of its calendar date in the viewer's timezone.

Units of work (one lab query per month, one sample fetch per cohort patient)
run concurrently and are merged by month after all of them finish. A failed
unit is replaced by its conservative default and listed in failed_units.
"""
import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from caretrend.core import config
from caretrend.core.exceptions import InvalidArgument, TransportFailure
from caretrend.database.gateway import DataGateway
from caretrend.database.schemas import (
    ComplianceCategory,
    ComplianceEvaluation,
    ComplianceTrend,
    DateRange,
    Patient,
    TrendPoint,
    TrendReport,
)
from caretrend.services.compliance.evaluator import evaluate_compliance
from caretrend.services.utils import (
    MonthWindow,
    gather_bounded,
    month_windows,
    viewer_date,
    viewer_today,
)

logger = logging.getLogger(__name__)


def _points(windows: Sequence[MonthWindow], counts: Sequence[int]) -> List[TrendPoint]:
    return [TrendPoint(key=w.key, label=w.label, count=c) for w, c in zip(windows, counts)]


def _month_index(windows: Sequence[MonthWindow], day: date) -> Optional[int]:
    for index, month in enumerate(windows):
        if month.window.contains(day):
            return index
    return None


def registration_cohorts(
    patients: Sequence[Patient],
    windows: Sequence[MonthWindow],
    tz_name: Optional[str] = None,
) -> List[List[Patient]]:
    """
    Split patients into one cohort per month by registration date
    (calendar date in the viewer's timezone)

    Patients registered outside the windows (or with no registration date)
    belong to no cohort.
    """
    cohorts: List[List[Patient]] = [[] for _ in windows]
    for patient in patients:
        if patient.created_at is None:
            continue
        index = _month_index(windows, viewer_date(patient.created_at, tz_name))
        if index is not None:
            cohorts[index].append(patient)
    return cohorts


def tally_compliance(
    cohorts: Sequence[Sequence[Patient]],
    evaluations: Dict[str, ComplianceEvaluation],
) -> Tuple[List[int], List[int], List[int]]:
    """
    Count categories per cohort

    Returns:
        (full, missing, non_compliant) count lists, one entry per cohort
    """
    full, missing, non_compliant = [], [], []
    for cohort in cohorts:
        counts = {category: 0 for category in ComplianceCategory}
        for patient in cohort:
            counts[evaluations[patient.patient_id].category] += 1
        full.append(counts[ComplianceCategory.FULL_COMPLIANCE])
        missing.append(counts[ComplianceCategory.MISSING_LOGS])
        non_compliant.append(counts[ComplianceCategory.NON_COMPLIANT])
    return full, missing, non_compliant


def _padded(window: DateRange) -> DateRange:
    # Store filters on UTC dates; one day each side covers any viewer offset
    return DateRange(start=window.start - timedelta(days=1), end=window.end + timedelta(days=1))


def empty_report(windows: Sequence[MonthWindow], failed_units: List[str]) -> TrendReport:
    """Correctly shaped all-zero report"""
    zeros = [0] * len(windows)
    return TrendReport(
        months=len(windows),
        registrations=_points(windows, zeros),
        lab_submissions=_points(windows, zeros),
        compliance=ComplianceTrend(
            full=_points(windows, zeros),
            missing=_points(windows, zeros),
            non_compliant=_points(windows, zeros),
        ),
        failed_units=failed_units,
    )


async def aggregate_trends(
    gateway: DataGateway,
    doctor_ids: Sequence[str],
    months: Optional[int] = None,
    today: Optional[date] = None,
    limit: Optional[int] = None,
    tz_name: Optional[str] = None,
) -> TrendReport:
    """
    Compute every trend series for the patients of the given doctors

    Args:
        gateway: Record source
        doctor_ids: Linked doctors whose patients are in scope
        months: Series length (defaults to TREND_MONTHS)
        today: Reference date; its month is the last point
        limit: Max concurrent gateway calls
        tz_name: Viewer timezone for month membership (defaults to VIEWER_TIMEZONE)

    Returns:
        TrendReport whose series all have exactly `months` points
    """
    doctor_ids = [d for d in doctor_ids if d]
    if not doctor_ids:
        raise InvalidArgument(message="At least one doctor ID is required", code="MISSING_SCOPE")
    months = config.TREND_MONTHS if months is None else months
    if months < 1:
        raise InvalidArgument(message="months must be at least 1", code="INVALID_MONTHS")

    windows = month_windows(today or viewer_today(tz_name), months)

    try:
        patients = await gateway.list_patients(doctor_ids)
    except TransportFailure as e:
        logger.warning(f"Patient list fetch failed, returning empty trends: {e.message}")
        return empty_report(windows, [f"month:{w.key}" for w in windows])

    patients = [p for p in patients if p.patient_id]
    patient_ids = [p.patient_id for p in patients]
    cohorts = registration_cohorts(patients, windows, tz_name)
    registrations = [len(cohort) for cohort in cohorts]

    async def lab_unit(month: MonthWindow):
        if not patient_ids:
            return 0, None
        try:
            panels = await gateway.lab_panels_between(patient_ids, _padded(month.window))
        except TransportFailure as e:
            logger.warning(f"Lab submission query failed for {month.key}: {e.message}")
            return 0, f"lab_submissions:{month.key}"
        submitted = {
            panel.patient_id for panel in panels
            if panel.date_submitted is not None
            and month.window.contains(viewer_date(panel.date_submitted, tz_name))
        }
        return len(submitted), None

    async def patient_unit(patient: Patient):
        # Entire history, not just samples from the cohort month
        return await evaluate_compliance(gateway, patient.patient_id)

    cohort_patients = [patient for cohort in cohorts for patient in cohort]
    units = [("lab", month) for month in windows] + [("patient", patient) for patient in cohort_patients]

    async def run_unit(unit):
        kind, payload = unit
        if kind == "lab":
            return await lab_unit(payload)
        return await patient_unit(payload)

    results = await gather_bounded(run_unit, units, limit)
    lab_results = results[:len(windows)]
    evaluations = {e.patient_id: e for e in results[len(windows):]}

    failed_units = [unit for _, unit in lab_results if unit]
    failed_units.extend(
        f"compliance:{e.patient_id}" for e in evaluations.values() if e.error
    )

    full, missing, non_compliant = tally_compliance(cohorts, evaluations)
    return TrendReport(
        months=len(windows),
        registrations=_points(windows, registrations),
        lab_submissions=_points(windows, [count for count, _ in lab_results]),
        compliance=ComplianceTrend(
            full=_points(windows, full),
            missing=_points(windows, missing),
            non_compliant=_points(windows, non_compliant),
        ),
        failed_units=failed_units,
    )
