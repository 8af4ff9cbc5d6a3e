"""
Trend aggregation tests - monthly series, cohort compliance, partial failures
"""
import asyncio
from datetime import date

import pytest

from caretrend.core.exceptions import InvalidArgument
from caretrend.services.trends.aggregator import aggregate_trends
from caretrend.services.utils import month_windows

KEYS = ["2026-05", "2026-06", "2026-07", "2026-08", "2026-09", "2026-10"]


def counts(points):
    return [point.count for point in points]


@pytest.fixture
def clinic(seed, make_patient, make_panel):
    """Three patients registered in the window, one before it, one under another doctor"""
    seed(
        patients=[
            make_patient("p1", created_at="2026-05-03T08:00:00"),
            make_patient("p2", created_at="2026-05-20T08:00:00"),
            make_patient("p3", created_at="2026-10-01T08:00:00"),
            make_patient("p4", created_at="2025-01-01T08:00:00"),
            make_patient("p9", doctor_id="doc-2", created_at="2026-07-01T08:00:00"),
        ],
        lab_panels=[
            make_panel("p1", date_submitted="2026-06-02"),
            make_panel("p1", date_submitted="2026-06-20"),
            make_panel("p2", date_submitted="2026-06-05"),
            make_panel("p4", date_submitted="2026-08-01"),
            make_panel("p3", date_submitted="2026-10-02"),
            make_panel("p9", date_submitted="2026-07-01"),
        ],
        health_samples=[
            {"patient_id": "p1", "submission_date": "2026-05-04T08:00:00", "blood_glucose": 120},
            {"patient_id": "p1", "submission_date": "2026-08-10T08:00:00", "bp_systolic": 130},
            {"patient_id": "p1", "submission_date": "2026-10-12T08:00:00", "wound_photo_url": "w/p1.jpg"},
            {"patient_id": "p2", "submission_date": "2026-05-21T08:00:00", "risk_classification": "high"},
        ],
    )


def test_empty_store_gives_zero_series(gateway, today):
    report = asyncio.run(aggregate_trends(gateway, ["doc-1"], months=6, today=today))
    assert report.months == 6
    assert [p.key for p in report.registrations] == KEYS
    for series in (
        report.registrations,
        report.lab_submissions,
        report.compliance.full,
        report.compliance.missing,
        report.compliance.non_compliant,
    ):
        assert counts(series) == [0] * 6
    assert report.failed_units == []


def test_labels_follow_month_keys(gateway, today):
    report = asyncio.run(aggregate_trends(gateway, ["doc-1"], months=6, today=today))
    assert report.registrations[0].label == "May 2026"
    assert report.registrations[-1].label == "Oct 2026"


def test_registrations_per_month(clinic, gateway, today):
    report = asyncio.run(aggregate_trends(gateway, ["doc-1"], months=6, today=today))
    assert counts(report.registrations) == [2, 0, 0, 0, 0, 1]


def test_lab_submissions_count_distinct_patients(clinic, gateway, today):
    """Two panels from p1 in June count once; doc-2's patient is out of scope"""
    report = asyncio.run(aggregate_trends(gateway, ["doc-1"], months=6, today=today))
    assert counts(report.lab_submissions) == [0, 2, 0, 1, 0, 1]


def test_cohort_compliance_uses_entire_history(clinic, gateway, today):
    report = asyncio.run(aggregate_trends(gateway, ["doc-1"], months=6, today=today))
    assert counts(report.compliance.full) == [1, 0, 0, 0, 0, 0]
    assert counts(report.compliance.non_compliant) == [1, 0, 0, 0, 0, 0]
    assert counts(report.compliance.missing) == [0, 0, 0, 0, 0, 1]


def test_cohort_totals_match_registrations(clinic, gateway, today):
    report = asyncio.run(aggregate_trends(gateway, ["doc-1"], months=6, today=today))
    totals = [
        f + m + n for f, m, n in zip(
            counts(report.compliance.full),
            counts(report.compliance.missing),
            counts(report.compliance.non_compliant),
        )
    ]
    assert totals == counts(report.registrations)


def test_multiple_doctors_widen_scope(clinic, gateway, today):
    report = asyncio.run(aggregate_trends(gateway, ["doc-1", "doc-2"], months=6, today=today))
    assert counts(report.registrations) == [2, 0, 1, 0, 0, 1]
    assert counts(report.lab_submissions) == [0, 2, 1, 1, 0, 1]


def test_failed_lab_month_is_zeroed_and_reported(clinic, flaky_gateway, today):
    gw = flaky_gateway(failing_lab_months=["2026-06"])
    report = asyncio.run(aggregate_trends(gw, ["doc-1"], months=6, today=today))
    assert counts(report.lab_submissions) == [0, 0, 0, 1, 0, 1]
    assert report.failed_units == ["lab_submissions:2026-06"]
    assert counts(report.registrations) == [2, 0, 0, 0, 0, 1]


def test_failed_patient_falls_back_to_missing_logs(clinic, flaky_gateway, today):
    gw = flaky_gateway(failing_patients=["p2"])
    report = asyncio.run(aggregate_trends(gw, ["doc-1"], months=6, today=today))
    assert counts(report.compliance.non_compliant) == [0] * 6
    assert counts(report.compliance.missing) == [1, 0, 0, 0, 0, 1]
    assert "compliance:p2" in report.failed_units


def test_failed_patient_list_returns_shaped_zeros(clinic, flaky_gateway, today):
    gw = flaky_gateway(fail_patient_list=True)
    report = asyncio.run(aggregate_trends(gw, ["doc-1"], months=6, today=today))
    assert counts(report.registrations) == [0] * 6
    assert len(report.compliance.full) == 6
    assert report.failed_units == [f"month:{key}" for key in KEYS]


def test_year_boundary():
    windows = month_windows(date(2026, 2, 10), 6)
    assert [w.key for w in windows] == ["2025-09", "2025-10", "2025-11", "2025-12", "2026-01", "2026-02"]
    assert windows[0].label == "Sep 2025"
    assert windows[3].window.end == date(2026, 1, 1)


def test_single_month_series(clinic, gateway, today):
    report = asyncio.run(aggregate_trends(gateway, ["doc-1"], months=1, today=today))
    assert [p.key for p in report.registrations] == ["2026-10"]
    assert counts(report.registrations) == [1]


@pytest.mark.parametrize("doctor_ids,months", [([], 6), ([""], 6), (["doc-1"], 0)])
def test_invalid_arguments(gateway, today, doctor_ids, months):
    with pytest.raises(InvalidArgument):
        asyncio.run(aggregate_trends(gateway, doctor_ids, months=months, today=today))


def test_concurrency_limit_does_not_change_result(clinic, gateway, today):
    serial = asyncio.run(aggregate_trends(gateway, ["doc-1"], months=6, today=today, limit=1))
    parallel = asyncio.run(aggregate_trends(gateway, ["doc-1"], months=6, today=today, limit=16))
    assert serial == parallel


def test_malformed_store_row_does_not_abort_aggregation(rest_store, today):
    """A sample row that fails validation is dropped; the rest of the patient still counts"""
    gw = rest_store({
        "patients": [
            {"patient_id": "p1", "preferred_doctor_id": "d1", "created_at": "2026-10-01T08:00:00"},
            {"patient_id": "p2", "preferred_doctor_id": "d1", "created_at": "2026-10-05T08:00:00"},
        ],
        "health_metrics": [
            {"patient_id": "p2", "submission_date": "17/10/2026", "blood_glucose": 99},
            {"patient_id": "p2", "submission_date": "2026-10-10T08:00:00", "risk_classification": "high"},
        ],
    })
    report = asyncio.run(aggregate_trends(gw, ["d1"], months=6, today=today))
    assert counts(report.registrations)[-1] == 2
    assert counts(report.compliance.non_compliant)[-1] == 1
    assert counts(report.compliance.missing)[-1] == 1
    assert report.failed_units == []


def test_cancelled_aggregation_cancels_pending_units(seed, slow_gateway, make_patient, today):
    seed(patients=[make_patient("p1"), make_patient("p2")])

    async def run():
        task = asyncio.create_task(aggregate_trends(slow_gateway, ["doc-1"], months=6, today=today))
        while len(slow_gateway.started) < 2:
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(asyncio.wait_for(run(), timeout=5))
    assert sorted(slow_gateway.cancelled) == ["p1", "p2"]


def test_months_follow_viewer_timezone(seed, gateway, make_patient, make_panel, today):
    """Records near midnight UTC land in the viewer's local month"""
    seed(
        patients=[make_patient("p1", created_at="2026-05-31T20:00:00Z")],
        lab_panels=[make_panel("p1", date_submitted="2026-06-30T17:00:00Z")],
    )
    utc = asyncio.run(aggregate_trends(gateway, ["doc-1"], months=6, today=today, tz_name="UTC"))
    assert counts(utc.registrations) == [1, 0, 0, 0, 0, 0]
    assert counts(utc.lab_submissions) == [0, 1, 0, 0, 0, 0]

    manila = asyncio.run(aggregate_trends(gateway, ["doc-1"], months=6, today=today, tz_name="Asia/Manila"))
    assert counts(manila.registrations) == [0, 1, 0, 0, 0, 0]
    assert counts(manila.lab_submissions) == [0, 0, 1, 0, 0, 0]
