"""
Report overview tests - distributions and degraded scopes
"""
import asyncio

import pytest

from caretrend.core.exceptions import InvalidArgument
from caretrend.services.reports import report_overview


def test_overview_counts(seed, gateway, make_patient, make_panel):
    seed(
        patients=[
            make_patient("p1", risk_classification="moderate"),
            make_patient("p2", risk_classification="ppd", phase=None),
            make_patient("p3", risk_classification="low risk", phase="Post-Operative"),
        ],
        lab_panels=[make_panel("p1"), make_panel("p3")],
        health_samples=[{"patient_id": "p2", "risk_classification": "high"}],
    )
    overview = asyncio.run(report_overview(gateway, ["doc-1"]))

    assert overview.total_patients == 3
    assert overview.risk_counts == {"low": 1, "moderate": 1, "high": 0, "ppd": 1, "unknown": 0}
    assert overview.phase_counts == {"PreOp": 1, "PostOp": 1, "Unassigned": 1}
    assert overview.lab_status_counts == {"Awaiting": 1, "Submitted": 2}
    assert overview.compliance.non_compliant == 1
    assert overview.failed_units == []


def test_overview_lists_degraded_patients_once(seed, flaky_gateway, make_patient):
    """Lab and sample fetch both fail for p1; it is reported a single time"""
    seed(patients=[make_patient("p1"), make_patient("p2")])
    overview = asyncio.run(report_overview(flaky_gateway(failing_patients=["p1"]), ["doc-1"]))
    assert overview.total_patients == 2
    assert overview.failed_units == ["p1"]


def test_overview_with_unavailable_patient_list(flaky_gateway):
    overview = asyncio.run(report_overview(flaky_gateway(fail_patient_list=True), ["doc-1"]))
    assert overview.total_patients == 0
    assert overview.risk_counts == {"low": 0, "moderate": 0, "high": 0, "ppd": 0, "unknown": 0}
    assert overview.lab_status_counts == {"Awaiting": 0, "Submitted": 0}
    assert overview.compliance.total == 0
    assert overview.failed_units == ["patients"]


def test_overview_requires_doctor(gateway):
    with pytest.raises(InvalidArgument):
        asyncio.run(report_overview(gateway, [""]))
