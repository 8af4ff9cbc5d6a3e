"""
Compliance service module
"""

from caretrend.services.compliance.evaluator import (
    latest_risk,
    categorize,
    evaluate_samples,
    evaluate_compliance,
    evaluate_many,
    summarize,
    compliance_snapshot,
    wound_photo_gallery,
)

__all__ = [
    "latest_risk",
    "categorize",
    "evaluate_samples",
    "evaluate_compliance",
    "evaluate_many",
    "summarize",
    "compliance_snapshot",
    "wound_photo_gallery",
]
