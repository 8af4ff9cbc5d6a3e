"""
Status service module
"""

from caretrend.services.status.computation import (
    REQUIRED_LAB_FIELDS,
    PROFILE_FIELDS,
    determine_lab_status,
    determine_profile_status,
    phase_label,
    classification_badge,
    build_classification,
    classify_patient,
    classify_patients,
)

__all__ = [
    "REQUIRED_LAB_FIELDS",
    "PROFILE_FIELDS",
    "determine_lab_status",
    "determine_profile_status",
    "phase_label",
    "classification_badge",
    "build_classification",
    "classify_patient",
    "classify_patients",
]
