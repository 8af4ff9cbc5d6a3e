"""
Trend service module
"""

from caretrend.services.trends.aggregator import (
    registration_cohorts,
    tally_compliance,
    empty_report,
    aggregate_trends,
)

__all__ = [
    "registration_cohorts",
    "tally_compliance",
    "empty_report",
    "aggregate_trends",
]
