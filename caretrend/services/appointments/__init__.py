"""
Appointment service module
"""

from caretrend.services.appointments.resolver import (
    ACTIVE_STATES,
    is_active,
    can_transition,
    transition,
    today_query_window,
    upcoming_query_window,
    filter_today,
    filter_upcoming,
    resolve_appointments,
    bucket_history,
    appointment_history,
)

__all__ = [
    "ACTIVE_STATES",
    "is_active",
    "can_transition",
    "transition",
    "today_query_window",
    "upcoming_query_window",
    "filter_today",
    "filter_upcoming",
    "resolve_appointments",
    "bucket_history",
    "appointment_history",
]
