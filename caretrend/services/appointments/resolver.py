"""
Appointment window resolution

- "today" and "upcoming" views over active (Pending / InQueue) appointments
- Appointment state machine checks
- Weekly appointment history for reports

Stored appointment timestamps are matched on their literal date text. The
"today" query is widened by a buffer on each side to tolerate storage skew,
then narrowed locally by exact string equality.
"""
import logging
from datetime import date, timedelta
from typing import Dict, FrozenSet, List, Optional, Sequence, Union

from caretrend.core import config
from caretrend.core.exceptions import InvalidArgument
from caretrend.database.gateway import DataGateway
from caretrend.database.schemas import (
    Appointment,
    AppointmentHistoryBucket,
    AppointmentScope,
    AppointmentState,
    AppointmentView,
    DateRange,
)
from caretrend.services.utils import viewer_today, week_windows

logger = logging.getLogger(__name__)

ACTIVE_STATES: FrozenSet[AppointmentState] = frozenset({
    AppointmentState.PENDING,
    AppointmentState.IN_QUEUE,
})

# Finished and Cancelled are terminal
ALLOWED_TRANSITIONS: Dict[AppointmentState, FrozenSet[AppointmentState]] = {
    AppointmentState.PENDING: frozenset({AppointmentState.IN_QUEUE, AppointmentState.CANCELLED}),
    AppointmentState.IN_QUEUE: frozenset({AppointmentState.FINISHED, AppointmentState.CANCELLED}),
    AppointmentState.CANCELLED: frozenset(),
    AppointmentState.FINISHED: frozenset(),
}


def is_active(appointment: Appointment) -> bool:
    return appointment.appointment_state in ACTIVE_STATES


def can_transition(current: AppointmentState, target: AppointmentState) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def transition(current: AppointmentState, target: AppointmentState) -> AppointmentState:
    """
    Validate a requested state change

    Returns:
        The target state if the move is allowed

    Raises:
        InvalidArgument for any move out of a terminal state or a skipped step
    """
    if not can_transition(current, target):
        raise InvalidArgument(
            message=f"Cannot move appointment from {current.value} to {target.value}",
            code="INVALID_TRANSITION",
            detail={"from": current.value, "to": target.value},
        )
    return target


def today_query_window(today: date, buffer_days: Optional[int] = None) -> DateRange:
    """Store query window for the "today" view: today widened by buffer_days on each side"""
    buffer = config.TODAY_WINDOW_BUFFER_DAYS if buffer_days is None else buffer_days
    return DateRange(start=today - timedelta(days=buffer), end=today + timedelta(days=1 + buffer))


def upcoming_query_window(today: date, days: Optional[int] = None) -> DateRange:
    """Store query window for the "upcoming" view"""
    span = config.UPCOMING_WINDOW_DAYS if days is None else days
    return DateRange(start=today, end=today + timedelta(days=span))


def filter_today(appointments: Sequence[Appointment], today: date) -> List[Appointment]:
    """Active appointments whose stored date text equals today's date"""
    today_text = today.isoformat()
    matches = [a for a in appointments if is_active(a) and a.date_part == today_text]
    return sorted(matches, key=lambda a: a.appointment_datetime)


def filter_upcoming(appointments: Sequence[Appointment], today: date) -> List[Appointment]:
    """Active appointments dated today or later"""
    today_text = today.isoformat()
    matches = [a for a in appointments if is_active(a) and a.date_part >= today_text]
    return sorted(matches, key=lambda a: a.appointment_datetime)


def _require_scope(scope: AppointmentScope):
    if scope is None or scope.is_empty:
        raise InvalidArgument(
            message="A secretary ID or at least one doctor ID is required",
            code="MISSING_SCOPE",
        )


def _parse_view(view: Union[AppointmentView, str]) -> AppointmentView:
    try:
        return AppointmentView(view)
    except ValueError:
        raise InvalidArgument(message=f"Unknown appointment view: {view}", code="INVALID_VIEW")


async def resolve_appointments(
    gateway: DataGateway,
    scope: AppointmentScope,
    view: Union[AppointmentView, str],
    today: Optional[date] = None,
) -> List[Appointment]:
    """
    Active appointments for the requested view

    Args:
        gateway: Record source
        scope: Secretary or doctors whose appointments to show
        view: 'today' or 'upcoming'
        today: Viewer's calendar date (defaults to now in VIEWER_TIMEZONE)

    Returns:
        Pending / InQueue appointments, earliest first. Always derived from the
        states returned by this query, never from an earlier result.
    """
    _require_scope(scope)
    view = _parse_view(view)
    today = today or viewer_today()

    if view == AppointmentView.TODAY:
        appointments = await gateway.all_appointments(scope, today_query_window(today))
        return filter_today(appointments, today)

    appointments = await gateway.all_appointments(scope, upcoming_query_window(today))
    return filter_upcoming(appointments, today)


def bucket_history(appointments: Sequence[Appointment], windows: Sequence[DateRange]) -> List[AppointmentHistoryBucket]:
    """
    Count appointments per state inside each window
    """
    buckets = []
    for window in windows:
        last_day = window.end - timedelta(days=1)
        buckets.append(AppointmentHistoryBucket(
            start=window.start,
            end=last_day,
            label=f"{window.start.strftime('%b %d')} - {last_day.strftime('%b %d')}",
            counts={state.value: 0 for state in AppointmentState},
        ))

    for appointment in appointments:
        try:
            day = date.fromisoformat(appointment.date_part)
        except ValueError:
            logger.warning(f"Skipping appointment {appointment.appointment_id} with unreadable date {appointment.appointment_datetime!r}")
            continue
        for window, bucket in zip(windows, buckets):
            if window.contains(day):
                bucket.counts[appointment.appointment_state.value] += 1
                bucket.total += 1
                break
    return buckets


async def appointment_history(
    gateway: DataGateway,
    scope: AppointmentScope,
    weeks: int = 2,
    today: Optional[date] = None,
) -> List[AppointmentHistoryBucket]:
    """
    Weekly appointment counts per state, oldest week first, last week ending today
    """
    _require_scope(scope)
    if weeks < 1:
        raise InvalidArgument(message="weeks must be at least 1", code="INVALID_WEEKS")
    today = today or viewer_today()
    windows = week_windows(today, weeks)
    appointments = await gateway.all_appointments(
        scope, DateRange(start=windows[0].start, end=windows[-1].end)
    )
    return bucket_history(appointments, windows)
