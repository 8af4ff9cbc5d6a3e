"""
Appointment view endpoints
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from caretrend.database.gateway import DataGateway
from caretrend.database.schemas import (
    Appointment,
    AppointmentHistoryBucket,
    AppointmentState,
    AppointmentView,
)
from caretrend.services.appointments.resolver import (
    appointment_history,
    resolve_appointments,
    transition,
)
from caretrend.api.utils import get_appointment_scope, get_gateway

router = APIRouter()


class TransitionCheck(BaseModel):
    current: AppointmentState = Field(..., description="State the appointment is in now")
    target: AppointmentState  = Field(..., description="Requested next state")


class TransitionResult(BaseModel):
    allowed: bool            = Field(..., description="Whether the move is permitted")
    state: AppointmentState  = Field(..., description="Resulting state")


@router.get("/appointments/today", response_model=List[Appointment])
async def get_today_appointments(
    request: Request,
    on: Optional[date] = Query(None, description="Override the viewer's current date"),
    gateway: DataGateway = Depends(get_gateway),
):
    """
    Active appointments dated today (Pending and InQueue only)
    """
    scope = get_appointment_scope(request)
    return await resolve_appointments(gateway, scope, AppointmentView.TODAY, today=on)


@router.get("/appointments/upcoming", response_model=List[Appointment])
async def get_upcoming_appointments(
    request: Request,
    on: Optional[date] = Query(None, description="Override the viewer's current date"),
    gateway: DataGateway = Depends(get_gateway),
):
    """
    Active appointments from today through the upcoming window
    """
    scope = get_appointment_scope(request)
    return await resolve_appointments(gateway, scope, AppointmentView.UPCOMING, today=on)


@router.get("/appointments/history", response_model=List[AppointmentHistoryBucket])
async def get_appointment_history(
    request: Request,
    weeks: int = Query(2, ge=1, le=52, description="Number of weekly buckets"),
    on: Optional[date] = Query(None, description="Override the viewer's current date"),
    gateway: DataGateway = Depends(get_gateway),
):
    """
    Weekly appointment counts per state, oldest week first
    """
    scope = get_appointment_scope(request)
    return await appointment_history(gateway, scope, weeks=weeks, today=on)


@router.post("/appointments/transitions/check", response_model=TransitionResult)
async def check_transition(payload: TransitionCheck):
    """
    Validate a state change before it is written elsewhere
    
    Illegal moves (anything out of Finished or Cancelled, or skipping InQueue)
    are rejected with 400.
    """
    state = transition(payload.current, payload.target)
    return TransitionResult(allowed=True, state=state)
