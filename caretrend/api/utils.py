"""
Utility functions for API endpoints
"""
from typing import List, Optional

from fastapi import HTTPException, Request

from caretrend.core import config
from caretrend.database.gateway import DataGateway
from caretrend.database.rest import RestGateway
from caretrend.database.schemas import AppointmentScope
from caretrend.database.storage import JsonFileGateway


def get_gateway() -> DataGateway:
    """
    Build the configured data gateway
    
    Used as a FastAPI dependency so tests can override it.
    """
    if config.GATEWAY_BACKEND == "rest":
        if not config.REST_BASE_URL:
            raise HTTPException(status_code=500, detail="REST_BASE_URL is not configured")
        return RestGateway(
            base_url=config.REST_BASE_URL,
            api_key=config.REST_API_KEY,
            timeout=config.REST_TIMEOUT_SECONDS,
        )
    return JsonFileGateway(config.DATA_DIR)


def get_doctor_ids(request: Request) -> List[str]:
    """
    Extract linked doctor IDs from the X-Doctor-IDs header (comma-separated)
    
    Raises HTTPException with 400 status if the header is missing or empty
    """
    raw = request.headers.get('X-Doctor-IDs', '')
    doctor_ids = [d.strip() for d in raw.split(",") if d.strip()]
    if not doctor_ids:
        raise HTTPException(
            status_code=400,
            detail="Missing X-Doctor-IDs header. Provide one or more comma-separated doctor IDs."
        )
    return doctor_ids


def get_secretary_id(request: Request) -> Optional[str]:
    secretary_id = request.headers.get('X-Secretary-ID', '').strip()
    return secretary_id or None


def get_appointment_scope(request: Request) -> AppointmentScope:
    """
    Appointment scope from headers: secretary first, then doctors
    """
    secretary_id = get_secretary_id(request)
    if secretary_id:
        return AppointmentScope(secretary_id=secretary_id)
    raw = request.headers.get('X-Doctor-IDs', '')
    doctor_ids = [d.strip() for d in raw.split(",") if d.strip()]
    if not doctor_ids:
        raise HTTPException(
            status_code=400,
            detail="Missing scope header. Send X-Secretary-ID or X-Doctor-IDs."
        )
    return AppointmentScope(doctor_ids=doctor_ids)
