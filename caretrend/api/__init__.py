# API routes
from fastapi import APIRouter
from caretrend.api.patients import router as patients_router
from caretrend.api.appointments import router as appointments_router
from caretrend.api.reports import router as reports_router

# Combine all routers
router = APIRouter()
router.include_router(patients_router)
router.include_router(appointments_router)
router.include_router(reports_router)

__all__ = ["router"]
