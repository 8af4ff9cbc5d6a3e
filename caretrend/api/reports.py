"""
Report endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from caretrend.core import config
from caretrend.database.gateway import DataGateway
from caretrend.database.schemas import ComplianceSnapshot, ReportOverview, TrendReport
from caretrend.services.compliance.evaluator import compliance_snapshot
from caretrend.services.reports import report_overview
from caretrend.services.trends.aggregator import aggregate_trends
from caretrend.api.utils import get_doctor_ids, get_gateway

router = APIRouter()


@router.get("/reports/trends", response_model=TrendReport)
async def get_trends(
    request: Request,
    months: Optional[int] = Query(None, ge=1, le=24, description="Series length (defaults to TREND_MONTHS)"),
    gateway: DataGateway = Depends(get_gateway),
):
    """
    Monthly registration, lab submission and compliance series
    
    Every series has exactly `months` points; months or patients that could
    not be fetched are zero/MissingLogs and listed in failed_units.
    """
    doctor_ids = get_doctor_ids(request)
    return await aggregate_trends(gateway, doctor_ids, months=months or config.TREND_MONTHS)


@router.get("/reports/compliance", response_model=ComplianceSnapshot)
async def get_compliance_snapshot(request: Request, gateway: DataGateway = Depends(get_gateway)):
    """
    Current compliance counts for the requesting doctors' patients
    """
    doctor_ids = get_doctor_ids(request)
    return await compliance_snapshot(gateway, doctor_ids)


@router.get("/reports/overview", response_model=ReportOverview)
async def get_overview(request: Request, gateway: DataGateway = Depends(get_gateway)):
    """
    Risk, phase, lab status, profile status and compliance distributions
    """
    doctor_ids = get_doctor_ids(request)
    return await report_overview(gateway, doctor_ids)
