"""
Patient status endpoints
"""
from typing import List

from fastapi import APIRouter, Depends, Request

from caretrend.core.exceptions import DataUnavailable
from caretrend.database.gateway import DataGateway
from caretrend.database.schemas import (
    ClassificationBatch,
    ComplianceEvaluation,
    Patient,
    PatientClassification,
    WoundPhoto,
)
from caretrend.services.compliance.evaluator import evaluate_compliance, wound_photo_gallery
from caretrend.services.status.computation import classify_patient, classify_patients
from caretrend.api.utils import get_doctor_ids, get_gateway

router = APIRouter()


async def _load_patient(gateway: DataGateway, patient_id: str) -> Patient:
    patient = await gateway.get_patient(patient_id)
    if not patient:
        raise DataUnavailable(
            message="Patient not found",
            code="PATIENT_NOT_FOUND",
            detail={"patient_id": patient_id},
        )
    return patient


@router.get("/patients/classifications", response_model=ClassificationBatch)
async def get_classifications(request: Request, gateway: DataGateway = Depends(get_gateway)):
    """
    Classify every patient of the requesting doctors
    
    Patients whose lab data could not be fetched are returned with the
    conservative Awaiting status and listed in failed_units.
    """
    doctor_ids = get_doctor_ids(request)
    patients = await gateway.list_patients(doctor_ids)
    return await classify_patients(gateway, patients)


@router.get("/patients/{patient_id}/classification", response_model=PatientClassification)
async def get_classification(patient_id: str, gateway: DataGateway = Depends(get_gateway)):
    """
    Lab status, profile status and badge for one patient
    """
    patient = await _load_patient(gateway, patient_id)
    return await classify_patient(gateway, patient)


@router.get("/patients/{patient_id}/compliance", response_model=ComplianceEvaluation)
async def get_compliance(patient_id: str, gateway: DataGateway = Depends(get_gateway)):
    """
    Compliance category from the patient's entire sample history
    
    If samples cannot be fetched the category falls back to MissingLogs and
    the error field is set.
    """
    await _load_patient(gateway, patient_id)
    return await evaluate_compliance(gateway, patient_id)


@router.get("/patients/{patient_id}/wound-photos", response_model=List[WoundPhoto])
async def get_wound_photos(patient_id: str, gateway: DataGateway = Depends(get_gateway)):
    """
    Wound photo references for the patient, newest first
    """
    await _load_patient(gateway, patient_id)
    samples = await gateway.all_health_samples(patient_id)
    return wound_photo_gallery(samples)
