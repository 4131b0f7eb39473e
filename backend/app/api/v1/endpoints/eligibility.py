"""
Eligibility pre-check endpoint
"""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.deps import get_current_user
from app.db import schemas
from app.db.database import get_db
from app.db.models import User
from app.services.eligibility_service import eligibility_service

router = APIRouter()


@router.post("/{case_id}/eligibility", response_model=schemas.EligibilityResponse)
def submit_eligibility(
    case_id: UUID,
    payload: schemas.EligibilityRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Validate answers for the case's state program, derive the outcome and
    persist both. The outcome is advisory and never locks the intake.
    """
    case, outcome = eligibility_service.submit(db, case_id, current_user.id, payload.answers)
    return schemas.EligibilityResponse(
        case=schemas.CaseResponse.model_validate(case),
        outcome=outcome,
    )
