"""
Case management endpoints
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.v1.deps import get_current_user
from app.db import schemas
from app.db.database import get_db
from app.db.models import User
from app.services.access_control_service import access_control_service
from app.services.case_service import case_service
from app.services.idempotency_service import idempotency_service

router = APIRouter()


def _envelope(case, grant) -> schemas.CaseEnvelope:
    return schemas.CaseEnvelope(
        case=schemas.CaseResponse.model_validate(case),
        access=schemas.AccessInfo.model_validate(grant),
    )

# ============================================================================
# Create & List
# ============================================================================

@router.post("", response_model=schemas.CaseEnvelope, status_code=status.HTTP_201_CREATED)
def create_case(
    payload: schemas.CaseCreate,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Create a case owned by the caller, together with the owner grant.
    Repeating the request with the same Idempotency-Key replays the first response.
    """
    replay = idempotency_service.lookup(db, idempotency_key, current_user.id)
    if replay:
        return JSONResponse(replay.body, status_code=replay.status_code)

    case, grant = case_service.create_case(
        db,
        owner_id=current_user.id,
        application=payload.application,
        name=payload.name,
        status=payload.status,
        state_code=payload.state_code,
    )
    result = _envelope(case, grant)

    idempotency_service.remember(
        db,
        idempotency_key,
        current_user.id,
        status.HTTP_201_CREATED,
        result.model_dump(mode="json"),
        endpoint="POST /api/v1/cases",
    )
    return result


@router.get("", response_model=schemas.CaseListResponse)
def list_cases(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Cases the caller can view, newest first"""
    rows = case_service.list_for_user(db, current_user.id)
    return schemas.CaseListResponse(
        cases=[schemas.CaseWithAccess.from_row(case, grant) for case, grant in rows]
    )

# ============================================================================
# Single Case
# ============================================================================

@router.get("/{case_id}", response_model=schemas.CaseEnvelope)
def get_case(
    case_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Case plus the caller's own grant (tells the client whether edits are allowed)"""
    case, grant = case_service.load_case(db, case_id, current_user.id)
    return _envelope(case, grant)


@router.patch("/{case_id}", response_model=schemas.CaseUpdateResponse)
def update_case(
    case_id: UUID,
    payload: schemas.CasePatch,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    case = case_service.patch_case(db, case_id, current_user.id, payload)
    return schemas.CaseUpdateResponse(case=schemas.CaseResponse.model_validate(case))


@router.delete("/{case_id}", response_model=schemas.CaseDeleteResponse)
def delete_case(
    case_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Owner-only hard delete; grants go with the case"""
    case_service.delete_case(db, case_id, current_user.id)
    return schemas.CaseDeleteResponse(success=True)


@router.get("/{case_id}/access", response_model=schemas.GrantListResponse)
def list_case_access(
    case_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Sharing panel: every grant on the case (owner only)"""
    rows = access_control_service.list_grants(db, case_id, current_user.id)
    grants = []
    for grant, email in rows:
        item = schemas.GrantResponse.model_validate(grant)
        item.user_email = email
        grants.append(item)
    return schemas.GrantListResponse(grants=grants)
