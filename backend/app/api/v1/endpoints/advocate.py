"""
Advocate dashboard endpoints
"""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.deps import get_current_user
from app.db import schemas
from app.db.database import get_db
from app.db.models import User
from app.services.advocate_service import advocate_service

router = APIRouter()


@router.get("/clients", response_model=schemas.AdvocateClientListResponse)
def list_clients(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Clients (case owners) who shared at least one case with the caller"""
    return schemas.AdvocateClientListResponse(clients=advocate_service.list_clients(db, current_user))


@router.get("/clients/{client_id}/cases", response_model=schemas.CaseListResponse)
def list_client_cases(
    client_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    rows = advocate_service.list_client_cases(db, current_user, client_id)
    return schemas.CaseListResponse(
        cases=[schemas.CaseWithAccess.from_row(case, grant) for case, grant in rows]
    )


@router.get("/cases", response_model=schemas.CaseListResponse)
def list_shared_cases(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    rows = advocate_service.list_cases(db, current_user)
    return schemas.CaseListResponse(
        cases=[schemas.CaseWithAccess.from_row(case, grant) for case, grant in rows]
    )
