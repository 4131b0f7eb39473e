"""
Case sharing (advocate invitations)
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.deps import get_current_user
from app.db import schemas
from app.db.database import get_db
from app.db.models import User
from app.services.invitation_service import invitation_service

router = APIRouter()


@router.post("/invite", response_model=schemas.InviteResponse)
def invite_advocate(
    payload: schemas.InviteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Grant an existing advocate account access to one of the caller's cases"""
    result = invitation_service.invite(
        db,
        case_id=payload.case_id,
        caller_id=current_user.id,
        advocate_email=payload.advocate_email,
        can_edit=payload.can_edit,
    )
    return schemas.InviteResponse(
        ok=True,
        share_url=result.share_url,
        advocate_user_id=result.advocate_user_id,
        can_edit=result.can_edit,
    )
