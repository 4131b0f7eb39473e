# app/services/invitation_service.py
"""
Owner-initiated sharing of a case with an advocate account, by email.
"""
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.logger import logger
from app.services.access_control_service import access_control_service
from app.services.identity_service import identity_service, normalize_email
from app.utils.exceptions import AccountNotFoundError, ValidationFailedError
from app.utils.helpers import share_url
from app.utils.validators import validate_email


@dataclass(frozen=True)
class InvitationResult:
    case_id: UUID
    advocate_user_id: UUID
    can_edit: bool
    share_url: str


class InvitationService:

    def invite(
        self,
        db: Session,
        case_id: UUID,
        caller_id: UUID,
        advocate_email: str,
        can_edit: bool = False,
    ) -> InvitationResult:
        """
        Re-inviting the same email updates ``can_edit`` on the existing grant.
        Unknown emails are rejected; accounts are never created here.
        """
        email = normalize_email(advocate_email)
        if not email:
            raise ValidationFailedError("Missing caseId or advocateEmail")
        if not validate_email(email):
            raise ValidationFailedError("Invalid advocate email")

        # Owner check runs before the directory lookup
        access_control_service.require_owner(db, case_id, caller_id, detail="Only the case owner can share this case")

        advocate = identity_service.find_by_email(db, email)
        if advocate is None:
            logger.info(f"Invite rejected, no account: case={case_id}")
            raise AccountNotFoundError()

        grant = access_control_service.grant(db, case_id, caller_id, advocate.id, bool(can_edit))
        logger.info(f"Invitation sent: case={case_id} advocate={advocate.id} can_edit={grant.can_edit}")
        return InvitationResult(
            case_id=case_id,
            advocate_user_id=advocate.id,
            can_edit=grant.can_edit,
            share_url=share_url(case_id),
        )


invitation_service = InvitationService()
