# app/services/case_service.py
"""
Case lifecycle: create, load, patch, delete and list.

Access checks are delegated to ``access_control_service`` on every call.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.application import APPLICATION_SECTIONS, empty_application
from app.core.config import settings
from app.core.logger import logger
from app.db.models import Case, CaseAccess
from app.db.schemas import CasePatch
from app.services.access_control_service import access_control_service
from app.services.eligibility_service import eligibility_service
from app.utils.exceptions import ValidationFailedError
from app.utils.helpers import merge_sections
from app.utils.validators import coerce_case_status, validate_state_code


def _check_sections(application: Optional[Dict[str, Any]]) -> None:
    if application is None:
        raise ValidationFailedError("application must be an object")
    unknown = sorted(set(application) - set(APPLICATION_SECTIONS))
    if unknown:
        raise ValidationFailedError(f"Unknown application section(s): {', '.join(unknown)}")
    for section, value in application.items():
        if not isinstance(value, dict):
            raise ValidationFailedError(f"Section '{section}' must be an object")


class CaseService:

    def create_case(
        self,
        db: Session,
        owner_id: UUID,
        application: Optional[Dict[str, Any]] = None,
        name: Optional[str] = None,
        status: Optional[str] = None,
        state_code: Optional[str] = None,
    ) -> Tuple[Case, CaseAccess]:
        """
        Insert the case and its owner grant in one transaction.
        Supplied sections are laid over the empty template.
        """
        code = validate_state_code(state_code, default=settings.DEFAULT_STATE_CODE)
        document = empty_application(code)
        if application:
            _check_sections(application)
            document = merge_sections(document, application)

        now = datetime.utcnow()
        case = Case(
            id=uuid.uuid4(),
            owner_user_id=owner_id,
            status=coerce_case_status(status),
            state_code=code,
            name=(name or "").strip() or None,
            application=document,
            created_at=now,
            updated_at=now,
        )
        grant = access_control_service.owner_grant(case)
        db.add(case)
        db.add(grant)
        try:
            db.commit()
        except Exception:
            db.rollback()
            logger.error(f"Failed to create case for owner {owner_id}")
            raise

        db.refresh(case)
        db.refresh(grant)
        logger.info(f"Case created: {case.id} owner={owner_id} state={code}")
        return case, grant

    def load_case(self, db: Session, case_id: UUID, user_id: UUID) -> Tuple[Case, CaseAccess]:
        return access_control_service.require_view(db, case_id, user_id)

    def patch_case(self, db: Session, case_id: UUID, user_id: UUID, patch: CasePatch) -> Case:
        """
        Shallow merge. Top-level fields present in the body replace the
        stored ones, sections inside ``application`` replace stored sections.
        Last write wins.
        """
        case, _ = access_control_service.require_edit(db, case_id, user_id)

        supplied = patch.model_fields_set
        if not supplied:
            raise ValidationFailedError(
                "Provide application, name, status, state_code and/or eligibility fields to update"
            )

        if "application" in supplied:
            _check_sections(patch.application)
            case.application = merge_sections(case.application, patch.application)

        if "name" in supplied:
            case.name = (patch.name or "").strip() or None

        if "status" in supplied:
            if patch.status is None:
                raise ValidationFailedError("status cannot be null")
            case.status = patch.status

        state_changed = False
        if "state_code" in supplied:
            code = validate_state_code(patch.state_code, default=case.state_code)
            state_changed = code != case.state_code
            case.state_code = code

        if "eligibility_answers" in supplied and patch.eligibility_answers is not None:
            eligibility_service.apply_answers(case, patch.eligibility_answers)
        elif "eligibility_answers" in supplied or state_changed:
            # answers belong to one program's questionnaire
            eligibility_service.clear(case)
        elif supplied & {"eligibility_result", "eligibility_readiness"}:
            # client-sent outcomes are never stored as-is
            eligibility_service.recompute(case)

        case.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(case)

        logger.info(f"Case updated: {case_id} by={user_id} fields={sorted(supplied)}")
        return case

    def delete_case(self, db: Session, case_id: UUID, user_id: UUID) -> None:
        access_control_service.require_owner(
            db, case_id, user_id, detail="Only the case owner can delete this case"
        )
        db.query(CaseAccess).filter(CaseAccess.case_id == case_id).delete(synchronize_session=False)
        db.query(Case).filter(Case.id == case_id).delete(synchronize_session=False)
        db.commit()
        logger.info(f"Case deleted: {case_id} by={user_id}")

    def list_for_user(self, db: Session, user_id: UUID) -> List[Tuple[Case, CaseAccess]]:
        """Cases the user can view, newest first."""
        rows = (
            db.query(Case, CaseAccess)
            .join(CaseAccess, CaseAccess.case_id == Case.id)
            .filter(CaseAccess.user_id == user_id, CaseAccess.can_view.is_(True))
            .order_by(Case.created_at.desc())
            .all()
        )
        return [(case, grant) for case, grant in rows]


case_service = CaseService()
