# app/services/access_control_service.py
"""
Access control ledger for cases.

Every read or write of a case goes through one of the ``require_*`` helpers.
A missing grant row is reported as ``AccessDecision.UNKNOWN`` and is handled
exactly like an explicit deny.
"""
from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.core.logger import logger
from app.db.models import AccessRole, Case, CaseAccess, User
from app.utils.exceptions import CaseNotFoundError, ForbiddenError, ValidationFailedError

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class AccessDecision(str, enum.Enum):
    ALLOW = "allow"
    DENY = "deny"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class AccessCheck:
    decision: AccessDecision
    grant: Optional[CaseAccess] = None

    @property
    def can_view(self) -> bool:
        return self.decision is AccessDecision.ALLOW

    @property
    def can_edit(self) -> bool:
        return self.can_view and bool(self.grant.can_edit)

    @property
    def is_owner(self) -> bool:
        return self.can_edit and self.grant.role == AccessRole.owner


class AccessControlService:

    def check_access(self, db: Session, case_id: UUID, user_id: UUID) -> AccessCheck:
        """Pure lookup of the (case, user) grant."""
        grant = (
            db.query(CaseAccess)
            .filter(CaseAccess.case_id == case_id, CaseAccess.user_id == user_id)
            .first()
        )
        if grant is None:
            return AccessCheck(AccessDecision.UNKNOWN)
        if not grant.can_view:
            return AccessCheck(AccessDecision.DENY, grant)
        return AccessCheck(AccessDecision.ALLOW, grant)

    def _load_checked(self, db: Session, case_id: UUID, user_id: UUID) -> Tuple[Case, AccessCheck]:
        case = db.query(Case).filter(Case.id == case_id).first()
        if case is None:
            raise CaseNotFoundError(case_id)
        return case, self.check_access(db, case_id, user_id)

    def require_view(self, db: Session, case_id: UUID, user_id: UUID) -> Tuple[Case, CaseAccess]:
        case, check = self._load_checked(db, case_id, user_id)
        if not check.can_view:
            logger.warning(f"View denied: case={case_id} user={user_id} decision={check.decision.value}")
            raise ForbiddenError("You do not have access to this case")
        return case, check.grant

    def require_edit(self, db: Session, case_id: UUID, user_id: UUID) -> Tuple[Case, CaseAccess]:
        case, check = self._load_checked(db, case_id, user_id)
        if not check.can_edit:
            logger.warning(f"Edit denied: case={case_id} user={user_id} decision={check.decision.value}")
            raise ForbiddenError("You have view-only access to this case")
        return case, check.grant

    def require_owner(
        self,
        db: Session,
        case_id: UUID,
        user_id: UUID,
        detail: str = "Only the case owner can do this",
    ) -> Tuple[Case, CaseAccess]:
        case, check = self._load_checked(db, case_id, user_id)
        if not check.is_owner:
            logger.warning(f"Owner action denied: case={case_id} user={user_id} decision={check.decision.value}")
            raise ForbiddenError(detail)
        return case, check.grant

    @staticmethod
    def owner_grant(case: Case) -> CaseAccess:
        """Grant row written together with a new case."""
        now = datetime.utcnow()
        return CaseAccess(
            id=uuid.uuid4(),
            case=case,
            user_id=case.owner_user_id,
            role=AccessRole.owner,
            can_view=True,
            can_edit=True,
            created_at=now,
            updated_at=now,
        )

    def grant(
        self,
        db: Session,
        case_id: UUID,
        granter_id: UUID,
        grantee_id: UUID,
        can_edit: bool,
    ) -> CaseAccess:
        """
        Give ``grantee_id`` advocate access. Re-granting updates ``can_edit``
        on the existing row; the owner's row is never rewritten.
        """
        case, _ = self.require_owner(db, case_id, granter_id, detail="Only the case owner can share this case")
        if grantee_id == case.owner_user_id:
            raise ValidationFailedError("The case owner already has full access")

        self._upsert_advocate_grant(db, case_id, grantee_id, can_edit)
        db.commit()

        grant = (
            db.query(CaseAccess)
            .filter(CaseAccess.case_id == case_id, CaseAccess.user_id == grantee_id)
            .one()
        )
        logger.info(f"Access granted: case={case_id} grantee={grantee_id} can_edit={grant.can_edit}")
        return grant

    def _upsert_advocate_grant(self, db: Session, case_id: UUID, grantee_id: UUID, can_edit: bool) -> None:
        now = datetime.utcnow()
        table = CaseAccess.__table__
        dialect = db.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)

        if insert is None:
            # Portable read-then-write for other backends
            existing = (
                db.query(CaseAccess)
                .filter(CaseAccess.case_id == case_id, CaseAccess.user_id == grantee_id)
                .first()
            )
            if existing is None:
                db.add(CaseAccess(
                    case_id=case_id,
                    user_id=grantee_id,
                    role=AccessRole.advocate,
                    can_view=True,
                    can_edit=can_edit,
                ))
            elif existing.role == AccessRole.advocate:
                existing.can_view = True
                existing.can_edit = can_edit
                existing.updated_at = now
            db.flush()
            return

        stmt = insert(table).values(
            id=uuid.uuid4(),
            case_id=case_id,
            user_id=grantee_id,
            role=AccessRole.advocate,
            can_view=True,
            can_edit=can_edit,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.case_id, table.c.user_id],
            set_={
                "can_view": True,
                "can_edit": stmt.excluded.can_edit,
                "updated_at": now,
            },
            where=(table.c.role == AccessRole.advocate),
        )
        db.execute(stmt)

    def list_grants(self, db: Session, case_id: UUID, caller_id: UUID) -> List[Tuple[CaseAccess, Optional[str]]]:
        """Owner-only listing of every grant on a case, owner first."""
        self.require_owner(db, case_id, caller_id, detail="Only the case owner can view sharing settings")
        rows = (
            db.query(CaseAccess, User.email)
            .join(User, User.id == CaseAccess.user_id)
            .filter(CaseAccess.case_id == case_id)
            .order_by(CaseAccess.created_at.asc())
            .all()
        )
        rows.sort(key=lambda row: row[0].role != AccessRole.owner)
        return [(grant, email) for grant, email in rows]


access_control_service = AccessControlService()
