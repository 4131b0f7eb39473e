# app/services/advocate_service.py
"""
Advocate dashboards, built only from the caller's own advocate grants.
"""
from __future__ import annotations

from typing import Dict, List, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from app.db.models import AccessRole, Case, CaseAccess, User, UserRole
from app.db.schemas import AdvocateClient
from app.utils.exceptions import ForbiddenError
from app.utils.helpers import client_display_name


class AdvocateService:

    @staticmethod
    def require_advocate(user: User) -> None:
        if user.role != UserRole.advocate:
            raise ForbiddenError("Advocate account required")

    def _shared_cases(self, db: Session, advocate_id: UUID) -> List[Tuple[Case, CaseAccess]]:
        rows = (
            db.query(Case, CaseAccess)
            .join(CaseAccess, CaseAccess.case_id == Case.id)
            .filter(
                CaseAccess.user_id == advocate_id,
                CaseAccess.role == AccessRole.advocate,
                CaseAccess.can_view.is_(True),
            )
            .order_by(Case.created_at.desc())
            .all()
        )
        return [(case, grant) for case, grant in rows]

    def list_clients(self, db: Session, user: User) -> List[AdvocateClient]:
        """One entry per case owner, newest activity first."""
        self.require_advocate(user)

        by_owner: Dict[UUID, AdvocateClient] = {}
        for case, _ in self._shared_cases(db, user.id):
            existing = by_owner.get(case.owner_user_id)
            if existing is None:
                # rows arrive newest first, so the first one is the latest case
                by_owner[case.owner_user_id] = AdvocateClient(
                    client_user_id=case.owner_user_id,
                    latest_case_id=case.id,
                    latest_case_created_at=case.created_at,
                    case_count=1,
                    display_name=client_display_name(case.application, case.owner_user_id),
                )
            else:
                existing.case_count += 1

        return sorted(by_owner.values(), key=lambda c: c.latest_case_created_at, reverse=True)

    def list_client_cases(self, db: Session, user: User, client_id: UUID) -> List[Tuple[Case, CaseAccess]]:
        self.require_advocate(user)
        return [(case, grant) for case, grant in self._shared_cases(db, user.id) if case.owner_user_id == client_id]

    def list_cases(self, db: Session, user: User) -> List[Tuple[Case, CaseAccess]]:
        """Every case the caller can view, most recently updated first."""
        rows = (
            db.query(Case, CaseAccess)
            .join(CaseAccess, CaseAccess.case_id == Case.id)
            .filter(CaseAccess.user_id == user.id, CaseAccess.can_view.is_(True))
            .order_by(Case.updated_at.desc())
            .all()
        )
        return [(case, grant) for case, grant in rows]


advocate_service = AdvocateService()
