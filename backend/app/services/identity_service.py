# app/services/identity_service.py
"""
Identity directory: account registration, credential checks and
email lookup for invitations.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.logger import logger
from app.core.security import get_password_hash, verify_password
from app.db.models import User, UserRole
from app.utils.exceptions import ValidationFailedError


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class IdentityService:

    def get_by_id(self, db: Session, user_id: UUID) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    def find_by_email(self, db: Session, email: str) -> Optional[User]:
        """Case-insensitive lookup; no implicit account creation."""
        clean = normalize_email(email)
        if not clean:
            return None
        return db.query(User).filter(func.lower(User.email) == clean).first()

    def register(
        self,
        db: Session,
        email: str,
        password: str,
        full_name: Optional[str] = None,
        role: str = UserRole.victim.value,
    ) -> User:
        clean = normalize_email(email)
        if self.find_by_email(db, clean) is not None:
            raise ValidationFailedError("Email already registered")

        user = User(
            email=clean,
            password_hash=get_password_hash(password),
            full_name=(full_name or "").strip() or None,
            role=UserRole(role),
            is_active=True,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ValidationFailedError("Email already registered")
        db.refresh(user)
        logger.info(f"User registered: {user.id} role={user.role.value}")
        return user

    def authenticate(self, db: Session, email: str, password: str) -> Optional[User]:
        user = self.find_by_email(db, email)
        if user is None or not verify_password(password, user.password_hash):
            return None
        user.last_login_at = datetime.utcnow()
        db.commit()
        db.refresh(user)
        return user


identity_service = IdentityService()
