"""
SQLAlchemy ORM Models
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    TIMESTAMP,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from app.db.database import Base

# JSONB on PostgreSQL, plain JSON everywhere else (SQLite in tests)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")

# ============================================================================
# Enums
# ============================================================================

class UserRole(str, enum.Enum):
    """Coarse account role resolved with the bearer credential"""
    victim = "victim"
    advocate = "advocate"
    admin = "admin"


class CaseStatus(str, enum.Enum):
    """Case status enum"""
    draft = "draft"
    ready_for_review = "ready_for_review"
    submitted = "submitted"
    closed = "closed"


class AccessRole(str, enum.Enum):
    """Role recorded on a case access grant"""
    owner = "owner"
    advocate = "advocate"


class EligibilityResult(str, enum.Enum):
    eligible = "eligible"
    needs_review = "needs_review"
    not_eligible = "not_eligible"


class EligibilityReadiness(str, enum.Enum):
    ready = "ready"
    missing_info = "missing_info"
    not_ready = "not_ready"


# ============================================================================
# Models
# ============================================================================

class User(Base):
    """Account in the identity directory (victims and advocates)"""
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Authentication
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    # Profile
    full_name = Column(String(255), nullable=True)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.victim)
    is_active = Column(Boolean, nullable=False, default=True, server_default="1")

    # Timestamps
    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login_at = Column(TIMESTAMP, nullable=True)

    # Relationships
    owned_cases = relationship("Case", back_populates="owner", passive_deletes=True)
    case_access = relationship("CaseAccess", back_populates="user", cascade="all, delete-orphan")


class Case(Base):
    """Compensation application record"""
    __tablename__ = "cases"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Foreign Keys (immutable after creation)
    owner_user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Status
    status = Column(SQLEnum(CaseStatus), nullable=False, default=CaseStatus.draft)
    state_code = Column(String(2), nullable=False, default="IL")
    name = Column(String(255), nullable=True)

    # Application document (victim, applicant, contact, crime, court, ...)
    application = Column(JSONDocument, nullable=False, default=dict)

    # Eligibility pre-check (answers stored, outcome derived on every save)
    eligibility_answers = Column(JSONDocument, nullable=True)
    eligibility_result = Column(SQLEnum(EligibilityResult), nullable=True)
    eligibility_readiness = Column(SQLEnum(EligibilityReadiness), nullable=True)
    eligibility_completed_at = Column(TIMESTAMP, nullable=True)

    # Timestamps
    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)

    # Relationships
    owner = relationship("User", back_populates="owned_cases")
    access_grants = relationship(
        "CaseAccess",
        back_populates="case",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_cases_owner_created", "owner_user_id", "created_at"),
    )


class CaseAccess(Base):
    """
    One grant per (case, user). The owner's row is written in the same
    transaction as the case and is never removed while the case exists.
    """
    __tablename__ = "case_access"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_id = Column(Uuid(as_uuid=True), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    role = Column(SQLEnum(AccessRole), nullable=False)
    can_view = Column(Boolean, nullable=False, default=True)
    can_edit = Column(Boolean, nullable=False, default=False)

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    case = relationship("Case", back_populates="access_grants")
    user = relationship("User", back_populates="case_access")

    __table_args__ = (
        UniqueConstraint("case_id", "user_id", name="uq_case_access_case_user"),
        Index("ix_case_access_user_view", "user_id", "can_view"),
    )


class IdempotencyRecord(Base):
    """
    Stores the result of a side-effecting request keyed by (user_id, idempotency_key).
    If the same key is received again within the TTL, the cached response is returned
    instead of re-executing the operation.
    """
    __tablename__ = "idempotency_records"

    id              = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    idempotency_key = Column(String(255), nullable=False)
    user_id         = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    endpoint        = Column(String(255), nullable=True)   # e.g. "POST /api/v1/cases"
    status_code     = Column(Integer, nullable=False, default=200)
    response_body   = Column(JSONDocument, nullable=False, default=dict)
    created_at      = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    expires_at      = Column(TIMESTAMP, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("idempotency_key", "user_id", name="uq_idempotency_key_user"),
    )
