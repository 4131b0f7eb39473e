"""
Pydantic validation schemas
"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime
from uuid import UUID

from app.db.models import (
    AccessRole,
    CaseStatus,
    EligibilityReadiness,
    EligibilityResult,
    UserRole,
)

# ============================================================================
# User Schemas
# ============================================================================

class UserLogin(BaseModel):
    """Login schema"""
    email: EmailStr
    password: str


class UserRegister(BaseModel):
    """Registration schema"""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    full_name: Optional[str] = Field(None, max_length=255)
    # admin accounts are never self-registered
    role: Literal["victim", "advocate"] = "victim"

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if not any(char.isdigit() for char in v):
            raise ValueError("Password must contain at least one digit")
        return v


class UserResponse(BaseModel):
    id: UUID
    email: str
    full_name: Optional[str] = None
    role: UserRole
    is_active: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse

# ============================================================================
# Access Schemas
# ============================================================================

class AccessInfo(BaseModel):
    """The caller's own grant on a case"""
    role: AccessRole
    can_view: bool
    can_edit: bool

    class Config:
        from_attributes = True


class GrantResponse(BaseModel):
    id: UUID
    case_id: UUID
    user_id: UUID
    user_email: Optional[str] = None
    role: AccessRole
    can_view: bool
    can_edit: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class GrantListResponse(BaseModel):
    grants: List[GrantResponse]


class InviteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    case_id: UUID = Field(..., alias="caseId")
    advocate_email: str = Field(..., alias="advocateEmail", max_length=255)
    can_edit: bool = Field(False, alias="canEdit")

    @field_validator("advocate_email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return (v or "").strip().lower()


class InviteResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    share_url: str = Field(..., alias="shareUrl")
    advocate_user_id: UUID = Field(..., alias="advocateUserId")
    can_edit: bool = Field(..., alias="canEdit")

# ============================================================================
# Case Schemas
# ============================================================================

class CaseCreate(BaseModel):
    application: Optional[Dict[str, Any]] = None
    name: Optional[str] = Field(None, max_length=255)
    # unknown statuses fall back to draft
    status: Optional[str] = None
    state_code: Optional[str] = Field(None, max_length=2)


class CasePatch(BaseModel):
    """
    Partial update. Only the fields present in the request body are applied;
    inside ``application`` each supplied section replaces the stored one.
    ``eligibility_result``/``eligibility_readiness`` are accepted for
    compatibility but always recomputed from the answers.
    """
    application: Optional[Dict[str, Any]] = None
    name: Optional[str] = Field(None, max_length=255)
    status: Optional[CaseStatus] = None
    state_code: Optional[str] = Field(None, max_length=2)
    eligibility_answers: Optional[Dict[str, Any]] = None
    eligibility_result: Optional[str] = None
    eligibility_readiness: Optional[str] = None


class CaseResponse(BaseModel):
    id: UUID
    owner_user_id: UUID
    status: CaseStatus
    state_code: str
    name: Optional[str] = None
    application: Dict[str, Any]
    eligibility_answers: Optional[Dict[str, Any]] = None
    eligibility_result: Optional[EligibilityResult] = None
    eligibility_readiness: Optional[EligibilityReadiness] = None
    eligibility_completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CaseWithAccess(CaseResponse):
    access: AccessInfo

    @classmethod
    def from_row(cls, case, grant) -> "CaseWithAccess":
        return cls(
            **CaseResponse.model_validate(case).model_dump(),
            access=AccessInfo.model_validate(grant),
        )


class CaseEnvelope(BaseModel):
    case: CaseResponse
    access: AccessInfo


class CaseUpdateResponse(BaseModel):
    case: CaseResponse


class CaseListResponse(BaseModel):
    cases: List[CaseWithAccess]


class CaseDeleteResponse(BaseModel):
    success: bool = True

# ============================================================================
# Eligibility Schemas
# ============================================================================

class EligibilityAnswersIL(BaseModel):
    """Illinois pre-check: seven fixed questions"""
    model_config = ConfigDict(populate_by_name=True)

    applicant_type: Optional[
        Literal["victim_18plus_own", "parent_minor", "parent_disabled", "paid_expenses", "none", "not_sure"]
    ] = Field(None, alias="applicantType")
    victim_under_18_or_disabled: Optional[Literal["yes", "no", "not_sure"]] = Field(
        None, alias="victimUnder18OrDisabled"
    )
    who_will_sign: Optional[Literal["applicant", "guardian", "not_sure"]] = Field(None, alias="whoWillSign")
    crime_reported_to_police: Optional[Literal["yes", "no", "not_sure"]] = Field(
        None, alias="crimeReportedToPolice"
    )
    police_report_details: Optional[Literal["have_number", "have_agency", "dont_have"]] = Field(
        None, alias="policeReportDetails"
    )
    expenses_sought: List[Literal["medical_hospital", "funeral_burial", "counseling", "not_sure"]] = Field(
        default_factory=list, alias="expensesSought"
    )
    can_receive_contact_45_days: Optional[Literal["yes", "not_sure", "no"]] = Field(
        None, alias="canReceiveContact45Days"
    )


class EligibilityAnswersIN(BaseModel):
    """Indiana pre-check"""
    model_config = ConfigDict(populate_by_name=True)

    applicant_type: Optional[
        Literal["victim", "surviving_spouse", "dependent_child", "none", "not_sure"]
    ] = Field(None, alias="applicantType")
    crime_in_indiana: Optional[Literal["yes", "no", "not_sure"]] = Field(None, alias="crimeInIndiana")
    reported_72_hours_cooperate: Optional[Literal["yes", "no", "not_sure"]] = Field(
        None, alias="reported72HoursCooperate"
    )
    min_100_out_of_pocket: Optional[Literal["yes", "no", "not_sure"]] = Field(None, alias="min100OutOfPocket")
    victim_did_not_contribute: Optional[Literal["yes", "no", "not_sure"]] = Field(
        None, alias="victimDidNotContribute"
    )
    within_180_days: Optional[Literal["yes", "no", "not_sure"]] = Field(None, alias="within180Days")
    minor_guardian_will_sign: Optional[Literal["yes", "no", "not_sure", "na"]] = Field(
        None, alias="minorGuardianWillSign"
    )


class EligibilityOutcome(BaseModel):
    result: EligibilityResult
    readiness: EligibilityReadiness


class EligibilityRequest(BaseModel):
    answers: Dict[str, Any]


class EligibilityResponse(BaseModel):
    case: CaseResponse
    outcome: EligibilityOutcome

# ============================================================================
# Advocate Schemas
# ============================================================================

class AdvocateClient(BaseModel):
    client_user_id: UUID
    latest_case_id: UUID
    latest_case_created_at: datetime
    case_count: int
    display_name: str


class AdvocateClientListResponse(BaseModel):
    clients: List[AdvocateClient]
