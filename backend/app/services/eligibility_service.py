# app/services/eligibility_service.py
"""
Eligibility pre-check.

``compute_outcome`` is a pure function of the stored answers, so the outcome
can be re-derived at any time. It is recomputed and overwritten whenever
answers are saved and never blocks the intake flow.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Tuple, Union

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.logger import logger
from app.db.models import Case, EligibilityReadiness, EligibilityResult
from app.db.schemas import EligibilityAnswersIL, EligibilityAnswersIN, EligibilityOutcome
from app.services.access_control_service import access_control_service
from app.utils.exceptions import ValidationFailedError

Answers = Union[EligibilityAnswersIL, EligibilityAnswersIN]

IL_QUALIFYING_APPLICANTS = {"victim_18plus_own", "parent_minor", "parent_disabled", "paid_expenses"}
IN_QUALIFYING_APPLICANTS = {"victim", "surviving_spouse", "dependent_child"}

_READY = EligibilityReadiness.ready
_MISSING = EligibilityReadiness.missing_info
_NOT_READY = EligibilityReadiness.not_ready


def _outcome(result: EligibilityResult, readiness: EligibilityReadiness) -> EligibilityOutcome:
    return EligibilityOutcome(result=result, readiness=readiness)


def compute_outcome_il(answers: EligibilityAnswersIL) -> EligibilityOutcome:
    """Illinois policy, first match wins."""
    if answers.applicant_type == "none":
        return _outcome(EligibilityResult.not_eligible, _READY)

    if answers.applicant_type not in IL_QUALIFYING_APPLICANTS:
        return _outcome(EligibilityResult.needs_review, _READY)

    if answers.who_will_sign not in ("applicant", "guardian"):
        return _outcome(EligibilityResult.eligible, _NOT_READY)

    if answers.can_receive_contact_45_days == "no":
        return _outcome(EligibilityResult.eligible, _NOT_READY)
    if answers.can_receive_contact_45_days == "not_sure":
        return _outcome(EligibilityResult.eligible, _MISSING)

    readiness = _READY
    if answers.crime_reported_to_police in ("no", "not_sure"):
        readiness = _MISSING
    if answers.police_report_details == "dont_have":
        readiness = _MISSING
    if "not_sure" in answers.expenses_sought:
        readiness = _MISSING

    return _outcome(EligibilityResult.eligible, readiness)


def compute_outcome_in(answers: EligibilityAnswersIN) -> EligibilityOutcome:
    """Indiana policy."""
    if answers.applicant_type == "none":
        return _outcome(EligibilityResult.not_eligible, _READY)

    if answers.applicant_type not in IN_QUALIFYING_APPLICANTS:
        return _outcome(EligibilityResult.needs_review, _READY)

    if answers.crime_in_indiana == "no":
        return _outcome(EligibilityResult.not_eligible, _READY)
    if answers.victim_did_not_contribute == "no":
        return _outcome(EligibilityResult.not_eligible, _READY)

    readiness = _READY
    for answer in (
        answers.crime_in_indiana,
        answers.reported_72_hours_cooperate,
        answers.min_100_out_of_pocket,
        answers.victim_did_not_contribute,
        answers.within_180_days,
        answers.minor_guardian_will_sign,
    ):
        if answer == "not_sure":
            readiness = _MISSING
    for answer in (
        answers.reported_72_hours_cooperate,
        answers.min_100_out_of_pocket,
        answers.within_180_days,
    ):
        if answer == "no":
            readiness = _MISSING

    # not_ready dominates every missing_info flag
    if answers.minor_guardian_will_sign == "no":
        readiness = _NOT_READY

    return _outcome(EligibilityResult.eligible, readiness)


def parse_answers(state_code: str, raw: Dict[str, Any]) -> Answers:
    model = EligibilityAnswersIN if state_code == "IN" else EligibilityAnswersIL
    try:
        return model.model_validate(raw or {})
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ValidationFailedError(f"Invalid eligibility answers: {fields}")


def compute_outcome(answers: Answers) -> EligibilityOutcome:
    if isinstance(answers, EligibilityAnswersIN):
        return compute_outcome_in(answers)
    return compute_outcome_il(answers)


class EligibilityService:

    def apply_answers(self, case: Case, raw_answers: Dict[str, Any]) -> EligibilityOutcome:
        """
        Validate answers against the case's state questionnaire and write
        answers + derived outcome onto the case. Caller commits.
        """
        answers = parse_answers(case.state_code, raw_answers)
        outcome = compute_outcome(answers)
        case.eligibility_answers = answers.model_dump(by_alias=True)
        case.eligibility_result = outcome.result
        case.eligibility_readiness = outcome.readiness
        case.eligibility_completed_at = datetime.utcnow()
        return outcome

    def clear(self, case: Case) -> None:
        case.eligibility_answers = None
        case.eligibility_result = None
        case.eligibility_readiness = None
        case.eligibility_completed_at = None

    def recompute(self, case: Case) -> None:
        """Re-derive the stored outcome from the stored answers."""
        if case.eligibility_answers is None:
            self.clear(case)
            return
        self.apply_answers(case, case.eligibility_answers)

    def submit(
        self,
        db: Session,
        case_id,
        user_id,
        raw_answers: Dict[str, Any],
    ) -> Tuple[Case, EligibilityOutcome]:
        case, _ = access_control_service.require_edit(db, case_id, user_id)
        outcome = self.apply_answers(case, raw_answers)
        case.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(case)
        logger.info(
            f"Eligibility saved: case={case_id} result={outcome.result.value} readiness={outcome.readiness.value}"
        )
        return case, outcome


eligibility_service = EligibilityService()
