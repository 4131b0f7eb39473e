"""
Eligibility pre-check: outcome rules and persistence through the API.
"""
import pytest

from app.db.models import EligibilityReadiness, EligibilityResult
from app.db.schemas import EligibilityAnswersIL, EligibilityAnswersIN
from app.services.eligibility_service import (
    compute_outcome,
    compute_outcome_il,
    compute_outcome_in,
    parse_answers,
)
from app.utils.exceptions import ValidationFailedError

from conftest import API, create_case, invite

COMPLETE_IL = {
    "applicantType": "victim_18plus_own",
    "victimUnder18OrDisabled": "no",
    "whoWillSign": "applicant",
    "crimeReportedToPolice": "yes",
    "policeReportDetails": "have_number",
    "expensesSought": ["medical_hospital", "counseling"],
    "canReceiveContact45Days": "yes",
}


def il(**overrides):
    return EligibilityAnswersIL.model_validate({**COMPLETE_IL, **overrides})


# =============================================================================
# Illinois rules
# =============================================================================

class TestIllinoisOutcome:

    def test_unreported_crime_is_eligible_but_missing_info(self):
        answers = EligibilityAnswersIL.model_validate({
            "applicantType": "victim_18plus_own",
            "whoWillSign": "applicant",
            "crimeReportedToPolice": "no",
            "policeReportDetails": "dont_have",
            "expensesSought": ["medical_hospital"],
            "canReceiveContact45Days": "yes",
        })
        outcome = compute_outcome_il(answers)
        assert outcome.result == EligibilityResult.eligible
        assert outcome.readiness == EligibilityReadiness.missing_info

    def test_complete_answers_are_ready(self):
        outcome = compute_outcome_il(il())
        assert (outcome.result, outcome.readiness) == (EligibilityResult.eligible, EligibilityReadiness.ready)

    @pytest.mark.parametrize("overrides", [
        {},
        {"whoWillSign": None, "canReceiveContact45Days": "no"},
        {"crimeReportedToPolice": "not_sure", "expensesSought": ["not_sure"]},
    ])
    def test_no_applicant_type_is_never_eligible(self, overrides):
        outcome = compute_outcome_il(il(applicantType="none", **overrides))
        assert outcome.result == EligibilityResult.not_eligible
        assert outcome.readiness == EligibilityReadiness.ready

    def test_unanswered_applicant_type_needs_review(self):
        outcome = compute_outcome_il(il(applicantType=None))
        assert outcome.result == EligibilityResult.needs_review
        assert outcome.readiness == EligibilityReadiness.ready

    def test_unsure_applicant_type_needs_review(self):
        assert compute_outcome_il(il(applicantType="not_sure")).result == EligibilityResult.needs_review

    def test_unknown_signer_is_not_ready(self):
        outcome = compute_outcome_il(il(whoWillSign="not_sure"))
        assert outcome.readiness == EligibilityReadiness.not_ready

    def test_unreachable_applicant_is_not_ready(self):
        outcome = compute_outcome_il(il(canReceiveContact45Days="no"))
        assert outcome.readiness == EligibilityReadiness.not_ready

    def test_unsure_contact_is_missing_info(self):
        outcome = compute_outcome_il(il(canReceiveContact45Days="not_sure"))
        assert outcome.readiness == EligibilityReadiness.missing_info

    def test_unsure_expenses_are_missing_info(self):
        outcome = compute_outcome_il(il(expensesSought=["funeral_burial", "not_sure"]))
        assert outcome.readiness == EligibilityReadiness.missing_info

    def test_same_answers_same_outcome(self):
        answers = il(crimeReportedToPolice="not_sure")
        assert compute_outcome(answers) == compute_outcome(il(crimeReportedToPolice="not_sure"))


# =============================================================================
# Indiana rules
# =============================================================================

class TestIndianaOutcome:

    def answers(self, **overrides):
        base = {
            "applicantType": "victim",
            "crimeInIndiana": "yes",
            "reported72HoursCooperate": "yes",
            "min100OutOfPocket": "yes",
            "victimDidNotContribute": "yes",
            "within180Days": "yes",
            "minorGuardianWillSign": "na",
        }
        return EligibilityAnswersIN.model_validate({**base, **overrides})

    def test_complete_answers_are_ready(self):
        outcome = compute_outcome_in(self.answers())
        assert (outcome.result, outcome.readiness) == (EligibilityResult.eligible, EligibilityReadiness.ready)

    def test_crime_outside_indiana_is_not_eligible(self):
        assert compute_outcome_in(self.answers(crimeInIndiana="no")).result == EligibilityResult.not_eligible

    def test_contributing_victim_is_not_eligible(self):
        assert compute_outcome_in(self.answers(victimDidNotContribute="no")).result == EligibilityResult.not_eligible

    def test_late_report_is_missing_info(self):
        outcome = compute_outcome_in(self.answers(reported72HoursCooperate="no"))
        assert outcome.result == EligibilityResult.eligible
        assert outcome.readiness == EligibilityReadiness.missing_info

    def test_guardian_refusal_outranks_missing_info(self):
        outcome = compute_outcome_in(self.answers(within180Days="not_sure", minorGuardianWillSign="no"))
        assert outcome.readiness == EligibilityReadiness.not_ready

    def test_no_applicant_type_is_never_eligible(self):
        outcome = compute_outcome_in(self.answers(applicantType="none", crimeInIndiana="not_sure"))
        assert (outcome.result, outcome.readiness) == (EligibilityResult.not_eligible, EligibilityReadiness.ready)


class TestParseAnswers:

    def test_picks_questionnaire_by_state(self):
        assert isinstance(parse_answers("IN", {"applicantType": "victim"}), EligibilityAnswersIN)
        assert isinstance(parse_answers("IL", {"applicantType": "parent_minor"}), EligibilityAnswersIL)

    def test_rejects_out_of_range_values(self):
        with pytest.raises(ValidationFailedError) as exc:
            parse_answers("IL", {"applicantType": "astronaut"})
        assert exc.value.status_code == 400
        assert "applicantType" in exc.value.detail


# =============================================================================
# API
# =============================================================================

class TestEligibilityEndpoint:

    def test_outcome_is_stored_on_the_case(self, client, victim):
        _, headers = victim
        case_id = create_case(client, headers)["case"]["id"]

        resp = client.post(f"{API}/cases/{case_id}/eligibility", json={"answers": COMPLETE_IL}, headers=headers)
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["outcome"] == {"result": "eligible", "readiness": "ready"}

        case = client.get(f"{API}/cases/{case_id}", headers=headers).json()["case"]
        assert case["eligibility_result"] == "eligible"
        assert case["eligibility_readiness"] == "ready"
        assert case["eligibility_answers"]["applicantType"] == "victim_18plus_own"
        assert case["eligibility_completed_at"] is not None

    def test_client_sent_outcome_is_recomputed(self, client, victim):
        _, headers = victim
        case_id = create_case(client, headers)["case"]["id"]
        client.post(
            f"{API}/cases/{case_id}/eligibility",
            json={"answers": {**COMPLETE_IL, "applicantType": "none"}},
            headers=headers,
        )

        resp = client.patch(
            f"{API}/cases/{case_id}",
            json={"eligibility_result": "eligible", "eligibility_readiness": "ready"},
            headers=headers,
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["case"]["eligibility_result"] == "not_eligible"

    def test_answers_in_patch_are_scored(self, client, victim):
        _, headers = victim
        case_id = create_case(client, headers)["case"]["id"]
        resp = client.patch(
            f"{API}/cases/{case_id}",
            json={"eligibility_answers": {**COMPLETE_IL, "canReceiveContact45Days": "not_sure"}},
            headers=headers,
        )
        assert resp.json()["case"]["eligibility_readiness"] == "missing_info"

    def test_state_change_clears_answers(self, client, victim):
        _, headers = victim
        case_id = create_case(client, headers)["case"]["id"]
        client.post(f"{API}/cases/{case_id}/eligibility", json={"answers": COMPLETE_IL}, headers=headers)

        case = client.patch(f"{API}/cases/{case_id}", json={"state_code": "IN"}, headers=headers).json()["case"]
        assert case["state_code"] == "IN"
        assert case["eligibility_answers"] is None
        assert case["eligibility_result"] is None

    def test_view_only_advocate_cannot_submit(self, client, victim, advocate):
        _, headers = victim
        _, adv_headers = advocate
        case_id = create_case(client, headers)["case"]["id"]
        invite(client, headers, case_id, "advocate@example.com", can_edit=False)

        resp = client.post(f"{API}/cases/{case_id}/eligibility", json={"answers": COMPLETE_IL}, headers=adv_headers)
        assert resp.status_code == 403

    def test_invalid_answers_are_rejected(self, client, victim):
        _, headers = victim
        case_id = create_case(client, headers)["case"]["id"]
        resp = client.post(
            f"{API}/cases/{case_id}/eligibility",
            json={"answers": {"whoWillSign": "nobody"}},
            headers=headers,
        )
        assert resp.status_code == 400
