"""
Owner-initiated sharing with advocate accounts.
"""
from conftest import API, create_case, invite, register


class TestInvite:

    def test_invite_returns_share_link(self, client, victim, advocate):
        _, headers = victim
        adv_user, _ = advocate
        case_id = create_case(client, headers)["case"]["id"]

        resp = invite(client, headers, case_id, "  Advocate@Example.com ", can_edit=True)
        assert resp.status_code == 200, resp.text
        assert resp.json() == {
            "ok": True,
            "shareUrl": f"/compensation/intake?case={case_id}",
            "advocateUserId": adv_user["id"],
            "canEdit": True,
        }

    def test_reinvite_updates_edit_flag(self, client, victim, advocate):
        _, headers = victim
        _, adv_headers = advocate
        case_id = create_case(client, headers)["case"]["id"]

        invite(client, headers, case_id, "advocate@example.com", can_edit=True)
        resp = invite(client, headers, case_id, "advocate@example.com", can_edit=False)
        assert resp.json()["canEdit"] is False

        grants = client.get(f"{API}/cases/{case_id}/access", headers=headers).json()["grants"]
        assert len(grants) == 2
        access = client.get(f"{API}/cases/{case_id}", headers=adv_headers).json()["access"]
        assert access["can_edit"] is False

    def test_unknown_email_is_not_found(self, client, victim):
        _, headers = victim
        case_id = create_case(client, headers)["case"]["id"]

        resp = invite(client, headers, case_id, "nobody@example.com")
        assert resp.status_code == 404
        assert resp.json()["detail"] == (
            "No account found for that email. Ask the advocate to create an account first."
        )

    def test_non_owner_cannot_invite(self, client, victim, advocate):
        _, headers = victim
        _, adv_headers = advocate
        register(client, "second@example.com", role="advocate")
        case_id = create_case(client, headers)["case"]["id"]
        invite(client, headers, case_id, "advocate@example.com", can_edit=True)

        resp = invite(client, adv_headers, case_id, "second@example.com")
        assert resp.status_code == 403

    def test_owner_cannot_invite_self(self, client, victim):
        _, headers = victim
        case_id = create_case(client, headers)["case"]["id"]
        assert invite(client, headers, case_id, "victim@example.com").status_code == 400

    def test_blank_email(self, client, victim):
        _, headers = victim
        case_id = create_case(client, headers)["case"]["id"]
        resp = invite(client, headers, case_id, "   ")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Missing caseId or advocateEmail"
