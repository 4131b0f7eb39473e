"""
Case create / load / patch / delete / list through the API.
"""
import uuid
from datetime import datetime, timedelta

from app.db.models import Case, CaseAccess, IdempotencyRecord
from app.services.idempotency_service import idempotency_service

from conftest import API, create_case, invite, register


class TestCreateAndList:

    def test_new_case_lists_once_with_owner_access(self, client, victim):
        user, headers = victim
        create_case(client, headers)

        cases = client.get(f"{API}/cases", headers=headers).json()["cases"]
        assert len(cases) == 1
        assert cases[0]["owner_user_id"] == user["id"]
        assert cases[0]["access"] == {"role": "owner", "can_view": True, "can_edit": True}

    def test_new_case_gets_full_template(self, client, victim):
        _, headers = victim
        case = create_case(client, headers, application={"victim": {"firstName": "Ada"}})["case"]

        assert case["status"] == "draft"
        assert case["state_code"] == "IL"
        assert case["application"]["victim"] == {"firstName": "Ada"}
        assert case["application"]["losses"]["medicalHospital"] is False
        assert case["application"]["applicant"]["isSameAsVictim"] is True

    def test_unknown_status_falls_back_to_draft(self, client, victim):
        _, headers = victim
        case = create_case(client, headers, status="archived-forever")["case"]
        assert case["status"] == "draft"

    def test_unsupported_state_is_rejected(self, client, victim):
        _, headers = victim
        resp = client.post(f"{API}/cases", json={"state_code": "ZZ"}, headers=headers)
        assert resp.status_code == 400

    def test_list_is_newest_first(self, client, victim):
        _, headers = victim
        first = create_case(client, headers, name="first")["case"]["id"]
        second = create_case(client, headers, name="second")["case"]["id"]
        ids = [c["id"] for c in client.get(f"{API}/cases", headers=headers).json()["cases"]]
        assert ids == [second, first]

    def test_same_idempotency_key_creates_one_case(self, client, victim, db):
        _, headers = victim
        keyed = {**headers, "Idempotency-Key": "draft-provision-1"}

        first = client.post(f"{API}/cases", json={"application": None}, headers=keyed)
        second = client.post(f"{API}/cases", json={"application": None}, headers=keyed)

        assert first.status_code == second.status_code == 201
        assert first.json()["case"]["id"] == second.json()["case"]["id"]
        assert db.query(Case).count() == 1

    def test_requires_bearer_token(self, client):
        resp = client.get(f"{API}/cases")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Unauthorized (missing token)"

    def test_rejects_bad_token(self, client):
        resp = client.get(f"{API}/cases", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401


class TestPatch:

    def test_disjoint_patches_both_survive(self, client, victim):
        _, headers = victim
        case_id = create_case(client, headers)["case"]["id"]
        crime = {"dateOfCrime": "2024-03-01", "crimeCity": "Chicago"}
        losses = {"medicalHospital": True, "counseling": True}

        assert client.patch(f"{API}/cases/{case_id}", json={"application": {"crime": crime}}, headers=headers).status_code == 200
        assert client.patch(f"{API}/cases/{case_id}", json={"application": {"losses": losses}}, headers=headers).status_code == 200

        application = client.get(f"{API}/cases/{case_id}", headers=headers).json()["case"]["application"]
        assert application["crime"] == crime
        assert application["losses"] == losses

    def test_load_returns_what_was_pushed(self, client, victim):
        _, headers = victim
        case_id = create_case(client, headers)["case"]["id"]
        pushed = {
            "victim": {"firstName": "Ada", "lastName": "L", "hasDisability": True},
            "medical": {"providers": [{"name": "County General", "amount": 1200.5}]},
        }
        patched = client.patch(f"{API}/cases/{case_id}", json={"application": pushed}, headers=headers).json()["case"]
        loaded = client.get(f"{API}/cases/{case_id}", headers=headers).json()["case"]

        assert loaded["application"] == patched["application"]
        for section, value in pushed.items():
            assert loaded["application"][section] == value

    def test_top_level_fields(self, client, victim):
        _, headers = victim
        case_id = create_case(client, headers)["case"]["id"]
        case = client.patch(
            f"{API}/cases/{case_id}",
            json={"name": "  Intake  ", "status": "ready_for_review"},
            headers=headers,
        ).json()["case"]
        assert case["name"] == "Intake"
        assert case["status"] == "ready_for_review"

    def test_empty_patch_is_rejected(self, client, victim):
        _, headers = victim
        case_id = create_case(client, headers)["case"]["id"]
        assert client.patch(f"{API}/cases/{case_id}", json={}, headers=headers).status_code == 400

    def test_unknown_section_is_rejected(self, client, victim):
        _, headers = victim
        case_id = create_case(client, headers)["case"]["id"]
        resp = client.patch(f"{API}/cases/{case_id}", json={"application": {"pets": {}}}, headers=headers)
        assert resp.status_code == 400
        assert "pets" in resp.json()["detail"]

    def test_patch_missing_case(self, client, victim):
        _, headers = victim
        resp = client.patch(f"{API}/cases/{uuid.uuid4()}", json={"name": "x"}, headers=headers)
        assert resp.status_code == 404


class TestDelete:

    def test_owner_delete_removes_grants(self, client, victim, advocate, db):
        _, headers = victim
        case_id = create_case(client, headers)["case"]["id"]
        invite(client, headers, case_id, "advocate@example.com", can_edit=True)

        resp = client.delete(f"{API}/cases/{case_id}", headers=headers)
        assert resp.status_code == 200
        assert resp.json() == {"success": True}

        assert db.query(Case).count() == 0
        assert db.query(CaseAccess).count() == 0
        assert client.get(f"{API}/cases/{case_id}", headers=headers).status_code == 404

    def test_editing_advocate_cannot_delete(self, client, victim, advocate):
        _, headers = victim
        _, adv_headers = advocate
        case_id = create_case(client, headers)["case"]["id"]
        invite(client, headers, case_id, "advocate@example.com", can_edit=True)

        assert client.delete(f"{API}/cases/{case_id}", headers=adv_headers).status_code == 403
        assert client.get(f"{API}/cases/{case_id}", headers=headers).status_code == 200


class TestAuth:

    def test_login_and_me(self, client, victim):
        resp = client.post(f"{API}/auth/login", json={"email": "VICTIM@example.com", "password": "s3cret-pass"})
        assert resp.status_code == 200
        token = resp.json()["access_token"]

        me = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"}).json()
        assert me["email"] == "victim@example.com"
        assert me["last_login_at"] is not None

    def test_wrong_password(self, client, victim):
        resp = client.post(f"{API}/auth/login", json={"email": "victim@example.com", "password": "wrong-pass1"})
        assert resp.status_code == 401

    def test_duplicate_email(self, client, victim):
        resp = client.post(
            f"{API}/auth/register",
            json={"email": "Victim@Example.com", "password": "another-1"},
        )
        assert resp.status_code == 400

    def test_admin_cannot_self_register(self, client):
        resp = client.post(
            f"{API}/auth/register",
            json={"email": "root@example.com", "password": "another-1", "role": "admin"},
        )
        assert resp.status_code == 422


class TestReplayRecords:

    def test_expired_records_are_purged(self, client, victim, db):
        _, headers = victim
        client.post(f"{API}/cases", json={}, headers={**headers, "Idempotency-Key": "k-1"})
        record = db.query(IdempotencyRecord).one()
        record.expires_at = datetime.utcnow() - timedelta(minutes=1)
        db.commit()

        assert idempotency_service.lookup(db, "k-1", record.user_id) is None
        assert idempotency_service.purge_expired(db) == 1
        assert db.query(IdempotencyRecord).count() == 0

    def test_blank_key_is_ignored(self, client, victim, db):
        _, headers = victim
        client.post(f"{API}/cases", json={}, headers={**headers, "Idempotency-Key": ""})
        client.post(f"{API}/cases", json={}, headers={**headers, "Idempotency-Key": ""})
        assert db.query(Case).count() == 2
        assert db.query(IdempotencyRecord).count() == 0
