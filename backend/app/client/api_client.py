"""
Async HTTP client for the Case API (httpx)
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from app.client.errors import Transient, error_for_status

logger = logging.getLogger(__name__)

Json = Dict[str, Any]


class CaseApiClient:
    """
    Thin wrapper over ``httpx.AsyncClient`` that maps HTTP failures onto the
    sync error taxonomy. One instance per signed-in user.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "CaseApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> Json:
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("case api %s %s failed: %s", method, url, exc)
            raise Transient(f"Network error: {exc}") from exc

        if resp.status_code >= 400:
            try:
                body = resp.json()
                detail = body.get("detail") if isinstance(body, dict) else body
            except ValueError:
                detail = resp.text
            raise error_for_status(resp.status_code, detail)
        return resp.json()

    # ── Cases ────────────────────────────────────────────────────────────────

    async def create_case(
        self,
        application: Optional[Json] = None,
        name: Optional[str] = None,
        state_code: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Tuple[Json, Json]:
        body: Json = {"application": application}
        if name is not None:
            body["name"] = name
        if state_code is not None:
            body["state_code"] = state_code
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        data = await self._request("POST", "/cases", json=body, headers=headers)
        return data["case"], data["access"]

    async def list_cases(self) -> List[Json]:
        data = await self._request("GET", "/cases")
        return data["cases"]

    async def get_case(self, case_id: str) -> Tuple[Json, Json]:
        data = await self._request("GET", f"/cases/{case_id}")
        return data["case"], data["access"]

    async def patch_case(self, case_id: str, fields: Json) -> Json:
        data = await self._request("PATCH", f"/cases/{case_id}", json=fields)
        return data["case"]

    async def delete_case(self, case_id: str) -> None:
        await self._request("DELETE", f"/cases/{case_id}")

    async def submit_eligibility(self, case_id: str, answers: Json) -> Tuple[Json, Json]:
        data = await self._request("POST", f"/cases/{case_id}/eligibility", json={"answers": answers})
        return data["case"], data["outcome"]

    # ── Sharing ──────────────────────────────────────────────────────────────

    async def invite_advocate(self, case_id: str, advocate_email: str, can_edit: bool = False) -> Json:
        return await self._request(
            "POST",
            "/case-access/invite",
            json={"caseId": case_id, "advocateEmail": advocate_email, "canEdit": can_edit},
        )
