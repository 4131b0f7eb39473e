"""
Per-user local persistence for the draft sync engine.

Layout under ``root/<user_id>/``:
    active_case.json        {"caseId": ...}
    intake_progress.json    {"caseId", "step", "maxStepIndex", "updatedAt"}
    drafts/local.json       draft before a case exists
    drafts/<case_id>.json   draft mirror of a bound case
"""
from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
LOCAL_SLOT = "local"


def _check_key(value: str, what: str) -> str:
    value = str(value)
    if not _SAFE_KEY.match(value) or value == LOCAL_SLOT:
        raise ValueError(f"Invalid {what}: {value!r}")
    return value


class LocalDraftStore:
    """JSON files namespaced by user id so accounts never share drafts."""

    def __init__(self, root: os.PathLike | str, user_id: str):
        self.user_id = _check_key(user_id, "user id")
        self.base = Path(root).expanduser() / self.user_id
        (self.base / "drafts").mkdir(parents=True, exist_ok=True)

    # ── file helpers ─────────────────────────────────────────────────────────

    def _read(self, path: Path) -> Optional[Any]:
        try:
            with path.open("r", encoding="utf-8") as fh:
                return json.load(fh)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable local file %s", path)
            return None

    def _write(self, path: Path, data: Any) -> None:
        fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def _draft_path(self, case_id: Optional[str]) -> Path:
        name = LOCAL_SLOT if case_id is None else _check_key(case_id, "case id")
        return self.base / "drafts" / f"{name}.json"

    # ── active case pointer ──────────────────────────────────────────────────

    def get_active_case(self) -> Optional[str]:
        data = self._read(self.base / "active_case.json")
        if isinstance(data, dict) and data.get("caseId"):
            return str(data["caseId"])
        return None

    def set_active_case(self, case_id: str) -> None:
        self._write(self.base / "active_case.json", {"caseId": _check_key(case_id, "case id")})

    def clear_active_case(self) -> None:
        (self.base / "active_case.json").unlink(missing_ok=True)

    # ── intake progress ──────────────────────────────────────────────────────

    def load_progress(self) -> Optional[Dict[str, Any]]:
        data = self._read(self.base / "intake_progress.json")
        return data if isinstance(data, dict) else None

    def save_progress(self, case_id: Optional[str], step: str, max_step_index: int) -> Dict[str, Any]:
        progress = {
            "caseId": case_id,
            "step": step,
            "maxStepIndex": max_step_index,
            "updatedAt": datetime.now(timezone.utc).isoformat(),
        }
        self._write(self.base / "intake_progress.json", progress)
        return progress

    # ── drafts ───────────────────────────────────────────────────────────────

    def load_draft(self, case_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """``case_id=None`` reads the pre-provisioning slot."""
        data = self._read(self._draft_path(case_id))
        return data if isinstance(data, dict) else None

    def save_draft(self, case_id: Optional[str], application: Dict[str, Any]) -> None:
        self._write(self._draft_path(case_id), application)

    def clear_draft(self, case_id: Optional[str] = None) -> None:
        self._draft_path(case_id).unlink(missing_ok=True)
