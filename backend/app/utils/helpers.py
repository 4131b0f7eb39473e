"""
Utility helper functions
"""
import copy
from typing import Any, Dict, Optional
from uuid import UUID

from app.core.config import settings


def merge_sections(stored: Optional[Dict[str, Any]], patch: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow merge of an application document: every section in ``patch``
    replaces the stored section wholesale, other sections are kept.
    Always returns a new dict so the ORM sees the assignment.
    """
    merged = copy.deepcopy(stored or {})
    for section, value in patch.items():
        merged[section] = copy.deepcopy(value)
    return merged


def client_display_name(application: Any, owner_id: UUID) -> str:
    """Victim's name from the application, or a short owner id label"""
    victim = application.get("victim") if isinstance(application, dict) else None
    first = last = ""
    if isinstance(victim, dict):
        first = str(victim.get("firstName") or "").strip()
        last = str(victim.get("lastName") or "").strip()
    if first or last:
        return f"{first} {last}".strip()
    return f"Client {str(owner_id)[:8]}…"


def share_url(case_id: UUID) -> str:
    """Deep link to a case's intake view"""
    return f"{settings.INTAKE_SHARE_PATH}?case={case_id}"
