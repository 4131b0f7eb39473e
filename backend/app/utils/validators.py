"""
Custom validators
"""
import re
from typing import Optional

from app.db.models import CaseStatus
from app.utils.exceptions import ValidationFailedError

SUPPORTED_STATE_CODES = ("IL", "IN")


def validate_state_code(state_code: Optional[str], default: str = "IL") -> str:
    """
    Normalize a state code. Blank falls back to ``default``;
    anything other than a supported program is rejected.
    """
    value = (state_code or "").strip().upper() or default
    if value not in SUPPORTED_STATE_CODES:
        raise ValidationFailedError(
            f"Unsupported state_code '{value}'. Expected one of: {', '.join(SUPPORTED_STATE_CODES)}"
        )
    return value


def coerce_case_status(status: Optional[str]) -> CaseStatus:
    """Unknown or missing statuses become draft"""
    try:
        return CaseStatus((status or "").strip())
    except ValueError:
        return CaseStatus.draft


def validate_email(email: str) -> bool:
    """Validate email format"""
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email))
