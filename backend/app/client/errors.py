"""
Errors raised by the case API client and the draft sync engine
"""
from typing import Any, Optional


class SyncError(Exception):
    """Base class; ``status_code`` is None for network failures"""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class Unauthorized(SyncError):
    """Missing or invalid credential"""


class Forbidden(SyncError):
    """Valid credential, but the case is not shared (or not editable) for this user"""


class NotFound(SyncError):
    """Case or account does not exist"""


class ValidationError(SyncError):
    """Malformed request body"""


class Transient(SyncError):
    """Network or server failure; safe to retry by user action"""


_BY_STATUS = {
    400: ValidationError,
    401: Unauthorized,
    403: Forbidden,
    404: NotFound,
    422: ValidationError,
}


def _detail_text(detail: Any) -> str:
    if isinstance(detail, str):
        return detail
    if isinstance(detail, list):
        # FastAPI request validation errors
        parts = []
        for item in detail:
            if isinstance(item, dict):
                loc = ".".join(str(p) for p in item.get("loc", []))
                parts.append(f"{loc}: {item.get('msg', '')}".strip(": "))
            else:
                parts.append(str(item))
        return "; ".join(parts)
    return str(detail)


def error_for_status(status_code: int, detail: Any = None) -> SyncError:
    message = _detail_text(detail) if detail else f"HTTP {status_code}"
    if status_code >= 500:
        return Transient(message, status_code)
    return _BY_STATUS.get(status_code, SyncError)(message, status_code)
