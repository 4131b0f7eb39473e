"""
Custom exception classes
"""
from fastapi import HTTPException


class UnauthorizedError(HTTPException):
    """Raised when the bearer credential is missing or invalid"""
    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(
            status_code=401,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(HTTPException):
    """Raised when the caller's grant is absent or insufficient"""
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(
            status_code=403,
            detail=detail
        )


class CaseNotFoundError(HTTPException):
    """Raised when case doesn't exist"""
    def __init__(self, case_id):
        super().__init__(
            status_code=404,
            detail=f"Case {case_id} not found"
        )


class AccountNotFoundError(HTTPException):
    """Raised when an invitation email has no matching account"""
    def __init__(self):
        super().__init__(
            status_code=404,
            detail="No account found for that email. Ask the advocate to create an account first."
        )


class ValidationFailedError(HTTPException):
    """Raised for malformed or empty request bodies"""
    def __init__(self, detail: str):
        super().__init__(
            status_code=400,
            detail=detail
        )
