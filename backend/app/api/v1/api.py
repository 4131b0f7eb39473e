"""
Main API router aggregator
"""
from fastapi import APIRouter

from app.api.v1.endpoints import (
    auth,
    cases,
    eligibility,
    case_access,
    advocate,
    health,
)

api_router = APIRouter()

# Include routers
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(cases.router, prefix="/cases", tags=["Cases"])
api_router.include_router(eligibility.router, prefix="/cases", tags=["Eligibility"])
api_router.include_router(case_access.router, prefix="/case-access", tags=["Case Access"])
api_router.include_router(advocate.router, prefix="/advocate", tags=["Advocate"])
api_router.include_router(health.router, prefix="/health", tags=["Health"])
