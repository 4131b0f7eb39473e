from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from datetime import timedelta

from app.db.database import get_db
from app.db import models, schemas
from app.core.security import create_access_token
from app.core.config import settings
from app.api.v1.deps import get_current_user
from app.services.identity_service import identity_service
from app.utils.exceptions import ForbiddenError, UnauthorizedError

router = APIRouter()


def _issue_token(user: models.User) -> schemas.TokenResponse:
    access_token = create_access_token(
        data={"sub": str(user.id), "role": user.role.value},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return schemas.TokenResponse(
        access_token=access_token,
        user=schemas.UserResponse.model_validate(user),
    )


@router.post("/register", response_model=schemas.TokenResponse, status_code=status.HTTP_201_CREATED)
def register(payload: schemas.UserRegister, db: Session = Depends(get_db)):
    """Create a victim or advocate account and sign it in"""
    user = identity_service.register(
        db,
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
        role=payload.role,
    )
    return _issue_token(user)


@router.post("/login", response_model=schemas.TokenResponse)
def login(form_data: schemas.UserLogin, db: Session = Depends(get_db)):
    """Login endpoint. Email is normalized to lowercase for consistency with register."""
    user = identity_service.authenticate(db, form_data.email, form_data.password)
    if user is None:
        raise UnauthorizedError("Incorrect email or password")

    if not user.is_active:
        raise ForbiddenError("Account is inactive")

    return _issue_token(user)


@router.get("/me", response_model=schemas.UserResponse)
def get_current_user_info(
    current_user: models.User = Depends(get_current_user)
):
    """Get current user profile"""
    return current_user
