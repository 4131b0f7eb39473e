"""
Health and readiness checks – verify database connectivity.
"""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.logger import logger
from app.db.database import get_db

router = APIRouter()


def _check_database(db: Session) -> tuple[str, str]:
    """Returns (status, detail). Status is 'ok' or 'error'."""
    try:
        db.execute(text("SELECT 1"))
        return "ok", f"{db.get_bind().dialect.name} reachable"
    except SQLAlchemyError as e:
        logger.exception("Database check failed")
        return "error", f"Database: {str(e)}"


@router.get("")
def health():
    """Liveness: the process is up"""
    return {"status": "healthy", "app": settings.APP_NAME}


@router.get("/ready")
def readiness(db: Session = Depends(get_db)):
    """
    Check that the record store answers a trivial query.
    """
    db_status, db_detail = _check_database(db)
    return {
        "status": "healthy" if db_status == "ok" else "degraded",
        "database": {"status": db_status, "detail": db_detail},
    }
