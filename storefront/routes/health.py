import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from storefront.config import settings
from storefront.database import get_session

logger = logging.getLogger(__name__)

router = APIRouter()


def _database_reachable(session: Session) -> bool:
    try:
        session.connection().execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        return False
    return True


@router.get("/check")
def health_check(session: Session = Depends(get_session)):
    database_ok = _database_reachable(session)
    return {
        "status": "ok" if database_ok else "degraded",
        "database": "ok" if database_ok else "failed",
        "paymentProvider": settings.PAYMENT_PROVIDER.lower(),
        "environment": settings.ENV,
        "checkedAt": datetime.utcnow().isoformat(),
    }
