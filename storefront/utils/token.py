"""Bearer-token authentication for the checkout API.

Tokens are HS256 JWTs carrying the user id under ``user_id`` (``sub`` is
accepted for tokens minted by older clients). Every failure is reported as
``AUTH_REQUIRED`` so callers never learn which check rejected them.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlmodel import Session

from storefront.config import settings
from storefront.database import get_session
from storefront.errors import AuthRequired
from storefront.models.user import User

logger = logging.getLogger(__name__)

# auto_error=False so a missing header reaches our own AUTH_REQUIRED body
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def create_access_token(claims: dict, expires_delta: Optional[timedelta] = None) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload = {**claims, "exp": datetime.utcnow() + lifetime}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def user_id_from_token(token: str) -> int:
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as exc:
        raise AuthRequired(message=f"Rejected bearer token: {exc}")

    raw = claims.get("user_id") or claims.get("sub")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise AuthRequired(message="Token carries no usable user id")


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> User:
    if not token:
        raise AuthRequired(message="Missing bearer token")

    user_id = user_id_from_token(token)
    user = session.get(User, user_id)

    if user is None or not user.can_login:
        logger.info(f"Checkout denied for user {user_id}: missing or disabled")
        raise AuthRequired(message="User not found or disabled")

    return user
