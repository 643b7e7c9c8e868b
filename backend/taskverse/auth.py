"""Bearer session tokens and the per-request caller dependency.

Tokens are HS256 JWTs whose ``sub`` is the user id. A missing or invalid
token yields ``None``; the services turn that into NOT_AUTHENTICATED.
"""
import logging
from datetime import timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from taskverse.config import settings
from taskverse.database import get_db, utcnow
from taskverse.models.organization import OrganizationMember
from taskverse.models.user import User
from taskverse.services.guard import CallerContext

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def create_session_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.SESSION_EXPIRE_MINUTES))
    payload = {"sub": user_id, "exp": expire}
    return jwt.encode(payload, settings.SESSION_SECRET, algorithm=settings.SESSION_ALGORITHM)


def decode_session_token(token: str) -> Optional[str]:
    try:
        payload = jwt.decode(token, settings.SESSION_SECRET, algorithms=[settings.SESSION_ALGORITHM])
    except JWTError:
        logger.info("Rejected invalid session token")
        return None
    return payload.get("sub")


def build_caller(db: Session, user: User) -> CallerContext:
    memberships = db.query(OrganizationMember).filter(OrganizationMember.user_id == user.user_id).all()
    return CallerContext(
        user_id=user.user_id,
        name=user.name,
        email=user.email,
        org_memberships={m.organization_id: m.role for m in memberships},
    )


def get_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[CallerContext]:
    """Resolve the request's caller, or ``None`` when unauthenticated."""
    if credentials is None:
        return None
    user_id = decode_session_token(credentials.credentials)
    if not user_id:
        return None
    user = db.get(User, user_id)
    if not user:
        return None
    return build_caller(db, user)
