"""User API routes."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from taskverse.auth import create_session_token
from taskverse.database import get_db
from taskverse.errors import ConflictError, NotFoundError
from taskverse.models.user import User
from taskverse.schemas.user import UserCreate, UserOut, UserSession

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=UserSession, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    """Register a user and hand back a session token."""
    email = payload.email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("A user with this email already exists")
    user = User(name=payload.name.strip(), email=email, avatar_url=payload.avatar_url)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user %s (%s)", user.user_id, user.name)
    return UserSession(user=UserOut.model_validate(user), access_token=create_session_token(user.user_id))


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: str, db: Session = Depends(get_db)):
    """Fetch a single user by ID."""
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user
