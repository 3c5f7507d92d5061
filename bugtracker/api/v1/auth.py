"""Registration, login and current-user endpoints"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bugtracker.auth import create_access_token, hash_password, verify_password
from bugtracker.database import get_db
from bugtracker.dependencies import get_current_user
from bugtracker.errors import AuthenticationError, ConflictError
from bugtracker.models import User
from bugtracker.schemas import AuthResponse, MeResponse, UserCreate, UserLogin, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(user_in: UserCreate, db: Session = Depends(get_db)):
    email = user_in.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("Email already in use.")

    user = User(
        email=email,
        password_hash=hash_password(user_in.password),
        name=(user_in.name or "").strip() or None,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email already in use.")
    db.refresh(user)

    logger.info("Registered user %s", user.id)
    return AuthResponse(user=UserResponse.model_validate(user), token=create_access_token(user.id))


@router.post("/login", response_model=AuthResponse)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == credentials.email.lower()).first()
    if not user or not verify_password(credentials.password, user.password_hash):
        raise AuthenticationError("Invalid credentials.")
    return AuthResponse(user=UserResponse.model_validate(user), token=create_access_token(user.id))


@router.get("/me", response_model=MeResponse)
def read_current_user(current_user: User = Depends(get_current_user)):
    return MeResponse(user=UserResponse.model_validate(current_user))
