import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from campus_lms.core.config import ACCESS_TOKEN_EXPIRE
from campus_lms.core.current_user import get_current_user
from campus_lms.core.deps import get_db
from campus_lms.core.security import create_access_token, hash_password, verify_password
from campus_lms.models.user import User
from campus_lms.schemas.auth import LoginRequest, Token, UserCreate, UserRead

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/register",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Email already registered"}},
)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    email = payload.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )

    user = User(
        email=email,
        full_name=payload.full_name,
        role=payload.role,
        hashed_password=hash_password(payload.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered %s account %s", user.role, user.id)
    return user


@router.post(
    "/login",
    response_model=Token,
    responses={401: {"description": "Invalid email or password"}},
)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    # same answer for unknown email and wrong password
    if user is None or not verify_password(payload.password, user.hashed_password):
        logger.info("Rejected login for %s", payload.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    token = create_access_token({"sub": str(user.id), "role": user.role}, ACCESS_TOKEN_EXPIRE)
    return Token(
        access_token=token,
        role=user.role,
        expires_in=int(ACCESS_TOKEN_EXPIRE.total_seconds()),
    )


@router.get("/me", response_model=UserRead)
def me(current_user: User = Depends(get_current_user)):
    return current_user
