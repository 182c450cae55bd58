from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
import logging

from ...config import settings
from ...database import get_db
from ...models.user import User
from ...schemas.user import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserOut,
)
from ...utils.security import (
    create_access_token,
    create_password_reset_token,
    get_password_hash,
    verify_password,
    verify_password_reset_token,
)
from ..deps import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


def user_to_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        username=user.username,
        email=user.email,
        is_active=bool(user.is_active),
        is_admin=user.is_admin(settings.admin_emails_list),
        created_at=user.created_at,
        last_login=user.last_login,
    )


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=UserOut)
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
):
    """Create an account"""
    email = payload.email.lower().strip()

    existing = db.query(User).filter(
        or_(
            func.lower(User.username) == payload.username.lower(),
            User.email == email,
        )
    ).first()

    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username or email already registered"
        )

    try:
        user = User(
            username=payload.username,
            email=email,
            hashed_password=get_password_hash(payload.password),
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except Exception as e:
        logger.error(f"❌ Error registering user: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create account"
        )

    logger.info(f"✅ User registered: {user.username}")
    return user_to_out(user)


@router.post("/login", response_model=TokenResponse)
def login(
    credentials: LoginRequest,
    db: Session = Depends(get_db),
):
    """Login with username or email"""
    identifier = credentials.login.strip()
    logger.info(f"🔍 Login attempt: {identifier}")

    user = db.query(User).filter(
        or_(
            func.lower(User.username) == identifier.lower(),
            User.email == identifier.lower(),
        )
    ).first()

    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.warning("❌ Invalid credentials")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been deactivated"
        )

    user.last_login = datetime.utcnow()
    db.commit()

    logger.info(f"✅ Login successful: {user.username}")
    return TokenResponse(token=create_access_token(user.id), user=user_to_out(user))


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return user_to_out(current_user)


@router.post("/forgot-password")
def forgot_password(
    payload: ForgotPasswordRequest,
    db: Session = Depends(get_db),
):
    """
    Issue a password reset token.
    The answer is the same whether or not the address exists.
    """
    user = db.query(User).filter(User.email == payload.email.lower()).first()

    if user and user.is_active:
        token = create_password_reset_token(user.id, user.hashed_password)
        # No mail transport is wired in; the token goes to the operator log
        logger.info(f"📧 Password reset requested for user {user.id}: {token}")

    return {"message": "If an account exists for this email, a reset link has been sent"}


@router.post("/reset-password")
def reset_password(
    payload: ResetPasswordRequest,
    db: Session = Depends(get_db),
):
    """Set a new password from a reset token"""
    data = verify_password_reset_token(payload.token)
    user = None
    if data:
        user = db.query(User).filter(User.id == int(data["sub"])).first()

    if not user or user.hashed_password[-16:] != data.get("fp"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Reset link is invalid or has expired"
        )

    try:
        user.hashed_password = get_password_hash(payload.newPassword)
        db.commit()
    except Exception as e:
        logger.error(f"❌ Error resetting password: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reset password"
        )

    logger.info(f"🔑 Password reset for user {user.id}")
    return {"message": "Password updated"}
