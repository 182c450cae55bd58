from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from ...database import get_db
from ...models.user import User
from ...schemas.user import ChangePasswordRequest, ToggleBanRequest, UserOut
from ...utils.security import get_password_hash
from ..deps import get_current_admin
from .auth import user_to_out

router = APIRouter()
logger = logging.getLogger(__name__)


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


@router.get("/users", response_model=List[UserOut])
def list_users(
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """All accounts, oldest first"""
    return [user_to_out(user) for user in db.query(User).order_by(User.id).all()]


@router.post("/toggle-ban", response_model=UserOut)
def toggle_ban(
    payload: ToggleBanRequest,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Deactivate an account, or reactivate a deactivated one"""
    if payload.userId == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot ban yourself"
        )

    user = _get_user_or_404(db, payload.userId)
    user.is_active = not user.is_active
    db.commit()
    db.refresh(user)

    logger.info(f"🚫 User {user.id} active={user.is_active} (by admin {admin.id})")
    return user_to_out(user)


@router.post("/change-password")
def change_password(
    payload: ChangePasswordRequest,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    user = _get_user_or_404(db, payload.userId)
    user.hashed_password = get_password_hash(payload.newPassword)
    db.commit()

    logger.info(f"🔑 Password changed for user {user.id} by admin {admin.id}")
    return {"message": "Password updated"}
