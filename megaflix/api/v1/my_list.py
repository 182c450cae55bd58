from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import desc
import logging

from ...database import get_db
from ...models.user import User, MyList
from ...schemas.my_list import MyListItemResponse, MyListToggle
from ..deps import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=List[MyListItemResponse])
def get_my_list(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Get user's My List (saved content), newest first
    """
    items = db.query(MyList).filter(
        MyList.user_id == current_user.id
    ).order_by(desc(MyList.created_at), desc(MyList.id)).all()

    return [
        MyListItemResponse(
            id=item.id,
            tmdb_id=item.tmdb_id,
            item_type=item.item_type,
            title=item.title,
            poster_path=item.poster_path,
            created_at=item.created_at.isoformat() if item.created_at else None,
        )
        for item in items
    ]


@router.post("")
def toggle_my_list(
    payload: MyListToggle,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Add a title to My List, or remove it when it is already there
    """
    try:
        existing = db.query(MyList).filter(
            MyList.user_id == current_user.id,
            MyList.tmdb_id == payload.tmdb_id,
            MyList.item_type == payload.item_type,
        ).first()

        if existing:
            db.delete(existing)
            db.commit()
            logger.info(f"🗑️ {payload.item_type} {payload.tmdb_id} removed from My List for user {current_user.id}")
            return {"message": "Removed from My List", "in_my_list": False}

        db.add(MyList(
            user_id=current_user.id,
            tmdb_id=payload.tmdb_id,
            item_type=payload.item_type,
            title=payload.title,
            poster_path=payload.poster_path,
        ))
        db.commit()
        logger.info(f"✅ {payload.item_type} {payload.tmdb_id} added to My List for user {current_user.id}")
        return {"message": "Added to My List", "in_my_list": True}

    except Exception as e:
        logger.error(f"Error toggling my list: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update my list"
        )


@router.get("/{item_type}/{tmdb_id}/check")
def check_in_list(
    item_type: str,
    tmdb_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Check if a title is in user's My List
    """
    kind = "series" if item_type == "tv" else item_type
    exists = db.query(MyList).filter(
        MyList.user_id == current_user.id,
        MyList.tmdb_id == tmdb_id,
        MyList.item_type == kind,
    ).first() is not None

    return {"in_my_list": exists}
