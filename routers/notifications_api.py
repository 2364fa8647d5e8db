from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import crud
from dependencies import get_current_user, get_db
from models import Message, Notification
from orm import UserORM

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=list[Notification])
def list_notifications_api(
    user: UserORM = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return crud.list_notifications(db, user.id)


@router.put("/mark-all-read", response_model=Message)
def mark_all_read_api(
    user: UserORM = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    count = crud.mark_all_notifications_read(db, user.id)
    return Message(message=f"{count} notification(s) marked as read")


@router.put("/{notification_id}/read", response_model=Message)
def mark_read_api(
    notification_id: str,
    user: UserORM = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ok = crud.mark_notification_read(db, notification_id, user.id)
    if not ok:
        raise HTTPException(status_code=404, detail="Notification not found")
    return Message(message="Notification marked as read")
