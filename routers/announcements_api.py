from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import crud
from dependencies import get_current_user, get_db, require_admin
from models import Announcement, AnnouncementIn
from orm import UserORM

router = APIRouter(prefix="/api/announcements", tags=["announcements"])


@router.get("", response_model=list[Announcement])
def list_announcements_api(
    user: UserORM = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return crud.list_announcements(db, user=user)


@router.post("", response_model=Announcement, status_code=201)
def create_announcement_api(
    body: AnnouncementIn,
    user: UserORM = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return crud.create_announcement(db, body, actor=user)


@router.delete("/{announcement_id}", status_code=204)
def delete_announcement_api(
    announcement_id: str,
    user: UserORM = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ok = crud.delete_announcement(db, announcement_id)
    if not ok:
        raise HTTPException(status_code=404, detail="Announcement not found")
    return None
