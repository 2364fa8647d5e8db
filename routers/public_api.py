from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import crud
from dependencies import get_db
from models import PublicStats

router = APIRouter(prefix="/api/public", tags=["public"])


@router.get("/stats", response_model=PublicStats)
def public_stats_api(db: Session = Depends(get_db)):
    return crud.public_stats(db)
