import os
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Optional
from uuid import uuid4

from sqlalchemy import delete
from sqlalchemy.orm import Session

from db import persist
from errors import ValidationFailed
from orm import BillFileORM

ALLOWED_CONTENT_TYPES = {"application/pdf"}
ALLOWED_EXTENSIONS = {".pdf"}
MAX_FILE_SIZE = int(os.getenv("MAX_FILE_SIZE") or 10 * 1024 * 1024)


def validate_bill_upload(filename: str, content_type: Optional[str], size: int) -> None:
    filename = filename or ""
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationFailed("Only PDF files are allowed for bill uploads", field="bill_file")
    if size > MAX_FILE_SIZE:
        raise ValidationFailed(
            f"File size too large. Maximum allowed size is {MAX_FILE_SIZE // (1024 * 1024)}MB",
            field="bill_file",
        )
    if ".." in filename or "/" in filename or "\\" in filename:
        raise ValidationFailed("Invalid filename", field="bill_file")
    if PurePosixPath(filename.lower()).suffix not in ALLOWED_EXTENSIONS:
        raise ValidationFailed("File must have .pdf extension", field="bill_file")


def store_bill(
    db: Session,
    *,
    filename: str,
    content_type: Optional[str],
    data: bytes,
    commit: bool = True,
) -> str:
    validate_bill_upload(filename, content_type, len(data))
    f = BillFileORM(
        id=str(uuid4()),
        filename=filename,
        content_type=content_type or "application/pdf",
        size=len(data),
        data=data,
        created_at=datetime.now(timezone.utc),
    )
    db.add(f)
    persist(db, commit=commit)
    return f.id


def get_bill(db: Session, file_id: Optional[str]) -> Optional[BillFileORM]:
    if not file_id:
        return None
    return db.get(BillFileORM, file_id)


def delete_bill(db: Session, file_id: Optional[str], *, commit: bool = True) -> bool:
    if not file_id:
        return False
    result = db.execute(delete(BillFileORM).where(BillFileORM.id == file_id))
    persist(db, commit=commit)
    return result.rowcount > 0
