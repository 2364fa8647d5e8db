"""
Engine and session factory.

The SQLite file comes from ``APP_DB_PATH`` (relative paths resolve against the
project directory) and defaults to ``data/assetflow.db``.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Session

ROOT_DIR = Path(__file__).resolve().parent
DEFAULT_DB_PATH = Path("data") / "assetflow.db"

def resolve_db_path(root_dir: Path = ROOT_DIR) -> Path:
    custom_path = os.getenv("APP_DB_PATH")
    db_path = Path(custom_path).expanduser() if custom_path else DEFAULT_DB_PATH
    if not db_path.is_absolute():
        db_path = (root_dir / db_path).resolve()

    db_path.parent.mkdir(parents=True, exist_ok=True)
    return db_path

DB_PATH = resolve_db_path()
DATABASE_URL = f"sqlite:///{DB_PATH.as_posix()}"

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

class Base(DeclarativeBase):
    pass

def persist(db: Session, *, commit: bool) -> None:
    """Commit, or only flush so the caller can commit or roll back later."""
    if commit:
        db.commit()
    else:
        db.flush()

@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for command-line scripts; rolled back if the block raises."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
