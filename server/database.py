"""Database engine and session management using SQLModel."""

from __future__ import annotations

from pathlib import Path
from typing import Generator

from sqlmodel import Session, SQLModel, create_engine

from .config import DATA_DIR

DB_PATH = DATA_DIR / "uat.db"
SQLITE_URL = f"sqlite:///{DB_PATH}"

# check_same_thread=False is needed for SQLite if using across threads (FastAPI)
engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})


def configure_engine(db_path: Path) -> None:
    """Point the global engine at the configured SQLite file."""
    global DB_PATH, engine
    if db_path == DB_PATH:
        return
    db_path.parent.mkdir(parents=True, exist_ok=True)
    DB_PATH = db_path
    engine = create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})


def get_session() -> Generator[Session, None, None]:
    """Dependency for FastAPI or context manager for scripts."""
    with Session(engine) as session:
        yield session


def init_db() -> None:
    """Create database tables."""
    # Import models to ensure they are registered with SQLModel.metadata
    from . import models  # noqa: F401

    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA journal_mode=WAL;")
        conn.exec_driver_sql("PRAGMA foreign_keys=ON;")

    SQLModel.metadata.create_all(engine)
