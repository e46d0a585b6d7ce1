"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for sticky sets and exposure history.
"""

from datetime import datetime, timezone
from pathlib import Path
from sqlalchemy import create_engine, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite stores datetimes without a zone."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class StickySet(Base):
    """Candidate ids fixed for one seed (day + viewer + reset index)."""

    __tablename__ = "sticky_sets"

    seed = Column(String, primary_key=True)
    candidate_ids = Column(Text, nullable=False)  # JSON array of ids
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class SeenEntry(Base):
    """One exploration exposure of a candidate to a viewer."""

    __tablename__ = "seen_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    viewer_id = Column(String, nullable=False, index=True)
    candidate_id = Column(String, nullable=False)
    seen_at = Column(DateTime, nullable=False, default=utcnow, index=True)


def get_engine(db_path: Path):
    return create_engine(f"sqlite:///{db_path}")


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(db_path)
    Base.metadata.create_all(engine)
    engine.dispose()


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    engine = get_engine(Path(db_path))
    Session = sessionmaker(bind=engine)
    return Session()
