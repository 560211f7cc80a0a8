# resonance/database.py
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    Float,
    String,
    DateTime,
    Boolean,
    create_engine,
)
from sqlalchemy.orm import declarative_base, sessionmaker

from resonance.config import DATABASE_URL


def make_engine(url: str):
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},  # needed for SQLite + FastAPI
        )
    return create_engine(url)


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


class BreathSessionRecord(Base):
    __tablename__ = "breath_sessions"

    id = Column(Integer, primary_key=True, index=True)
    recorded_at = Column(DateTime, nullable=False, default=datetime.now, index=True)
    duration_seconds = Column(Integer, nullable=False, default=0)
    breaths = Column(Integer, nullable=False, default=0)
    week = Column(Integer, nullable=False, default=1)
    kind = Column(String, nullable=False, default="full")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "recorded_at": self.recorded_at.isoformat() if self.recorded_at else None,
            "duration_seconds": self.duration_seconds,
            "breaths": self.breaths,
            "week": self.week,
            "kind": self.kind,
        }


class PracticeProfile(Base):
    """Single-row practice state: protocol position, active pattern, streak."""

    __tablename__ = "practice_profile"

    id = Column(Integer, primary_key=True, index=True)
    current_week = Column(Integer, nullable=False, default=1)
    inhale = Column(Float, nullable=False, default=4.0)
    exhale = Column(Float, nullable=False, default=6.0)
    inhale_hold = Column(Float, nullable=False, default=0.0)
    exhale_hold = Column(Float, nullable=False, default=0.0)
    streak = Column(Integer, nullable=False, default=0)
    last_session_at = Column(DateTime, nullable=True)
    calibration_rate = Column(Integer, nullable=False, default=6)
    calibration_complete = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.now)


def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
