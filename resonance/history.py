"""
Session history, daily streak and practice profile persistence.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from resonance.breathing import BreathPattern, validate_pattern
from resonance.calibration import DEFAULT_RATE, CalibrationResult
from resonance.database import BreathSessionRecord, PracticeProfile
from resonance.protocol import DEFAULT_PATTERN, WEEK_LABELS, next_week, pattern_for_week
from resonance.session import SessionSummary

logger = logging.getLogger(__name__)

PROFILE_ID = 1


def update_streak(
    streak: int, last_session_at: Optional[datetime], now: datetime
) -> tuple[int, datetime]:
    """
    Fold one more practice day into the streak.

    Calendar days are compared, not 24h windows: a session late yesterday
    followed by one early today still extends the streak.
    """
    if last_session_at is None:
        return 1, now
    days = (now.date() - last_session_at.date()).days
    if days <= 0:
        return max(streak, 1), now
    if days == 1:
        return streak + 1, now
    return 1, now


def active_streak(streak: int, last_session_at: Optional[datetime], now: datetime) -> int:
    """The streak as of ``now``: zero once a whole calendar day has been missed."""
    if last_session_at is None:
        return 0
    if (now.date() - last_session_at.date()).days > 1:
        return 0
    return streak


def get_profile(db: Session) -> PracticeProfile:
    profile = db.get(PracticeProfile, PROFILE_ID)
    if profile is None:
        profile = PracticeProfile(
            id=PROFILE_ID,
            current_week=1,
            inhale=DEFAULT_PATTERN.inhale,
            exhale=DEFAULT_PATTERN.exhale,
            inhale_hold=DEFAULT_PATTERN.inhale_hold,
            exhale_hold=DEFAULT_PATTERN.exhale_hold,
            streak=0,
            calibration_rate=DEFAULT_RATE,
            calibration_complete=False,
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)
        logger.info("Created default practice profile")
    return profile


def profile_pattern(profile: PracticeProfile) -> BreathPattern:
    return BreathPattern(
        inhale=profile.inhale,
        exhale=profile.exhale,
        inhale_hold=profile.inhale_hold,
        exhale_hold=profile.exhale_hold,
    )


def _apply_pattern(profile: PracticeProfile, pattern: BreathPattern) -> None:
    profile.inhale = pattern.inhale
    profile.exhale = pattern.exhale
    profile.inhale_hold = pattern.inhale_hold
    profile.exhale_hold = pattern.exhale_hold


def profile_to_dict(profile: PracticeProfile, now: Optional[datetime] = None) -> dict:
    now = now or datetime.now()
    return {
        "current_week": profile.current_week,
        "week_label": WEEK_LABELS.get(profile.current_week, "Practice"),
        "pattern": profile_pattern(profile).to_dict(),
        "streak": active_streak(profile.streak, profile.last_session_at, now),
        "last_session_at": profile.last_session_at.isoformat()
        if profile.last_session_at
        else None,
        "calibration": {
            "rate": profile.calibration_rate,
            "complete": profile.calibration_complete,
        },
    }


def record_session(db: Session, summary: SessionSummary, now: Optional[datetime] = None):
    now = now or datetime.now()
    record = BreathSessionRecord(
        recorded_at=summary.started_at,
        duration_seconds=summary.duration_seconds,
        breaths=summary.breaths,
        week=summary.week,
        kind=summary.kind.value,
    )
    db.add(record)

    profile = get_profile(db)
    profile.streak, profile.last_session_at = update_streak(
        profile.streak, profile.last_session_at, now
    )
    db.commit()
    db.refresh(record)
    logger.info(
        "Recorded %s session: %ds, %d breaths (streak %d)",
        record.kind, record.duration_seconds, record.breaths, profile.streak,
    )
    return record


def list_sessions(db: Session, limit: Optional[int] = None) -> list[BreathSessionRecord]:
    query = db.query(BreathSessionRecord).order_by(
        BreathSessionRecord.recorded_at.desc(), BreathSessionRecord.id.desc()
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def set_week(db: Session, week: int) -> PracticeProfile:
    pattern = pattern_for_week(week)
    profile = get_profile(db)
    profile.current_week = week
    _apply_pattern(profile, pattern)
    db.commit()
    logger.info("Protocol moved to week %d", week)
    return profile


def advance_week(db: Session) -> PracticeProfile:
    profile = get_profile(db)
    return set_week(db, next_week(profile.current_week))


def set_pattern(db: Session, pattern: BreathPattern) -> PracticeProfile:
    validate_pattern(pattern)
    profile = get_profile(db)
    _apply_pattern(profile, pattern)
    db.commit()
    logger.info("Active pattern set to %s", pattern.to_dict())
    return profile


def save_calibration(db: Session, result: CalibrationResult) -> PracticeProfile:
    profile = get_profile(db)
    profile.calibration_rate = result.rate
    profile.calibration_complete = True
    db.commit()
    return profile
