import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Depends, FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from resonance import config
from resonance.audio import render_cycle, to_wav_bytes
from resonance.breathing import BreathPattern, InvalidPattern, simulate
from resonance.calibration import result_for_breaths
from resonance.database import get_db, init_db
from resonance.history import (
    advance_week,
    get_profile,
    list_sessions,
    profile_pattern,
    profile_to_dict,
    record_session,
    save_calibration,
    set_pattern,
    set_week,
)
from resonance.hrv import HRVDataError, load_readiness, overlay, summarize
from resonance.protocol import InvalidWeek, describe_protocol, pattern_for_week
from resonance.session import SessionKind, SessionSummary


class WeekPayload(BaseModel):
    week: int


class PatternPayload(BaseModel):
    inhale: float = Field(allow_inf_nan=False)
    exhale: float = Field(allow_inf_nan=False)
    inhaleHold: float = Field(0.0, allow_inf_nan=False)
    exhaleHold: float = Field(0.0, allow_inf_nan=False)


class SessionPayload(BaseModel):
    duration_seconds: int = Field(ge=0)
    breaths: int = Field(ge=0)
    week: int | None = None
    kind: str = SessionKind.FULL.value
    started_at: datetime | None = None


class CalibrationPayload(BaseModel):
    breath_count: int = Field(ge=0)


logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database ready at %s", config.DATABASE_URL)
    yield


app = FastAPI(title="Resonance", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(status_code=400, detail=str(exc))


def _resolve_kind(value: str) -> SessionKind:
    try:
        return SessionKind(value)
    except ValueError as exc:
        allowed = ", ".join(kind.value for kind in SessionKind)
        raise HTTPException(
            status_code=400,
            detail=f"Unknown session kind '{value}'. Expected one of: {allowed}.",
        ) from exc


@app.get("/api/state")
def read_state(db: Session = Depends(get_db)):
    return profile_to_dict(get_profile(db))


@app.get("/api/protocol")
def read_protocol(db: Session = Depends(get_db)):
    return {
        "current_week": get_profile(db).current_week,
        "weeks": describe_protocol(),
    }


@app.post("/api/protocol/week")
def choose_week(payload: WeekPayload, db: Session = Depends(get_db)):
    try:
        profile = set_week(db, payload.week)
    except InvalidWeek as exc:
        raise _bad_request(exc) from exc
    return profile_to_dict(profile)


@app.post("/api/protocol/advance")
def next_protocol_week(db: Session = Depends(get_db)):
    try:
        profile = advance_week(db)
    except InvalidWeek as exc:
        raise _bad_request(exc) from exc
    return profile_to_dict(profile)


@app.put("/api/pattern")
def update_pattern(payload: PatternPayload, db: Session = Depends(get_db)):
    pattern = BreathPattern.from_dict(payload.model_dump())
    try:
        profile = set_pattern(db, pattern)
    except InvalidPattern as exc:
        raise _bad_request(exc) from exc
    return profile_to_dict(profile)


@app.get("/api/timeline")
def read_timeline(
    seconds: float = Query(20.0, gt=0, le=600),
    step: float = Query(0.5, ge=0.05, le=10),
    db: Session = Depends(get_db),
):
    pattern = profile_pattern(get_profile(db))
    try:
        frames = simulate(pattern, seconds, step)
    except InvalidPattern as exc:
        raise _bad_request(exc) from exc
    return {
        "pattern": pattern.to_dict(),
        "step": step,
        "frames": [frame.to_dict() for frame in frames],
    }


@app.post("/api/sessions")
def create_session(payload: SessionPayload, db: Session = Depends(get_db)):
    kind = _resolve_kind(payload.kind)
    week = payload.week if payload.week is not None else get_profile(db).current_week
    try:
        pattern_for_week(week)
    except InvalidWeek as exc:
        raise _bad_request(exc) from exc
    summary = SessionSummary(
        started_at=payload.started_at or datetime.now(),
        duration_seconds=payload.duration_seconds,
        breaths=payload.breaths,
        week=week,
        kind=kind,
    )
    record = record_session(db, summary)
    return {
        "session": record.to_dict(),
        "state": profile_to_dict(get_profile(db)),
    }


@app.get("/api/sessions")
def read_sessions(
    limit: int | None = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    return [record.to_dict() for record in list_sessions(db, limit)]


@app.post("/api/calibration")
def complete_calibration(payload: CalibrationPayload, db: Session = Depends(get_db)):
    result = result_for_breaths(payload.breath_count)
    profile = save_calibration(db, result)
    return {
        "result": result.to_dict(),
        "state": profile_to_dict(profile),
    }


@app.get("/api/hrv")
def read_hrv(
    days: int = Query(config.HRV_WINDOW_DAYS, ge=1, le=365),
    db: Session = Depends(get_db),
):
    try:
        readiness = load_readiness(config.OURA_DATA_PATH)
    except HRVDataError as exc:
        logger.error("Unable to read HRV data: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    session_times = [record.recorded_at for record in list_sessions(db)]
    days_overlay = overlay(readiness, session_times, days)
    return {
        "available": bool(readiness),
        "days": days_overlay,
        "summary": summarize(days_overlay),
    }


@app.get("/api/tone")
def read_tone(
    cycles: int = Query(1, ge=1, le=10),
    week: int | None = Query(None),
    db: Session = Depends(get_db),
):
    try:
        pattern = (
            pattern_for_week(week)
            if week is not None
            else profile_pattern(get_profile(db))
        )
        samples = render_cycle(
            pattern,
            cycles=cycles,
            sample_rate=config.TONE_SAMPLE_RATE,
            volume=config.TONE_VOLUME,
        )
    except (InvalidWeek, InvalidPattern) as exc:
        raise _bad_request(exc) from exc
    return Response(
        content=to_wav_bytes(samples, config.TONE_SAMPLE_RATE),
        media_type="audio/wav",
    )
