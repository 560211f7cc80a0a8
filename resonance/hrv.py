"""
HRV / readiness correlation.

Reads an Oura-style daily export ({"data": [{"day": "2024-01-15", "score": 82}]})
and lines it up against the days a breathing session was practised.
"""
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, Optional

import numpy as np

logger = logging.getLogger(__name__)


class HRVDataError(ValueError):
    pass


def _parse_day(value) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except ValueError:
        return None


def load_readiness(path) -> list[tuple[date, float]]:
    path = Path(path)
    if not path.exists():
        logger.info("HRV data not available at %s", path)
        return []
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise HRVDataError(f"HRV export {path} is not valid JSON: {exc}") from exc
    except OSError as exc:
        raise HRVDataError(f"HRV export {path} could not be read: {exc}") from exc

    rows = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(rows, list):
        raise HRVDataError(f"HRV export {path} has no 'data' list")

    readiness = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        day = _parse_day(row.get("day"))
        if day is None:
            continue
        try:
            score = float(row.get("score") or 0)
        except (TypeError, ValueError):
            score = 0.0
        readiness.append((day, score))
    readiness.sort(key=lambda item: item[0])
    return readiness


def overlay(
    readiness: list[tuple[date, float]],
    session_times: Iterable[datetime],
    days: int = 14,
) -> list[dict]:
    """The last ``days`` readiness entries, each flagged with whether a session fell on it."""
    practised = {ts.date() for ts in session_times}
    recent = readiness[-days:] if days > 0 else []
    return [
        {
            "day": day.isoformat(),
            "readiness": score,
            "had_session": day in practised,
        }
        for day, score in recent
    ]


def summarize(days: list[dict]) -> dict:
    session_scores = np.array([d["readiness"] for d in days if d["had_session"]], dtype=float)
    rest_scores = np.array([d["readiness"] for d in days if not d["had_session"]], dtype=float)

    correlation = None
    if session_scores.size and rest_scores.size:
        practice = np.array([1.0 if d["had_session"] else 0.0 for d in days])
        scores = np.array([d["readiness"] for d in days], dtype=float)
        if np.std(scores) > 0:
            correlation = round(float(np.corrcoef(practice, scores)[0, 1]), 3)

    return {
        "days": len(days),
        "session_days": int(session_scores.size),
        "mean_readiness_session_days": round(float(session_scores.mean()), 1)
        if session_scores.size
        else None,
        "mean_readiness_rest_days": round(float(rest_scores.mean()), 1)
        if rest_scores.size
        else None,
        "correlation": correlation,
    }
