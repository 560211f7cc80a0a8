"""
Terminal breathing pacer.

    python -m resonance.pacer --week 3 --minutes 5
    python -m resonance.pacer --kind quick --record
    python -m resonance.pacer --calibrate

Press Ctrl-C to end the session early.
"""
import argparse
import logging
import sys
import time
from datetime import datetime

from resonance import config, database, history
from resonance.breathing import PHASE_LABELS
from resonance.calibration import CALIBRATION_SECONDS, Calibration
from resonance.protocol import FIRST_WEEK, LAST_WEEK, pattern_for_week
from resonance.session import BreathingSession, SessionKind, SessionSummary

logger = logging.getLogger(__name__)

BAR_WIDTH = 24


def _bar(scale: float) -> str:
    # scale runs 1.0 -> 1.5; map it onto a half-to-full bar
    filled = int(round(BAR_WIDTH * (scale - 0.5)))
    return "o" * filled + " " * (BAR_WIDTH - filled)


def run(session: BreathingSession, fps: int = 30, out=sys.stdout, sleep=time.sleep):
    frame = session.start()
    last_phase = None
    try:
        while not session.is_complete:
            frame = session.tick()
            if frame.phase != last_phase:
                out.write(f"\n{PHASE_LABELS[frame.phase]:<12}")
                last_phase = frame.phase
            out.write(f"\r{PHASE_LABELS[frame.phase]:<12} [{_bar(frame.scale)}] "
                      f"breaths: {frame.breath_count}")
            out.flush()
            sleep(1.0 / fps)
    except KeyboardInterrupt:
        out.write("\nEnding session early...")
    summary = session.end()
    minutes, seconds = divmod(summary.duration_seconds, 60)
    out.write(f"\nSession complete: {minutes:02d}:{seconds:02d}, {summary.breaths} breaths\n")
    return summary


def run_calibration(calibration: Calibration, clock=time.monotonic, fps: int = 30,
                    out=sys.stdout, sleep=time.sleep):
    """Pace the one-minute calibration; returns None when interrupted."""
    frame = calibration.start(clock())
    out.write("Calibrating: follow the circle at an easy 3s in, 3s out pace\n")
    try:
        while not calibration.is_complete(clock()):
            frame = calibration.tick(clock())
            remaining = max(0, int(calibration.duration_seconds - (clock() - calibration.started_at)))
            out.write(f"\r{PHASE_LABELS[frame.phase]:<12} [{_bar(frame.scale)}] "
                      f"{remaining:2d}s left")
            out.flush()
            sleep(1.0 / fps)
    except KeyboardInterrupt:
        out.write("\nCalibration cancelled\n")
        return None
    result = calibration.finish(clock())
    out.write(f"\nCalibration complete: {result.breath_count} breaths, "
              f"resonance rate {result.rate} breaths/min\n")
    return result


def _persist(summary=None, calibration_result=None):
    database.init_db()
    db = database.SessionLocal()
    try:
        if calibration_result is not None:
            history.save_calibration(db, calibration_result)
        if summary is not None:
            history.record_session(db, summary)
    finally:
        db.close()


def main(argv=None, clock=time.monotonic, sleep=time.sleep):
    parser = argparse.ArgumentParser(description="Guided resonance breathing in the terminal.")
    parser.add_argument("--week", type=int, default=FIRST_WEEK,
                        help=f"Protocol week ({FIRST_WEEK}-{LAST_WEEK})")
    parser.add_argument("--kind", choices=[SessionKind.QUICK.value, SessionKind.FULL.value],
                        default=SessionKind.FULL.value)
    parser.add_argument("--minutes", type=float, default=None,
                        help="Override the session length")
    parser.add_argument("--fps", type=int, default=30)
    parser.add_argument("--record", action="store_true",
                        help="Save the finished session to the history database")
    parser.add_argument("--calibrate", action="store_true",
                        help="Run the one-minute calibration and store the measured rate")
    args = parser.parse_args(argv)

    logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")
    fps = max(1, args.fps)

    if args.calibrate:
        started_at = datetime.now()
        result = run_calibration(Calibration(), clock=clock, fps=fps, sleep=sleep)
        if result is None:
            return 1
        summary = SessionSummary(
            started_at=started_at,
            duration_seconds=int(CALIBRATION_SECONDS),
            breaths=result.breath_count,
            week=args.week,
            kind=SessionKind.CALIBRATION,
        )
        _persist(summary=summary, calibration_result=result)
        return 0

    try:
        pattern = pattern_for_week(args.week)
    except ValueError as exc:
        parser.error(str(exc))

    target = int(args.minutes * 60) if args.minutes else None
    session = BreathingSession(pattern, kind=args.kind, week=args.week,
                               target_seconds=target, clock=clock)
    summary = run(session, fps=fps, sleep=sleep)

    if args.record:
        _persist(summary=summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
