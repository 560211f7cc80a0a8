"""
Tone rendering for audio breathing feedback.

Renders the pitch curve of tone_frequency_for over whole breath cycles as a
phase-continuous sine, so a client can loop it alongside the animation.
"""
import io
import logging
import wave

import numpy as np

from resonance.breathing import BreathPattern, Phase, tone_frequency_for, validate_pattern

logger = logging.getLogger(__name__)

FADE_SECONDS = 0.01


def _cycle_frequencies(pattern: BreathPattern, sample_rate: int) -> np.ndarray:
    segments = []
    for phase in Phase:
        duration = pattern.duration_of(phase)
        if duration <= 0:
            continue
        n = int(round(duration * sample_rate))
        progress = np.arange(n) / n
        segments.append(np.broadcast_to(tone_frequency_for(phase, progress), progress.shape))
    return np.concatenate(segments)


def render_cycle(
    pattern: BreathPattern,
    cycles: int = 1,
    sample_rate: int = 22050,
    volume: float = 0.3,
) -> np.ndarray:
    validate_pattern(pattern)
    if cycles < 1:
        raise ValueError(f"cycles must be at least 1, got {cycles}")
    if not 0.0 <= volume <= 1.0:
        raise ValueError(f"volume must be within [0, 1], got {volume}")

    freqs = np.tile(_cycle_frequencies(pattern, sample_rate), cycles)
    phase = 2 * np.pi * np.cumsum(freqs) / sample_rate
    samples = volume * np.sin(phase)

    fade = min(int(FADE_SECONDS * sample_rate), samples.size // 2)
    if fade:
        ramp = np.linspace(0.0, 1.0, fade)
        samples[:fade] *= ramp
        samples[-fade:] *= ramp[::-1]

    logger.debug(
        "Rendered %d cycle(s), %.1fs of tone", cycles, samples.size / sample_rate
    )
    return samples


def to_wav_bytes(samples: np.ndarray, sample_rate: int = 22050) -> bytes:
    pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype("<i2")
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm.tobytes())
    return buf.getvalue()
