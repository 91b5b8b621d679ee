"""
Test Fixtures - Audio files and timelines for tests.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import soundfile as sf

from mixdown.runtime.timeline import EventType, TimelineEvent


def create_test_audio(
    duration: float = 1.0,
    sample_rate: int = 48000,
    frequency: float = 440.0,
    amplitude: float = 0.5,
) -> np.ndarray:
    """Mono sine tone. Amplitude 0 gives silence."""
    num_samples = int(duration * sample_rate)
    t = np.arange(num_samples, dtype=np.float32) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


def write_test_audio(path: str | Path, audio: np.ndarray, sample_rate: int = 48000) -> Path:
    """Write PCM to a WAV file and return its path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    sf.write(str(path), audio, sample_rate, subtype="PCM_16")
    return path


def speech_like_audio(
    segments: list[tuple[float, float]],
    sample_rate: int = 48000,
) -> np.ndarray:
    """Concatenate (duration, amplitude) blocks of tone.

    Handy for building envelopes with known loud, quiet and silent hops.
    """
    blocks = [create_test_audio(d, sample_rate, amplitude=a) for d, a in segments]
    return np.concatenate(blocks) if blocks else np.zeros(0, dtype=np.float32)


def sample_timeline() -> list[TimelineEvent]:
    """A clean scene: one music bed, ducked under two lines, plus ambience."""
    return [
        TimelineEvent(EventType.AMBIENCE_IN, 0.0, cue_id="rain", gain_db=-22.0),
        TimelineEvent(EventType.MUSIC_IN, 0.0, cue_id="theme", duck_db=-8.0),
        TimelineEvent(EventType.DIALOGUE_IN, 1.0, line_id="l1"),
        TimelineEvent(EventType.DIALOGUE_OUT, 4.0, line_id="l1"),
        TimelineEvent(EventType.DIALOGUE_IN, 5.0, line_id="l2"),
        TimelineEvent(EventType.DIALOGUE_OUT, 8.0, line_id="l2"),
        TimelineEvent(EventType.MUSIC_OUT, 10.0, cue_id="theme", fade=2.0),
        TimelineEvent(EventType.AMBIENCE_OUT, 10.0, cue_id="rain"),
    ]


__all__ = [
    "create_test_audio",
    "write_test_audio",
    "speech_like_audio",
    "sample_timeline",
]
