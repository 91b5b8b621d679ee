"""
Local audio analysis helpers.

Reads audio files directly with soundfile. Useful when a file is local and
an engine round-trip is unnecessary, and for test fixtures.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import soundfile as sf

from mixdown.runtime.ducking import RMSSample, rms_envelope


def audio_duration(path: str | Path) -> float:
    """Duration of an audio file in seconds."""
    info = sf.info(str(path))
    if info.samplerate <= 0:
        raise ValueError(f"Invalid sample rate in {path}")
    return info.frames / info.samplerate


def rms_envelope_from_file(path: str | Path, hop: float = 0.1) -> list[RMSSample]:
    """RMS envelope of an audio file, one sample per hop."""
    data, sample_rate = sf.read(str(path), dtype="float32", always_2d=False)
    return rms_envelope(np.asarray(data), sample_rate, hop)


__all__ = ["audio_duration", "rms_envelope_from_file"]
