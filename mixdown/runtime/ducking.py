"""
Adaptive Ducking - Music attenuation driven by the dialogue envelope.

The dialogue's RMS level is sampled once per fixed hop. Each sample maps
to a duck amount through hard thresholds:

    rms_db > -30         -> -7 dB  (loud speech)
    -45 < rms_db <= -30  -> -3 dB  (normal speech)
    rms_db <= -45        ->  0 dB  (silence, no duck)

Every hop with a non-zero duck becomes one DuckSegment spanning
[i*hop, (i+1)*hop). Adjacent equal segments are intentionally not merged:
the curve is a pure function of sample order and values, with no hidden
state.

Thresholds come from DuckingThresholds and can be tuned per product.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np

from mixdown.config import DuckingThresholds

# Level reported for digital silence.
SILENCE_DB = -120.0

_RMS_LINE = re.compile(r"(?:RMS level(?: dB)?\s*:|RMS_level=)\s*(\S+)")
_RMS_METADATA_LINE = re.compile(r"lavfi\.astats\.Overall\.RMS_level=(\S+)")


@dataclass(frozen=True)
class RMSSample:
    """Dialogue RMS level at time ``t`` (seconds)."""
    t: float
    rms_db: float

    def __post_init__(self):
        if self.t < 0:
            raise ValueError(f"t must be >= 0, got {self.t}")


@dataclass(frozen=True)
class DuckSegment:
    """Attenuation to apply to music over [t0, t1)."""
    t0: float
    t1: float
    duck_db: float

    def __post_init__(self):
        if self.duck_db > 0:
            raise ValueError(f"duck_db must be <= 0, got {self.duck_db}")
        if self.t1 <= self.t0:
            raise ValueError(f"segment must have t1 > t0, got [{self.t0}, {self.t1})")

    @property
    def duration(self) -> float:
        return self.t1 - self.t0


def build_duck_curve(
    samples: Sequence[RMSSample],
    thresholds: DuckingThresholds | None = None,
) -> list[float]:
    """Duck amount (dB, <= 0) for every sample, in input order."""
    thresholds = thresholds or DuckingThresholds()
    if not samples:
        return []

    levels = np.array([s.rms_db for s in samples], dtype=np.float64)
    curve = np.select(
        [levels > thresholds.loud_db, levels > thresholds.quiet_db],
        [thresholds.loud_duck_db, thresholds.normal_duck_db],
        default=0.0,
    )
    return [float(v) for v in curve]


def duck_segments(
    samples: Sequence[RMSSample],
    hop: float,
    thresholds: DuckingThresholds | None = None,
) -> list[DuckSegment]:
    """Convert an RMS envelope into duck segments.

    Args:
        samples: One RMSSample per hop, starting at t=0.
        hop: Hop size in seconds.
        thresholds: Level-to-duck mapping.

    Returns:
        One DuckSegment per sample index with a non-zero duck.

    Example:
        >>> samples = [RMSSample(0.0, -20), RMSSample(0.1, -35), RMSSample(0.2, -50)]
        >>> [(s.duck_db, s.t0, s.t1) for s in duck_segments(samples, 0.1)]
        [(-7.0, 0.0, 0.1), (-3.0, 0.1, 0.2)]
    """
    if hop <= 0:
        raise ValueError(f"hop must be > 0, got {hop}")

    segments = []
    for i, duck_db in enumerate(build_duck_curve(samples, thresholds)):
        if duck_db != 0:
            segments.append(DuckSegment(t0=i * hop, t1=(i + 1) * hop, duck_db=duck_db))
    return segments


def parse_astats_rms(report: str, hop: float) -> list[RMSSample]:
    """Parse per-hop RMS lines ("RMS level: x" or "...RMS_level=x") from a stats report.

    Each matching line is one hop; timestamps are assigned as i*hop.
    Unparseable values count as silence.
    """
    return _parse_rms_lines(report, hop, _RMS_LINE)


def parse_rms_metadata(report: str, hop: float) -> list[RMSSample]:
    """Parse only per-frame ``lavfi.astats.Overall.RMS_level=x`` lines.

    The end-of-stream astats summary ("RMS level dB: x" per channel and
    overall) is ignored, so the result holds exactly one sample per frame.
    """
    return _parse_rms_lines(report, hop, _RMS_METADATA_LINE)


def _parse_rms_lines(report: str, hop: float, pattern: re.Pattern) -> list[RMSSample]:
    samples = []
    for line in report.splitlines():
        match = pattern.search(line)
        if not match:
            continue
        try:
            value = float(match.group(1))
        except ValueError:
            value = SILENCE_DB
        if math.isnan(value):
            value = SILENCE_DB
        samples.append(RMSSample(t=len(samples) * hop, rms_db=max(value, SILENCE_DB)))
    return samples


def rms_envelope(pcm: np.ndarray, sample_rate: int, hop: float) -> list[RMSSample]:
    """Compute an RMS envelope from PCM audio.

    Args:
        pcm: Float PCM samples, mono (samples,) or multichannel (samples, channels).
        sample_rate: Sample rate in Hz.
        hop: Hop size in seconds.

    Returns:
        One RMSSample per hop. A trailing partial hop is included.
    """
    if hop <= 0:
        raise ValueError(f"hop must be > 0, got {hop}")
    audio = np.asarray(pcm, dtype=np.float64)
    if audio.ndim > 1:
        audio = np.mean(audio, axis=1)

    hop_samples = max(1, int(round(hop * sample_rate)))
    samples = []
    for i, start in enumerate(range(0, len(audio), hop_samples)):
        block = audio[start:start + hop_samples]
        mean_square = float(np.mean(block ** 2))
        level = 10 * np.log10(mean_square) if mean_square > 0 else SILENCE_DB
        samples.append(RMSSample(t=i * hop, rms_db=max(float(level), SILENCE_DB)))
    return samples


def total_ducked_seconds(segments: Iterable[DuckSegment]) -> float:
    """Total time the music spends attenuated."""
    return sum(s.duration for s in segments)


__all__ = [
    "SILENCE_DB",
    "RMSSample",
    "DuckSegment",
    "build_duck_curve",
    "duck_segments",
    "parse_astats_rms",
    "parse_rms_metadata",
    "rms_envelope",
    "total_ducked_seconds",
]
