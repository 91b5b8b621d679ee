"""
Mixdown configuration.

All numeric thresholds used by the mix and timeline checks live here so
they can be tuned per product without touching the algorithms.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return float(value)


@dataclass(frozen=True)
class LoudnessTargets:
    """EBU R128 loudness targets.

    Attributes:
        integrated_lufs: Target integrated loudness (LUFS).
        true_peak_db: True peak ceiling (dBTP).
        lra: Target loudness range (LU).
    """
    integrated_lufs: float = -16.0
    true_peak_db: float = -1.0
    lra: float = 11.0

    def __post_init__(self):
        if self.true_peak_db > 0:
            raise ValueError(f"true_peak_db must be <= 0, got {self.true_peak_db}")
        if self.lra <= 0:
            raise ValueError(f"lra must be > 0, got {self.lra}")


@dataclass(frozen=True)
class DuckingThresholds:
    """Mapping from dialogue RMS level to music attenuation.

    rms_db > loud_db            -> loud_duck_db
    quiet_db < rms_db <= loud_db -> normal_duck_db
    rms_db <= quiet_db          -> 0 (no ducking)
    """
    loud_db: float = -30.0
    quiet_db: float = -45.0
    loud_duck_db: float = -7.0
    normal_duck_db: float = -3.0

    def __post_init__(self):
        if self.quiet_db >= self.loud_db:
            raise ValueError("quiet_db must be below loud_db")
        if self.loud_duck_db > 0 or self.normal_duck_db > 0:
            raise ValueError("duck amounts must be <= 0 dB")


@dataclass(frozen=True)
class TimelineConfig:
    """Thresholds for timeline overlap and masking checks."""

    default_fade_window: float = 2.0
    """Crossfade allowance (seconds) when a cue declares no out fade."""

    min_music_duck_db: float = 6.0
    """Minimum music ducking magnitude under dialogue."""

    max_ambience_gain_db: float = -18.0
    """Maximum ambience gain under dialogue."""

    def __post_init__(self):
        if self.default_fade_window < 0:
            raise ValueError("default_fade_window must be >= 0")
        if self.min_music_duck_db < 0:
            raise ValueError("min_music_duck_db is a magnitude and must be >= 0")


@dataclass(frozen=True)
class RetryPolicy:
    """Capped exponential backoff with jitter."""

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    jitter: float = 0.2

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay < 0 or self.max_delay < self.initial_delay:
            raise ValueError("delays must satisfy 0 <= initial_delay <= max_delay")
        if not 0.0 <= self.jitter <= 1.0:
            raise ValueError(f"jitter must be 0.0-1.0, got {self.jitter}")

    def delay_for(self, attempt: int) -> float:
        """Base delay (before jitter) for a zero-based attempt number."""
        return min(self.initial_delay * (2 ** attempt), self.max_delay)


@dataclass
class MixConfig:
    """Per-scene mix configuration.

    Example:
        config = MixConfig(music_gain_db=-14.0, hop_seconds=0.05)
    """
    music_gain_db: float = -12.0
    ambience_gain_db: float = -18.0
    hop_seconds: float = 0.1
    targets: LoudnessTargets = field(default_factory=LoudnessTargets)
    ducking: DuckingThresholds = field(default_factory=DuckingThresholds)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    engine_timeout: float = field(
        default_factory=lambda: _env_float("MIXDOWN_ENGINE_TIMEOUT", 600.0)
    )
    output_dir: Path = field(
        default_factory=lambda: Path(os.environ.get("MIXDOWN_OUTPUT_DIR", "output"))
    )

    def __post_init__(self):
        self.output_dir = Path(self.output_dir)
        if self.hop_seconds <= 0:
            raise ValueError(f"hop_seconds must be > 0, got {self.hop_seconds}")
        if self.engine_timeout <= 0:
            raise ValueError(f"engine_timeout must be > 0, got {self.engine_timeout}")


@dataclass
class ExportConfig:
    """Episode export configuration."""

    crossfade_seconds: float = 1.5
    fade_curve: str = "tri"
    engine_timeout: float = field(
        default_factory=lambda: _env_float("MIXDOWN_ENGINE_TIMEOUT", 600.0)
    )
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def __post_init__(self):
        if self.crossfade_seconds < 0:
            raise ValueError(
                f"crossfade_seconds must be >= 0, got {self.crossfade_seconds}"
            )
        if not self.fade_curve:
            raise ValueError("fade_curve must be a non-empty curve name")


__all__ = [
    "LoudnessTargets",
    "DuckingThresholds",
    "TimelineConfig",
    "RetryPolicy",
    "MixConfig",
    "ExportConfig",
]
