"""
Audio format module - Loudness normalization and local analysis.
"""

from mixdown.formats.loudness import (
    LoudnessMeasurement,
    LoudnessNormalizer,
    NormalizationReport,
    UNMEASURED_DEFAULTS,
    parse_loudnorm_report,
)
from mixdown.formats.analysis import audio_duration, rms_envelope_from_file

__all__ = [
    "LoudnessMeasurement",
    "LoudnessNormalizer",
    "NormalizationReport",
    "UNMEASURED_DEFAULTS",
    "parse_loudnorm_report",
    "audio_duration",
    "rms_envelope_from_file",
]
