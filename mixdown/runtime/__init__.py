"""
Runtime module - Time-domain logic: ducking, crossfades and timelines.
"""

from mixdown.runtime.ducking import (
    DuckSegment,
    RMSSample,
    build_duck_curve,
    duck_segments,
    parse_astats_rms,
    parse_rms_metadata,
    rms_envelope,
)
from mixdown.runtime.crossfade import (
    CrossfadeRequest,
    Crossfader,
    EpisodeLayout,
    SceneSpan,
    compute_layout,
)
from mixdown.runtime.timeline import (
    EventType,
    TimelineEvent,
    TimelineValidator,
    auto_fix_timeline,
    validate_timeline,
)

__all__ = [
    "DuckSegment",
    "RMSSample",
    "build_duck_curve",
    "duck_segments",
    "parse_astats_rms",
    "parse_rms_metadata",
    "rms_envelope",
    "CrossfadeRequest",
    "Crossfader",
    "EpisodeLayout",
    "SceneSpan",
    "compute_layout",
    "EventType",
    "TimelineEvent",
    "TimelineValidator",
    "auto_fix_timeline",
    "validate_timeline",
]
