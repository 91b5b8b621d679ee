"""
Mixdown - Scene mixing and episode assembly for narrated audio.

Architecture:
    inputs → GraphBuilder → GraphValidator → AudioEngine → LoudnessNormalizer
    scenes → compute_layout → Crossfader → PlaybackManifest
    events → TimelineValidator → auto_fix_timeline

The audio engine is a black box behind the AudioEngine protocol. This
package decides WHAT to do (gains, duck segments, loudness passes,
crossfade offsets) and checks that it is consistent; the engine does the
signal processing.

Public API (stable):
    SceneMixer          - Mix one scene or many, concurrently
    EpisodeExporter     - Crossfade mixed scenes into an episode
    TimelineValidator   - Overlap, masking, ordering and orphan checks
    GraphValidator      - Label, cycle and reachability checks on mix graphs
    compute_layout      - Crossfade-aware scene offsets
    duck_segments       - Dialogue envelope → music duck segments
    FFmpegEngine        - Reference engine over ffmpeg/ffprobe

Example:
    from mixdown import SceneMixer, MixRequest, FFmpegEngine

    mixer = SceneMixer(FFmpegEngine())
    manifest = await mixer.mix_scene(
        MixRequest.from_paths("p1", "s1", "dialogue.wav", music="bed.wav")
    )
    print(manifest.lufs_i, manifest.operations)

    from mixdown import compute_layout
    layout = compute_layout([("s1", 10.0), ("s2", 8.0), ("s3", 12.0)], 1.5)
    layout.offsets          # [0.0, 8.5, 15.0]
    layout.total_duration   # 27.0
"""

from mixdown.errors import (
    EngineError,
    EngineTimeoutError,
    MixdownError,
    PermanentEngineError,
    RetryableEngineError,
    StructuralError,
)
from mixdown.config import (
    DuckingThresholds,
    ExportConfig,
    LoudnessTargets,
    MixConfig,
    RetryPolicy,
    TimelineConfig,
)
from mixdown.validation import (
    GraphValidationException,
    ValidationIssue,
    ValidationResult,
    ValidationSeverity,
)
from mixdown.graph import (
    AudioInput,
    GraphBuilder,
    GraphValidator,
    MixGraph,
    MixPlan,
    Role,
    validate_graph,
)
from mixdown.runtime import (
    DuckSegment,
    EventType,
    RMSSample,
    SceneSpan,
    TimelineEvent,
    TimelineValidator,
    auto_fix_timeline,
    compute_layout,
    duck_segments,
    validate_timeline,
)
from mixdown.formats import (
    LoudnessMeasurement,
    LoudnessNormalizer,
    NormalizationReport,
)
from mixdown.engine import AudioEngine, EngineCaller, with_retry
from mixdown.engine.backends import FFmpegEngine
from mixdown.scenes import (
    EpisodeExporter,
    ExportScene,
    MixManifest,
    MixRequest,
    PlaybackManifest,
    SceneMixer,
    SceneOutcome,
)
from mixdown.adapters import LocalArtifactPublisher, LocalManifestStore

__version__ = "1.0.0"

__all__ = [
    # Errors
    "MixdownError",
    "StructuralError",
    "EngineError",
    "RetryableEngineError",
    "EngineTimeoutError",
    "PermanentEngineError",
    "GraphValidationException",
    # Config
    "LoudnessTargets",
    "DuckingThresholds",
    "TimelineConfig",
    "RetryPolicy",
    "MixConfig",
    "ExportConfig",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    "ValidationSeverity",
    # Graph
    "AudioInput",
    "Role",
    "MixGraph",
    "MixPlan",
    "GraphBuilder",
    "GraphValidator",
    "validate_graph",
    # Runtime
    "RMSSample",
    "DuckSegment",
    "duck_segments",
    "SceneSpan",
    "compute_layout",
    "EventType",
    "TimelineEvent",
    "TimelineValidator",
    "validate_timeline",
    "auto_fix_timeline",
    # Loudness
    "LoudnessMeasurement",
    "LoudnessNormalizer",
    "NormalizationReport",
    # Engine
    "AudioEngine",
    "EngineCaller",
    "with_retry",
    "FFmpegEngine",
    # Scenes
    "SceneMixer",
    "MixRequest",
    "MixManifest",
    "SceneOutcome",
    "EpisodeExporter",
    "ExportScene",
    "PlaybackManifest",
    # Storage
    "LocalManifestStore",
    "LocalArtifactPublisher",
    # Version
    "__version__",
]
