"""
Engine Base - AudioEngine protocol.

The engine is the black box that does the actual signal processing. The
mixdown package never touches samples on the mix path; it hands the engine
validated requests and gets signal references back.

ENGINE CONTRACT:
    Engines MUST:
        - Accept only graphs that passed GraphValidator
        - Lower the typed MixGraph to their own representation internally
        - Raise EngineError subclasses, classifying failures as retryable
          (rate limit, transient server error) or permanent (malformed
          request, rejection)
        - Return a parsed LoudnessMeasurement, or None when the report
          could not be parsed

    Engines MUST NOT:
        - Modify the input graph
        - Hold locks across calls (scenes run concurrently)
        - Apply their own retries (the caller owns the retry policy)

All methods are coroutines; engine calls are long-running.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mixdown.config import LoudnessTargets
    from mixdown.formats.loudness import LoudnessMeasurement
    from mixdown.graph.types import MixGraph
    from mixdown.runtime.crossfade import CrossfadeRequest
    from mixdown.runtime.ducking import RMSSample


@runtime_checkable
class AudioEngine(Protocol):
    """Protocol for audio-processing engines."""

    @property
    def name(self) -> str:
        """Engine identifier (e.g., 'ffmpeg', 'mock')."""
        ...

    async def analyze_rms(self, path: str, hop: float) -> list[RMSSample]:
        """RMS level of ``path`` per hop, starting at t=0."""
        ...

    async def execute_graph(self, graph: MixGraph, output: str) -> None:
        """Run a validated graph over its raw inputs, writing ``output``."""
        ...

    async def copy(self, source: str, output: str) -> None:
        """Pass a signal through unchanged."""
        ...

    async def measure_loudness(
        self, path: str, targets: LoudnessTargets
    ) -> LoudnessMeasurement | None:
        """Loudness analysis pass."""
        ...

    async def normalize(
        self,
        source: str,
        output: str,
        targets: LoudnessTargets,
        measurement: LoudnessMeasurement,
    ) -> None:
        """Loudness apply pass using measured values."""
        ...

    async def crossfade_combine(self, request: CrossfadeRequest) -> None:
        """N-ary sequential crossfade into ``request.output``."""
        ...

    async def probe_duration(self, path: str) -> float:
        """Duration of a signal in seconds."""
        ...


__all__ = ["AudioEngine"]
