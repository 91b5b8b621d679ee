"""
Crossfade concatenation - Scene offsets and the episode combine request.

Adjacent scenes overlap by a fixed crossfade F, so each scene starts F
seconds before the previous one ends:

    offset[0] = 0
    offset[i] = offset[i-1] + duration[i-1] - F
    total     = offset[N-1] + duration[N-1]

A single scene is never shortened (F is unused) and zero scenes is a
structural error. Arithmetic runs at full precision; values are rounded
to milliseconds only when SceneSpans are produced.

The combine itself is one sequential request: N-1 binary crossfades folded
left to right. It is atomic. The engine writes to a temporary sibling of
the destination, which is moved into place only after success.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Sequence

from mixdown.engine.base import AudioEngine
from mixdown.errors import StructuralError

logger = logging.getLogger(__name__)


def _ms(value: float) -> float:
    return round(value, 3)


@dataclass(frozen=True)
class SceneSpan:
    """Placement of one scene in the episode. Immutable once produced."""
    scene_id: str
    offset: float
    duration: float

    @property
    def end(self) -> float:
        return _ms(self.offset + self.duration)

    def to_dict(self) -> dict[str, Any]:
        return {"scene_id": self.scene_id, "offset": self.offset, "duration": self.duration}


@dataclass(frozen=True)
class CrossfadeRequest:
    """Sequential crossfade-combine request for the engine.

    ``sources`` are folded left to right: ((s0 x s1) x s2) x ...
    """
    sources: tuple[str, ...]
    output: str
    duration: float
    curve: str = "tri"

    @property
    def steps(self) -> int:
        return max(0, len(self.sources) - 1)


@dataclass(frozen=True)
class EpisodeLayout:
    """Offsets for every scene plus the total episode length."""
    spans: tuple[SceneSpan, ...]
    total_duration: float
    crossfade: float

    @property
    def offsets(self) -> list[float]:
        return [s.offset for s in self.spans]


def compute_layout(
    scenes: Sequence[tuple[str, float]],
    crossfade: float,
) -> EpisodeLayout:
    """Lay out scenes with crossfade-aware offsets.

    Args:
        scenes: Ordered (scene_id, duration_seconds) pairs.
        crossfade: Crossfade duration F shared by all adjacent pairs.

    Raises:
        StructuralError: No scenes, a scene with non-positive duration, or a
            scene too short to crossfade.
        ValueError: Negative crossfade.

    Example:
        >>> layout = compute_layout([("a", 10), ("b", 8), ("c", 12)], 1.5)
        >>> layout.offsets, layout.total_duration
        ([0.0, 8.5, 15.0], 27.0)
    """
    if not scenes:
        raise StructuralError("No scenes to concatenate", kind="no_scenes")
    if crossfade < 0:
        raise ValueError(f"crossfade must be >= 0, got {crossfade}")
    empty = [sid for sid, duration in scenes if duration <= 0]
    if empty:
        raise StructuralError(
            f"Scenes with non-positive duration: {', '.join(empty)}",
            kind="invalid_scene_duration",
            details={"scenes": empty, "durations": {sid: d for sid, d in scenes if d <= 0}},
        )

    if len(scenes) == 1:
        scene_id, duration = scenes[0]
        span = SceneSpan(scene_id, 0.0, _ms(duration))
        return EpisodeLayout((span,), _ms(duration), crossfade)

    short = [sid for sid, duration in scenes if duration < crossfade]
    if short:
        raise StructuralError(
            f"Scenes shorter than the {crossfade:g}s crossfade: {', '.join(short)}",
            kind="scene_shorter_than_crossfade",
            details={"scenes": short, "crossfade": crossfade},
        )

    offsets = [0.0]
    for _, duration in scenes[:-1]:
        offsets.append(offsets[-1] + duration - crossfade)
    total = offsets[-1] + scenes[-1][1]

    spans = tuple(
        SceneSpan(scene_id, _ms(offset), _ms(duration))
        for (scene_id, duration), offset in zip(scenes, offsets)
    )
    return EpisodeLayout(spans, _ms(total), crossfade)


def _staging_path(output: Path) -> Path:
    return output.with_name(f".{output.stem}.{uuid.uuid4().hex[:8]}.part{output.suffix}")


class Crossfader:
    """Issues the atomic crossfade-combine request.

    Example:
        crossfader = Crossfader(engine, duration=1.5, curve="tri")
        await crossfader.combine(["s1.m4a", "s2.m4a"], "episode.m4a")
    """

    def __init__(
        self,
        engine: AudioEngine,
        duration: float = 1.5,
        curve: str = "tri",
        call: Callable[[str, Callable[[], Awaitable[Any]]], Awaitable[Any]] | None = None,
    ):
        if duration < 0:
            raise ValueError(f"duration must be >= 0, got {duration}")
        self.engine = engine
        self.duration = duration
        self.curve = curve
        self._call = call

    def request_for(self, sources: Sequence[str | Path], output: str | Path) -> CrossfadeRequest:
        return CrossfadeRequest(
            sources=tuple(str(s) for s in sources),
            output=str(output),
            duration=self.duration,
            curve=self.curve,
        )

    async def combine(self, sources: Sequence[str | Path], output: str | Path) -> Path:
        """Combine ``sources`` into ``output``. Nothing is written on failure."""
        if not sources:
            raise StructuralError("No scenes to concatenate", kind="no_scenes")

        destination = Path(output)
        destination.parent.mkdir(parents=True, exist_ok=True)
        staging = _staging_path(destination)

        try:
            if len(sources) == 1:
                logger.info("Single scene - copying directly (no crossfade needed)")
                await asyncio.to_thread(shutil.copyfile, str(sources[0]), str(staging))
            else:
                request = self.request_for(sources, staging)
                logger.info(
                    f"Crossfading {len(sources)} scenes ({request.steps} fades, "
                    f"{self.duration:g}s {self.curve})"
                )
                if self._call is None:
                    await self.engine.crossfade_combine(request)
                else:
                    await self._call(
                        "crossfade_combine",
                        lambda: self.engine.crossfade_combine(request),
                    )
            if not staging.exists():
                raise FileNotFoundError(f"Engine produced no output at {staging}")
            os.replace(staging, destination)
        except BaseException:
            staging.unlink(missing_ok=True)
            raise

        return destination


__all__ = [
    "SceneSpan",
    "CrossfadeRequest",
    "EpisodeLayout",
    "compute_layout",
    "Crossfader",
]
