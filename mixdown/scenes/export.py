"""
Episode Exporter - Mixed scenes to one crossfaded episode.

Flow:
    structural checks -> duration probing -> offset computation
    -> atomic crossfade concatenation -> playback manifest
    -> non-fatal publish (artifact URL, manifest store)

The playback manifest's offsets are where each scene starts in the
finished episode, accounting for the crossfade overlap.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Sequence

from mixdown.adapters.storage import ArtifactPublisher, ManifestStore
from mixdown.config import ExportConfig
from mixdown.engine.base import AudioEngine
from mixdown.engine.retry import EngineCaller
from mixdown.errors import StructuralError
from mixdown.runtime.crossfade import Crossfader, SceneSpan, compute_layout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportScene:
    """A mixed scene to place in the episode. Duration is probed if absent."""
    scene_id: str
    path: str
    duration: float | None = None


@dataclass
class PlaybackManifest:
    """Where each scene sits in the finished episode."""
    project_id: str
    scenes: list[SceneSpan]
    total_duration: float
    crossfade_duration: float
    audio_url: str | None = None
    skipped: list[str] = field(default_factory=list)
    created_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "project_id": self.project_id,
            "scenes": [s.to_dict() for s in self.scenes],
            "total_duration": self.total_duration,
            "crossfade_duration": self.crossfade_duration,
            "skipped": list(self.skipped),
            "created_at": self.created_at,
        }
        if self.audio_url is not None:
            data["audio_url"] = self.audio_url
        return data


class EpisodeExporter:
    """
    Concatenate mixed scenes into an episode.

    Example:
        exporter = EpisodeExporter(FFmpegEngine(), ExportConfig(crossfade_seconds=1.5))
        manifest = await exporter.export(
            "p1",
            [ExportScene("s1", "s1.m4a"), ExportScene("s2", "s2.m4a", duration=8.0)],
            "output/p1/episode.m4a",
        )
    """

    def __init__(
        self,
        engine: AudioEngine,
        config: ExportConfig | None = None,
        store: ManifestStore | None = None,
        publisher: ArtifactPublisher | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.engine = engine
        self.config = config or ExportConfig()
        self.store = store
        self.publisher = publisher
        self._call = EngineCaller(self.config.retry, self.config.engine_timeout, sleep=sleep)
        self.crossfader = Crossfader(
            engine,
            duration=self.config.crossfade_seconds,
            curve=self.config.fade_curve,
            call=self._call,
        )

    async def _duration(self, scene: ExportScene) -> float:
        if scene.duration is not None:
            return scene.duration
        return await self._call(
            "probe_duration", lambda: self.engine.probe_duration(scene.path)
        )

    async def export(
        self,
        project_id: str,
        scenes: Sequence[ExportScene],
        out_path: str | Path,
    ) -> PlaybackManifest:
        """Export an episode.

        Raises:
            StructuralError: No scenes, a missing scene file, a scene whose
                duration is not positive, or a scene shorter than the crossfade.
            EngineError: Probing or concatenation failed after retries.
        """
        if not scenes:
            raise StructuralError("No scenes to concatenate", kind="no_scenes")
        missing = [s.scene_id for s in scenes if not Path(s.path).exists()]
        if missing:
            raise StructuralError(
                f"Scene file not found for: {', '.join(missing)}",
                kind="missing_scene_file",
                details={"scenes": missing},
            )

        logger.info(
            f"Exporting {len(scenes)} scenes for {project_id} "
            f"({self.config.crossfade_seconds:g}s {self.config.fade_curve} crossfades)"
        )
        durations = await asyncio.gather(*(self._duration(s) for s in scenes))
        layout = compute_layout(
            [(s.scene_id, d) for s, d in zip(scenes, durations)],
            self.config.crossfade_seconds,
        )

        output = await self.crossfader.combine([s.path for s in scenes], out_path)
        logger.info(f"Episode written to {output} ({layout.total_duration:g}s)")

        manifest = PlaybackManifest(
            project_id=project_id,
            scenes=list(layout.spans),
            total_duration=layout.total_duration,
            crossfade_duration=self.config.crossfade_seconds,
        )
        await self._publish(project_id, str(output), manifest)
        return manifest

    async def _publish(self, project_id: str, output: str, manifest: PlaybackManifest) -> None:
        if self.publisher is not None:
            try:
                manifest.audio_url = await self.publisher.publish(project_id, output)
            except Exception as e:
                logger.warning(f"Episode for {project_id} not published: {e}")
                manifest.skipped.append("artifact_publish")

        if self.store is not None:
            try:
                await self.store.save_playback_manifest(project_id, manifest.to_dict())
            except Exception as e:
                logger.warning(f"Playback manifest for {project_id} not saved: {e}")
                manifest.skipped.append("manifest_store")


__all__ = ["ExportScene", "PlaybackManifest", "EpisodeExporter"]
