"""
Scene Mixer - One scene from raw inputs to a normalized, manifested mix.

Pipeline per scene:
    1. Structural checks (dialogue present, one input per role)
    2. Dialogue-only short-circuit, or:
       RMS envelope -> duck segments -> graph build -> graph validation
       -> graph execution
    3. Two-pass loudness normalization + verification
    4. Manifest, then a non-fatal publish

Every engine call goes through an EngineCaller (per-call timeout plus
retry). Scenes share no mutable state, so mix_scenes() runs them
concurrently and one scene's failure never cancels its siblings.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Sequence

from mixdown.adapters.storage import ManifestStore
from mixdown.config import MixConfig
from mixdown.engine.base import AudioEngine
from mixdown.engine.retry import EngineCaller
from mixdown.formats.loudness import LoudnessNormalizer
from mixdown.graph.builder import GraphBuilder, index_inputs
from mixdown.graph.types import AudioInput, Role
from mixdown.graph.validator import GraphValidator
from mixdown.runtime.ducking import duck_segments
from mixdown.validation import GraphValidationException

logger = logging.getLogger(__name__)


@dataclass
class MixRequest:
    """Everything needed to mix one scene.

    ``out_wav`` (pre-normalization) and ``out_final`` (normalized) default
    to ``{output_dir}/{project_id}/scenes/{scene_id}.wav|.m4a``.
    """
    project_id: str
    scene_id: str
    inputs: list[AudioInput]
    out_wav: str | None = None
    out_final: str | None = None

    @classmethod
    def from_paths(
        cls,
        project_id: str,
        scene_id: str,
        dialogue: str,
        music: str | None = None,
        ambience: str | None = None,
        music_gain_db: float | None = None,
        ambience_gain_db: float | None = None,
        **kwargs: Any,
    ) -> MixRequest:
        inputs = [AudioInput(Role.DIALOGUE, dialogue)]
        if music:
            inputs.append(AudioInput(Role.MUSIC, music, music_gain_db))
        if ambience:
            inputs.append(AudioInput(Role.AMBIENCE, ambience, ambience_gain_db))
        return cls(project_id, scene_id, inputs, **kwargs)


@dataclass
class MixManifest:
    """Record of what was done to a scene."""
    scene_id: str
    inputs: dict[str, list[dict[str, Any]]]
    operations: list[str] = field(default_factory=list)
    lufs_i: float | None = None
    true_peak_db: float | None = None
    measurement_available: bool = True
    skipped: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scene_id": self.scene_id,
            "inputs": {role: [dict(i) for i in items] for role, items in self.inputs.items()},
            "operations": list(self.operations),
            "lufs_i": self.lufs_i,
            "true_peak_db": self.true_peak_db,
            "measurement_available": self.measurement_available,
            "skipped": list(self.skipped),
        }


@dataclass
class SceneOutcome:
    """Per-scene result of a batch mix."""
    scene_id: str
    manifest: MixManifest | None = None
    output: str | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"scene_id": self.scene_id, "ok": self.ok}
        if self.manifest is not None:
            data["manifest"] = self.manifest.to_dict()
            data["output"] = self.output
        if self.error is not None:
            to_dict = getattr(self.error, "to_dict", None)
            data["error"] = to_dict() if to_dict else {"kind": "internal", "message": str(self.error)}
        return data


class SceneMixer:
    """
    Mix scenes through an audio engine.

    Example:
        mixer = SceneMixer(FFmpegEngine(), MixConfig(), store=LocalManifestStore())
        manifest = await mixer.mix_scene(
            MixRequest.from_paths("p1", "s1", "dialogue.wav", music="bed.wav")
        )
        print(manifest.lufs_i, manifest.operations)
    """

    def __init__(
        self,
        engine: AudioEngine,
        config: MixConfig | None = None,
        store: ManifestStore | None = None,
        validator: GraphValidator | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.engine = engine
        self.config = config or MixConfig()
        self.store = store
        self.validator = validator or GraphValidator()
        self.builder = GraphBuilder({
            Role.MUSIC: self.config.music_gain_db,
            Role.AMBIENCE: self.config.ambience_gain_db,
        })
        self._call = EngineCaller(self.config.retry, self.config.engine_timeout, sleep=sleep)

    def _paths(self, request: MixRequest) -> tuple[Path, Path]:
        scenes_dir = self.config.output_dir / request.project_id / "scenes"
        out_wav = Path(request.out_wav or scenes_dir / f"{request.scene_id}.wav")
        out_final = Path(request.out_final or scenes_dir / f"{request.scene_id}.m4a")
        return out_wav, out_final

    def _manifest_inputs(self, by_role: dict[Role, AudioInput]) -> dict[str, list[dict[str, Any]]]:
        entries: dict[str, list[dict[str, Any]]] = {}
        for role in Role:
            item = by_role.get(role)
            if item is None:
                entries[role.value] = []
            elif role == Role.DIALOGUE:
                entries[role.value] = [{"path": item.source}]
            else:
                entries[role.value] = [{"path": item.source, "gain_db": self.builder.gain_for(item)}]
        return entries

    async def mix_scene(self, request: MixRequest) -> MixManifest:
        """Mix one scene.

        Raises:
            StructuralError: Missing dialogue or a duplicated role.
            GraphValidationException: The planned graph failed validation.
            EngineError: An engine call failed after retries.
        """
        by_role = index_inputs(request.inputs)
        out_wav, out_final = self._paths(request)
        out_wav.parent.mkdir(parents=True, exist_ok=True)
        out_final.parent.mkdir(parents=True, exist_ok=True)

        dialogue = by_role[Role.DIALOGUE]
        segments = []
        if Role.MUSIC in by_role:
            logger.info(f"[{request.scene_id}] Analyzing dialogue envelope for adaptive ducking")
            hop = self.config.hop_seconds
            samples = await self._call(
                "analyze_rms", lambda: self.engine.analyze_rms(dialogue.source, hop)
            )
            segments = duck_segments(samples, hop, self.config.ducking)
            logger.debug(f"[{request.scene_id}] {len(segments)} duck segments from {len(samples)} hops")

        plan = self.builder.plan(request.inputs, segments, name=request.scene_id)

        if plan.dialogue_only:
            logger.info(f"[{request.scene_id}] Dialogue-only scene (no music/ambience)")
            await self._call(
                "copy", lambda: self.engine.copy(dialogue.source, str(out_wav))
            )
        else:
            result = self.validator.validate(plan.graph)
            for warning in result.warnings:
                logger.warning(f"[{request.scene_id}] Graph warning: {warning.message}")
            if not result.valid:
                logger.error(f"[{request.scene_id}] Invalid mix graph:\n{result}")
                raise GraphValidationException(result)

            await self._call(
                "execute_graph", lambda: self.engine.execute_graph(plan.graph, str(out_wav))
            )

        normalizer = LoudnessNormalizer(self.engine, self.config.targets, call=self._call)
        report = await normalizer.normalize(out_wav, out_final)

        manifest = MixManifest(
            scene_id=request.scene_id,
            inputs=self._manifest_inputs(by_role),
            operations=list(plan.operations),
            lufs_i=report.final_lufs,
            true_peak_db=report.final_true_peak_db,
            measurement_available=report.measurement_available,
        )
        await self._publish(request, manifest)
        return manifest

    async def _publish(self, request: MixRequest, manifest: MixManifest) -> None:
        if self.store is None:
            return
        try:
            await self.store.save_mix_manifest(
                request.project_id, request.scene_id, manifest.to_dict()
            )
        except Exception as e:
            logger.warning(f"[{request.scene_id}] Manifest not saved: {e}")
            manifest.skipped.append("manifest_store")

    async def _mix_one(self, request: MixRequest) -> SceneOutcome:
        try:
            manifest = await self.mix_scene(request)
        except Exception as e:
            logger.error(f"[{request.scene_id}] Mix failed: {e}")
            return SceneOutcome(request.scene_id, error=e)
        return SceneOutcome(request.scene_id, manifest=manifest, output=str(self._paths(request)[1]))

    async def mix_scenes(self, requests: Sequence[MixRequest]) -> list[SceneOutcome]:
        """Mix scenes concurrently. Outcomes are returned in request order."""
        return list(await asyncio.gather(*(self._mix_one(r) for r in requests)))


__all__ = ["MixRequest", "MixManifest", "SceneOutcome", "SceneMixer"]
