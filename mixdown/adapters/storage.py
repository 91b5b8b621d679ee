"""
Storage adapters - Where manifests and finished episodes go.

The mixer and exporter only see these two ports. Both are injected, and
both are side effects: a failure here is logged and recorded as skipped
by the caller, never raised past it.

Local layout (LocalManifestStore):

    {base}/{project_id}/scenes/{scene_id}-manifest.json
    {base}/{project_id}/playback-manifest.json
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class ManifestStore(Protocol):
    """Protocol for manifest persistence."""

    async def save_mix_manifest(
        self, project_id: str, scene_id: str, manifest: dict[str, Any]
    ) -> None:
        """Persist one scene's mix manifest (upsert by project and scene)."""
        ...

    async def save_playback_manifest(self, project_id: str, manifest: dict[str, Any]) -> None:
        """Persist an episode's playback manifest (upsert by project)."""
        ...


@runtime_checkable
class ArtifactPublisher(Protocol):
    """Protocol for publishing a finished audio file."""

    async def publish(self, project_id: str, path: str) -> str | None:
        """Upload ``path`` and return its public URL, if any."""
        ...


def _write_json(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    os.replace(tmp, path)


class LocalManifestStore:
    """Writes manifests as JSON files under a base directory.

    Example:
        store = LocalManifestStore("output")
        await store.save_mix_manifest("p1", "s1", manifest.to_dict())
    """

    def __init__(self, base_dir: str | Path = "output"):
        self.base_dir = Path(base_dir)

    def mix_manifest_path(self, project_id: str, scene_id: str) -> Path:
        return self.base_dir / project_id / "scenes" / f"{scene_id}-manifest.json"

    def playback_manifest_path(self, project_id: str) -> Path:
        return self.base_dir / project_id / "playback-manifest.json"

    async def save_mix_manifest(
        self, project_id: str, scene_id: str, manifest: dict[str, Any]
    ) -> None:
        path = self.mix_manifest_path(project_id, scene_id)
        await asyncio.to_thread(_write_json, path, manifest)
        logger.info(f"Saved mix manifest to {path}")

    async def save_playback_manifest(self, project_id: str, manifest: dict[str, Any]) -> None:
        path = self.playback_manifest_path(project_id)
        await asyncio.to_thread(_write_json, path, manifest)
        logger.info(f"Saved playback manifest to {path}")


class LocalArtifactPublisher:
    """Publishes files in place, returning a file:// URL or a prefixed one.

    With ``base_url`` set, the URL is ``{base_url}/{project_id}/{filename}``.
    """

    def __init__(self, base_url: str | None = None):
        self.base_url = base_url.rstrip("/") if base_url else None

    async def publish(self, project_id: str, path: str) -> str | None:
        target = Path(path)
        if not target.exists():
            raise FileNotFoundError(f"Nothing to publish at {path}")
        if self.base_url is None:
            return target.resolve().as_uri()
        return f"{self.base_url}/{project_id}/{target.name}"


__all__ = [
    "ManifestStore",
    "ArtifactPublisher",
    "LocalManifestStore",
    "LocalArtifactPublisher",
]
