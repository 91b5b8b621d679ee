"""
Adapters - Storage ports and the command-line interface.

The CLI lives in mixdown.adapters.cli and is imported on demand.
"""

from mixdown.adapters.storage import (
    ArtifactPublisher,
    LocalArtifactPublisher,
    LocalManifestStore,
    ManifestStore,
)

__all__ = [
    "ArtifactPublisher",
    "LocalArtifactPublisher",
    "LocalManifestStore",
    "ManifestStore",
]
