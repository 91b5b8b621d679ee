"""
Scenes Module - Composition of the mix engine into whole jobs.

Components:
    SceneMixer        - One scene: ducking, graph, execution, loudness
    EpisodeExporter   - Many scenes: offsets, crossfade, playback manifest

Usage:
    from mixdown.scenes import SceneMixer, MixRequest

    mixer = SceneMixer(engine)
    outcomes = await mixer.mix_scenes([
        MixRequest.from_paths("p1", "s1", "s1_dialogue.wav", music="bed.wav"),
        MixRequest.from_paths("p1", "s2", "s2_dialogue.wav"),
    ])
"""

from mixdown.scenes.mixer import (
    MixManifest,
    MixRequest,
    SceneMixer,
    SceneOutcome,
)

from mixdown.scenes.export import (
    EpisodeExporter,
    ExportScene,
    PlaybackManifest,
)

__all__ = [
    # Mixer
    "MixManifest",
    "MixRequest",
    "SceneMixer",
    "SceneOutcome",
    # Export
    "EpisodeExporter",
    "ExportScene",
    "PlaybackManifest",
]
