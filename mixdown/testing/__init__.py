"""
Mixdown Testing Utilities

Components:
    MockEngine     - Scripted AudioEngine with call recording
    MockConfig     - Envelopes, measurements, durations and latency
    Fixtures       - Audio files and timelines

Usage:
    from mixdown.testing import MockEngine, write_test_audio

    engine = MockEngine()
    engine.config.envelopes["dialogue.wav"] = [-20.0, -35.0, -50.0]
    mixer = SceneMixer(engine)
"""

from mixdown.testing.mock import (
    CallRecord,
    DEFAULT_INPUT_MEASUREMENT,
    MockConfig,
    MockEngine,
)
from mixdown.testing.fixtures import (
    create_test_audio,
    sample_timeline,
    speech_like_audio,
    write_test_audio,
)

__all__ = [
    # Mock
    "CallRecord",
    "DEFAULT_INPUT_MEASUREMENT",
    "MockConfig",
    "MockEngine",
    # Fixtures
    "create_test_audio",
    "sample_timeline",
    "speech_like_audio",
    "write_test_audio",
]
