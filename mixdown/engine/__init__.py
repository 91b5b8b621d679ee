"""
Engine module - The audio-processing port and its call policy.

The engine is a black box that executes validated graphs. Nothing above
this package touches samples on the mix path.

Backends live in mixdown.engine.backends and are imported explicitly.
"""

from mixdown.engine.base import AudioEngine
from mixdown.engine.retry import EngineCaller, with_retry, with_timeout

__all__ = [
    "AudioEngine",
    "EngineCaller",
    "with_retry",
    "with_timeout",
]
