"""
Shared fixtures.
"""

import pytest

from mixdown.config import RetryPolicy
from mixdown.testing import MockEngine, create_test_audio, write_test_audio


@pytest.fixture
def engine():
    return MockEngine()


@pytest.fixture
def fast_retry():
    return RetryPolicy(max_retries=2, initial_delay=0.01, max_delay=0.02, jitter=0.0)


@pytest.fixture
def tone_file(tmp_path):
    """Factory writing a mono tone WAV: tone_file(name, duration, amplitude)."""
    def _make(name: str = "tone.wav", duration: float = 1.0, amplitude: float = 0.5):
        return write_test_audio(tmp_path / name, create_test_audio(duration, amplitude=amplitude))
    return _make
