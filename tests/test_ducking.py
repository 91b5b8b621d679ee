"""
Ducking Tests - Dialogue envelope to music duck segments.
"""

import numpy as np
import pytest

from mixdown.config import DuckingThresholds
from mixdown.runtime.ducking import (
    SILENCE_DB,
    DuckSegment,
    RMSSample,
    build_duck_curve,
    duck_segments,
    parse_astats_rms,
    parse_rms_metadata,
    rms_envelope,
    total_ducked_seconds,
)


def envelope(levels, hop=0.1):
    return [RMSSample(t=i * hop, rms_db=level) for i, level in enumerate(levels)]


class TestDuckCurve:
    """Tests for the level-to-duck mapping."""

    def test_thresholds(self):
        """Loud, normal and silent speech map to -7, -3 and 0."""
        assert build_duck_curve(envelope([-20, -35, -50])) == [-7.0, -3.0, 0.0]

    def test_boundaries(self):
        """-30 is normal speech, -45 is silence."""
        assert build_duck_curve(envelope([-29.99, -30.0, -44.99, -45.0])) == [-7.0, -3.0, -3.0, 0.0]

    def test_empty(self):
        assert build_duck_curve([]) == []

    def test_custom_thresholds(self):
        """Thresholds are configuration."""
        thresholds = DuckingThresholds(loud_db=-20, quiet_db=-40, loud_duck_db=-10, normal_duck_db=-4)
        assert build_duck_curve(envelope([-15, -25, -45]), thresholds) == [-10.0, -4.0, 0.0]


class TestDuckSegments:
    """Tests for segment generation."""

    def test_basic_example(self):
        """[-20, -35, -50] at 0.1s hops gives two segments."""
        segments = duck_segments(envelope([-20, -35, -50]), 0.1)

        assert [(s.duck_db, s.t0, s.t1) for s in segments] == [
            (-7.0, 0.0, 0.1),
            (-3.0, 0.1, pytest.approx(0.2)),
        ]

    def test_adjacent_equal_not_merged(self):
        """Runs of the same duck stay one segment per hop."""
        segments = duck_segments(envelope([-20, -20, -20]), 0.1)
        assert len(segments) == 3
        assert all(s.duck_db == -7.0 for s in segments)

    def test_silence_gap_skipped(self):
        """Silent hops produce no segment; indices keep their time."""
        segments = duck_segments(envelope([-20, -60, -20]), 0.5)
        assert [(s.t0, s.t1) for s in segments] == [(0.0, 0.5), (1.0, 1.5)]

    def test_all_silent(self):
        assert duck_segments(envelope([-60, -70]), 0.1) == []

    def test_invalid_hop(self):
        with pytest.raises(ValueError, match="hop must be > 0"):
            duck_segments(envelope([-20]), 0)

    def test_pure(self):
        """Same input, same output."""
        samples = envelope([-20, -35, -50, -25])
        assert duck_segments(samples, 0.1) == duck_segments(samples, 0.1)

    def test_total_ducked(self):
        segments = duck_segments(envelope([-20, -35, -50]), 0.25)
        assert total_ducked_seconds(segments) == pytest.approx(0.5)


class TestTypes:
    """Tests for RMSSample and DuckSegment invariants."""

    def test_negative_time(self):
        with pytest.raises(ValueError):
            RMSSample(t=-0.1, rms_db=-20)

    def test_positive_duck(self):
        with pytest.raises(ValueError, match="duck_db must be <= 0"):
            DuckSegment(0.0, 0.1, 3.0)

    def test_empty_span(self):
        with pytest.raises(ValueError):
            DuckSegment(0.1, 0.1, -3.0)

    def test_frozen(self):
        segment = DuckSegment(0.0, 0.1, -3.0)
        with pytest.raises(Exception):  # FrozenInstanceError
            segment.duck_db = -7.0


class TestParseAstats:
    """Tests for parsing the engine's stats report."""

    def test_summary_lines(self):
        report = "\n".join([
            "[Parsed_astats_0 @ 0x1] RMS level dB: -21.5",
            "[Parsed_astats_0 @ 0x1] Peak level dB: -3.0",
            "[Parsed_astats_0 @ 0x1] RMS level dB: -48.0",
        ])
        samples = parse_astats_rms(report, 0.1)

        assert [s.rms_db for s in samples] == [-21.5, -48.0]
        assert [s.t for s in samples] == [0.0, 0.1]

    def test_metadata_lines(self):
        """Per-frame metadata print lines are parsed too."""
        report = "\n".join([
            "[Parsed_ametadata_3 @ 0x2] frame:0    pts:0       pts_time:0",
            "[Parsed_ametadata_3 @ 0x2] lavfi.astats.Overall.RMS_level=-25.000000",
            "[Parsed_ametadata_3 @ 0x2] frame:1    pts:4800    pts_time:0.1",
            "[Parsed_ametadata_3 @ 0x2] lavfi.astats.Overall.RMS_level=-inf",
        ])
        samples = parse_astats_rms(report, 0.1)

        assert [s.rms_db for s in samples] == [-25.0, SILENCE_DB]

    def test_garbage_value_is_silence(self):
        samples = parse_astats_rms("RMS level dB: nan\nRMS level dB: abc", 0.1)
        assert [s.rms_db for s in samples] == [SILENCE_DB, SILENCE_DB]

    def test_empty_report(self):
        assert parse_astats_rms("", 0.1) == []


class TestParseRmsMetadata:
    """Tests for reading only the per-frame metadata lines."""

    def test_summary_block_ignored(self):
        """The end-of-stream summary must not add hops."""
        report = "\n".join([
            "[Parsed_ametadata_3 @ 0x2] lavfi.astats.Overall.RMS_level=-20.0",
            "[Parsed_ametadata_3 @ 0x2] lavfi.astats.Overall.RMS_level=-35.0",
            "[Parsed_astats_2 @ 0x1] Channel: 1",
            "[Parsed_astats_2 @ 0x1] RMS level dB: -25.1",
            "[Parsed_astats_2 @ 0x1] Overall",
            "[Parsed_astats_2 @ 0x1] RMS level dB: -25.1",
        ])
        samples = parse_rms_metadata(report, 0.1)

        assert [s.rms_db for s in samples] == [-20.0, -35.0]

    def test_silence(self):
        samples = parse_rms_metadata("lavfi.astats.Overall.RMS_level=-inf", 0.1)
        assert [s.rms_db for s in samples] == [SILENCE_DB]


class TestRmsEnvelope:
    """Tests for computing envelopes from PCM."""

    def test_full_scale_sine(self):
        """A full-scale sine sits near -3 dBFS RMS."""
        sr = 48000
        t = np.arange(sr) / sr
        pcm = np.sin(2 * np.pi * 440 * t)

        samples = rms_envelope(pcm, sr, 0.1)

        assert len(samples) == 10
        assert all(s.rms_db == pytest.approx(-3.01, abs=0.1) for s in samples)

    def test_silence(self):
        samples = rms_envelope(np.zeros(4800), 48000, 0.05)
        assert [s.rms_db for s in samples] == [SILENCE_DB, SILENCE_DB]

    def test_partial_final_hop(self):
        """A trailing partial hop still yields a sample."""
        samples = rms_envelope(np.full(150, 0.1), 1000, 0.1)
        assert len(samples) == 2
        assert samples[1].t == pytest.approx(0.1)

    def test_stereo_downmixed(self):
        stereo = np.full((1000, 2), 0.5)
        samples = rms_envelope(stereo, 1000, 0.5)
        assert samples[0].rms_db == pytest.approx(20 * np.log10(0.5))
