"""
CLI Tests - Subcommands driven through main().
"""

import json

import pytest

from mixdown import __version__
from mixdown.adapters.cli import main


def write_timeline(path, events):
    path.write_text(json.dumps(events))
    return str(path)


VALID_EVENTS = [
    {"type": "music_in", "at": 0, "cue_id": "theme", "duck_db": -8},
    {"type": "dialogue_in", "at": 1, "line_id": "l1"},
    {"type": "dialogue_out", "at": 3, "line_id": "l1"},
    {"type": "music_out", "at": 6, "cue_id": "theme", "fade_sec": 2},
]


class TestVersion:
    def test_version(self, capsys):
        assert main(["version"]) == 0
        assert capsys.readouterr().out.strip() == f"mixdown {__version__}"

    def test_no_command(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()


class TestValidateTimeline:
    """Tests for the validate-timeline command."""

    def test_valid(self, tmp_path, capsys):
        path = write_timeline(tmp_path / "t.json", VALID_EVENTS)

        assert main(["validate-timeline", path]) == 0
        assert "✅ valid" in capsys.readouterr().out

    def test_wrapped_events(self, tmp_path):
        path = write_timeline(tmp_path / "t.json", {"events": VALID_EVENTS})
        assert main(["validate-timeline", path]) == 0

    def test_invalid(self, tmp_path, capsys):
        path = write_timeline(tmp_path / "t.json", [
            {"type": "music_in", "at": 0, "cue_id": "a"},
            {"type": "music_in", "at": 4, "cue_id": "b"},
        ])

        assert main(["validate-timeline", path]) == 1
        out = capsys.readouterr().out
        assert "❌ invalid" in out
        assert "MUSIC_OVERLAP" in out

    def test_fix_to_file(self, tmp_path, capsys):
        path = write_timeline(tmp_path / "t.json", [
            *VALID_EVENTS,
            {"type": "music_out", "at": 7, "cue_id": "ghost"},
        ])
        fixed_path = tmp_path / "fixed.json"

        assert main(["validate-timeline", path, "--fix", "-o", str(fixed_path)]) == 0

        fixed = json.loads(fixed_path.read_text())
        assert len(fixed) == len(VALID_EVENTS)
        assert all(e.get("cue_id") != "ghost" for e in fixed)
        assert fixed[-1]["fade"] == 2.0
        assert "1 events removed" in capsys.readouterr().out

    def test_fix_to_stdout(self, tmp_path, capsys):
        path = write_timeline(tmp_path / "t.json", [{"type": "ambience_out", "at": 1, "cue_id": "x"}])

        assert main(["validate-timeline", path, "--fix"]) == 0
        assert "After fix:" in capsys.readouterr().out

    def test_missing_file(self, tmp_path, capsys):
        assert main(["validate-timeline", str(tmp_path / "nope.json")]) == 1
        assert "File not found" in capsys.readouterr().err

    def test_bad_event(self, tmp_path, capsys):
        path = write_timeline(tmp_path / "t.json", [{"type": "sfx_in", "at": 0}])
        assert main(["validate-timeline", path]) == 1
        assert "Invalid timeline" in capsys.readouterr().err

    @pytest.mark.parametrize("events", [[1], [VALID_EVENTS[0], "music_in"], {"events": [None]}])
    def test_non_object_event(self, tmp_path, capsys, events):
        """Entries that are not JSON objects are reported, not crashed on."""
        path = write_timeline(tmp_path / "t.json", events)

        assert main(["validate-timeline", path]) == 1
        assert "must be an object" in capsys.readouterr().err


class TestValidateGraph:
    """Tests for the validate-graph command."""

    def test_valid(self, tmp_path, capsys):
        path = tmp_path / "g.txt"
        path.write_text("[1:a]volume=-12dB[music_pre];[0:a][music_pre]amix=inputs=2[mix]")

        assert main(["validate-graph", str(path)]) == 0
        assert "✅ valid" in capsys.readouterr().out

    def test_cycle(self, tmp_path, capsys):
        path = tmp_path / "g.txt"
        path.write_text("[a]volume=2[a]")

        assert main(["validate-graph", str(path)]) == 1
        assert "CYCLE_DETECTED" in capsys.readouterr().out


class TestOffsets:
    """Tests for the offsets command."""

    def test_offsets(self, capsys):
        assert main(["offsets", "10", "8", "12", "--crossfade", "1.5"]) == 0

        out = capsys.readouterr().out
        assert "offset=   8.500s" in out
        assert "Total: 27.000s" in out

    def test_too_short(self, capsys):
        assert main(["offsets", "10", "1"]) == 1
        assert "shorter than" in capsys.readouterr().err


class TestDuckCurve:
    """Tests for the duck-curve command."""

    def test_tone(self, tone_file, capsys):
        path = tone_file("d.wav", duration=0.3, amplitude=0.5)

        assert main(["duck-curve", str(path)]) == 0
        out = capsys.readouterr().out
        assert "-7 dB" in out
        assert "3 of 3 hops ducked" in out

    def test_silence(self, tone_file, capsys):
        path = tone_file("quiet.wav", duration=0.2, amplitude=0.0)

        assert main(["duck-curve", str(path), "--hop", "0.1"]) == 0
        assert "0 of 2 hops ducked" in capsys.readouterr().out

    def test_missing_file(self, tmp_path):
        assert main(["duck-curve", str(tmp_path / "nope.wav")]) == 1

    def test_unreadable(self, tmp_path, capsys):
        path = tmp_path / "bad.wav"
        path.write_text("not audio")

        assert main(["duck-curve", str(path)]) == 1
        assert "Error" in capsys.readouterr().err


@pytest.mark.parametrize("command", ["validate-timeline", "validate-graph", "duck-curve"])
def test_path_required(command):
    with pytest.raises(SystemExit):
        main([command])
