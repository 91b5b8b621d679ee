"""
Timeline Validation Tests - Overlap, masking, ordering and orphan rules.
"""

import logging

import pytest

from mixdown.config import TimelineConfig
from mixdown.runtime.timeline import (
    CueClass,
    EventType,
    TimelineEvent,
    TimelineValidator,
    auto_fix_timeline,
    events_from_dicts,
    shift_events,
    sort_events,
    validate_timeline,
)
from mixdown.testing import sample_timeline


def music_in(at, cue, duck_db=-8.0):
    return TimelineEvent(EventType.MUSIC_IN, at, cue_id=cue, duck_db=duck_db)


def music_out(at, cue, fade=None):
    return TimelineEvent(EventType.MUSIC_OUT, at, cue_id=cue, fade=fade)


def ambience_in(at, cue, gain_db=-22.0):
    return TimelineEvent(EventType.AMBIENCE_IN, at, cue_id=cue, gain_db=gain_db)


def ambience_out(at, cue):
    return TimelineEvent(EventType.AMBIENCE_OUT, at, cue_id=cue)


def line(start, end, line_id="l1"):
    return [
        TimelineEvent(EventType.DIALOGUE_IN, start, line_id=line_id),
        TimelineEvent(EventType.DIALOGUE_OUT, end, line_id=line_id),
    ]


def codes(result):
    return [issue.code for issue in result]


class TestTimelineEvent:
    """Tests for the event type."""

    def test_from_dict(self):
        event = TimelineEvent.from_dict({"type": "music_in", "at": 1, "cue_id": "a", "duck_db": -6})

        assert event.type is EventType.MUSIC_IN
        assert event.at == 1.0
        assert event.duck_db == -6.0

    def test_fade_sec_alias(self):
        event = TimelineEvent.from_dict({"type": "music_out", "at": 3, "cue_id": "a", "fade_sec": 1.5})
        assert event.fade == 1.5

    def test_to_dict_omits_unset(self):
        assert music_out(3.0, "a").to_dict() == {"type": "music_out", "at": 3.0, "cue_id": "a"}

    def test_string_type_coerced(self):
        assert TimelineEvent("dialogue_in", 0.0, line_id="l").type is EventType.DIALOGUE_IN

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            TimelineEvent.from_dict({"type": "sfx_in", "at": 0})

    def test_frozen(self):
        event = music_in(0.0, "a")
        with pytest.raises(Exception):  # FrozenInstanceError
            event.at = 1.0

    def test_ref_and_class(self):
        event = TimelineEvent(EventType.DIALOGUE_OUT, 2.0, line_id="l7")
        assert event.ref == "l7"
        assert event.key == (CueClass.DIALOGUE, "l7")

    def test_event_type_helpers(self):
        assert EventType.AMBIENCE_OUT.cue_class is CueClass.AMBIENCE
        assert EventType.AMBIENCE_OUT.is_out
        assert not EventType.AMBIENCE_OUT.is_in


class TestCleanTimeline:
    """A well-formed timeline passes."""

    def test_sample_is_valid(self):
        result = validate_timeline(sample_timeline())

        assert result.valid
        assert len(result) == 0

    def test_empty(self):
        assert validate_timeline([]).to_dict() == {"valid": True, "errors": [], "warnings": []}

    def test_input_not_mutated(self):
        events = [music_in(5.0, "a"), music_in(0.0, "b")]
        snapshot = list(events)
        validate_timeline(events)
        assert events == snapshot


class TestOverlap:
    """Overlap rule."""

    def test_music_overlap_is_error(self):
        """Opening B while A is still open is an error."""
        result = validate_timeline([music_in(0.0, "A"), music_in(5.0, "B")])

        assert not result.valid
        assert codes(result) == ["MUSIC_OVERLAP"]
        assert "Music overlap detected" in result.errors[0].message

    def test_closed_before_start(self):
        """A cue closed before the next opens does not overlap."""
        result = validate_timeline([music_in(0.0, "A"), music_out(4.0, "A"), music_in(5.0, "B")])
        assert result.valid

    def test_close_and_open_same_time(self):
        """Out then in at the same instant is a handover, not an overlap."""
        result = validate_timeline([music_in(0.0, "A"), music_out(5.0, "A"), music_in(5.0, "B")])
        assert result.valid

    def test_open_track_always_overlaps(self):
        """A cue that is closed only later still counts as open when B starts."""
        events = [music_in(0.0, "A"), music_in(9.0, "B"), music_out(10.0, "A", fade=3.0)]
        assert codes(validate_timeline(events)) == ["MUSIC_OVERLAP"]

    def test_reopening_same_cue(self):
        """A cue re-entering is not compared with itself."""
        result = validate_timeline([music_in(0.0, "A"), music_in(5.0, "A")])
        assert result.valid

    def test_ambience_overlap_is_warning(self):
        result = validate_timeline([ambience_in(0.0, "rain"), ambience_in(2.0, "wind")])

        assert result.valid
        assert codes(result) == ["AMBIENCE_OVERLAP"]

    def test_classes_independent(self):
        """Music and ambience never overlap each other."""
        assert len(validate_timeline([music_in(0.0, "A"), ambience_in(1.0, "rain")])) == 0

    def test_one_error_per_active_cue(self):
        """C overlapping both A and B gives two more errors."""
        events = [music_in(0.0, "A"), music_in(1.0, "B"), music_in(2.0, "C")]
        assert codes(validate_timeline(events)) == ["MUSIC_OVERLAP"] * 3


class TestMasking:
    """Masking rule."""

    def test_insufficient_ducking(self):
        """Music under dialogue must duck at least 6 dB."""
        events = [music_in(0.0, "A", duck_db=-3.0), *line(1.0, 2.0), music_out(5.0, "A")]
        result = validate_timeline(events)

        assert result.valid
        assert codes(result) == ["INSUFFICIENT_DUCKING"]
        assert "line l1" in result.warnings[0].message
        assert "6dB" in result.warnings[0].message

    def test_missing_duck(self):
        """No duck at all counts as 0 dB."""
        events = [music_in(0.0, "A", duck_db=None), *line(1.0, 2.0)]
        assert codes(validate_timeline(events)) == ["INSUFFICIENT_DUCKING"]

    def test_enough_ducking(self):
        events = [music_in(0.0, "A", duck_db=-6.0), *line(1.0, 2.0)]
        assert len(validate_timeline(events)) == 0

    def test_music_ends_before_line(self):
        """Music closed before the line starts cannot mask it."""
        events = [music_in(0.0, "A", duck_db=0.0), music_out(1.0, "A"), *line(1.0, 2.0)]
        assert len(validate_timeline(events)) == 0

    def test_music_starts_after_line(self):
        events = [*line(1.0, 2.0), music_in(2.0, "A", duck_db=0.0)]
        assert len(validate_timeline(events)) == 0

    def test_loud_ambience(self):
        events = [ambience_in(0.0, "rain", gain_db=-12.0), *line(1.0, 2.0)]
        result = validate_timeline(events)

        assert codes(result) == ["AMBIENCE_MASKING"]
        assert "-18dB" in result.warnings[0].message

    def test_ambience_without_gain(self):
        events = [ambience_in(0.0, "rain", gain_db=None), *line(1.0, 2.0)]
        assert codes(validate_timeline(events)) == ["AMBIENCE_MASKING"]

    def test_quiet_ambience(self):
        events = [ambience_in(0.0, "rain", gain_db=-18.0), *line(1.0, 2.0)]
        assert len(validate_timeline(events)) == 0

    def test_unclosed_line(self):
        """A line that never closes runs to the end of the timeline."""
        events = [
            TimelineEvent(EventType.DIALOGUE_IN, 0.0, line_id="l1"),
            music_in(30.0, "A", duck_db=-2.0),
        ]
        assert codes(validate_timeline(events)) == ["INSUFFICIENT_DUCKING"]

    def test_thresholds_configurable(self):
        config = TimelineConfig(min_music_duck_db=3.0)
        events = [music_in(0.0, "A", duck_db=-3.0), *line(1.0, 2.0)]
        assert len(validate_timeline(events, config)) == 0


class TestOrdering:
    """Ordering rule."""

    def test_regression(self):
        events = [*line(0.0, 2.0), music_in(1.0, "A")]
        result = validate_timeline(events)

        assert codes(result).count("OUT_OF_ORDER") == 1
        assert result.filter_by_code("OUT_OF_ORDER")[0].location == "events[2]"

    def test_each_regression_reported(self):
        events = [music_in(3.0, "A"), music_out(2.0, "A"), ambience_in(5.0, "r"), ambience_out(1.0, "r")]
        assert codes(validate_timeline(events)).count("OUT_OF_ORDER") == 2

    def test_equal_times_are_ordered(self):
        events = [music_in(1.0, "A"), ambience_in(1.0, "r")]
        assert validate_timeline(events).valid


class TestOrphans:
    """Orphan rule."""

    def test_lone_music_out(self):
        """A music_out with no music_in anywhere is one error."""
        result = validate_timeline([music_out(3.0, "X")])

        assert codes(result) == ["ORPHANED_OUT"]
        assert "Orphaned music_out event for X" in result.errors[0].message

    def test_one_error_per_cue(self):
        result = validate_timeline([music_out(3.0, "X"), music_out(4.0, "X")])
        assert codes(result) == ["ORPHANED_OUT"]

    def test_per_class(self):
        """An ambience_in does not pair with a music_out of the same id."""
        result = validate_timeline([ambience_in(0.0, "X"), music_out(3.0, "X")])
        assert codes(result) == ["ORPHANED_OUT"]

    def test_in_anywhere_counts(self):
        """The in may come after the out; it is not an orphan."""
        result = validate_timeline([music_out(1.0, "X"), music_in(2.0, "X")])
        assert "ORPHANED_OUT" not in codes(result)

    def test_dialogue_orphan(self):
        result = validate_timeline([TimelineEvent(EventType.DIALOGUE_OUT, 1.0, line_id="l9")])
        assert codes(result) == ["ORPHANED_OUT"]


class TestAutoFix:
    """Auto-fix repairs orphan pairing only."""

    def test_drops_only_orphan(self):
        events = [music_in(0.0, "A"), music_out(3.0, "X"), music_out(4.0, "A")]
        fixed = auto_fix_timeline(events)

        assert fixed == [music_in(0.0, "A"), music_out(4.0, "A")]
        assert validate_timeline(fixed).valid

    def test_sorts(self):
        events = [music_out(4.0, "A"), music_in(0.0, "A")]
        assert auto_fix_timeline(events) == [music_in(0.0, "A"), music_out(4.0, "A")]

    def test_out_before_in_dropped(self):
        """Streaming in time order, an out before its in is never opened."""
        events = [music_out(1.0, "A"), music_in(2.0, "A")]
        assert auto_fix_timeline(events) == [music_in(2.0, "A")]

    def test_overlap_left_alone(self):
        events = [music_in(0.0, "A"), music_in(1.0, "B")]
        fixed = auto_fix_timeline(events)

        assert fixed == events
        assert codes(validate_timeline(fixed)) == ["MUSIC_OVERLAP"]

    def test_returns_new_list(self):
        events = [music_in(0.0, "A")]
        fixed = auto_fix_timeline(events)
        assert fixed is not events
        assert events == [music_in(0.0, "A")]

    def test_logs_dropped(self, caplog):
        with caplog.at_level(logging.WARNING, logger="mixdown.runtime.timeline"):
            auto_fix_timeline([music_out(3.0, "X")])
        assert "Removing orphaned music_out event for X" in caplog.text

    def test_validator_method(self):
        assert TimelineValidator().auto_fix([music_out(3.0, "X")]) == []


class TestHelpers:
    """Tests for timeline helpers."""

    def test_sort_is_stable(self):
        a, b = music_in(1.0, "A"), ambience_in(1.0, "r")
        assert sort_events([b, a]) == [b, a]

    def test_events_from_dicts(self):
        events = events_from_dicts([{"type": "music_in", "at": 0, "cue_id": "A"}])
        assert events == [TimelineEvent(EventType.MUSIC_IN, 0.0, cue_id="A")]

    def test_shift(self):
        shifted = shift_events([music_in(1.0, "A")], 8.5)
        assert shifted[0].at == 9.5
