"""
Timeline Validation - Consistency checks over cue enter/exit events.

A timeline is a flat, possibly unsorted list of TimelineEvents produced
upstream. Validation reads it once and returns a ValidationResult; it never
raises on data problems and never mutates its input.

Rules (all accumulated):
    Overlap   A new music/ambience *_in while another cue of the same class
              is still active, outside that cue's out-fade window. Error for
              music, warning for ambience. A cue that never closes is active
              forever, so it overlaps every later start.
    Masking   Music active during a dialogue line needs |duck_db| >= 6;
              ambience active during a line needs gain_db <= -18. Warnings.
    Ordering  Any decrease of ``at`` in input order. Error.
    Orphan    A *_out with no *_in for the same id and class anywhere in the
              timeline. Error.

auto_fix_timeline() repairs orphan pairing only: it sorts by time and drops
*_out events whose cue was never opened. Overlap and masking are left for a
human (or the cue selector) to resolve.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

from mixdown.config import TimelineConfig
from mixdown.validation import ValidationResult

logger = logging.getLogger(__name__)

INFINITY = math.inf


class CueClass(str, Enum):
    """Tracks that are validated independently."""
    MUSIC = "music"
    AMBIENCE = "ambience"
    DIALOGUE = "dialogue"


class EventType(str, Enum):
    """Timeline event types."""
    MUSIC_IN = "music_in"
    MUSIC_OUT = "music_out"
    AMBIENCE_IN = "ambience_in"
    AMBIENCE_OUT = "ambience_out"
    DIALOGUE_IN = "dialogue_in"
    DIALOGUE_OUT = "dialogue_out"

    @property
    def cue_class(self) -> CueClass:
        return CueClass(self.value.rsplit("_", 1)[0])

    @property
    def is_in(self) -> bool:
        return self.value.endswith("_in")

    @property
    def is_out(self) -> bool:
        return self.value.endswith("_out")


@dataclass(frozen=True)
class TimelineEvent:
    """A cue or dialogue line entering or leaving the mix.

    Music and ambience events are keyed by ``cue_id``; dialogue events by
    ``line_id``. ``fade`` on an *_out event declares how long the cue fades
    out, which is the window a following cue may crossfade into.
    """
    type: EventType
    at: float
    cue_id: str | None = None
    line_id: str | None = None
    duck_db: float | None = None
    gain_db: float | None = None
    fade: float | None = None

    def __post_init__(self):
        if not isinstance(self.type, EventType):
            object.__setattr__(self, "type", EventType(self.type))

    @property
    def ref(self) -> str | None:
        """Identity of the cue or line this event belongs to."""
        if self.type.cue_class == CueClass.DIALOGUE:
            return self.line_id if self.line_id is not None else self.cue_id
        return self.cue_id if self.cue_id is not None else self.line_id

    @property
    def key(self) -> tuple[CueClass, str | None]:
        return (self.type.cue_class, self.ref)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TimelineEvent:
        """Build from the wire form. Accepts ``fade`` or ``fade_sec``."""
        fade = data.get("fade", data.get("fade_sec"))
        return cls(
            type=EventType(data["type"]),
            at=float(data["at"]),
            cue_id=data.get("cue_id"),
            line_id=data.get("line_id"),
            duck_db=_optional_float(data.get("duck_db")),
            gain_db=_optional_float(data.get("gain_db")),
            fade=_optional_float(fade),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type.value, "at": self.at}
        for name in ("cue_id", "line_id", "duck_db", "gain_db", "fade"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data


def _optional_float(value: Any) -> float | None:
    return None if value is None else float(value)


@dataclass
class _Span:
    ref: str | None
    start: float
    end: float = INFINITY


def sort_events(events: Iterable[TimelineEvent]) -> list[TimelineEvent]:
    """Stable ascending sort by ``at``; ties keep input order."""
    return sorted(events, key=lambda e: e.at)


class TimelineValidator:
    """Validates timelines against overlap, masking, ordering and orphan rules.

    Example:
        validator = TimelineValidator()
        result = validator.validate(events)
        if not result.valid:
            events = validator.auto_fix(events)
    """

    def __init__(self, config: TimelineConfig | None = None):
        self.config = config or TimelineConfig()

    def validate(self, events: Sequence[TimelineEvent]) -> ValidationResult:
        result = ValidationResult()
        ordered = sort_events(events)

        by_class: dict[CueClass, list[TimelineEvent]] = {c: [] for c in CueClass}
        for event in ordered:
            by_class[event.type.cue_class].append(event)

        self._check_overlaps(by_class[CueClass.MUSIC], result, hard=True)
        self._check_overlaps(by_class[CueClass.AMBIENCE], result, hard=False)
        self._check_masking(by_class, result)
        self._check_ordering(events, result)
        self._check_orphans(by_class, result)
        return result

    def auto_fix(self, events: Sequence[TimelineEvent]) -> list[TimelineEvent]:
        return auto_fix_timeline(events)

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def _fade_window(self, events: Sequence[TimelineEvent], ref: str | None) -> float:
        for event in events:
            if event.type.is_out and event.ref == ref:
                if event.fade is not None:
                    return event.fade
                break
        return self.config.default_fade_window

    def _check_overlaps(self, events: Sequence[TimelineEvent],
                        result: ValidationResult, hard: bool) -> None:
        active: dict[str | None, _Span] = {}

        for event in events:
            if event.type.is_in:
                for ref, span in active.items():
                    if ref == event.ref or not event.at < span.end:
                        continue
                    window = self._fade_window(events, ref)
                    if event.at < span.end - window:
                        self._report_overlap(event, span, result, hard)
                active[event.ref] = _Span(event.ref, event.at)
            else:
                span = active.get(event.ref)
                if span is not None:
                    span.end = event.at

    def _report_overlap(self, event: TimelineEvent, span: _Span,
                        result: ValidationResult, hard: bool) -> None:
        cue_class = event.type.cue_class.value
        until = "indefinitely" if span.end == INFINITY else f"until {span.end:g}s"
        context = {"cue": event.ref, "active_cue": span.ref, "at": event.at, "active_end": span.end}
        if hard:
            result.error(
                f"{cue_class}[{event.ref}]",
                f"Music overlap detected: track {event.ref} starts at {event.at:g}s "
                f"while {span.ref} is still active {until} (not a valid crossfade)",
                "MUSIC_OVERLAP",
                suggestion=f"Close {span.ref} before {event.at:g}s or declare a longer out fade",
                context=context,
            )
        else:
            result.warn(
                f"{cue_class}[{event.ref}]",
                f"Ambience overlap detected: track {event.ref} starts at {event.at:g}s "
                f"while {span.ref} is still active {until} (may cause muddiness)",
                "AMBIENCE_OVERLAP",
                context=context,
            )

    def _dialogue_spans(self, events: Sequence[TimelineEvent]) -> list[_Span]:
        lines: list[_Span] = []
        for event in events:
            if event.type.is_in:
                lines.append(_Span(event.ref, event.at))
                continue
            for line in lines:
                if line.ref == event.ref and line.end == INFINITY:
                    line.end = event.at
                    break
        return lines

    def _cue_end(self, events: Sequence[TimelineEvent], start: TimelineEvent) -> float:
        for event in events:
            if event.type.is_out and event.ref == start.ref and event.at >= start.at:
                return event.at
        return INFINITY

    def _check_masking(self, by_class: Mapping[CueClass, Sequence[TimelineEvent]],
                       result: ValidationResult) -> None:
        music = by_class[CueClass.MUSIC]
        ambience = by_class[CueClass.AMBIENCE]
        min_duck = self.config.min_music_duck_db
        max_gain = self.config.max_ambience_gain_db

        for line in self._dialogue_spans(by_class[CueClass.DIALOGUE]):
            for cue in music:
                if not cue.type.is_in or not cue.at < line.end:
                    continue
                if self._cue_end(music, cue) <= line.start:
                    continue
                duck = abs(cue.duck_db) if cue.duck_db is not None else 0.0
                if duck < min_duck:
                    result.warn(
                        f"dialogue[{line.ref}]",
                        f"Insufficient music ducking during dialogue (line {line.ref} "
                        f"at {line.start:g}s). Current duck: {duck:g}dB, "
                        f"recommended: >={min_duck:g}dB",
                        "INSUFFICIENT_DUCKING",
                        context={"line": line.ref, "cue": cue.ref, "duck_db": cue.duck_db},
                    )

            for cue in ambience:
                if not cue.type.is_in or not cue.at < line.end:
                    continue
                if self._cue_end(ambience, cue) <= line.start:
                    continue
                if cue.gain_db is None or cue.gain_db > max_gain:
                    current = cue.gain_db if cue.gain_db is not None else 0.0
                    result.warn(
                        f"dialogue[{line.ref}]",
                        f"Ambience may mask dialogue (line {line.ref} at {line.start:g}s). "
                        f"Current gain: {current:g}dB, recommended: <={max_gain:g}dB",
                        "AMBIENCE_MASKING",
                        context={"line": line.ref, "cue": cue.ref, "gain_db": cue.gain_db},
                    )

    def _check_ordering(self, events: Sequence[TimelineEvent],
                        result: ValidationResult) -> None:
        for index in range(1, len(events)):
            previous, current = events[index - 1], events[index]
            if current.at < previous.at:
                result.error(
                    f"events[{index}]",
                    f"Events out of order: event at {current.at:g}s comes after "
                    f"{previous.at:g}s in the timeline",
                    "OUT_OF_ORDER",
                    suggestion="Sort events by time (auto-fix does this)",
                    context={"index": index, "at": current.at, "previous_at": previous.at},
                )

    def _check_orphans(self, by_class: Mapping[CueClass, Sequence[TimelineEvent]],
                       result: ValidationResult) -> None:
        for cue_class, events in by_class.items():
            opened = {e.ref for e in events if e.type.is_in}
            reported: set[str | None] = set()
            for event in events:
                if not event.type.is_out or event.ref in opened or event.ref in reported:
                    continue
                reported.add(event.ref)
                result.error(
                    f"{cue_class.value}[{event.ref}]",
                    f"Orphaned {event.type.value} event for {event.ref} "
                    f"(no corresponding {cue_class.value}_in)",
                    "ORPHANED_OUT",
                    suggestion="Add the matching *_in event or remove this one (auto-fix removes it)",
                    context={"ref": event.ref, "class": cue_class.value},
                )


def validate_timeline(
    events: Sequence[TimelineEvent],
    config: TimelineConfig | None = None,
) -> ValidationResult:
    """Validate a timeline. Never raises on data issues."""
    return TimelineValidator(config).validate(events)


def auto_fix_timeline(events: Sequence[TimelineEvent]) -> list[TimelineEvent]:
    """Return a new timeline with orphaned *_out events removed.

    Events are sorted by time and streamed: every *_in is kept and marks
    its cue as opened; a *_out is kept only if its cue was opened earlier.
    Running it on an already-fixed timeline returns an equal list.
    """
    opened: set[tuple[CueClass, str | None]] = set()
    fixed = []
    for event in sort_events(events):
        if event.type.is_in:
            opened.add(event.key)
            fixed.append(event)
        elif event.type.is_out:
            if event.key in opened:
                fixed.append(event)
            else:
                logger.warning(f"Removing orphaned {event.type.value} event for {event.ref}")
        else:
            fixed.append(event)
    return fixed


def events_from_dicts(items: Iterable[Mapping[str, Any]]) -> list[TimelineEvent]:
    return [TimelineEvent.from_dict(item) for item in items]


def shift_events(events: Sequence[TimelineEvent], offset: float) -> list[TimelineEvent]:
    """Move every event by ``offset`` seconds (e.g. into episode time)."""
    return [replace(e, at=e.at + offset) for e in events]


__all__ = [
    "CueClass",
    "EventType",
    "TimelineEvent",
    "TimelineValidator",
    "sort_events",
    "validate_timeline",
    "auto_fix_timeline",
    "events_from_dicts",
    "shift_events",
]
