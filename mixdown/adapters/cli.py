"""
CLI Adapter - Command-line interface.

Thin wrapper over the validators and the offset/ducking math. Mixing and
export need an engine and are driven from code (see mixdown.scenes).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from mixdown.validation import ValidationResult


def main(args: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="mixdown",
        description="Scene mixing and episode timeline tools",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # validate-timeline command
    timeline_parser = subparsers.add_parser(
        "validate-timeline",
        help="Check a JSON timeline for overlaps, masking, ordering and orphans",
    )
    timeline_parser.add_argument("path", help="Timeline JSON (a list of events or {\"events\": [...]})")
    timeline_parser.add_argument(
        "--fix",
        action="store_true",
        help="Sort events and drop orphaned *_out events",
    )
    timeline_parser.add_argument("-o", "--output", help="Where to write the fixed timeline")

    # validate-graph command
    graph_parser = subparsers.add_parser("validate-graph", help="Check filtergraph text")
    graph_parser.add_argument("path", help="File containing the filtergraph")

    # offsets command
    offsets_parser = subparsers.add_parser(
        "offsets",
        help="Scene offsets and total duration for a crossfaded episode",
    )
    offsets_parser.add_argument("durations", nargs="+", type=float, help="Scene durations (s)")
    offsets_parser.add_argument(
        "--crossfade",
        type=float,
        default=1.5,
        help="Crossfade duration in seconds (default: 1.5)",
    )

    # duck-curve command
    duck_parser = subparsers.add_parser(
        "duck-curve",
        help="Music duck segments computed from a dialogue file",
    )
    duck_parser.add_argument("path", help="Dialogue audio file")
    duck_parser.add_argument("--hop", type=float, default=0.1, help="Hop size in seconds (default: 0.1)")

    # version command
    subparsers.add_parser("version", help="Show version")

    parsed = parser.parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if parsed.command is None:
        parser.print_help()
        return 0

    if parsed.command == "version":
        from mixdown import __version__
        print(f"mixdown {__version__}")
        return 0

    if parsed.command == "validate-timeline":
        return _cmd_validate_timeline(parsed)

    if parsed.command == "validate-graph":
        return _cmd_validate_graph(parsed)

    if parsed.command == "offsets":
        return _cmd_offsets(parsed)

    if parsed.command == "duck-curve":
        return _cmd_duck_curve(parsed)

    return 1


def _print_result(result: ValidationResult) -> None:
    status = "✅ valid" if result.valid else "❌ invalid"
    print(f"{status} ({result.error_count} errors, {result.warning_count} warnings)")
    for issue in result:
        print(f"  {issue}")


def _load_events(path: Path):
    from mixdown.runtime.timeline import events_from_dicts

    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("events", [])
    if not isinstance(data, list):
        raise ValueError("timeline must be a list of events")
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ValueError(f"event {index} must be an object, got {type(item).__name__}")
    return events_from_dicts(data)


def _cmd_validate_timeline(args: argparse.Namespace) -> int:
    """Validate (and optionally fix) a timeline file."""
    from mixdown.runtime.timeline import auto_fix_timeline, validate_timeline

    path = Path(args.path)
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        return 1

    try:
        events = _load_events(path)
    except (ValueError, KeyError, TypeError) as e:
        print(f"Error: Invalid timeline: {e}", file=sys.stderr)
        return 1

    result = validate_timeline(events)
    print(f"Timeline: {path} ({len(events)} events)")
    _print_result(result)

    if not args.fix:
        return 0 if result.valid else 1

    fixed = auto_fix_timeline(events)
    payload = json.dumps([e.to_dict() for e in fixed], indent=2)
    if args.output:
        Path(args.output).write_text(payload + "\n", encoding="utf-8")
        print(f"\n🔧 Fixed timeline ({len(events) - len(fixed)} events removed) written to {args.output}")
    else:
        print()
        print(payload)

    fixed_result = validate_timeline(fixed)
    print()
    print("After fix:")
    _print_result(fixed_result)
    return 0 if fixed_result.valid else 1


def _cmd_validate_graph(args: argparse.Namespace) -> int:
    """Validate filtergraph text."""
    from mixdown.graph.validator import validate_graph

    path = Path(args.path)
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        return 1

    result = validate_graph(path.read_text(encoding="utf-8"))
    print(f"Filtergraph: {path}")
    _print_result(result)
    return 0 if result.valid else 1


def _cmd_offsets(args: argparse.Namespace) -> int:
    """Print crossfade-aware scene offsets."""
    from mixdown.errors import StructuralError
    from mixdown.runtime.crossfade import compute_layout

    scenes = [(f"scene_{i + 1}", d) for i, d in enumerate(args.durations)]
    try:
        layout = compute_layout(scenes, args.crossfade)
    except (StructuralError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for span in layout.spans:
        print(f"  {span.scene_id:10} offset={span.offset:8.3f}s  duration={span.duration:8.3f}s")
    print(f"Total: {layout.total_duration:.3f}s (crossfade {args.crossfade:g}s)")
    return 0


def _cmd_duck_curve(args: argparse.Namespace) -> int:
    """Print duck segments for a dialogue file."""
    from mixdown.formats.analysis import rms_envelope_from_file
    from mixdown.runtime.ducking import duck_segments, total_ducked_seconds

    path = Path(args.path)
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        return 1

    try:
        samples = rms_envelope_from_file(path, args.hop)
        segments = duck_segments(samples, args.hop)
    except (RuntimeError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for segment in segments:
        print(f"  [{segment.t0:7.3f}, {segment.t1:7.3f})  {segment.duck_db:g} dB")
    print(
        f"{len(segments)} of {len(samples)} hops ducked "
        f"({total_ducked_seconds(segments):.2f}s)"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
