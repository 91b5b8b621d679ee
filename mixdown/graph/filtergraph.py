"""
Filtergraph text - the engine's serialized form of a mix graph.

The typed MixGraph is lowered to filtergraph text only when handed to the
ffmpeg backend. Text coming from elsewhere can be parsed back into node
definitions so it goes through the same validator.

Format (one chain per ';'):
    [1:a]volume=-12dB[music_pre];[0:a][music_pre]amix=inputs=2[mix]

Within a chain, every bracketed label but the last is an input; the last
is the chain's output.
"""

from __future__ import annotations

import re

from mixdown.graph.types import MixGraph, Node, NodeDefinition, Operation, raw_stream_label

LABEL_PATTERN = re.compile(r"\[([^\]]+)\]")
_WHITESPACE = re.compile(r"\s+")


def _num(value: float) -> str:
    return f"{float(value):g}"


def _time(value: float) -> str:
    return f"{float(value):.3f}"


def node_filter(node: Node) -> str:
    """Filter expression for one node, without its labels."""
    params = node.params
    if node.operation == Operation.GAIN:
        return f"volume={_num(params.get('gain_db', 0.0))}dB"
    if node.operation == Operation.DUCK:
        return (
            f"volume={_num(params['duck_db'])}dB"
            f":enable='between(t,{_time(params['t0'])},{_time(params['t1'])})'"
        )
    if node.operation == Operation.MIX:
        return (
            f"amix=inputs={len(node.inputs)}"
            f":duration={params.get('duration', 'longest')}"
            f":dropout_transition={_num(params.get('dropout_transition', 0))}"
        )
    raise ValueError(f"Unknown operation: {node.operation}")


def to_filtergraph(graph: MixGraph) -> str:
    """Lower a typed graph to filtergraph text."""
    chains = []
    for node in graph:
        ins = "".join(f"[{label}]" for label in node.inputs)
        chains.append(f"{ins}{node_filter(node)}[{node.output}]")
    return ";".join(chains)


def crossfade_filtergraph(count: int, duration: float, curve: str = "tri") -> str:
    """Left-to-right chain of binary crossfades over ``count`` streams.

    [0:a][1:a]acrossfade=d=1.5:c1=tri:c2=tri[a1];[a1][2:a]...[out]
    """
    if count < 2:
        raise ValueError(f"Crossfade needs at least 2 streams, got {count}")
    chains = []
    prev = raw_stream_label(0)
    for i in range(1, count):
        out = "out" if i == count - 1 else f"a{i}"
        chains.append(
            f"[{prev}][{raw_stream_label(i)}]"
            f"acrossfade=d={_num(duration)}:c1={curve}:c2={curve}[{out}]"
        )
        prev = out
    return ";".join(chains)


def parse_filtergraph(text: str) -> list[NodeDefinition]:
    """Parse filtergraph text into node definitions.

    Whitespace is removed first. Empty chains (stray ';') are kept as
    definitions with no inputs and no output so the validator can flag them.
    """
    normalized = _WHITESPACE.sub("", text)
    definitions = []
    for part in normalized.split(";"):
        labels = LABEL_PATTERN.findall(part)
        name = LABEL_PATTERN.sub("", part)
        if not labels:
            definitions.append(NodeDefinition(inputs=(), output=None, name=name))
            continue
        definitions.append(
            NodeDefinition(inputs=tuple(labels[:-1]), output=labels[-1], name=name)
        )
    return definitions


def bracket_balance(text: str) -> tuple[int, int]:
    """Count of opening and closing label brackets."""
    return text.count("["), text.count("]")


__all__ = [
    "LABEL_PATTERN",
    "node_filter",
    "to_filtergraph",
    "crossfade_filtergraph",
    "parse_filtergraph",
    "bracket_balance",
]
