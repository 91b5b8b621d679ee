"""
Graph Types - The per-scene mix graph.

A MixGraph describes how raw input streams flow through gain, duck and mix
nodes into a single output. It is an explicit typed structure; the textual
filtergraph form used by the engine is produced only at the engine boundary
(see mixdown.graph.filtergraph).

Lifecycle: one graph per scene mix request. Built, validated, executed by
the engine, then discarded.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

# Raw stream specifiers look like "0:a", "1:a", ...
RAW_STREAM_PATTERN = re.compile(r"^\d+:a$")


def is_raw_stream(label: str) -> bool:
    """True if ``label`` names a raw input stream rather than a node output."""
    return bool(RAW_STREAM_PATTERN.match(label))


def raw_stream_label(index: int) -> str:
    return f"{index}:a"


class Role(str, Enum):
    """Role of a raw input in the scene mix."""
    DIALOGUE = "dialogue"
    MUSIC = "music"
    AMBIENCE = "ambience"


class Operation(str, Enum):
    """Processing performed by a graph node."""
    GAIN = "gain"   # Fixed gain
    DUCK = "duck"   # Time-windowed attenuation
    MIX = "mix"     # Combine N inputs


@dataclass(frozen=True)
class AudioInput:
    """A raw signal feeding the mix.

    Fields:
        role: dialogue, music or ambience.
        source: Signal reference (usually a file path).
        gain_db: Fixed gain applied to music/ambience. Ignored for dialogue.
    """
    role: Role
    source: str
    gain_db: float | None = None


@dataclass(frozen=True)
class RawInput:
    """A raw stream bound to a graph input label."""
    label: str
    role: Role
    source: str


@dataclass(frozen=True)
class NodeDefinition:
    """Engine-independent view of one processing step.

    This is what the validator works on. Both typed graphs and parsed
    filtergraph text reduce to a sequence of definitions.
    """
    inputs: tuple[str, ...]
    output: str | None
    name: str = ""


@dataclass
class Node:
    """A single processing node.

    Inputs are ordered and refer either to raw streams ("0:a") or to the
    output label of another node.
    """
    id: str
    operation: Operation
    inputs: tuple[str, ...]
    output: str
    params: dict[str, Any] = field(default_factory=dict)

    def definition(self) -> NodeDefinition:
        return NodeDefinition(inputs=tuple(self.inputs), output=self.output, name=self.id)


class MixGraph:
    """Typed description of a scene mix.

    Example:
        graph = MixGraph()
        graph.add_input(RawInput("0:a", Role.DIALOGUE, "dialogue.wav"))
        graph.add_input(RawInput("1:a", Role.MUSIC, "music.wav"))
        graph.add_node(Node("music_gain", Operation.GAIN, ("1:a",), "music",
                            {"gain_db": -12.0}))
        graph.add_node(Node("mix", Operation.MIX, ("0:a", "music"), "mix"))
        graph.output = "mix"
    """

    def __init__(self, name: str = "scene"):
        self.name = name
        self._inputs: list[RawInput] = []
        self._nodes: list[Node] = []
        self._node_ids: set[str] = set()
        self.output: str | None = None

    def add_input(self, raw: RawInput) -> RawInput:
        if not is_raw_stream(raw.label):
            raise ValueError(f"Raw input label must look like 'N:a', got {raw.label!r}")
        self._inputs.append(raw)
        return raw

    def add_node(self, node: Node) -> Node:
        """Append a node. Node ids are unique within a graph."""
        if node.id in self._node_ids:
            raise ValueError(f"Node '{node.id}' already exists")
        self._node_ids.add(node.id)
        self._nodes.append(node)
        return node

    @property
    def inputs(self) -> list[RawInput]:
        return list(self._inputs)

    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes)

    def get_node(self, node_id: str) -> Node | None:
        for node in self._nodes:
            if node.id == node_id:
                return node
        return None

    def definitions(self) -> list[NodeDefinition]:
        return [node.definition() for node in self._nodes]

    def operation_names(self) -> list[str]:
        return [node.operation.value for node in self._nodes]

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def to_dict(self) -> dict:
        """Serialize graph to dictionary."""
        return {
            "name": self.name,
            "inputs": [
                {"label": r.label, "role": r.role.value, "source": r.source}
                for r in self._inputs
            ],
            "nodes": [
                {
                    "id": n.id,
                    "operation": n.operation.value,
                    "inputs": list(n.inputs),
                    "output": n.output,
                    "params": dict(n.params),
                }
                for n in self._nodes
            ],
            "output": self.output,
        }

    def __repr__(self) -> str:
        return f"MixGraph(name={self.name!r}, nodes={len(self._nodes)}, output={self.output!r})"


__all__ = [
    "RAW_STREAM_PATTERN",
    "is_raw_stream",
    "raw_stream_label",
    "Role",
    "Operation",
    "AudioInput",
    "RawInput",
    "NodeDefinition",
    "Node",
    "MixGraph",
]
