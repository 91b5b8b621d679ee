"""
Graph module - Per-scene mix graphs.

Build with GraphBuilder, check with GraphValidator, and lower to the
engine's filtergraph text only at the engine boundary.
"""

from mixdown.graph.types import (
    AudioInput,
    MixGraph,
    Node,
    NodeDefinition,
    Operation,
    RawInput,
    Role,
    is_raw_stream,
)
from mixdown.graph.builder import GraphBuilder, MixPlan, build_mix_plan
from mixdown.graph.validator import GraphValidator, find_cycle, validate_graph
from mixdown.graph.filtergraph import parse_filtergraph, to_filtergraph

__all__ = [
    "AudioInput",
    "MixGraph",
    "Node",
    "NodeDefinition",
    "Operation",
    "RawInput",
    "Role",
    "is_raw_stream",
    "GraphBuilder",
    "MixPlan",
    "build_mix_plan",
    "GraphValidator",
    "find_cycle",
    "validate_graph",
    "parse_filtergraph",
    "to_filtergraph",
]
