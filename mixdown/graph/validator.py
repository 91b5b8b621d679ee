"""
Graph Validator - Static checks on a mix graph before it reaches the engine.

Checks performed (all accumulated, none short-circuits the others):
- Input labels not defined by an earlier definition (error)
- Duplicate output labels (error)
- Routing cycles, iterative three-colour DFS, first cycle only (error)
- Unusual label characters (warning)
- Definitions with no effective inputs or output (warning)

For typed MixGraphs, additionally:
- Designated output must be defined (error)
- Every declared raw input must reach the output (error)
- Every raw stream a node reads must be declared (error)

For filtergraph text, additionally:
- Balanced label brackets (error)

The validator never repairs anything. A mix must not be handed to the
engine while the result has errors.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence, Union

from mixdown.graph.filtergraph import bracket_balance, parse_filtergraph
from mixdown.graph.types import MixGraph, NodeDefinition, is_raw_stream
from mixdown.validation import ValidationResult

logger = logging.getLogger(__name__)

LABEL_CHARS = re.compile(r"^[A-Za-z0-9_]+$")

GraphSource = Union[MixGraph, str, Sequence[NodeDefinition]]

_WHITE, _GRAY, _BLACK = 0, 1, 2


class GraphValidator:
    """Validates graph descriptions.

    Stateless: the same instance can validate any number of graphs, and
    validating an unchanged graph twice yields identical results.

    Example:
        result = GraphValidator().validate(graph)
        if not result.valid:
            raise GraphValidationException(result)
    """

    def validate(self, source: GraphSource) -> ValidationResult:
        result = ValidationResult()

        if isinstance(source, str):
            self._check_brackets(source, result)
            definitions = parse_filtergraph(source)
        elif isinstance(source, MixGraph):
            definitions = source.definitions()
        else:
            definitions = list(source)

        self._check_references(definitions, result)
        self._check_duplicates(definitions, result)
        self._check_cycles(definitions, result)
        self._check_label_characters(definitions, result)
        self._check_empty(definitions, result)

        if isinstance(source, MixGraph):
            self._check_output(source, definitions, result)

        if result.warnings:
            logger.debug("Graph validation warnings: %s", [w.message for w in result.warnings])
        return result

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _check_brackets(self, text: str, result: ValidationResult) -> None:
        opening, closing = bracket_balance(text)
        if opening != closing:
            result.error(
                "graph",
                f"Unbalanced filter labels: {opening} open brackets, {closing} close brackets",
                "UNBALANCED_LABEL_BRACKETS",
                context={"open": opening, "close": closing},
            )

    def _check_references(self, definitions: Sequence[NodeDefinition],
                          result: ValidationResult) -> None:
        seen: set[str] = set()
        for index, definition in enumerate(definitions):
            for label in definition.inputs:
                # Self-references are reported as cycles only.
                if is_raw_stream(label) or label in seen or label == definition.output:
                    continue
                result.error(
                    f"definitions[{index}]",
                    f"Undefined input label: [{label}]",
                    "UNDEFINED_INPUT_LABEL",
                    suggestion="Reference a raw stream like [0:a] or an output defined earlier",
                    context={"label": label},
                )
            if definition.output:
                seen.add(definition.output)

    def _check_duplicates(self, definitions: Sequence[NodeDefinition],
                          result: ValidationResult) -> None:
        outputs: set[str] = set()
        for index, definition in enumerate(definitions):
            label = definition.output
            if not label:
                continue
            if label in outputs:
                result.error(
                    f"definitions[{index}]",
                    f"Duplicate output label: [{label}] (would cause overwrite)",
                    "DUPLICATE_OUTPUT_LABEL",
                    suggestion="Give every chain a unique output label",
                    context={"label": label},
                )
            outputs.add(label)

    def _check_cycles(self, definitions: Sequence[NodeDefinition],
                      result: ValidationResult) -> None:
        edges: dict[str, list[str]] = {}
        for definition in definitions:
            if not definition.output:
                continue
            targets = edges.setdefault(definition.output, [])
            targets.extend(label for label in definition.inputs if not is_raw_stream(label))

        cycle = find_cycle(edges)
        if cycle is not None:
            result.error(
                f"label[{cycle[0]}]",
                f"Circular dependency detected involving [{cycle[0]}]: {' -> '.join(cycle)}",
                "CYCLE_DETECTED",
                suggestion="Remove the connection creating the cycle",
                context={"cycle_path": cycle},
            )

    def _check_label_characters(self, definitions: Sequence[NodeDefinition],
                                result: ValidationResult) -> None:
        reported: set[str] = set()
        for label in _all_labels(definitions):
            if label in reported or is_raw_stream(label) or LABEL_CHARS.match(label):
                continue
            reported.add(label)
            result.warn(
                f"label[{label}]",
                f"Label [{label}] contains special characters (may cause issues)",
                "UNUSUAL_LABEL_CHARACTERS",
                suggestion="Use only letters, digits and underscores in labels",
                context={"label": label},
            )

    def _check_empty(self, definitions: Sequence[NodeDefinition],
                     result: ValidationResult) -> None:
        for index, definition in enumerate(definitions):
            if definition.inputs and definition.output:
                continue
            result.warn(
                f"definitions[{index}]",
                "Empty filter chain detected (no inputs or no output; extra semicolons?)",
                "EMPTY_DEFINITION",
                context={"name": definition.name},
            )

    def _check_output(self, graph: MixGraph, definitions: Sequence[NodeDefinition],
                      result: ValidationResult) -> None:
        defined = {d.output for d in definitions if d.output}
        declared = {raw.label for raw in graph.inputs}

        for index, definition in enumerate(definitions):
            for label in definition.inputs:
                if is_raw_stream(label) and label not in declared:
                    result.error(
                        f"definitions[{index}]",
                        f"Raw stream [{label}] is not a declared graph input",
                        "UNDECLARED_STREAM",
                        context={"label": label},
                    )

        if not graph.output or graph.output not in defined:
            result.error(
                "graph.output",
                f"Output label [{graph.output}] is not defined by any node",
                "UNDEFINED_OUTPUT_LABEL",
                suggestion="Set graph.output to the final mix node's output label",
            )
            return

        reachable = _upstream_of(graph.output, definitions)
        for raw in graph.inputs:
            if raw.label not in reachable:
                result.error(
                    f"inputs[{raw.label}]",
                    f"Input [{raw.label}] ({raw.role.value}) never reaches output [{graph.output}]",
                    "UNREACHABLE_INPUT",
                    context={"label": raw.label, "role": raw.role.value},
                )


def find_cycle(edges: dict[str, Sequence[str]]) -> list[str] | None:
    """Return the first cycle found as a label path, or None.

    Iterative white/gray/black depth-first traversal, visiting roots in
    insertion order. The returned path starts and ends on the same label.
    """
    color: dict[str, int] = {}

    for root in edges:
        if color.get(root, _WHITE) != _WHITE:
            continue
        color[root] = _GRAY
        path = [root]
        stack = [iter(edges.get(root, ()))]

        while stack:
            advanced = False
            for nxt in stack[-1]:
                state = color.get(nxt, _WHITE)
                if state == _GRAY:
                    return path[path.index(nxt):] + [nxt]
                if state == _WHITE:
                    color[nxt] = _GRAY
                    path.append(nxt)
                    stack.append(iter(edges.get(nxt, ())))
                    advanced = True
                    break
            if not advanced:
                color[path.pop()] = _BLACK
                stack.pop()

    return None


def _all_labels(definitions: Iterable[NodeDefinition]) -> Iterable[str]:
    for definition in definitions:
        yield from definition.inputs
        if definition.output:
            yield definition.output


def _upstream_of(label: str, definitions: Sequence[NodeDefinition]) -> set[str]:
    producers: dict[str, list[str]] = {}
    for definition in definitions:
        if definition.output:
            producers.setdefault(definition.output, []).extend(definition.inputs)

    seen = {label}
    pending = [label]
    while pending:
        for source in producers.get(pending.pop(), ()):
            if source not in seen:
                seen.add(source)
                pending.append(source)
    return seen


def validate_graph(source: GraphSource) -> ValidationResult:
    """Convenience wrapper around GraphValidator().validate()."""
    return GraphValidator().validate(source)


__all__ = [
    "GraphValidator",
    "GraphSource",
    "find_cycle",
    "validate_graph",
]
