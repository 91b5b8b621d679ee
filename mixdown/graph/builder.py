"""
Graph Builder - Turns scene inputs into a mix graph.

Layout for a full scene (dialogue + music + ambience):

    [0:a] ─────────────────────────────────────────┐
    [1:a] → gain → duck(seg 0) → ... → duck(seg n) ─┼→ mix → [mix]
    [2:a] → gain ───────────────────────────────────┘

Rules:
- At most one raw input per role; dialogue is required.
- Music and ambience each get a fixed-gain node.
- Music gets one duck node per non-zero duck segment, chained in time
  order. With no segments the gain output feeds the mix directly.
- The mix combines [dialogue, music?, ambience?] in that order, to the
  longest input, with no dropout transition.

Dialogue-only scenes are NOT turned into a one-node graph. The plan says
so explicitly and the caller copies and normalizes the dialogue directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from mixdown.errors import StructuralError
from mixdown.graph.types import (
    AudioInput,
    MixGraph,
    Node,
    Operation,
    RawInput,
    Role,
    raw_stream_label,
)
from mixdown.runtime.ducking import DuckSegment

MIX_OUTPUT = "mix"

DEFAULT_GAINS = {
    Role.MUSIC: -12.0,
    Role.AMBIENCE: -18.0,
}


@dataclass
class MixPlan:
    """What the engine should do for one scene.

    Either ``graph`` is set, or ``dialogue_only`` is True and the dialogue
    source is copied and normalized without building a graph.
    """
    dialogue: AudioInput
    music: AudioInput | None = None
    ambience: AudioInput | None = None
    graph: MixGraph | None = None
    operations: list[str] = field(default_factory=list)

    @property
    def dialogue_only(self) -> bool:
        return self.graph is None

    @property
    def inputs(self) -> list[AudioInput]:
        return [i for i in (self.dialogue, self.music, self.ambience) if i is not None]

    def streams(self) -> list[str]:
        """Raw sources in graph input order (index N feeds "N:a")."""
        if self.graph is None:
            return [self.dialogue.source]
        return [raw.source for raw in self.graph.inputs]


def index_inputs(inputs: Sequence[AudioInput]) -> dict[Role, AudioInput]:
    """Map inputs by role, enforcing one input per role and a dialogue."""
    by_role: dict[Role, AudioInput] = {}
    for item in inputs:
        role = Role(item.role)
        if role in by_role:
            raise StructuralError(
                f"More than one {role.value} input",
                kind="duplicate_role",
                details={"role": role.value},
            )
        by_role[role] = item
    if Role.DIALOGUE not in by_role:
        raise StructuralError("A dialogue input is required", kind="missing_dialogue")
    return by_role


class GraphBuilder:
    """Builds MixPlans for scene mixes.

    Example:
        builder = GraphBuilder()
        plan = builder.plan(
            [AudioInput(Role.DIALOGUE, "d.wav"), AudioInput(Role.MUSIC, "m.wav")],
            duck_segments=segments,
        )
        validator.validate(plan.graph)
    """

    def __init__(self, default_gains: dict[Role, float] | None = None):
        self._gains = {**DEFAULT_GAINS, **(default_gains or {})}

    def gain_for(self, item: AudioInput) -> float:
        if item.gain_db is not None:
            return float(item.gain_db)
        return self._gains[Role(item.role)]

    def plan(
        self,
        inputs: Sequence[AudioInput],
        duck_segments: Sequence[DuckSegment] = (),
        name: str = "scene",
    ) -> MixPlan:
        """Plan a scene mix. Raises StructuralError on bad inputs."""
        by_role = index_inputs(inputs)
        dialogue = by_role[Role.DIALOGUE]
        music = by_role.get(Role.MUSIC)
        ambience = by_role.get(Role.AMBIENCE)

        plan = MixPlan(dialogue=dialogue, music=music, ambience=ambience)
        if music is None and ambience is None:
            plan.operations.append("dialogue_only")
            return plan

        graph = MixGraph(name=name)
        graph.add_input(RawInput(raw_stream_label(0), Role.DIALOGUE, dialogue.source))
        mix_inputs = [raw_stream_label(0)]

        if music is not None:
            label = raw_stream_label(len(graph.inputs))
            graph.add_input(RawInput(label, Role.MUSIC, music.source))
            gain = self.gain_for(music)
            final = self._add_music_chain(graph, label, gain, duck_segments)
            mix_inputs.append(final)
            plan.operations.extend([f"music_gain={gain:g}dB", "adaptive_ducking"])

        if ambience is not None:
            label = raw_stream_label(len(graph.inputs))
            graph.add_input(RawInput(label, Role.AMBIENCE, ambience.source))
            gain = self.gain_for(ambience)
            graph.add_node(Node(
                id="ambience_gain",
                operation=Operation.GAIN,
                inputs=(label,),
                output="ambience",
                params={"gain_db": gain},
            ))
            mix_inputs.append("ambience")
            plan.operations.append(f"ambience_gain={gain:g}dB")

        graph.add_node(Node(
            id="mix",
            operation=Operation.MIX,
            inputs=tuple(mix_inputs),
            output=MIX_OUTPUT,
            params={"duration": "longest", "dropout_transition": 0},
        ))
        graph.output = MIX_OUTPUT
        plan.graph = graph
        return plan

    def _add_music_chain(
        self,
        graph: MixGraph,
        stream: str,
        gain_db: float,
        segments: Sequence[DuckSegment],
    ) -> str:
        graph.add_node(Node(
            id="music_gain",
            operation=Operation.GAIN,
            inputs=(stream,),
            output="music_pre",
            params={"gain_db": gain_db},
        ))
        current = "music_pre"
        ordered = sorted(segments, key=lambda s: s.t0)
        for i, segment in enumerate(s for s in ordered if s.duck_db != 0):
            output = f"music_duck_{i}"
            graph.add_node(Node(
                id=output,
                operation=Operation.DUCK,
                inputs=(current,),
                output=output,
                params={"duck_db": segment.duck_db, "t0": segment.t0, "t1": segment.t1},
            ))
            current = output
        return current


def build_mix_plan(
    inputs: Sequence[AudioInput],
    duck_segments: Sequence[DuckSegment] = (),
    name: str = "scene",
) -> MixPlan:
    """Convenience wrapper around GraphBuilder().plan()."""
    return GraphBuilder().plan(inputs, duck_segments, name=name)


__all__ = [
    "MIX_OUTPUT",
    "DEFAULT_GAINS",
    "MixPlan",
    "GraphBuilder",
    "index_inputs",
    "build_mix_plan",
]
