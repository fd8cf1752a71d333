# tsm/core/graph.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""Graph-based transition structure management."""

from dataclasses import dataclass, field
from typing import Dict, Generic, Iterator, List, Set, Tuple

from tsm.core.types import S


@dataclass
class _TransitionNode(Generic[S]):
    """Internal node representation for the transition graph."""

    state: S
    to_states: List[S] = field(default_factory=list)
    from_states: List[S] = field(default_factory=list)


class TransitionGraph(Generic[S]):
    """
    Records which transitions are permitted between states. Each state gets a
    node the first time it appears as either end of an edge; nodes keep their
    outgoing and incoming neighbors in insertion order.

    The graph is append-only: edges are never removed.
    """

    def __init__(self) -> None:
        self._nodes: Dict[S, _TransitionNode[S]] = {}
        self._edges: Set[Tuple[S, S]] = set()

    def _node(self, state: S) -> _TransitionNode[S]:
        node = self._nodes.get(state)
        if node is None:
            node = _TransitionNode(state=state)
            self._nodes[state] = node
        return node

    def add_edge(self, source: S, target: S) -> None:
        """
        Permit a transition from source to target. Adding an existing edge
        leaves the graph unchanged.
        """
        source_node = self._node(source)
        target_node = self._node(target)
        if (source, target) in self._edges:
            return
        self._edges.add((source, target))
        source_node.to_states.append(target)
        target_node.from_states.append(source)

    def has_edge(self, source: S, target: S) -> bool:
        """Check whether a transition from source to target is permitted."""
        return (source, target) in self._edges

    def neighbors(self, state: S) -> List[S]:
        """Return a copy of the outgoing neighbors of a state."""
        node = self._nodes.get(state)
        if node is None:
            return []
        return list(node.to_states)

    def predecessors(self, state: S) -> List[S]:
        """Return a copy of the incoming neighbors of a state."""
        node = self._nodes.get(state)
        if node is None:
            return []
        return list(node.from_states)

    def add_transition(self, source: S, target: S, loop: bool = False) -> None:
        """
        Add a single transition. With loop=True the reverse edge is added too.

        :param source: State the transition starts from.
        :param target: State the transition leads to.
        :param loop: Also permit target -> source.
        """
        self.add_edge(source, target)
        if loop:
            self.add_edge(target, source)

    def add_transitions(self, source: S, *targets: S, loop: bool = False) -> None:
        """
        Add transitions from one state to several targets. The loop flag
        applies to every target.
        """
        for target in targets:
            self.add_transition(source, target, loop=loop)

    def add_path(self, *states: S) -> None:
        """
        Chain the given states together one way, in argument order. States may
        repeat, e.g. add_path(Running, Paused, Running).
        """
        for source, target in zip(states, states[1:]):
            self.add_edge(source, target)

    def states(self) -> List[S]:
        """
        Every state referenced by the graph, either as a node or as a member of
        any neighbor list, in first-seen order.
        """
        seen: Dict[S, None] = {}
        for state, node in self._nodes.items():
            seen.setdefault(state)
            for other in node.to_states:
                seen.setdefault(other)
            for other in node.from_states:
                seen.setdefault(other)
        return list(seen)

    def edge_count(self) -> int:
        """Total number of outgoing edges over all nodes."""
        return sum(len(node.to_states) for node in self._nodes.values())

    def __contains__(self, state: object) -> bool:
        return state in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[S]:
        return iter(list(self._nodes))
