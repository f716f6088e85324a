"""
breachAD Membership Graph
=========================

NetworkX-based view of a completed membership traversal.

Design Decisions:
-----------------
1. Uses NetworkX DiGraph as the underlying data structure
2. Built after traversal from the MemberRecord list; the traversal itself
   never touches this graph
3. Edges point from member to containing group (MemberOf)
4. Supports queries used by reporting and visualization

A group met through several paths appears once as a node but keeps one
MemberOf edge per containing group, so re-convergent and cyclic nesting
stays visible in the graph view.
"""

import networkx as nx
from typing import Iterator, Optional, Set

from .schemas import GroupRef, MemberKind, MemberRecord, MembershipResult


EDGE_MEMBER_OF = "MemberOf"


class MembershipGraph:
    """Abstraction layer over NetworkX for membership queries.

    Example Usage:
        graph = MembershipGraph.from_result(membership_result)
        graph.get_transitive_users(seed_id)
        graph.has_cycles()
    """

    def __init__(self):
        """Initialize empty membership graph."""
        self._graph = nx.DiGraph()
        self._seed_ids: list[str] = []

    @classmethod
    def from_result(cls, result: MembershipResult) -> "MembershipGraph":
        """Build a graph from a traversal result."""
        graph = cls()
        for seed in result.seed_groups:
            graph.add_group(seed, is_seed=True)
        for record in result.members:
            graph.add_record(record)
        return graph

    @property
    def nx_graph(self) -> nx.DiGraph:
        """Access underlying NetworkX graph for advanced operations."""
        return self._graph

    @property
    def seed_ids(self) -> list[str]:
        return list(self._seed_ids)

    def add_group(self, group: GroupRef, is_seed: bool = False) -> None:
        """Add a group node (idempotent)."""
        if is_seed and group.object_id not in self._seed_ids:
            self._seed_ids.append(group.object_id)

        if self._graph.has_node(group.object_id):
            if is_seed:
                self._graph.nodes[group.object_id]['is_seed'] = True
            return

        self._graph.add_node(
            group.object_id,
            kind=MemberKind.GROUP,
            name=group.display_name,
            is_seed=is_seed,
        )

    def add_record(self, record: MemberRecord) -> None:
        """Add a traversal record as a node plus its MemberOf edge."""
        if not self._graph.has_node(record.parent_group_id):
            self._graph.add_node(
                record.parent_group_id,
                kind=MemberKind.GROUP,
                name=record.parent_group_name,
                is_seed=False,
            )

        if record.is_group:
            self.add_group(GroupRef(record.object_id, record.display_name))
        elif not self._graph.has_node(record.object_id):
            self._graph.add_node(
                record.object_id,
                kind=MemberKind.USER,
                name=record.display_name,
                record=record,
            )

        self._graph.add_edge(
            record.object_id,
            record.parent_group_id,
            edge_type=EDGE_MEMBER_OF,
            nesting_level=record.nesting_level,
        )

    def get_node_name(self, object_id: str) -> str:
        """Get a display-friendly name for a node id."""
        if not self._graph.has_node(object_id):
            return object_id
        return self._graph.nodes[object_id].get('name') or object_id

    def get_kind(self, object_id: str) -> Optional[MemberKind]:
        if not self._graph.has_node(object_id):
            return None
        return self._graph.nodes[object_id].get('kind')

    def get_user_ids(self) -> Iterator[str]:
        for node_id, attrs in self._graph.nodes(data=True):
            if attrs.get('kind') == MemberKind.USER:
                yield node_id

    def get_group_ids(self) -> Iterator[str]:
        for node_id, attrs in self._graph.nodes(data=True):
            if attrs.get('kind') == MemberKind.GROUP:
                yield node_id

    def get_direct_members(self, group_id: str) -> Iterator[str]:
        """Ids of nodes with a MemberOf edge into the group."""
        if not self._graph.has_node(group_id):
            return iter([])
        return self._graph.predecessors(group_id)

    def get_transitive_users(self, group_id: str) -> Set[str]:
        """All users reachable below a group through nested membership."""
        if not self._graph.has_node(group_id):
            return set()
        below = nx.ancestors(self._graph, group_id)
        return {n for n in below if self._graph.nodes[n].get('kind') == MemberKind.USER}

    def has_cycles(self) -> bool:
        """Whether group nesting contains a cycle."""
        return not nx.is_directed_acyclic_graph(self._graph)

    def find_cycles(self) -> list[list[str]]:
        return [list(c) for c in nx.simple_cycles(self._graph)]

    @property
    def node_count(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def to_dict(self) -> dict:
        """Export graph as a JSON-friendly dictionary."""
        return {
            "seeds": self.seed_ids,
            "nodes": [
                {
                    "id": node_id,
                    "name": attrs.get('name'),
                    "kind": attrs['kind'].value if attrs.get('kind') else None,
                    "is_seed": bool(attrs.get('is_seed')),
                }
                for node_id, attrs in self._graph.nodes(data=True)
            ],
            "edges": [
                {
                    "source": source,
                    "target": target,
                    "type": attrs.get('edge_type'),
                    "nesting_level": attrs.get('nesting_level'),
                }
                for source, target, attrs in self._graph.edges(data=True)
            ],
        }
