"""Index arena over a dependency graph."""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

from .models import DependencyEdge, DependencyGraph, DependencyType


class GraphIndex:
    """Arena view of a graph: nodes by integer index, Required edges as index pairs.

    Cycles in the module graph are plain integer data here, which keeps the
    traversal code free of object references between nodes. Edges whose
    endpoints are not nodes are left out.
    """

    def __init__(self, node_ids: Sequence[str], edges: Iterable[DependencyEdge]):
        self.ids: List[str] = list(node_ids)
        self.position: Dict[str, int] = {node_id: i for i, node_id in enumerate(self.ids)}
        self.required: List[List[int]] = [[] for _ in self.ids]
        for edge in edges:
            if edge.type != DependencyType.REQUIRED:
                continue
            src = self.position.get(edge.source_id)
            dst = self.position.get(edge.target_id)
            if src is None or dst is None:
                continue
            self.required[src].append(dst)

    @classmethod
    def from_graph(cls, graph: DependencyGraph) -> "GraphIndex":
        return cls([n.id for n in graph.nodes], graph.edges)

    def __len__(self) -> int:
        return len(self.ids)
