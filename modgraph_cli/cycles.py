"""Circular dependency detection over Required edges."""

from __future__ import annotations

import logging
from typing import List, Tuple

from .graph_index import GraphIndex
from .models import DependencyGraph

logger = logging.getLogger(__name__)


def find_circular_chains(index: GraphIndex) -> List[List[str]]:
    """Return every cycle met by a depth-first walk of the Required edges.

    Each chain starts at the node the back edge points to and repeats it at
    the end, e.g. ``["A", "B", "C", "A"]``. Every unvisited node is used as a
    DFS root, so disjoint cycles are all found.
    """
    count = len(index)
    visited = [False] * count
    on_stack = [False] * count
    path: List[int] = []
    chains: List[List[str]] = []

    for root in range(count):
        if visited[root]:
            continue

        # Frames are (node, next neighbour offset).
        stack: List[Tuple[int, int]] = [(root, 0)]
        visited[root] = True
        on_stack[root] = True
        path.append(root)

        while stack:
            node, offset = stack[-1]
            neighbours = index.required[node]
            if offset < len(neighbours):
                stack[-1] = (node, offset + 1)
                target = neighbours[offset]
                if not visited[target]:
                    visited[target] = True
                    on_stack[target] = True
                    path.append(target)
                    stack.append((target, 0))
                elif on_stack[target]:
                    start = path.index(target)
                    chains.append([index.ids[i] for i in path[start:]] + [index.ids[target]])
                continue

            stack.pop()
            path.pop()
            on_stack[node] = False

    return chains


def detect_cycles(graph: DependencyGraph) -> List[List[str]]:
    """Fill ``circular_chains`` and ``has_circular_dependencies`` on a graph."""
    chains = find_circular_chains(GraphIndex.from_graph(graph))
    graph.circular_chains = chains
    graph.has_circular_dependencies = len(chains) > 0
    if chains:
        logger.debug("Found %d circular dependency chain(s)", len(chains))
    return chains
