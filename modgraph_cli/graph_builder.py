"""Build a typed dependency graph from the module catalog.

The builder is a pure function of the catalog, the current selection and the
graph options. Node metrics are filled in a second pass over the edges, and
cycle detection runs on the finished graph before it is returned.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, Optional, Sequence

from .cycles import detect_cycles
from .models import (
    DependencyEdge,
    DependencyGraph,
    DependencyNode,
    DependencyType,
    GraphOptions,
    Module,
    index_modules,
)

logger = logging.getLogger(__name__)


def build_dependency_graph(
    modules: Sequence[Module],
    selected_ids: Iterable[str],
    options: Optional[GraphOptions] = None,
) -> DependencyGraph:
    """Convert the catalog and selection state into a :class:`DependencyGraph`.

    Args:
        modules: Full module catalog.
        selected_ids: Ids of currently selected (enabled) modules.
        options: Native/optional/selected-only filters. Defaults apply when None.

    Returns:
        A new graph with metrics, orphans, roots and circular chains filled in.
    """
    options = options or GraphOptions()
    selected = set(selected_ids)
    catalog = index_modules(list(modules))
    graph = DependencyGraph()

    for module in catalog.values():
        if not options.include_native_modules and module.is_native:
            continue
        if options.selected_only and module.id not in selected:
            continue
        graph.nodes.append(
            DependencyNode(
                id=module.id,
                name=module.name,
                version=module.version,
                is_native=module.is_native,
                is_selected=module.id in selected,
            )
        )

    node_ids = {node.id for node in graph.nodes}

    for module in catalog.values():
        if module.id not in node_ids:
            continue

        for ref in module.required:
            if ref.optional:
                continue
            # Dangling references are only kept when native modules are in play;
            # otherwise an absent target is assumed to be an elided native.
            if ref.id not in node_ids and not options.include_native_modules:
                continue
            graph.edges.append(
                DependencyEdge(
                    source_id=module.id,
                    target_id=ref.id,
                    type=DependencyType.REQUIRED,
                    required_version=ref.version or None,
                    is_satisfied=ref.id in catalog and ref.id in selected,
                    label="requires",
                )
            )

        if options.include_optional:
            for ref in module.required:
                if not ref.optional or ref.id not in node_ids:
                    continue
                graph.edges.append(
                    DependencyEdge(
                        source_id=module.id,
                        target_id=ref.id,
                        type=DependencyType.OPTIONAL,
                        required_version=ref.version or None,
                        is_satisfied=ref.id in catalog and ref.id in selected,
                        label="optional",
                    )
                )

        for other_id in module.incompatible:
            if other_id not in node_ids:
                continue
            graph.edges.append(
                DependencyEdge(
                    source_id=module.id,
                    target_id=other_id,
                    type=DependencyType.INCOMPATIBLE,
                    is_satisfied=other_id not in selected,
                    label="incompatible",
                )
            )

        for earlier_id in module.load_after:
            if earlier_id not in node_ids:
                continue
            graph.edges.append(
                DependencyEdge(
                    source_id=module.id,
                    target_id=earlier_id,
                    type=DependencyType.LOAD_BEFORE,
                    is_satisfied=True,
                    label="loads before",
                )
            )

    _fill_metrics(graph)

    native_ids = {m.id for m in catalog.values() if m.is_native}
    graph.orphaned_modules = [
        n.id for n in graph.nodes if not n.is_native and n.dependent_count == 0
    ]
    graph.root_modules = [
        n.id
        for n in graph.nodes
        if not n.is_native
        and all(
            e.target_id in native_ids
            for e in graph.edges
            if e.source_id == n.id and e.type == DependencyType.REQUIRED
        )
    ]

    detect_cycles(graph)

    logger.debug(
        "Built dependency graph: %d nodes, %d edges, %d cycles",
        graph.total_nodes, graph.total_edges, len(graph.circular_chains),
    )
    return graph


def _fill_metrics(graph: DependencyGraph) -> None:
    outgoing: Counter = Counter()
    incoming: Counter = Counter()
    for edge in graph.edges:
        if edge.type == DependencyType.REQUIRED:
            outgoing[edge.source_id] += 1
            incoming[edge.target_id] += 1
    for node in graph.nodes:
        node.dependency_count = outgoing[node.id]
        node.dependent_count = incoming[node.id]
