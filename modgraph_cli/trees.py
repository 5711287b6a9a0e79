"""Per-module dependency and dependent trees.

Both trees are expanded depth-first with one ``visited`` set shared by the
whole traversal, so a module appears at most once per tree. That also stops
the walk on cycles; cycle membership itself is reported by :mod:`.cycles`.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Set, Tuple

from .models import (
    DependencyTreeNode,
    DependencyType,
    Module,
    ModuleDependencyTree,
    ModuleIndex,
    index_modules,
)

# (module being expanded, next child offset, depth of its children, list to fill)
_Frame = Tuple[Module, int, int, List[DependencyTreeNode]]


def build_module_tree(modules: Sequence[Module], module_id: str) -> ModuleDependencyTree:
    """Build upstream and downstream trees for ``module_id``.

    An unknown id yields an empty tree named after the id.
    """
    catalog = index_modules(list(modules))
    root = catalog.get(module_id)
    tree = ModuleDependencyTree(
        root_module_id=module_id,
        root_module_name=root.name if root else module_id,
    )
    if root is None:
        return tree

    tree.dependencies = _dependency_branch(root, catalog)
    tree.total_dependencies = len(flatten_ids(tree.dependencies))

    tree.dependents = _dependent_branch(root, catalog)
    tree.total_dependents = len(flatten_ids(tree.dependents))

    tree.max_depth = max(max_depth(tree.dependencies), max_depth(tree.dependents))
    return tree


def _dependency_branch(root: Module, catalog: ModuleIndex) -> List[DependencyTreeNode]:
    top: List[DependencyTreeNode] = []
    visited: Set[str] = set()
    stack: List[_Frame] = [(root, 0, 0, top)]

    while stack:
        module, offset, depth, out = stack[-1]
        if offset >= len(module.required):
            stack.pop()
            continue
        stack[-1] = (module, offset + 1, depth, out)

        ref = module.required[offset]
        if ref.id in visited:
            continue
        visited.add(ref.id)

        installed = catalog.get(ref.id)
        node = DependencyTreeNode(
            id=ref.id,
            name=installed.name if installed else ref.id,
            version=ref.version,
            type=DependencyType.OPTIONAL if ref.optional else DependencyType.REQUIRED,
            is_satisfied=installed is not None,
            is_installed=installed is not None,
            depth=depth,
        )
        out.append(node)
        if installed is not None:
            stack.append((installed, 0, depth + 1, node.children))

    return top


def _reverse_dependencies(catalog: ModuleIndex) -> Dict[str, List[Module]]:
    dependents: Dict[str, List[Module]] = {}
    for module in catalog.values():
        for dep_id in dict.fromkeys(module.dependency_ids()):
            dependents.setdefault(dep_id, []).append(module)
    return dependents


def _dependent_branch(root: Module, catalog: ModuleIndex) -> List[DependencyTreeNode]:
    reverse = _reverse_dependencies(catalog)
    top: List[DependencyTreeNode] = []
    visited: Set[str] = set()
    # Frames hold the list of dependents of the module being expanded.
    stack: List[Tuple[List[Module], int, int, List[DependencyTreeNode]]] = [
        (reverse.get(root.id, []), 0, 0, top)
    ]

    while stack:
        candidates, offset, depth, out = stack[-1]
        if offset >= len(candidates):
            stack.pop()
            continue
        stack[-1] = (candidates, offset + 1, depth, out)

        dependent = candidates[offset]
        if dependent.id in visited:
            continue
        visited.add(dependent.id)

        node = DependencyTreeNode(
            id=dependent.id,
            name=dependent.name,
            version=dependent.version,
            type=DependencyType.REQUIRED,
            is_satisfied=True,
            is_installed=True,
            depth=depth,
        )
        out.append(node)
        stack.append((reverse.get(dependent.id, []), 0, depth + 1, node.children))

    return top


def flatten_ids(nodes: Iterable[DependencyTreeNode]) -> List[str]:
    """Distinct ids across a forest, in pre-order of first appearance."""
    seen: Dict[str, None] = {}
    stack = list(reversed(list(nodes)))
    while stack:
        node = stack.pop()
        seen.setdefault(node.id, None)
        stack.extend(reversed(node.children))
    return list(seen)


def max_depth(nodes: Sequence[DependencyTreeNode]) -> int:
    """``1 + max(child depth)`` over the forest, 0 when empty."""
    deepest = 0
    stack = [(node, 1) for node in nodes]
    while stack:
        node, level = stack.pop()
        deepest = max(deepest, level)
        stack.extend((child, level + 1) for child in node.children)
    return deepest


def all_required_modules(modules: Sequence[Module], module_id: str) -> List[str]:
    """Every module ``module_id`` needs, directly or transitively."""
    return flatten_ids(build_module_tree(modules, module_id).dependencies)


def affected_modules(modules: Sequence[Module], module_id: str) -> List[str]:
    """Every module that would be affected by disabling ``module_id``."""
    return flatten_ids(build_module_tree(modules, module_id).dependents)
