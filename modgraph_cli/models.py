"""Core data models for the module catalog and the dependency graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class DependencyType(str, Enum):
    REQUIRED = "Required"
    OPTIONAL = "Optional"
    INCOMPATIBLE = "Incompatible"
    LOAD_BEFORE = "LoadBefore"
    LOAD_AFTER = "LoadAfter"


class ExportFormat(str, Enum):
    JSON = "json"
    DOT = "dot"
    MERMAID = "mermaid"
    CSV = "csv"


@dataclass(frozen=True)
class ModuleRef:
    """A declared dependency on another module."""
    id: str
    version: str = ""
    optional: bool = False


@dataclass(frozen=True)
class Module:
    """A catalog entry. Read-only to the analysis code.

    ``load_after`` lists modules that must be loaded before this one;
    ``load_before`` lists modules that must be loaded after it.
    """
    id: str
    name: str
    version: str = ""
    is_native: bool = False
    required: List[ModuleRef] = field(default_factory=list)
    load_after: List[str] = field(default_factory=list)
    load_before: List[str] = field(default_factory=list)
    incompatible: List[str] = field(default_factory=list)

    def required_ids(self) -> List[str]:
        return [ref.id for ref in self.required if not ref.optional]

    def optional_ids(self) -> List[str]:
        return [ref.id for ref in self.required if ref.optional]

    def dependency_ids(self) -> List[str]:
        return [ref.id for ref in self.required]


@dataclass
class DependencyNode:
    id: str
    name: str
    version: str = ""
    is_native: bool = False
    is_selected: bool = False
    depth: int = 0
    dependency_count: int = 0
    dependent_count: int = 0


@dataclass
class DependencyEdge:
    """Directed edge; ``source_id`` is the dependent, ``target_id`` the dependency."""
    source_id: str
    target_id: str
    type: DependencyType
    required_version: Optional[str] = None
    is_satisfied: bool = False
    label: str = ""


@dataclass
class DependencyGraph:
    nodes: List[DependencyNode] = field(default_factory=list)
    edges: List[DependencyEdge] = field(default_factory=list)
    circular_chains: List[List[str]] = field(default_factory=list)
    orphaned_modules: List[str] = field(default_factory=list)
    root_modules: List[str] = field(default_factory=list)
    has_circular_dependencies: bool = False

    @property
    def total_nodes(self) -> int:
        return len(self.nodes)

    @property
    def total_edges(self) -> int:
        return len(self.edges)

    def node(self, node_id: str) -> Optional[DependencyNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def edges_of_type(self, edge_type: DependencyType) -> List[DependencyEdge]:
        return [e for e in self.edges if e.type == edge_type]


@dataclass
class DependencyTreeNode:
    id: str
    name: str
    version: str
    type: DependencyType
    is_satisfied: bool
    is_installed: bool
    depth: int
    children: List["DependencyTreeNode"] = field(default_factory=list)


@dataclass
class ModuleDependencyTree:
    """Upstream and downstream trees for a single module."""
    root_module_id: str
    root_module_name: str
    dependencies: List[DependencyTreeNode] = field(default_factory=list)
    dependents: List[DependencyTreeNode] = field(default_factory=list)
    total_dependencies: int = 0
    total_dependents: int = 0
    max_depth: int = 0


@dataclass
class GraphOptions:
    """Filters for graph building plus rendering hints for export."""
    format: ExportFormat = ExportFormat.JSON
    include_native_modules: bool = False
    include_optional: bool = True
    include_versions: bool = True
    selected_only: bool = False


ModuleIndex = Dict[str, Module]


def index_modules(modules: List[Module]) -> ModuleIndex:
    """Map module id to module, first occurrence wins."""
    index: ModuleIndex = {}
    for module in modules:
        index.setdefault(module.id, module)
    return index
