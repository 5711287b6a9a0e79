"""Tests for per-module dependency and dependent trees."""

from typing import List

from modgraph_cli.catalog import ModuleCatalog
from modgraph_cli.models import DependencyType, Module, ModuleRef
from modgraph_cli.trees import (
    affected_modules,
    all_required_modules,
    build_module_tree,
    flatten_ids,
    max_depth,
)


def _abc() -> List[Module]:
    return [
        Module(id="A", name="Alpha", required=[ModuleRef(id="B"), ModuleRef(id="C")]),
        Module(id="B", name="Beta", required=[ModuleRef(id="C")]),
        Module(id="C", name="Gamma"),
    ]


class TestDependencyTree:
    """Tests for the upstream tree."""

    def test_shared_visited_set(self):
        """Test A{B,C}, B{C} lists C once, under B."""
        tree = build_module_tree(_abc(), "A")

        assert tree.root_module_name == "Alpha"
        assert [n.id for n in tree.dependencies] == ["B"]
        assert [n.id for n in tree.dependencies[0].children] == ["C"]
        assert tree.total_dependencies == 2
        assert tree.max_depth == 2

    def test_depth_starts_at_zero(self):
        """Test direct dependencies have depth 0."""
        tree = build_module_tree(_abc(), "A")

        assert tree.dependencies[0].depth == 0
        assert tree.dependencies[0].children[0].depth == 1

    def test_missing_dependency_not_expanded(self):
        """Test an uninstalled dependency is listed but has no children."""
        modules = [Module(id="A", name="A", required=[ModuleRef(id="Ghost", version="v1")])]

        node = build_module_tree(modules, "A").dependencies[0]

        assert node.name == "Ghost"
        assert node.version == "v1"
        assert not node.is_installed
        assert not node.is_satisfied
        assert node.children == []

    def test_optional_dependency_type(self, sample_catalog: ModuleCatalog):
        """Test optional refs appear with the Optional type."""
        tree = build_module_tree(sample_catalog.modules, "Tweaks")
        types = {n.id: n.type for n in tree.dependencies}

        assert types == {"CoreLib": DependencyType.REQUIRED, "UIExtender": DependencyType.OPTIONAL}

    def test_unknown_module(self):
        """Test an unknown id yields an empty tree named after the id."""
        tree = build_module_tree(_abc(), "Nope")

        assert tree.root_module_name == "Nope"
        assert tree.dependencies == []
        assert tree.dependents == []
        assert tree.max_depth == 0

    def test_cycle_terminates(self):
        """Test a cycle does not expand forever."""
        modules = [
            Module(id="A", name="A", required=[ModuleRef(id="B")]),
            Module(id="B", name="B", required=[ModuleRef(id="A")]),
        ]

        tree = build_module_tree(modules, "A")

        assert flatten_ids(tree.dependencies) == ["B", "A"]


class TestDependentTree:
    """Tests for the downstream tree."""

    def test_dependents(self):
        """Test C is needed by A and B."""
        tree = build_module_tree(_abc(), "C")

        assert [n.id for n in tree.dependents] == ["A", "B"]
        assert tree.total_dependents == 2
        assert all(n.type == DependencyType.REQUIRED and n.is_installed for n in tree.dependents)

    def test_transitive_dependents(self, sample_catalog: ModuleCatalog):
        """Test dependents of dependents are nested."""
        tree = build_module_tree(sample_catalog.modules, "Harmony")

        assert [n.id for n in tree.dependents] == ["CoreLib"]
        assert [n.id for n in tree.dependents[0].children] == ["Tweaks"]
        assert tree.max_depth == 2


class TestHelpers:
    """Tests for flattening and the convenience queries."""

    def test_all_required_modules(self, sample_catalog: ModuleCatalog):
        """Test every transitive requirement is listed once."""
        assert all_required_modules(sample_catalog.modules, "Tweaks") == [
            "CoreLib", "Native", "Harmony", "UIExtender",
        ]

    def test_affected_modules(self, sample_catalog: ModuleCatalog):
        """Test disabling a module affects everything downstream."""
        assert affected_modules(sample_catalog.modules, "Native") == ["CoreLib", "Tweaks", "UIExtender"]
        assert affected_modules(sample_catalog.modules, "Lonely") == []

    def test_max_depth_empty(self):
        """Test an empty forest has depth 0."""
        assert max_depth([]) == 0
