"""Tests for the dependency graph builder."""

from modgraph_cli.catalog import ModuleCatalog
from modgraph_cli.graph_builder import build_dependency_graph
from modgraph_cli.models import DependencyType, GraphOptions, Module, ModuleRef


def _build(catalog: ModuleCatalog, **options):
    return build_dependency_graph(catalog.modules, catalog.selected_ids(), GraphOptions(**options))


class TestNodes:
    """Tests for node filtering and metrics."""

    def test_natives_left_out_by_default(self, sample_catalog: ModuleCatalog):
        """Test native modules are not nodes unless asked for."""
        graph = _build(sample_catalog)

        assert [n.id for n in graph.nodes] == [
            "Harmony", "CoreLib", "Tweaks", "UIExtender", "OldTweaks", "Lonely",
        ]
        assert graph.node("Native") is None

    def test_include_native(self, sample_catalog: ModuleCatalog):
        """Test native modules become nodes when included."""
        graph = _build(sample_catalog, include_native_modules=True)

        native = graph.node("Native")
        assert native is not None
        assert native.is_native
        assert native.dependent_count == 2
        assert graph.total_nodes == 7

    def test_selected_only(self, sample_catalog: ModuleCatalog):
        """Test unselected modules are dropped with selected_only."""
        graph = _build(sample_catalog, selected_only=True)

        assert graph.node("OldTweaks") is None
        assert graph.edges_of_type(DependencyType.INCOMPATIBLE) == []

    def test_metrics_count_required_edges(self, sample_catalog: ModuleCatalog):
        """Test dependency and dependent counts only count Required edges."""
        graph = _build(sample_catalog)

        assert graph.node("CoreLib").dependency_count == 1
        assert graph.node("CoreLib").dependent_count == 1
        assert graph.node("Harmony").dependent_count == 1
        assert graph.node("Tweaks").dependency_count == 1
        assert graph.node("UIExtender").dependent_count == 0

    def test_counts_match_lists(self, sample_catalog: ModuleCatalog):
        """Test total counts agree with the node and edge lists."""
        graph = _build(sample_catalog, include_native_modules=True)

        assert graph.total_nodes == len(graph.nodes)
        assert graph.total_edges == len(graph.edges)
        node_ids = {n.id for n in graph.nodes}
        for edge in graph.edges:
            assert edge.source_id in node_ids


class TestEdges:
    """Tests for typed edges."""

    def test_edge_types(self, sample_catalog: ModuleCatalog):
        """Test each relation becomes the right edge type."""
        graph = _build(sample_catalog)
        edges = [(e.source_id, e.target_id, e.type) for e in graph.edges]

        assert edges == [
            ("CoreLib", "Harmony", DependencyType.REQUIRED),
            ("Tweaks", "CoreLib", DependencyType.REQUIRED),
            ("Tweaks", "UIExtender", DependencyType.OPTIONAL),
            ("Tweaks", "OldTweaks", DependencyType.INCOMPATIBLE),
            ("Tweaks", "UIExtender", DependencyType.LOAD_BEFORE),
        ]

    def test_edge_labels_and_versions(self, sample_catalog: ModuleCatalog):
        """Test labels and carried version requirements."""
        graph = _build(sample_catalog)
        required = graph.edges_of_type(DependencyType.REQUIRED)

        assert required[0].label == "requires"
        assert required[0].required_version == "v2.3.0"
        assert required[1].required_version is None
        assert graph.edges_of_type(DependencyType.LOAD_BEFORE)[0].label == "loads before"

    def test_incompatible_satisfied_when_other_disabled(self, sample_catalog: ModuleCatalog):
        """Test an incompatibility is satisfied while the other module is off."""
        graph = _build(sample_catalog)
        assert graph.edges_of_type(DependencyType.INCOMPATIBLE)[0].is_satisfied

        graph = build_dependency_graph(sample_catalog.modules, sample_catalog.selected_ids() | {"OldTweaks"})
        assert not graph.edges_of_type(DependencyType.INCOMPATIBLE)[0].is_satisfied

    def test_optional_unsatisfied_when_target_unselected(self):
        """Test an optional dependency on a disabled module is not satisfied."""
        modules = [
            Module(id="A", name="A", required=[ModuleRef(id="B", optional=True)]),
            Module(id="B", name="B"),
        ]

        graph = build_dependency_graph(modules, {"A"})
        assert not graph.edges_of_type(DependencyType.OPTIONAL)[0].is_satisfied

        graph = build_dependency_graph(modules, {"A", "B"})
        assert graph.edges_of_type(DependencyType.OPTIONAL)[0].is_satisfied

    def test_no_optional(self, sample_catalog: ModuleCatalog):
        """Test optional edges can be left out."""
        graph = _build(sample_catalog, include_optional=False)

        assert graph.edges_of_type(DependencyType.OPTIONAL) == []

    def test_dangling_edge_kept_with_natives(self):
        """Test a reference to an unknown module is kept only with natives included."""
        modules = [Module(id="A", name="A", required=[ModuleRef(id="Ghost")])]

        assert build_dependency_graph(modules, {"A"}).edges == []

        graph = build_dependency_graph(modules, {"A"}, GraphOptions(include_native_modules=True))
        assert len(graph.edges) == 1
        assert graph.edges[0].target_id == "Ghost"
        assert not graph.edges[0].is_satisfied

    def test_required_satisfied_needs_selection(self):
        """Test a required edge is unsatisfied while its target is unselected."""
        modules = [
            Module(id="A", name="A", required=[ModuleRef(id="B")]),
            Module(id="B", name="B"),
        ]

        assert build_dependency_graph(modules, {"A", "B"}).edges[0].is_satisfied
        assert not build_dependency_graph(modules, {"A"}).edges[0].is_satisfied


class TestRootsAndOrphans:
    """Tests for root and orphan classification."""

    def test_orphans(self, sample_catalog: ModuleCatalog):
        """Test orphans are non-native modules nothing requires."""
        graph = _build(sample_catalog)

        assert graph.orphaned_modules == ["Tweaks", "UIExtender", "OldTweaks", "Lonely"]

    def test_roots(self, sample_catalog: ModuleCatalog):
        """Test roots only require native modules, or nothing."""
        graph = _build(sample_catalog, include_native_modules=True)

        assert graph.root_modules == ["Harmony", "UIExtender", "OldTweaks", "Lonely"]
        assert "Native" not in graph.orphaned_modules

    def test_no_cycles_in_sample(self, sample_catalog: ModuleCatalog):
        """Test the builder runs cycle detection."""
        graph = _build(sample_catalog)

        assert not graph.has_circular_dependencies
        assert graph.circular_chains == []
