"""Tests for catalog parsing and load-order write-back."""

import json
import logging
from pathlib import Path

import pytest

from modgraph_cli.catalog import ModuleCatalog, load_catalog, parse_catalog, save_load_order
from modgraph_cli.errors import CatalogError
from modgraph_cli.models import ModuleRef
from modgraph_cli.order_models import LoadOrderEntry


class TestParseCatalog:
    """Tests for parse_catalog."""

    def test_sample_catalog(self, sample_catalog: ModuleCatalog):
        """Test the fixture catalog parses into modules and an order."""
        index = sample_catalog.index()

        assert len(sample_catalog.modules) == 7
        assert index["Native"].is_native
        assert index["CoreLib"].name == "Core Library"
        assert index["CoreLib"].required == [
            ModuleRef(id="Native"),
            ModuleRef(id="Harmony", version="v2.3.0"),
        ]
        assert index["Tweaks"].optional_ids() == ["UIExtender"]
        assert index["Tweaks"].required_ids() == ["CoreLib"]
        assert index["Lonely"].load_before == ["Harmony"]

    def test_selection_state(self, sample_catalog: ModuleCatalog):
        """Test selected ids and the enabled map follow loadOrder."""
        assert "OldTweaks" not in sample_catalog.selected_ids()
        assert sample_catalog.enabled_state()["OldTweaks"] is False
        assert sample_catalog.current_order()[:2] == ["Native", "Tweaks"]

    def test_name_defaults_to_id(self):
        """Test a module without a name is named after its id."""
        catalog = parse_catalog({"modules": [{"id": "Bare"}]})

        assert catalog.modules[0].name == "Bare"
        assert catalog.load_order == []

    def test_string_load_order_items_are_selected(self):
        """Test bare ids in loadOrder count as selected."""
        catalog = parse_catalog({"modules": [{"id": "A"}], "loadOrder": ["A"]})

        assert catalog.load_order == [("A", True)]

    def test_duplicate_module_id(self):
        """Test duplicate module ids are rejected."""
        with pytest.raises(CatalogError, match="Duplicate module id 'A'"):
            parse_catalog({"modules": [{"id": "A"}, {"id": "A"}]})

    def test_duplicate_load_order_entry(self, caplog):
        """Test a module listed twice keeps its first position."""
        payload = {"modules": [{"id": "A"}, {"id": "B"}], "loadOrder": ["A", "B", "A"]}

        with caplog.at_level(logging.WARNING, logger="modgraph_cli.catalog"):
            catalog = parse_catalog(payload)

        assert catalog.current_order() == ["A", "B"]
        assert "listed twice" in caplog.text

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"modules": {}},
            {"modules": [{"name": "no id"}]},
            {"modules": [{"id": "A", "dependencies": "B"}]},
            {"modules": [{"id": "A", "dependencies": [{"version": "v1"}]}]},
            {"modules": [{"id": "A", "loadAfter": [1]}]},
            {"modules": [], "loadOrder": [42]},
        ],
    )
    def test_malformed(self, payload):
        """Test malformed documents raise CatalogError."""
        with pytest.raises(CatalogError):
            parse_catalog(payload)


class TestLoadCatalog:
    """Tests for reading catalog files."""

    def test_missing_file(self, temp_dir: Path):
        """Test a missing file raises CatalogError."""
        with pytest.raises(CatalogError, match="not found"):
            load_catalog(temp_dir / "nope.json")

    def test_invalid_json(self, temp_dir: Path):
        """Test invalid JSON raises CatalogError."""
        path = temp_dir / "bad.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(CatalogError, match="Could not read"):
            load_catalog(path)


class TestSaveLoadOrder:
    """Tests for save_load_order."""

    def test_rewrites_order_and_keeps_modules(self, catalog_file: Path):
        """Test the new order is written and the module list untouched."""
        before = json.loads(catalog_file.read_text())
        entries = [
            LoadOrderEntry(id="Harmony", name="Harmony", is_selected=True, index=1),
            LoadOrderEntry(id="Native", name="Native", is_selected=True, index=0),
        ]

        save_load_order(catalog_file, entries)
        after = json.loads(catalog_file.read_text())

        assert after["modules"] == before["modules"]
        ids = [item["id"] for item in after["loadOrder"]]
        assert ids[:2] == ["Native", "Harmony"]
        assert sorted(ids) == sorted(item["id"] for item in before["loadOrder"])

    def test_leftovers_keep_selection(self, catalog_file: Path):
        """Test modules absent from the entries keep their previous state."""
        save_load_order(
            catalog_file, [LoadOrderEntry(id="Lonely", name="Lonely", is_selected=False, index=0)]
        )
        order = {item["id"]: item["isSelected"] for item in json.loads(catalog_file.read_text())["loadOrder"]}

        assert order["Lonely"] is False
        assert order["OldTweaks"] is False
        assert order["Tweaks"] is True
