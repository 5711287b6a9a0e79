"""Pytest configuration and fixtures for ModGraph CLI tests."""

import json
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from modgraph_cli.catalog import ModuleCatalog, load_catalog

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture(autouse=True)
def modgraph_home(temp_dir: Path, monkeypatch) -> Path:
    """Point config and snapshot history at a throwaway directory."""
    home = temp_dir / "home"
    monkeypatch.setattr("modgraph_cli.config.BASE_DIR", home)
    monkeypatch.setattr("modgraph_cli.config.CONFIG_FILE", home / "config.toml")
    monkeypatch.setattr("modgraph_cli.config.HISTORY_FILE", home / "load_order_history.json")
    monkeypatch.delenv("MODGRAPH_CATALOG", raising=False)
    return home


@pytest.fixture
def catalog_file(temp_dir: Path) -> Path:
    """Writable copy of the sample catalog."""
    target = temp_dir / "catalog.json"
    shutil.copy(FIXTURES / "sample_catalog.json", target)
    return target


@pytest.fixture
def sample_catalog(catalog_file: Path) -> ModuleCatalog:
    return load_catalog(catalog_file)


@pytest.fixture
def cyclic_catalog_file(temp_dir: Path) -> Path:
    """Catalog where A -> B -> C -> A, all selected."""
    payload = {
        "modules": [
            {"id": "A", "name": "A", "dependencies": ["B"]},
            {"id": "B", "name": "B", "dependencies": ["C"]},
            {"id": "C", "name": "C", "dependencies": ["A"]},
        ],
        "loadOrder": ["A", "B", "C"],
    }
    target = temp_dir / "cyclic.json"
    target.write_text(json.dumps(payload), encoding="utf-8")
    return target
