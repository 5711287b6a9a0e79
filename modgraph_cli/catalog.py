"""Module catalog file reader and load-order writer.

A catalog file is a JSON document::

    {
      "modules": [
        {"id": "Native", "name": "Native", "version": "v1.2.0", "isNative": true},
        {"id": "MyMod", "name": "My Mod", "version": "v0.4.1",
         "dependencies": ["Native", {"id": "Harmony", "version": "v2.3", "optional": true}],
         "loadAfter": ["Native"], "loadBefore": [], "incompatible": ["OtherMod"]}
      ],
      "loadOrder": [{"id": "Native", "isSelected": true}, {"id": "MyMod", "isSelected": false}]
    }

``loadOrder`` is the current linear order together with the selection state.
Modules that do not appear in it are treated as unselected.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Sequence, Set, Tuple

from .errors import CatalogError
from .models import Module, ModuleIndex, ModuleRef, index_modules
from .order_models import LoadOrderEntry

logger = logging.getLogger(__name__)

# (module id, is selected) in current load order.
OrderItem = Tuple[str, bool]


@dataclass
class ModuleCatalog:
    modules: List[Module] = field(default_factory=list)
    load_order: List[OrderItem] = field(default_factory=list)

    def index(self) -> ModuleIndex:
        return index_modules(self.modules)

    def selected_ids(self) -> Set[str]:
        return {module_id for module_id, selected in self.load_order if selected}

    def current_order(self) -> List[str]:
        return [module_id for module_id, _ in self.load_order]

    def enabled_state(self) -> Dict[str, bool]:
        return {module_id: selected for module_id, selected in self.load_order}


def _as_str_list(value: Any, where: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise CatalogError(f"{where} must be a list of module ids")
    return list(value)


def _parse_ref(raw: Any, where: str) -> ModuleRef:
    if isinstance(raw, str):
        return ModuleRef(id=raw)
    if isinstance(raw, dict) and isinstance(raw.get("id"), str):
        return ModuleRef(
            id=raw["id"],
            version=str(raw.get("version", "")),
            optional=bool(raw.get("optional", False)),
        )
    raise CatalogError(f"{where}: dependency entries need an 'id'")


def parse_module(raw: Any, position: int) -> Module:
    if not isinstance(raw, dict) or not isinstance(raw.get("id"), str) or not raw["id"]:
        raise CatalogError(f"modules[{position}] must be an object with a non-empty 'id'")
    module_id = raw["id"]
    where = f"module '{module_id}'"
    deps = raw.get("dependencies") or []
    if not isinstance(deps, list):
        raise CatalogError(f"{where}: 'dependencies' must be a list")
    return Module(
        id=module_id,
        name=str(raw.get("name") or module_id),
        version=str(raw.get("version", "")),
        is_native=bool(raw.get("isNative", False)),
        required=[_parse_ref(d, where) for d in deps],
        load_after=_as_str_list(raw.get("loadAfter"), f"{where}: 'loadAfter'"),
        load_before=_as_str_list(raw.get("loadBefore"), f"{where}: 'loadBefore'"),
        incompatible=_as_str_list(raw.get("incompatible"), f"{where}: 'incompatible'"),
    )


def parse_catalog(payload: Any) -> ModuleCatalog:
    """Build a :class:`ModuleCatalog` from a decoded JSON document."""
    if not isinstance(payload, dict):
        raise CatalogError("Catalog root must be a JSON object")
    raw_modules = payload.get("modules", [])
    if not isinstance(raw_modules, list):
        raise CatalogError("'modules' must be a list")

    modules: List[Module] = []
    seen: Set[str] = set()
    for position, raw in enumerate(raw_modules):
        module = parse_module(raw, position)
        if module.id in seen:
            raise CatalogError(f"Duplicate module id '{module.id}'")
        seen.add(module.id)
        modules.append(module)

    raw_order = payload.get("loadOrder", [])
    if not isinstance(raw_order, list):
        raise CatalogError("'loadOrder' must be a list")
    load_order: List[OrderItem] = []
    listed: Set[str] = set()
    for position, item in enumerate(raw_order):
        if isinstance(item, str):
            module_id, selected = item, True
        elif isinstance(item, dict) and isinstance(item.get("id"), str):
            module_id, selected = item["id"], bool(item.get("isSelected", True))
        else:
            raise CatalogError(f"loadOrder[{position}] must be an id or an object with an 'id'")
        if module_id in listed:
            logger.warning("Module '%s' listed twice in loadOrder; keeping first position", module_id)
            continue
        listed.add(module_id)
        load_order.append((module_id, selected))

    return ModuleCatalog(modules=modules, load_order=load_order)


def load_catalog(path: Path) -> ModuleCatalog:
    """Read and parse a catalog file."""
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise CatalogError(f"Catalog file not found: {path}") from None
    except (OSError, json.JSONDecodeError) as exc:
        raise CatalogError(f"Could not read catalog {path}: {exc}") from exc
    catalog = parse_catalog(payload)
    logger.debug(
        "Loaded catalog %s: %d modules, %d in load order",
        path, len(catalog.modules), len(catalog.load_order),
    )
    return catalog


def save_load_order(path: Path, entries: Sequence[LoadOrderEntry]) -> None:
    """Replace the ``loadOrder`` of a catalog file, keeping everything else.

    Modules that were listed before but are absent from ``entries`` are
    appended after them with their previous selection state, so no module
    silently drops out.
    """
    path = Path(path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise CatalogError(f"Could not read catalog {path}: {exc}") from exc

    ordered = sorted(entries, key=lambda e: e.index)
    new_order = [{"id": e.id, "isSelected": e.is_selected} for e in ordered]
    placed = {e.id for e in ordered}
    for item in payload.get("loadOrder", []):
        if isinstance(item, str):
            module_id, selected = item, True
        else:
            module_id, selected = item.get("id"), bool(item.get("isSelected", True))
        if module_id and module_id not in placed:
            new_order.append({"id": module_id, "isSelected": selected})
            placed.add(module_id)

    payload["loadOrder"] = new_order
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logger.debug("Wrote load order with %d entries to %s", len(new_order), path)
