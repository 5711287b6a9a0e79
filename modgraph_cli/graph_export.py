"""Graph export helpers for JSON, Graphviz DOT, Mermaid and CSV outputs."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional

from .models import (
    DependencyGraph,
    DependencyType,
    ExportFormat,
    GraphOptions,
    ModuleDependencyTree,
)

_DOT_EDGE_STYLE = {
    DependencyType.REQUIRED: "solid",
    DependencyType.OPTIONAL: "dashed",
    DependencyType.INCOMPATIBLE: "dotted",
}

_MERMAID_ARROW = {
    DependencyType.REQUIRED: "-->",
    DependencyType.OPTIONAL: "-.->",
    DependencyType.INCOMPATIBLE: "--x",
}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _camelize(value: Any) -> Any:
    if isinstance(value, dict):
        return {_camel(k): _camelize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_camelize(v) for v in value]
    return value


def graph_to_dict(graph: DependencyGraph) -> dict:
    payload = _camelize(asdict(graph))
    payload["totalNodes"] = graph.total_nodes
    payload["totalEdges"] = graph.total_edges
    return payload


def export_json(graph: DependencyGraph) -> str:
    return json.dumps(graph_to_dict(graph), indent=2)


def export_tree_json(tree: ModuleDependencyTree) -> str:
    return json.dumps(_camelize(asdict(tree)), indent=2)


def export_dot(graph: DependencyGraph, options: Optional[GraphOptions] = None) -> str:
    options = options or GraphOptions()
    lines = ["digraph ModuleDependencies {"]
    lines.append("  rankdir=LR;")
    lines.append("  node [shape=box];")
    lines.append("")

    for node in graph.nodes:
        label = f"{node.name}\\n{node.version}" if options.include_versions else node.name
        style = "filled" if node.is_native else ("bold" if node.is_selected else "dashed")
        lines.append(f'  "{_esc(node.id)}" [label="{_esc(label)}", style={style}];')

    lines.append("")

    for edge in graph.edges:
        style = _DOT_EDGE_STYLE.get(edge.type, "solid")
        color = "red" if edge.type == DependencyType.INCOMPATIBLE else "black"
        lines.append(
            f'  "{_esc(edge.source_id)}" -> "{_esc(edge.target_id)}" [style={style}, color={color}];'
        )

    lines.append("}")
    return "\n".join(lines) + "\n"


def export_mermaid(graph: DependencyGraph) -> str:
    lines = ["graph LR"]
    for edge in graph.edges:
        arrow = _MERMAID_ARROW.get(edge.type, "-->")
        lines.append(f"  {_mermaid_id(edge.source_id)}{arrow}{_mermaid_id(edge.target_id)}")
    return "\n".join(lines) + "\n"


def export_csv(graph: DependencyGraph) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["Source", "Target", "Type", "Satisfied"])
    for edge in graph.edges:
        writer.writerow([edge.source_id, edge.target_id, edge.type.value, edge.is_satisfied])
    return buffer.getvalue()


def export_graph(graph: DependencyGraph, options: Optional[GraphOptions] = None) -> str:
    """Render ``graph`` in ``options.format``."""
    options = options or GraphOptions()
    fmt = ExportFormat(options.format)
    if fmt == ExportFormat.DOT:
        return export_dot(graph, options)
    if fmt == ExportFormat.MERMAID:
        return export_mermaid(graph)
    if fmt == ExportFormat.CSV:
        return export_csv(graph)
    return export_json(graph)


def write_export(text: str, output_file: Path) -> None:
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(text, encoding="utf-8")


def _esc(text: str) -> str:
    return text.replace('"', '\\"')


def _mermaid_id(module_id: str) -> str:
    # Mermaid node ids cannot contain spaces or most punctuation.
    safe = "".join(ch if ch.isalnum() or ch in "_-" else "_" for ch in module_id)
    return safe if safe == module_id else f'{safe}["{module_id}"]'
