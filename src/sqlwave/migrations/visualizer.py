"""Migration graph visualizer - render the dependency graph as Mermaid or DOT.

Edges point from a dependency to the record that depends on it, so the
picture reads in application order. Runnable records are highlighted and
labelled with their wave when the graph has been scheduled.

Example::

    from sqlwave.migrations.runner import plan
    from sqlwave.migrations.visualizer import visualize_mermaid

    print(visualize_mermaid(plan(conn).graph))
    # graph TD
    #     n0["V001__users.sql<br/>versioned · wave 1"]
    #     n1("R__users_view.sql<br/>repeatable · wave 2")
    #     n0 --> n1
"""

from __future__ import annotations

from sqlwave.migrations.graph import MigrationGraph
from sqlwave.migrations.model import MigrationRecord, MigrationType

_MERMAID_STYLES = {
    "runnable": "fill:#e3f2fd,stroke:#1565c0",
    "idle": "fill:#eeeeee,stroke:#9e9e9e",
}


def _node_ids(graph: MigrationGraph) -> dict[str, str]:
    """Stable, syntax-safe node ids (filenames contain dots and dashes)."""
    ordered = sorted(graph, key=lambda r: r.sort_key)
    return {record.id: f"n{index}" for index, record in enumerate(ordered)}


def _label(record: MigrationRecord) -> str:
    detail = record.type.value
    if record.wave is not None:
        detail += f" · wave {record.wave}"
    return f"{record.id}<br/>{detail}"


def visualize_mermaid(graph: MigrationGraph, *, direction: str = "TD",
                      include_styles: bool = True) -> str:
    """Render a migration graph as a Mermaid flowchart.

    Repeatable records are drawn rounded, versioned/seed records as boxes.
    """
    ids = _node_ids(graph)
    runnable = graph.runnable_ids()
    lines = [f"graph {direction}"]

    for record in sorted(graph, key=lambda r: r.sort_key):
        node = ids[record.id]
        label = _label(record)
        if record.type is MigrationType.REPEATABLE:
            lines.append(f'    {node}("{label}")')
        else:
            lines.append(f'    {node}["{label}"]')

    lines.append("")

    for record in sorted(graph, key=lambda r: r.sort_key):
        for dep in sorted(graph.dependencies(record.id)):
            lines.append(f"    {ids[dep]} --> {ids[record.id]}")

    if include_styles:
        lines.append("")
        for record_id, node in ids.items():
            key = "runnable" if record_id in runnable else "idle"
            lines.append(f"    style {node} {_MERMAID_STYLES[key]}")

    return "\n".join(lines).rstrip() + "\n"


def visualize_dot(graph: MigrationGraph, *, name: str = "migrations") -> str:
    """Render a migration graph in Graphviz DOT syntax."""
    runnable = graph.runnable_ids()
    lines = [f'digraph "{name}" {{', "    rankdir=TB;"]

    for record in sorted(graph, key=lambda r: r.sort_key):
        label = _label(record).replace("<br/>", "\\n")
        shape = "ellipse" if record.type is MigrationType.REPEATABLE else "box"
        style = ', style=filled, fillcolor="#e3f2fd"' if record.id in runnable else ""
        lines.append(f'    "{record.id}" [label="{label}", shape={shape}{style}];')

    for record in sorted(graph, key=lambda r: r.sort_key):
        for dep in sorted(graph.dependencies(record.id)):
            lines.append(f'    "{dep}" -> "{record.id}";')

    lines.append("}")
    return "\n".join(lines) + "\n"


__all__ = ["visualize_mermaid", "visualize_dot"]
