# === event_inspect/report_generator.py ===

import json
import os
from datetime import datetime, timezone
from typing import Iterable, List

from event_inspect.errors import ErrorReport
from event_inspect.graph_builder import ResolvedGraph
from event_inspect.inspector import InspectionResult


def format_error_report(errors: Iterable[ErrorReport]) -> List[str]:
    """One line per failure: kind, file (and AssetId if known), detail."""
    return [f" - {e.describe()}" for e in errors]


def generate_graph_output(graph: ResolvedGraph, out_path: str):
    """
    Write nodes + edges of the reference graph to JSON, including node attributes.
    Dangling targets appear as nodes of kind "Missing".
    """
    G = graph.digraph
    data = {"nodes": [], "edges": []}
    for node, attrs in sorted(G.nodes(data=True)):
        data["nodes"].append({
            "id": node,
            "kind": attrs.get("kind", ""),
            "name": attrs.get("name", ""),
            "source": attrs.get("source", "")
        })
    for src, dst, attrs in sorted(G.edges(data=True), key=lambda e: (e[0], e[1], e[2].get("field", ""))):
        data["edges"].append({"from": src, "to": dst, "field": attrs.get("field", "")})
    parent = os.path.dirname(out_path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as fp:
        json.dump(data, fp, indent=2)


def generate_markdown_report(result: InspectionResult, out_path: str):
    """
    Produce a human-readable Markdown: every record with kind, file and
    outgoing references, then dangling references, cycles and failures.
    """
    graph = result.graph
    parent = os.path.dirname(out_path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as md:
        md.write("# Event Inspection Report  \n")
        md.write(f"Generated: {datetime.now(timezone.utc).isoformat()}  \n\n")
        md.write(f"## Records ({len(graph)})\n\n")
        for record in graph.sorted_records():
            md.write(f"### {record.name} `{record.asset_id}`  \n")
            md.write(f"- **Kind**: {record.variant}  \n")
            md.write(f"- **File**: {record.source}  \n")
            targets = sorted(graph.digraph.successors(record.asset_id))
            if targets:
                md.write(f"- **References**: {', '.join(f'`{t}`' for t in targets)}  \n")
            else:
                md.write("- **References**: *(none)*  \n")
            md.write("\n")

        md.write(f"## Dangling references ({len(graph.dangling)})\n\n")
        for ref in graph.dangling:
            md.write(f"- `{ref.source_id}`.{ref.field} → `{ref.target_id}`\n")
        if not graph.dangling:
            md.write("_None_\n")

        cycles = graph.cycles()
        md.write(f"\n## Cycles ({len(cycles)})\n\n")
        for cycle in cycles:
            names = [graph.get(asset_id).name for asset_id in cycle]
            md.write(f"- {' ⇄ '.join(names)}\n")
        if not cycles:
            md.write("_None_\n")

        md.write(f"\n## Failures ({len(result.errors)})\n\n")
        for line in format_error_report(result.errors):
            md.write(f"{line}\n")
        if not result.errors:
            md.write("_None_\n")

        md.write("\n## Graph Summary  \n")
        md.write(f"- **Total nodes**: {graph.digraph.number_of_nodes()}  \n")
        md.write(f"- **Total edges**: {graph.digraph.number_of_edges()}  \n")
