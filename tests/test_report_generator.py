import json
from pathlib import Path

from event_inspect.errors import ErrorReport
from event_inspect.inspector import inspect_files
from event_inspect.report_generator import format_error_report, generate_graph_output, generate_markdown_report
from unity_text import event_asset, pair

GUID_ASK = "0a0a0a0a0a0a0a0a0a0a0a0a0a0a0a0a"
GUID_ANSWER = "0b0b0b0b0b0b0b0b0b0b0b0b0b0b0b0b"


def looping_result():
    files = (
        pair("Ask", GUID_ASK, event_asset("Ask", [("Listen", GUID_ANSWER), ("Wander", "ffff0000ffff0000ffff0000ffff0000")]))
        + pair("Answer", GUID_ANSWER, event_asset("Answer", [("Ask again", GUID_ASK)]))
        + pair("Broken", "0c0c0c0c0c0c0c0c0c0c0c0c0c0c0c0c", "x: [")
    )
    return inspect_files(files)


def test_error_lines_name_kind_file_and_id() -> None:
    report = ErrorReport(kind="SchemaViolation", source="Odd.asset", asset_id="abc", detail="field `label`: missing")
    assert format_error_report([report]) == [" - SchemaViolation: Odd.asset (abc): field `label`: missing"]


def test_graph_json(tmp_path: Path) -> None:
    out = tmp_path / "reports" / "graph.json"
    generate_graph_output(looping_result().graph, str(out))

    data = json.loads(out.read_text(encoding="utf-8"))
    kinds = {node["id"]: node["kind"] for node in data["nodes"]}
    assert kinds == {
        GUID_ASK: "Event",
        GUID_ANSWER: "Event",
        "ffff0000ffff0000ffff0000ffff0000": "Missing",
    }
    assert {"from": GUID_ASK, "to": GUID_ANSWER, "field": "choices[0].target"} in data["edges"]
    assert len(data["edges"]) == 3


def test_markdown_report(tmp_path: Path) -> None:
    out = tmp_path / "report.md"
    generate_markdown_report(looping_result(), str(out))

    text = out.read_text(encoding="utf-8")
    assert "## Records (2)" in text
    assert "### Answer `0b0b0b0b0b0b0b0b0b0b0b0b0b0b0b0b`" in text
    assert "## Dangling references (1)" in text
    assert "## Cycles (1)" in text
    assert "Ask ⇄ Answer" in text
    assert "## Failures (1)" in text
    assert "MalformedAsset: Broken.asset" in text


def test_graph_json_keeps_parallel_edges(tmp_path: Path) -> None:
    files = (
        pair("Ask", GUID_ASK, event_asset("Ask", [("Listen", GUID_ANSWER), ("Nod", GUID_ANSWER)]))
        + pair("Answer", GUID_ANSWER, event_asset("Answer"))
    )
    out = tmp_path / "graph.json"
    generate_graph_output(inspect_files(files).graph, str(out))

    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["edges"] == [
        {"from": GUID_ASK, "to": GUID_ANSWER, "field": "choices[0].target"},
        {"from": GUID_ASK, "to": GUID_ANSWER, "field": "choices[1].target"},
    ]
