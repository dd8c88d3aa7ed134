from event_inspect.errors import MALFORMED_ASSET, MALFORMED_META, SCHEMA_VIOLATION
from event_inspect.inspector import inspect_files
from event_inspect.models import Dangling, Resolved
from unity_text import behaviour, choice_asset, event_asset, meta_text, npc_asset, pair

GUID_ARRIVAL = "0a0a0a0a0a0a0a0a0a0a0a0a0a0a0a0a"
GUID_DOCK = "0b0b0b0b0b0b0b0b0b0b0b0b0b0b0b0b"
GUID_FERRYMAN = "0c0c0c0c0c0c0c0c0c0c0c0c0c0c0c0c"
GUID_BROKEN = "0d0d0d0d0d0d0d0d0d0d0d0d0d0d0d0d"


def test_clean_batch_links_across_files() -> None:
    files = (
        pair("Events/Arrival", GUID_ARRIVAL, event_asset("Arrival", [("Walk", GUID_DOCK)], npc=GUID_FERRYMAN))
        + pair("Events/Dock", GUID_DOCK, event_asset("Dock", [("Back", GUID_ARRIVAL)]))
        + pair("Npcs/Ferryman", GUID_FERRYMAN, npc_asset("Ferryman", default_event=GUID_ARRIVAL))
    )
    result = inspect_files(files)

    assert result.ok
    assert len(result.graph) == 3
    arrival = result.graph.get(GUID_ARRIVAL)
    assert arrival.source == "Events/Arrival.asset"
    assert arrival.choices[0].target == Resolved(GUID_DOCK, "Dock", "Event")
    assert arrival.npc == Resolved(GUID_FERRYMAN, "Ferryman", "NPC")
    assert result.meta_index.asset_for(GUID_DOCK) == "Events/Dock.asset"


def test_malformed_asset_does_not_stop_the_batch() -> None:
    files = (
        pair("Arrival", GUID_ARRIVAL, event_asset("Arrival", [("Walk", GUID_BROKEN)]))
        + pair("Broken", GUID_BROKEN, "MonoBehaviour: {recordType: Event\n")
        + pair("Dock", GUID_DOCK, event_asset("Dock"))
    )
    result = inspect_files(files)

    assert not result.ok
    assert sorted(r.name for r in result.graph.records.values()) == ["Arrival", "Dock"]
    (error,) = result.errors
    assert error.kind == MALFORMED_ASSET
    assert error.source == "Broken.asset"
    assert error.asset_id == GUID_BROKEN
    assert "line" in error.detail
    # the broken record is absent, so references to it dangle
    assert result.graph.get(GUID_ARRIVAL).choices[0].target == Dangling(GUID_BROKEN)


def test_schema_violation_is_reported_with_identity() -> None:
    files = pair("Odd", GUID_BROKEN, behaviour("Odd", "Quest")) + pair("Dock", GUID_DOCK, event_asset("Dock"))
    result = inspect_files(files)

    (error,) = result.errors
    assert error.kind == SCHEMA_VIOLATION
    assert error.source == "Odd.asset"
    assert error.asset_id == GUID_BROKEN
    assert "recordType" in error.detail
    assert len(result.graph) == 1


def test_asset_without_meta() -> None:
    result = inspect_files([("Lonely.asset", choice_asset("Lonely", "Hello"))])

    (error,) = result.errors
    assert error.kind == MALFORMED_META
    assert error.source == "Lonely.asset"
    assert len(result.graph) == 0


def test_bad_meta_is_reported_once() -> None:
    files = [
        ("Arrival.asset", event_asset("Arrival")),
        ("Arrival.asset.meta", "fileFormatVersion: 2\n"),
    ]
    result = inspect_files(files)

    (error,) = result.errors
    assert error.kind == MALFORMED_META
    assert error.source == "Arrival.asset.meta"


def test_duplicate_guid() -> None:
    files = pair("Arrival", GUID_ARRIVAL, event_asset("Arrival")) + [
        ("Copy.asset", event_asset("Copy")),
        ("Copy.asset.meta", meta_text(GUID_ARRIVAL)),
    ]
    result = inspect_files(files)

    (error,) = result.errors
    assert error.kind == MALFORMED_META
    assert error.asset_id == GUID_ARRIVAL
    assert result.graph.get(GUID_ARRIVAL).name == "Arrival"


def test_other_files_are_ignored() -> None:
    files = pair("Dock", GUID_DOCK, event_asset("Dock")) + [("notes.txt", "not yaml: [")]
    result = inspect_files(files)
    assert result.ok
    assert len(result.graph) == 1


def test_errors_are_sorted_by_file() -> None:
    files = (
        pair("b", GUID_DOCK, "x: [")
        + pair("a", GUID_ARRIVAL, "x: [")
    )
    result = inspect_files(files)
    assert [e.source for e in result.errors] == ["a.asset", "b.asset"]


def test_unreadable_meta_is_not_reported_again() -> None:
    result = inspect_files([("Arrival.asset", event_asset("Arrival"))], unreadable=["Arrival.asset.meta"])

    assert result.errors == ()
    assert len(result.graph) == 0
