from event_inspect.graph_builder import ASSET_KIND, MISSING_KIND, DanglingRef, build_resolved_graph
from event_inspect.meta_resolver import MetaIndex
from event_inspect.models import Choice, ChoiceEntry, Dangling, Event, Npc, Resolved


def event(asset_id: str, name: str, *targets, npc=None) -> Event:
    return Event(
        asset_id=asset_id,
        name=name,
        choices=tuple(ChoiceEntry(f"to {t}", t) for t in targets),
        npc=npc,
    )


def test_references_resolve_in_any_order() -> None:
    # the referencing record comes before its target
    graph = build_resolved_graph([event("a", "Arrival", "b"), event("b", "Dock")], MetaIndex({}))

    arrival = graph.get("a")
    assert arrival.choices[0].target == Resolved("b", "Dock", "Event")
    assert graph.follow(arrival.choices[0].target) is graph.get("b")
    assert graph.dangling == ()
    assert list(graph.digraph.edges(data="field")) == [("a", "b", "choices[0].target")]


def test_missing_target_is_dangling_not_fatal() -> None:
    graph = build_resolved_graph([event("a", "Arrival", "b", "ghost", None)], MetaIndex({}))

    arrival = graph.get("a")
    assert [c.target for c in arrival.choices] == [Dangling("b"), Dangling("ghost"), None]
    assert graph.dangling == (
        DanglingRef("a", "choices[0].target", "b"),
        DanglingRef("a", "choices[1].target", "ghost"),
    )
    assert graph.digraph.nodes["ghost"]["kind"] == MISSING_KIND
    assert "ghost" not in graph
    assert graph.follow(arrival.choices[1].target) is None


def test_cycle_links_and_walk_terminates() -> None:
    graph = build_resolved_graph([event("a", "Ask", "b"), event("b", "Answer", "a")], MetaIndex({}))

    assert graph.get("a").choices[0].target == Resolved("b", "Answer", "Event")
    assert graph.get("b").choices[0].target == Resolved("a", "Ask", "Event")
    assert [r.asset_id for r in graph.walk("a", max_depth=50)] == ["a", "b"]
    assert graph.cycles() == [["a", "b"]]


def test_self_reference_is_a_cycle() -> None:
    graph = build_resolved_graph([event("loop", "Again", "loop"), event("x", "Elsewhere")], MetaIndex({}))
    assert graph.get("loop").choices[0].target == Resolved("loop", "Again", "Event")
    assert graph.cycles() == [["loop"]]


def test_walk_respects_depth() -> None:
    records = [event("a", "A", "b"), event("b", "B", "c"), event("c", "C", "d"), event("d", "D")]
    graph = build_resolved_graph(records, MetaIndex({}))

    assert [r.name for r in graph.walk("a", max_depth=0)] == ["A"]
    assert [r.name for r in graph.walk("a", max_depth=2)] == ["A", "B", "C"]
    assert graph.walk("nope") == []


def test_npc_links_and_portrait_asset() -> None:
    meta = MetaIndex({"tex1": "Art/Portraits/Ferryman.png", "npc1": "Npcs/Ferryman.asset"})
    records = [
        Npc(asset_id="npc1", name="Ferryman", portrait="tex1", default_event="a"),
        Npc(asset_id="npc2", name="Stranger", portrait="tex-gone"),
        event("a", "Arrival", npc="npc1"),
    ]
    graph = build_resolved_graph(records, meta)

    ferryman = graph.get("npc1")
    assert ferryman.portrait == Resolved("tex1", "Ferryman", ASSET_KIND)
    assert ferryman.default_event == Resolved("a", "Arrival", "Event")
    assert graph.get("npc2").portrait == Dangling("tex-gone")
    assert graph.get("a").npc == Resolved("npc1", "Ferryman", "NPC")
    # asset references do not become graph edges
    assert not graph.digraph.has_edge("npc1", "tex1")


def test_choice_record_target() -> None:
    graph = build_resolved_graph(
        [Choice(asset_id="c", name="Leave", label="Leave", target="a"), event("a", "Arrival")],
        MetaIndex({}),
    )
    assert graph.get("c").target == Resolved("a", "Arrival", "Event")


def test_relinking_is_stable() -> None:
    meta = MetaIndex({"tex1": "Ferryman.png"})
    records = [event("a", "Ask", "b", "ghost"), event("b", "Answer", "a"), Npc("n", "Ferryman", portrait="tex1")]
    first = build_resolved_graph(records, meta)
    second = build_resolved_graph(first.records.values(), meta)

    assert dict(second.records) == dict(first.records)
    assert second.dangling == first.dangling


def test_duplicate_record_keeps_first() -> None:
    graph = build_resolved_graph([event("a", "First"), event("a", "Second")], MetaIndex({}))
    assert len(graph) == 1
    assert graph.get("a").name == "First"


def test_find_by_id_or_unique_name() -> None:
    graph = build_resolved_graph(
        [event("a", "Arrival"), event("b", "Twin"), event("c", "Twin")],
        MetaIndex({}),
    )
    assert graph.find("a").name == "Arrival"
    assert graph.find("Arrival").asset_id == "a"
    assert graph.find("Twin") is None
    assert graph.find("nothing") is None


def test_sorted_records_by_name() -> None:
    graph = build_resolved_graph([event("2", "beta"), event("1", "Alpha"), event("3", "gamma")], MetaIndex({}))
    assert [r.name for r in graph.sorted_records()] == ["Alpha", "beta", "gamma"]


def test_two_choices_to_one_target_keep_both_edges() -> None:
    graph = build_resolved_graph([event("a", "Arrival", "b", "b"), event("b", "Dock")], MetaIndex({}))

    assert graph.digraph.number_of_edges("a", "b") == 2
    fields = sorted(field for _, _, field in graph.digraph.edges(data="field"))
    assert fields == ["choices[0].target", "choices[1].target"]
