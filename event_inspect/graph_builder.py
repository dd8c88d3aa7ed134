# === event_inspect/graph_builder.py ===

import dataclasses
import logging
from collections import deque
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import networkx as nx

from event_inspect.meta_resolver import MetaIndex
from event_inspect.models import (
    AssetId,
    Choice,
    Dangling,
    Event,
    Link,
    Npc,
    Record,
    Reference,
    Resolved,
)

logger = logging.getLogger(__name__)

MISSING_KIND = "Missing"
ASSET_KIND = "Asset"

DEFAULT_WALK_DEPTH = 3


@dataclasses.dataclass(frozen=True)
class DanglingRef:
    source_id: AssetId
    field: str
    target_id: AssetId


class ResolvedGraph:
    """
    AssetId -> linked Record, plus a networkx MultiDiGraph of reference edges
    (one edge per reference field, so two choices to the same target are two edges).
    Event graphs loop back on themselves through choices, so nothing here
    recurses along edges: lookups are by id and walk() is breadth-first with
    a visited set and a depth cap.
    """

    def __init__(self, records: Dict[AssetId, Record], digraph: nx.MultiDiGraph, dangling: List[DanglingRef]):
        self.records = MappingProxyType(dict(records))
        self.digraph = digraph
        self.dangling: Tuple[DanglingRef, ...] = tuple(dangling)

    def get(self, asset_id: AssetId) -> Optional[Record]:
        return self.records.get(asset_id)

    def follow(self, link: Optional[Link]) -> Optional[Record]:
        if isinstance(link, Resolved):
            return self.records.get(link.asset_id)
        return None

    def find(self, key: str) -> Optional[Record]:
        """Look a record up by AssetId, falling back to an exact display-name match."""
        if key in self.records:
            return self.records[key]
        matches = [r for r in self.records.values() if r.name == key]
        return matches[0] if len(matches) == 1 else None

    def walk(self, start: AssetId, max_depth: int = DEFAULT_WALK_DEPTH) -> List[Record]:
        """
        Records reachable from `start` within max_depth hops, in breadth-first
        order, each once. Terminates on cyclic graphs.
        """
        if start not in self.records:
            return []
        seen = {start}
        order = [self.records[start]]
        queue = deque([(start, 0)])
        while queue:
            node, depth = queue.popleft()
            if depth >= max_depth:
                continue
            for succ in self.digraph.successors(node):
                if succ in seen or succ not in self.records:
                    continue
                seen.add(succ)
                order.append(self.records[succ])
                queue.append((succ, depth + 1))
        return order

    def cycles(self) -> List[List[AssetId]]:
        """Strongly connected groups of records (size > 1, or a record linking to itself)."""
        found = []
        for component in nx.strongly_connected_components(self.digraph):
            if len(component) > 1:
                found.append(sorted(component))
            else:
                (only,) = component
                if self.digraph.has_edge(only, only):
                    found.append([only])
        return sorted(found)

    def sorted_records(self) -> List[Record]:
        return sorted(self.records.values(), key=lambda r: (r.name.lower(), r.asset_id))

    def __iter__(self) -> Iterator[AssetId]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self.records


class _Linker:
    def __init__(self, records: Dict[AssetId, Record], meta_index: MetaIndex, digraph: nx.MultiDiGraph):
        self.records = records
        self.meta_index = meta_index
        self.digraph = digraph
        self.dangling: List[DanglingRef] = []

    def link(self, source_id: AssetId, field: str, target: Reference, records_only: bool = True) -> Optional[Link]:
        """
        Record references resolve only against the record set. Asset references
        (portraits) resolve against the meta index: a texture is a valid target
        even though it never becomes a record.
        """
        if target is None:
            return None
        if isinstance(target, (Resolved, Dangling)):
            # already linked; re-linking must not change anything
            target = target.asset_id

        record = self.records.get(target)
        if record is not None:
            self.digraph.add_edge(source_id, target, field=field)
            return Resolved(target, record.name, record.variant)

        if not records_only:
            asset_path = self.meta_index.asset_for(target)
            if asset_path is not None:
                return Resolved(target, _file_stem(asset_path), ASSET_KIND)

        logger.warning(f"Dangling reference: {source_id}.{field} -> {target}")
        self.dangling.append(DanglingRef(source_id, field, target))
        if target not in self.digraph:
            self.digraph.add_node(target, kind=MISSING_KIND, name="", source="")
        self.digraph.add_edge(source_id, target, field=field)
        return Dangling(target)

    def link_record(self, record: Record) -> Record:
        rid = record.asset_id
        if isinstance(record, Event):
            choices = tuple(
                dataclasses.replace(entry, target=self.link(rid, f"choices[{i}].target", entry.target))
                for i, entry in enumerate(record.choices)
            )
            return dataclasses.replace(record, choices=choices, npc=self.link(rid, "npc", record.npc))
        if isinstance(record, Npc):
            return dataclasses.replace(
                record,
                portrait=self.link(rid, "portrait", record.portrait, records_only=False),
                default_event=self.link(rid, "defaultEvent", record.default_event),
            )
        if isinstance(record, Choice):
            return dataclasses.replace(record, target=self.link(rid, "target", record.target))
        raise TypeError(f"not a record: {record!r}")


def _file_stem(path: str) -> str:
    name = path.replace("\\", "/").rsplit("/", 1)[-1]
    return name.split(".", 1)[0] or name


def build_resolved_graph(records: Iterable[Record], meta_index: MetaIndex) -> ResolvedGraph:
    """
    Second pass of the batch: every record is already mapped, so forward
    references across files and cycles resolve the same way as backward ones.

    Every record becomes a node (kind, name, source). An edge (A -> B) is added
    for each reference field of A; a target that is not a record becomes a
    node of kind "Missing" and the link is Dangling. Never raises on a
    dangling reference.
    """
    by_id: Dict[AssetId, Record] = {}
    for record in records:
        if record.asset_id in by_id:
            logger.warning(f"Record {record.asset_id} mapped twice; keeping the first ({by_id[record.asset_id].source})")
            continue
        by_id[record.asset_id] = record

    G = nx.MultiDiGraph()
    for asset_id, record in by_id.items():
        G.add_node(asset_id, kind=record.variant, name=record.name, source=record.source or "")

    linker = _Linker(by_id, meta_index, G)
    linked = {asset_id: linker.link_record(record) for asset_id, record in by_id.items()}

    logger.info(
        f"Reference graph: {G.number_of_nodes()} nodes, {G.number_of_edges()} edges, "
        f"{len(linker.dangling)} dangling reference(s)."
    )
    return ResolvedGraph(linked, G, linker.dangling)
