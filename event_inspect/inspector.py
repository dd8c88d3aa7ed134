# === event_inspect/inspector.py ===

import logging
from dataclasses import dataclass
from typing import Iterable, List, Tuple, Union

from event_inspect.errors import ErrorReport, InspectError, MalformedMeta
from event_inspect.graph_builder import ResolvedGraph, build_resolved_graph
from event_inspect.meta_resolver import META_SUFFIX, MetaIndex, MetaIndexBuilder
from event_inspect.models import Record
from event_inspect.schema_mapper import map_record
from event_inspect.yaml_loader import parse_asset_text

logger = logging.getLogger(__name__)

ASSET_SUFFIXES = (".asset",)

SourceFile = Tuple[str, Union[bytes, str]]


@dataclass(frozen=True)
class InspectionResult:
    graph: ResolvedGraph
    meta_index: MetaIndex
    errors: Tuple[ErrorReport, ...]

    @property
    def ok(self) -> bool:
        return not self.errors


def is_meta_file(identity: str) -> bool:
    return identity.endswith(META_SUFFIX)


def is_asset_file(identity: str) -> bool:
    return identity.lower().endswith(ASSET_SUFFIXES)


def _map_asset(identity: str, content: Union[bytes, str], meta_index: MetaIndex) -> Record:
    asset_id = meta_index.id_for(identity)
    if asset_id is None:
        raise MalformedMeta(f"no companion '{identity}{META_SUFFIX}' declares a guid", source=identity)
    try:
        doc = parse_asset_text(content, source=identity)
        return map_record(doc, asset_id, identity)
    except InspectError as e:
        e.asset_id = e.asset_id or asset_id
        raise


def inspect_files(files: Iterable[SourceFile], unreadable: Iterable[str] = ()) -> InspectionResult:
    """
    Run the whole core over in-memory (identity, content) pairs:
      1) index every .meta file (failures collected, batch continues)
      2) parse + map every .asset file (failures collected, batch continues)
      3) link all mapped records at once, so forward references and cycles resolve
    Files that are neither asset nor meta are ignored. `unreadable` names files
    the caller could not read and has already reported; an asset whose meta is
    among them is skipped rather than reported again.
    """
    files = list(files)
    unreadable_metas = [identity for identity in unreadable if is_meta_file(identity)]
    errors: List[ErrorReport] = []

    # 1) Meta index
    builder = MetaIndexBuilder()
    for identity, content in files:
        if is_meta_file(identity):
            builder.add(content, identity)
    meta_index = builder.build()
    errors.extend(e.to_report() for e in builder.errors)
    # assets whose meta already failed are not reported a second time
    failed_metas = [e.source for e in builder.errors if e.source and is_meta_file(e.source)] + unreadable_metas
    bad_meta_assets = {identity[: -len(META_SUFFIX)] for identity in failed_metas}
    logger.info(f"Indexed {len(meta_index)} guid(s) from meta files ({len(builder.errors)} failed).")

    # 2) Parse and map
    records: List[Record] = []
    for identity, content in files:
        if not is_asset_file(identity):
            if not is_meta_file(identity):
                logger.debug(f"  Ignoring '{identity}' (not an asset or meta file)")
            continue
        if identity in bad_meta_assets and meta_index.id_for(identity) is None:
            logger.debug(f"  Skipping '{identity}': its meta file is already reported")
            continue
        try:
            records.append(_map_asset(identity, content, meta_index))
        except InspectError as e:
            logger.warning(f"Skipping asset '{identity}': {e.kind}: {e}")
            errors.append(e.to_report())
    logger.info(f"Mapped {len(records)} record(s).")

    # 3) Link
    graph = build_resolved_graph(records, meta_index)

    errors.sort(key=lambda r: (r.source or "", r.kind))
    return InspectionResult(graph=graph, meta_index=meta_index, errors=tuple(errors))
