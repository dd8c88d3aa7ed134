# === event_inspect/meta_resolver.py ===

import logging
from types import MappingProxyType
from typing import Dict, Iterator, List, Optional, Tuple, Union

from event_inspect.errors import MalformedAsset, MalformedMeta
from event_inspect.models import AssetId, Mapping, Scalar, ScalarKind
from event_inspect.yaml_loader import parse_asset_text

logger = logging.getLogger(__name__)

META_SUFFIX = ".meta"
GUID_FIELD = "guid"


def meta_asset_identity(meta_identity: str) -> str:
    """
    `Foo.asset.meta` -> `Foo.asset`. Unity names every meta file after the
    asset it describes, so the sibling is the meta name minus its suffix.
    """
    if not meta_identity.endswith(META_SUFFIX) or len(meta_identity) == len(META_SUFFIX):
        raise MalformedMeta(f"meta file name must end with '{META_SUFFIX}'", source=meta_identity)
    return meta_identity[: -len(META_SUFFIX)]


def parse_meta(content: Union[bytes, str], meta_identity: str) -> Tuple[AssetId, str]:
    """
    Extract the AssetId a meta file declares and pair it with its asset's identity.
    Raises MalformedMeta if the guid is missing, empty or not a scalar.
    """
    asset_identity = meta_asset_identity(meta_identity)
    try:
        doc = parse_asset_text(content, source=meta_identity)
    except MalformedAsset as exc:
        raise MalformedMeta(f"could not parse meta file: {exc}", source=meta_identity) from exc

    if not isinstance(doc, Mapping):
        raise MalformedMeta(f"top level must be a Mapping, got {doc.shape}", source=meta_identity)

    node = doc.get(GUID_FIELD)
    if node is None:
        raise MalformedMeta(f"no `{GUID_FIELD}` field", source=meta_identity)
    if not isinstance(node, Scalar) or node.kind is ScalarKind.NULL:
        raise MalformedMeta(f"`{GUID_FIELD}` must be a non-null scalar, got {node.shape}", source=meta_identity)

    asset_id = node.text.strip()
    if not asset_id:
        raise MalformedMeta(f"`{GUID_FIELD}` is empty", source=meta_identity)
    return asset_id, asset_identity


class MetaIndex:
    """
    Read-only AssetId <-> asset identity index. Built once per run by
    MetaIndexBuilder and shared by every later stage.
    """

    def __init__(self, by_id: Dict[AssetId, str]):
        self._by_id = MappingProxyType(dict(by_id))
        self._by_asset = MappingProxyType({path: asset_id for asset_id, path in by_id.items()})

    def asset_for(self, asset_id: AssetId) -> Optional[str]:
        return self._by_id.get(asset_id)

    def id_for(self, asset_identity: str) -> Optional[AssetId]:
        return self._by_asset.get(asset_identity)

    def items(self):
        return self._by_id.items()

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._by_id

    def __iter__(self) -> Iterator[AssetId]:
        return iter(self._by_id)

    def __len__(self) -> int:
        return len(self._by_id)


class MetaIndexBuilder:
    """
    Accumulates one meta file per add() call. Failures are recorded and
    returned, never raised, so one bad meta cannot stop the rest.
    """

    def __init__(self):
        self._by_id: Dict[AssetId, str] = {}
        self.errors: List[MalformedMeta] = []

    def add(self, content: Union[bytes, str], meta_identity: str) -> Optional[AssetId]:
        try:
            asset_id, asset_identity = parse_meta(content, meta_identity)
        except MalformedMeta as exc:
            logger.warning(f"Skipping meta '{meta_identity}': {exc}")
            self.errors.append(exc)
            return None

        existing = self._by_id.get(asset_id)
        if existing is not None:
            exc = MalformedMeta(
                f"duplicate guid, already declared for '{existing}'",
                source=meta_identity,
                asset_id=asset_id,
            )
            logger.warning(f"Skipping meta '{meta_identity}': {exc}")
            self.errors.append(exc)
            return None

        self._by_id[asset_id] = asset_identity
        logger.debug(f"  Indexed {asset_id} -> {asset_identity}")
        return asset_id

    def build(self) -> MetaIndex:
        return MetaIndex(self._by_id)
