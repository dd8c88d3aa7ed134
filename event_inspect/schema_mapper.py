# === event_inspect/schema_mapper.py ===

import logging
import struct
from typing import Callable, Dict, Optional, Tuple

from event_inspect.errors import SchemaViolation
from event_inspect.models import (
    AssetId,
    Choice,
    ChoiceEntry,
    Connector,
    DeckCard,
    Effect,
    Event,
    Mapping,
    Npc,
    RawDocument,
    Record,
    Scalar,
    ScalarKind,
    Sequence,
)

logger = logging.getLogger(__name__)

BEHAVIOUR_KEY = "MonoBehaviour"
DISCRIMINANT = "recordType"


class _FieldReader:
    """
    Typed field access over one Mapping. Every failure names the field path
    and the record's AssetId; type failures also name expected vs actual shape.
    """

    def __init__(self, asset_id: AssetId, source: Optional[str]):
        self.asset_id = asset_id
        self.source = source

    def fail(self, path: str, detail: str, expected: Optional[str] = None, actual: Optional[str] = None):
        return SchemaViolation(
            path, detail, asset_id=self.asset_id, source=self.source, expected=expected, actual=actual
        )

    def node(self, mapping: Mapping, key: str, path: str, required: bool) -> Optional[RawDocument]:
        node = mapping.get(key)
        if node is None and required:
            raise self.fail(path, "missing required field")
        return node

    def text(self, mapping: Mapping, key: str, path: str, required: bool = False, default: str = "") -> str:
        node = self.node(mapping, key, path, required)
        if node is None:
            return default
        if not isinstance(node, Scalar):
            raise self.fail(path, "wrong type", expected="Scalar(str)", actual=node.shape)
        if node.kind is ScalarKind.NULL:
            if required:
                raise self.fail(path, "required field is null", expected="Scalar(str)", actual=node.shape)
            return default
        return node.text

    def integer(self, mapping: Mapping, key: str, path: str, required: bool = False) -> Optional[int]:
        node = self.node(mapping, key, path, required)
        if node is None:
            return None
        if not isinstance(node, Scalar) or node.kind is not ScalarKind.INT:
            raise self.fail(path, "wrong type", expected="Scalar(int)", actual=node.shape)
        return node.value

    def sequence(self, mapping: Mapping, key: str, path: str, required: bool = False) -> Optional[Sequence]:
        node = self.node(mapping, key, path, required)
        if node is None:
            return None
        if not isinstance(node, Sequence):
            raise self.fail(path, "wrong type", expected="Sequence", actual=node.shape)
        return node

    def mapping(self, mapping: Mapping, key: str, path: str, required: bool = False) -> Optional[Mapping]:
        node = self.node(mapping, key, path, required)
        if node is None:
            return None
        if not isinstance(node, Mapping):
            raise self.fail(path, "wrong type", expected="Mapping", actual=node.shape)
        return node

    def reference(self, mapping: Mapping, key: str, path: str) -> Optional[AssetId]:
        """
        Reference fields are Unity object references `{fileID, guid, type}`:
          - a non-empty guid is the target AssetId
          - no guid and fileID 0 is Unity's null reference -> None
          - no guid and a non-zero fileID points into this same file -> own AssetId
        A plain non-null scalar is taken as the AssetId itself.
        """
        node = mapping.get(key)
        if node is None:
            return None
        if isinstance(node, Scalar):
            if node.kind is ScalarKind.NULL or not node.text.strip():
                return None
            return node.text.strip()
        if not isinstance(node, Mapping):
            raise self.fail(path, "wrong type", expected="Mapping {fileID, guid} or Scalar", actual=node.shape)

        guid = node.get("guid")
        if guid is not None and not isinstance(guid, Scalar):
            raise self.fail(f"{path}.guid", "wrong type", expected="Scalar(str)", actual=guid.shape)
        if guid is not None and guid.kind is not ScalarKind.NULL and guid.text.strip():
            return guid.text.strip()

        file_id = self.integer(node, "fileID", f"{path}.fileID")
        if file_id:
            return self.asset_id
        return None


#
# Locating the serialized object and its variant
#

def _find_behaviour(doc: RawDocument) -> Optional[Mapping]:
    """
    A ScriptableObject asset has one document whose root holds `MonoBehaviour`.
    Multi-document files are scanned for the first behaviour carrying the
    discriminant. A bare mapping with the discriminant is accepted as-is.
    """
    roots = doc.items if isinstance(doc, Sequence) else (doc,)
    fallback = None
    for root in roots:
        if not isinstance(root, Mapping):
            continue
        inner = root.get(BEHAVIOUR_KEY)
        if isinstance(inner, Mapping):
            if DISCRIMINANT in inner:
                return inner
            if fallback is None:
                fallback = inner
        elif DISCRIMINANT in root:
            return root
        elif fallback is None:
            fallback = root
    return fallback


#
# Shared pieces
#

def _display_name(r: _FieldReader, behaviour: Mapping) -> str:
    name = r.text(behaviour, "displayName", "displayName")
    if not name.strip():
        name = r.text(behaviour, "m_Name", "m_Name")
    if not name.strip():
        raise r.fail("displayName", "missing required field (no displayName or m_Name)")
    return name.strip()


def _card(r: _FieldReader, node: RawDocument, path: str) -> DeckCard:
    if not isinstance(node, Mapping):
        raise r.fail(path, "wrong type", expected="Mapping", actual=node.shape)
    return DeckCard(
        input=Connector.from_mask(r.integer(node, "input", f"{path}.input", required=True)),
        output=Connector.from_mask(r.integer(node, "output", f"{path}.output", required=True)),
        effect=Effect.from_code(r.integer(node, "effect", f"{path}.effect", required=True)),
    )


def _deck(r: _FieldReader, behaviour: Mapping, required: bool) -> Optional[Tuple[DeckCard, ...]]:
    deck = r.mapping(behaviour, "deck", "deck", required=required)
    if deck is None:
        return None
    cards = r.sequence(deck, "cards", "deck.cards", required=True)
    return tuple(_card(r, card, f"deck.cards[{i}]") for i, card in enumerate(cards))


def decode_sequence(hex_text: str) -> Tuple[int, ...]:
    """
    Unity serializes int arrays as a hex string of little-endian 32-bit values:
    "0300000001000000" -> (3, 1). Raises ValueError on malformed input.
    """
    raw = bytes.fromhex(hex_text.strip())
    if len(raw) % 4:
        raise ValueError(f"{len(raw)} bytes is not a whole number of 32-bit values")
    return tuple(value for (value,) in struct.iter_unpack("<I", raw))


def _sequence_lengths(r: _FieldReader, behaviour: Mapping) -> Tuple[int, ...]:
    hex_text = r.text(behaviour, "sequence", "sequence")
    try:
        lengths = decode_sequence(hex_text)
    except ValueError as e:
        raise r.fail("sequence", f"not a hex-encoded int array ({e})") from e

    count = r.integer(behaviour, "sequenceCount", "sequenceCount")
    if count is not None and count != len(lengths):
        raise r.fail("sequence", f"decodes to {len(lengths)} value(s) but sequenceCount is {count}")
    return lengths


#
# Variant extractors
#

def extract_npc(r: _FieldReader, behaviour: Mapping, source: Optional[str]) -> Npc:
    return Npc(
        asset_id=r.asset_id,
        name=_display_name(r, behaviour),
        body=r.text(behaviour, "body", "body"),
        source=source,
        portrait=r.reference(behaviour, "portrait", "portrait"),
        default_event=r.reference(behaviour, "defaultEvent", "defaultEvent"),
        deck=_deck(r, behaviour, required=False),
    )


def extract_event(r: _FieldReader, behaviour: Mapping, source: Optional[str]) -> Event:
    entries = []
    for i, node in enumerate(r.sequence(behaviour, "choices", "choices", required=True)):
        path = f"choices[{i}]"
        if not isinstance(node, Mapping):
            raise r.fail(path, "wrong type", expected="Mapping", actual=node.shape)
        entries.append(ChoiceEntry(
            label=r.text(node, "label", f"{path}.label", required=True),
            target=r.reference(node, "target", f"{path}.target"),
        ))

    # overrideDeck == 1 means the event ships its own deck; otherwise the NPC's default applies
    override = r.integer(behaviour, "overrideDeck", "overrideDeck")
    deck = _deck(r, behaviour, required=True) if override == 1 else None

    return Event(
        asset_id=r.asset_id,
        name=_display_name(r, behaviour),
        body=r.text(behaviour, "body", "body"),
        source=source,
        choices=tuple(entries),
        npc=r.reference(behaviour, "npc", "npc"),
        strike_count=r.integer(behaviour, "strikeCount", "strikeCount"),
        sequence_lengths=_sequence_lengths(r, behaviour),
        deck=deck,
    )


def extract_choice(r: _FieldReader, behaviour: Mapping, source: Optional[str]) -> Choice:
    return Choice(
        asset_id=r.asset_id,
        name=_display_name(r, behaviour),
        body=r.text(behaviour, "body", "body"),
        source=source,
        label=r.text(behaviour, "label", "label", required=True),
        target=r.reference(behaviour, "target", "target"),
    )


_EXTRACTORS: Dict[str, Callable[[_FieldReader, Mapping, Optional[str]], Record]] = {
    "npc": extract_npc,
    "event": extract_event,
    "choice": extract_choice,
}


def map_record(doc: RawDocument, asset_id: AssetId, source: Optional[str] = None) -> Record:
    """
    Classify a parsed asset by its `recordType` discriminant and extract the
    typed record. Reference fields keep their raw AssetId; linking happens later.

    Classification rules:
      1) find the serialized behaviour mapping (see _find_behaviour)
      2) `recordType` must be present and one of NPC / Event / Choice (any case)
      3) the matching extractor validates its required fields
    Unknown extra fields are ignored.
    """
    r = _FieldReader(asset_id, source)

    behaviour = _find_behaviour(doc)
    if behaviour is None:
        raise r.fail(BEHAVIOUR_KEY, "document has no serialized object", expected="Mapping", actual=doc.shape)

    raw_kind = r.text(behaviour, DISCRIMINANT, DISCRIMINANT, required=True).strip()
    kind = raw_kind.lower()
    if kind not in _EXTRACTORS:
        raise r.fail(DISCRIMINANT, f"unknown record type `{raw_kind}` (accepted: NPC, Event, Choice)")
    record = _EXTRACTORS[kind](r, behaviour, source)

    logger.debug(f"  Mapped {asset_id} as {record.variant} '{record.name}'")
    return record
