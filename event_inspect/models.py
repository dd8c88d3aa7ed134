# === event_inspect/models.py ===

from dataclasses import dataclass, field
from enum import Enum, IntFlag
from typing import Any, Iterator, Optional, Tuple, Union

AssetId = str


#
# Generic document tree (what the parser produces)
#

class ScalarKind(Enum):
    STR = "str"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    NULL = "null"


@dataclass(frozen=True)
class Scalar:
    """
    A leaf value. `value` is the typed Python value; `text` is the exact
    spelling in the source file (Unity writes GUIDs and hex blobs that a YAML
    resolver may read as numbers, so identifiers are always taken from text).
    """
    kind: ScalarKind
    value: Any
    text: str

    @property
    def shape(self) -> str:
        return f"Scalar({self.kind.value})"


@dataclass(frozen=True)
class Sequence:
    items: Tuple["RawDocument", ...] = ()

    shape = "Sequence"

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator["RawDocument"]:
        return iter(self.items)


@dataclass(frozen=True)
class Mapping:
    """Ordered mapping with unique string keys (uniqueness enforced by the parser)."""
    entries: Tuple[Tuple[str, "RawDocument"], ...] = ()

    shape = "Mapping"

    def get(self, key: str, default: Optional["RawDocument"] = None) -> Optional["RawDocument"]:
        for k, v in self.entries:
            if k == key:
                return v
        return default

    def keys(self):
        return [k for k, _ in self.entries]

    def items(self):
        return list(self.entries)

    def __contains__(self, key: object) -> bool:
        return any(k == key for k, _ in self.entries)

    def __len__(self) -> int:
        return len(self.entries)


RawDocument = Union[Scalar, Sequence, Mapping]


#
# Links (what the graph builder puts into reference fields)
#

@dataclass(frozen=True)
class Resolved:
    """Target exists. display_name/kind are snapshots so a card renders from one record."""
    asset_id: AssetId
    display_name: str
    kind: str


@dataclass(frozen=True)
class Dangling:
    """Target AssetId has no record (or, for asset references, no meta entry)."""
    asset_id: AssetId


Link = Union[Resolved, Dangling]

# Before linking a reference field holds a raw AssetId; after linking, a Link.
# None is Unity's null reference ({fileID: 0}).
Reference = Union[AssetId, Link, None]


#
# Deck cards (conversation minigame data carried by events and NPCs)
#

class Effect(Enum):
    NONE = 0
    CHAIN = 1
    INHERIT = 2
    DUPLICATE = 3
    INSERT = 4
    COLLAPSE = 5
    REDRAW = 6
    VIEW_HAND = 7
    CHOOSE = 8
    LISTEN = 9

    @classmethod
    def from_code(cls, code: int) -> "Effect":
        try:
            return cls(code)
        except ValueError:
            return cls.NONE

    @property
    def label(self) -> str:
        return _EFFECT_LABELS[self]


_EFFECT_LABELS = {
    Effect.NONE: "",
    Effect.CHAIN: "Chatter",
    Effect.INHERIT: "Elaborate",
    Effect.DUPLICATE: "Accommodate",
    Effect.INSERT: "Clarify",
    Effect.COLLAPSE: "Backtrack",
    Effect.REDRAW: "Reconsider",
    Effect.VIEW_HAND: "Observe",
    Effect.CHOOSE: "Prepare",
    Effect.LISTEN: "Listen",
}


class Connector(IntFlag):
    CIRCLE = 0x1
    TRIANGLE = 0x2
    SQUARE = 0x4
    DIAMOND = 0x8
    SPIRAL = 0x10
    DOG = 0x20

    @classmethod
    def from_mask(cls, mask: int) -> "Connector":
        # unknown high bits are dropped
        return cls(mask & sum(m.value for m in _CONNECTOR_ORDER))

    def describe(self) -> str:
        return ", ".join(m.name.capitalize() for m in _CONNECTOR_ORDER if self & m)


# Display order: Dog sorts before Spiral, as the game's own listing does.
_CONNECTOR_ORDER = (
    Connector.CIRCLE,
    Connector.TRIANGLE,
    Connector.SQUARE,
    Connector.DIAMOND,
    Connector.DOG,
    Connector.SPIRAL,
)


@dataclass(frozen=True)
class DeckCard:
    input: Connector
    output: Connector
    effect: Effect

    def describe(self) -> str:
        return f"{self.input.describe()} | {self.effect.label} | {self.output.describe()}"


#
# Records (closed union: Npc | Event | Choice)
#

@dataclass(frozen=True)
class ChoiceEntry:
    label: str
    target: Reference = None


@dataclass(frozen=True)
class Npc:
    asset_id: AssetId
    name: str
    body: str = ""
    source: Optional[str] = None
    portrait: Reference = None
    default_event: Reference = None
    deck: Optional[Tuple[DeckCard, ...]] = None

    variant = "NPC"


@dataclass(frozen=True)
class Event:
    asset_id: AssetId
    name: str
    body: str = ""
    source: Optional[str] = None
    choices: Tuple[ChoiceEntry, ...] = ()
    npc: Reference = None
    strike_count: Optional[int] = None
    sequence_lengths: Tuple[int, ...] = field(default_factory=tuple)
    # None: the event plays with its NPC's default deck
    deck: Optional[Tuple[DeckCard, ...]] = None

    variant = "Event"


@dataclass(frozen=True)
class Choice:
    asset_id: AssetId
    name: str
    body: str = ""
    source: Optional[str] = None
    label: str = ""
    target: Reference = None

    variant = "Choice"


Record = Union[Npc, Event, Choice]
RECORD_TYPES = (Npc, Event, Choice)
