# === event_inspect/card_renderer.py ===

import textwrap
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from event_inspect.glyphs import ACTIVE_GLYPHS, GlyphTable
from event_inspect.models import Choice, Dangling, DeckCard, Event, Npc, Record, Reference, Resolved

DEFAULT_MAX_WIDTH = 72

# Layout runs before any glyph table is chosen, so the dangling marker is laid
# out with one-column placeholders that frame_layout() swaps for real glyphs.
_MISSING_OPEN = "\ue000"
_MISSING_CLOSE = "\ue001"
# keeps "missing: <id>" on one line; textwrap only breaks on ASCII whitespace
_UNBREAKABLE_SPACE = "\ue002"


@dataclass(frozen=True)
class CardLayout:
    """Glyph-free card content: sections of lines, and the inner width they share."""
    sections: Tuple[Tuple[str, ...], ...]
    width: int

    @property
    def line_count(self) -> int:
        # top + bottom border, one rule between sections
        return sum(len(s) for s in self.sections) + len(self.sections) + 1


def _wrap(text: str, width: int, indent: str = "") -> List[str]:
    return textwrap.wrap(
        text,
        width=width,
        subsequent_indent=indent,
        break_long_words=False,
        break_on_hyphens=False,
    ) or [""]


def _wrap_paragraphs(text: str, width: int) -> List[str]:
    lines: List[str] = []
    for paragraph in text.strip("\r\n").splitlines():
        if paragraph.strip():
            lines.extend(_wrap(paragraph, width))
        else:
            lines.append("")
    return lines


def target_text(ref: Reference) -> str:
    if ref is None:
        return "(end)"
    if isinstance(ref, Resolved):
        return ref.display_name
    if isinstance(ref, Dangling):
        return f"{_MISSING_OPEN}missing:{_UNBREAKABLE_SPACE}{ref.asset_id}{_MISSING_CLOSE}"
    # not linked yet: show the raw id
    return str(ref)


def _deck_lines(deck: Sequence[DeckCard], width: int) -> List[str]:
    if not deck:
        return ["Deck: (empty)"]
    lines = ["Deck:"]
    for card in deck:
        lines.extend(_wrap(f"  {card.describe()}", width, indent="    "))
    return lines


def _detail_lines(record: Record, width: int) -> List[str]:
    lines: List[str] = []

    def add(label: str, value: str):
        lines.extend(_wrap(f"{label}: {value}", width, indent="  "))

    if isinstance(record, Event):
        if record.npc is not None:
            add("NPC", target_text(record.npc))
        if record.strike_count is not None:
            add("Strikes", str(record.strike_count))
        if record.sequence_lengths:
            add("Sequence", ", ".join(str(n) for n in record.sequence_lengths))
        if record.deck is None:
            owner = f" (see {target_text(record.npc)})" if record.npc is not None else ""
            add("Deck", f"NPC default{owner}")
        else:
            lines.extend(_deck_lines(record.deck, width))
    elif isinstance(record, Npc):
        if record.portrait is not None:
            add("Portrait", target_text(record.portrait))
        if record.default_event is not None:
            add("Default event", target_text(record.default_event))
        if record.deck is not None:
            lines.extend(_deck_lines(record.deck, width))
    elif isinstance(record, Choice):
        add("Label", record.label)
    return lines


def _choice_lines(record: Record, width: int) -> List[str]:
    lines: List[str] = []
    if isinstance(record, Event):
        for number, entry in enumerate(record.choices, start=1):
            prefix = f"{number}. "
            lines.extend(_wrap(f"{prefix}{entry.label} -> {target_text(entry.target)}", width, indent=" " * len(prefix)))
    elif isinstance(record, Choice):
        lines.extend(_wrap(f"-> {target_text(record.target)}", width, indent="   "))
    return lines


def layout_card(record: Record, max_width: int = DEFAULT_MAX_WIDTH) -> CardLayout:
    """
    Lay out one record without touching any glyph table:
      - header: display name and [Variant]
      - body: free text wrapped at word boundaries (a word longer than
        max_width stays whole and widens the card)
      - details: variant-specific fields
      - choices: one numbered line per outgoing choice, in source order
    Empty sections are omitted.
    """
    sections = [_wrap(f"{record.name}  [{record.variant}]", max_width)]
    for section in (
        _wrap_paragraphs(record.body, max_width),
        _detail_lines(record, max_width),
        _choice_lines(record, max_width),
    ):
        if section:
            sections.append(section)

    width = max(len(line) for section in sections for line in section)
    return CardLayout(tuple(tuple(s) for s in sections), width)


def _apply_glyphs(line: str, glyphs: GlyphTable) -> str:
    return (
        line.replace(_MISSING_OPEN, glyphs.missing_open)
        .replace(_MISSING_CLOSE, glyphs.missing_close)
        .replace(_UNBREAKABLE_SPACE, " ")
    )


def frame_layout(layout: CardLayout, glyphs: GlyphTable) -> str:
    g = glyphs
    rule = g.horizontal * (layout.width + 2)
    out = [f"{g.top_left}{rule}{g.top_right}"]
    for idx, section in enumerate(layout.sections):
        if idx:
            out.append(f"{g.tee_left}{rule}{g.tee_right}")
        for line in section:
            out.append(f"{g.vertical} {_apply_glyphs(line, g).ljust(layout.width)} {g.vertical}")
    out.append(f"{g.bottom_left}{rule}{g.bottom_right}")
    return "\n".join(out)


def render_card(record: Record, glyphs: GlyphTable = ACTIVE_GLYPHS, max_width: int = DEFAULT_MAX_WIDTH) -> str:
    """
    Render one record as a bordered card. Pure: no printing, no file access.
    `glyphs` defaults to the table fixed at import time (see glyphs.py).
    """
    return frame_layout(layout_card(record, max_width), glyphs)


def render_cards(records: Iterable[Record], glyphs: GlyphTable = ACTIVE_GLYPHS, max_width: int = DEFAULT_MAX_WIDTH) -> str:
    """Cards separated by a blank line."""
    return "\n\n".join(render_card(r, glyphs, max_width) for r in records)
