# === event_inspect/glyphs.py ===

import os
from dataclasses import dataclass, fields

DISPLAY_COMPAT_ENV = "EVENT_INSPECT_DISPLAY_COMPAT"


@dataclass(frozen=True)
class GlyphTable:
    """Every entry is exactly one terminal column wide."""
    name: str
    horizontal: str
    vertical: str
    top_left: str
    top_right: str
    bottom_left: str
    bottom_right: str
    tee_left: str
    tee_right: str
    missing_open: str
    missing_close: str

    def __post_init__(self):
        for f in fields(self):
            if f.name != "name" and len(getattr(self, f.name)) != 1:
                raise ValueError(f"glyph `{f.name}` must be a single character")


UNICODE_GLYPHS = GlyphTable(
    name="unicode",
    horizontal="─",
    vertical="│",
    top_left="┌",
    top_right="┐",
    bottom_left="└",
    bottom_right="┘",
    tee_left="├",
    tee_right="┤",
    missing_open="‹",
    missing_close="›",
)

ASCII_GLYPHS = GlyphTable(
    name="ascii",
    horizontal="-",
    vertical="|",
    top_left="+",
    top_right="+",
    bottom_left="+",
    bottom_right="+",
    tee_left="+",
    tee_right="+",
    missing_open="<",
    missing_close=">",
)


def display_compat_enabled(environ=None) -> bool:
    value = (environ if environ is not None else os.environ).get(DISPLAY_COMPAT_ENV, "")
    return value.strip().lower() in ("1", "true", "yes", "on")


# Fixed for the lifetime of the process; set the variable before launching
# (or bake it into a packaged build) for terminals without box-drawing glyphs.
ACTIVE_GLYPHS = ASCII_GLYPHS if display_compat_enabled() else UNICODE_GLYPHS
