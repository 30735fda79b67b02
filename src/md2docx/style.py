"""Document style configuration.

A :class:`StyleConfig` holds every style knob the renderer understands.
Knobs are addressed by their option names (``heading1Size``,
``paragraphAlignment``, ...) and always carry a value: user overrides are
merged on top of the built-in defaults by :func:`merge_style`.

Units: font sizes are half-points (``24`` == 12pt), spacing is twips
(``240`` == 12pt), ``lineSpacing`` is a line-height multiplier.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import Any, Mapping, Optional

LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class DocumentType(Enum):
    """Structural template used by the renderer."""

    DOCUMENT = "document"
    REPORT = "report"


class Alignment(Enum):
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    CENTER = "CENTER"
    JUSTIFIED = "JUSTIFIED"


class Direction(Enum):
    LTR = "LTR"
    RTL = "RTL"


# ---------------------------------------------------------------------------
# StyleConfig
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StyleConfig:
    """Complete set of style knobs with their built-in defaults."""

    titleSize: int = 48
    heading1Size: int = 48
    heading2Size: int = 36
    heading3Size: int = 32
    heading4Size: int = 28
    heading5Size: int = 24
    paragraphSize: int = 24
    listItemSize: int = 24
    codeBlockSize: int = 20
    blockquoteSize: int = 24
    headingSpacing: int = 240
    paragraphSpacing: int = 240
    lineSpacing: float = 1.15
    paragraphAlignment: str = Alignment.LEFT.value
    direction: str = Direction.LTR.value

    @classmethod
    def knob_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    def heading_size(self, level: int) -> Any:
        """Half-point size for heading *level*; levels past 5 reuse level 5."""
        level = max(1, min(5, level))
        return getattr(self, f"heading{level}Size")

    @property
    def alignment(self) -> Alignment:
        return Alignment(str(self.paragraphAlignment).upper())

    @property
    def is_rtl(self) -> bool:
        return Direction(str(self.direction).upper()) is Direction.RTL

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def merge_style(overrides: Optional[Mapping[str, Any]] = None) -> StyleConfig:
    """Return the default :class:`StyleConfig` with *overrides* applied.

    Override values replace the defaults as given. Keys that do not name a
    knob are ignored and logged.
    """
    defaults = StyleConfig()
    if not overrides:
        return defaults

    known = set(StyleConfig.knob_names())
    accepted: dict[str, Any] = {}
    for key, value in overrides.items():
        if key in known:
            accepted[key] = value
        else:
            LOGGER.warning("Ignoring unknown style option %r", key)
    return replace(defaults, **accepted)
