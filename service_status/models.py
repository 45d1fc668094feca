"""Core data models for service status rendering and the i3bar protocol."""

from dataclasses import dataclass, asdict
from enum import Enum
from string import Template
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .config import StateColors


class BlockState(str, Enum):
    """Classification of a rendered block, mapped to a theme color."""
    IDLE = "idle"
    INFO = "info"
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass
class StatusBlock:
    """A single status block in the i3bar protocol format.

    See: https://i3wm.org/docs/i3bar-protocol.html
    """

    # Required fields
    full_text: str          # Text to display
    name: str               # Block identifier (service_status)

    # Optional fields
    instance: Optional[str] = None        # Service name, distinguishes blocks
    short_text: Optional[str] = None      # Abbreviated text for small displays
    color: Optional[str] = None           # Hex color code (#RRGGBB)
    urgent: bool = False                  # Urgent flag (highlights block)
    separator: bool = True                # Show separator after block
    separator_block_width: int = 15       # Separator width
    markup: str = "none"                  # Markup type (none, pango)

    def to_json(self) -> dict:
        """Convert to i3bar protocol JSON format.

        Omits None values and false flags to minimize JSON output.
        """
        return {
            k: v for k, v in asdict(self).items()
            if v is not None and not (k == "urgent" and v is False)
        }


@dataclass(frozen=True)
class RenderedStatus:
    """Outcome of one monitor iteration: classification plus filled-in text."""

    state: BlockState
    text: str

    def to_status_block(self, service: str, colors: "StateColors") -> StatusBlock:
        """Convert to an i3bar block colored by the theme."""
        return StatusBlock(
            name="service_status",
            instance=service,
            full_text=self.text,
            color=colors.color_for(self.state),
            urgent=self.state == BlockState.CRITICAL,
        )


@dataclass(frozen=True)
class PresentationProfile:
    """How one activation state is shown: a classification and a format.

    The format may reference ``$service`` (or ``${service}``); any other
    placeholder is left untouched.
    """

    state: BlockState
    format: str

    def render(self, service: str) -> RenderedStatus:
        text = Template(self.format).safe_substitute(service=service)
        return RenderedStatus(state=self.state, text=text)
