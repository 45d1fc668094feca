"""
Configuration models for the service status bar.

Loads a TOML file with one ``[[block]]`` table per monitored service:

    [[block]]
    block = "service_status"
    service = "cups"
    active_format = " ^icon_tea "
    inactive_format = " no ^icon_tea "
    inactive_state = "warning"
"""

import logging
import tomllib
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from .errors import ConfigError
from .models import BlockState, PresentationProfile

logger = logging.getLogger(__name__)

BLOCK_KIND = "service_status"


class DriverType(str, Enum):
    """Init system that manages the monitored service."""
    SYSTEMD = "systemd"


class StateColors(BaseModel):
    """Color per block state.

    Default theme: Catppuccin Mocha
    """

    model_config = ConfigDict(extra="forbid")

    idle: Optional[str] = None      # Bar default foreground
    info: str = "#89b4fa"           # Blue
    good: str = "#a6e3a1"           # Green
    warning: str = "#f9e2af"        # Yellow
    critical: str = "#f38ba8"       # Red

    def color_for(self, state: BlockState) -> Optional[str]:
        return getattr(self, state.value)


class ServiceStatusConfig(BaseModel):
    """One service status block."""

    model_config = ConfigDict(extra="forbid")

    driver: DriverType = Field(
        default=DriverType.SYSTEMD,
        description="Init system running the service"
    )
    service: str = Field(
        ...,
        min_length=1,
        description="Unit name without the .service suffix"
    )
    active_format: str = Field(default=" $service active ")
    inactive_format: str = Field(default=" $service inactive ")
    active_state: BlockState = Field(default=BlockState.IDLE)
    inactive_state: BlockState = Field(default=BlockState.CRITICAL)

    @property
    def active_profile(self) -> PresentationProfile:
        return PresentationProfile(state=self.active_state, format=self.active_format)

    @property
    def inactive_profile(self) -> PresentationProfile:
        return PresentationProfile(state=self.inactive_state, format=self.inactive_format)


class StatusBarConfig(BaseModel):
    """Complete status bar configuration."""

    model_config = ConfigDict(extra="forbid")

    theme: StateColors = Field(default_factory=StateColors)
    blocks: List[ServiceStatusConfig] = Field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StatusBarConfig":
        """
        Build configuration from parsed TOML data.

        Tables under ``block`` whose ``block`` key names another block kind
        are skipped.

        Raises:
            ConfigError: If ``block`` is not an array of tables, or a block or
                the theme fails validation
        """
        entries = data.get("block", [])
        if not isinstance(entries, list):
            raise ConfigError(
                "'block' must be an array of tables (use [[block]], not [block])",
                context={"block": entries}
            )

        blocks = []
        for index, raw in enumerate(entries):
            if not isinstance(raw, dict):
                raise ConfigError(
                    f"Block #{index} must be a table, got {type(raw).__name__}",
                    context={"index": index, "block": raw}
                )
            raw = dict(raw)
            kind = raw.pop("block", BLOCK_KIND)
            if kind != BLOCK_KIND:
                logger.warning(f"Skipping block #{index}: unsupported block kind '{kind}'")
                continue
            blocks.append(raw)

        try:
            return cls(theme=data.get("theme", {}), blocks=blocks)
        except PydanticValidationError as e:
            raise ConfigError(
                f"Invalid configuration: {e.error_count()} error(s)",
                context={"errors": e.errors(include_url=False)}
            ) from e


def load_config(path: Path) -> StatusBarConfig:
    """
    Load status bar configuration from a TOML file.

    Args:
        path: Path to the TOML configuration file

    Returns:
        Validated StatusBarConfig

    Raises:
        ConfigError: If the file is missing or unreadable, not valid TOML, or fails validation
    """
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {path}", context={"path": str(path)}) from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}", context={"path": str(path)}) from e
    except OSError as e:
        raise ConfigError(f"Could not read {path}: {e.strerror}", context={"path": str(path)}) from e

    config = StatusBarConfig.from_dict(data)
    logger.info(f"Loaded {len(config.blocks)} service status block(s) from {path}")
    return config
