"""Configuration settings for the colony warfare engine.

Uses Pydantic Settings for validation and environment variable support.
All settings can be overridden via COLONYWAR_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

from colonywar.errors import ConfigError


class WarfareConfig(BaseSettings):
    """Global configuration for inter-colony diplomacy and warfare."""

    # Conflict ignition
    border_conflict_chance: float = Field(default=0.05, ge=0.0, le=1.0)  # per border per tick
    resource_competition: float = Field(default=0.7, ge=0.0)
    max_active_conflicts: int = Field(default=10, ge=0)

    # Borders
    border_distance: float = Field(default=3.0, gt=0.0)  # max cell distance to count as adjacent

    # Diplomacy
    diplomacy_update_rate: int = Field(default=50, ge=1)  # ticks between diplomacy passes

    # Trade
    trade_execution_interval: int = Field(default=10, ge=1)
    trade_negotiation_interval: int = Field(default=100, ge=1)

    # Alliances
    alliance_formation_interval: int = Field(default=300, ge=1)
    joint_operation_interval: int = Field(default=200, ge=1)
    ally_support_range: float = Field(default=100.0, ge=0.0)

    # Randomness (None = non-deterministic)
    seed: int | None = None

    # Per-phase tick timing
    timing_enabled: bool = False

    model_config = {"env_prefix": "COLONYWAR_"}


def load_config(path: str | Path) -> WarfareConfig:
    """Load a WarfareConfig from a YAML file of overrides.

    Keys missing from the file keep their defaults (or environment values).

    Args:
        path: Path to a YAML file containing a mapping of settings

    Returns:
        WarfareConfig instance

    Raises:
        ConfigError: If the document is not a mapping
        FileNotFoundError: If file doesn't exist
    """
    import yaml

    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {path}, got {type(data).__name__}")

    return WarfareConfig(**data)
