"""Structured error hierarchy for colonywar."""


class ColonyWarError(Exception):
    """Base for all colonywar errors."""

    pass


class UnknownColonyError(ColonyWarError):
    """A colony ID is not registered with the relation ledger."""

    def __init__(self, colony_id: int):
        self.colony_id = colony_id
        super().__init__(f"Colony {colony_id} is not registered")


class ConfigError(ColonyWarError):
    """Configuration file could not be turned into settings."""

    pass
