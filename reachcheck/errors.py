"""Exception hierarchy for reachcheck."""


class ReachCheckError(Exception):
    """Base class for reachcheck errors."""


class BatteryDefinitionError(ReachCheckError, ValueError):
    """A probe battery is invalid (duplicate names, unknown critical probe)."""


class ConfigError(ReachCheckError):
    """Configuration file could not be read or validated."""
