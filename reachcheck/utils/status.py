"""Probe and overall health status enumerations."""

from enum import Enum


class ProbeStatus(Enum):
    """Outcome of a single connectivity probe."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
    ERROR = "ERROR"
    CANCELLED = "CANCELLED"

    def to_emoji(self) -> str:
        """
        Convert status to emoji representation.

        Returns:
            str: Emoji representing the probe status
        """
        return {
            ProbeStatus.SUCCESS: "✅",
            ProbeStatus.FAILED: "❌",
            ProbeStatus.SKIPPED: "⚠️",
            ProbeStatus.ERROR: "💥",
            ProbeStatus.CANCELLED: "⏹️",
        }[self]


class OverallStatus(Enum):
    """
    Headline classification of a target.

    The string values are read by status-file consumers and must not change.
    """

    FULLY_FUNCTIONAL = "FULLY_FUNCTIONAL"
    MOSTLY_FUNCTIONAL = "MOSTLY_FUNCTIONAL"
    LIMITED_FUNCTIONALITY = "LIMITED_FUNCTIONALITY"
    NOT_FUNCTIONAL = "NOT_FUNCTIONAL"

    @property
    def rank(self) -> int:
        """Position on the NOT_FUNCTIONAL < ... < FULLY_FUNCTIONAL scale."""
        return {
            OverallStatus.NOT_FUNCTIONAL: 0,
            OverallStatus.LIMITED_FUNCTIONALITY: 1,
            OverallStatus.MOSTLY_FUNCTIONAL: 2,
            OverallStatus.FULLY_FUNCTIONAL: 3,
        }[self]

    def to_emoji(self) -> str:
        """
        Convert status to emoji representation.

        Returns:
            str: Emoji representing the overall status
        """
        return {
            OverallStatus.FULLY_FUNCTIONAL: "🟢",
            OverallStatus.MOSTLY_FUNCTIONAL: "🟡",
            OverallStatus.LIMITED_FUNCTIONALITY: "🟠",
            OverallStatus.NOT_FUNCTIONAL: "🔴",
        }[self]
