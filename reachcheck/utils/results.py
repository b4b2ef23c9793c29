"""Result data structures for probes and battery runs."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import FrozenSet, Iterable, Optional, Tuple

from ..config.models import TargetConfig
from .platform_info import PlatformInfo
from .status import OverallStatus, ProbeStatus


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of running one probe against one target."""

    name: str
    status: ProbeStatus
    message: str  # Human-readable detail
    latency_ms: Optional[float] = None

    @property
    def succeeded(self) -> bool:
        return self.status is ProbeStatus.SUCCESS


def count_critical_successes(
    results: Iterable[ProbeResult],
    critical_names: Iterable[str]
) -> int:
    """Count critical probes whose result is SUCCESS."""
    critical = frozenset(critical_names)
    return sum(1 for r in results if r.name in critical and r.succeeded)


def classify(
    results: Iterable[ProbeResult],
    critical_names: Iterable[str]
) -> OverallStatus:
    """
    Classify overall health from probe results.

    Only SUCCESS counts towards the critical tally. FAILED, ERROR, SKIPPED
    and CANCELLED critical probes all leave the tally short, while every
    non-critical result is ignored.

    Args:
        results: Probe results of one battery run
        critical_names: Names of the critical probes in the battery

    Returns:
        OverallStatus: Headline classification
    """
    critical = frozenset(critical_names)
    critical_total = len(critical)
    critical_successes = count_critical_successes(results, critical)

    if critical_successes == critical_total:
        return OverallStatus.FULLY_FUNCTIONAL
    if critical_successes >= critical_total - 1 and critical_successes >= 1:
        return OverallStatus.MOSTLY_FUNCTIONAL
    if critical_successes >= 1:
        return OverallStatus.LIMITED_FUNCTIONALITY
    return OverallStatus.NOT_FUNCTIONAL


@dataclass(frozen=True)
class HealthReport:
    """
    Aggregate outcome of one battery run against one target.

    The overall status is always derived from ``results`` and
    ``critical_probes``; it is never stored.
    """

    target: TargetConfig
    results: Tuple[ProbeResult, ...]
    critical_probes: FrozenSet[str]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    is_partial: bool = False
    platform: Optional[PlatformInfo] = None
    duration_seconds: Optional[float] = None

    @property
    def overall_status(self) -> OverallStatus:
        return classify(self.results, self.critical_probes)

    @property
    def critical_total(self) -> int:
        return len(self.critical_probes)

    @property
    def critical_successes(self) -> int:
        return count_critical_successes(self.results, self.critical_probes)

    @property
    def total_tests(self) -> int:
        return len(self.results)

    @property
    def successful_tests(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def success_percentage(self) -> float:
        if not self.results:
            return 0.0
        return round(self.successful_tests * 100 / self.total_tests, 1)

    def result_for(self, name: str) -> Optional[ProbeResult]:
        """Return the result of the named probe, or None if it is absent."""
        for result in self.results:
            if result.name == name:
                return result
        return None
