"""Base probe abstract class for all connectivity probes."""

import asyncio
import logging
from abc import ABC, abstractmethod
from functools import wraps
from typing import Optional, Sequence

from ..config.models import ProbeKind, ProbeSpec, TargetConfig
from ..utils.results import ProbeResult
from ..utils.status import ProbeStatus
from .tools import ProbeTool, select_tool


class BaseProbe(ABC):
    """Abstract base class for all probes."""

    kind: ProbeKind
    capability: str = "tool"  # Human-readable name used in SKIPPED messages

    def __init__(self, candidates: Sequence[ProbeTool], logger: logging.Logger):
        """
        Initialize base probe.

        Args:
            candidates: Tools able to perform this probe, in preference order
            logger: Logger instance
        """
        self.candidates = list(candidates)
        self.logger = logger.getChild(self.__class__.__name__)
        self.tool: Optional[ProbeTool] = select_tool(self.candidates)

        if self.tool is not None:
            self.logger.debug(f"Using {self.tool.name} for {self.kind.value} probes")
        else:
            self.logger.warning(self.missing_tool_message())

    def missing_tool_message(self) -> str:
        """Name the prerequisites that would make this probe runnable."""
        if not self.candidates:
            return f"No {self.capability} configured"
        wanted = ", ".join(tool.requirement for tool in self.candidates)
        return f"No {self.capability} available (requires one of: {wanted})"

    async def run(self, spec: ProbeSpec, target: TargetConfig) -> ProbeResult:
        """
        Run the probe, or report SKIPPED when no tool is available.

        Args:
            spec: Probe description
            target: Host to probe

        Returns:
            ProbeResult: Never raises except for cancellation
        """
        if self.tool is None:
            return ProbeResult(
                name=spec.name,
                status=ProbeStatus.SKIPPED,
                message=self.missing_tool_message()
            )
        return await self.probe(spec, target)

    @abstractmethod
    async def probe(self, spec: ProbeSpec, target: TargetConfig) -> ProbeResult:
        """
        Execute the check with ``self.tool``.

        Note:
            Implementations should use the @safe_probe decorator so that no
            exception escapes as anything but a ProbeResult.
        """


def safe_probe(func):
    """
    Decorator turning probe exceptions into results.

    A timeout of the underlying tool is a clean negative (FAILED); any other
    exception is a fault of the probing mechanism (ERROR). Cancellation is
    not caught.

    Args:
        func: Probe method to wrap

    Returns:
        Wrapped coroutine function
    """
    @wraps(func)
    async def wrapper(self, spec: ProbeSpec, target: TargetConfig) -> ProbeResult:
        try:
            return await func(self, spec, target)
        except (asyncio.TimeoutError, TimeoutError):
            self.logger.info(f"Probe {spec.name} timed out after {spec.timeout:g}s")
            return ProbeResult(
                name=spec.name,
                status=ProbeStatus.FAILED,
                message=f"Timed out after {spec.timeout:g}s"
            )
        except Exception as e:
            self.logger.error(f"Probe {spec.name} crashed: {e}", exc_info=True)
            return ProbeResult(
                name=spec.name,
                status=ProbeStatus.ERROR,
                message=f"Probe error: {type(e).__name__}: {e}"
            )
    return wrapper
