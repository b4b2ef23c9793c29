"""Battery execution and overall health classification."""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from .config.models import BatteryDefinition, ProbeSpec, TargetConfig, validate_battery
from .probes.runner import ProbeRunner
from .utils.platform_info import PlatformInfo
from .utils.results import HealthReport, ProbeResult, classify
from .utils.status import ProbeStatus

__all__ = ["HealthAggregator", "classify"]


class HealthAggregator:
    """
    Runs a fixed, ordered battery of probes against one target.

    Probes are independent: they run concurrently (bounded by the battery's
    worker limit) and a failing probe never stops the others. Results are
    reported in battery order whatever order they finish in.
    """

    def __init__(
        self,
        battery: BatteryDefinition,
        runner: ProbeRunner,
        logger: Optional[logging.Logger] = None,
        platform: Optional[PlatformInfo] = None
    ):
        """
        Initialize health aggregator.

        Args:
            battery: Probes to run and the critical set
            runner: Executes single probes
            logger: Optional logger instance
            platform: Local platform facts recorded in reports

        Raises:
            BatteryDefinitionError: On duplicate probe names or a critical
                name that is not part of the battery
        """
        validate_battery(battery.probes, battery.critical_probes)

        self.battery = battery
        self.runner = runner
        self.platform = platform
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

    @classmethod
    def from_specs(
        cls,
        probes: Sequence[ProbeSpec],
        runner: ProbeRunner,
        critical_probes: Iterable[str] = (),
        max_workers: Optional[int] = None,
        **kwargs
    ) -> "HealthAggregator":
        """
        Build an aggregator from bare specs.

        Raises:
            BatteryDefinitionError: If the specs do not form a valid battery
        """
        critical_probes = list(critical_probes)
        # Validate first so callers get BatteryDefinitionError, not a pydantic wrapper
        validate_battery(probes, critical_probes)
        battery = BatteryDefinition(
            probes=list(probes),
            critical_probes=critical_probes,
            max_workers=max_workers
        )
        return cls(battery, runner, **kwargs)

    @property
    def critical_names(self) -> frozenset:
        return self.battery.critical_names

    async def run(
        self,
        target: TargetConfig,
        cancel_event: Optional[asyncio.Event] = None
    ) -> HealthReport:
        """
        Run the battery once and classify the target.

        Args:
            target: Host to probe
            cancel_event: When set, unfinished probes are abandoned and the
                report is returned marked partial

        Returns:
            HealthReport: Complete or partial report; never raises for
                per-target conditions
        """
        started_at = datetime.now(timezone.utc)
        start = time.monotonic()
        probes = list(self.battery.probes)

        self.logger.info(
            f"Running {len(probes)} probe(s) against {target.host} "
            f"(workers={self.battery.worker_limit})"
        )

        tasks: List["asyncio.Future[ProbeResult]"] = []
        interrupted = cancel_event is not None and cancel_event.is_set()
        if interrupted:
            self.logger.warning("Battery cancelled before any probe started")
        else:
            semaphore = asyncio.Semaphore(self.battery.worker_limit)
            tasks = [
                asyncio.ensure_future(self._run_probe(spec, target, semaphore))
                for spec in probes
            ]
            interrupted = await self._wait_for_tasks(tasks, cancel_event)

        # Reassemble in battery order
        results: List[ProbeResult] = []
        for index, spec in enumerate(probes):
            task = tasks[index] if tasks else None
            if task is not None and task.done() and not task.cancelled():
                results.append(task.result())
            else:
                results.append(ProbeResult(
                    name=spec.name,
                    status=ProbeStatus.CANCELLED,
                    message="Cancelled before completion"
                ))

        report = HealthReport(
            target=target,
            results=tuple(results),
            critical_probes=self.critical_names,
            timestamp=started_at,
            is_partial=interrupted,
            platform=self.platform,
            duration_seconds=round(time.monotonic() - start, 2)
        )

        self.logger.info(
            f"Battery finished: {report.overall_status.value} "
            f"({report.critical_successes}/{report.critical_total} critical probes succeeded"
            f"{', partial' if interrupted else ''})"
        )
        return report

    async def _run_probe(
        self,
        spec: ProbeSpec,
        target: TargetConfig,
        semaphore: asyncio.Semaphore
    ) -> ProbeResult:
        """Run one probe under the worker limit with a hard timeout."""
        async with semaphore:
            try:
                return await asyncio.wait_for(self.runner.run(spec, target), timeout=spec.timeout)
            except asyncio.TimeoutError:
                self.logger.info(f"Probe {spec.name} exceeded {spec.timeout:g}s, cancelled")
                return ProbeResult(
                    name=spec.name,
                    status=ProbeStatus.FAILED,
                    message=f"Timed out after {spec.timeout:g}s"
                )
            except Exception as e:
                self.logger.error(f"Probe {spec.name} raised: {e}", exc_info=True)
                return ProbeResult(
                    name=spec.name,
                    status=ProbeStatus.ERROR,
                    message=f"Probe error: {type(e).__name__}: {e}"
                )

    async def _wait_for_tasks(
        self,
        tasks: List["asyncio.Future[ProbeResult]"],
        cancel_event: Optional[asyncio.Event]
    ) -> bool:
        """
        Wait for all probe tasks or the cancellation signal, whichever is first.

        Returns:
            bool: True if probes were abandoned because of cancellation
        """
        pending = set(tasks)
        stopper = asyncio.ensure_future(cancel_event.wait()) if cancel_event is not None else None

        try:
            while pending:
                waiting = pending | {stopper} if stopper is not None else pending
                done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)
                pending -= done
                if stopper is not None and stopper.done():
                    break
        finally:
            leftovers = set(pending)
            if stopper is not None:
                leftovers.add(stopper)
            for task in leftovers:
                task.cancel()
            if leftovers:
                # Let cancelled probes release their processes and sockets
                await asyncio.gather(*leftovers, return_exceptions=True)

        if pending:
            self.logger.warning(f"Battery cancelled with {len(pending)} probe(s) unfinished")
        return bool(pending)
