"""ICMP echo probe."""

from ..config.models import ProbeKind, ProbeSpec, TargetConfig
from ..utils.results import ProbeResult
from ..utils.status import ProbeStatus
from .base import BaseProbe, safe_probe


class PingProbe(BaseProbe):
    """Succeeds only when every echo request is answered."""

    kind = ProbeKind.PING
    capability = "ICMP ping tool"

    @safe_probe
    async def probe(self, spec: ProbeSpec, target: TargetConfig) -> ProbeResult:
        self.logger.debug(f"Pinging {target.host} (count={spec.count}, timeout={spec.timeout:g}s)")
        outcome = await self.tool.ping(target.host, spec.count, spec.timeout)

        return ProbeResult(
            name=spec.name,
            status=ProbeStatus.SUCCESS if outcome.ok else ProbeStatus.FAILED,
            message=outcome.message,
            latency_ms=outcome.latency_ms if outcome.ok else None
        )
