"""TCP reachability probe."""

from ..config.models import ProbeKind, ProbeSpec, TargetConfig
from ..utils.results import ProbeResult
from ..utils.status import ProbeStatus
from .base import BaseProbe, safe_probe


class TcpPortProbe(BaseProbe):
    """
    Bare TCP handshake against ``host:port``.

    No application protocol is spoken; an accepted connection is success,
    refusal or timeout is failure.
    """

    kind = ProbeKind.TCP_PORT
    capability = "port testing tool"

    @safe_probe
    async def probe(self, spec: ProbeSpec, target: TargetConfig) -> ProbeResult:
        port = target.port_for(spec)
        self.logger.debug(f"Testing {target.host}:{port} with {self.tool.name}")
        outcome = await self.tool.check_port(target.host, port, spec.timeout)

        return ProbeResult(
            name=spec.name,
            status=ProbeStatus.SUCCESS if outcome.ok else ProbeStatus.FAILED,
            message=outcome.message,
            latency_ms=outcome.latency_ms if outcome.ok else None
        )
