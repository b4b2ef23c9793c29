"""Non-interactive SSH login probe."""

import time

from ..config.models import ProbeKind, ProbeSpec, TargetConfig
from ..utils.results import ProbeResult
from ..utils.status import ProbeStatus
from .base import BaseProbe, safe_probe

MAX_EXCERPT = 200


def _excerpt(text: str, skip: str = "") -> str:
    lines = [line.strip() for line in text.splitlines() if line.strip() and line.strip() != skip]
    joined = "; ".join(lines)
    if len(joined) > MAX_EXCERPT:
        return joined[:MAX_EXCERPT - 3] + "..."
    return joined


class SshExecProbe(BaseProbe):
    """
    Run a command over SSH and look for a sentinel in its output.

    The sentinel separates a real shell execution from a banner or MOTD
    that happens to be printed before the connection fails.
    """

    kind = ProbeKind.SSH_EXEC
    capability = "SSH client"

    @safe_probe
    async def probe(self, spec: ProbeSpec, target: TargetConfig) -> ProbeResult:
        port = target.port_for(spec)
        login = f"{target.username}@{target.host}" if target.username else target.host
        self.logger.debug(f"Attempting SSH connection to {login}:{port} with {self.tool.name}")

        start = time.monotonic()
        result = await self.tool.execute(
            target.host,
            port,
            target.username,
            spec.command,
            spec.timeout,
            key_file=spec.key_file
        )
        elapsed_ms = round((time.monotonic() - start) * 1000, 1)

        if result.returncode != 0:
            detail = _excerpt(result.output) or "no output"
            return ProbeResult(
                name=spec.name,
                status=ProbeStatus.FAILED,
                message=f"SSH connection failed (exit {result.returncode}): {detail}"
            )

        if spec.sentinel not in result.stdout:
            return ProbeResult(
                name=spec.name,
                status=ProbeStatus.FAILED,
                message=f"SSH command exited 0 but {spec.sentinel} was not in its output"
            )

        response = _excerpt(result.stdout, skip=spec.sentinel)
        message = "SSH connection successful"
        if response:
            message = f"{message}: {response}"

        return ProbeResult(
            name=spec.name,
            status=ProbeStatus.SUCCESS,
            message=message,
            latency_ms=elapsed_ms
        )
