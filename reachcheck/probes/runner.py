"""Dispatch of probe specs to the probe implementing their kind."""

import logging
from typing import Dict, Optional

from ..config.models import ProbeKind, ProbeSpec, TargetConfig, ToolsConfig
from ..utils.platform_info import PlatformInfo
from ..utils.results import ProbeResult
from ..utils.status import ProbeStatus
from .base import BaseProbe
from .ping_probe import PingProbe
from .ssh_exec_probe import SshExecProbe
from .tcp_port_probe import TcpPortProbe
from .tools import PING_TOOLS, PORT_TESTERS, SSH_CLIENTS, build_candidates


class ProbeRunner:
    """
    Runs exactly one probe spec against one target.

    Tool selection happens once, at construction: each kind gets the first
    available candidate from the tools configuration.
    """

    def __init__(
        self,
        platform: PlatformInfo,
        tools: Optional[ToolsConfig] = None,
        logger: Optional[logging.Logger] = None,
        probes: Optional[Dict[ProbeKind, BaseProbe]] = None
    ):
        """
        Initialize probe runner.

        Args:
            platform: Local platform facts
            tools: Candidate tool order per capability
            logger: Logger instance
            probes: Pre-built probes per kind (replaces tool selection)
        """
        self.platform = platform
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

        if probes is None:
            tools = tools or ToolsConfig()
            probes = {
                ProbeKind.PING: PingProbe(
                    build_candidates(tools.ping, PING_TOOLS, platform, self.logger), self.logger
                ),
                ProbeKind.TCP_PORT: TcpPortProbe(
                    build_candidates(tools.port_testers, PORT_TESTERS, platform, self.logger), self.logger
                ),
                ProbeKind.SSH_EXEC: SshExecProbe(
                    build_candidates(tools.ssh_clients, SSH_CLIENTS, platform, self.logger), self.logger
                ),
            }
        self.probes = probes

    def selected_tools(self) -> Dict[str, Optional[str]]:
        """Name of the tool chosen for each probe kind (None when unavailable)."""
        return {
            kind.value: probe.tool.name if probe.tool is not None else None
            for kind, probe in self.probes.items()
        }

    async def run(self, spec: ProbeSpec, target: TargetConfig) -> ProbeResult:
        """
        Run one probe.

        Args:
            spec: Probe description
            target: Host to probe

        Returns:
            ProbeResult: Outcome; only cancellation propagates as an exception
        """
        probe = self.probes.get(spec.kind)
        if probe is None:
            return ProbeResult(
                name=spec.name,
                status=ProbeStatus.ERROR,
                message=f"No probe registered for kind {spec.kind.value}"
            )

        self.logger.debug(f"Starting probe {spec.name} ({spec.kind.value})")
        result = await probe.run(spec, target)

        level = logging.INFO if result.status is not ProbeStatus.ERROR else logging.ERROR
        self.logger.log(level, f"{spec.name}: {result.status.value} - {result.message}")
        return result
