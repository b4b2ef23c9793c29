"""
Local tools that carry out probes.

Each capability (ICMP echo, TCP connect, remote SSH execution) has an ordered
list of candidate tools. Every candidate advertises availability through a
cheap ``is_available()`` check and the first available one is used.
"""

import asyncio
import contextlib
import logging
import math
import re
import shutil
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import paramiko

from ..utils.platform_info import PlatformInfo
from .process import CommandOutput, run_command
from .ssh_helper import SSHHelper


@dataclass(frozen=True)
class ToolOutcome:
    """What a tool observed, before it becomes a ProbeResult."""

    ok: bool
    message: str
    latency_ms: Optional[float] = None


class ProbeTool(ABC):
    """A local mechanism able to perform one kind of check."""

    name: str = ""
    requirement: str = ""  # Shown in SKIPPED messages when unavailable

    def __init__(self, platform: PlatformInfo, logger: logging.Logger):
        self.platform = platform
        self.logger = logger.getChild(self.__class__.__name__)

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if the tool can run on this machine."""


class BinaryTool(ProbeTool):
    """Tool backed by an executable on PATH."""

    binary: str = ""

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 1)


# ---------------------------------------------------------------------------
# TCP port testers
# ---------------------------------------------------------------------------

class PortTester(ProbeTool):
    """Bare TCP handshake check."""

    @abstractmethod
    async def check_port(self, host: str, port: int, timeout: float) -> ToolOutcome:
        """Return whether ``host:port`` accepts a TCP connection."""


class NetcatPortTester(PortTester, BinaryTool):
    name = "nc"
    binary = "nc"
    requirement = "nc (netcat)"

    async def check_port(self, host: str, port: int, timeout: float) -> ToolOutcome:
        start = time.monotonic()
        wait = str(max(1, math.ceil(timeout)))
        result = await run_command(
            [self.binary, "-z", "-w", wait, host, str(port)], timeout, self.logger
        )
        if result.returncode == 0:
            return ToolOutcome(True, f"Port {port} accessible via nc", _elapsed_ms(start))
        return ToolOutcome(False, f"Port {port} not accessible")


class TelnetPortTester(PortTester, BinaryTool):
    name = "telnet"
    binary = "telnet"
    requirement = "telnet"

    async def check_port(self, host: str, port: int, timeout: float) -> ToolOutcome:
        start = time.monotonic()
        # stdin is closed, so telnet hangs up right after the handshake
        result = await run_command([self.binary, host, str(port)], timeout, self.logger)
        if "Connected" in result.output:
            return ToolOutcome(True, f"Port {port} accessible via telnet", _elapsed_ms(start))
        return ToolOutcome(False, f"Port {port} not accessible")


class SocketPortTester(PortTester):
    name = "socket"
    requirement = "TCP sockets"

    def is_available(self) -> bool:
        return True

    async def check_port(self, host: str, port: int, timeout: float) -> ToolOutcome:
        start = time.monotonic()
        try:
            _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
        except (asyncio.TimeoutError, TimeoutError):
            # Before OSError: TimeoutError subclasses it
            return ToolOutcome(False, f"Port {port} timed out after {timeout:g}s")
        except ConnectionRefusedError:
            return ToolOutcome(False, f"Port {port} refused connection")
        except OSError as e:
            return ToolOutcome(False, f"Port {port} not accessible: {e}")

        latency = _elapsed_ms(start)
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()
        return ToolOutcome(True, f"Port {port} accessible via socket", latency)


# ---------------------------------------------------------------------------
# ICMP echo
# ---------------------------------------------------------------------------

_RECEIVED_PATTERNS = (
    re.compile(r"\d+ packets transmitted, (\d+) (?:packets )?received"),
    re.compile(r"Received = (\d+)"),
)
_AVERAGE_PATTERNS = (
    re.compile(r"(?:rtt|round-trip) min/avg/max/(?:mdev|stddev) = [\d.]+/([\d.]+)/"),
    re.compile(r"Average = (\d+)ms"),
)


def parse_ping_output(output: str) -> Tuple[Optional[int], Optional[float]]:
    """
    Extract the reply count and average round-trip time from ping output.

    Handles the Linux, BSD/macOS and Windows formats, e.g.::

        3 packets transmitted, 3 received, 0% packet loss, time 2003ms
        rtt min/avg/max/mdev = 0.041/0.052/0.066/0.010 ms

    Returns:
        (received, average_ms); either is None when not found
    """
    received = None
    for pattern in _RECEIVED_PATTERNS:
        match = pattern.search(output)
        if match:
            received = int(match.group(1))
            break

    average = None
    for pattern in _AVERAGE_PATTERNS:
        match = pattern.search(output)
        if match:
            average = float(match.group(1))
            break

    return received, average


class PingTool(ProbeTool):
    """ICMP echo check."""

    @abstractmethod
    async def ping(self, host: str, count: int, timeout: float) -> ToolOutcome:
        """Send ``count`` echo requests to ``host``."""


class SystemPing(PingTool, BinaryTool):
    name = "ping"
    binary = "ping"
    requirement = "ping"

    def build_command(self, host: str, count: int, timeout: float) -> List[str]:
        """Build the ping invocation in this platform's dialect."""
        # Per-reply wait is half the probe budget
        reply_wait = max(1, int(timeout) // 2)
        if self.platform.is_windows:
            return [self.binary, "-n", str(count), "-w", str(reply_wait * 1000), host]
        if self.platform.is_bsd_like:
            return [self.binary, "-c", str(count), "-W", str(reply_wait * 1000), host]
        return [self.binary, "-c", str(count), "-W", str(reply_wait), host]

    async def ping(self, host: str, count: int, timeout: float) -> ToolOutcome:
        result = await run_command(self.build_command(host, count, timeout), timeout, self.logger)
        received, average = parse_ping_output(result.output)

        if received is None:
            # Unrecognised output format; trust the exit code
            if result.returncode == 0:
                return ToolOutcome(True, "Ping successful", average)
            return ToolOutcome(False, f"Ping failed (exit {result.returncode})")

        if result.returncode == 0 and received >= count:
            return ToolOutcome(True, f"Ping successful ({received}/{count} replies)", average)
        return ToolOutcome(False, f"Ping failed ({received}/{count} replies)")


# ---------------------------------------------------------------------------
# SSH clients
# ---------------------------------------------------------------------------

class SSHClientTool(ProbeTool):
    """Non-interactive remote command execution."""

    @abstractmethod
    async def execute(
        self,
        host: str,
        port: int,
        username: Optional[str],
        command: str,
        timeout: float,
        key_file: Optional[str] = None
    ) -> CommandOutput:
        """Run ``command`` on the remote host; exit 255 signals a connection failure."""


class OpenSSHClient(SSHClientTool, BinaryTool):
    name = "openssh"
    binary = "ssh"
    requirement = "ssh (OpenSSH client)"

    def build_command(
        self,
        host: str,
        port: int,
        username: Optional[str],
        command: str,
        timeout: float,
        key_file: Optional[str] = None
    ) -> List[str]:
        """Batch-mode ssh invocation that never prompts and never records host keys."""
        argv = [
            self.binary,
            "-o", "BatchMode=yes",
            "-o", f"ConnectTimeout={max(1, math.ceil(timeout))}",
            "-o", "StrictHostKeyChecking=no",
            "-o", f"UserKnownHostsFile={self.platform.null_device}",
            "-o", "LogLevel=ERROR",
            "-p", str(port),
        ]
        if key_file:
            argv += ["-i", key_file]
        argv.append(f"{username}@{host}" if username else host)
        argv.append(command)
        return argv

    async def execute(self, host, port, username, command, timeout, key_file=None) -> CommandOutput:
        argv = self.build_command(host, port, username, command, timeout, key_file)
        return await run_command(argv, timeout, self.logger)


class ParamikoSSHClient(SSHClientTool):
    name = "paramiko"
    requirement = "paramiko"

    def is_available(self) -> bool:
        return True

    def _execute_blocking(self, connection, host, port, username, command, timeout, key_file) -> CommandOutput:
        client = None
        try:
            client = SSHHelper.create_client(host, port, username, timeout, key_file, self.logger)
            connection["client"] = client
            return SSHHelper.exec_command(client, command, timeout=timeout, logger=self.logger)
        except (paramiko.AuthenticationException, paramiko.SSHException, OSError) as e:
            if isinstance(e, TimeoutError):
                raise
            return CommandOutput(returncode=255, stdout="", stderr=f"{type(e).__name__}: {e}")
        finally:
            SSHHelper.close_client(client, self.logger)

    async def execute(self, host, port, username, command, timeout, key_file=None) -> CommandOutput:
        # Run blocking SSH calls in thread pool
        loop = asyncio.get_running_loop()
        connection = {}
        try:
            return await loop.run_in_executor(
                None, self._execute_blocking, connection, host, port, username, command, timeout, key_file
            )
        except asyncio.CancelledError:
            # The worker thread cannot be cancelled; closing the connection unblocks it
            self.logger.debug(f"Closing abandoned SSH connection to {host}:{port}")
            SSHHelper.close_client(connection.get("client"), self.logger)
            raise


# ---------------------------------------------------------------------------
# Candidate selection
# ---------------------------------------------------------------------------

ToolFactory = Callable[[PlatformInfo, logging.Logger], ProbeTool]

PORT_TESTERS: Dict[str, ToolFactory] = {
    "netcat": NetcatPortTester,
    "telnet": TelnetPortTester,
    "socket": SocketPortTester,
}

PING_TOOLS: Dict[str, ToolFactory] = {
    "system": SystemPing,
}

SSH_CLIENTS: Dict[str, ToolFactory] = {
    "openssh": OpenSSHClient,
    "paramiko": ParamikoSSHClient,
}


def build_candidates(
    names: Sequence[str],
    registry: Dict[str, ToolFactory],
    platform: PlatformInfo,
    logger: logging.Logger
) -> List[ProbeTool]:
    """Instantiate the named tools in preference order."""
    return [registry[name](platform, logger) for name in names]


def select_tool(candidates: Sequence[ProbeTool]) -> Optional[ProbeTool]:
    """Return the first available candidate, or None."""
    for tool in candidates:
        if tool.is_available():
            return tool
    return None
