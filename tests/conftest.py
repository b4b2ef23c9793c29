"""Shared pytest configuration and fixtures."""

import asyncio
from typing import Dict, Optional, Union
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from reachcheck.config.models import TargetConfig, default_battery
from reachcheck.utils.logger import setup_logger
from reachcheck.utils.platform_info import PlatformInfo
from reachcheck.utils.results import ProbeResult
from reachcheck.utils.status import ProbeStatus


class ScriptedRunner:
    """
    Stand-in for ProbeRunner returning scripted outcomes.

    Outcomes may be a ProbeStatus, a full ProbeResult or an exception to raise.
    Probes not listed succeed.
    """

    def __init__(
        self,
        outcomes: Optional[Dict[str, Union[ProbeStatus, ProbeResult, Exception]]] = None,
        delays: Optional[Dict[str, float]] = None
    ):
        self.outcomes = outcomes or {}
        self.delays = delays or {}
        self.started = []
        self.active = 0
        self.max_active = 0

    async def run(self, spec, target):
        self.started.append(spec.name)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            delay = self.delays.get(spec.name, 0)
            if delay:
                await asyncio.sleep(delay)

            outcome = self.outcomes.get(spec.name, ProbeStatus.SUCCESS)
            if isinstance(outcome, Exception):
                raise outcome
            if isinstance(outcome, ProbeResult):
                return outcome
            return ProbeResult(name=spec.name, status=outcome, message=f"{spec.name} {outcome.value.lower()}")
        finally:
            self.active -= 1


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test")


@pytest.fixture
def linux_platform():
    return PlatformInfo(
        system="Linux", architecture="x64", hostname="pc-room504", username="tester", os_release="6.1.0"
    )


@pytest.fixture
def mac_platform():
    return PlatformInfo(
        system="macOS", architecture="arm64", hostname="sf-Deb-Book", username="tester", os_release="23.4.0"
    )


@pytest.fixture
def windows_platform():
    return PlatformInfo(
        system="Windows", architecture="x64", hostname="PC-ROOM504", username="tester", os_release="10"
    )


@pytest.fixture
def target():
    """Mac reached from the PC in room 504."""
    return TargetConfig(host="100.77.255.169", username="daveboyd", hostname="sf-Deb-Book.local")


@pytest.fixture
def battery():
    """Standard five-probe battery (ping, ssh_port, ssh_connection critical)."""
    return default_battery()


@pytest.fixture
def scripted_runner():
    """Factory for ScriptedRunner instances."""
    return ScriptedRunner


@pytest.fixture
def make_tool():
    """Factory for mock tools exposing the ProbeTool surface."""
    def _make(name="stub", requirement="stub tool", available=True, **async_methods):
        tool = MagicMock()
        tool.name = name
        tool.requirement = requirement
        tool.is_available.return_value = available
        for method, value in async_methods.items():
            if isinstance(value, BaseException):
                setattr(tool, method, AsyncMock(side_effect=value))
            else:
                setattr(tool, method, AsyncMock(return_value=value))
        return tool
    return _make


@pytest_asyncio.fixture
async def tcp_server():
    """Local TCP server that accepts and immediately closes connections."""
    async def _handle(reader, writer):
        writer.close()

    server = await asyncio.start_server(_handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    yield "127.0.0.1", port
    server.close()
    await server.wait_closed()


@pytest_asyncio.fixture
async def closed_port():
    """A local port with nothing listening on it."""
    server = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()
    return port
