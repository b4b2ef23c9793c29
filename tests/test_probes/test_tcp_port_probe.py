"""Tests for TcpPortProbe."""

import pytest

from reachcheck.config.models import ProbeKind, ProbeSpec, TargetConfig
from reachcheck.probes.tcp_port_probe import TcpPortProbe
from reachcheck.probes.tools import SocketPortTester, ToolOutcome
from reachcheck.utils.status import ProbeStatus


def port_spec(name="vnc_port", port=5900, timeout=5):
    return ProbeSpec(name=name, kind=ProbeKind.TCP_PORT, port=port, timeout=timeout)


@pytest.mark.asyncio
async def test_open_port_against_local_server(tcp_server, linux_platform, logger):
    host, port = tcp_server
    probe = TcpPortProbe([SocketPortTester(linux_platform, logger)], logger)

    result = await probe.run(port_spec(port=port), TargetConfig(host=host))

    assert result.status == ProbeStatus.SUCCESS
    assert result.latency_ms is not None


@pytest.mark.asyncio
async def test_closed_port_against_local_host(closed_port, linux_platform, logger):
    probe = TcpPortProbe([SocketPortTester(linux_platform, logger)], logger)

    result = await probe.run(port_spec(port=closed_port), TargetConfig(host="127.0.0.1"))

    assert result.status == ProbeStatus.FAILED
    assert result.latency_ms is None


@pytest.mark.asyncio
async def test_port_override_is_used(logger, make_tool):
    tool = make_tool(name="nc", check_port=ToolOutcome(True, "Port 2222 accessible via nc", 3.0))
    target = TargetConfig(host="10.0.0.5", port_overrides={"ssh_port": 2222})

    await TcpPortProbe([tool], logger).run(port_spec("ssh_port", 22), target)

    tool.check_port.assert_awaited_once_with("10.0.0.5", 2222, 5)


@pytest.mark.asyncio
async def test_first_available_tool_is_used(target, logger, make_tool):
    missing = make_tool(name="nc", requirement="nc (netcat)", available=False)
    present = make_tool(name="telnet", check_port=ToolOutcome(True, "Port 445 accessible via telnet", 1.0))
    probe = TcpPortProbe([missing, present], logger)

    result = await probe.run(port_spec("smb_port", 445), target)

    assert probe.tool is present
    assert result.status == ProbeStatus.SUCCESS
    missing.check_port.assert_not_called()


@pytest.mark.asyncio
async def test_no_tool_is_skipped(target, logger, make_tool):
    probe = TcpPortProbe([
        make_tool(name="nc", requirement="nc (netcat)", available=False),
        make_tool(name="telnet", requirement="telnet", available=False),
    ], logger)

    result = await probe.run(port_spec(), target)

    assert result.status == ProbeStatus.SKIPPED
    assert "nc (netcat), telnet" in result.message
