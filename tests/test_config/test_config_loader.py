"""Tests for configuration models and the YAML loader."""

import textwrap

import pytest
from pydantic import ValidationError

from reachcheck.config.loader import ConfigLoader
from reachcheck.config.models import (
    DEFAULT_SSH_PORT,
    LoggingConfig,
    ProbeKind,
    ProbeSpec,
    ReachCheckConfig,
    TargetConfig,
)
from reachcheck.config.settings import Settings
from reachcheck.errors import ConfigError


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def write_config(tmp_path):
    """Write a YAML document to a temp file and return its path."""
    def _write(text):
        path = tmp_path / "config.yaml"
        path.write_text(textwrap.dedent(text), encoding="utf-8")
        return str(path)
    return _write


MINIMAL = """
    target:
      host: "${MAC_IP}"
      username: "${MAC_USER}"
"""


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

class TestLoadFromFile:

    def test_env_substitution(self, write_config, monkeypatch):
        monkeypatch.setenv("MAC_IP", "100.77.255.169")
        monkeypatch.setenv("MAC_USER", "daveboyd")

        config = ConfigLoader.load_from_file(write_config(MINIMAL))

        assert config.target.host == "100.77.255.169"
        assert config.target.username == "daveboyd"

    def test_unset_env_username_becomes_none(self, write_config, monkeypatch):
        monkeypatch.setenv("MAC_IP", "10.0.0.5")
        monkeypatch.delenv("MAC_USER", raising=False)

        config = ConfigLoader.load_from_file(write_config(MINIMAL))

        assert config.target.username is None

    def test_unset_env_host_is_invalid(self, write_config, monkeypatch):
        monkeypatch.delenv("MAC_IP", raising=False)
        with pytest.raises(ValidationError):
            ConfigLoader.load_from_file(write_config(MINIMAL))

    def test_defaults(self, write_config, monkeypatch):
        monkeypatch.setenv("MAC_IP", "10.0.0.5")

        config = ConfigLoader.load_from_file(write_config(MINIMAL))

        assert [spec.name for spec in config.battery.probes] == [
            "ping", "ssh_port", "ssh_connection", "vnc_port", "smb_port"
        ]
        assert config.battery.critical_names == frozenset({"ping", "ssh_port", "ssh_connection"})
        assert config.tools.port_testers == ["netcat", "telnet", "socket"]
        assert config.report.write_status_file is True
        assert config.logging.level == "INFO"

    def test_custom_battery(self, write_config):
        path = write_config("""
            target:
              host: 10.0.0.5
            battery:
              max_workers: 2
              critical_probes: [rdp_port]
              probes:
                - name: rdp_port
                  kind: tcp_port
                  port: 3389
                - name: ping
                  kind: ping
                  count: 1
                  timeout: 2
        """)

        config = ConfigLoader.load_from_file(path)

        assert config.battery.worker_limit == 2
        assert config.battery.critical_names == frozenset({"rdp_port"})
        assert config.battery.probes[1].kind is ProbeKind.PING

    def test_duplicate_probe_names(self, write_config):
        path = write_config("""
            target:
              host: 10.0.0.5
            battery:
              probes:
                - {name: ssh_port, kind: tcp_port, port: 22}
                - {name: ssh_port, kind: tcp_port, port: 2222}
        """)
        with pytest.raises(ValidationError, match="Duplicate probe names"):
            ConfigLoader.load_from_file(path)

    def test_unknown_critical_probe(self, write_config):
        path = write_config("""
            target:
              host: 10.0.0.5
            battery:
              critical_probes: [rdp_port]
              probes:
                - {name: ssh_port, kind: tcp_port, port: 22}
        """)
        with pytest.raises(ValidationError, match="rdp_port"):
            ConfigLoader.load_from_file(path)

    def test_unknown_tool_rejected(self, write_config):
        path = write_config("""
            target:
              host: 10.0.0.5
            tools:
              port_testers: [nmap]
        """)
        with pytest.raises(ValidationError):
            ConfigLoader.load_from_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigLoader.load_from_file(str(tmp_path / "absent.yaml"))

    def test_invalid_yaml(self, write_config):
        with pytest.raises(ConfigError, match="Invalid YAML"):
            ConfigLoader.load_from_file(write_config("target: [unclosed\n"))

    def test_non_mapping_root(self, write_config):
        with pytest.raises(ConfigError, match="mapping"):
            ConfigLoader.load_from_file(write_config("- just\n- a list\n"))

    def test_overrides_win_and_none_is_ignored(self, write_config, monkeypatch):
        monkeypatch.setenv("MAC_IP", "10.0.0.5")
        monkeypatch.setenv("MAC_USER", "daveboyd")
        overrides = {
            "target": {"host": "192.168.1.20", "username": None},
            "report": {"write_status_file": False, "status_file": None},
            "logging": {"level": "debug"},
        }

        config = ConfigLoader.load_from_file(write_config(MINIMAL), overrides)

        assert config.target.host == "192.168.1.20"
        assert config.target.username == "daveboyd"
        assert config.report.write_status_file is False
        assert config.logging.level == "DEBUG"


class TestFromDict:

    def test_command_line_only(self):
        config = ConfigLoader.from_dict({
            "target": {"host": "10.0.0.5", "username": "admin", "hostname": None},
            "report": {"status_file": None, "log_file": None},
        })

        assert config.target.host == "10.0.0.5"
        assert config.target.hostname is None
        assert config.report.status_file.endswith("reachcheck_status.json")

    def test_missing_host(self):
        with pytest.raises(ValidationError) as exc_info:
            ConfigLoader.from_dict({"target": {"host": None}})

        assert "target" in ConfigLoader.describe_error(exc_info.value)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class TestProbeSpec:

    def test_tcp_port_requires_port(self):
        with pytest.raises(ValidationError, match="require a port"):
            ProbeSpec(name="vnc_port", kind=ProbeKind.TCP_PORT)

    def test_ping_timeout_must_cover_count(self):
        with pytest.raises(ValidationError, match="too short for 10 requests"):
            ProbeSpec(name="ping", kind=ProbeKind.PING, count=10, timeout=5)

    def test_ping_timeout_just_above_count(self):
        spec = ProbeSpec(name="ping", kind=ProbeKind.PING, count=10, timeout=9.5)
        assert spec.count == 10

    def test_ping_defaults_are_consistent(self):
        spec = ProbeSpec(name="ping", kind=ProbeKind.PING)
        assert spec.timeout > spec.count - 1

    def test_empty_sentinel_rejected(self):
        with pytest.raises(ValidationError, match="sentinel"):
            ProbeSpec(name="ssh_connection", kind=ProbeKind.SSH_EXEC, sentinel="  ")

    @pytest.mark.parametrize("field, value", [
        ("timeout", 0),
        ("count", 0),
        ("count", 11),
        ("port", 70000),
    ])
    def test_out_of_range(self, field, value):
        kwargs = {"name": "p", "kind": ProbeKind.TCP_PORT, "port": 22, field: value}
        with pytest.raises(ValidationError):
            ProbeSpec(**kwargs)

    def test_frozen(self):
        spec = ProbeSpec(name="ping", kind=ProbeKind.PING)
        with pytest.raises(ValidationError):
            spec.timeout = 1


class TestTargetConfig:

    def test_port_for_override(self):
        target = TargetConfig(host="h", port_overrides={"ssh_port": 2222})
        spec = ProbeSpec(name="ssh_port", kind=ProbeKind.TCP_PORT, port=22)
        assert target.port_for(spec) == 2222

    def test_port_for_ssh_default(self):
        spec = ProbeSpec(name="ssh_connection", kind=ProbeKind.SSH_EXEC)
        assert TargetConfig(host="h").port_for(spec) == DEFAULT_SSH_PORT

    def test_port_for_ping(self):
        assert TargetConfig(host="h").port_for(ProbeSpec(name="ping", kind=ProbeKind.PING)) is None

    def test_bad_override(self):
        with pytest.raises(ValidationError, match="out of range"):
            TargetConfig(host="h", port_overrides={"ssh_port": 0})

    def test_empty_host(self):
        with pytest.raises(ValidationError):
            ReachCheckConfig(target={"host": ""})


def test_logging_level_normalized():
    assert LoggingConfig(level="warning").level == "WARNING"


class TestSettings:

    def test_env_values(self, monkeypatch):
        monkeypatch.setenv(Settings.CONFIG_VAR, "/etc/reachcheck.yaml")
        monkeypatch.setenv(Settings.STATUS_FILE_VAR, "/var/tmp/status.json")
        monkeypatch.setenv(Settings.LOG_LEVEL_VAR, "debug")

        assert Settings.config_path() == "/etc/reachcheck.yaml"
        assert Settings.status_file() == "/var/tmp/status.json"
        assert Settings.log_level() == "DEBUG"

    def test_unset(self, monkeypatch):
        monkeypatch.delenv(Settings.CONFIG_VAR, raising=False)
        monkeypatch.delenv(Settings.LOG_LEVEL_VAR, raising=False)

        assert Settings.config_path() is None
        assert Settings.log_level() == "INFO"

    def test_required(self, monkeypatch):
        monkeypatch.delenv("REACHCHECK_MISSING", raising=False)
        with pytest.raises(ValueError, match="REACHCHECK_MISSING"):
            Settings.get("REACHCHECK_MISSING", required=True)
