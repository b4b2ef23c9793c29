"""Pydantic configuration models for probe batteries and targets."""

import os
import tempfile
from enum import Enum
from typing import Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..errors import BatteryDefinitionError


DEFAULT_SSH_PORT = 22
DEFAULT_SSH_SENTINEL = "SSH_CONNECTION_SUCCESS"
DEFAULT_SSH_COMMAND = f"echo {DEFAULT_SSH_SENTINEL}; hostname; uptime; date"


class ProbeKind(str, Enum):
    """Kind of connectivity check."""
    PING = "ping"
    TCP_PORT = "tcp_port"
    SSH_EXEC = "ssh_exec"


class ProbeSpec(BaseModel):
    """Static description of one check in a battery."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    kind: ProbeKind
    critical: bool = False
    timeout: float = Field(default=5.0, gt=0)  # Seconds
    # PING
    count: int = Field(default=3, ge=1, le=10)
    # TCP_PORT (required) and SSH_EXEC (defaults to 22)
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    # SSH_EXEC
    command: str = DEFAULT_SSH_COMMAND
    sentinel: str = DEFAULT_SSH_SENTINEL
    key_file: Optional[str] = None

    @model_validator(mode="after")
    def check_kind_parameters(self) -> "ProbeSpec":
        """Check the parameters each kind depends on."""
        # ping sends one request per second
        if self.kind is ProbeKind.PING and self.timeout <= self.count - 1:
            raise ValueError(
                f"Probe '{self.name}': ping timeout {self.timeout:g}s is too short for "
                f"{self.count} requests (needs more than {self.count - 1}s)"
            )
        if self.kind is ProbeKind.TCP_PORT and self.port is None:
            raise ValueError(f"Probe '{self.name}': tcp_port probes require a port")
        if self.kind is ProbeKind.SSH_EXEC and not self.sentinel.strip():
            raise ValueError(f"Probe '{self.name}': ssh_exec sentinel must not be empty")
        return self


def validate_battery(probes: Iterable[ProbeSpec], critical_probes: Iterable[str] = ()) -> None:
    """
    Reject batteries that cannot be classified.

    Args:
        probes: Ordered probe specs
        critical_probes: Extra names to treat as critical

    Raises:
        BatteryDefinitionError: On duplicate probe names or a critical name
            that does not belong to the battery
    """
    seen = set()
    duplicates = []
    for spec in probes:
        if spec.name in seen and spec.name not in duplicates:
            duplicates.append(spec.name)
        seen.add(spec.name)

    if duplicates:
        raise BatteryDefinitionError(f"Duplicate probe names in battery: {', '.join(duplicates)}")

    unknown = [name for name in critical_probes if name not in seen]
    if unknown:
        raise BatteryDefinitionError(
            f"Critical probes not defined in battery: {', '.join(unknown)}"
        )


class BatteryDefinition(BaseModel):
    """Ordered set of probes run together against one target."""
    model_config = ConfigDict(frozen=True)

    probes: List[ProbeSpec]
    critical_probes: List[str] = Field(default_factory=list)
    max_workers: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def check_battery(self) -> "BatteryDefinition":
        validate_battery(self.probes, self.critical_probes)
        return self

    @property
    def critical_names(self) -> frozenset:
        """Per-probe critical flags unioned with ``critical_probes``."""
        return frozenset(
            [spec.name for spec in self.probes if spec.critical] + list(self.critical_probes)
        )

    @property
    def worker_limit(self) -> int:
        return self.max_workers or max(len(self.probes), 1)


def default_battery() -> BatteryDefinition:
    """Standard PC-to-Mac battery: ping, SSH port and login, VNC and SMB ports."""
    return BatteryDefinition(probes=[
        ProbeSpec(name="ping", kind=ProbeKind.PING, critical=True, count=3, timeout=10),
        ProbeSpec(name="ssh_port", kind=ProbeKind.TCP_PORT, critical=True, port=22, timeout=5),
        ProbeSpec(name="ssh_connection", kind=ProbeKind.SSH_EXEC, critical=True, timeout=10),
        ProbeSpec(name="vnc_port", kind=ProbeKind.TCP_PORT, port=5900, timeout=5),
        ProbeSpec(name="smb_port", kind=ProbeKind.TCP_PORT, port=445, timeout=5),
    ])


class TargetConfig(BaseModel):
    """Host the battery is run against."""
    model_config = ConfigDict(frozen=True)

    host: str = Field(min_length=1)
    username: Optional[str] = None
    hostname: Optional[str] = None  # Display name, e.g. "sf-Deb-Book.local"
    port_overrides: Dict[str, int] = Field(default_factory=dict)

    @field_validator('username', 'hostname')
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty strings (unset ${ENV} placeholders) as missing."""
        if v is not None and not v.strip():
            return None
        return v

    @field_validator('port_overrides')
    @classmethod
    def validate_ports(cls, v: Dict[str, int]) -> Dict[str, int]:
        for name, port in v.items():
            if not 1 <= port <= 65535:
                raise ValueError(f"Port override for '{name}' out of range: {port}")
        return v

    def port_for(self, spec: ProbeSpec) -> Optional[int]:
        """Resolve the port a probe should use against this target."""
        if spec.name in self.port_overrides:
            return self.port_overrides[spec.name]
        if spec.kind is ProbeKind.SSH_EXEC:
            return spec.port or DEFAULT_SSH_PORT
        return spec.port


class ToolsConfig(BaseModel):
    """Ordered candidate tools per probe capability; first available wins."""
    port_testers: List[Literal["netcat", "telnet", "socket"]] = Field(
        default_factory=lambda: ["netcat", "telnet", "socket"]
    )
    ssh_clients: List[Literal["openssh", "paramiko"]] = Field(
        default_factory=lambda: ["openssh", "paramiko"]
    )
    ping: List[Literal["system"]] = Field(default_factory=lambda: ["system"])


class ReportConfig(BaseModel):
    """Where battery results are written."""
    status_file: str = Field(
        default_factory=lambda: os.path.join(tempfile.gettempdir(), "reachcheck_status.json")
    )
    write_status_file: bool = True
    log_file: Optional[str] = None


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator('level', mode='before')
    @classmethod
    def upper_level(cls, v):
        return v.upper() if isinstance(v, str) else v


class ReachCheckConfig(BaseModel):
    """Root configuration model."""
    target: TargetConfig
    battery: BatteryDefinition = Field(default_factory=default_battery)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
