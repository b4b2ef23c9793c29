"""Local platform detection, computed once and passed explicitly."""

import getpass
import os
import platform
import socket
import sys
from dataclasses import dataclass


_ARCHITECTURES = {
    "x86_64": "x64",
    "amd64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm32",
    "i386": "x86",
    "i686": "x86",
}


@dataclass(frozen=True)
class PlatformInfo:
    """Facts about the machine running the probes."""

    system: str  # macOS, Linux, Windows, FreeBSD or Unknown
    architecture: str
    hostname: str
    username: str
    os_release: str = ""

    @property
    def is_windows(self) -> bool:
        return self.system == "Windows"

    @property
    def is_bsd_like(self) -> bool:
        """macOS and FreeBSD share the BSD ping dialect."""
        return self.system in ("macOS", "FreeBSD")

    @property
    def null_device(self) -> str:
        return "NUL" if self.is_windows else "/dev/null"


def _normalize_system(sys_platform: str) -> str:
    if sys_platform.startswith("darwin"):
        return "macOS"
    if sys_platform.startswith("linux"):
        return "Linux"
    if sys_platform.startswith(("win32", "cygwin", "msys")):
        return "Windows"
    if sys_platform.startswith("freebsd"):
        return "FreeBSD"
    return "Unknown"


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        # No passwd entry and no USER/LOGNAME variables (containers)
        return os.environ.get("USERNAME", "unknown")


def detect_platform() -> PlatformInfo:
    """
    Detect the local platform.

    Call once at startup and hand the result to every component that needs
    it instead of re-detecting.

    Returns:
        PlatformInfo: Detected platform facts
    """
    machine = platform.machine().lower()
    return PlatformInfo(
        system=_normalize_system(sys.platform),
        architecture=_ARCHITECTURES.get(machine, machine or "unknown"),
        hostname=socket.gethostname(),
        username=_current_user(),
        os_release=platform.release(),
    )
