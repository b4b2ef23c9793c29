"""JSON status file and console summary for health reports."""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config.models import TargetConfig
from ..utils.platform_info import PlatformInfo
from ..utils.results import HealthReport, ProbeResult
from ..utils.status import OverallStatus, ProbeStatus


def report_to_dict(report: HealthReport) -> Dict[str, Any]:
    """
    Convert a report to the status-file JSON shape.

    ``timestamp``, ``target``, ``tests`` and ``summary`` (with
    ``overall_status``, ``critical_successes`` and ``critical_total``) are
    read by external tooling; their names and the status literals must not
    change.

    Args:
        report: Report to serialize

    Returns:
        Dict[str, Any]: JSON-compatible structure
    """
    tests: Dict[str, Dict[str, Any]] = {}
    for result in report.results:
        entry: Dict[str, Any] = {
            "status": result.status.value,
            "message": result.message,
            "critical": result.name in report.critical_probes,
        }
        if result.latency_ms is not None:
            entry["latency_ms"] = result.latency_ms
        tests[result.name] = entry

    data: Dict[str, Any] = {
        "timestamp": report.timestamp.isoformat(),
        "target": {
            "host": report.target.host,
            "username": report.target.username,
            "hostname": report.target.hostname,
            "port_overrides": dict(report.target.port_overrides),
        },
        "tests": tests,
        "summary": {
            "overall_status": report.overall_status.value,
            "critical_successes": report.critical_successes,
            "critical_total": report.critical_total,
            "critical_probes": sorted(report.critical_probes),
            "total_tests": report.total_tests,
            "successful_tests": report.successful_tests,
            "success_percentage": report.success_percentage,
            "is_partial": report.is_partial,
        },
        "duration_seconds": report.duration_seconds,
    }

    if report.platform is not None:
        data["pc_info"] = {
            "hostname": report.platform.hostname,
            "username": report.platform.username,
            "os": report.platform.system,
            "arch": report.platform.architecture,
            "os_release": report.platform.os_release,
        }

    return data


def report_from_dict(data: Dict[str, Any]) -> HealthReport:
    """
    Rebuild a report from its status-file JSON shape.

    Args:
        data: Structure produced by report_to_dict (or parsed from a status file)

    Returns:
        HealthReport: Equivalent report

    Raises:
        KeyError: If a required field is missing
        ValueError: If a status literal or timestamp is not recognised
    """
    target_data = data["target"]
    target = TargetConfig(
        host=target_data["host"],
        username=target_data.get("username"),
        hostname=target_data.get("hostname"),
        port_overrides=target_data.get("port_overrides") or {},
    )

    results = tuple(
        ProbeResult(
            name=name,
            status=ProbeStatus(entry["status"]),
            message=entry.get("message", ""),
            latency_ms=entry.get("latency_ms"),
        )
        for name, entry in data["tests"].items()
    )

    summary = data["summary"]
    if "critical_probes" in summary:
        critical = frozenset(summary["critical_probes"])
    else:
        critical = frozenset(name for name, entry in data["tests"].items() if entry.get("critical"))

    platform = None
    pc_info = data.get("pc_info")
    if pc_info:
        platform = PlatformInfo(
            system=pc_info.get("os", "Unknown"),
            architecture=pc_info.get("arch", "unknown"),
            hostname=pc_info.get("hostname", ""),
            username=pc_info.get("username", ""),
            os_release=pc_info.get("os_release", ""),
        )

    return HealthReport(
        target=target,
        results=results,
        critical_probes=critical,
        timestamp=datetime.fromisoformat(data["timestamp"]),
        is_partial=bool(summary.get("is_partial", False)),
        platform=platform,
        duration_seconds=data.get("duration_seconds"),
    )


def format_summary(report: HealthReport) -> str:
    """
    Render a human-readable summary of a report.

    Args:
        report: Report to render

    Returns:
        str: Multi-line summary
    """
    status = report.overall_status
    lines: List[str] = [
        "📊 Test Results Summary:",
        f"├── Total Tests: {report.total_tests}",
        f"├── Successful: {report.successful_tests}",
        f"├── Success Rate: {report.success_percentage}%",
        f"├── Critical Tests: {report.critical_successes}/{report.critical_total}",
        f"└── Overall Status: {status.to_emoji()} {status.value}",
        "",
        "📋 Individual Test Results:",
    ]

    for index, result in enumerate(report.results):
        branch = "└──" if index == len(report.results) - 1 else "├──"
        marker = " (critical)" if result.name in report.critical_probes else ""
        lines.append(
            f"{branch} {result.status.to_emoji()} {result.name}{marker}: "
            f"{result.status.value} - {result.message}"
        )

    if report.is_partial:
        lines += ["", "⏹️  Run was cancelled; results are partial."]

    target = report.target
    login = f"{target.username}@{target.host}" if target.username else target.host
    if status is OverallStatus.FULLY_FUNCTIONAL:
        lines += ["", "🎉 Target fully reachable.", f"   SSH: ssh {login}"]
    elif status is OverallStatus.NOT_FUNCTIONAL:
        lines += ["", f"❌ {target.host} is not reachable. Check network and remote setup."]
    else:
        lines += ["", "⚠️  Partial functionality; some services need troubleshooting."]

    return "\n".join(lines)


class ReportSink:
    """Persists reports as JSON status files."""

    def __init__(self, status_file: str, logger: Optional[logging.Logger] = None):
        """
        Initialize report sink.

        Args:
            status_file: Path of the JSON status file
            logger: Optional logger instance
        """
        self.status_file = Path(status_file)
        self.logger = logger or logging.getLogger(__name__)

    def write(self, report: HealthReport) -> Path:
        """
        Write the report atomically, creating parent dirs as needed.

        Readers never see a half-written file: the JSON goes to a temporary
        file in the same directory which then replaces the status file.

        Returns:
            Path: Status file path

        Raises:
            OSError: If the file cannot be written
        """
        self.status_file.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.status_file.name}.", dir=str(self.status_file.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(report_to_dict(report), f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(tmp_path, self.status_file)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        self.logger.info(f"Results saved to {self.status_file}")
        return self.status_file

    def read(self) -> HealthReport:
        """Load the last report written to the status file."""
        with open(self.status_file, "r", encoding="utf-8") as f:
            return report_from_dict(json.load(f))
