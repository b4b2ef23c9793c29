"""Command-line entry point: probe one host and write its status file."""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Dict, List, Optional

from pydantic import ValidationError

from .aggregator import HealthAggregator
from .config.loader import ConfigLoader
from .config.models import ReachCheckConfig
from .config.settings import Settings
from .errors import ReachCheckError
from .probes.runner import ProbeRunner
from .services.report_sink import ReportSink, format_summary
from .utils.logger import setup_logger
from .utils.platform_info import detect_platform
from .utils.results import HealthReport
from .utils.status import OverallStatus


EXIT_CODES: Dict[OverallStatus, int] = {
    OverallStatus.FULLY_FUNCTIONAL: 0,
    OverallStatus.MOSTLY_FUNCTIONAL: 1,
    OverallStatus.LIMITED_FUNCTIONALITY: 2,
    OverallStatus.NOT_FUNCTIONAL: 3,
}
EXIT_CONFIG_ERROR = 4
EXIT_CANCELLED = 130


class ReachCheckApp:
    """
    One connectivity check run.

    Wires platform detection, tool selection, the aggregator and the report
    sink together, and turns SIGINT/SIGTERM into battery cancellation.
    """

    def __init__(self, config: ReachCheckConfig, logger: Optional[logging.Logger] = None):
        """
        Initialize the application.

        Args:
            config: Validated configuration
            logger: Optional logger instance

        Raises:
            BatteryDefinitionError: If the battery is invalid
        """
        self.config = config
        self.logger = logger or setup_logger("reachcheck", config.logging.level)

        self.platform = detect_platform()
        self.logger.info(
            f"Running on {self.platform.hostname} ({self.platform.system} {self.platform.architecture}) "
            f"as {self.platform.username}"
        )

        self.runner = ProbeRunner(self.platform, config.tools, self.logger)
        self.logger.info(f"Selected tools: {self.runner.selected_tools()}")

        self.aggregator = HealthAggregator(
            config.battery, self.runner, self.logger, platform=self.platform
        )
        self.sink = ReportSink(config.report.status_file, self.logger)

    async def run_battery(self) -> HealthReport:
        """
        Run the battery once, cancelling it on SIGINT/SIGTERM.

        Returns:
            HealthReport: Complete or partial report
        """
        target = self.config.target
        self.logger.info(
            f"Target: {target.username + '@' if target.username else ''}{target.host}"
            f"{' (' + target.hostname + ')' if target.hostname else ''}"
        )

        cancel_event = asyncio.Event()
        loop = asyncio.get_running_loop()

        def _signal_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            self.logger.info(f"Received {signal_name}, cancelling battery...")
            loop.call_soon_threadsafe(cancel_event.set)

        previous = {
            signum: signal.signal(signum, _signal_handler)
            for signum in (signal.SIGINT, signal.SIGTERM)
        }
        try:
            return await self.aggregator.run(target, cancel_event)
        finally:
            for signum, handler in previous.items():
                signal.signal(signum, handler)

    def publish(self, report: HealthReport) -> None:
        """Write the status file (if enabled) and print the summary."""
        if self.config.report.write_status_file:
            try:
                self.sink.write(report)
            except OSError as e:
                self.logger.error(f"Failed to save results to {self.sink.status_file}: {e}")

        print(format_summary(report))
        # Headline status is the last stdout line for callers that chain on it
        print(report.overall_status.value)

    @staticmethod
    def exit_code(report: HealthReport) -> int:
        if report.is_partial:
            return EXIT_CANCELLED
        return EXIT_CODES[report.overall_status]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='reachcheck',
        description='Probe a remote host (ping, TCP ports, SSH login) and classify its reachability',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Standard battery against a host
  reachcheck 100.77.255.169 daveboyd --hostname sf-Deb-Book.local

  # Battery and target from a configuration file
  reachcheck --config config/config.yaml

  # Run probes one at a time, keep the status file elsewhere
  reachcheck 10.0.0.5 admin --sequential --status-file ./status.json

Exit codes: 0 fully, 1 mostly, 2 limited, 3 not functional,
            4 configuration error, 130 cancelled.
        """
    )

    parser.add_argument('host', nargs='?', help='Target host or IP address')
    parser.add_argument('username', nargs='?', help='Remote SSH username')
    parser.add_argument('--hostname', help='Display name of the target (e.g. its .local name)')
    parser.add_argument(
        '--config',
        default=Settings.config_path(),
        help='Path to configuration file (default: REACHCHECK_CONFIG env var)'
    )
    parser.add_argument(
        '--status-file',
        default=Settings.status_file(),
        help='Where to write the JSON status file (default: REACHCHECK_STATUS_FILE or temp dir)'
    )
    parser.add_argument('--no-status-file', action='store_true', help='Do not write the status file')
    parser.add_argument('--log-file', help='Also write logs to this file')
    parser.add_argument('--sequential', action='store_true', help='Run probes one at a time')
    parser.add_argument(
        '--log-level',
        type=str.upper,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: config file, then LOG_LEVEL env var, then INFO)'
    )
    return parser


def load_config(args: argparse.Namespace) -> ReachCheckConfig:
    """
    Build configuration from the optional file plus command-line overrides.

    Raises:
        FileNotFoundError, ReachCheckError, pydantic.ValidationError
    """
    overrides = {
        "target": {
            "host": args.host,
            "username": args.username,
            "hostname": args.hostname,
        },
        "report": {
            "status_file": args.status_file,
            "write_status_file": False if args.no_status_file else None,
            "log_file": args.log_file,
        },
        "logging": {"level": args.log_level},
    }

    if args.config:
        config = ConfigLoader.load_from_file(args.config, overrides)
    else:
        if args.log_level is None and Settings.get(Settings.LOG_LEVEL_VAR):
            overrides["logging"]["level"] = Settings.log_level()
        config = ConfigLoader.from_dict(overrides)

    if args.sequential:
        config.battery = config.battery.model_copy(update={"max_workers": 1})
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Returns:
        int: Process exit code
    """
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except ValidationError as e:
        print(f"Invalid configuration: {ConfigLoader.describe_error(e)}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except (FileNotFoundError, ReachCheckError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    logger = setup_logger(
        "reachcheck",
        config.logging.level,
        stream=sys.stderr,
        log_file=config.report.log_file
    )

    try:
        app = ReachCheckApp(config, logger)
    except ReachCheckError as e:
        logger.error(f"Invalid battery: {e}")
        return EXIT_CONFIG_ERROR

    report = asyncio.run(app.run_battery())
    app.publish(report)
    return app.exit_code(report)


if __name__ == '__main__':
    sys.exit(main())
