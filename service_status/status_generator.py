"""Service status bar generator for swaybar.

Runs one monitor thread per configured service and writes i3bar protocol
JSON to stdout. Exits when the first monitor fails or on SIGINT/SIGTERM;
restarting is left to whoever launched the process.

Usage:
  service-status-bar --config ~/.config/swaybar/service-status.toml
  service-status-bar --service cups --service sshd
"""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from .config import ServiceStatusConfig, StatusBarConfig, load_config
from .drivers import create_driver
from .errors import ConfigError
from .monitor import DriverFactory, ServiceMonitorThread
from .output import I3barWriter

logger = logging.getLogger(__name__)

STOP_TIMEOUT = 5.0  # seconds to wait for each monitor thread on shutdown
SHUTDOWN_POLL_INTERVAL = 0.5  # seconds between checks for a requested shutdown


class StatusGenerator:
    """Main status generator for service status blocks."""

    def __init__(
        self,
        config: StatusBarConfig,
        writer: Optional[I3barWriter] = None,
        driver_factory: DriverFactory = create_driver
    ):
        """Initialize status generator.

        Args:
            config: Status bar configuration
            writer: i3bar output writer (defaults to one on stdout)
            driver_factory: Builds one driver per monitored service
        """
        self.config = config
        self.driver_factory = driver_factory
        self.writer = writer or I3barWriter(len(config.blocks), config.theme)
        self.monitors: List[ServiceMonitorThread] = []
        self._shutdown = threading.Event()
        self._shutdown_requested = False
        self._received_signal: Optional[int] = None

    def _on_monitor_exit(self, monitor: ServiceMonitorThread) -> None:
        self._shutdown.set()

    def request_shutdown(self, signum=None, frame=None) -> None:
        """Ask the main loop to stop. Safe to call from a signal handler."""
        # Plain attribute writes only: the main thread may hold the event's lock
        self._received_signal = signum
        self._shutdown_requested = True

    def _wait_for_shutdown(self) -> None:
        while not self._shutdown_requested:
            if self._shutdown.wait(SHUTDOWN_POLL_INTERVAL):
                return
        if self._received_signal is not None:
            logger.info(f"Received signal {self._received_signal}, shutting down")

    def run(self) -> int:
        """Run until a monitor ends or shutdown is requested.

        Returns:
            Process exit code: 1 if any monitor failed, 0 otherwise
        """
        self.writer.print_header()

        for index, block in enumerate(self.config.blocks):
            monitor = ServiceMonitorThread(
                block,
                self.writer.sink_for(index, block),
                driver_factory=self.driver_factory,
                on_exit=self._on_monitor_exit
            )
            self.monitors.append(monitor)
            monitor.start()

        logger.info(f"Status generator started with {len(self.monitors)} monitor(s)")

        try:
            self._wait_for_shutdown()
        except KeyboardInterrupt:
            logger.info("Shutting down status generator")
        finally:
            for monitor in self.monitors:
                monitor.stop()
            for monitor in self.monitors:
                monitor.join(STOP_TIMEOUT)
                if monitor.is_alive():
                    logger.warning(f"Monitor for {monitor.block.service} did not stop in time")
            self.writer.print_footer()

        failed = [m for m in self.monitors if m.error is not None]
        for monitor in failed:
            logger.error(f"{monitor.block.service}: {monitor.error}")
        return 1 if failed else 0


def build_config(args: argparse.Namespace) -> StatusBarConfig:
    """Combine the config file (if any) with --service shortcuts."""
    config = load_config(args.config) if args.config else StatusBarConfig()
    for service in args.service:
        try:
            config.blocks.append(ServiceStatusConfig(service=service))
        except PydanticValidationError as e:
            raise ConfigError(f"Invalid --service {service!r}", context={"errors": e.errors(include_url=False)}) from e
    return config


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="service-status-bar",
        description="Show systemd service status blocks in swaybar (i3bar protocol)"
    )
    parser.add_argument("--config", type=Path, help="TOML file with [[block]] tables")
    parser.add_argument(
        "--service",
        action="append",
        default=[],
        help="Service to monitor with default formats (repeatable)"
    )
    parser.add_argument("--log-file", type=Path, help="Write logs here instead of stderr")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def setup_logging(log_file: Optional[Path], debug: bool) -> None:
    # stdout carries the i3bar protocol
    handler = logging.FileHandler(log_file) if log_file else logging.StreamHandler(sys.stderr)
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[handler]
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for status generator."""
    args = parse_args(argv)
    setup_logging(args.log_file, args.debug)

    try:
        config = build_config(args)
    except ConfigError as e:
        logger.error(f"{e.message} {e.context}")
        return 2

    if not config.blocks:
        logger.error("No services configured (use --config or --service)")
        return 2

    generator = StatusGenerator(config)
    signal.signal(signal.SIGTERM, generator.request_shutdown)
    return generator.run()


if __name__ == "__main__":
    sys.exit(main())
