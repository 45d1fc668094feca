"""Service monitor loop.

Cycles query -> render -> publish -> wait for as long as the driver keeps
working. There is no retry here: the first error ends the loop and is raised
to the caller, which owns restart policy.
"""

import logging
import threading
from typing import Callable, NoReturn, Optional

from .config import DriverType, ServiceStatusConfig
from .drivers import Driver, create_driver
from .errors import IPCError, IPCOperation, ServiceStatusError
from .models import PresentationProfile, RenderedStatus

logger = logging.getLogger(__name__)

StatusSink = Callable[[RenderedStatus], None]
DriverFactory = Callable[[DriverType, str], Driver]


class ServiceMonitor:
    """Publishes a rendered status each time the service's state is observed."""

    def __init__(
        self,
        service: str,
        driver: Driver,
        active_profile: PresentationProfile,
        inactive_profile: PresentationProfile,
        sink: StatusSink
    ):
        """Initialize the monitor.

        Args:
            service: Service name substituted into the profile formats
            driver: Driver already subscribed to the service's state changes
            active_profile: Profile used while the service is active
            inactive_profile: Profile used otherwise
            sink: Receives one RenderedStatus per iteration
        """
        self.service = service
        self.driver = driver
        self.active_profile = active_profile
        self.inactive_profile = inactive_profile
        self.sink = sink

    def render(self, active: bool) -> RenderedStatus:
        profile = self.active_profile if active else self.inactive_profile
        return profile.render(self.service)

    def run(self) -> NoReturn:
        """Run until the driver fails; the driver is closed on the way out.

        Raises:
            IPCError: From ``query()`` or ``await_change()``, unchanged
        """
        try:
            while True:
                active = self.driver.query()
                status = self.render(active)
                logger.debug(f"{self.service}: {'active' if active else 'inactive'} -> {status.text!r}")
                self.sink(status)

                self.driver.await_change()
        finally:
            self.driver.close()


def run_service_monitor(
    service: str,
    active_profile: PresentationProfile,
    inactive_profile: PresentationProfile,
    sink: StatusSink,
    driver_type: DriverType = DriverType.SYSTEMD,
    driver_factory: DriverFactory = create_driver
) -> NoReturn:
    """Watch ``service`` forever, publishing to ``sink``.

    Only ever exits by raising.

    Raises:
        ValidationError: If the service name is not ASCII
        IPCError: On any bus failure, including the subscription ending
    """
    driver = driver_factory(driver_type, service)
    ServiceMonitor(service, driver, active_profile, inactive_profile, sink).run()


class ServiceMonitorThread(threading.Thread):
    """Runs one service monitor on a dedicated thread."""

    def __init__(
        self,
        block: ServiceStatusConfig,
        sink: StatusSink,
        driver_factory: DriverFactory = create_driver,
        on_exit: Optional[Callable[["ServiceMonitorThread"], None]] = None
    ):
        """Initialize monitor thread.

        Args:
            block: Block configuration for the monitored service
            sink: Receives rendered statuses
            driver_factory: Builds the driver (overridable for tests)
            on_exit: Called from the thread once the monitor has ended
        """
        super().__init__(name=f"service-status-{block.service}", daemon=True)
        self.block = block
        self.sink = sink
        self.error: Optional[BaseException] = None
        self._driver_factory = driver_factory
        self._on_exit = on_exit
        self._driver: Optional[Driver] = None
        self._driver_lock = threading.Lock()
        self._stopping = threading.Event()

    def _build_driver(self, driver_type: DriverType, service: str) -> Driver:
        """Driver factory that keeps a handle for stop()."""
        driver = self._driver_factory(driver_type, service)
        with self._driver_lock:
            self._driver = driver
            stopping = self._stopping.is_set()
        if stopping:
            driver.close()
            raise IPCError(IPCOperation.SUBSCRIPTION_CLOSED, "Monitor stopped before it started")
        return driver

    def run(self) -> None:
        try:
            run_service_monitor(
                self.block.service,
                self.block.active_profile,
                self.block.inactive_profile,
                self.sink,
                driver_type=self.block.driver,
                driver_factory=self._build_driver
            )
        except Exception as e:
            if self._stopping.is_set():
                logger.debug(f"{self.block.service}: monitor stopped ({e})")
            else:
                self.error = e
                logger.error(
                    f"{self.block.service}: monitor failed: {e}",
                    exc_info=not isinstance(e, ServiceStatusError)
                )
        finally:
            if self._on_exit:
                self._on_exit(self)

    def stop(self) -> None:
        """Close the driver so a blocked wait returns and the thread exits."""
        self._stopping.set()
        with self._driver_lock:
            driver = self._driver
        if driver is not None:
            driver.close()
