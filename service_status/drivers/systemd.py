"""systemd driver using the org.freedesktop.systemd1 D-Bus API.

Each driver owns a private system bus connection and a private GLib main
context. Signal callbacks for that connection are only dispatched while the
context is iterated, which happens inside ``await_change()``, so the monitor
thread sees notifications strictly in between its own queries.
"""

import logging
import threading
from collections import deque
from typing import Deque, Optional

from ..errors import IPCError, IPCOperation
from ..path_encoding import unit_object_path, validate_service_name
from .base import Driver

logger = logging.getLogger(__name__)

# Import pydbus lazily to handle missing dependency gracefully
try:
    import pydbus
    from gi.repository import Gio, GLib
    PYDBUS_AVAILABLE = True
except ImportError:
    PYDBUS_AVAILABLE = False
    logger.warning("pydbus not available - systemd service status will not work")

SYSTEMD_BUS_NAME = "org.freedesktop.systemd1"
SYSTEMD_UNIT_INTERFACE = "org.freedesktop.systemd1.Unit"
PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"
ACTIVE_STATE_PROPERTY = "ActiveState"


class SystemdDriver(Driver):
    """Watches the ActiveState property of one systemd unit."""

    def __init__(self, service: str, bus_address: Optional[str] = None):
        """Connect, build the unit proxy and subscribe before returning.

        Args:
            service: Unit name without the .service suffix
            bus_address: D-Bus address to connect to (defaults to the system bus)

        Raises:
            ValidationError: If the service name is not ASCII (nothing is opened)
            IPCError: If connecting, building the proxy or subscribing fails
        """
        self.service = validate_service_name(service)
        self.path = unit_object_path(service)

        self._lock = threading.Lock()
        self._closed = False
        self._peer_vanished = False
        self._changes: Deque[Optional[str]] = deque()
        self._bus = None
        self._unit = None
        self._subscription = None
        self._closed_handler_id: Optional[int] = None

        if not PYDBUS_AVAILABLE:
            raise IPCError(IPCOperation.CONNECT, "pydbus is not installed", self._context_info())

        self._context = GLib.MainContext.new()
        try:
            # Signals of the connection are dispatched in the thread-default
            # context active while it is created and subscribed.
            self._context.push_thread_default()
            try:
                self._bus = self._open_bus(bus_address)
                self._unit = self._build_proxy()
                self._subscription = self._subscribe()
            finally:
                self._context.pop_thread_default()
        except BaseException:
            self.close()
            raise

        logger.info(f"Watching {self.service} at {self.path}")

    def _context_info(self) -> dict:
        return {"service": self.service, "path": self.path}

    def _open_bus(self, bus_address: Optional[str]):
        try:
            address = bus_address or Gio.dbus_address_get_for_bus_sync(Gio.BusType.SYSTEM, None)
            bus = pydbus.connect(address)
        except GLib.Error as e:
            raise IPCError(
                IPCOperation.CONNECT,
                f"Could not connect to system bus: {e.message}",
                self._context_info()
            ) from e

        self._closed_handler_id = bus.con.connect("closed", self._on_connection_closed)
        return bus

    def _build_proxy(self):
        try:
            return self._bus.get(SYSTEMD_BUS_NAME, self.path)[SYSTEMD_UNIT_INTERFACE]
        except GLib.Error as e:
            raise IPCError(
                IPCOperation.PROXY,
                f"Failed to create unit proxy: {e.message}",
                self._context_info()
            ) from e
        except KeyError as e:
            raise IPCError(
                IPCOperation.PROXY,
                f"{self.path} does not implement {SYSTEMD_UNIT_INTERFACE}",
                self._context_info()
            ) from e

    def _subscribe(self):
        try:
            return self._bus.subscribe(
                sender=SYSTEMD_BUS_NAME,
                iface=PROPERTIES_INTERFACE,
                signal="PropertiesChanged",
                object=self.path,
                arg0=SYSTEMD_UNIT_INTERFACE,
                signal_fired=self._on_properties_changed,
            )
        except GLib.Error as e:
            raise IPCError(
                IPCOperation.SUBSCRIBE,
                f"Could not subscribe to {ACTIVE_STATE_PROPERTY} changes: {e.message}",
                self._context_info()
            ) from e

    def _on_properties_changed(self, sender, object_path, iface, signal, params):
        """Queue a change when a PropertiesChanged signal touches ActiveState."""
        interface, changed, invalidated = params
        if interface != SYSTEMD_UNIT_INTERFACE:
            return
        if ACTIVE_STATE_PROPERTY in changed or ACTIVE_STATE_PROPERTY in invalidated:
            new_state = changed.get(ACTIVE_STATE_PROPERTY)
            logger.debug(f"{self.service}: {ACTIVE_STATE_PROPERTY} changed to {new_state}")
            self._changes.append(new_state)

    def _on_connection_closed(self, connection, remote_peer_vanished, error):
        logger.debug(f"{self.service}: bus connection closed (peer vanished: {remote_peer_vanished})")
        self._peer_vanished = remote_peer_vanished
        self._closed = True

    def query(self) -> bool:
        if self._closed:
            raise IPCError(IPCOperation.READ_PROPERTY, "Driver is closed", self._context_info())

        try:
            state = self._unit.ActiveState
        except GLib.Error as e:
            raise IPCError(
                IPCOperation.READ_PROPERTY,
                f"Could not get {ACTIVE_STATE_PROPERTY}: {e.message}",
                self._context_info()
            ) from e

        logger.debug(f"{self.service}: {ACTIVE_STATE_PROPERTY}={state}")
        return state == "active"

    def await_change(self) -> None:
        while not self._changes:
            if self._closed:
                reason = "peer vanished" if self._peer_vanished else "connection closed"
                raise IPCError(
                    IPCOperation.SUBSCRIPTION_CLOSED,
                    f"{ACTIVE_STATE_PROPERTY} subscription ended: {reason}",
                    self._context_info()
                )
            self._context.iteration(True)
        self._changes.popleft()

    def close(self) -> None:
        with self._lock:
            if self._closed and self._bus is None:
                return
            self._closed = True

            if self._subscription is not None:
                self._subscription.unsubscribe()
                self._subscription = None

            if self._bus is not None:
                if self._closed_handler_id is not None:
                    self._bus.con.disconnect(self._closed_handler_id)
                    self._closed_handler_id = None
                try:
                    self._bus.con.close_sync(None)
                except GLib.Error as e:
                    logger.debug(f"{self.service}: closing bus connection: {e.message}")
                self._bus = None

        if PYDBUS_AVAILABLE:
            self._context.wakeup()
        logger.debug(f"{self.service}: driver closed")
