"""Pytest configuration and fixtures for service status block tests."""

import threading
from types import SimpleNamespace
from typing import List, Optional
from unittest.mock import Mock, patch

import pytest

from service_status.config import ServiceStatusConfig
from service_status.drivers.base import Driver
from service_status.drivers.systemd import PROPERTIES_INTERFACE, SYSTEMD_UNIT_INTERFACE
from service_status.errors import IPCError, IPCOperation
from service_status.models import BlockState, PresentationProfile

SYSTEM_BUS_ADDRESS = "unix:path=/run/dbus/system_bus_socket"


class FakeGError(Exception):
    """Stand-in for GLib.Error, which carries a ``message`` attribute."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class FakeUnit:
    """org.freedesktop.systemd1.Unit proxy returning scripted ActiveState values."""

    def __init__(self, events: List[str], states: List[str]):
        self.events = events
        self.states = list(states)
        self.error: Optional[Exception] = None

    @property
    def ActiveState(self) -> str:
        self.events.append("query")
        if self.error is not None:
            raise self.error
        if len(self.states) > 1:
            return self.states.pop(0)
        return self.states[0]


class FakeSystemBus:
    """pydbus Bus double recording the order of proxy and subscription calls."""

    def __init__(self, events: List[str], unit: FakeUnit):
        self.events = events
        self.unit = unit
        self.interfaces = {SYSTEMD_UNIT_INTERFACE: unit}
        self.get_error: Optional[Exception] = None
        self.get_args = None
        self.subscribe_kwargs = None
        self.subscription = Mock()
        self.closed_handler = None
        self.con = Mock()
        self.con.connect.side_effect = self._connect_signal

    def _connect_signal(self, name, handler):
        assert name == "closed"
        self.closed_handler = handler
        return 7

    def get(self, bus_name, object_path):
        self.events.append("proxy")
        if self.get_error is not None:
            raise self.get_error
        self.get_args = (bus_name, object_path)
        return self.interfaces

    def subscribe(self, **kwargs):
        self.events.append("subscribe")
        self.subscribe_kwargs = kwargs
        return self.subscription

    def emit(self, changed, invalidated=(), interface=SYSTEMD_UNIT_INTERFACE):
        """Deliver a PropertiesChanged signal to the subscriber."""
        self.subscribe_kwargs["signal_fired"](
            ":1.1",
            self.subscribe_kwargs["object"],
            PROPERTIES_INTERFACE,
            "PropertiesChanged",
            (interface, changed, list(invalidated)),
        )

    def vanish(self):
        """Simulate the bus connection being closed by the peer."""
        self.closed_handler(self.con, True, None)


@pytest.fixture
def fake_dbus():
    """Patch pydbus/Gio/GLib in the systemd driver with recording doubles."""
    events: List[str] = []
    unit = FakeUnit(events, ["active"])
    bus = FakeSystemBus(events, unit)
    context = Mock()

    glib = SimpleNamespace(Error=FakeGError, MainContext=Mock())
    glib.MainContext.new.return_value = context
    gio = Mock()
    gio.dbus_address_get_for_bus_sync.return_value = SYSTEM_BUS_ADDRESS

    def connect(address):
        events.append("connect")
        return bus

    pydbus = Mock()
    pydbus.connect.side_effect = connect

    with patch.multiple(
        "service_status.drivers.systemd",
        pydbus=pydbus,
        Gio=gio,
        GLib=glib,
        PYDBUS_AVAILABLE=True,
        create=True,
    ):
        yield SimpleNamespace(
            events=events,
            unit=unit,
            bus=bus,
            context=context,
            glib=glib,
            gio=gio,
            pydbus=pydbus,
        )


class RecordingDriver(Driver):
    """Driver reporting scripted states; its subscription ends after the last one.

    Records only query/await/close calls, so it checks loop alternation.
    Subscribe-before-query ordering is covered by the systemd driver tests.
    """

    def __init__(self, states: List[bool], query_error: Optional[Exception] = None):
        self.states = list(states)
        self.query_error = query_error
        self.events: List[str] = []
        self.queries = 0

    def query(self) -> bool:
        self.events.append("query")
        if self.query_error is not None:
            raise self.query_error
        state = self.states[self.queries]
        self.queries += 1
        return state

    def await_change(self) -> None:
        self.events.append("await")
        if self.queries >= len(self.states):
            raise IPCError(IPCOperation.SUBSCRIPTION_CLOSED, "subscription ended")

    def close(self) -> None:
        self.events.append("close")


class BlockingDriver(Driver):
    """Driver whose wait blocks until it is closed, like a quiet real unit."""

    def __init__(self, active: bool = True):
        self.active = active
        self.closed = threading.Event()

    def query(self) -> bool:
        return self.active

    def await_change(self) -> None:
        if not self.closed.wait(timeout=10):
            raise AssertionError("BlockingDriver was never closed")
        raise IPCError(IPCOperation.SUBSCRIPTION_CLOSED, "driver closed")

    def close(self) -> None:
        self.closed.set()


@pytest.fixture
def active_profile():
    return PresentationProfile(state=BlockState.IDLE, format="$service active")


@pytest.fixture
def inactive_profile():
    return PresentationProfile(state=BlockState.CRITICAL, format="$service inactive")


@pytest.fixture
def cups_block():
    """Service status block for cups with the short formats."""
    return ServiceStatusConfig(
        service="cups",
        active_format="$service active",
        inactive_format="$service inactive",
    )


@pytest.fixture
def recording_driver():
    """RecordingDriver class, called with the scripted states."""
    return RecordingDriver


@pytest.fixture
def blocking_driver():
    """BlockingDriver class."""
    return BlockingDriver


@pytest.fixture
def gerror():
    """Exception type patched in as GLib.Error by ``fake_dbus``."""
    return FakeGError
