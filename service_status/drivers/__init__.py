"""Init system drivers.

The monitor loop only depends on :class:`Driver`; adding a backend means
adding an implementation and a ``DriverType`` entry in the registry below.
"""

from typing import Callable, Dict

from ..config import DriverType
from .base import Driver
from .systemd import SystemdDriver

DRIVERS: Dict[DriverType, Callable[[str], Driver]] = {
    DriverType.SYSTEMD: SystemdDriver,
}


def create_driver(driver_type: DriverType, service: str) -> Driver:
    """Construct the driver for ``driver_type`` watching ``service``.

    Raises:
        ValidationError: If the service name is not ASCII
        IPCError: If the connection or subscription cannot be established
    """
    return DRIVERS[driver_type](service)


__all__ = ["Driver", "DriverType", "SystemdDriver", "create_driver", "DRIVERS"]
