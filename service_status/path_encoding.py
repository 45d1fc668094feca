"""Service name to systemd D-Bus object path conversion.

D-Bus object path elements may only contain ``[A-Za-z0-9_]``. systemd escapes
every other byte of the unit name as ``_`` followed by two lowercase hex
digits, so ``cups`` lives at ``/org/freedesktop/systemd1/unit/cups_2eservice``.
"""

import string

from .errors import ValidationError

UNIT_SUFFIX = ".service"
UNIT_PATH_PREFIX = "/org/freedesktop/systemd1/unit/"

_PLAIN_BYTES = frozenset((string.ascii_letters + string.digits).encode("ascii"))


def validate_service_name(name: str) -> str:
    """Check that a service name can be encoded.

    Args:
        name: Service name from configuration (without ``.service``)

    Returns:
        The name, unchanged

    Raises:
        ValidationError: If the name contains a non-ASCII character
    """
    if not name.isascii():
        raise ValidationError(
            f'service name "{name}" must only contain ASCII characters',
            context={"service": name},
        )
    return name


def encode_unit_path_segment(name: str) -> str:
    """Encode a service name as the last element of its unit object path.

    >>> encode_unit_path_segment("cups")
    'cups_2eservice'
    >>> encode_unit_path_segment("a-b")
    'a_2db_2eservice'
    """
    validate_service_name(name)

    encoded = []
    for byte in (name + UNIT_SUFFIX).encode("ascii"):
        if byte in _PLAIN_BYTES:
            encoded.append(chr(byte))
        else:
            encoded.append(f"_{byte:02x}")
    return "".join(encoded)


def unit_object_path(name: str) -> str:
    """Full D-Bus object path of the unit backing ``name``."""
    return UNIT_PATH_PREFIX + encode_unit_path_segment(name)
