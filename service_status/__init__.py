"""Service status block for swaybar.

Watches whether a systemd unit is active over D-Bus and emits an i3bar
protocol status block every time the unit's activation state changes.
"""

__version__ = "1.0.0"
