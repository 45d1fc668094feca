"""i3bar protocol writer shared by all monitor threads.

Protocol: https://i3wm.org/docs/i3bar-protocol.html
"""

import json
import logging
import sys
import threading
from typing import Callable, List, Optional, TextIO

from .config import ServiceStatusConfig, StateColors
from .models import RenderedStatus, StatusBlock

logger = logging.getLogger(__name__)


class I3barWriter:
    """Prints the status line every time one of its blocks is updated.

    Click events are not requested: service status blocks ignore input.
    """

    def __init__(self, block_count: int, colors: StateColors, stream: Optional[TextIO] = None):
        """
        Args:
            block_count: Number of block slots, in display order
            colors: Theme used to color rendered statuses
            stream: Output stream (defaults to stdout)
        """
        self.colors = colors
        self.stream = stream or sys.stdout
        self._blocks: List[Optional[StatusBlock]] = [None] * block_count
        self._lock = threading.Lock()

    def print_header(self) -> None:
        """Print i3bar protocol header and open the infinite array."""
        with self._lock:
            self.stream.write(json.dumps({"version": 1}) + "\n")
            self.stream.write("[\n")
            self.stream.flush()

    def print_footer(self) -> None:
        """Close the infinite array."""
        with self._lock:
            self.stream.write("]\n")
            self.stream.flush()

    def update(self, index: int, block: StatusBlock) -> None:
        """Replace the block in slot ``index`` and print the status line."""
        with self._lock:
            self._blocks[index] = block
            block_json = [b.to_json() for b in self._blocks if b is not None]
            self.stream.write(json.dumps(block_json) + ",\n")
            self.stream.flush()

    def sink_for(self, index: int, block: ServiceStatusConfig) -> Callable[[RenderedStatus], None]:
        """Build the status sink for the monitor filling slot ``index``."""
        def sink(status: RenderedStatus) -> None:
            self.update(index, status.to_status_block(block.service, self.colors))
        return sink
