"""Driver interface for init system backends."""

from abc import ABC, abstractmethod


class Driver(ABC):
    """Reports whether one service is active and waits for it to change.

    A driver owns its bus connection and subscription. The subscription is
    opened by the constructor so that no transition between construction and
    the first ``query()`` is lost.
    """

    @abstractmethod
    def query(self) -> bool:
        """Return True iff the service is currently active.

        Raises:
            IPCError: If the state cannot be read
        """

    @abstractmethod
    def await_change(self) -> None:
        """Block until the next state change notification arrives.

        Raises:
            IPCError: If the subscription ends (connection lost or driver closed)
        """

    @abstractmethod
    def close(self) -> None:
        """Release the connection and subscription.

        Safe to call from another thread and more than once. A pending
        ``await_change()`` raises IPCError promptly afterwards.
        """

    def __enter__(self) -> "Driver":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
