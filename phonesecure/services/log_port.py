"""
Log Port - the storage the console and the phone share.

The console only needs four things from the backend: append a record and get
its key back, overwrite fields of a record, read the whole channel, and be told
whenever the channel changes. ``FirebaseLogPort`` provides them on top of the
Realtime Database; ``InMemoryLogPort`` keeps everything in process for tests
and simulation mode.
"""

import copy
import itertools
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from ..models.message import MessageStatus

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
Snapshot = Optional[Dict[str, Record]]
ChangeCallback = Callable[[Snapshot], None]
Unsubscribe = Callable[[], None]


class TransportError(RuntimeError):
    """Raised when the backend cannot be read from or written to."""

    def __init__(self, message: str, *, operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation


class LogPort(Protocol):
    """Protocol for the append/subscribe store behind a chat channel."""

    async def append(self, channel: str, record: Record) -> str:
        """Store a new record under ``channel`` and return its key."""
        ...

    async def write(self, channel: str, key: str, record: Record) -> None:
        """Overwrite the given fields of the record stored at ``key``."""
        ...

    async def read(self, channel: str) -> Snapshot:
        """Return every record in the channel keyed by storage key, or None."""
        ...

    async def subscribe(self, channel: str, on_change: ChangeCallback) -> Unsubscribe:
        """Call ``on_change(snapshot)`` now and after every change until unsubscribed."""
        ...


class InMemoryLogPort:
    """Process-local Log Port with push-style keys"""

    def __init__(self, key_prefix: str = "-N"):
        self.key_prefix = key_prefix
        self._channels: Dict[str, Dict[str, Record]] = {}
        self._subscribers: Dict[str, List[ChangeCallback]] = {}
        self._counter = itertools.count(1)
        self._failures: List[Exception] = []
        self.operations: List[Tuple[str, str, str]] = []  # (operation, channel, key)

    def fail_next(self, error: Exception = None):
        """Make the next append/write/read/subscribe raise TransportError"""
        self._failures.append(error or ConnectionError("simulated backend outage"))

    def _check_failure(self, operation: str):
        if self._failures:
            cause = self._failures.pop(0)
            raise TransportError(f"{operation} failed: {cause}", operation=operation) from cause

    def _next_key(self) -> str:
        return f"{self.key_prefix}{next(self._counter):08d}"

    async def append(self, channel: str, record: Record) -> str:
        self._check_failure("append")
        key = self._next_key()
        self._channels.setdefault(channel, {})[key] = copy.deepcopy(record)
        self.operations.append(("append", channel, key))
        logger.debug(f"[MEMORY LOG] append {channel}/{key}")
        self._notify(channel)
        return key

    async def write(self, channel: str, key: str, record: Record) -> None:
        self._check_failure("write")
        stored = self._channels.setdefault(channel, {}).setdefault(key, {})
        stored.update(copy.deepcopy(record))
        self.operations.append(("write", channel, key))
        logger.debug(f"[MEMORY LOG] write {channel}/{key}: {record}")
        self._notify(channel)

    async def read(self, channel: str) -> Snapshot:
        self._check_failure("read")
        return self._snapshot(channel)

    async def subscribe(self, channel: str, on_change: ChangeCallback) -> Unsubscribe:
        self._check_failure("subscribe")
        callbacks = self._subscribers.setdefault(channel, [])
        callbacks.append(on_change)
        logger.debug(f"[MEMORY LOG] subscriber added on {channel}")

        def unsubscribe():
            if on_change in callbacks:
                callbacks.remove(on_change)
                logger.debug(f"[MEMORY LOG] subscriber removed from {channel}")

        on_change(self._snapshot(channel))
        return unsubscribe

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, []))

    def records(self, channel: str) -> Dict[str, Record]:
        return copy.deepcopy(self._channels.get(channel, {}))

    def _snapshot(self, channel: str) -> Snapshot:
        records = self._channels.get(channel)
        if not records:
            return None
        return copy.deepcopy(records)

    def _notify(self, channel: str):
        callbacks = self._subscribers.get(channel, [])
        for callback in list(callbacks):
            # A callback may unsubscribe itself or others mid-delivery
            if callback in callbacks:
                callback(self._snapshot(channel))

    # -- remote agent side ---------------------------------------------------

    async def agent_acknowledge(self, channel: str, key: str) -> None:
        """Mark a command as picked up by the phone"""
        await self.write(channel, key, {"status": MessageStatus.DELIVERED.value})

    async def agent_respond(self, channel: str, key: str, response: str, responded_at: int = None) -> None:
        """Write the phone's answer the way the phone app does"""
        await self.write(channel, key, {
            "response": response,
            "responseTimestamp": responded_at or int(time.time() * 1000),
            "status": MessageStatus.DELIVERED.value,
        })
