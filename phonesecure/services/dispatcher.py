"""Command dispatcher - writes operator commands into the chat channel"""

import logging
import time
from typing import List, Set, Union

from .. import config
from ..models.message import Message, MessageStatus, ServerCommand
from .log_port import LogPort
from .ordering import order_records

logger = logging.getLogger(__name__)


class InvalidCommandError(ValueError):
    """Raised when dispatch is asked to send nothing or an unknown command."""


def now_ms() -> int:
    return int(time.time() * 1000)


class CommandDispatcher:
    """
    Sends commands to the phone.

    Command flow:
    1. Push a BEFORE_UPLOADED record, the backend assigns its key
    2. Rewrite it with its key and status UPLOADED
    3. The phone later writes response, responseTimestamp and DELIVERED

    Steps 1 and 2 are separate writes. If step 2 never happens the record stays
    BEFORE_UPLOADED until ``reconcile_pending`` promotes it.
    """

    def __init__(self, log_port: LogPort, channel: str = None, clock=now_ms):
        self.log_port = log_port
        self.channel = channel or config.CHAT_CHANNEL
        self.clock = clock
        self.pending_keys: Set[str] = set()
        self._in_flight = 0

    @property
    def is_busy(self) -> bool:
        """True while a dispatch has not reached UPLOADED"""
        return self._in_flight > 0

    async def dispatch(self, command: Union[ServerCommand, str, None]) -> str:
        """Send ``command`` and return the new message key.

        Raises:
            InvalidCommandError: no command or an unknown one; nothing is written.
            TransportError: the backend rejected the append or the status update.
        """
        command = _coerce_command(command)

        record = {
            "command": command.value,
            "commandTimestamp": self.clock(),
            "status": MessageStatus.BEFORE_UPLOADED.value,
        }

        key = None
        self._in_flight += 1
        try:
            key = await self.log_port.append(self.channel, record)
            self.pending_keys.add(key)
            logger.info(f"[DISPATCH] {command.value} stored as {key} ({MessageStatus.BEFORE_UPLOADED.value})")

            message = Message(
                key=key,
                command=command,
                issued_at=record["commandTimestamp"],
                status=MessageStatus.UPLOADED,
            )
            await self.log_port.write(self.channel, key, message.to_record())
            logger.info(f"[DISPATCH] {command.value} {key} -> {MessageStatus.UPLOADED.value}")
        except Exception as e:
            logger.error(f"[DISPATCH] Sending {command.value} failed: {e}")
            raise
        finally:
            self._in_flight -= 1
            if key is not None:
                self.pending_keys.discard(key)

        return key

    async def reconcile_pending(self, max_age_seconds: int = None, now: int = None) -> List[str]:
        """Promote stale BEFORE_UPLOADED records to UPLOADED.

        A BEFORE_UPLOADED record in the channel was appended successfully, so
        only the status update was lost. Records younger than
        ``max_age_seconds`` may still be mid-dispatch and are left alone.
        """
        if max_age_seconds is None:
            max_age_seconds = config.PENDING_RECONCILE_SECONDS
        if max_age_seconds <= 0:
            return []

        now = self.clock() if now is None else now
        cutoff = now - max_age_seconds * 1000

        snapshot = await self.log_port.read(self.channel)
        promoted = []
        for message in order_records(snapshot).messages:
            if message.status != MessageStatus.BEFORE_UPLOADED:
                continue
            slot = message.storage_key
            if slot in self.pending_keys or message.issued_at > cutoff:
                continue
            await self.log_port.write(self.channel, slot, {
                "key": message.key,
                "status": MessageStatus.UPLOADED.value,
            })
            promoted.append(slot)

        if promoted:
            logger.warning(f"[DISPATCH] Promoted {len(promoted)} stale pending command(s): {promoted}")
        return promoted


def _coerce_command(command: Union[ServerCommand, str, None]) -> ServerCommand:
    if command is None or command == "":
        raise InvalidCommandError("No command given")
    if isinstance(command, ServerCommand):
        return command
    try:
        return ServerCommand.from_label(str(command))
    except ValueError as e:
        raise InvalidCommandError(str(e)) from e
