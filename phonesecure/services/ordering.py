"""Rebuild the conversation order from an unordered channel snapshot"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Tuple

from pydantic import ValidationError

from ..models.message import Message, MessageStatus, ServerCommand

logger = logging.getLogger(__name__)


class MalformedRecordError(ValueError):
    """Raised when a stored record cannot be turned into a Message."""

    def __init__(self, storage_key: str, reason: str):
        super().__init__(f"record {storage_key}: {reason}")
        self.storage_key = storage_key
        self.reason = reason


class OrderingResult(NamedTuple):
    messages: List[Message]
    dropped: List[str]  # storage keys of records that could not be normalized


def iter_snapshot(records) -> Iterable[Tuple[str, Any]]:
    """(storage_key, record) pairs from a channel snapshot.

    The Realtime Database hands back an object keyed by push id, or a list
    when every key happens to be a small integer. Lists can contain holes.
    """
    if not records:
        return []
    if isinstance(records, Mapping):
        return [(str(key), value) for key, value in records.items()]
    if isinstance(records, (list, tuple)):
        return [(str(index), value) for index, value in enumerate(records) if value is not None]
    logger.warning(f"Ignoring channel snapshot of unexpected type {type(records).__name__}")
    return []


def sort_timestamp(record: Mapping[str, Any]) -> float:
    """commandTimestamp, else legacy timestamp, else 0"""
    value = record.get("commandTimestamp") or record.get("timestamp") or 0
    if isinstance(value, bool):
        raise TypeError("timestamp must be a number")
    return float(value)


def normalize_record(storage_key: str, record: Any) -> Message:
    """Turn one stored record into a Message or raise MalformedRecordError"""
    if not isinstance(record, Mapping):
        raise MalformedRecordError(storage_key, f"expected an object, got {type(record).__name__}")

    key = record.get("key") or storage_key

    command_value = record.get("command")
    if not command_value:
        raise MalformedRecordError(storage_key, "missing command")
    try:
        command = ServerCommand(command_value)
    except ValueError:
        raise MalformedRecordError(storage_key, f"unknown command {command_value!r}")

    status_value = record.get("status") or MessageStatus.BEFORE_UPLOADED.value
    try:
        status = MessageStatus(status_value)
    except ValueError:
        raise MalformedRecordError(storage_key, f"unknown status {status_value!r}")

    try:
        issued_at = int(sort_timestamp(record))
    except (TypeError, ValueError, OverflowError):
        raise MalformedRecordError(storage_key, "timestamp is not a number")

    # The phone writes response and responseTimestamp together; until both
    # are visible the message is still waiting for its answer.
    response = record.get("response") or None
    responded_at = record.get("responseTimestamp") or None
    if response is not None and not isinstance(response, str):
        response = str(response)
    if (response is None) != (responded_at is None):
        logger.debug(f"Record {storage_key} has a half-written response, treating as unanswered")
        response = responded_at = None
    elif responded_at is not None:
        try:
            responded_at = int(float(responded_at))
        except (TypeError, ValueError, OverflowError):
            raise MalformedRecordError(storage_key, "responseTimestamp is not a number")

    try:
        message = Message(
            key=str(key),
            command=command,
            issued_at=issued_at,
            status=status,
            response=response,
            responded_at=responded_at,
        )
    except ValidationError as e:
        raise MalformedRecordError(storage_key, str(e))
    return message.stored_at(storage_key)


def order_records(records) -> OrderingResult:
    """Normalize and sort a channel snapshot by command timestamp.

    Sorting is stable, so records sharing a timestamp keep snapshot order.
    The sort uses the stored timestamp as-is; ``Message.issued_at`` holds it
    truncated to whole milliseconds. Records that cannot be normalized are
    dropped and logged.
    """
    keyed: List[Tuple[float, Message]] = []
    dropped: List[str] = []

    for storage_key, record in iter_snapshot(records):
        try:
            message = normalize_record(storage_key, record)
        except MalformedRecordError as e:
            logger.warning(f"Dropping malformed record: {e}")
            dropped.append(storage_key)
            continue
        keyed.append((sort_timestamp(record), message))

    keyed.sort(key=lambda pair: pair[0])
    messages = [message for _, message in keyed]

    if dropped:
        logger.info(f"Ordered {len(messages)} messages, dropped {len(dropped)}")
    return OrderingResult(messages, dropped)


def to_records(messages: Iterable[Message]) -> Dict[str, Dict[str, Any]]:
    """Re-express ordered messages as a channel snapshot, keyed by storage slot"""
    return {message.storage_key: message.to_record() for message in messages}


def order(records) -> List[Message]:
    return order_records(records).messages
