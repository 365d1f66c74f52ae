"""Conversation projector - live, ordered and classified view of the chat channel"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .. import config
from ..models.content import ContentDescriptor
from ..models.message import Message, MessageStatus
from .classifier import PayloadClassifier
from .log_port import LogPort, Snapshot, Unsubscribe
from .ordering import order_records

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversationEntry:
    message: Message
    content: Optional[ContentDescriptor] = None


Observer = Callable[[List[ConversationEntry]], None]


class ConversationProjector:
    """
    Keeps observers supplied with the full conversation.

    Every change notification carries the whole channel. It is ordered,
    classified and handed to observers as a complete replacement of the
    previous view; nothing is diffed.
    """

    def __init__(self, log_port: LogPort, channel: str = None, classifier: PayloadClassifier = None):
        self.log_port = log_port
        self.channel = channel or config.CHAT_CHANNEL
        self.classifier = classifier or PayloadClassifier()
        self.observers: List[Observer] = []
        self.last_dropped: List[str] = []
        self._unsubscribe: Optional[Unsubscribe] = None
        self._disposed = False
        # Highest status / answer already shown per storage slot, so views never go backwards
        self._seen: Dict[str, Tuple[MessageStatus, Optional[Tuple[str, int]]]] = {}

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None and not self._disposed

    def add_observer(self, observer: Observer):
        self.observers.append(observer)

    def remove_observer(self, observer: Observer):
        if observer in self.observers:
            self.observers.remove(observer)

    async def start(self):
        """Subscribe to the channel. TransportError propagates to the caller."""
        if self._disposed:
            raise RuntimeError("ConversationProjector has been disposed")
        if self._unsubscribe is not None:
            return
        logger.info(f"Loading chat from path: {self.channel}")
        unsubscribe = await self.log_port.subscribe(self.channel, self._on_change)
        if self._disposed:
            # dispose() ran while the subscription was being set up
            unsubscribe()
            return
        self._unsubscribe = unsubscribe

    def dispose(self):
        """Stop listening. Safe to call repeatedly and from inside an observer."""
        if self._disposed:
            return
        self._disposed = True
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()
            logger.info(f"Cleaning up listener on {self.channel}")

    def project(self, snapshot: Snapshot) -> List[ConversationEntry]:
        """Ordered, classified entries for one channel snapshot"""
        result = order_records(snapshot)
        self.last_dropped = result.dropped

        entries = []
        for message in result.messages:
            message = self._never_backwards(message)
            content = self.classifier.classify(message.response) if message.has_response else None
            entries.append(ConversationEntry(message, content))

        live = {message.storage_key for message in result.messages}
        for slot in [slot for slot in self._seen if slot not in live]:
            del self._seen[slot]
        return entries

    def _never_backwards(self, message: Message) -> Message:
        seen_status, answer = self._seen.get(message.storage_key, (None, None))
        updates = {}

        if seen_status is not None and not seen_status.can_transition_to(message.status):
            logger.debug(f"Holding {message.key} at {seen_status.value}, snapshot says {message.status.value}")
            updates["status"] = seen_status
        if not message.has_response and answer is not None:
            updates["response"], updates["responded_at"] = answer

        if updates:
            message = message.model_copy(update=updates)

        answer = (message.response, message.responded_at) if message.has_response else answer
        self._seen[message.storage_key] = (message.status, answer)
        return message

    def _on_change(self, snapshot: Snapshot):
        if self._disposed:
            logger.debug("Discarding notification received after dispose")
            return

        entries = self.project(snapshot)
        logger.debug(f"Setting {len(entries)} messages ({len(self.last_dropped)} dropped)")

        for observer in list(self.observers):
            if self._disposed:
                return
            try:
                observer(entries)
            except Exception as e:
                logger.error(f"Conversation observer failed: {e}", exc_info=True)

