"""Services package"""

from .classifier import PayloadClassifier, classify
from .ordering import MalformedRecordError, OrderingResult, order_records, to_records
from .log_port import InMemoryLogPort, LogPort, TransportError
from .dispatcher import CommandDispatcher, InvalidCommandError
from .projector import ConversationEntry, ConversationProjector

__all__ = [
    'PayloadClassifier', 'classify',
    'MalformedRecordError', 'OrderingResult', 'order_records', 'to_records',
    'InMemoryLogPort', 'LogPort', 'TransportError',
    'CommandDispatcher', 'InvalidCommandError',
    'ConversationEntry', 'ConversationProjector',
]
