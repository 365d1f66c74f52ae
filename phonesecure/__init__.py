"""PhoneSecure command console package"""

from .core import CommandConsole
from .services import (
    CommandDispatcher,
    ConversationProjector,
    PayloadClassifier,
    classify,
    order_records,
)

__all__ = [
    'CommandConsole', 'CommandDispatcher', 'ConversationProjector',
    'PayloadClassifier', 'classify', 'order_records',
]
