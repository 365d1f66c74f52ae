"""Models package"""

from .message import (
    ServerCommand,
    MessageStatus,
    Message,
    PENDING,
    SUBMITTED,
    ACKNOWLEDGED,
)
from .content import (
    ContentDescriptor,
    ContentKind,
    LatLng,
    VoiceNote,
    Image,
    GenericAttachment,
    SinglePoint,
    Path,
    PlainText,
)

__all__ = [
    'ServerCommand', 'MessageStatus', 'Message', 'PENDING', 'SUBMITTED', 'ACKNOWLEDGED',
    'ContentDescriptor', 'ContentKind', 'LatLng', 'VoiceNote', 'Image',
    'GenericAttachment', 'SinglePoint', 'Path', 'PlainText',
]
