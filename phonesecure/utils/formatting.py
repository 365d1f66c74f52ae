"""Plain-text rendering of conversation entries for the terminal"""

from datetime import datetime

from ..models.content import (
    GenericAttachment,
    Image,
    Path,
    PlainText,
    SinglePoint,
    VoiceNote,
)


def format_time(timestamp_ms) -> str:
    """HH:MM in local time, '' when unknown"""
    if not timestamp_ms:
        return ""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%H:%M")


def describe_content(content) -> str:
    if isinstance(content, VoiceNote):
        return f"Voice Message {content.url}"
    if isinstance(content, Image):
        return f"Photo {content.url}"
    if isinstance(content, GenericAttachment):
        return f"Attachment {content.url}"
    if isinstance(content, Path):
        return f"Route with {len(content.points)} points {content.directions_url()}"
    if isinstance(content, SinglePoint):
        return f"Location: {content.lat}, {content.lng} {content.maps_url()}"
    if isinstance(content, PlainText):
        return content.text
    return ""


def describe_entry(entry) -> str:
    """One line for the command, and one more for the answer when there is one"""
    message = entry.message
    line = f"[{format_time(message.issued_at)}] > {message.command.label} ({message.status.label})"
    if entry.content is None:
        return line
    return f"{line}\n[{format_time(message.responded_at)}] < {describe_content(entry.content)}"
