"""
Response payload classifier.

The phone answers every command with a single string: a storage download URL
for selfies and recordings, a Google Maps link for a location fix, a
``Path: lat,lng|lat,lng|...`` line for a location timeline, or free text.
``classify`` maps that string to exactly one content descriptor.

Matchers run in a fixed order and the first hit wins. The order matters
because the broader patterns would also accept strings meant for the narrower
ones (an image URL is also an attachment URL, the first point of a path also
looks like a coordinate).
"""

import logging
import re
from typing import Callable, List, Optional, Sequence, Tuple
from urllib.parse import unquote, urlparse

from .. import config
from ..models.content import (
    ContentDescriptor,
    GenericAttachment,
    Image,
    LatLng,
    Path,
    PlainText,
    SinglePoint,
    VoiceNote,
)

logger = logging.getLogger(__name__)

# Optional sign, digits with optional decimal point
_NUMBER = r"[-+]?(?:\d+\.?\d*|\.\d+)"
_NUMBER_RE = re.compile(rf"^{_NUMBER}$")
_MAP_QUERY_RE = re.compile(rf"(?:^|&)q=({_NUMBER}),({_NUMBER})")
_PATH_RE = re.compile(r"Path:\s*(.+)")

PATH_PAIR_DELIMITER = "|"
PATH_COORD_DELIMITER = ","

AUDIO_EXTENSIONS = ("mp3",)
IMAGE_EXTENSIONS = ("jpg", "jpeg", "png")
RECORDING_SEGMENTS = ("recordings",)
RECORDING_PREFIXES = ("recording_",)
IMAGE_SEGMENTS = ("selfies",)
IMAGE_PREFIXES = ("photo_", "image_", "selfie_")

Matcher = Callable[[str], Optional[ContentDescriptor]]


class PayloadClassifier:
    """Ordered chain of matchers over response strings"""

    def __init__(self, attachment_host: str = None):
        self.attachment_host = (attachment_host or config.ATTACHMENT_HOST).lower()
        self.matchers: List[Tuple[str, Matcher]] = [
            ("voice_note", self._match_voice_note),
            ("image", self._match_image),
            ("attachment", self._match_attachment),
            ("path", self._match_path),
            ("point", self._match_point),
        ]

    def classify(self, raw) -> ContentDescriptor:
        """Classify a response payload. Never raises."""
        if raw is None:
            return PlainText("")
        if not isinstance(raw, str):
            return PlainText(str(raw))

        for name, matcher in self.matchers:
            try:
                content = matcher(raw)
            except ValueError as e:
                logger.debug(f"Matcher '{name}' rejected payload {raw!r}: {e}")
                continue
            if content is not None:
                return content

        return PlainText(raw)

    # -- storage attachments -------------------------------------------------

    def _attachment_path(self, raw: str) -> Optional[List[str]]:
        """Decoded path segments if ``raw`` is a URL on the attachment host"""
        parsed = urlparse(raw.strip())
        if parsed.scheme not in ("http", "https"):
            return None
        host = (parsed.hostname or "").lower()
        if host != self.attachment_host and not host.endswith("." + self.attachment_host):
            return None
        # Download URLs encode the object name, "recordings%2Frecording_1.mp3"
        return [segment for segment in unquote(parsed.path).split("/") if segment]

    def _match_voice_note(self, raw: str) -> Optional[VoiceNote]:
        segments = self._attachment_path(raw)
        if not segments:
            return None
        filename = segments[-1]
        if _looks_like(segments, filename, RECORDING_SEGMENTS, RECORDING_PREFIXES) \
                and _extension(filename) in AUDIO_EXTENSIONS:
            return VoiceNote(raw)
        return None

    def _match_image(self, raw: str) -> Optional[Image]:
        segments = self._attachment_path(raw)
        if not segments:
            return None
        filename = segments[-1]
        if _looks_like(segments, filename, IMAGE_SEGMENTS, IMAGE_PREFIXES) \
                and _extension(filename) in IMAGE_EXTENSIONS:
            return Image(raw)
        return None

    def _match_attachment(self, raw: str) -> Optional[GenericAttachment]:
        if self._attachment_path(raw) is not None:
            return GenericAttachment(raw)
        return None

    # -- coordinates ---------------------------------------------------------

    def _match_path(self, raw: str) -> Optional[Path]:
        match = _PATH_RE.search(raw)
        if not match:
            return None
        points = parse_coordinate_pairs(match.group(1).strip().split(PATH_PAIR_DELIMITER))
        if len(points) < 2:
            return None
        return Path(tuple(points))

    def _match_point(self, raw: str) -> Optional[SinglePoint]:
        parsed = urlparse(raw.strip())
        if parsed.scheme not in ("http", "https"):
            return None
        host_labels = (parsed.hostname or "").lower().split(".")
        path_segments = parsed.path.lower().split("/")
        if "maps" not in host_labels and "maps" not in path_segments:
            return None
        match = _MAP_QUERY_RE.search(unquote(parsed.query))
        if not match:
            return None
        return SinglePoint(lat=match.group(1), lng=match.group(2))


def parse_coordinate_pairs(pairs: Sequence[str]) -> List[LatLng]:
    """Parse "lat,lng" strings, silently skipping malformed ones"""
    points = []
    for pair in pairs:
        tokens = [token.strip() for token in pair.split(PATH_COORD_DELIMITER)]
        if len(tokens) != 2:
            continue
        lat, lng = tokens
        if _NUMBER_RE.match(lat) and _NUMBER_RE.match(lng):
            points.append(LatLng(lat, lng))
    return points


def _looks_like(segments, filename, folder_names, prefixes) -> bool:
    return any(s in folder_names for s in segments[:-1]) or filename.startswith(prefixes)


def _extension(filename: str) -> str:
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


_default_classifier = None


def classify(raw) -> ContentDescriptor:
    """Classify with the configured attachment host"""
    global _default_classifier
    if _default_classifier is None:
        _default_classifier = PayloadClassifier()
    return _default_classifier.classify(raw)
