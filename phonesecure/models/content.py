"""Typed content recognised in phone responses"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Tuple, Union

GOOGLE_MAPS_URL = "https://www.google.com/maps"


class ContentKind(str, Enum):
    VOICE_NOTE = "voice_note"
    IMAGE = "image"
    ATTACHMENT = "attachment"
    POINT = "point"
    PATH = "path"
    TEXT = "text"


@dataclass(frozen=True)
class LatLng:
    """Coordinate pair exactly as the phone reported it (no range checks)"""
    lat: str
    lng: str

    @property
    def latitude(self) -> float:
        return float(self.lat)

    @property
    def longitude(self) -> float:
        return float(self.lng)

    def __str__(self):
        return f"{self.lat},{self.lng}"


@dataclass(frozen=True)
class VoiceNote:
    url: str
    kind = ContentKind.VOICE_NOTE

    def to_dict(self):
        return {"kind": self.kind.value, **asdict(self)}


@dataclass(frozen=True)
class Image:
    url: str
    kind = ContentKind.IMAGE

    def to_dict(self):
        return {"kind": self.kind.value, **asdict(self)}


@dataclass(frozen=True)
class GenericAttachment:
    url: str
    kind = ContentKind.ATTACHMENT

    def to_dict(self):
        return {"kind": self.kind.value, **asdict(self)}


@dataclass(frozen=True)
class SinglePoint:
    lat: str
    lng: str
    kind = ContentKind.POINT

    @property
    def point(self) -> LatLng:
        return LatLng(self.lat, self.lng)

    def maps_url(self) -> str:
        return f"{GOOGLE_MAPS_URL}?q={self.lat},{self.lng}"

    def to_dict(self):
        return {"kind": self.kind.value, **asdict(self)}


@dataclass(frozen=True)
class Path:
    """Route through at least two points, in reported order"""
    points: Tuple[LatLng, ...]
    kind = ContentKind.PATH

    def __post_init__(self):
        if len(self.points) < 2:
            raise ValueError("a path needs at least 2 points")

    @property
    def origin(self) -> LatLng:
        return self.points[0]

    @property
    def destination(self) -> LatLng:
        return self.points[-1]

    def directions_url(self) -> str:
        return f"{GOOGLE_MAPS_URL}/dir/" + "/".join(str(p) for p in self.points)

    def to_dict(self):
        return {
            "kind": self.kind.value,
            "points": [{"lat": p.lat, "lng": p.lng} for p in self.points],
        }


@dataclass(frozen=True)
class PlainText:
    text: str
    kind = ContentKind.TEXT

    def to_dict(self):
        return {"kind": self.kind.value, **asdict(self)}


ContentDescriptor = Union[VoiceNote, Image, GenericAttachment, SinglePoint, Path, PlainText]
