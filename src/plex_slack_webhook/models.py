"""Define the models needed."""

from enum import Enum

from pydantic import BaseModel

from .config import EVENT_NEW, EVENT_PLAY, EVENT_RATE, EVENT_SCROBBLE


class PlexMetadata(BaseModel):
    """Represent metadata for the media item."""
    ratingKey: str | None = None  # Item id, unique per server
    type: str | None = None  # e.g., 'movie', 'episode', 'track'
    title: str | None = None  # Movie, episode or track title
    parentTitle: str | None = None  # Season or album
    grandparentTitle: str | None = None  # Show or artist
    year: int | None = None
    parentIndex: int | None = None  # Season number
    index: int | None = None  # Episode number
    tagline: str | None = None
    summary: str | None = None
    originallyAvailableAt: str | None = None  # e.g., '2016-11-11'

class PlexServer(BaseModel):
    """Represent the Plex server sending the webhook."""
    uuid: str | None = None
    title: str | None = None

class PlexAccount(BaseModel):
    """Represent the Plex account triggering the webhook."""
    title: str | None = None  # Username
    thumb: str | None = None  # Avatar URL

class PlexPlayer(BaseModel):
    """Represent the Plex player."""
    uuid: str | None = None
    title: str | None = None
    publicAddress: str | None = None

class PlexWebhookPayload(BaseModel):
    """Represent the overall structure of the parsed Plex webhook JSON."""
    event: str
    rating: float | None = None
    thumb: str | None = None  # Remote thumbnail URL
    Metadata: PlexMetadata | None = None
    Server: PlexServer | None = None
    Account: PlexAccount | None = None
    Player: PlexPlayer | None = None


class EventKind(str, Enum):
    """Kinds of webhook event the router distinguishes."""

    SCROBBLE = "scrobble"
    RATE = "rate"
    PLAY = "play"
    NEW = "new"
    OTHER = "other"

    @classmethod
    def from_event_name(cls, name: str) -> "EventKind":
        return _EVENT_KINDS.get(name, cls.OTHER)


_EVENT_KINDS = {
    EVENT_SCROBBLE: EventKind.SCROBBLE,
    EVENT_RATE: EventKind.RATE,
    EVENT_PLAY: EventKind.PLAY,
    EVENT_NEW: EventKind.NEW,
}


class MediaType(str, Enum):
    """Media types we handle."""

    MOVIE = "movie"
    EPISODE = "episode"
    SHOW = "show"
    TRACK = "track"


VIDEO_TYPES = frozenset({MediaType.MOVIE, MediaType.EPISODE, MediaType.SHOW})


class Event(BaseModel):
    """A validated webhook event, built once per request by ``parse_event``."""

    name: str
    kind: EventKind
    media_type: MediaType
    cache_key: str
    metadata: PlexMetadata
    rating: float | None = None
    player_address: str | None = None
    player_title: str | None = None
    server_title: str | None = None
    account_title: str | None = None
    account_thumb_url: str | None = None
    thumbnail_bytes: bytes | None = None
    thumbnail_url: str | None = None

    @property
    def is_scrobble(self) -> bool:
        return self.kind is EventKind.SCROBBLE

    @property
    def is_rate(self) -> bool:
        return self.kind is EventKind.RATE

    @property
    def is_play(self) -> bool:
        return self.kind is EventKind.PLAY

    @property
    def is_new(self) -> bool:
        return self.kind is EventKind.NEW

    @property
    def is_video(self) -> bool:
        return self.media_type in VIDEO_TYPES

    @property
    def is_audio(self) -> bool:
        return self.media_type is MediaType.TRACK

    @property
    def should_cache(self) -> bool:
        """Play, Rate and New events populate the image cache."""
        return self.is_play or self.is_rate or self.is_new

    @property
    def should_notify(self) -> bool:
        """Video scrobbles, ratings and new items are announced; plays only warm the cache."""
        return (self.is_scrobble and self.is_video) or self.is_rate or self.is_new


class GeoLocation(BaseModel):
    """Approximate location of a player's public address."""
    city: str | None = None
    region: str | None = None  # Region name in the US, country name elsewhere
    country_code: str | None = None


class Notification(BaseModel):
    """A formatted notification, independent of the chat service it is sent to."""
    title: str
    text: str = ""
    footer: str
    image_url: str | None = None
    footer_icon: str | None = None
