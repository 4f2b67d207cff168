"""Download events pushed to clients.

Each event is a frozen dataclass with a fixed ``type`` tag and serializes to
the message shape ``{"type": <tag>, "data": <payload or null>}``.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type

from models.tile import BoundingBox


@dataclass(frozen=True)
class DownloadEvent:
    """Base class for all download events"""
    type = ''

    def payload(self) -> Optional[Dict[str, Any]]:
        return None

    def to_message(self) -> Dict[str, Any]:
        return {'type': self.type, 'data': self.payload()}


@dataclass(frozen=True)
class DownloadStarted(DownloadEvent):
    total_tiles: int
    type = 'download_started'

    def payload(self):
        return {'total_tiles': self.total_tiles}


@dataclass(frozen=True)
class TileSkipped(DownloadEvent):
    bounds: BoundingBox
    type = 'tile_skipped'

    def payload(self):
        return self.bounds.to_dict()


@dataclass(frozen=True)
class TileDownloaded(DownloadEvent):
    bounds: BoundingBox
    type = 'tile_downloaded'

    def payload(self):
        return self.bounds.to_dict()


@dataclass(frozen=True)
class TileFailed(DownloadEvent):
    tile: str  # "z/x/y"
    type = 'tile_failed'

    def payload(self):
        return {'tile': self.tile}


@dataclass(frozen=True)
class TilesDownloaded(DownloadEvent):
    type = 'tiles_downloaded'


@dataclass(frozen=True)
class DownloadComplete(DownloadEvent):
    type = 'download_complete'


@dataclass(frozen=True)
class DownloadCancelledEvent(DownloadEvent):
    type = 'download_cancelled'


@dataclass(frozen=True)
class ErrorEvent(DownloadEvent):
    message: str
    type = 'error'

    def payload(self):
        return {'message': self.message}


EVENT_TYPES: Dict[str, Type[DownloadEvent]] = {
    cls.type: cls for cls in (
        DownloadStarted, TileSkipped, TileDownloaded, TileFailed,
        TilesDownloaded, DownloadComplete, DownloadCancelledEvent, ErrorEvent,
    )
}

TERMINAL_EVENT_TYPES = (DownloadComplete.type, DownloadCancelledEvent.type)


def event_from_message(message: Dict[str, Any]) -> DownloadEvent:
    """Decode a {"type", "data"} message back into its event class"""
    event_type = message.get('type')
    cls = EVENT_TYPES.get(event_type)
    if cls is None:
        raise ValueError(f"Unknown event type: {event_type!r}")

    data = message.get('data') or {}
    if cls in (TileSkipped, TileDownloaded):
        return cls(bounds=BoundingBox(
            north=float(data['north']),
            south=float(data['south']),
            east=float(data['east']),
            west=float(data['west']),
        ))
    if cls is DownloadStarted:
        return cls(total_tiles=int(data['total_tiles']))
    if cls is TileFailed:
        return cls(tile=str(data['tile']))
    if cls is ErrorEvent:
        return cls(message=str(data['message']))
    return cls()
