class TileDownloaderException(Exception):
    """Base exception for tile downloader"""
    pass


class ConfigurationError(TileDownloaderException):
    """Configuration related errors"""
    pass


class ValidationError(TileDownloaderException):
    """Validation related errors"""
    pass


class DownloadError(TileDownloaderException):
    """A single fetch attempt failed (transport, status or body read)"""
    pass


class DownloadCancelled(TileDownloaderException):
    """An in-flight fetch was aborted by the cancellation token"""
    pass


class CacheWriteError(TileDownloaderException):
    """Tile could not be written to local storage"""
    pass


class SessionBusyError(TileDownloaderException):
    """A download session is already running"""

    def __init__(self, message: str = "Another download is already in progress."):
        super().__init__(message)


class ServerError(TileDownloaderException):
    """HTTP server related errors"""
    pass
