import logging
import queue
import threading
from typing import Iterator, List, Optional

from interfaces.notifier import IEventNotifier
from models.events import DownloadEvent

logger = logging.getLogger(__name__)


class EventChannel(IEventNotifier):
    """Bounded event queue; notify blocks while the queue is full"""

    def __init__(self, capacity: int = 256, put_poll_interval: float = 0.5):
        self._queue: queue.Queue = queue.Queue(maxsize=capacity)
        self._closed = threading.Event()
        self._put_poll_interval = put_poll_interval

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def notify(self, event: DownloadEvent) -> None:
        while not self._closed.is_set():
            try:
                self._queue.put(event, timeout=self._put_poll_interval)
                return
            except queue.Full:
                continue
        logger.debug("Dropping %s event for closed channel", event.type)

    def close(self) -> None:
        self._closed.set()

    def get(self, timeout: Optional[float] = None) -> Optional[DownloadEvent]:
        """Next event, or None if none arrived within timeout"""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def listen(self, timeout: Optional[float] = None) -> Iterator[Optional[DownloadEvent]]:
        """Yield events until closed; yields None on each idle timeout"""
        while not self._closed.is_set() or not self._queue.empty():
            yield self.get(timeout=timeout)


class EventBroadcaster(IEventNotifier):
    """Fans events out to every subscribed channel"""

    def __init__(self, channel_capacity: int = 256):
        self.channel_capacity = channel_capacity
        self._channels: List[EventChannel] = []
        self._lock = threading.Lock()

    def subscribe(self) -> EventChannel:
        channel = EventChannel(capacity=self.channel_capacity)
        with self._lock:
            self._channels.append(channel)
        return channel

    def unsubscribe(self, channel: EventChannel) -> None:
        channel.close()
        with self._lock:
            if channel in self._channels:
                self._channels.remove(channel)

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._channels)

    def notify(self, event: DownloadEvent) -> None:
        with self._lock:
            channels = list(self._channels)
        for channel in channels:
            channel.notify(event)

    def close_all(self) -> None:
        """Close and drop every subscriber"""
        with self._lock:
            channels, self._channels = self._channels, []
        for channel in channels:
            channel.close()
