from abc import ABC, abstractmethod

from models.events import DownloadEvent


class IEventNotifier(ABC):
    """Receives the events of a download session"""

    @abstractmethod
    def notify(self, event: DownloadEvent) -> None:
        """Deliver one event; may block while the channel is full"""
        pass
