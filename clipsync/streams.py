"""
Stream handle interface.

A stream handle is one camera's currently loaded clip inside whatever decode
pipeline is playing it. The sync controller only reads positions and issues
seeks; the playback manager also starts, pauses and releases handles.
All times are in seconds.
"""

from abc import ABC, abstractmethod


class StreamUnavailable(Exception):
    """Raised by a handle that cannot report its state right now (e.g. still loading)."""


class StreamHandle(ABC):

    @abstractmethod
    def current_position(self) -> float:
        pass

    @abstractmethod
    def duration(self) -> float:
        pass

    @abstractmethod
    def is_playing(self) -> bool:
        pass

    @abstractmethod
    def seek_to(self, seconds: float) -> None:
        pass

    @abstractmethod
    def is_at_end_of_media(self) -> bool:
        pass

    @abstractmethod
    def play(self) -> None:
        pass

    @abstractmethod
    def pause(self) -> None:
        pass

    def set_playback_rate(self, rate: float) -> None:
        """Handles that cannot change rate keep playing at 1x."""

    def release(self) -> None:
        """Free decoder resources; the handle is not used afterwards."""
