"""
QMediaPlayer backed stream handles.
"""

import logging
import math

from PyQt6.QtCore import QUrl
from PyQt6.QtMultimedia import QMediaPlayer

from .state import CameraClip
from .streams import StreamHandle, StreamUnavailable

logger = logging.getLogger(__name__)


class QMediaPlayerStream(StreamHandle):
    """Adapts a QMediaPlayer (millisecond based) to the StreamHandle interface."""

    def __init__(self, player: QMediaPlayer, camera=None):
        self.player = player
        self.camera = camera
        self._released = False

    def _checked_player(self) -> QMediaPlayer:
        if self._released:
            raise StreamUnavailable(f"Stream for {self.camera} was released")
        return self.player

    def current_position(self) -> float:
        try:
            return self._checked_player().position() / 1000.0
        except RuntimeError as e:
            # Underlying C++ object already deleted
            raise StreamUnavailable(str(e)) from e

    def duration(self) -> float:
        try:
            ms = self._checked_player().duration()
        except RuntimeError as e:
            raise StreamUnavailable(str(e)) from e
        # QMediaPlayer reports 0 until metadata is loaded
        return ms / 1000.0 if ms > 0 else math.nan

    def is_playing(self) -> bool:
        try:
            return self._checked_player().playbackState() == QMediaPlayer.PlaybackState.PlayingState
        except RuntimeError:
            return False

    def is_at_end_of_media(self) -> bool:
        try:
            return self._checked_player().mediaStatus() == QMediaPlayer.MediaStatus.EndOfMedia
        except RuntimeError:
            return False

    def seek_to(self, seconds: float) -> None:
        self._checked_player().setPosition(max(0, int(round(seconds * 1000))))

    def play(self) -> None:
        self._checked_player().play()

    def pause(self) -> None:
        self._checked_player().pause()

    def set_playback_rate(self, rate: float) -> None:
        self._checked_player().setPlaybackRate(rate)

    def release(self) -> None:
        if self._released:
            return
        try:
            self.player.stop()
            self.player.setSource(QUrl())
        except RuntimeError as e:
            logger.warning(f"Error releasing player for {self.camera}: {e}")
        self._released = True


def create_qmedia_stream(clip: CameraClip) -> QMediaPlayerStream:
    """Stream factory for VideoPlaybackManager: one QMediaPlayer per camera clip."""
    player = QMediaPlayer()
    player.setSource(QUrl.fromLocalFile(str(clip.media_ref)))
    logger.debug(f"Loaded {clip.camera.value} clip {clip.media_ref}")
    return QMediaPlayerStream(player, clip.camera)
