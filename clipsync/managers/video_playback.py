"""
Video Playback Manager for ClipSync.

Plays one event clip group by clip group: one stream handle per camera for the
current group, handed to the SyncController for drift correction. Positions
exposed to callers are either clip-relative or absolute event seconds, the
latter resolved through the event's AbsoluteTimeMapper.
"""

import math
from typing import Callable, Dict, Optional
from PyQt6.QtCore import QObject, pyqtSignal

from .base import BaseManager
from .configuration import SyncConfig
from .sync import SyncController
from ..state import CAMERA_ORDER, CameraClip, CameraId, ClipEvent, ExportState
from ..streams import StreamHandle, StreamUnavailable
from ..timeline import AbsoluteTimeMapper


class VideoPlaybackManagerSignals(QObject):
    """Signal emitter for VideoPlaybackManager."""
    playback_state_changed = pyqtSignal(bool)  # is_playing
    segment_changed = pyqtSignal(int)  # clip_index
    event_loaded = pyqtSignal(str)  # event name
    event_finished = pyqtSignal()
    marks_changed = pyqtSignal(object)  # ExportState
    error_occurred = pyqtSignal(str)  # error_message


def _default_stream_factory(clip: CameraClip) -> StreamHandle:
    from ..qt_streams import create_qmedia_stream
    return create_qmedia_stream(clip)


class VideoPlaybackManager(BaseManager):
    """
    Manages playback of the selected event.

    Handles:
    - creating and releasing the stream handles of the current clip group
    - play, pause, rate and seeking across all cameras
    - advancing, looping and finishing at clip ends
    - absolute event time and in/out marks
    """

    def __init__(self, parent, dependency_container=None,
                 stream_factory: Optional[Callable[[CameraClip], StreamHandle]] = None,
                 sync_controller: Optional[SyncController] = None):
        super().__init__(parent, dependency_container)

        self.signals = VideoPlaybackManagerSignals()
        self.stream_factory = stream_factory or _default_stream_factory
        self.sync_controller = sync_controller

        self.config = SyncConfig()
        self.loop_enabled = False
        self.auto_advance = True
        self.sentry_lead_in_s = 64.0
        self.sentry_trigger_offset_s = 60.0

        self.current_event: Optional[ClipEvent] = None
        self.current_clip_index = 0
        self.streams: Dict[CameraId, StreamHandle] = {}
        self.mapper: Optional[AbsoluteTimeMapper] = None
        self.sentry_trigger_time: Optional[float] = None
        self.export_state = ExportState()

        self.is_playing = False
        self.playback_rate = 1.0

    def initialize(self) -> bool:
        try:
            config_manager = self.get_service('configuration')
            if config_manager is not None:
                self.config = config_manager.get_sync_config()
                self.loop_enabled = config_manager.get_setting('playback.loop', False)
                self.playback_rate = float(config_manager.get_setting('playback.default_speed', 1.0))
                self.sentry_lead_in_s = float(config_manager.get_setting('playback.sentry_lead_in_s', 64.0))
                self.sentry_trigger_offset_s = float(
                    config_manager.get_setting('playback.sentry_trigger_offset_s', 60.0))

            if self.sync_controller is None:
                self.sync_controller = self.get_service('sync_controller')
            if self.sync_controller is None:
                self.sync_controller = SyncController(self.parent, self.container, self.config)
            if not self.sync_controller.is_initialized():
                self.sync_controller.initialize()

            self._mark_initialized()
            return True

        except Exception as e:
            self.handle_error(e, "VideoPlaybackManager initialization")
            return False

    def cleanup(self) -> None:
        try:
            self._mark_cleanup_started()
            if self.sync_controller:
                self.sync_controller.stop()
                self.sync_controller.clear_streams()
            self._release_streams()
            self.current_event = None
            self.mapper = None
            self.is_playing = False
        except Exception as e:
            self.handle_error(e, "VideoPlaybackManager cleanup")

    # ========================================
    # Event and Clip Loading
    # ========================================

    def load_event(self, event: ClipEvent) -> bool:
        """Load an event at its first clip (or shortly before the trigger for sentry events)."""
        try:
            if event.is_empty:
                self.logger.warning(f"Event {event.name} has no clips")
                return False

            self.sync_controller.stop()
            self.sync_controller.clear_streams()
            self._release_streams()

            self.current_event = event
            self.current_clip_index = 0
            self.mapper = AbsoluteTimeMapper(len(event.clip_groups), self.config.estimated_clip_duration_s)
            self.export_state = ExportState()
            self.sentry_trigger_time = None

            if not self.load_clip(0):
                return False

            self.sync_controller.start()

            if event.is_sentry_event:
                total = self.mapper.total_duration()
                self.sentry_trigger_time = max(0.0, total - self.sentry_trigger_offset_s)
                self.seek_to_event_time(max(0.0, total - self.sentry_lead_in_s))

            self.logger.info(f"Loaded event {event.name} ({len(event.clip_groups)} clips, "
                             f"{len(event.gaps)} gaps)")
            self.signals.event_loaded.emit(event.name)
            self.signals.marks_changed.emit(self.export_state)
            return True

        except Exception as e:
            self.handle_error(e, f"load_event({event.name})")
            return False

    def load_clip(self, clip_index: int, position: float = 0.0) -> bool:
        """Swap the stream handles over to another clip group of the current event."""
        try:
            if self.current_event is None:
                self.logger.warning("load_clip called without a loaded event")
                return False
            groups = self.current_event.clip_groups
            if not 0 <= clip_index < len(groups):
                self.logger.warning(f"Invalid clip index {clip_index} (event has {len(groups)} clips)")
                return False

            self.record_current_durations()
            self._release_streams()

            group = groups[clip_index]
            streams = {}
            for camera in group.cameras:
                handle = self._create_stream(group.clip_for(camera))
                if handle is None:
                    continue
                handle.set_playback_rate(self.playback_rate)
                if position > 0:
                    handle.seek_to(position)
                streams[camera] = handle

            self.streams = streams
            self.current_clip_index = clip_index
            self.sync_controller.set_streams(streams)
            self.sync_controller.reset_sync_timer()

            self.signals.segment_changed.emit(clip_index)

            if self.is_playing:
                for handle in self.streams.values():
                    handle.play()
            return True

        except Exception as e:
            self.handle_error(e, f"load_clip({clip_index})")
            return False

    def _create_stream(self, clip: CameraClip) -> Optional[StreamHandle]:
        try:
            return self.stream_factory(clip)
        except (StreamUnavailable, OSError, RuntimeError) as e:
            self.logger.warning(f"Cannot open {clip.camera.value} clip {clip.media_ref}: {e}")
            return None

    def _release_streams(self) -> None:
        for camera, handle in self.streams.items():
            try:
                handle.release()
            except (StreamUnavailable, RuntimeError) as e:
                self.logger.warning(f"Error releasing {camera.value} stream: {e}")
        self.streams = {}

    def next_clip(self) -> bool:
        if self.current_event is None or self.current_clip_index + 1 >= len(self.current_event.clip_groups):
            return False
        return self.load_clip(self.current_clip_index + 1)

    def previous_clip(self) -> bool:
        if self.current_event is None or self.current_clip_index == 0:
            return False
        return self.load_clip(self.current_clip_index - 1)

    # ========================================
    # Playback Control
    # ========================================

    def play_all(self) -> None:
        try:
            self.is_playing = True
            for handle in self.streams.values():
                handle.set_playback_rate(self.playback_rate)
                handle.play()
            self.signals.playback_state_changed.emit(True)

        except Exception as e:
            self.handle_error(e, "play_all")

    def pause_all(self) -> None:
        try:
            self.is_playing = False
            for handle in self.streams.values():
                handle.pause()
            self.signals.playback_state_changed.emit(False)

        except Exception as e:
            self.handle_error(e, "pause_all")

    def toggle_play_pause_all(self) -> None:
        if self.is_playing:
            self.pause_all()
        else:
            self.play_all()

    def set_playback_rate(self, rate: float) -> None:
        try:
            if not math.isfinite(rate) or rate <= 0:
                self.logger.warning(f"Ignoring invalid playback rate {rate}")
                return
            self.playback_rate = rate
            for handle in self.streams.values():
                handle.set_playback_rate(rate)
            self.logger.debug(f"Playback rate changed to {rate}x")

        except Exception as e:
            self.handle_error(e, f"set_playback_rate({rate})")

    # ========================================
    # Seeking and Time
    # ========================================

    def seek(self, seconds: float) -> None:
        """
        Seek every stream to a clip-relative position.

        A negative position lands that many seconds before the end of the
        previous clip; on the first clip it clamps to 0.
        """
        try:
            if self.current_event is None:
                return

            if seconds < 0 and self.current_clip_index > 0:
                previous = self.current_clip_index - 1
                # The previous clip's duration is only known from the table at this point
                target = max(0.0, self.mapper.duration_of(previous) + seconds)
                self.load_clip(previous, target)
            else:
                target = max(0.0, seconds)
                for handle in self.streams.values():
                    handle.seek_to(self._clamp_to_stream(handle, target))

            self.sync_controller.force_resync()

        except Exception as e:
            self.handle_error(e, f"seek({seconds})")

    def seek_to_event_time(self, seconds: float) -> None:
        try:
            if self.mapper is None:
                return
            clip_index, offset = self.mapper.from_absolute(seconds)
            if clip_index != self.current_clip_index:
                self.load_clip(clip_index, offset)
                self.sync_controller.force_resync()
            else:
                self.seek(offset)

        except Exception as e:
            self.handle_error(e, f"seek_to_event_time({seconds})")

    def get_current_time(self) -> float:
        """Clip-relative position of the primary (front-most) camera."""
        for handle in self._ordered_streams():
            try:
                position = handle.current_position()
            except StreamUnavailable:
                continue
            if math.isfinite(position):
                return max(0.0, position)
        return 0.0

    def get_current_absolute_time(self) -> float:
        if self.mapper is None:
            return 0.0
        self.record_current_durations()
        return self.mapper.to_absolute(self.current_clip_index, self.get_current_time())

    def get_total_duration(self) -> float:
        return self.mapper.total_duration() if self.mapper else 0.0

    def record_current_durations(self) -> None:
        """Cache the current clip's duration, read from the primary camera once known."""
        if self.mapper is None or not self.streams:
            return
        for handle in self._ordered_streams():
            try:
                if self.mapper.record_duration(self.current_clip_index, handle.duration()):
                    return
            except StreamUnavailable:
                continue

    def _ordered_streams(self):
        return [self.streams[cam] for cam in CAMERA_ORDER if cam in self.streams]

    def _clamp_to_stream(self, handle: StreamHandle, seconds: float) -> float:
        try:
            duration = handle.duration()
        except StreamUnavailable:
            return seconds
        if math.isfinite(duration) and duration > 0:
            return min(seconds, duration)
        return seconds

    # ========================================
    # End of Clip Handling
    # ========================================

    def handle_stream_ended(self) -> bool:
        """
        Called whenever a stream reports end of media.

        Nothing happens until every stream of the clip has ended. Then playback
        advances to the next clip, loops back to the first one, or finishes.

        Returns:
            bool: True if another clip was loaded
        """
        try:
            if self.current_event is None or not self.streams:
                return False
            if not all(self._has_ended(handle) for handle in self.streams.values()):
                return False

            self.record_current_durations()
            was_playing = self.is_playing

            if not self.auto_advance:
                self.is_playing = False
                self.signals.playback_state_changed.emit(False)
                return False

            last_index = len(self.current_event.clip_groups) - 1
            if self.current_clip_index < last_index:
                if self.load_clip(self.current_clip_index + 1):
                    if was_playing:
                        self.play_all()
                    return True
                return False

            if self.loop_enabled:
                if self.load_clip(0):
                    if was_playing:
                        self.play_all()
                    return True
                return False

            self.is_playing = False
            self.signals.playback_state_changed.emit(False)
            self.signals.event_finished.emit()
            return False

        except Exception as e:
            self.handle_error(e, "handle_stream_ended")
            return False

    def _has_ended(self, handle: StreamHandle) -> bool:
        try:
            return handle.is_at_end_of_media()
        except StreamUnavailable:
            # A stream that cannot report does not hold up the others
            return True

    # ========================================
    # In/Out Marks
    # ========================================

    def mark_in_point(self) -> float:
        position = self.get_current_absolute_time()
        self.export_state.start_s = position
        if self.export_state.end_s is not None and position >= self.export_state.end_s:
            self.export_state.end_s = None
        self.signals.marks_changed.emit(self.export_state)
        return position

    def mark_out_point(self) -> float:
        position = self.get_current_absolute_time()
        self.export_state.end_s = position
        if self.export_state.start_s is not None and position <= self.export_state.start_s:
            self.export_state.start_s = None
        self.signals.marks_changed.emit(self.export_state)
        return position

    def clear_marks(self) -> None:
        self.export_state = ExportState()
        self.signals.marks_changed.emit(self.export_state)

    def get_marked_range(self) -> Optional[tuple]:
        if not self.export_state.is_complete:
            return None
        return self.export_state.start_s, self.export_state.end_s
