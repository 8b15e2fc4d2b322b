"""
Sync Controller

Keeps the camera streams of the current clip in lock-step. A QTimer samples
every registered stream on a fixed wall-clock cadence; when the spread
between the furthest-ahead and furthest-behind stream exceeds the drift
threshold, the faster streams are seeked back to the slowest one. Seeking
backwards lands in data that is already buffered, so it never stalls.

Corrections are throttled: they only happen in the first seconds of a clip
or once per sync interval of clip time, and never close to the end of a clip,
where the roll-over to the next clip realigns the streams anyway.
"""

import math
import threading
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from PyQt6.QtCore import QObject, Qt, QTimer, pyqtSignal

from .base import BaseManager
from .configuration import SyncConfig
from ..state import CameraId, SyncStats, SyncStatus
from ..streams import StreamHandle, StreamUnavailable


class SyncControllerSignals(QObject):
    """Signals for SyncController."""
    sync_status_changed = pyqtSignal(str)  # 'synced' / 'drifted'
    streams_resynced = pyqtSignal(int)  # number of streams seeked
    monitoring_changed = pyqtSignal(bool)  # is_monitoring


@dataclass(frozen=True)
class StreamSample:
    """One stream's state, read once per check."""
    camera: CameraId
    handle: StreamHandle
    position: float
    duration: float
    playing: bool
    ended: bool

    @property
    def has_position(self) -> bool:
        return math.isfinite(self.position) and self.position > 0

    @property
    def is_active(self) -> bool:
        return not self.ended and self.playing and self.has_position


class SyncController(BaseManager):
    """
    Drift monitor and corrector for the streams of one clip group.

    States are Idle and Monitoring; ``start()`` and ``stop()`` move between
    them. Stream registration and checks share a lock, so the stream set
    never changes while a check is running.
    """

    def __init__(self, parent, dependency_container=None, config: Optional[SyncConfig] = None):
        super().__init__(parent, dependency_container)

        self.signals = SyncControllerSignals()
        self.config = config or SyncConfig()

        self._streams: Dict[CameraId, StreamHandle] = {}
        self._lock = threading.RLock()
        self._timer: Optional[QTimer] = None

        self.is_monitoring = False
        # Clip-relative playback time of the last correction
        self.last_sync_time = 0.0
        self._sync_status = SyncStatus.SYNCED

    def initialize(self) -> bool:
        try:
            self._ensure_timer()
            self._mark_initialized()
            return True
        except Exception as e:
            self.handle_error(e, "SyncController initialization")
            return False

    def cleanup(self) -> None:
        try:
            self._mark_cleanup_started()
            self.stop()
            self.clear_streams()
            if self._timer is not None:
                self._timer.timeout.disconnect(self._on_timer_tick)
                self._timer.deleteLater()
                self._timer = None
        except Exception as e:
            self.handle_error(e, "SyncController cleanup")

    # ========================================
    # Stream Registration
    # ========================================

    def register_stream(self, camera: CameraId, handle: StreamHandle) -> None:
        with self._lock:
            self._streams[camera] = handle

    def unregister_stream(self, camera: CameraId) -> Optional[StreamHandle]:
        with self._lock:
            return self._streams.pop(camera, None)

    def set_streams(self, streams: Mapping[CameraId, StreamHandle]) -> None:
        """Replace the whole stream set, e.g. on a clip transition."""
        with self._lock:
            self._streams = dict(streams)

    def clear_streams(self) -> None:
        with self._lock:
            self._streams.clear()

    def get_streams(self) -> Dict[CameraId, StreamHandle]:
        with self._lock:
            return dict(self._streams)

    # ========================================
    # Monitoring Lifecycle
    # ========================================

    def start(self) -> None:
        with self._lock:
            if self.is_monitoring:
                return
            self.is_monitoring = True
            self.last_sync_time = 0.0
            timer = self._ensure_timer()
            timer.start(self.config.check_interval_ms)

        self.signals.monitoring_changed.emit(True)
        self.logger.debug(f"Sync monitoring started ({self.config.check_interval_ms}ms cadence)")

    def stop(self) -> None:
        """Stop monitoring. Safe to call repeatedly; no check runs after it returns."""
        with self._lock:
            was_monitoring = self.is_monitoring
            self.is_monitoring = False
            if self._timer is not None and self._timer.isActive():
                self._timer.stop()

        self._update_sync_status(SyncStatus.SYNCED)
        if was_monitoring:
            self.signals.monitoring_changed.emit(False)
            self.logger.debug("Sync monitoring stopped")

    def reset_sync_timer(self) -> None:
        """Forget the last correction; call whenever the active clip changes."""
        with self._lock:
            self.last_sync_time = 0.0

    def update_config(self, config: SyncConfig) -> None:
        with self._lock:
            self.config = config
            if self._timer is not None:
                self._timer.setInterval(config.check_interval_ms)

    def is_timer_active(self) -> bool:
        return self._timer is not None and self._timer.isActive()

    @property
    def sync_status(self) -> SyncStatus:
        return self._sync_status

    def _ensure_timer(self) -> QTimer:
        if self._timer is None:
            self._timer = QTimer()
            self._timer.setTimerType(Qt.TimerType.PreciseTimer)
            self._timer.setInterval(self.config.check_interval_ms)
            self._timer.timeout.connect(self._on_timer_tick)
        return self._timer

    def _on_timer_tick(self) -> None:
        with self._lock:
            # A timeout already queued when stop() ran is dropped here
            if not self.is_monitoring:
                return
            self.check_and_correct_sync()

    # ========================================
    # Drift Detection and Correction
    # ========================================

    def check_and_correct_sync(self) -> SyncStatus:
        """Run one monitoring check. Never raises; unexpected failures report DRIFTED."""
        try:
            with self._lock:
                status = self._check_and_correct()
        except Exception as e:
            self.handle_error(e, "check_and_correct_sync")
            status = SyncStatus.DRIFTED

        self._update_sync_status(status)
        return status

    def _check_and_correct(self) -> SyncStatus:
        cfg = self.config
        active = [s for s in self._sample_streams() if s.is_active]
        if len(active) < 2:
            return SyncStatus.SYNCED

        positions = [s.position for s in active]
        avg_position = sum(positions) / len(positions)
        min_duration = min(self._usable_duration(s.duration) for s in active)

        if avg_position > min_duration - cfg.end_of_clip_buffer_s:
            return SyncStatus.SYNCED

        min_time = min(positions)
        drift = max(positions) - min_time
        if drift <= cfg.drift_threshold_s:
            return SyncStatus.SYNCED

        eligible = (avg_position < cfg.clip_start_window_s or
                    avg_position - self.last_sync_time >= cfg.sync_interval_s)
        if not eligible:
            return SyncStatus.DRIFTED

        self.logger.debug(f"Drift {drift:.3f}s at {avg_position:.2f}s, aligning to {min_time:.3f}s")
        self._resync(active, min_time, cfg.drift_threshold_s)
        self.last_sync_time = avg_position
        return SyncStatus.DRIFTED

    def force_resync(self) -> int:
        """
        Align streams to the slowest one now, ignoring throttling and tolerance.

        Meant for right after a manual seek or clip transition, so play state
        is not required; streams without a usable position yet are left alone.

        Returns:
            int: number of streams seeked
        """
        try:
            with self._lock:
                candidates = [s for s in self._sample_streams() if not s.ended and s.has_position]
                if len(candidates) < 2:
                    return 0

                positions = [s.position for s in candidates]
                seeks = self._resync(candidates, min(positions), 0.0)
                self.last_sync_time = sum(positions) / len(positions)
                return seeks

        except Exception as e:
            self.handle_error(e, "force_resync")
            return 0

    def get_sync_stats(self) -> SyncStats:
        with self._lock:
            positions = [s.position for s in self._sample_streams() if s.has_position]

        if not positions:
            return SyncStats()

        min_time, max_time = min(positions), max(positions)
        drift = max_time - min_time
        return SyncStats(min_time=min_time, max_time=max_time, drift=drift,
                         synced=drift <= self.config.drift_threshold_s)

    def _resync(self, samples: List[StreamSample], target: float, tolerance: float) -> int:
        # Every decision uses the pre-computed target, not post-seek positions
        seeks = 0
        for sample in samples:
            if abs(sample.position - target) <= tolerance:
                continue
            try:
                sample.handle.seek_to(target)
                seeks += 1
            except (StreamUnavailable, RuntimeError) as e:
                self.logger.warning(f"Cannot seek {sample.camera.value}: {e}")

        if seeks:
            self.signals.streams_resynced.emit(seeks)
        return seeks

    def _sample_streams(self) -> List[StreamSample]:
        samples = []
        for camera, handle in self._streams.items():
            try:
                samples.append(StreamSample(
                    camera=camera,
                    handle=handle,
                    position=float(handle.current_position()),
                    duration=float(handle.duration()),
                    playing=bool(handle.is_playing()),
                    ended=bool(handle.is_at_end_of_media()),
                ))
            except StreamUnavailable as e:
                self.logger.debug(f"Skipping {camera.value} this check: {e}")
            except (TypeError, ValueError, RuntimeError) as e:
                self.logger.warning(f"Stream {camera.value} reported an unusable state: {e}")
        return samples

    def _usable_duration(self, duration: float) -> float:
        if math.isfinite(duration) and duration > 0:
            return duration
        return self.config.estimated_clip_duration_s

    def _update_sync_status(self, status: SyncStatus) -> None:
        if status is self._sync_status:
            return
        self._sync_status = status
        self.signals.sync_status_changed.emit(status.value)
