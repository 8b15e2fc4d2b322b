"""
Clip Manager for ClipSync.

Discovers events in a TeslaCam folder tree and turns each one into a clip
group sequence annotated with recording gaps.

Layouts understood:
- SavedClips/ and SentryClips/ hold one folder per event, named with the
  event timestamp, containing clip files, event.json, thumb.png and event.mp4
- RecentClips/ is flat; its clips are bucketed into one synthetic event per hour
- a folder of clips selected directly is treated as a single event
"""

import json
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional
from PyQt6.QtCore import QObject, pyqtSignal, QThread

from .base import BaseManager
from ..assembly import ClipGroupAssembler, ClipParseFailure, RawClipEntry
from ..gaps import GapDetector
from ..state import CameraId, ClipEvent, ClipGroupSequence
from ..timestamps import ClipParseError, parse_clip_timestamp
from .. import utils

MAX_SEARCH_DEPTH = 10


@dataclass
class EventScanResult:
    """Events found under a root folder plus the clip files that could not be read."""
    root_path: str
    events: List[ClipEvent] = field(default_factory=list)
    failures: List[ClipParseFailure] = field(default_factory=list)
    error: Optional[str] = None


class EventFolderScanner:
    """Walks a folder tree and builds ClipEvents. Has no Qt dependencies."""

    def __init__(self, assembler: ClipGroupAssembler, gap_detector: GapDetector,
                 logger, progress_callback: Optional[Callable[[str, int], None]] = None,
                 should_continue: Optional[Callable[[], bool]] = None):
        self.assembler = assembler
        self.gap_detector = gap_detector
        self.logger = logger
        self.progress_callback = progress_callback
        self.should_continue = should_continue or (lambda: True)
        self._result: Optional[EventScanResult] = None

    def scan(self, root_path: str) -> EventScanResult:
        self._result = EventScanResult(root_path)
        if not os.path.isdir(root_path):
            self._result.error = f"Not a folder: {root_path}"
            return self._result

        self._search_directory(root_path, 0)
        self._result.events.sort(key=lambda e: e.timestamp, reverse=True)
        return self._result

    def _report(self, message: str) -> None:
        if self.progress_callback:
            self.progress_callback(message, len(self._result.events))

    def _search_directory(self, path: str, depth: int) -> None:
        if depth > MAX_SEARCH_DEPTH or not self.should_continue():
            return

        names = sorted(os.listdir(path))
        has_clips = any(n.endswith('.mp4') and os.path.isfile(os.path.join(path, n)) for n in names)

        if has_clips:
            folder_name = os.path.basename(os.path.normpath(path))
            if 'Recent' in folder_name:
                self._parse_recent_clips(path)
                return
            folder_type = 'SentryClips' if 'Sentry' in folder_name else 'SavedClips'
            self._add_event(self._parse_event(path, folder_type))
            # Event folders are leaves
            return

        for name in names:
            sub_path = os.path.join(path, name)
            if not os.path.isdir(sub_path):
                continue
            if name in utils.EVENT_FOLDER_TYPES:
                self._parse_event_folder(sub_path, name)
            else:
                self._search_directory(sub_path, depth + 1)

    def _parse_event_folder(self, path: str, folder_type: str) -> None:
        self._report(f"Scanning {folder_type}...")

        if folder_type == 'RecentClips':
            self._parse_recent_clips(path)
            return

        for name in sorted(os.listdir(path)):
            if not self.should_continue():
                return
            sub_path = os.path.join(path, name)
            if os.path.isdir(sub_path):
                self._add_event(self._parse_event(sub_path, folder_type))
                if len(self._result.events) % 10 == 0:
                    self._report(f"Scanning {folder_type}...")

    def _add_event(self, event: Optional[ClipEvent]) -> None:
        if event is not None:
            self._result.events.append(event)

    def _parse_event(self, path: str, folder_type: str) -> Optional[ClipEvent]:
        name = os.path.basename(os.path.normpath(path))
        try:
            event_ts = parse_clip_timestamp(name)
        except ClipParseError:
            self.logger.debug(f"Skipping non-event folder {path}")
            return None

        event = ClipEvent(name=name, folder_type=folder_type,
                          timestamp=event_ts.instant, folder_path=path)
        clip_paths = []

        for filename in sorted(os.listdir(path)):
            file_path = os.path.join(path, filename)
            if not os.path.isfile(file_path):
                continue
            if filename == 'event.json':
                event.metadata = self._read_metadata(file_path)
            elif filename == 'thumb.png':
                event.thumbnail_path = file_path
            elif filename == 'event.mp4':
                event.event_video_path = file_path
            elif filename.endswith('.mp4'):
                clip_paths.append(file_path)

        result = self.assembler.assemble_files(clip_paths)
        self._result.failures.extend(result.failures)
        event.clip_groups = result.sequence
        event.gaps = self.gap_detector.detect(result.sequence)
        return event

    def _parse_recent_clips(self, path: str) -> None:
        entries = []
        for filename in sorted(os.listdir(path)):
            parts = utils.split_clip_filename(filename)
            if parts is not None:
                entries.append(RawClipEntry(parts[0], parts[1], os.path.join(path, filename)))

        result = self.assembler.assemble(entries)
        self._result.failures.extend(result.failures)
        if not result.sequence:
            return

        hourly: Dict[tuple, list] = {}
        for group in result.sequence:
            instant = group.timestamp.instant
            hourly.setdefault((instant.date(), instant.hour), []).append(group)

        for (day, hour), groups in hourly.items():
            sequence = ClipGroupSequence(groups)
            hour_range = utils.format_hour_range(hour)
            self._add_event(ClipEvent(
                name=f"Recent: {utils.format_event_date(day)} {hour_range}",
                folder_type='RecentClips',
                timestamp=groups[0].timestamp.instant,
                folder_path=path,
                clip_groups=sequence,
                gaps=self.gap_detector.detect(sequence),
                metadata={
                    'hourKey': f"{day.isoformat()}_{hour:02d}",
                    'clipCount': len(groups),
                    'reason': f"{len(groups)} clips from {hour_range}",
                },
            ))

    def _read_metadata(self, file_path: str) -> Optional[dict]:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return data if isinstance(data, dict) else None
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            self.logger.warning(f"Error reading {file_path}: {e}")
            return None


class ClipManagerSignals(QObject):
    """Signals for ClipManager communication with UI."""
    scan_started = pyqtSignal(str)  # root_path
    scan_progress = pyqtSignal(int, str)  # events_found, status_message
    scan_completed = pyqtSignal(object)  # EventScanResult
    scan_failed = pyqtSignal(str)  # error_message
    files_skipped = pyqtSignal(list)  # descriptions of unreadable clip files


class ClipManager(BaseManager):
    """
    Manages event discovery.

    Handles:
    - synchronous and threaded scans of a TeslaCam folder tree
    - clip grouping and gap detection per event
    - reporting of clip files that could not be parsed
    """

    def __init__(self, parent, dependency_container=None):
        super().__init__(parent, dependency_container)

        self.signals = ClipManagerSignals()

        self.root_clips_path: Optional[str] = None
        self.events: List[ClipEvent] = []
        self.last_result: Optional[EventScanResult] = None

        self.assembler = ClipGroupAssembler()
        self.gap_detector = GapDetector()

        self.scan_worker = None
        self.scan_thread: Optional[QThread] = None
        self.is_loading = False

    def initialize(self) -> bool:
        try:
            config_manager = self.get_service('configuration')
            if config_manager is not None:
                sync_config = config_manager.get_sync_config()
                self.gap_detector = GapDetector(sync_config.expected_clip_duration_s,
                                                sync_config.gap_tolerance_s)
            self._mark_initialized()
            return True

        except Exception as e:
            self.handle_error(e, "ClipManager initialization")
            return False

    def cleanup(self) -> None:
        try:
            self._mark_cleanup_started()
            self.stop_scanning()
            self.events = []
            self.last_result = None
        except Exception as e:
            self.handle_error(e, "ClipManager cleanup")

    def _create_scanner(self, progress_callback=None, should_continue=None) -> EventFolderScanner:
        return EventFolderScanner(self.assembler, self.gap_detector, self.logger,
                                  progress_callback, should_continue)

    def scan_root(self, path: str) -> EventScanResult:
        """Scan ``path`` on the calling thread."""
        self.root_clips_path = path
        self.signals.scan_started.emit(path)
        try:
            result = self._create_scanner(
                lambda message, count: self.signals.scan_progress.emit(count, message)
            ).scan(path)
        except OSError as e:
            self.handle_error(e, f"scan_root({path})")
            result = EventScanResult(path, error=str(e))

        self._on_scan_finished(result)
        return result

    def load_events_async(self, path: str) -> bool:
        """Scan ``path`` on a worker thread; results arrive through ``scan_completed``."""
        from ..workers import EventScanWorker

        if self.is_loading:
            self.logger.warning("Event scan already in progress")
            return False

        try:
            self.root_clips_path = path
            self.is_loading = True
            self.signals.scan_started.emit(path)

            self.scan_worker = EventScanWorker(path, self._create_scanner)
            self.scan_thread = QThread()
            self.scan_worker.moveToThread(self.scan_thread)

            self.scan_thread.started.connect(self.scan_worker.run)
            self.scan_worker.progress.connect(self.signals.scan_progress.emit)
            self.scan_worker.finished.connect(self._on_scan_finished)
            self.scan_worker.finished.connect(self.scan_thread.quit)
            self.scan_worker.finished.connect(self.scan_worker.deleteLater)
            self.scan_thread.finished.connect(self.scan_thread.deleteLater)

            self.scan_thread.start()
            return True

        except Exception as e:
            self.is_loading = False
            self.handle_error(e, f"load_events_async({path})")
            self.signals.scan_failed.emit(str(e))
            return False

    def stop_scanning(self) -> None:
        if self.scan_worker:
            self.scan_worker.stop()

        if self.scan_thread:
            try:
                if self.scan_thread.isRunning():
                    self.scan_thread.quit()
                    self.scan_thread.wait(3000)
            except RuntimeError:
                # Thread object already deleted by Qt
                pass

        self.scan_thread = None
        self.scan_worker = None
        self.is_loading = False

    def _on_scan_finished(self, result: EventScanResult) -> None:
        self.is_loading = False
        self.last_result = result

        if result.error:
            self.logger.warning(f"Event scan of {result.root_path} failed: {result.error}")
            self.signals.scan_failed.emit(result.error)
            return

        self.events = result.events
        if result.failures:
            self.logger.warning(f"Skipped {len(result.failures)} unreadable clip file(s)")
            self.signals.files_skipped.emit([str(f) for f in result.failures])

        self.logger.info(f"Found {len(result.events)} events in {result.root_path}")
        self.signals.scan_completed.emit(result)

    def get_events(self) -> List[ClipEvent]:
        return list(self.events)

    def find_event(self, name: str) -> Optional[ClipEvent]:
        return next((e for e in self.events if e.name == name), None)

    def get_clip_path(self, event: ClipEvent, clip_index: int, camera: CameraId) -> Optional[str]:
        if not 0 <= clip_index < len(event.clip_groups):
            return None
        clip = event.clip_groups[clip_index].clip_for(camera)
        return clip.media_ref if clip else None

    @staticmethod
    def format_reason(reason: Optional[str]) -> str:
        return utils.format_reason(reason)
