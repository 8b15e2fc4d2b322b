from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Iterator

from .timestamps import ClipParseError, ClipTimestamp


class UnknownCameraError(ClipParseError):
    """Raised for a camera name outside the Tesla camera set."""

    def __init__(self, name):
        self.name = name
        super().__init__(f"Unknown camera {name!r}")


class CameraId(Enum):
    FRONT = "front"
    BACK = "back"
    LEFT_REPEATER = "left_repeater"
    RIGHT_REPEATER = "right_repeater"
    LEFT_PILLAR = "left_pillar"
    RIGHT_PILLAR = "right_pillar"

    @classmethod
    def from_name(cls, name: str) -> "CameraId":
        try:
            return cls(name)
        except ValueError:
            raise UnknownCameraError(name) from None

    @property
    def is_pillar(self) -> bool:
        return self in (CameraId.LEFT_PILLAR, CameraId.RIGHT_PILLAR)


# Display and load order used by the playback surface
CAMERA_ORDER = (
    CameraId.FRONT, CameraId.BACK, CameraId.LEFT_REPEATER,
    CameraId.RIGHT_REPEATER, CameraId.LEFT_PILLAR, CameraId.RIGHT_PILLAR,
)


class SyncStatus(Enum):
    SYNCED = "synced"
    DRIFTED = "drifted"


@dataclass(frozen=True)
class CameraClip:
    """One camera's media file for one recording instant."""
    timestamp: ClipTimestamp
    camera: CameraId
    media_ref: Any = field(compare=False)


@dataclass
class ClipGroup:
    """Clips from every camera that started recording at the same instant."""
    timestamp: ClipTimestamp
    clips_by_camera: dict[CameraId, CameraClip] = field(default_factory=dict)

    @property
    def cameras(self) -> list[CameraId]:
        return [cam for cam in CAMERA_ORDER if cam in self.clips_by_camera]

    @property
    def has_pillar_cameras(self) -> bool:
        return any(cam.is_pillar for cam in self.clips_by_camera)

    def clip_for(self, camera: CameraId) -> CameraClip | None:
        return self.clips_by_camera.get(camera)

    def __len__(self) -> int:
        return len(self.clips_by_camera)


class ClipGroupSequence:
    """
    Chronologically ordered clip groups of one event.

    Timestamps are strictly increasing; the sequence is never modified after
    construction.
    """

    def __init__(self, groups: Iterable[ClipGroup] = ()):
        self._groups = tuple(groups)
        for prev, cur in zip(self._groups, self._groups[1:]):
            if not prev.timestamp < cur.timestamp:
                raise ValueError(
                    f"Clip groups out of order: {prev.timestamp} then {cur.timestamp}")

    def __len__(self) -> int:
        return len(self._groups)

    def __getitem__(self, index):
        return self._groups[index]

    def __iter__(self) -> Iterator[ClipGroup]:
        return iter(self._groups)

    def __bool__(self) -> bool:
        return bool(self._groups)

    def __repr__(self) -> str:
        if not self._groups:
            return "ClipGroupSequence([])"
        return (f"ClipGroupSequence({len(self._groups)} groups, "
                f"{self._groups[0].timestamp}..{self._groups[-1].timestamp})")

    @property
    def timestamps(self) -> list[ClipTimestamp]:
        return [g.timestamp for g in self._groups]

    @property
    def has_pillar_cameras(self) -> bool:
        return any(g.has_pillar_cameras for g in self._groups)

    def index_of(self, timestamp: ClipTimestamp) -> int:
        for i, group in enumerate(self._groups):
            if group.timestamp == timestamp:
                return i
        raise ValueError(f"No clip group at {timestamp}")


@dataclass(frozen=True)
class RecordingGap:
    """A stretch of missing recording between two adjacent clip groups."""
    after_index: int
    expected_start: datetime
    actual_start: datetime
    duration: float

    @property
    def start_time(self) -> datetime:
        return self.expected_start

    @property
    def end_time(self) -> datetime:
        return self.actual_start

    @property
    def duration_seconds(self) -> float:
        return self.duration

    @property
    def formatted_duration(self) -> str:
        from .utils import format_gap_duration
        return format_gap_duration(self.duration)

    def to_dict(self) -> dict:
        return {
            'afterIndex': self.after_index,
            'startTime': self.expected_start.isoformat(),
            'endTime': self.actual_start.isoformat(),
            'durationSeconds': self.duration,
        }


@dataclass(frozen=True)
class SyncStats:
    """Snapshot of stream positions reported by the sync controller."""
    min_time: float = 0.0
    max_time: float = 0.0
    drift: float = 0.0
    synced: bool = True

    def to_dict(self) -> dict:
        return {
            'minTime': self.min_time,
            'maxTime': self.max_time,
            'drift': self.drift,
            'synced': self.synced,
        }


@dataclass
class ClipEvent:
    """A recording session found on disk: a saved, sentry or recent clip set."""
    name: str
    folder_type: str
    timestamp: datetime
    folder_path: str
    clip_groups: ClipGroupSequence = field(default_factory=ClipGroupSequence)
    gaps: list[RecordingGap] = field(default_factory=list)
    metadata: dict | None = None
    thumbnail_path: str | None = None
    event_video_path: str | None = None

    @property
    def has_pillar_cameras(self) -> bool:
        return self.clip_groups.has_pillar_cameras

    @property
    def is_empty(self) -> bool:
        return len(self.clip_groups) == 0

    @property
    def reason(self) -> str | None:
        if self.metadata:
            return self.metadata.get('reason')
        return None

    @property
    def is_sentry_event(self) -> bool:
        if self.folder_type == 'SentryClips':
            return True
        reason = self.reason
        return bool(reason) and 'sentry' in str(reason).lower()


@dataclass
class ExportState:
    """In and out marks in absolute event seconds."""
    start_s: float | None = None
    end_s: float | None = None

    @property
    def is_complete(self) -> bool:
        return self.start_s is not None and self.end_s is not None
