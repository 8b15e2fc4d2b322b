from .version import __version__
from .timestamps import ClipParseError, ClipTimestamp, TimestampParseError, parse_clip_timestamp
from .state import (
    CameraClip, CameraId, ClipEvent, ClipGroup, ClipGroupSequence,
    RecordingGap, SyncStats, SyncStatus, UnknownCameraError,
)
from .assembly import ClipGroupAssembler, group_clips
from .gaps import GapDetector
from .timeline import AbsoluteTimeMapper
from .streams import StreamHandle, StreamUnavailable
