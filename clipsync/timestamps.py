"""
Clip timestamp codec.

Tesla writes the recording start into every clip file name and event folder
name as a fixed-width ``YYYY-MM-DD_HH-MM-SS`` string. Zero padding makes the
text order and the instant order agree, so either may be used for sorting.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta

TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
timestamp_pattern = re.compile(r"\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2}", re.ASCII)


class ClipParseError(ValueError):
    """Base class for clip file names that cannot be turned into clips."""


class TimestampParseError(ClipParseError):
    """Raised when a clip timestamp is malformed or names an impossible instant."""

    def __init__(self, text, reason=None):
        self.text = text
        message = f"Invalid clip timestamp {text!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


@dataclass(frozen=True, order=True)
class ClipTimestamp:
    """A recording start instant with one-second resolution."""
    instant: datetime

    @classmethod
    def parse(cls, text: str) -> "ClipTimestamp":
        return parse_clip_timestamp(text)

    def __str__(self) -> str:
        return format_clip_timestamp(self)

    def to_iso(self) -> str:
        date_part, time_part = format_clip_timestamp(self).split("_")
        return f"{date_part}T{time_part.replace('-', ':')}"

    def seconds_until(self, other: "ClipTimestamp") -> float:
        return (other.instant - self.instant).total_seconds()

    def shifted(self, seconds: float) -> datetime:
        return self.instant + timedelta(seconds=seconds)


def parse_clip_timestamp(text: str) -> ClipTimestamp:
    if not isinstance(text, str) or not timestamp_pattern.fullmatch(text):
        raise TimestampParseError(text, "expected YYYY-MM-DD_HH-MM-SS")
    try:
        instant = datetime.strptime(text, TIMESTAMP_FORMAT)
    except ValueError as e:
        raise TimestampParseError(text, str(e)) from e
    return ClipTimestamp(instant)


def format_clip_timestamp(ts: ClipTimestamp) -> str:
    # strftime does not zero-pad years below 1000 on every platform
    d = ts.instant
    return (f"{d.year:04d}-{d.month:02d}-{d.day:02d}_"
            f"{d.hour:02d}-{d.minute:02d}-{d.second:02d}")
