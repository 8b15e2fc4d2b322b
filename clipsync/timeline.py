"""
Absolute event time.

An event is played clip by clip, but marks, seeks and gap markers are
expressed as one number of seconds from the start of the event. Both
directions of the conversion read the same duration table, so a time taken
from the player always seeks back to the same clip and offset.
"""

import logging
import math
from typing import List, Optional, Tuple

from .state import RecordingGap

logger = logging.getLogger(__name__)

ESTIMATED_CLIP_DURATION_S = 60.0


class AbsoluteTimeMapper:
    """Per-event clip duration table with conversions to and from absolute seconds."""

    def __init__(self, clip_count: int, estimated_duration: float = ESTIMATED_CLIP_DURATION_S):
        if clip_count < 0:
            raise ValueError(f"clip_count must be >= 0, got {clip_count}")
        self.estimated_duration = float(estimated_duration)
        self._durations: List[Optional[float]] = [None] * clip_count

    def __len__(self) -> int:
        return len(self._durations)

    def record_duration(self, clip_index: int, seconds: float) -> bool:
        """Cache the observed duration of a clip. Unusable values are ignored."""
        self._check_index(clip_index)
        if seconds is None or not math.isfinite(seconds) or seconds <= 0:
            return False
        if self._durations[clip_index] != seconds:
            logger.debug(f"Clip {clip_index} duration {seconds:.3f}s")
        self._durations[clip_index] = float(seconds)
        return True

    def duration_of(self, clip_index: int) -> float:
        self._check_index(clip_index)
        cached = self._durations[clip_index]
        return cached if cached is not None else self.estimated_duration

    def is_known(self, clip_index: int) -> bool:
        self._check_index(clip_index)
        return self._durations[clip_index] is not None

    def known_count(self) -> int:
        return sum(1 for d in self._durations if d is not None)

    def clip_start(self, clip_index: int) -> float:
        self._check_index(clip_index)
        total = 0.0
        for i in range(clip_index):
            total += self.duration_of(i)
        return total

    def total_duration(self) -> float:
        total = 0.0
        for i in range(len(self._durations)):
            total += self.duration_of(i)
        return total

    def to_absolute(self, clip_index: int, offset: float) -> float:
        return self.clip_start(clip_index) + offset

    def from_absolute(self, seconds: float) -> Tuple[int, float]:
        count = len(self._durations)
        if count == 0 or seconds <= 0:
            return 0, 0.0

        accumulated = 0.0
        for i in range(count):
            duration = self.duration_of(i)
            if accumulated + duration > seconds:
                return i, seconds - accumulated
            accumulated += duration

        last = count - 1
        return last, self.duration_of(last)

    def gap_marker_position(self, gap: RecordingGap) -> float:
        """Absolute time at which a gap marker is drawn: the end of the clip before it."""
        index = min(gap.after_index, len(self._durations) - 1)
        return self.to_absolute(index, self.duration_of(index))

    def _check_index(self, clip_index: int) -> None:
        if not 0 <= clip_index < len(self._durations):
            raise IndexError(f"Clip index {clip_index} out of range (0..{len(self._durations) - 1})")
