import logging
from typing import List

from .state import ClipGroupSequence, RecordingGap

logger = logging.getLogger(__name__)

EXPECTED_CLIP_DURATION_S = 60.0
# Clip lengths wander by a few seconds; only flag clearly missing footage
GAP_TOLERANCE_S = 30.0


class GapDetector:
    """Finds recording discontinuities between adjacent clip groups."""

    def __init__(self, expected_clip_duration: float = EXPECTED_CLIP_DURATION_S,
                 gap_tolerance: float = GAP_TOLERANCE_S):
        self.expected_clip_duration = float(expected_clip_duration)
        self.gap_tolerance = float(gap_tolerance)

    def detect(self, sequence: ClipGroupSequence) -> List[RecordingGap]:
        gaps = []
        for i in range(len(sequence) - 1):
            current, following = sequence[i].timestamp, sequence[i + 1].timestamp
            gap = current.seconds_until(following) - self.expected_clip_duration
            if gap > self.gap_tolerance:
                gaps.append(RecordingGap(
                    after_index=i,
                    expected_start=current.shifted(self.expected_clip_duration),
                    actual_start=following.instant,
                    duration=gap,
                ))

        if gaps:
            logger.debug(f"Detected {len(gaps)} recording gap(s) in {len(sequence)} clip groups")
        return gaps


def total_gap_duration(gaps: List[RecordingGap]) -> float:
    return sum(g.duration for g in gaps)
