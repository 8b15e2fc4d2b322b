"""
Clip group assembly.

Turns the flat list of per-camera clip files found in a folder into the
chronological sequence of clip groups that the player walks through.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Iterable, List, NamedTuple, Union

from .state import CameraClip, CameraId, ClipGroup, ClipGroupSequence
from .timestamps import ClipParseError, parse_clip_timestamp
from . import utils

logger = logging.getLogger(__name__)


class RawClipEntry(NamedTuple):
    timestamp: str
    camera: str
    media_ref: Any


@dataclass(frozen=True)
class ClipParseFailure:
    entry: RawClipEntry
    error: ClipParseError

    def __str__(self) -> str:
        return f"{self.entry.media_ref}: {self.error}"


@dataclass
class AssemblyResult:
    sequence: ClipGroupSequence
    failures: List[ClipParseFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def group_clips(clips: Iterable[CameraClip]) -> ClipGroupSequence:
    """
    Group clips sharing a timestamp and sort the groups chronologically.

    A later clip for the same camera and timestamp replaces the earlier one.
    Groups that end up with no camera are dropped.
    """
    groups = {}
    for clip in clips:
        group = groups.get(clip.timestamp)
        if group is None:
            group = groups[clip.timestamp] = ClipGroup(clip.timestamp)
        group.clips_by_camera[clip.camera] = clip

    ordered = sorted((g for g in groups.values() if len(g) > 0), key=lambda g: g.timestamp)
    return ClipGroupSequence(ordered)


class ClipGroupAssembler:
    """Builds a ClipGroupSequence from raw ``(timestamp, camera, media_ref)`` tuples."""

    def parse_entry(self, entry: RawClipEntry) -> CameraClip:
        return CameraClip(
            timestamp=parse_clip_timestamp(entry.timestamp),
            camera=CameraId.from_name(entry.camera),
            media_ref=entry.media_ref,
        )

    def assemble(self, entries: Iterable[Union[RawClipEntry, tuple]]) -> AssemblyResult:
        clips = []
        failures = []
        for entry in entries:
            entry = RawClipEntry(*entry)
            try:
                clips.append(self.parse_entry(entry))
            except ClipParseError as e:
                logger.warning(f"Skipping clip {entry.media_ref}: {e}")
                failures.append(ClipParseFailure(entry, e))

        sequence = group_clips(clips)
        logger.debug(f"Assembled {len(clips)} clips into {len(sequence)} groups "
                     f"({len(failures)} failures)")
        return AssemblyResult(sequence, failures)

    def assemble_files(self, paths: Iterable[str]) -> AssemblyResult:
        """Assemble from file paths named ``TIMESTAMP-CAMERA.mp4``; other names are ignored."""
        entries = []
        for path in paths:
            parts = utils.split_clip_filename(os.path.basename(path))
            if parts is None:
                continue
            entries.append(RawClipEntry(parts[0], parts[1], path))
        return self.assemble(entries)
