"""
Pytest configuration and fixtures for ClipSync tests.
"""

import json
import sys
from pathlib import Path

import pytest

# Make the project root importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent))

from PyQt6.QtCore import QCoreApplication

from clipsync.streams import StreamHandle, StreamUnavailable

CAMERAS_4 = ('front', 'back', 'left_repeater', 'right_repeater')


@pytest.fixture(scope='session', autouse=True)
def qapp():
    """One Qt application for the whole run; QTimer and QThread need it."""
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


class FakeStream(StreamHandle):
    """In-memory stream handle with directly settable state."""

    def __init__(self, position=0.0, length=60.0, playing=True, ended=False, camera=None):
        self.position = position
        self.length = length
        self.playing = playing
        self.ended = ended
        self.camera = camera
        self.unavailable = False
        self.fail_seeks = False
        self.seeks = []
        self.rate = 1.0
        self.released = False

    def _check(self):
        if self.unavailable:
            raise StreamUnavailable("not ready")

    def current_position(self):
        self._check()
        return self.position

    def duration(self):
        self._check()
        return self.length

    def is_playing(self):
        self._check()
        return self.playing

    def is_at_end_of_media(self):
        self._check()
        return self.ended

    def seek_to(self, seconds):
        if self.fail_seeks:
            raise StreamUnavailable("seek rejected")
        self.seeks.append(seconds)
        self.position = seconds

    def play(self):
        self.playing = True

    def pause(self):
        self.playing = False

    def set_playback_rate(self, rate):
        self.rate = rate

    def release(self):
        self.released = True


class FakeStreamFactory:
    """Stream factory recording every handle it creates."""

    def __init__(self, length=60.0, failing_cameras=()):
        self.length = length
        self.failing_cameras = set(failing_cameras)
        self.created = []

    def __call__(self, clip):
        if clip.camera.value in self.failing_cameras:
            raise StreamUnavailable(f"cannot open {clip.media_ref}")
        stream = FakeStream(position=0.0, length=self.length, playing=False, camera=clip.camera)
        self.created.append(stream)
        return stream


@pytest.fixture
def fake_stream():
    return FakeStream


@pytest.fixture
def stream_factory():
    return FakeStreamFactory


class TeslaCamBuilder:
    """Creates TeslaCam style folder trees with empty clip files."""

    def __init__(self, root: Path):
        self.root = root

    def clips(self, folder: Path, timestamps, cameras=CAMERAS_4):
        folder.mkdir(parents=True, exist_ok=True)
        for ts in timestamps:
            for cam in cameras:
                (folder / f"{ts}-{cam}.mp4").write_bytes(b"")
        return folder

    def event(self, folder_type, name, timestamps, cameras=CAMERAS_4,
              metadata=None, thumbnail=False, event_video=False):
        folder = self.clips(self.root / 'TeslaCam' / folder_type / name, timestamps, cameras)
        if metadata is not None:
            (folder / 'event.json').write_text(json.dumps(metadata), encoding='utf-8')
        if thumbnail:
            (folder / 'thumb.png').write_bytes(b"\x89PNG")
        if event_video:
            (folder / 'event.mp4').write_bytes(b"")
        return folder

    def recent(self, timestamps, cameras=CAMERAS_4):
        return self.clips(self.root / 'TeslaCam' / 'RecentClips', timestamps, cameras)


@pytest.fixture
def teslacam(tmp_path):
    return TeslaCamBuilder(tmp_path)
