"""
Tests for VideoPlaybackManager using fake stream handles.
"""

from datetime import datetime

import pytest

from clipsync.assembly import ClipGroupAssembler
from clipsync.managers.video_playback import VideoPlaybackManager
from clipsync.state import CameraId, ClipEvent

CAMERAS = ('front', 'back', 'left_repeater', 'right_repeater')


def make_event(clip_count=3, folder_type='SavedClips', cameras=CAMERAS):
    entries = [
        (f"2024-03-15_14-{30 + i:02d}-00", cam, f"/clips/2024-03-15_14-{30 + i:02d}-00-{cam}.mp4")
        for i in range(clip_count) for cam in cameras
    ]
    sequence = ClipGroupAssembler().assemble(entries).sequence
    return ClipEvent(name='2024-03-15_14-35-00', folder_type=folder_type,
                     timestamp=datetime(2024, 3, 15, 14, 35), folder_path='/clips',
                     clip_groups=sequence)


@pytest.fixture
def factory(stream_factory):
    return stream_factory()


@pytest.fixture
def playback(factory):
    manager = VideoPlaybackManager(None, stream_factory=factory)
    assert manager.initialize()
    yield manager
    manager.cleanup()
    manager.sync_controller.cleanup()


def front(manager):
    return manager.streams[CameraId.FRONT]


class TestLoading:

    def test_load_event_opens_first_clip(self, playback, factory):
        segments = []
        playback.signals.segment_changed.connect(segments.append)

        assert playback.load_event(make_event())

        assert playback.current_clip_index == 0
        assert list(playback.streams) == [
            CameraId.FRONT, CameraId.BACK, CameraId.LEFT_REPEATER, CameraId.RIGHT_REPEATER]
        assert len(factory.created) == 4
        assert playback.sync_controller.get_streams() == playback.streams
        assert playback.sync_controller.is_monitoring
        assert segments == [0]

    def test_empty_event_is_rejected(self, playback):
        assert not playback.load_event(make_event(clip_count=0))
        assert playback.current_event is None

    def test_load_clip_swaps_streams(self, playback):
        playback.load_event(make_event())
        old = list(playback.streams.values())
        playback.sync_controller.last_sync_time = 12.0

        assert playback.load_clip(1)

        assert all(s.released for s in old)
        assert playback.current_clip_index == 1
        assert playback.sync_controller.get_streams() == playback.streams
        assert playback.sync_controller.last_sync_time == 0.0

    def test_invalid_clip_index_is_ignored(self, playback):
        playback.load_event(make_event())
        assert not playback.load_clip(7)
        assert not playback.load_clip(-1)
        assert playback.current_clip_index == 0

    def test_failing_camera_is_skipped(self, stream_factory):
        factory = stream_factory(failing_cameras=('back',))
        manager = VideoPlaybackManager(None, stream_factory=factory)
        manager.initialize()
        try:
            assert manager.load_event(make_event())
            assert CameraId.BACK not in manager.streams
            assert len(manager.streams) == 3
        finally:
            manager.cleanup()

    def test_playing_state_carries_over_to_next_clip(self, playback):
        playback.load_event(make_event())
        playback.play_all()

        assert playback.next_clip()

        assert all(s.playing for s in playback.streams.values())

    def test_next_and_previous_bounds(self, playback):
        playback.load_event(make_event(clip_count=2))
        assert not playback.previous_clip()
        assert playback.next_clip()
        assert not playback.next_clip()
        assert playback.previous_clip()
        assert playback.current_clip_index == 0


class TestPlaybackControl:

    def test_play_pause_toggle(self, playback):
        states = []
        playback.signals.playback_state_changed.connect(states.append)
        playback.load_event(make_event())

        playback.play_all()
        assert all(s.playing for s in playback.streams.values())
        playback.toggle_play_pause_all()
        assert not any(s.playing for s in playback.streams.values())
        playback.toggle_play_pause_all()

        assert states == [True, False, True]

    def test_playback_rate(self, playback):
        playback.load_event(make_event())
        playback.set_playback_rate(2.0)
        assert all(s.rate == 2.0 for s in playback.streams.values())

        playback.set_playback_rate(0)
        assert playback.playback_rate == 2.0

        playback.load_clip(1)
        assert all(s.rate == 2.0 for s in playback.streams.values())


class TestSeeking:

    def test_seek_within_clip(self, playback):
        playback.load_event(make_event())
        playback.seek(30.0)

        assert all(s.position == 30.0 for s in playback.streams.values())
        assert playback.get_current_time() == 30.0

    def test_seek_clamps_to_clip_duration(self, playback):
        playback.load_event(make_event())
        playback.seek(500.0)
        assert playback.get_current_time() == 60.0

    def test_negative_seek_steps_into_previous_clip(self, playback):
        playback.load_event(make_event())
        playback.load_clip(1)

        playback.seek(-5.0)

        assert playback.current_clip_index == 0
        assert all(s.position == 55.0 for s in playback.streams.values())

    def test_negative_seek_on_first_clip_clamps_to_start(self, playback):
        playback.load_event(make_event())
        front(playback).position = 20.0
        playback.seek(-5.0)
        assert playback.current_clip_index == 0
        assert playback.get_current_time() == 0.0

    def test_seek_moves_every_stream(self, playback):
        playback.load_event(make_event())
        playback.seek(30.0)
        front(playback).position = 30.8

        playback.seek(30.8)

        assert all(s.position == 30.8 for s in playback.streams.values())

    def test_seek_to_event_time(self, playback):
        playback.load_event(make_event())

        playback.seek_to_event_time(75.0)

        assert playback.current_clip_index == 1
        assert playback.get_current_time() == 15.0
        assert playback.get_current_absolute_time() == 75.0

    def test_absolute_time_uses_observed_durations(self, stream_factory):
        manager = VideoPlaybackManager(None, stream_factory=stream_factory(length=59.0))
        manager.initialize()
        try:
            manager.load_event(make_event())
            manager.next_clip()
            front(manager).position = 10.0

            assert manager.mapper.duration_of(0) == 59.0
            assert manager.get_current_absolute_time() == 69.0
        finally:
            manager.cleanup()

    def test_sentry_event_starts_before_trigger(self, playback):
        playback.load_event(make_event(folder_type='SentryClips'))

        assert playback.sentry_trigger_time == 120.0
        assert playback.current_clip_index == 1
        assert playback.get_current_time() == 56.0


class TestEndOfClip:

    def end_all(self, manager):
        for stream in manager.streams.values():
            stream.ended = True

    def test_waits_for_every_stream(self, playback):
        playback.load_event(make_event())
        front(playback).ended = True

        assert not playback.handle_stream_ended()
        assert playback.current_clip_index == 0

    def test_advances_to_next_clip(self, playback):
        playback.load_event(make_event())
        playback.play_all()
        self.end_all(playback)

        assert playback.handle_stream_ended()

        assert playback.current_clip_index == 1
        assert all(s.playing for s in playback.streams.values())

    def test_finishes_at_last_clip(self, playback):
        finished = []
        playback.signals.event_finished.connect(lambda: finished.append(True))
        playback.load_event(make_event(clip_count=1))
        playback.play_all()
        self.end_all(playback)

        assert not playback.handle_stream_ended()

        assert finished == [True]
        assert not playback.is_playing

    def test_loops_when_enabled(self, playback):
        playback.loop_enabled = True
        playback.load_event(make_event(clip_count=2))
        playback.play_all()
        playback.next_clip()
        self.end_all(playback)

        assert playback.handle_stream_ended()
        assert playback.current_clip_index == 0

    def test_auto_advance_disabled(self, playback):
        playback.auto_advance = False
        playback.load_event(make_event())
        playback.play_all()
        self.end_all(playback)

        assert not playback.handle_stream_ended()
        assert playback.current_clip_index == 0
        assert not playback.is_playing


class TestMarks:

    def test_mark_range(self, playback):
        playback.load_event(make_event())
        front(playback).position = 10.0
        assert playback.mark_in_point() == 10.0
        assert playback.get_marked_range() is None

        playback.seek_to_event_time(90.0)
        assert playback.mark_out_point() == 90.0
        assert playback.get_marked_range() == (10.0, 90.0)

    def test_in_after_out_clears_out(self, playback):
        playback.load_event(make_event())
        front(playback).position = 30.0
        playback.mark_out_point()
        front(playback).position = 40.0
        playback.mark_in_point()

        assert playback.export_state.start_s == 40.0
        assert playback.export_state.end_s is None

    def test_out_before_in_clears_in(self, playback):
        playback.load_event(make_event())
        front(playback).position = 40.0
        playback.mark_in_point()
        front(playback).position = 30.0
        playback.mark_out_point()

        assert playback.export_state.start_s is None
        assert playback.export_state.end_s == 30.0

    def test_clear_marks(self, playback):
        playback.load_event(make_event())
        front(playback).position = 10.0
        playback.mark_in_point()
        playback.clear_marks()
        assert playback.export_state.start_s is None

    def test_new_event_clears_marks(self, playback):
        playback.load_event(make_event())
        front(playback).position = 10.0
        playback.mark_in_point()
        playback.load_event(make_event())
        assert playback.export_state.start_s is None
