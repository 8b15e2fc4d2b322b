"""
Tests for event discovery in TeslaCam folder trees.
"""

import time
from datetime import datetime

import pytest

from clipsync.managers.clip import ClipManager
from clipsync.managers.configuration import ConfigurationManager
from clipsync.managers.container import DependencyContainer
from clipsync.state import CameraId


@pytest.fixture
def clip_manager():
    manager = ClipManager(None)
    manager.initialize()
    yield manager
    manager.cleanup()


@pytest.fixture
def full_tree(teslacam):
    teslacam.event(
        'SavedClips', '2024-03-15_14-35-12',
        ['2024-03-15_14-30-00', '2024-03-15_14-31-00'],
        metadata={'reason': 'user_interaction_dashcam_launcher_action_tapped', 'city': 'Austin'},
        thumbnail=True, event_video=True,
    )
    teslacam.event(
        'SentryClips', '2024-03-16_09-12-00',
        ['2024-03-16_09-00-00', '2024-03-16_09-01-00', '2024-03-16_09-05-00'],
        metadata={'reason': 'sentry_aware_object_detection'},
    )
    teslacam.recent(['2024-03-17_13-58-00', '2024-03-17_13-59-00', '2024-03-17_14-00-00'])
    return teslacam.root


class TestScanRoot:

    def test_finds_all_event_types_newest_first(self, clip_manager, full_tree):
        result = clip_manager.scan_root(str(full_tree))

        assert result.error is None
        assert [e.folder_type for e in result.events] == [
            'RecentClips', 'RecentClips', 'SentryClips', 'SavedClips']
        assert [e.timestamp for e in result.events] == sorted(
            (e.timestamp for e in result.events), reverse=True)
        assert clip_manager.get_events() == result.events

    def test_saved_event_contents(self, clip_manager, full_tree):
        clip_manager.scan_root(str(full_tree))
        event = clip_manager.find_event('2024-03-15_14-35-12')

        assert event.timestamp == datetime(2024, 3, 15, 14, 35, 12)
        assert len(event.clip_groups) == 2
        assert event.clip_groups[0].cameras == [
            CameraId.FRONT, CameraId.BACK, CameraId.LEFT_REPEATER, CameraId.RIGHT_REPEATER]
        assert event.metadata['city'] == 'Austin'
        assert clip_manager.format_reason(event.reason) == 'Manual Save'
        assert event.thumbnail_path.endswith('thumb.png')
        assert event.event_video_path.endswith('event.mp4')
        assert event.gaps == []
        assert not event.is_sentry_event

    def test_sentry_event_gaps(self, clip_manager, full_tree):
        clip_manager.scan_root(str(full_tree))
        event = clip_manager.find_event('2024-03-16_09-12-00')

        assert event.is_sentry_event
        assert len(event.gaps) == 1
        assert event.gaps[0].after_index == 1
        assert event.gaps[0].duration == 180

    def test_recent_clips_grouped_by_hour(self, clip_manager, full_tree):
        result = clip_manager.scan_root(str(full_tree))
        recent = [e for e in result.events if e.folder_type == 'RecentClips']

        assert [e.name for e in recent] == [
            'Recent: Mar 17, 2024 2:00-2:59 PM',
            'Recent: Mar 17, 2024 1:00-1:59 PM',
        ]
        assert [len(e.clip_groups) for e in recent] == [1, 2]
        assert recent[1].metadata['clipCount'] == 2
        assert recent[1].metadata['hourKey'] == '2024-03-17_13'

    def test_clip_path_lookup(self, clip_manager, full_tree):
        clip_manager.scan_root(str(full_tree))
        event = clip_manager.find_event('2024-03-15_14-35-12')

        path = clip_manager.get_clip_path(event, 1, CameraId.BACK)
        assert path.endswith('2024-03-15_14-31-00-back.mp4')
        assert clip_manager.get_clip_path(event, 1, CameraId.LEFT_PILLAR) is None
        assert clip_manager.get_clip_path(event, 5, CameraId.FRONT) is None

    def test_unreadable_clips_are_reported(self, clip_manager, teslacam):
        folder = teslacam.event('SavedClips', '2024-03-15_14-35-12', ['2024-03-15_14-30-00'])
        (folder / '2024-02-30_14-31-00-front.mp4').write_bytes(b"")
        skipped = []
        clip_manager.signals.files_skipped.connect(skipped.append)

        result = clip_manager.scan_root(str(teslacam.root))

        assert len(result.events) == 1
        assert len(result.failures) == 1
        assert len(skipped) == 1

    def test_non_event_folders_and_bad_metadata(self, clip_manager, teslacam):
        folder = teslacam.event('SavedClips', '2024-03-15_14-35-12', ['2024-03-15_14-30-00'])
        (folder / 'event.json').write_text('{not json', encoding='utf-8')
        teslacam.clips(teslacam.root / 'TeslaCam' / 'SavedClips' / 'notes', ['2024-03-15_10-00-00'])

        result = clip_manager.scan_root(str(teslacam.root))

        assert [e.name for e in result.events] == ['2024-03-15_14-35-12']
        assert result.events[0].metadata is None
        assert clip_manager.format_reason(result.events[0].reason) == 'Unknown'

    def test_event_folder_selected_directly(self, clip_manager, teslacam):
        folder = teslacam.event('SentryClips', '2024-03-16_09-12-00', ['2024-03-16_09-00-00'])

        result = clip_manager.scan_root(str(folder))

        assert len(result.events) == 1
        assert result.events[0].folder_type == 'SavedClips'

    def test_nested_root_is_searched(self, clip_manager, tmp_path):
        from conftest import TeslaCamBuilder

        TeslaCamBuilder(tmp_path / 'usb' / 'drive').event(
            'SavedClips', '2024-03-15_14-35-12', ['2024-03-15_14-30-00'])

        result = clip_manager.scan_root(str(tmp_path))

        assert len(result.events) == 1

    def test_missing_folder(self, clip_manager, tmp_path):
        failures = []
        clip_manager.signals.scan_failed.connect(failures.append)

        result = clip_manager.scan_root(str(tmp_path / 'nope'))

        assert result.error is not None
        assert result.events == []
        assert len(failures) == 1

    def test_scan_completed_signal(self, clip_manager, full_tree):
        completed = []
        clip_manager.signals.scan_completed.connect(completed.append)

        result = clip_manager.scan_root(str(full_tree))

        assert completed == [result]


class TestConfiguredGapPolicy:

    def test_gap_tolerance_from_configuration(self, tmp_path, full_tree):
        container = DependencyContainer()
        config = ConfigurationManager(None, container, base_dir=tmp_path / 'home')
        config.initialize()
        config.set_setting('gaps.gap_tolerance_s', 200.0, save=False)
        container.register_service('configuration', config)

        manager = ClipManager(None, container)
        manager.initialize()
        manager.scan_root(str(full_tree))

        assert manager.find_event('2024-03-16_09-12-00').gaps == []
        manager.cleanup()


class TestAsyncLoading:

    def test_load_events_async(self, qapp, clip_manager, full_tree):
        completed = []
        clip_manager.signals.scan_completed.connect(completed.append)

        assert clip_manager.load_events_async(str(full_tree))

        deadline = time.monotonic() + 10
        while not completed and time.monotonic() < deadline:
            qapp.processEvents()
            time.sleep(0.01)

        assert len(completed) == 1
        assert len(completed[0].events) == 4
        assert not clip_manager.is_loading
