"""
Tests for ConfigurationManager settings, validation and persistence.
"""

import json

import pytest

from clipsync.managers.configuration import ConfigurationManager, SyncConfig


@pytest.fixture
def config(tmp_path):
    manager = ConfigurationManager(None, base_dir=tmp_path)
    assert manager.initialize()
    return manager


class TestSettings:

    def test_defaults(self, config):
        assert config.get_setting('sync.drift_threshold_s') == 0.3
        assert config.get_setting('playback.loop') is False
        assert config.get_setting('missing.key', 'fallback') == 'fallback'

    def test_default_sync_config(self, config):
        assert config.get_sync_config() == SyncConfig()

    def test_set_setting_persists(self, config):
        assert config.set_setting('sync.drift_threshold_s', 0.5)

        stored = json.loads(config.settings_file.read_text(encoding='utf-8'))
        assert stored['sync']['drift_threshold_s'] == 0.5
        assert config.get_sync_config().drift_threshold_s == 0.5

    def test_setting_changed_signal(self, config):
        changes = []
        config.signals.setting_changed.connect(lambda key, value: changes.append((key, value)))

        config.set_setting('playback.loop', True, save=False)
        config.set_setting('playback.loop', True, save=False)

        assert changes == [('playback.loop', True)]

    @pytest.mark.parametrize("key, value", [
        ('sync.drift_threshold_s', 'fast'),
        ('sync.drift_threshold_s', -1.0),
        ('sync.check_interval_ms', 2.5),
        ('sync.check_interval_ms', True),
        ('playback.loop', 1),
        ('logging.default_level', 'VERBOSE'),
    ])
    def test_invalid_values_are_rejected(self, config, key, value):
        before = config.get_setting(key)
        assert not config.set_setting(key, value, save=False)
        assert config.get_setting(key) == before

    def test_update_settings(self, config):
        assert config.update_settings({'gaps.gap_tolerance_s': 45.0, 'sync.sync_interval_s': 10}, save=False)
        sync_config = config.get_sync_config()
        assert sync_config.gap_tolerance_s == 45.0
        assert sync_config.sync_interval_s == 10.0

    def test_reset_setting(self, config):
        config.set_setting('sync.check_interval_ms', 500, save=False)
        assert config.reset_setting('sync.check_interval_ms', save=False)
        assert config.get_setting('sync.check_interval_ms') == 100
        assert not config.reset_setting('no.such.key')


class TestPersistence:

    def test_reload_from_disk(self, tmp_path, config):
        config.set_setting('sync.end_of_clip_buffer_s', 8.0)

        reloaded = ConfigurationManager(None, base_dir=tmp_path)
        reloaded.initialize()

        assert reloaded.get_setting('sync.end_of_clip_buffer_s') == 8.0
        # Keys missing from the stored file still come from the defaults
        assert reloaded.get_setting('timeline.estimated_clip_duration_s') == 60.0

    def test_invalid_stored_values_fall_back_to_defaults(self, tmp_path):
        settings_file = tmp_path / 'config' / 'settings.json'
        settings_file.parent.mkdir(parents=True)
        settings_file.write_text(json.dumps({'sync': {'drift_threshold_s': 'high', 'sync_interval_s': 12}}),
                                 encoding='utf-8')

        manager = ConfigurationManager(None, base_dir=tmp_path)
        manager.initialize()

        assert manager.get_setting('sync.drift_threshold_s') == 0.3
        assert manager.get_setting('sync.sync_interval_s') == 12

    def test_corrupt_file_uses_defaults(self, tmp_path):
        settings_file = tmp_path / 'config' / 'settings.json'
        settings_file.parent.mkdir(parents=True)
        settings_file.write_text('{broken', encoding='utf-8')

        manager = ConfigurationManager(None, base_dir=tmp_path)
        assert manager.initialize()
        assert manager.get_all_settings() == ConfigurationManager.DEFAULT_SETTINGS

    def test_reset_to_defaults(self, config):
        config.set_setting('playback.default_speed', 2.0)
        assert config.reset_to_defaults()
        assert config.get_setting('playback.default_speed') == 1.0

    def test_logs_directory(self, tmp_path, config):
        assert config.get_logs_directory() == tmp_path / 'logs'
