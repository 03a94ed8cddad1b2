"""
Test Suite: Configuration
=========================
Unit tests for YAML config loading.
"""

import pytest

from rdw.config import default_config, load_config


class TestLoadConfig:
    """Tests for load_config"""

    def test_bundled_file_matches_defaults(self):
        assert load_config() == default_config()

    def test_partial_override_merges(self, tmp_path):
        path = tmp_path / "room.yaml"
        path.write_text("room:\n  width: 6.0\ntraining:\n  grid_size: 8\n")

        config = load_config(path)

        assert config['room']['width'] == 6.0
        assert config['room']['depth'] == 10.0
        assert config['training']['grid_size'] == 8
        assert config['training']['max_steps'] == 100
        assert config['strategies']['resetter'] == 'two_one_turn'

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == default_config()

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            load_config(path)

    def test_defaults_are_copies(self):
        config = load_config()
        config['room']['width'] = 1.0
        assert default_config()['room']['width'] == 10.0
