"""Tests for configuration loading and saving."""

import json
import tempfile
from pathlib import Path

from cc_tree.config import DEFAULT_THRESHOLDS, Config


class TestConfig:
    def test_defaults(self):
        config = Config()
        assert config.thresholds["rich_display_lines"] == 5
        assert config.thresholds["rich_display_chars"] == 200
        assert config.confidence["structured"] == 1.0
        assert config.display["terminal_style_for_bash"] is True
        assert config.refresh_interval == 25

    def test_partial_override_keeps_other_defaults(self):
        config = Config(thresholds={"rich_display_lines": 10})
        assert config.thresholds["rich_display_lines"] == 10
        assert config.thresholds["rich_display_chars"] == 200

    def test_defaults_not_shared(self):
        config = Config()
        config.thresholds["rich_display_lines"] = 99
        assert DEFAULT_THRESHOLDS["rich_display_lines"] == 5

    def test_save_and_load(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "nested" / "config.json"
            config = Config(tree={"preview_length": 40}, refresh_interval=5)
            config.save(path)

            loaded = Config.load(path)
            assert loaded.tree["preview_length"] == 40
            assert loaded.refresh_interval == 5
            assert loaded.to_dict() == config.to_dict()

    def test_load_missing_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config = Config.load(Path(tmpdir) / "missing.json")
            assert config.to_dict() == Config().to_dict()

    def test_load_malformed_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            path.write_text("{not json")
            assert Config.load(path).to_dict() == Config().to_dict()

    def test_load_non_object(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            path.write_text(json.dumps([1, 2]))
            assert Config.load(path).to_dict() == Config().to_dict()
