"""Configuration management for cc-tree."""

import json
from pathlib import Path
from typing import Optional

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "cc-tree"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

DEFAULT_THRESHOLDS = {
    # Content larger than either limit gets a popup instead of inline display
    "rich_display_lines": 5,
    "rich_display_chars": 200,
    # Content above this size is never handed to the JSON decoder
    "json_parse_max_size": 1024 * 1024,
}

DEFAULT_DISPLAY = {
    "terminal_style_for_bash": True,
    "json_folding_for_mcp": True,
    "error_highlighting": True,
}

DEFAULT_CONFIDENCE = {
    "structured": 1.0,
    "json_sniffed": 0.7,
    "error_sniffed": 0.5,
    "fallback": 0.5,
}

DEFAULT_TREE = {
    "preview_length": 80,
    "inline_text_length": 150,
    "chunk_size": 120,
}


class Config:
    """Configuration for cc-tree.

    Values are plain dicts so that a partial config file only overrides the
    keys it names.
    """

    def __init__(
        self,
        thresholds: Optional[dict] = None,
        display: Optional[dict] = None,
        confidence: Optional[dict] = None,
        tree: Optional[dict] = None,
        cache_classifications: bool = True,
        cache_max_entries: int = 10000,
        refresh_interval: int = 25,
    ):
        self.thresholds = {**DEFAULT_THRESHOLDS, **(thresholds or {})}
        self.display = {**DEFAULT_DISPLAY, **(display or {})}
        self.confidence = {**DEFAULT_CONFIDENCE, **(confidence or {})}
        self.tree = {**DEFAULT_TREE, **(tree or {})}
        self.cache_classifications = cache_classifications
        self.cache_max_entries = cache_max_entries
        self.refresh_interval = refresh_interval

    def to_dict(self) -> dict:
        return {
            "thresholds": dict(self.thresholds),
            "display": dict(self.display),
            "confidence": dict(self.confidence),
            "tree": dict(self.tree),
            "cache_classifications": self.cache_classifications,
            "cache_max_entries": self.cache_max_entries,
            "refresh_interval": self.refresh_interval,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        return cls(
            thresholds=data.get("thresholds"),
            display=data.get("display"),
            confidence=data.get("confidence"),
            tree=data.get("tree"),
            cache_classifications=data.get("cache_classifications", True),
            cache_max_entries=data.get("cache_max_entries", 10000),
            refresh_interval=data.get("refresh_interval", 25),
        )

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from file."""
        path = config_path or DEFAULT_CONFIG_FILE

        if not path.exists():
            return cls()

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                return cls()
            return cls.from_dict(data)
        except (json.JSONDecodeError, AttributeError, TypeError):
            return cls()

    def save(self, config_path: Optional[Path] = None):
        """Save configuration to file."""
        path = config_path or DEFAULT_CONFIG_FILE
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
