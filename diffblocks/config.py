"""
Configuration — loads settings from .diffblocks.yaml, environment variables,
and built-in defaults (in that priority order: CLI args > env > YAML > defaults).
"""

import os

import yaml

from .editing.diff_parser import DEFAULT_CODE_LANGUAGES


_DEFAULTS = {
    "log_dir": ".diffblocks/logs",
    "metrics_enabled": True,
    "metrics_dir": ".diffblocks/metrics",
    "code_languages": list(DEFAULT_CODE_LANGUAGES),
    "review_tui": True,
}

# Config file search locations
_CONFIG_FILENAMES = [".diffblocks.yaml", ".diffblocks.yml"]


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, CWD, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    search_dirs = [os.getcwd(), os.path.expanduser("~")]
    for d in search_dirs:
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


class Config:
    """Application configuration.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables
    3. .diffblocks.yaml config file
    4. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}

        # Helper: env var > yaml > default
        def _get(env_key: str, yaml_key: str, default, cast=str):
            env_val = os.getenv(env_key)
            if env_val is not None:
                return cast(env_val)
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return cast(yaml_val)
            return default

        def _get_bool(env_key: str, yaml_key: str, default: bool) -> bool:
            env_val = os.getenv(env_key)
            if env_val is not None:
                return env_val.lower() in ("1", "true", "yes")
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return bool(yaml_val)
            return default

        self.LOG_DIR = _get("DIFFBLOCKS_LOG_DIR", "log_dir", _DEFAULTS["log_dir"])
        self.METRICS_ENABLED = _get_bool("DIFFBLOCKS_METRICS", "metrics_enabled",
                                         _DEFAULTS["metrics_enabled"])
        self.METRICS_DIR = _get("DIFFBLOCKS_METRICS_DIR", "metrics_dir",
                                _DEFAULTS["metrics_dir"])
        self.REVIEW_TUI = _get_bool("DIFFBLOCKS_REVIEW_TUI", "review_tui",
                                    _DEFAULTS["review_tui"])

        # Fenced-code languages treated as full module code
        languages = yd.get("code_languages", _DEFAULTS["code_languages"])
        if isinstance(languages, str):
            languages = [languages]
        if not isinstance(languages, list) or not languages:
            languages = list(_DEFAULTS["code_languages"])
        self.CODE_LANGUAGES: list[str] = [str(lang) for lang in languages]

    @property
    def primary_language(self) -> str:
        return self.CODE_LANGUAGES[0]

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)
