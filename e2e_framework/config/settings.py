"""
Configuration Resolver

Three-tier configuration resolution:

1. Environment variables (highest precedence), including values loaded
   from a `.env` file.
2. Environment-specific JSON: config/environments/<env>.config.json
3. Defaults JSON: config/defaults.config.json

All raw values are strings, matching environment variable semantics.
Typed access goes through the Settings model.
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from ..errors import ConfigurationError
from .timeouts import Timeouts

logger = logging.getLogger(__name__)

META_KEY = "_meta"


class Settings(BaseModel):
    """Resolved framework settings"""
    test_env: str = "dev"
    base_url: str = ""
    browser: str = "chromium"
    headless: bool = True

    # Logging
    log_dir: str = "logs"
    log_level: str = "INFO"

    # Waits (ms)
    element_timeout_ms: int = Timeouts.ELEMENT_WAIT
    page_load_timeout_ms: int = Timeouts.PAGE_LOAD
    script_timeout_ms: int = Timeouts.SCRIPT

    # Element resolution fallbacks
    auto_resolve_shadow_dom: bool = True
    auto_resolve_frames: bool = True
    max_frame_depth: int = 5

    # Reports
    reports_dir: str = "reports"
    screenshots_dir: str = "screenshots"
    report_backup_enabled: bool = False
    report_backup_path: str = ""
    report_backup_keep: int = Field(default=30, ge=1)
    report_backup_compress: bool = False
    project_name: str = "e2e-tests"


# Settings field -> configuration key
SETTINGS_KEYS = {
    "test_env": "TEST_ENV",
    "base_url": "BASE_URL",
    "browser": "BROWSER",
    "headless": "HEADLESS",
    "log_dir": "LOG_DIR",
    "log_level": "LOG_LEVEL",
    "element_timeout_ms": "TIMEOUT_IMPLICIT",
    "page_load_timeout_ms": "TIMEOUT_PAGE_LOAD",
    "script_timeout_ms": "TIMEOUT_SCRIPT",
    "auto_resolve_shadow_dom": "AUTO_RESOLVE_SHADOW_DOM",
    "auto_resolve_frames": "AUTO_RESOLVE_FRAMES",
    "max_frame_depth": "MAX_FRAME_DEPTH",
    "reports_dir": "REPORTS_DIR",
    "screenshots_dir": "SCREENSHOTS_DIR",
    "report_backup_enabled": "REPORT_BACKUP_ENABLE",
    "report_backup_path": "REPORT_BACKUP_PATH",
    "report_backup_keep": "REPORT_BACKUP_KEEP",
    "report_backup_compress": "REPORT_BACKUP_COMPRESS",
    "project_name": "PROJECT_NAME",
}


class ConfigResolver:
    """
    Layered configuration lookup.

    Precedence: environment variable > environment config > default config.
    """

    def __init__(
        self,
        env: Optional[str] = None,
        config_dir: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
        env_file: Optional[str] = ".env"
    ):
        """
        Initialize the resolver.

        Args:
            env: Environment name (falls back to TEST_ENV, then "dev")
            config_dir: Directory holding defaults.config.json and environments/
            environ: Environment mapping (defaults to os.environ)
            env_file: .env file to load into os.environ; None to skip
        """
        if env_file and environ is None and Path(env_file).exists():
            load_dotenv(env_file, override=False)

        self._environ = environ if environ is not None else os.environ
        self.config_dir = Path(config_dir) if config_dir else Path.cwd() / "config"
        self.env = env or self._environ.get("TEST_ENV") or "dev"
        self._resolved: Optional[Dict[str, str]] = None

    # ==================== Accessors ====================

    def get(self, key: str, fallback: str = "") -> str:
        """Resolve a raw string value for `key`."""
        value = self._environ.get(key)
        if value not in (None, ""):
            return value
        return self._file_config().get(key, fallback)

    def get_int(self, key: str, fallback: int = 0) -> int:
        raw = self.get(key)
        if raw == "":
            return fallback
        try:
            return int(raw)
        except ValueError:
            return fallback

    def get_bool(self, key: str, fallback: bool = False) -> bool:
        raw = self.get(key)
        if raw == "":
            return fallback
        return raw.strip().lower() == "true"

    def require(self, key: str) -> str:
        """
        Resolve a value that must be present.

        Raises:
            ConfigurationError: if no tier provides a non-empty value
        """
        value = self.get(key)
        if not value:
            raise ConfigurationError(key)
        return value

    def settings(self) -> Settings:
        """Build the typed Settings model from all tiers."""
        defaults = Settings()
        values = {}
        for field_name, key in SETTINGS_KEYS.items():
            default = getattr(defaults, field_name)
            if isinstance(default, bool):
                values[field_name] = self.get_bool(key, default)
            elif isinstance(default, int):
                values[field_name] = self.get_int(key, default)
            else:
                values[field_name] = self.get(key, default)
        values["test_env"] = self.env
        return Settings(**values)

    def summary(self) -> Dict[str, str]:
        """Resolved key/value pairs, secrets masked."""
        merged = dict(self._file_config())
        for key in SETTINGS_KEYS.values():
            value = self.get(key)
            if value:
                merged[key] = value
        return {
            key: ("****" if _is_secret(key) else value)
            for key, value in sorted(merged.items())
        }

    # ==================== File tiers ====================

    def _file_config(self) -> Dict[str, str]:
        if self._resolved is None:
            merged = self._load_json(self.config_dir / "defaults.config.json")
            merged.update(
                self._load_json(self.config_dir / "environments" / f"{self.env}.config.json")
            )
            self._resolved = merged
        return self._resolved

    def _load_json(self, path: Path) -> Dict[str, str]:
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(str(path), f"Invalid config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(str(path), f"Config file {path} must contain an object")

        return {
            key: str(value).lower() if isinstance(value, bool) else str(value)
            for key, value in data.items()
            if key != META_KEY
        }


def _is_secret(key: str) -> bool:
    upper = key.upper()
    return any(token in upper for token in ("KEY", "SECRET", "PASSWORD", "TOKEN"))
