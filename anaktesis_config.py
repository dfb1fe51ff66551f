#!/usr/bin/env python3
"""
Configuration management for Anaktesis

Persistent settings (downloads directory, default threshold, ledger file,
placeholder preference) plus per-run statistics, stored as JSON in the
Anaktesis home directory.
"""

import json
import logging
import os
import pathlib
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Optional

from auxiliary import parse_size

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "ANAKTESIS_HOME"
DEFAULT_SIZE_THRESHOLD = "100MB"


def default_config_dir() -> pathlib.Path:
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return pathlib.Path(override).expanduser()
    return pathlib.Path.home() / ".anaktesis"


@dataclass
class AnaktesisConfig:
    """Configuration for Anaktesis"""

    downloads_directory: str = "~/Downloads"
    default_size_threshold: str = DEFAULT_SIZE_THRESHOLD
    database_file: str = "ledger.db"
    use_database: bool = True
    write_webloc: bool = False
    report_directory: Optional[str] = None
    probe_connect_timeout: float = 5.0
    probe_read_timeout: float = 10.0
    last_run: Optional[str] = None
    stats: dict = field(default_factory=lambda: {"total_runs": 0, "total_reclaimed_bytes": 0})

    def get_downloads_path(self) -> pathlib.Path:
        return pathlib.Path(self.downloads_directory).expanduser()

    def get_report_path(self) -> Optional[pathlib.Path]:
        return pathlib.Path(self.report_directory).expanduser() if self.report_directory else None

    def size_threshold_bytes(self) -> int:
        """The configured threshold in bytes; an unreadable value falls back to the default"""
        try:
            return parse_size(self.default_size_threshold)
        except ValueError:
            logger.warning(
                "Invalid default_size_threshold %r in config, using %s",
                self.default_size_threshold,
                DEFAULT_SIZE_THRESHOLD,
            )
            return parse_size(DEFAULT_SIZE_THRESHOLD)

    def record_run(self, reclaimed: int):
        """Update run statistics and the last run timestamp"""
        self.stats["total_runs"] = self.stats.get("total_runs", 0) + 1
        self.stats["total_reclaimed_bytes"] = self.stats.get("total_reclaimed_bytes", 0) + reclaimed
        self.last_run = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "AnaktesisConfig":
        """Create from dictionary, taking defaults for missing keys"""
        defaults = cls.default()
        stats = data.get("stats")
        return cls(
            downloads_directory=data.get("downloads_directory", defaults.downloads_directory),
            default_size_threshold=str(data.get("default_size_threshold", defaults.default_size_threshold)),
            database_file=data.get("database_file", defaults.database_file),
            use_database=bool(data.get("use_database", defaults.use_database)),
            write_webloc=bool(data.get("write_webloc", defaults.write_webloc)),
            report_directory=data.get("report_directory", defaults.report_directory),
            probe_connect_timeout=float(data.get("probe_connect_timeout", defaults.probe_connect_timeout)),
            probe_read_timeout=float(data.get("probe_read_timeout", defaults.probe_read_timeout)),
            last_run=data.get("last_run"),
            stats=stats if isinstance(stats, dict) else defaults.stats,
        )

    @classmethod
    def default(cls) -> "AnaktesisConfig":
        """Create default configuration"""
        return cls()


class ConfigManager:
    """Manages loading and saving configuration"""

    def __init__(self, config_dir: Optional[pathlib.Path] = None):
        """Initialize configuration manager

        Args:
            config_dir: Override the default Anaktesis home directory
        """
        self.config_dir = pathlib.Path(config_dir) if config_dir else default_config_dir()
        self.config_file = self.config_dir / "config.json"
        self.config_dir.mkdir(parents=True, exist_ok=True)

    def load(self) -> AnaktesisConfig:
        """Load configuration from file, writing the defaults on first use"""
        if not self.config_file.exists():
            config = AnaktesisConfig.default()
            self.save(config)
            return config

        try:
            with self.config_file.open() as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("config root is not an object")
            return AnaktesisConfig.from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            # If config is corrupted, return default
            logger.warning("Ignoring unreadable config %s: %s", self.config_file, e)
            return AnaktesisConfig.default()

    def save(self, config: AnaktesisConfig):
        """Save configuration to file"""
        with self.config_file.open("w") as f:
            json.dump(config.to_dict(), f, indent=2)

    def database_path(self, config: AnaktesisConfig) -> pathlib.Path:
        """Ledger location; relative names live in the config directory"""
        path = pathlib.Path(config.database_file).expanduser()
        if not path.is_absolute():
            path = self.config_dir / path
        return path
