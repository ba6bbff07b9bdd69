"""
Configuration module for Thai Election 69 ballot forensics.

Centralizes all settings and environment variables for easy configuration.

Usage:
    from config import config

    print(config.stats_base_url)
    print(config.max_workers)
"""

import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_REFS_BASE_URL = "https://static-ectreport69.ect.go.th/data/data/refs"
DEFAULT_STATS_BASE_URL = "https://stats-ectreport69.ect.go.th/data/records"


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """
    Application configuration loaded from environment variables.

    All settings can be overridden via environment variables.
    """

    # ECT endpoints
    refs_base_url: str = DEFAULT_REFS_BASE_URL
    stats_base_url: str = DEFAULT_STATS_BASE_URL

    # Local inputs
    boundary_path: str = "data/constituencies.json"
    snapshot_dir: Optional[str] = None  # read feeds from disk instead of the network

    # Fetch settings
    max_workers: int = 4
    request_timeout: int = 30  # seconds, per request
    pipeline_timeout: int = 90  # seconds, whole fetch
    live_cache_seconds: int = 300  # stats_cons / stats_referendum
    static_cache_seconds: int = 3600  # reference data

    # Join policy
    allow_degraded: bool = False

    # Logging Settings
    log_level: str = "INFO"

    # Report Settings
    report_dir: str = "reports"

    def __post_init__(self):
        """Load configuration from environment variables."""
        # Endpoints
        self.refs_base_url = os.environ.get("ECT_REFS_BASE_URL", self.refs_base_url).rstrip("/")
        self.stats_base_url = os.environ.get("ECT_STATS_BASE_URL", self.stats_base_url).rstrip("/")

        # Inputs
        self.boundary_path = os.environ.get("BOUNDARY_PATH", self.boundary_path)
        self.snapshot_dir = os.environ.get("SNAPSHOT_DIR", self.snapshot_dir) or None

        # Fetching
        self.max_workers = int(os.environ.get("MAX_WORKERS", str(self.max_workers)))
        self.request_timeout = int(os.environ.get("REQUEST_TIMEOUT", str(self.request_timeout)))
        self.pipeline_timeout = int(os.environ.get("PIPELINE_TIMEOUT", str(self.pipeline_timeout)))
        self.live_cache_seconds = int(os.environ.get("LIVE_CACHE_SECONDS", str(self.live_cache_seconds)))
        self.static_cache_seconds = int(os.environ.get("STATIC_CACHE_SECONDS", str(self.static_cache_seconds)))

        self.allow_degraded = _env_flag("ALLOW_DEGRADED", self.allow_degraded)

        # Logging
        self.log_level = os.environ.get("LOG_LEVEL", self.log_level)

        # Reports
        self.report_dir = os.environ.get("REPORT_DIR", self.report_dir)

    @property
    def offline(self) -> bool:
        """True when feeds are read from a local snapshot."""
        return bool(self.snapshot_dir)

    def validate(self) -> list[str]:
        """
        Validate configuration and return list of issues.

        Returns:
            List of configuration issues (empty if valid)
        """
        issues = []

        if self.max_workers < 1:
            issues.append(f"MAX_WORKERS must be at least 1, got {self.max_workers}")

        if self.request_timeout < 1:
            issues.append(f"REQUEST_TIMEOUT must be positive, got {self.request_timeout}")

        if self.pipeline_timeout < self.request_timeout:
            issues.append(
                f"PIPELINE_TIMEOUT ({self.pipeline_timeout}s) should not be shorter than "
                f"REQUEST_TIMEOUT ({self.request_timeout}s)"
            )

        if self.live_cache_seconds < 0 or self.static_cache_seconds < 0:
            issues.append("Cache windows must not be negative")

        if self.live_cache_seconds > self.static_cache_seconds:
            issues.append("LIVE_CACHE_SECONDS should not exceed STATIC_CACHE_SECONDS")

        return issues

    def to_dict(self) -> dict:
        """Convert configuration to dictionary (safe for logging)."""
        return {
            "refs_base_url": self.refs_base_url,
            "stats_base_url": self.stats_base_url,
            "boundary_path": self.boundary_path,
            "snapshot_dir": self.snapshot_dir,
            "max_workers": self.max_workers,
            "request_timeout": self.request_timeout,
            "pipeline_timeout": self.pipeline_timeout,
            "live_cache_seconds": self.live_cache_seconds,
            "static_cache_seconds": self.static_cache_seconds,
            "allow_degraded": self.allow_degraded,
            "log_level": self.log_level,
            "report_dir": self.report_dir,
        }


# Global configuration instance
config = Config()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config


def reload_config() -> Config:
    """Reload configuration from environment variables."""
    global config
    config = Config()
    return config
