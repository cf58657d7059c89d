"""Watcher configuration — env-driven.

Settings are read from ``EXTSYNC_*`` environment variables or a ``.env``
file in the working directory.

Examples
--------
Override via environment::

    export EXTSYNC_LOG_LEVEL=DEBUG
    export EXTSYNC_BUNDLE_DIR=/tmp/bundle
    export EXTSYNC_APP_URL=https://my-tunnel.example.com
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.logging import RichHandler


class WatcherSettings(BaseSettings):
    """Development watcher settings with environment variable overrides."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="EXTSYNC_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Relative paths are resolved against the app directory.
    bundle_dir: Path = Path(".extsync/bundle")

    # Public URL of the dev session, forwarded to every build.
    app_url: str | None = None

    def bundle_path_for(self, app_directory: Path) -> Path:
        """Return the build output root for an app in *app_directory*."""
        if self.bundle_dir.is_absolute():
            return self.bundle_dir
        return Path(app_directory) / self.bundle_dir


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach a Rich handler to the ``extsync`` logger.

    Calling this more than once only updates the level.
    """
    root = logging.getLogger("extsync")
    root.setLevel(level if isinstance(level, int) else level.upper())
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        root.addHandler(RichHandler(show_path=False, rich_tracebacks=True))
    return root


# Module-level singleton: import as `from extsync.config import settings`
settings = WatcherSettings()
