"""Configuration for the stationery hub server."""

import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from .models import AdminCredentials

DEFAULT_BACKEND_URL = "https://stationery-hub-backend-production.up.railway.app"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _default_storage_file() -> str:
    return str(Path.home() / ".stationery_hub_storage.json")


class Settings(BaseModel):
    """Runtime settings, normally loaded from the environment."""

    backend_url: str = Field(default=DEFAULT_BACKEND_URL, description="Backend origin")
    storage_file: str = Field(default_factory=_default_storage_file, description="Local storage file")
    request_timeout: float = Field(default=30.0, gt=0, description="Default request timeout (seconds)")
    login_timeout: float = Field(default=10.0, gt=0, description="Admin login timeout (seconds)")
    probe_timeout: float = Field(default=5.0, gt=0, description="Admin view probe timeout (seconds)")
    login_probe_timeout: float = Field(default=3.0, gt=0, description="Login view probe timeout (seconds)")
    probe_interval: float = Field(default=30.0, gt=0, description="Seconds between probes")
    log_level: str = Field(default="INFO", description="Logging level")
    admin_credentials: Optional[AdminCredentials] = Field(
        None, description="Admin credentials used for on-demand login"
    )

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from STATIONERY_* environment variables.

        Unset variables keep their defaults.
        """
        values: dict = {}

        backend_url = os.environ.get("STATIONERY_BACKEND_URL")
        if backend_url:
            values["backend_url"] = backend_url.rstrip("/")

        storage_file = os.environ.get("STATIONERY_STORAGE_FILE")
        if storage_file:
            values["storage_file"] = storage_file

        request_timeout = os.environ.get("STATIONERY_REQUEST_TIMEOUT")
        if request_timeout:
            values["request_timeout"] = float(request_timeout)

        probe_interval = os.environ.get("STATIONERY_PROBE_INTERVAL")
        if probe_interval:
            values["probe_interval"] = float(probe_interval)

        log_level = os.environ.get("STATIONERY_LOG_LEVEL")
        if log_level:
            values["log_level"] = log_level.upper()

        username = os.environ.get("STATIONERY_ADMIN_USERNAME")
        password = os.environ.get("STATIONERY_ADMIN_PASSWORD")
        if username and password:
            values["admin_credentials"] = AdminCredentials(username=username, password=password)

        return cls(**values)


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for the process."""
    level = (level or os.environ.get("STATIONERY_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
