"""Persistence adapters for finished profiles.

``create_storage`` picks the adapter for a configured mode:

- ``db``: :class:`DatabaseStorage` (SQLite ``details`` table)
- ``files``: :class:`FileStorage` (one file per profile)
- ``api``: :class:`ApiStorage` (HTTP POST to a collector)

Configuration problems are logged and yield an :class:`UnavailableStorage`,
so profiling still runs while every save reports failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from liveprof.codec import DataPacker
from liveprof.errors import ConfigurationError
from liveprof.logging import get_logger

from .api import DEFAULT_API_URL, ApiStorage
from .base import ProfileStorage, UnavailableStorage
from .database import DatabaseStorage
from .files import FileStorage

if TYPE_CHECKING:
    from liveprof.config import ProfilerConfig

logger = get_logger(__name__)

MODE_DB = "db"
MODE_FILES = "files"
MODE_API = "api"
MODES = (MODE_DB, MODE_FILES, MODE_API)


def create_storage(
    config: "ProfilerConfig", packer: Optional[DataPacker] = None
) -> ProfileStorage:
    """Build the storage adapter selected by ``config.mode``."""
    try:
        if config.mode == MODE_DB:
            return DatabaseStorage(config.connection_string or "", packer=packer)
        if config.mode == MODE_API:
            return ApiStorage(
                config.api_url or DEFAULT_API_URL, config.api_key or "", packer=packer
            )
        if config.mode == MODE_FILES:
            if not config.path:
                raise ConfigurationError("File storage needs a target directory")
            return FileStorage(config.path, packer=packer)
        raise ConfigurationError(f"Unknown storage mode '{config.mode}'")
    except ConfigurationError as exc:
        logger.error(
            f"Storage is not usable: {exc}",
            extra={"context": {"mode": config.mode}},
        )
        return UnavailableStorage(str(exc), packer=packer)


__all__ = [
    "ApiStorage",
    "DatabaseStorage",
    "FileStorage",
    "MODES",
    "MODE_API",
    "MODE_DB",
    "MODE_FILES",
    "ProfileStorage",
    "UnavailableStorage",
    "create_storage",
]
