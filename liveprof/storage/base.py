"""Storage interface for finished profiles."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from liveprof.codec import DataPacker, JsonDataPacker
from liveprof.logging import get_logger
from liveprof.model import CommonProfileData

logger = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class ProfileStorage(ABC):
    """Persist one profile under ``(app, label, timestamp)``.

    Args:
        packer: Codec applied to the data before it leaves the process.
    """

    def __init__(self, packer: Optional[DataPacker] = None) -> None:
        self.packer = packer if packer is not None else JsonDataPacker()

    @abstractmethod
    def save(
        self, app: str, label: str, timestamp: datetime, data: CommonProfileData
    ) -> bool:
        """Store the profile; return True on success."""


class UnavailableStorage(ProfileStorage):
    """Stand-in for a storage target that could not be configured.

    Every save fails, so profiling keeps working but nothing is persisted.
    """

    def __init__(self, reason: str, packer: Optional[DataPacker] = None) -> None:
        super().__init__(packer)
        self.reason = reason

    def save(
        self, app: str, label: str, timestamp: datetime, data: CommonProfileData
    ) -> bool:
        logger.debug(f"Storage unavailable: {self.reason}")
        return False
