"""Serialization of profile data before it leaves the process.

All storage adapters share one packer. The JSON packer writes the
xhprof-compatible shape ``{"key": {"ct": 3, "wt": 120}}``; optional counters
(``cpu``, ``mu``, ``pmu``) are only written when non-zero.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod

from liveprof.errors import InvalidCaptureError
from liveprof.model import CommonProfileData, normalize_profile_data


class DataPacker(ABC):
    """Encode/decode :data:`CommonProfileData` to and from bytes."""

    #: File extension used by file storage for packed payloads.
    extension: str = "bin"

    @abstractmethod
    def pack(self, data: CommonProfileData) -> bytes:
        """Serialize profile data."""

    @abstractmethod
    def unpack(self, payload: bytes) -> CommonProfileData:
        """Deserialize profile data.

        Raises:
            InvalidCaptureError: If the payload does not hold profile data.
        """


class JsonDataPacker(DataPacker):
    """Compact UTF-8 JSON packer."""

    extension = "json"

    def pack(self, data: CommonProfileData) -> bytes:
        payload = {key: metric.to_dict() for key, metric in data.items()}
        return json.dumps(payload, separators=(",", ":")).encode("utf-8")

    def unpack(self, payload: bytes) -> CommonProfileData:
        if isinstance(payload, (bytes, bytearray)):
            payload = payload.decode("utf-8")
        try:
            raw = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise InvalidCaptureError(f"Payload is not valid JSON: {exc}") from exc
        return normalize_profile_data(raw)
