"""Remote storage: POST each profile to a collector API."""

from __future__ import annotations

import urllib.error
import urllib.parse
import urllib.request
from datetime import datetime
from typing import Optional

from liveprof.codec import DataPacker
from liveprof.logging import get_logger
from liveprof.model import CommonProfileData
from liveprof.storage.base import TIMESTAMP_FORMAT, ProfileStorage

logger = get_logger(__name__)

DEFAULT_API_URL = "http://liveprof.org/api"


class ApiStorage(ProfileStorage):
    """Send profiles as a form-encoded POST request.

    Fields: ``api_key``, ``app``, ``label``, ``datetime`` and ``data`` (the
    packed profile). Only an HTTP 200 response counts as stored.

    Args:
        url: Collector endpoint.
        api_key: Key identifying the account on the collector.
        timeout: Socket timeout in seconds.
    """

    def __init__(
        self,
        url: str = DEFAULT_API_URL,
        api_key: str = "",
        packer: Optional[DataPacker] = None,
        timeout: float = 10.0,
    ) -> None:
        super().__init__(packer)
        self.url = url or DEFAULT_API_URL
        self.api_key = api_key
        self.timeout = timeout

    def build_request(
        self, app: str, label: str, timestamp: datetime, data: CommonProfileData
    ) -> urllib.request.Request:
        fields = {
            "api_key": self.api_key,
            "app": app,
            "label": label,
            "datetime": timestamp.strftime(TIMESTAMP_FORMAT),
            "data": self.packer.pack(data).decode("utf-8"),
        }
        body = urllib.parse.urlencode(fields).encode("ascii")
        return urllib.request.Request(
            self.url,
            data=body,
            method="POST",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

    def save(
        self, app: str, label: str, timestamp: datetime, data: CommonProfileData
    ) -> bool:
        request = self.build_request(app, label, timestamp, data)
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                status = response.status
        except urllib.error.HTTPError as exc:
            status = exc.code
        except (urllib.error.URLError, OSError) as exc:
            logger.error(f"Failed to send profile to {self.url}: {exc}")
            return False

        if status != 200:
            logger.debug(f"Collector {self.url} answered HTTP {status}")
        return status == 200
