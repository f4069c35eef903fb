"""Filesystem storage: one file per profile.

Layout: ``{root}/{app}/{base64(label)}/{unix_timestamp}.{ext}``. The label is
encoded with the URL-safe base64 alphabet so it always stays a single path
component.
"""

from __future__ import annotations

import base64
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from liveprof.codec import DataPacker
from liveprof.logging import get_logger
from liveprof.model import CommonProfileData
from liveprof.storage.base import ProfileStorage

logger = get_logger(__name__)


def encode_label(label: str) -> str:
    return base64.urlsafe_b64encode(label.encode("utf-8")).decode("ascii")


def decode_label(encoded: str) -> str:
    return base64.urlsafe_b64decode(encoded.encode("ascii")).decode("utf-8")


class FileStorage(ProfileStorage):
    """Write packed profiles below a root directory.

    A missing root is reported at construction time but is not fatal: the
    directory tree is created on the first save when possible.
    """

    def __init__(
        self, root: Union[str, Path], packer: Optional[DataPacker] = None
    ) -> None:
        super().__init__(packer)
        self.root = Path(root)
        if not self.root.is_dir():
            logger.error(f"Directory {self.root} does not exist")

    def profile_path(self, app: str, label: str, timestamp: datetime) -> Path:
        """Return the file a profile would be written to.

        Raises:
            ValueError: If ``app`` is not a single path component.
        """
        if app in ("", ".", "..") or any(
            sep and sep in app for sep in ("/", os.sep, os.altsep)
        ):
            raise ValueError(f"App name {app!r} is not a valid directory name")
        directory = self.root / app / encode_label(label)
        return directory / f"{int(timestamp.timestamp())}.{self.packer.extension}"

    def save(
        self, app: str, label: str, timestamp: datetime, data: CommonProfileData
    ) -> bool:
        try:
            path = self.profile_path(app, label, timestamp)
        except ValueError as exc:
            logger.error(f"Profile not saved: {exc}")
            return False
        try:
            path.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as exc:
            logger.error(f'Directory "{path.parent}" was not created: {exc}')
            return False

        payload = self.packer.pack(data)
        try:
            path.write_bytes(payload)
        except OSError as exc:
            logger.error(f"Failed to write profile {path}: {exc}")
            return False
        logger.debug(f"Profile saved to {path} ({len(payload)} bytes)")
        return True
