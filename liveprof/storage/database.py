"""SQLite storage: one row per profile in the ``details`` table."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Optional

from liveprof.codec import DataPacker
from liveprof.errors import ConfigurationError
from liveprof.logging import get_logger
from liveprof.model import CommonProfileData
from liveprof.storage.base import TIMESTAMP_FORMAT, ProfileStorage

logger = get_logger(__name__)

TABLE_NAME = "details"

CREATE_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    app TEXT NOT NULL,
    label TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    perfdata BLOB NOT NULL
);
CREATE INDEX IF NOT EXISTS {TABLE_NAME}_app_label_timestamp
    ON {TABLE_NAME} (app, label, timestamp);
"""


def parse_connection_string(connection_string: str) -> str:
    """Return the sqlite3 database argument for a connection string.

    Accepted forms: ``sqlite:///relative.db``, ``sqlite:////abs/path.db``,
    ``sqlite:///:memory:`` and a bare filesystem path.

    Raises:
        ConfigurationError: For an empty string or a non-sqlite URL.
    """
    if not connection_string:
        raise ConfigurationError("Database connection string is empty")
    if "://" not in connection_string:
        return connection_string
    scheme, _, rest = connection_string.partition("://")
    if scheme.lower() != "sqlite":
        raise ConfigurationError(
            f"Unsupported database scheme '{scheme}'; only sqlite is available"
        )
    if not rest.startswith("/") or rest == "/":
        raise ConfigurationError(
            f"Malformed sqlite URL '{connection_string}'; expected sqlite:///<path>"
        )
    return rest[1:]


class DatabaseStorage(ProfileStorage):
    """Insert profiles into a SQLite database.

    The connection is opened lazily on first use and then reused.

    Args:
        connection_string: See :func:`parse_connection_string`.
        packer: Codec for the ``perfdata`` column.
    """

    def __init__(
        self, connection_string: str, packer: Optional[DataPacker] = None
    ) -> None:
        super().__init__(packer)
        self.connection_string = connection_string
        self.database = parse_connection_string(connection_string)
        self._conn: Optional[sqlite3.Connection] = None

    def get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self.database, timeout=30.0)
        return self._conn

    def set_connection(self, conn: sqlite3.Connection) -> None:
        """Use an existing connection instead of opening one."""
        self._conn = conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def create_table(self) -> bool:
        """Create the ``details`` table and its index if missing."""
        try:
            self.get_connection().executescript(CREATE_TABLE_SQL)
        except sqlite3.Error as exc:
            logger.error(f"Failed to create table '{TABLE_NAME}': {exc}")
            return False
        return True

    def save(
        self, app: str, label: str, timestamp: datetime, data: CommonProfileData
    ) -> bool:
        payload = self.packer.pack(data)
        try:
            conn = self.get_connection()
            with conn:
                cursor = conn.execute(
                    f"INSERT INTO {TABLE_NAME} (app, label, timestamp, perfdata)"
                    " VALUES (?, ?, ?, ?)",
                    (app, label, timestamp.strftime(TIMESTAMP_FORMAT), payload),
                )
        except sqlite3.Error as exc:
            logger.error(f"Error in insertion profile data: {exc}")
            return False
        return cursor.rowcount == 1
