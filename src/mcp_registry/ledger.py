"""Installation ledger management.

Tracks installed servers in a single JSON document (``installed.json``) that
lives in the install directory.

Ledger format (JSON array, rewritten whole on every mutation):
[
  {
    "id": "filesystem",
    "version": "1.2.0",
    "path": "/home/me/.mcp-registry/servers/filesystem",
    "installedAt": "2025-10-26T12:00:00+00:00",
    "updatedAt": "2025-10-26T12:00:00+00:00"
  }
]

The ledger is not locked against concurrent writers in other processes; two
processes mutating the same install directory can lose an update.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from dataclasses import replace
from datetime import UTC
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

LEDGER_FILENAME = "installed.json"


def utc_now() -> str:
    """Current time as an ISO-8601 UTC timestamp."""
    return datetime.now(UTC).isoformat()


@dataclass(frozen=True)
class InstallationRecord:
    """Entry in the installation ledger."""

    id: str
    version: str
    path: str
    installed_at: str
    updated_at: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "version": self.version,
            "path": self.path,
            "installedAt": self.installed_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "InstallationRecord":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            version=data["version"],
            path=data["path"],
            installed_at=data["installedAt"],
            updated_at=data["updatedAt"],
        )


class InstallationLedger:
    """
    Installation ledger (with injected ledger path).

    Every operation reads the document from disk; mutations rewrite it whole.
    A missing document is an empty ledger, and so is a corrupt one: the ledger
    is low-stakes metadata, so reads favor availability over strictness.
    """

    def __init__(self, ledger_path: Path):
        """Initialize ledger with app-provided path.

        Args:
            ledger_path: Path to installed.json (created on first write)

        Example:
            >>> ledger = InstallationLedger(Path.home() / ".mcp-registry" / "servers" / "installed.json")
        """
        self.ledger_path = ledger_path

    def load(self) -> list[InstallationRecord]:
        """Load all records in ledger order. Never raises."""
        if not self.ledger_path.exists():
            return []

        try:
            with open(self.ledger_path, encoding="utf-8") as f:
                data = json.load(f)

            if not isinstance(data, list):
                raise ValueError(f"expected a JSON array, got {type(data).__name__}")

            records = [InstallationRecord.from_dict(entry) for entry in data]
            logger.debug(f"Loaded {len(records)} records from ledger")
            return records

        except Exception as e:
            logger.warning(f"Ignoring unreadable ledger {self.ledger_path}: {e}")
            return []

    def _save(self, records: list[InstallationRecord]) -> None:
        """Write records atomically: temp file in the same directory, then rename."""
        self.ledger_path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=self.ledger_path.parent, prefix=f".{self.ledger_path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump([record.to_dict() for record in records], f, indent=2)
            os.replace(tmp_name, self.ledger_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug(f"Saved ledger with {len(records)} records")

    def upsert(self, record: InstallationRecord) -> InstallationRecord:
        """
        Insert or replace the record for ``record.id``.

        A replaced record keeps its position and its original ``installed_at``;
        ``updated_at`` is refreshed. A new record is appended as given.

        Args:
            record: Record to store

        Returns:
            The record as persisted
        """
        records = self.load()

        for index, existing in enumerate(records):
            if existing.id == record.id:
                stored = replace(record, installed_at=existing.installed_at, updated_at=utc_now())
                records[index] = stored
                break
        else:
            stored = record
            records.append(stored)

        self._save(records)
        logger.debug(f"Upserted {record.id} in ledger")
        return stored

    def remove(self, server_id: str) -> None:
        """
        Remove the record for a server. Absent ids are a no-op.

        Args:
            server_id: Server id
        """
        records = [record for record in self.load() if record.id != server_id]
        self._save(records)
        logger.debug(f"Removed {server_id} from ledger")

    def get(self, server_id: str) -> InstallationRecord | None:
        """
        Get the record for a server.

        Args:
            server_id: Server id

        Returns:
            Record or None if not found
        """
        for record in self.load():
            if record.id == server_id:
                return record
        return None
