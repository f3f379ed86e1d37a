from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from hrms.backups.registry import ENTITY_NAMES

METADATA_KEYS = ("version", "timestamp", "databaseUrl", "totalRecords", "backupId", "createdBy", "tables")


def now_utc() -> datetime:
  return datetime.now(timezone.utc)


def iso_z(dt: datetime) -> str:
  if dt.tzinfo is None:
    dt = dt.replace(tzinfo=timezone.utc)
  return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
  return datetime.fromisoformat(value.replace("Z", "+00:00"))


def to_json_value(value: Any) -> Any:
  if isinstance(value, datetime):
    return iso_z(value)
  if isinstance(value, Decimal):
    return str(value)
  return value


@dataclass(frozen=True)
class BackupMetadata:
  version: str
  timestamp: str
  databaseUrl: str
  totalRecords: int
  backupId: str
  createdBy: str
  tables: dict[str, int]
  extra: dict[str, Any] = field(default_factory=dict)

  def to_dict(self) -> dict[str, Any]:
    out: dict[str, Any] = {
      "version": self.version,
      "timestamp": self.timestamp,
      "databaseUrl": self.databaseUrl,
      "totalRecords": self.totalRecords,
      "backupId": self.backupId,
      "createdBy": self.createdBy,
      "tables": dict(self.tables),
    }
    for k, v in self.extra.items():
      out.setdefault(k, v)
    return out

  @classmethod
  def from_dict(cls, raw: dict[str, Any]) -> BackupMetadata:
    tables = raw.get("tables") if isinstance(raw.get("tables"), dict) else {}
    return cls(
      version=str(raw["version"]),
      timestamp=str(raw["timestamp"]),
      databaseUrl=str(raw.get("databaseUrl") or ""),
      totalRecords=int(raw["totalRecords"]),
      backupId=str(raw["backupId"]),
      createdBy=str(raw.get("createdBy") or "System"),
      tables={str(k): int(v) for k, v in tables.items()},
      extra={k: v for k, v in raw.items() if k not in METADATA_KEYS},
    )


@dataclass(frozen=True)
class Snapshot:
  metadata: BackupMetadata
  data: dict[str, list[dict[str, Any]]]

  def to_dict(self) -> dict[str, Any]:
    return {"metadata": self.metadata.to_dict(), "data": {name: self.data[name] for name in ENTITY_NAMES}}

  @classmethod
  def from_dict(cls, raw: dict[str, Any]) -> Snapshot:
    # Callers run validate_backup_data first.
    return cls(
      metadata=BackupMetadata.from_dict(raw["metadata"]),
      data={name: list(raw["data"][name]) for name in ENTITY_NAMES},
    )

  def record_counts(self) -> dict[str, int]:
    return {name: len(self.data[name]) for name in ENTITY_NAMES}

  def counts_consistent(self) -> bool:
    counts = self.record_counts()
    return self.metadata.tables == counts and self.metadata.totalRecords == sum(counts.values())
