from __future__ import annotations

from typing import Any

from hrms.backups.registry import ENTITY_NAMES

REQUIRED_METADATA = ("version", "timestamp", "totalRecords", "backupId")


def validate_backup_data(candidate: Any) -> bool:
  """Shape check for an untrusted snapshot document.

  Returns False for anything malformed and never raises. Per-type counts in
  `metadata.tables` are advisory and are not compared with the payload.
  """
  if not isinstance(candidate, dict):
    return False
  metadata = candidate.get("metadata")
  if not isinstance(metadata, dict):
    return False
  for key in REQUIRED_METADATA:
    if metadata.get(key) is None:
      return False
  if not isinstance(metadata["version"], str) or not isinstance(metadata["backupId"], str):
    return False
  total = metadata["totalRecords"]
  if isinstance(total, bool) or not isinstance(total, int):
    return False

  data = candidate.get("data")
  if not isinstance(data, dict):
    return False
  return all(isinstance(data.get(name), list) for name in ENTITY_NAMES)
