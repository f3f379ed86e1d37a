from __future__ import annotations

import json
import logging
import os
import re
import secrets
import time
import zipfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from hrms.backups.errors import ArchiveCreationFailed, ArchiveNotFound, DirectoryInitFailed, InvalidBackupFile, InvalidFile
from hrms.backups.snapshot import BackupMetadata, Snapshot, parse_iso

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = ".zip"
ALLOWED_UPLOAD_TYPES = ("application/json", "application/zip")
ALLOWED_UPLOAD_SUFFIXES = (".json", ".zip")
_SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def format_file_size(num_bytes: int) -> str:
  if num_bytes <= 0:
    return "0 Bytes"
  value = float(num_bytes)
  i = 0
  while value >= 1024 and i < len(_SIZE_UNITS) - 1:
    value /= 1024
    i += 1
  return f"{round(value, 2):g} {_SIZE_UNITS[i]}"


def _discard(path: Path) -> None:
  try:
    path.unlink(missing_ok=True)
  except OSError as exc:
    logger.warning("could not remove %s: %s", path, exc)


@dataclass
class PackagedArchive:
  fileName: str
  filePath: str
  size: int
  downloadUrl: str


@dataclass
class ArchiveInfo:
  fileName: str
  size: int
  createdAt: datetime
  modifiedAt: datetime
  downloadUrl: str


@dataclass
class UploadInfo:
  filename: str
  contentType: str | None
  size: int


class ArchiveStore:
  def __init__(self, backup_dir: str | Path, temp_dir: str | Path, *, download_prefix: str, max_upload_bytes: int) -> None:
    self.backup_dir = Path(backup_dir).resolve()
    self.temp_dir = Path(temp_dir).resolve()
    self.uploads_dir = self.temp_dir / "uploads"
    self.download_prefix = download_prefix.rstrip("/")
    self.max_upload_bytes = max_upload_bytes

  def ensure_directories(self) -> None:
    for d in (self.backup_dir, self.temp_dir, self.uploads_dir):
      try:
        d.mkdir(parents=True, exist_ok=True)
      except OSError as exc:
        raise DirectoryInitFailed(f"Failed to initialize backup directories: {exc}", details=str(exc)) from exc

  def download_url(self, name: str) -> str:
    return f"{self.download_prefix}/{name}"

  def path_for(self, name: str) -> Path:
    return self.backup_dir / name

  def exists(self, name: str) -> bool:
    return self.path_for(name).is_file()

  def list(self) -> list[ArchiveInfo]:
    if not self.backup_dir.is_dir():
      return []
    out: list[ArchiveInfo] = []
    for p in self.backup_dir.glob(f"*{ARCHIVE_SUFFIX}"):
      try:
        st = p.stat()
      except FileNotFoundError:
        continue
      created = getattr(st, "st_birthtime", st.st_mtime)
      out.append(
        ArchiveInfo(
          fileName=p.name,
          size=st.st_size,
          createdAt=datetime.fromtimestamp(created, tz=timezone.utc),
          modifiedAt=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
          downloadUrl=self.download_url(p.name),
        )
      )
    return sorted(out, key=lambda a: a.createdAt, reverse=True)

  def delete(self, name: str) -> None:
    p = self.path_for(name)
    if not p.is_file():
      raise ArchiveNotFound("Backup file not found", details={"fileName": name})
    p.unlink()
    logger.info("deleted backup archive %s", name)

  def cleanup_scratch(self, max_age_minutes: int = 60) -> int:
    cutoff = time.time() - max_age_minutes * 60
    removed = 0
    for d in (self.temp_dir, self.uploads_dir):
      if not d.is_dir():
        continue
      for p in d.iterdir():
        try:
          if p.is_file() and p.stat().st_mtime < cutoff:
            p.unlink()
            removed += 1
            logger.debug("removed stale scratch file %s", p.name)
        except OSError as exc:
          logger.warning("scratch cleanup skipped %s: %s", p, exc)
    return removed

  def validate_upload(self, upload: UploadInfo) -> tuple[bool, str | None]:
    if upload.size > self.max_upload_bytes:
      return False, f"File size exceeds limit. Maximum allowed: {format_file_size(self.max_upload_bytes)}"
    name = (upload.filename or "").lower()
    if upload.contentType not in ALLOWED_UPLOAD_TYPES and not name.endswith(ALLOWED_UPLOAD_SUFFIXES):
      return False, "Invalid file type. Only JSON and ZIP files are allowed."
    return True, None

  async def save_upload(self, upload: Any, *, chunk_size: int = 1024 * 1024) -> tuple[Path, int]:
    """Stream an upload into the scratch area.

    Writing stops one chunk past the size ceiling; the returned size is then
    only a lower bound, which is enough for `validate_upload` to reject it.
    """
    suffix = Path(upload.filename or "").suffix.lower()
    if not re.fullmatch(r"\.[a-z0-9]{1,8}", suffix):
      suffix = ""
    out = self.uploads_dir / f"backup-restore-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{suffix}"
    size = 0
    try:
      self.uploads_dir.mkdir(parents=True, exist_ok=True)
      with out.open("wb") as fh:
        while True:
          chunk = await upload.read(chunk_size)
          if not chunk:
            break
          size += len(chunk)
          fh.write(chunk)
          if size > self.max_upload_bytes:
            break
    except Exception as exc:
      _discard(out)
      logger.warning("upload %s aborted after %d bytes: %s", out.name, size, exc)
      raise InvalidFile("Failed to receive uploaded file", details=str(exc)) from exc
    except BaseException:
      _discard(out)
      raise
    return out, size

  def load_backup_file(self, path: Path) -> Any:
    try:
      if zipfile.is_zipfile(path):
        with zipfile.ZipFile(path) as zf:
          members = [n for n in zf.namelist() if re.fullmatch(r"backup_.*\.json", Path(n).name)]
          if not members:
            raise InvalidBackupFile("Archive does not contain a backup document")
          raw = zf.read(members[0])
      else:
        raw = path.read_bytes()
      return json.loads(raw.decode("utf-8"))
    except (OSError, UnicodeDecodeError, ValueError, zipfile.BadZipFile) as exc:
      raise InvalidBackupFile("Invalid backup file format or corrupted data", details=str(exc)) from exc


def render_manifest(meta: BackupMetadata) -> str:
  try:
    created = parse_iso(meta.timestamp).strftime("%Y-%m-%d %H:%M:%S UTC")
  except ValueError:
    created = meta.timestamp
  counts = "\n".join(f"- {name}: {count} records" for name, count in meta.tables.items())
  return f"""# HRMS Backup

## Backup Information
- Backup ID: {meta.backupId}
- Created: {created}
- Created By: {meta.createdBy}
- Version: {meta.version}
- Total Records: {meta.totalRecords}

## Table Counts
{counts}

## Files in this Archive
- backup_*.json: Complete database backup in JSON format
- metadata.json: Backup metadata and statistics
- README.txt: This information file

## Restore Instructions
1. Upload this backup file through the HRMS backup management interface
2. Confirm the restore operation (WARNING: This will replace all existing data)
3. Wait for the restore process to complete
4. Reload the application to see the restored data

## Important Notes
- This backup contains ALL system data including sensitive information
- Store this file securely and limit access to authorized personnel only
- Always create a current backup before restoring from an older backup
- Restore operations cannot be undone

## Support
For technical support or questions about this backup, contact your system administrator.

Generated by HRMS Backup System
"""


class ArchivePackager:
  def __init__(self, store: ArchiveStore) -> None:
    self.store = store

  def package(self, snapshot: Snapshot) -> PackagedArchive:
    meta = snapshot.metadata
    base = f"backup_{re.sub(r'[:.]', '-', meta.timestamp)}_{meta.backupId[:8]}"
    json_name = f"{base}.json"
    zip_name = f"{base}{ARCHIVE_SUFFIX}"
    json_path = self.store.temp_dir / json_name
    zip_path = self.store.path_for(zip_name)
    part_path = zip_path.with_name(zip_name + ".part")

    try:
      json_path.write_text(json.dumps(snapshot.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
      with zipfile.ZipFile(part_path, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
        zf.write(json_path, arcname=json_name)
        zf.writestr("metadata.json", json.dumps(meta.to_dict(), indent=2, ensure_ascii=False))
        zf.writestr("README.txt", render_manifest(meta))
      # Only a closed archive is moved into place.
      os.replace(part_path, zip_path)
      size = zip_path.stat().st_size
    except (OSError, TypeError, ValueError) as exc:
      _discard(part_path)
      logger.error("backup archive %s failed: %s", zip_name, exc)
      raise ArchiveCreationFailed(f"Failed to create backup file: {exc}", details=str(exc)) from exc
    finally:
      _discard(json_path)

    logger.info("created backup archive %s (%s)", zip_name, format_file_size(size))
    return PackagedArchive(fileName=zip_name, filePath=str(zip_path), size=size, downloadUrl=self.store.download_url(zip_name))
