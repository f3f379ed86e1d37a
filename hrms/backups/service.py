from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import async_sessionmaker

from hrms.backups.archive import ArchiveInfo, ArchivePackager, ArchiveStore, UploadInfo, format_file_size
from hrms.backups.errors import ArchiveNotFound, InvalidBackupStructure, InvalidFile, InvalidFilename, NoFileProvided
from hrms.backups.exporter import ExportEngine
from hrms.backups.importer import ImportEngine
from hrms.backups.lock import BackupLock
from hrms.backups.snapshot import Snapshot, iso_z, now_utc
from hrms.backups.validator import validate_backup_data
from hrms.config import Settings

logger = logging.getLogger(__name__)


def validate_filename(name: str) -> str:
  if not name or ".." in name or "/" in name or "\\" in name:
    raise InvalidFilename("Invalid file name", details={"fileName": name})
  return name


def _display_time(dt: datetime) -> str:
  return dt.strftime("%Y-%m-%d %H:%M:%S UTC")


def recommendations_for(archives: list[ArchiveInfo], total_records: int, *, now: datetime | None = None) -> list[str]:
  if not archives:
    return ["Create your first backup to protect your data"]
  out: list[str] = []
  days = ((now or now_utc()) - archives[0].createdAt).days
  if days > 7:
    out.append("Consider creating a new backup - last backup is over a week old")
  elif days > 1:
    out.append("Last backup is recent, but consider regular backup schedule")
  if len(archives) > 10:
    out.append("Consider cleaning up old backup files to save storage space")
  if total_records > 10000:
    out.append("Large dataset detected - ensure adequate storage for backups")
  return out


class BackupService:
  def __init__(
    self,
    *,
    exporter: ExportEngine,
    importer: ImportEngine,
    store: ArchiveStore,
    packager: ArchivePackager,
    lock: BackupLock,
    app_version: str,
    scratch_max_age_minutes: int = 60,
  ) -> None:
    self.exporter = exporter
    self.importer = importer
    self.store = store
    self.packager = packager
    self.lock = lock
    self.app_version = app_version
    self.scratch_max_age_minutes = scratch_max_age_minutes

  @classmethod
  def from_settings(cls, cfg: Settings, session_factory: async_sessionmaker, *, backup_dir: str | None = None) -> BackupService:
    store = ArchiveStore(
      backup_dir or cfg.backup_dir,
      cfg.backup_temp_dir,
      download_prefix=cfg.backup_download_prefix,
      max_upload_bytes=cfg.backup_max_upload_bytes,
    )
    return cls(
      exporter=ExportEngine(session_factory, database_url=cfg.database_url, schema_version=cfg.backup_schema_version),
      importer=ImportEngine(session_factory),
      store=store,
      packager=ArchivePackager(store),
      lock=BackupLock(
        wait_seconds=cfg.backup_lock_wait_seconds,
        lease_seconds=cfg.backup_lock_lease_seconds,
        redis_url=cfg.redis_url,
      ),
      app_version=cfg.app_version,
      scratch_max_age_minutes=cfg.backup_scratch_max_age_minutes,
    )

  async def create_backup(self, created_by: str, *, extra_metadata: dict[str, Any] | None = None) -> dict[str, Any]:
    async with self.lock.hold("create"):
      snapshot = await self.exporter.export_all(created_by, extra_metadata=extra_metadata)
      archive = await asyncio.to_thread(self.packager.package, snapshot)
    self.store.cleanup_scratch(self.scratch_max_age_minutes)
    meta = snapshot.metadata
    return {
      "backupId": meta.backupId,
      "fileName": archive.fileName,
      "filePath": archive.filePath,
      "timestamp": meta.timestamp,
      "totalRecords": meta.totalRecords,
      "size": archive.size,
      "downloadUrl": archive.downloadUrl,
      "tables": meta.tables,
    }

  async def list_backups(self) -> dict[str, Any]:
    archives = self.store.list()
    current = await self.exporter.database_stats()
    backups = [
      {
        "fileName": a.fileName,
        "size": a.size,
        "createdAt": iso_z(a.createdAt),
        "modifiedAt": iso_z(a.modifiedAt),
        "downloadUrl": a.downloadUrl,
        "formattedSize": format_file_size(a.size),
        "formattedCreatedAt": _display_time(a.createdAt),
        "formattedModifiedAt": _display_time(a.modifiedAt),
      }
      for a in archives
    ]
    return {"backups": backups, "total": len(backups), "currentDatabase": current}

  async def status(self) -> dict[str, Any]:
    archives = self.store.list()
    current = await self.exporter.database_stats()
    total_size = sum(a.size for a in archives)
    return {
      "system": {"status": "operational", "version": self.app_version, "lastCheck": iso_z(now_utc())},
      "database": current,
      "backups": {
        "totalFiles": len(archives),
        "totalSize": total_size,
        "formattedTotalSize": format_file_size(total_size),
        "oldestBackup": iso_z(archives[-1].createdAt) if archives else None,
        "newestBackup": iso_z(archives[0].createdAt) if archives else None,
      },
      "recommendations": recommendations_for(archives, current["totalRecords"]),
    }

  def resolve_download(self, file_name: str) -> Path:
    validate_filename(file_name)
    if not self.store.exists(file_name):
      raise ArchiveNotFound("Backup file not found", details={"fileName": file_name})
    return self.store.path_for(file_name)

  def delete_backup(self, file_name: str, deleted_by: str) -> dict[str, Any]:
    validate_filename(file_name)
    self.store.delete(file_name)
    logger.info("backup %s deleted by %s", file_name, deleted_by)
    return {"deletedFile": file_name, "deletedBy": deleted_by, "deletedAt": iso_z(now_utc())}

  async def restore_upload(self, upload: Any, restored_by: str) -> dict[str, Any]:
    if upload is None or not getattr(upload, "filename", None):
      raise NoFileProvided("No backup file provided")

    path, size = await self.store.save_upload(upload)
    try:
      ok, reason = self.store.validate_upload(UploadInfo(filename=upload.filename, contentType=upload.content_type, size=size))
      if not ok:
        raise InvalidFile(reason or "Invalid file")
      raw = await asyncio.to_thread(self.store.load_backup_file, path)
      if not validate_backup_data(raw):
        raise InvalidBackupStructure("Invalid backup file structure")
      try:
        snapshot = Snapshot.from_dict(raw)
      except (KeyError, TypeError, ValueError) as exc:
        raise InvalidBackupStructure("Invalid backup file structure", details=str(exc)) from exc

      async with self.lock.hold("restore"):
        counts = await self.importer.import_all(snapshot)
    finally:
      try:
        path.unlink(missing_ok=True)
      except OSError as exc:
        logger.warning("could not remove uploaded file %s: %s", path.name, exc)

    consistent = snapshot.counts_consistent()
    if not consistent:
      logger.warning(
        "backup %s metadata reports %d records, payload held %d",
        snapshot.metadata.backupId,
        snapshot.metadata.totalRecords,
        sum(counts.values()),
      )
    logger.info("backup %s restored by %s", snapshot.metadata.backupId, restored_by)
    return {
      "restoredRecords": sum(counts.values()),
      "backupId": snapshot.metadata.backupId,
      "originalTimestamp": snapshot.metadata.timestamp,
      "originalCreatedBy": snapshot.metadata.createdBy,
      "restoredAt": iso_z(now_utc()),
      "restoredBy": restored_by,
      "tables": counts,
      "metadataConsistent": consistent,
    }
