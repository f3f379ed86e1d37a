from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import FileResponse

from hrms.backups.service import BackupService
from hrms.backups.snapshot import iso_z, now_utc
from hrms.deps import get_backup_service, get_current_admin, require_super_admin
from hrms.models import Admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/backup", tags=["backup"])


def _ok(data: Any, message: str | None = None) -> dict[str, Any]:
  out: dict[str, Any] = {"success": True, "data": data}
  if message:
    out["message"] = message
  out["timestamp"] = iso_z(now_utc())
  return out


@router.get("/status")
async def backup_status(
  admin: Admin = Depends(get_current_admin),
  svc: BackupService = Depends(get_backup_service),
) -> dict:
  require_super_admin(admin, "Only super administrators can view backup status")
  return _ok(await svc.status())


@router.post("/create")
async def backup_create(
  admin: Admin = Depends(get_current_admin),
  svc: BackupService = Depends(get_backup_service),
) -> dict:
  require_super_admin(admin, "Only super administrators can create backups")
  logger.info("backup requested by %s", admin.email)
  return _ok(await svc.create_backup(admin.full_name), "Backup created successfully")


@router.get("/list")
async def backup_list(
  admin: Admin = Depends(get_current_admin),
  svc: BackupService = Depends(get_backup_service),
) -> dict:
  require_super_admin(admin, "Only super administrators can view backups")
  return _ok(await svc.list_backups())


@router.get("/download/{fileName:path}")
async def backup_download(
  fileName: str,
  admin: Admin = Depends(get_current_admin),
  svc: BackupService = Depends(get_backup_service),
) -> FileResponse:
  require_super_admin(admin, "Only super administrators can download backups")
  path = svc.resolve_download(fileName)
  logger.info("backup %s downloaded by %s", fileName, admin.email)
  return FileResponse(path=str(path), filename=fileName, media_type="application/zip", headers={"Cache-Control": "no-cache"})


@router.post("/restore")
async def backup_restore(
  backupFile: UploadFile | None = File(default=None),
  admin: Admin = Depends(get_current_admin),
  svc: BackupService = Depends(get_backup_service),
) -> dict:
  require_super_admin(admin, "Only super administrators can restore backups")
  logger.warning("restore requested by %s", admin.email)
  result = await svc.restore_upload(backupFile, admin.full_name)
  return _ok(result, "Database restored successfully")


@router.delete("/{fileName:path}")
async def backup_delete(
  fileName: str,
  admin: Admin = Depends(get_current_admin),
  svc: BackupService = Depends(get_backup_service),
) -> dict:
  require_super_admin(admin, "Only super administrators can delete backups")
  return _ok(svc.delete_backup(fileName, admin.full_name), "Backup deleted successfully")
