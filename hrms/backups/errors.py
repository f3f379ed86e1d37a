from __future__ import annotations

from typing import Any


class BackupError(RuntimeError):
  code = "BACKUP_ERROR"
  status_code = 500

  def __init__(self, message: str, *, details: Any = None) -> None:
    super().__init__(message)
    self.message = message
    self.details = details

  def to_dict(self) -> dict[str, Any]:
    out: dict[str, Any] = {"code": self.code, "message": self.message}
    if self.details is not None:
      out["details"] = self.details
    return out


class InsufficientPermissions(BackupError):
  code = "INSUFFICIENT_PERMISSIONS"
  status_code = 403


class InvalidFilename(BackupError):
  code = "INVALID_FILENAME"
  status_code = 400


class ArchiveNotFound(BackupError):
  code = "BACKUP_NOT_FOUND"
  status_code = 404


class NoFileProvided(BackupError):
  code = "NO_FILE_PROVIDED"
  status_code = 400


class InvalidFile(BackupError):
  code = "INVALID_FILE"
  status_code = 400


class InvalidBackupFile(BackupError):
  code = "INVALID_BACKUP_FILE"
  status_code = 400


class InvalidBackupStructure(BackupError):
  code = "INVALID_BACKUP_STRUCTURE"
  status_code = 400


class ExportFailed(BackupError):
  code = "EXPORT_FAILED"


class ArchiveCreationFailed(BackupError):
  code = "ARCHIVE_CREATION_FAILED"


class ImportFailed(BackupError):
  code = "IMPORT_FAILED"


class DirectoryInitFailed(BackupError):
  code = "DIRECTORY_INIT_FAILED"


class BackupInProgress(BackupError):
  code = "BACKUP_IN_PROGRESS"
  status_code = 409
