from __future__ import annotations

import argparse
import asyncio
import logging
import os
import platform
import sys

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from hrms.backups.errors import ArchiveCreationFailed, BackupInProgress, DirectoryInitFailed, ExportFailed
from hrms.backups.service import BackupService
from hrms.backups.validator import validate_backup_data
from hrms.config import Settings
from hrms.db import make_engine, make_session_factory

EXIT_OK = 0
EXIT_GENERAL = 1
EXIT_DATABASE = 2
EXIT_FILESYSTEM = 3
EXIT_VALIDATION = 4

CLI_ORIGINATOR = "CLI Utility"

logger = logging.getLogger("hrms.backups.cli")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
  parser = argparse.ArgumentParser(prog="hrms-backup", description="Create a full HRMS database backup archive")
  parser.add_argument("-v", "--verbose", action="store_true", help="log every step")
  parser.add_argument("-s", "--silent", action="store_true", help="only report errors")
  parser.add_argument("-o", "--output", default=None, help="directory for the archive (default: BACKUP_DIR)")
  return parser.parse_args(argv)


def _environment_metadata() -> dict[str, str]:
  return {
    "environment": os.environ.get("APP_ENV", "development"),
    "pythonVersion": platform.python_version(),
    "platform": sys.platform,
  }


async def run(cfg: Settings, *, output: str | None = None) -> int:
  engine = make_engine(cfg.database_url)
  try:
    try:
      async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
      logger.error("database connection failed: %s", exc)
      return EXIT_DATABASE

    svc = BackupService.from_settings(cfg, make_session_factory(engine), backup_dir=output)
    try:
      svc.store.ensure_directories()
    except DirectoryInitFailed as exc:
      logger.error("%s", exc.message)
      return EXIT_FILESYSTEM

    try:
      async with svc.lock.hold("create"):
        snapshot = await svc.exporter.export_all(CLI_ORIGINATOR, extra_metadata=_environment_metadata())
        if not validate_backup_data(snapshot.to_dict()) or not snapshot.counts_consistent():
          logger.error("exported snapshot failed validation")
          return EXIT_VALIDATION
        archive = svc.packager.package(snapshot)
    except ExportFailed as exc:
      logger.error("%s", exc.message)
      return EXIT_DATABASE
    except ArchiveCreationFailed as exc:
      logger.error("%s", exc.message)
      return EXIT_FILESYSTEM
    except BackupInProgress as exc:
      logger.error("%s", exc.message)
      return EXIT_GENERAL
    finally:
      await svc.lock.aclose()

    svc.store.cleanup_scratch(cfg.backup_scratch_max_age_minutes)
    logger.info(
      "backup %s written to %s (%d records, %d bytes)",
      snapshot.metadata.backupId,
      archive.filePath,
      snapshot.metadata.totalRecords,
      archive.size,
    )
    return EXIT_OK
  finally:
    await engine.dispose()


def main(argv: list[str] | None = None) -> int:
  args = _parse_args(argv)
  cfg = Settings()
  level = logging.DEBUG if args.verbose else logging.ERROR if args.silent else logging.INFO
  logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
  try:
    return asyncio.run(run(cfg, output=args.output))
  except KeyboardInterrupt:
    logger.error("interrupted")
    return EXIT_GENERAL
  except Exception as exc:
    logger.exception("backup failed: %s", exc)
    return EXIT_GENERAL


if __name__ == "__main__":
  raise SystemExit(main())
