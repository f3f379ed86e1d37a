from __future__ import annotations

import asyncio
import json
import zipfile
from pathlib import Path

import pytest
from sqlalchemy import text

from hrms.backups import cli
from hrms.db import make_engine
from hrms.models import Base


def _create_schema(url: str) -> None:
  async def _go() -> None:
    eng = make_engine(url)
    async with eng.begin() as conn:
      await conn.run_sync(Base.metadata.create_all)
    await eng.dispose()

  asyncio.run(_go())


@pytest.fixture
def cli_env(tmp_path: Path, monkeypatch) -> Path:
  url = f"sqlite+aiosqlite:///{tmp_path / 'cli_test.db'}"
  _create_schema(url)
  monkeypatch.setenv("DATABASE_URL", url)
  monkeypatch.setenv("BACKUP_DIR", str(tmp_path / "backups"))
  monkeypatch.setenv("BACKUP_TEMP_DIR", str(tmp_path / "temp"))
  monkeypatch.setenv("APP_ENV", "test")
  return tmp_path


def test_cli_writes_archive(cli_env):
  assert cli.main(["--silent"]) == cli.EXIT_OK

  archives = list((cli_env / "backups").glob("backup_*.zip"))
  assert len(archives) == 1
  with zipfile.ZipFile(archives[0]) as zf:
    meta = json.loads(zf.read("metadata.json"))
  assert meta["createdBy"] == cli.CLI_ORIGINATOR
  assert meta["environment"] == "test"
  assert meta["totalRecords"] == 0
  assert "pythonVersion" in meta and "platform" in meta
  assert list((cli_env / "temp").glob("*.json")) == []


def test_cli_output_directory(cli_env):
  out = cli_env / "elsewhere"
  assert cli.main(["-s", "-o", str(out)]) == cli.EXIT_OK
  assert len(list(out.glob("*.zip"))) == 1
  assert not list((cli_env / "backups").glob("*.zip"))


def test_cli_database_unreachable(tmp_path, monkeypatch):
  monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'nope.db'}")
  monkeypatch.setenv("BACKUP_DIR", str(tmp_path / "backups"))
  monkeypatch.setenv("BACKUP_TEMP_DIR", str(tmp_path / "temp"))
  assert cli.main(["-s"]) == cli.EXIT_DATABASE
  assert not (tmp_path / "backups").exists()


def test_cli_unwritable_output(cli_env):
  blocker = cli_env / "blocker"
  blocker.write_text("x")
  assert cli.main(["-s", "-o", str(blocker / "out")]) == cli.EXIT_FILESYSTEM


def test_cli_export_failure(cli_env):
  async def _drop() -> None:
    eng = make_engine(f"sqlite+aiosqlite:///{cli_env / 'cli_test.db'}")
    async with eng.begin() as conn:
      await conn.execute(text("DROP TABLE documents"))
    await eng.dispose()

  asyncio.run(_drop())
  assert cli.main(["-s"]) == cli.EXIT_DATABASE
