from __future__ import annotations

import io
import json
import zipfile
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from hrms.backups.archive import ArchiveInfo
from hrms.backups.errors import InvalidFile, InvalidFilename
from hrms.backups.service import recommendations_for, validate_filename
from hrms.models import SystemSetting
from tests.conftest import SAMPLE_TABLES, BrokenUpload, auth_headers, seed_admin, seed_sample_data


async def _root(test_settings, session_factory) -> dict[str, str]:
  admin = await seed_admin(session_factory)
  return auth_headers(test_settings, admin)


def _uploads(app) -> list:
  return list(app.state.backup_service.store.uploads_dir.iterdir())


@pytest.mark.anyio
async def test_requires_authentication(client):
  r = await client.get("/api/backup/status")
  assert r.status_code == 401, r.text


@pytest.mark.anyio
async def test_non_super_admin_is_refused_everywhere(client, app, test_settings, session_factory):
  await seed_admin(session_factory)
  hr = await seed_admin(session_factory, admin_id="admin-x", email="ops@hrms.local", role="ADMIN")
  h = auth_headers(test_settings, hr)

  calls = [
    ("GET", "/api/backup/status", {}),
    ("POST", "/api/backup/create", {}),
    ("GET", "/api/backup/list", {}),
    ("GET", "/api/backup/download/backup_x.zip", {}),
    ("POST", "/api/backup/restore", {"files": {"backupFile": ("b.json", b"{}", "application/json")}}),
    ("DELETE", "/api/backup/backup_x.zip", {}),
  ]
  for method, url, kw in calls:
    r = await client.request(method, url, headers=h, **kw)
    assert r.status_code == 403, r.text
    body = r.json()
    assert body["success"] is False
    assert body["error"]["code"] == "INSUFFICIENT_PERMISSIONS"
    assert "timestamp" in body

  assert list(app.state.backup_service.store.backup_dir.glob("*.zip")) == []
  assert _uploads(app) == []


@pytest.mark.anyio
async def test_create_list_download_delete(client, test_settings, session_factory):
  h = await _root(test_settings, session_factory)
  await seed_sample_data(session_factory)

  created = await client.post("/api/backup/create", headers=h)
  assert created.status_code == 200, created.text
  body = created.json()
  assert body["success"] is True
  assert body["message"] == "Backup created successfully"
  info = body["data"]
  assert info["fileName"].startswith("backup_") and info["fileName"].endswith(".zip")
  assert info["totalRecords"] == sum(SAMPLE_TABLES.values())
  assert info["tables"] == SAMPLE_TABLES
  assert info["downloadUrl"] == f"/api/backup/download/{info['fileName']}"
  assert info["size"] > 0

  listed = (await client.get("/api/backup/list", headers=h)).json()["data"]
  assert listed["total"] == 1
  assert listed["backups"][0]["fileName"] == info["fileName"]
  assert listed["backups"][0]["formattedCreatedAt"].endswith(" UTC")
  assert listed["currentDatabase"]["tables"] == SAMPLE_TABLES

  dl = await client.get(info["downloadUrl"], headers=h)
  assert dl.status_code == 200, dl.text
  assert dl.headers["content-type"] == "application/zip"
  assert dl.headers["cache-control"] == "no-cache"
  assert info["fileName"] in dl.headers["content-disposition"]
  with zipfile.ZipFile(io.BytesIO(dl.content)) as zf:
    backup_json = [n for n in zf.namelist() if n.startswith("backup_")][0]
    doc = json.loads(zf.read(backup_json))
  assert doc["metadata"]["backupId"] == info["backupId"]
  assert doc["metadata"]["createdBy"] == "Root"

  deleted = await client.delete(f"/api/backup/{info['fileName']}", headers=h)
  assert deleted.status_code == 200, deleted.text
  assert deleted.json()["message"] == "Backup deleted successfully"
  assert deleted.json()["data"]["deletedFile"] == info["fileName"]

  missing = await client.get(info["downloadUrl"], headers=h)
  assert missing.status_code == 404
  assert missing.json()["error"]["code"] == "BACKUP_NOT_FOUND"
  gone = await client.delete(f"/api/backup/{info['fileName']}", headers=h)
  assert gone.status_code == 404
  assert (await client.get("/api/backup/list", headers=h)).json()["data"]["total"] == 0


@pytest.mark.anyio
async def test_traversal_names_are_rejected(client, test_settings, session_factory):
  h = await _root(test_settings, session_factory)
  for r in (
    await client.get("/api/backup/download/..secret.zip", headers=h),
    await client.delete("/api/backup/..secret.zip", headers=h),
    await client.get("/api/backup/download/a%5Cb.zip", headers=h),
    await client.get("/api/backup/download/..%2F..%2Fetc%2Fpasswd", headers=h),
    await client.delete("/api/backup/..%2F..%2Fetc%2Fpasswd", headers=h),
    await client.get("/api/backup/download/nested%2Fbackup.zip", headers=h),
  ):
    assert r.status_code == 400, r.text
    assert r.json()["error"]["code"] == "INVALID_FILENAME"


@pytest.mark.parametrize("name", ["", "..", "a/../b.zip", "a\\b.zip", "../etc/passwd"])
def test_validate_filename_rejects(name):
  with pytest.raises(InvalidFilename):
    validate_filename(name)


def test_validate_filename_accepts_plain_names():
  assert validate_filename("backup_2025-08-01T09-30-00-123Z_abcd1234.zip") == "backup_2025-08-01T09-30-00-123Z_abcd1234.zip"


@pytest.mark.anyio
async def test_restore_from_downloaded_archive(client, app, test_settings, session_factory):
  h = await _root(test_settings, session_factory)
  await seed_sample_data(session_factory)
  info = (await client.post("/api/backup/create", headers=h)).json()["data"]
  archive = (await client.get(info["downloadUrl"], headers=h)).content

  async with session_factory() as db:
    db.add(SystemSetting(id="set-late", key="late", value="1", updated_by="admin-root"))
    await db.commit()

  r = await client.post(
    "/api/backup/restore",
    headers=h,
    files={"backupFile": (info["fileName"], archive, "application/zip")},
  )
  assert r.status_code == 200, r.text
  body = r.json()
  assert body["message"] == "Database restored successfully"
  data = body["data"]
  assert data["backupId"] == info["backupId"]
  assert data["restoredRecords"] == info["totalRecords"]
  assert data["tables"] == SAMPLE_TABLES
  assert data["originalCreatedBy"] == "Root"
  assert data["restoredBy"] == "Root"
  assert data["metadataConsistent"] is True

  async with session_factory() as db:
    n = (await db.execute(select(func.count()).select_from(SystemSetting))).scalar_one()
  assert n == 1
  assert _uploads(app) == []


@pytest.mark.anyio
async def test_restore_from_plain_json_with_inconsistent_counts(client, app, test_settings, session_factory):
  h = await _root(test_settings, session_factory)
  info = (await client.post("/api/backup/create", headers=h)).json()["data"]
  with zipfile.ZipFile(app.state.backup_service.store.path_for(info["fileName"])) as zf:
    doc = json.loads(zf.read(info["fileName"].replace(".zip", ".json")))
  doc["metadata"]["totalRecords"] = 500

  r = await client.post(
    "/api/backup/restore",
    headers=h,
    files={"backupFile": ("restore.json", json.dumps(doc).encode(), "application/json")},
  )
  assert r.status_code == 200, r.text
  assert r.json()["data"]["restoredRecords"] == 1
  assert r.json()["data"]["metadataConsistent"] is False


@pytest.mark.anyio
@pytest.mark.parametrize(
  ("upload", "code"),
  [
    (("notes.txt", b"hello", "text/plain"), "INVALID_FILE"),
    (("bad.json", b"{not json", "application/json"), "INVALID_BACKUP_FILE"),
    (("shape.json", b'{"metadata": {}, "data": {}}', "application/json"), "INVALID_BACKUP_STRUCTURE"),
    (("list.json", b"[1, 2, 3]", "application/json"), "INVALID_BACKUP_STRUCTURE"),
  ],
)
async def test_restore_rejections(client, app, test_settings, session_factory, upload, code):
  h = await _root(test_settings, session_factory)
  r = await client.post("/api/backup/restore", headers=h, files={"backupFile": upload})
  assert r.status_code == 400, r.text
  assert r.json()["error"]["code"] == code
  assert _uploads(app) == []


@pytest.mark.anyio
async def test_restore_without_file(client, test_settings, session_factory):
  h = await _root(test_settings, session_factory)
  r = await client.post("/api/backup/restore", headers=h)
  assert r.status_code == 400, r.text
  assert r.json()["error"]["code"] == "NO_FILE_PROVIDED"


@pytest.mark.anyio
async def test_restore_oversized_upload(client, app, test_settings, session_factory):
  h = await _root(test_settings, session_factory)
  app.state.backup_service.store.max_upload_bytes = 16
  r = await client.post(
    "/api/backup/restore",
    headers=h,
    files={"backupFile": ("big.json", b"{" + b" " * 4096 + b"}", "application/json")},
  )
  assert r.status_code == 400, r.text
  err = r.json()["error"]
  assert err["code"] == "INVALID_FILE"
  assert err["message"] == "File size exceeds limit. Maximum allowed: 16 Bytes"
  assert _uploads(app) == []


@pytest.mark.anyio
async def test_failed_restore_reports_import_failure(client, app, test_settings, session_factory):
  h = await _root(test_settings, session_factory)
  info = (await client.post("/api/backup/create", headers=h)).json()["data"]
  with zipfile.ZipFile(app.state.backup_service.store.path_for(info["fileName"])) as zf:
    doc = json.loads(zf.read(info["fileName"].replace(".zip", ".json")))
  doc["data"]["categories"] = [{"id": "c1", "name": "X"}]

  r = await client.post(
    "/api/backup/restore",
    headers=h,
    files={"backupFile": ("broken.json", json.dumps(doc).encode(), "application/json")},
  )
  assert r.status_code == 500, r.text
  assert r.json()["error"]["code"] == "IMPORT_FAILED"

  me = await client.get("/api/auth/me", headers=h)
  assert me.status_code == 200, me.text


@pytest.mark.anyio
async def test_status_and_recommendations(client, test_settings, session_factory):
  h = await _root(test_settings, session_factory)
  first = (await client.get("/api/backup/status", headers=h)).json()["data"]
  assert first["system"]["status"] == "operational"
  assert first["system"]["version"] == test_settings.app_version
  assert first["database"]["totalRecords"] == 1
  assert first["backups"]["totalFiles"] == 0
  assert first["backups"]["newestBackup"] is None
  assert first["recommendations"] == ["Create your first backup to protect your data"]

  await client.post("/api/backup/create", headers=h)
  after = (await client.get("/api/backup/status", headers=h)).json()["data"]
  assert after["backups"]["totalFiles"] == 1
  assert after["backups"]["totalSize"] > 0
  assert after["backups"]["oldestBackup"] == after["backups"]["newestBackup"]
  assert after["recommendations"] == []


def _archives(ages_days: list[float], now: datetime) -> list[ArchiveInfo]:
  return [
    ArchiveInfo(fileName=f"b{i}.zip", size=1, createdAt=now - timedelta(days=d), modifiedAt=now, downloadUrl="")
    for i, d in enumerate(ages_days)
  ]


def test_recommendation_thresholds():
  now = datetime(2025, 8, 10, tzinfo=timezone.utc)
  assert recommendations_for(_archives([8], now), 5, now=now) == ["Consider creating a new backup - last backup is over a week old"]
  assert recommendations_for(_archives([3], now), 5, now=now) == ["Last backup is recent, but consider regular backup schedule"]
  assert recommendations_for(_archives([0.5], now), 5, now=now) == []
  many = recommendations_for(_archives([0] * 11, now), 20000, now=now)
  assert many == [
    "Consider cleaning up old backup files to save storage space",
    "Large dataset detected - ensure adequate storage for backups",
  ]


@pytest.mark.anyio
async def test_concurrent_mutation_is_refused(client, app, test_settings, session_factory):
  h = await _root(test_settings, session_factory)
  async with app.state.backup_service.lock.hold("restore"):
    r = await client.post("/api/backup/create", headers=h)
  assert r.status_code == 409, r.text
  assert r.json()["error"]["code"] == "BACKUP_IN_PROGRESS"

  ok = await client.post("/api/backup/create", headers=h)
  assert ok.status_code == 200, ok.text


@pytest.mark.anyio
async def test_interrupted_restore_upload_is_reported_and_cleaned(app, session_factory):
  await seed_admin(session_factory)
  svc = app.state.backup_service
  with pytest.raises(InvalidFile) as err:
    await svc.restore_upload(BrokenUpload(), "Root")
  assert err.value.code == "INVALID_FILE"
  assert _uploads(app) == []
