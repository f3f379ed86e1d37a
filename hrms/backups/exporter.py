from __future__ import annotations

import asyncio
import logging
import re
import uuid
from collections import defaultdict
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from hrms.backups.errors import ExportFailed
from hrms.backups.registry import ENTITY_NAMES, EntityType, Reference, all_types
from hrms.backups.snapshot import BackupMetadata, Snapshot, iso_z, now_utc, to_json_value

logger = logging.getLogger(__name__)

_CREDENTIALS = re.compile(r"//[^/@]*@")


def mask_database_url(url: str) -> str:
  return _CREDENTIALS.sub("//***:***@", url or "", count=1)


def _summary(row: dict[str, Any] | None, fields: tuple[str, ...]) -> dict[str, Any] | None:
  if row is None:
    return None
  return {f: row.get(f) for f in fields}


class ExportEngine:
  def __init__(self, session_factory: async_sessionmaker, *, database_url: str, schema_version: str = "1.0.0") -> None:
    self._session_factory = session_factory
    self._database_url = database_url
    self._schema_version = schema_version

  async def _read_all(self, entity: EntityType) -> list[dict[str, Any]]:
    table = entity.table
    cols = list(table.columns)
    async with self._session_factory() as db:
      res = await db.execute(select(table).order_by(*table.primary_key.columns))
      return [{c.name: to_json_value(row._mapping[c]) for c in cols} for row in res]

  async def export_all(self, created_by: str = "System", *, extra_metadata: dict[str, Any] | None = None) -> Snapshot:
    types = all_types()
    results = await asyncio.gather(*(self._read_all(e) for e in types), return_exceptions=True)
    for exc in results:
      if isinstance(exc, Exception):
        logger.error("backup export failed: %s", exc)
        raise ExportFailed(f"Failed to export data: {exc}", details=str(exc)) from exc

    data = {e.name: rows for e, rows in zip(types, results)}
    self._enrich(data)

    tables = {name: len(data[name]) for name in ENTITY_NAMES}
    metadata = BackupMetadata(
      version=self._schema_version,
      timestamp=iso_z(now_utc()),
      databaseUrl=mask_database_url(self._database_url),
      totalRecords=sum(tables.values()),
      backupId=str(uuid.uuid4()),
      createdBy=created_by or "System",
      tables=tables,
      extra=dict(extra_metadata or {}),
    )
    logger.info("exported %d records for backup %s (%s)", metadata.totalRecords, metadata.backupId, tables)
    return Snapshot(metadata=metadata, data=data)

  def _enrich(self, data: dict[str, list[dict[str, Any]]]) -> None:
    by_id = {name: {r["id"]: r for r in rows} for name, rows in data.items()}
    # Summaries are computed from the unenriched rows.
    pending: list[tuple[dict[str, Any], str, Any]] = []
    for entity in all_types():
      for ref in entity.references:
        children = self._children_index(data, ref) if ref.many else None
        for record in data[entity.name]:
          pending.append((record, ref.key, self._resolve(record, ref, by_id, children)))
    for record, key, value in pending:
      record[key] = value

  @staticmethod
  def _children_index(data: dict[str, list[dict[str, Any]]], ref: Reference) -> dict[Any, list[dict[str, Any]]]:
    index: dict[Any, list[dict[str, Any]]] = defaultdict(list)
    for row in data[ref.target]:
      parent = row.get(ref.column)
      if parent is not None:
        index[parent].append(row)
    return index

  @staticmethod
  def _resolve(
    record: dict[str, Any],
    ref: Reference,
    by_id: dict[str, dict[Any, dict[str, Any]]],
    children: dict[Any, list[dict[str, Any]]] | None,
  ) -> Any:
    if ref.many:
      return [_summary(r, ref.fields) for r in (children or {}).get(record["id"], [])]
    target_id = record.get(ref.column)
    if target_id is None:
      return None
    return _summary(by_id[ref.target].get(target_id), ref.fields)

  async def database_stats(self) -> dict[str, Any]:
    tables: dict[str, int] = {}
    async with self._session_factory() as db:
      for entity in all_types():
        res = await db.execute(select(func.count()).select_from(entity.table))
        tables[entity.name] = int(res.scalar_one())
    return {"totalRecords": sum(tables.values()), "tables": tables}
