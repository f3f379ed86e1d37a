from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, Numeric, delete, insert, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hrms.backups.errors import ImportFailed
from hrms.backups.registry import EntityType, delete_order, recreate_order
from hrms.backups.snapshot import Snapshot, parse_iso

logger = logging.getLogger(__name__)


def _coerce(column, value: Any) -> Any:
  if value is None:
    return None
  if isinstance(column.type, DateTime) and isinstance(value, str):
    return parse_iso(value)
  if isinstance(column.type, Numeric) and not isinstance(value, (Decimal, bool)):
    return Decimal(str(value))
  return value


def prepare_record(entity: EntityType, record: Any) -> dict[str, Any]:
  """Turn one snapshot record into insert parameters keyed by column key."""
  if not isinstance(record, dict):
    raise ValueError(f"{entity.name}: record is not an object")
  fields = entity.strip_for_import(record)
  columns = {c.name: c for c in entity.table.columns}
  unknown = sorted(set(fields) - set(columns))
  if unknown:
    raise ValueError(f"{entity.name}: unknown field(s) {', '.join(unknown)}")
  return {columns[name].key: _coerce(columns[name], value) for name, value in fields.items()}


class ImportEngine:
  def __init__(self, session_factory: async_sessionmaker) -> None:
    self._session_factory = session_factory

  async def import_all(self, snapshot: Snapshot) -> dict[str, int]:
    """Replace every row of every entity type with the snapshot's records.

    One transaction covers both phases; any failure rolls the whole thing back.
    """
    counts: dict[str, int] = {}
    try:
      async with self._session_factory() as db:
        async with db.begin():
          for entity in delete_order():
            res = await db.execute(delete(entity.table))
            logger.debug("restore: cleared %s (%s rows)", entity.name, res.rowcount)
          for entity in recreate_order():
            rows = [prepare_record(entity, r) for r in snapshot.data[entity.name]]
            await self._recreate(db, entity, rows)
            counts[entity.name] = len(rows)
            logger.debug("restore: recreated %d %s", len(rows), entity.name)
    except Exception as exc:
      logger.error("restore of backup %s failed: %s", snapshot.metadata.backupId, exc)
      raise ImportFailed(f"Failed to import data: {exc}", details=str(exc)) from exc

    logger.info("restored %d records from backup %s", sum(counts.values()), snapshot.metadata.backupId)
    return counts

  async def _recreate(self, db: AsyncSession, entity: EntityType, rows: list[dict[str, Any]]) -> None:
    if not rows:
      return
    table = entity.table
    if entity.bulk:
      groups: dict[tuple[str, ...], list[dict[str, Any]]] = {}
      for row in rows:
        groups.setdefault(tuple(row), []).append(row)
      for group in groups.values():
        await db.execute(insert(table), group)
      return

    deferred_keys = [c.key for c in table.columns if c.name in entity.deferred]
    # Patching must not let onupdate defaults overwrite the restored values.
    stamped_keys = [c.key for c in table.columns if c.onupdate is not None]
    pk = next(iter(table.primary_key.columns))
    patches: list[tuple[Any, dict[str, Any]]] = []
    for row in rows:
      later = {k: row[k] for k in deferred_keys if row.get(k) is not None}
      if later:
        row = {**row, **{k: None for k in later}}
        stamped = {k: row[k] for k in stamped_keys if k in row}
        patches.append((row[pk.key], {**later, **stamped}))
      await db.execute(insert(table).values(row))
    for rid, values in patches:
      await db.execute(update(table).where(pk == rid).values(values))
