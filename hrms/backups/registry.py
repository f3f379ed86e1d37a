from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Table

from hrms.models import (
  Admin,
  AuditTrail,
  Base,
  Category,
  Document,
  Issue,
  IssueComment,
  Loan,
  LoanRepayment,
  PayrollSchedule,
  SalaryStructure,
  ShareableLink,
  Staff,
  SystemSetting,
)

ADMIN_SUMMARY = ("id", "fullName", "email")
STAFF_SUMMARY = ("id", "fullName", "employeeId")
MANAGER_SUMMARY = ("id", "fullName", "employeeId", "jobTitle")
CATEGORY_SUMMARY = ("id", "name", "type")


@dataclass(frozen=True)
class Reference:
  """Read-only summary of a related record embedded at export time.

  For a single reference, `column` is the foreign-key column on the owning
  record. For `many`, it is the column on the target rows that points back
  at the owning record's id.
  """

  key: str
  target: str
  column: str
  fields: tuple[str, ...]
  many: bool = False


@dataclass(frozen=True)
class EntityType:
  name: str
  model: type[Base]
  rank: int
  bulk: bool = False
  references: tuple[Reference, ...] = ()
  # Self-referencing columns; written after every row of the type exists.
  deferred: tuple[str, ...] = ()

  @property
  def table(self) -> Table:
    return self.model.__table__

  def column_names(self) -> list[str]:
    return [c.name for c in self.table.columns]

  def reference_keys(self) -> set[str]:
    return {r.key for r in self.references}

  def strip_for_import(self, record: dict[str, Any]) -> dict[str, Any]:
    drop = self.reference_keys()
    return {k: v for k, v in record.items() if k not in drop}


# Ordered by recreate rank. Deletes walk the same list backwards; that mirror
# is the delete order, so the two phases cannot drift apart.
_REGISTRY: tuple[EntityType, ...] = (
  EntityType(
    "admins",
    Admin,
    1,
    references=(Reference("createdByAdmin", "admins", "createdBy", ADMIN_SUMMARY),),
    deferred=("createdBy",),
  ),
  EntityType("systemSettings", SystemSetting, 2, bulk=True),
  EntityType("categories", Category, 3, bulk=True),
  EntityType(
    "staff",
    Staff,
    4,
    references=(
      Reference("reportingManager", "staff", "reportingManagerId", MANAGER_SUMMARY),
      Reference("subordinates", "staff", "reportingManagerId", MANAGER_SUMMARY, many=True),
      Reference("position", "categories", "positionId", CATEGORY_SUMMARY),
      Reference("departmentCategory", "categories", "departmentId", CATEGORY_SUMMARY),
      Reference("jobType", "categories", "jobTypeId", CATEGORY_SUMMARY),
    ),
    deferred=("reportingManagerId",),
  ),
  EntityType(
    "salaryStructures",
    SalaryStructure,
    5,
    references=(Reference("staff", "staff", "staffId", STAFF_SUMMARY),),
  ),
  EntityType(
    "loans",
    Loan,
    6,
    references=(
      Reference("staff", "staff", "staffId", STAFF_SUMMARY),
      Reference("updatedByAdmin", "admins", "updatedBy", ADMIN_SUMMARY),
    ),
  ),
  EntityType(
    "loanRepayments",
    LoanRepayment,
    7,
    references=(Reference("loan", "loans", "loanId", ("id", "staffId", "amount")),),
  ),
  EntityType(
    "issues",
    Issue,
    8,
    references=(
      Reference("staff", "staff", "staffId", STAFF_SUMMARY),
      Reference("admin", "admins", "assignedTo", ADMIN_SUMMARY),
      Reference("issueCategory", "categories", "categoryId", CATEGORY_SUMMARY),
    ),
  ),
  EntityType(
    "issueComments",
    IssueComment,
    9,
    references=(Reference("issue", "issues", "issueId", ("id", "ticketNumber", "title")),),
  ),
  EntityType(
    "documents",
    Document,
    10,
    references=(Reference("staff", "staff", "staffId", STAFF_SUMMARY),),
  ),
  EntityType(
    "auditTrails",
    AuditTrail,
    11,
    references=(Reference("admin", "admins", "performedBy", ADMIN_SUMMARY),),
  ),
  EntityType("payrollSchedules", PayrollSchedule, 12, bulk=True),
  EntityType("shareableLinks", ShareableLink, 13, bulk=True),
)

# Payload key order of the snapshot document.
ENTITY_NAMES: tuple[str, ...] = (
  "admins",
  "staff",
  "categories",
  "salaryStructures",
  "loans",
  "loanRepayments",
  "issues",
  "issueComments",
  "documents",
  "auditTrails",
  "payrollSchedules",
  "systemSettings",
  "shareableLinks",
)

_BY_NAME = {e.name: e for e in _REGISTRY}


def get(name: str) -> EntityType:
  return _BY_NAME[name]


def recreate_order() -> list[EntityType]:
  return sorted(_REGISTRY, key=lambda e: e.rank)


def delete_order() -> list[EntityType]:
  return list(reversed(recreate_order()))


def all_types() -> list[EntityType]:
  return [_BY_NAME[n] for n in ENTITY_NAMES]
