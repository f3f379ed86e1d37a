"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _ts(name: str, nullable: bool = False, default: bool = True) -> sa.Column:
  return sa.Column(
    name,
    sa.DateTime(timezone=True),
    nullable=nullable,
    server_default=sa.text("CURRENT_TIMESTAMP") if default else None,
  )


def upgrade() -> None:
  op.create_table(
    "admins",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("email", sa.String(), nullable=False),
    sa.Column("password", sa.String(), nullable=False),
    sa.Column("fullName", sa.String(), nullable=False),
    sa.Column("role", sa.String(), nullable=False, server_default="ADMIN"),
    sa.Column("permissions", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
    sa.Column("isActive", sa.Boolean(), nullable=False, server_default=sa.true()),
    sa.Column("createdBy", sa.String(), sa.ForeignKey("admins.id", ondelete="SET NULL"), nullable=True),
    _ts("lastLogin", nullable=True, default=False),
    _ts("passwordChangedAt"),
    _ts("passwordExpiresAt", nullable=True, default=False),
    sa.Column("mustChangePassword", sa.Boolean(), nullable=False, server_default=sa.false()),
    _ts("createdAt"),
    _ts("updatedAt"),
  )
  op.create_index("ix_admins_email", "admins", ["email"], unique=True)

  op.create_table(
    "categories",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("type", sa.String(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("isActive", sa.Boolean(), nullable=False, server_default=sa.true()),
    _ts("createdAt"),
    _ts("updatedAt"),
    sa.UniqueConstraint("name", "type", name="categories_name_type_key"),
  )

  op.create_table(
    "staff",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("employeeId", sa.String(), nullable=False, unique=True),
    sa.Column("fullName", sa.String(), nullable=False),
    _ts("dateOfBirth", nullable=True, default=False),
    sa.Column("gender", sa.String(), nullable=False),
    sa.Column("maritalStatus", sa.String(), nullable=False),
    sa.Column("nationality", sa.String(), nullable=True),
    sa.Column("photo", sa.String(), nullable=True),
    sa.Column("address", sa.Text(), nullable=True),
    sa.Column("personalEmail", sa.String(), nullable=True),
    sa.Column("workEmail", sa.String(), nullable=True),
    sa.Column("phoneNumbers", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
    sa.Column("jobTitle", sa.String(), nullable=True),
    sa.Column("department", sa.String(), nullable=True),
    sa.Column("reportingManagerId", sa.String(), sa.ForeignKey("staff.id", ondelete="SET NULL"), nullable=True),
    sa.Column("positionId", sa.String(), sa.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True),
    sa.Column("departmentId", sa.String(), sa.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True),
    sa.Column("jobTypeId", sa.String(), sa.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True),
    _ts("dateOfJoining", nullable=True, default=False),
    sa.Column("employmentType", sa.String(), nullable=True),
    sa.Column("workLocation", sa.String(), nullable=True),
    sa.Column("emergencyContactName", sa.String(), nullable=True),
    sa.Column("emergencyContactRelationship", sa.String(), nullable=True),
    sa.Column("emergencyContactPhone", sa.String(), nullable=True),
    sa.Column("accountDetails", sa.Text(), nullable=True),
    sa.Column("isExternallyPaid", sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column("isActive", sa.Boolean(), nullable=False, server_default=sa.true()),
    _ts("createdAt"),
    _ts("updatedAt"),
  )

  money = sa.Numeric(10, 2)
  op.create_table(
    "salary_structures",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("staffId", sa.String(), sa.ForeignKey("staff.id", ondelete="CASCADE"), nullable=False),
    sa.Column("basicSalary", money, nullable=False),
    sa.Column("housingAllowance", money, nullable=False, server_default="0"),
    sa.Column("transportAllowance", money, nullable=False, server_default="0"),
    sa.Column("medicalAllowance", money, nullable=False, server_default="0"),
    sa.Column("otherAllowances", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
    sa.Column("taxDeduction", money, nullable=False, server_default="0"),
    sa.Column("pensionDeduction", money, nullable=False, server_default="0"),
    sa.Column("loanDeduction", money, nullable=False, server_default="0"),
    sa.Column("otherDeductions", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
    _ts("effectiveDate"),
    sa.Column("isActive", sa.Boolean(), nullable=False, server_default=sa.true()),
    _ts("createdAt"),
    _ts("updatedAt"),
  )
  op.create_index("ix_salary_structures_staffId", "salary_structures", ["staffId"])

  op.create_table(
    "loans",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("staffId", sa.String(), sa.ForeignKey("staff.id", ondelete="CASCADE"), nullable=False),
    sa.Column("amount", money, nullable=False),
    sa.Column("reason", sa.Text(), nullable=False),
    sa.Column("repaymentTerms", sa.Integer(), nullable=False),
    sa.Column("monthlyDeduction", money, nullable=False),
    sa.Column("status", sa.String(), nullable=False, server_default="PENDING"),
    _ts("approvedDate", nullable=True, default=False),
    _ts("startDate", nullable=True, default=False),
    sa.Column("outstandingBalance", money, nullable=False),
    sa.Column("installmentsPaid", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("isPaused", sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column("pauseReason", sa.Text(), nullable=True),
    _ts("pausedAt", nullable=True, default=False),
    sa.Column("statusComments", sa.Text(), nullable=True),
    sa.Column("updatedBy", sa.String(), sa.ForeignKey("admins.id", ondelete="SET NULL"), nullable=True),
    _ts("createdAt"),
    _ts("updatedAt"),
  )
  op.create_index("ix_loans_staffId", "loans", ["staffId"])

  op.create_table(
    "loan_repayments",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("loanId", sa.String(), sa.ForeignKey("loans.id", ondelete="CASCADE"), nullable=False),
    sa.Column("amount", money, nullable=False),
    _ts("paymentDate"),
    sa.Column("paymentMethod", sa.String(), nullable=False, server_default="SALARY_DEDUCTION"),
    sa.Column("notes", sa.Text(), nullable=True),
    _ts("createdAt"),
  )
  op.create_index("ix_loan_repayments_loanId", "loan_repayments", ["loanId"])

  op.create_table(
    "issues",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("ticketNumber", sa.String(), nullable=False, unique=True),
    sa.Column("staffId", sa.String(), sa.ForeignKey("staff.id", ondelete="SET NULL"), nullable=True),
    sa.Column("category", sa.String(), nullable=False),
    sa.Column("categoryId", sa.String(), sa.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True),
    sa.Column("title", sa.String(), nullable=False),
    sa.Column("description", sa.Text(), nullable=False),
    sa.Column("status", sa.String(), nullable=False, server_default="OPEN"),
    sa.Column("priority", sa.String(), nullable=False, server_default="MEDIUM"),
    sa.Column("assignedTo", sa.String(), sa.ForeignKey("admins.id"), nullable=False),
    _ts("createdAt"),
    _ts("updatedAt"),
  )

  op.create_table(
    "issue_comments",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("issueId", sa.String(), sa.ForeignKey("issues.id", ondelete="CASCADE"), nullable=False),
    sa.Column("content", sa.Text(), nullable=False),
    sa.Column("createdBy", sa.String(), nullable=False),
    _ts("createdAt"),
  )
  op.create_index("ix_issue_comments_issueId", "issue_comments", ["issueId"])

  op.create_table(
    "documents",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("staffId", sa.String(), sa.ForeignKey("staff.id", ondelete="CASCADE"), nullable=False),
    sa.Column("fileName", sa.String(), nullable=False),
    sa.Column("originalName", sa.String(), nullable=False),
    sa.Column("fileType", sa.String(), nullable=False),
    sa.Column("fileSize", sa.Integer(), nullable=False),
    sa.Column("filePath", sa.String(), nullable=False),
    sa.Column("category", sa.String(), nullable=False),
    _ts("uploadedAt"),
  )
  op.create_index("ix_documents_staffId", "documents", ["staffId"])

  op.create_table(
    "audit_trails",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("entityType", sa.String(), nullable=False),
    sa.Column("entityId", sa.String(), sa.ForeignKey("staff.id", ondelete="CASCADE"), nullable=False),
    sa.Column("action", sa.String(), nullable=False),
    sa.Column("changes", postgresql.JSONB(), nullable=False),
    sa.Column("performedBy", sa.String(), sa.ForeignKey("admins.id"), nullable=False),
    _ts("timestamp"),
  )

  op.create_table(
    "payroll_schedules",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("month", sa.Integer(), nullable=False),
    sa.Column("year", sa.Integer(), nullable=False),
    sa.Column("staffData", postgresql.JSONB(), nullable=False),
    sa.Column("totalAmount", sa.Numeric(12, 2), nullable=False),
    sa.Column("generatedBy", sa.String(), nullable=False),
    _ts("generatedAt"),
    sa.Column("csvFilePath", sa.String(), nullable=True),
    sa.Column("pdfFilePath", sa.String(), nullable=True),
    sa.UniqueConstraint("month", "year", name="payroll_schedules_month_year_key"),
  )

  op.create_table(
    "system_settings",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("key", sa.String(), nullable=False, unique=True),
    sa.Column("value", sa.Text(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("category", sa.String(), nullable=False, server_default="general"),
    sa.Column("updatedBy", sa.String(), nullable=False),
    _ts("updatedAt"),
    _ts("createdAt"),
  )

  op.create_table(
    "shareable_links",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("shareId", sa.String(), nullable=False, unique=True),
    sa.Column("organogramData", postgresql.JSONB(), nullable=False),
    sa.Column("createdBy", sa.String(), nullable=False),
    _ts("createdAt"),
    _ts("expiresAt", default=False),
    sa.Column("isActive", sa.Boolean(), nullable=False, server_default=sa.true()),
  )


def downgrade() -> None:
  for table in (
    "shareable_links",
    "system_settings",
    "payroll_schedules",
    "audit_trails",
    "documents",
    "issue_comments",
    "issues",
    "loan_repayments",
    "loans",
    "salary_structures",
    "staff",
    "categories",
    "admins",
  ):
    op.drop_table(table)
