from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Columns keep the camelCase names of the persisted HRMS schema; attributes are snake_case.
JsonDoc = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
  return datetime.now(timezone.utc)


def new_id() -> str:
  return str(uuid.uuid4())


class Base(DeclarativeBase):
  pass


class Admin(Base):
  __tablename__ = "admins"

  id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
  email: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
  password: Mapped[str] = mapped_column(String, nullable=False)
  full_name: Mapped[str] = mapped_column("fullName", String, nullable=False)
  role: Mapped[str] = mapped_column(String, nullable=False, default="ADMIN")
  permissions: Mapped[list[str]] = mapped_column(JsonDoc, nullable=False, default=list)
  is_active: Mapped[bool] = mapped_column("isActive", Boolean, nullable=False, default=True)
  created_by: Mapped[str | None] = mapped_column(
    "createdBy", String, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True
  )
  last_login: Mapped[datetime | None] = mapped_column("lastLogin", DateTime(timezone=True), nullable=True)
  password_changed_at: Mapped[datetime] = mapped_column(
    "passwordChangedAt", DateTime(timezone=True), default=utcnow, nullable=False
  )
  password_expires_at: Mapped[datetime | None] = mapped_column("passwordExpiresAt", DateTime(timezone=True), nullable=True)
  must_change_password: Mapped[bool] = mapped_column("mustChangePassword", Boolean, nullable=False, default=False)
  created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(
    "updatedAt", DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
  )


class Category(Base):
  __tablename__ = "categories"
  __table_args__ = (UniqueConstraint("name", "type", name="categories_name_type_key"),)

  id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
  name: Mapped[str] = mapped_column(String, nullable=False)
  # POSITION | DEPARTMENT | JOB_TYPE | ISSUE_CATEGORY
  type: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  is_active: Mapped[bool] = mapped_column("isActive", Boolean, nullable=False, default=True)
  created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(
    "updatedAt", DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
  )


class Staff(Base):
  __tablename__ = "staff"

  id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
  employee_id: Mapped[str] = mapped_column("employeeId", String, nullable=False, unique=True)
  full_name: Mapped[str] = mapped_column("fullName", String, nullable=False)
  date_of_birth: Mapped[datetime | None] = mapped_column("dateOfBirth", DateTime(timezone=True), nullable=True)
  gender: Mapped[str] = mapped_column(String, nullable=False)
  marital_status: Mapped[str] = mapped_column("maritalStatus", String, nullable=False)
  nationality: Mapped[str | None] = mapped_column(String, nullable=True)
  photo: Mapped[str | None] = mapped_column(String, nullable=True)
  address: Mapped[str | None] = mapped_column(Text, nullable=True)
  personal_email: Mapped[str | None] = mapped_column("personalEmail", String, nullable=True)
  work_email: Mapped[str | None] = mapped_column("workEmail", String, nullable=True)
  phone_numbers: Mapped[list[str]] = mapped_column("phoneNumbers", JsonDoc, nullable=False, default=list)
  job_title: Mapped[str | None] = mapped_column("jobTitle", String, nullable=True)
  department: Mapped[str | None] = mapped_column(String, nullable=True)
  reporting_manager_id: Mapped[str | None] = mapped_column(
    "reportingManagerId", String, ForeignKey("staff.id", ondelete="SET NULL"), nullable=True
  )
  position_id: Mapped[str | None] = mapped_column(
    "positionId", String, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
  )
  department_id: Mapped[str | None] = mapped_column(
    "departmentId", String, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
  )
  job_type_id: Mapped[str | None] = mapped_column(
    "jobTypeId", String, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
  )
  date_of_joining: Mapped[datetime | None] = mapped_column("dateOfJoining", DateTime(timezone=True), nullable=True)
  employment_type: Mapped[str | None] = mapped_column("employmentType", String, nullable=True)
  work_location: Mapped[str | None] = mapped_column("workLocation", String, nullable=True)
  emergency_contact_name: Mapped[str | None] = mapped_column("emergencyContactName", String, nullable=True)
  emergency_contact_relationship: Mapped[str | None] = mapped_column("emergencyContactRelationship", String, nullable=True)
  emergency_contact_phone: Mapped[str | None] = mapped_column("emergencyContactPhone", String, nullable=True)
  account_details: Mapped[str | None] = mapped_column("accountDetails", Text, nullable=True)
  is_externally_paid: Mapped[bool] = mapped_column("isExternallyPaid", Boolean, nullable=False, default=False)
  is_active: Mapped[bool] = mapped_column("isActive", Boolean, nullable=False, default=True)
  created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(
    "updatedAt", DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
  )


class SalaryStructure(Base):
  __tablename__ = "salary_structures"

  id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
  staff_id: Mapped[str] = mapped_column("staffId", String, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True)
  basic_salary: Mapped[Decimal] = mapped_column("basicSalary", Numeric(10, 2), nullable=False)
  housing_allowance: Mapped[Decimal] = mapped_column("housingAllowance", Numeric(10, 2), nullable=False, default=Decimal("0"))
  transport_allowance: Mapped[Decimal] = mapped_column("transportAllowance", Numeric(10, 2), nullable=False, default=Decimal("0"))
  medical_allowance: Mapped[Decimal] = mapped_column("medicalAllowance", Numeric(10, 2), nullable=False, default=Decimal("0"))
  other_allowances: Mapped[list[Any]] = mapped_column("otherAllowances", JsonDoc, nullable=False, default=list)
  tax_deduction: Mapped[Decimal] = mapped_column("taxDeduction", Numeric(10, 2), nullable=False, default=Decimal("0"))
  pension_deduction: Mapped[Decimal] = mapped_column("pensionDeduction", Numeric(10, 2), nullable=False, default=Decimal("0"))
  loan_deduction: Mapped[Decimal] = mapped_column("loanDeduction", Numeric(10, 2), nullable=False, default=Decimal("0"))
  other_deductions: Mapped[list[Any]] = mapped_column("otherDeductions", JsonDoc, nullable=False, default=list)
  effective_date: Mapped[datetime] = mapped_column("effectiveDate", DateTime(timezone=True), default=utcnow, nullable=False)
  is_active: Mapped[bool] = mapped_column("isActive", Boolean, nullable=False, default=True)
  created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(
    "updatedAt", DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
  )


class Loan(Base):
  __tablename__ = "loans"

  id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
  staff_id: Mapped[str] = mapped_column("staffId", String, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True)
  amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
  reason: Mapped[str] = mapped_column(Text, nullable=False)
  repayment_terms: Mapped[int] = mapped_column("repaymentTerms", Integer, nullable=False)
  monthly_deduction: Mapped[Decimal] = mapped_column("monthlyDeduction", Numeric(10, 2), nullable=False)
  # PENDING | APPROVED | REJECTED | COMPLETED
  status: Mapped[str] = mapped_column(String, nullable=False, default="PENDING")
  approved_date: Mapped[datetime | None] = mapped_column("approvedDate", DateTime(timezone=True), nullable=True)
  start_date: Mapped[datetime | None] = mapped_column("startDate", DateTime(timezone=True), nullable=True)
  outstanding_balance: Mapped[Decimal] = mapped_column("outstandingBalance", Numeric(10, 2), nullable=False)
  installments_paid: Mapped[int] = mapped_column("installmentsPaid", Integer, nullable=False, default=0)
  is_paused: Mapped[bool] = mapped_column("isPaused", Boolean, nullable=False, default=False)
  pause_reason: Mapped[str | None] = mapped_column("pauseReason", Text, nullable=True)
  paused_at: Mapped[datetime | None] = mapped_column("pausedAt", DateTime(timezone=True), nullable=True)
  status_comments: Mapped[str | None] = mapped_column("statusComments", Text, nullable=True)
  updated_by: Mapped[str | None] = mapped_column(
    "updatedBy", String, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True
  )
  created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(
    "updatedAt", DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
  )


class LoanRepayment(Base):
  __tablename__ = "loan_repayments"

  id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
  loan_id: Mapped[str] = mapped_column("loanId", String, ForeignKey("loans.id", ondelete="CASCADE"), nullable=False, index=True)
  amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
  payment_date: Mapped[datetime] = mapped_column("paymentDate", DateTime(timezone=True), default=utcnow, nullable=False)
  payment_method: Mapped[str] = mapped_column("paymentMethod", String, nullable=False, default="SALARY_DEDUCTION")
  notes: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=True), default=utcnow, nullable=False)


class Issue(Base):
  __tablename__ = "issues"

  id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
  ticket_number: Mapped[str] = mapped_column("ticketNumber", String, nullable=False, unique=True)
  staff_id: Mapped[str | None] = mapped_column("staffId", String, ForeignKey("staff.id", ondelete="SET NULL"), nullable=True)
  category: Mapped[str] = mapped_column(String, nullable=False)
  category_id: Mapped[str | None] = mapped_column(
    "categoryId", String, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
  )
  title: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str] = mapped_column(Text, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False, default="OPEN")
  priority: Mapped[str] = mapped_column(String, nullable=False, default="MEDIUM")
  assigned_to: Mapped[str] = mapped_column("assignedTo", String, ForeignKey("admins.id"), nullable=False)
  created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(
    "updatedAt", DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
  )


class IssueComment(Base):
  __tablename__ = "issue_comments"

  id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
  issue_id: Mapped[str] = mapped_column("issueId", String, ForeignKey("issues.id", ondelete="CASCADE"), nullable=False, index=True)
  content: Mapped[str] = mapped_column(Text, nullable=False)
  created_by: Mapped[str] = mapped_column("createdBy", String, nullable=False)
  created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=True), default=utcnow, nullable=False)


class Document(Base):
  __tablename__ = "documents"

  id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
  staff_id: Mapped[str] = mapped_column("staffId", String, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True)
  file_name: Mapped[str] = mapped_column("fileName", String, nullable=False)
  original_name: Mapped[str] = mapped_column("originalName", String, nullable=False)
  file_type: Mapped[str] = mapped_column("fileType", String, nullable=False)
  file_size: Mapped[int] = mapped_column("fileSize", Integer, nullable=False)
  file_path: Mapped[str] = mapped_column("filePath", String, nullable=False)
  category: Mapped[str] = mapped_column(String, nullable=False)
  uploaded_at: Mapped[datetime] = mapped_column("uploadedAt", DateTime(timezone=True), default=utcnow, nullable=False)


class AuditTrail(Base):
  __tablename__ = "audit_trails"

  id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
  # STAFF | SALARY | LOAN | ISSUE
  entity_type: Mapped[str] = mapped_column("entityType", String, nullable=False)
  entity_id: Mapped[str] = mapped_column("entityId", String, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False)
  action: Mapped[str] = mapped_column(String, nullable=False)
  changes: Mapped[dict[str, Any]] = mapped_column(JsonDoc, nullable=False)
  performed_by: Mapped[str] = mapped_column("performedBy", String, ForeignKey("admins.id"), nullable=False)
  timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class PayrollSchedule(Base):
  __tablename__ = "payroll_schedules"
  __table_args__ = (UniqueConstraint("month", "year", name="payroll_schedules_month_year_key"),)

  id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
  month: Mapped[int] = mapped_column(Integer, nullable=False)
  year: Mapped[int] = mapped_column(Integer, nullable=False)
  staff_data: Mapped[Any] = mapped_column("staffData", JsonDoc, nullable=False)
  total_amount: Mapped[Decimal] = mapped_column("totalAmount", Numeric(12, 2), nullable=False)
  generated_by: Mapped[str] = mapped_column("generatedBy", String, nullable=False)
  generated_at: Mapped[datetime] = mapped_column("generatedAt", DateTime(timezone=True), default=utcnow, nullable=False)
  csv_file_path: Mapped[str | None] = mapped_column("csvFilePath", String, nullable=True)
  pdf_file_path: Mapped[str | None] = mapped_column("pdfFilePath", String, nullable=True)


class SystemSetting(Base):
  __tablename__ = "system_settings"

  id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
  key: Mapped[str] = mapped_column(String, nullable=False, unique=True)
  value: Mapped[str] = mapped_column(Text, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  category: Mapped[str] = mapped_column(String, nullable=False, default="general")
  updated_by: Mapped[str] = mapped_column("updatedBy", String, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(
    "updatedAt", DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
  )
  created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=True), default=utcnow, nullable=False)


class ShareableLink(Base):
  __tablename__ = "shareable_links"

  id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
  share_id: Mapped[str] = mapped_column("shareId", String, nullable=False, unique=True)
  organogram_data: Mapped[Any] = mapped_column("organogramData", JsonDoc, nullable=False)
  created_by: Mapped[str] = mapped_column("createdBy", String, nullable=False)
  created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=True), default=utcnow, nullable=False)
  expires_at: Mapped[datetime] = mapped_column("expiresAt", DateTime(timezone=True), nullable=False)
  is_active: Mapped[bool] = mapped_column("isActive", Boolean, nullable=False, default=True)
