from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

from hrms.config import Settings
from hrms.db import make_engine, make_session_factory
from hrms.main import create_app
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
from hrms.security import create_access_token, hash_password

ROOT_ADMIN_ID = "admin-root"
ROOT_EMAIL = "root@hrms.local"
ROOT_PASSWORD = "root-pass-123"


@pytest.fixture(scope="session")
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
  return Settings(
    database_url=f"sqlite+aiosqlite:///{tmp_path / 'hrms_test.db'}",
    app_secret="test-secret",
    redis_url=None,
    backup_dir=str(tmp_path / "backups"),
    backup_temp_dir=str(tmp_path / "temp"),
    backup_lock_wait_seconds=0.2,
    trusted_hosts="localhost,test",
  )


@pytest.fixture
async def session_factory(test_settings: Settings):
  eng = make_engine(test_settings.database_url)
  async with eng.begin() as conn:
    await conn.run_sync(Base.metadata.create_all)
  yield make_session_factory(eng)
  await eng.dispose()


@pytest.fixture
async def app(test_settings: Settings, session_factory):
  return create_app(test_settings, session_factory)


@pytest.fixture
async def client(app) -> AsyncClient:
  transport = ASGITransport(app=app)
  async with AsyncClient(transport=transport, base_url="http://localhost") as c:
    yield c


async def seed_admin(
  session_factory,
  *,
  admin_id: str = ROOT_ADMIN_ID,
  email: str = ROOT_EMAIL,
  password: str = ROOT_PASSWORD,
  role: str = "SUPER_ADMIN",
  created_by: str | None = None,
  active: bool = True,
) -> Admin:
  async with session_factory() as db:
    a = Admin(
      id=admin_id,
      email=email,
      password=hash_password(password),
      full_name=email.split("@", 1)[0].title(),
      role=role,
      created_by=created_by,
      is_active=active,
    )
    db.add(a)
    await db.commit()
    return a


def auth_headers(cfg: Settings, admin: Admin) -> dict[str, str]:
  token = create_access_token(admin.id, admin.role, secret=cfg.app_secret, ttl_minutes=5)
  return {"Authorization": f"Bearer {token}"}


async def seed_sample_data(session_factory, *, root_id: str = ROOT_ADMIN_ID) -> None:
  """One or more rows for every entity type, with cross references.

  Ids are chosen so that rows pointing at a parent of the same type sort
  before that parent.
  """
  now = datetime(2025, 8, 1, 9, 30, 0, 123000, tzinfo=timezone.utc)
  async with session_factory() as db:
    db.add(Admin(id="admin-hr", email="hr@hrms.local", password=hash_password("hr-pass-123"), full_name="Hr Lead", role="HR_MANAGER", created_by=root_id, permissions=["staff:read"]))
    db.add(SystemSetting(id="set-1", key="company.name", value="Acme", updated_by=root_id))
    db.add(Category(id="cat-pos", name="Engineer", type="POSITION"))
    db.add(Category(id="cat-dep", name="Platform", type="DEPARTMENT"))
    db.add(Category(id="cat-iss", name="Payroll", type="ISSUE_CATEGORY"))
    await db.flush()
    db.add(Staff(id="staff-b", employee_id="EMP-001", full_name="Bola Manager", gender="FEMALE", marital_status="SINGLE", job_title="Head", department_id="cat-dep", phone_numbers=["+111"]))
    await db.flush()
    db.add(Staff(id="staff-a", employee_id="EMP-002", full_name="Ade Report", gender="MALE", marital_status="MARRIED", job_title="Engineer", reporting_manager_id="staff-b", position_id="cat-pos", date_of_joining=now))
    await db.flush()
    db.add(SalaryStructure(id="sal-1", staff_id="staff-a", basic_salary=Decimal("1500.00"), other_allowances=[{"name": "meal", "amount": 20}], effective_date=now))
    db.add(Loan(id="loan-1", staff_id="staff-a", amount=Decimal("600.00"), reason="Rent", repayment_terms=6, monthly_deduction=Decimal("100.00"), outstanding_balance=Decimal("500.00"), updated_by=root_id))
    await db.flush()
    db.add(LoanRepayment(id="rep-1", loan_id="loan-1", amount=Decimal("100.00"), payment_date=now))
    db.add(Issue(id="iss-1", ticket_number="TKT-0001", staff_id="staff-a", category="PAYROLL_DISCREPANCY", category_id="cat-iss", title="Missing allowance", description="Meal allowance missing", assigned_to=root_id))
    await db.flush()
    db.add(IssueComment(id="com-1", issue_id="iss-1", content="Looking into it", created_by=root_id))
    db.add(Document(id="doc-1", staff_id="staff-a", file_name="cv-1.pdf", original_name="cv.pdf", file_type="application/pdf", file_size=2048, file_path="uploads/cv-1.pdf", category="CV"))
    db.add(AuditTrail(id="aud-1", entity_type="STAFF", entity_id="staff-a", action="CREATE", changes={"fullName": "Ade Report"}, performed_by=root_id, timestamp=now))
    db.add(PayrollSchedule(id="pay-1", month=7, year=2025, staff_data=[{"staffId": "staff-a", "net": "1400.00"}], total_amount=Decimal("1400.00"), generated_by=root_id, generated_at=now))
    db.add(ShareableLink(id="link-1", share_id="share-abc", organogram_data={"root": "staff-b"}, created_by=root_id, expires_at=now + timedelta(days=7)))
    await db.commit()


# admins: root + hr; 3 categories; 2 staff; one row for each other type.
SAMPLE_TABLES = {
  "admins": 2,
  "staff": 2,
  "categories": 3,
  "salaryStructures": 1,
  "loans": 1,
  "loanRepayments": 1,
  "issues": 1,
  "issueComments": 1,
  "documents": 1,
  "auditTrails": 1,
  "payrollSchedules": 1,
  "systemSettings": 1,
  "shareableLinks": 1,
}


# Upload whose stream dies after the first chunk.
class BrokenUpload:
  def __init__(self, filename: str = "restore.json", content_type: str = "application/json") -> None:
    self.filename = filename
    self.content_type = content_type
    self.reads = 0

  async def read(self, size: int = -1) -> bytes:
    self.reads += 1
    if self.reads > 1:
      raise OSError("connection reset by peer")
    return b'{"metadata": '
