from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.backups.snapshot import now_utc
from hrms.deps import get_current_admin, get_db
from hrms.models import Admin
from hrms.schemas import AdminOut, LoginIn, LoginOut
from hrms.security import create_access_token, verify_password

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _admin_out(a: Admin) -> AdminOut:
  return AdminOut(id=a.id, email=a.email, fullName=a.full_name, role=a.role)


@router.post("/login")
async def login(payload: LoginIn, request: Request, db: AsyncSession = Depends(get_db)) -> LoginOut:
  email = payload.email.strip().lower()
  res = await db.execute(select(Admin).where(func.lower(Admin.email) == email))
  a = res.scalar_one_or_none()
  if not a or not verify_password(payload.password, a.password):
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
  if not a.is_active:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account disabled")

  a.last_login = now_utc()
  await db.commit()

  cfg = request.app.state.settings
  token = create_access_token(a.id, a.role, secret=cfg.app_secret, ttl_minutes=cfg.access_token_ttl_minutes)
  return LoginOut(accessToken=token, admin=_admin_out(a))


@router.get("/me")
async def me(admin: Admin = Depends(get_current_admin)) -> AdminOut:
  return _admin_out(admin)
