from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.backups.errors import InsufficientPermissions
from hrms.backups.service import BackupService
from hrms.models import Admin
from hrms.security import InvalidToken, decode_access_token

SUPER_ADMIN = "SUPER_ADMIN"


async def get_db(request: Request) -> AsyncSession:
  async with request.app.state.session_factory() as session:
    yield session


async def get_current_admin(request: Request, db: AsyncSession = Depends(get_db)) -> Admin:
  auth = request.headers.get("authorization")
  if not auth or not auth.lower().startswith("bearer "):
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
  token = auth.split(" ", 1)[1].strip()
  if not token:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
  try:
    claims = decode_access_token(token, secret=request.app.state.settings.app_secret)
  except InvalidToken as e:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from e

  res = await db.execute(select(Admin).where(Admin.id == claims["sub"]))
  a = res.scalar_one_or_none()
  if not a:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin not found")
  if not a.is_active:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account disabled")
  return a


def require_super_admin(admin: Admin, message: str) -> None:
  if admin.role != SUPER_ADMIN:
    raise InsufficientPermissions(message)


def get_backup_service(request: Request) -> BackupService:
  return request.app.state.backup_service
