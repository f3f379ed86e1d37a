from __future__ import annotations

from datetime import timedelta
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from hrms.backups.snapshot import now_utc

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

TOKEN_ALGORITHM = "HS256"


class InvalidToken(ValueError):
  pass


def hash_password(password: str) -> str:
  return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
  return pwd_context.verify(password, password_hash)


def create_access_token(admin_id: str, role: str, *, secret: str, ttl_minutes: int) -> str:
  now = now_utc()
  claims = {"sub": admin_id, "role": role, "iat": now, "exp": now + timedelta(minutes=ttl_minutes)}
  return jwt.encode(claims, secret, algorithm=TOKEN_ALGORITHM)


def decode_access_token(token: str, *, secret: str) -> dict[str, Any]:
  try:
    claims = jwt.decode(token, secret, algorithms=[TOKEN_ALGORITHM])
  except JWTError as exc:
    raise InvalidToken(str(exc)) from exc
  if not claims.get("sub"):
    raise InvalidToken("Token has no subject")
  return claims
