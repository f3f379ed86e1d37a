from __future__ import annotations

from pydantic import BaseModel, Field


class LoginIn(BaseModel):
  email: str = Field(min_length=3, max_length=320)
  password: str = Field(min_length=1, max_length=200)


class AdminOut(BaseModel):
  id: str
  email: str
  fullName: str
  role: str


class LoginOut(BaseModel):
  accessToken: str
  tokenType: str = "bearer"
  admin: AdminOut
