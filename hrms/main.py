from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import async_sessionmaker
from starlette.middleware.trustedhost import TrustedHostMiddleware

from hrms.backups.errors import BackupError
from hrms.backups.service import BackupService
from hrms.backups.snapshot import iso_z, now_utc
from hrms.config import Settings, settings as default_settings
from hrms.routers.auth import router as auth_router
from hrms.routers.backups import router as backups_router

logger = logging.getLogger(__name__)

PLACEHOLDER_SECRETS = {"", "dev-secret-change-me", "change-me"}


def _is_test_db(cfg: Settings) -> bool:
  db_name = cfg.database_url.rsplit("/", 1)[-1]
  return "test" in db_name


def create_app(cfg: Settings | None = None, session_factory: async_sessionmaker | None = None) -> FastAPI:
  cfg = cfg or default_settings
  if session_factory is None:
    from hrms.db import SessionLocal

    session_factory = SessionLocal

  logging.basicConfig(level=cfg.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

  app = FastAPI(
    title="HRMS API",
    version=cfg.app_version,
    docs_url="/docs" if cfg.api_docs_enabled else None,
    redoc_url="/redoc" if cfg.api_docs_enabled else None,
    openapi_url="/openapi.json" if cfg.api_docs_enabled else None,
  )
  app.state.settings = cfg
  app.state.session_factory = session_factory
  app.state.backup_service = BackupService.from_settings(cfg, session_factory)
  # Fatal when the directories cannot be created.
  app.state.backup_service.store.ensure_directories()

  @app.exception_handler(BackupError)
  async def _backup_error_handler(_: Request, exc: BackupError) -> JSONResponse:
    if exc.status_code >= 500:
      logger.error("%s: %s", exc.code, exc.message)
    return JSONResponse(
      status_code=exc.status_code,
      content={"success": False, "error": exc.to_dict(), "timestamp": iso_z(now_utc())},
    )

  app.add_middleware(
    CORSMiddleware,
    allow_origins=cfg.cors_origin_list(),
    allow_origin_regex=cfg.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
  )
  app.add_middleware(TrustedHostMiddleware, allowed_hosts=cfg.trusted_host_list())

  app.include_router(auth_router)
  app.include_router(backups_router)

  @app.middleware("http")
  async def _security_headers(request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    return response

  @app.get("/health")
  async def health() -> dict:
    return {"ok": True}

  @app.get("/version")
  async def version() -> dict:
    return {"version": cfg.app_version}

  @app.on_event("startup")
  async def _startup() -> None:
    if not _is_test_db(cfg) and cfg.app_secret.strip() in PLACEHOLDER_SECRETS:
      raise RuntimeError("APP_SECRET must be set to a non-default value")

  @app.on_event("shutdown")
  async def _shutdown() -> None:
    await app.state.backup_service.lock.aclose()

  return app
