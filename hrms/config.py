from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
  model_config = SettingsConfigDict(env_file=".env", extra="ignore")

  database_url: str = "postgresql+asyncpg://hrms:hrms@db:5432/hrms"
  app_secret: str = "dev-secret-change-me"
  app_version: str = "1.0.0"
  access_token_ttl_minutes: int = 8 * 60
  log_level: str = "INFO"
  api_docs_enabled: bool = True

  cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
  cors_origin_regex: str = r"^http://(localhost|127\.0\.0\.1):3000$"
  trusted_hosts: str = "localhost,127.0.0.1,api,web"

  # Shared lease across replicas; in-process lock when unset.
  redis_url: str | None = None

  backup_dir: str = "backups"
  backup_temp_dir: str = "temp"
  backup_schema_version: str = "1.0.0"
  backup_max_upload_bytes: int = 100 * 1024 * 1024
  backup_scratch_max_age_minutes: int = 60
  backup_lock_wait_seconds: float = 30.0
  backup_lock_lease_seconds: int = 900
  backup_download_prefix: str = "/api/backup/download"

  def cors_origin_list(self) -> list[str]:
    return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

  def trusted_host_list(self) -> list[str]:
    return [h.strip() for h in self.trusted_hosts.split(",") if h.strip()]


settings = Settings()
