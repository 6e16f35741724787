"""FileKeeper application configuration.

Loads settings from two YAML files:
  * filekeeper.settings.yaml: non-secret configuration
  * filekeeper.secrets.yaml: signing secrets (never committed)

A handful of environment variables override the files so the service can
be configured from a container environment:
  APP_PORT, ACCESS_TOKEN_SECRET, REFRESH_TOKEN_SECRET, DB_PATH, UPLOAD_DIR
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("filekeeper.settings.yaml")
SECRETS_FILE  = Path("filekeeper.secrets.yaml")


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _resolve_path(value: str, base_dir: Path) -> str:
    path = Path(value)
    if path.is_absolute():
        return str(path)
    return str(base_dir / path)


# ---------------------------------------------------------------------------
# Secrets models
# ---------------------------------------------------------------------------


class JWTSecrets(BaseModel):
    access_secret:  str = "change-me-access"
    refresh_secret: str = "change-me-refresh"
    algorithm:      str = "HS256"


class Secrets(BaseModel):
    jwt: JWTSecrets = Field(default_factory=JWTSecrets)


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str       = "0.0.0.0"
    port:            int       = 3001
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])


class LoggingSettings(BaseModel):
    level: str = "info"


class DatabaseSettings(BaseModel):
    path: str = "filekeeper.duckdb"


class AuthSettings(BaseModel):
    access_token_expire_minutes: int = Field(10, gt=0)
    refresh_token_expire_days:   int = Field(7, gt=0)
    bcrypt_rounds:               int = Field(10, ge=4, le=31)


class FileSettings(BaseModel):
    """Blob storage and access policy for the /file routes."""
    upload_dir:       str  = "uploads"
    max_upload_bytes: int  = Field(20 * 1024 * 1024, gt=0)
    require_auth:     bool = True


class AppConfig(BaseModel):
    server:   ServerSettings   = Field(default_factory=ServerSettings)
    logging:  LoggingSettings  = Field(default_factory=LoggingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth:     AuthSettings     = Field(default_factory=AuthSettings)
    files:    FileSettings     = Field(default_factory=FileSettings)
    secrets:  Secrets          = Field(default_factory=Secrets)


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------


def _apply_env_overrides(data: Dict[str, Any]) -> None:
    """Overlay known environment variables onto raw config data in place."""
    env = os.environ

    if env.get("APP_PORT"):
        data.setdefault("server", {})["port"] = int(env["APP_PORT"])
    if env.get("DB_PATH"):
        data.setdefault("database", {})["path"] = env["DB_PATH"]
    if env.get("UPLOAD_DIR"):
        data.setdefault("files", {})["upload_dir"] = env["UPLOAD_DIR"]

    jwt_data = data.setdefault("secrets", {}).setdefault("jwt", {})
    if env.get("ACCESS_TOKEN_SECRET"):
        jwt_data["access_secret"] = env["ACCESS_TOKEN_SECRET"]
    if env.get("REFRESH_TOKEN_SECRET"):
        jwt_data["refresh_secret"] = env["REFRESH_TOKEN_SECRET"]


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(
    settings_path: Optional[Path] = None,
    secrets_path: Optional[Path] = None,
) -> AppConfig:
    """Load and merge settings + secrets into a single *AppConfig* object.

    Relative ``database.path`` and ``files.upload_dir`` values are resolved
    against the directory holding the settings file.
    """
    settings_path = Path(settings_path) if settings_path else SETTINGS_FILE
    secrets_path = Path(secrets_path) if secrets_path else settings_path.with_name(SECRETS_FILE.name)

    data = _load_yaml(settings_path)
    # Secrets live under the "secrets" key in AppConfig
    data["secrets"] = _load_yaml(secrets_path)
    _apply_env_overrides(data)

    config = AppConfig(**data)

    base_dir = settings_path.resolve().parent
    config.database.path = _resolve_path(config.database.path, base_dir)
    config.files.upload_dir = _resolve_path(config.files.upload_dir, base_dir)

    logger.info(
        "Config loaded (server=%s:%s, database=%s, upload_dir=%s, files.require_auth=%s)",
        config.server.host,
        config.server.port,
        config.database.path,
        config.files.upload_dir,
        config.files.require_auth,
    )
    return config


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the process-wide config, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Optional[AppConfig]) -> None:
    """Install (or clear, with None) the process-wide config."""
    global _config
    _config = config
