"""Environment-driven settings and service wiring."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from ..storage import InMemoryObjectStore, LocalObjectStore, ObjectStore, SignedAccessGrantService
from .factory import LogStrategyFactory
from .service import BlobLoggingService
from .writers.base import DEFAULT_GRANT_TTL_MINUTES

logger = logging.getLogger(__name__)

STORAGE_ROOT_ENV = "BLOB_LOGGING_STORAGE_ROOT"
ACCOUNT_NAME_ENV = "BLOB_LOGGING_ACCOUNT_NAME"
ACCOUNT_KEY_ENV = "BLOB_LOGGING_ACCOUNT_KEY"
BASE_URL_ENV = "BLOB_LOGGING_BASE_URL"
GRANT_TTL_ENV = "BLOB_LOGGING_GRANT_TTL_MINUTES"
AUTO_CREATE_ENV = "BLOB_LOGGING_AUTO_CREATE_CONTAINERS"
LOG_LEVEL_ENV = "BLOB_LOGGING_LOG_LEVEL"

DEFAULT_ACCOUNT_NAME = "devstoreaccount"
# Development-only signing key; set BLOB_LOGGING_ACCOUNT_KEY in real deployments.
DEFAULT_ACCOUNT_KEY = "local-development-signing-key"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean (true/false)")


def _parse_ttl(raw: str | None) -> int:
    if raw is None or raw == "":
        return DEFAULT_GRANT_TTL_MINUTES
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{GRANT_TTL_ENV} must be an integer") from exc
    if value < 1:
        raise ValueError(f"{GRANT_TTL_ENV} must be >= 1")
    return value


@dataclass(frozen=True, slots=True)
class BlobLoggingSettings:
    storage_root: Path | None = None
    account_name: str = DEFAULT_ACCOUNT_NAME
    account_key: str = DEFAULT_ACCOUNT_KEY
    base_url: str | None = None
    grant_ttl_minutes: int = DEFAULT_GRANT_TTL_MINUTES
    auto_create_containers: bool = False
    log_level: str = "INFO"

    @property
    def resolved_base_url(self) -> str:
        return self.base_url or f"https://{self.account_name}.blob.local"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> BlobLoggingSettings:
        """Read settings from ``env`` (defaults to ``os.environ``)."""
        env = os.environ if env is None else env

        root = env.get(STORAGE_ROOT_ENV)
        account_name = env.get(ACCOUNT_NAME_ENV) or DEFAULT_ACCOUNT_NAME
        account_key = env.get(ACCOUNT_KEY_ENV) or DEFAULT_ACCOUNT_KEY
        return cls(
            storage_root=Path(root).expanduser() if root else None,
            account_name=account_name,
            account_key=account_key,
            base_url=env.get(BASE_URL_ENV) or None,
            grant_ttl_minutes=_parse_ttl(env.get(GRANT_TTL_ENV)),
            auto_create_containers=_parse_bool(AUTO_CREATE_ENV, env.get(AUTO_CREATE_ENV, "")),
            log_level=(env.get(LOG_LEVEL_ENV) or "INFO").upper(),
        )


def build_store(settings: BlobLoggingSettings) -> ObjectStore:
    if settings.storage_root is None:
        logger.warning("%s is not set; logs are kept in memory only", STORAGE_ROOT_ENV)
        return InMemoryObjectStore()
    return LocalObjectStore(
        settings.storage_root, auto_create_containers=settings.auto_create_containers
    )


def build_service(settings: BlobLoggingSettings | None = None) -> BlobLoggingService:
    """Wire store, credential service, factory and facade from settings."""
    settings = settings or BlobLoggingSettings.from_env()
    credentials = SignedAccessGrantService(
        account_name=settings.account_name,
        account_key=settings.account_key,
        base_url=settings.resolved_base_url,
    )
    factory = LogStrategyFactory(
        build_store(settings),
        credentials,
        grant_ttl_minutes=settings.grant_ttl_minutes,
    )
    return BlobLoggingService(factory)
