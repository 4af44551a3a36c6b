"""Scoped, time-limited access grants.

A grant names exactly one blob and a set of permissions. Writers request a
fresh grant on every ``initialize``/``rotate`` and hand it to the object store.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Protocol
from urllib.parse import quote, urlencode


class Permission(str, Enum):
    READ = "r"
    ADD = "a"
    CREATE = "c"
    WRITE = "w"


# Canonical order used in signed tokens.
_PERMISSION_ORDER = (Permission.READ, Permission.ADD, Permission.CREATE, Permission.WRITE)


@dataclass(frozen=True, slots=True)
class AccessGrant:
    container: str
    blob_path: str
    access_url: str
    token: str
    permissions: frozenset[Permission]
    expires_at: datetime

    def allows(self, permission: Permission, *, now: datetime | None = None) -> bool:
        now = now or datetime.now(UTC)
        return permission in self.permissions and now < self.expires_at


class CredentialService(Protocol):
    async def grant_access(
        self,
        container_name: str,
        blob_path: str,
        permissions: Iterable[Permission],
        ttl_minutes: int,
    ) -> AccessGrant: ...


def permission_string(permissions: Iterable[Permission]) -> str:
    wanted = set(permissions)
    return "".join(p.value for p in _PERMISSION_ORDER if p in wanted)


@dataclass(frozen=True, slots=True)
class SignedAccessGrantService:
    """Issue SAS-style grants signed with HMAC-SHA256 over the account key."""

    account_name: str
    account_key: str
    base_url: str

    def sign(self, container_name: str, blob_path: str, perms: str, expiry: str) -> str:
        string_to_sign = "\n".join(
            [perms, expiry, f"/blob/{self.account_name}/{container_name}/{blob_path}"]
        )
        digest = hmac.new(
            self.account_key.encode("utf-8"),
            string_to_sign.encode("utf-8"),
            hashlib.sha256,
        ).digest()
        return base64.b64encode(digest).decode("ascii")

    async def grant_access(
        self,
        container_name: str,
        blob_path: str,
        permissions: Iterable[Permission],
        ttl_minutes: int,
    ) -> AccessGrant:
        perms = frozenset(permissions)
        if not perms:
            raise ValueError("At least one permission is required")
        if ttl_minutes < 1:
            raise ValueError("ttl_minutes must be >= 1")

        expires_at = (datetime.now(UTC) + timedelta(minutes=ttl_minutes)).replace(microsecond=0)
        expiry = expires_at.strftime("%Y-%m-%dT%H:%M:%SZ")
        sp = permission_string(perms)
        token = urlencode(
            {
                "sp": sp,
                "se": expiry,
                "sr": "b",
                "sig": self.sign(container_name, blob_path, sp, expiry),
            }
        )
        url = f"{self.base_url.rstrip('/')}/{quote(container_name)}/{quote(blob_path)}?{token}"
        return AccessGrant(
            container=container_name,
            blob_path=blob_path,
            access_url=url,
            token=token,
            permissions=perms,
            expires_at=expires_at,
        )
