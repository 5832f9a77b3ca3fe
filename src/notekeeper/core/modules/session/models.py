"""Refresh session models."""

import hashlib
import re
import secrets
from datetime import datetime
from enum import StrEnum
from typing import NewType
from uuid import UUID

from pydantic import Field

from notekeeper.core.db import MongoModel
from notekeeper.utils import now

RefreshToken = NewType("RefreshToken", str)

REFRESH_TOKEN_BYTES = 32  # 256 bits of entropy
# token_urlsafe(32) always yields 43 URL-safe base64 characters
REFRESH_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]{43}$")


class RevokeReason(StrEnum):
    ROTATED = "rotated"
    LOGOUT = "logout"
    LOGOUT_ALL = "logout_all"
    REUSE = "reuse"
    PASSWORD_CHANGE = "password_change"


class RefreshSession(MongoModel):
    """One issued refresh token.

    Only the SHA-256 of the raw token is stored. Indexed on token_hash (unique),
    (user_id, revoked) and expires_at (TTL, removes expired records).
    """

    user_id: UUID
    family_id: UUID  # id of the first session in the rotation chain
    token_hash: str
    created_at: datetime = Field(default_factory=now)
    expires_at: datetime
    revoked: bool = False
    revoked_at: datetime | None = None
    revoked_reason: RevokeReason | None = None
    replaced_by: UUID | None = None


def generate_refresh_token() -> RefreshToken:
    return RefreshToken(secrets.token_urlsafe(REFRESH_TOKEN_BYTES))


def hash_refresh_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def is_well_formed_refresh_token(raw_token: str) -> bool:
    return bool(REFRESH_TOKEN_RE.fullmatch(raw_token))
