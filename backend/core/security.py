from __future__ import annotations

from typing import Any

from jose import jwt

from core.config import settings


def decode_token(token: str) -> dict[str, Any]:
    """Verify and decode an access token issued by the school portal's auth service."""

    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


def token_role(payload: dict[str, Any]) -> str:
    # Portal tokens carry the role either top-level or under app_metadata.
    role = payload.get("role")
    if not role:
        meta = payload.get("app_metadata") or {}
        role = meta.get("role") if isinstance(meta, dict) else None
    return str(role or "").strip().upper()
