# backend/app/auth.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, MutableMapping, Optional

import jwt  # PyJWT
from fastapi import Header, Request

from .config import settings

log = logging.getLogger(__name__)

PRIVILEGED_ROLES = frozenset({"admin", "staff"})


class DecodeError(ValueError):
    """Credential is malformed, unparseable, or lacks the role claim."""


@dataclass(frozen=True)
class Identity:
    id: Optional[str]
    role: str  # admin | staff | tenant | ...
    expires_at: Optional[datetime] = None
    claims: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES


def _claim_id(claims: dict[str, Any]) -> Optional[str]:
    for k in ("id", "_id", "sub", "uid"):
        v = claims.get(k)
        if v is not None and str(v).strip():
            return str(v)
    return None


def _claim_exp(claims: dict[str, Any]) -> Optional[datetime]:
    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    try:
        return datetime.fromtimestamp(exp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def decode_credential(token: str) -> Identity:
    """
    Extract identity claims from a bearer credential.

    Signature and expiry are NOT checked: the token was issued and is enforced
    by the auth service; here it only drives UI branching.
    """
    if not isinstance(token, str) or not token.strip():
        raise DecodeError("empty credential")

    try:
        claims = jwt.decode(
            token.strip(),
            options={"verify_signature": False, "verify_exp": False},
        )
    except jwt.PyJWTError as e:
        raise DecodeError(f"unparseable credential: {e}") from e

    role = claims.get("role")
    if not isinstance(role, str) or not role.strip():
        raise DecodeError("credential has no role claim")

    return Identity(
        id=_claim_id(claims),
        role=role.strip(),
        expires_at=_claim_exp(claims),
        claims=dict(claims),
    )


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


def credential_from_session(
    session: MutableMapping[str, Any],
    authorization: Optional[str] = None,
) -> Optional[str]:
    """Session-scoped credential first, Authorization header second."""
    token = session.get(settings.credential_session_key)
    if isinstance(token, str) and token.strip():
        return token
    return _bearer(authorization)


def identity_from_session(
    session: MutableMapping[str, Any],
    authorization: Optional[str] = None,
) -> Optional[Identity]:
    """
    None when there is no credential (decoder not invoked) or when it fails to
    decode. Decode failures are logged, never raised.
    """
    token = credential_from_session(session, authorization)
    if token is None:
        return None
    try:
        return decode_credential(token)
    except DecodeError as e:
        log.warning("invalid credential; continuing without identity: %s", e)
        return None


# -------------------------
# FastAPI dependency
# -------------------------
def get_identity(
    request: Request,
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Optional[Identity]:
    return identity_from_session(request.session, authorization)
