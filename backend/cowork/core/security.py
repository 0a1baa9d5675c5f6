from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from cowork.auth.errors import Unauthenticated
from cowork.core.config import settings

# auto_error=False: a missing header is reported as our own Unauthenticated
bearer_scheme = HTTPBearer(auto_error=False)

# Claims some providers use to carry role/tenant. Never trusted for authz.
UNTRUSTED_METADATA_CLAIMS = ("public_metadata", "user_metadata", "metadata", "role", "tenant_id")


@dataclass(frozen=True)
class VerifiedIdentity:
    external_id: str
    email: str
    asserted_metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def asserted_role(self) -> Optional[str]:
        return _first_asserted(self.asserted_metadata, "role")

    @property
    def asserted_tenant_id(self) -> Optional[str]:
        return _first_asserted(self.asserted_metadata, "tenant_id", "tenantId")


def _first_asserted(meta: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        if meta.get(key):
            return str(meta[key])
    for nested in ("public_metadata", "user_metadata", "metadata"):
        blob = meta.get(nested)
        if isinstance(blob, dict):
            for key in keys:
                if blob.get(key):
                    return str(blob[key])
    return None


def _normalize_token(token: str) -> str:
    """
    Make token decoding resilient to common Swagger / copy-paste issues:
    - Leading/trailing whitespace/newlines
    - Surrounding quotes
    - Accidentally including the 'Bearer ' prefix in the token field
    """
    if token is None:
        return ""

    t = token.strip()

    # remove surrounding quotes if present
    if (t.startswith('"') and t.endswith('"')) or (t.startswith("'") and t.endswith("'")):
        t = t[1:-1].strip()

    # remove accidental bearer prefix
    if t.lower().startswith("bearer "):
        t = t[7:].strip()

    return t


def verify_identity_token(token: str) -> VerifiedIdentity:
    """
    Verify a token issued by the external identity provider.

    Only `sub` and `email` are taken from it. Role/tenant claims are kept
    aside as asserted metadata so the resolver can flag them.
    """
    token = _normalize_token(token)
    if not token:
        raise Unauthenticated("empty token")

    try:
        payload = jwt.decode(
            token,
            settings.IDP_JWT_KEY,
            algorithms=[settings.IDP_JWT_ALGORITHM],
            audience=settings.IDP_AUDIENCE,
            issuer=settings.IDP_ISSUER,
            options={
                "require_sub": True,
                "require_exp": True,
                "verify_aud": settings.IDP_AUDIENCE is not None,
            },
        )
    except JWTError as e:
        # Includes expired signature, bad format, bad signature, wrong algorithm, etc.
        raise Unauthenticated(f"token rejected: {e}") from e

    sub = payload.get("sub")
    email = payload.get("email")
    if not sub or not isinstance(email, str) or "@" not in email:
        raise Unauthenticated("token missing sub/email")

    asserted = {k: payload[k] for k in UNTRUSTED_METADATA_CLAIMS if k in payload}
    return VerifiedIdentity(external_id=str(sub), email=email.strip().lower(), asserted_metadata=asserted)
