"""
Security utilities: bearer-token tenant context, role gates, rate limiting.

Tenant identity is never ambient: the token is decoded once per request into
a TenantContext that every service call receives explicitly.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import Settings, get_settings
from app.core.errors import ForbiddenError
from app.core.logging import bind_request_context

# ── Rate limiter (attached to FastAPI app in main.py) ───────
limiter = Limiter(key_func=get_remote_address, enabled=get_settings().rate_limit_enabled)

# ── Roles ───────────────────────────────────────────────────
PIPELINE_ROLES = frozenset(
    ["TENANT_ADMIN", "CENTRAL_ADMIN", "CANDIDATE_ADMIN", "EMC_ADMIN", "CAMPAIGN_MANAGER"]
)
APPROVER_ROLES = frozenset(["TENANT_ADMIN", "CENTRAL_ADMIN", "CANDIDATE_ADMIN"])
BROADCASTER_ROLES = APPROVER_ROLES | {"CAMPAIGN_MANAGER"}


@dataclass(frozen=True)
class TenantContext:
    tenant_id: str
    user_id: str
    role: str


_bearer = HTTPBearer(auto_error=False)


def create_access_token(
    user_id: str,
    tenant_id: str,
    role: str,
    settings: Settings,
    expires_in: timedelta | None = None,
) -> str:
    """Issue a signed token carrying the caller's tenant and role."""
    ttl = expires_in or timedelta(minutes=settings.access_token_expiry_minutes)
    payload = {
        "sub": user_id,
        "tenant_id": tenant_id,
        "role": role,
        "exp": datetime.now(UTC) + ttl,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> TenantContext:
    """Verify a bearer token and turn it into a TenantContext. Raises 401 on expiry / tampering."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid or expired token: {e}",
        ) from e

    tenant_id = payload.get("tenant_id")
    user_id = payload.get("sub")
    if not tenant_id or not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is missing tenant or user claims",
        )
    return TenantContext(tenant_id=tenant_id, user_id=user_id, role=payload.get("role", ""))


async def get_tenant_context(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(_bearer)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TenantContext:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    ctx = decode_access_token(credentials.credentials, settings)
    structlog.contextvars.clear_contextvars()
    bind_request_context(tenant_id=ctx.tenant_id, user_id=ctx.user_id)
    return ctx


def require_roles(allowed: frozenset[str]) -> Callable[..., Awaitable[TenantContext]]:
    """Dependency factory: the caller's role must be one of `allowed`."""

    async def _check(
        ctx: Annotated[TenantContext, Depends(get_tenant_context)],
    ) -> TenantContext:
        if ctx.role not in allowed:
            raise ForbiddenError("Access denied")
        return ctx

    return _check


# ── Content sanitisation ────────────────────────────────────
def sanitize_for_display(text: str) -> str:
    """Strip prompt-injection markers from LLM output before it is stored and shown to cadres."""
    dangerous_patterns = [
        "SYSTEM:", "ASSISTANT:", "USER:", "```system",
        "<|im_start|>", "<|im_end|>", "<<SYS>>", "<</SYS>>",
    ]
    sanitized = text
    for pattern in dangerous_patterns:
        sanitized = sanitized.replace(pattern, "[REDACTED]")
    return sanitized
