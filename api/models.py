"""
API request and response models for VaultSync REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Every request model forbids unknown fields: a client sending {"mail": ...}
instead of {"email": ...} gets a 400, not a silently ignored body.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Pragmatic shape check (local@domain.tld). Deliverability is not our concern;
# the email is only an account identifier and token subject.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# RFC 5321 caps a forward path at 254 characters.
EMAIL_MAX_LENGTH = 254

# 10 MiB of (base64) ciphertext per vault.
VAULT_MAX_LENGTH = 10 * 1024 * 1024


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class _StrictRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")


class _EmailRequest(_StrictRequest):
    """Base for bodies keyed by an account email.

    Only the email is trimmed. password_hash is a client-derived secret and
    is stored exactly as sent.
    """

    email: str = Field(min_length=3, max_length=EMAIL_MAX_LENGTH, pattern=EMAIL_PATTERN)

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, v):
        return v.strip() if isinstance(v, str) else v


class EmailCheckRequest(_EmailRequest):
    """Request body for POST /api/v1/account/checkmail."""


class CredentialsRequest(_EmailRequest):
    """Request body for POST /api/v1/auth/register and /auth/login.

    password_hash is derived on the client; the server never sees the
    plaintext password.
    """

    password_hash: str = Field(min_length=1, max_length=255)


class ChangePasswordRequest(_StrictRequest):
    """Request body for POST /api/v1/account/changepwd."""

    password_hash: str = Field(min_length=1, max_length=255)


class VaultUpdateRequest(_StrictRequest):
    """Request body for POST /api/v1/sync/update.

    The blob is opaque ciphertext and is stored byte-for-byte.
    """

    encrypted_data: str = Field(max_length=VAULT_MAX_LENGTH)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class TokenResponse(BaseModel):
    """Response for a successful register or login."""

    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    expires_in: int


class MessageResponse(BaseModel):
    """Plain acknowledgement for state-changing account routes."""

    model_config = ConfigDict(frozen=True)

    message: str


class VaultResponse(BaseModel):
    """Response for GET /api/v1/sync/fetch."""

    model_config = ConfigDict(frozen=True)

    encrypted_data: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
