"""
auth/dependencies.py -- FastAPI Depends() helpers for bearer authentication.

Every protected route runs get_current_claims() first:
  1. No "Authorization: Bearer <token>" header -> 401 "no bearer token provided".
  2. TokenService.validate() raises any Unauthorized subclass -> 401 "invalid token".
     Revoked, expired, forged, malformed and deleted-account tokens all get the
     same body so clients cannot probe why a token was refused.
  3. Success -> Claims attached to request.state and returned to the route.

Infrastructure failures (SigningError, unexpected exceptions) are not caught
here; they reach the generic 500 handler in api/main.py.

These are plain `def` dependencies, so FastAPI runs them in its threadpool --
the identity lookup inside validate() is a blocking DB call.

Layer rule: may import from fastapi (this module is part of the FastAPI
dependency injection system). No imports from api/ or core/.
"""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request

from auth.errors import Unauthorized
from auth.models import Claims
from auth.service import TokenService
from auth.tokens import fingerprint

logger = logging.getLogger("vaultsync.auth")

_BEARER_PREFIX = "bearer "


def _reject(message: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"code": "unauthorized", "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def extract_bearer_token(request: Request) -> str | None:
    """Return the raw token from the Authorization header, or None.

    The scheme name is case-insensitive (RFC 7235); the token itself is taken
    verbatim apart from surrounding whitespace.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header[: len(_BEARER_PREFIX)].lower() != _BEARER_PREFIX:
        return None
    token = auth_header[len(_BEARER_PREFIX) :].strip()
    return token or None


def get_current_claims(request: Request) -> Claims:
    """Require a valid bearer token. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(claims: Claims = Depends(get_current_claims)): ...
    """
    token = extract_bearer_token(request)
    if token is None:
        raise _reject("no bearer token provided")

    service: TokenService = request.app.state.token_service
    try:
        claims = service.validate(token)
    except Unauthorized as exc:
        logger.debug("Rejected token %s: %s (%s)", fingerprint(token), type(exc).__name__, exc)
        raise _reject("invalid token") from exc

    request.state.claims = claims
    request.state.bearer_token = token
    return claims


def get_bearer_token(request: Request, claims: Claims = Depends(get_current_claims)) -> str:
    """Return the already-validated raw token, for routes that revoke it."""
    return request.state.bearer_token
