"""
api/routes/v1/auth.py -- Registration and login endpoints.

Routes:
  POST /api/v1/auth/register  -- create an account; returns a bearer token
  POST /api/v1/auth/login     -- exchange credentials for a bearer token

Both are public. Both return the same TokenResponse shape so clients have one
code path for "I now hold a token".

Status codes:
  register: 200 token, 409 email already registered, 400 invalid body
  login:    200 token, 404 unknown email, 401 wrong password, 400 invalid body

Security:
  [M5] Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.models import CredentialsRequest, TokenResponse
from auth.models import User
from auth.passwords import DUMMY_HASH, hash_password, verify_password
from auth.service import TokenService
from auth.store import UserStore

logger = logging.getLogger("vaultsync.api")

router = APIRouter()


def _token_response(service: TokenService, subject: str) -> JSONResponse:
    token = service.issue_for_subject(subject)
    resp = JSONResponse(
        status_code=200,
        content=TokenResponse(token=token, expires_in=service.signer.ttl_seconds).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/auth/register", response_model=TokenResponse)
def register(request: Request, body: CredentialsRequest) -> JSONResponse:
    """Create an account and log it in immediately."""
    user_store: UserStore = request.app.state.user_store
    service: TokenService = request.app.state.token_service

    try:
        user_store.create_user(User(email=body.email, hashed_password=hash_password(body.password_hash)))
    except IntegrityError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "conflict", "message": "An account with that email already exists."},
        ) from exc

    logger.info("Registered account %s", body.email)
    return _token_response(service, body.email)


@router.post("/auth/login", response_model=TokenResponse)
def login(request: Request, body: CredentialsRequest) -> JSONResponse:
    """Authenticate with email and client-side password hash."""
    user_store: UserStore = request.app.state.user_store
    service: TokenService = request.app.state.token_service

    user = user_store.get_by_email(body.email)
    if user is None:
        verify_password(body.password_hash, DUMMY_HASH)
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "No account is registered for that email."},
        )
    if not verify_password(body.password_hash, user.hashed_password):
        raise HTTPException(
            status_code=401,
            detail={"code": "bad_credentials", "message": "Invalid email or password."},
        )

    return _token_response(service, user.email)
