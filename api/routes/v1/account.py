"""
api/routes/v1/account.py -- Account management endpoints.

Routes:
  POST /api/v1/account/checkmail  -- public; 200 if the email is registered, 404 if not
  POST /api/v1/account/changepwd  -- bearer; replace the stored password hash
  GET  /api/v1/account/logout     -- bearer; revoke the presented token
  GET  /api/v1/account/delete     -- bearer; revoke the presented token, then delete

Logout and delete act on the exact token the request carried. Other tokens
issued to the same account (other devices) stay valid until they expire --
or, after delete, until their next validation finds the subject gone.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from api.models import ChangePasswordRequest, EmailCheckRequest, MessageResponse
from auth.dependencies import get_bearer_token, get_current_claims
from auth.models import Claims
from auth.passwords import hash_password
from auth.service import TokenService
from auth.store import UserStore

logger = logging.getLogger("vaultsync.api")

# Auth policy:
# - POST /api/v1/account/checkmail: public -- the client asks before choosing login vs register
# - everything else: requires a bearer token (get_current_claims)
router = APIRouter()


@router.post("/account/checkmail", response_model=MessageResponse)
def check_email(request: Request, body: EmailCheckRequest) -> MessageResponse:
    """Report whether an account exists for the given email."""
    user_store: UserStore = request.app.state.user_store
    if not user_store.exists(body.email):
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "No account is registered for that email."},
        )
    return MessageResponse(message="Account exists.")


@router.post("/account/changepwd", response_model=MessageResponse)
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    claims: Claims = Depends(get_current_claims),
) -> MessageResponse:
    """Replace the authenticated account's password hash."""
    user_store: UserStore = request.app.state.user_store
    if not user_store.update_password(claims.subject, hash_password(body.password_hash)):
        # validate() saw the account a moment ago; it was deleted in between.
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "Account not found."},
        )
    return MessageResponse(message="Password changed.")


@router.get("/account/logout", response_model=MessageResponse)
def logout(request: Request, token: str = Depends(get_bearer_token)) -> MessageResponse:
    """Revoke the presented token. Later requests carrying it get 401."""
    service: TokenService = request.app.state.token_service
    service.revoke(token)
    logger.info("Logged out %s", request.state.claims.subject)
    return MessageResponse(message="Logged out.")


@router.get("/account/delete", response_model=MessageResponse)
def delete_account(request: Request, token: str = Depends(get_bearer_token)) -> MessageResponse:
    """Delete the authenticated account and its vault.

    The token is revoked before the row is deleted, so an in-flight request
    carrying the same token is refused by the revocation check even if it
    passed the identity check before the delete committed.
    """
    service: TokenService = request.app.state.token_service
    user_store: UserStore = request.app.state.user_store
    subject = request.state.claims.subject

    service.revoke(token)
    user_store.delete_user(subject)
    return MessageResponse(message="Account deleted.")
