"""
api/routes/v1/sync.py -- Encrypted vault synchronization.

Routes:
  GET  /api/v1/sync/fetch   -- return the stored ciphertext
  POST /api/v1/sync/update  -- replace the stored ciphertext

The server never decrypts vault data; it stores and returns an opaque string
keyed by the token subject.
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from api.models import MessageResponse, VaultResponse, VaultUpdateRequest
from auth.dependencies import get_current_claims
from auth.models import Claims
from auth.store import UserStore

# Auth policy:
# - every route here requires a bearer token; the subject selects the vault.
router = APIRouter()


def _account_gone() -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"code": "not_found", "message": "Account not found."},
    )


@router.get("/sync/fetch", response_model=VaultResponse)
def fetch_vault(request: Request, claims: Claims = Depends(get_current_claims)) -> VaultResponse:
    """Return the authenticated account's encrypted vault (empty string if never synced)."""
    user_store: UserStore = request.app.state.user_store
    data = user_store.get_vault_data(claims.subject)
    if data is None:
        raise _account_gone()
    return VaultResponse(encrypted_data=data)


@router.post("/sync/update", response_model=MessageResponse)
def update_vault(
    request: Request,
    body: VaultUpdateRequest,
    claims: Claims = Depends(get_current_claims),
) -> MessageResponse:
    """Overwrite the authenticated account's encrypted vault."""
    user_store: UserStore = request.app.state.user_store
    if not user_store.update_vault_data(claims.subject, body.encrypted_data):
        raise _account_gone()
    return MessageResponse(message="Vault updated.")
