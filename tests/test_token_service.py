"""Unit tests for auth/service.py -- TokenService.

Covers:
- issue -> validate round-trip
- revoked, forged, expired and deleted-subject tokens are refused
- revocation is checked before the signature
- identity lookup errors deny access
- sweep() delegates to prune with the signer's clock
- the end-to-end lifecycle scenario: issue, validate, revoke, re-revoke, sweep
"""

import pytest

from auth.errors import ExpiredToken, InvalidSignature, RevokedToken, UnknownSubject, Unauthorized
from auth.service import TokenService
from auth.tokens import TokenSigner
from conftest import T0, WRONG_SECRET


def test_validate_fresh_token(service: TokenService) -> None:
    claims = service.validate(service.issue_for_subject("a@x.com"))
    assert claims.subject == "a@x.com"


def test_issue_does_not_consult_directory(service: TokenService, directory) -> None:
    service.issue_for_subject("nobody@x.com")
    assert directory.calls == 0


def test_revoked_token_is_refused(service: TokenService) -> None:
    token = service.issue_for_subject("a@x.com")
    service.revoke(token)
    with pytest.raises(RevokedToken):
        service.validate(token)


def test_revocation_checked_before_signature(service: TokenService) -> None:
    service.revoke("not-a-jwt")
    with pytest.raises(RevokedToken):
        service.validate("not-a-jwt")


def test_forged_token_is_refused(service: TokenService, clock) -> None:
    forged = TokenSigner(WRONG_SECRET, clock=clock).issue("a@x.com")
    with pytest.raises(InvalidSignature):
        service.validate(forged)


def test_expired_token_is_refused(service: TokenService, clock) -> None:
    token = service.issue_for_subject("a@x.com")
    clock.advance(3601)
    with pytest.raises(ExpiredToken):
        service.validate(token)


def test_deleted_subject_is_refused(service: TokenService, directory) -> None:
    token = service.issue_for_subject("a@x.com")
    directory.subjects.discard("a@x.com")
    with pytest.raises(UnknownSubject):
        service.validate(token)


def test_token_from_before_reregistration_is_refused(service: TokenService, directory, clock) -> None:
    old = service.issue_for_subject("a@x.com")
    clock.advance(10)
    directory.registered_at["a@x.com"] = clock.now
    with pytest.raises(UnknownSubject):
        service.validate(old)
    assert service.validate(service.issue_for_subject("a@x.com")).subject == "a@x.com"


def test_subject_rechecked_on_every_call(service: TokenService, directory) -> None:
    token = service.issue_for_subject("a@x.com")
    service.validate(token)
    service.validate(token)
    assert directory.calls == 2


def test_lookup_error_denies_access(service: TokenService, directory) -> None:
    token = service.issue_for_subject("a@x.com")
    directory.fail = True
    with pytest.raises(UnknownSubject):
        service.validate(token)


def test_every_refusal_is_unauthorized(service: TokenService, directory, clock) -> None:
    revoked = service.issue_for_subject("a@x.com")
    service.revoke(revoked)
    forged = TokenSigner(WRONG_SECRET, clock=clock).issue("a@x.com")
    for token in (revoked, forged, "malformed.token.here"):
        with pytest.raises(Unauthorized):
            service.validate(token)


def test_sweep_defaults_to_signer_clock(service: TokenService, clock) -> None:
    token = service.issue_for_subject("a@x.com")
    service.revoke(token)
    assert service.sweep() == 0
    clock.advance(3601)
    assert service.sweep() == 1
    assert len(service.revocations) == 0


def test_lifecycle_scenario(service: TokenService, clock) -> None:
    """Issue, validate, revoke, re-revoke, early sweep, late sweep."""
    token = service.issue_for_subject("a@x.com")
    assert service.validate(token).subject == "a@x.com"

    service.revoke(token)
    with pytest.raises(Unauthorized):
        service.validate(token)

    service.revoke(token)
    assert len(service.revocations) == 1

    assert service.sweep(T0) == 0
    assert service.revocations.contains(token)

    assert service.sweep(T0 + 3600 + 1) == 1
    assert not service.revocations.contains(token)
