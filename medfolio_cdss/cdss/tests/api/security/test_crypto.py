import time

import jwt
import pytest

from cdss.medfolio.api.security.crypto import (
    ALGORITHM,
    InvalidSessionToken,
    issue_session_token,
    verify_session_token,
)

SECRET = b"super-secret-key-for-session-tests"


@pytest.mark.parametrize("role", ["patient", "doctor", "chemist", "lab"])
def test_issued_token_verifies_with_its_claims(role: str) -> None:
    # Arrange
    now = int(time.time())
    token = issue_session_token(SECRET, "uid-123", role, ttl_seconds=600, now=now)

    # Act
    claims = verify_session_token(SECRET, token)

    # Assert
    assert (claims.uid, claims.role, claims.exp) == ("uid-123", role, now + 600)


def test_issued_token_is_a_standard_hs256_jwt() -> None:
    token = issue_session_token(SECRET, "uid-123", "doctor")

    assert jwt.get_unverified_header(token)["alg"] == "HS256"
    assert jwt.decode(token, SECRET, algorithms=[ALGORITHM])["sub"] == "uid-123"


def test_expired_token_is_rejected() -> None:
    token = issue_session_token(SECRET, "uid-123", "doctor", ttl_seconds=60, now=time.time() - 3600)

    with pytest.raises(InvalidSessionToken, match="expired"):
        verify_session_token(SECRET, token)


def test_token_signed_with_another_secret_is_rejected() -> None:
    token = issue_session_token(b"another-secret-key-for-session-tests", "uid-123", "doctor")

    with pytest.raises(InvalidSessionToken):
        verify_session_token(SECRET, token)


def test_tampered_claims_are_rejected() -> None:
    # Goal: swapping the role in the payload breaks the signature.

    header, _, signature = issue_session_token(SECRET, "uid-123", "patient").split(".")
    forged = jwt.encode({"sub": "uid-123", "role": "doctor", "exp": int(time.time()) + 3600},
                        b"attacker-key-attacker-key-attacker", algorithm=ALGORITHM)
    _, forged_payload, _ = forged.split(".")

    with pytest.raises(InvalidSessionToken):
        verify_session_token(SECRET, f"{header}.{forged_payload}.{signature}")


def test_unsigned_token_is_rejected() -> None:
    token = jwt.encode({"sub": "uid-123", "role": "doctor", "exp": int(time.time()) + 3600}, None, algorithm="none")

    with pytest.raises(InvalidSessionToken):
        verify_session_token(SECRET, token)


@pytest.mark.parametrize("token", ["", "no-dot", "a.b.c", "abc.###"])
def test_malformed_token_is_rejected(token: str) -> None:
    with pytest.raises(InvalidSessionToken):
        verify_session_token(SECRET, token)


@pytest.mark.parametrize(
    "claims",
    [
        {"sub": "uid-1"},  # no role, no expiry
        {"sub": "uid-1", "role": "doctor"},  # no expiry
        {"role": "doctor", "exp": 4_000_000_000},  # no subject
    ],
)
def test_signed_token_missing_claims_is_rejected(claims: dict) -> None:
    token = jwt.encode(claims, SECRET, algorithm=ALGORITHM)

    with pytest.raises(InvalidSessionToken):
        verify_session_token(SECRET, token)


def test_signed_token_with_unknown_role_is_rejected() -> None:
    token = jwt.encode({"sub": "uid-1", "role": "admin", "exp": int(time.time()) + 60}, SECRET, algorithm=ALGORITHM)

    with pytest.raises(InvalidSessionToken, match="Unknown role"):
        verify_session_token(SECRET, token)


@pytest.mark.parametrize("uid,role", [("", "doctor"), ("uid-1", "admin")])
def test_issue_rejects_bad_identity(uid: str, role: str) -> None:
    with pytest.raises(ValueError):
        issue_session_token(SECRET, uid, role)
