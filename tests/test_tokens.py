"""Unit tests for auth/tokens.py -- password hashing and JWT encode/decode.

Covers:
- bcrypt hash verifies the original password and rejects others
- verify_password tolerates missing or malformed hashes
- access tokens carry sub/email/role and expire after the configured lifetime
- tampered, expired, foreign-key and incomplete tokens decode to None
"""

from datetime import datetime, timedelta, timezone

from jose import jwt

from auth.tokens import create_access_token, decode_access_token, hash_password, verify_password
from core.config import get_settings


class TestPasswordHashing:
    def test_hash_verifies_original_password(self) -> None:
        hashed = hash_password("correct horse")
        assert hashed != "correct horse"
        assert verify_password("correct horse", hashed)

    def test_hash_rejects_other_password(self) -> None:
        hashed = hash_password("correct horse")
        assert not verify_password("battery staple", hashed)

    def test_hashes_are_salted(self) -> None:
        assert hash_password("same-password") != hash_password("same-password")

    def test_explicit_rounds_are_encoded_in_hash(self) -> None:
        assert hash_password("pw123456", rounds=5).startswith("$2b$05$")

    def test_verify_handles_missing_hash(self) -> None:
        assert not verify_password("anything", None)
        assert not verify_password("anything", "")

    def test_verify_handles_malformed_hash(self) -> None:
        assert not verify_password("anything", "not-a-bcrypt-hash")


class TestAccessTokens:
    def test_round_trip_carries_identity_claims(self) -> None:
        token = create_access_token("user-1", "ada@example.com", "admin")
        claims = decode_access_token(token)
        assert claims is not None
        assert claims["sub"] == "user-1"
        assert claims["email"] == "ada@example.com"
        assert claims["role"] == "admin"

    def test_default_expiry_is_24_hours(self) -> None:
        token = create_access_token("user-1", "ada@example.com", "photographer")
        claims = decode_access_token(token)
        assert claims is not None
        assert claims["exp"] - claims["iat"] == get_settings().token_expire_seconds == 86400

    def test_expired_token_is_rejected(self) -> None:
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = jwt.encode(
            {"sub": "user-1", "email": "a@example.com", "role": "admin", "exp": past},
            get_settings().secret_key,
            algorithm="HS256",
        )
        assert decode_access_token(token) is None

    def test_token_signed_with_other_key_is_rejected(self) -> None:
        future = datetime.now(timezone.utc) + timedelta(hours=1)
        token = jwt.encode(
            {"sub": "user-1", "email": "a@example.com", "role": "admin", "exp": future},
            "x" * 64,
            algorithm="HS256",
        )
        assert decode_access_token(token) is None

    def test_tampered_token_is_rejected(self) -> None:
        token = create_access_token("user-1", "ada@example.com", "photographer")
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload, signature[:-2] + ("AA" if signature[-2:] != "AA" else "BB")])
        assert decode_access_token(tampered) is None

    def test_token_missing_role_claim_is_rejected(self) -> None:
        future = datetime.now(timezone.utc) + timedelta(hours=1)
        token = jwt.encode(
            {"sub": "user-1", "email": "a@example.com", "exp": future},
            get_settings().secret_key,
            algorithm="HS256",
        )
        assert decode_access_token(token) is None

    def test_garbage_is_rejected(self) -> None:
        assert decode_access_token("not.a.jwt") is None
