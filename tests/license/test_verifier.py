# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT
"""Tests for offline license verification.

Covers each restriction reason in check order, wildcard and exact repo
scoping, expiry handling and single-character tampering of either segment.
"""

from __future__ import annotations

import json

import pytest
from cryptography.exceptions import UnsupportedAlgorithm

from answervault.license import (
    KeyPair,
    LicenseGrant,
    LicenseRestriction,
    RestrictionReason,
    verifier,
    verify_license,
)
from answervault.license.verifier import b64url_decode, b64url_encode

pytestmark = pytest.mark.unit

NOW = 1_750_000_000


def _flip(segment: str, index: int) -> str:
    replacement = "A" if segment[index] != "A" else "B"
    return segment[:index] + replacement + segment[index + 1 :]


class TestNotConfigured:
    def test_missing_token_is_restricted(self, rsa_keys: KeyPair) -> None:
        result = verify_license(None, rsa_keys.public_pem, now=NOW)
        assert isinstance(result, LicenseRestriction)
        assert result.reason == RestrictionReason.NOT_CONFIGURED

    def test_blank_token_is_restricted(self, rsa_keys: KeyPair) -> None:
        result = verify_license("   ", rsa_keys.public_pem, now=NOW)
        assert result.reason == RestrictionReason.NOT_CONFIGURED

    def test_missing_public_key_is_restricted(self, make_token) -> None:
        result = verify_license(make_token(), None, now=NOW)
        assert isinstance(result, LicenseRestriction)
        assert result.reason == RestrictionReason.NOT_CONFIGURED
        assert "public key" in result.message


class TestMalformed:
    @pytest.mark.parametrize("token", ["abc", "a.b.c", ".sig", "payload.", "a..b"])
    def test_wrong_segment_count(self, rsa_keys: KeyPair, token: str) -> None:
        result = verify_license(token, rsa_keys.public_pem, now=NOW)
        assert result.reason == RestrictionReason.MALFORMED_TOKEN
        assert "payload.signature" in result.message

    def test_payload_not_json(self, rsa_keys: KeyPair) -> None:
        token = f"{b64url_encode(b'not json')}.{b64url_encode(b'sig')}"
        result = verify_license(token, rsa_keys.public_pem, now=NOW)
        assert result.reason == RestrictionReason.MALFORMED_TOKEN

    def test_payload_missing_claims(self, rsa_keys: KeyPair) -> None:
        payload = b64url_encode(json.dumps({"customer_name": "Acme"}).encode())
        result = verify_license(f"{payload}.{b64url_encode(b'sig')}", rsa_keys.public_pem, now=NOW)
        assert result.reason == RestrictionReason.MALFORMED_TOKEN

    def test_payload_not_base64url(self, rsa_keys: KeyPair) -> None:
        result = verify_license("not+base64!.c2ln", rsa_keys.public_pem, now=NOW)
        assert result.reason == RestrictionReason.MALFORMED_TOKEN


class TestSignature:
    def test_valid_token_grants(self, rsa_keys: KeyPair, make_token) -> None:
        result = verify_license(make_token(), rsa_keys.public_pem, "acme/vault", now=NOW)
        assert isinstance(result, LicenseGrant)
        assert result.claims.customer_name == "Acme Corp"
        assert result.claims.allowed_repo == "*"
        assert result.claims.issued_at == 1_700_000_000
        assert result.claims.expiry is None

    def test_wrong_key_rejected(self, other_rsa_keys: KeyPair, make_token) -> None:
        result = verify_license(make_token(), other_rsa_keys.public_pem, now=NOW)
        assert result.reason == RestrictionReason.INVALID_SIGNATURE

    def test_garbage_public_key(self, make_token) -> None:
        result = verify_license(make_token(), "-----BEGIN PUBLIC KEY-----\nnope\n", now=NOW)
        assert result.reason == RestrictionReason.INVALID_SIGNATURE
        assert "public key format" in result.message

    def test_unsupported_key_algorithm(
        self, rsa_keys: KeyPair, make_token, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def _unsupported(data: bytes) -> None:
            raise UnsupportedAlgorithm("unknown key type")

        monkeypatch.setattr(verifier.serialization, "load_pem_public_key", _unsupported)
        result = verify_license(make_token(), rsa_keys.public_pem, now=NOW)
        assert isinstance(result, LicenseRestriction)
        assert result.reason == RestrictionReason.INVALID_SIGNATURE
        assert "public key format" in result.message

    @pytest.mark.parametrize("position", [0, 5, -1])
    def test_tampered_payload_rejected(self, rsa_keys: KeyPair, make_token, position: int) -> None:
        payload, signature = make_token().split(".")
        index = position % len(payload)
        tampered = f"{_flip(payload, index)}.{signature}"
        result = verify_license(tampered, rsa_keys.public_pem, now=NOW)
        assert isinstance(result, LicenseRestriction)
        assert result.reason in {
            RestrictionReason.INVALID_SIGNATURE,
            RestrictionReason.MALFORMED_TOKEN,
        }

    @pytest.mark.parametrize("position", [0, 17, -1])
    def test_tampered_signature_rejected(self, rsa_keys: KeyPair, make_token, position: int) -> None:
        payload, signature = make_token().split(".")
        index = position % len(signature)
        tampered = f"{payload}.{_flip(signature, index)}"
        result = verify_license(tampered, rsa_keys.public_pem, now=NOW)
        assert isinstance(result, LicenseRestriction)
        assert result.reason == RestrictionReason.INVALID_SIGNATURE

    def test_forged_claims_rejected(self, rsa_keys: KeyPair, make_token) -> None:
        _, signature = make_token("acme/vault").split(".")
        forged = b64url_encode(
            json.dumps(
                {"customer_name": "Acme Corp", "allowed_repo": "*", "issued_at": 1_700_000_000},
                separators=(",", ":"),
            ).encode()
        )
        result = verify_license(f"{forged}.{signature}", rsa_keys.public_pem, now=NOW)
        assert result.reason == RestrictionReason.INVALID_SIGNATURE


class TestExpiry:
    def test_expired_token_rejected(self, rsa_keys: KeyPair, make_token) -> None:
        result = verify_license(make_token(expiry=NOW - 1), rsa_keys.public_pem, now=NOW)
        assert result.reason == RestrictionReason.EXPIRED
        assert result.message.startswith("License expired on ")

    def test_expiry_at_now_still_valid(self, rsa_keys: KeyPair, make_token) -> None:
        result = verify_license(make_token(expiry=NOW), rsa_keys.public_pem, now=NOW)
        assert isinstance(result, LicenseGrant)

    def test_future_expiry_valid(self, rsa_keys: KeyPair, make_token) -> None:
        result = verify_license(make_token(expiry=NOW + 86_400), rsa_keys.public_pem, now=NOW)
        assert isinstance(result, LicenseGrant)
        assert result.claims.expiry == NOW + 86_400

    def test_expiry_checked_before_scope(self, rsa_keys: KeyPair, make_token) -> None:
        token = make_token("other/repo", expiry=NOW - 10)
        result = verify_license(token, rsa_keys.public_pem, "acme/vault", now=NOW)
        assert result.reason == RestrictionReason.EXPIRED


class TestScope:
    @pytest.mark.parametrize("repo", ["acme/vault", "someone/else", None])
    def test_wildcard_matches_any_repo(self, rsa_keys: KeyPair, make_token, repo) -> None:
        result = verify_license(make_token("*"), rsa_keys.public_pem, repo, now=NOW)
        assert isinstance(result, LicenseGrant)

    def test_exact_repo_matches(self, rsa_keys: KeyPair, make_token) -> None:
        result = verify_license(make_token("acme/vault"), rsa_keys.public_pem, "acme/vault", now=NOW)
        assert isinstance(result, LicenseGrant)

    @pytest.mark.parametrize("repo", ["acme/other", "ACME/vault", "acme/vault2"])
    def test_other_repo_rejected(self, rsa_keys: KeyPair, make_token, repo: str) -> None:
        result = verify_license(make_token("acme/vault"), rsa_keys.public_pem, repo, now=NOW)
        assert result.reason == RestrictionReason.SCOPE_MISMATCH
        assert '"acme/vault"' in result.message

    def test_no_current_repo_skips_scope_check(self, rsa_keys: KeyPair, make_token) -> None:
        result = verify_license(make_token("acme/vault"), rsa_keys.public_pem, None, now=NOW)
        assert isinstance(result, LicenseGrant)


class TestBase64Url:
    def test_roundtrip_without_padding(self) -> None:
        encoded = b64url_encode(b"\xfb\xff")
        assert "=" not in encoded
        assert b64url_decode(encoded) == b"\xfb\xff"

    def test_non_canonical_trailing_bits_rejected(self) -> None:
        canonical = b64url_encode(b"a")  # "YQ"
        with pytest.raises(ValueError):
            b64url_decode(canonical[:-1] + "R")

    def test_verification_is_repeatable(self, rsa_keys: KeyPair, make_token) -> None:
        token = make_token("acme/vault")
        first = verify_license(token, rsa_keys.public_pem, "acme/vault", now=NOW)
        second = verify_license(token, rsa_keys.public_pem, "acme/vault", now=NOW)
        assert first == second
