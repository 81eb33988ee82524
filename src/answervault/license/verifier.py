# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""Offline license verification.

A license is ``base64url(JSON claims) + "." + base64url(signature)`` where
the signature is RSA PKCS#1 v1.5 with SHA-256 over the exact ASCII bytes of
the first segment. Verification needs only the configured public key: no
network calls, no revocation lookup.

Verification is a pure function returning one of two values:

- LicenseGrant: the write path is open; carries the verified claims
- LicenseRestriction: restricted mode; carries a diagnostic reason

Every restriction is treated the same way for access control. The reason
and message exist for operators only.

Checks run in a fixed order, each with its own reason:
    1. token and public key configured         -> NOT_CONFIGURED
    2. exactly two non-empty segments          -> MALFORMED_TOKEN
    3. claims segment decodes to valid claims  -> MALFORMED_TOKEN
    4. signature verifies                      -> INVALID_SIGNATURE
    5. expiry (if any) not in the past         -> EXPIRED
    6. allowed_repo is "*" or the current repo -> SCOPE_MISMATCH
"""

from __future__ import annotations

import base64
import binascii
import json
import re
import time
from datetime import UTC, datetime
from enum import StrEnum
from typing import Literal

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from pydantic import BaseModel, ConfigDict, ValidationError

WILDCARD_REPO = "*"

_B64URL_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class RestrictionReason(StrEnum):
    NOT_CONFIGURED = "not_configured"
    MALFORMED_TOKEN = "malformed_token"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"
    SCOPE_MISMATCH = "scope_mismatch"


class LicensePayload(BaseModel):
    """Claims carried by a license token."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    customer_name: str
    allowed_repo: str  # "owner/repo" or "*"
    issued_at: int  # unix seconds
    expiry: int | None = None  # unix seconds, None = never expires


class LicenseGrant(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: Literal["open"] = "open"
    claims: LicensePayload


class LicenseRestriction(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: Literal["restricted"] = "restricted"
    reason: RestrictionReason
    message: str


VerificationResult = LicenseGrant | LicenseRestriction


def _restricted(reason: RestrictionReason, message: str) -> LicenseRestriction:
    return LicenseRestriction(reason=reason, message=message)


def b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def b64url_decode(segment: str) -> bytes:
    """Decode unpadded base64url, rejecting non-canonical encodings.

    Raises:
        ValueError: If the segment is not canonical unpadded base64url.
    """
    if not _B64URL_PATTERN.match(segment):
        raise ValueError("segment contains characters outside base64url")
    try:
        raw = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"segment is not valid base64url: {e}") from e
    # Unused trailing bits would let two different segments decode alike
    if b64url_encode(raw) != segment:
        raise ValueError("segment is not canonical base64url")
    return raw


def _format_day(unix_seconds: int) -> str:
    return datetime.fromtimestamp(unix_seconds, tz=UTC).date().isoformat()


def verify_license(
    token: str | None,
    public_key_pem: str | None,
    current_repo: str | None = None,
    now: float | None = None,
) -> VerificationResult:
    """Verify a license token.

    Args:
        token: The license token, None when none is configured.
        public_key_pem: PEM encoded RSA public key, None when unset.
        current_repo: Repository ("owner/name") the request targets. When
            None the scope check is skipped.
        now: Verification time in unix seconds (defaults to the clock).

    Returns:
        LicenseGrant or LicenseRestriction. Never raises.
    """
    if not public_key_pem or not public_key_pem.strip():
        return _restricted(
            RestrictionReason.NOT_CONFIGURED,
            "No public key configured - running in restricted mode",
        )
    if token is None or not token.strip():
        return _restricted(RestrictionReason.NOT_CONFIGURED, "No license key provided")

    parts = token.strip().split(".")
    if len(parts) != 2 or not all(parts):
        return _restricted(
            RestrictionReason.MALFORMED_TOKEN,
            "Invalid license format (expected payload.signature)",
        )
    payload_b64, signature_b64 = parts

    try:
        claims = LicensePayload.model_validate(
            json.loads(b64url_decode(payload_b64).decode("utf-8"))
        )
    except (ValueError, ValidationError) as e:
        # json.JSONDecodeError and UnicodeDecodeError are ValueErrors
        return _restricted(
            RestrictionReason.MALFORMED_TOKEN, f"Failed to parse license: {e}"
        )

    try:
        signature = b64url_decode(signature_b64)
    except ValueError:
        return _restricted(
            RestrictionReason.INVALID_SIGNATURE, "Invalid license signature"
        )

    try:
        public_key = serialization.load_pem_public_key(public_key_pem.encode("utf-8"))
    except (ValueError, TypeError, UnsupportedAlgorithm):
        return _restricted(
            RestrictionReason.INVALID_SIGNATURE,
            "Signature verification failed - check your public key format",
        )
    if not isinstance(public_key, rsa.RSAPublicKey):
        return _restricted(
            RestrictionReason.INVALID_SIGNATURE,
            "Signature verification failed - public key is not an RSA key",
        )

    try:
        public_key.verify(
            signature,
            payload_b64.encode("ascii"),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
    except InvalidSignature:
        return _restricted(
            RestrictionReason.INVALID_SIGNATURE, "Invalid license signature"
        )

    current_time = time.time() if now is None else now
    if claims.expiry is not None and claims.expiry < current_time:
        return _restricted(
            RestrictionReason.EXPIRED,
            f"License expired on {_format_day(claims.expiry)}",
        )

    if (
        current_repo is not None
        and claims.allowed_repo != WILDCARD_REPO
        and claims.allowed_repo != current_repo
    ):
        return _restricted(
            RestrictionReason.SCOPE_MISMATCH,
            f'License is for repo "{claims.allowed_repo}", not "{current_repo}"',
        )

    return LicenseGrant(claims=claims)


__all__ = [
    "LicenseGrant",
    "LicensePayload",
    "LicenseRestriction",
    "RestrictionReason",
    "VerificationResult",
    "WILDCARD_REPO",
    "b64url_decode",
    "b64url_encode",
    "verify_license",
]
