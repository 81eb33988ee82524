# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""Signed license tokens: verification, status and minting."""

from __future__ import annotations

from .keys import KeyPair, env_escape_pem, generate_keypair, mint_license
from .status import LicenseStatus, get_license_status, resolve_license
from .verifier import (
    WILDCARD_REPO,
    LicenseGrant,
    LicensePayload,
    LicenseRestriction,
    RestrictionReason,
    VerificationResult,
    verify_license,
)

__all__ = [
    "KeyPair",
    "LicenseGrant",
    "LicensePayload",
    "LicenseRestriction",
    "LicenseStatus",
    "RestrictionReason",
    "VerificationResult",
    "WILDCARD_REPO",
    "env_escape_pem",
    "generate_keypair",
    "get_license_status",
    "mint_license",
    "resolve_license",
    "verify_license",
]
