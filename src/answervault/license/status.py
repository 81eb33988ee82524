# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""License status for the active deployment and repository."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from answervault.config import AnswerVaultSettings
from answervault.license.verifier import (
    LicenseGrant,
    VerificationResult,
    verify_license,
)


class LicenseStatus(BaseModel):
    """UI-facing summary. ``demo`` is True in restricted mode."""

    model_config = ConfigDict(frozen=True)

    demo: bool
    customer_name: str | None = None
    allowed_repo: str | None = None
    expiry: int | None = None
    error: str | None = None


def resolve_license(
    settings: AnswerVaultSettings,
    current_repo: str | None = None,
    now: float | None = None,
) -> VerificationResult:
    """Verify the configured license against the current repository."""
    return verify_license(
        settings.license_token, settings.public_key, current_repo, now=now
    )


def status_from_result(result: VerificationResult) -> LicenseStatus:
    if isinstance(result, LicenseGrant):
        return LicenseStatus(
            demo=False,
            customer_name=result.claims.customer_name,
            allowed_repo=result.claims.allowed_repo,
            expiry=result.claims.expiry,
        )
    return LicenseStatus(demo=True, error=result.message)


def get_license_status(
    settings: AnswerVaultSettings,
    current_repo: str | None = None,
    now: float | None = None,
) -> LicenseStatus:
    return status_from_result(resolve_license(settings, current_repo, now=now))


__all__ = ["LicenseStatus", "get_license_status", "resolve_license", "status_from_result"]
