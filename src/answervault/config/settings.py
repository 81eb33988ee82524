# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""AnswerVault settings.

Loads from environment variables with the ANSWERVAULT_ prefix and from a
``.env`` file found in the working directory or the nearest parent directory.
The license variables also accept the bare names used by hosted deployments
(``LICENSE_KEY``, ``STALE_ANSWER_DAYS``, ``STALE_EVIDENCE_DAYS``).

Example:
    ANSWERVAULT_PUBLIC_KEY="-----BEGIN PUBLIC KEY-----\\nMIIB...\\n-----END PUBLIC KEY-----\\n"
    LICENSE_KEY=eyJjdXN0b21lcl9uYW1lIjoi....c2lnbmF0dXJl
    ANSWERVAULT_CACHE_TTL_SECONDS=300

When no license key (or no public key) is configured, the vault runs in
restricted mode: reads are capped and every write is rejected.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_and_load_env() -> None:
    """Load the nearest .env file without overriding real environment."""
    from dotenv import load_dotenv

    current = Path.cwd()
    for _ in range(10):
        env_file = current / ".env"
        if env_file.exists():
            load_dotenv(env_file, override=False)
            return
        parent = current.parent
        if parent == current:
            break
        current = parent


logger = logging.getLogger(__name__)


class AnswerVaultSettings(BaseSettings):
    """Settings for the vault core, the license gate and the CLI."""

    model_config = SettingsConfigDict(
        env_prefix="ANSWERVAULT_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # =========================================================================
    # LICENSE
    # =========================================================================
    license_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "license_key", "ANSWERVAULT_LICENSE_KEY", "LICENSE_KEY"
        ),
        description="Signed license token. Absent means restricted mode.",
    )
    public_key: str | None = Field(
        default=None,
        description=(
            "PEM encoded public key used to verify license signatures. "
            "Literal '\\n' sequences are expanded so the key fits in one line."
        ),
    )

    # =========================================================================
    # REMOTE REPOSITORY
    # =========================================================================
    github_api_url: str = Field(
        default="https://api.github.com",
        min_length=1,
        description="Base URL of the GitHub REST API",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        ge=0.5,
        le=120.0,
        description="Timeout applied to every remote API call",
    )
    branch_prefix: str = Field(
        default="answervault",
        pattern=r"^[A-Za-z0-9._-]+$",
        description="Namespace for proposal branches",
    )

    # =========================================================================
    # CACHE
    # =========================================================================
    cache_ttl_seconds: int = Field(
        default=300,
        ge=1,
        le=86_400,
        description="Time-to-live of remote file cache entries",
    )
    cache_max_entries: int = Field(
        default=4096,
        ge=16,
        le=1_000_000,
        description="Maximum number of cached files and listings",
    )

    # =========================================================================
    # STALENESS
    # =========================================================================
    stale_answer_days: int = Field(
        default=180,
        ge=1,
        validation_alias=AliasChoices(
            "stale_answer_days", "ANSWERVAULT_STALE_ANSWER_DAYS", "STALE_ANSWER_DAYS"
        ),
    )
    stale_evidence_days: int = Field(
        default=365,
        ge=1,
        validation_alias=AliasChoices(
            "stale_evidence_days",
            "ANSWERVAULT_STALE_EVIDENCE_DAYS",
            "STALE_EVIDENCE_DAYS",
        ),
    )

    @field_validator("public_key", mode="before")
    @classmethod
    def _expand_newlines(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.replace("\\n", "\n")
            if not value.strip():
                return None
        return value

    @field_validator("license_key", mode="before")
    @classmethod
    def _blank_license_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def license_token(self) -> str | None:
        """The raw license token, or None when unset."""
        if self.license_key is None:
            return None
        return self.license_key.get_secret_value().strip()

    def __repr__(self) -> str:
        return (
            f"AnswerVaultSettings(github_api_url={self.github_api_url!r}, "
            f"license_configured={self.license_key is not None}, "
            f"public_key_configured={self.public_key is not None})"
        )


@lru_cache(maxsize=1)
def get_settings() -> AnswerVaultSettings:
    """Return the process-wide settings instance."""
    _find_and_load_env()
    settings = AnswerVaultSettings()
    logger.debug("Loaded settings", extra={"settings": repr(settings)})
    return settings
