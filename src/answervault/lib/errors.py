# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""Error codes and exception classes for AnswerVault.

This module is the single source of truth for vault errors. Every failure
raised by the repository client, the entity readers and writers and the
request gate is a ``VaultError`` subclass with a stable code:

- NotFoundError: absent file or document (read paths turn it into None)
- UnauthorizedError / ForbiddenError: bad or insufficient credential
- RateLimitedError: remote API quota exhausted
- ConflictError: optimistic-concurrency precondition failed on a write
- RemoteUnavailableError: transport failure, timeout or server error
- RemoteApiError: any other unexpected remote response
- ProposalAbortedError: a proposal sequence stopped part-way
- RestrictedModeError: write attempted without a valid license
- DocumentValidationError: write payload failed schema validation
- MalformedDocumentError: a stored file could not be decoded

Nothing in the core retries; retry policy belongs to the caller.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from answervault.storage.proposal import ProposalProgress, ProposalStep


class EnumVaultErrorCode(StrEnum):
    """Stable error codes surfaced to API callers."""

    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    RATE_LIMITED = "RATE_LIMITED"
    CONFLICT = "CONFLICT"
    REMOTE_UNAVAILABLE = "REMOTE_UNAVAILABLE"
    REMOTE_API_ERROR = "REMOTE_API_ERROR"
    PROPOSAL_ABORTED = "PROPOSAL_ABORTED"
    RESTRICTED_MODE = "RESTRICTED_MODE"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    MALFORMED_DOCUMENT = "MALFORMED_DOCUMENT"


class VaultError(Exception):
    """Base exception for vault operations.

    Attributes:
        code: Error code from EnumVaultErrorCode
        message: Human-readable error message
        details: Additional context (never contains credentials)
    """

    code: EnumVaultErrorCode = EnumVaultErrorCode.REMOTE_API_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code}, message={self.message!r}, "
            f"details={self.details})"
        )


class RemoteError(VaultError):
    """An error response from the remote version-control API.

    Attributes:
        status_code: HTTP status of the response, None for transport errors.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message, details)


class NotFoundError(RemoteError):
    """The requested file, directory or document does not exist."""

    code = EnumVaultErrorCode.NOT_FOUND


class UnauthorizedError(RemoteError):
    """The session credential was rejected (missing, revoked or expired)."""

    code = EnumVaultErrorCode.UNAUTHORIZED


class ForbiddenError(RemoteError):
    """The credential is valid but lacks access to the repository."""

    code = EnumVaultErrorCode.FORBIDDEN


class RateLimitedError(RemoteError):
    """The remote API rate limit is exhausted."""

    code = EnumVaultErrorCode.RATE_LIMITED


class ConflictError(RemoteError):
    """The file changed since its content hash was read."""

    code = EnumVaultErrorCode.CONFLICT


class RemoteUnavailableError(RemoteError):
    """Network failure, timeout or server-side error."""

    code = EnumVaultErrorCode.REMOTE_UNAVAILABLE


class RemoteApiError(RemoteError):
    """Unexpected remote response that fits no other category."""

    code = EnumVaultErrorCode.REMOTE_API_ERROR


class ProposalAbortedError(VaultError):
    """A proposal sequence failed before its pull request was opened.

    Whatever the sequence already did (branch, commits) is left in place.

    Attributes:
        step: The step that failed.
        progress: Snapshot of the branch and paths written before the failure.
        cause: The first underlying error, also chained as ``__cause__``.
    """

    code = EnumVaultErrorCode.PROPOSAL_ABORTED

    def __init__(
        self,
        step: ProposalStep,
        progress: ProposalProgress,
        cause: VaultError,
    ) -> None:
        self.step = step
        self.progress = progress
        self.cause = cause
        super().__init__(
            f"Proposal aborted at step '{step}': {cause.message}",
            details={
                "step": str(step),
                "branch": progress.branch,
                "branch_created": progress.branch_created,
                "committed_paths": list(progress.committed_paths),
                "cause_code": str(cause.code),
            },
        )


class RestrictedModeError(VaultError):
    """A write was attempted while no valid license is active.

    Attributes:
        reason: Diagnostic restriction reason; never used for access control.
    """

    code = EnumVaultErrorCode.RESTRICTED_MODE

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(
            "Write operations require a valid license",
            details={"reason": reason},
        )


class DocumentValidationError(VaultError):
    """A write payload failed validation.

    Attributes:
        issues: One entry per failed rule (``loc`` and ``msg`` keys).
    """

    code = EnumVaultErrorCode.VALIDATION_FAILED

    def __init__(self, kind: str, issues: list[dict[str, Any]]) -> None:
        self.kind = kind
        self.issues = issues
        super().__init__(
            f"Validation failed for {kind}",
            details={"issues": issues},
        )


class MalformedDocumentError(VaultError):
    """A stored file exists but cannot be decoded into its record type."""

    code = EnumVaultErrorCode.MALFORMED_DOCUMENT

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Cannot decode {path}: {reason}", details={"path": path})


__all__ = [
    "ConflictError",
    "DocumentValidationError",
    "EnumVaultErrorCode",
    "ForbiddenError",
    "MalformedDocumentError",
    "NotFoundError",
    "ProposalAbortedError",
    "RateLimitedError",
    "RemoteApiError",
    "RemoteError",
    "RemoteUnavailableError",
    "RestrictedModeError",
    "UnauthorizedError",
    "VaultError",
]
