# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""Types describing a proposal sequence.

A proposal is the only sanctioned write path:

    RESOLVE_BASE -> CREATE_BRANCH -> COMMIT (one per file) -> OPEN_PULL_REQUEST

The steps are not transactional. A failure stops the sequence and leaves
the branch and any commits already made in place; nothing is rolled back.
ProposalProgress records how far the sequence got so the failure can be
reported precisely.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field, replace
from enum import StrEnum


class ProposalStep(StrEnum):
    RESOLVE_BASE = "resolve_base"
    CREATE_BRANCH = "create_branch"
    COMMIT = "commit"
    OPEN_PULL_REQUEST = "open_pull_request"


@dataclass(frozen=True)
class FileChange:
    """One file written on the proposal branch, with its commit message."""

    path: str
    content: str
    message: str


@dataclass(frozen=True)
class ProposalRequest:
    """Everything a writer hands to the repository client."""

    kind: str
    identity: str
    files: tuple[FileChange, ...]
    title: str
    body: str


@dataclass
class ProposalProgress:
    branch: str
    base_branch: str | None = None
    branch_created: bool = False
    committed_paths: list[str] = field(default_factory=list)

    def snapshot(self) -> ProposalProgress:
        return replace(self, committed_paths=list(self.committed_paths))


def proposal_branch_name(
    prefix: str,
    kind: str,
    identity: str,
    now_ms: int | None = None,
) -> str:
    """Build a collision-free branch name for a proposal.

    The random hex suffix keeps two proposals made in the same millisecond
    apart, e.g. ``answervault/answer-ans-099-1700000000000-3f9a1c``.
    """
    millis = int(time.time() * 1000) if now_ms is None else now_ms
    return f"{prefix}/{kind}-{identity}-{millis}-{secrets.token_hex(3)}"


__all__ = [
    "FileChange",
    "ProposalProgress",
    "ProposalRequest",
    "ProposalStep",
    "proposal_branch_name",
]
