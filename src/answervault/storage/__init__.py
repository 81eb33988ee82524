# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""Persistence core: a GitHub repository used as a document database.

Reads are served through a process-wide TTL cache; writes are proposed as
pull requests (branch -> commits -> pull request).
"""

from __future__ import annotations

from .cache import RemoteFileCache, get_shared_cache
from .github_client import GitHubRepoClient, parse_repo
from .proposal import FileChange, ProposalProgress, ProposalRequest, ProposalStep
from .repositories import (
    AnswerStore,
    DocumentKind,
    EvidenceStore,
    MappingStore,
    QuestionnaireStore,
    VaultStore,
)

__all__ = [
    "AnswerStore",
    "DocumentKind",
    "EvidenceStore",
    "FileChange",
    "GitHubRepoClient",
    "MappingStore",
    "ProposalProgress",
    "ProposalRequest",
    "ProposalStep",
    "QuestionnaireStore",
    "RemoteFileCache",
    "VaultStore",
    "get_shared_cache",
    "parse_repo",
]
