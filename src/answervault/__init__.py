# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""AnswerVault - compliance answers stored in a git repository.

This package treats a remote, pull-request reviewed GitHub repository as a
document database for reusable security questionnaire answers, evidence
citations, imported questionnaires and question-to-answer mappings. Reads
go through a short-lived cache; writes are proposed as pull requests and
are only permitted while a valid signed license is configured.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("answervault")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
