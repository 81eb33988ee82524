# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""Runtime configuration for AnswerVault."""

from __future__ import annotations

from .settings import AnswerVaultSettings, get_settings

__all__ = ["AnswerVaultSettings", "get_settings"]
