# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""Published read limits applied in restricted (unlicensed) mode."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ReadLimits:
    max_answers: int = 20
    max_evidence: int = 10
    max_questionnaires: int = 1
    max_questions: int = 30


READ_LIMITS = ReadLimits()

__all__ = ["READ_LIMITS", "ReadLimits"]
