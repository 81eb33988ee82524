# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""Request gate: license check in front of every vault operation."""

from __future__ import annotations

from .limits import READ_LIMITS, ReadLimits
from .request_gate import GatedRead, RequestGate

__all__ = ["GatedRead", "READ_LIMITS", "ReadLimits", "RequestGate"]
