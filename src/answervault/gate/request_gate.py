# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""License-conditioned routing of vault requests.

Every call verifies the configured license against the active repository
before doing anything else:

- open mode: reads pass through untouched; writes are validated and routed
  to the document stores, and their ProposalResult is returned unmodified
- restricted mode: writes raise RestrictedModeError without touching the
  repository; list reads are truncated to READ_LIMITS

The gate does no caching and no retries. The verification result is never
reused across calls.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from answervault.config import AnswerVaultSettings
from answervault.gate.limits import READ_LIMITS, ReadLimits
from answervault.lib.errors import DocumentValidationError, RestrictedModeError
from answervault.license import (
    LicenseGrant,
    LicenseRestriction,
    LicenseStatus,
    VerificationResult,
    resolve_license,
)
from answervault.license.status import status_from_result
from answervault.models import (
    Answer,
    Evidence,
    Mapping,
    ProposalResult,
    Questionnaire,
)
from answervault.schemas import (
    ValidationReport,
    validate_answer,
    validate_evidence,
    validate_mapping,
    validate_questionnaire,
)
from answervault.storage.repositories import VaultStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class GatedRead(Generic[T]):
    """A list read as seen by the caller.

    Attributes:
        items: The returned records (possibly truncated).
        restricted: True when the read ran in restricted mode.
        total: Number of records before truncation.
    """

    items: list[T]
    restricted: bool
    total: int

    @property
    def truncated(self) -> bool:
        return len(self.items) < self.total


class RequestGate:
    """Entry point for every read and write against one vault repository."""

    def __init__(
        self,
        store: VaultStore,
        settings: AnswerVaultSettings,
        *,
        limits: ReadLimits = READ_LIMITS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._settings = settings
        self._limits = limits
        self._clock = clock

    @property
    def repository(self) -> str:
        return self._store.client.full_name

    @property
    def limits(self) -> ReadLimits:
        return self._limits

    def mode(self) -> VerificationResult:
        """Verify the license for this request."""
        return resolve_license(self._settings, self.repository, now=self._clock())

    def status(self) -> LicenseStatus:
        return status_from_result(self.mode())

    def _require_open(self, operation: str) -> LicenseGrant:
        result = self.mode()
        if isinstance(result, LicenseRestriction):
            logger.warning(
                "Write rejected in restricted mode",
                extra={
                    "operation": operation,
                    "repo": self.repository,
                    "reason": str(result.reason),
                },
            )
            raise RestrictedModeError(result.message)
        return result

    @staticmethod
    def _checked(kind: str, report: ValidationReport[Any]) -> Any:
        if not report.success:
            raise DocumentValidationError(kind, report.issues)
        return report.value

    def _cap_questions(self, questionnaire: Questionnaire) -> Questionnaire:
        if len(questionnaire.questions) <= self._limits.max_questions:
            return questionnaire
        return questionnaire.model_copy(
            update={"questions": questionnaire.questions[: self._limits.max_questions]}
        )

    @staticmethod
    def _gated(items: list[T], restricted: bool, cap: int) -> GatedRead[T]:
        if restricted:
            return GatedRead(items=items[:cap], restricted=True, total=len(items))
        return GatedRead(items=items, restricted=False, total=len(items))

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_answers(self) -> GatedRead[Answer]:
        restricted = isinstance(self.mode(), LicenseRestriction)
        answers = await self._store.answers.list()
        return self._gated(answers, restricted, self._limits.max_answers)

    async def get_answer(self, answer_id: str) -> Answer | None:
        return await self._store.answers.get(answer_id)

    async def list_evidence(self) -> GatedRead[Evidence]:
        restricted = isinstance(self.mode(), LicenseRestriction)
        evidence = await self._store.evidence.list()
        return self._gated(evidence, restricted, self._limits.max_evidence)

    async def get_evidence(self, evidence_id: str) -> Evidence | None:
        return await self._store.evidence.get(evidence_id)

    async def list_questionnaires(self) -> GatedRead[Questionnaire]:
        restricted = isinstance(self.mode(), LicenseRestriction)
        questionnaires = await self._store.questionnaires.list()
        gated = self._gated(
            questionnaires, restricted, self._limits.max_questionnaires
        )
        if not restricted:
            return gated
        return GatedRead(
            items=[self._cap_questions(q) for q in gated.items],
            restricted=True,
            total=gated.total,
        )

    async def get_questionnaire(self, slug: str) -> Questionnaire | None:
        restricted = isinstance(self.mode(), LicenseRestriction)
        questionnaire = await self._store.questionnaires.get(slug)
        if questionnaire is None or not restricted:
            return questionnaire
        return self._cap_questions(questionnaire)

    async def get_mapping(self, slug: str) -> Mapping | None:
        return await self._store.mappings.get(slug)

    # =========================================================================
    # Writes
    # =========================================================================

    async def upsert_answer(self, payload: Answer | dict[str, Any]) -> ProposalResult:
        self._require_open("upsert_answer")
        answer = self._checked("answer", validate_answer(payload))
        return await self._store.answers.upsert(answer)

    async def upsert_evidence(
        self, payload: Evidence | dict[str, Any]
    ) -> ProposalResult:
        self._require_open("upsert_evidence")
        item = self._checked("evidence", validate_evidence(payload))
        return await self._store.evidence.upsert(item)

    async def import_questionnaire(
        self, payload: Questionnaire | dict[str, Any]
    ) -> ProposalResult:
        self._require_open("import_questionnaire")
        questionnaire = self._checked(
            "questionnaire", validate_questionnaire(payload)
        )
        return await self._store.questionnaires.upsert(questionnaire)

    async def save_mapping(
        self, slug: str, payload: Mapping | dict[str, Any]
    ) -> ProposalResult:
        self._require_open("save_mapping")
        mapping = self._checked("mapping", validate_mapping(payload))
        return await self._store.mappings.upsert(slug, mapping)


__all__ = ["GatedRead", "RequestGate"]
