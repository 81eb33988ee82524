# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""Write-time validation of vault documents.

Stored records are read leniently (``answervault.models``); anything the
request gate is asked to write must first pass the stricter rules here.
Each ``validate_*`` function never raises; it returns a ValidationReport.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, RootModel, ValidationError

from answervault.models import (
    SLUG_PATTERN,
    Answer,
    AnswerType,
    Evidence,
    EvidenceType,
    Mapping,
    MappingEntry,
    Questionnaire,
)

_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"

T = TypeVar("T")


class ValidationReport(BaseModel, Generic[T]):
    """Outcome of validating one payload."""

    success: bool
    value: T | None = None
    issues: list[dict[str, Any]] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Strict input models
# ---------------------------------------------------------------------------


class _AnswerInput(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(pattern=r"^ans-\d{3,}$")
    title: str = Field(min_length=3, max_length=200)
    intent_keywords: list[str] = Field(min_length=1)
    short_answer: str = Field(min_length=10, max_length=1000)
    tags: list[str]
    frameworks: list[str]
    owner: str = Field(min_length=1)
    last_reviewed: str = Field(pattern=_DATE_PATTERN)
    evidence_ids: list[str]
    long_answer_md: str | None = None


class _EvidenceInput(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(pattern=r"^ev-\d{3,}$")
    title: str = Field(min_length=3, max_length=200)
    type: EvidenceType
    url_or_path: str = Field(min_length=1)
    description: str = Field(min_length=10, max_length=2000)
    last_updated: str = Field(pattern=_DATE_PATTERN)
    tags: list[str]


class _QuestionInput(BaseModel):
    model_config = ConfigDict(extra="allow")

    qid: str = Field(min_length=1)
    text: str = Field(min_length=5)
    section: str = Field(min_length=1)
    answer_type: AnswerType


class _QuestionnaireInput(BaseModel):
    model_config = ConfigDict(extra="allow")

    slug: str = Field(pattern=SLUG_PATTERN)
    source_filename: str
    imported_at: str
    questions: list[_QuestionInput] = Field(min_length=1)


class _MappingEntryInput(BaseModel):
    model_config = ConfigDict(extra="allow")

    answer_id: str | None
    override_text: str | None = None


class _MappingInput(RootModel[dict[str, _MappingEntryInput]]):
    pass


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _issues(error: ValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": list(item["loc"]), "msg": item["msg"], "type": item["type"]}
        for item in error.errors()
    ]


def _as_dict(data: Any) -> Any:
    if isinstance(data, MappingEntry):
        return data.to_document()
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    return data


def validate_answer(data: Any) -> ValidationReport[Answer]:
    payload = _as_dict(data)
    try:
        _AnswerInput.model_validate(payload)
    except ValidationError as e:
        return ValidationReport(success=False, issues=_issues(e))
    answer = Answer.model_validate(
        {**payload, "long_answer_md": payload.get("long_answer_md") or ""}
    )
    return ValidationReport(success=True, value=answer)


def validate_evidence(data: Any) -> ValidationReport[Evidence]:
    payload = _as_dict(data)
    try:
        _EvidenceInput.model_validate(payload)
    except ValidationError as e:
        return ValidationReport(success=False, issues=_issues(e))
    return ValidationReport(success=True, value=Evidence.model_validate(payload))


def validate_questionnaire(data: Any) -> ValidationReport[Questionnaire]:
    payload = _as_dict(data)
    try:
        _QuestionnaireInput.model_validate(payload)
    except ValidationError as e:
        return ValidationReport(success=False, issues=_issues(e))
    return ValidationReport(
        success=True, value=Questionnaire.model_validate(payload)
    )


def validate_mapping(data: Any) -> ValidationReport[Mapping]:
    """Validate a question-id keyed mapping.

    ``answer_id`` is required in every entry; ``None`` is accepted and kept.
    """
    if isinstance(data, dict):
        payload = {key: _as_dict(value) for key, value in data.items()}
    else:
        payload = data
    try:
        _MappingInput.model_validate(payload)
    except ValidationError as e:
        return ValidationReport(success=False, issues=_issues(e))
    mapping = {
        qid: MappingEntry.model_validate(entry) for qid, entry in payload.items()
    }
    return ValidationReport(success=True, value=mapping)


__all__ = [
    "ValidationReport",
    "validate_answer",
    "validate_evidence",
    "validate_mapping",
    "validate_questionnaire",
]
