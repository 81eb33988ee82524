# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""Records stored in the vault repository.

The vault does not own the business schema of these records (see
``answervault.schemas`` for write-time validation). The models here only
fix the field types and keep unknown keys (``extra="allow"``) so a record
read from the repository is written back unchanged.

Models:
- Answer: reusable answer; long-form body lives in a sibling markdown file
- Evidence: one entry of the evidence collection file
- Question / Questionnaire: an imported questionnaire
- MappingEntry / Mapping: question id -> answer reference or override
- ProposalResult: reference to an opened pull request
- IssueRef: reference to an existing issue
- GitHubRepo: repository summary for the repo selector
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationInfo,
    field_validator,
)
from pydantic_core import PydanticUndefined

SLUG_PATTERN = r"^[a-z0-9-]+$"

# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class _StoredRecord(BaseModel):
    """Base of records read from the repository.

    Hand-edited files often leave a key without a value (``tags:``), which
    YAML reads as null. A null is read as the field's default instead of
    failing the record.
    """

    model_config = ConfigDict(extra="allow")

    @field_validator("*", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is not None or info.field_name is None:
            return value
        field = cls.model_fields[info.field_name]
        default = field.get_default(call_default_factory=True)
        return value if default is PydanticUndefined else default


class Answer(_StoredRecord):
    """A reusable answer.

    ``long_answer_md`` is not part of the metadata file; it is stored in
    ``answers/<id>.md``. An answer whose markdown file is missing reads
    back with an empty body.
    """

    id: str
    title: str
    intent_keywords: list[str] = Field(default_factory=list)
    short_answer: str = ""
    tags: list[str] = Field(default_factory=list)
    frameworks: list[str] = Field(default_factory=list)
    owner: str = ""
    last_reviewed: str = ""  # YYYY-MM-DD
    evidence_ids: list[str] = Field(default_factory=list)
    long_answer_md: str = ""

    def metadata(self) -> dict[str, Any]:
        """Fields stored in the YAML metadata file."""
        return self.model_dump(mode="json", exclude={"long_answer_md"})


EvidenceType = Literal["doc", "link", "file"]


class Evidence(_StoredRecord):
    """An evidence citation."""

    id: str
    title: str
    type: EvidenceType
    url_or_path: str = ""
    description: str = ""
    last_updated: str = ""  # YYYY-MM-DD
    tags: list[str] = Field(default_factory=list)


AnswerType = Literal["yes_no", "yes_no_na", "text", "select"]


class Question(_StoredRecord):
    qid: str
    text: str
    section: str = ""
    answer_type: AnswerType = "text"


class Questionnaire(_StoredRecord):
    """An imported questionnaire. Always written as a whole."""

    slug: str
    source_filename: str = ""
    imported_at: str = ""  # ISO-8601
    questions: list[Question] = Field(default_factory=list)


class MappingEntry(BaseModel):
    """Mapping of one question.

    ``answer_id=None`` means the question was looked at and deliberately left
    unmapped. A question id with no entry at all was never considered.
    """

    model_config = ConfigDict(extra="allow")

    answer_id: str | None
    override_text: str | None = None

    def to_document(self) -> dict[str, Any]:
        # answer_id is always written, override_text only once it was set
        data = self.model_dump(mode="json", exclude_unset=True)
        data["answer_id"] = self.answer_id
        return data


Mapping = dict[str, MappingEntry]

MAPPING_ADAPTER: TypeAdapter[Mapping] = TypeAdapter(Mapping)
EVIDENCE_LIST_ADAPTER: TypeAdapter[list[Evidence]] = TypeAdapter(list[Evidence])


def mapping_to_document(mapping: Mapping) -> dict[str, dict[str, Any]]:
    """Render a mapping as plain data, keeping key order."""
    return {qid: entry.to_document() for qid, entry in mapping.items()}


# ---------------------------------------------------------------------------
# Remote API results
# ---------------------------------------------------------------------------


class ProposalResult(BaseModel):
    """Reference to the pull request opened by a proposal sequence."""

    model_config = ConfigDict(frozen=True)

    url: str
    number: int
    branch: str


class IssueRef(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    number: int
    url: str
    title: str = ""


class GitHubRepo(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    owner: str
    name: str
    full_name: str
    private: bool
    default_branch: str


__all__ = [
    "Answer",
    "AnswerType",
    "EVIDENCE_LIST_ADAPTER",
    "Evidence",
    "EvidenceType",
    "GitHubRepo",
    "IssueRef",
    "MAPPING_ADAPTER",
    "Mapping",
    "MappingEntry",
    "ProposalResult",
    "Question",
    "Questionnaire",
    "SLUG_PATTERN",
    "mapping_to_document",
]
