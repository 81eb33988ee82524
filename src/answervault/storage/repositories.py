# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""Typed readers and writers for the four vault document kinds.

Repository layout (kept bit-for-bit for interoperability):

    answers/<id>.yml                           answer metadata
    answers/<id>.md                            answer long-form body
    evidence/evidence.yml                      the whole evidence collection
    questionnaires/<slug>/questionnaire.json   imported questionnaire
    questionnaires/<slug>/mapping.yml          question id -> answer mapping

Readers go through the client's cache. Writers never touch the default
branch: they build a ProposalRequest and hand it to
``GitHubRepoClient.propose``.

Evidence is one file, so an evidence upsert rewrites the whole collection
read a moment earlier. Two proposals racing on it each produce a valid pull
request; reconciling them is left to the reviewer.

A listing leaves out, and logs, a file that cannot be decoded; a single
read raises MalformedDocumentError for it.
"""

from __future__ import annotations

import asyncio
import logging
import re
from enum import StrEnum
from collections.abc import Awaitable
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from answervault.lib.errors import DocumentValidationError, MalformedDocumentError
from answervault.models import (
    EVIDENCE_LIST_ADAPTER,
    MAPPING_ADAPTER,
    SLUG_PATTERN,
    Answer,
    Evidence,
    Mapping,
    ProposalResult,
    Questionnaire,
    mapping_to_document,
)
from answervault.storage.codec import dump_json, dump_yaml, load_json, load_yaml
from answervault.storage.github_client import GitHubRepoClient
from answervault.storage.proposal import FileChange, ProposalRequest

logger = logging.getLogger(__name__)

ANSWERS_DIR = "answers"
EVIDENCE_PATH = "evidence/evidence.yml"
QUESTIONNAIRES_DIR = "questionnaires"
QUESTIONNAIRE_FILE = "questionnaire.json"
MAPPING_FILE = "mapping.yml"

PR_BODY_HEADER = "AnswerVault automated PR"

_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9._-]*$")
_SLUG_PATTERN = re.compile(SLUG_PATTERN)

_T = TypeVar("_T")


class DocumentKind(StrEnum):
    ANSWER = "answer"
    EVIDENCE = "evidence"
    QUESTIONNAIRE = "questionnaire"
    MAPPING = "mapping"


def _require_segment(kind: DocumentKind, value: str) -> str:
    """Reject identities that would escape their directory."""
    if not _SEGMENT_PATTERN.match(value or ""):
        raise DocumentValidationError(
            str(kind),
            [{"loc": ["id"], "msg": f"invalid identity {value!r}", "type": "value_error"}],
        )
    return value


def _require_slug(kind: DocumentKind, slug: str) -> str:
    """Questionnaire slugs are lowercase letters, digits and hyphens."""
    if not _SLUG_PATTERN.match(slug or ""):
        raise DocumentValidationError(
            str(kind),
            [{"loc": ["slug"], "msg": f"invalid slug {slug!r}", "type": "value_error"}],
        )
    return slug


def _decode(model: Any, data: Any, path: str) -> Any:
    try:
        if isinstance(model, TypeAdapter):
            return model.validate_python(data)
        return model.model_validate(data)
    except ValidationError as e:
        raise MalformedDocumentError(path, str(e)) from e


async def _skip_malformed(load: Awaitable[_T], path: str) -> _T | None:
    """Await one document of a listing; an undecodable file is left out."""
    try:
        return await load
    except MalformedDocumentError as e:
        logger.warning(
            "Skipping undecodable document in listing",
            extra={"file_path": path, "error": e.message},
        )
        return None


# =============================================================================
# Answers
# =============================================================================


def answer_paths(answer_id: str) -> tuple[str, str]:
    """Metadata and long-form paths of an answer."""
    return f"{ANSWERS_DIR}/{answer_id}.yml", f"{ANSWERS_DIR}/{answer_id}.md"


class AnswerStore:
    """Answers: one YAML metadata file plus one sibling markdown file.

    The two files are one logical record. A metadata file without its
    markdown sibling reads back with an empty ``long_answer_md``; a write
    always proposes both files.
    """

    def __init__(self, client: GitHubRepoClient) -> None:
        self._client = client

    async def _load(self, answer_id: str, has_body: bool = True) -> Answer | None:
        meta_path, body_path = answer_paths(answer_id)
        raw = await self._client.read_file(meta_path)
        if raw is None:
            return None
        data = load_yaml(raw, meta_path)
        if not isinstance(data, dict):
            raise MalformedDocumentError(meta_path, "expected a mapping")
        body = await self._client.read_file(body_path) if has_body else None
        data["long_answer_md"] = body or ""
        return _decode(Answer, data, meta_path)

    async def list(self) -> list[Answer]:
        names = await self._client.list_directory(ANSWERS_DIR)
        listed = set(names)
        ids = [name[: -len(".yml")] for name in names if name.endswith(".yml")]
        loaded = await asyncio.gather(
            *(
                _skip_malformed(
                    self._load(answer_id, f"{answer_id}.md" in listed),
                    answer_paths(answer_id)[0],
                )
                for answer_id in ids
            )
        )
        return [answer for answer in loaded if answer is not None]

    async def get(self, answer_id: str) -> Answer | None:
        _require_segment(DocumentKind.ANSWER, answer_id)
        return await self._load(answer_id)

    async def upsert(self, answer: Answer) -> ProposalResult:
        answer_id = _require_segment(DocumentKind.ANSWER, answer.id)
        meta_path, body_path = answer_paths(answer_id)
        is_new = await self._client.read_file(meta_path) is None
        verb = "Add" if is_new else "Update"

        request = ProposalRequest(
            kind=str(DocumentKind.ANSWER),
            identity=answer_id,
            files=(
                FileChange(
                    meta_path,
                    dump_yaml(answer.metadata()),
                    f"{verb} answer: {answer.title}",
                ),
                FileChange(
                    body_path,
                    answer.long_answer_md,
                    f"{verb} long answer: {answer.title}",
                ),
            ),
            title=f"{verb} answer: {answer.title}",
            body=(
                f"{PR_BODY_HEADER}\n\n"
                f"**Answer ID:** `{answer_id}`\n"
                f"**Title:** {answer.title}\n\n"
                "Merge to publish this answer to the library."
            ),
        )
        return await self._client.propose(request)


# =============================================================================
# Evidence
# =============================================================================


def splice_evidence(collection: list[Evidence], item: Evidence) -> list[Evidence]:
    """Replace the entry with ``item.id`` in place, or append ``item``."""
    updated = list(collection)
    for index, existing in enumerate(updated):
        if existing.id == item.id:
            updated[index] = item
            return updated
    updated.append(item)
    return updated


class EvidenceStore:
    """Evidence items, all stored in one collection file."""

    def __init__(self, client: GitHubRepoClient) -> None:
        self._client = client

    async def list(self) -> list[Evidence]:
        raw = await self._client.read_file(EVIDENCE_PATH)
        if raw is None:
            return []
        data = load_yaml(raw, EVIDENCE_PATH)
        if data is None:
            return []
        if not isinstance(data, list):
            raise MalformedDocumentError(EVIDENCE_PATH, "expected a list")
        return _decode(EVIDENCE_LIST_ADAPTER, data, EVIDENCE_PATH)

    async def get(self, evidence_id: str) -> Evidence | None:
        for item in await self.list():
            if item.id == evidence_id:
                return item
        return None

    async def upsert(self, item: Evidence) -> ProposalResult:
        identity = _require_segment(DocumentKind.EVIDENCE, item.id)
        updated = splice_evidence(await self.list(), item)
        documents = [entry.model_dump(mode="json") for entry in updated]

        request = ProposalRequest(
            kind=str(DocumentKind.EVIDENCE),
            identity=identity,
            files=(
                FileChange(
                    EVIDENCE_PATH,
                    dump_yaml(documents),
                    f"Update evidence: {item.title}",
                ),
            ),
            title=f"Update evidence: {item.title}",
            body=(
                f"{PR_BODY_HEADER}\n\n"
                f"**Evidence ID:** `{identity}`\n"
                f"**Title:** {item.title}\n\n"
                "Merge to publish evidence update."
            ),
        )
        return await self._client.propose(request)


# =============================================================================
# Questionnaires
# =============================================================================


def questionnaire_path(slug: str) -> str:
    return f"{QUESTIONNAIRES_DIR}/{slug}/{QUESTIONNAIRE_FILE}"


def mapping_path(slug: str) -> str:
    return f"{QUESTIONNAIRES_DIR}/{slug}/{MAPPING_FILE}"


class QuestionnaireStore:
    """Imported questionnaires, one directory per slug.

    A questionnaire is never partially updated; every write replaces the
    whole record.
    """

    def __init__(self, client: GitHubRepoClient) -> None:
        self._client = client

    async def _load(self, slug: str) -> Questionnaire | None:
        path = questionnaire_path(slug)
        raw = await self._client.read_file(path)
        if raw is None:
            return None
        return _decode(Questionnaire, load_json(raw, path), path)

    async def list(self) -> list[Questionnaire]:
        slugs = await self._client.list_directory(QUESTIONNAIRES_DIR)
        loaded = await asyncio.gather(
            *(
                _skip_malformed(self._load(slug), questionnaire_path(slug))
                for slug in slugs
            )
        )
        return [questionnaire for questionnaire in loaded if questionnaire is not None]

    async def get(self, slug: str) -> Questionnaire | None:
        _require_slug(DocumentKind.QUESTIONNAIRE, slug)
        return await self._load(slug)

    async def upsert(self, questionnaire: Questionnaire) -> ProposalResult:
        slug = _require_slug(DocumentKind.QUESTIONNAIRE, questionnaire.slug)
        request = ProposalRequest(
            kind=str(DocumentKind.QUESTIONNAIRE),
            identity=slug,
            files=(
                FileChange(
                    questionnaire_path(slug),
                    dump_json(questionnaire.model_dump(mode="json")),
                    f"Import questionnaire: {slug}",
                ),
            ),
            title=f"Import questionnaire: {slug}",
            body=(
                f"{PR_BODY_HEADER}\n\n"
                f"**Questionnaire:** `{slug}`\n"
                f"**Questions:** {len(questionnaire.questions)}\n\n"
                "Merge to add this questionnaire to the vault."
            ),
        )
        return await self._client.propose(request)


# =============================================================================
# Mappings
# =============================================================================


class MappingStore:
    """Question-to-answer mappings, one collection per questionnaire slug.

    An entry with ``answer_id: null`` is kept as an explicit "unmapped"
    marker and is distinct from a question id with no entry.
    """

    def __init__(self, client: GitHubRepoClient) -> None:
        self._client = client

    async def _load(self, slug: str) -> Mapping | None:
        path = mapping_path(slug)
        raw = await self._client.read_file(path)
        if raw is None:
            return None
        data = load_yaml(raw, path)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise MalformedDocumentError(path, "expected a mapping")
        return _decode(MAPPING_ADAPTER, data, path)

    async def get(self, slug: str) -> Mapping | None:
        """Mapping of a questionnaire; None when no mapping file exists."""
        _require_slug(DocumentKind.MAPPING, slug)
        return await self._load(slug)

    async def list(self) -> dict[str, Mapping]:
        """Every stored mapping, keyed by questionnaire slug."""
        slugs = await self._client.list_directory(QUESTIONNAIRES_DIR)
        loaded = await asyncio.gather(
            *(_skip_malformed(self._load(slug), mapping_path(slug)) for slug in slugs)
        )
        return {
            slug: mapping
            for slug, mapping in zip(slugs, loaded, strict=True)
            if mapping is not None
        }

    async def upsert(self, slug: str, mapping: Mapping) -> ProposalResult:
        slug = _require_slug(DocumentKind.MAPPING, slug)
        request = ProposalRequest(
            kind=str(DocumentKind.MAPPING),
            identity=slug,
            files=(
                FileChange(
                    mapping_path(slug),
                    dump_yaml(mapping_to_document(mapping)),
                    f"Update mapping for questionnaire: {slug}",
                ),
            ),
            title=f"Update mapping: {slug}",
            body=(
                f"{PR_BODY_HEADER}\n\n"
                f"**Questionnaire:** `{slug}`\n\n"
                "Mapping update - merge to persist."
            ),
        )
        return await self._client.propose(request)


class VaultStore:
    """All four document stores over one repository client."""

    def __init__(self, client: GitHubRepoClient) -> None:
        self.client = client
        self.answers = AnswerStore(client)
        self.evidence = EvidenceStore(client)
        self.questionnaires = QuestionnaireStore(client)
        self.mappings = MappingStore(client)


__all__ = [
    "ANSWERS_DIR",
    "AnswerStore",
    "DocumentKind",
    "EVIDENCE_PATH",
    "EvidenceStore",
    "MAPPING_FILE",
    "MappingStore",
    "PR_BODY_HEADER",
    "QUESTIONNAIRES_DIR",
    "QUESTIONNAIRE_FILE",
    "QuestionnaireStore",
    "VaultStore",
    "answer_paths",
    "mapping_path",
    "questionnaire_path",
    "splice_evidence",
]
