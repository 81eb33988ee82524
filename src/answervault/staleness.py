# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""Staleness report for answers and evidence.

An answer is stale once ``last_reviewed`` is more than ``answer_days`` in
the past; evidence once ``last_updated`` is more than ``evidence_days`` in
the past. ``days_stale`` counts the days beyond the threshold. Records with
a missing or unparseable date are left out of the report.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from answervault.models import Answer, Evidence

if TYPE_CHECKING:
    from answervault.storage.github_client import GitHubRepoClient

logger = logging.getLogger(__name__)

STALE_ISSUE_LABEL = "answervault-stale"


class StaleAnswer(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    last_reviewed: str
    days_stale: int


class StaleEvidence(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    last_updated: str
    days_stale: int


class StaleReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    stale_answers: list[StaleAnswer]
    stale_evidence: list[StaleEvidence]
    generated_at: str  # ISO-8601 UTC
    answer_threshold_days: int
    evidence_threshold_days: int

    @property
    def is_empty(self) -> bool:
        return not self.stale_answers and not self.stale_evidence


def _days_since(value: str, today: date) -> int | None:
    try:
        return (today - date.fromisoformat(value)).days
    except (TypeError, ValueError):
        return None


def compute_staleness(
    answers: Iterable[Answer],
    evidence: Iterable[Evidence],
    answer_days: int = 180,
    evidence_days: int = 365,
    now: datetime | None = None,
) -> StaleReport:
    """Build a report of overdue records, most overdue first."""
    current = now or datetime.now(UTC)
    today = current.date()

    stale_answers = []
    for answer in answers:
        age = _days_since(answer.last_reviewed, today)
        if age is not None and age - answer_days > 0:
            stale_answers.append(
                StaleAnswer(
                    id=answer.id,
                    title=answer.title,
                    last_reviewed=answer.last_reviewed,
                    days_stale=age - answer_days,
                )
            )

    stale_evidence = []
    for item in evidence:
        age = _days_since(item.last_updated, today)
        if age is not None and age - evidence_days > 0:
            stale_evidence.append(
                StaleEvidence(
                    id=item.id,
                    title=item.title,
                    last_updated=item.last_updated,
                    days_stale=age - evidence_days,
                )
            )

    stale_answers.sort(key=lambda a: a.days_stale, reverse=True)
    stale_evidence.sort(key=lambda e: e.days_stale, reverse=True)
    return StaleReport(
        stale_answers=stale_answers,
        stale_evidence=stale_evidence,
        generated_at=current.isoformat(),
        answer_threshold_days=answer_days,
        evidence_threshold_days=evidence_days,
    )


def stale_issue_title(report: StaleReport) -> str:
    return f"[AnswerVault] Staleness Report - {report.generated_at[:10]}"


def render_stale_issue(report: StaleReport) -> str:
    """Markdown body of the staleness issue."""
    lines = [
        "## AnswerVault Staleness Report",
        "",
        f"Generated: {report.generated_at[:10]}",
        f"Thresholds: Answers >{report.answer_threshold_days} days, "
        f"Evidence >{report.evidence_threshold_days} days",
        "",
    ]
    if report.stale_answers:
        lines += [
            f"### Stale Answers ({len(report.stale_answers)})",
            "",
            "| ID | Title | Last Reviewed | Days Overdue |",
            "|----|-------|---------------|-------------|",
        ]
        lines += [
            f"| `{a.id}` | {a.title} | {a.last_reviewed} | {a.days_stale}d |"
            for a in report.stale_answers
        ]
        lines.append("")
    if report.stale_evidence:
        lines += [
            f"### Stale Evidence ({len(report.stale_evidence)})",
            "",
            "| ID | Title | Last Updated | Days Overdue |",
            "|----|-------|--------------|-------------|",
        ]
        lines += [
            f"| `{e.id}` | {e.title} | {e.last_updated} | {e.days_stale}d |"
            for e in report.stale_evidence
        ]
        lines.append("")
    lines.append("---")
    lines.append(
        "*Close this issue after all items have been reviewed and "
        "`last_reviewed` / `last_updated` dates updated.*"
    )
    return "\n".join(lines)


async def publish_stale_issue(client: GitHubRepoClient, report: StaleReport) -> str | None:
    """Publish the report as the labelled staleness issue.

    The newest open issue carrying ``STALE_ISSUE_LABEL`` is rewritten in
    place; a new one is opened only when none is open. Returns the issue URL,
    or None when nothing is stale.
    """
    if report.is_empty:
        logger.info("No stale items found", extra={"repo": client.full_name})
        return None
    title = stale_issue_title(report)
    body = render_stale_issue(report)
    existing = await client.list_open_issues(STALE_ISSUE_LABEL)
    if existing:
        url = await client.update_issue(existing[0].number, title, body)
        action = "Updated staleness issue"
    else:
        url = await client.open_issue(title, body, labels=[STALE_ISSUE_LABEL])
        action = "Opened staleness issue"
    logger.info(
        action,
        extra={
            "repo": client.full_name,
            "url": url,
            "stale_answers": len(report.stale_answers),
            "stale_evidence": len(report.stale_evidence),
        },
    )
    return url


__all__ = [
    "STALE_ISSUE_LABEL",
    "StaleAnswer",
    "StaleEvidence",
    "StaleReport",
    "compute_staleness",
    "publish_stale_issue",
    "render_stale_issue",
    "stale_issue_title",
]
