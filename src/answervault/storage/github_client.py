# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT

"""GitHub repository client for the vault.

Wraps the GitHub REST API for a single target repository:

- read a file or list a directory (through the shared RemoteFileCache)
- resolve the default branch and create proposal branches
- create or update a file on a branch, guarded by the file's blob sha
- open pull requests; open, find and update issues

Failure handling:
    A 404 on a read is a normal outcome (None or an empty listing). Every
    other failure is raised as a named ``VaultError`` subclass and aborts
    the current operation. Nothing is retried here. Each call is bounded by
    the configured timeout, and cancelling the awaiting task cancels the
    outbound request.

Example:
    >>> async with GitHubRepoClient(token, "acme/trust-vault") as client:
    ...     raw = await client.read_file("evidence/evidence.yml")
    ...     pr = await client.propose(request)
"""

from __future__ import annotations

import base64
import logging
import posixpath
from typing import Any
from urllib.parse import quote

import httpx

from answervault.config import AnswerVaultSettings, get_settings
from answervault.lib.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ProposalAbortedError,
    RateLimitedError,
    RemoteApiError,
    RemoteError,
    RemoteUnavailableError,
    UnauthorizedError,
    VaultError,
)
from answervault.models import GitHubRepo, IssueRef, ProposalResult
from answervault.storage.cache import (
    RemoteFileCache,
    file_key,
    get_shared_cache,
    listing_key,
)
from answervault.storage.proposal import (
    ProposalProgress,
    ProposalRequest,
    ProposalStep,
    proposal_branch_name,
)

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"
RAW_MEDIA_TYPE = "application/vnd.github.raw+json"


def parse_repo(full_name: str) -> tuple[str, str]:
    """Split "owner/name" into its parts.

    Raises:
        ValueError: If the name is not exactly two non-empty segments.
    """
    owner, sep, repo = full_name.strip().partition("/")
    if not sep or not owner or not repo or "/" in repo:
        raise ValueError(f"Invalid repo format (expected owner/name): {full_name!r}")
    return owner, repo


def _parent_directories(path: str) -> list[str]:
    parents = []
    current = posixpath.dirname(path)
    while current:
        parents.append(current)
        current = posixpath.dirname(current)
    parents.append("")
    return parents


def _raise_for_status(
    response: httpx.Response,
    operation: str,
    conflict_statuses: tuple[int, ...] = (409,),
) -> None:
    status = response.status_code
    if status < 400:
        return

    try:
        detail = response.json().get("message", "")
    except (ValueError, AttributeError):
        detail = response.text[:200]
    message = f"{operation} failed with HTTP {status}" + (f": {detail}" if detail else "")
    details = {"operation": operation, "status_code": status}

    error_cls: type[RemoteError]
    if status == 401:
        error_cls = UnauthorizedError
    elif status == 403:
        if response.headers.get("x-ratelimit-remaining") == "0":
            error_cls = RateLimitedError
        else:
            error_cls = ForbiddenError
    elif status == 404:
        error_cls = NotFoundError
    elif status in conflict_statuses:
        error_cls = ConflictError
    elif status == 429:
        error_cls = RateLimitedError
    elif status >= 500:
        error_cls = RemoteUnavailableError
    else:
        error_cls = RemoteApiError
    raise error_cls(message, status_code=status, details=details)


class GitHubRepoClient:
    """Async client bound to one repository.

    The client keeps no state between calls apart from the shared cache,
    so one instance can serve many concurrent operations.
    """

    def __init__(
        self,
        token: str,
        repo_full_name: str,
        *,
        settings: AnswerVaultSettings | None = None,
        cache: RemoteFileCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            token: Per-session bearer credential.
            repo_full_name: Target repository as "owner/name".
            settings: Vault settings (defaults to the process settings).
            cache: Read cache (defaults to the process-wide cache).
            transport: Optional httpx transport, used by tests.
        """
        self._settings = settings or get_settings()
        self.owner, self.repo = parse_repo(repo_full_name)
        self._cache = cache if cache is not None else get_shared_cache()

        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "User-Agent": "answervault",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=self._settings.github_api_url.rstrip("/"),
            headers=headers,
            timeout=self._settings.request_timeout_seconds,
            transport=transport,
        )

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def cache(self) -> RemoteFileCache:
        return self._cache

    async def __aenter__(self) -> GitHubRepoClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(
        self,
        method: str,
        url: str,
        operation: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        conflict_statuses: tuple[int, ...] = (409,),
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method, url, params=params, json=json, headers=headers
            )
        except httpx.TimeoutException as e:
            raise RemoteUnavailableError(
                f"{operation} timed out after {self._settings.request_timeout_seconds}s",
                details={"operation": operation},
            ) from e
        except httpx.TransportError as e:
            raise RemoteUnavailableError(
                f"{operation} failed: {e}", details={"operation": operation}
            ) from e
        _raise_for_status(response, operation, conflict_statuses)
        return response

    def _repo_url(self, suffix: str) -> str:
        return f"/repos/{self.owner}/{self.repo}/{suffix}"

    def _contents_url(self, path: str) -> str:
        return self._repo_url(f"contents/{quote(path.strip('/'), safe='/')}")

    # =========================================================================
    # Read path
    # =========================================================================

    async def read_file(self, path: str) -> str | None:
        """Read a UTF-8 file from the default branch.

        Returns:
            The file content, or None if the path does not exist or is not
            a regular file.

        Raises:
            VaultError: Any failure other than "not found".
        """
        key = file_key(self.full_name, path)
        cached = self._cache.get(key)
        if isinstance(cached, str):
            return cached

        try:
            response = await self._request("GET", self._contents_url(path), "read file")
        except NotFoundError:
            return None

        data = response.json()
        if isinstance(data, list) or data.get("type") != "file":
            return None
        if data.get("encoding") == "base64":
            content = base64.b64decode(data.get("content") or "").decode("utf-8")
        elif data.get("size", 0) == 0:
            content = ""
        else:
            # Above the inline limit the metadata carries no body
            content = await self._read_raw(path)
        self._cache.put(key, content)
        return content

    async def _read_raw(self, path: str) -> str:
        response = await self._request(
            "GET",
            self._contents_url(path),
            "read raw file",
            headers={"Accept": RAW_MEDIA_TYPE},
        )
        logger.debug(
            "Read file body via raw media type",
            extra={"repo": self.full_name, "file_path": path},
        )
        return response.content.decode("utf-8")

    async def get_file_sha(self, path: str, ref: str | None = None) -> str | None:
        """Current blob sha of a file, or None when it does not exist.

        Never cached: the sha is the optimistic-concurrency precondition.
        """
        params = {"ref": ref} if ref else None
        try:
            response = await self._request(
                "GET", self._contents_url(path), "read file sha", params=params
            )
        except NotFoundError:
            return None
        data = response.json()
        if isinstance(data, list):
            return None
        return data.get("sha")

    async def list_directory(self, path: str) -> list[str]:
        """Names of the entries in a directory; empty if it does not exist."""
        key = listing_key(self.full_name, path)
        cached = self._cache.get(key)
        if isinstance(cached, tuple):
            return list(cached)

        try:
            response = await self._request(
                "GET", self._contents_url(path), "list directory"
            )
        except NotFoundError:
            return []

        data = response.json()
        if not isinstance(data, list):
            return []
        names = tuple(entry["name"] for entry in data)
        self._cache.put(key, names)
        return list(names)

    async def get_default_branch(self) -> str:
        response = await self._request(
            "GET", f"/repos/{self.owner}/{self.repo}", "read repository"
        )
        return response.json()["default_branch"]

    async def list_user_repos(self) -> list[GitHubRepo]:
        """Repositories of the authenticated user, most recently updated first."""
        response = await self._request(
            "GET",
            "/user/repos",
            "list repositories",
            params={"sort": "updated", "per_page": 100, "type": "all"},
        )
        return [
            GitHubRepo(
                owner=item["owner"]["login"],
                name=item["name"],
                full_name=item["full_name"],
                private=item["private"],
                default_branch=item["default_branch"],
            )
            for item in response.json()
        ]

    # =========================================================================
    # Write path
    # =========================================================================

    async def create_branch(self, branch: str, from_branch: str) -> str:
        """Create ``branch`` at the current tip of ``from_branch``.

        Returns:
            The sha the new branch points at.
        """
        ref = await self._request(
            "GET",
            self._repo_url(f"git/ref/heads/{quote(from_branch, safe='/')}"),
            "read branch tip",
        )
        tip_sha = ref.json()["object"]["sha"]
        await self._request(
            "POST",
            self._repo_url("git/refs"),
            "create branch",
            json={"ref": f"refs/heads/{branch}", "sha": tip_sha},
        )
        logger.info(
            "Created proposal branch",
            extra={"repo": self.full_name, "branch": branch, "base": from_branch},
        )
        return tip_sha

    async def upsert_file(self, branch: str, path: str, content: str, message: str) -> None:
        """Create or update one file on ``branch``.

        The file's current sha on the branch is sent as a precondition; if
        the file changed in between, the API rejects the write and
        ConflictError is raised instead of overwriting.

        Raises:
            ConflictError: The precondition failed.
            VaultError: Any other remote failure.
        """
        existing_sha = await self.get_file_sha(path, ref=branch)
        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if existing_sha:
            body["sha"] = existing_sha

        # 422 is returned when a file appeared after its sha was read
        await self._request(
            "PUT",
            self._contents_url(path),
            "write file",
            json=body,
            conflict_statuses=(409, 422),
        )

        self._cache.invalidate(file_key(self.full_name, path))
        for directory in _parent_directories(path):
            self._cache.invalidate(listing_key(self.full_name, directory))
        logger.info(
            "Committed file",
            extra={"repo": self.full_name, "branch": branch, "file_path": path},
        )

    async def open_pull_request(
        self, branch: str, title: str, body: str, base: str
    ) -> ProposalResult:
        response = await self._request(
            "POST",
            self._repo_url("pulls"),
            "open pull request",
            json={"title": title, "body": body, "head": branch, "base": base},
        )
        data = response.json()
        return ProposalResult(url=data["html_url"], number=data["number"], branch=branch)

    async def open_issue(
        self, title: str, body: str, labels: list[str] | None = None
    ) -> str:
        """Open an issue and return its URL."""
        payload: dict[str, Any] = {"title": title, "body": body}
        if labels:
            payload["labels"] = labels
        response = await self._request(
            "POST", self._repo_url("issues"), "open issue", json=payload
        )
        return response.json()["html_url"]

    async def list_open_issues(self, label: str, limit: int = 5) -> list[IssueRef]:
        """Open issues carrying ``label``, newest first. Pull requests are skipped."""
        response = await self._request(
            "GET",
            self._repo_url("issues"),
            "list issues",
            params={"state": "open", "labels": label, "per_page": limit},
        )
        return [
            IssueRef(number=item["number"], url=item["html_url"], title=item["title"])
            for item in response.json()
            if "pull_request" not in item
        ]

    async def update_issue(self, number: int, title: str, body: str) -> str:
        """Replace an issue's title and body; returns its URL."""
        response = await self._request(
            "PATCH",
            self._repo_url(f"issues/{number}"),
            "update issue",
            json={"title": title, "body": body},
        )
        return response.json()["html_url"]

    async def propose(self, request: ProposalRequest) -> ProposalResult:
        """Run the proposal sequence for one document change.

        Steps: resolve the default branch, branch from its tip, commit every
        file, open a pull request back into the default branch.

        Raises:
            ProposalAbortedError: A step failed. Its ``cause`` is the first
                error and its ``progress`` shows what was left behind.
        """
        progress = ProposalProgress(
            branch=proposal_branch_name(
                self._settings.branch_prefix, request.kind, request.identity
            )
        )
        step = ProposalStep.RESOLVE_BASE
        try:
            progress.base_branch = await self.get_default_branch()
            logger.info(
                "Resolved base branch",
                extra={"repo": self.full_name, "base": progress.base_branch},
            )

            step = ProposalStep.CREATE_BRANCH
            await self.create_branch(progress.branch, progress.base_branch)
            progress.branch_created = True

            step = ProposalStep.COMMIT
            for change in request.files:
                await self.upsert_file(
                    progress.branch, change.path, change.content, change.message
                )
                progress.committed_paths.append(change.path)

            step = ProposalStep.OPEN_PULL_REQUEST
            result = await self.open_pull_request(
                progress.branch, request.title, request.body, base=progress.base_branch
            )
        except VaultError as e:
            logger.warning(
                "Proposal aborted",
                extra={
                    "repo": self.full_name,
                    "kind": request.kind,
                    "identity": request.identity,
                    "step": str(step),
                    "branch": progress.branch,
                    "committed_paths": list(progress.committed_paths),
                    "error_code": str(e.code),
                },
            )
            raise ProposalAbortedError(step, progress.snapshot(), e) from e

        logger.info(
            "Opened pull request",
            extra={
                "repo": self.full_name,
                "kind": request.kind,
                "identity": request.identity,
                "pr_number": result.number,
                "branch": result.branch,
            },
        )
        return result


__all__ = ["GITHUB_API_VERSION", "GitHubRepoClient", "parse_repo"]
