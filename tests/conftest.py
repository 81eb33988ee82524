# SPDX-FileCopyrightText: 2025 OmniNode.ai Inc.
# SPDX-License-Identifier: MIT
"""Shared fixtures for AnswerVault tests.

Provides:
- An RSA key pair generated once per session for license tests
- Settings pointing at a fake GitHub API host
- FakeGitHub: an in-memory GitHub REST double served via httpx.MockTransport
  that records every request so tests can assert remote call counts
"""

from __future__ import annotations

import base64
import hashlib
import json
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
from pydantic import SecretStr

from answervault.config import AnswerVaultSettings
from answervault.license import KeyPair, generate_keypair, mint_license
from answervault.storage import GitHubRepoClient, RemoteFileCache
from answervault.storage.github_client import RAW_MEDIA_TYPE

API_URL = "https://api.github.test"
REPO = "acme/vault"


def blob_sha(content: str) -> str:
    return hashlib.sha1(content.encode("utf-8")).hexdigest()


@dataclass
class RecordedRequest:
    method: str
    path: str
    params: dict[str, str]
    body: dict[str, Any] | None


@dataclass
class FakeGitHub:
    """In-memory GitHub repository speaking the subset of the REST API the
    client uses. Files live per branch; new branches copy their base."""

    owner: str = "acme"
    repo: str = "vault"
    default_branch: str = "main"
    branches: dict[str, dict[str, str]] = field(default_factory=dict)
    heads: dict[str, str] = field(default_factory=dict)
    pulls: list[dict[str, Any]] = field(default_factory=list)
    issues: list[dict[str, Any]] = field(default_factory=list)
    requests: list[RecordedRequest] = field(default_factory=list)
    # (method, path suffix) -> status code forced for matching requests
    failures: dict[tuple[str, str], int] = field(default_factory=dict)
    # path -> content written behind the client's back just before a PUT
    concurrent_writes: dict[str, str] = field(default_factory=dict)
    # paths served like files above the contents API inline limit
    large_files: set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.branches.setdefault(self.default_branch, {})
        self.heads.setdefault(self.default_branch, "0" * 40)

    # -- seeding helpers ----------------------------------------------------

    def seed(self, path: str, content: str, branch: str | None = None) -> None:
        self.branches[branch or self.default_branch][path] = content

    def file(self, path: str, branch: str) -> str | None:
        return self.branches.get(branch, {}).get(path)

    def calls(self, method: str | None = None, path: str | None = None) -> list[RecordedRequest]:
        return [
            r
            for r in self.requests
            if (method is None or r.method == method)
            and (path is None or r.path.endswith(path))
        ]

    # -- transport ----------------------------------------------------------

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        path = request.url.path
        params = dict(request.url.params)
        self.requests.append(RecordedRequest(request.method, path, params, body))

        for (method, suffix), status in self.failures.items():
            if request.method == method and path.endswith(suffix):
                return httpx.Response(status, json={"message": "forced failure"})

        prefix = f"/repos/{self.owner}/{self.repo}"
        if request.method == "GET" and path == "/user/repos":
            return self._user_repos()
        if not path.startswith(prefix):
            return httpx.Response(404, json={"message": "Not Found"})
        rest = path[len(prefix):]

        if request.method == "GET" and rest == "":
            return httpx.Response(200, json={"default_branch": self.default_branch})
        if rest.startswith("/contents/"):
            target = rest[len("/contents/"):]
            if request.method == "GET":
                return self._get_contents(
                    target,
                    params.get("ref", self.default_branch),
                    raw=request.headers.get("accept") == RAW_MEDIA_TYPE,
                )
            if request.method == "PUT":
                return self._put_contents(target, body or {})
        if request.method == "GET" and rest.startswith("/git/ref/heads/"):
            branch = rest[len("/git/ref/heads/"):]
            if branch not in self.heads:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, json={"object": {"sha": self.heads[branch]}})
        if request.method == "POST" and rest == "/git/refs":
            return self._create_ref(body or {})
        if request.method == "POST" and rest == "/pulls":
            number = len(self.pulls) + 1
            self.pulls.append({**(body or {}), "number": number})
            return httpx.Response(
                201,
                json={
                    "number": number,
                    "html_url": f"https://github.com/{self.owner}/{self.repo}/pull/{number}",
                },
            )
        if rest == "/issues":
            if request.method == "POST":
                return self._create_issue(body or {})
            if request.method == "GET":
                return self._list_issues(params)
        if request.method == "PATCH" and rest.startswith("/issues/"):
            return self._update_issue(int(rest[len("/issues/"):]), body or {})
        return httpx.Response(404, json={"message": "Not Found"})

    def _get_contents(self, target: str, ref: str, raw: bool = False) -> httpx.Response:
        files = self.branches.get(ref)
        if files is None:
            return httpx.Response(404, json={"message": "No commit found for the ref"})
        if target in files:
            content = files[target]
            if raw:
                return httpx.Response(200, content=content.encode("utf-8"))
            if target in self.large_files:
                return httpx.Response(
                    200,
                    json={
                        "type": "file",
                        "name": target.rsplit("/", 1)[-1],
                        "path": target,
                        "sha": blob_sha(content),
                        "size": len(content.encode("utf-8")),
                        "encoding": "none",
                        "content": "",
                    },
                )
            return httpx.Response(
                200,
                json={
                    "type": "file",
                    "name": target.rsplit("/", 1)[-1],
                    "path": target,
                    "sha": blob_sha(content),
                    "encoding": "base64",
                    "content": base64.encodebytes(content.encode("utf-8")).decode("ascii"),
                },
            )
        prefix = f"{target}/" if target else ""
        names: dict[str, str] = {}
        for path in files:
            if path.startswith(prefix):
                head, _, tail = path[len(prefix):].partition("/")
                names[head] = "dir" if tail else "file"
        if not names:
            return httpx.Response(404, json={"message": "Not Found"})
        return httpx.Response(
            200,
            json=[{"name": name, "type": kind} for name, kind in sorted(names.items())],
        )

    def _put_contents(self, target: str, body: dict[str, Any]) -> httpx.Response:
        branch = body.get("branch", self.default_branch)
        files = self.branches.get(branch)
        if files is None:
            return httpx.Response(404, json={"message": "Branch not found"})
        if target in self.concurrent_writes:
            files[target] = self.concurrent_writes.pop(target)
        current = files.get(target)
        sent_sha = body.get("sha")
        if current is not None and sent_sha is None:
            return httpx.Response(422, json={"message": '"sha" wasn\'t supplied.'})
        if current is not None and sent_sha != blob_sha(current):
            return httpx.Response(409, json={"message": f"{target} does not match {sent_sha}"})
        content = base64.b64decode(body["content"]).decode("utf-8")
        files[target] = content
        self.heads[branch] = blob_sha(branch + target + content)
        return httpx.Response(
            201 if current is None else 200,
            json={"content": {"path": target, "sha": blob_sha(content)}},
        )

    def _create_ref(self, body: dict[str, Any]) -> httpx.Response:
        ref = body["ref"]
        branch = ref[len("refs/heads/"):]
        if branch in self.heads:
            return httpx.Response(422, json={"message": "Reference already exists"})
        base = next(
            (name for name, sha in self.heads.items() if sha == body["sha"]),
            self.default_branch,
        )
        self.branches[branch] = dict(self.branches[base])
        self.heads[branch] = body["sha"]
        return httpx.Response(201, json={"ref": ref, "object": {"sha": body["sha"]}})

    def _issue_json(self, issue: dict[str, Any]) -> dict[str, Any]:
        return {
            **issue,
            "html_url": f"https://github.com/{self.owner}/{self.repo}/issues/{issue['number']}",
        }

    def _create_issue(self, body: dict[str, Any]) -> httpx.Response:
        issue = {**body, "number": len(self.issues) + 1, "state": "open"}
        issue.setdefault("labels", [])
        self.issues.append(issue)
        return httpx.Response(201, json=self._issue_json(issue))

    def _list_issues(self, params: dict[str, str]) -> httpx.Response:
        state = params.get("state", "open")
        label = params.get("labels")
        matching = [
            self._issue_json(issue)
            for issue in reversed(self.issues)
            if issue["state"] == state and (label is None or label in issue["labels"])
        ]
        return httpx.Response(200, json=matching[: int(params.get("per_page", 30))])

    def _update_issue(self, number: int, body: dict[str, Any]) -> httpx.Response:
        if not 0 < number <= len(self.issues):
            return httpx.Response(404, json={"message": "Not Found"})
        issue = self.issues[number - 1]
        issue.update(body)
        return httpx.Response(200, json=self._issue_json(issue))

    def _user_repos(self) -> httpx.Response:
        return httpx.Response(
            200,
            json=[
                {
                    "owner": {"login": self.owner},
                    "name": self.repo,
                    "full_name": f"{self.owner}/{self.repo}",
                    "private": True,
                    "default_branch": self.default_branch,
                }
            ],
        )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def rsa_keys() -> KeyPair:
    """One throwaway signing key pair for the whole session."""
    return generate_keypair()


@pytest.fixture(scope="session")
def other_rsa_keys() -> KeyPair:
    return generate_keypair()


@pytest.fixture
def make_token(rsa_keys: KeyPair):
    """Factory minting tokens signed with the session key."""

    def _make(
        allowed_repo: str = "*",
        expiry: int | None = None,
        customer_name: str = "Acme Corp",
        issued_at: int = 1_700_000_000,
    ) -> str:
        return mint_license(
            rsa_keys.private_pem,
            customer_name,
            allowed_repo,
            expiry=expiry,
            issued_at=issued_at,
        )

    return _make


@pytest.fixture
def settings(rsa_keys: KeyPair) -> AnswerVaultSettings:
    """Restricted-mode settings: public key configured, no license."""
    return AnswerVaultSettings(
        public_key=rsa_keys.public_pem,
        license_key=None,
        github_api_url=API_URL,
        request_timeout_seconds=5.0,
    )


@pytest.fixture
def licensed_settings(settings: AnswerVaultSettings, make_token) -> AnswerVaultSettings:
    """Open-mode settings with a wildcard license."""
    return settings.model_copy(update={"license_key": SecretStr(make_token("*"))})


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def cache() -> RemoteFileCache:
    return RemoteFileCache(ttl_seconds=300)


@pytest.fixture
def client(
    fake_github: FakeGitHub,
    settings: AnswerVaultSettings,
    cache: RemoteFileCache,
) -> GitHubRepoClient:
    return GitHubRepoClient(
        "test-token",
        REPO,
        settings=settings,
        cache=cache,
        transport=fake_github.transport,
    )
