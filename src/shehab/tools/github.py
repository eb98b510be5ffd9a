"""GitHub repository tools."""

from __future__ import annotations

import base64
from typing import Any

import httpx
from pydantic import BaseModel, Field

from shehab.tools.registry import ToolDefinition

GITHUB_API_BASE = "https://api.github.com"
MAX_FILE_CHARS = 3000
MAX_PR_SUMMARY_CHARS = 200


class EmptyInput(BaseModel):
    """No arguments."""


class ReadFileInput(BaseModel):
    path: str = Field(..., description="Path to the file in the repo")


class CreateFileInput(BaseModel):
    path: str = Field(..., description="Path for the new file")
    content: str = Field(..., description="Content of the file")
    message: str = Field(..., description="Commit message")


class GitHubRepo:
    """Thin async client for one repository."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        owner: str | None,
        repo: str | None,
        token: str | None = None,
        api_base: str = GITHUB_API_BASE,
    ) -> None:
        self._client = client
        self._owner = owner
        self._repo = repo
        self._api_base = api_base.rstrip("/")
        self._headers = {"Accept": "application/vnd.github+json"}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    @property
    def configured(self) -> bool:
        return bool(self._owner and self._repo)

    def _url(self, suffix: str) -> str:
        return f"{self._api_base}/repos/{self._owner}/{self._repo}/{suffix}"

    async def _get(self, suffix: str, **params: Any) -> Any:
        response = await self._client.get(self._url(suffix), headers=self._headers, params=params or None)
        response.raise_for_status()
        return response.json()

    async def pull_requests(self) -> str:
        if not self.configured:
            return "error: GitHub repository is not configured"
        try:
            data = await self._get("pulls", state="open")
        except (httpx.HTTPError, ValueError) as exc:
            return f"GitHub Error: {exc!s}"
        if not data:
            return "No open PRs."
        entries = []
        for pr in data:
            body = " ".join((pr.get("body") or "").split())
            summary = body[:MAX_PR_SUMMARY_CHARS] if body else "No description."
            author = (pr.get("user") or {}).get("login", "unknown")
            entries.append(f"- [PR #{pr['number']}] {pr['title']} (Author: {author})\n  Summary: {summary}")
        return "\n\n".join(entries)

    async def issues(self) -> str:
        if not self.configured:
            return "error: GitHub repository is not configured"
        try:
            data = await self._get("issues", state="open")
        except (httpx.HTTPError, ValueError) as exc:
            return f"Could not fetch issues: {exc!s}"
        real_issues = [issue for issue in data if "pull_request" not in issue]
        if not real_issues:
            return "No open Issues."
        return "\n".join(f"- [Issue #{issue['number']}] {issue['title']}" for issue in real_issues)

    async def file_tree(self) -> str:
        if not self.configured:
            return "error: GitHub repository is not configured"
        try:
            data = await self._get("contents/")
        except (httpx.HTTPError, ValueError) as exc:
            return f"Could not read file tree: {exc!s}"
        if not isinstance(data, list) or not data:
            return "Repository is empty."
        return "\n".join(f" - {entry['type']}: {entry['name']}" for entry in data)

    async def read_file(self, path: str) -> str:
        if not self.configured:
            return "error: GitHub repository is not configured"
        try:
            data = await self._get(f"contents/{path.lstrip('/')}")
        except (httpx.HTTPError, ValueError) as exc:
            return f"Could not read file: {path}. Error: {exc!s}"
        if isinstance(data, list):
            return "Error: Path points to a directory, not a file."
        try:
            content = base64.b64decode(data.get("content", "")).decode("utf-8", errors="replace")
        except ValueError as exc:
            return f"Could not decode file: {path}. Error: {exc!s}"
        if len(content) > MAX_FILE_CHARS:
            return content[:MAX_FILE_CHARS] + "... (truncated)"
        return content

    async def create_file(self, path: str, content: str, message: str) -> str:
        if not self.configured:
            return "error: GitHub repository is not configured"
        payload = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        try:
            response = await self._client.put(
                self._url(f"contents/{path.lstrip('/')}"), headers=self._headers, json=payload
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            return f"Failed to create file: {path}. Error: {exc!s}"
        return f"✅ File created successfully: {path}"


def create_github_tools(repo: GitHubRepo) -> dict[str, ToolDefinition]:
    """Build the GitHub tool definitions keyed by name."""

    async def _read(params: ReadFileInput) -> str:
        return await repo.read_file(params.path)

    async def _create(params: CreateFileInput) -> str:
        return await repo.create_file(params.path, params.content, params.message)

    return {
        "get_prs": ToolDefinition.from_model(
            EmptyInput,
            lambda _params: repo.pull_requests(),
            name="get_prs",
            description="Get active Pull Requests from GitHub",
            notice="👀 Checking PRs...",
        ),
        "get_issues": ToolDefinition.from_model(
            EmptyInput,
            lambda _params: repo.issues(),
            name="get_issues",
            description="Get Open Issues from GitHub (excluding PRs)",
            notice="📋 Checking Issue Backlog...",
        ),
        "get_file_tree": ToolDefinition.from_model(
            EmptyInput,
            lambda _params: repo.file_tree(),
            name="get_file_tree",
            description="List files in the repo root directory",
            notice="📂 Scanning file structure...",
        ),
        "read_file": ToolDefinition.from_model(
            ReadFileInput,
            _read,
            name="read_file",
            description="Read a file's content from the GitHub repository",
            notice="📖 Reading file...",
        ),
        "create_file": ToolDefinition.from_model(
            CreateFileInput,
            _create,
            name="create_file",
            description="Create a new file in the GitHub repository",
            notice="🛠️ Creating file...",
        ),
    }
