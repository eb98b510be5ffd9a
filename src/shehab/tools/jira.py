"""Jira ticket tools."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from shehab.tools.registry import ToolDefinition

MAX_TICKETS = 20
TICKET_FIELDS = "summary,status,assignee,created,updated"
JIRA_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"
STALE_STATUSES = '("Development", "In Progress")'


class CreateTicketInput(BaseModel):
    summary: str = Field(..., description="Summary/title of the task")
    description: str | None = Field(default=None, description="Optional task description")


class GetTicketsInput(BaseModel):
    stale_days: int | None = Field(
        default=None, description="Only tickets in progress and not updated for at least this many days"
    )


class JiraProject:
    """Creates and lists Task issues in one Jira Cloud project."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        host: str | None,
        email: str | None,
        api_token: str | None,
        project_key: str | None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._client = client
        self._clock = clock
        self._host = host
        self._auth = (email or "", api_token or "")
        self._project_key = project_key

    @property
    def configured(self) -> bool:
        return bool(self._host and self._project_key and all(self._auth))

    async def create_task(self, summary: str, description: str | None = None) -> str:
        if not self.configured:
            return "❌ Jira Error: Jira is not configured"

        fields: dict[str, object] = {
            "project": {"key": self._project_key},
            "summary": summary,
            "issuetype": {"name": "Task"},
        }
        if description:
            fields["description"] = {
                "type": "doc",
                "version": 1,
                "content": [{"type": "paragraph", "content": [{"type": "text", "text": description}]}],
            }

        try:
            response = await self._client.post(
                f"https://{self._host}/rest/api/3/issue",
                json={"fields": fields},
                auth=self._auth,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            key = response.json()["key"]
        except httpx.HTTPStatusError as exc:
            detail = _error_detail(exc.response)
            logger.warning("jira.create.error status={} detail={}", exc.response.status_code, detail)
            return f"❌ Jira Error: {detail}"
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            logger.warning("jira.create.error error={}", exc)
            return f"❌ Jira Error: {exc!s}"
        return f"✅ Ticket Created: {key} (https://{self._host}/browse/{key})"

    async def tickets(self, stale_days: int | None = None) -> str:
        if not self.configured:
            return "❌ Jira Error: Jira is not configured"

        if stale_days is None:
            jql = f"project = {self._project_key} AND status != Done ORDER BY created DESC"
        else:
            jql = f"project = {self._project_key} AND status in {STALE_STATUSES} ORDER BY updated ASC"
        try:
            response = await self._client.get(
                f"https://{self._host}/rest/api/3/search/jql",
                params={"jql": jql, "maxResults": MAX_TICKETS, "fields": TICKET_FIELDS},
                auth=self._auth,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            issues = response.json().get("issues") or []
        except httpx.HTTPStatusError as exc:
            detail = _error_detail(exc.response)
            logger.warning("jira.search.error status={} detail={}", exc.response.status_code, detail)
            return f"❌ Jira Error: {detail}"
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            logger.warning("jira.search.error error={}", exc)
            return f"❌ Jira Error: {exc!s}"

        lines = []
        for issue in issues:
            fields = issue.get("fields") or {}
            status = (fields.get("status") or {}).get("name", "Unknown")
            assignee = (fields.get("assignee") or {}).get("displayName", "Unassigned")
            line = f"- [{issue.get('key')}] {fields.get('summary', '')} ({status}, {assignee})"
            if stale_days is not None:
                days = self._days_since(fields.get("updated"))
                if days is None or days < stale_days:
                    continue
                line += f" - stale {days} days"
            lines.append(line)
        if not lines:
            return "No stale tickets." if stale_days is not None else "No open tickets."
        return "\n".join(lines)

    def _days_since(self, updated: Any) -> int | None:
        try:
            moment = datetime.strptime(str(updated), JIRA_TIME_FORMAT)
        except ValueError:
            return None
        return (self._clock() - moment).days


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or f"http {response.status_code}"
    if isinstance(data, dict):
        detail = data.get("errors") or data.get("errorMessages")
        if detail:
            return str(detail)
    return f"http {response.status_code}"


def create_jira_tool(project: JiraProject) -> ToolDefinition:
    async def _handler(params: CreateTicketInput) -> str:
        return await project.create_task(params.summary, params.description)

    return ToolDefinition.from_model(
        CreateTicketInput,
        _handler,
        name="create_ticket",
        description="Create a Jira Task ticket",
        notice="📝 Creating Ticket...",
    )


def create_jira_tickets_tool(project: JiraProject) -> ToolDefinition:
    async def _handler(params: GetTicketsInput) -> str:
        return await project.tickets(params.stale_days)

    return ToolDefinition.from_model(
        GetTicketsInput,
        _handler,
        name="get_tickets",
        description="List open Jira tickets, or only stale in-progress ones when stale_days is given",
        notice="🎫 Checking Jira tickets...",
    )
