from __future__ import annotations

import json
from datetime import UTC, datetime

import httpx
import pytest

from shehab.tools.jira import JiraProject, create_jira_tickets_tool, create_jira_tool


def _project(handler, **overrides) -> JiraProject:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    options = {"host": "acme.atlassian.net", "email": "bot@acme.io", "api_token": "tok", "project_key": "ENG"}
    options.update(overrides)
    return JiraProject(client, **options)


@pytest.mark.asyncio
async def test_create_task_posts_issue() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"key": "ENG-42"})

    output = await _project(handler).create_task("Fix login bug", "Fails on Safari")

    assert output == "✅ Ticket Created: ENG-42 (https://acme.atlassian.net/browse/ENG-42)"
    request = seen[0]
    assert str(request.url) == "https://acme.atlassian.net/rest/api/3/issue"
    assert request.headers["Authorization"].startswith("Basic ")
    fields = json.loads(request.content)["fields"]
    assert fields["project"] == {"key": "ENG"}
    assert fields["summary"] == "Fix login bug"
    assert fields["issuetype"] == {"name": "Task"}
    assert fields["description"]["content"][0]["content"][0]["text"] == "Fails on Safari"


@pytest.mark.asyncio
async def test_create_task_without_description() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"key": "ENG-1"})

    await _project(handler).create_task("Only a title")

    assert "description" not in json.loads(seen[0].content)["fields"]


@pytest.mark.asyncio
async def test_create_task_reports_jira_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"errors": {"summary": "required"}})

    output = await _project(handler).create_task("x")

    assert output == "❌ Jira Error: {'summary': 'required'}"


@pytest.mark.asyncio
async def test_unconfigured_project() -> None:
    project = _project(lambda request: httpx.Response(500), host=None)
    assert await project.create_task("x") == "❌ Jira Error: Jira is not configured"


@pytest.mark.asyncio
async def test_create_ticket_tool_schema_and_run() -> None:
    tool = create_jira_tool(_project(lambda request: httpx.Response(201, json={"key": "ENG-7"})))

    assert tool.name == "create_ticket"
    assert tool.parameters["required"] == ["summary"]
    assert (await tool.executor({"summary": "Fix login bug"})).startswith("✅ Ticket Created: ENG-7")


def _issue(key: str, summary: str, status: str, assignee: str | None, updated: str) -> dict:
    return {
        "key": key,
        "fields": {
            "summary": summary,
            "status": {"name": status},
            "assignee": {"displayName": assignee} if assignee else None,
            "updated": updated,
        },
    }


NOW = datetime(2024, 5, 20, 9, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_tickets_lists_open_issues() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "issues": [
                    _issue("ENG-2", "Fix login bug", "In Progress", "Dana", "2024-05-19T10:00:00.000+0000"),
                    _issue("ENG-1", "Write docs", "To Do", None, "2024-05-01T10:00:00.000+0000"),
                ]
            },
        )

    output = await _project(handler).tickets()

    assert output == "- [ENG-2] Fix login bug (In Progress, Dana)\n- [ENG-1] Write docs (To Do, Unassigned)"
    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/rest/api/3/search/jql"
    assert request.url.params["jql"] == "project = ENG AND status != Done ORDER BY created DESC"
    assert request.url.params["maxResults"] == "20"
    assert request.headers["Authorization"].startswith("Basic ")


@pytest.mark.asyncio
async def test_tickets_keeps_only_stale_in_progress_issues() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "issues": [
                    _issue("ENG-3", "Old refactor", "Development", "Sam", "2024-05-10T08:00:00.000+0000"),
                    _issue("ENG-4", "Fresh work", "In Progress", "Dana", "2024-05-19T08:00:00.000+0000"),
                    _issue("ENG-5", "Bad date", "In Progress", "Dana", "yesterday"),
                ]
            },
        )

    project = _project(handler, clock=lambda: NOW)
    output = await project.tickets(stale_days=3)

    assert output == "- [ENG-3] Old refactor (Development, Sam) - stale 10 days"
    assert 'status in ("Development", "In Progress")' in seen[0].url.params["jql"]
    assert seen[0].url.params["jql"].endswith("ORDER BY updated ASC")


@pytest.mark.asyncio
async def test_tickets_empty_results() -> None:
    project = _project(lambda request: httpx.Response(200, json={"issues": []}), clock=lambda: NOW)

    assert await project.tickets() == "No open tickets."
    assert await project.tickets(stale_days=3) == "No stale tickets."


@pytest.mark.asyncio
async def test_tickets_reports_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"errorMessages": ["bad jql"]})

    assert await _project(handler).tickets() == "❌ Jira Error: ['bad jql']"
    unconfigured = _project(handler, project_key=None)
    assert await unconfigured.tickets() == "❌ Jira Error: Jira is not configured"


@pytest.mark.asyncio
async def test_get_tickets_tool_has_no_required_parameters() -> None:
    project = _project(
        lambda request: httpx.Response(
            200, json={"issues": [_issue("ENG-9", "Ship it", "To Do", "Ana", "2024-05-19T10:00:00.000+0000")]}
        )
    )
    tool = create_jira_tickets_tool(project)

    assert tool.name == "get_tickets"
    assert tool.parameters.get("required", []) == []
    assert await tool.executor({}) == "- [ENG-9] Ship it (To Do, Ana)"
