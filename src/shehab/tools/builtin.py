"""Built-in tool catalog."""

from __future__ import annotations

import httpx

from shehab.config import Settings
from shehab.core.model import ModelClient
from shehab.tools.github import GitHubRepo, create_github_tools
from shehab.tools.jira import JiraProject, create_jira_tickets_tool, create_jira_tool
from shehab.tools.memory import KeyValueMemory, create_memory_tool
from shehab.tools.registry import ToolRegistry
from shehab.tools.vision import ImageDescriber, create_vision_tool
from shehab.tools.web import WebSearch, create_search_tool

# Registration order is also the failsafe priority order.
BUILTIN_TOOL_ORDER = (
    "get_file_tree",
    "get_issues",
    "read_file",
    "create_ticket",
    "get_tickets",
    "update_memory",
    "get_prs",
    "create_file",
    "search_web",
    "describe_image",
)


def register_builtin_tools(
    registry: ToolRegistry,
    *,
    settings: Settings,
    client: httpx.AsyncClient,
    memory: KeyValueMemory,
    model: ModelClient,
) -> None:
    """Register the built-in tools in priority order."""

    repo = GitHubRepo(
        client,
        owner=settings.github_owner,
        repo=settings.github_repo,
        token=settings.github_token,
    )
    jira = JiraProject(
        client,
        host=settings.jira_host,
        email=settings.jira_email,
        api_token=settings.jira_api_token,
        project_key=settings.jira_project_key,
    )
    definitions = {
        **create_github_tools(repo),
        "create_ticket": create_jira_tool(jira),
        "get_tickets": create_jira_tickets_tool(jira),
        "update_memory": create_memory_tool(memory),
        "search_web": create_search_tool(
            WebSearch(client, api_base=settings.web_search_api_base, api_key=settings.web_search_api_key)
        ),
        "describe_image": create_vision_tool(ImageDescriber(client, model, token=settings.slack_bot_token)),
    }
    for name in BUILTIN_TOOL_ORDER:
        registry.register(definitions[name])
