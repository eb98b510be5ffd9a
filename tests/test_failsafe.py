from __future__ import annotations

import json

import pytest
from pydantic import BaseModel

from shehab.core.failsafe import FailsafeResolver
from shehab.core.types import Execute, ReturnText
from shehab.tools.registry import ToolDefinition, ToolRegistry


class _TicketInput(BaseModel):
    summary: str
    description: str | None = None


class _QueryInput(BaseModel):
    query: str


class _EmptyInput(BaseModel):
    pass


class _FileInput(BaseModel):
    path: str
    content: str
    message: str


def _tool(model: type[BaseModel], name: str) -> ToolDefinition:
    return ToolDefinition.from_model(model, lambda params: name, name=name, description=name)


@pytest.fixture
def resolver() -> FailsafeResolver:
    registry = ToolRegistry(
        [
            _tool(_EmptyInput, "get_file_tree"),
            _tool(_EmptyInput, "get_issues"),
            _tool(_TicketInput, "create_ticket"),
            _tool(_EmptyInput, "get_prs"),
            _tool(_QueryInput, "search_web"),
            _tool(_FileInput, "create_file"),
        ]
    )
    return FailsafeResolver(registry)


def test_plain_text_is_returned_unchanged(resolver: FailsafeResolver) -> None:
    text = "All good, nothing to do today."
    assert resolver.resolve(text) == ReturnText(text)


def test_fingerprint_without_arguments(resolver: FailsafeResolver) -> None:
    assert resolver.resolve("Let me check: get_issues()") == Execute(tool="get_issues", args={})


def test_fingerprint_with_quoted_argument(resolver: FailsafeResolver) -> None:
    action = resolver.resolve('create_ticket("Fix login bug")')
    assert action == Execute(tool="create_ticket", args={"summary": "Fix login bug"})


def test_fingerprint_maps_arguments_positionally(resolver: FailsafeResolver) -> None:
    action = resolver.resolve("create_ticket('Crash on start', \"Happens after login (iOS)\")")
    assert action == Execute(
        tool="create_ticket",
        args={"summary": "Crash on start", "description": "Happens after login (iOS)"},
    )


def test_escaped_quotes_stay_inside_the_argument(resolver: FailsafeResolver) -> None:
    action = resolver.resolve(r'create_ticket("Fix \"login\" bug")')
    assert action == Execute(tool="create_ticket", args={"summary": 'Fix "login" bug'})


def test_apostrophe_inside_single_quotes(resolver: FailsafeResolver) -> None:
    action = resolver.resolve("create_ticket('Don't break prod')")
    assert action == Execute(tool="create_ticket", args={"summary": "Don't break prod"})


def test_keyword_arguments_bind_by_name(resolver: FailsafeResolver) -> None:
    action = resolver.resolve('create_file(path="app.py", message="Add app", content="print(1)")')
    assert action == Execute(tool="create_file", args={"path": "app.py", "content": "print(1)", "message": "Add app"})


def test_keyword_arguments_after_positional(resolver: FailsafeResolver) -> None:
    action = resolver.resolve('create_ticket("Crash", description="On start")')
    assert action == Execute(tool="create_ticket", args={"summary": "Crash", "description": "On start"})


@pytest.mark.parametrize(
    "text",
    [
        'create_ticket(title="Fix login bug")',
        'create_ticket(summary="a", summary="b")',
        'create_ticket("Fix login bug',
        "create_ticket(Fix login bug)",
        'create_ticket(summary="a", "b")',
    ],
)
def test_unclean_arguments_are_not_executed(resolver: FailsafeResolver, text: str) -> None:
    assert resolver.resolve(text) == ReturnText(text)


def test_first_registered_tool_wins(resolver: FailsafeResolver) -> None:
    action = resolver.resolve("get_issues() then get_file_tree()")
    assert action == Execute(tool="get_file_tree", args={})


def test_names_only_match_whole_identifiers(resolver: FailsafeResolver) -> None:
    text = "call my_get_prs_helper later"
    assert resolver.resolve(text) == ReturnText(text)


def test_failed_extraction_returns_text(resolver: FailsafeResolver) -> None:
    text = "create_ticket() and then search_web(\"bugs\")"
    assert resolver.resolve(text) == ReturnText(text)


def test_json_with_parameters_object(resolver: FailsafeResolver) -> None:
    text = json.dumps({"name": "create_ticket", "parameters": {"summary": "Fix login bug"}})
    assert resolver.resolve(text) == Execute(tool="create_ticket", args={"summary": "Fix login bug"})


def test_json_takes_precedence_over_fingerprints(resolver: FailsafeResolver) -> None:
    text = json.dumps({"name": "create_ticket", "parameters": {"summary": "see get_file_tree()"}})
    assert resolver.resolve(text) == Execute(tool="create_ticket", args={"summary": "see get_file_tree()"})


def test_json_with_string_arguments(resolver: FailsafeResolver) -> None:
    text = json.dumps({"name": "search_web", "arguments": json.dumps({"query": "slack api"})})
    assert resolver.resolve(text) == Execute(tool="search_web", args={"query": "slack api"})


def test_json_without_argument_key_uses_whole_object(resolver: FailsafeResolver) -> None:
    text = '{"name": "search_web", "query": "slack api"}'
    assert resolver.resolve(text) == Execute(tool="search_web", args={"name": "search_web", "query": "slack api"})


def test_json_inside_code_fence(resolver: FailsafeResolver) -> None:
    text = '```json\n{"name": "get_prs", "parameters": {}}\n```'
    assert resolver.resolve(text) == Execute(tool="get_prs", args={})


def test_json_for_unknown_tool_is_text(resolver: FailsafeResolver) -> None:
    text = '{"name": "delete_repo", "parameters": {}}'
    assert resolver.resolve(text) == ReturnText(text)


def test_respects_allowed_subset(resolver: FailsafeResolver) -> None:
    assert resolver.resolve("get_file_tree() or get_prs()", allowed=["get_prs"]) == Execute(tool="get_prs", args={})
    text = '{"name": "create_ticket", "parameters": {"summary": "x"}}'
    assert resolver.resolve(text, allowed=["get_prs"]) == ReturnText(text)


def test_empty_text(resolver: FailsafeResolver) -> None:
    assert resolver.resolve("") == ReturnText("")


def test_resolve_never_raises() -> None:
    class _BrokenRegistry:
        def names(self) -> list[str]:
            raise RuntimeError("boom")

    resolver = FailsafeResolver(_BrokenRegistry())  # type: ignore[arg-type]
    assert resolver.resolve("get_prs()") == ReturnText("get_prs()")
