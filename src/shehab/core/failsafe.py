"""Recovery of tool calls the model wrote as plain text.

Some backends ignore the structured tool calling contract and answer with
``create_ticket("Fix login bug")`` or a bare JSON object instead. The
resolver turns such text into an ``Execute`` action, or hands it back as
``ReturnText`` when nothing usable is found. It performs no I/O and never
raises.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from typing import Any

from loguru import logger

from shehab.core.types import Execute, ResolvedAction, ReturnText
from shehab.tools.registry import ToolRegistry

CODE_FENCE_RE = re.compile(r"^```[A-Za-z0-9_-]*\s*\n?(?P<body>.*?)\n?```$", re.DOTALL)
# A quoted value ends at the first unescaped quote followed by "," or ")", so
# apostrophes inside 'single quoted' text are kept.
QUOTED_ARG_RE = re.compile(
    r"(?:(?P<key>[A-Za-z_][A-Za-z0-9_]*)\s*=\s*)?"
    r"(?:\"(?P<double>(?:[^\\]|\\.)*?)\"|'(?P<single>(?:[^\\]|\\.)*?)')"
    r"(?=\s*[,)])",
    re.DOTALL,
)
ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)
ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}


class Recognizer:
    """Textual fingerprint and argument extractor for one tool."""

    def __init__(self, name: str, parameters: list[str], required: list[str]) -> None:
        self.name = name
        self.parameters = parameters
        self.required = required
        self._pattern = re.compile(rf"(?<![A-Za-z0-9_]){re.escape(name)}(?![A-Za-z0-9_])(?P<call>\s*\()?")

    def search(self, text: str) -> re.Match[str] | None:
        return self._pattern.search(text)

    def extract(self, match: re.Match[str]) -> dict[str, Any] | None:
        """Bind quoted arguments to parameter names, or None when they cannot be bound cleanly.

        ``name="value"`` binds by name; bare quoted values fill the remaining
        parameters in schema order.
        """
        args: dict[str, str] = {}
        if match.group("call") is not None:
            bound = self._bind(match.string, match.end())
            if bound is None:
                return None
            args = bound
        if any(name not in args for name in self.required):
            return None
        return {name: args[name] for name in self.parameters if name in args}

    def _bind(self, text: str, pos: int) -> dict[str, str] | None:
        positional: list[str] = []
        keywords: dict[str, str] = {}
        pos = _skip_space(text, pos)
        while pos < len(text) and text[pos] != ")":
            quoted = QUOTED_ARG_RE.match(text, pos)
            if quoted is None:
                return None
            raw = quoted.group("double") if quoted.group("double") is not None else quoted.group("single")
            value = _unescape(raw)
            key = quoted.group("key")
            if key is None:
                if keywords:
                    return None
                positional.append(value)
            elif key not in self.parameters or key in keywords:
                return None
            else:
                keywords[key] = value
            pos = _skip_space(text, quoted.end())
            if pos < len(text) and text[pos] == ",":
                pos = _skip_space(text, pos + 1)
        if pos >= len(text):
            return None

        free = [name for name in self.parameters if name not in keywords]
        bound = dict(zip(free, positional, strict=False))
        bound.update(keywords)
        return bound


class FailsafeResolver:
    """Resolve free-text model output into a tool execution or plain text."""

    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry
        self._recognizers: dict[str, Recognizer] = {}

    def resolve(self, text: str, allowed: Iterable[str] | None = None) -> ResolvedAction:
        try:
            names = self._allowed_names(allowed)
            action = self._resolve_json(text, names)
            if action is None:
                action = self._resolve_fingerprint(text, names)
        except Exception:
            logger.exception("failsafe.resolve.error")
            return ReturnText(text)
        if action is None:
            return ReturnText(text)
        logger.info("failsafe.match tool={}", action.tool)
        return action

    def _allowed_names(self, allowed: Iterable[str] | None) -> list[str]:
        names = self._registry.names()
        if allowed is None:
            return names
        wanted = set(allowed)
        return [name for name in names if name in wanted]

    def _resolve_json(self, text: str, names: list[str]) -> Execute | None:
        body = _strip_code_fence(text.strip())
        if not body.startswith("{"):
            return None
        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            return None
        if not isinstance(payload, dict):
            return None

        name = payload.get("name")
        if not isinstance(name, str) or name not in names:
            return None

        if "parameters" in payload:
            args = payload["parameters"]
        elif "arguments" in payload:
            args = payload["arguments"]
        else:
            args = payload
        if isinstance(args, str):
            try:
                args = json.loads(args) if args.strip() else {}
            except json.JSONDecodeError:
                return None
        if not isinstance(args, dict):
            return None
        return Execute(tool=name, args=args)

    def _resolve_fingerprint(self, text: str, names: list[str]) -> Execute | None:
        for name in names:
            recognizer = self._recognizer(name)
            match = recognizer.search(text)
            if match is None:
                continue
            # First matching tool wins, even when its arguments cannot be extracted.
            args = recognizer.extract(match)
            if args is None:
                logger.info("failsafe.extract.failed tool={}", name)
                return None
            return Execute(tool=name, args=args)
        return None

    def _recognizer(self, name: str) -> Recognizer:
        recognizer = self._recognizers.get(name)
        if recognizer is None:
            recognizer = Recognizer(
                name,
                self._registry.parameter_names(name),
                self._registry.required_parameters(name),
            )
            self._recognizers[name] = recognizer
        return recognizer


def _strip_code_fence(text: str) -> str:
    match = CODE_FENCE_RE.match(text)
    if match is None:
        return text
    return match.group("body").strip()


def _skip_space(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _unescape(value: str) -> str:
    return ESCAPE_RE.sub(lambda match: ESCAPES.get(match.group(1), match.group(1)), value)
