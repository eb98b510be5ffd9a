"""Markdown to Slack mrkdwn conversion and mention tagging."""

from __future__ import annotations

import re
from collections.abc import Mapping

BOLD_RE = re.compile(r"\*\*(.*?)\*\*")
HEADING_RE = re.compile(r"^#+[ \t]+(.*)$", re.MULTILINE)
BULLET_RE = re.compile(r"^[ \t]*[*-][ \t]+", re.MULTILINE)


def format_for_slack(text: str, users: Mapping[str, str] | None = None) -> str:
    """Convert common markdown to mrkdwn and turn known user names into mentions.

    ``users`` maps Slack user ids to display names.
    """
    clean = BOLD_RE.sub(r"*\1*", text)
    clean = HEADING_RE.sub(r"*\1*", clean)
    clean = BULLET_RE.sub("• ", clean)

    for user_id, name in (users or {}).items():
        if not name:
            continue
        pattern = re.compile(rf"@?\b{re.escape(name)}\b", re.IGNORECASE)
        clean = pattern.sub(f"<@{user_id}>", clean)
    return clean
