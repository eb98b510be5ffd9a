"""Slack channel adapter."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger
from slack_bolt.adapter.socket_mode.aiohttp import AsyncSocketModeHandler
from slack_bolt.async_app import AsyncApp
from slack_sdk.errors import SlackApiError

from shehab.app import App
from shehab.channels.formatting import format_for_slack
from shehab.core.agent_loop import SYSTEM_ERROR_PREFIX
from shehab.core.context import context_key
from shehab.errors import ConfigurationError
from shehab.reports import REPORT_CHANNEL_KEY, DailyReporter

SET_REPORT_CHANNEL_COMMAND = "set report channel"
RUN_REPORT_COMMAND = "run daily report"
UNKNOWN_USER = "Unknown User"
IGNORED_SUBTYPES = frozenset({"bot_message", "message_changed", "message_deleted", "channel_join", "channel_leave"})

Say = Callable[..., Awaitable[Any]]


class SlackChannel:
    """Slack adapter using Socket Mode."""

    name = "slack"

    def __init__(self, app: App, *, bolt: AsyncApp | None = None) -> None:
        self._app = app
        self._bolt = bolt or AsyncApp(token=app.settings.slack_bot_token)
        self._handler: AsyncSocketModeHandler | None = None
        self.reporter = DailyReporter(
            registry=app.registry,
            model=app.model,
            memory=app.memory,
            post=self.post,
        )

        async def _on_message(event: dict[str, Any], say: Say) -> None:
            await self.handle_message(event, say)

        self._bolt.event("message")(_on_message)

    async def start(self) -> None:
        token = self._app.settings.slack_app_token
        if not token:
            raise ConfigurationError("slack app token is empty; set SHEHAB_SLACK_APP_TOKEN")
        logger.info("slack.channel.start")
        self._handler = AsyncSocketModeHandler(self._bolt, token)
        await self._handler.start_async()

    async def stop(self) -> None:
        if self._handler is None:
            return
        await self._handler.close_async()
        self._handler = None
        logger.info("slack.channel.stopped")

    def format(self, text: str) -> str:
        return format_for_slack(text, self._app.memory.users())

    async def post(self, channel_id: str, text: str) -> None:
        if not text.strip():
            return
        await self._bolt.client.chat_postMessage(channel=channel_id, text=self.format(text))

    async def handle_message(self, event: dict[str, Any], say: Say) -> None:
        if event.get("bot_id") or event.get("subtype") in IGNORED_SUBTYPES:
            return
        text = _message_text(event)
        if not text:
            return

        channel_id = str(event.get("channel", ""))
        thread_ts = event.get("thread_ts")

        async def safe_say(reply: str) -> None:
            if not reply or not reply.strip():
                return
            if thread_ts:
                await say(text=self.format(reply), thread_ts=thread_ts)
            else:
                await say(text=self.format(reply))

        logger.info(
            "slack.channel.inbound channel={} thread_ts={} user={} content={}",
            channel_id,
            thread_ts or "",
            event.get("user", ""),
            text[:100],
        )

        lowered = text.lower()
        if SET_REPORT_CHANNEL_COMMAND in lowered:
            self._app.memory.set(REPORT_CHANNEL_KEY, channel_id)
            await safe_say(f"✅ Reports set to this channel (#{channel_id}).")
            return
        if RUN_REPORT_COMMAND in lowered:
            await safe_say("⏳ Scanning Repo & Generating Report...")
            if not await self.reporter.run(channel_id):
                await safe_say("❌ Could not generate the report right now.")
            return

        key = context_key(channel_id, thread_ts, event.get("ts"), self._app.settings.context_scope)
        try:
            speaker = await self.speaker_name(event.get("user"))
            reply = await self._app.respond(key, text, prompt_values={"speaker": speaker}, notify=safe_say)
            await safe_say(reply)
        except Exception as exc:
            logger.exception("slack.agent.error")
            await safe_say(f"{SYSTEM_ERROR_PREFIX} {exc}")

    async def speaker_name(self, user_id: str | None) -> str:
        if not user_id:
            return UNKNOWN_USER
        cached = self._app.memory.cached_user_name(user_id)
        if cached:
            return cached
        try:
            response = await self._bolt.client.users_info(user=user_id)
        except SlackApiError as exc:
            logger.warning("slack.users_info.error user={} error={}", user_id, exc)
            return UNKNOWN_USER
        user = response.get("user") or {}
        name = user.get("real_name") or user.get("name")
        if not name:
            return UNKNOWN_USER
        self._app.memory.cache_user_name(user_id, name)
        logger.info("slack.user.registered user={} name={}", user_id, name)
        return name


def _message_text(event: dict[str, Any]) -> str:
    text = (event.get("text") or "").strip()
    images = [
        item.get("url_private")
        for item in event.get("files") or ()
        if str(item.get("mimetype", "")).startswith("image/") and item.get("url_private")
    ]
    if images:
        shared = "\n".join(f"[User shared an image: {url}]" for url in images)
        text = f"{text}\n{shared}".strip()
    return text
