"""Daily project report."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import date, datetime

from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from shehab.core.model import ModelClient
from shehab.errors import ModelUnavailableError
from shehab.tools.memory import KeyValueMemory
from shehab.tools.registry import ToolRegistry

REPORT_CHANNEL_KEY = "report_channel"
REPORT_JOB_ID = "daily-report"
REPORT_SOURCES = ("get_prs", "get_issues", "get_file_tree")
REPORT_PROMPT = """\
Today is {today}. Analyze the project state for {project_name} and write a short "Daily Plan".

REPO STATE:
- PRs: {get_prs}
- Issues: {get_issues}
- Files: {get_file_tree}

Assign one task to each team member by name. Use standard Markdown. Be concise.
"""

Post = Callable[[str, str], Awaitable[None]]


def greeting(hour: int) -> str:
    if hour < 12:
        return "☀️ Good Morning"
    if hour < 18:
        return "👋 Good Afternoon"
    return "🌙 Good Evening"


class DailyReporter:
    """Collects repository status, asks the model for a plan and posts it."""

    def __init__(
        self,
        *,
        registry: ToolRegistry,
        model: ModelClient,
        memory: KeyValueMemory,
        post: Post,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._registry = registry
        self._model = model
        self._memory = memory
        self._post = post
        self._clock = clock
        self.last_report_date: date | None = None

    async def collect(self) -> dict[str, str]:
        names = [name for name in REPORT_SOURCES if self._registry.has(name)]
        outputs = await asyncio.gather(*(self._registry.execute(name, {}) for name in names))
        state = dict.fromkeys(REPORT_SOURCES, "unavailable")
        state.update(zip(names, outputs, strict=True))
        return state

    async def generate(self) -> str:
        state = await self.collect()
        prompt = REPORT_PROMPT.format(
            today=self._clock().strftime("%a %b %d %Y"),
            project_name=self._memory.get("project_name", "the project"),
            **state,
        )
        reply = await self._model.complete([{"role": "user", "content": prompt}])
        return reply.text or ""

    async def run(self, channel_id: str) -> bool:
        logger.info("report.generate channel={}", channel_id)
        try:
            report = await self.generate()
        except ModelUnavailableError as exc:
            logger.error("report.failed error={}", exc)
            return False
        if not report.strip():
            logger.warning("report.empty channel={}", channel_id)
            return False
        try:
            await self._post(channel_id, f"*{greeting(self._clock().hour)} Team! Here is the plan:*\n\n{report}")
        except Exception:
            logger.exception("report.post.error channel={}", channel_id)
            return False
        return True

    async def tick(self) -> None:
        """Scheduled entry point; posts at most once per day."""
        today = self._clock().date()
        if self.last_report_date == today:
            return
        channel_id = self._memory.get(REPORT_CHANNEL_KEY)
        if not channel_id:
            logger.info("report.skip reason=no_channel")
            return
        if await self.run(str(channel_id)):
            self.last_report_date = today

    def schedule(self, scheduler: BaseScheduler, *, hour: int, minute: int) -> None:
        scheduler.add_job(
            self.tick,
            CronTrigger(hour=hour, minute=minute),
            id=REPORT_JOB_ID,
            replace_existing=True,
        )
