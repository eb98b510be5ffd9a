"""Shehab command line entry points."""

from __future__ import annotations

import asyncio

import typer
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger
from rich.console import Console

from shehab.app import App
from shehab.channels.slack import SlackChannel
from shehab.config import Settings, load_settings
from shehab.errors import ConfigurationError
from shehab.logging_utils import configure_logging

CLI_CONTEXT_KEY = "cli"
EXIT_COMMANDS = frozenset({"quit", "exit", "q"})

app = typer.Typer(name="shehab", help="Project manager bot for Slack.", add_completion=False)
console = Console()


def _settings(model: str | None, max_tokens: int | None) -> Settings:
    settings = load_settings(model=model, max_tokens=max_tokens)
    configure_logging(settings.log_level)
    return settings


@app.command()
def slack(
    model: str | None = typer.Option(None, "--model", help="Override SHEHAB_MODEL"),
    max_tokens: int | None = typer.Option(None, "--max-tokens", help="Override SHEHAB_MAX_TOKENS"),
) -> None:
    """Connect to Slack over Socket Mode and schedule the daily report."""
    settings = _settings(model, max_tokens)
    try:
        settings.require_slack_tokens()
        asyncio.run(_serve_slack(settings))
    except KeyboardInterrupt:
        logger.info("slack.interrupted")
    except ConfigurationError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(1) from exc


async def _serve_slack(settings: Settings) -> None:
    async with App(settings) as runtime:
        channel = SlackChannel(runtime)
        scheduler = AsyncIOScheduler()
        channel.reporter.schedule(scheduler, hour=settings.report_hour, minute=settings.report_minute)
        scheduler.start()
        logger.info("report.scheduled hour={} minute={}", settings.report_hour, settings.report_minute)
        try:
            await channel.start()
        finally:
            scheduler.shutdown(wait=False)
            await channel.stop()


@app.command()
def chat(
    model: str | None = typer.Option(None, "--model", help="Override SHEHAB_MODEL"),
    max_tokens: int | None = typer.Option(None, "--max-tokens", help="Override SHEHAB_MAX_TOKENS"),
) -> None:
    """Talk to the bot from the terminal."""
    settings = _settings(model, max_tokens)
    try:
        asyncio.run(_chat(settings))
    except ConfigurationError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(1) from exc


async def _chat(settings: Settings) -> None:
    async with App(settings) as runtime:
        console.print("[bold blue]Shehab[/bold blue] - type 'quit' to leave.")
        console.print(f"[bold]Tools:[/bold] [green]{', '.join(runtime.registry.names())}[/green]")

        async def show_notice(text: str) -> None:
            console.print(f"[dim]{text}[/dim]")

        while True:
            try:
                user_input = await asyncio.to_thread(console.input, "[bold cyan]You:[/bold cyan] ")
            except (KeyboardInterrupt, EOFError):
                console.print("\nGoodbye!")
                return
            user_input = user_input.strip()
            if not user_input:
                continue
            if user_input.lower() in EXIT_COMMANDS:
                return
            reply = await runtime.respond(CLI_CONTEXT_KEY, user_input, notify=show_notice)
            console.print(f"[bold yellow]Shehab:[/bold yellow] {reply}")
