#!/usr/bin/env python3
"""
Main CLI for Motion - sparks in, prompt out.

Usage:
    motion sparks                  - List the sparks in the watched root
    motion prompt                  - Show the compiled prompt
    motion generate [--notify]     - Send the compiled prompt to the model
    motion capture "text"          - Write a new spark
    motion daemon                  - Watch sparks and generate hourly
    motion config show|init|set    - Inspect or change saved settings
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional, Tuple
import click
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn
from loguru import logger

from ..daemon.config import LOAD_ERRORS, Config
from ..daemon.state import SparkState, Workspace
from ..daemon.watcher import SparkWatcher
from ..daemon.llm import OllamaClient
from ..daemon.notifications import Notifier
from ..daemon.orchestrator import GenerationOrchestrator
from ..daemon.capture import CaptureService

console = Console()


def load_config(ctx: click.Context, path: Optional[Path] = None) -> Config:
    if path is None:
        config_path = ctx.obj.get("config_path") if ctx.obj else None
        path = Path(config_path) if config_path else None
    try:
        return Config.load(path)
    except LOAD_ERRORS as e:
        console.print(f"Configuration error: {e}", style="red", markup=False, highlight=False)
        ctx.exit(1)


async def load_state(config: Config) -> SparkState:
    """One full rebuild of the watched root, without starting a watch."""
    state = SparkState()
    watcher = SparkWatcher(config.storage, state)
    await watcher.rebuild()
    return state


def apply_selection(state: SparkState, only: Tuple[str, ...]) -> None:
    """Restrict the selection to sparks whose id or title contains a filter."""
    if not only:
        return
    state.select_none()
    for record in state.records:
        if any(f in record.id or (record.title and f in record.title) for f in only):
            state.select(record.id)


def apply_prompt_options(
    config: Config,
    as_json: Optional[bool],
    instruction: Optional[str],
    extra: Optional[str],
    context: Optional[str],
) -> None:
    if as_json is not None:
        config.prompt.json_output = as_json
    if instruction is not None:
        config.prompt.instruction = instruction
    if extra is not None:
        config.prompt.extra_instruction = extra
    if context is not None:
        config.prompt.context = context


def prompt_options(func):
    """Options shared by ``prompt`` and ``generate``."""
    options = [
        click.option("--json/--text", "as_json", default=None, help="Data section as a JSON array"),
        click.option("--instruction", "-i", help="Override the saved instruction"),
        click.option("--extra", "-e", help="Additional instructions"),
        click.option("--context", "-c", help="Override the saved context"),
        click.option("--only", "-o", multiple=True, help="Only sparks whose path or title contains this"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx, config_path: Optional[str], verbose: bool):
    """Motion - turn your sparks into prompts for a local model."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if not verbose:
        logger.remove()
        logger.add(sys.stderr, level="WARNING")


@cli.command()
@click.pass_context
def sparks(ctx):
    """List discovered sparks, newest first."""
    config = load_config(ctx)
    state = asyncio.run(load_state(config))

    if state.notice:
        console.print(f"[yellow]{state.notice}[/yellow]")

    if not state.records:
        console.print("[yellow]No sparks found[/yellow]")
        return

    table = Table(title=f"{state.count} Sparks loaded")
    table.add_column("Title", style="cyan", no_wrap=False)
    table.add_column("Category", style="magenta")
    table.add_column("Created")
    table.add_column("Tokens", justify="right")

    for record in state.records:
        table.add_row(
            record.title or Path(record.id).name,
            record.category,
            record.created_date.strftime("%Y-%m-%d %H:%M"),
            str(record.token_estimate),
        )

    console.print(table)


@cli.command()
@prompt_options
@click.pass_context
def prompt(ctx, as_json, instruction, extra, context, only):
    """Print the compiled prompt."""
    config = load_config(ctx)
    apply_prompt_options(config, as_json, instruction, extra, context)

    state = asyncio.run(load_state(config))
    apply_selection(state, only)
    workspace = Workspace(state, config.prompt)
    click.echo(workspace.compile())


@cli.command()
@prompt_options
@click.option("--notify", is_flag=True, help="Also send the reply as a notification")
@click.pass_context
def generate(ctx, as_json, instruction, extra, context, only, notify: bool):
    """Send the compiled prompt to the model and print the reply."""
    config = load_config(ctx)
    apply_prompt_options(config, as_json, instruction, extra, context)
    ok = asyncio.run(run_generation(config, only, notify))
    if not ok:
        ctx.exit(1)


async def run_generation(config: Config, only: Tuple[str, ...], notify: bool) -> bool:
    state = await load_state(config)
    apply_selection(state, only)
    workspace = Workspace(state, config.prompt)
    notifier = Notifier(
        title=config.notifications.title,
        interval_s=config.notifications.interval_s,
    )
    orchestrator = GenerationOrchestrator(
        workspace,
        OllamaClient(config.endpoint),
        notifier=notifier,
        notification_settings=config.notifications,
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
        console=console
    ) as progress:
        progress.add_task(description=f"Generating with {config.endpoint.model}...", total=None)
        if notify:
            await orchestrator.generate_and_notify()
        elif not await orchestrator.submit():
            console.print("[yellow]Nothing to send: instruction, context and data are all empty[/yellow]")
            return False

    if notify:
        await notifier.wait_immediate()
    await notifier.close()

    if orchestrator.error_message:
        console.print(orchestrator.error_message, style="red", markup=False, highlight=False)
        return False
    if orchestrator.result is None:
        console.print("[yellow]Nothing to send: instruction, context and data are all empty[/yellow]")
        return False

    console.print(orchestrator.result, markup=False, highlight=False)
    return True


@cli.command()
@click.argument("text")
@click.option("--title", "-t", default="", help="Spark title (defaults to the first line)")
@click.option("--category", default="unknown", help="Spark category")
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable)")
@click.pass_context
def capture(ctx, text: str, title: str, category: str, tags: Tuple[str, ...]):
    """Capture a new spark into the watched root."""
    config = load_config(ctx)
    service = CaptureService(config.storage.watched_root())
    try:
        path = asyncio.run(service.capture(text, title=title, category=category, tags=list(tags)))
    except OSError as e:
        console.print(f"[red]Failed to capture:[/red] {e}")
        ctx.exit(1)
    console.print(f"[green]✓[/green] Captured: {path.name}")


@cli.command()
@click.pass_context
def daemon(ctx):
    """Watch sparks and run the hourly generation until interrupted."""
    from ..daemon.main import main as daemon_main

    console.print("[cyan]Starting Motion daemon...[/cyan]")
    try:
        asyncio.run(daemon_main(ctx.obj.get("config_path")))
    except KeyboardInterrupt:
        console.print("\n[yellow]Daemon stopped by user[/yellow]")


@cli.group(name="config")
def config_group():
    """Inspect or change saved settings."""
    pass


@config_group.command(name="show")
@click.pass_context
def config_show(ctx):
    """Print the effective configuration."""
    import yaml

    config = load_config(ctx)
    click.echo(yaml.safe_dump(config.model_dump(mode="json"), default_flow_style=False))


@config_group.command(name="init")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
@click.pass_context
def config_init(ctx, force: bool):
    """Write a config file with default settings."""
    path = Path(ctx.obj.get("config_path") or Config.default_path())
    if path.exists() and not force:
        console.print(f"[yellow]Config already exists:[/yellow] {path}")
        ctx.exit(1)
    Config().save(path)
    console.print(f"[green]✓[/green] Wrote {path}")


@config_group.command(name="set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx, key: str, value: str):
    """Change one setting, e.g. ``motion config set endpoint.model llama3``."""
    path = Path(ctx.obj.get("config_path") or Config.find() or Config.default_path())
    config = load_config(ctx, path) if path.exists() else Config()
    try:
        updated = config.with_value(key, value)
    except KeyError:
        console.print(f"[red]Unknown setting:[/red] {key}")
        ctx.exit(1)
    except ValueError as e:
        console.print(f"[red]Invalid value for {key}:[/red] {e}")
        ctx.exit(1)
    updated.save(path)
    console.print(f"[green]✓[/green] {key} = {value}")


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
