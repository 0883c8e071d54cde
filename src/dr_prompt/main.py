"""CLI interface for Dr. Prompt."""

import asyncio
import logging
import mimetypes
import sys
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
import typer

# Load environment variables from .env file
load_dotenv()
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table
from rich.text import Text

from dr_prompt.models.targets import TargetModel, list_targets, parse_target
from dr_prompt.refinement import (
    FileStorage,
    HistoryEntry,
    MemoryStorage,
    PromptRefiner,
    RefinedResult,
    RefinementConfig,
    RefinementHistory,
    RefinementSession,
    SessionStatus,
)

# Initialize CLI app
app = typer.Typer(
    name="dr-prompt",
    help="Rewrite raw prompts for the quirks of a target LLM",
    add_completion=False,
)

console = Console()

TEXT_FILE_SUFFIXES = {".txt", ".md", ".json"}

TARGET_STYLES = {
    TargetModel.GEMINI: "blue",
    TargetModel.CHATGPT: "green",
    TargetModel.CLAUDE: "dark_orange",
    TargetModel.GROK: "grey70",
}


def setup_logging(verbose: bool = False) -> None:
    """Set up logging with rich formatting."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def load_prompt_file(path: Path) -> str:
    """
    Read a prompt from a text file.

    Raises:
        ValueError: If the file is missing or not a text file
    """
    if not path.exists():
        raise ValueError(f"File not found: {path}")

    mime_type, _ = mimetypes.guess_type(path.name)
    is_text = path.suffix.lower() in TEXT_FILE_SUFFIXES or (
        mime_type is not None and mime_type.startswith("text/")
    )
    if not is_text:
        raise ValueError(f"Not a text file (.txt, .md, .json, etc.): {path}")

    return path.read_text(encoding="utf-8")


def open_history(
    history_dir: Optional[str],
    config: RefinementConfig,
    persist: bool = True,
) -> RefinementHistory:
    """Load the history from the configured directory, or an in-memory one."""
    if persist:
        directory = Path(history_dir) if history_dir else config.history_dir
        storage = FileStorage(directory)
    else:
        storage = MemoryStorage()
    return RefinementHistory.from_storage(storage, max_entries=config.max_history)


def resolve_entry(history: RefinementHistory, entry_id: str) -> Optional[HistoryEntry]:
    """Find an entry by full id or unique id prefix."""
    entry = history.get(entry_id)
    if entry:
        return entry

    matches = [e for e in history.entries if e.id.startswith(entry_id)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        console.print(f"[yellow]Ambiguous id prefix '{entry_id}' ({len(matches)} matches)[/yellow]")
    return None


def display_result(
    result: RefinedResult,
    target: TargetModel,
    original: Optional[str] = None,
) -> None:
    """Print a refinement result."""
    style = TARGET_STYLES.get(target, "white")

    if original is not None:
        console.print(Panel(Text(original), title="Original", border_style="dim"))

    console.print(Panel(
        Text(result.refined_prompt),
        title=f"Refined for [bold {style}]{target.value}[/bold {style}]",
        border_style=style,
    ))

    points = result.explanation_points()
    if points:
        console.print("\n[bold]Why this works:[/bold]")
        for point in points:
            console.print(f"  - {escape(point)}")


@app.command()
def refine(
    prompt: Optional[str] = typer.Argument(None, help="Raw prompt to refine"),
    target: str = typer.Option(
        TargetModel.GEMINI.value, "--target", "-t",
        help="Target model: Gemini, ChatGPT, Claude or Grok",
    ),
    file: Optional[str] = typer.Option(
        None, "--file", "-f", help="Load the prompt from a text file (.txt, .md, .json)"
    ),
    model: str = typer.Option(
        "gemini-2.5-flash", "--model", "-m", help="Gemini model that performs the rewrite"
    ),
    timeout: float = typer.Option(
        60.0, "--timeout", help="Request timeout in seconds"
    ),
    history_dir: Optional[str] = typer.Option(
        None, "--history-dir", envvar="DR_PROMPT_HOME", help="Directory holding the history"
    ),
    no_history: bool = typer.Option(
        False, "--no-history", help="Do not read or write the history"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging"
    ),
) -> None:
    """
    Refine a prompt for a target model.

    Example:
        dr-prompt refine "write a poem about the sea" --target Claude
        dr-prompt refine --file prompt.md -t ChatGPT
    """
    setup_logging(verbose)

    try:
        target_model = parse_target(target)
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(2)

    text = prompt or ""
    if file:
        try:
            text = load_prompt_file(Path(file))
        except (ValueError, OSError) as e:
            console.print(f"[red]Failed to load prompt file: {escape(str(e))}[/red]")
            sys.exit(2)

    if not text.strip():
        console.print("[yellow]Nothing to refine: the prompt is empty.[/yellow]")
        sys.exit(2)

    try:
        config = RefinementConfig(model=model, timeout_seconds=timeout)
    except ValueError as e:
        console.print(f"[red]Invalid options: {escape(str(e))}[/red]")
        sys.exit(2)

    history = open_history(history_dir, config, persist=not no_history)
    cost_summary: dict[str, Any] = {}

    async def run_refinement() -> RefinementSession:
        async with PromptRefiner(config) as refiner:
            session = RefinementSession(refiner, history, default_target=target_model)
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                TimeElapsedColumn(),
                console=console,
            ) as progress:
                progress.add_task(f"Refining for {target_model.value}...", total=None)
                await session.start_refine(text)
            cost_summary.update(refiner.get_cost_summary())
            return session

    try:
        session = asyncio.run(run_refinement())
    except KeyboardInterrupt:
        console.print("\n[yellow]Refinement cancelled by user[/yellow]")
        sys.exit(1)
    except ValueError as e:
        # Configuration problems such as a missing API key
        console.print(f"\n[red]{escape(str(e))}[/red]")
        sys.exit(1)

    if session.status == SessionStatus.FAILED or session.result is None:
        console.print(f"\n[red]{session.error}[/red]")
        sys.exit(1)

    display_result(session.result, target_model)

    if verbose and cost_summary:
        console.print(
            f"\n[dim]Tokens: {cost_summary['total_input_tokens']} in, "
            f"{cost_summary['total_output_tokens']} out. "
            f"Cost: ${cost_summary['total_cost_usd']:.4f}[/dim]"
        )

    if not no_history and history.entries:
        console.print(f"\n[dim]Saved to history as {history.entries[0].id[:8]}[/dim]")


@app.command()
def targets(
    rules: bool = typer.Option(
        False, "--rules", "-r", help="Show each target's rewrite rules"
    ),
) -> None:
    """List the supported target models."""
    table = Table(title="Target Models")
    table.add_column("Target", style="bold")
    table.add_column("Icon")
    table.add_column("Description")
    table.add_column("Rules", justify="right")

    profiles = list_targets()
    for profile in profiles:
        style = TARGET_STYLES.get(profile.target, "white")
        table.add_row(
            f"[{style}]{profile.name}[/{style}]",
            profile.icon,
            profile.description,
            str(len(profile.rule_set.rules)),
        )

    console.print(table)

    if rules:
        for profile in profiles:
            console.print(f"\n[bold]{profile.rule_set.target_label}[/bold]")
            for i, rule in enumerate(profile.rule_set.rules, 1):
                console.print(f"  {i}. {escape(rule)}")


@app.command()
def history(
    limit: int = typer.Option(
        20, "--limit", "-n", help="Maximum number of entries to show"
    ),
    history_dir: Optional[str] = typer.Option(
        None, "--history-dir", envvar="DR_PROMPT_HOME", help="Directory holding the history"
    ),
) -> None:
    """List recent refinements, newest first."""
    config = RefinementConfig()
    refinement_history = open_history(history_dir, config)
    entries = refinement_history.entries

    if not entries:
        console.print("[yellow]No refinements in history.[/yellow]")
        return

    table = Table(title="Recent Refinements")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("When")
    table.add_column("Target")
    table.add_column("Original", overflow="ellipsis", no_wrap=True, max_width=40)
    table.add_column("Refined", overflow="ellipsis", no_wrap=True, max_width=40)

    for entry in entries[:limit]:
        style = TARGET_STYLES.get(entry.target_model, "white")
        table.add_row(
            entry.id[:8],
            entry.timestamp.astimezone().strftime("%b %d %H:%M"),
            f"[{style}]{entry.target_model.value}[/{style}]",
            Text(entry.original_prompt.replace("\n", " ")),
            Text(entry.result.refined_prompt.replace("\n", " ")),
        )

    console.print(table)

    if len(entries) > limit:
        console.print(f"\n[dim]... and {len(entries) - limit} more[/dim]")

    summary = refinement_history.summary()
    by_target = ", ".join(f"{name}: {count}" for name, count in summary["by_target"].items())
    console.print(
        f"\n[dim]{summary['total_entries']} of {summary['max_entries']} entries ({by_target})[/dim]"
    )


@app.command()
def show(
    entry_id: str = typer.Argument(..., help="History entry id (or unique prefix)"),
    history_dir: Optional[str] = typer.Option(
        None, "--history-dir", envvar="DR_PROMPT_HOME", help="Directory holding the history"
    ),
) -> None:
    """Restore a past refinement from history."""
    config = RefinementConfig()
    refinement_history = open_history(history_dir, config)

    entry = resolve_entry(refinement_history, entry_id)
    if entry is None:
        console.print(f"[red]No history entry matching '{entry_id}'[/red]")
        sys.exit(1)

    session = RefinementSession(PromptRefiner(config), refinement_history)
    session.select_from_history(entry)
    display_result(session.result, session.target, original=session.prompt)


@app.command()
def delete(
    entry_id: str = typer.Argument(..., help="History entry id (or unique prefix)"),
    history_dir: Optional[str] = typer.Option(
        None, "--history-dir", envvar="DR_PROMPT_HOME", help="Directory holding the history"
    ),
) -> None:
    """Delete one entry from history."""
    config = RefinementConfig()
    refinement_history = open_history(history_dir, config)

    entry = resolve_entry(refinement_history, entry_id)
    if entry is None:
        console.print(f"[yellow]No history entry matching '{entry_id}'[/yellow]")
        return

    refinement_history.remove(entry.id)
    console.print(f"[green]Deleted {entry.id[:8]}[/green]")


@app.command()
def clear_history(
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Do not ask for confirmation"
    ),
    history_dir: Optional[str] = typer.Option(
        None, "--history-dir", envvar="DR_PROMPT_HOME", help="Directory holding the history"
    ),
) -> None:
    """Delete all refinements from history."""
    if not yes:
        typer.confirm("Are you sure you want to clear your history?", abort=True)

    config = RefinementConfig()
    refinement_history = open_history(history_dir, config)
    count = len(refinement_history)
    refinement_history.clear_all()
    console.print(f"[green]Cleared {count} entries from history[/green]")


@app.callback()
def main():
    """
    Dr. Prompt

    Rewrites raw prompts into prompts tuned for Gemini, ChatGPT, Claude or
    Grok, and keeps a history of recent refinements.
    """
    pass


if __name__ == "__main__":
    app()
