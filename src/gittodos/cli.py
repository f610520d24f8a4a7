"""Command-line interface for gittodos."""

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from gittodos.attribution import AttributionEngine, ScanStats
from gittodos.errors import BlameUnresolved, GitTodosError
from gittodos.extraction import GitHistoryProvider
from gittodos.logging_config import configure_logging
from gittodos.models import ScanConfig, Settings
from gittodos.report import build_report, render_json, render_text, render_tree
from gittodos.report.renderers import NO_TODOS_MESSAGE, humanize_delta

app = typer.Typer(
    name="gittodos",
    help="Find TODO comments and attribute them to the commits, tags and authors behind them",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)


def _print_stats(stats: ScanStats) -> None:
    err_console.print("\n[bold]Scan Stats:[/bold]")
    err_console.print(f"  Files scanned: {stats.files_scanned}/{stats.files_listed}")
    err_console.print(f"  Files skipped: {stats.files_skipped}")
    err_console.print(f"  Files with TODOs: {stats.files_with_matches}")
    err_console.print(f"  TODOs: {stats.matches}")
    err_console.print(f"  Uncommitted lines: {stats.lines_unresolved}")
    if stats.tags_ambiguous:
        err_console.print(f"  Ambiguous tags: {stats.tags_ambiguous}")


@app.command()
def scan(
    repo_path: Path = typer.Argument(Path("."), help="Path to Git repository"),
    revision: Optional[str] = typer.Option(None, "--revision", "-r", help="Revision to scan (default: working tree)"),
    base: Optional[str] = typer.Option(None, "--base", "-b", help="Only scan files changed since this ref"),
    group_by: Optional[str] = typer.Option(None, "--group-by", "-g", help="Grouping: commit, day, week or month"),
    tokens: Optional[List[str]] = typer.Option(None, "--token", "-t", help="Marker token (repeatable, default: todo)"),
    require_comment: bool = typer.Option(False, "--require-comment", help="Only match markers inside comments"),
    first_parent: bool = typer.Option(False, "--first-parent", help="Follow first parents only when resolving tags"),
    output_format: str = typer.Option("tree", "--format", "-f", help="Output format: tree, text or json"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the report to a file"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Worker threads"),
    label_message: bool = typer.Option(False, "--label-message", help="Label commits by message instead of hash"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Scan a repository for TODOs and group them by commit, tag and author."""
    settings = Settings()
    configure_logging("INFO" if verbose else settings.log_level, settings.log_format)

    try:
        if output_format not in ("tree", "text", "json"):
            raise ValueError(f"Unknown format: {output_format} (expected tree, text or json)")

        options = {
            "repo_path": repo_path,
            "revision": revision,
            "base_ref": base,
            "tokens": tokens or settings.tokens,
            "require_comment": require_comment,
            "first_parent": first_parent,
            "group_by": group_by or settings.group_by,
            "max_file_size_bytes": settings.max_file_size_bytes,
        }
        if workers or settings.max_workers:
            options["max_workers"] = workers or settings.max_workers
        config = ScanConfig(**options)

        provider = GitHistoryProvider(config.repo_path, first_parent=config.first_parent)
        engine = AttributionEngine(provider, config)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=err_console,
            transient=True,
        ) as progress:
            task = progress.add_task("Scanning for TODOs...", total=None)
            result = engine.scan()
            progress.update(task, completed=True)

        tree = build_report(result.records, group_by=config.group_by)

        if verbose:
            _print_stats(result.stats)

        if output_format == "json":
            report = render_json(tree)
        elif output_format == "text" or output:
            report = render_text(tree)
        else:
            report = None

        if output:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(report, encoding="utf-8")
            err_console.print(f"[bold green]✓[/bold green] Saved to {output}")
        elif report is not None:
            typer.echo(report, nl=False)
        elif tree.is_empty:
            console.print(NO_TODOS_MESSAGE)
        else:
            for rendered in render_tree(tree, tokens=config.tokens, use_message=label_message):
                console.print(rendered)
                console.print()

    except Exception as e:
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def blame(
    file_path: str = typer.Argument(..., help="File path relative to the repository root"),
    line: int = typer.Argument(..., min=1, help="1-based line number"),
    repo_path: Path = typer.Option(Path("."), "--repo", help="Path to Git repository"),
    revision: Optional[str] = typer.Option(None, "--revision", "-r", help="Revision (default: working tree)"),
) -> None:
    """Show the commit and nearest tag behind a single line."""
    configure_logging(Settings().log_level)
    try:
        provider = GitHistoryProvider(repo_path)
        resolved = provider.resolve_revision(revision)
        try:
            commit = provider.blame_line(resolved, file_path, line)
        except BlameUnresolved:
            console.print(f"{file_path}:{line} is not committed")
            return

        tag = None if commit.is_uncommitted else provider.nearest_tag(commit.hash)

        console.print(f"[cyan]Commit:[/cyan] {commit.hash}")
        console.print(f"[cyan]Author:[/cyan] {commit.author_name} <{commit.author_email}>")
        console.print(f"[cyan]Date:[/cyan] {commit.timestamp} ({humanize_delta(commit.timestamp)})")
        console.print(f"[cyan]Message:[/cyan] {commit.message_summary}")
        if tag is None:
            console.print("[cyan]Tag:[/cyan] (none)")
        else:
            console.print(f"[cyan]Tag:[/cyan] {tag.name} ({tag.distance} commits away)")

    except GitTodosError as e:
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def revisions(
    repo_path: Path = typer.Argument(Path("."), help="Path to Git repository"),
    max_count: int = typer.Option(20, "--max", "-n", help="Maximum commits to show"),
    revision: Optional[str] = typer.Option(None, "--revision", "-r", help="Revision to list from (default: HEAD)"),
) -> None:
    """List recent commits with their nearest tag."""
    configure_logging(Settings().log_level)
    try:
        provider = GitHistoryProvider(repo_path)

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Hash", style="cyan", width=10)
        table.add_column("Author", style="green")
        table.add_column("Date", style="blue")
        table.add_column("Tag", style="yellow")
        table.add_column("Message", style="white")

        for commit in provider.list_revisions(revision, max_count=max_count):
            tag = provider.nearest_tag(commit.hash)
            table.add_row(
                commit.short_hash,
                commit.author_name[:20],
                commit.timestamp.strftime("%Y-%m-%d %H:%M") if commit.timestamp else "",
                tag.name if tag else "",
                commit.message_summary[:60],
            )

        console.print(table)

    except GitTodosError as e:
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
