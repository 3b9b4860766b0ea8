"""Command-line interface for DevTodo."""

import asyncio
import json
from pathlib import Path
from typing import List, Optional

import typer
from git import InvalidGitRepositoryError, NoSuchPathError, Repo
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from devtodo.logging_config import configure_logging
from devtodo.models import Priority, Settings, TaskSource
from devtodo.service import DevTodoService

app = typer.Typer(
    name="devtodo",
    help="Developer task list with git auto-completion and Claude chat task extraction",
    add_completion=False,
)
console = Console()

HOOK_SCRIPT = """#!/bin/sh
# DevTodo post-commit hook: completes tasks named in the commit message.
devtodo commit --repo-path "$(git rev-parse --show-toplevel)" >/dev/null 2>&1 || true
"""


def get_service() -> DevTodoService:
    """Build the service from DEVTODO_* settings."""
    settings = Settings()
    configure_logging(settings.log_level, settings.log_format)
    return DevTodoService.from_settings(settings)


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


def read_head_commit(repo_path: Path) -> dict:
    """Commit payload for the HEAD commit of a repository.

    Args:
        repo_path: Any path inside the working tree

    Returns:
        Dict with the subject line as message, repo, branch, short hash and
        author, the fields a post-commit hook reports
    """
    repo = Repo(repo_path, search_parent_directories=True)
    commit = repo.head.commit
    try:
        branch = repo.active_branch.name
    except TypeError:
        # Detached HEAD
        branch = None
    return {
        "message": commit.summary,
        "repo": Path(repo.working_tree_dir).name,
        "branch": branch,
        "hash": commit.hexsha[:7],
        "author": commit.author.name,
    }


# ============================================================================
# Tasks and commits
# ============================================================================


@app.command()
def commit(
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Commit message"),
    repo: Optional[str] = typer.Option(None, "--repo", help="Repository name"),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Branch name"),
    commit_hash: Optional[str] = typer.Option(None, "--hash", help="Commit hash"),
    author: Optional[str] = typer.Option(None, "--author", help="Commit author"),
    repo_path: Optional[Path] = typer.Option(
        None, "--repo-path", help="Read the HEAD commit of this repository instead"
    ),
) -> None:
    """Complete pending tasks whose title appears in a commit message."""
    if repo_path is not None:
        try:
            payload = read_head_commit(repo_path)
        except (InvalidGitRepositoryError, NoSuchPathError, ValueError) as e:
            _fail(e)
    else:
        payload = {
            "message": message,
            "repo": repo,
            "branch": branch,
            "hash": commit_hash,
            "author": author,
        }

    try:
        result = get_service().process_commit(payload)
    except Exception as e:
        _fail(e)

    if result.matched:
        console.print(f"[bold green]✓[/bold green] Completed {result.matched} task(s)")
        for task_id in result.tasks:
            console.print(f"  [cyan]{task_id}[/cyan]")
    else:
        console.print("[dim]No pending tasks matched[/dim]")


@app.command()
def add(
    title: str = typer.Argument(..., help="Task title"),
    priority: Priority = typer.Option(Priority.MEDIUM, "--priority", "-p", help="Task priority"),
    notes: Optional[str] = typer.Option(None, "--notes", help="Free text notes"),
) -> None:
    """Add a manual task."""
    try:
        task = get_service().create_task({"title": title, "priority": priority, "notes": notes})
    except Exception as e:
        _fail(e)

    console.print(f"[bold green]✓[/bold green] Created [cyan]{task.id}[/cyan] {task.title}")


@app.command(name="tasks")
def list_tasks(
    show_all: bool = typer.Option(False, "--all", "-a", help="Include completed tasks"),
    source: Optional[TaskSource] = typer.Option(None, "--source", "-s", help="Only tasks from this source"),
) -> None:
    """List tasks, newest first."""
    try:
        tasks = get_service().list_tasks(completed=None if show_all else False, source=source)
    except Exception as e:
        _fail(e)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Priority", style="yellow")
    table.add_column("Source", style="blue")
    table.add_column("Done", justify="center")
    table.add_column("Commit", style="dim")

    for task in tasks:
        table.add_row(
            task.id,
            task.title[:60],
            task.priority.value,
            task.source.value,
            "✓" if task.completed else "",
            task.git_commit_hash or "",
        )

    console.print(table)


@app.command()
def done(task_id: str = typer.Argument(..., help="Task id")) -> None:
    """Mark a task completed by hand."""
    try:
        task = get_service().update_task(task_id, {"completed": True})
    except Exception as e:
        _fail(e)

    console.print(f"[bold green]✓[/bold green] Completed {task.title}")


@app.command()
def delete(task_id: str = typer.Argument(..., help="Task id")) -> None:
    """Delete a task."""
    try:
        get_service().delete_task(task_id)
    except Exception as e:
        _fail(e)

    console.print(f"[bold green]✓[/bold green] Deleted {task_id}")


@app.command()
def repos() -> None:
    """List repositories that have reported commits."""
    try:
        tracked = get_service().list_repos()
    except Exception as e:
        _fail(e)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan")
    table.add_column("First seen", style="blue")
    table.add_column("Last commit", style="green")
    for repo in tracked:
        table.add_row(
            repo.name,
            repo.first_seen_at.strftime("%Y-%m-%d %H:%M"),
            repo.last_commit_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@app.command(name="forget-repo")
def forget_repo(name: str = typer.Argument(..., help="Repository name")) -> None:
    """Stop tracking a repository. Tasks it completed keep their provenance."""
    try:
        get_service().delete_repo(name)
    except Exception as e:
        _fail(e)

    console.print(f"[bold green]✓[/bold green] Forgot repository {name}")


@app.command(name="hook-script")
def hook_script() -> None:
    """Print a post-commit hook that reports commits to DevTodo."""
    typer.echo(HOOK_SCRIPT, nl=False)


# ============================================================================
# Extracted tasks
# ============================================================================


@app.command()
def extract() -> None:
    """Run chat task extraction now and wait for it."""
    service = get_service()
    try:
        report = asyncio.run(service.run_extraction())
    except Exception as e:
        _fail(e)

    console.print(f"[bold green]✓[/bold green] Extracted {report.tasks} tasks")
    console.print(
        f"[dim]{report.candidates} candidates, {report.skipped_dismissed} dismissed, "
        f"{report.duplicates} duplicates, {report.degraded} unclassified[/dim]"
    )

    stats = service.llm_stats()
    if "cache" in stats:
        cache_stats = stats["cache"]
        console.print("\n[bold]Cache Stats:[/bold]")
        console.print(f"  Hits: {cache_stats['hits']}")
        console.print(f"  Misses: {cache_stats['misses']}")
        console.print(f"  Hit Rate: {cache_stats['hit_rate']}")

    if "provider" in stats:
        provider_stats = stats["provider"]
        console.print("\n[bold]API Usage:[/bold]")
        console.print(f"  Requests: {provider_stats['total_requests']}")
        console.print(f"  Input Tokens: {provider_stats['total_tokens']['input']:,}")
        console.print(f"  Output Tokens: {provider_stats['total_tokens']['output']:,}")


@app.command()
def extracted(
    as_json: bool = typer.Option(False, "--json", help="Print the raw document"),
) -> None:
    """Show the current extracted-task list."""
    try:
        document = asyncio.run(get_service().extracted_tasks())
    except Exception as e:
        _fail(e)

    if as_json:
        typer.echo(document.model_dump_json(by_alias=True, indent=2))
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Category", style="yellow")
    table.add_column("Topic", style="blue")
    table.add_column("Project", style="green")
    table.add_column("Seen", justify="right")

    for task in document.tasks:
        table.add_row(
            task.id,
            task.title[:60],
            task.category.value,
            task.topic,
            task.project,
            str(task.similar_count),
        )

    console.print(table)
    if document.last_updated:
        console.print(f"[dim]Last updated {document.last_updated.isoformat()}[/dim]")


@app.command()
def dismiss(task_id: str = typer.Argument(..., help="Extracted task id")) -> None:
    """Dismiss an extracted task so later runs skip it."""
    try:
        asyncio.run(get_service().apply_task_action(task_id, "dismiss"))
    except Exception as e:
        _fail(e)

    console.print(f"[bold green]✓[/bold green] Dismissed {task_id}")


@app.command()
def restore(task_id: str = typer.Argument(..., help="Extracted task id")) -> None:
    """Forget a dismissal and re-run extraction."""
    service = get_service()

    async def restore_and_wait() -> None:
        await service.apply_task_action(task_id, "restore")
        await service.scheduler.wait_idle()

    try:
        asyncio.run(restore_and_wait())
    except Exception as e:
        _fail(e)

    console.print(f"[bold green]✓[/bold green] Restored {task_id}")


@app.command(name="import")
def import_task(
    task_id: str = typer.Argument(..., help="Extracted task id"),
    priority: Priority = typer.Option(Priority.MEDIUM, "--priority", "-p", help="Priority of the new task"),
) -> None:
    """Turn an extracted task into a real task."""
    try:
        task = asyncio.run(get_service().import_extracted_task(task_id, priority))
    except Exception as e:
        _fail(e)

    console.print(f"[bold green]✓[/bold green] Imported as [cyan]{task.id}[/cyan] {task.title}")


@app.command()
def dismissed() -> None:
    """List dismissed extracted tasks."""
    try:
        entries = asyncio.run(get_service().list_dismissed())
    except Exception as e:
        _fail(e)

    if not entries:
        console.print("[dim]Nothing dismissed[/dim]")
        return
    for entry in entries:
        console.print(f"  [cyan]{entry.id}[/cyan] [dim]{entry.dismissed_at.isoformat()}[/dim]")


@app.command()
def conversation(session_id: str = typer.Argument(..., help="Session id")) -> None:
    """Print a full conversation transcript."""
    try:
        session = asyncio.run(get_service().get_conversation(session_id))
    except Exception as e:
        _fail(e)

    if session is None:
        _fail(LookupError(f"Conversation not found: {session_id}"))

    console.print(f"[bold]{session.chat_title or session.session_id}[/bold] [dim]{session.project}[/dim]")
    for message in session.messages:
        style = "green" if message.role == "user" else "blue"
        console.print(f"\n[{style}]{message.role}[/{style}] [dim]{message.timestamp or ''}[/dim]")
        console.print(message.content, markup=False)


@app.command()
def conversations() -> None:
    """List the most recently active Claude conversations."""
    try:
        sessions = asyncio.run(get_service().recent_conversations())
    except Exception as e:
        _fail(e)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Session", style="cyan")
    table.add_column("Project", style="green")
    table.add_column("Last activity", style="dim")
    table.add_column("Messages", justify="right")
    table.add_column("Title", style="white")

    for session in sessions:
        table.add_row(
            session.session_id,
            session.project,
            session.last_activity or "",
            str(len(session.messages)),
            (session.chat_title or "")[:50],
        )

    console.print(table)


@app.command()
def history() -> None:
    """Show recent Claude prompts, newest first."""
    try:
        entries = asyncio.run(get_service().history())
    except Exception as e:
        _fail(e)

    if not entries:
        console.print("[dim]No Claude history[/dim]")
        return
    for entry in entries:
        console.print(f"[dim]{escape(entry.project or '')}[/dim] {escape(entry.display or '')}")


# ============================================================================
# Claude todos
# ============================================================================


@app.command()
def todos() -> None:
    """List Claude Code todos with their matching extracted task."""
    try:
        entries = asyncio.run(get_service().todos())
    except Exception as e:
        _fail(e)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Todo", style="white")
    table.add_column("Status", style="yellow")
    table.add_column("Session", style="dim")
    table.add_column("Matched task", style="cyan")

    for todo in entries:
        session = todo.session_id[:8] + (" *" if todo.is_recent_session else "")
        table.add_row(todo.content[:60], todo.status, session, todo.matched_task_id or "")

    console.print(table)


@app.command(name="sync-status")
def sync_status() -> None:
    """Show which Claude todos correspond to extracted tasks."""
    try:
        status = asyncio.run(get_service().sync_status())
    except Exception as e:
        _fail(e)

    console.print(f"[cyan]Claude todos:[/cyan] {status.total_claude_todos}")
    console.print(f"[cyan]Extracted tasks:[/cyan] {status.total_extracted_tasks}")
    console.print(f"[cyan]Matched:[/cyan] {len(status.matches)}")
    console.print(f"[cyan]Completed in Claude:[/cyan] {status.completed_in_claude}")


# ============================================================================
# Background jobs
# ============================================================================


def _print_actions(actions: List[dict]) -> None:
    for action in actions:
        console.print(f"[yellow]{action['status']}[/yellow] {action['text']}")


async def _watch(service: DevTodoService, poll_seconds: float) -> None:
    service.start_background_jobs()
    try:
        while True:
            await asyncio.sleep(poll_seconds)
            _print_actions(service.drain_pending_actions())
    finally:
        await service.shutdown()


@app.command()
def watch(
    poll: float = typer.Option(5.0, "--poll", help="Seconds between checks for new actions"),
) -> None:
    """Run timed extraction and Claude todo polling until interrupted."""
    service = get_service()
    console.print("[bold green]Watching[/bold green] (Ctrl-C to stop)")
    try:
        asyncio.run(_watch(service, poll))
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped[/dim]")


@app.command(name="clear-cache")
def clear_cache(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation prompt"),
) -> None:
    """Clear cached classification completions."""
    service = get_service()
    stats = service.llm_stats()
    if "cache" not in stats:
        console.print("[yellow]Caching is disabled[/yellow]")
        return

    console.print(f"[bold]Cached completions:[/bold] {stats['cache']['cached_completions']}")
    if not force and not typer.confirm("Are you sure you want to clear the cache?"):
        console.print("[yellow]Cancelled[/yellow]")
        return

    service.clear_llm_cache()
    console.print("[bold green]✓[/bold green] Cache cleared")


@app.command()
def config() -> None:
    """Show the effective settings."""
    settings = Settings()
    data = settings.model_dump(mode="json", exclude={"litellm_api_key"})
    data["database_url"] = settings.resolved_database_url()
    typer.echo(json.dumps(data, indent=2))


@app.command()
def version() -> None:
    """Show version information."""
    from devtodo import __version__

    console.print(f"[bold]DevTodo[/bold] version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
