"""threadkeep CLI entry point."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from threadkeep import __version__
from threadkeep.context.capture import (
    build_entry,
    capture_auto,
    save_and_sync,
    split_list,
    sync_branch_context,
)
from threadkeep.context.prompt import format_log_line, render_prompt
from threadkeep.context.store import (
    STORE_IGNORE_ENTRY,
    STORE_IGNORE_HEADER,
    StoreError,
    init_store,
    is_initialized,
    load_all,
    load_branch,
)
from threadkeep.infrastructure import git
from threadkeep.infrastructure.config import (
    ConfigError,
    get_config_value,
    load_config,
    new_config,
    save_config,
    set_config_value,
)
from threadkeep.infrastructure.git import GitError
from threadkeep.rules.engine import TargetError, list_rules, remove_rules, write_rules
from threadkeep.rules.ignore_list import remove_from_ignore_list, update_ignore_list
from threadkeep.rules.registry import TARGET_IDS

if TYPE_CHECKING:
    from threadkeep.infrastructure.llm import LLMConfig

logger = logging.getLogger(__name__)

SHARE_COMMIT_MESSAGE = "chore: share threadkeep context with the team"

_project_option = click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: repository containing the current directory).",
)


def _project_root(project: Path | None) -> Path:
    if project is not None:
        return project
    try:
        return git.find_repo_root(Path.cwd())
    except GitError:
        return Path.cwd()


def _require_initialized(project_root: Path) -> None:
    if not is_initialized(project_root):
        click.echo("Error: threadkeep is not initialized. Run `threadkeep init` first.", err=True)
        sys.exit(1)


def _report_errors(errors: list[TargetError]) -> None:
    for error in errors:
        click.echo(f"Error: {error.path}: {error.message}", err=True)


def _configure_logging(level: int) -> None:
    """Route threadkeep log records to stderr; stdout stays free for command output."""
    from rich.console import Console
    from rich.logging import RichHandler

    package_logger = logging.getLogger("threadkeep")
    package_logger.setLevel(level)
    if not package_logger.handlers:
        package_logger.addHandler(
            RichHandler(console=Console(stderr=True), show_time=False, show_path=False)
        )


def _format_value(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value) if value else "(all)"
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "(not set)"
    return str(value)


@click.group()
@click.version_option(version=__version__, prog_name="threadkeep")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """threadkeep - persistent AI coding context across sessions and tools."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    _configure_logging(logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING)


# --- init ---


@main.command()
@click.option("--no-hooks", is_flag=True, help="Do not install git hooks.")
@click.option("--no-rules", is_flag=True, help="Do not write assistant rule files.")
@_project_option
def init(*, no_hooks: bool, no_rules: bool, project: Path | None) -> None:
    """Create .threadkeep/, rule files and git hooks for this repository."""
    from threadkeep.infrastructure.hooks import install_hooks

    project_root = _project_root(project)
    if not (project_root / ".git").exists():
        click.echo("Error: not a git repository. Run `git init` first.", err=True)
        sys.exit(1)

    if is_initialized(project_root):
        config = load_config(project_root)
        click.echo("threadkeep already initialized; refreshing rule files.")
    else:
        config = new_config(git.repo_name(project_root))
        save_config(project_root, config)
        init_store(project_root)
        click.echo(f"Initialized threadkeep in {project_root / '.threadkeep'}")
        if update_ignore_list(project_root, [STORE_IGNORE_ENTRY], header=STORE_IGNORE_HEADER):
            click.echo(f"  Added {STORE_IGNORE_ENTRY} to .gitignore (see `threadkeep share`)")

    failed = False
    if not no_rules:
        try:
            result = write_rules(project_root, config.rule_targets or None)
        except KeyError as exc:
            click.echo(f"Error: unknown rule target {exc}", err=True)
            sys.exit(1)
        for written in result.written:
            click.echo(f"  {written.action.value:<8} {written.path}")
        _report_errors(result.errors)
        failed = not result.ok

    if not no_hooks:
        try:
            installed = install_hooks(project_root)
        except GitError as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(1)
        if installed:
            click.echo(f"Installed git hooks: {', '.join(installed)}")

    if failed:
        sys.exit(1)


# --- save / resume / log ---


@main.command()
@click.argument("message", required=False)
@click.option("--auto", "auto", is_flag=True, help="Extract context from AI session files.")
@click.option("--goal", default=None, help="Goal or ticket reference.")
@click.option("--approaches", default=None, help="Approaches tried, separated by ';;'.")
@click.option("--decisions", default=None, help="Key decisions, separated by ';;'.")
@click.option("--state", "current_state", default=None, help="Where things ended up.")
@click.option("--next-steps", default=None, help="Next steps, separated by ';;'.")
@click.option("--blockers", default=None, help="Blockers, separated by ';;'.")
@click.option("--assignee", default=None, help="Who picks this up next.")
@click.option("--handoff-note", default=None, help="Note for the next person.")
@_project_option
def save(  # noqa: PLR0913
    message: str | None,
    *,
    auto: bool,
    goal: str | None,
    approaches: str | None,
    decisions: str | None,
    current_state: str | None,
    next_steps: str | None,
    blockers: str | None,
    assignee: str | None,
    handoff_note: str | None,
    project: Path | None,
) -> None:
    """Save the current working context for this branch.

    List options take several values separated by ';;'.
    """
    project_root = _project_root(project)
    _require_initialized(project_root)
    config = load_config(project_root)

    if auto:
        entry = capture_auto(project_root, message, config)
        if entry is None:
            click.echo("Skipped: a structured save was made recently.")
            return
    else:
        if not message:
            click.echo("Error: a message is required (or use --auto).", err=True)
            sys.exit(1)
        entry = build_entry(
            git.read_snapshot(project_root),
            message,
            goal=goal,
            approaches=split_list(approaches),
            decisions=split_list(decisions),
            current_state=current_state or message,
            next_steps=split_list(next_steps),
            blockers=split_list(blockers),
            assignee=assignee,
            handoff_note=handoff_note,
        )

    try:
        outcome = save_and_sync(project_root, entry, config)
    except StoreError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    click.echo(f"Context saved for branch: {entry.branch}")
    click.echo(f"  Task: {entry.task}")
    if entry.source:
        click.echo(f"  Source: {entry.source}")
    if outcome.injected is not None and outcome.injected.count:
        click.echo(f"  Updated {outcome.injected.count} rule file(s)")


@main.command()
@click.option("--branch", default=None, help="Branch to resume (default: current).")
@click.option("--inject", is_flag=True, help="Also push the briefing into rule files.")
@_project_option
def resume(*, branch: str | None, inject: bool, project: Path | None) -> None:
    """Print the context briefing for a branch."""
    project_root = _project_root(project)
    _require_initialized(project_root)

    target = branch or git.current_branch(project_root)
    entries = load_branch(project_root, target)

    if inject:
        result = sync_branch_context(project_root, target)
        _report_errors(result.errors)

    if not entries:
        click.echo(f"No context found for branch: {target}")
        click.echo('Save some with: threadkeep save "what you are working on"')
        return
    click.echo(render_prompt(entries))


@main.command("log")
@click.option("--all", "all_branches", is_flag=True, help="Show entries from every branch.")
@click.option("-n", "count", type=int, default=10, show_default=True, help="Max entries.")
@_project_option
def log_cmd(*, all_branches: bool, count: int, project: Path | None) -> None:
    """Show context history."""
    project_root = _project_root(project)
    _require_initialized(project_root)

    if all_branches:
        entries = load_all(project_root)[:count]
        lines = [format_log_line(e, with_branch=True) for e in entries]
    else:
        branch = git.current_branch(project_root)
        entries = list(reversed(load_branch(project_root, branch)))[:count]
        lines = [format_log_line(e) for e in entries]

    if not lines:
        click.echo("No context entries found.")
        return
    for line in lines:
        click.echo(line)


# --- share ---


@main.command()
@click.option("--stop", is_flag=True, help="Keep .threadkeep/ local again.")
@_project_option
def share(*, stop: bool, project: Path | None) -> None:
    """Commit .threadkeep/ so teammates get this repository's context.

    With --stop, .threadkeep/ goes back into .gitignore. Files already
    committed stay in git history.
    """
    project_root = _project_root(project)
    _require_initialized(project_root)

    if stop:
        update_ignore_list(project_root, [STORE_IGNORE_ENTRY], header=STORE_IGNORE_HEADER)
        click.echo("Stopped sharing threadkeep context.")
        click.echo(f"  {STORE_IGNORE_ENTRY} is in .gitignore again")
        click.echo(f"  Untrack committed files with: git rm -r --cached {STORE_IGNORE_ENTRY}")
        return

    remove_from_ignore_list(project_root, [STORE_IGNORE_ENTRY], header=STORE_IGNORE_HEADER)
    paths = [STORE_IGNORE_ENTRY]
    if (project_root / ".gitignore").exists():
        paths.append(".gitignore")
    try:
        git.commit_paths(project_root, paths, SHARE_COMMIT_MESSAGE)
    except GitError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    click.echo("threadkeep context is now shared.")
    click.echo(f"  Committed: {SHARE_COMMIT_MESSAGE}")
    click.echo("  Push to share: git push")
    click.echo("  Stop sharing: threadkeep share --stop")


# --- rules ---


@main.group()
def rules() -> None:
    """Manage assistant rule files."""


@rules.command("generate")
@click.option(
    "--target",
    "targets",
    multiple=True,
    type=click.Choice(TARGET_IDS),
    help="Target to write (repeatable, default: config rule_targets or all).",
)
@click.option("--no-mcp", is_flag=True, help="Do not register the MCP server.")
@_project_option
def rules_generate(*, targets: tuple[str, ...], no_mcp: bool, project: Path | None) -> None:
    """Write threadkeep instructions into each assistant's rule file."""
    project_root = _project_root(project)
    selected = list(targets) or load_config(project_root).rule_targets or None

    try:
        result = write_rules(project_root, selected, include_servers=not no_mcp)
    except KeyError as exc:
        click.echo(f"Error: unknown rule target {exc}", err=True)
        sys.exit(1)

    for written in result.written:
        click.echo(f"  {written.action.value:<8} {written.path}")
    if result.ignored:
        click.echo(f"Added to .gitignore: {', '.join(result.ignored)}")
    if not result.ok:
        _report_errors(result.errors)
        sys.exit(1)


@rules.command("remove")
@_project_option
def rules_remove(*, project: Path | None) -> None:
    """Remove threadkeep content from every rule file."""
    project_root = _project_root(project)
    result = remove_rules(project_root)
    for path in result.removed:
        click.echo(f"  removed  {path}")
    if not result.removed:
        click.echo("Nothing to remove.")
    if result.errors:
        _report_errors(result.errors)
        sys.exit(1)


@rules.command("list")
@_project_option
def rules_list(*, project: Path | None) -> None:
    """Show which rule targets are installed."""
    from rich.console import Console
    from rich.table import Table

    project_root = _project_root(project)
    table = Table(title="Rule targets", box=None, padding=(0, 1))
    table.add_column("target", style="cyan")
    table.add_column("file")
    table.add_column("installed", justify="center")
    table.add_column("mcp", justify="center")
    for status in list_rules(project_root):
        table.add_row(
            status.target_id,
            status.file_path,
            "[green]yes[/green]" if status.installed else "[dim]no[/dim]",
            "[green]yes[/green]" if status.has_server_config else "[dim]-[/dim]",
        )
    Console().print(table)


# --- hooks ---


@main.command("install-hooks")
@click.option("--remove", is_flag=True, help="Remove threadkeep's git hook snippets.")
@_project_option
def install_hooks_cmd(*, remove: bool, project: Path | None) -> None:
    """Install or remove the post-commit and post-checkout hooks."""
    from threadkeep.infrastructure.hooks import install_hooks, remove_hooks

    project_root = _project_root(project)
    try:
        changed = remove_hooks(project_root) if remove else install_hooks(project_root)
    except GitError as exc:
        click.echo(f"Error: {exc}. Is this a git repository?", err=True)
        sys.exit(1)

    verb = "Removed" if remove else "Installed"
    if changed:
        click.echo(f"{verb} hooks: {', '.join(changed)}")
    else:
        click.echo(f"No hooks {'to remove' if remove else 'changed (already installed)'}.")


# --- config ---


@main.group("config")
def config_group() -> None:
    """Read and change .threadkeep/config.yml."""


@config_group.command("list")
@_project_option
def config_list(*, project: Path | None) -> None:
    """Show all configuration values."""
    project_root = _project_root(project)
    _require_initialized(project_root)
    for key, value in load_config(project_root).to_dict().items():
        click.echo(f"{key}: {_format_value(value)}")


@config_group.command("get")
@click.argument("key")
@_project_option
def config_get(key: str, *, project: Path | None) -> None:
    """Print one configuration value."""
    project_root = _project_root(project)
    _require_initialized(project_root)
    try:
        value = get_config_value(load_config(project_root), key)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    click.echo(_format_value(value))


@config_group.command("set")
@click.argument("key")
@click.argument("value")
@_project_option
def config_set(key: str, value: str, *, project: Path | None) -> None:
    """Change one configuration value."""
    project_root = _project_root(project)
    _require_initialized(project_root)
    config = load_config(project_root)
    try:
        parsed = set_config_value(config, key, value)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    save_config(project_root, config)
    click.echo(f"{key} = {_format_value(parsed)}")


# --- watch ---


@main.command("watch")
@click.option(
    "--interval",
    type=int,
    default=None,
    help="Minutes of activity between auto-saves (default: config watch_interval_minutes).",
)
@click.option("--debounce", default=1600, show_default=True, help="Debounce delay in ms.")
@_project_option
def watch_cmd(*, interval: int | None, debounce: int, project: Path | None) -> None:
    """Auto-save context while files change (Ctrl+C to stop)."""
    from threadkeep.infrastructure.watcher import watch

    project_root = _project_root(project)
    _require_initialized(project_root)
    config = load_config(project_root)

    def _auto_save(changed: int) -> None:
        message = f"Auto-saved by watcher ({changed} files changed)"
        entry = capture_auto(project_root, message, config)
        if entry is None:
            return
        try:
            save_and_sync(project_root, entry, config)
        except StoreError as exc:
            logger.warning("Auto-save skipped: %s", exc)

    watch(
        project_root,
        interval_minutes=interval or config.watch_interval_minutes,
        debounce_ms=debounce,
        on_save=_auto_save,
    )


# --- LLM ---


def _llm_config(project_root: Path) -> LLMConfig:
    from threadkeep.infrastructure.llm import parse_llm_config

    raw = load_config(project_root).llm
    if raw is None:
        click.echo(
            "Error: no llm section in .threadkeep/config.yml "
            "(provider, model, api_key_env).",
            err=True,
        )
        sys.exit(1)
    try:
        return parse_llm_config(raw)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@main.command()
@_project_option
def summarize(*, project: Path | None) -> None:
    """Save an entry summarised by the configured LLM from the diff and commits."""
    from threadkeep.infrastructure.llm import LLMError
    from threadkeep.infrastructure.llm import summarize as llm_summarize

    project_root = _project_root(project)
    _require_initialized(project_root)
    llm_config = _llm_config(project_root)

    snapshot = git.read_snapshot(project_root)
    history = load_branch(project_root, snapshot.branch)
    previous = history[-1].current_state if history else ""
    try:
        summary = llm_summarize(
            llm_config, git.diff_stat(project_root), snapshot.recent_commits, previous
        )
    except LLMError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    entry = build_entry(
        snapshot,
        summary.task,
        current_state=summary.current_state,
        next_steps=summary.next_steps,
        source="llm-summary",
    )
    try:
        save_and_sync(project_root, entry, load_config(project_root))
    except StoreError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    click.echo(f"Context saved for branch: {entry.branch}")
    click.echo(f"  Task: {entry.task}")


@main.command()
@_project_option
def suggest(*, project: Path | None) -> None:
    """Ask the configured LLM for next steps on this branch."""
    from threadkeep.infrastructure.llm import LLMError, suggest_next_steps

    project_root = _project_root(project)
    _require_initialized(project_root)
    llm_config = _llm_config(project_root)

    branch = git.current_branch(project_root)
    entries = load_branch(project_root, branch)
    if not entries:
        click.echo(f"No context found for branch: {branch}")
        return
    try:
        steps = suggest_next_steps(llm_config, render_prompt(entries))
    except LLMError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    for number, step in enumerate(steps, 1):
        click.echo(f"{number}. {step}")


# --- MCP ---


@main.command("mcp-serve")
@_project_option
def mcp_serve(*, project: Path | None) -> None:
    """Run the threadkeep MCP server (stdio transport)."""
    import anyio

    from threadkeep.services.mcp_server import create_server

    project_root = _project_root(project)
    server = create_server(project_root)

    async def _run() -> None:
        from mcp import stdio_server

        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )

    anyio.run(_run)
