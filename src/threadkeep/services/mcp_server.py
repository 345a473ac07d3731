"""MCP server: stdio-based tool server for AI agents.

The first tool call of a server process (other than ``threadkeep_resume``
itself) gets the current branch's briefing prepended, so a fresh session
sees the previous context without asking for it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import mcp
from mcp.server import Server
from mcp.types import TextContent

from threadkeep import __version__
from threadkeep.context.capture import build_entry, save_and_sync
from threadkeep.context.prompt import format_log_line, render_prompt
from threadkeep.context.store import StoreError, is_initialized, load_all, load_branch
from threadkeep.infrastructure import git
from threadkeep.infrastructure.config import load_config

if TYPE_CHECKING:
    from pathlib import Path

NOT_INITIALIZED = "threadkeep is not initialized. Run `threadkeep init` first."

RESUME_BANNER = "=== Auto-resumed context from previous session ==="
RESUME_FOOTER = "=== End of auto-resumed context ==="


@dataclass
class SessionState:
    """Per-process state: whether the auto-resume briefing was already sent."""

    resumed: bool = False

    def auto_resume_prefix(self, project_root: Path, *, is_resume_call: bool) -> str:
        if self.resumed or is_resume_call:
            self.resumed = True
            return ""
        self.resumed = True

        if not is_initialized(project_root):
            return ""
        entries = load_branch(project_root, git.current_branch(project_root))
        if not entries:
            return ""
        briefing = render_prompt(entries).rstrip()
        return "\n".join([RESUME_BANNER, "", briefing, "", RESUME_FOOTER, "", "---", "", ""])


# --- Tool handler functions (sync, testable without transport) ---


def handle_resume(project_root: Path, branch: str | None = None) -> str:
    """Briefing for *branch* (default: checked-out branch)."""
    if not is_initialized(project_root):
        return NOT_INITIALIZED
    target = branch or git.current_branch(project_root)
    entries = load_branch(project_root, target)
    if not entries:
        return f"No context found for branch: {target}. Run `threadkeep save` first."
    return render_prompt(entries)


def handle_save(
    project_root: Path,
    *,
    message: str,
    goal: str | None = None,
    approaches: list[str] | None = None,
    decisions: list[str] | None = None,
    current_state: str | None = None,
    next_steps: list[str] | None = None,
    blockers: list[str] | None = None,
) -> str:
    """Save a structured entry and refresh rule-file context."""
    if not is_initialized(project_root):
        return NOT_INITIALIZED
    snapshot = git.read_snapshot(project_root)
    entry = build_entry(
        snapshot,
        message,
        goal=goal,
        approaches=approaches or [],
        decisions=decisions or [],
        current_state=current_state or message,
        next_steps=next_steps or [],
        blockers=blockers or [],
    )
    save_and_sync(project_root, entry, load_config(project_root))
    return (
        f"Context saved for branch: {snapshot.branch}\n"
        f"{len(snapshot.files_changed)} files changed, "
        f"{len(snapshot.recent_commits)} recent commits captured."
    )


def handle_log(project_root: Path, *, all_branches: bool = False, count: int = 10) -> str:
    """History of the current branch, or of all branches newest first."""
    if not is_initialized(project_root):
        return NOT_INITIALIZED

    if all_branches:
        entries = load_all(project_root)[:count]
        if not entries:
            return "No context entries found."
        lines = [format_log_line(e, with_branch=True) for e in entries]
        return "All branches:\n\n" + "\n".join(lines)

    branch = git.current_branch(project_root)
    entries = load_branch(project_root, branch)
    if not entries:
        return f"No context for branch: {branch}"
    lines = [format_log_line(e) for e in reversed(entries[-count:])]
    return f"Branch {branch}:\n\n" + "\n".join(lines)


# --- MCP Server creation ---

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

_TOOLS = [
    mcp.Tool(
        name="threadkeep_resume",
        description=(
            "Get the context briefing for the current or given branch: task, "
            "approaches tried, decisions, current state and next steps."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "branch": {
                    "type": "string",
                    "description": "Branch to resume. Defaults to the current branch.",
                },
            },
        },
    ),
    mcp.Tool(
        name="threadkeep_save",
        description=(
            "Save the current coding context with structured fields. Call before "
            "finishing a task so the next session can continue from here."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "message": {
                    "type": "string",
                    "description": "What you were working on (one line)",
                },
                "goal": {"type": "string", "description": "Goal or ticket reference"},
                "approaches": {**_STRING_LIST, "description": "Approaches tried"},
                "decisions": {**_STRING_LIST, "description": "Key decisions made"},
                "current_state": {"type": "string", "description": "Where things ended up"},
                "next_steps": {**_STRING_LIST, "description": "What comes next"},
                "blockers": {**_STRING_LIST, "description": "Anything blocking progress"},
            },
            "required": ["message"],
        },
    ),
    mcp.Tool(
        name="threadkeep_log",
        description="View context history for the current branch or all branches.",
        inputSchema={
            "type": "object",
            "properties": {
                "all": {"type": "boolean", "default": False, "description": "All branches"},
                "count": {"type": "integer", "default": 10, "description": "Max entries"},
            },
        },
    ),
]


def create_server(project_root: Path) -> Server:
    """Create and configure the MCP server for a project."""
    server = Server(
        name="threadkeep",
        version=__version__,
        instructions="threadkeep keeps AI coding context (intent, decisions, state) per branch.",
    )
    state = SessionState()

    @server.list_tools()  # type: ignore[no-untyped-call,untyped-decorator]
    async def _list_tools() -> list[mcp.Tool]:
        return _TOOLS

    @server.call_tool()  # type: ignore[untyped-decorator]
    async def _call_tool(
        name: str,
        arguments: dict[str, Any] | None,
    ) -> list[TextContent]:
        try:
            text = _dispatch_tool(project_root, name, arguments or {}, state=state)
        except (KeyError, ValueError, StoreError) as exc:
            text = f"Error: {exc}"
        return [TextContent(type="text", text=text)]

    return server


def _dispatch_tool(
    project_root: Path,
    name: str,
    args: dict[str, Any],
    state: SessionState | None = None,
) -> str:
    """Route tool call to the appropriate handler."""
    prefix = ""
    if state is not None:
        is_resume = name == "threadkeep_resume"
        prefix = state.auto_resume_prefix(project_root, is_resume_call=is_resume)

    if name == "threadkeep_resume":
        return handle_resume(project_root, branch=args.get("branch"))
    if name == "threadkeep_save":
        return prefix + handle_save(
            project_root,
            message=args["message"],
            goal=args.get("goal"),
            approaches=args.get("approaches"),
            decisions=args.get("decisions"),
            current_state=args.get("current_state"),
            next_steps=args.get("next_steps"),
            blockers=args.get("blockers"),
        )
    if name == "threadkeep_log":
        return prefix + handle_log(
            project_root,
            all_branches=bool(args.get("all", False)),
            count=int(args.get("count", 10)),
        )

    msg = f"Unknown tool: {name}"
    raise ValueError(msg)
