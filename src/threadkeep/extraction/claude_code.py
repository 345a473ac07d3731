"""Claude Code sessions: ``~/.claude/projects/<encoded repo path>/``.

Two artifacts are read, most structured first: the per-project ``memory/``
notes and the newest ``*.jsonl`` transcript.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from threadkeep.extraction import markdown
from threadkeep.extraction.conversation import first_line, follow_up_requests, text_of
from threadkeep.extraction.miner import (
    DECISION_WINDOW,
    mine_approaches,
    mine_current_state,
    mine_decisions,
    mine_next_steps,
    strip_list_marker,
)
from threadkeep.extraction.models import ExtractedContext, make_context, resolve_roots
from threadkeep.extraction.readers import (
    TRANSCRIPT_TAIL_LINES,
    list_dirs,
    list_files,
    read_jsonl_tail,
    read_text,
)

if TYPE_CHECKING:
    from pathlib import Path

ROOTS = ("~/.claude/projects",)

_INTENT_MESSAGES = 3
_TASK_LINE_LIMIT = 300
_TASK_MAX_CHARS = 200
_MIN_ASSISTANT_CHARS = 20
_MEMORY_SECTION_LINES = 5

_LABEL_PREFIX_RE = re.compile(r"^[-*]\s*\*\*.*?\*\*:\s*")


def encode_project_path(repo_path: Path) -> str:
    """Directory name Claude Code uses for *repo_path*."""
    return re.sub(r"[^A-Za-z0-9]", "-", str(repo_path))


def find_project_dir(projects_dir: Path, repo_path: Path) -> Path | None:
    encoded = encode_project_path(repo_path)
    candidates = list_dirs(projects_dir)
    for candidate in candidates:
        if candidate.name == encoded:
            return candidate
    for candidate in candidates:
        if encoded.endswith(candidate.name) or candidate.name.endswith(encoded.lstrip("-")):
            return candidate
    return None


def _section_lines(text: str, heading: str) -> list[str]:
    body = markdown.section_body(text, heading)
    if not body:
        return []
    lines = [line for line in body.splitlines() if line.strip()]
    cleaned = (strip_list_marker(line) for line in lines[:_MEMORY_SECTION_LINES])
    return [line for line in cleaned if len(line) > 10]


def parse_memory(memory_dir: Path) -> ExtractedContext | None:
    """Read the ``memory/*.md`` notes: project line, conventions, patterns."""
    files = list_files(memory_dir, (".md",))
    if not files:
        return None

    task = ""
    decisions: list[str] = []
    approaches: list[str] = []
    for path in sorted(files):
        content = read_text(path)
        if path.name == "MEMORY.md":
            body = markdown.section_body(content, r"Project\s*(?:Location|Overview)?")
            if body:
                task = _LABEL_PREFIX_RE.sub("", first_line(body)).strip()
        decisions.extend(_section_lines(content, r"Conventions?"))
        approaches.extend(_section_lines(content, r"Patterns?"))

    if not task and not decisions:
        return None
    return make_context(
        task or "Project session (from Claude Code memory)",
        source="claude-code-memory",
        approaches=approaches,
        decisions=decisions,
        current_state="Loaded from Claude Code memory files",
    )


def _entry_text(entry: Any) -> str:
    message = entry.get("message")
    if not isinstance(message, dict):
        return ""
    return text_of(message.get("content")).strip()


def parse_transcript(path: Path) -> ExtractedContext | None:
    """Intent from the first user messages, state from the last assistant ones."""
    intent: list[str] = []
    assistant: list[str] = []
    for entry in read_jsonl_tail(path, TRANSCRIPT_TAIL_LINES):
        if not isinstance(entry, dict):
            continue
        text = _entry_text(entry)
        if len(text) < 5:
            continue
        kind = entry.get("type")
        if kind == "user" and len(intent) < _INTENT_MESSAGES:
            intent.append(text)
        elif kind == "assistant" and len(text) > _MIN_ASSISTANT_CHARS:
            assistant.append(text)

    if not intent:
        return None

    line = first_line(intent[0])
    task = line if len(line) < _TASK_LINE_LIMIT else intent[0][:_TASK_MAX_CHARS]

    recent = assistant[-DECISION_WINDOW:]
    approaches = follow_up_requests(intent, limit=_INTENT_MESSAGES, width=_TASK_MAX_CHARS)
    approaches.extend(mine_approaches(recent))
    return make_context(
        task,
        source="claude-code-session",
        approaches=approaches,
        decisions=mine_decisions(recent),
        current_state=mine_current_state(recent) or "Session data parsed from Claude Code",
        next_steps=mine_next_steps(recent),
    )


def attempt(repo_path: Path) -> ExtractedContext | None:
    (projects_dir,) = resolve_roots(ROOTS, repo_path)
    if not projects_dir.is_dir():
        return None
    project_dir = find_project_dir(projects_dir, repo_path)
    if project_dir is None:
        return None

    memory_dir = project_dir / "memory"
    if memory_dir.is_dir():
        result = parse_memory(memory_dir)
        if result is not None:
            return result

    transcripts = list_files(project_dir, (".jsonl",))
    if not transcripts:
        return None
    return parse_transcript(transcripts[0])
