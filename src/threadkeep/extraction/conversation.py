"""Normalizers shared by several extractors.

Three input families end up here:

* chat histories stored as JSON/JSONL in one of several historically
  observed shapes (``conversation_context``, ``document_messages``),
* plain logs with ``user:`` / ``assistant:`` style line prefixes
  (``log_context``),
* project rule files: YAML frontmatter plus bullets (``rule_file_context``).
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from threadkeep.extraction import markdown
from threadkeep.extraction.miner import (
    mine_approaches,
    mine_current_state,
    mine_decisions,
    mine_next_steps,
)
from threadkeep.extraction.models import ExtractedContext, make_context
from threadkeep.extraction.readers import read_json, read_jsonl_tail

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

_ROLE_KEYS = ("role", "type", "sender")
_TEXT_KEYS = ("content", "text", "message")
_USER_ROLES = frozenset({"user", "human"})
_ASSISTANT_ROLES = frozenset({"assistant", "ai", "bot", "model"})

_MIN_MESSAGE_CHARS = 5
_TASK_MAX_CHARS = 200
_FOLLOW_UP_MAX_CHARS = 100

_LOG_USER_RE = re.compile(r"^\s*(?:user|prompt|query):\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)
_LOG_ASSISTANT_RE = re.compile(
    r"^\s*(?:ai|assistant|response):\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE
)

# Imperative/preference vocabulary used to sort rule-file bullets.
RULE_DECISION_RE = re.compile(r"\b(?:use|using|prefer|always|never|must|should)\b", re.IGNORECASE)


def first_line(text: str) -> str:
    return text.strip().split("\n", 1)[0].strip()


def text_of(value: Any) -> str:
    """Flatten a message body: plain string or a list of typed parts."""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        parts: list[str] = []
        for part in value:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type", "text") == "text":
                text = part.get("text")
                if isinstance(text, str):
                    parts.append(text)
        return "\n".join(parts)
    if isinstance(value, dict):
        # {"message": {"content": ...}} nesting used by some exporters.
        return text_of(value.get("content", ""))
    return ""


def _pick(message: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = message.get(key)
        if value:
            return value
    return None


def split_roles(messages: Sequence[Any]) -> tuple[list[str], list[str]]:
    """Partition raw message records into (user texts, assistant texts)."""
    user: list[str] = []
    assistant: list[str] = []
    for message in messages:
        if not isinstance(message, dict):
            continue
        role = _pick(message, _ROLE_KEYS)
        text = text_of(_pick(message, _TEXT_KEYS)).strip()
        if not isinstance(role, str) or len(text) < _MIN_MESSAGE_CHARS:
            continue
        role = role.lower()
        if role in _USER_ROLES:
            user.append(text)
        elif role in _ASSISTANT_ROLES:
            assistant.append(text)
    return user, assistant


def follow_up_requests(user_messages: Sequence[str], *, limit: int, width: int) -> list[str]:
    """``User also asked: ...`` entries for the early follow-up user messages."""
    return [f"User also asked: {first_line(m)[:width]}" for m in user_messages[1:limit]]


def conversation_context(messages: Sequence[Any], source: str) -> ExtractedContext | None:
    """Normalize a chat history in any supported shape."""
    user, assistant = split_roles(messages)
    if not user:
        return None

    approaches = follow_up_requests(user, limit=4, width=_FOLLOW_UP_MAX_CHARS)
    approaches.extend(mine_approaches(assistant))
    return make_context(
        first_line(user[0])[:_TASK_MAX_CHARS],
        source=source,
        approaches=approaches,
        decisions=mine_decisions(assistant),
        current_state=mine_current_state(assistant) or f"Loaded from {source}",
        next_steps=mine_next_steps(assistant),
    )


def document_messages(data: Any) -> list[Any] | None:
    """Find the message array inside an arbitrary JSON document.

    Accepted shapes, in order: a top-level array; ``messages`` /
    ``history``; ``chat.messages``; ``conversations`` or
    ``ai_conversations`` holding either a message array or a list of
    conversations (the last one wins).
    """
    if isinstance(data, list):
        return data
    if not isinstance(data, dict):
        return None

    for key in ("messages", "history"):
        if isinstance(data.get(key), list):
            return data[key]

    chat = data.get("chat")
    if isinstance(chat, dict) and isinstance(chat.get("messages"), list):
        return chat["messages"]

    for key in ("conversations", "ai_conversations"):
        convs = data.get(key)
        if isinstance(convs, list) and convs:
            latest = convs[-1]
            if isinstance(latest, dict) and isinstance(latest.get("messages"), list):
                return latest["messages"]
            if isinstance(latest, dict) and _pick(latest, _ROLE_KEYS):
                return convs
        elif isinstance(convs, dict) and isinstance(convs.get("messages"), list):
            return convs["messages"]
    return None


def log_context(text: str, source: str) -> ExtractedContext | None:
    """Last-resort parse of role-prefixed log lines."""
    prompts = [m.group(1) for m in _LOG_USER_RE.finditer(text)]
    responses = [m.group(1) for m in _LOG_ASSISTANT_RE.finditer(text)]
    if not prompts:
        return None
    return make_context(
        prompts[0][:_TASK_MAX_CHARS],
        source=source,
        approaches=[f"Also asked: {p[:_FOLLOW_UP_MAX_CHARS]}" for p in prompts[1:4]],
        decisions=mine_decisions(responses),
        current_state="Loaded from Warp logs",
        next_steps=mine_next_steps(responses),
    )


def rule_file_context(
    content: str,
    *,
    source: str,
    fallback_task: str,
    min_length: int = 20,
    decision_re: re.Pattern[str] = RULE_DECISION_RE,
    heading_fallback: bool = False,
) -> ExtractedContext | None:
    """Parse a project rule file (frontmatter + bullets)."""
    meta = markdown.frontmatter(content)
    description = meta.get("description")
    task = description.strip() if isinstance(description, str) else ""
    if not task and heading_fallback:
        task = markdown.first_heading(content)

    decisions: list[str] = []
    approaches: list[str] = []
    for bullet in markdown.bullet_items(content):
        if len(bullet) <= min_length:
            continue
        if decision_re.search(bullet):
            decisions.append(bullet)
        else:
            approaches.append(bullet)

    if not task and not decisions:
        return None
    return make_context(
        task or fallback_task,
        source=source,
        approaches=approaches[:5],
        decisions=decisions[:10],
        current_state=f"Loaded from {fallback_task.lower()} files",
    )


def history_file_context(path: Path, source: str, *, tail_lines: int) -> ExtractedContext | None:
    """Normalize one chat-history file: JSONL via a tail window, else a JSON document."""
    if path.suffix == ".jsonl":
        messages = read_jsonl_tail(path, tail_lines)
    else:
        messages = document_messages(read_json(path))
    if not messages:
        return None
    return conversation_context(messages, source)
