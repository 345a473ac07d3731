"""Heuristic text miner: free-text messages -> decisions, approaches, state, next steps.

Every function here is pure. Inputs are ordered message lists (most recent
last); outputs are plain lists/strings. Nothing touches the filesystem, so
the extractors can share this logic and it can be tested in isolation.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

DECISION_WINDOW = 10
NEXT_STEPS_WINDOW = 5

MAX_DECISIONS = 10
MAX_APPROACHES = 8
MAX_NEXT_STEPS = 8

STATE_MAX_CHARS = 300

# Decision vocabulary. Stems ("decid", "chos", "us") cover inflected forms.
DECISION_RE = re.compile(
    r"\b(?:decid|choos|chos|opt|select|prefer|us(?:e|ing)|going with"
    r"|approach|architect|pattern|instead of)",
    re.IGNORECASE,
)

_APPROACH_RES = (
    re.compile(
        r"\b(?:tried|approach|attempted|tested|experimented with)\s+(.+?)(?:\.|$)",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(
        r"\b(?:first|then|alternatively|instead)\s*,?\s*(?:I|we|let's)\s+(.+?)(?:\.|$)",
        re.IGNORECASE | re.MULTILINE,
    ),
)

_STATE_RE = re.compile(
    r"\b(?:currently|now|at this point|so far|status:?)\s*(.+?)(?:\.|$)",
    re.IGNORECASE | re.MULTILINE,
)

# A heading-like token, the rest of its line, then a block of list items.
_NEXT_STEPS_RE = re.compile(
    r"(?:next steps?|to-?do|remaining|still need to|should also)\b[^\n]*\n"
    r"((?:[ \t]*(?:[-*+]|\d+[.)])[ \t]+[^\n]+(?:\n|$))+)",
    re.IGNORECASE,
)

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+|\n+")
_LIST_MARKER_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+")


def dedupe(items: Iterable[str]) -> list[str]:
    """Drop repeated strings, keeping first-seen order."""
    return list(dict.fromkeys(items))


def split_sentences(text: str) -> list[str]:
    """Split *text* into sentences and lines, keeping terminal punctuation."""
    sentences: list[str] = []
    for raw in _SENTENCE_SPLIT_RE.split(text):
        cleaned = _LIST_MARKER_RE.sub("", raw).strip()
        if cleaned:
            sentences.append(cleaned)
    return sentences


def strip_list_marker(line: str) -> str:
    return _LIST_MARKER_RE.sub("", line).strip()


def is_decision(text: str) -> bool:
    return DECISION_RE.search(text) is not None


def mine_decisions(messages: Sequence[str]) -> list[str]:
    """Sentences carrying decision vocabulary from the last messages."""
    decisions: list[str] = []
    for message in messages[-DECISION_WINDOW:]:
        for sentence in split_sentences(message):
            if not 20 < len(sentence) < 300:
                continue
            if is_decision(sentence) and sentence not in decisions:
                decisions.append(sentence)
    return decisions[:MAX_DECISIONS]


def mine_approaches(messages: Sequence[str]) -> list[str]:
    """Fragments describing what was tried."""
    approaches: list[str] = []
    for message in messages[-DECISION_WINDOW:]:
        for pattern in _APPROACH_RES:
            for match in pattern.finditer(message):
                fragment = match.group(0).strip()
                if 10 < len(fragment) < 200 and fragment not in approaches:
                    approaches.append(fragment)
    return approaches[:MAX_APPROACHES]


def mine_current_state(messages: Sequence[str]) -> str:
    """Best-effort summary of where the last message left things."""
    if not messages:
        return ""
    last = messages[-1]

    match = _STATE_RE.search(last)
    if match:
        return match.group(0).strip()[:STATE_MAX_CHARS]

    lines = [line.strip() for line in last.splitlines() if len(line.strip()) > 20]
    if not lines:
        return ""
    return lines[-1][:STATE_MAX_CHARS]


def mine_next_steps(messages: Sequence[str]) -> list[str]:
    """List items that follow a "next steps"-style heading."""
    steps: list[str] = []
    for message in messages[-NEXT_STEPS_WINDOW:]:
        match = _NEXT_STEPS_RE.search(message)
        if not match:
            continue
        for line in match.group(1).splitlines():
            item = strip_list_marker(line)
            if len(item) > 5:
                steps.append(item)
    return dedupe(steps)[:MAX_NEXT_STEPS]
