"""LLM-assisted summaries and next-step suggestions."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from collections.abc import Sequence

_SYSTEM_PROMPT = (
    "You are an assistant that keeps a developer's working context between coding "
    "sessions. You read git activity and earlier session notes and answer in the "
    "exact plain-text format requested. Do not add commentary or markdown fences."
)

SUPPORTED_PROVIDERS = ("anthropic", "openai")


@dataclass(frozen=True)
class LLMConfig:
    """LLM provider configuration."""

    provider: str  # "anthropic" or "openai"
    model: str
    api_key_env: str
    max_tokens: int = 1024


class LLMError(Exception):
    """Raised when an LLM API call fails."""


@dataclass(frozen=True)
class SessionSummary:
    task: str
    current_state: str
    next_steps: list[str]


def parse_llm_config(raw: Any) -> LLMConfig:
    """Parse and validate the ``llm`` section of ``config.yml``.

    Raises
    ------
    ValueError
        If the section is missing, incomplete or names an unsupported provider.
    """
    if not isinstance(raw, dict):
        msg = "No 'llm' section in .threadkeep/config.yml."
        raise ValueError(msg)

    provider = raw.get("provider", "")
    if provider not in SUPPORTED_PROVIDERS:
        msg = f"Unsupported LLM provider: {provider!r}. Use 'anthropic' or 'openai'."
        raise ValueError(msg)

    model = raw.get("model", "")
    if not model:
        msg = "LLM config requires 'model' field."
        raise ValueError(msg)

    api_key_env = raw.get("api_key_env", "")
    if not api_key_env:
        msg = "LLM config requires 'api_key_env' field."
        raise ValueError(msg)

    return LLMConfig(
        provider=provider,
        model=model,
        api_key_env=api_key_env,
        max_tokens=int(raw.get("max_tokens", 1024)),
    )


def build_summary_prompt(diff_stat: str, commits: Sequence[str], previous: str = "") -> str:
    """Prompt asking for a TASK / STATE / NEXT summary of recent work."""
    parts: list[str] = []

    parts.append("## Uncommitted Changes\n")
    parts.append(diff_stat or "(none)")
    parts.append("")

    parts.append("## Recent Commits\n")
    if commits:
        parts.extend(f"- {c}" for c in commits)
    else:
        parts.append("(none)")
    parts.append("")

    if previous:
        parts.append("## Previous Context\n")
        parts.append(previous)
        parts.append("")

    parts.append(
        "## Task\n"
        "Summarize what the developer is working on. Answer with exactly these lines:\n"
        "TASK: <one line>\n"
        "STATE: <one or two sentences>\n"
        "NEXT: <step one>;; <step two>"
    )
    return "\n".join(parts)


def parse_summary_response(text: str) -> SessionSummary:
    """Read the ``TASK:`` / ``STATE:`` / ``NEXT:`` lines of a model reply.

    Raises
    ------
    LLMError
        If the reply carries no ``TASK:`` line.
    """
    fields: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.strip().partition(":")
        if sep and key.strip().upper() in ("TASK", "STATE", "NEXT"):
            fields.setdefault(key.strip().upper(), value.strip())

    task = fields.get("TASK", "")
    if not task:
        msg = "LLM response did not contain a TASK line."
        raise LLMError(msg)

    steps = [s.strip() for s in fields.get("NEXT", "").split(";;") if s.strip()]
    return SessionSummary(task=task, current_state=fields.get("STATE", ""), next_steps=steps)


def build_suggest_prompt(context_document: str) -> str:
    """Prompt asking for concrete next steps given the branch briefing."""
    return (
        "## Session Context\n\n"
        f"{context_document}\n\n"
        "## Task\n"
        "Suggest the 3 to 5 most useful next steps, most important first. "
        "One step per line, each starting with '- '."
    )


def _get_api_key(config: LLMConfig) -> str:
    """Resolve API key from environment variable.

    Raises
    ------
    LLMError
        If the environment variable is not set.
    """
    key = os.environ.get(config.api_key_env, "")
    if not key:
        msg = f"API key not found. Set environment variable: {config.api_key_env}"
        raise LLMError(msg)
    return key


def _call_anthropic(config: LLMConfig, api_key: str, prompt: str) -> str:
    """Call Anthropic Messages API."""
    response = httpx.post(
        "https://api.anthropic.com/v1/messages",
        headers={
            "x-api-key": api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        },
        json={
            "model": config.model,
            "max_tokens": config.max_tokens,
            "system": _SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": prompt}],
        },
        timeout=120.0,
    )

    if response.status_code != 200:
        msg = f"Anthropic API error {response.status_code}: {response.text}"
        raise LLMError(msg)

    data = response.json()
    content_blocks = data.get("content", [])
    if not content_blocks:
        msg = "Anthropic API returned empty response."
        raise LLMError(msg)

    return str(content_blocks[0].get("text", ""))


def _call_openai(config: LLMConfig, api_key: str, prompt: str) -> str:
    """Call OpenAI Chat Completions API."""
    response = httpx.post(
        "https://api.openai.com/v1/chat/completions",
        headers={
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        },
        json={
            "model": config.model,
            "max_tokens": config.max_tokens,
            "messages": [
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        },
        timeout=120.0,
    )

    if response.status_code != 200:
        msg = f"OpenAI API error {response.status_code}: {response.text}"
        raise LLMError(msg)

    data = response.json()
    choices = data.get("choices", [])
    if not choices:
        msg = "OpenAI API returned empty response."
        raise LLMError(msg)

    return str(choices[0].get("message", {}).get("content", ""))


def call_llm(config: LLMConfig, prompt: str) -> str:
    """Call the configured LLM provider and return response text.

    Raises
    ------
    LLMError
        On API errors, transport failures or a missing API key.
    """
    api_key = _get_api_key(config)

    try:
        if config.provider == "anthropic":
            return _call_anthropic(config, api_key, prompt)
        if config.provider == "openai":
            return _call_openai(config, api_key, prompt)
    except httpx.HTTPError as exc:
        msg = f"{config.provider} request failed: {exc}"
        raise LLMError(msg) from exc

    msg = f"Unsupported provider: {config.provider}"
    raise LLMError(msg)


def summarize(
    config: LLMConfig,
    diff_stat: str,
    commits: Sequence[str],
    previous: str = "",
) -> SessionSummary:
    """Ask the model for a summary of recent work."""
    prompt = build_summary_prompt(diff_stat, commits, previous)
    return parse_summary_response(call_llm(config, prompt))


def suggest_next_steps(config: LLMConfig, context_document: str) -> list[str]:
    reply = call_llm(config, build_suggest_prompt(context_document))
    lines = [line.strip() for line in reply.splitlines() if line.strip()]
    steps = [line[2:].strip() for line in lines if line.startswith(("- ", "* "))]
    return steps or lines
