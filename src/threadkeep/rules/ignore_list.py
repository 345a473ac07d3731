"""Keep tool-local rule files out of version control."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

IGNORE_FILE = ".gitignore"
IGNORE_HEADER = "# threadkeep rule files (local, not shared)"


def update_ignore_list(
    repo_root: Path,
    paths: Iterable[str],
    header: str = IGNORE_HEADER,
) -> list[str]:
    """Append *paths* missing from ``.gitignore`` under *header*.

    A path already present anywhere in the file (substring match) is
    skipped. The header is written at most once. Returns the added paths.
    """
    ignore_path = repo_root / IGNORE_FILE
    content = ignore_path.read_text(encoding="utf-8") if ignore_path.exists() else ""

    to_add: list[str] = []
    for path in paths:
        if path not in content and path not in to_add:
            to_add.append(path)
    if not to_add:
        return []

    if content and not content.endswith("\n"):
        content += "\n"
    if header not in content:
        content += ("\n" if content else "") + header + "\n"
    content += "\n".join(to_add) + "\n"
    ignore_path.write_text(content, encoding="utf-8")
    return to_add


def remove_from_ignore_list(
    repo_root: Path,
    paths: Iterable[str],
    header: str | None = None,
) -> list[str]:
    """Drop lines equal to one of *paths* (and the *header* line) from ``.gitignore``.

    A path also matches without its trailing ``/``. Returns the removed paths.
    """
    ignore_path = repo_root / IGNORE_FILE
    if not ignore_path.exists():
        return []

    wanted = {p.strip() for p in paths}
    wanted |= {p.rstrip("/") for p in wanted}
    removed: list[str] = []
    kept: list[str] = []
    for line in ignore_path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if stripped in wanted:
            removed.append(stripped)
        elif header is None or stripped != header:
            kept.append(line)
    if not removed:
        return []

    text = "\n".join(kept).strip("\n")
    ignore_path.write_text(text + "\n" if text else "", encoding="utf-8")
    return removed
