"""Git hooks that keep context current without manual commands.

* ``post-commit``: auto-save context, labelled with the commit subject.
* ``post-checkout``: push the new branch's context into rule files.

Our lines live between begin/end marker comments so that foreign hook
content is preserved on install and removal.
"""

from __future__ import annotations

import stat
from typing import TYPE_CHECKING

from threadkeep.infrastructure.git import GitError

if TYPE_CHECKING:
    from pathlib import Path

BEGIN_MARKER = "# >>> threadkeep >>>"
END_MARKER = "# <<< threadkeep <<<"
SHEBANG = "#!/bin/sh"

HOOK_BODIES: dict[str, str] = {
    "post-commit": (
        'threadkeep save --auto "Auto-saved on commit: $(git log -1 --pretty=%s)"'
        " >/dev/null 2>&1 || true"
    ),
    # $3 is 1 for branch checkouts, 0 for file checkouts.
    "post-checkout": (
        'if [ "$3" = "1" ]; then threadkeep resume --inject >/dev/null 2>&1 || true; fi'
    ),
}


def hooks_dir(root: Path) -> Path:
    git_dir = root / ".git"
    if not git_dir.is_dir():
        raise GitError(f".git directory not found in {root}")
    return git_dir / "hooks"


def _snippet(body: str) -> str:
    return f"{BEGIN_MARKER}\n{body}\n{END_MARKER}\n"


def _make_executable(path: Path) -> None:
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def is_installed(path: Path) -> bool:
    return path.is_file() and BEGIN_MARKER in path.read_text(encoding="utf-8")


def install_hooks(root: Path) -> list[str]:
    """Append our snippet to each hook. Returns the hooks that changed."""
    directory = hooks_dir(root)
    directory.mkdir(parents=True, exist_ok=True)

    installed: list[str] = []
    for name, body in HOOK_BODIES.items():
        path = directory / name
        if is_installed(path):
            continue
        existing = path.read_text(encoding="utf-8").rstrip() if path.is_file() else SHEBANG
        path.write_text(f"{existing}\n\n{_snippet(body)}", encoding="utf-8")
        _make_executable(path)
        installed.append(name)
    return installed


def _strip_snippet(text: str) -> str:
    kept: list[str] = []
    inside = False
    for line in text.splitlines():
        if line.strip() == BEGIN_MARKER:
            inside = True
            continue
        if line.strip() == END_MARKER:
            inside = False
            continue
        if not inside:
            kept.append(line)
    return "\n".join(kept).rstrip()


def remove_hooks(root: Path) -> list[str]:
    """Remove our snippet; delete hooks left with nothing but a shebang."""
    directory = hooks_dir(root)
    removed: list[str] = []
    for name in HOOK_BODIES:
        path = directory / name
        if not is_installed(path):
            continue
        remaining = _strip_snippet(path.read_text(encoding="utf-8"))
        meaningful = [
            line for line in remaining.splitlines() if line.strip() and not line.startswith("#!")
        ]
        if meaningful:
            path.write_text(remaining + "\n", encoding="utf-8")
        else:
            path.unlink()
        removed.append(name)
    return removed
