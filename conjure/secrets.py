"""Detection of the repository secrets a generated project's workflows need."""

from __future__ import annotations

import re
from pathlib import Path

_SECRET_RE = re.compile(r"secrets\.([A-Za-z_][A-Za-z0-9_]*)")

# Provided by GitHub Actions itself; never needs configuring.
_BUILTIN_SECRETS = frozenset({"GITHUB_TOKEN"})


def required_secrets(root_dir: str | Path) -> list[str]:
    """Collect ``secrets.NAME`` references from ``.github/workflows``.

    Only files directly inside the workflows directory are read.

    Returns:
        Sorted unique secret names, without ``GITHUB_TOKEN``.  Empty when the
        project has no workflows directory.
    """
    workflows = Path(root_dir) / ".github" / "workflows"
    if not workflows.is_dir():
        return []

    found: set[str] = set()
    for entry in sorted(workflows.iterdir()):
        if not entry.is_file():
            continue
        text = entry.read_text(encoding="utf-8", errors="replace")
        found.update(_SECRET_RE.findall(text))
    return sorted(found - _BUILTIN_SECRETS)
