"""Shared pytest fixtures for the Conjure test suite.

Provides reusable fixtures for:
- Building template hierarchies under a temporary directory
- A local template root with all four layers populated
- Fake remote collaborators (contents API and snapshot downloader) that count
  their calls
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from conjure.registry.github import ProbeResult
from conjure.registry.resolver import TemplateSourceResolver


# ---------------------------------------------------------------------------
# Tree helpers
# ---------------------------------------------------------------------------


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Create ``{relative_path: content}`` files under *root*."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


def read_tree(root: Path) -> dict[str, str]:
    """Return ``{relative_posix_path: content}`` for every file under *root*."""
    return {
        p.relative_to(root).as_posix(): p.read_text(encoding="utf-8")
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


@pytest.fixture
def make_tree():
    """Return the :func:`write_tree` helper."""
    return write_tree


@pytest.fixture
def tree_contents():
    """Return the :func:`read_tree` helper."""
    return read_tree


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------


@pytest.fixture
def target_dir(tmp_path: Path) -> Path:
    """Empty directory that receives composed output."""
    target = tmp_path / "out"
    target.mkdir()
    yield target


@pytest.fixture
def template_root(tmp_path: Path) -> Path:
    """Local template hierarchy for ``typescript/package`` with two templates.

    Every layer contributes one distinct file; ``vitest.config.ts`` appears in
    both the language-shared layer and the ``basic`` template.
    """
    root = tmp_path / "templates"
    write_tree(
        root,
        {
            "shared/.editorconfig": "root = true\n",
            "typescript/shared/vitest.config.ts": "// language shared\n",
            "typescript/shared/lint-staged.config.js": "export default {};\n",
            "typescript/package/shared/release.config.cjs": "module.exports = {};\n",
            "typescript/package/basic/vitest.config.ts": "// basic template\n",
            "typescript/package/basic/src/index.ts": "export const x = 1;\n",
            "typescript/package/react/src/button.tsx": "export const Button = null;\n",
        },
    )
    yield root


@pytest.fixture
def local_resolver(template_root: Path) -> TemplateSourceResolver:
    """Resolver reading from :func:`template_root`."""
    return TemplateSourceResolver(template_root)


# ---------------------------------------------------------------------------
# Fake remote collaborators
# ---------------------------------------------------------------------------


class FakeContentsClient:
    """In-memory stand-in for the GitHub contents API.

    ``tree`` maps a subpath to the child directory names it holds.  Subpaths
    missing from ``tree`` probe as absent unless ``unknown`` lists them.
    """

    def __init__(
        self,
        tree: dict[str, list[str]] | None = None,
        *,
        unknown: set[str] | None = None,
        probe_error: Exception | None = None,
        listing_fails: bool = False,
    ) -> None:
        self.tree = tree or {}
        self.unknown = unknown or set()
        self.probe_error = probe_error
        self.listing_fails = listing_fails
        self.probe_calls: list[str] = []
        self.list_calls: list[str] = []

    async def probe(self, subpath: str) -> ProbeResult:
        self.probe_calls.append(subpath)
        await asyncio.sleep(0)
        if self.probe_error is not None:
            raise self.probe_error
        if subpath in self.tree:
            return ProbeResult.PRESENT
        if subpath in self.unknown:
            return ProbeResult.UNKNOWN
        return ProbeResult.ABSENT

    async def list_dirs(self, subpath: str) -> list[str] | None:
        self.list_calls.append(subpath)
        await asyncio.sleep(0)
        if self.listing_fails or subpath not in self.tree:
            return None
        return list(self.tree[subpath])


class FakeDownloader:
    """Materialises canned files for a subpath and counts invocations."""

    def __init__(
        self,
        files: dict[str, dict[str, str]] | None = None,
        *,
        error: Exception | None = None,
        delay: float = 0.01,
        nest_under: str = "",
    ) -> None:
        self.files = files or {}
        self.error = error
        self.delay = delay
        self.nest_under = nest_under
        self.calls: list[str] = []

    async def download(self, subpath: str, dest: Path) -> Path:
        self.calls.append(subpath)
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        base = dest / self.nest_under if self.nest_under else dest
        write_tree(base, self.files.get(subpath, {}))
        return dest


@pytest.fixture
def fake_contents() -> FakeContentsClient:
    return FakeContentsClient(
        {
            "typescript/package": ["basic", "react", "shared"],
            "typescript/package/basic": [],
        }
    )


@pytest.fixture
def fake_downloader() -> FakeDownloader:
    return FakeDownloader(
        {
            "typescript/package": {
                "basic/vitest.config.ts": "// basic\n",
                "react/vite.config.ts": "// react\n",
                "shared/release.config.cjs": "// shared\n",
            },
            "typescript/package/basic": {"vitest.config.ts": "// basic\n"},
        }
    )


@pytest.fixture
def remote_resolver(fake_contents, fake_downloader, tmp_path):
    """Resolver wired to the fake remote collaborators; cleaned up afterwards."""
    resolver = TemplateSourceResolver(
        tmp_path / "unused-local-root",
        contents=fake_contents,
        downloader=fake_downloader,
    )
    yield resolver
    resolver.cleanup()


@pytest.fixture
def contents_factory():
    """Return the :class:`FakeContentsClient` class for custom setups."""
    return FakeContentsClient


@pytest.fixture
def downloader_factory():
    """Return the :class:`FakeDownloader` class for custom setups."""
    return FakeDownloader
