"""Async GitHub collaborators for the remote template source.

Two black-box operations back the remote mode of the resolver:

* a metadata query against the GitHub contents API (``/repos/.../contents``),
  used both as a cheap existence probe and as a directory listing;
* a snapshot download of the repository tarball from ``codeload``, from which
  only the requested subtree is extracted.

Both are defined as protocols so the resolver can be exercised with fakes.

Typical usage::

    contents = GitHubContentsClient("acme", "templates")
    if await contents.probe("python/package") is ProbeResult.PRESENT:
        names = await contents.list_dirs("python/package")
"""

from __future__ import annotations

import asyncio
import shutil
import tarfile
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Protocol

import httpx

DEFAULT_API_BASE = "https://api.github.com"
DEFAULT_CODELOAD_BASE = "https://codeload.github.com"
DEFAULT_USER_AGENT = "conjure-cli"
TEMPLATES_DIR = "templates"


class ProbeResult(str, Enum):
    """Outcome of an existence probe."""

    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"


class ContentsClient(Protocol):
    """Metadata/listing queries for a subpath of the template tree."""

    async def probe(self, subpath: str) -> ProbeResult:
        """Report whether *subpath* exists; transport failures raise ``httpx.HTTPError``."""

    async def list_dirs(self, subpath: str) -> list[str] | None:
        """Child directory names of *subpath*, or ``None`` if the query failed."""


class SnapshotDownloader(Protocol):
    """Materialises a subpath of the template tree into a local directory."""

    async def download(self, subpath: str, dest: Path) -> Path:
        """Download *subpath* into *dest*; transport failures raise ``httpx.HTTPError``."""


def _headers(token: str | None, user_agent: str) -> dict[str, str]:
    headers = {
        "User-Agent": user_agent,
        "Accept": "application/vnd.github.v3+json",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


# ---------------------------------------------------------------------------
# Contents API
# ---------------------------------------------------------------------------


class GitHubContentsClient:
    """Async client for the GitHub contents API of one repository."""

    def __init__(
        self,
        owner: str,
        repo: str,
        ref: str = "main",
        *,
        api_base: str = DEFAULT_API_BASE,
        token: str | None = None,
        timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.ref = ref
        self.api_base = api_base.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.user_agent = user_agent

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured for the GitHub API."""
        return httpx.AsyncClient(
            base_url=self.api_base,
            headers=_headers(self.token, self.user_agent),
            timeout=httpx.Timeout(self.timeout, connect=10.0),
        )

    def contents_path(self, subpath: str) -> str:
        """API path of ``templates/<subpath>`` in the repository."""
        tree_path = "/".join(p for p in (TEMPLATES_DIR, subpath.strip("/")) if p)
        return f"/repos/{self.owner}/{self.repo}/contents/{tree_path}"

    async def _get(self, subpath: str) -> httpx.Response:
        async with self._client() as client:
            return await client.get(self.contents_path(subpath), params={"ref": self.ref})

    async def probe(self, subpath: str) -> ProbeResult:
        """Check whether ``templates/<subpath>`` exists without downloading it.

        A 404 or a non-directory payload is a definitive ``ABSENT``.  Any other
        non-success status (rate limiting, server errors) is ``UNKNOWN``.

        Raises:
            httpx.HTTPError: On connection failures and timeouts.
        """
        response = await self._get(subpath)
        if response.status_code == 404:
            return ProbeResult.ABSENT
        if not response.is_success:
            return ProbeResult.UNKNOWN
        try:
            data = response.json()
        except ValueError:
            return ProbeResult.UNKNOWN
        if isinstance(data, list):
            return ProbeResult.PRESENT
        if isinstance(data, dict) and data.get("type") == "dir":
            return ProbeResult.PRESENT
        return ProbeResult.ABSENT

    async def list_dirs(self, subpath: str) -> list[str] | None:
        """List child directory names of ``templates/<subpath>``.

        Returns ``None`` when the query fails for any reason, including a
        404, so the caller can fall back to downloading.
        """
        try:
            response = await self._get(subpath)
            if not response.is_success:
                return None
            data = response.json()
        except (httpx.HTTPError, ValueError):
            return None
        if not isinstance(data, list):
            return None
        return [
            entry["name"]
            for entry in data
            if isinstance(entry, dict)
            and entry.get("type") == "dir"
            and isinstance(entry.get("name"), str)
        ]


# ---------------------------------------------------------------------------
# Tarball snapshots
# ---------------------------------------------------------------------------


class GitHubTarballDownloader:
    """Downloads the repository tarball and extracts one subtree."""

    def __init__(
        self,
        owner: str,
        repo: str,
        ref: str = "main",
        *,
        codeload_base: str = DEFAULT_CODELOAD_BASE,
        token: str | None = None,
        timeout: float = 60.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.ref = ref
        self.codeload_base = codeload_base.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.user_agent = user_agent

    @property
    def archive_url(self) -> str:
        return f"{self.codeload_base}/{self.owner}/{self.repo}/tar.gz/{self.ref}"

    async def download(self, subpath: str, dest: Path) -> Path:
        """Download ``templates/<subpath>`` so that its contents sit at *dest*.

        Returns:
            *dest*.  It stays empty when the archive has no such subtree.

        Raises:
            httpx.HTTPError: On transport failures or a non-success status.
            tarfile.TarError: If the body is not a readable gzip tarball.
            EOFError: If the archive is truncated.
        """
        dest = Path(dest)
        dest.mkdir(parents=True, exist_ok=True)
        archive = dest / ".snapshot.tar.gz"

        async with httpx.AsyncClient(
            headers=_headers(self.token, self.user_agent),
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            follow_redirects=True,
        ) as client:
            async with client.stream("GET", self.archive_url) as response:
                response.raise_for_status()
                with archive.open("wb") as fh:
                    async for chunk in response.aiter_bytes():
                        fh.write(chunk)

        prefix = "/".join(p for p in (TEMPLATES_DIR, subpath.strip("/")) if p)
        try:
            await asyncio.to_thread(extract_subtree, archive, prefix, dest)
        finally:
            archive.unlink(missing_ok=True)
        return dest


def extract_subtree(archive: Path, prefix: str, dest: Path) -> int:
    """Extract members under ``<top>/<prefix>/`` of a GitHub tarball into *dest*.

    GitHub archives wrap everything in a single ``<repo>-<ref>/`` directory,
    which is skipped.  Only regular files and directories are extracted;
    absolute and ``..`` member paths are ignored.

    Returns:
        Number of files written.
    """
    prefix_parts = tuple(p for p in prefix.split("/") if p)
    written = 0
    with tarfile.open(archive, mode="r:gz") as tar:
        for member in tar:
            path = PurePosixPath(member.name)
            if path.is_absolute() or ".." in path.parts:
                continue
            rel = path.parts[1:]
            if rel[: len(prefix_parts)] != prefix_parts:
                continue
            inner = rel[len(prefix_parts):]
            if not inner:
                continue
            target = dest.joinpath(*inner)
            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
            elif member.isfile():
                source = tar.extractfile(member)
                if source is None:
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with source, target.open("wb") as fh:
                    shutil.copyfileobj(source, fh)
                written += 1
    return written
