"""Resolution of template coordinates to readable directories.

The resolver maps a :class:`~conjure.models.TemplateCoordinate` either to a
directory under a local template root or to a temporary directory populated
from the remote template repository.  Remote resolutions are memoised for the
lifetime of the resolver instance, and concurrent requests for the same
coordinate share one in-flight download.

Create one resolver per generation run (or share one long-lived instance
explicitly) and pass it to every call site; the cache lives on the instance.
"""

from __future__ import annotations

import asyncio
import shutil
import tarfile
import tempfile
from collections.abc import Sequence
from pathlib import Path

import httpx

from conjure.errors import (
    FetchError,
    NotFound,
    SourceUnavailableError,
    UnsupportedTemplateError,
)
from conjure.models import (
    DEFAULT_ITEM,
    SHARED_DIR_NAME,
    ResolvedTemplateDirectory,
    SourceKind,
    TemplateCoordinate,
)

from .github import ContentsClient, ProbeResult, SnapshotDownloader

TEMP_PREFIX = "conjure-templates-"


def list_child_dirs(directory: Path, include_shared: bool = False) -> set[str]:
    """Names of the child directories of *directory* (empty if it is missing)."""
    if not directory.is_dir():
        return set()
    names = {entry.name for entry in directory.iterdir() if entry.is_dir()}
    if not include_shared:
        names = {n for n in names if n.lower() != SHARED_DIR_NAME}
    return names


def candidate_paths(download_root: Path, coordinate: TemplateCoordinate) -> list[Path]:
    """Where the wanted subtree may sit inside a download, most specific first."""
    parts = coordinate.parts
    candidates = [
        download_root.joinpath("templates", *parts),
        download_root.joinpath(*parts),
    ]
    if len(parts) > 1:
        candidates.append(download_root.joinpath(*parts[1:]))
    candidates.append(download_root)
    return candidates


class TemplateSourceResolver:
    """Resolves coordinates against a local root or a remote repository.

    Attributes:
        local_root: Root of the local template hierarchy.
        contents: Remote metadata/listing collaborator (remote mode only).
        downloader: Remote snapshot collaborator (remote mode only).
    """

    def __init__(
        self,
        local_root: str | Path = "templates",
        *,
        contents: ContentsClient | None = None,
        downloader: SnapshotDownloader | None = None,
    ) -> None:
        self.local_root = Path(local_root)
        self.contents = contents
        self.downloader = downloader
        self._cache: dict[str, ResolvedTemplateDirectory] = {}
        self._in_flight: dict[str, asyncio.Task[ResolvedTemplateDirectory]] = {}
        self._list_cache: dict[str, set[str]] = {}
        self._temp_dirs: list[Path] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve(self, coordinate: TemplateCoordinate) -> ResolvedTemplateDirectory:
        """Map *coordinate* to a readable directory.

        Raises:
            NotFound: The coordinate has no backing directory.
            FetchError: A remote probe or download failed, or the snapshot
                was unreadable.
            SourceUnavailableError: A remote coordinate was given to a resolver
                without remote collaborators.
        """
        if coordinate.source is SourceKind.LOCAL:
            return self._resolve_local(coordinate)

        key = coordinate.cache_key
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.create_task(self._resolve_remote(coordinate))
            self._in_flight[key] = task
            task.add_done_callback(lambda _t, k=key: self._in_flight.pop(k, None))
        return await asyncio.shield(task)

    async def resolve_many(
        self, coordinates: Sequence[TemplateCoordinate]
    ) -> list[ResolvedTemplateDirectory | None]:
        """Resolve several coordinates concurrently, in input order.

        Coordinates without a backing directory yield ``None``; any other
        error propagates.
        """

        async def _one(coordinate: TemplateCoordinate) -> ResolvedTemplateDirectory | None:
            try:
                return await self.resolve(coordinate)
            except NotFound:
                return None

        return list(await asyncio.gather(*(_one(c) for c in coordinates)))

    async def list(
        self, coordinate: TemplateCoordinate, include_shared: bool = False
    ) -> set[str]:
        """Names of the templates (child directories) under *coordinate*.

        The reserved ``shared`` directory is excluded unless *include_shared*.

        Raises:
            FetchError: The remote fallback download failed in transport.
        """
        if coordinate.source is SourceKind.LOCAL:
            return list_child_dirs(self.local_root.joinpath(*coordinate.parts), include_shared)

        list_key = f"{coordinate.cache_key}:shared={include_shared}"
        if list_key in self._list_cache:
            return set(self._list_cache[list_key])

        names = await self._list_remote(coordinate, include_shared)
        if names:
            self._list_cache[list_key] = names
        return set(names)

    async def ensure_template(
        self,
        language: str,
        template: str,
        item: str = DEFAULT_ITEM,
        source: SourceKind = SourceKind.LOCAL,
    ) -> None:
        """Check that *template* is offered for *language*/*item*.

        Raises:
            UnsupportedTemplateError: If it is not among the listed templates.
        """
        available = await self.list(
            TemplateCoordinate(source=source, language=language, item=item)
        )
        if template not in available:
            raise UnsupportedTemplateError(language, item, template, available)

    def cleanup(self) -> None:
        """Remove every temporary directory created for remote downloads."""
        for directory in self._temp_dirs:
            shutil.rmtree(directory, ignore_errors=True)
        self._temp_dirs.clear()
        self._cache.clear()
        self._list_cache.clear()

    # ------------------------------------------------------------------
    # Local mode
    # ------------------------------------------------------------------

    def _resolve_local(self, coordinate: TemplateCoordinate) -> ResolvedTemplateDirectory:
        path = self.local_root.joinpath(*coordinate.parts)
        if not path.is_dir():
            raise NotFound(coordinate, f"{path} is not a directory")
        return ResolvedTemplateDirectory(path=path.resolve(), source=SourceKind.LOCAL)

    # ------------------------------------------------------------------
    # Remote mode
    # ------------------------------------------------------------------

    @property
    def supports_remote(self) -> bool:
        """Whether both remote collaborators were supplied."""
        return self.contents is not None and self.downloader is not None

    def _remote_collaborators(
        self, coordinate: TemplateCoordinate
    ) -> tuple[ContentsClient, SnapshotDownloader]:
        if not self.supports_remote:
            raise SourceUnavailableError(
                coordinate, "remote resolution requires a contents client and a downloader"
            )
        return self.contents, self.downloader

    async def _resolve_remote(self, coordinate: TemplateCoordinate) -> ResolvedTemplateDirectory:
        contents, downloader = self._remote_collaborators(coordinate)

        try:
            probe = await contents.probe(coordinate.subpath)
        except httpx.HTTPError as exc:
            raise FetchError(coordinate, exc) from exc
        if probe is ProbeResult.ABSENT:
            raise NotFound(coordinate, "not present in the remote repository")

        download_root = Path(tempfile.mkdtemp(prefix=TEMP_PREFIX))
        self._temp_dirs.append(download_root)
        try:
            materialised = await downloader.download(coordinate.subpath, download_root)
        except (httpx.HTTPError, tarfile.TarError, EOFError, OSError) as exc:
            raise FetchError(coordinate, exc) from exc

        for candidate in candidate_paths(Path(materialised), coordinate):
            if candidate.is_dir() and any(candidate.iterdir()):
                resolved = ResolvedTemplateDirectory(path=candidate, source=SourceKind.REMOTE)
                self._cache[coordinate.cache_key] = resolved
                return resolved

        raise NotFound(coordinate, "the downloaded snapshot does not contain it")

    async def _list_remote(self, coordinate: TemplateCoordinate, include_shared: bool) -> set[str]:
        contents, _ = self._remote_collaborators(coordinate)

        names = await contents.list_dirs(coordinate.subpath)
        if names:
            if not include_shared:
                return {n for n in names if n.lower() != SHARED_DIR_NAME}
            return set(names)

        try:
            resolved = await self.resolve(coordinate)
        except NotFound:
            return set()
        return list_child_dirs(resolved.path, include_shared)
