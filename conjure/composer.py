"""Layered composition of template directories onto a target tree.

Layers are applied in ascending precedence; a file at the same relative path
in a later layer replaces the one written by an earlier layer.  Merging is at
file granularity only: no content is combined.
"""

from __future__ import annotations

import asyncio
import shutil
from collections.abc import Sequence
from pathlib import Path

from pydantic import BaseModel, Field

from .errors import NotFound
from .models import LayerPlan, TemplateCoordinate
from .registry.resolver import TemplateSourceResolver


class ComposeReport(BaseModel):
    """What a composition run applied and skipped."""

    applied: list[TemplateCoordinate] = Field(default_factory=list)
    skipped: list[TemplateCoordinate] = Field(default_factory=list)
    files_written: int = Field(default=0, description="Files copied across all layers")


def copy_tree(src: Path, dest: Path) -> int:
    """Recursively copy *src* onto *dest*, overwriting existing files.

    Destination directories are created as needed.  Symlinks and other
    non-regular entries are skipped.

    Returns:
        Number of files copied.
    """
    dest.mkdir(parents=True, exist_ok=True)
    copied = 0
    for entry in sorted(src.iterdir()):
        if entry.is_symlink():
            continue
        target = dest / entry.name
        if entry.is_dir():
            copied += copy_tree(entry, target)
        elif entry.is_file():
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            shutil.copyfile(entry, target)
            copied += 1
    return copied


class LayeredComposer:
    """Applies a layer plan onto one target directory.

    Resolutions for the whole plan are issued concurrently up front; the
    copies themselves always run one layer at a time, in plan order.
    """

    def __init__(self, resolver: TemplateSourceResolver) -> None:
        self.resolver = resolver

    async def compose(
        self,
        target_dir: str | Path,
        layer_plan: LayerPlan | Sequence[TemplateCoordinate],
    ) -> ComposeReport:
        """Copy every resolvable layer of *layer_plan* onto *target_dir*.

        Optional layers without a backing directory are skipped.  When the
        plan marks its last layer as required, a missing directory for it
        raises.

        Raises:
            NotFound: The required layer does not exist.
            FetchError: A remote layer could not be fetched.
        """
        plan = LayerPlan.coerce(layer_plan)
        target = Path(target_dir)
        report = ComposeReport()

        resolved = await self.resolver.resolve_many(plan.layers)

        for index, (coordinate, directory) in enumerate(zip(plan.layers, resolved)):
            if directory is None:
                if plan.is_required(index):
                    raise NotFound(coordinate, "the chosen template is missing")
                report.skipped.append(coordinate)
                continue
            report.files_written += await asyncio.to_thread(copy_tree, directory.path, target)
            report.applied.append(coordinate)

        return report
