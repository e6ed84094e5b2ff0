"""Core data model: coordinates, resolved directories and layer plans.

A template *coordinate* names one directory's worth of fragments inside the
template hierarchy::

    <root>/shared                         global shared
    <root>/<language>/shared              language shared
    <root>/<language>/<item>/shared       resource shared
    <root>/<language>/<item>/<template>   chosen template

A *layer plan* is the ordered list of coordinates merged into one target
tree, lowest precedence first.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SHARED_DIR_NAME = "shared"
"""Reserved pseudo-name holding fragments applied regardless of selection."""

DEFAULT_ITEM = "package"

SHARED_PRIVATE_PRUNE_SET: frozenset[str] = frozenset(
    {
        "CODE_OF_CONDUCT.md",
        "CONTRIBUTING.md",
        "issue_template",
        "pull_request_template.md",
    }
)
"""Basenames removed from every private artifact, whatever its language."""

LANGUAGE_PRIVATE_PRUNE_SETS: dict[str, frozenset[str]] = {
    "typescript": frozenset({"release.marker.yml"}),
}
"""Extra basenames removed from private artifacts of one language."""


def private_prune_set(language: str) -> frozenset[str]:
    """Basenames to prune from a private *language* artifact."""
    extra = LANGUAGE_PRIVATE_PRUNE_SETS.get(language.lower(), frozenset())
    return SHARED_PRIVATE_PRUNE_SET | extra


# ---------------------------------------------------------------------------
# Coordinates
# ---------------------------------------------------------------------------


class SourceKind(str, Enum):
    """Where a coordinate's fragments come from."""

    LOCAL = "local"
    REMOTE = "remote"


class TemplateCoordinate(BaseModel):
    """Identifies one directory of template fragments.  Immutable."""

    model_config = ConfigDict(frozen=True)

    source: SourceKind = Field(default=SourceKind.LOCAL)
    language: str = Field(..., min_length=1, description="Language directory, or 'shared'")
    item: str | None = Field(default=None, description="Resource kind, e.g. 'package'")
    template: str | None = Field(default=None, description="Template name under the item")

    @field_validator("language", "item", "template")
    @classmethod
    def _single_segment(cls, value: str | None) -> str | None:
        if value is None:
            return value
        if not value or value in (".", "..") or "/" in value or "\\" in value:
            raise ValueError(f"invalid path segment: {value!r}")
        return value

    @model_validator(mode="after")
    def _template_needs_item(self) -> "TemplateCoordinate":
        if self.template is not None and self.item is None:
            raise ValueError("a template coordinate requires an item")
        return self

    @property
    def parts(self) -> tuple[str, ...]:
        """Non-empty path segments, outermost first."""
        return tuple(p for p in (self.language, self.item, self.template) if p)

    @property
    def subpath(self) -> str:
        """Slash-joined path of the coordinate below the template root."""
        return "/".join(self.parts)

    @property
    def cache_key(self) -> str:
        """Canonical string used to memoise resolutions."""
        return f"{self.source.value}:templates/{self.subpath}"

    def with_source(self, source: SourceKind) -> "TemplateCoordinate":
        """Return a copy of this coordinate pointing at another source."""
        return self.model_copy(update={"source": source})

    def describe(self) -> str:
        """Human readable label for error messages."""
        return f"templates/{self.subpath} ({self.source.value})"


class ResolvedTemplateDirectory(BaseModel):
    """Result of resolving a coordinate to a readable directory."""

    model_config = ConfigDict(frozen=True)

    path: Path
    source: SourceKind


# ---------------------------------------------------------------------------
# Layer plan
# ---------------------------------------------------------------------------


class LayerPlan(BaseModel):
    """Ordered coordinates in ascending precedence.

    When ``required_last`` is set, the final layer is the caller's explicitly
    chosen template: a missing directory for it is fatal instead of skipped.
    """

    model_config = ConfigDict(frozen=True)

    layers: tuple[TemplateCoordinate, ...] = Field(default_factory=tuple)
    required_last: bool = Field(default=False)

    @classmethod
    def for_template(
        cls,
        language: str,
        template: str,
        item: str = DEFAULT_ITEM,
        source: SourceKind = SourceKind.LOCAL,
    ) -> "LayerPlan":
        """Build the fixed four-layer plan for one generation request."""
        return cls(
            layers=(
                TemplateCoordinate(source=source, language=SHARED_DIR_NAME),
                TemplateCoordinate(source=source, language=language, item=SHARED_DIR_NAME),
                TemplateCoordinate(
                    source=source, language=language, item=item, template=SHARED_DIR_NAME
                ),
                TemplateCoordinate(source=source, language=language, item=item, template=template),
            ),
            required_last=True,
        )

    @classmethod
    def coerce(cls, plan: "LayerPlan | list[TemplateCoordinate] | tuple[TemplateCoordinate, ...]") -> "LayerPlan":
        """Accept either a plan or a bare sequence of coordinates."""
        if isinstance(plan, LayerPlan):
            return plan
        return cls(layers=tuple(plan))

    def is_required(self, index: int) -> bool:
        """Whether the layer at *index* must resolve."""
        return self.required_last and index == len(self.layers) - 1
