"""Exception hierarchy for the template engine.

Every error raised by the resolver, composer, renderer and pipeline derives
from :class:`ConjureError` so callers can catch the whole family at once,
while the subclasses carry enough context (coordinate, path, cause) to print
an actionable diagnostic.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from conjure.models import TemplateCoordinate


class ConjureError(Exception):
    """Base class for all template engine errors."""


class NotFound(ConjureError):
    """Raised when a coordinate has no local or remote backing directory."""

    def __init__(self, coordinate: TemplateCoordinate, detail: str = "") -> None:
        self.coordinate = coordinate
        self.detail = detail
        message = f"No templates found for {coordinate.describe()}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class FetchError(ConjureError):
    """Raised when a remote probe, listing or download fails in transport.

    Wraps the coordinate being fetched and the underlying exception.  Fetch
    errors are never retried automatically.
    """

    def __init__(self, coordinate: TemplateCoordinate, cause: BaseException) -> None:
        self.coordinate = coordinate
        self.cause = cause
        super().__init__(
            f"Failed to fetch templates for {coordinate.describe()}: {cause}. "
            "Ensure the path exists and that network/GitHub access are available."
        )


class SourceUnavailableError(ConjureError):
    """Raised when a coordinate names a source the resolver cannot reach."""

    def __init__(self, coordinate: TemplateCoordinate, detail: str) -> None:
        self.coordinate = coordinate
        self.detail = detail
        super().__init__(f"Cannot resolve {coordinate.describe()}: {detail}")


class RenderError(ConjureError):
    """Raised when a marked file cannot be read, rendered or written."""

    def __init__(self, path: str | Path, cause: BaseException) -> None:
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Failed to render {self.path}: {cause}")


class UnsupportedTemplateError(ConjureError):
    """Raised when a requested template is not offered for a language/item."""

    def __init__(
        self,
        language: str,
        item: str,
        template: str,
        available: Iterable[str] = (),
    ) -> None:
        self.language = language
        self.item = item
        self.template = template
        self.available = sorted(available)
        choices = ", ".join(self.available) or "none"
        super().__init__(
            f"Unsupported template {template!r} for {language}/{item} "
            f"(available: {choices})"
        )


class ScaffoldError(ConjureError):
    """Raised when a pipeline step fails irrecoverably."""

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        super().__init__(f"Step {step!r}: {message}")
