"""Render context: the values substituted into marked template files.

The context is an ordered mapping from string keys to a small closed set of
scalar types.  It is assembled by the caller (usually from the answers to the
interactive prompts); this module only validates the shape and defines how
each value renders and whether it counts as truthy for inclusion blocks.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any, Union

from pydantic import RootModel

RenderValue = Union[str, bool, int, float, None]
"""Closed variant of values a context may hold."""


def is_truthy(value: Any) -> bool:
    """Return whether *value* opens a ``{{#key}}`` block.

    ``None``, ``False`` and the empty string are falsy.  Everything else,
    including ``0``, is truthy.
    """
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return value != ""
    return True


def format_value(value: Any) -> str:
    """Render a context value as template text.

    Booleans render as ``true``/``false`` so JSON and YAML fragments come out
    valid; ``None`` renders as an empty string; integral floats drop the
    fractional part.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class RenderContext(RootModel[dict[str, RenderValue]]):
    """Ordered ``{key: value}`` mapping validated against :data:`RenderValue`.

    Lists, dicts and arbitrary objects are rejected at construction time.
    Missing keys read as ``None`` (absent).
    """

    root: dict[str, RenderValue] = {}

    @classmethod
    def from_mapping(cls, values: "Mapping[str, Any] | RenderContext | None") -> "RenderContext":
        """Build a context from any mapping, or pass an existing one through."""
        if isinstance(values, RenderContext):
            return values
        return cls.model_validate(dict(values or {}))

    def __getitem__(self, key: str) -> RenderValue:
        return self.root.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self.root

    def __iter__(self) -> Iterator[str]:  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    def get(self, key: str, default: RenderValue = None) -> RenderValue:
        return self.root.get(key, default)

    def items(self):
        return self.root.items()

    def truthy(self, key: str) -> bool:
        """Whether *key* is present with a truthy value."""
        return is_truthy(self.root.get(key))

    def merged(self, **overrides: Any) -> "RenderContext":
        """Return a new context with *overrides* applied on top."""
        return RenderContext.model_validate({**self.root, **overrides})
