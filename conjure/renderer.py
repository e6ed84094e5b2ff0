"""Substitution pass over marked template files.

Provides the TemplateRenderer class which walks a composed project tree,
renders every file whose name carries the marker infix (``package.marker.json``)
and writes the result next to it with the infix removed (``package.json``).

Templates use a small logic-less tag syntax:

* ``{{key}}`` (also ``{{{key}}}`` and ``{{&key}}``) interpolates a value
  verbatim, without any escaping;
* ``{{#key}}...{{/key}}`` keeps its body only when ``key`` is truthy;
* ``{{^key}}...{{/key}}`` keeps its body only when ``key`` is falsy or absent;
* ``{{! comment }}`` is dropped.

The tags are lowered into Jinja2 source and rendered by a Jinja2
``Environment``.  Template fragments frequently ship GitHub Actions workflows,
whose ``${{ ... }}`` expressions share the double-brace delimiters; those
spans are masked with placeholders before rendering and restored afterwards,
byte for byte.  Line endings are kept per line, so files with mixed
``\\n`` and ``\\r\\n`` endings round-trip unchanged.
"""

from __future__ import annotations

import re
import uuid
from pathlib import Path
from typing import Any, Mapping, NamedTuple

from jinja2 import Environment, TemplateError, TemplateSyntaxError, Undefined

from .context import RenderContext, format_value, is_truthy
from .errors import RenderError


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_MARKER = ".marker."

_FOREIGN_EXPR_RE = re.compile(r"\$\{\{[\s\S]*?\}\}")

# ``{{{key}}}`` first, then ``{{<sigil>key}}``.  Keys never contain braces, so
# a brace next to a tag (``{"n": {{n}}}``) stays literal text.
_TAG_RE = re.compile(
    r"\{\{\{\s*(?P<raw>[^{}]*?)\s*\}\}\}"
    r"|\{\{(?P<sigil>[#^/!&]?)\s*(?P<key>[^{}]*?)\s*\}\}"
)

# Text Jinja2 would otherwise read as a tag opener, plus carriage returns,
# which its lexer folds into ``newline_sequence``.
_LITERAL_ESCAPE_RE = re.compile(r"\{[{%#]|\{\Z|\r\n?")

_STANDALONE_SIGILS = frozenset("#^/!")


# ---------------------------------------------------------------------------
# Foreign expression masking
# ---------------------------------------------------------------------------


class ForeignExpressionToken(NamedTuple):
    """A masked ``${{ ... }}`` span: its placeholder and original text."""

    placeholder: str
    text: str


def mask_foreign_expressions(text: str) -> tuple[str, list[ForeignExpressionToken]]:
    """Replace every ``${{ ... }}`` span with a unique placeholder.

    Spans are matched non-greedily and may cross lines.  An opening ``${{``
    with no closing ``}}`` is left as literal text.

    Returns:
        The masked text and the recorded tokens, in order of appearance.
    """
    nonce = uuid.uuid4().hex[:12]
    tokens: list[ForeignExpressionToken] = []

    def _mask(match: re.Match[str]) -> str:
        placeholder = f"__FOREIGN_EXPR_{nonce}_{len(tokens)}__"
        tokens.append(ForeignExpressionToken(placeholder, match.group(0)))
        return placeholder

    return _FOREIGN_EXPR_RE.sub(_mask, text), tokens


def restore_foreign_expressions(text: str, tokens: list[ForeignExpressionToken]) -> str:
    """Put the masked spans back, in the order they were captured."""
    for token in tokens:
        text = text.replace(token.placeholder, token.text)
    return text


# ---------------------------------------------------------------------------
# Tag lowering
# ---------------------------------------------------------------------------


def _escape_text(text: str) -> str:
    """Make literal text safe to embed in Jinja2 source.

    Escaped sequences become string expressions, so ``\\r\\n`` and ``\\r``
    line endings reach the output exactly as written.
    """
    return _LITERAL_ESCAPE_RE.sub(lambda m: "{{ %r }}" % m.group(0), text)


def _standalone_bounds(source: str, start: int, end: int) -> tuple[int, int] | None:
    """Return the line bounds if the tag at ``source[start:end]`` sits alone on its line."""
    line_start = source.rfind("\n", 0, start) + 1
    newline = source.find("\n", end)
    line_end = len(source) if newline == -1 else newline + 1
    if source[line_start:start].strip() or source[end:line_end].strip():
        return None
    return line_start, line_end


def lower_template(source: str) -> str:
    """Translate tag syntax into equivalent Jinja2 source.

    Section, inverted, closing and comment tags that are alone on their line
    swallow the whole line, so block markers never leave blank lines behind.

    Raises:
        jinja2.TemplateSyntaxError: On unbalanced or mismatched sections.
    """
    out: list[str] = []
    stack: list[tuple[str, int]] = []
    pos = 0

    for match in _TAG_RE.finditer(source):
        if match.start() < pos:
            # Inside a line already consumed by a standalone tag.
            continue
        if match.group("raw") is not None:
            sigil, key = "{", match.group("raw").strip()
        else:
            sigil, key = match.group("sigil"), match.group("key").strip()
        lineno = source.count("\n", 0, match.start()) + 1

        text_end = match.start()
        next_pos = match.end()
        if sigil in _STANDALONE_SIGILS:
            bounds = _standalone_bounds(source, match.start(), match.end())
            if bounds is not None:
                text_end, next_pos = max(bounds[0], pos), bounds[1]
        out.append(_escape_text(source[pos:text_end]))
        pos = next_pos

        if sigil == "!":
            continue
        if sigil == "#":
            stack.append((key, lineno))
            out.append("{%% if ctx[%r] is truthy %%}" % key)
        elif sigil == "^":
            stack.append((key, lineno))
            out.append("{%% if ctx[%r] is not truthy %%}" % key)
        elif sigil == "/":
            if not stack:
                raise TemplateSyntaxError(f"Unopened section {key!r} closed", lineno)
            opened, _ = stack.pop()
            if opened != key:
                raise TemplateSyntaxError(
                    f"Section {opened!r} closed by {key!r}", lineno
                )
            out.append("{% endif %}")
        else:
            out.append("{{ ctx[%r] | scalar }}" % key)

    if stack:
        key, lineno = stack[-1]
        raise TemplateSyntaxError(f"Unclosed section {key!r}", lineno)

    out.append(_escape_text(source[pos:]))
    return "".join(out)


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders marked files in place.

    Files are selected by the marker infix (case-insensitive).  Each rendered
    file is written to the infix-stripped name and the marked original is
    deleted.  Unmarked files are never touched.
    """

    def __init__(self, marker: str = DEFAULT_MARKER) -> None:
        self.marker = marker
        self.env = Environment(
            autoescape=False,
            keep_trailing_newline=True,
        )
        self.env.filters["scalar"] = _scalar_filter
        self.env.tests["truthy"] = _truthy_test

    # -- String rendering --------------------------------------------------

    def render_text(
        self,
        text: str,
        context: RenderContext | Mapping[str, Any] | None = None,
    ) -> str:
        """Render one template string, preserving ``${{ ... }}`` spans.

        Raises:
            jinja2.TemplateError: If the tags are unbalanced.
        """
        ctx = RenderContext.from_mapping(context)
        masked, tokens = mask_foreign_expressions(text)
        template = self.env.from_string(lower_template(masked))
        rendered = template.render(ctx=dict(ctx.items()))
        return restore_foreign_expressions(rendered, tokens)

    # -- Tree rendering ----------------------------------------------------

    def is_marked(self, name: str) -> bool:
        """Whether *name* carries the marker infix."""
        return self.marker.lower() in name.lower()

    def output_name(self, name: str) -> str:
        """Strip exactly one marker infix: ``a.marker.json`` -> ``a.json``."""
        index = name.lower().find(self.marker.lower())
        if index == -1:
            return name
        return name[:index] + "." + name[index + len(self.marker):]

    def render(
        self,
        root_dir: str | Path,
        context: RenderContext | Mapping[str, Any] | None = None,
    ) -> list[Path]:
        """Render every marked file under *root_dir*.

        A missing *root_dir* is a no-op.  The first file that fails aborts
        the whole pass; files rendered before it stay rendered.

        Returns:
            Paths of the written (unmarked) files.

        Raises:
            RenderError: If a marked file cannot be read, rendered or written.
        """
        ctx = RenderContext.from_mapping(context)
        written: list[Path] = []
        self._render_dir(Path(root_dir), ctx, written)
        return written

    def _render_dir(self, directory: Path, ctx: RenderContext, written: list[Path]) -> None:
        try:
            entries = sorted(directory.iterdir())
        except (FileNotFoundError, NotADirectoryError):
            return

        for entry in entries:
            if entry.is_symlink():
                continue
            if entry.is_dir():
                self._render_dir(entry, ctx, written)
            elif entry.is_file() and self.is_marked(entry.name):
                written.append(self._render_file(entry, ctx))

    def _render_file(self, path: Path, ctx: RenderContext) -> Path:
        dest = path.with_name(self.output_name(path.name))
        try:
            raw = _read_file(path)
            rendered = self.render_text(raw, ctx)
            _write_file(dest, rendered)
            path.unlink()
        except (OSError, UnicodeDecodeError, TemplateError) as exc:
            raise RenderError(path, exc) from exc
        return dest


# ---------------------------------------------------------------------------
# Jinja2 filters and tests
# ---------------------------------------------------------------------------


def _scalar_filter(value: Any) -> str:
    """Render a context value; missing keys render as nothing."""
    if isinstance(value, Undefined):
        return ""
    return format_value(value)


def _truthy_test(value: Any) -> bool:
    if isinstance(value, Undefined):
        return False
    return is_truthy(value)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _read_file(path: Path) -> str:
    """Read *path* as UTF-8 keeping its original newlines."""
    with path.open(encoding="utf-8", newline="") as fh:
        return fh.read()


def _write_file(path: Path, content: str) -> None:
    """Write *content* without translating newlines."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as fh:
        fh.write(content)
