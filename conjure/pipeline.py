"""Conjure scaffold pipeline.

Runs one generation request end to end:

1. **COMPOSE** -- merge the layer plan onto the target directory.
2. **PRUNE** -- drop public-only files when the project is private.
3. **RENDER** -- substitute context values into marked files.

The steps always run in this order and never overlap.  A failure leaves the
target directory as it was at the point of failure; there is no rollback, so
the target is required to be empty (or missing) up front.

Usage::

    pipeline = ScaffoldPipeline(ConjureConfig.from_env())
    result = await pipeline.run(
        ScaffoldRequest(
            target_dir="my-package",
            language="typescript",
            template="basic",
            public=False,
            context={"name": "my-package", "public": False},
        )
    )
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from conjure.composer import ComposeReport, LayeredComposer
from conjure.config import ConjureConfig
from conjure.context import RenderContext
from conjure.errors import ConjureError, ScaffoldError
from conjure.models import DEFAULT_ITEM, LayerPlan, SourceKind, private_prune_set
from conjure.pruner import prune
from conjure.registry.resolver import TemplateSourceResolver
from conjure.renderer import TemplateRenderer
from conjure.secrets import required_secrets
from conjure.utils import (
    STEP_NAMES,
    console,
    format_duration,
    print_error,
    print_step_header,
    print_success,
    print_summary_table,
    print_warning,
)


class ScaffoldRequest(BaseModel):
    """Inputs of one generation request, assembled by the caller."""

    target_dir: Path
    language: str
    template: str
    item: str = Field(default=DEFAULT_ITEM)
    public: bool = Field(default=False, description="Visibility flag; private projects are pruned")
    context: dict[str, Any] | RenderContext = Field(default_factory=dict)
    prune_set: frozenset[str] | None = Field(
        default=None, description="Overrides the configured prune set"
    )


class ScaffoldResult(BaseModel):
    """Outcome of a successful pipeline run."""

    target_dir: Path
    compose: ComposeReport
    pruned: list[Path] = Field(default_factory=list)
    rendered: list[Path] = Field(default_factory=list)
    required_secrets: list[str] = Field(default_factory=list)
    duration: str = Field(default="")


class ScaffoldPipeline:
    """Drives compose, prune and render for one request.

    Attributes:
        config: Engine configuration.  When omitted alongside an injected
            resolver, the source follows that resolver: remote only if it
            carries remote collaborators.
        resolver: Template resolver; created from *config* when not supplied,
            in which case the pipeline owns it and cleans it up after a run.
        quiet: Suppress console output.
    """

    def __init__(
        self,
        config: ConjureConfig | None = None,
        resolver: TemplateSourceResolver | None = None,
        *,
        quiet: bool = False,
    ) -> None:
        if config is None and resolver is not None:
            config = ConjureConfig(
                source=SourceKind.REMOTE if resolver.supports_remote else SourceKind.LOCAL,
                local_root=resolver.local_root,
            )
        self.config = config or ConjureConfig()
        self._owns_resolver = resolver is None
        self.resolver = resolver or self.config.build_resolver()
        self.composer = LayeredComposer(self.resolver)
        self.renderer = TemplateRenderer(self.config.marker)
        self.quiet = quiet

    def _print(self, *args: Any) -> None:
        if not self.quiet:
            console.print(*args)

    def _header(self, step: int) -> None:
        if not self.quiet:
            print_step_header(step, STEP_NAMES[step])

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    @staticmethod
    def _prepare_target(target: Path) -> None:
        if target.exists():
            if not target.is_dir():
                raise ScaffoldError("preflight", f"Target is not a directory: {target}")
            if any(target.iterdir()):
                raise ScaffoldError("preflight", f"Target directory is not empty: {target}")
        target.mkdir(parents=True, exist_ok=True)

    def layer_plan(self, request: ScaffoldRequest) -> LayerPlan:
        """The fixed four-layer plan for *request*."""
        return LayerPlan.for_template(
            request.language,
            request.template,
            item=request.item,
            source=self.config.source,
        )

    def prune_set_for(self, request: ScaffoldRequest) -> frozenset[str]:
        """Basenames pruned from *request* when it is private.

        The request's own set wins, then the configured one, then the shared
        names plus those registered for the request's language.
        """
        if request.prune_set is not None:
            return request.prune_set
        if self.config.prune_set is not None:
            return self.config.prune_set
        return private_prune_set(request.language)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, request: ScaffoldRequest) -> ScaffoldResult:
        """Generate the project described by *request*.

        Raises:
            ScaffoldError: A step failed; the underlying error is chained.
        """
        started = time.monotonic()
        target = Path(request.target_dir)
        context = RenderContext.from_mapping(request.context)
        prune_set = self.prune_set_for(request)

        self._prepare_target(target)
        try:
            step = 1
            self._header(step)
            report = await self.composer.compose(target, self.layer_plan(request))
            self._print(
                f"  [green]+[/green] {len(report.applied)} layer(s) applied, "
                f"{report.files_written} file(s) written"
            )

            step = 2
            pruned: list[Path] = []
            if not request.public:
                self._header(step)
                pruned = await asyncio.to_thread(prune, target, prune_set)
                self._print(f"  [green]+[/green] {len(pruned)} public-only path(s) removed")

            step = 3
            self._header(step)
            rendered = await asyncio.to_thread(self.renderer.render, target, context)
            self._print(f"  [green]+[/green] {len(rendered)} file(s) rendered")

        except (ConjureError, OSError) as exc:
            if not self.quiet:
                print_error(f"Step {step} ({STEP_NAMES[step]}) FAILED: {exc}")
            raise ScaffoldError(STEP_NAMES[step].lower(), str(exc)) from exc
        finally:
            if self._owns_resolver:
                self.resolver.cleanup()

        result = ScaffoldResult(
            target_dir=target,
            compose=report,
            pruned=pruned,
            rendered=rendered,
            required_secrets=required_secrets(target),
            duration=format_duration(time.monotonic() - started),
        )
        if not self.quiet:
            self._print_summary(request, result)
        return result

    def _print_summary(self, request: ScaffoldRequest, result: ScaffoldResult) -> None:
        print_summary_table(
            {
                "Target": str(result.target_dir),
                "Template": f"{request.language}/{request.item}/{request.template}",
                "Source": self.config.source.value,
                "Layers skipped": str(len(result.compose.skipped)),
                "Files rendered": str(len(result.rendered)),
                "Required secrets": ", ".join(result.required_secrets) or "none",
            },
            title="Scaffold Summary",
        )
        if result.required_secrets:
            print_warning(
                "Configure these repository secrets before the first release: "
                + ", ".join(result.required_secrets)
            )
        print_success(f"Project scaffolded in {result.duration}")
