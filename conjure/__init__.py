"""Conjure -- layered template composition and rendering for project scaffolds.

Template fragments are organised by language, resource kind and template name,
with a reserved ``shared`` directory at each level.  A generation request
merges the matching layers onto a target directory, prunes public-only files
for private projects, and renders marked files against a context.

Quick usage::

    from conjure import ConjureConfig, ScaffoldPipeline, ScaffoldRequest

    pipeline = ScaffoldPipeline(ConjureConfig(source="local", local_root="templates"))
    result = await pipeline.run(
        ScaffoldRequest(
            target_dir="/tmp/my-package",
            language="typescript",
            template="basic",
            context={"name": "my-package"},
        )
    )
"""

from conjure.composer import ComposeReport, LayeredComposer
from conjure.config import ConjureConfig, RemoteSourceConfig
from conjure.context import RenderContext
from conjure.errors import (
    ConjureError,
    FetchError,
    NotFound,
    RenderError,
    ScaffoldError,
    SourceUnavailableError,
    UnsupportedTemplateError,
)
from conjure.models import (
    LANGUAGE_PRIVATE_PRUNE_SETS,
    SHARED_PRIVATE_PRUNE_SET,
    LayerPlan,
    ResolvedTemplateDirectory,
    SourceKind,
    TemplateCoordinate,
    private_prune_set,
)
from conjure.pipeline import ScaffoldPipeline, ScaffoldRequest, ScaffoldResult
from conjure.pruner import prune
from conjure.registry import TemplateSourceResolver
from conjure.renderer import TemplateRenderer

__all__ = [
    "ComposeReport",
    "ConjureConfig",
    "ConjureError",
    "FetchError",
    "LANGUAGE_PRIVATE_PRUNE_SETS",
    "LayerPlan",
    "LayeredComposer",
    "NotFound",
    "RemoteSourceConfig",
    "RenderContext",
    "RenderError",
    "ResolvedTemplateDirectory",
    "SHARED_PRIVATE_PRUNE_SET",
    "ScaffoldError",
    "ScaffoldPipeline",
    "ScaffoldRequest",
    "ScaffoldResult",
    "SourceKind",
    "SourceUnavailableError",
    "TemplateCoordinate",
    "TemplateRenderer",
    "TemplateSourceResolver",
    "UnsupportedTemplateError",
    "private_prune_set",
    "prune",
]
