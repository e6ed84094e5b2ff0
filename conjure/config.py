"""Conjure configuration.

:class:`ConjureConfig` selects the template source (a local checkout or a
GitHub repository) and the filename infix that marks render targets.  It is
read from ``CONJURE_*`` environment variables or a saved JSON file, and it
builds the :class:`TemplateSourceResolver` a pipeline run uses.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from conjure.models import SourceKind
from conjure.registry.github import (
    DEFAULT_API_BASE,
    DEFAULT_CODELOAD_BASE,
    DEFAULT_USER_AGENT,
    GitHubContentsClient,
    GitHubTarballDownloader,
)
from conjure.registry.resolver import TemplateSourceResolver
from conjure.renderer import DEFAULT_MARKER


class RemoteSourceConfig(BaseModel):
    """The GitHub repository mirroring the template hierarchy."""

    owner: str = Field(default="conjure-dev")
    repo: str = Field(default="conjure-templates")
    ref: str = Field(default="main", description="Branch, tag or commit to read")
    api_base: str = Field(default=DEFAULT_API_BASE)
    codeload_base: str = Field(default=DEFAULT_CODELOAD_BASE)
    token: str | None = Field(default=None, description="GitHub token for private repos / rate limits")
    timeout: float = Field(default=30.0, ge=1, description="Per-request timeout in seconds")
    user_agent: str = Field(default=DEFAULT_USER_AGENT)

    @property
    def slug(self) -> str:
        """``owner/repo`` label."""
        return f"{self.owner}/{self.repo}"


class ConjureConfig(BaseModel):
    """Global template engine configuration.

    Instances are typically created once by the calling CLI (or through
    :meth:`from_env`) and passed to :class:`~conjure.pipeline.ScaffoldPipeline`.
    """

    source: SourceKind = Field(default=SourceKind.REMOTE)
    local_root: Path = Field(default=Path("./templates"))
    marker: str = Field(default=DEFAULT_MARKER, description="Filename infix of render targets")
    remote: RemoteSourceConfig = Field(default_factory=RemoteSourceConfig)
    prune_set: frozenset[str] | None = Field(
        default=None,
        description="Replaces the per-language private prune set when given",
    )

    @field_validator("marker")
    @classmethod
    def _dotted_marker(cls, value: str) -> str:
        if len(value) < 3 or not (value.startswith(".") and value.endswith(".")):
            raise ValueError("marker must look like '.name.'")
        return value

    @property
    def is_local(self) -> bool:
        return self.source is SourceKind.LOCAL

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    def build_resolver(self) -> TemplateSourceResolver:
        """Create a resolver wired to this configuration's sources."""
        remote = self.remote
        return TemplateSourceResolver(
            self.local_root,
            contents=GitHubContentsClient(
                remote.owner,
                remote.repo,
                remote.ref,
                api_base=remote.api_base,
                token=remote.token,
                timeout=remote.timeout,
                user_agent=remote.user_agent,
            ),
            downloader=GitHubTarballDownloader(
                remote.owner,
                remote.repo,
                remote.ref,
                codeload_base=remote.codeload_base,
                token=remote.token,
                timeout=max(remote.timeout, 60.0),
                user_agent=remote.user_agent,
            ),
        )

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        The GitHub token is never written out.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            self.model_dump_json(indent=2, exclude={"remote": {"token"}}),
            encoding="utf-8",
        )
        return target

    @classmethod
    def load(cls, path: Path) -> "ConjureConfig":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "ConjureConfig":
        """Build a ``ConjureConfig`` from environment variables.

        Recognised variables (all optional):
            CONJURE_LOCAL_TEMPLATES ("true" selects the local source),
            CONJURE_TEMPLATES_ROOT, CONJURE_REPO (``owner/repo``),
            CONJURE_REF, CONJURE_HTTP_TIMEOUT, GITHUB_TOKEN.
        """
        remote_kwargs: dict[str, Any] = {}
        if os.environ.get("CONJURE_REPO"):
            owner, _, repo = os.environ["CONJURE_REPO"].partition("/")
            if not owner or not repo:
                raise ValueError("CONJURE_REPO must look like 'owner/repo'")
            remote_kwargs["owner"] = owner
            remote_kwargs["repo"] = repo
        if os.environ.get("CONJURE_REF"):
            remote_kwargs["ref"] = os.environ["CONJURE_REF"]
        if os.environ.get("CONJURE_HTTP_TIMEOUT"):
            remote_kwargs["timeout"] = float(os.environ["CONJURE_HTTP_TIMEOUT"])
        if os.environ.get("GITHUB_TOKEN"):
            remote_kwargs["token"] = os.environ["GITHUB_TOKEN"]

        is_local = os.environ.get("CONJURE_LOCAL_TEMPLATES", "").lower() == "true"

        return cls(
            source=SourceKind.LOCAL if is_local else SourceKind.REMOTE,
            local_root=Path(os.environ.get("CONJURE_TEMPLATES_ROOT", "./templates")),
            remote=RemoteSourceConfig(**remote_kwargs),
        )
