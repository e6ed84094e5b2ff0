"""Template source registry: local and remote resolution of coordinates."""

from conjure.registry.github import (
    ContentsClient,
    GitHubContentsClient,
    GitHubTarballDownloader,
    ProbeResult,
    SnapshotDownloader,
)
from conjure.registry.resolver import TemplateSourceResolver

__all__ = [
    "ContentsClient",
    "GitHubContentsClient",
    "GitHubTarballDownloader",
    "ProbeResult",
    "SnapshotDownloader",
    "TemplateSourceResolver",
]
