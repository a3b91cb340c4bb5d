"""embedres: resolve embedded Joplin resource references in note bodies."""

from embedres.core import ResourceService, resolve_body
from embedres.types import PipelineResult, ResolutionMode, ResolveOptions

__version__ = "0.1.0"

__all__ = [
    "ResourceService",
    "resolve_body",
    "PipelineResult",
    "ResolutionMode",
    "ResolveOptions",
]
