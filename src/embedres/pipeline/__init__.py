"""Resolution pipeline: scanning, fetching and in-place substitution."""

from embedres.pipeline.engine import IMAGE_MIME_TYPES, ResolutionPipeline
from embedres.pipeline.scanner import distinct_ids, is_valid_resource_id, scan

__all__ = [
    "ResolutionPipeline",
    "IMAGE_MIME_TYPES",
    "scan",
    "distinct_ids",
    "is_valid_resource_id",
]
