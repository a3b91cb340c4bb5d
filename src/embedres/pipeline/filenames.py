"""Attachment naming for local-file resolution."""

from __future__ import annotations

import re
from collections.abc import Callable
from pathlib import PurePosixPath

from embedres.types import ResourceMetadata

MIME_EXTENSIONS: dict[str, str] = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
}
_KNOWN_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}

# Characters no common filesystem accepts in a file name
_FORBIDDEN_CHARS_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def sanitize_filename(name: str) -> str:
    safe = _FORBIDDEN_CHARS_RE.sub("-", name).strip(" .")
    return safe


def attachment_filename(metadata: ResourceMetadata, resource_id: str) -> str:
    """Pick a vault filename for a resource.

    Prefers the resource's original filename, then its title, then the id.
    Adds an extension from the mime type when the name has none.
    """
    name = ""
    for candidate in (metadata.filename, metadata.title, resource_id):
        name = sanitize_filename(candidate or "")
        if name:
            break

    path = PurePosixPath(name)
    if path.suffix.lower() in _KNOWN_EXTENSIONS:
        return name

    extension = metadata.file_extension.lstrip(".").lower() or MIME_EXTENSIONS.get(
        metadata.mime.lower(), "bin"
    )
    return f"{name}.{extension}"


def unique_filename(
    name: str,
    taken: set[str],
    exists: Callable[[str], bool] | None = None,
) -> str:
    """Append ``-1``, ``-2``, ... until ``name`` clashes with nothing.

    ``taken`` holds lower-cased names already handed out in this run;
    ``exists`` lets the caller report names that are already on disk.
    """
    path = PurePosixPath(name)
    stem, suffix = path.stem, path.suffix
    candidate = name
    counter = 1
    while candidate.lower() in taken or (exists is not None and exists(candidate)):
        candidate = f"{stem}-{counter}{suffix}"
        counter += 1
    return candidate
