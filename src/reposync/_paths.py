"""Repository path validation shared by the tree builder and the validator."""

from __future__ import annotations

from .exceptions import ValidationError


def _split_path(path: str) -> list[str]:
    """Split a repository path into segments, rejecting malformed input.

    Leading or trailing slashes, empty segments, and ``.``/``..`` segments
    are all rejected with :class:`ValidationError`.
    """
    if not isinstance(path, str):
        raise ValidationError("Path must be a string", repr(path))
    if not path:
        raise ValidationError("Path must not be empty", path)
    if path.startswith("/") or path.endswith("/"):
        raise ValidationError("Path must not start or end with '/'", path)
    segments = path.split("/")
    for seg in segments:
        if not seg:
            raise ValidationError("Empty segment in path", path)
        if seg == "..":
            raise ValidationError("Path traversal is not allowed", path)
        if seg == ".":
            raise ValidationError("Invalid path segment '.'", path)
    return segments


def _normalize_path(path: str) -> str:
    """Strip leading slashes, then validate; returns the cleaned path."""
    if not isinstance(path, str):
        raise ValidationError("Path must be a string", repr(path))
    stripped = path.lstrip("/")
    if not stripped:
        raise ValidationError("Path must not be empty", path)
    return "/".join(_split_path(stripped))
