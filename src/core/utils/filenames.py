"""Filename sanitization and storage-key derivation."""

from pathlib import PurePosixPath
import re
import uuid

from core.utils.constants import IMAGE_KEY_PREFIX, MAX_FILENAME_LENGTH
from core.utils.time import epoch_millis

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")
_DOT_RUNS = re.compile(r"\.{2,}")
_EDGE_DOTS = re.compile(r"^\.+|\.+$")


def sanitize_filename(filename: str) -> str:
    """Make an untrusted filename safe for object keys.

    Characters outside [A-Za-z0-9.-] become underscores, runs of dots
    collapse, and leading/trailing dots are stripped.
    """
    cleaned = _UNSAFE_CHARS.sub("_", filename)
    cleaned = _DOT_RUNS.sub(".", cleaned)
    cleaned = _EDGE_DOTS.sub("", cleaned)
    return cleaned[:MAX_FILENAME_LENGTH] or "upload"


def file_extension(filename: str) -> str:
    """Lower-case extension without the dot, or '' when absent."""
    return PurePosixPath(filename.strip()).suffix.lower().lstrip(".")


def replace_extension(filename: str, extension: str) -> str:
    path = PurePosixPath(filename)
    if not path.suffix:
        return f"{filename}.{extension}"
    return str(path.with_suffix(f".{extension}"))


def build_stored_filename(original_name: str, *, timestamp_ms: int | None = None) -> str:
    """`<epoch-millis>-<8 hex>-<sanitized original>`.

    The random segment keeps same-name uploads in the same millisecond apart.
    """
    stamp = timestamp_ms if timestamp_ms is not None else epoch_millis()
    return f"{stamp}-{uuid.uuid4().hex[:8]}-{sanitize_filename(original_name)}"


def build_storage_key(stored_filename: str) -> str:
    return f"{IMAGE_KEY_PREFIX}/{stored_filename}"
