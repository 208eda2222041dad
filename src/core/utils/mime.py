"""Content sniffing and declared-type checks."""

from core.utils.constants import ALLOWED_MIME_TYPES, MIME_TYPE_EXTENSION_MAP
from core.utils.filenames import file_extension

# ISO-BMFF brands (bytes 8..12 after the 'ftyp' box type) used by HEIC/HEIF.
HEIF_BRANDS: frozenset[bytes] = frozenset(
    {b"heic", b"heix", b"hevc", b"hevx", b"heim", b"heis", b"mif1", b"msf1"}
)


def is_heif(file_data: bytes) -> bool:
    return file_data[4:8] == b"ftyp" and file_data[8:12] in HEIF_BRANDS


def declared_type_error(filename: str, mime_type: str) -> str | None:
    """Reason the declared MIME type / extension pair is not accepted, if any."""
    mime = mime_type.strip().lower()
    if mime not in ALLOWED_MIME_TYPES:
        return (
            f"Unsupported MIME type '{mime_type}'. "
            f"Allowed types: {', '.join(sorted(ALLOWED_MIME_TYPES))}"
        )

    extension = file_extension(filename)
    if not extension:
        return "Filename must have an extension"

    if extension not in MIME_TYPE_EXTENSION_MAP[mime]:
        return f"Extension '.{extension}' does not match MIME type '{mime}'"

    return None
