import unicodedata
from urllib.parse import urlsplit, urlunsplit

from portal.config import settings

SLOTS = ("school_certificate", "grades", "report")


def sanitize_filename(name: str) -> str:
    keep = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789._-")
    return "".join(c if c in keep else "_" for c in name)


def _ascii_slug(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    return sanitize_filename(normalized.strip().lower().replace(" ", "-"))


def upload_folder_name(first_name: str, last_name: str, owner_id: int) -> str:
    # The owner id keeps homonyms apart.
    return f"{_ascii_slug(last_name)}_{_ascii_slug(first_name)}_{owner_id}"


def file_extension(filename: str) -> str:
    if "." not in filename:
        return "bin"
    return sanitize_filename(filename.rsplit(".", 1)[1].lower()) or "bin"


def object_key_for(
    owner_id: int,
    first_name: str,
    last_name: str,
    slot: str,
    filename: str,
    root: str | None = None,
) -> str:
    """Deterministic key for one candidate file slot.

    A retry of the same slot and extension overwrites the previous object
    instead of leaving a duplicate behind.
    """
    if slot not in SLOTS:
        raise ValueError(f"Unknown slot {slot!r}. Must be one of: {SLOTS}")
    folder = upload_folder_name(first_name, last_name, owner_id)
    return f"{root or settings.upload_root}/{folder}/{slot}.{file_extension(filename)}"


def redact_url(url: str) -> str:
    """Drop the query string, which holds the presigned signature."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
