import base64
import hashlib
from pathlib import Path


def _b64(digest: bytes) -> str:
    return base64.b64encode(digest).decode("ascii")


def sha256_b64(data: bytes) -> str:
    """Integrity token in the form S3 expects for ``x-amz-checksum-sha256``."""
    return _b64(hashlib.sha256(data).digest())


def sha256_b64_file(file_path: Path) -> str:
    h = hashlib.sha256()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return _b64(h.digest())
