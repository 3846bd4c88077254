import logging
import re
from datetime import datetime, timezone

import httpx

from portal.errors import UploadFailed
from portal.schemas.media import UploadAuthorization
from portal.utils.naming import redact_url
from portal.workflow.types import UploadReceipt

logger = logging.getLogger("portal.workflow.upload")

_S3_ERROR_CODE = re.compile(r"<Code>([^<]+)</Code>")

GENERIC_FAILURE = "The file could not be sent to storage"


class DirectUploader:
    """PUTs file bytes straight to a presigned URL.

    Every way the transfer can go wrong (transport error, expired URL,
    checksum or length mismatch, any non-2xx) surfaces as ``UploadFailed``.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 120.0):
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self):
        await self._client.aclose()

    async def upload(self, authorization: UploadAuthorization, data: bytes) -> UploadReceipt:
        context = {
            "object_key": authorization.object_key,
            "size_bytes": len(data),
            "target": redact_url(authorization.url),
        }
        if authorization.expires_at <= datetime.now(timezone.utc):
            raise UploadFailed(GENERIC_FAILURE, provider_status=None, cause="authorization expired", **context)

        try:
            r = await self._client.put(authorization.url, content=data, headers=authorization.headers)
        except httpx.HTTPError as exc:
            raise UploadFailed(GENERIC_FAILURE, provider_status=None, cause=type(exc).__name__, **context) from exc

        if not r.is_success:
            match = _S3_ERROR_CODE.search(r.text or "")
            raise UploadFailed(
                GENERIC_FAILURE,
                provider_status=r.status_code,
                cause=match.group(1) if match else None,
                **context,
            )

        logger.info("Uploaded %s (%d bytes) to %s", authorization.object_key, len(data), context["target"])
        return UploadReceipt(
            object_key=authorization.object_key,
            size_bytes=len(data),
            etag=r.headers.get("ETag"),
        )
