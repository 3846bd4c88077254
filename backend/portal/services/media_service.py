import logging
from datetime import datetime, timedelta, timezone

import boto3
from botocore.config import Config
from sqlalchemy.orm import Session

from portal.config import settings
from portal.errors import AuthorizationDenied, PayloadTooLarge, UnsupportedType
from portal.models.stored_object import StoredObject
from portal.schemas.media import OrphanedObject, OrphanReport, UploadAuthorization
from portal.utils.naming import redact_url

logger = logging.getLogger("portal.media")


class MediaService:
    """Mints presigned object-storage URLs.

    The checks in ``authorize`` keep obviously bad payloads from ever getting
    a write credential. The bucket enforces the signed content type, length
    and checksum on its own when the PUT arrives.
    """

    def __init__(self):
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=settings.aws_region,
                endpoint_url=settings.s3_endpoint_url,
                aws_access_key_id=settings.aws_access_key_id,
                aws_secret_access_key=settings.aws_secret_access_key,
                config=Config(signature_version="s3v4"),
            )
        return self._client

    def use_client(self, client):
        self._client = client

    def authorize(
        self,
        owner_id: int,
        object_key: str,
        content_type: str,
        size_bytes: int,
        integrity_token: str,
    ) -> UploadAuthorization:
        if content_type not in settings.accepted_content_types:
            raise UnsupportedType(
                "This file format is not accepted. Choose a PDF or an image (PNG, JPG, WEBP).",
                owner_id=owner_id,
                object_key=object_key,
                content_type=content_type,
            )
        if size_bytes <= 0:
            raise UnsupportedType(
                "The file is empty. Choose another file.",
                owner_id=owner_id,
                object_key=object_key,
                size_bytes=size_bytes,
            )
        if size_bytes > settings.max_upload_bytes:
            raise PayloadTooLarge(
                f"The file is too large (max {settings.max_upload_bytes // (1024 * 1024)} MB). "
                "Choose a smaller file.",
                owner_id=owner_id,
                object_key=object_key,
                size_bytes=size_bytes,
            )
        self.check_owner_folder(owner_id, object_key)

        ttl = settings.upload_url_ttl_seconds
        url = self.client.generate_presigned_url(
            "put_object",
            Params={
                "Bucket": settings.aws_bucket_name,
                "Key": object_key,
                "ContentType": content_type,
                "ContentLength": size_bytes,
                "ChecksumSHA256": integrity_token,
                "Metadata": {"userId": str(owner_id)},
            },
            ExpiresIn=ttl,
        )
        logger.info(
            "Issued upload URL owner=%s key=%s type=%s size=%d target=%s",
            owner_id, object_key, content_type, size_bytes, redact_url(url),
        )
        return UploadAuthorization(
            url=url,
            object_key=object_key,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=ttl),
            headers={
                "Content-Type": content_type,
                "x-amz-checksum-sha256": integrity_token,
                "x-amz-meta-userid": str(owner_id),
            },
        )

    def authorize_read(self, object_key: str) -> UploadAuthorization:
        ttl = settings.download_url_ttl_seconds
        url = self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": settings.aws_bucket_name, "Key": object_key},
            ExpiresIn=ttl,
        )
        return UploadAuthorization(
            url=url,
            object_key=object_key,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=ttl),
        )

    def find_orphans(self, db: Session) -> OrphanReport:
        """List bucket objects under the upload root that no record points at.

        Report-only: reconciling an orphan is a manual operator decision.
        """
        prefix = f"{settings.upload_root}/"
        referenced = {key for (key,) in db.query(StoredObject.object_key).all()}

        scanned = 0
        orphans: list[OrphanedObject] = []
        paginator = self.client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=settings.aws_bucket_name, Prefix=prefix):
            for obj in page.get("Contents", []):
                scanned += 1
                if obj["Key"] in referenced:
                    continue
                orphans.append(OrphanedObject(
                    object_key=obj["Key"],
                    size=obj["Size"],
                    last_modified=obj["LastModified"],
                ))

        if orphans:
            logger.warning("Found %d orphaned object(s) under %s", len(orphans), prefix)
        return OrphanReport(prefix=prefix, scanned=scanned, orphans=orphans)

    def check_owner_folder(self, owner_id: int, object_key: str):
        # Keys look like <root>/<last>_<first>_<owner_id>/<slot>.<ext>
        parts = object_key.split("/")
        if (
            len(parts) != 3
            or parts[0] != settings.upload_root
            or not parts[1].endswith(f"_{owner_id}")
            or not parts[2]
        ):
            raise AuthorizationDenied(
                "This upload location is not allowed.",
                owner_id=owner_id,
                object_key=object_key,
            )


media_service = MediaService()
