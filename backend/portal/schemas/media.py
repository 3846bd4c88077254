from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SignedUrlRequest(BaseModel):
    object_key: str = Field(min_length=1)
    content_type: str
    size: int = Field(gt=0)
    checksum: str = Field(min_length=1)


class UploadAuthorization(BaseModel):
    """Time-limited permission to PUT or GET exactly one object."""

    model_config = ConfigDict(frozen=True)

    url: str
    object_key: str
    expires_at: datetime
    headers: dict[str, str] = {}


class OrphanedObject(BaseModel):
    object_key: str
    size: int
    last_modified: datetime


class OrphanReport(BaseModel):
    prefix: str
    scanned: int
    orphans: list[OrphanedObject]
