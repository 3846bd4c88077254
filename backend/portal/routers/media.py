import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from portal.database import get_db
from portal.dependencies import require_applications_open, require_candidate
from portal.errors import AuthorizationDenied, PayloadTooLarge, UnsupportedType
from portal.models.application import Application
from portal.models.stored_object import StoredObject
from portal.models.user import User
from portal.schemas.media import SignedUrlRequest, UploadAuthorization
from portal.services.media_service import media_service

logger = logging.getLogger("portal.media")

router = APIRouter(prefix="/media", tags=["media"])


@router.post(
    "/signed-url",
    response_model=UploadAuthorization,
    dependencies=[Depends(require_applications_open)],
)
async def signed_url(req: SignedUrlRequest, user: User = Depends(require_candidate)):
    try:
        return media_service.authorize(user.id, req.object_key, req.content_type, req.size, req.checksum)
    except UnsupportedType as exc:
        logger.info("Rejected upload type: %s", exc.context)
        raise HTTPException(status_code=415, detail={"code": exc.code, "message": exc.message})
    except PayloadTooLarge as exc:
        logger.info("Rejected upload size: %s", exc.context)
        raise HTTPException(status_code=413, detail={"code": exc.code, "message": exc.message})
    except AuthorizationDenied as exc:
        logger.warning("Rejected upload location: %s", exc.context)
        raise HTTPException(status_code=403, detail={"code": exc.code, "message": exc.message})


@router.get("/presigned-url", response_model=UploadAuthorization)
async def presigned_url(
    key: str = Query(..., min_length=1),
    user: User = Depends(require_candidate),
    db: Session = Depends(get_db),
):
    if user.role != "REVIEWER":
        owned = (
            db.query(StoredObject)
            .join(Application, Application.id == StoredObject.application_id)
            .filter(Application.user_id == user.id, StoredObject.object_key == key)
            .first()
        )
        if not owned:
            raise HTTPException(status_code=404, detail="File not found")
    return media_service.authorize_read(key)
