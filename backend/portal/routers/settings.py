from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.database import get_db
from portal.dependencies import require_reviewer
from portal.schemas.settings import ApplicationsOpenResponse, ApplicationsOpenUpdate
from portal.services import settings_service

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("")
async def all_settings(db: Session = Depends(get_db)):
    return settings_service.get_all(db)


@router.get("/applications-open", response_model=ApplicationsOpenResponse)
async def applications_open(db: Session = Depends(get_db)):
    return ApplicationsOpenResponse(is_open=settings_service.applications_open(db))


@router.put(
    "/applications-open",
    response_model=ApplicationsOpenResponse,
    dependencies=[Depends(require_reviewer)],
)
async def set_applications_open(req: ApplicationsOpenUpdate, db: Session = Depends(get_db)):
    settings_service.set_applications_open(db, req.is_open)
    return ApplicationsOpenResponse(is_open=settings_service.applications_open(db))
