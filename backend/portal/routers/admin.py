from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.database import get_db
from portal.dependencies import require_reviewer
from portal.schemas.media import OrphanReport
from portal.services.media_service import media_service

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_reviewer)])


@router.get("/orphans", response_model=OrphanReport)
async def orphaned_uploads(db: Session = Depends(get_db)):
    """Objects in the bucket that no application record points at."""
    return media_service.find_orphans(db)
