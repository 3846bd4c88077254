from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from portal.database import get_db
from portal.models.user import User
from portal.services import settings_service
from portal.services.session_service import session_service


async def require_candidate(authorization: str = Header(...), db: Session = Depends(get_db)) -> User:
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    user_id = session_service.user_id_for(authorization[7:])
    if user_id is None:
        raise HTTPException(status_code=401, detail="Session expired or invalid")
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return user


async def require_reviewer(user: User = Depends(require_candidate)) -> User:
    if user.role != "REVIEWER":
        raise HTTPException(status_code=403, detail="Reviewer role required")
    return user


async def require_applications_open(db: Session = Depends(get_db)):
    if not settings_service.applications_open(db):
        raise HTTPException(
            status_code=403,
            detail={"code": "submissions_closed", "message": "Applications are currently closed."},
        )
