from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from portal.database import get_db
from portal.dependencies import require_candidate, require_reviewer
from portal.errors import AuthorizationDenied
from portal.models.application import Application, ApplicationStatus
from portal.models.user import User
from portal.schemas.application import (
    ApplicationForm,
    ApplicationResponse,
    AttachObjectsRequest,
    ReportPageResponse,
    StatusResponse,
    StatusUpdate,
)
from portal.services import application_service, settings_service
from portal.services.content_service import report_status_label, select_report_content
from portal.services.media_service import media_service

router = APIRouter(prefix="/applications", tags=["applications"])

SLOT_FIELDS = {
    "school_certificate_url": "school_certificate",
    "grades_url": "grades",
    "report_url": "report",
}


class ApplicationListResponse(BaseModel):
    applications: list[ApplicationResponse]
    total: int
    page: int
    per_page: int


def _load_for(application_id: int, user: User, db: Session) -> Application:
    application = db.get(Application, application_id)
    if application is None or (user.role != "REVIEWER" and application.user_id != user.id):
        raise HTTPException(status_code=404, detail="Application not found")
    return application


@router.post("", response_model=ApplicationResponse)
async def save_application(
    req: ApplicationForm,
    user: User = Depends(require_candidate),
    db: Session = Depends(get_db),
):
    application = application_service.save_form(db, user, req)
    return application_service.application_to_response(application)


@router.get("", response_model=ApplicationListResponse, dependencies=[Depends(require_reviewer)])
async def list_applications(
    status: str | None = None,
    report_status: str | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    query = db.query(Application).join(ApplicationStatus)
    if status:
        query = query.filter(ApplicationStatus.status == status)
    if report_status:
        query = query.filter(ApplicationStatus.report_status == report_status)

    total = query.count()
    applications = (
        query.order_by(Application.updated_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return ApplicationListResponse(
        applications=[application_service.application_to_response(a) for a in applications],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/me", response_model=ApplicationResponse)
async def my_application(user: User = Depends(require_candidate)):
    if user.application is None:
        raise HTTPException(status_code=404, detail="No application yet")
    return application_service.application_to_response(user.application)


@router.get("/me/report-page", response_model=ReportPageResponse)
async def my_report_page(user: User = Depends(require_candidate), db: Session = Depends(get_db)):
    application = user.application
    is_open = settings_service.applications_open(db)
    report = application.stored_object("report") if application else None
    report_url = report.object_key if report else None
    report_status = application.status.report_status if application else None

    content = select_report_content(
        has_application=application is not None,
        application_status=application.status.status if application else None,
        report_status=report_status,
        has_report=report_url is not None,
        applications_open=is_open,
    )
    return ReportPageResponse(
        content=content,
        report_status=report_status if report_url else None,
        report_status_label=report_status_label(report_status) if report_url else None,
        report_url=report_url,
        submitted_at=report.committed_at if report else None,
        applications_open=is_open,
    )


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: int,
    user: User = Depends(require_candidate),
    db: Session = Depends(get_db),
):
    return application_service.application_to_response(_load_for(application_id, user, db))


@router.put("/{application_id}", response_model=ApplicationResponse)
async def attach_objects(
    application_id: int,
    req: AttachObjectsRequest,
    user: User = Depends(require_candidate),
    db: Session = Depends(get_db),
):
    """Record which uploaded object each file slot points at."""
    application = _load_for(application_id, user, db)
    keys = {
        SLOT_FIELDS[field]: value
        for field, value in req.model_dump(exclude_none=True).items()
    }
    if not keys:
        raise HTTPException(status_code=400, detail="No file reference given")

    for object_key in keys.values():
        try:
            media_service.check_owner_folder(application.user_id, object_key)
        except AuthorizationDenied as exc:
            raise HTTPException(status_code=403, detail={"code": exc.code, "message": exc.message})

    for slot, object_key in keys.items():
        application_service.attach_object(db, application, slot, object_key)
    return application_service.application_to_response(application)


@router.put("/{application_id}/status", response_model=StatusResponse)
async def update_status(
    application_id: int,
    req: StatusUpdate,
    user: User = Depends(require_candidate),
    db: Session = Depends(get_db),
):
    application = _load_for(application_id, user, db)
    if user.role != "REVIEWER" and not application_service.candidate_may_apply(req):
        raise HTTPException(status_code=403, detail="Candidates may only resubmit for review")

    updates = req.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No status field given")

    status = application.status
    for field, value in updates.items():
        status = application_service.reset_review_status(db, application, field, value)
    return application_service.status_to_response(status)
