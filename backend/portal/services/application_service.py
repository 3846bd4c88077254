import logging
from datetime import datetime, timezone

from sqlalchemy import text
from sqlalchemy.orm import Session

from portal.models.application import Application, ApplicationStatus
from portal.models.stored_object import StoredObject
from portal.models.user import User
from portal.schemas.application import (
    ApplicationForm,
    ApplicationResponse,
    StatusResponse,
    StatusUpdate,
)

logger = logging.getLogger("portal.applications")

STATUS_FIELDS = {"status", "report_status"}
CANDIDATE_STATUSES = {"PENDING", "UPDATED"}
CANDIDATE_REPORT_STATUSES = {"PENDING"}


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def save_form(db: Session, user: User, form: ApplicationForm) -> Application:
    """Create the candidate's application on first save, update it afterwards."""
    now = _now()
    application = db.query(Application).filter(Application.user_id == user.id).first()
    if application is None:
        application = Application(
            user_id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            created_at=now,
            updated_at=now,
        )
        application.status = ApplicationStatus(status="DRAFT", report_status="PENDING", updated_at=now)
        db.add(application)

    for key, value in form.model_dump(exclude_unset=True).items():
        setattr(application, key, value)
    application.updated_at = now
    db.commit()
    db.refresh(application)
    return application


def attach_object(db: Session, application: Application, slot: str, object_key: str) -> StoredObject:
    """Point ``slot`` at ``object_key``, replacing whatever it pointed at."""
    now = _now()
    previous = application.object_key(slot)
    # Concurrent commits to the same slot race; the last one wins.
    db.execute(
        text(
            """
            INSERT INTO stored_objects (application_id, slot, object_key, committed_at)
            VALUES (:application_id, :slot, :object_key, :now)
            ON CONFLICT(application_id, slot) DO UPDATE SET
                object_key = excluded.object_key,
                committed_at = excluded.committed_at
            """
        ),
        {"application_id": application.id, "slot": slot, "object_key": object_key, "now": now},
    )
    application.updated_at = now
    db.commit()
    db.refresh(application)
    ref = db.get(StoredObject, (application.id, slot))
    if previous and previous != object_key:
        logger.info("Application %s slot %s replaced %s with %s", application.id, slot, previous, object_key)
    else:
        logger.info("Application %s slot %s -> %s", application.id, slot, object_key)
    return ref


def reset_review_status(db: Session, application: Application, field: str, value: str) -> ApplicationStatus:
    if field not in STATUS_FIELDS:
        raise ValueError(f"Unknown status field {field!r}")
    status = application.status
    old = getattr(status, field)
    setattr(status, field, value)
    status.updated_at = _now()
    db.commit()
    db.refresh(status)
    logger.info("Application %s %s: %s -> %s", application.id, field, old, value)
    return status


def candidate_may_apply(update: StatusUpdate) -> bool:
    if update.status is not None and update.status not in CANDIDATE_STATUSES:
        return False
    if update.report_status is not None and update.report_status not in CANDIDATE_REPORT_STATUSES:
        return False
    return True


def submission_status_for(current_status: str | None) -> str:
    """Status a candidate moves to when (re)submitting the full application."""
    return "UPDATED" if current_status == "NOTIFIED" else "PENDING"


def status_to_response(status: ApplicationStatus) -> StatusResponse:
    return StatusResponse(
        status=status.status,
        report_status=status.report_status,
        updated_at=status.updated_at,
    )


def application_to_response(application: Application) -> ApplicationResponse:
    return ApplicationResponse(
        id=application.id,
        user_id=application.user_id,
        first_name=application.first_name,
        last_name=application.last_name,
        date_of_birth=application.date_of_birth,
        city=application.city,
        region=application.region,
        phone_number=application.phone_number,
        guardian_full_name=application.guardian_full_name,
        guardian_phone_number=application.guardian_phone_number,
        high_school=application.high_school,
        school_level=application.school_level,
        mathematics_average=application.mathematics_average,
        general_average=application.general_average,
        has_competed=bool(application.has_competed),
        competitions=application.competitions,
        motivations=application.motivations,
        school_certificate_url=application.object_key("school_certificate"),
        grades_url=application.object_key("grades"),
        report_url=application.object_key("report"),
        status=status_to_response(application.status),
        created_at=application.created_at,
        updated_at=application.updated_at,
    )
