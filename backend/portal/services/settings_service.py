from datetime import datetime, timezone

from sqlalchemy.orm import Session

from portal.models.setting import PortalSetting

APPLICATIONS_OPEN = "applications_open"


def get_all(db: Session) -> dict[str, str]:
    return {row.key: row.value for row in db.query(PortalSetting).order_by(PortalSetting.key).all()}


def applications_open(db: Session) -> bool:
    row = db.query(PortalSetting).filter_by(key=APPLICATIONS_OPEN).first()
    # A missing row means nobody opened submissions.
    return row is not None and row.value == "true"


def set_applications_open(db: Session, is_open: bool):
    now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    db.merge(PortalSetting(key=APPLICATIONS_OPEN, value="true" if is_open else "false", updated_at=now))
    db.commit()
