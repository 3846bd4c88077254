from typing import Literal

from pydantic import BaseModel

ApplicationState = Literal["DRAFT", "PENDING", "UPDATED", "NOTIFIED", "VALID", "NOT_VALID"]
ReportState = Literal["PENDING", "VALID", "NOT_VALID"]


class ApplicationForm(BaseModel):
    # Personal information
    first_name: str | None = None
    last_name: str | None = None
    date_of_birth: str | None = None
    city: str | None = None
    region: str | None = None
    phone_number: str | None = None
    guardian_full_name: str | None = None
    guardian_phone_number: str | None = None
    # Education
    high_school: str | None = None
    school_level: str | None = None
    mathematics_average: str | None = None
    general_average: str | None = None
    # Competition
    has_competed: bool = False
    competitions: str | None = None
    motivations: str | None = None


class AttachObjectsRequest(BaseModel):
    school_certificate_url: str | None = None
    grades_url: str | None = None
    report_url: str | None = None


class StatusUpdate(BaseModel):
    status: ApplicationState | None = None
    report_status: ReportState | None = None


class StatusResponse(BaseModel):
    status: str
    report_status: str
    updated_at: str


class ApplicationResponse(ApplicationForm):
    id: int
    user_id: int
    school_certificate_url: str | None
    grades_url: str | None
    report_url: str | None
    status: StatusResponse
    created_at: str
    updated_at: str


class ReportPageContent(BaseModel):
    title: str
    subtitle: str
    cta_label: str
    redirect_to_application: bool = False
    upload_enabled: bool = True


class ReportPageResponse(BaseModel):
    content: ReportPageContent
    report_status: str | None
    report_status_label: str | None
    report_url: str | None
    submitted_at: str | None
    applications_open: bool
