import mimetypes
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path


class FileState(str, Enum):
    COMPUTING_CHECKSUM = "COMPUTING_CHECKSUM"
    REQUESTING_AUTHORIZATION = "REQUESTING_AUTHORIZATION"
    UPLOADING = "UPLOADING"
    COMMITTING_REFERENCE = "COMMITTING_REFERENCE"
    RESETTING_STATUS = "RESETTING_STATUS"
    DONE = "DONE"
    FAILED = "FAILED"


class FailureReason(str, Enum):
    SUBMISSIONS_CLOSED = "SUBMISSIONS_CLOSED"
    APPLICATION_REQUIRED = "APPLICATION_REQUIRED"
    APPLICATION_NOT_SAVED = "APPLICATION_NOT_SAVED"
    UNSUPPORTED_TYPE = "UNSUPPORTED_TYPE"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    AUTHORIZATION_DENIED = "AUTHORIZATION_DENIED"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    ORPHANED_UPLOAD = "ORPHANED_UPLOAD"


@dataclass(frozen=True)
class UploadRequest:
    owner_id: int
    object_key: str
    content_type: str
    size_bytes: int
    integrity_token: str


@dataclass(frozen=True)
class UploadReceipt:
    object_key: str
    size_bytes: int
    etag: str | None = None


@dataclass(frozen=True)
class Candidate:
    id: int
    first_name: str
    last_name: str
    email: str
    application_id: int | None = None
    status: str | None = None
    report_status: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class SubmissionFile:
    slot: str
    filename: str
    content_type: str
    data: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, slot: str, path: Path, content_type: str | None = None) -> "SubmissionFile":
        path = Path(path)
        data = path.read_bytes()
        guessed, _ = mimetypes.guess_type(path.name)
        return cls(
            slot=slot,
            filename=path.name,
            content_type=content_type or guessed or "application/octet-stream",
            data=data,
        )


@dataclass
class FileOutcome:
    slot: str
    filename: str
    object_key: str | None = None
    state: FileState = FileState.COMPUTING_CHECKSUM
    reason: FailureReason | None = None
    detail: str | None = None
    history: list[FileState] = field(default_factory=lambda: [FileState.COMPUTING_CHECKSUM])
    warnings: list[str] = field(default_factory=list)

    def enter(self, state: FileState):
        self.state = state
        self.history.append(state)

    def fail(self, reason: FailureReason, detail: str):
        self.reason = reason
        self.detail = detail
        self.enter(FileState.FAILED)

    @property
    def done(self) -> bool:
        return self.state is FileState.DONE


@dataclass
class SubmissionOutcome:
    ok: bool
    message: str
    reason: FailureReason | None = None
    files: list[FileOutcome] = field(default_factory=list)
    committed: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    urgent: bool = False
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    )
