import asyncio
from datetime import datetime, timedelta, timezone

import httpx

from portal.errors import AuthorizationDenied, CommitFailed
from portal.schemas.media import UploadAuthorization
from portal.workflow.executor import DirectUploader
from portal.workflow.gateway import PortalGateway
from portal.workflow.orchestrator import SubmissionWorkflow
from portal.workflow.types import Candidate, FailureReason, FileState, SubmissionFile

SUPPORT = "support@example.com"
MB = 1024 * 1024


class FakeGateway(PortalGateway):
    """Portal API double that records every call the workflow makes."""

    def __init__(self, is_open=True, attach_fails_for=(), status_fails=False, save_fails=False,
                 open_raises=None, previous_status="DRAFT"):
        super().__init__(client=None)
        self.is_open = is_open
        self.open_raises = open_raises
        self.attach_fails_for = set(attach_fails_for)
        self.status_fails = status_fails
        self.save_fails = save_fails
        self.previous_status = previous_status
        self.requests = []
        self.attached = []
        self.status_updates = []
        self.saved = []

    async def applications_open(self):
        if self.open_raises is not None:
            raise self.open_raises
        return self.is_open

    async def save_application(self, form):
        if self.save_fails:
            raise CommitFailed("Saving the application failed", status_code=500)
        self.saved.append(form)
        return {"id": 7, "status": {"status": self.previous_status}}

    async def request_upload(self, request):
        self.requests.append(request)
        return UploadAuthorization(
            url=f"https://bucket.example/{request.object_key}?X-Amz-Signature=secret",
            object_key=request.object_key,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=60),
            headers={"Content-Type": request.content_type},
        )

    async def attach_object(self, application_id, slot, object_key):
        if slot in self.attach_fails_for:
            raise CommitFailed("Record update failed", status_code=500)
        self.attached.append((application_id, slot, object_key))

    async def update_status(self, application_id, **fields):
        if self.status_fails:
            raise CommitFailed("Record update failed", status_code=500)
        self.status_updates.append((application_id, fields))


class RecordingStorage:
    def __init__(self, status_code=200, fail_transport=False):
        self.status_code = status_code
        self.fail_transport = fail_transport
        self.puts = []

    def __call__(self, request):
        if self.fail_transport:
            raise httpx.ConnectError("network down", request=request)
        self.puts.append(request.url.path)
        return httpx.Response(self.status_code, headers={"ETag": '"e"'})


def _candidate(**overrides):
    values = {
        "id": 1,
        "first_name": "Amina",
        "last_name": "El Idrissi",
        "email": "amina@example.com",
        "application_id": 7,
        "status": "PENDING",
        "report_status": "PENDING",
    }
    values.update(overrides)
    return Candidate(**values)


def _pdf(slot="report", size=1024):
    return SubmissionFile(slot=slot, filename=f"{slot}.pdf", content_type="application/pdf", data=b"%" * size)


def _run(gateway, storage, call):
    async def run():
        uploader = DirectUploader(client=httpx.AsyncClient(transport=httpx.MockTransport(storage)))
        workflow = SubmissionWorkflow(gateway, uploader, support_email=SUPPORT)
        try:
            return await call(workflow)
        finally:
            await uploader.aclose()

    return asyncio.run(run())


class TestSubmitReport:
    def test_unsupported_type_never_reaches_storage(self):
        gateway, storage = FakeGateway(), RecordingStorage()
        zip_file = SubmissionFile(slot="report", filename="devoir.zip", content_type="application/zip", data=b"PK")

        outcome = _run(gateway, storage, lambda w: w.submit_report(_candidate(), zip_file))

        assert outcome.ok is False
        assert outcome.reason is FailureReason.UNSUPPORTED_TYPE
        assert gateway.requests == []
        assert storage.puts == []
        assert gateway.attached == []

    def test_oversized_file_rejected_locally(self):
        gateway, storage = FakeGateway(), RecordingStorage()
        outcome = _run(gateway, storage, lambda w: w.submit_report(_candidate(), _pdf(size=16 * MB)))
        assert outcome.reason is FailureReason.PAYLOAD_TOO_LARGE
        assert gateway.requests == []

    def test_valid_report_replaced_and_sent_back_to_review(self):
        gateway, storage = FakeGateway(), RecordingStorage()
        candidate = _candidate(report_status="VALID")

        outcome = _run(gateway, storage, lambda w: w.submit_report(candidate, _pdf(size=10 * MB)))

        key = "upload_mtym/el-idrissi_amina_1/report.pdf"
        assert outcome.ok is True
        assert outcome.committed == [key]
        assert gateway.attached == [(7, "report", key)]
        assert gateway.status_updates == [(7, {"report_status": "PENDING"})]
        assert "back under review" in outcome.message
        assert outcome.files[0].history == [
            FileState.COMPUTING_CHECKSUM,
            FileState.REQUESTING_AUTHORIZATION,
            FileState.UPLOADING,
            FileState.COMMITTING_REFERENCE,
            FileState.RESETTING_STATUS,
            FileState.DONE,
        ]

    def test_request_carries_checksum_and_size(self):
        gateway, storage = FakeGateway(), RecordingStorage()
        _run(gateway, storage, lambda w: w.submit_report(_candidate(), _pdf(size=2048)))
        (request,) = gateway.requests
        assert request.size_bytes == 2048
        assert request.owner_id == 1
        assert len(request.integrity_token) == 44

    def test_transport_failure_commits_nothing(self):
        gateway, storage = FakeGateway(), RecordingStorage(fail_transport=True)

        outcome = _run(gateway, storage, lambda w: w.submit_report(_candidate(), _pdf()))

        assert outcome.reason is FailureReason.UPLOAD_FAILED
        assert gateway.attached == []
        assert gateway.status_updates == []
        assert SUPPORT in outcome.message
        assert "secret" not in outcome.message

    def test_storage_rejection_is_upload_failure(self):
        gateway, storage = FakeGateway(), RecordingStorage(status_code=403)
        outcome = _run(gateway, storage, lambda w: w.submit_report(_candidate(), _pdf()))
        assert outcome.reason is FailureReason.UPLOAD_FAILED
        assert gateway.attached == []

    def test_denied_authorization_uploads_nothing(self):
        class DenyingGateway(FakeGateway):
            async def request_upload(self, request):
                raise AuthorizationDenied("No upload URL was issued", status_code=403)

        gateway, storage = DenyingGateway(), RecordingStorage()
        outcome = _run(gateway, storage, lambda w: w.submit_report(_candidate(), _pdf()))
        assert outcome.reason is FailureReason.AUTHORIZATION_DENIED
        assert storage.puts == []

    def test_commit_failure_is_an_urgent_orphan(self):
        gateway, storage = FakeGateway(attach_fails_for={"report"}), RecordingStorage()

        outcome = _run(gateway, storage, lambda w: w.submit_report(_candidate(), _pdf()))

        assert outcome.ok is False
        assert outcome.reason is FailureReason.ORPHANED_UPLOAD
        assert outcome.urgent is True
        assert storage.puts == ["/upload_mtym/el-idrissi_amina_1/report.pdf"]
        assert "Amina El Idrissi" in outcome.message
        assert outcome.timestamp in outcome.message
        assert "upload_mtym/el-idrissi_amina_1/report.pdf" in outcome.message
        assert gateway.status_updates == []

    def test_status_reset_failure_is_only_a_warning(self):
        gateway, storage = FakeGateway(status_fails=True), RecordingStorage()
        outcome = _run(gateway, storage, lambda w: w.submit_report(_candidate(report_status="VALID"), _pdf()))
        assert outcome.ok is True
        assert len(outcome.warnings) == 1
        assert gateway.attached

    def test_requires_submitted_application(self):
        gateway, storage = FakeGateway(), RecordingStorage()
        outcome = _run(gateway, storage, lambda w: w.submit_report(_candidate(status="DRAFT"), _pdf()))
        assert outcome.reason is FailureReason.APPLICATION_REQUIRED
        assert gateway.requests == []

    def test_closed_portal(self):
        gateway, storage = FakeGateway(is_open=False), RecordingStorage()
        outcome = _run(gateway, storage, lambda w: w.submit_report(_candidate(), _pdf()))
        assert outcome.reason is FailureReason.SUBMISSIONS_CLOSED
        assert gateway.requests == []

    def test_unreachable_setting_reads_as_closed(self):
        gateway = FakeGateway(open_raises=httpx.ConnectTimeout("timeout"))
        storage = RecordingStorage()
        outcome = _run(gateway, storage, lambda w: w.submit_report(_candidate(), _pdf()))
        assert outcome.reason is FailureReason.SUBMISSIONS_CLOSED
        assert storage.puts == []


class TestSubmitApplication:
    def _files(self):
        return [_pdf("school_certificate"), _pdf("grades")]

    def test_files_committed_then_status_moves_to_pending(self):
        gateway, storage = FakeGateway(), RecordingStorage()

        outcome = _run(gateway, storage, lambda w: w.submit_application(_candidate(), {"city": "Rabat"}, self._files()))

        assert outcome.ok is True
        assert [slot for _, slot, _ in gateway.attached] == ["school_certificate", "grades"]
        assert gateway.status_updates == [(7, {"status": "PENDING"})]
        assert gateway.saved == [{"city": "Rabat"}]

    def test_resubmission_after_notification_is_marked_updated(self):
        gateway, storage = FakeGateway(previous_status="NOTIFIED"), RecordingStorage()
        _run(gateway, storage, lambda w: w.submit_application(_candidate(), {}, self._files()))
        assert gateway.status_updates == [(7, {"status": "UPDATED"})]

    def test_second_commit_failure_lists_what_was_recorded(self):
        gateway, storage = FakeGateway(attach_fails_for={"grades"}), RecordingStorage()

        outcome = _run(gateway, storage, lambda w: w.submit_application(_candidate(), {}, self._files()))

        certificate = "upload_mtym/el-idrissi_amina_1/school_certificate.pdf"
        assert outcome.reason is FailureReason.ORPHANED_UPLOAD
        assert outcome.committed == [certificate]
        assert certificate in outcome.message
        assert "upload_mtym/el-idrissi_amina_1/grades.pdf" in outcome.message
        assert gateway.status_updates == []

    def test_bad_file_stops_before_save(self):
        gateway, storage = FakeGateway(), RecordingStorage()
        files = [_pdf("school_certificate"), SubmissionFile("grades", "grades.exe", "application/x-msdownload", b"MZ")]

        outcome = _run(gateway, storage, lambda w: w.submit_application(_candidate(), {}, files))

        assert outcome.reason is FailureReason.UNSUPPORTED_TYPE
        assert gateway.saved == []
        assert storage.puts == []

    def test_upload_failure_aborts_remaining_files(self):
        gateway, storage = FakeGateway(), RecordingStorage(status_code=500)
        outcome = _run(gateway, storage, lambda w: w.submit_application(_candidate(), {}, self._files()))
        assert outcome.reason is FailureReason.UPLOAD_FAILED
        assert len(storage.puts) == 1
        assert len(outcome.files) == 1

    def test_save_failure(self):
        gateway, storage = FakeGateway(save_fails=True), RecordingStorage()
        outcome = _run(gateway, storage, lambda w: w.submit_application(_candidate(), {}, self._files()))
        assert outcome.reason is FailureReason.APPLICATION_NOT_SAVED
        assert storage.puts == []

    def test_status_update_failure_keeps_submission(self):
        gateway, storage = FakeGateway(status_fails=True), RecordingStorage()
        outcome = _run(gateway, storage, lambda w: w.submit_application(_candidate(), {}, self._files()))
        assert outcome.ok is True
        assert len(outcome.committed) == 2
        assert outcome.warnings
