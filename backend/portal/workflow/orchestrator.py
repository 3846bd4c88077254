"""Two-phase upload-and-commit for candidate files.

Object storage and the application database share no transaction. A file
is therefore uploaded first and recorded second, and the one failure that
cannot be retried away (stored but not recorded) gets its own terminal
reason, ``ORPHANED_UPLOAD``, so an operator can reconcile it by hand.
"""

import asyncio
import logging

import httpx

from portal.config import settings
from portal.errors import (
    AuthorizationDenied,
    CommitFailed,
    OrphanedUpload,
    PayloadTooLarge,
    PortalError,
    StatusResetFailed,
    UnsupportedType,
    UploadFailed,
)
from portal.services.application_service import submission_status_for
from portal.utils.hashing import sha256_b64
from portal.utils.naming import object_key_for
from portal.workflow.executor import DirectUploader
from portal.workflow.gateway import PortalGateway
from portal.workflow.types import (
    Candidate,
    FailureReason,
    FileOutcome,
    FileState,
    SubmissionFile,
    SubmissionOutcome,
    UploadRequest,
)

logger = logging.getLogger("portal.workflow")

FAILURE_REASONS = {
    UnsupportedType: FailureReason.UNSUPPORTED_TYPE,
    PayloadTooLarge: FailureReason.PAYLOAD_TOO_LARGE,
    AuthorizationDenied: FailureReason.AUTHORIZATION_DENIED,
    UploadFailed: FailureReason.UPLOAD_FAILED,
    OrphanedUpload: FailureReason.ORPHANED_UPLOAD,
}


class SubmissionWorkflow:
    def __init__(
        self,
        gateway: PortalGateway,
        uploader: DirectUploader,
        accepted_content_types: tuple[str, ...] | None = None,
        max_upload_bytes: int | None = None,
        support_email: str | None = None,
    ):
        self.gateway = gateway
        self.uploader = uploader
        self.accepted_content_types = accepted_content_types or settings.accepted_content_types
        self.max_upload_bytes = max_upload_bytes or settings.max_upload_bytes
        self.support_email = support_email or settings.support_email

    async def is_open(self) -> bool:
        """Closed unless the portal positively says it is open."""
        try:
            return await self.gateway.applications_open()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("applications-open check failed (%s), treating as closed", type(exc).__name__)
            return False

    async def submit_report(self, candidate: Candidate, file: SubmissionFile) -> SubmissionOutcome:
        if not await self.is_open():
            return self._closed()
        if candidate.application_id is None or candidate.status in (None, "DRAFT"):
            return SubmissionOutcome(
                ok=False,
                reason=FailureReason.APPLICATION_REQUIRED,
                message="Submit your application before sending your report.",
            )

        outcome = await self._submit_file(
            candidate, candidate.application_id, file, reset=("report_status", "PENDING"),
        )
        if not outcome.done:
            return self._failed(candidate, [outcome])

        if candidate.report_status == "VALID":
            message = "Your report was updated and is back under review."
        else:
            message = "Your report was uploaded and will be reviewed by our team."
        return SubmissionOutcome(
            ok=True,
            message=message,
            files=[outcome],
            committed=[outcome.object_key],
            warnings=list(outcome.warnings),
        )

    async def submit_application(
        self,
        candidate: Candidate,
        form: dict,
        files: list[SubmissionFile],
    ) -> SubmissionOutcome:
        if not await self.is_open():
            return self._closed()

        # Reject a bad file before anything is saved or uploaded.
        for file in files:
            try:
                self._validate(file)
            except (UnsupportedType, PayloadTooLarge) as exc:
                outcome = FileOutcome(slot=file.slot, filename=file.filename)
                outcome.fail(FAILURE_REASONS[type(exc)], exc.message)
                return self._failed(candidate, [outcome])

        try:
            saved = await self.gateway.save_application(form)
        except CommitFailed as exc:
            logger.error("Application save failed for user %s: %s", candidate.id, exc.context)
            return SubmissionOutcome(
                ok=False,
                reason=FailureReason.APPLICATION_NOT_SAVED,
                message=self._retry_message("Your application could not be saved."),
            )
        application_id = saved["id"]
        previous_status = (saved.get("status") or {}).get("status") or candidate.status

        outcomes: list[FileOutcome] = []
        for file in files:
            outcome = await self._submit_file(candidate, application_id, file)
            outcomes.append(outcome)
            if not outcome.done:
                return self._failed(candidate, outcomes)

        warnings: list[str] = []
        new_status = submission_status_for(previous_status)
        try:
            await self.gateway.update_status(application_id, status=new_status)
        except CommitFailed as exc:
            warning = StatusResetFailed(
                "Your files were saved but your application status could not be updated.",
                application_id=application_id,
                status=new_status,
                **exc.context,
            )
            logger.warning("Status update failed after submission: %s", warning.context)
            warnings.append(warning.message)

        return SubmissionOutcome(
            ok=True,
            message="Your application was submitted. You can follow it from your profile page.",
            files=outcomes,
            committed=[o.object_key for o in outcomes],
            warnings=warnings,
        )

    async def _submit_file(
        self,
        candidate: Candidate,
        application_id: int,
        file: SubmissionFile,
        reset: tuple[str, str] | None = None,
    ) -> FileOutcome:
        outcome = FileOutcome(slot=file.slot, filename=file.filename)
        try:
            self._validate(file)
            object_key = object_key_for(
                candidate.id, candidate.first_name, candidate.last_name, file.slot, file.filename,
            )
            outcome.object_key = object_key
            request = UploadRequest(
                owner_id=candidate.id,
                object_key=object_key,
                content_type=file.content_type,
                size_bytes=file.size_bytes,
                integrity_token=sha256_b64(file.data),
            )

            outcome.enter(FileState.REQUESTING_AUTHORIZATION)
            authorization = await self.gateway.request_upload(request)

            outcome.enter(FileState.UPLOADING)
            await self.uploader.upload(authorization, file.data)

            outcome.enter(FileState.COMMITTING_REFERENCE)
            try:
                await self.gateway.attach_object(application_id, file.slot, object_key)
            except CommitFailed as exc:
                raise OrphanedUpload(
                    "File stored but not recorded",
                    application_id=application_id,
                    slot=file.slot,
                    object_key=object_key,
                    size_bytes=file.size_bytes,
                    **exc.context,
                ) from exc

            if reset is not None:
                outcome.enter(FileState.RESETTING_STATUS)
                field, value = reset
                try:
                    await self.gateway.update_status(application_id, **{field: value})
                except CommitFailed as exc:
                    warning = StatusResetFailed(
                        "Your file was saved but its review status could not be reset.",
                        application_id=application_id,
                        field=field,
                        value=value,
                        **exc.context,
                    )
                    logger.warning("Status reset failed: %s", warning.context)
                    outcome.warnings.append(warning.message)

            outcome.enter(FileState.DONE)
        except (UnsupportedType, PayloadTooLarge, AuthorizationDenied, UploadFailed, OrphanedUpload) as exc:
            self._log_failure(candidate, outcome, exc)
            outcome.fail(FAILURE_REASONS[type(exc)], exc.message)
        except asyncio.CancelledError:
            # The key is deterministic, so a retry overwrites whatever got stored.
            logger.warning(
                "Submission of %s cancelled in state %s (key=%s)",
                file.slot, outcome.state.value, outcome.object_key,
            )
            raise
        return outcome

    def _validate(self, file: SubmissionFile):
        if file.content_type not in self.accepted_content_types:
            raise UnsupportedType(
                f"{file.filename}: this format is not accepted. Choose a PDF or an image (PNG, JPG, WEBP).",
                content_type=file.content_type,
            )
        if file.size_bytes == 0:
            raise UnsupportedType(f"{file.filename} is empty. Choose another file.")
        if file.size_bytes > self.max_upload_bytes:
            raise PayloadTooLarge(
                f"{file.filename} is larger than {self.max_upload_bytes // (1024 * 1024)} MB. "
                "Choose a smaller file.",
                size_bytes=file.size_bytes,
            )

    def _log_failure(self, candidate: Candidate, outcome: FileOutcome, exc: PortalError):
        context = {
            "user_id": candidate.id,
            "application_id": candidate.application_id,
            "slot": outcome.slot,
            "filename": outcome.filename,
            "state": outcome.state.value,
            **exc.context,
        }
        if isinstance(exc, OrphanedUpload):
            logger.critical(
                "FILE IS IN STORAGE BUT NOT RECORDED user=%s (%s, %s): %s",
                candidate.id, candidate.full_name, candidate.email, context,
            )
        elif isinstance(exc, (UnsupportedType, PayloadTooLarge)):
            logger.info("File rejected before upload: %s", context)
        else:
            logger.error("Upload of %s failed: %s", outcome.slot, context)

    def _closed(self) -> SubmissionOutcome:
        return SubmissionOutcome(
            ok=False,
            reason=FailureReason.SUBMISSIONS_CLOSED,
            message="Applications are currently closed. You cannot submit files.",
        )

    def _retry_message(self, lead: str) -> str:
        return (
            f"{lead} Please try again later, or contact {self.support_email} "
            "with your first and last name if the problem persists."
        )

    def _failed(self, candidate: Candidate, outcomes: list[FileOutcome]) -> SubmissionOutcome:
        failed = outcomes[-1]
        committed = [o.object_key for o in outcomes if o.done]
        outcome = SubmissionOutcome(
            ok=False,
            reason=failed.reason,
            message="",
            files=outcomes,
            committed=committed,
        )

        if failed.reason is FailureReason.ORPHANED_UPLOAD:
            outcome.urgent = True
            outcome.message = (
                f"URGENT: your file was received but could not be recorded. It is safe in storage "
                f"({failed.object_key}). Contact {self.support_email} immediately with your name "
                f"{candidate.full_name} and this timestamp: {outcome.timestamp}."
            )
            if committed:
                outcome.message += f" Already recorded: {', '.join(committed)}."
        elif failed.reason in (FailureReason.UNSUPPORTED_TYPE, FailureReason.PAYLOAD_TOO_LARGE):
            outcome.message = failed.detail
        else:
            outcome.message = self._retry_message(f"{failed.filename} could not be sent.")
        return outcome
