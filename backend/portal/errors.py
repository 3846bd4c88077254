"""Failure taxonomy for the upload-and-commit workflow.

Every error carries two views: ``message`` is safe to show a candidate,
``context`` is the operator-facing detail that goes to the logs. Neither may
contain presigned query strings.
"""


class PortalError(Exception):
    code = "portal_error"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context


class SubmissionsClosed(PortalError):
    code = "submissions_closed"


class UnsupportedType(PortalError):
    code = "unsupported_type"


class PayloadTooLarge(PortalError):
    code = "payload_too_large"


class AuthorizationDenied(PortalError):
    code = "authorization_denied"


class UploadFailed(PortalError):
    code = "upload_failed"


class CommitFailed(PortalError):
    """A record-commit call did not return 200."""

    code = "commit_failed"


class OrphanedUpload(PortalError):
    """The object is in the bucket but no record points at it."""

    code = "orphaned_upload"


class StatusResetFailed(PortalError):
    code = "status_reset_failed"
