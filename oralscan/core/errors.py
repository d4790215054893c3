"""
Domain errors. Each carries an HTTP status and a message that can be shown to the
operator as is; the FastAPI handler in oralscan/main.py turns them into JSON.
"""


class OralScanError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class IdentityUnavailable(OralScanError):
    """The identity provider could not confirm the principal."""

    status_code = 401


class AuthError(OralScanError):
    status_code = 401


class EmailAlreadyRegistered(OralScanError):
    status_code = 400


class PermissionDenied(OralScanError):
    status_code = 403


class UnsupportedMediaType(OralScanError):
    status_code = 415


class InvalidUpload(OralScanError):
    status_code = 400


class UploadTooLarge(OralScanError):
    status_code = 413


class BlobUploadFailed(OralScanError):
    status_code = 502


class BlobNotFound(OralScanError):
    status_code = 404


class PersistenceError(OralScanError):
    status_code = 503


class ReportGenerationFailed(OralScanError):
    status_code = 500


class NotFound(OralScanError):
    status_code = 404
