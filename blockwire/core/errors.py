"""Error taxonomy for request dispatch, decoding and attachment upload."""
from __future__ import annotations


class BlockwireError(Exception):
    """Base class for every error raised by blockwire."""

    pass


class MissingCredential(BlockwireError):
    """No Slack token was supplied. Raised before any network call."""

    def __init__(self) -> None:
        super().__init__("a Slack token is required")


class InvalidEndpoint(BlockwireError):
    """The request URL could not be built from base URL and endpoint."""

    def __init__(self, endpoint: str, detail: str = ""):
        self.endpoint = endpoint
        super().__init__(f"invalid Slack endpoint {endpoint!r}" + (f": {detail}" if detail else ""))


class TransportFailure(BlockwireError):
    """Network error or non-200 status. Retryable."""

    def __init__(self, endpoint: str, detail: str, status_code: int | None = None):
        self.endpoint = endpoint
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"{endpoint}: {detail}")


class RequestFailed(BlockwireError):
    """Transport kept failing after every retry."""

    def __init__(self, endpoint: str, attempts: int, last_error: BaseException | None = None):
        self.endpoint = endpoint
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{endpoint}: retry failed after {attempts} attempts ({last_error})")


class ApiError(BlockwireError):
    """Slack answered with `ok: false`. Never retried."""

    def __init__(self, endpoint: str, error: str | None):
        self.endpoint = endpoint
        self.error = error or "unknown_error"
        super().__init__(f"{endpoint}: {self.error}")


class DecodingError(BlockwireError):
    """The response body does not match the expected shape."""

    def __init__(self, endpoint: str, detail: str):
        self.endpoint = endpoint
        self.detail = detail
        super().__init__(f"{endpoint}: undecodable response ({detail})")


class UploadFailure(BlockwireError):
    """A stage of the external file upload flow failed."""

    stages = ("get_upload_url", "transfer", "complete", "info")

    def __init__(self, stage: str, filename: str, cause: BaseException | str):
        if stage not in self.stages:
            raise ValueError(f"unknown upload stage {stage!r}")
        self.stage = stage
        self.filename = filename
        self.cause = cause
        super().__init__(f"upload of {filename!r} failed at {stage}: {cause}")


class UnresolvedAttachment(BlockwireError):
    """A byte-backed attachment reached the wire stage without being uploaded."""

    def __init__(self, filename: str | None):
        self.filename = filename
        super().__init__(f"attachment {filename!r} still carries its payload")
