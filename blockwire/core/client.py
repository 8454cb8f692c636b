"""Slack Web API client: authenticated requests with retry, and external file upload."""
from __future__ import annotations

import asyncio
from contextlib import contextmanager
from typing import Any, Awaitable, Callable, Iterator, Optional, Sequence, Type, TypeVar

import httpx
from pydantic import ValidationError

from blockwire.config import Settings
from blockwire.core.errors import (
    ApiError,
    BlockwireError,
    DecodingError,
    InvalidEndpoint,
    MissingCredential,
    RequestFailed,
    TransportFailure,
    UploadFailure,
)
from blockwire.core.retry import retry_async
from blockwire.domain.attachments import FileType
from blockwire.observability import metrics
from blockwire.observability.logging import get_logger
from blockwire.protocol.api_models import (
    ApiResponse,
    FileInfoResponse,
    FileRef,
    FileUploadFinishedRequest,
    FileUploadFinishedResponse,
    FileUploadResult,
    FileUploadStartResponse,
)

R = TypeVar("R", bound=ApiResponse)
log = get_logger("slack_api")

DEFAULT_BASE_URL = "https://slack.com/api/"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"


class SlackApi:
    """
    Delivery engine for the Slack Web API.

    Every request carries the bearer token given at construction. Transport
    errors and non-200 answers are retried with linear backoff; `ok: false`
    answers and undecodable bodies fail at once.

    Usable as an async context manager. An injected `http_client` is left
    open on close; a client created here is closed with the engine.
    """

    def __init__(
        self,
        token: str | None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        max_retry_attempts: int = 3,
        backoff_s: float = 5.0,
        timeout_s: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if not token:
            raise MissingCredential()
        self._token = token
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.max_retry_attempts = max_retry_attempts
        self.backoff_s = backoff_s
        self._sleep = sleep
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_s)

    @classmethod
    def from_settings(cls, settings: Settings, token: str | None = None, **kwargs: Any) -> "SlackApi":
        return cls(
            token or settings.slack_token,
            base_url=settings.base_url,
            max_retry_attempts=settings.max_retry_attempts,
            backoff_s=settings.retry_backoff_s,
            timeout_s=settings.request_timeout_s,
            **kwargs,
        )

    async def __aenter__(self) -> "SlackApi":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _url(self, endpoint: str) -> httpx.URL:
        if not endpoint or endpoint != endpoint.strip() or endpoint.startswith("/") or "://" in endpoint:
            raise InvalidEndpoint(endpoint)
        try:
            url = httpx.URL(self.base_url + endpoint)
        except httpx.InvalidURL as e:
            raise InvalidEndpoint(endpoint, str(e)) from e
        if url.scheme not in ("http", "https") or not url.host:
            raise InvalidEndpoint(endpoint, f"bad base URL {self.base_url!r}")
        return url

    async def _dispatch(
        self,
        endpoint: str,
        method: str,
        url: httpx.URL,
        params: dict[str, str] | None,
        content: bytes | None,
    ) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": JSON_CONTENT_TYPE,
        }
        log.debug("request_started", endpoint=endpoint, method=method)
        try:
            response = await self._client.request(method, url, params=params, content=content, headers=headers)
        except httpx.InvalidURL as e:
            raise InvalidEndpoint(endpoint, str(e)) from e
        except httpx.TransportError as e:
            raise TransportFailure(endpoint, str(e) or type(e).__name__) from e
        if response.status_code != 200:
            log.error("request_bad_status", endpoint=endpoint, status_code=response.status_code)
            raise TransportFailure(endpoint, f"HTTP {response.status_code}", status_code=response.status_code)
        return response

    async def request(
        self,
        endpoint: str,
        *,
        params: dict[str, str] | None = None,
        body: str | bytes | None = None,
        method: str = "POST",
        response_model: Type[R] = ApiResponse,  # type: ignore[assignment]
    ) -> R:
        """
        Send one API call and decode its envelope into `response_model`.

        Raises:
            InvalidEndpoint: the URL cannot be built
            RequestFailed: transport failed on every attempt
            DecodingError: the body does not fit `response_model`
            ApiError: Slack answered `ok: false`
        """
        url = self._url(endpoint)
        content = body.encode("utf-8") if isinstance(body, str) else body
        metrics.api_requests.labels(endpoint=endpoint).inc()

        def _on_retry(retry: int, delay: float, error: BaseException) -> None:
            metrics.api_retries.labels(endpoint=endpoint).inc()
            log.debug("request_retry", endpoint=endpoint, retry=retry, delay_s=delay, error=str(error))

        try:
            response = await retry_async(
                self._dispatch,
                endpoint,
                method,
                url,
                params,
                content,
                max_retries=self.max_retry_attempts,
                backoff_s=self.backoff_s,
                sleep=self._sleep,
                on_retry=_on_retry,
            )
        except TransportFailure as e:
            metrics.api_errors.labels(endpoint=endpoint, kind="request_failed").inc()
            log.error("request_retry_exhausted", endpoint=endpoint, retries=self.max_retry_attempts)
            raise RequestFailed(endpoint, self.max_retry_attempts + 1, e) from e

        try:
            decoded = response_model.model_validate_json(response.content)
        except ValidationError as e:
            metrics.api_errors.labels(endpoint=endpoint, kind="decoding").inc()
            log.error("response_undecodable", endpoint=endpoint, model=response_model.__name__)
            raise DecodingError(endpoint, str(e)) from e

        if not decoded.ok:
            metrics.api_errors.labels(endpoint=endpoint, kind="api").inc()
            log.warning("api_error", endpoint=endpoint, error=decoded.error)
            raise ApiError(endpoint, decoded.error)

        log.debug("request_succeeded", endpoint=endpoint)
        return decoded

    # ------------------------------------------------------------------
    # File upload
    # ------------------------------------------------------------------

    @contextmanager
    def _upload_stage(self, stage: str, filename: str) -> Iterator[None]:
        try:
            yield
        except UploadFailure:
            raise
        except BlockwireError as e:
            metrics.file_uploads.labels(status="failed").inc()
            log.error("upload_stage_failed", stage=stage, filename=filename, error=str(e))
            raise UploadFailure(stage, filename, e) from e

    async def _transfer(self, upload_url: str, data: bytes, filename: str, file_type: FileType) -> None:
        # The upload URL is pre-signed; the bearer token is not sent there.
        try:
            response = await self._client.post(
                upload_url,
                content=data,
                headers={"filename": filename, "Content-Type": file_type.mime_type},
            )
        except httpx.HTTPError as e:
            raise TransportFailure("upload", str(e) or type(e).__name__) from e
        if response.status_code != 200:
            raise TransportFailure("upload", f"HTTP {response.status_code}", status_code=response.status_code)

    async def upload_file(
        self,
        data: bytes,
        filename: str,
        file_type: FileType | str,
        channels: Sequence[str] = (),
        *,
        thread_ts: str | None = None,
        blocks: str | None = None,
        title: str | None = None,
        initial_comment: str | None = None,
    ) -> FileUploadResult:
        """
        Upload bytes with the external upload flow.

        1. files.getUploadURLExternal reserves a file id and a pre-signed URL
        2. the bytes are POSTed to that URL
        3. files.completeUploadExternal finalizes the file, optionally sharing it
           to `channels` (in thread `thread_ts`, with `blocks` as a JSON array string)
        4. files.info is asked for the URL when step 3 does not return one

        Raises:
            UploadFailure: carrying the failed stage and its cause
        """
        file_type = FileType(file_type)
        log.info("upload_started", filename=filename, size=len(data), file_type=file_type.value)

        with self._upload_stage("get_upload_url", filename):
            start = await self.request(
                "files.getUploadURLExternal",
                params={"filename": filename, "length": str(len(data))},
                response_model=FileUploadStartResponse,
            )
            if not start.upload_url or not start.file_id:
                raise DecodingError("files.getUploadURLExternal", "missing upload_url or file_id")

        with self._upload_stage("transfer", filename):
            await self._transfer(start.upload_url, data, filename, file_type)

        finish = FileUploadFinishedRequest(
            files=[FileRef(id=start.file_id, title=title or filename)],
            channel_id=channels[0] if len(channels) == 1 else None,
            channels=",".join(channels) if len(channels) > 1 else None,
            thread_ts=thread_ts if channels else None,
            initial_comment=initial_comment,
            blocks=blocks,
        )
        with self._upload_stage("complete", filename):
            finished = await self.request(
                "files.completeUploadExternal",
                body=finish.model_dump_json(exclude_none=True),
                response_model=FileUploadFinishedResponse,
            )

        uploaded = next((f for f in finished.files if f.id == start.file_id), None)
        url: Optional[str] = uploaded.url if uploaded else None
        if url is None:
            with self._upload_stage("info", filename):
                info = await self.request(
                    "files.info",
                    params={"file": start.file_id},
                    method="GET",
                    response_model=FileInfoResponse,
                )
                url = info.file.url if info.file else None
                if url is None:
                    raise DecodingError("files.info", "file has no permalink or url_private")

        metrics.file_uploads.labels(status="ok").inc()
        log.info("upload_finished", filename=filename, file_id=start.file_id)
        return FileUploadResult(file_id=start.file_id, filename=filename, url=url, title=title)
