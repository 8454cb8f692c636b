"""Send and update messages, uploading byte-backed attachments first."""
from __future__ import annotations

from typing import Any

from blockwire.config import Settings, load_settings
from blockwire.core.client import SlackApi
from blockwire.core.errors import UnresolvedAttachment
from blockwire.domain.message import Message, MessageMeta
from blockwire.observability import metrics
from blockwire.observability.logging import bind_channel, get_logger
from blockwire.protocol.api_models import ChatResponse

log = get_logger("delivery")

POST_ENDPOINT = "chat.postMessage"
UPDATE_ENDPOINT = "chat.update"


async def resolve_attachments(api: SlackApi, message: Message) -> Message:
    """
    Upload every byte-backed attachment and return a message referencing the uploads.

    Each file is shared to the message's channel (and thread, when `ts` is
    set) so members can open the URL the message references. Uploads run one
    at a time in attachment order. URL-backed attachments are kept as they
    are. The first failed upload aborts with `UploadFailure`, so a partly
    resolved message never leaves this function. `message` itself is not
    modified.
    """
    if not message.has_unresolved_attachments:
        return message

    resolved = []
    for attachment in message.attachments:
        payload = attachment.payload
        if payload is None:
            resolved.append(attachment)
            continue
        data, filename, file_type = payload
        result = await api.upload_file(
            data,
            filename,
            file_type,
            channels=[message.channel],
            thread_ts=message.ts,
            title=attachment.title,
        )
        resolved.append(attachment.resolved(result.url))

    log.info("attachments_resolved", count=len(resolved))
    return message.with_attachments(resolved)


async def _deliver_with(api: SlackApi, endpoint: str, message: Message) -> MessageMeta:
    bind_channel(message.channel)
    try:
        with metrics.send_latency.time():
            wire_message = await resolve_attachments(api, message)
            for attachment in wire_message.attachments:
                if attachment.is_payload:
                    raise UnresolvedAttachment(attachment.payload[1] if attachment.payload else None)

            response = await api.request(endpoint, body=wire_message.to_json(), response_model=ChatResponse)
    finally:
        bind_channel(None)

    log.info("message_delivered", endpoint=endpoint, channel=message.channel, ts=response.ts)
    return MessageMeta(timestamp=response.ts)


async def _deliver(
    endpoint: str,
    message: Message,
    token: str | None,
    api: SlackApi | None,
    settings: Settings | None,
) -> MessageMeta:
    if api is not None:
        return await _deliver_with(api, endpoint, message)
    settings = settings or load_settings()
    async with SlackApi.from_settings(settings, token=token) as owned:
        return await _deliver_with(owned, endpoint, message)


async def send(
    message: Message,
    token: str | None = None,
    *,
    api: SlackApi | None = None,
    settings: Settings | None = None,
) -> MessageMeta:
    """Post `message` with chat.postMessage (as a thread reply when `message.ts` is set)."""
    return await _deliver(POST_ENDPOINT, message, token, api, settings)


async def update(
    message: Message,
    token: str | None = None,
    *,
    api: SlackApi | None = None,
    settings: Settings | None = None,
) -> MessageMeta:
    """Replace the message addressed by `message.ts` with chat.update."""
    if message.ts is None:
        raise ValueError("update requires the ts of the message to replace")
    return await _deliver(UPDATE_ENDPOINT, message, token, api, settings)


class Courier:
    """Long-lived sender bound to one `SlackApi` for repeated sends."""

    def __init__(self, api: SlackApi):
        self.api = api

    @classmethod
    def from_settings(cls, settings: Settings | None = None, token: str | None = None, **kwargs: Any) -> "Courier":
        return cls(SlackApi.from_settings(settings or load_settings(), token=token, **kwargs))

    async def __aenter__(self) -> "Courier":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.api.aclose()

    async def send(self, message: Message) -> MessageMeta:
        return await send(message, api=self.api)

    async def update(self, message: Message) -> MessageMeta:
        return await update(message, api=self.api)
