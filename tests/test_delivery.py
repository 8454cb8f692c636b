import httpx
import pytest

from blockwire.config import Settings
from blockwire.core.delivery import Courier, resolve_attachments, send, update
from blockwire.core.errors import MissingCredential, UploadFailure
from blockwire.domain.attachments import Attachment, FileType
from blockwire.domain.blocks import Divider, Header, MarkdownSection
from blockwire.domain.message import Message, MessageMeta


@pytest.fixture
def report_message():
    return Message(
        "C1",
        Header("Nightly report"),
        MarkdownSection("*2* files attached"),
        attachments=[
            Attachment.csv_data(b"a,b\n1,2\n", filename="numbers.csv", title="Numbers", fallback="CSV", color="#36a64f"),
            Attachment.image("https://example.com/chart.png", alt_text="chart"),
            Attachment.file_data(b"%PDF-1.7", "summary.pdf", FileType.pdf, title="Summary", text="see page 2"),
        ],
    )


@pytest.mark.asyncio
async def test_send_posts_message_and_returns_ts(api, fake_slack):
    meta = await send(Message("C1", Header("Hi")), api=api)
    assert meta == MessageMeta(timestamp="1700000000.000100")
    assert fake_slack.json_bodies("chat.postMessage") == [
        {"channel": "C1", "blocks": [{"type": "header", "text": {"type": "plain_text", "text": "Hi"}}]}
    ]
    assert fake_slack.calls("files.getUploadURLExternal") == []


@pytest.mark.asyncio
async def test_send_uploads_payload_attachments_first(api, fake_slack, report_message):
    await send(report_message, api=api)

    posted = fake_slack.json_bodies("chat.postMessage")[0]
    assert posted["attachments"] == [
        {
            "title": "Numbers",
            "fallback": "CSV",
            "color": "#36a64f",
            "file_url": "https://team.slack.com/files/U1/F1/Numbers",
            "filename": "numbers.csv",
            "filetype": "csv",
        },
        {"image_url": "https://example.com/chart.png", "alt_text": "chart"},
        {
            "title": "Summary",
            "text": "see page 2",
            "file_url": "https://team.slack.com/files/U1/F2/Summary",
            "filename": "summary.pdf",
            "filetype": "pdf",
        },
    ]
    # uploads happen one by one, in attachment order, before the post
    endpoints = [r.url.path.rsplit("/", 1)[-1] for r in fake_slack.requests if r.url.host == "slack.com"]
    assert endpoints == [
        "files.getUploadURLExternal", "files.completeUploadExternal",
        "files.getUploadURLExternal", "files.completeUploadExternal",
        "chat.postMessage",
    ]
    for body in fake_slack.json_bodies("files.completeUploadExternal"):
        assert body["channel_id"] == "C1"
        assert "thread_ts" not in body
    assert report_message.has_unresolved_attachments


@pytest.mark.asyncio
async def test_thread_reply_uploads_are_shared_to_the_thread(api, fake_slack):
    message = Message("C1", Divider(), ts="9.9", attachments=[Attachment.csv_data(b"a,b", filename="a.csv")])
    await send(message, api=api)
    completion = fake_slack.json_bodies("files.completeUploadExternal")[0]
    assert completion["channel_id"] == "C1"
    assert completion["thread_ts"] == "9.9"


@pytest.mark.asyncio
async def test_resolve_attachments_passes_url_attachments_through(api, fake_slack):
    message = Message("C1", Divider(), attachments=[Attachment.csv("https://example.com/a.csv")])
    assert await resolve_attachments(api, message) is message
    assert fake_slack.requests == []


@pytest.mark.asyncio
async def test_failed_upload_aborts_send(api, fake_slack, report_message):
    uploads = []

    def second_upload_breaks(request):
        uploads.append(request)
        if len(uploads) == 2:
            return httpx.Response(500)
        return httpx.Response(200, text="OK")

    fake_slack.overrides["transfer"] = second_upload_breaks
    with pytest.raises(UploadFailure) as exc:
        await send(report_message, api=api)
    assert exc.value.stage == "transfer"
    assert exc.value.filename == "summary.pdf"
    assert fake_slack.calls("chat.postMessage") == []


@pytest.mark.asyncio
async def test_update_targets_chat_update(api, fake_slack):
    meta = await update(Message("C1", MarkdownSection("edited"), ts="1700000000.000100"), api=api)
    assert meta.timestamp == "1700000000.000100"
    body = fake_slack.json_bodies("chat.update")[0]
    assert body["ts"] == body["thread_ts"] == "1700000000.000100"
    assert fake_slack.calls("chat.postMessage") == []


@pytest.mark.asyncio
async def test_update_requires_ts(api):
    with pytest.raises(ValueError):
        await update(Message("C1", Divider()), api=api)


@pytest.mark.asyncio
async def test_missing_ts_in_response_means_unknown(api, fake_slack):
    fake_slack.overrides["chat.postMessage"] = lambda request: httpx.Response(200, json={"ok": True})
    assert await send(Message("C1", Divider()), api=api) == MessageMeta(timestamp=None)


@pytest.mark.asyncio
async def test_send_without_token_fails_before_io():
    with pytest.raises(MissingCredential):
        await send(Message("C1", Divider()), settings=Settings(slack_token=None))


@pytest.mark.asyncio
async def test_courier_reuses_engine(api, fake_slack):
    async with Courier(api) as courier:
        first = await courier.send(Message("C1", Header("one")))
        await courier.update(Message("C1", Header("two"), ts=first.timestamp))
    assert len(fake_slack.calls("chat.postMessage")) == 1
    assert len(fake_slack.calls("chat.update")) == 1
