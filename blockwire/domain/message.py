"""Message aggregate: channel, optional thread, ordered blocks and attachments."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from blockwire.domain.attachments import Attachment
from blockwire.domain.blocks import Block, build_blocks


@dataclass(frozen=True, init=False)
class Message:
    """
    Root message entity.

    `channel` is best given as an id (`C061Z3P47RB`) so both post and update
    work. `ts` addresses an existing message: it is sent as both `thread_ts`
    (reply in thread) and `ts` (target of `chat.update`).

        Message("C1", Header("Deploy"), MarkdownSection("*done*"), ts="100.1")
    """

    channel: str
    ts: Optional[str] = None
    blocks: tuple[Block, ...] = field(default=())
    attachments: tuple[Attachment, ...] = field(default=())

    def __init__(
        self,
        channel: str,
        *blocks: Any,
        ts: str | None = None,
        attachments: Iterable[Attachment] = (),
    ):
        object.__setattr__(self, "channel", channel)
        object.__setattr__(self, "ts", ts)
        object.__setattr__(self, "blocks", tuple(build_blocks(*blocks)))
        object.__setattr__(self, "attachments", tuple(attachments))

    def with_attachments(self, attachments: Iterable[Attachment]) -> "Message":
        """Derive a copy carrying `attachments`; this message is left untouched."""
        return Message(self.channel, *self.blocks, ts=self.ts, attachments=attachments)

    @property
    def has_unresolved_attachments(self) -> bool:
        return any(a.is_payload for a in self.attachments)

    def blocks_json(self) -> str:
        """The blocks alone as a JSON array string."""
        return json.dumps([b.to_dict() for b in self.blocks], ensure_ascii=False, separators=(",", ":"))

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"channel": self.channel}
        if self.ts is not None:
            payload["thread_ts"] = self.ts
            payload["ts"] = self.ts
        payload["blocks"] = [b.to_dict() for b in self.blocks]
        if self.attachments:
            payload["attachments"] = [a.to_dict() for a in self.attachments]
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    def pretty(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent)


@dataclass(frozen=True)
class MessageMeta:
    """Result of a send/update. `timestamp` is None when Slack omitted it; the call still succeeded."""

    timestamp: Optional[str] = None
