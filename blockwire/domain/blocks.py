"""Block Kit building blocks for message bodies."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from collections.abc import Iterable, Mapping
from typing import Any, Optional, Protocol, Union, runtime_checkable


# ============================================================================
# Capabilities
# ============================================================================


@runtime_checkable
class MarkdownConvertible(Protocol):
    """Anything that can be rendered as a `mrkdwn` text object."""

    @property
    def markdown(self) -> str: ...


@runtime_checkable
class PlainTextConvertible(Protocol):
    """Anything that can be rendered as a `plain_text` text object."""

    @property
    def plain_text(self) -> str: ...


MarkdownLike = Union[MarkdownConvertible, str]
PlainTextLike = Union[PlainTextConvertible, str]


def as_markdown(value: MarkdownLike) -> str:
    """Return the markdown text of a block or a raw string."""
    if isinstance(value, str):
        return value
    if isinstance(value, MarkdownConvertible):
        return value.markdown
    raise TypeError(f"{type(value).__name__} is not markdown convertible")


def as_plain_text(value: PlainTextLike) -> str:
    """Return the plain text of a block or a raw string."""
    if isinstance(value, str):
        return value
    if isinstance(value, PlainTextConvertible):
        return value.plain_text
    raise TypeError(f"{type(value).__name__} is not plain text convertible")


def _text_object(kind: str, text: str) -> dict[str, Any]:
    return {"type": kind, "text": text}


def _dumps(fragment: dict[str, Any]) -> str:
    return json.dumps(fragment, ensure_ascii=False, separators=(",", ":"))


# ============================================================================
# Blocks
# ============================================================================


class Block:
    """Base class of every renderable message block."""

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError

    def to_json(self) -> str:
        return _dumps(self.to_dict())


@dataclass(frozen=True)
class ImageAccessory:
    """Image rendered at the side of a section. Only valid as a section accessory."""

    url: str
    alt_text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "image", "image_url": self.url, "alt_text": self.alt_text}

    def to_json(self) -> str:
        return _dumps(self.to_dict())


@dataclass(frozen=True)
class Divider(Block):
    """Block to visually separate other blocks."""

    def to_dict(self) -> dict[str, Any]:
        return {"type": "divider"}


@dataclass(frozen=True)
class Header(Block):
    """Header block. Plain text only, emoji possible. Accepts a string or anything exposing `plain_text`."""

    text: str

    def __post_init__(self):
        object.__setattr__(self, "text", as_plain_text(self.text))

    def to_dict(self) -> dict[str, Any]:
        return {"type": "header", "text": _text_object("plain_text", self.text)}


@dataclass(frozen=True)
class PlainSection(Block):
    """Plain text section. Accepts a string or anything exposing `plain_text`."""

    plain_text: str
    accessory: Optional[ImageAccessory] = None

    def __post_init__(self):
        object.__setattr__(self, "plain_text", as_plain_text(self.plain_text))

    def to_dict(self) -> dict[str, Any]:
        fragment: dict[str, Any] = {"type": "section", "text": _text_object("plain_text", self.plain_text)}
        if self.accessory is not None:
            fragment["accessory"] = self.accessory.to_dict()
        return fragment


@dataclass(frozen=True)
class MarkdownSection(Block):
    """Markdown text section. Usable on its own and inside `FieldsSection` / `Context`."""

    markdown: str
    accessory: Optional[ImageAccessory] = None

    def __post_init__(self):
        object.__setattr__(self, "markdown", as_markdown(self.markdown))

    def to_dict(self) -> dict[str, Any]:
        fragment: dict[str, Any] = {"type": "section", "text": _text_object("mrkdwn", self.markdown)}
        if self.accessory is not None:
            fragment["accessory"] = self.accessory.to_dict()
        return fragment


def _collect_markdown(items: Iterable[Any]) -> tuple[str, ...]:
    texts: list[str] = []
    for item in items:
        if item is None:
            continue
        if isinstance(item, str) or isinstance(item, MarkdownConvertible):
            texts.append(as_markdown(item))
        elif isinstance(item, (Mapping, bytes)):
            raise TypeError(f"{type(item).__name__} is not markdown convertible")
        elif isinstance(item, Iterable):
            texts.extend(_collect_markdown(item))
        else:
            raise TypeError(f"{type(item).__name__} is not markdown convertible")
    return tuple(texts)


@dataclass(frozen=True, init=False)
class FieldsSection(Block):
    """
    Rows of markdown fields wrapping horizontally.

    Two columns per row on desktop, one on mobile. Accepts markdown sections,
    raw strings, None (skipped) and iterables of those (flattened).
    """

    fields: tuple[str, ...] = field(default=())

    def __init__(self, *items: Any):
        object.__setattr__(self, "fields", _collect_markdown(items))

    def to_dict(self) -> dict[str, Any]:
        return {"type": "section", "fields": [_text_object("mrkdwn", t) for t in self.fields]}


@dataclass(frozen=True, init=False)
class Context(Block):
    """Small print line, usually at the bottom of a message (app version, branch, ...)."""

    elements: tuple[str, ...] = field(default=())

    def __init__(self, *items: Any):
        object.__setattr__(self, "elements", _collect_markdown(items))

    def to_dict(self) -> dict[str, Any]:
        return {"type": "context", "elements": [_text_object("mrkdwn", t) for t in self.elements]}


@dataclass(frozen=True)
class Image(Block):
    """Standalone image block."""

    url: str
    alt_text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "image", "image_url": self.url, "alt_text": self.alt_text}


def build_blocks(*items: Any) -> list[Block]:
    """
    Assemble an ordered list of blocks.

    Blocks keep their order, None is skipped so conditional blocks can be
    written inline, and iterables (lists, generators) are flattened so a
    source sequence can be mapped to blocks in place.
    """
    result: list[Block] = []
    for item in items:
        if item is None:
            continue
        if isinstance(item, Block):
            result.append(item)
        elif isinstance(item, ImageAccessory):
            raise TypeError("ImageAccessory can only be used as a section accessory")
        elif isinstance(item, Mapping):
            raise TypeError(f"{type(item).__name__} is not a block")
        elif isinstance(item, (str, bytes)):
            raise TypeError(f"raw {type(item).__name__} is not a block, wrap it in a section")
        elif isinstance(item, Iterable):
            result.extend(build_blocks(*item))
        else:
            raise TypeError(f"{type(item).__name__} is not a block")
    return result


# ============================================================================
# Mentions
# ============================================================================


class MentionType(str, Enum):
    """Mention kinds."""

    user = "user"
    subgroup = "subgroup"


@dataclass(frozen=True)
class Mention:
    """
    User or user-group mention usable inside markdown texts.

    `Mention.user("tim")` renders as `<@tim>`, `Mention.subgroup("S04")` as `<!subteam^S04>`.
    """

    kind: MentionType
    target: str

    @classmethod
    def user(cls, target: str) -> "Mention":
        return cls(MentionType.user, target)

    @classmethod
    def subgroup(cls, target: str) -> "Mention":
        return cls(MentionType.subgroup, target)

    @property
    def markdown(self) -> str:
        if self.kind == MentionType.user:
            return f"<@{self.target}>"
        return f"<!subteam^{self.target}>"

    def __str__(self) -> str:
        return self.markdown
