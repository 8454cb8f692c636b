"""Legacy-style message attachments (images, files, CSV) by URL or by raw bytes."""
from __future__ import annotations

import json
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional, Union


# ============================================================================
# File types
# ============================================================================


class FileType(str, Enum):
    """Supported attachment file types."""

    csv = "csv"
    pdf = "pdf"
    txt = "txt"
    json = "json"
    xml = "xml"
    zip = "zip"
    doc = "doc"
    docx = "docx"
    xls = "xls"
    xlsx = "xlsx"
    ppt = "ppt"
    pptx = "pptx"
    jpg = "jpg"
    jpeg = "jpeg"
    png = "png"
    gif = "gif"
    mp4 = "mp4"
    mov = "mov"
    mp3 = "mp3"
    wav = "wav"

    @property
    def mime_type(self) -> str:
        return MIME_TYPES[self]

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    @property
    def is_video(self) -> bool:
        return self.mime_type.startswith("video/")

    @property
    def is_audio(self) -> bool:
        return self.mime_type.startswith("audio/")

    @classmethod
    def from_filename(cls, filename: str, default: "FileType | None" = None) -> "FileType":
        """Guess the type from a file extension, falling back to `default` (txt if None)."""
        _, _, ext = filename.rpartition(".")
        try:
            return cls(ext.lower())
        except ValueError:
            return default or cls.txt


MIME_TYPES: dict[FileType, str] = {
    FileType.csv: "text/csv",
    FileType.pdf: "application/pdf",
    FileType.txt: "text/plain",
    FileType.json: "application/json",
    FileType.xml: "application/xml",
    FileType.zip: "application/zip",
    FileType.doc: "application/msword",
    FileType.docx: "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    FileType.xls: "application/vnd.ms-excel",
    FileType.xlsx: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    FileType.ppt: "application/vnd.ms-powerpoint",
    FileType.pptx: "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    FileType.jpg: "image/jpeg",
    FileType.jpeg: "image/jpeg",
    FileType.png: "image/png",
    FileType.gif: "image/gif",
    FileType.mp4: "video/mp4",
    FileType.mov: "video/quicktime",
    FileType.mp3: "audio/mpeg",
    FileType.wav: "audio/wav",
}


# ============================================================================
# Attachment sources
# ============================================================================


@dataclass(frozen=True)
class ImageSource:
    url: str
    alt_text: Optional[str] = None

    def wire_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {"image_url": self.url}
        if self.alt_text is not None:
            fields["alt_text"] = self.alt_text
        return fields


@dataclass(frozen=True)
class FileSource:
    url: str
    filename: str
    file_type: FileType

    def wire_fields(self) -> dict[str, Any]:
        return {"file_url": self.url, "filename": self.filename, "filetype": self.file_type.value}


@dataclass(frozen=True)
class FileDataSource:
    data: bytes
    filename: str
    file_type: FileType

    def wire_fields(self) -> dict[str, Any]:
        return {"filename": self.filename, "filetype": self.file_type.value}


@dataclass(frozen=True)
class CsvSource:
    url: str
    filename: Optional[str] = None

    def wire_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {"file_url": self.url}
        if self.filename is not None:
            fields["filename"] = self.filename
        fields["filetype"] = FileType.csv.value
        return fields


@dataclass(frozen=True)
class CsvDataSource:
    data: bytes
    filename: Optional[str] = None

    def wire_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        if self.filename is not None:
            fields["filename"] = self.filename
        fields["filetype"] = FileType.csv.value
        return fields


AttachmentSource = Union[ImageSource, FileSource, FileDataSource, CsvSource, CsvDataSource]
PAYLOAD_SOURCES = (FileDataSource, CsvDataSource)

# Upload name for CSV payloads created without a filename.
DEFAULT_CSV_FILENAME = "data.csv"


# ============================================================================
# Attachment
# ============================================================================


@dataclass(frozen=True)
class Attachment:
    """
    A secondary content unit attached to a message.

    URL-backed attachments serialize as-is. Byte-backed ones (`file_data`,
    `csv_data`) must be uploaded and turned into URL-backed attachments with
    `resolved()` before the message is posted; their bytes never reach the
    wire.
    """

    source: AttachmentSource
    title: Optional[str] = None
    fallback: Optional[str] = None
    color: Optional[str] = None
    text: Optional[str] = None

    @classmethod
    def image(cls, url: str, alt_text: str | None = None, title: str | None = None,
              fallback: str | None = None, **extra: Any) -> "Attachment":
        return cls(ImageSource(url, alt_text), title=title, fallback=fallback, **extra)

    @classmethod
    def file(cls, url: str, filename: str, file_type: FileType, title: str | None = None,
             fallback: str | None = None, **extra: Any) -> "Attachment":
        return cls(FileSource(url, filename, FileType(file_type)), title=title, fallback=fallback, **extra)

    @classmethod
    def file_data(cls, data: bytes, filename: str, file_type: FileType, title: str | None = None,
                  fallback: str | None = None, **extra: Any) -> "Attachment":
        return cls(FileDataSource(bytes(data), filename, FileType(file_type)), title=title, fallback=fallback, **extra)

    @classmethod
    def csv(cls, url: str, filename: str | None = None, title: str | None = None,
            fallback: str | None = None, **extra: Any) -> "Attachment":
        return cls(CsvSource(url, filename), title=title, fallback=fallback, **extra)

    @classmethod
    def csv_data(cls, data: bytes, filename: str | None = None, title: str | None = None,
                 fallback: str | None = None, **extra: Any) -> "Attachment":
        return cls(CsvDataSource(bytes(data), filename), title=title, fallback=fallback, **extra)

    @property
    def is_payload(self) -> bool:
        """True while the attachment still carries raw bytes to upload."""
        return isinstance(self.source, PAYLOAD_SOURCES)

    @property
    def payload(self) -> tuple[bytes, str, FileType] | None:
        """(data, upload filename, file type) of a byte-backed attachment, else None."""
        src = self.source
        if isinstance(src, FileDataSource):
            return src.data, src.filename, src.file_type
        if isinstance(src, CsvDataSource):
            return src.data, src.filename or DEFAULT_CSV_FILENAME, FileType.csv
        return None

    def resolved(self, url: str) -> "Attachment":
        """Return the URL-backed equivalent of a byte-backed attachment."""
        src = self.source
        if isinstance(src, FileDataSource):
            return replace(self, source=FileSource(url, src.filename, src.file_type))
        if isinstance(src, CsvDataSource):
            return replace(self, source=CsvSource(url, src.filename))
        raise ValueError("attachment is already URL-backed")

    def to_dict(self) -> dict[str, Any]:
        fragment: dict[str, Any] = {}
        if self.title is not None:
            fragment["title"] = self.title
        if self.fallback is not None:
            fragment["fallback"] = self.fallback
        if self.color is not None:
            fragment["color"] = self.color
        if self.text is not None:
            fragment["text"] = self.text
        fragment.update(self.source.wire_fields())
        return fragment

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    def __repr__(self) -> str:
        # keep raw payloads out of logs and tracebacks
        src = self.source
        if isinstance(src, PAYLOAD_SOURCES):
            shown = f"{type(src).__name__}(<{len(src.data)} bytes>, filename={src.filename!r})"
        else:
            shown = repr(src)
        return f"Attachment(source={shown}, title={self.title!r})"
