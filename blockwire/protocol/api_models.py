from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

# Field names match Slack's snake_case wire keys one to one, both ways.

class ApiResponse(BaseModel):
    """Envelope shared by every Web API response."""
    model_config = ConfigDict(extra="ignore")

    ok: bool
    error: Optional[str] = None
    warning: Optional[str] = None

class ChatResponse(ApiResponse):
    channel: Optional[str] = None
    ts: Optional[str] = None

class FileUploadStartResponse(ApiResponse):
    upload_url: Optional[str] = None
    file_id: Optional[str] = None

class UploadedFile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    title: Optional[str] = None
    name: Optional[str] = None
    permalink: Optional[str] = None
    url_private: Optional[str] = None
    filetype: Optional[str] = None
    size: Optional[int] = None
    timestamp: Optional[int] = None

    @property
    def url(self) -> Optional[str]:
        return self.permalink or self.url_private

class FileUploadFinishedResponse(ApiResponse):
    files: list[UploadedFile] = Field(default_factory=list)

class FileInfoResponse(ApiResponse):
    file: Optional[UploadedFile] = None

class FileRef(BaseModel):
    id: str
    title: Optional[str] = None
    timestamp: Optional[int] = None

class FileUploadFinishedRequest(BaseModel):
    """Body of files.completeUploadExternal. `blocks` is a JSON array string."""
    files: list[FileRef]
    channel_id: Optional[str] = None
    channels: Optional[str] = None
    thread_ts: Optional[str] = None
    initial_comment: Optional[str] = None
    blocks: Optional[str] = None

class FileUploadResult(BaseModel):
    """Outcome of a completed upload."""
    file_id: str
    filename: str
    url: str
    title: Optional[str] = None
