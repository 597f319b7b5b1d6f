"""Uploaded script file handle."""

from enum import Enum
import mimetypes
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class FileRejection(str, Enum):
    """Why a selected script file was refused."""

    INVALID_TYPE = "invalid-type"
    TOO_LARGE = "too-large"
    NOT_SINGLE = "not-single"


class ScriptFile(BaseModel):
    """In-memory script file selected by the user.

    Held by the intake controller until it is consumed by project creation.
    """

    model_config = ConfigDict(frozen=True)

    filename: str = Field(..., min_length=1)
    size: int = Field(..., ge=0)
    mime_type: str
    content: bytes = Field(default=b"", repr=False)

    @classmethod
    def from_bytes(
        cls, filename: str, content: bytes, mime_type: str | None = None
    ) -> "ScriptFile":
        guessed, _ = mimetypes.guess_type(filename)
        return cls(
            filename=filename,
            size=len(content),
            mime_type=mime_type or guessed or "application/octet-stream",
            content=content,
        )

    @classmethod
    def from_path(
        cls, path: str | Path, mime_type: str | None = None, max_bytes: int | None = None
    ) -> "ScriptFile":
        """Read a file from disk, guessing its MIME type from the extension.

        Files larger than ``max_bytes`` are not read: the handle carries the
        real size and no content, so the size check still rejects it.
        """
        path = Path(path)
        size = path.stat().st_size
        if max_bytes is not None and size > max_bytes:
            guessed, _ = mimetypes.guess_type(path.name)
            return cls(
                filename=path.name,
                size=size,
                mime_type=mime_type or guessed or "application/octet-stream",
            )
        return cls.from_bytes(path.name, path.read_bytes(), mime_type=mime_type)
