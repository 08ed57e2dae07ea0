"""Video references accepted by the extraction stage."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

from ..errors import InvalidVideoInputError

_DEFAULT_MIME_TYPE = "video/mp4"
_ALLOWED_SCHEMES = {"http", "https"}


def _guess_mime_type(path: Path) -> str:
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or _DEFAULT_MIME_TYPE


@dataclass(frozen=True)
class LocalVideo:
    """Video bytes held in memory, or a local file read when extraction starts.

    Reading is deferred so that an unreadable path surfaces as an
    ``invalid_input`` failure of the pipeline run instead of an exception at
    construction time.
    """

    data: Optional[bytes] = None
    path: Optional[Path] = None
    mime_type: Optional[str] = None

    @classmethod
    def from_path(cls, path: Union[str, Path], mime_type: Optional[str] = None) -> "LocalVideo":
        return cls(path=Path(path), mime_type=mime_type)

    @property
    def resolved_mime_type(self) -> str:
        if self.mime_type:
            return self.mime_type.strip().lower()
        if self.path is not None:
            return _guess_mime_type(self.path)
        return _DEFAULT_MIME_TYPE

    def describe(self) -> str:
        if self.path is not None:
            return str(self.path)
        return f"<{len(self.data or b'')} bytes>"

    def load_bytes(self) -> bytes:
        """Return the video payload, validating MIME type and content.

        Raises:
            InvalidVideoInputError: If the reference is empty, unreadable, or
                not a video MIME type.
        """

        mime_type = self.resolved_mime_type
        if not mime_type.startswith("video/"):
            raise InvalidVideoInputError(f"Unsupported MIME type for video input: {mime_type}")

        if self.data is not None:
            payload = self.data
        elif self.path is not None:
            try:
                payload = self.path.read_bytes()
            except OSError as exc:
                raise InvalidVideoInputError(f"Cannot read video file {self.path}: {exc}") from exc
        else:
            raise InvalidVideoInputError("Local video reference has neither bytes nor a path")

        if not payload:
            raise InvalidVideoInputError(f"Video input {self.describe()} is empty")
        return payload


@dataclass(frozen=True)
class RemoteVideo:
    """A dereferenceable remote video, e.g. a YouTube watch URL."""

    url: str
    mime_type: str = _DEFAULT_MIME_TYPE

    def describe(self) -> str:
        return self.url

    def validated_url(self) -> str:
        """Return the stripped URL or raise ``InvalidVideoInputError``."""

        if not isinstance(self.url, str) or not self.url.strip():
            raise InvalidVideoInputError("Remote video URL must be a non-empty string")
        url = self.url.strip()
        parsed = urlparse(url)
        if parsed.scheme.lower() not in _ALLOWED_SCHEMES or not parsed.netloc:
            raise InvalidVideoInputError(f"Remote video URL is not an absolute http(s) URL: {url}")
        return url


VideoReference = Union[LocalVideo, RemoteVideo]
