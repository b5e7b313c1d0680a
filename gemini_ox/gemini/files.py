"""File upload through the service's resumable upload protocol.

Two requests are made:

1. ``POST {base}/upload/{version}/files`` with ``X-Goog-Upload-Protocol:
   resumable`` and ``X-Goog-Upload-Command: start``; the response carries the
   session URL in ``X-Goog-Upload-URL``.
2. ``POST`` the bytes to that URL with ``X-Goog-Upload-Command: upload,
   finalize``; the response body describes the stored file.

The start request creates nothing durable and may be retried; the
upload-and-finalize request is a plain non-idempotent POST and gets one
attempt.
"""

from __future__ import annotations

import json
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from ..base.cancellation import CancellationToken
from ..base.dispatch import Dispatcher, SerializedRequest
from ..base.errors import DecodeError, DecodeErrorKind, ValidationError
from ..base.models import FileReference
from ..base.models_parts.part import mime_type_violations
from ..config import GEMINI_API_KEY_HEADER

_DEFAULT_MIME_TYPE = "application/octet-stream"


def guess_mime_type(file_name: str) -> str:
    guessed, _ = mimetypes.guess_type(file_name)
    return guessed or _DEFAULT_MIME_TYPE


@dataclass(frozen=True)
class FileUpload:
    """Bytes to upload plus the display name and MIME type sent with them."""

    display_name: str
    mime_type: str
    data: bytes = field(repr=False)

    def __post_init__(self) -> None:
        violations = []
        if not isinstance(self.display_name, str) or not self.display_name.strip():
            violations.append("file name is required")
        violations += mime_type_violations(self.mime_type)
        if not isinstance(self.data, (bytes, bytearray, memoryview)):
            violations.append("file data must be bytes")
        if violations:
            raise ValidationError(violations=violations)
        object.__setattr__(self, "data", bytes(self.data))

    @classmethod
    def from_path(
        cls,
        path: Union[str, Path],
        *,
        mime_type: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> "FileUpload":
        """Read ``path``; the MIME type is guessed from the file name when absent."""
        p = Path(path)
        if not p.is_file():
            raise ValidationError.single(f"no such file: {str(p)!r}")
        return cls(display_name or p.name, mime_type or guess_mime_type(p.name), p.read_bytes())

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        display_name: str,
        *,
        mime_type: Optional[str] = None,
    ) -> "FileUpload":
        """Wrap raw bytes; ``display_name`` is required and drives the MIME guess."""
        if not display_name:
            raise ValidationError.single("file name is required when uploading raw data")
        return cls(display_name, mime_type or guess_mime_type(display_name), data)


def _file_reference(body: bytes, fallback_mime: str) -> FileReference:
    text = body.decode("utf-8", errors="replace")
    try:
        payload = json.loads(text)
    except ValueError as exc:
        raise DecodeError(message=f"upload response is not JSON: {exc}", kind=DecodeErrorKind.MALFORMED, fragment=text) from exc
    info = payload.get("file") if isinstance(payload, dict) else None
    uri = info.get("uri") if isinstance(info, dict) else None
    if not isinstance(uri, str) or not uri:
        raise DecodeError(message="missing file URI in upload response", kind=DecodeErrorKind.MALFORMED, fragment=text)
    return FileReference(uri, info.get("mimeType") or fallback_mime)


async def upload_file(
    dispatcher: Dispatcher,
    upload: FileUpload,
    *,
    base_url: str,
    api_version: str,
    api_key: str,
    cancellation_token: Optional[CancellationToken] = None,
) -> FileReference:
    """Upload ``upload`` and return a reference usable in a request turn.

    Raises:
        DispatchError: either request failed.
        DecodeError: the service answered without an upload URL or file URI.
    """
    start = SerializedRequest(
        method="POST",
        url=f"{base_url.rstrip('/')}/upload/{api_version}/files",
        headers={
            GEMINI_API_KEY_HEADER: api_key,
            "Content-Type": "application/json",
            "X-Goog-Upload-Protocol": "resumable",
            "X-Goog-Upload-Command": "start",
            "X-Goog-Upload-Header-Content-Length": str(len(upload.data)),
            "X-Goog-Upload-Header-Content-Type": upload.mime_type,
        },
        body=json.dumps({"file": {"display_name": upload.display_name}}).encode("utf-8"),
        retry_safe=True,
    )
    started = await dispatcher.dispatch(start, cancellation_token)
    upload_url = started.header("X-Goog-Upload-URL")
    await started.stream.aclose()
    if not upload_url:
        raise DecodeError(message="missing upload URL in upload start response", kind=DecodeErrorKind.MALFORMED)

    finalize = SerializedRequest(
        method="POST",
        url=upload_url,
        headers={
            GEMINI_API_KEY_HEADER: api_key,
            "X-Goog-Upload-Offset": "0",
            "X-Goog-Upload-Command": "upload, finalize",
        },
        body=upload.data,
    )
    finished = await dispatcher.dispatch(finalize, cancellation_token)
    return _file_reference(await finished.read_all(), upload.mime_type)


__all__ = ["FileUpload", "guess_mime_type", "upload_file"]
