"""Multipart framing for gallery uploads.

Starlette's MultiPartParser quietly drops a last part that never reaches the
closing ``--boundary--`` delimiter. The request stream is watched while it is
parsed so a truncated body is reported as a ProtocolFault instead of an
empty, successful upload.
"""
import logging
from typing import AsyncIterator

from python_multipart.multipart import parse_options_header
from starlette.datastructures import FormData
from starlette.formparsers import MultiPartException, MultiPartParser
from starlette.requests import ClientDisconnect, Request

from .errors import ProtocolFault

logger = logging.getLogger(__name__)


class DelimiterTracker:
    """Notes whether the close delimiter has gone past in a chunked stream.

    The delimiter only counts at the start of the body or after CRLF, which
    is where the parser itself recognises it.
    """

    def __init__(self, boundary: bytes) -> None:
        self._delimiter = b"\r\n--" + boundary + b"--"
        self._tail = b"\r\n"
        self.seen = False

    def feed(self, chunk: bytes) -> None:
        if self.seen or not chunk:
            return
        window = self._tail + chunk
        if self._delimiter in window:
            self.seen = True
            return
        self._tail = window[-(len(self._delimiter) - 1):]


async def parse_upload_form(request: Request, max_files: int) -> FormData:
    """Parse a multipart request body into FormData.

    Raises:
        ProtocolFault: If the boundary is missing, the framing is invalid,
            the body ends before the closing delimiter, too many parts were
            sent, or the client disconnected.
    """
    _, params = parse_options_header(request.headers.get("content-type", ""))
    boundary = params.get(b"boundary")
    if not boundary:
        raise ProtocolFault("Malformed multipart body: missing boundary")

    tracker = DelimiterTracker(boundary)

    async def tracked_stream() -> AsyncIterator[bytes]:
        async for chunk in request.stream():
            tracker.feed(chunk)
            yield chunk

    parser = MultiPartParser(
        request.headers, tracked_stream(), max_files=max_files, max_fields=max_files
    )
    try:
        form = await parser.parse()
    except ClientDisconnect as exc:
        raise ProtocolFault("Client disconnected during upload") from exc
    except (MultiPartException, ValueError) as exc:
        # python-multipart framing errors surface as ValueError subclasses.
        detail = getattr(exc, "message", None) or str(exc)
        raise ProtocolFault(f"Malformed multipart body: {detail}") from exc

    if not tracker.seen:
        await form.close()
        raise ProtocolFault("Malformed multipart body: missing closing boundary")
    return form
