"""Request replay and response drain helpers.

Before a request can be re-issued two things must happen:

1. The response of the failed attempt is read to the end and closed so the
   connection behind it is released (:func:`drain_response`,
   :func:`adrain_response`).
2. A fresh request with an unread body is built (:func:`replay_request`).

A body can be replayed when it is held in memory (``httpx.ByteStream``), when
it is a multipart upload whose files can be rewound, or when the caller
attached a zero-argument ``body_factory`` to the request extensions.
Anything else is a one-shot stream and raises
:class:`~httpr.errors.BodyNotReplayableError` instead of being resent
half-consumed.
"""

from __future__ import annotations

from typing import Any

import httpx
from httpx._multipart import MultipartStream

from httpr.errors import BodyNotReplayableError, RequestReplayError, ResponseDrainError

BODY_FACTORY_EXTENSION = "body_factory"


def _has_body(request: httpx.Request) -> bool:
    if not isinstance(request.stream, httpx.ByteStream):
        return True
    if "transfer-encoding" in request.headers:
        return True
    return request.headers.get("content-length", "0") != "0"


def _rewindable(stream: MultipartStream) -> bool:
    # httpx seeks every file field back to 0 before rendering it.
    for field in stream.fields:
        file = getattr(field, "file", None)
        if file is None or isinstance(file, (str, bytes)):
            continue
        if hasattr(file, "seekable"):
            if not file.seekable():
                return False
        elif not hasattr(file, "seek"):
            return False
    return True


def _copy_request(
    request: httpx.Request, reframe: bool = False, **kwargs: Any,
) -> httpx.Request:
    headers = httpx.Headers(request.headers)
    if reframe:
        # httpx recomputes framing for the new content.
        headers.pop("content-length", None)
        headers.pop("transfer-encoding", None)
    return httpx.Request(
        request.method,
        request.url,
        headers=headers,
        extensions=dict(request.extensions),
        **kwargs,
    )


def replay_request(request: httpx.Request) -> httpx.Request:
    """Return a copy of *request* whose body has not been read.

    Method, URL, headers and extensions (including the cancel token) are
    preserved.

    Raises
    ------
    BodyNotReplayableError
        If the request has a streaming body and no ``body_factory``.
    RequestReplayError
        If the ``body_factory`` raises or returns an unsupported type.
    """
    factory = request.extensions.get(BODY_FACTORY_EXTENSION)
    if factory is not None and _has_body(request):
        try:
            content = factory()
            return _copy_request(request, reframe=True, content=content)
        except Exception as exc:
            raise RequestReplayError(
                message=f"body_factory failed for {request.method} {request.url}: {exc}",
                context={"method": request.method, "url": str(request.url)},
                cause=exc,
            ) from exc

    if isinstance(request.stream, httpx.ByteStream):
        return _copy_request(request, stream=request.stream)

    if isinstance(request.stream, MultipartStream) and _rewindable(request.stream):
        return _copy_request(request, stream=request.stream)

    raise BodyNotReplayableError(
        message=(
            f"Cannot replay the body of {request.method} {request.url}: "
            "it is a one-shot stream and no body_factory was given"
        ),
        context={
            "method": request.method,
            "url": str(request.url),
            "stream_type": type(request.stream).__name__,
        },
    )


def drain_response(response: httpx.Response | None) -> None:
    """Read *response* to the end, discarding bytes, and close it.

    Does nothing for ``None``.  The response is closed even when reading
    fails.

    Raises
    ------
    ResponseDrainError
        If the body could not be read to completion.
    """
    if response is None:
        return
    try:
        if not response.is_stream_consumed:
            for _ in response.iter_raw():
                pass
    except Exception as exc:
        raise ResponseDrainError(
            message=f"Failed to drain response with status {response.status_code}: {exc}",
            context={"status_code": response.status_code},
            cause=exc,
        ) from exc
    finally:
        response.close()


async def adrain_response(response: httpx.Response | None) -> None:
    """Async equivalent of :func:`drain_response`."""
    if response is None:
        return
    try:
        if not response.is_stream_consumed:
            async for _ in response.aiter_raw():
                pass
    except Exception as exc:
        raise ResponseDrainError(
            message=f"Failed to drain response with status {response.status_code}: {exc}",
            context={"status_code": response.status_code},
            cause=exc,
        ) from exc
    finally:
        await response.aclose()
