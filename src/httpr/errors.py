"""Error hierarchy for httpr.

Every error raised by httpr itself inherits from :class:`HttprError`. Each
carries a machine-readable ``code`` (from :class:`ErrorCode`), a
human-readable ``message``, an optional structured ``context`` dict, and an
optional ``cause`` (chained exception).

Transport-level failures from the wrapped transport (``httpx.TransportError``
and its subclasses) are *not* wrapped: once retries are exhausted they reach
the caller unchanged.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error httpr can raise."""

    CANCELLED = "CANCELLED"
    DEADLINE_EXCEEDED = "DEADLINE_EXCEEDED"
    DRAIN_ERROR = "DRAIN_ERROR"
    REPLAY_ERROR = "REPLAY_ERROR"
    BODY_NOT_REPLAYABLE = "BODY_NOT_REPLAYABLE"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class HttprError(Exception):
    """Base exception for all httpr errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.
    context:
        Arbitrary structured data providing extra diagnostic detail.
        Keys are documented per subclass.
    cause:
        The underlying exception, if this error wraps another.
    """

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: BaseException | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------

class RetryCancelledError(HttprError):
    """The request's cancel token fired while waiting for the next attempt.

    Context keys: ``attempt``, ``delay``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
        code: str = ErrorCode.CANCELLED,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            context=context,
            cause=cause,
        )


class RetryDeadlineExceededError(RetryCancelledError):
    """The request's cancel token deadline passed before the next attempt.

    Context keys: ``attempt``, ``delay``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            message=message,
            context=context,
            cause=cause,
            code=ErrorCode.DEADLINE_EXCEEDED,
        )


# ---------------------------------------------------------------------------
# Resource errors
# ---------------------------------------------------------------------------

class ResponseDrainError(HttprError):
    """A discarded response body could not be read to completion.

    The connection behind it is in an unknown state, so the request is not
    retried.

    Context keys: ``status_code``, ``attempt``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.DRAIN_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class RequestReplayError(HttprError):
    """A fresh copy of the request could not be built for the next attempt.

    Context keys: ``method``, ``url``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
        code: str = ErrorCode.REPLAY_ERROR,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            context=context,
            cause=cause,
        )


class BodyNotReplayableError(RequestReplayError):
    """The request body is a one-shot stream with no ``body_factory``.

    Context keys: ``method``, ``url``, ``stream_type``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            message=message,
            context=context,
            cause=cause,
            code=ErrorCode.BODY_NOT_REPLAYABLE,
        )
