"""Unit tests for cancel.py: CancelToken (sync and async waits)."""
from __future__ import annotations

import asyncio
import threading
import time

import httpx
import pytest

from httpr.cancel import CANCEL_TOKEN_EXTENSION, CancelToken, get_cancel_token


class TestCancelToken:
    def test_fresh_token_not_done(self):
        token = CancelToken()
        assert token.cancelled is False
        assert token.expired is False
        assert token.done() is False
        assert token.remaining() is None

    def test_cancel_sets_done(self):
        token = CancelToken()
        token.cancel()
        assert token.cancelled is True
        assert token.done() is True

    def test_negative_timeout_rejected(self):
        with pytest.raises(ValueError, match="timeout"):
            CancelToken(timeout=-1)

    def test_zero_timeout_is_expired(self):
        token = CancelToken(timeout=0)
        assert token.cancelled is False
        assert token.expired is True
        assert token.done() is True

    def test_remaining_counts_down(self):
        token = CancelToken(timeout=10.0)
        remaining = token.remaining()
        assert remaining is not None
        assert 9.0 < remaining <= 10.0

    def test_callbacks_run_once(self):
        token = CancelToken()
        calls: list[int] = []
        token.add_callback(lambda: calls.append(1))
        token.cancel()
        token.cancel()
        assert calls == [1]

    def test_callback_added_after_cancel_runs_immediately(self):
        token = CancelToken()
        token.cancel()
        calls: list[int] = []
        token.add_callback(lambda: calls.append(1))
        assert calls == [1]

    def test_removed_callback_not_run(self):
        token = CancelToken()
        calls: list[int] = []

        def callback() -> None:
            calls.append(1)

        token.add_callback(callback)
        token.remove_callback(callback)
        token.remove_callback(callback)
        token.cancel()
        assert calls == []


class TestWait:
    def test_wait_times_out_when_not_cancelled(self):
        token = CancelToken()
        assert token.wait(0.01) is False

    def test_wait_returns_immediately_when_cancelled(self):
        token = CancelToken()
        token.cancel()
        t0 = time.monotonic()
        assert token.wait(5.0) is True
        assert time.monotonic() - t0 < 1.0

    def test_cancel_from_other_thread_interrupts_wait(self):
        token = CancelToken()
        timer = threading.Timer(0.05, token.cancel)
        timer.start()
        t0 = time.monotonic()
        try:
            assert token.wait(5.0) is True
        finally:
            timer.cancel()
        assert time.monotonic() - t0 < 2.0

    def test_deadline_shortens_wait(self):
        token = CancelToken(timeout=0.05)
        t0 = time.monotonic()
        assert token.wait(5.0) is True
        assert time.monotonic() - t0 < 2.0
        assert token.cancelled is False


class TestWaitAsync:
    @pytest.mark.asyncio
    async def test_times_out_when_not_cancelled(self):
        token = CancelToken()
        assert await token.wait_async(0.01) is False

    @pytest.mark.asyncio
    async def test_already_cancelled(self):
        token = CancelToken()
        token.cancel()
        assert await token.wait_async(5.0) is True

    @pytest.mark.asyncio
    async def test_cancel_from_event_loop(self):
        token = CancelToken()
        asyncio.get_running_loop().call_later(0.05, token.cancel)
        t0 = time.monotonic()
        assert await token.wait_async(5.0) is True
        assert time.monotonic() - t0 < 2.0

    @pytest.mark.asyncio
    async def test_cancel_from_other_thread(self):
        token = CancelToken()
        timer = threading.Timer(0.05, token.cancel)
        timer.start()
        t0 = time.monotonic()
        try:
            assert await token.wait_async(5.0) is True
        finally:
            timer.cancel()
        assert time.monotonic() - t0 < 2.0

    @pytest.mark.asyncio
    async def test_deadline(self):
        token = CancelToken(timeout=0.05)
        assert await token.wait_async(5.0) is True

    @pytest.mark.asyncio
    async def test_callback_removed_after_wait(self):
        token = CancelToken()
        await token.wait_async(0.0)
        assert token._callbacks == []


class TestGetCancelToken:
    def test_token_from_extensions(self):
        token = CancelToken()
        request = httpx.Request(
            "GET", "https://example.com", extensions={CANCEL_TOKEN_EXTENSION: token},
        )
        assert get_cancel_token(request) is token

    def test_missing_token(self):
        assert get_cancel_token(httpx.Request("GET", "https://example.com")) is None
