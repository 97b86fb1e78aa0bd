"""Tests for disconnect-aware request execution."""

import asyncio

import pytest

from docqa.api.dependencies import ClientDisconnected, run_until_disconnect


class StubRequest:
    """Feeds ASGI receive() messages; disconnects once `gone` is set."""

    def __init__(self):
        self.gone = asyncio.Event()

    async def receive(self):
        await self.gone.wait()
        return {"type": "http.disconnect"}


class TestRunUntilDisconnect:
    @pytest.mark.asyncio
    async def test_returns_result_while_client_connected(self):
        async def work():
            await asyncio.sleep(0.01)
            return "answer"

        assert await run_until_disconnect(StubRequest(), work()) == "answer"

    @pytest.mark.asyncio
    async def test_disconnect_cancels_in_flight_work(self):
        request = StubRequest()
        started = asyncio.Event()
        cancelled = asyncio.Event()

        async def work():
            started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.set()
                raise

        async def hang_up():
            await started.wait()
            request.gone.set()

        hang_up_task = asyncio.create_task(hang_up())
        with pytest.raises(ClientDisconnected):
            await run_until_disconnect(request, work())
        await hang_up_task

        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_ignores_non_disconnect_messages(self):
        class ChattyRequest:
            def __init__(self):
                self.messages = [{"type": "http.request", "body": b""}]

            async def receive(self):
                if self.messages:
                    return self.messages.pop()
                return {"type": "http.disconnect"}

        async def work():
            await asyncio.Event().wait()

        with pytest.raises(ClientDisconnected):
            await run_until_disconnect(ChattyRequest(), work())

    @pytest.mark.asyncio
    async def test_work_error_propagates(self):
        async def work():
            raise RuntimeError("model crashed")

        with pytest.raises(RuntimeError, match="model crashed"):
            await run_until_disconnect(StubRequest(), work())
