"""
FastAPI dependencies and request helpers.
"""

import asyncio
import contextlib
from typing import Awaitable, TypeVar

from fastapi import Request

from docqa.context import AppContext

T = TypeVar("T")


class ClientDisconnected(Exception):
    """The client went away before the response was ready."""


def get_app_context(request: Request) -> AppContext:
    """Dependency for the shared application context."""
    return request.app.state.context


async def _wait_for_disconnect(request: Request) -> None:
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


async def run_until_disconnect(request: Request, work: Awaitable[T]) -> T:
    """
    Await work, cancelling it if the client disconnects first.

    Must be called after the request body has been read.
    """
    task = asyncio.ensure_future(work)
    watcher = asyncio.ensure_future(_wait_for_disconnect(request))
    try:
        await asyncio.wait({task, watcher}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        watcher.cancel()
        raise

    if task.done():
        watcher.cancel()
        return task.result()

    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
    raise ClientDisconnected()
