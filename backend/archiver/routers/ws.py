"""Live collection snapshots over a websocket.

Each message is ``{"type": "snapshot", "collection": ..., "data": [...]}``
holding the full current list. Snapshot callbacks may fire on a store's
background thread, so they hand off to the event loop through a queue.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool

from archiver.backends import Backend
from archiver.dependencies import get_backend, get_sessions
from archiver.services.auth_service import SessionRegistry
from archiver.store.base import COLLECTIONS

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ws"])

CLOSE_UNAUTHORIZED = 4401
CLOSE_UNKNOWN_COLLECTION = 4404


@router.websocket("/ws/{collection}")
async def watch_collection(
    websocket: WebSocket,
    collection: str,
    token: str | None = None,
    backend: Backend = Depends(get_backend),
    sessions: SessionRegistry = Depends(get_sessions),
):
    if not token or sessions.validate(token) is None:
        await websocket.close(code=CLOSE_UNAUTHORIZED)
        return
    if collection not in COLLECTIONS:
        await websocket.close(code=CLOSE_UNKNOWN_COLLECTION)
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def deliver(snapshot: list) -> None:
        data = [item.model_dump(mode="json", by_alias=True) for item in snapshot]
        loop.call_soon_threadsafe(queue.put_nowait, data)

    async def send_snapshots() -> None:
        while True:
            data = await queue.get()
            await websocket.send_json({"type": "snapshot", "collection": collection, "data": data})

    async def wait_for_close() -> None:
        while True:
            await websocket.receive_text()

    unsubscribe = await run_in_threadpool(backend.feed.subscribe, collection, deliver)
    logger.info("Snapshot subscriber attached to %s", collection)
    tasks = {asyncio.create_task(send_snapshots()), asyncio.create_task(wait_for_close())}
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                raise exc
    finally:
        unsubscribe()
        logger.info("Snapshot subscriber detached from %s", collection)
