"""
WebSocket endpoint streaming mutation events.

Clients connect to ``/ws`` and receive ``{"action": ..., "resource": ...}``
messages for every create, update and delete that happens while they are
connected.  Nothing is replayed; clients load their initial state
through ``GET /posts``.

A ``token`` query parameter is optional.  When present it must be valid
(otherwise the socket is closed with code 4401) and the connection is
tagged with the token's subject.
"""

import asyncio
import logging

from fastapi import APIRouter, WebSocket
from starlette.websockets import WebSocketDisconnect

from feed_api.app.core.security import InvalidToken
from feed_api.app.realtime.hub import Connection, NotificationHub


router = APIRouter()

logger = logging.getLogger(__name__)

INVALID_TOKEN_CLOSE_CODE = 4401


async def _pump(websocket: WebSocket, connection: Connection) -> None:
    while True:
        message = await connection.next_message()
        await websocket.send_json(message)


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    # Clients have nothing to say on this channel; incoming frames are ignored.
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws")
async def notifications(websocket: WebSocket) -> None:
    hub: NotificationHub = websocket.app.state.hub
    subscriber_id = None
    token = websocket.query_params.get("token")
    if token:
        try:
            subscriber_id = websocket.app.state.token_issuer.validate(token)
        except InvalidToken:
            logger.info("[WebSocket] rejected connection with invalid token")
            await websocket.close(code=INVALID_TOKEN_CLOSE_CODE, reason="Invalid token")
            return

    connection = hub.connect(subscriber_id)
    # Registered before the handshake completes so that a client never
    # sees an accepted socket that is not yet receiving events.
    await hub.register(connection)
    tasks = set()
    try:
        await websocket.accept()
        tasks = {
            asyncio.create_task(_pump(websocket, connection)),
            asyncio.create_task(_wait_for_disconnect(websocket)),
        }
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.info("[WebSocket] connection %s closed after error: %s", connection.id, exc)
    finally:
        await hub.unregister(connection)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
