"""
Realtime chat socket.

One reader task feeds inbound frames to the session handler, one writer task
drains the connection's outbound queue. Whichever ends first tears the
session down.
"""

import asyncio
from typing import Optional

from fastapi import APIRouter, Query, WebSocket
from starlette.websockets import WebSocketState

from livechat.api.deps import AuthProvider, Hub, resolve_socket_identity
from livechat.core.logger import logger
from livechat.services.connection import Connection
from livechat.services.session_handler import ChatSessionHandler

router = APIRouter()


async def _pump_inbound(websocket: WebSocket, handler: ChatSessionHandler) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return
        raw = message.get("text")
        if raw is None:
            raw = message.get("bytes")
        if raw is not None:
            await handler.handle_text(raw)


async def _pump_outbound(websocket: WebSocket, connection: Connection) -> None:
    while True:
        frame = await connection.next_frame()
        if frame is None:
            return
        await websocket.send_text(frame)


@router.websocket("/ws")
async def chat_socket(
    websocket: WebSocket,
    hub: Hub,
    auth_provider: AuthProvider,
    token: Optional[str] = Query(None),
) -> None:
    identity = await resolve_socket_identity(token, auth_provider)
    await websocket.accept()
    handler = hub.open_session(identity)

    reader = asyncio.create_task(_pump_inbound(websocket, handler))
    writer = asyncio.create_task(_pump_outbound(websocket, handler.connection))
    done, pending = await asyncio.wait({reader, writer}, return_when=asyncio.FIRST_COMPLETED)
    for task in pending:
        task.cancel()

    await handler.disconnect()
    for task, result in zip(
        (reader, writer),
        await asyncio.gather(reader, writer, return_exceptions=True),
    ):
        if isinstance(result, Exception):
            logger.debug(f"Socket task {task.get_coro().__name__} ended with error: {result}")

    if websocket.client_state == WebSocketState.CONNECTED:
        try:
            await websocket.close()
        except RuntimeError as e:
            logger.debug(f"Socket already closed: {e}")
