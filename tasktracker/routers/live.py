# PURPOSE: GET /ws, the per-user live update channel.
# Server -> client: "update" after each task change of the authenticated user.
# Client -> server: "ping" is answered with "pong", anything else is echoed.

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, status

from ..api.deps import get_live_registry
from ..auth import get_token_issuer, websocket_user_id
from ..config import settings
from ..errors import Unauthenticated
from ..live import UPDATE_MARKER, LiveUpdateRegistry, WebSocketChannel
from ..security import TokenIssuer

logger = logging.getLogger("tasktracker.live")

router = APIRouter(tags=["live"])


@router.websocket("/ws")
async def live_updates(
    websocket: WebSocket,
    registry: LiveUpdateRegistry = Depends(get_live_registry),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    try:
        user_id = websocket_user_id(websocket, issuer)
    except Unauthenticated as exc:
        logger.info("live channel refused: %s", exc.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    channel = WebSocketChannel(
        websocket, asyncio.get_running_loop(), max_pending=settings.LIVE_MAX_PENDING
    )
    registry.register(user_id, channel)
    writer = asyncio.create_task(channel.pump())
    if settings.LIVE_SEND_INITIAL_UPDATE:
        # prompt a fresh fetch right after (re)connecting
        channel.offer(UPDATE_MARKER)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            text = message.get("text")
            if text is not None:
                reply = "pong" if text == "ping" else text
            else:
                reply = message.get("bytes") or b""
            if not channel.offer(reply):
                break
    finally:
        registry.unregister(user_id, channel)
        channel.close()
        try:
            await asyncio.wait_for(writer, timeout=5)
        except asyncio.TimeoutError:
            writer.cancel()
        logger.info("live channel closed user_id=%s", user_id)
