"""Per-user live update fan-out.

The registry maps user id -> open channels. notify() offers the plain
"update" marker to each of them; a channel that refuses the offer is
closed and dropped on the spot. Clients re-fetch /tasks on every marker.

Request handlers run in the threadpool while websockets live on the event
loop, so the map is guarded by a single threading.Lock and a channel's
offer() never blocks: it hands the frame to the loop and returns.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Dict, List, Optional, Protocol, Union

from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger("tasktracker.live")

UPDATE_MARKER = "update"

Frame = Union[str, bytes]


class Channel(Protocol):
    def offer(self, frame: Frame) -> bool:
        """Queue a frame without blocking; False means the channel is dead."""
        ...

    def close(self) -> None: ...


class LiveUpdateRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._channels: Dict[int, List[Channel]] = {}

    def register(self, user_id: int, channel: Channel) -> None:
        with self._lock:
            channels = self._channels.setdefault(user_id, [])
            channels.append(channel)
            count = len(channels)
        logger.info("live channel registered user_id=%s channels=%s", user_id, count)

    def unregister(self, user_id: int, channel: Channel) -> None:
        """Remove exactly this channel; no-op when it is already gone."""
        with self._lock:
            removed = self._remove(user_id, channel)
        if removed:
            logger.info("live channel unregistered user_id=%s", user_id)

    def _remove(self, user_id: int, channel: Channel) -> bool:
        # caller holds the lock
        channels = self._channels.get(user_id)
        if not channels:
            return False
        for i, existing in enumerate(channels):
            if existing is channel:
                del channels[i]
                if not channels:
                    del self._channels[user_id]
                return True
        return False

    def notify(self, user_id: int) -> int:
        """Send the update marker to every channel of `user_id`.

        Returns the number of channels that accepted it.
        """
        delivered = 0
        dead: List[Channel] = []
        with self._lock:
            for channel in list(self._channels.get(user_id, ())):
                try:
                    ok = channel.offer(UPDATE_MARKER)
                except Exception:
                    logger.exception("live channel offer failed user_id=%s", user_id)
                    ok = False
                if ok:
                    delivered += 1
                    continue
                self._remove(user_id, channel)
                dead.append(channel)

        for channel in dead:
            try:
                channel.close()
            except Exception:
                logger.exception("closing dead live channel failed user_id=%s", user_id)

        if dead:
            logger.info("dropped dead live channels user_id=%s dropped=%s", user_id, len(dead))
        logger.debug("notified user_id=%s delivered=%s", user_id, delivered)
        return delivered

    def connection_count(self, user_id: Optional[int] = None) -> int:
        with self._lock:
            if user_id is not None:
                return len(self._channels.get(user_id, ()))
            return sum(len(chs) for chs in self._channels.values())

    def close_all(self) -> None:
        """Close every registered channel (used on shutdown)."""
        with self._lock:
            channels = [ch for chs in self._channels.values() for ch in chs]
            self._channels.clear()
        for channel in channels:
            try:
                channel.close()
            except Exception:
                logger.exception("closing live channel on shutdown failed")


# Outbox sentinel telling the writer to close the socket.
_CLOSE = object()


class WebSocketChannel:
    """A live channel backed by a websocket.

    Frames go through an outbox drained by pump(), the only task that
    writes to the socket. offer() may be called from any thread.
    """

    def __init__(self, websocket: WebSocket, loop: asyncio.AbstractEventLoop, max_pending: int = 64):
        self.websocket = websocket
        self._loop = loop
        self._max_pending = max_pending
        self._outbox: asyncio.Queue = asyncio.Queue()
        self._pending = 0
        self._state_lock = threading.Lock()
        self.closed = False

    def _put(self, item: object) -> bool:
        try:
            self._loop.call_soon_threadsafe(self._outbox.put_nowait, item)
        except RuntimeError:
            # event loop already closed
            return False
        return True

    def offer(self, frame: Frame) -> bool:
        with self._state_lock:
            if self.closed or self._pending >= self._max_pending:
                return False
            self._pending += 1
        if not self._put(frame):
            self.closed = True
            return False
        return True

    def close(self) -> None:
        with self._state_lock:
            if self.closed:
                return
            self.closed = True
        self._put(_CLOSE)

    async def pump(self) -> None:
        """Write queued frames until closed or the socket fails."""
        try:
            while True:
                item = await self._outbox.get()
                if item is _CLOSE:
                    break
                with self._state_lock:
                    self._pending -= 1
                if isinstance(item, bytes):
                    await self.websocket.send_bytes(item)
                else:
                    await self.websocket.send_text(item)
        except Exception as exc:
            logger.info("live channel send failed: %s", exc.__class__.__name__)
        finally:
            with self._state_lock:
                self.closed = True
            await self._close_socket()

    async def _close_socket(self) -> None:
        ws = self.websocket
        if ws.client_state == WebSocketState.CONNECTED and ws.application_state == WebSocketState.CONNECTED:
            try:
                await ws.close()
            except RuntimeError:
                # peer went away between the check and the close
                pass
