"""
WebSocket broadcaster for live deal events.

Every connected client gets its own bounded outbound queue and sender
task. The notifier subscriber only enqueues, so a slow client can never
delay evaluation or the other clients; a client whose queue overflows or
whose socket fails is dropped.
"""

import asyncio
import json
from typing import Dict, Optional, Set

from aiohttp import WSCloseCode, WSMsgType, web

from ..components.notifier import EventNotifier
from ..models.events import Event
from ..utils.error_handling import ErrorCategory, ErrorSeverity, with_error_handling
from ..utils.logging import get_logger

logger = get_logger("websocket_broadcaster")


class _Client:
    """Outbound state for one WebSocket connection."""

    def __init__(self, ws: web.WebSocketResponse, queue_size: int):
        self.ws = ws
        self.queue: "asyncio.Queue[str]" = asyncio.Queue(maxsize=queue_size)
        self.sender: Optional[asyncio.Task] = None


class WebSocketBroadcaster:
    """Subscribes to the notifier and fans events out to WebSocket clients."""

    def __init__(self, notifier: EventNotifier, queue_size: int = 1000):
        self.notifier = notifier
        self.queue_size = queue_size
        self._clients: Dict[int, _Client] = {}
        self._closing: Set[asyncio.Task] = set()
        notifier.subscribe(self.enqueue)

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def enqueue(self, event: Event) -> None:
        """Notifier subscriber: queue the serialized event for every client."""
        message = json.dumps(event.to_message(), default=str)

        for key, client in list(self._clients.items()):
            try:
                client.queue.put_nowait(message)
            except asyncio.QueueFull:
                logger.warning("Dropping slow WebSocket client", extra={"client": key})
                self._evict(key, client)

    async def handle(self, request: web.Request) -> web.WebSocketResponse:
        """aiohttp handler for ``GET /ws``."""
        ws = web.WebSocketResponse(heartbeat=30.0)

        # Register before the handshake so no event published meanwhile is lost
        key = id(ws)
        client = _Client(ws, self.queue_size)
        self._clients[key] = client
        client_logger = logger.bind(client=key, remote=request.remote)

        try:
            await ws.prepare(request)
            if key not in self._clients:
                # Overflowed during the handshake
                await self._close_slow(ws)
                return ws
            client.sender = asyncio.create_task(self._send_loop(key, client))
            client_logger.info("Client connected", extra={"total_clients": self.client_count})

            async for msg in ws:
                # Inbound messages are ignored; the feed is one-directional
                if msg.type == WSMsgType.ERROR:
                    client_logger.warning(
                        "WebSocket connection error", extra={"error": str(ws.exception())}
                    )
                    break
        finally:
            self._drop(key)
            if client.sender is not None:
                client.sender.cancel()
            client_logger.info("Client disconnected", extra={"total_clients": self.client_count})

        return ws

    async def close(self) -> None:
        """Close every client connection."""
        for key, client in list(self._clients.items()):
            self._drop(key)
            if client.ws.prepared:
                await client.ws.close()
        if self._closing:
            await asyncio.wait(set(self._closing))

    def _evict(self, key: int, client: _Client) -> None:
        """Drop a client and close its socket so the peer sees the disconnect."""
        self._drop(key)
        if client.ws.closed or not client.ws.prepared:
            return
        task = asyncio.ensure_future(self._close_slow(client.ws))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    @staticmethod
    async def _close_slow(ws: web.WebSocketResponse) -> None:
        await ws.close(code=WSCloseCode.TRY_AGAIN_LATER, message=b"slow consumer")

    def _drop(self, key: int) -> None:
        client = self._clients.pop(key, None)
        if client is not None and client.sender is not None:
            client.sender.cancel()

    async def _send_loop(self, key: int, client: _Client) -> None:
        while True:
            message = await client.queue.get()
            if not await self._send(client, message):
                self._drop(key)
                return

    @with_error_handling(
        component="websocket_broadcaster",
        category=ErrorCategory.EVENT_DELIVERY,
        severity=ErrorSeverity.LOW,
        fallback_value=False,
        suppress_exceptions=True,
    )
    async def _send(self, client: _Client, message: str) -> bool:
        if client.ws.closed:
            return False
        await client.ws.send_str(message)
        return True
