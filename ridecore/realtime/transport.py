"""Duplex transports the realtime hub writes to."""

from __future__ import annotations

from typing import Optional, Protocol

from fastapi import WebSocket


class Transport(Protocol):
    async def send(self, data: bytes) -> None: ...

    async def receive(self) -> Optional[bytes]:
        """Next inbound frame, or ``None`` once the peer has gone."""
        ...

    async def close(self) -> None: ...


class WebSocketTransport:
    """Adapts an accepted Starlette ``WebSocket``; frames go out as text."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def send(self, data: bytes) -> None:
        await self.websocket.send_text(data.decode("utf-8"))

    async def receive(self) -> Optional[bytes]:
        message = await self.websocket.receive()
        if message["type"] == "websocket.disconnect":
            return None
        if message.get("bytes") is not None:
            return message["bytes"]
        return (message.get("text") or "").encode("utf-8")

    async def close(self) -> None:
        await self.websocket.close()
