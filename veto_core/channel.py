"""Live push subscription for one match (one connection per active match id).

Protocol: after the socket opens, the first client frame is the bare match id;
every server frame afterwards is a JSON state payload (full or partial).

The channel is an owned resource: the view that needs it opens it on entry and
closes it on exit. It never reconnects by itself.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Literal, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .validation import PayloadSanitizer

logger = logging.getLogger(__name__)

EventKind = Literal["opened", "payload", "closed", "error"]


@dataclass(frozen=True)
class ChannelEvent:
    kind: EventKind
    match_id: str
    payload: Optional[Dict[str, Any]] = None
    detail: Optional[str] = None


Connector = Callable[[str], Awaitable[Any]]


async def _default_connect(url: str) -> Any:
    return await websockets.connect(url)


class SyncChannel:
    def __init__(self, url: str, connect: Connector | None = None):
        self.url = url
        self._connect = connect or _default_connect
        self._conn: Any = None
        self._match_id: Optional[str] = None
        # Bumped by every open()/close(); a connect finishing under an older
        # epoch was superseded while in flight.
        self._epoch = 0

    @property
    def match_id(self) -> Optional[str]:
        return self._match_id

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self, match_id: str) -> None:
        """Subscribe to `match_id`; no-op if already subscribed to it.

        Raises:
            ConnectionError: If the socket cannot be opened or the handshake fails
        """
        if self._conn is not None and self._match_id == match_id:
            return
        await self.close()
        self._epoch += 1
        epoch = self._epoch

        try:
            conn = await self._connect(self.url)
        except (OSError, WebSocketException) as e:
            logger.error(f"WS connect failed for match {match_id}: {e}")
            raise ConnectionError(f"cannot open push channel: {e}") from e

        try:
            # Server expects the plain match id as the first message.
            await conn.send(match_id)
        except (OSError, WebSocketException) as e:
            logger.error(f"WS subscribe failed for match {match_id}: {e}")
            await _quiet_close(conn)
            raise ConnectionError(f"cannot subscribe to match: {e}") from e

        if epoch != self._epoch:
            logger.info(f"WS open for match {match_id} superseded while connecting, closing it")
            await _quiet_close(conn)
            return

        self._conn = conn
        self._match_id = match_id
        logger.info(f"WS open, subscribed to match {match_id}")

    async def events(self) -> AsyncIterator[ChannelEvent]:
        """Yield lifecycle events and parsed payloads until the connection ends.

        Not restartable: once this returns, a fresh open() is required.
        Malformed frames are logged and dropped without closing the socket.
        """
        conn = self._conn
        match_id = self._match_id
        if conn is None or match_id is None:
            return

        yield ChannelEvent("opened", match_id)
        try:
            async for raw in conn:
                try:
                    payload = PayloadSanitizer.parse_message(raw)
                except ValueError as e:
                    logger.warning(f"WS message parse error for match {match_id}: {e}")
                    continue
                yield ChannelEvent("payload", match_id, payload=payload)
        except ConnectionClosed as e:
            logger.info(f"WebSocket closed for match {match_id}: {e}")
            self._clear(conn)
            yield ChannelEvent("closed", match_id, detail=str(e))
            return
        except (OSError, WebSocketException) as e:
            logger.error(f"WebSocket error for match {match_id}: {e}")
            self._clear(conn)
            yield ChannelEvent("error", match_id, detail=str(e))
            return

        logger.info(f"WebSocket closed for match {match_id}")
        self._clear(conn)
        yield ChannelEvent("closed", match_id)

    async def close(self) -> None:
        """Always safe, including when never opened."""
        self._epoch += 1
        conn = self._conn
        self._conn = None
        self._match_id = None
        if conn is not None:
            await _quiet_close(conn)

    def _clear(self, conn: Any) -> None:
        # A newer open() may already have replaced the handle.
        if self._conn is conn:
            self._conn = None
            self._match_id = None


async def _quiet_close(conn: Any) -> None:
    try:
        await conn.close()
    except (OSError, WebSocketException) as e:
        logger.debug(f"Ignoring error while closing WS: {e}")
