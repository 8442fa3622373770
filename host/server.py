from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Callable, Dict, Optional, Tuple

import websockets
from websockets.asyncio.server import ServerConnection, serve

from judgment.commands import parse_command
from judgment.errors import InvalidBid, ValidationRejection
from judgment.events import ForcedDisconnect, InvalidBidNotice, OutboundEvent, Rejection
from judgment.game import GameEngine
from judgment.models import GameConfig

LOGGER = logging.getLogger("judgment_host")

# HostServer glues the Judgment engine to WebSocket clients.
# Every network concern lives here; the GameEngine stays pure.


class LoopScheduler:
    """Runs engine follow-ups on the running asyncio loop."""

    def time(self) -> float:
        return time.monotonic()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


# Messages a client may fall behind by before the host drops it.
OUTBOX_LIMIT = 256


@dataclass
class ClientSession:
    connection_id: str
    websocket: ServerConnection
    outbox: "asyncio.Queue[Tuple[str, bool]]" = field(default_factory=lambda: asyncio.Queue(maxsize=OUTBOX_LIMIT))
    writer_task: Optional[asyncio.Task] = None
    close_task: Optional[asyncio.Task] = None


class HostServer:
    def __init__(self, config: GameConfig) -> None:
        # GameEngine handles the table; this class handles sockets and delivery.
        self.engine = GameEngine(config, broadcaster=self, scheduler=LoopScheduler())
        self.sessions: Dict[str, ClientSession] = {}

    async def start(self, host: str = "0.0.0.0", port: int = 5000) -> None:
        async with serve(self._handle_connection, host, port, process_request=self._process_request):
            LOGGER.info("Judgment table listening on %s:%s", host, port)
            await asyncio.Future()

    def _process_request(self, connection: ServerConnection, request):
        if request.headers.get("Upgrade", "").lower() == "websocket":
            return None  # let the WebSocket handshake continue
        if request.path in {"/", "/health", "/healthz"}:
            return connection.respond(HTTPStatus.OK, "judgment table running\n")
        return connection.respond(HTTPStatus.NOT_FOUND, "not found\n")

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        session = self._register(websocket)
        LOGGER.info("Connection %s opened", session.connection_id)
        try:
            async for raw in websocket:
                self._handle_message(session, raw)
        except websockets.ConnectionClosed:
            pass
        finally:
            self._unregister(session)

    def _register(self, websocket: ServerConnection) -> ClientSession:
        session = ClientSession(connection_id=uuid.uuid4().hex, websocket=websocket)
        self.sessions[session.connection_id] = session
        session.writer_task = asyncio.create_task(self._writer(session))
        return session

    def _unregister(self, session: ClientSession) -> None:
        self.sessions.pop(session.connection_id, None)
        if session.writer_task:
            session.writer_task.cancel()
        # Seat bookkeeping (pause, grace period) is the engine's call.
        self.engine.disconnect(session.connection_id)
        LOGGER.info("Connection %s closed", session.connection_id)

    def _handle_message(self, session: ClientSession, raw) -> None:
        # Runs to completion without awaiting, so one command never interleaves
        # with another command or a fired timer.
        message = self._decode(raw)
        try:
            command = parse_command(message)
            self.engine.handle(session.connection_id, command)
        except InvalidBid as exc:
            LOGGER.warning("Rejected bid from %s: %s", session.connection_id, exc.msg)
            self.send(session.connection_id, InvalidBidNotice(exc.msg))
        except ValidationRejection as exc:
            LOGGER.warning(
                "Rejected %s from %s code=%s reason=%s",
                message.get("type"),
                session.connection_id,
                exc.code,
                exc.msg,
            )
            self.send(session.connection_id, Rejection(exc.code, exc.msg))

    # Broadcaster -----------------------------------------------------

    def broadcast(self, event: OutboundEvent) -> None:
        for connection_id in list(self.sessions):
            self.send(connection_id, event)

    def send(self, connection: str, event: OutboundEvent) -> None:
        session = self.sessions.get(connection)
        if session is None:
            return
        if session.outbox.full():
            self._drop_slow_client(session)
            return
        # Render now: the table may change again before the writer runs.
        message = self._envelope(event.type, event.to_payload(connection))
        session.outbox.put_nowait((message, isinstance(event, ForcedDisconnect)))

    def _drop_slow_client(self, session: ClientSession) -> None:
        LOGGER.warning("Connection %s fell %s messages behind; closing it", session.connection_id, OUTBOX_LIMIT)
        self.sessions.pop(session.connection_id, None)
        if session.writer_task:
            session.writer_task.cancel()
        # The reader loop sees the close and hands the disconnect to the engine.
        session.close_task = asyncio.get_running_loop().create_task(
            session.websocket.close(code=1008, reason="Client too slow")
        )

    async def _writer(self, session: ClientSession) -> None:
        while True:
            message, close_after = await session.outbox.get()
            try:
                await session.websocket.send(message)
                if close_after:
                    await session.websocket.close(code=4000, reason="Disconnected by host")
                    return
            except websockets.ConnectionClosed:
                return

    def _envelope(self, msg_type: str, payload: Dict[str, object]) -> str:
        body = {"type": msg_type, "v": 1, "ts": datetime.now(timezone.utc).isoformat()}
        body.update(payload)
        return json.dumps(body)

    def _decode(self, raw) -> Dict[str, object]:
        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return {}
        return message if isinstance(message, dict) else {}
