"""
FastAPI WebSocket transport for a hosted game.

This runs inside the host's own process: remote peers connect here, the
host's player is already seated through its loop-back sink.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from ..relay import HostContext, QueueSink
from ..room_code import to_peer_id
from .events import create_error_event, encode_event, parse_inbound_event

logger = logging.getLogger(__name__)


async def _drain(websocket: WebSocket, queue: asyncio.Queue) -> None:
    """Write queued frames to one socket, in order, until the sink closes."""
    while True:
        frame = await queue.get()
        if frame is None:
            return
        await websocket.send_text(frame.decode())


def create_app(ctx: HostContext, room_code: Optional[str] = None) -> FastAPI:
    """Build the app around one host context; nothing lives at module level."""
    if not ctx.is_authority:
        raise ValueError("Only the authority can serve peers")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        ctx.close()

    app = FastAPI(title="UNO Host", version="1.0.0", lifespan=lifespan)
    app.state.ctx = ctx
    app.state.room_code = room_code

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "phase": ctx.session.phase,
            "players": len(ctx.session.roster),
            "connections": len(ctx.relay.sinks),
        }

    @app.get("/room")
    async def room_info():
        if room_code is None:
            raise HTTPException(status_code=404, detail="No room code assigned")
        return {
            "code": room_code,
            "peer_id": to_peer_id(room_code, ctx.session.rules.room_prefix),
            "host_id": ctx.local_id,
        }

    @app.get("/local/view")
    async def local_view():
        """What the host's own player currently sees."""
        return ctx.view.as_dict()

    @app.post("/local/action")
    async def local_action(frame: Dict[str, Any]):
        """Submit an intent for the host's own player."""
        try:
            event = parse_inbound_event(frame)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        ctx.view.last_error = None
        ctx.view.last_error_code = None
        ctx.submit(event)
        return {"error": ctx.view.last_error, "view": ctx.view.as_dict()}

    @app.websocket("/ws/{peer_id}")
    async def websocket_endpoint(websocket: WebSocket, peer_id: str):
        await websocket.accept()

        if peer_id == ctx.local_id or peer_id in ctx.relay.sinks:
            error_event = create_error_event("Peer id already connected", "ALREADY_JOINED")
            await websocket.send_text(encode_event(error_event).decode())
            await websocket.close(code=1008)
            return

        sink = QueueSink()
        ctx.relay.register(peer_id, sink)
        writer = asyncio.create_task(_drain(websocket, sink.queue))

        try:
            while True:
                raw = await websocket.receive_text()
                ctx.receive(peer_id, raw)
        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected for peer {peer_id}")
        except Exception as e:
            logger.error(f"WebSocket error for peer {peer_id}: {e}")
        finally:
            ctx.disconnect(peer_id)
            writer.cancel()

    return app
