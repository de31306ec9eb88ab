"""
Route registration for the Assistive Vision API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Keep the vision credential server-side (POST /api/vision is a pass-through)
- Wire gateway to WebSocket lifecycle; pump session.outbound to the socket
- Pull dependencies from app.state
"""

from __future__ import annotations

import asyncio
import json
from typing import Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from adapters.vision.gemini import GeminiVisionProvider, VisionProviderError
from observability.logger import log_event
from observability.metrics import timed
from session.gateway import SessionGateway
from session.voice_session import VoiceSession

from spec import (
    VISION_MAX_IMAGE_BYTES,
    VISION_MSG_BAD_REQUEST,
    VISION_MSG_IMAGE_TOO_LARGE,
    VISION_MSG_KEY_MISSING,
)


class VisionRequest(BaseModel):
    """Body of POST /api/vision: bare base64 JPEG plus the prompt."""
    image: Optional[str] = None
    prompt: Optional[str] = None


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""

    @app.get("/api/health")
    async def health() -> dict[str, str]:  # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.post("/api/vision")
    async def vision(body: VisionRequest) -> JSONResponse:  # pyright: ignore[reportUnusedFunction]
        provider: GeminiVisionProvider | None = app.state.vision_provider
        if provider is None:
            return JSONResponse({"error": VISION_MSG_KEY_MISSING}, status_code=401)

        if not body.image or not body.prompt:
            return JSONResponse({"error": VISION_MSG_BAD_REQUEST}, status_code=400)

        if len(body.image) > VISION_MAX_IMAGE_BYTES:
            return JSONResponse({"error": VISION_MSG_IMAGE_TOO_LARGE}, status_code=413)

        try:
            with timed("vision_provider", details={"prompt_chars": len(body.prompt)}):
                text = await provider.analyze(image=body.image, prompt=body.prompt)
        except VisionProviderError as exc:
            log_event({
                "event_type": "VISION_PROXY_ERROR",
                "status": exc.status,
                "message": exc.message,
            })
            return JSONResponse({"error": exc.message}, status_code=exc.status)

        return JSONResponse({"text": text})

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None:  # pyright: ignore[reportUnusedFunction]
        await ws.accept()

        gateway = SessionGateway(
            config=app.state.config,
            services_factory=app.state.services_factory,
        )
        sender: asyncio.Task[None] | None = None

        try:
            session = await gateway.on_ws_connect(client_id=ws.query_params.get("client_id"))
            sender = asyncio.create_task(_pump_outbound(ws, session))

            while True:
                msg = await ws.receive()

                if msg["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(code=msg.get("code", 1000))

                if msg.get("text") is not None:
                    await gateway.on_json_message(msg["text"])
                elif msg.get("bytes") is not None:
                    await gateway.on_binary_message(msg["bytes"])

        except WebSocketDisconnect:
            await gateway.on_ws_disconnect(reason="client_disconnect")

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "WS_FATAL_ERROR",
                "session_id": gateway.session.session_id if gateway.session else None,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            await gateway.on_ws_disconnect(reason="server_error")

        finally:
            if sender is not None:
                sender.cancel()
                await asyncio.gather(sender, return_exceptions=True)


async def _pump_outbound(ws: WebSocket, session: VoiceSession) -> None:
    """
    Send everything the session queues, in order.

    JSON control messages and binary audio frames share one FIFO so an
    AUDIO_END never overtakes the frames it closes.
    """
    while True:
        item = await session.outbound.get()
        if isinstance(item, bytes):
            await ws.send_bytes(item)
        else:
            await ws.send_text(json.dumps(item))
