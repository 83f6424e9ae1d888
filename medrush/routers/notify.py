from __future__ import annotations

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, field_validator

from ..config import DEFAULT_CHANNEL, DEFAULT_MESSAGE
from ..hub import ChannelHub, get_hub


router = APIRouter(tags=["notify"])

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
}


class NotifyRequest(BaseModel):
    channel: Optional[str] = None
    message: Optional[str] = None
    hospitalId: Optional[str] = None
    meta: Any = None

    @field_validator("channel", "message", "hospitalId", mode="before")
    @classmethod
    def _stringify(cls, value):
        # falsy values fall back to defaults, other scalars are sent as text
        if not value:
            return None
        return value if isinstance(value, str) else json.dumps(value)


@router.get("/stream")
async def stream(channel: str = DEFAULT_CHANNEL, hub: ChannelHub = Depends(get_hub)):
    return StreamingResponse(
        hub.stream(channel or DEFAULT_CHANNEL),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/notify")
async def notify(request: Request, hub: ChannelHub = Depends(get_hub)):
    try:
        body = await request.json()
        if not isinstance(body, dict):
            raise ValueError("request body must be a JSON object")
        payload = NotifyRequest.model_validate(body)
    except ValueError as exc:
        return JSONResponse(status_code=400, content={"ok": False, "error": str(exc) or "error"})

    try:
        channel = payload.channel or DEFAULT_CHANNEL
        delivered = await hub.publish(
            channel,
            payload.message or DEFAULT_MESSAGE,
            payload.hospitalId or "",
            payload.meta or {},
        )
        logger.info("Notify on %s reached %d subscriber(s)", channel, delivered)
    except Exception as exc:
        logger.exception("Notify failed")
        return JSONResponse(status_code=500, content={"ok": False, "error": str(exc) or "error"})
    return {"ok": True}


@router.get("/channels")
def list_channels(hub: ChannelHub = Depends(get_hub)) -> dict:
    return {"channels": hub.channels()}
