from __future__ import annotations

import logging
from typing import Any

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from .. import config
from ..services.devices import (
    BlynkClient,
    DeviceConfigError,
    InvalidAction,
    TrafficLightClient,
    UpstreamError,
    get_http_client,
    mqtt_placeholder,
    websocket_placeholder,
)


router = APIRouter(prefix="/api", tags=["devices"])

logger = logging.getLogger(__name__)


class TrafficLightRequest(BaseModel):
    action: str = "green"


class BlynkRequest(BaseModel):
    pin: str = "v0"
    value: Any = 0
    action: str = "update"


class MqttRequest(BaseModel):
    action: str = "toggle"
    led: str = "green"


class WebSocketBridgeRequest(BaseModel):
    message: str = "green_toggle"


@router.post("/esp32", response_class=PlainTextResponse)
async def esp32_control(
    payload: TrafficLightRequest,
    http: httpx.AsyncClient = Depends(get_http_client),
):
    client = TrafficLightClient(config.ESP32_IP, http)
    try:
        text = await client.switch(payload.action)
    except DeviceConfigError as exc:
        logger.error("%s", exc)
        return PlainTextResponse(str(exc), status_code=500)
    except InvalidAction as exc:
        return PlainTextResponse(str(exc), status_code=400)
    except UpstreamError as exc:
        return PlainTextResponse(
            f"ESP32 error: {exc.status_code} - Check if ESP32 is running and IP is correct",
            status_code=502,
        )
    except httpx.HTTPError as exc:
        logger.error("ESP32 connection error: %s", exc)
        reason = str(exc) or "Check ESP32 IP and network connection"
        return PlainTextResponse(f"Connection failed: {reason}", status_code=500)
    return PlainTextResponse(text)


@router.post("/blynk", response_class=PlainTextResponse)
async def blynk_update(
    payload: BlynkRequest,
    http: httpx.AsyncClient = Depends(get_http_client),
):
    client = BlynkClient(config.BLYNK_TOKEN, config.BLYNK_BASE_URL, http)
    try:
        text = await client.update(payload.pin, payload.value, payload.action)
    except DeviceConfigError as exc:
        return PlainTextResponse(str(exc), status_code=500)
    except InvalidAction as exc:
        return PlainTextResponse(str(exc), status_code=400)
    except UpstreamError as exc:
        return PlainTextResponse(exc.text, status_code=502)
    except httpx.HTTPError as exc:
        logger.error("Blynk request failed: %s", exc)
        return PlainTextResponse(str(exc) or "Server error", status_code=500)
    return PlainTextResponse(text)


@router.post("/mqtt")
def mqtt_bridge(payload: MqttRequest):
    try:
        return mqtt_placeholder(config.MQTT_BROKER_URL, payload.action, payload.led)
    except DeviceConfigError as exc:
        return PlainTextResponse(str(exc), status_code=500)


@router.post("/websocket")
def websocket_bridge(payload: WebSocketBridgeRequest):
    try:
        return websocket_placeholder(config.ESP32_WS_IP, payload.message)
    except DeviceConfigError as exc:
        return PlainTextResponse(str(exc), status_code=500)

