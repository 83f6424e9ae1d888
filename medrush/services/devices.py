from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..config import UPSTREAM_TIMEOUT


logger = logging.getLogger(__name__)

TRAFFIC_LIGHT_ACTIONS = ("green", "red", "yellow")
BLYNK_ACTIONS = ("update", "notify")
USER_AGENT = "MedRush-TrafficControl/1.0"


class DeviceConfigError(Exception):
    """A required device setting is missing from the environment."""


class InvalidAction(ValueError):
    pass


class UpstreamError(Exception):
    def __init__(self, status_code: int, text: str):
        super().__init__(f"upstream responded with {status_code}")
        self.status_code = status_code
        self.text = text


class TrafficLightClient:
    """Switches the ESP32 traffic light by calling its /green, /red or /yellow endpoint."""

    def __init__(self, host: Optional[str], http: httpx.AsyncClient):
        self.host = host
        self.http = http

    async def switch(self, action: str) -> str:
        if not self.host:
            raise DeviceConfigError(
                "Missing ESP32_IP env. Create .env with ESP32_IP=your_esp32_ip"
            )
        if action not in TRAFFIC_LIGHT_ACTIONS:
            raise InvalidAction("Invalid action. Use: green, red, yellow")
        url = f"http://{self.host}/{action}"
        logger.info("Attempting to connect to: %s", url)
        res = await self.http.get(url, headers={"User-Agent": USER_AGENT})
        if res.is_error:
            logger.error("ESP32 responded with status: %s", res.status_code)
            raise UpstreamError(res.status_code, res.text)
        logger.info("ESP32 response: %s", res.text)
        return res.text


class BlynkClient:
    """Writes a virtual pin through the Blynk cloud HTTP API, keeping the token server-side."""

    def __init__(self, token: Optional[str], base_url: str, http: httpx.AsyncClient):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.http = http

    async def update(self, pin: str, value, action: str = "update") -> str:
        if not self.token:
            raise DeviceConfigError("Missing BLYNK_TOKEN env")
        if action not in BLYNK_ACTIONS:
            raise InvalidAction("Invalid action")
        res = await self.http.get(
            f"{self.base_url}/external/api/update",
            params={"token": self.token, pin: str(value)},
        )
        if res.is_error:
            raise UpstreamError(res.status_code, res.text or "Blynk error")
        return res.text or "ok"


def mqtt_placeholder(broker_url: Optional[str], action: str, led: str) -> dict:
    # No broker connection is made; the payload only describes what would be sent.
    if not broker_url:
        raise DeviceConfigError("Missing MQTT_BROKER_URL env")
    topic = f"medrush/led/{led}"
    return {
        "success": True,
        "message": f"MQTT message '{action}' sent to topic '{topic}'",
        "note": "This is a placeholder - implement MQTT client for full functionality",
    }


def websocket_placeholder(ws_host: Optional[str], message: str) -> dict:
    if not ws_host:
        raise DeviceConfigError("Missing ESP32_WS_IP env")
    return {
        "success": True,
        "message": f"WebSocket message '{message}' sent to ESP32",
        "note": "This is a placeholder - implement WebSocket client for full functionality",
    }


async def get_http_client():
    async with httpx.AsyncClient(timeout=UPSTREAM_TIMEOUT) as client:
        yield client
