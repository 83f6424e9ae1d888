import asyncio
import json
import logging
import time
import uuid
from typing import Any, AsyncIterator, Dict, Optional, Set

from fastapi import Request

from .telemetry import observe_publish, sse_join, sse_leave


logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def connected_event(client_id: str, channel: str) -> dict:
    return {"type": "connected", "clientId": client_id, "channel": channel, "ts": now_ms()}


def ping_event() -> dict:
    return {"type": "ping", "ts": now_ms()}


def notify_event(message: str, hospital_id: str, meta: Any) -> dict:
    return {
        "type": "notify",
        "message": message,
        "hospitalId": hospital_id,
        "meta": meta,
        "ts": now_ms(),
    }


def encode_event(event: dict) -> str:
    return f"data: {json.dumps(event, separators=(',', ':'))}\n\n"


class SubscriberClosed(Exception):
    pass


class Subscriber:
    """One open event stream. Frames are read back in the order they were written."""

    def __init__(self, channel: str):
        self.id = str(uuid.uuid4())
        self.channel = channel
        self.closed = False
        self.keepalive: Optional[asyncio.Task] = None
        self._frames: asyncio.Queue = asyncio.Queue()

    async def write(self, event: dict) -> None:
        if self.closed:
            raise SubscriberClosed(self.id)
        await self._frames.put(encode_event(event))

    async def read(self) -> Optional[str]:
        # None marks the end of the stream
        return await self._frames.get()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._frames.put_nowait(None)
        if self.keepalive and self.keepalive is not asyncio.current_task():
            self.keepalive.cancel()


class ChannelHub:
    def __init__(self, keepalive_interval: float = 15.0):
        self.keepalive_interval = keepalive_interval
        self.clients: Dict[str, Set[Subscriber]] = {}

    def channel(self, name: str) -> Set[Subscriber]:
        return self.clients.setdefault(name, set())

    def channels(self) -> Dict[str, int]:
        return {name: len(subs) for name, subs in self.clients.items()}

    async def subscribe(self, channel: str) -> Subscriber:
        sub = Subscriber(channel)
        self.channel(channel).add(sub)
        sse_join(channel)
        await sub.write(connected_event(sub.id, channel))
        sub.keepalive = asyncio.create_task(self._keepalive(sub))
        logger.info("Subscriber %s joined channel %s", sub.id, channel)
        return sub

    def unsubscribe(self, sub: Subscriber) -> None:
        members = self.clients.get(sub.channel)
        if members is not None and sub in members:
            members.discard(sub)
            sse_leave(sub.channel)
            logger.info("Subscriber %s left channel %s", sub.id, sub.channel)
        sub.close()

    async def publish(
        self,
        channel: str,
        message: str,
        hospital_id: str = "",
        meta: Any = None,
    ) -> int:
        event = notify_event(message, hospital_id, {} if meta is None else meta)
        delivered = 0
        for sub in list(self.channel(channel)):
            try:
                await sub.write(event)
            except Exception:
                logger.warning("Dropping subscriber %s after failed write", sub.id)
                self.unsubscribe(sub)
            else:
                delivered += 1
        observe_publish(channel)
        return delivered

    async def stream(self, channel: str) -> AsyncIterator[str]:
        sub = await self.subscribe(channel)
        try:
            while True:
                frame = await sub.read()
                if frame is None:
                    break
                yield frame
        finally:
            self.unsubscribe(sub)

    def close(self) -> None:
        for members in self.clients.values():
            for sub in list(members):
                self.unsubscribe(sub)

    async def _keepalive(self, sub: Subscriber) -> None:
        while True:
            await asyncio.sleep(self.keepalive_interval)
            try:
                await sub.write(ping_event())
            except Exception:
                self.unsubscribe(sub)
                return


def get_hub(request: Request) -> ChannelHub:
    return request.app.state.hub
