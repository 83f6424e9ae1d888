import asyncio
import os
import sys

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from medrush.main import app
from medrush.hub import ChannelHub, get_hub
from medrush.services.devices import get_http_client


@pytest.fixture
def app_client():
    hub = ChannelHub(keepalive_interval=60)
    app.dependency_overrides[get_hub] = lambda: hub

    client = TestClient(app)
    yield client, hub

    app.dependency_overrides.pop(get_hub, None)


@pytest_asyncio.fixture
async def hub():
    hub = ChannelHub(keepalive_interval=0.05)
    yield hub
    hub.close()
    await asyncio.sleep(0)


@pytest_asyncio.fixture
async def async_client(hub):
    app.dependency_overrides[get_hub] = lambda: hub
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.pop(get_hub, None)


@pytest.fixture
def upstream():
    """Routes device proxy calls to a handler set by the test."""
    calls = []
    state = {"handler": lambda request: httpx.Response(200, text="ok")}

    def dispatch(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return state["handler"](request)

    async def override_get_http_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(dispatch)) as client:
            yield client

    app.dependency_overrides[get_http_client] = override_get_http_client

    def respond_with(handler):
        state["handler"] = handler

    yield calls, respond_with

    app.dependency_overrides.pop(get_http_client, None)
