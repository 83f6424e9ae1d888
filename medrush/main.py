import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .config import ALLOWED_ORIGINS, KEEPALIVE_SECONDS
from .hub import ChannelHub
from .routers.devices import router as devices_router
from .routers.hospitals import router as hospitals_router
from .routers.notify import router as notify_router
from .telemetry import (
    init_logging,
    new_request_id,
    observe_request,
    set_request_id,
    start_timer,
)


init_logging()

app = FastAPI(title="MedRush Ambulance Notification API")
app.state.hub = ChannelHub(keepalive_interval=KEEPALIVE_SECONDS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


logger = logging.getLogger(__name__)


@app.middleware("http")
async def request_context(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or new_request_id()
    set_request_id(request_id)
    started = start_timer()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("Unhandled request failure")
        response = JSONResponse(status_code=500, content={"detail": "Internal Server Error"})
        status = 500
    else:
        status = response.status_code
    observe_request(request.method, request.url.path, status, started)
    response.headers["x-request-id"] = request_id
    return response


@app.on_event("shutdown")
def on_shutdown():
    app.state.hub.close()


# Routers
app.include_router(notify_router)
app.include_router(hospitals_router)
app.include_router(devices_router)


@app.get("/healthz")
def healthcheck() -> dict:
    return {"status": "ok"}


@app.get("/metrics")
def metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
