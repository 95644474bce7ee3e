from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Optional

import httpx
from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from .config import reload_settings, settings
from .hub import Hub
from .logging_setup import RequestLogMiddleware, init_logging
from .metrics import LAT, REQS, router as metrics_router
from .validate import parse_subscription_form
from .verify import VerificationError

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], httpx.AsyncClient]


class Health(BaseModel):
    status: str
    time: str
    subscriptions: int


class PublishResult(BaseModel):
    topic: str
    dispatched: int


def get_hub(request: Request) -> Hub:
    return request.app.state.hub


def create_app(client_factory: Optional[ClientFactory] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        reload_settings()
        client = client_factory() if client_factory else httpx.AsyncClient()
        app.state.hub = Hub.from_client(
            client,
            verify_timeout=settings.VERIFY_TIMEOUT_SECONDS,
            delivery_timeout=settings.DELIVERY_TIMEOUT_SECONDS,
            concurrency=settings.DELIVERY_CONCURRENCY,
            filter_by_topic=settings.PUBLISH_FILTER_BY_TOPIC,
        )
        try:
            yield
        finally:
            await client.aclose()

    app = FastAPI(title="WebSubHub", version="0.1.0", lifespan=lifespan)
    app.add_middleware(RequestLogMiddleware)
    app.include_router(metrics_router())

    @app.middleware("http")
    async def _metrics(request: Request, call_next):
        method = request.method
        path = request.url.path
        start = time.time()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.time() - start
            REQS.labels(method, path, str(status_code)).inc()
            LAT.labels(method, path).observe(duration)

    @app.get("/health", response_model=Health)
    def health(hub: Hub = Depends(get_hub)):
        return Health(
            status="ok",
            time=datetime.now(timezone.utc).isoformat(),
            subscriptions=len(hub.registry),
        )

    @app.get("/a-topic", response_class=PlainTextResponse)
    def a_topic():
        return PlainTextResponse("not implemented", status_code=501)

    @app.post("/")
    async def subscribe(request: Request, hub: Hub = Depends(get_hub)):
        try:
            form = await request.form()
        except Exception as exc:  # noqa: BLE001
            logger.debug("form parse failed: %s", exc)
            return PlainTextResponse("error parsing body", status_code=400)

        fields = {key: value for key, value in form.items() if isinstance(value, str)}
        logger.info(
            "subscription request callback=%s mode=%s topic=%s lease=%s",
            fields.get("hub.callback"),
            fields.get("hub.mode"),
            fields.get("hub.topic"),
            fields.get("hub.lease_seconds"),
        )

        ok, parsed, reason = parse_subscription_form(fields)
        if not ok or parsed is None:
            return PlainTextResponse(reason or "invalid request", status_code=400)

        try:
            await hub.subscribe(parsed)
        except VerificationError as exc:
            logger.debug("intent verification failed: %s", exc)
            return PlainTextResponse("failed intent verification", status_code=500)

        return Response(status_code=202)

    @app.post("/publish", response_model=PublishResult)
    async def publish(
        topic: Optional[str] = Query(None),
        hub: Hub = Depends(get_hub),
    ):
        topic = topic or settings.DEFAULT_TOPIC
        outcomes = await hub.publish(topic)
        return PublishResult(topic=topic, dispatched=len(outcomes))

    return app


init_logging(settings.LOG_LEVEL)

app = create_app()
