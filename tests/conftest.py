from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field

import httpx
import pytest
from fastapi.testclient import TestClient

from websubhub.main import create_app


def _endpoint(url: httpx.URL) -> str:
    return f"{url.scheme}://{url.host}{url.path}"


@dataclass
class Callback:
    echo: str = "challenge"  # "challenge", "wrong", "empty"
    down: bool = False
    status: int = 200
    redirect_to: str | None = None
    verifications: list[httpx.URL] = field(default_factory=list)
    deliveries: list[httpx.Request] = field(default_factory=list)
    timeouts: list[dict] = field(default_factory=list)


class FakeSubscribers:
    """Subscriber endpoints served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.callbacks: dict[str, Callback] = {}
        self._lock = threading.Lock()

    def add(self, url: str, **kwargs) -> Callback:
        cb = Callback(**kwargs)
        self.callbacks[url] = cb
        return cb

    def handler(self, request: httpx.Request) -> httpx.Response:
        cb = self.callbacks.get(_endpoint(request.url))
        if cb is None or cb.down:
            raise httpx.ConnectError("connection refused", request=request)
        if cb.redirect_to is not None:
            query = request.url.query.decode("ascii")
            location = f"{cb.redirect_to}?{query}" if query else cb.redirect_to
            return httpx.Response(307, headers={"Location": location})
        with self._lock:
            cb.timeouts.append(request.extensions.get("timeout", {}))
            if request.method == "GET":
                cb.verifications.append(request.url)
            else:
                request.read()
                cb.deliveries.append(request)
        if request.method == "GET":
            challenge = request.url.params.get("hub.challenge", "")
            body = {"challenge": challenge, "wrong": challenge[::-1] + "x", "empty": ""}[cb.echo]
            return httpx.Response(200, text=body)
        return httpx.Response(cb.status)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport)


@pytest.fixture
def subscribers() -> FakeSubscribers:
    return FakeSubscribers()


@contextmanager
def hub_client(subscribers: FakeSubscribers):
    app = create_app(client_factory=subscribers.client)
    with TestClient(app) as client:
        yield client, app.state.hub


def subscribe_form(callback: str, mode: str = "subscribe", topic: str = "news", **extra) -> dict:
    form = {"hub.callback": callback, "hub.mode": mode, "hub.topic": topic}
    form.update({f"hub.{key}": value for key, value in extra.items()})
    return form
