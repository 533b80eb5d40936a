"""Shared test fixtures for meta_ads_cli."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable
from urllib.parse import parse_qs

import httpx
import pytest
import requests

from meta_ads_cli.core.api import MetaClient
from meta_ads_cli.core.auth import META_ME_URL, META_TOKEN_URL
from meta_ads_cli.core.config import ConfigStore, Runtime

TOKEN = "EAAtesttoken123456"
SECRET = "app-secret"


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep config files and the debug log out of the real home directory."""
    base = tmp_path / "xdg"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(base))
    monkeypatch.delenv("META_TOKEN", raising=False)
    monkeypatch.delenv("META_ADS_ACCOUNT", raising=False)
    return base


class Recorder:
    """Collects the requests seen by a MockTransport handler."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def params(self, index: int = -1) -> dict[str, str]:
        return dict(self.requests[index].url.params)

    def form(self, index: int = -1) -> dict[str, str]:
        body = self.requests[index].content.decode()
        return {k: v[0] for k, v in parse_qs(body).items()}


@pytest.fixture
def make_client() -> Callable[..., tuple[MetaClient, Recorder]]:
    """Build a MetaClient whose HTTP traffic goes to ``handler``."""

    def factory(handler, app_secret: str | None = None, warnings: list[str] | None = None, **kwargs: Any):
        recorder = Recorder(handler)
        client = MetaClient(
            TOKEN,
            app_secret,
            transport=httpx.MockTransport(recorder),
            warn=warnings.append if warnings is not None else (lambda message: None),
            **kwargs,
        )
        return client, recorder

    return factory


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, payload: Any, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code
        self.text = json.dumps(payload)

    def json(self) -> Any:
        return self._payload


class FakeSession:
    """Stand-in for the requests module used by the token endpoints."""

    def __init__(self, respond: Callable[[str, dict[str, Any]], FakeResponse]) -> None:
        self.respond = respond
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def get(self, url: str, params: dict[str, Any] | None = None, timeout: float | None = None) -> FakeResponse:
        params = dict(params or {})
        self.calls.append((url, params))
        return self.respond(url, params)


def meta_provider(url: str, params: dict[str, Any]) -> FakeResponse:
    """Happy-path token and identity endpoints."""
    if url == META_TOKEN_URL and params.get("grant_type") == "fb_exchange_token":
        return FakeResponse({"access_token": "long-lived-token", "token_type": "bearer", "expires_in": 5184000})
    if url == META_TOKEN_URL:
        return FakeResponse({"access_token": "short-lived-token", "token_type": "bearer", "expires_in": 3600})
    if url == META_ME_URL:
        return FakeResponse({"id": "42", "name": "Test User"})
    return FakeResponse({"error": {"code": 803, "message": f"unknown path {url}"}}, status_code=404)


@pytest.fixture
def provider() -> FakeSession:
    return FakeSession(meta_provider)


def local_get(url: str) -> requests.Response:
    """GET a loopback URL, ignoring any proxy configured in the environment."""
    with requests.Session() as session:
        session.trust_env = False
        return session.get(url, timeout=5)


@pytest.fixture
def stores(tmp_path: Path) -> tuple[ConfigStore, ConfigStore]:
    return ConfigStore(tmp_path / "meta-ads" / "config.json"), ConfigStore(tmp_path / "meta-auth" / "config.json")


@pytest.fixture
def make_runtime(stores: tuple[ConfigStore, ConfigStore]) -> Callable[..., tuple[Runtime, Recorder]]:
    """Runtime with temporary config stores and a mocked Graph API."""

    def factory(handler, env: dict[str, str] | None = None, warnings: list[str] | None = None):
        own, shared = stores
        recorder = Recorder(handler)
        sink = warnings.append if warnings is not None else (lambda message: None)

        def client_factory(token: str, app_secret: str = "") -> MetaClient:
            return MetaClient(token, app_secret, transport=httpx.MockTransport(recorder), warn=sink)

        runtime = Runtime(
            env=env if env is not None else {},
            store=own,
            shared_store=shared,
            client_factory=client_factory,
            warn=sink,
        )
        return runtime, recorder

    return factory
