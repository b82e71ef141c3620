"""
Shared fixtures and aiohttp fakes for the enricher tests.
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Union
from unittest.mock import Mock

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from shared.cache.token_cache import TokenCache
from shared.schemas.dto import FunctionSettings

TOKEN_URL = "https://oauth2.googleapis.com/token"
NOW = 1_700_000_000


class MockResponse:
    def __init__(
        self,
        status: int = 200,
        json_data: Any = None,
        reason: Optional[str] = None,
        delay: float = 0,
    ):
        self.status = status
        self._json = json_data
        self.reason = reason or {200: "OK", 404: "Not Found"}.get(
            status, "Internal Server Error"
        )
        self.delay = delay

    async def json(self, content_type=None):
        return self._json

    async def __aenter__(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass


Handler = Union[MockResponse, Exception, Callable[[Dict[str, Any]], MockResponse]]


class MockSession:
    """
    Routes requests to canned responses by method and URL fragment.

    The first route whose fragment is contained in the URL answers. A
    handler may be a MockResponse, an exception to raise, or a callable
    receiving the recorded request.
    """

    def __init__(self, routes: Optional[List[tuple]] = None):
        self.routes = list(routes or [])
        self.requests: List[Dict[str, Any]] = []
        self.closed = False

    def add(self, method: str, fragment: str, handler: Handler):
        self.routes.append((method, fragment, handler))

    def _dispatch(self, method: str, url: str, kwargs: Dict[str, Any]):
        request = {"method": method, "url": url, **kwargs}
        self.requests.append(request)
        for route_method, fragment, handler in self.routes:
            if route_method == method and fragment in url:
                if isinstance(handler, Exception):
                    raise handler
                if callable(handler):
                    return handler(request)
                return handler
        raise AssertionError(f"Unexpected {method} {url}")

    def get(self, url, **kwargs):
        return self._dispatch("GET", url, kwargs)

    def post(self, url, **kwargs):
        return self._dispatch("POST", url, kwargs)

    def calls_to(self, fragment: str) -> List[Dict[str, Any]]:
        return [request for request in self.requests if fragment in request["url"]]

    async def close(self):
        self.closed = True


class FakeClock:
    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture(scope="session")
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(private_key):
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def settings(private_key_pem):
    return FunctionSettings(
        client_email="enricher@your-gcp-project.iam.gserviceaccount.com",
        private_key=private_key_pem,
        private_key_id="key-1",
        segment_personas_space_id="spa_123",
        segment_personas_access_token="personas-token",
        http_api_key="write-key",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stub_signer():
    signer = Mock()
    signer.sign.return_value = "header.payload.signature"
    return signer


@pytest.fixture
def token_cache(stub_signer, clock):
    return TokenCache(signer=stub_signer, clock=clock)


@pytest.fixture
def token_response():
    return MockResponse(200, {"access_token": "ya29.token", "expires_in": 3600})
