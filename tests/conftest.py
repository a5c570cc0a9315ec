"""
通用测试 Fixture 定义

提供测试所需的签名网关替身、客户端、处理器记录器等 Fixture
"""

import threading

import pytest

from signedhttp.client import ClientProvider, TransportClient
from signedhttp.handlers import ResponseHandlers
from signedhttp.models import OAuthCredentials
from signedhttp.signing import SigningGateway


class FakeSigningGateway(SigningGateway):
    """记录调用参数并返回固定签名的网关"""

    def __init__(self):
        self.calls = []

    def sign(self, credentials, verb, uri, query=None):
        self.calls.append({"credentials": credentials, "verb": verb, "uri": uri, "query": dict(query or {})})
        return {"oauth_consumer_key": credentials.consumer_key, "oauth_signature": "fixed-signature"}

    def render_auth_header(self, signed_params):
        return "OAuth " + ", ".join(f'{key}="{value}"' for key, value in signed_params.items())


class RecordingHandlers:
    """记录每个处理器被调用的情况，线程安全"""

    def __init__(self):
        self.calls = []
        self.lock = threading.Lock()
        self.fired = threading.Event()

    def _record(self, name):
        def handler(value):
            with self.lock:
                self.calls.append((name, value))
            self.fired.set()
            return f"{name}-result"

        return handler

    def as_handlers(self, include_exception=True) -> ResponseHandlers:
        return ResponseHandlers(
            on_success=self._record("on_success"),
            on_failure=self._record("on_failure"),
            on_exception=self._record("on_exception") if include_exception else None,
        )

    @property
    def names(self):
        with self.lock:
            return [name for name, _ in self.calls]


@pytest.fixture
def credentials():
    """测试用 OAuth 凭据"""
    return OAuthCredentials("consumer-key", "consumer-secret", token="token", token_secret="token-secret")


@pytest.fixture
def fake_gateway():
    """固定签名的签名网关"""
    return FakeSigningGateway()


@pytest.fixture
def recorder():
    """处理器调用记录器"""
    return RecordingHandlers()


@pytest.fixture
def transport_client():
    """测试结束后自动关闭的传输客户端"""
    client = TransportClient(max_workers=4)
    yield client
    client.close()


@pytest.fixture
def provider():
    """测试结束后自动关闭的客户端提供者"""
    client_provider = ClientProvider(max_workers=4)
    yield client_provider
    client_provider.close()
