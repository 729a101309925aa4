"""
通用测试 Fixture 定义

提供测试所需的桩传输层、记录型中间件、Fixture 和 Django 配置
"""

import threading

import django
import pytest
from django.conf import settings

# 配置 Django 设置（DRF Serializer 依赖）
if not settings.configured:
    settings.configure(
        DEBUG=True,
        SECRET_KEY="test-secret-key",
        USE_I18N=True,
        USE_TZ=True,
    )
    django.setup()

from httpchain.client import HttpClient
from httpchain.config import ClientConfig
from httpchain.exceptions import MiddlewareError
from httpchain.middleware import BaseMiddleware
from httpchain.models import ResponseDescriptor
from httpchain.transport import BaseTransport

BASE_URL = "https://api.example.com"


class StubTransport(BaseTransport):
    """
    桩传输层

    记录每次 send 调用，返回预设响应；handler 可以根据请求动态生成响应
    """

    def __init__(self, status_code=200, body=b"", headers=None, handler=None):
        self.status_code = status_code
        self.body = body
        self.headers = headers or {}
        self.handler = handler
        self.calls = []
        self.closed = False
        self._lock = threading.Lock()

    def send(self, request, timeout, connect_timeout):
        with self._lock:
            self.calls.append({"request": request, "timeout": timeout, "connect_timeout": connect_timeout})
        if self.handler is not None:
            return self.handler(request)
        return ResponseDescriptor(self.status_code, headers=self.headers, url=request.url, body=self.body)

    @property
    def call_count(self):
        return len(self.calls)

    @property
    def last_request(self):
        return self.calls[-1]["request"]

    def close(self):
        self.closed = True


class RecordingMiddleware(BaseMiddleware):
    """把每次钩子调用追加到共享日志中，可配置在指定阶段失败"""

    def __init__(self, label, log, fail_on=None):
        self.label = label
        self.log = log
        self.fail_on = fail_on

    @property
    def name(self):
        return self.label

    def on_request(self, request):
        self.log.append(f"{self.label}.request")
        if self.fail_on == "request":
            raise MiddlewareError(f"{self.label} rejected request")

    def on_response(self, response):
        self.log.append(f"{self.label}.response")
        if self.fail_on == "response":
            raise MiddlewareError(f"{self.label} rejected response")


def echo_handler(request):
    """把请求体原样作为响应体返回"""
    return ResponseDescriptor(
        200,
        headers={"Content-Type": request.headers.get("Content-Type", "")},
        url=request.url,
        body=request.body or b"",
    )


@pytest.fixture
def base_config():
    """带 base_url 的默认配置"""
    return ClientConfig.builder().with_base_url(BASE_URL).build()


@pytest.fixture
def stub_transport():
    """返回空 200 响应的桩传输层"""
    return StubTransport()


@pytest.fixture
def echo_transport():
    """回显请求体的桩传输层"""
    return StubTransport(handler=echo_handler)


@pytest.fixture
def call_log():
    """中间件共享调用日志"""
    return []


@pytest.fixture
def client(base_config):
    """基于真实 RequestsTransport 的客户端（配合 responses 使用）"""
    http_client = HttpClient(base_config)
    yield http_client
    http_client.close()
