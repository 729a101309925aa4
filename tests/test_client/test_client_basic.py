"""
HttpClient 基础功能测试

测试 HttpClient 的基础功能:
- 初始化与组件解析（配置、传输层、中间件）
- 构造快捷方式
- 不可变的中间件管道与 with_middleware
- 请求构建（URL 解析、请求头优先级、请求体互斥）
- 请求 ID 生成
- 上下文管理器
"""

import re

import pytest

from conftest import BASE_URL, RecordingMiddleware, StubTransport
from httpchain import client_with_base_url, new_client
from httpchain.client import HttpClient
from httpchain.config import ClientConfig
from httpchain.exceptions import ConfigError, HeaderError
from httpchain.middleware import AuthMiddleware, LoggingMiddleware
from httpchain.models import HttpMethod
from httpchain.transport import RequestsTransport


class TestHttpClientInitialization:
    """测试 HttpClient 初始化"""

    @pytest.mark.unit
    def test_default_initialization(self):
        # Arrange & Act
        client = HttpClient()

        # Assert
        assert client.config.base_url is None
        assert isinstance(client.transport, RequestsTransport)
        assert client.middleware_count == 0
        assert client.middlewares == ()
        assert client.max_workers == 10

    @pytest.mark.unit
    def test_transport_receives_config(self, base_config):
        client = HttpClient(base_config)

        assert client.transport.config is base_config

    @pytest.mark.unit
    def test_transport_instance_used_as_is(self, stub_transport):
        client = HttpClient(transport=stub_transport)

        assert client.transport is stub_transport

    @pytest.mark.unit
    def test_transport_class_is_instantiated(self, base_config):
        client = HttpClient(base_config, transport=RequestsTransport)

        assert isinstance(client.transport, RequestsTransport)
        assert client.transport.config is base_config

    @pytest.mark.unit
    def test_transport_class_attribute(self, base_config):
        """子类可以通过类属性替换默认传输层"""

        class ConfiguredTransport(StubTransport):
            def __init__(self, config=None):
                super().__init__()
                self.config = config

        class StubClient(HttpClient):
            transport_class = ConfiguredTransport

        client = StubClient(base_config)

        assert isinstance(client.transport, ConfiguredTransport)
        assert client.transport.config is base_config

    @pytest.mark.unit
    def test_invalid_transport(self):
        with pytest.raises(ConfigError):
            HttpClient(transport="requests")

    @pytest.mark.unit
    def test_invalid_config(self):
        with pytest.raises(ConfigError):
            HttpClient(config={"base_url": BASE_URL})

    @pytest.mark.unit
    def test_invalid_middleware(self):
        with pytest.raises(ConfigError):
            HttpClient(middlewares=[lambda request: None])

    @pytest.mark.unit
    def test_custom_max_workers(self):
        assert HttpClient(max_workers=3).max_workers == 3


class TestHttpClientConstructors:
    """测试构造快捷方式"""

    @pytest.mark.unit
    def test_with_base_url(self):
        client = HttpClient.with_base_url(BASE_URL)

        assert client.config.base_url == BASE_URL
        assert client.config.timeout == 30.0

    @pytest.mark.unit
    def test_with_base_url_validates(self):
        with pytest.raises(ConfigError):
            HttpClient.with_base_url("not a url")

    @pytest.mark.unit
    def test_module_level_constructors(self):
        assert new_client().config.base_url is None
        assert client_with_base_url(BASE_URL).config.base_url == BASE_URL


class TestHttpClientMiddlewares:
    """测试中间件注册"""

    @pytest.mark.unit
    def test_middlewares_are_frozen(self):
        auth = AuthMiddleware.bearer("tok")

        client = HttpClient(middlewares=[auth])

        assert client.middlewares == (auth,)
        assert client.middleware_count == 1

    @pytest.mark.unit
    def test_with_middleware_returns_new_client(self, base_config, stub_transport):
        # Arrange
        logging_middleware = LoggingMiddleware()
        auth = AuthMiddleware.bearer("tok")
        client = HttpClient(base_config, middlewares=[logging_middleware], transport=stub_transport)

        # Act
        extended = client.with_middleware(auth)

        # Assert
        assert extended is not client
        assert extended.middlewares == (logging_middleware, auth)
        assert client.middlewares == (logging_middleware,)
        assert extended.config is client.config
        assert extended.transport is stub_transport

    @pytest.mark.unit
    def test_with_middleware_keeps_order(self, call_log, stub_transport):
        client = (
            HttpClient(transport=stub_transport)
            .with_middleware(RecordingMiddleware("A", call_log))
            .with_middleware(RecordingMiddleware("B", call_log))
        )

        client.get(f"{BASE_URL}/ping")

        assert call_log == ["A.request", "B.request", "A.response", "B.response"]


class TestHttpClientBuildRequest:
    """测试请求构建"""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/users", f"{BASE_URL}/users"),
            ("users", f"{BASE_URL}/users"),
            ("https://other.com/y", "https://other.com/y"),
        ],
    )
    def test_resolve_url(self, base_config, path, expected):
        assert HttpClient(base_config).resolve_url(path) == expected

    @pytest.mark.unit
    def test_default_headers_then_request_headers(self):
        config = ClientConfig.builder().with_base_url(BASE_URL).with_json_headers().build()
        client = HttpClient(config)

        request = client.build_request("GET", "/users", headers={"accept": "text/csv", "X-Trace": "1"})

        assert request.method is HttpMethod.GET
        assert request.headers["Accept"] == "text/csv"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["X-Trace"] == "1"

    @pytest.mark.unit
    def test_query_params_appended(self, base_config):
        request = HttpClient(base_config).build_request("GET", "/users?page=1", params={"size": 10, "q": None})

        assert request.url == f"{BASE_URL}/users?page=1&size=10"

    @pytest.mark.unit
    def test_invalid_request_header(self, base_config):
        with pytest.raises(HeaderError):
            HttpClient(base_config).build_request("GET", "/users", headers={"X-Bad": "a\r\nb"})

    @pytest.mark.unit
    def test_only_one_body_kind(self, base_config):
        with pytest.raises(ConfigError):
            HttpClient(base_config).build_request("POST", "/users", b"raw", json={"a": 1})

    @pytest.mark.unit
    def test_unsupported_method(self, base_config):
        with pytest.raises(ConfigError):
            HttpClient(base_config).build_request("CONNECT", "/users")

    @pytest.mark.unit
    def test_default_headers_are_not_shared_between_requests(self):
        config = ClientConfig.builder().with_default_header("X-Client", "httpchain").build()
        client = HttpClient(config)

        first = client.build_request("GET", "https://a.com")
        first.headers["X-Client"] = "changed"
        second = client.build_request("GET", "https://a.com")

        assert second.headers["X-Client"] == "httpchain"
        assert config.default_headers["X-Client"] == "httpchain"


class TestHttpClientLifecycle:
    """测试请求 ID 和生命周期"""

    @pytest.mark.unit
    def test_generate_request_id(self):
        client = HttpClient()

        request_id = client.generate_request_id()

        assert re.fullmatch(r"REQ-\d{13}-[0-9a-f]{8}", request_id)
        assert request_id != client.generate_request_id()

    @pytest.mark.unit
    def test_context_manager_closes_transport(self, stub_transport):
        with HttpClient(transport=stub_transport) as client:
            assert isinstance(client, HttpClient)

        assert stub_transport.closed is True

    @pytest.mark.unit
    def test_repr(self, base_config):
        client = HttpClient(base_config, middlewares=[LoggingMiddleware()])

        assert repr(client) == f"<HttpClient base_url='{BASE_URL}' middlewares=1>"
