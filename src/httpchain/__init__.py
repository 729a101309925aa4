"""
httpchain HTTP 客户端模块

提供可配置、基于中间件管道的 HTTP 客户端

主要组件:
    - HttpClient: 客户端执行引擎
    - ClientConfig / ClientConfigBuilder: 不可变配置及其链式构建器
    - 中间件: AuthMiddleware, HeaderMiddleware, LoggingMiddleware, RetryMiddleware
    - 传输层: BaseTransport, RequestsTransport
    - 异常类: HttpClientError 及其子类
    - 执行器: ThreadPoolBatchExecutor

使用示例:
    >>> from httpchain import AuthMiddleware, ClientConfig, HttpClient
    >>>
    >>> config = ClientConfig.builder().with_base_url("https://api.example.com").build()
    >>> client = HttpClient(config, middlewares=[AuthMiddleware.bearer("token")])
    >>> users = client.get_json("/users", params={"page": 1})
"""

# 核心客户端
from httpchain.client import HttpClient, client_with_base_url, new_client

# 配置
from httpchain.config import ClientConfig, ClientConfigBuilder

# 异常类
from httpchain.exceptions import (
    ConfigError,
    HeaderError,
    HttpClientError,
    MiddlewareError,
    ResponseError,
    SerializationError,
    TransportError,
    TransportTimeoutError,
)

# 请求/响应描述对象
from httpchain.models import HttpMethod, RequestDescriptor, ResponseDescriptor

# 中间件
from httpchain.middleware import (
    AuthMiddleware,
    AuthType,
    BaseMiddleware,
    HeaderMiddleware,
    LoggingMiddleware,
    RetryMiddleware,
)
from httpchain.pipeline import MiddlewarePipeline

# 传输层
from httpchain.transport import BaseTransport, RequestsTransport

# 批量执行器
from httpchain.executor import (
    BaseBatchExecutor,
    RequestSpec,
    SequentialBatchExecutor,
    ThreadPoolBatchExecutor,
)

# 工具函数
from httpchain.utils import (
    resolve_url,
    sanitize_dict,
    sanitize_headers,
    sanitize_url,
)

# 常量配置
from httpchain.constants import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_MAX_REDIRECTS,
    DEFAULT_MAX_WORKERS,
    DEFAULT_TIMEOUT,
    HTTP_METHOD_DELETE,
    HTTP_METHOD_GET,
    HTTP_METHOD_HEAD,
    HTTP_METHOD_PATCH,
    HTTP_METHOD_POST,
    HTTP_METHOD_PUT,
)

__all__ = [
    # 核心类
    "HttpClient",
    "new_client",
    "client_with_base_url",
    "ClientConfig",
    "ClientConfigBuilder",
    "HttpMethod",
    "RequestDescriptor",
    "ResponseDescriptor",
    # 异常
    "HttpClientError",
    "TransportError",
    "TransportTimeoutError",
    "SerializationError",
    "ResponseError",
    "HeaderError",
    "MiddlewareError",
    "ConfigError",
    # 中间件
    "BaseMiddleware",
    "AuthType",
    "AuthMiddleware",
    "HeaderMiddleware",
    "LoggingMiddleware",
    "RetryMiddleware",
    "MiddlewarePipeline",
    # 传输层
    "BaseTransport",
    "RequestsTransport",
    # 执行器
    "BaseBatchExecutor",
    "RequestSpec",
    "SequentialBatchExecutor",
    "ThreadPoolBatchExecutor",
    # 工具函数
    "resolve_url",
    "sanitize_headers",
    "sanitize_url",
    "sanitize_dict",
    # 常量
    "DEFAULT_TIMEOUT",
    "DEFAULT_CONNECT_TIMEOUT",
    "DEFAULT_MAX_REDIRECTS",
    "DEFAULT_MAX_WORKERS",
    "HTTP_METHOD_GET",
    "HTTP_METHOD_POST",
    "HTTP_METHOD_PUT",
    "HTTP_METHOD_DELETE",
    "HTTP_METHOD_PATCH",
    "HTTP_METHOD_HEAD",
]

__version__ = "0.1.0"
