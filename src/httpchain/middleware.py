"""
中间件模块

中间件是横切逻辑（认证、请求头注入、日志）的基本单元，实现两个钩子:
    - on_request: 请求发送前检查/修改 RequestDescriptor
    - on_response: 响应返回后检查/修改 ResponseDescriptor 的 headers

钩子无法安全处理输入时抛出 MiddlewareError，由管道补充中间件名称后向上传递。

使用示例:
    >>> client = HttpClient(
    ...     config,
    ...     middlewares=[
    ...         LoggingMiddleware(),
    ...         AuthMiddleware.bearer("token"),
    ...         HeaderMiddleware().with_header("X-Client-Version", "1.0.0"),
    ...     ],
    ... )

并发说明:
    同一个中间件实例会被多个并发执行同时调用，持有可变状态的中间件需要自行加锁。
"""

from __future__ import annotations

import enum
import logging
from abc import ABC, abstractmethod
from typing import Mapping

from httpchain.constants import RETRY_DELAY_MS
from httpchain.exceptions import ConfigError, HeaderError, MiddlewareError
from httpchain.models import RequestDescriptor, ResponseDescriptor
from httpchain.utils import sanitize_headers, sanitize_url

logger = logging.getLogger(__name__)


class BaseMiddleware(ABC):
    """
    中间件基类

    子类至少实现 on_request；on_response 默认不做任何处理。
    name 用于诊断信息，默认取类名。
    """

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    def on_request(self, request: RequestDescriptor) -> None:
        """
        请求发送前调用

        参数:
            request: 当前请求描述对象，可以原地修改 headers 和 body

        异常:
            MiddlewareError: 无法安全处理请求时抛出
        """

    def on_response(self, response: ResponseDescriptor) -> None:
        """
        响应返回后调用

        参数:
            response: 当前响应描述对象，只能修改 headers

        异常:
            MiddlewareError: 拒绝该响应时抛出
        """

    def __repr__(self) -> str:
        return f"<{self.name}>"


class AuthType(enum.Enum):
    """认证方式"""

    BEARER = "Bearer"
    BASIC = "Basic"
    API_KEY = "ApiKey"


class AuthMiddleware(BaseMiddleware):
    """
    认证中间件

    - Bearer: 设置 Authorization: Bearer <token>
    - Basic: 设置 Authorization: Basic <token>（token 需由调用方完成 base64 编码）
    - ApiKey: 把原始 token 写入指定名称的请求头

    参数:
        token: 认证令牌
        auth_type: 认证方式
        header_name: ApiKey 方式使用的请求头名称
    """

    def __init__(self, token: str, auth_type: AuthType = AuthType.BEARER, header_name: str | None = None):
        if auth_type is AuthType.API_KEY and not header_name:
            raise ConfigError("header_name is required for API key authentication")
        self.token = token
        self.auth_type = auth_type
        self.header_name = header_name

    @classmethod
    def bearer(cls, token: str) -> AuthMiddleware:
        return cls(token, AuthType.BEARER)

    @classmethod
    def basic(cls, token: str) -> AuthMiddleware:
        return cls(token, AuthType.BASIC)

    @classmethod
    def api_key(cls, header_name: str, token: str) -> AuthMiddleware:
        return cls(token, AuthType.API_KEY, header_name=header_name)

    def on_request(self, request: RequestDescriptor) -> None:
        if self.auth_type is AuthType.API_KEY:
            name, value = self.header_name, self.token
        else:
            name, value = "Authorization", f"{self.auth_type.value} {self.token}"

        try:
            request.set_header(name, value)
        except HeaderError as e:
            raise MiddlewareError(f"Invalid {self.auth_type.value} credentials: {e.reason}") from e


class HeaderMiddleware(BaseMiddleware):
    """
    请求头注入中间件

    持有固定的 name -> value 映射，每次请求时写入（覆盖同名请求头）。
    名称和取值在写入请求时校验，非法时抛出 MiddlewareError。
    """

    def __init__(self, headers: Mapping[str, str] | None = None):
        self.headers: dict[str, str] = dict(headers or {})

    def with_header(self, name: str, value: str) -> HeaderMiddleware:
        self.headers[name] = value
        return self

    def on_request(self, request: RequestDescriptor) -> None:
        for name, value in self.headers.items():
            try:
                request.set_header(name, value)
            except HeaderError as e:
                raise MiddlewareError(e.reason) from e


class LoggingMiddleware(BaseMiddleware):
    """
    日志中间件

    每个阶段输出一行日志：请求阶段记录 方法 + URL，响应阶段记录 状态码 + URL。
    DEBUG 级别额外输出脱敏后的请求头/响应头。从不修改描述对象，也从不失败。

    参数:
        log_requests: 是否记录请求
        log_responses: 是否记录响应
        log: 自定义 logger，默认使用本模块 logger
    """

    def __init__(self, log_requests: bool = True, log_responses: bool = True, log: logging.Logger | None = None):
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.log = log or logger

    @classmethod
    def requests_only(cls, log: logging.Logger | None = None) -> LoggingMiddleware:
        return cls(log_requests=True, log_responses=False, log=log)

    @classmethod
    def responses_only(cls, log: logging.Logger | None = None) -> LoggingMiddleware:
        return cls(log_requests=False, log_responses=True, log=log)

    def on_request(self, request: RequestDescriptor) -> None:
        if not self.log_requests:
            return
        safe_url = sanitize_url(request.url)
        self.log.info(
            "HTTP Request: %s %s",
            request.method.value,
            safe_url,
            extra={"http_phase": "request", "http_method": request.method.value, "http_url": safe_url},
        )
        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug(f"Request headers: {sanitize_headers(request.headers)}")

    def on_response(self, response: ResponseDescriptor) -> None:
        if not self.log_responses:
            return
        safe_url = sanitize_url(response.url)
        self.log.info(
            "HTTP Response: %s %s",
            response.status_code,
            safe_url,
            extra={"http_phase": "response", "http_status": response.status_code, "http_url": safe_url},
        )
        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug(f"Response headers: {sanitize_headers(response.headers)}")


class RetryMiddleware(BaseMiddleware):
    """
    重试配置占位中间件

    只保存重试配置（最大次数、间隔毫秒），两个钩子都不做任何处理。
    执行引擎不实现自动重试，注册该中间件不会改变请求行为。
    """

    def __init__(self, max_retries: int, retry_delay_ms: int = RETRY_DELAY_MS):
        self.max_retries = max_retries
        self.retry_delay_ms = retry_delay_ms

    def with_delay(self, delay_ms: int) -> RetryMiddleware:
        self.retry_delay_ms = delay_ms
        return self

    def on_request(self, request: RequestDescriptor) -> None:
        return None
