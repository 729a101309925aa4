"""
HTTP 客户端异常模块

定义所有客户端相关的异常类，提供统一的错误处理机制。

异常层级:
    HttpClientError
    ├── TransportError
    │   └── TransportTimeoutError
    ├── SerializationError
    ├── ResponseError
    ├── HeaderError
    ├── MiddlewareError
    └── ConfigError
"""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from httpchain.models import ResponseDescriptor


class HttpClientError(Exception):
    """
    HTTP 客户端异常基类

    所有自定义异常的基类，用于统一捕获和处理客户端相关错误
    """


class TransportError(HttpClientError):
    """
    传输层异常

    当网络连接失败、DNS 解析失败、TLS 握手失败等传输层面问题时抛出此异常

    参数:
        message: 错误描述信息
        cause: 底层传输引擎抛出的原始异常（可选）

    属性:
        cause: 保存原始异常，便于排查
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(f"Request error: {message}")
        self.cause = cause


class TransportTimeoutError(TransportError):
    """
    请求超时异常

    当连接或读取超过配置的超时时间时抛出此异常
    """


class SerializationError(HttpClientError):
    """
    序列化异常

    请求体无法编码，或响应体无法解析为目标结构时抛出此异常

    参数:
        message: 错误描述信息
        errors: 验证错误详情（可选），格式为 {field_name: [error_messages]}
    """

    def __init__(self, message: str, errors: dict | list | None = None):
        super().__init__(f"Serialization error: {message}")
        self.errors = errors or {}


class ResponseError(HttpClientError):
    """
    HTTP 错误响应异常

    当服务器返回非 2xx 状态码时，由类型化便捷方法抛出

    参数:
        status: HTTP 状态码
        body: 尽力读取的响应体文本
        response: 原始的 ResponseDescriptor 对象（可选）

    属性:
        status / status_code: HTTP 状态码
        body: 响应体文本
        response: 原始响应描述对象
    """

    def __init__(self, status: int, body: str, response: ResponseDescriptor | None = None):
        super().__init__(f"HTTP error {_status_label(status)}: {body}")
        self.status = status
        self.body = body
        self.response = response

    @property
    def status_code(self) -> int:
        return self.status


class HeaderError(HttpClientError):
    """
    请求头异常

    请求头名称或取值不是合法的线路格式（含控制字符等）时抛出
    """

    def __init__(self, message: str):
        super().__init__(f"Header error: {message}")
        self.reason = message


class MiddlewareError(HttpClientError):
    """
    中间件异常

    中间件拒绝处理请求或响应时抛出。管道会补充出错中间件的名称和阶段。

    参数:
        reason: 拒绝原因
        interceptor_name: 出错的中间件名称（由管道填充）
        phase: 出错阶段，"request" 或 "response"（由管道填充）
        response: 响应阶段出错时，已经收到的响应

    属性:
        received_response: 是否已经收到响应，用于区分
            "响应有效但后处理拒绝" 与 "请求从未得到应答"

    说明:
        响应阶段失败时 response 仍处于打开状态（流式响应尚未读取），
        由捕获异常的调用方负责调用 response.close() 释放连接
    """

    def __init__(
        self,
        reason: str,
        interceptor_name: str | None = None,
        phase: str | None = None,
        response: ResponseDescriptor | None = None,
    ):
        super().__init__(reason)
        self.reason = reason
        self.interceptor_name = interceptor_name
        self.phase = phase
        self.response = response

    @property
    def received_response(self) -> bool:
        return self.response is not None

    def __str__(self) -> str:
        if self.interceptor_name:
            return f"Middleware error: [{self.interceptor_name}] {self.reason}"
        return f"Middleware error: {self.reason}"


class ConfigError(HttpClientError):
    """
    配置异常

    客户端配置无效（如超时为负数、base_url 无法解析）时抛出
    """

    def __init__(self, message: str):
        super().__init__(f"Configuration error: {message}")
        self.reason = message


def _status_label(status: int) -> str:
    """返回 "404 Not Found" 形式的状态描述，未知状态码只保留数字"""
    try:
        return f"{status} {HTTPStatus(status).phrase}"
    except ValueError:
        return str(status)
