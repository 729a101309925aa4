"""
请求/响应描述对象模块

RequestDescriptor 与 ResponseDescriptor 是一次执行过程中请求和响应在内存中的表示，
只属于当前这一次 execute 调用，不在多次调用之间共享。
"""

from __future__ import annotations

import enum
import json
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any

from requests.structures import CaseInsensitiveDict

from httpchain.constants import (
    DEFAULT_CHUNK_SIZE,
    HTTP_METHOD_DELETE,
    HTTP_METHOD_GET,
    HTTP_METHOD_HEAD,
    HTTP_METHOD_PATCH,
    HTTP_METHOD_POST,
    HTTP_METHOD_PUT,
)
from httpchain.exceptions import ConfigError
from httpchain.utils import validate_header


class HttpMethod(str, enum.Enum):
    """支持的 HTTP 方法"""

    GET = HTTP_METHOD_GET
    POST = HTTP_METHOD_POST
    PUT = HTTP_METHOD_PUT
    PATCH = HTTP_METHOD_PATCH
    DELETE = HTTP_METHOD_DELETE
    HEAD = HTTP_METHOD_HEAD

    @classmethod
    def coerce(cls, method: HttpMethod | str) -> HttpMethod:
        """
        将字符串或枚举值规范化为 HttpMethod

        异常:
            ConfigError: 方法不受支持时抛出
        """
        if isinstance(method, cls):
            return method
        try:
            return cls(str(method).upper())
        except ValueError:
            raise ConfigError(f"Unsupported HTTP method: {method!r}") from None

    def __str__(self) -> str:
        return self.value


# 表示 "未设置 JSON 负载"，与显式传入的 None（序列化为 null）区分开
UNSET: Any = object()


class RequestDescriptor:
    """
    出站请求描述对象

    属性:
        method: HTTP 方法
        url: 解析后的绝对 URL
        headers: 请求头集合，键不区分大小写，后写覆盖先写
        body: 原始请求体（bytes/str），或 None
        json: 待序列化的结构化负载，未设置时为 UNSET
        form: 待编码的表单负载，或 None；与 files 同时出现时作为 multipart 的普通字段
        files: multipart 文件字段，格式与 requests 的 files 参数一致，或 None
        stream: 是否以流式方式读取响应体

    说明:
        结构化负载（json/form）在 pre-send 阶段保持未序列化状态，
        中间件可以直接检查和修改；客户端在调用传输层前统一完成序列化。
    """

    def __init__(
        self,
        method: HttpMethod | str,
        url: str,
        headers: Mapping[str, str] | None = None,
        body: bytes | str | None = None,
        json: Any = UNSET,
        form: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None,
        stream: bool = False,
        files: Mapping[str, Any] | None = None,
    ):
        self._method = HttpMethod.coerce(method)
        self._url = url
        self.headers: CaseInsensitiveDict = CaseInsensitiveDict(headers or {})
        self.body = body
        self.json = json
        self.form = form
        self.stream = stream
        self.files = files

    @property
    def method(self) -> HttpMethod:
        return self._method

    @property
    def url(self) -> str:
        return self._url

    @property
    def has_json(self) -> bool:
        return self.json is not UNSET

    def set_header(self, name: str, value: str) -> None:
        """校验后写入请求头，已存在的同名头（不区分大小写）被覆盖"""
        name, value = validate_header(name, value)
        self.headers[name] = value

    def __repr__(self) -> str:
        return f"<RequestDescriptor {self.method.value} {self.url}>"


class ResponseDescriptor:
    """
    入站响应描述对象

    状态码和响应体在收到后即固定，中间件只能修改 headers。
    响应体可以延迟读取：既可以一次性读取为 bytes，也可以按块流式读取。

    参数:
        status_code: HTTP 状态码
        headers: 响应头
        url: 最终响应的 URL（跟随重定向之后）
        body: 已经读取的响应体 bytes
        chunks: 尚未读取的响应体分块迭代器（流式场景）
        reason: 状态描述
        encoding: 响应声明的字符集
        closer: 释放底层连接的回调

    使用示例:
        >>> response = ResponseDescriptor(200, body=b'{"id": 1}')
        >>> response.json()
        {"id": 1}
    """

    def __init__(
        self,
        status_code: int,
        headers: Mapping[str, str] | None = None,
        url: str = "",
        body: bytes | None = None,
        chunks: Iterable[bytes] | None = None,
        reason: str = "",
        encoding: str | None = None,
        closer: Callable[[], None] | None = None,
    ):
        self._status_code = int(status_code)
        self.headers: CaseInsensitiveDict = CaseInsensitiveDict(headers or {})
        self.url = url
        self.reason = reason
        self.encoding = encoding
        self._body = body if body is not None or chunks is not None else b""
        self._chunks = chunks
        self._consumed = False
        self._closer = closer

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def is_success(self) -> bool:
        return 200 <= self._status_code < 300

    @property
    def content(self) -> bytes:
        """完整响应体，首次访问时读取剩余的全部分块"""
        if self._body is None:
            if self._consumed:
                raise RuntimeError("The response body was already consumed as a stream")
            self._body = b"".join(self._chunks or ())
            self._consumed = True
        return self._body

    def iter_content(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """
        按块迭代响应体

        响应体尚未读取时直接透传底层分块，不会整体载入内存；
        已经读取过时按 chunk_size 切分已缓存的 bytes。
        """
        if self._body is not None:
            for start in range(0, len(self._body), chunk_size):
                yield self._body[start : start + chunk_size]
            return

        if self._consumed:
            raise RuntimeError("The response body was already consumed as a stream")
        self._consumed = True
        for chunk in self._chunks or ():
            if chunk:
                yield chunk

    def text(self, errors: str = "strict") -> str:
        """
        以声明的字符集（默认 UTF-8）解码响应体

        参数:
            errors: 解码错误处理方式，默认严格解码，"replace" 时非法字节替换为 U+FFFD
        """
        return self.content.decode(self.encoding or "utf-8", errors)

    def json(self) -> Any:
        return json.loads(self.content)

    def close(self) -> None:
        if self._closer is not None:
            self._closer()
            self._closer = None

    def __repr__(self) -> str:
        return f"<ResponseDescriptor [{self.status_code}] {self.url}>"
