"""客户端配置模块

ClientConfig 是构建完成后不可变的客户端级默认配置；
ClientConfigBuilder 是生成它的可变构建器，支持链式调用。

使用示例:
    >>> config = (
    ...     ClientConfig.builder()
    ...     .with_base_url("https://api.example.com")
    ...     .with_json_headers()
    ...     .with_timeout(15)
    ...     .build()
    ... )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from types import MappingProxyType
from typing import Mapping
from urllib.parse import urlparse

from requests.structures import CaseInsensitiveDict

from httpchain.constants import (
    CONTENT_TYPE_JSON,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_FOLLOW_REDIRECTS,
    DEFAULT_MAX_REDIRECTS,
    DEFAULT_TIMEOUT,
    POOL_CONNECTIONS,
    POOL_IDLE_TIMEOUT,
    POOL_MAXSIZE,
)
from httpchain.exceptions import ConfigError
from httpchain.utils import validate_header


def _default_headers() -> Mapping[str, str]:
    """返回空的只读默认请求头映射"""
    return MappingProxyType(CaseInsensitiveDict())


def _seconds(value: float | timedelta | None, name: str) -> float | None:
    """将秒数或 timedelta 统一转换为 float 秒"""
    if value is None:
        return None
    if isinstance(value, timedelta):
        value = value.total_seconds()
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be a number of seconds or a timedelta")
    return float(value)


@dataclass(frozen=True)
class ClientConfig:
    """
    客户端配置

    只在构造客户端时使用一次，用于参数化传输层，构建后不可修改。

    属性:
        base_url: 相对路径请求的基础 URL
        timeout: 整体超时（秒），None 表示不限制
        connect_timeout: 连接超时（秒），None 表示不限制
        default_headers: 默认请求头，只读且键不区分大小写
        follow_redirects: 是否跟随重定向
        max_redirects: 最大重定向跳数
        pool_connections: 连接池数量（按主机）
        pool_maxsize: 每个连接池的最大连接数
        pool_idle_timeout: 空闲连接保留时间提示（秒）
        verify: 是否校验 TLS 证书
    """

    base_url: str | None = None
    timeout: float | None = DEFAULT_TIMEOUT
    connect_timeout: float | None = DEFAULT_CONNECT_TIMEOUT
    default_headers: Mapping[str, str] = field(default_factory=_default_headers)
    follow_redirects: bool = DEFAULT_FOLLOW_REDIRECTS
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    pool_connections: int = POOL_CONNECTIONS
    pool_maxsize: int = POOL_MAXSIZE
    pool_idle_timeout: float | None = POOL_IDLE_TIMEOUT
    verify: bool = True

    def __post_init__(self) -> None:
        for name in ("timeout", "connect_timeout", "pool_idle_timeout"):
            seconds = _seconds(getattr(self, name), name)
            if seconds is not None and seconds <= 0:
                raise ConfigError(f"{name} must be > 0 when provided")
            object.__setattr__(self, name, seconds)

        if self.max_redirects < 0:
            raise ConfigError("max_redirects must be >= 0")
        if self.pool_connections <= 0 or self.pool_maxsize <= 0:
            raise ConfigError("pool_connections and pool_maxsize must be > 0")

        if self.base_url is not None:
            parsed = urlparse(self.base_url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ConfigError(f"Invalid base_url: {self.base_url!r}")

        headers = CaseInsensitiveDict()
        for name, value in self.default_headers.items():
            name, value = validate_header(name, value)
            headers[name] = value

        # 复制后冻结，构建完成的配置不受原字典后续修改的影响
        object.__setattr__(self, "default_headers", MappingProxyType(headers))

    @classmethod
    def builder(cls) -> ClientConfigBuilder:
        return ClientConfigBuilder()


class ClientConfigBuilder:
    """
    ClientConfig 的链式构建器

    每个 with_* 方法都返回构建器自身，便于链式调用；
    请求头在写入时立即校验，build() 时统一校验其余字段。
    构建过程不发生任何网络 I/O。
    """

    def __init__(self) -> None:
        self._base_url: str | None = None
        self._timeout: float | timedelta | None = DEFAULT_TIMEOUT
        self._connect_timeout: float | timedelta | None = DEFAULT_CONNECT_TIMEOUT
        self._default_headers: CaseInsensitiveDict = CaseInsensitiveDict()
        self._follow_redirects = DEFAULT_FOLLOW_REDIRECTS
        self._max_redirects = DEFAULT_MAX_REDIRECTS
        self._pool_connections = POOL_CONNECTIONS
        self._pool_maxsize = POOL_MAXSIZE
        self._pool_idle_timeout: float | timedelta | None = POOL_IDLE_TIMEOUT
        self._verify = True

    def with_base_url(self, base_url: str) -> ClientConfigBuilder:
        self._base_url = base_url
        return self

    def with_timeout(self, timeout: float | timedelta | None) -> ClientConfigBuilder:
        self._timeout = timeout
        return self

    def with_connect_timeout(self, timeout: float | timedelta | None) -> ClientConfigBuilder:
        self._connect_timeout = timeout
        return self

    def with_default_header(self, name: str, value: str) -> ClientConfigBuilder:
        """
        添加一个默认请求头

        异常:
            HeaderError: 名称或取值不是合法的线路格式时抛出
        """
        name, value = validate_header(name, value)
        self._default_headers[name] = value
        return self

    def with_default_headers(self, headers: Mapping[str, str]) -> ClientConfigBuilder:
        for name, value in headers.items():
            self.with_default_header(name, value)
        return self

    def with_json_headers(self) -> ClientConfigBuilder:
        """设置 Content-Type 和 Accept 为 application/json"""
        return self.with_default_header("Content-Type", CONTENT_TYPE_JSON).with_default_header(
            "Accept", CONTENT_TYPE_JSON
        )

    def with_redirects(self, follow: bool, max_redirects: int = DEFAULT_MAX_REDIRECTS) -> ClientConfigBuilder:
        self._follow_redirects = follow
        self._max_redirects = max_redirects
        return self

    def with_pool(
        self,
        connections: int = POOL_CONNECTIONS,
        maxsize: int = POOL_MAXSIZE,
        idle_timeout: float | timedelta | None = POOL_IDLE_TIMEOUT,
    ) -> ClientConfigBuilder:
        self._pool_connections = connections
        self._pool_maxsize = maxsize
        self._pool_idle_timeout = idle_timeout
        return self

    def with_verify(self, verify: bool) -> ClientConfigBuilder:
        self._verify = verify
        return self

    def build(self) -> ClientConfig:
        """
        生成不可变的 ClientConfig

        异常:
            ConfigError: 配置值无效时抛出
        """
        return ClientConfig(
            base_url=self._base_url,
            timeout=self._timeout,
            connect_timeout=self._connect_timeout,
            default_headers=self._default_headers,
            follow_redirects=self._follow_redirects,
            max_redirects=self._max_redirects,
            pool_connections=self._pool_connections,
            pool_maxsize=self._pool_maxsize,
            pool_idle_timeout=self._pool_idle_timeout,
            verify=self._verify,
        )
