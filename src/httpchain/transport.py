"""
传输层模块

传输层负责真正的网络 I/O（连接池、TLS、重定向、DNS），执行引擎只通过
BaseTransport.send 与它交互。默认实现基于 requests.Session。
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from httpchain.config import ClientConfig
from httpchain.constants import DEFAULT_CHUNK_SIZE
from httpchain.exceptions import TransportError, TransportTimeoutError
from httpchain.models import RequestDescriptor, ResponseDescriptor

logger = logging.getLogger(__name__)


class BaseTransport(ABC):
    """
    传输层基类

    子类需要实现 send 方法：发送一个已经完整构建的请求，返回响应描述对象，
    传输层面的失败统一抛出 TransportError（超时为 TransportTimeoutError）。
    实现必须遵守配置中的重定向策略和最大跳数。
    """

    @abstractmethod
    def send(
        self,
        request: RequestDescriptor,
        timeout: float | None,
        connect_timeout: float | None,
    ) -> ResponseDescriptor:
        """
        发送请求

        参数:
            request: 已完成序列化的请求描述对象（body 为 bytes 或 None）
            timeout: 整体超时（秒）
            connect_timeout: 连接超时（秒）

        返回:
            ResponseDescriptor 对象

        异常:
            TransportError: 网络/连接失败
            TransportTimeoutError: 超时
        """

    def close(self) -> None:
        """释放传输层持有的资源"""


class RequestsTransport(BaseTransport):
    """
    基于 requests.Session 的传输层实现

    参数:
        config: 客户端配置，用于设置连接池、重定向策略和 TLS 校验

    说明:
        - requests 只支持 (connect, read) 两段超时，整体超时同时作为读超时传入，
          并在读取响应体时按截止时间检查
        - 传输层的自动重试被关闭，执行引擎不做任何自动重试
        - pool_idle_timeout 仅作为透传配置保留，requests 没有空闲连接回收机制
    """

    def __init__(self, config: ClientConfig | None = None):
        self.config = config or ClientConfig()
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        """
        创建并配置 requests.Session 对象

        执行步骤:
            1. 创建新的 Session 对象
            2. 配置最大重定向跳数
            3. 使用连接池配置创建 HTTPAdapter，并关闭适配器层面的重试
            4. 为 HTTP 和 HTTPS 协议挂载适配器
        """
        session = requests.Session()
        session.max_redirects = self.config.max_redirects

        adapter = HTTPAdapter(
            pool_connections=self.config.pool_connections,
            pool_maxsize=self.config.pool_maxsize,
            max_retries=Retry(total=0, read=False),
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    @staticmethod
    def _build_timeout(
        timeout: float | None, connect_timeout: float | None
    ) -> float | tuple[float | None, float | None] | None:
        """转换为 requests 的超时参数"""
        if connect_timeout is None:
            return timeout
        return (connect_timeout, timeout)

    def send(
        self,
        request: RequestDescriptor,
        timeout: float | None,
        connect_timeout: float | None,
    ) -> ResponseDescriptor:
        """
        发送请求

        执行步骤:
            1. 记录整体截止时间（timeout 为 None 时不限制）
            2. 始终以流式方式发起请求，响应体按块读取
            3. 每读取一块都检查截止时间，超过后抛出 TransportTimeoutError
            4. 非流式请求在返回前读完响应体，超时在 send 内抛出
        """
        deadline = time.monotonic() + timeout if timeout is not None else None
        try:
            response = self.session.request(
                method=request.method.value,
                url=request.url,
                headers=dict(request.headers),
                data=request.form if request.files else request.body,
                files=request.files,
                timeout=self._build_timeout(timeout, connect_timeout),
                allow_redirects=self.config.follow_redirects,
                stream=True,
                verify=self.config.verify,
            )
        except requests.exceptions.Timeout as e:
            # 情况1: 连接或读取超时
            raise TransportTimeoutError(f"Request to {request.url} timed out: {e}", cause=e) from e
        except requests.exceptions.RequestException as e:
            # 情况2: 其他网络异常（连接失败、DNS 解析失败、重定向过多等）
            raise TransportError(f"Request to {request.url} failed: {e}", cause=e) from e

        chunks = _iter_chunks(response, deadline)
        if request.stream:
            return self._to_descriptor(response, chunks=chunks)

        # 非流式请求：在截止时间内读完响应体
        try:
            body = b"".join(chunks)
        finally:
            response.close()
        return self._to_descriptor(response, body=body)

    @staticmethod
    def _to_descriptor(response: requests.Response, body: bytes | None = None, chunks=None) -> ResponseDescriptor:
        """把 requests.Response 包装为 ResponseDescriptor，流式响应的响应体保持延迟读取"""
        return ResponseDescriptor(
            status_code=response.status_code,
            headers=response.headers,
            url=response.url,
            body=body,
            chunks=chunks,
            reason=response.reason or "",
            encoding=response.encoding,
            closer=response.close,
        )

    def close(self) -> None:
        if self.session:
            self.session.close()
            logger.info("Session closed")


def _check_deadline(response: requests.Response, deadline: float | None) -> None:
    if deadline is not None and time.monotonic() > deadline:
        response.close()
        raise TransportTimeoutError(f"Request to {response.url} exceeded the total timeout")


def _iter_chunks(response: requests.Response, deadline: float | None = None):
    """按块读取响应体，读取过程中的网络异常同样转换为 TransportError，超过截止时间抛出 TransportTimeoutError"""
    try:
        _check_deadline(response, deadline)
        for chunk in response.iter_content(chunk_size=DEFAULT_CHUNK_SIZE):
            _check_deadline(response, deadline)
            yield chunk
    except requests.exceptions.Timeout as e:
        raise TransportTimeoutError(f"Reading body from {response.url} timed out: {e}", cause=e) from e
    except requests.exceptions.RequestException as e:
        raise TransportError(f"Reading body from {response.url} failed: {e}", cause=e) from e
