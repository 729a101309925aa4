"""
中间件管道模块

管道是有序的中间件序列以及运行它们的协议:
    1. 请求阶段: 按注册顺序依次调用 on_request，首个失败即中止，传输层不会被调用
    2. 响应阶段: 同样按注册顺序（不反转）依次调用 on_response，首个失败即中止，
       异常中携带已经收到的响应

注册顺序是执行顺序的唯一依据。管道在客户端构造完成后冻结，之后只读，
可以被任意多个并发执行共享而无需加锁。
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from httpchain.exceptions import ConfigError, HttpClientError, MiddlewareError
from httpchain.middleware import BaseMiddleware
from httpchain.models import RequestDescriptor, ResponseDescriptor

logger = logging.getLogger(__name__)

PHASE_REQUEST = "request"
PHASE_RESPONSE = "response"


class MiddlewarePipeline:
    """
    有序中间件管道

    参数:
        middlewares: 初始中间件序列

    使用示例:
        >>> pipeline = MiddlewarePipeline([LoggingMiddleware(), AuthMiddleware.bearer("t")])
        >>> pipeline.freeze()
        >>> pipeline.run_request(request)
    """

    def __init__(self, middlewares: Iterable[BaseMiddleware] | None = None):
        self._middlewares: list[BaseMiddleware] | tuple[BaseMiddleware, ...] = []
        for middleware in middlewares or ():
            self.add(middleware)

    def add(self, middleware: BaseMiddleware) -> MiddlewarePipeline:
        """
        追加一个中间件

        异常:
            ConfigError: 管道已冻结或对象不是 BaseMiddleware 时抛出
        """
        if self.frozen:
            raise ConfigError("Middleware pipeline is frozen after client construction")
        if not isinstance(middleware, BaseMiddleware):
            raise ConfigError(f"middleware must be a BaseMiddleware instance, got {type(middleware).__name__}")
        self._middlewares.append(middleware)
        return self

    def freeze(self) -> MiddlewarePipeline:
        self._middlewares = tuple(self._middlewares)
        return self

    @property
    def frozen(self) -> bool:
        return isinstance(self._middlewares, tuple)

    @property
    def middlewares(self) -> tuple[BaseMiddleware, ...]:
        return tuple(self._middlewares)

    def __len__(self) -> int:
        return len(self._middlewares)

    def __iter__(self) -> Iterator[BaseMiddleware]:
        return iter(self.middlewares)

    def run_request(self, request: RequestDescriptor) -> None:
        """
        执行请求阶段

        异常:
            MiddlewareError: 任一中间件失败时抛出，后续中间件不再执行
        """
        for middleware in self._middlewares:
            try:
                middleware.on_request(request)
            except HttpClientError as e:
                wrapped = self._wrap(e, middleware, PHASE_REQUEST)
                if wrapped is e:
                    raise
                raise wrapped from e

    def run_response(self, response: ResponseDescriptor) -> None:
        """
        执行响应阶段（与请求阶段相同的注册顺序）

        异常:
            MiddlewareError: 任一中间件失败时抛出，携带已经收到的 response
        """
        for middleware in self._middlewares:
            try:
                middleware.on_response(response)
            except HttpClientError as e:
                wrapped = self._wrap(e, middleware, PHASE_RESPONSE, response)
                if wrapped is e:
                    raise
                raise wrapped from e

    @staticmethod
    def _wrap(
        error: HttpClientError,
        middleware: BaseMiddleware,
        phase: str,
        response: ResponseDescriptor | None = None,
    ) -> MiddlewareError:
        """为失败补充中间件名称、阶段和已收到的响应"""
        if isinstance(error, MiddlewareError):
            wrapped = error
        else:
            wrapped = MiddlewareError(str(error))
        wrapped.interceptor_name = middleware.name
        wrapped.phase = phase
        if response is not None:
            wrapped.response = response
        logger.error(f"Middleware {middleware.name} rejected the {phase}: {wrapped.reason}")
        return wrapped
