"""批量执行器模块

提供并发执行多个独立请求的策略。执行引擎本身不做调度，
批量执行器只是在调用方一侧并发地发起多次普通的 execute 调用。
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping

from httpchain.exceptions import HttpClientError
from httpchain.models import UNSET, HttpMethod, ResponseDescriptor

if TYPE_CHECKING:
    from httpchain.client import HttpClient

logger = logging.getLogger(__name__)


@dataclass
class RequestSpec:
    """
    批量执行中的单个请求描述

    字段与 HttpClient.execute 的参数一一对应
    """

    method: HttpMethod | str
    path: str
    body: bytes | str | None = None
    json: Any = UNSET
    form: Any = None
    headers: Mapping[str, str] | None = None
    params: Any = None
    options: dict[str, Any] = field(default_factory=dict)

    def execute(self, client: HttpClient) -> ResponseDescriptor:
        return client.execute(
            self.method,
            self.path,
            self.body,
            json=self.json,
            form=self.form,
            headers=self.headers,
            params=self.params,
            **self.options,
        )


BatchResult = ResponseDescriptor | HttpClientError


class BaseBatchExecutor:
    """
    批量执行器基类

    定义执行多个请求的统一接口，子类需实现具体的执行策略

    参数:
        max_workers: 最大工作线程数
        **kwargs: 其他传递给具体执行器的参数
    """

    def __init__(self, max_workers: int | None = None, **kwargs):
        self.max_workers = max_workers
        self.executor_kwargs = kwargs

    def execute(self, client_instance: HttpClient, specs: list[RequestSpec]) -> list[BatchResult]:
        """
        执行多个请求

        参数:
            client_instance: 调用此执行器的 HttpClient 实例
            specs: 请求描述列表

        返回:
            响应或异常对象的列表，顺序与输入一致
        """
        raise NotImplementedError("Subclasses must implement the 'execute' method.")


class SequentialBatchExecutor(BaseBatchExecutor):
    """在调用线程中依次执行"""

    def execute(self, client_instance: HttpClient, specs: list[RequestSpec]) -> list[BatchResult]:
        logger.info(f"Starting {len(specs)} sequential requests")
        results: list[BatchResult] = []
        for spec in specs:
            try:
                results.append(spec.execute(client_instance))
            except HttpClientError as e:
                results.append(e)
        return results


class ThreadPoolBatchExecutor(BaseBatchExecutor):
    """
    线程池批量执行器

    使用 ThreadPoolExecutor 并发执行请求，适用于 I/O 密集型的批量调用。

    执行流程:
        1. 创建线程池，提交所有请求任务
        2. 每个请求在独立线程中执行一次完整的 execute
        3. 客户端错误（HttpClientError）作为结果原位返回，不中断其他请求
        4. 按原始顺序返回结果
    """

    def execute(self, client_instance: HttpClient, specs: list[RequestSpec]) -> list[BatchResult]:
        executor_max_workers = self.max_workers if self.max_workers is not None else client_instance.max_workers
        logger.info(f"Starting {len(specs)} concurrent requests with {executor_max_workers} workers")

        results: list[BatchResult | None] = [None] * len(specs)
        with ThreadPoolExecutor(max_workers=executor_max_workers, **self.executor_kwargs) as executor:
            future_to_index = {executor.submit(spec.execute, client_instance): i for i, spec in enumerate(specs)}

            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    results[index] = future.result()
                except HttpClientError as e:
                    logger.warning(f"Batch request {index} failed: {e}")
                    results[index] = e

        return results
