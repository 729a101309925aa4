"""HTTP 客户端核心模块

提供基于中间件管道的 HTTP 客户端，支持：
- 声明式的客户端配置（ClientConfig）
- 有序的请求/响应中间件管道
- 可替换的传输层（默认基于 requests）
- JSON 编解码、表单提交、流式下载等便捷方法
- 统一的错误分类

单次执行的状态流转:
    Built -> PreSent -> Sent -> PostReceived -> Decoded | Failed

状态只向前流转，任一阶段失败立即进入 Failed，不做自动重试。
"""

import logging
import time
import uuid
from collections.abc import Iterable, Mapping
from typing import IO, Any, TypeAlias

from httpchain.config import ClientConfig
from httpchain.constants import (
    CONTENT_TYPE_FORM,
    CONTENT_TYPE_JSON,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_WORKERS,
    REQUEST_ID_PREFIX,
    UNREADABLE_BODY_PLACEHOLDER,
)
from httpchain.exceptions import ConfigError, HttpClientError, ResponseError, TransportError
from httpchain.executor import BaseBatchExecutor, BatchResult, RequestSpec, ThreadPoolBatchExecutor
from httpchain.middleware import BaseMiddleware
from httpchain.models import UNSET, HttpMethod, RequestDescriptor, ResponseDescriptor
from httpchain.pipeline import MiddlewarePipeline
from httpchain.serializer import decode_json, encode_form, encode_json, encode_multipart_fields
from httpchain.transport import BaseTransport, RequestsTransport
from httpchain.utils import (
    append_query,
    resolve_url,
    sanitize_headers,
    sanitize_url,
    validate_headers,
)

# 类型别名定义
QueryParams: TypeAlias = Mapping[str, Any] | Iterable[tuple[str, Any]]
FormData: TypeAlias = Mapping[str, Any] | Iterable[tuple[str, Any]]
Files: TypeAlias = Mapping[str, Any]

logger = logging.getLogger(__name__)


def _payload(body: Any) -> Any:
    """JSON 便捷方法中 body=None 表示不发送请求体"""
    return UNSET if body is None else body


class HttpClient:
    """
    HTTP 客户端

    组合 配置 + 传输层 + 中间件管道，对外提供统一的请求执行入口。
    构造完成后客户端不持有任何按请求变化的状态，可以在多个线程之间共享。

    类属性:
        transport_class: 默认传输层类，未显式传入 transport 时使用
        batch_executor_class: execute_batch 默认使用的批量执行器
        max_workers: 批量执行时的最大工作线程数
        sensitive_headers: 日志中需要脱敏的请求头
        sensitive_params: 日志中需要脱敏的 URL 参数
        enable_sanitization: 是否启用日志脱敏

    使用示例:
        config = (
            ClientConfig.builder()
            .with_base_url("https://api.example.com")
            .with_json_headers()
            .build()
        )
        client = HttpClient(config, middlewares=[AuthMiddleware.bearer("token")])

        users = client.get_json("/users")
        created = client.post_json("/users", {"name": "Alice"})
    """

    # ========== 可插拔组件配置 ==========
    # 传输层类或实例，负责真实的网络 I/O
    transport_class: type[BaseTransport] = RequestsTransport

    # 批量执行器类或实例
    batch_executor_class: type[BaseBatchExecutor] | BaseBatchExecutor = ThreadPoolBatchExecutor

    # 批量执行时的最大工作线程数
    max_workers: int = DEFAULT_MAX_WORKERS

    # ========== 安全性配置 ==========
    # 敏感请求头名称集合，这些头在日志中会被脱敏
    sensitive_headers: set[str] = {
        "Authorization",
        "Proxy-Authorization",
        "Cookie",
        "X-API-Key",
        "X-Auth-Token",
        "X-Access-Token",
    }

    # 敏感 URL 参数名称集合，这些参数在日志中会被脱敏
    sensitive_params: set[str] = {
        "token",
        "password",
        "secret",
        "key",
        "api_key",
        "access_token",
    }

    # 是否启用敏感信息脱敏，默认启用以提高安全性
    enable_sanitization: bool = True

    def __init__(
        self,
        config: ClientConfig | None = None,
        middlewares: Iterable[BaseMiddleware] | None = None,
        transport: BaseTransport | type[BaseTransport] | None = None,
        max_workers: int | None = None,
    ):
        """
        初始化客户端实例

        参数:
            config: 客户端配置，None 时使用默认配置
            middlewares: 中间件序列，注册顺序即执行顺序
            transport: 传输层类或实例，None 时使用 transport_class
            max_workers: 批量执行的最大工作线程数

        执行步骤:
            1. 校验配置
            2. 解析并初始化传输层
            3. 构建中间件管道并冻结

        异常:
            ConfigError: 配置、传输层或中间件无效时抛出
        """
        if config is None:
            config = ClientConfig()
        if not isinstance(config, ClientConfig):
            raise ConfigError(f"config must be a ClientConfig, got {type(config).__name__}")
        self._config = config

        self.max_workers = max_workers if max_workers is not None else self.max_workers
        self._transport = self._resolve_transport(transport)

        # 管道构造完成即冻结，之后所有并发执行只读共享
        self._pipeline = MiddlewarePipeline(middlewares).freeze()

    @classmethod
    def with_base_url(cls, base_url: str) -> "HttpClient":
        """使用默认配置和给定 base_url 创建客户端"""
        return cls(ClientConfig.builder().with_base_url(base_url).build())

    def _resolve_transport(self, transport: BaseTransport | type[BaseTransport] | None) -> BaseTransport:
        """
        解析传输层配置，返回传输层实例

        参数:
            transport: 传入的传输层配置（类或实例）

        返回:
            BaseTransport 实例
        """
        source = transport if transport is not None else self.transport_class

        # 处理类：使用客户端配置实例化
        if isinstance(source, type) and issubclass(source, BaseTransport):
            return source(self._config)

        # 处理实例：直接返回
        if isinstance(source, BaseTransport):
            return source

        raise ConfigError("transport must be a BaseTransport subclass or instance")

    def _resolve_batch_executor(self, executor: BaseBatchExecutor | type[BaseBatchExecutor] | None) -> BaseBatchExecutor:
        source = executor if executor is not None else self.batch_executor_class
        if isinstance(source, type) and issubclass(source, BaseBatchExecutor):
            return source(max_workers=self.max_workers)
        if isinstance(source, BaseBatchExecutor):
            return source
        raise ConfigError("executor must be a BaseBatchExecutor subclass or instance")

    # ========== 只读访问器 ==========

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def transport(self) -> BaseTransport:
        return self._transport

    @property
    def middlewares(self) -> tuple[BaseMiddleware, ...]:
        return self._pipeline.middlewares

    @property
    def middleware_count(self) -> int:
        return len(self._pipeline)

    def with_middleware(self, middleware: BaseMiddleware) -> "HttpClient":
        """
        返回追加了一个中间件的新客户端

        当前客户端的管道保持冻结不变；新客户端与当前客户端共享配置和传输层，
        关闭其中任一个都会关闭共享的传输层。
        """
        return self.__class__(
            config=self._config,
            middlewares=(*self._pipeline.middlewares, middleware),
            transport=self._transport,
            max_workers=self.max_workers,
        )

    # ========== 请求构建 ==========

    def resolve_url(self, path: str) -> str:
        """把请求路径解析为完整 URL（绝对 URL 原样返回）"""
        return resolve_url(self._config.base_url, path)

    def build_request(
        self,
        method: HttpMethod | str,
        path: str,
        body: bytes | str | None = None,
        *,
        json: Any = UNSET,
        form: FormData | None = None,
        headers: Mapping[str, str] | None = None,
        params: QueryParams | None = None,
        stream: bool = False,
        files: Files | None = None,
    ) -> RequestDescriptor:
        """
        构建请求描述对象

        请求头的写入顺序: 配置中的默认请求头 -> 本次调用传入的请求头，
        之后中间件还可以继续覆盖。

        异常:
            HeaderError: 传入的请求头无效
            ConfigError: 同时提供了多种请求体，或 HTTP 方法不受支持

        说明:
            files 可以与 form 同时提供，此时 form 作为 multipart 的普通字段
        """
        provided_bodies = sum((body is not None, json is not UNSET, form is not None and not files, bool(files)))
        if provided_bodies > 1:
            raise ConfigError("Only one of body, json, form and files can be provided")

        url = append_query(self.resolve_url(path), params)
        request = RequestDescriptor(method, url, body=body, json=json, form=form, stream=stream, files=files)
        request.headers.update(self._config.default_headers)
        request.headers.update(validate_headers(headers))
        return request

    @staticmethod
    def _serialize_body(request: RequestDescriptor) -> None:
        """
        在发送前序列化结构化负载

        - JSON: 未设置 Content-Type 时补充 application/json
        - multipart: 普通字段规范化为字符串，移除已有的 Content-Type，由 requests 生成带 boundary 的值
        - 表单: 强制设置 Content-Type 为 application/x-www-form-urlencoded
        - 字符串请求体按 UTF-8 编码
        """
        if request.has_json:
            request.body = encode_json(request.json)
            if "Content-Type" not in request.headers:
                request.headers["Content-Type"] = CONTENT_TYPE_JSON
        elif request.files:
            request.form = encode_multipart_fields(request.form)
            request.headers.pop("Content-Type", None)
        elif request.form is not None:
            request.body = encode_form(request.form)
            request.headers["Content-Type"] = CONTENT_TYPE_FORM
        elif isinstance(request.body, str):
            request.body = request.body.encode("utf-8")

    def generate_request_id(self) -> str:
        """生成全局唯一的请求 ID"""
        timestamp = int(time.time() * 1000)  # 毫秒级时间戳
        short_uuid = uuid.uuid4().hex[:8]
        return f"{REQUEST_ID_PREFIX}-{timestamp}-{short_uuid}"

    def _safe_url(self, url: str) -> str:
        return sanitize_url(url, self.sensitive_params) if self.enable_sanitization else url

    def _safe_headers(self, headers: Mapping[str, str]) -> dict[str, str]:
        return sanitize_headers(headers, self.sensitive_headers) if self.enable_sanitization else dict(headers)

    # ========== 执行引擎 ==========

    def execute(
        self,
        method: HttpMethod | str,
        path: str,
        body: bytes | str | None = None,
        *,
        json: Any = UNSET,
        form: FormData | None = None,
        headers: Mapping[str, str] | None = None,
        params: QueryParams | None = None,
        stream: bool = False,
        files: Files | None = None,
    ) -> ResponseDescriptor:
        """
        执行单个请求，返回响应描述对象（不检查状态码）

        参数:
            method: HTTP 方法
            path: 请求路径或绝对 URL
            body: 原始请求体
            json: 待序列化为 JSON 的结构化负载
            form: 待编码的表单负载
            headers: 本次请求的额外请求头
            params: 查询参数
            stream: 是否流式读取响应体
            files: multipart 文件字段

        返回:
            ResponseDescriptor 对象

        执行步骤:
            1. 解析 URL，构建请求描述对象并写入默认请求头（Built）
            2. 按注册顺序执行中间件请求阶段（PreSent）
            3. 序列化结构化负载，调用传输层发送（Sent）
            4. 按同样顺序执行中间件响应阶段（PostReceived）

        异常:
            HeaderError: 请求头无效
            MiddlewareError: 中间件拒绝请求或响应
            SerializationError: 请求体无法序列化
            TransportError: 网络/连接/超时失败
        """
        request_id = self.generate_request_id()
        request = self.build_request(
            method, path, body, json=json, form=form, headers=headers, params=params, stream=stream, files=files
        )

        # INFO 级别：记录请求的基本信息（方法和 URL），生产环境可见
        logger.info(f"[{request_id}] Starting {request.method.value} request to {self._safe_url(request.url)}")

        try:
            self._pipeline.run_request(request)
            self._serialize_body(request)

            # DEBUG 级别：记录最终请求头，仅调试时可见
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(f"[{request_id}] Request headers: {self._safe_headers(request.headers)}")

            response = self._transport.send(request, self._config.timeout, self._config.connect_timeout)
            logger.info(f"[{request_id}] Received {response.status_code} response")
            logger.debug(f"[{request_id}] Response headers: {self._safe_headers(response.headers)}")

            try:
                self._pipeline.run_response(response)
            except HttpClientError:
                raise
            except Exception:
                # 非客户端异常直接抛出，调用方拿不到响应对象，先释放连接
                response.close()
                raise
        except HttpClientError as e:
            logger.error(f"[{request_id}] Request failed: {e}")
            raise

        return response

    def execute_batch(
        self,
        specs: Iterable[RequestSpec],
        executor: BaseBatchExecutor | type[BaseBatchExecutor] | None = None,
    ) -> list[BatchResult]:
        """
        并发执行多个独立请求

        参数:
            specs: 请求描述序列
            executor: 批量执行器类或实例，None 时使用 batch_executor_class

        返回:
            ResponseDescriptor 或 HttpClientError 的列表，顺序与输入一致
        """
        specs = list(specs)
        if not specs:
            logger.warning("Empty request list provided")
            return []
        return self._resolve_batch_executor(executor).execute(self, specs)

    # ========== 原始响应方法 ==========

    def get(self, path: str, **kwargs) -> ResponseDescriptor:
        return self.execute(HttpMethod.GET, path, **kwargs)

    def post(self, path: str, body: bytes | str | None = None, **kwargs) -> ResponseDescriptor:
        return self.execute(HttpMethod.POST, path, body, **kwargs)

    def put(self, path: str, body: bytes | str | None = None, **kwargs) -> ResponseDescriptor:
        return self.execute(HttpMethod.PUT, path, body, **kwargs)

    def patch(self, path: str, body: bytes | str | None = None, **kwargs) -> ResponseDescriptor:
        return self.execute(HttpMethod.PATCH, path, body, **kwargs)

    def delete(self, path: str, **kwargs) -> ResponseDescriptor:
        return self.execute(HttpMethod.DELETE, path, **kwargs)

    def head(self, path: str, **kwargs) -> ResponseDescriptor:
        return self.execute(HttpMethod.HEAD, path, **kwargs)

    def request_with_headers(
        self, method: HttpMethod | str, path: str, headers: Mapping[str, str], **kwargs
    ) -> ResponseDescriptor:
        """携带额外请求头发送请求，请求头无效时抛出 HeaderError"""
        return self.execute(method, path, headers=headers, **kwargs)

    def request_with_query(self, method: HttpMethod | str, path: str, params: QueryParams, **kwargs) -> ResponseDescriptor:
        """携带查询参数发送请求，参数追加在 URL 已有的查询参数之后"""
        return self.execute(method, path, params=params, **kwargs)

    # ========== JSON 便捷方法 ==========

    def _read_error_body(self, response: ResponseDescriptor) -> str:
        """尽力读取错误响应体，非法字节替换为 U+FFFD，读取失败时返回占位文本"""
        try:
            return response.text(errors="replace")
        except (HttpClientError, RuntimeError, LookupError) as e:
            logger.debug(f"Could not read error body: {e}")
            return UNREADABLE_BODY_PLACEHOLDER

    def _ensure_success(self, response: ResponseDescriptor) -> None:
        """非 2xx 响应抛出 ResponseError"""
        if not response.is_success:
            raise ResponseError(response.status_code, self._read_error_body(response), response=response)

    def process_json_response(self, response: ResponseDescriptor, target: Any = None) -> Any:
        """
        校验状态码并把响应体解码为目标结构

        参数:
            response: 响应描述对象
            target: 解码目标，None / DRF Serializer 子类 / dataclass 类型

        异常:
            ResponseError: 非 2xx 响应
            SerializationError: 响应体无法解码为目标结构
        """
        try:
            self._ensure_success(response)
            return decode_json(response.content, target)
        finally:
            response.close()

    def get_json(self, path: str, target: Any = None, **kwargs) -> Any:
        return self.process_json_response(self.execute(HttpMethod.GET, path, **kwargs), target)

    def post_json(self, path: str, body: Any = None, target: Any = None, **kwargs) -> Any:
        return self.process_json_response(self.execute(HttpMethod.POST, path, json=_payload(body), **kwargs), target)

    def put_json(self, path: str, body: Any = None, target: Any = None, **kwargs) -> Any:
        return self.process_json_response(self.execute(HttpMethod.PUT, path, json=_payload(body), **kwargs), target)

    def patch_json(self, path: str, body: Any = None, target: Any = None, **kwargs) -> Any:
        return self.process_json_response(self.execute(HttpMethod.PATCH, path, json=_payload(body), **kwargs), target)

    def delete_json(self, path: str, target: Any = None, **kwargs) -> Any:
        return self.process_json_response(self.execute(HttpMethod.DELETE, path, **kwargs), target)

    def post_form(self, path: str, form: FormData, target: Any = None, **kwargs) -> Any:
        """以 application/x-www-form-urlencoded 提交表单，并把 JSON 响应解码为目标结构"""
        return self.process_json_response(self.execute(HttpMethod.POST, path, form=form, **kwargs), target)

    def post_multipart(self, path: str, files: Files, data: FormData | None = None, target: Any = None, **kwargs) -> Any:
        """
        以 multipart/form-data 提交文件和普通字段，并把 JSON 响应解码为目标结构

        参数:
            path: 请求路径或绝对 URL
            files: 文件字段，格式与 requests 的 files 参数一致，如 {"file": ("a.txt", b"...", "text/plain")}
            data: 普通字段
            target: 解码目标
        """
        return self.process_json_response(
            self.execute(HttpMethod.POST, path, form=data, files=files, **kwargs), target
        )

    # ========== 下载方法 ==========

    def download_bytes(self, path: str, **kwargs) -> bytes:
        """
        下载完整响应体

        异常:
            ResponseError: 非 2xx 响应
        """
        response = self.execute(HttpMethod.GET, path, **kwargs)
        try:
            self._ensure_success(response)
            return response.content
        finally:
            response.close()

    def download_to_writer(self, path: str, writer: IO[bytes], chunk_size: int = DEFAULT_CHUNK_SIZE, **kwargs) -> int:
        """
        以流式方式把响应体写入 writer，适用于大文件下载

        参数:
            path: 请求路径或绝对 URL
            writer: 任意提供 write(bytes) 的对象
            chunk_size: 分块读取大小（字节）

        返回:
            写入的总字节数

        异常:
            ResponseError: 非 2xx 响应
            TransportError: 读取响应体失败，或 writer 写入失败
        """
        response = self.execute(HttpMethod.GET, path, stream=True, **kwargs)
        try:
            self._ensure_success(response)
            written = 0
            for chunk in response.iter_content(chunk_size=chunk_size):
                try:
                    writer.write(chunk)
                except OSError as e:
                    raise TransportError(f"Failed to write response body: {e}", cause=e) from e
                written += len(chunk)
            logger.debug(f"Downloaded {written} bytes from {self._safe_url(response.url)}")
            return written
        finally:
            response.close()

    # ========== 生命周期 ==========

    def close(self) -> None:
        """关闭传输层，释放连接池资源"""
        self._transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} base_url={self._config.base_url!r} middlewares={self.middleware_count}>"


def new_client() -> HttpClient:
    """使用默认配置创建客户端"""
    return HttpClient()


def client_with_base_url(base_url: str) -> HttpClient:
    """使用给定 base_url 创建客户端"""
    return HttpClient.with_base_url(base_url)
