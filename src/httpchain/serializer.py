"""
负载序列化模块

负责请求体编码（JSON / 表单）和响应体的类型化解码。

支持的解码目标:
    - None: 返回 json.loads 的原始结果
    - DRF Serializer 子类: 校验并返回 validated_data
    - dataclass 类型: 使用解码后的对象构造实例

使用示例:
    from rest_framework import serializers

    class UserSerializer(serializers.Serializer):
        id = serializers.IntegerField()
        name = serializers.CharField(max_length=100)

    user = client.get_json("/users/1", target=UserSerializer)
    # user == {"id": 1, "name": "Alice"}
"""

from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import urlencode

from rest_framework import serializers

from httpchain.exceptions import SerializationError
from httpchain.utils import encode_query_params

logger = logging.getLogger(__name__)


def _to_primitive(payload: Any) -> Any:
    """把 DRF Serializer 实例或 dataclass 实例转换为可 JSON 化的基础结构"""
    if isinstance(payload, serializers.BaseSerializer):
        return payload.data
    if dataclasses.is_dataclass(payload) and not isinstance(payload, type):
        return dataclasses.asdict(payload)
    return payload


def encode_json(payload: Any) -> bytes:
    """
    将结构化负载编码为 UTF-8 JSON 字节串

    异常:
        SerializationError: 负载无法序列化时抛出
    """
    try:
        return json.dumps(_to_primitive(payload), ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Failed to serialize request body: {e}") from e


def encode_form(form: Mapping[str, Any] | Iterable[tuple[str, Any]] | Any) -> bytes:
    """将表单负载编码为 application/x-www-form-urlencoded 字节串"""
    form = _to_primitive(form)
    try:
        return urlencode(encode_query_params(form)).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Failed to serialize form body: {e}") from e


def encode_multipart_fields(form: Mapping[str, Any] | Iterable[tuple[str, Any]] | Any) -> list[tuple[str, str]]:
    """把 multipart 请求中的普通字段规范化为字符串键值对，规则与表单编码一致"""
    return encode_query_params(_to_primitive(form))


def _is_drf_serializer_class(target: Any) -> bool:
    return isinstance(target, type) and issubclass(target, serializers.BaseSerializer)


def decode_json(content: bytes, target: Any = None) -> Any:
    """
    将响应体解码为目标结构

    参数:
        content: 响应体字节串
        target: 解码目标，None / DRF Serializer 子类 / dataclass 类型

    返回:
        解码后的数据

    异常:
        SerializationError: JSON 无法解析、DRF 校验失败或 dataclass 构造失败时抛出
    """
    try:
        data = json.loads(content)
    except ValueError as e:
        raise SerializationError(f"Failed to deserialize response: {e}") from e

    if target is None:
        return data

    if _is_drf_serializer_class(target):
        serializer = target(data=data, many=isinstance(data, list))
        if not serializer.is_valid():
            logger.debug(f"Response validation failed: {serializer.errors}")
            raise SerializationError("Response does not match serializer", errors=serializer.errors)
        return serializer.validated_data

    if dataclasses.is_dataclass(target) and isinstance(target, type):
        try:
            if isinstance(data, list):
                return [target(**item) for item in data]
            return target(**data)
        except TypeError as e:
            raise SerializationError(f"Failed to build {target.__name__}: {e}") from e

    raise SerializationError(f"Unsupported decode target: {target!r}")
