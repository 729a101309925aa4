"""工具函数模块

提供 URL 解析拼接、请求头校验、查询参数编码以及日志脱敏等实用功能
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from httpchain.exceptions import HeaderError


# 默认敏感请求头名称集合
DEFAULT_SENSITIVE_HEADERS = {
    "Authorization",
    "Proxy-Authorization",
    "Cookie",
    "Set-Cookie",
    "X-API-Key",
    "X-Auth-Token",
    "X-Access-Token",
    "API-Key",
    "Auth-Token",
    "Session-ID",
}

# 默认敏感URL参数名称集合
DEFAULT_SENSITIVE_PARAMS = {
    "token",
    "password",
    "secret",
    "key",
    "api_key",
    "apikey",
    "access_token",
    "auth_token",
    "session",
    "pwd",
}

# 绝对 URL：以 scheme:// 开头（RFC 3986 scheme 语法）
_ABSOLUTE_URL_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")

# 请求头名称只允许 RFC 7230 token 字符
_HEADER_NAME_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")

# 请求头取值不允许控制字符（水平制表符除外）以及 latin-1 之外的字符，且不能以空白开头
_HEADER_VALUE_INVALID_RE = re.compile(r"[\x00-\x08\x0a-\x1f\x7f]|[^\x00-\xff]")


def is_absolute_url(url: str) -> bool:
    """判断 url 是否已经是带 scheme 的绝对 URL"""
    return bool(_ABSOLUTE_URL_RE.match(url or ""))


def resolve_url(base_url: str | None, path: str) -> str:
    """
    将请求路径解析为完整 URL

    参数:
        base_url: 客户端配置的基础 URL，可为空
        path: 请求路径或绝对 URL

    返回:
        完整的请求 URL

    规则:
        1. path 本身是绝对 URL 时原样返回
        2. 未配置 base_url 时原样返回 path
        3. path 为空时返回 base_url
        4. 否则拼接 base_url 与 path，连接处恰好保留一个 "/"

    示例:
        >>> resolve_url("https://api.example.com/", "/users")
        "https://api.example.com/users"
        >>> resolve_url("https://api.example.com", "users")
        "https://api.example.com/users"
        >>> resolve_url("https://x.com", "https://other.com/y")
        "https://other.com/y"
    """
    if is_absolute_url(path) or not base_url:
        return path
    if not path:
        return base_url
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def validate_header(name: Any, value: Any) -> tuple[str, str]:
    """
    校验单个请求头是否满足线路格式要求

    参数:
        name: 请求头名称
        value: 请求头取值

    返回:
        (name, value) 元组

    异常:
        HeaderError: 名称为空或含非法字符、取值含控制字符时抛出
    """
    if not isinstance(name, str) or not _HEADER_NAME_RE.fullmatch(name):
        raise HeaderError(f"Invalid header name: {name!r}")
    if not isinstance(value, str):
        raise HeaderError(f"Invalid header value for {name}: {value!r}")
    if _HEADER_VALUE_INVALID_RE.search(value) or value[:1] in (" ", "\t"):
        raise HeaderError(f"Invalid header value for {name}: {value!r}")
    return name, value


def validate_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    """逐个校验请求头，返回新的字典"""
    return dict(validate_header(name, value) for name, value in (headers or {}).items())


def encode_query_params(params: Mapping[str, Any] | Iterable[tuple[str, Any]] | None) -> list[tuple[str, str]]:
    """
    将查询参数规范化为 (key, value) 字符串对列表

    参数:
        params: 字典或键值对序列

    返回:
        键值对列表，顺序与输入一致

    规则:
        - None 值被跳过
        - 布尔值渲染为 "true"/"false"
        - 列表/元组值展开为重复的键
    """
    if not params:
        return []

    items = params.items() if isinstance(params, Mapping) else params
    pairs: list[tuple[str, str]] = []
    for key, value in items:
        values = value if isinstance(value, (list, tuple)) else [value]
        for item in values:
            if item is None:
                continue
            if isinstance(item, bool):
                item = "true" if item else "false"
            pairs.append((str(key), str(item)))
    return pairs


def append_query(url: str, params: Mapping[str, Any] | Iterable[tuple[str, Any]] | None) -> str:
    """把查询参数追加到 URL 上，保留 URL 中已有的查询参数"""
    pairs = encode_query_params(params)
    if not pairs:
        return url

    parsed = urlparse(url)
    query = urlencode(pairs)
    merged_query = f"{parsed.query}&{query}" if parsed.query else query
    return urlunparse(parsed._replace(query=merged_query))


def sanitize_headers(
    headers: Mapping[str, str],
    sensitive_keys: set[str] | None = None,
    mask: str = "***",
) -> dict[str, str]:
    """
    脱敏请求头中的敏感信息

    参数:
        headers: 原始请求头字典
        sensitive_keys: 敏感键名集合，不区分大小写。None 时使用默认集合
        mask: 脱敏后的替换字符串

    返回:
        脱敏后的请求头字典（新字典，不修改原字典）

    示例:
        >>> headers = {"Authorization": "Bearer token123", "Content-Type": "application/json"}
        >>> sanitize_headers(headers)
        {"Authorization": "***", "Content-Type": "application/json"}
    """
    if sensitive_keys is None:
        sensitive_keys = DEFAULT_SENSITIVE_HEADERS

    # 创建不区分大小写的查找集合
    sensitive_keys_lower = {k.lower() for k in sensitive_keys}

    return {k: mask if k.lower() in sensitive_keys_lower else v for k, v in headers.items()}


def sanitize_url(
    url: str,
    sensitive_params: set[str] | None = None,
    mask: str = "***",
) -> str:
    """
    脱敏 URL 中的敏感参数

    参数:
        url: 原始 URL
        sensitive_params: 敏感参数名集合，不区分大小写。None 时使用默认集合
        mask: 脱敏后的替换字符串

    返回:
        脱敏后的 URL

    示例:
        >>> sanitize_url("https://api.example.com/user?token=abc123&page=1")
        "https://api.example.com/user?token=***&page=1"
    """
    if sensitive_params is None:
        sensitive_params = DEFAULT_SENSITIVE_PARAMS

    sensitive_params_lower = {p.lower() for p in sensitive_params}

    parsed = urlparse(url)
    if not parsed.query:
        return url

    params = parse_qs(parsed.query, keep_blank_values=True)

    sanitized_params = {}
    for key, values in params.items():
        if key.lower() in sensitive_params_lower:
            # 保持参数结构，但值替换为 mask
            sanitized_params[key] = [mask] * len(values)
        else:
            sanitized_params[key] = values

    sanitized_query = urlencode(sanitized_params, doseq=True)
    return urlunparse(parsed._replace(query=sanitized_query))


def sanitize_dict(
    data: Mapping[str, Any],
    sensitive_keys: set[str] | None = None,
    mask: str = "***",
    recursive: bool = True,
) -> dict[str, Any]:
    """
    脱敏字典中的敏感字段

    参数:
        data: 原始数据字典
        sensitive_keys: 敏感键名集合，不区分大小写。None 时使用默认集合
        mask: 脱敏后的替换字符串
        recursive: 是否递归处理嵌套字典

    返回:
        脱敏后的字典（新字典，不修改原字典）
    """
    if sensitive_keys is None:
        sensitive_keys = DEFAULT_SENSITIVE_HEADERS | DEFAULT_SENSITIVE_PARAMS

    sensitive_keys_lower = {k.lower() for k in sensitive_keys}

    result = {}
    for key, value in data.items():
        if str(key).lower() in sensitive_keys_lower:
            result[key] = mask
        elif recursive and isinstance(value, Mapping):
            result[key] = sanitize_dict(value, sensitive_keys, mask, recursive)
        else:
            result[key] = value

    return result
