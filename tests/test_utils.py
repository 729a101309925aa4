"""
测试 httpchain.utils 模块

测试 URL 解析、请求头校验、查询参数编码和日志脱敏
"""

import pytest

from httpchain.exceptions import HeaderError
from httpchain.utils import (
    append_query,
    encode_query_params,
    is_absolute_url,
    resolve_url,
    sanitize_dict,
    sanitize_headers,
    sanitize_url,
    validate_header,
    validate_headers,
)


class TestResolveUrl:
    """测试 URL 解析"""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "base,path,expected",
        [
            ("https://api.example.com", "/users", "https://api.example.com/users"),
            ("https://api.example.com/", "/users", "https://api.example.com/users"),
            ("https://api.example.com", "users", "https://api.example.com/users"),
            ("https://api.example.com/", "users", "https://api.example.com/users"),
            ("https://api.example.com/v1", "/users/1", "https://api.example.com/v1/users/1"),
            ("https://x.com", "https://other.com/y", "https://other.com/y"),
            ("https://x.com", "HTTP://other.com/y", "HTTP://other.com/y"),
        ],
    )
    def test_join(self, base, path, expected):
        assert resolve_url(base, path) == expected

    @pytest.mark.unit
    def test_no_base_url_returns_path(self):
        assert resolve_url(None, "https://api.example.com/a") == "https://api.example.com/a"

    @pytest.mark.unit
    def test_empty_path_returns_base(self):
        assert resolve_url("https://api.example.com/v1", "") == "https://api.example.com/v1"

    @pytest.mark.unit
    def test_join_never_doubles_separator(self):
        for base in ("https://a.com", "https://a.com/"):
            for path in ("x", "/x"):
                resolved = resolve_url(base, path)
                assert "//" not in resolved.split("://", 1)[1]

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "url,expected",
        [("https://a.com", True), ("ws://a.com", True), ("/users", False), ("users", False), ("mailto:a@b.c", False)],
    )
    def test_is_absolute_url(self, url, expected):
        assert is_absolute_url(url) is expected


class TestValidateHeader:
    """测试请求头校验"""

    @pytest.mark.unit
    def test_valid_header(self):
        assert validate_header("X-Request-ID", "abc 123") == ("X-Request-ID", "abc 123")

    @pytest.mark.unit
    def test_tab_and_latin1_allowed(self):
        assert validate_header("X-Test", "a\tb é") == ("X-Test", "a\tb é")

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["", "Bad Name", "X:Test", "X-Test\n", None, 1])
    def test_invalid_name(self, name):
        with pytest.raises(HeaderError, match="Invalid header name"):
            validate_header(name, "v")

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["a\r\nb", "a\nb", "\x00", "\x7f", " leading", "中文", None, 42])
    def test_invalid_value(self, value):
        with pytest.raises(HeaderError, match="Invalid header value for X-Test"):
            validate_header("X-Test", value)

    @pytest.mark.unit
    def test_validate_headers(self):
        assert validate_headers({"A": "1"}) == {"A": "1"}
        assert validate_headers(None) == {}
        with pytest.raises(HeaderError):
            validate_headers({"A": "1", "B": "x\ny"})


class TestQueryParams:
    """测试查询参数编码"""

    @pytest.mark.unit
    def test_encode_rules(self):
        params = {"page": 1, "active": True, "deleted": False, "skip": None, "tag": ["a", "b"]}

        assert encode_query_params(params) == [
            ("page", "1"),
            ("active", "true"),
            ("deleted", "false"),
            ("tag", "a"),
            ("tag", "b"),
        ]

    @pytest.mark.unit
    def test_encode_pairs_keep_order(self):
        assert encode_query_params([("b", 2), ("a", 1), ("b", 3)]) == [("b", "2"), ("a", "1"), ("b", "3")]

    @pytest.mark.unit
    def test_encode_empty(self):
        assert encode_query_params(None) == []
        assert encode_query_params({}) == []

    @pytest.mark.unit
    def test_append_query(self):
        assert append_query("https://a.com/x", {"q": "hello world"}) == "https://a.com/x?q=hello+world"

    @pytest.mark.unit
    def test_append_query_keeps_existing(self):
        assert append_query("https://a.com/x?page=1", {"size": 10}) == "https://a.com/x?page=1&size=10"

    @pytest.mark.unit
    def test_append_nothing(self):
        assert append_query("https://a.com/x", {"skip": None}) == "https://a.com/x"


class TestSanitizeHeaders:
    """测试请求头脱敏"""

    @pytest.mark.unit
    def test_sanitize_default_sensitive_headers(self):
        headers = {"Authorization": "Bearer token123", "Content-Type": "application/json"}

        result = sanitize_headers(headers)

        assert result == {"Authorization": "***", "Content-Type": "application/json"}
        assert headers["Authorization"] == "Bearer token123"

    @pytest.mark.unit
    def test_case_insensitive(self):
        assert sanitize_headers({"x-api-key": "k"}) == {"x-api-key": "***"}

    @pytest.mark.unit
    def test_custom_keys_and_mask(self):
        result = sanitize_headers({"X-Custom": "v", "Authorization": "a"}, sensitive_keys={"X-Custom"}, mask="[hidden]")

        assert result == {"X-Custom": "[hidden]", "Authorization": "a"}


class TestSanitizeUrl:
    """测试 URL 脱敏"""

    @pytest.mark.unit
    def test_sanitize_sensitive_params(self):
        result = sanitize_url("https://api.example.com/user?token=abc123&page=1")

        assert result == "https://api.example.com/user?token=%2A%2A%2A&page=1"

    @pytest.mark.unit
    def test_url_without_query_unchanged(self):
        assert sanitize_url("https://api.example.com/user") == "https://api.example.com/user"


class TestSanitizeDict:
    """测试字典脱敏"""

    @pytest.mark.unit
    def test_recursive(self):
        data = {"user": {"password": "p", "name": "n"}, "token": "t"}

        assert sanitize_dict(data) == {"user": {"password": "***", "name": "n"}, "token": "***"}

    @pytest.mark.unit
    def test_non_recursive(self):
        data = {"user": {"password": "p"}}

        assert sanitize_dict(data, recursive=False) == data
