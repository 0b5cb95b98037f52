"""
Tests for header/URL normalization.
"""

import pytest

from omni_request.core.exceptions import ConfigurationError
from omni_request.core.normalizer import (
    DEFAULT_HEADERS,
    append_query,
    drop_header,
    ensure_scheme,
    get_header,
    is_absolute_url,
    join_url,
    merge_headers,
    origin_of,
    resolve_prefix,
    serialize_params,
)


class TestMergeHeaders:
    """Test layered header merge."""

    def test_later_layer_wins(self):
        """Test per-call headers override global ones."""
        assert merge_headers({"A": "1"}, {"A": "2", "B": "1"}, {"B": "2"}) == {"A": "2", "B": "2"}

    def test_case_insensitive_override_keeps_last_spelling(self):
        """Test names collide regardless of case."""
        merged = merge_headers(DEFAULT_HEADERS, {"content-type": "text/plain"})
        assert merged["content-type"] == "text/plain"
        assert "Content-Type" not in merged
        assert merged["X-Requested-With"] == "XMLHttpRequest"

    def test_none_layers_skipped(self):
        assert merge_headers(None, {"A": 1}, None) == {"A": "1"}

    def test_drop_and_get_header(self):
        headers = {"Content-Type": "application/json", "Accept": "*/*"}
        assert get_header(headers, "content-type") == "application/json"
        assert drop_header(headers, "CONTENT-TYPE") == {"Accept": "*/*"}
        assert get_header(headers, "missing") is None


class TestPrefix:
    """Test prefix resolution and joining."""

    @pytest.mark.parametrize("url", [
        "http://a.com/x",
        "https://a.com/x",
        "HTTPS://a.com/x",
        "//cdn.example.com/lib.js",
    ])
    def test_absolute_urls(self, url):
        assert is_absolute_url(url)
        assert resolve_prefix(url, "/api", "/call") == ""

    def test_relative_url(self):
        assert not is_absolute_url("/users")
        assert not is_absolute_url("users")

    def test_call_prefix_beats_config_prefix(self):
        assert resolve_prefix("/users", "/api", "/v2") == "/v2"
        assert resolve_prefix("/users", "/api", None) == "/api"
        assert resolve_prefix("/users", None, None) == ""

    def test_join_collapses_slashes(self):
        """Test repeated separators collapse to one."""
        assert join_url("/api/", "/v1//users") == "/api/v1/users"

    @pytest.mark.parametrize("prefix,path,expected", [
        ("/", "/users", "/users"),
        ("/", "users", "/users"),
        ("///", "//users//1", "/users/1"),
        ("/api/", "users", "/api/users"),
    ])
    def test_join_root_prefix_keeps_single_leading_slash(self, prefix, path, expected):
        assert join_url(prefix, path) == expected

    def test_join_protocol_relative_prefix(self):
        assert join_url("//cdn.example.com/", "/lib.js") == "//cdn.example.com/lib.js"
        assert join_url("", "//cdn.example.com//lib.js") == "//cdn.example.com/lib.js"

    def test_join_keeps_scheme_separator(self):
        assert join_url("https://api.example.com/", "/users") == "https://api.example.com/users"
        assert join_url("", "https://api.example.com//users") == "https://api.example.com/users"

    def test_join_leaves_query_alone(self):
        assert join_url("https://a.com", "/r?next=//x") == "https://a.com/r?next=//x"

    def test_protocol_relative_gets_scheme(self):
        assert ensure_scheme("//cdn.example.com/x") == "https://cdn.example.com/x"
        assert ensure_scheme("//cdn.example.com/x", "http://api.local") == "http://cdn.example.com/x"
        assert ensure_scheme("https://a.com") == "https://a.com"


class TestQuery:
    """Test query serialization."""

    def test_mapping(self):
        assert serialize_params({"page": 1, "size": 20}) == "page=1&size=20"

    def test_repeated_values(self):
        assert serialize_params({"tag": ["a", "b"]}) == "tag=a&tag=b"

    def test_booleans(self):
        assert serialize_params({"active": True, "deleted": False}) == "active=true&deleted=false"

    def test_pairs_and_strings(self):
        assert serialize_params([("a", 1), ("a", 2)]) == "a=1&a=2"
        assert serialize_params("?x=1") == "x=1"

    def test_empty(self):
        assert serialize_params(None) == ""
        assert serialize_params({}) == ""
        assert serialize_params([]) == ""

    def test_unsupported_type(self):
        with pytest.raises(ConfigurationError):
            serialize_params(42)

    def test_append_query(self):
        assert append_query("https://a.com/x", "a=1") == "https://a.com/x?a=1"
        assert append_query("https://a.com/x?b=2", "a=1") == "https://a.com/x?b=2&a=1"
        assert append_query("https://a.com/x#top", "a=1") == "https://a.com/x?a=1#top"
        assert append_query("https://a.com/x", "") == "https://a.com/x"


class TestOrigin:
    def test_origin(self):
        assert origin_of("https://API.example.com:8443/x?y") == "https://api.example.com:8443"
        assert origin_of("/relative") is None
