"""Tests for request configuration helpers."""

from urllib.parse import unquote

import pytest

from companycam import CancellationToken
from companycam._request import (
    RequestConfig,
    build_request_config,
    build_request_options,
    clean_query_parameters,
    encode_path_param,
    merge_headers,
    split_user_scoped_options,
    user_context_headers,
)


class TestMergeHeaders:
    """Tests for merge_headers()."""

    def test_defaults_are_kept(self):
        assert merge_headers({"Accept": "application/json"}) == {"Accept": "application/json"}

    def test_per_call_headers_override_defaults(self):
        merged = merge_headers({"Accept": "application/json"}, {"Accept": "text/csv"})
        assert merged == {"Accept": "text/csv"}

    def test_none_values_are_dropped_and_lists_joined(self):
        merged = merge_headers(None, {"X-Array": ["a", "b"], "X-Tuple": ("c",), "Skip": None, "X-Num": 3})
        assert merged == {"X-Array": "a, b", "X-Tuple": "c", "X-Num": "3"}

    def test_auth_token_sets_bearer_authorization(self):
        merged = merge_headers({"Authorization": "Basic abc"}, auth_token="secret")
        assert merged["Authorization"] == "Bearer secret"

    def test_idempotency_key_header(self):
        merged = merge_headers(idempotency_key="key-123")
        assert merged == {"Idempotency-Key": "key-123"}

    def test_key_case_is_preserved(self):
        merged = merge_headers({"x-custom": "1"})
        assert list(merged) == ["x-custom"]


class TestBuildRequestConfig:
    """Tests for build_request_config()."""

    def test_method_is_uppercased(self):
        config = build_request_config("get", "/company")
        assert config.method == "GET"
        assert config.url == "/company"

    def test_per_call_token_wins_over_default(self):
        config = build_request_config(
            "GET", "/company", default_auth_token="default", auth_token="override"
        )
        assert config.headers["Authorization"] == "Bearer override"

    def test_empty_per_call_token_suppresses_default(self):
        config = build_request_config("GET", "/company", default_auth_token="default", auth_token="")
        assert "Authorization" not in config.headers

    def test_default_token_used_when_no_override(self):
        config = build_request_config("GET", "/company", default_auth_token="default")
        assert config.headers["Authorization"] == "Bearer default"

    def test_no_authorization_without_token(self):
        config = build_request_config("GET", "/company")
        assert "Authorization" not in config.headers

    def test_params_are_cleaned(self):
        config = build_request_config("GET", "/users", params={"page": 2, "per_page": None})
        assert config.params == {"page": 2}

        config = build_request_config("GET", "/users", params={"per_page": None})
        assert config.params is None

    def test_body_timeout_and_extra_are_carried(self):
        config = build_request_config(
            "POST", "/tags", json={"tag": {"display_value": "x"}}, timeout=5, extra={"verify": False}
        )
        assert config.json == {"tag": {"display_value": "x"}}
        assert config.timeout == 5
        assert config.extra == {"verify": False}

    def test_is_frozen(self):
        config = build_request_config("GET", "/company")
        with pytest.raises(AttributeError):
            config.method = "POST"  # type: ignore

    def test_empty_method_is_rejected(self):
        with pytest.raises(AssertionError, match="method cannot be empty"):
            build_request_config("", "/company")

    def test_returns_request_config(self):
        assert isinstance(build_request_config("GET", "/company"), RequestConfig)


class TestBuildRequestOptions:
    """Tests for build_request_options()."""

    def test_empty_options(self):
        assert build_request_options(None) == {}
        assert build_request_options({}) == {}

    def test_keeps_only_supported_truthy_entries(self):
        token = CancellationToken()
        options = build_request_options({
            "signal": token,
            "auth_token": "t",
            "idempotency_key": "",
            "bogus": 1,  # type: ignore[typeddict-unknown-key]
        })
        assert options == {"signal": token, "auth_token": "t"}

    def test_explicit_false_use_rate_limiter_survives(self):
        assert build_request_options({"use_rate_limiter": False}) == {"use_rate_limiter": False}


class TestUserScopedOptions:
    """Tests for split_user_scoped_options() and user_context_headers()."""

    def test_split_none(self):
        assert split_user_scoped_options(None) == (None, None)

    def test_split_extracts_user_context(self):
        request_options, user_context = split_user_scoped_options(
            {"auth_token": "t", "user_context": "jane@example.com"}
        )
        assert request_options == {"auth_token": "t"}
        assert user_context == "jane@example.com"

    def test_user_context_headers(self):
        assert user_context_headers("jane@example.com") == {"X-CompanyCam-User": "jane@example.com"}
        assert user_context_headers(None) is None


class TestCleanQueryParameters:
    """Tests for clean_query_parameters()."""

    def test_drops_none_values(self):
        assert clean_query_parameters({"page": 1, "per_page": None, "query": "x"}) == {"page": 1, "query": "x"}

    def test_keeps_falsy_non_none_values(self):
        assert clean_query_parameters({"page": 0, "query": ""}) == {"page": 0, "query": ""}

    def test_returns_none_when_nothing_remains(self):
        assert clean_query_parameters(None) is None
        assert clean_query_parameters({}) is None
        assert clean_query_parameters({"page": None}) is None


class TestEncodePathParam:
    """Tests for encode_path_param()."""

    def test_escapes_reserved_characters(self):
        assert encode_path_param("user/email@example.com") == "user%2Femail%40example.com"

    def test_escapes_spaces_and_query_characters(self):
        assert encode_path_param("a b?c#d&e") == "a%20b%3Fc%23d%26e"

    def test_keeps_unreserved_marks(self):
        assert encode_path_param("A-z_0.9!~*'()") == "A-z_0.9!~*'()"

    def test_round_trips_through_unquote(self):
        value = "user/email@example.com"
        assert unquote(encode_path_param(value)) == value

    def test_accepts_integers(self):
        assert encode_path_param(42) == "42"
