# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

from datetime import timedelta

import pytest

from skyhook.errors import ConfigurationError
from skyhook.hooks import Hooks
from skyhook.http.retry import RetryPolicy
from skyhook.options import NormalizedOptions, default_options, merge_options
from skyhook.signals import Signal


def test_merge_defaults_when_nothing_given():
    options = merge_options()
    assert isinstance(options, NormalizedOptions)
    assert options.method == "GET"
    assert options.timeout == 10.0
    assert options.retry.limit == 2
    assert options.throw_on_http_error is True
    assert dict(options.headers) == {}


def test_merge_scalars_last_wins():
    options = merge_options({"method": "post", "prefix_url": "https://a"}, {"prefix_url": "https://b"})
    assert options.method == "POST"
    assert options.prefix_url == "https://b"


def test_merge_headers_case_insensitive_and_none_removes():
    options = merge_options(
        {"headers": {"X-Token": "a", "Accept": "text/plain"}},
        {"headers": {"x-token": "b", "ACCEPT": None}},
    )
    assert dict(options.headers) == {"x-token": "b"}


def test_merge_does_not_mutate_inputs():
    base = {"headers": {"X-One": "1"}}
    override = {"headers": {"X-Two": "2"}}
    merge_options(base, override)
    assert base == {"headers": {"X-One": "1"}}
    assert override == {"headers": {"X-Two": "2"}}


def test_merged_headers_are_read_only():
    options = merge_options({"headers": {"a": "1"}})
    with pytest.raises(TypeError):
        options.headers["b"] = "2"  # type: ignore[index]


def test_search_params_are_replaced_not_merged():
    options = merge_options({"search_params": {"a": 1}}, {"search_params": {"b": True}})
    assert options.search_params == (("b", "true"),)


def test_hooks_concatenate_parent_first():
    calls = []

    def first(ctx):
        calls.append("first")

    def second(ctx):
        calls.append("second")

    options = merge_options({"hooks": {"before_request": [first]}}, {"hooks": {"before_request": second}})
    assert options.hooks.before_request == (first, second)


def test_retry_int_only_sets_limit():
    policy = RetryPolicy(limit=1, status_codes={500}, backoff_factor=0.0)
    options = merge_options({"retry": policy}, {"retry": 5})
    assert options.retry.limit == 5
    assert options.retry.status_codes == frozenset({500})
    assert options.retry.backoff_factor == 0.0


def test_retry_mapping_replaces_policy():
    options = merge_options({"retry": {"limit": 4, "methods": ["post"]}}, {"retry": {"limit": 1}})
    assert options.retry.limit == 1
    assert "POST" not in options.retry.methods


def test_timeout_forms():
    assert merge_options({"timeout": False}).timeout is None
    assert merge_options({"timeout": timedelta(milliseconds=250)}).timeout == 0.25
    assert merge_options({"timeout": 3}).timeout == 3.0


def test_effective_retry_defaults_max_retry_after_to_timeout():
    options = merge_options({"timeout": 4})
    assert options.retry.max_retry_after is None
    assert options.effective_retry.max_retry_after == 4.0
    assert merge_options({"timeout": False}).effective_retry.max_retry_after is None


def test_normalized_options_as_base():
    parent = merge_options({"prefix_url": "https://api.test", "headers": {"a": "1"}})
    child = merge_options(parent, {"headers": {"b": "2"}})
    assert child.prefix_url == "https://api.test"
    assert dict(child.headers) == {"a": "1", "b": "2"}
    assert dict(parent.headers) == {"a": "1"}


def test_json_and_body_replace_each_other():
    options = merge_options({"body": "raw"}, {"json": {"a": 1}})
    assert options.json == {"a": 1}
    assert options.body is None


@pytest.mark.parametrize(
    "partial",
    [
        {"unknown": 1},
        {"json": {"a": 1}, "body": "b"},
        {"timeout": -1},
        {"timeout": "soon"},
        {"retry": "many"},
        {"retry": {"limit": -1}},
        {"retry": {"nope": 1}},
        {"hooks": {"before_everything": []}},
        {"hooks": {"before_request": ["not callable"]}},
        {"signal": object()},
        {"fetch": "not callable"},
        {"method": ""},
        {"throw_on_http_error": "yes"},
        {"search_params": [("only-one",)]},
    ],
)
def test_invalid_options_raise_configuration_error(partial):
    with pytest.raises(ConfigurationError):
        merge_options(partial)


def test_signal_option_is_kept():
    signal = Signal()
    assert merge_options({"signal": signal}).signal is signal


def test_default_options_follow_env(monkeypatch):
    monkeypatch.setenv("SKYHOOK_HTTP_TIMEOUT", "0")
    monkeypatch.setenv("SKYHOOK_HTTP_RETRIES", "5")
    options = default_options()
    assert options.timeout is None
    assert options.retry.limit == 5
    assert isinstance(options.hooks, Hooks)
