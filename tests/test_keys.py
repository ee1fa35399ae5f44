"""Tests for cache key derivation."""

from __future__ import annotations

from proxy_cache.utils.keys import make_key, make_typed_key


def test_make_key_joins_method_and_args():
    """Test the key is the method name and arguments joined by colons."""
    assert make_key("fetch_user", [1, "eu", None]) == "fetch_user:1:eu:None"


def test_make_key_without_args():
    """Test a call with no arguments keys on the method name alone."""
    assert make_key("list_users", []) == "list_users"


def test_make_key_is_order_sensitive():
    """Test swapping arguments gives a different key."""
    assert make_key("m", [1, 2]) != make_key("m", [2, 1])


def test_make_key_conflates_types():
    """Test numeric and text arguments that print the same share a key."""
    assert make_key("m", [1]) == make_key("m", ["1"])


def test_make_key_separator_collision():
    """Test an argument containing the separator collides with two arguments."""
    assert make_key("m", ["a:b"]) == make_key("m", ["a", "b"])


def test_make_key_appends_sorted_kwargs():
    """Test keyword arguments follow the positional ones in name order."""
    key = make_key("search", ["bob"], {"limit": 10, "active": True})
    assert key == "search:bob:active=True:limit=10"
    assert key == make_key("search", ["bob"], {"active": True, "limit": 10})


def test_make_typed_key_separates_types():
    """Test the typed scheme keeps 1 and '1' apart."""
    assert make_typed_key("m", [1]) != make_typed_key("m", ["1"])


def test_make_typed_key_separates_boundaries():
    """Test the typed scheme keeps 'a:b' and ('a', 'b') apart."""
    assert make_typed_key("m", ["a:b"]) != make_typed_key("m", ["a", "b"])


def test_make_typed_key_is_deterministic():
    """Test identical calls produce identical typed keys, kwargs order aside."""
    first = make_typed_key("m", [1, "x"], {"b": 2, "a": 1})
    second = make_typed_key("m", [1, "x"], {"a": 1, "b": 2})
    assert first == second
    assert first.startswith('["m",')
