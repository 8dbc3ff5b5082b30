"""Unit tests for query serialization."""
from bizberry_sdk.services.params import normalize_query, query_pairs, querify


def test_querify_repeats_list_keys():
    assert querify({"ids": [1, 2], "q": "blue"}) == "ids=1&ids=2&q=blue"


def test_querify_formats_booleans_and_skips_none():
    assert querify({"active": True, "deleted": False, "page": None}) == "active=true&deleted=false"


def test_querify_escapes_values():
    assert querify({"q": "a b&c"}) == "q=a+b%26c"


def test_querify_empty():
    assert querify(None) == ""
    assert querify({}) == ""


def test_query_pairs_keeps_insertion_order():
    assert query_pairs({"b": 1, "a": (2, None, 3)}) == [("b", "1"), ("a", "2"), ("a", "3")]


def test_normalize_query_sorts_pairs():
    assert normalize_query("b=2&a=1&a=0") == "a=0&a=1&b=2"
    assert normalize_query("") == ""
    assert normalize_query("flag=") == "flag="
