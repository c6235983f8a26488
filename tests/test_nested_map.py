import pytest

from oxima.core.errors import InvalidKeyPathError
from oxima.core.nested_map import MISSING, get_nested, set_nested, split_key_path


def test_get_walks_nested_mappings():
    tree = {"app": {"api": {"url": "http://x"}}}
    assert get_nested(tree, "app.api.url") == "http://x"
    assert get_nested(tree, "app.api") == {"url": "http://x"}


def test_get_returns_stored_none():
    assert get_nested({"app": {"token": None}}, "app.token") is None


def test_get_missing_when_intermediate_is_none_or_scalar():
    tree = {"a": None, "b": 3, "c": [1, 2]}
    assert get_nested(tree, "a.x") is MISSING
    assert get_nested(tree, "b.x") is MISSING
    assert get_nested(tree, "c.0") is MISSING
    assert get_nested(tree, "d") is MISSING


def test_get_does_not_mutate():
    tree = {"a": {}}
    get_nested(tree, "a.b.c")
    assert tree == {"a": {}}


def test_set_creates_intermediate_mappings():
    tree = {}
    set_nested(tree, "app.api.url", "http://x")
    assert tree == {"app": {"api": {"url": "http://x"}}}


def test_set_overwrites_non_mapping_intermediate():
    tree = {"app": {"api": "legacy"}}
    set_nested(tree, "app.api.url", "http://x")
    assert tree == {"app": {"api": {"url": "http://x"}}}


def test_set_replaces_subtree_at_terminal():
    tree = {"app": {"api": {"url": "http://x", "timeout": 3}}}
    set_nested(tree, "app.api", 7)
    assert tree == {"app": {"api": 7}}


@pytest.mark.parametrize("path,value", [("a", 1), ("a.b", None), ("a.b.c", {"d": [1]}), ("x.y", "s")])
def test_set_then_get_returns_value(path, value):
    tree = {"a": 0}
    set_nested(tree, path, value)
    assert get_nested(tree, path) == value


@pytest.mark.parametrize("path", ["", ".", "a.", ".a", "a..b", None, 3])
def test_invalid_key_paths_rejected(path):
    with pytest.raises(InvalidKeyPathError):
        split_key_path(path)
    with pytest.raises(InvalidKeyPathError):
        set_nested({}, path, 1)


def test_invalid_key_path_is_value_error():
    with pytest.raises(ValueError):
        get_nested({}, "a..b")


def test_missing_is_falsy_singleton():
    assert not MISSING
    assert type(MISSING)() is MISSING


def test_non_ascii_key_paths_rejected():
    with pytest.raises(InvalidKeyPathError):
        split_key_path("app.café")
    with pytest.raises(InvalidKeyPathError):
        get_nested({"app": {"café": 1}}, "app.café")
