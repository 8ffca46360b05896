import pytest

from krikkit.krikkit_frame import Frame, frame, extend, resolve
from krikkit.krikkit_datatypes import PathNotFound, UnresolvedReference

# --- Resolution ---

def test_resolve_nested_path():
    root = frame({"a": {"b": {"c": 5}}})
    assert root.resolve("a.b.c") == 5
    assert root.resolve("a.b") == {"c": 5}

def test_resolve_missing_path_raises_at_root_and_in_children():
    root = frame({"a": {"b": {"c": 5}}})
    child = root.extend().extend()
    with pytest.raises(UnresolvedReference) as ei:
        root.resolve("a.b.x")
    assert ei.value.path == "a.b.x"
    with pytest.raises(UnresolvedReference):
        child.resolve("a.b.x")
    # Also a KeyError, for callers that treat frames like mappings
    with pytest.raises(KeyError):
        child.resolve("nope")

def test_resolve_through_parent_chain():
    root = frame({"x": 1})
    child = root.extend().bind({"y": 2})
    grandchild = child.extend()
    assert grandchild.resolve("x") == 1
    assert grandchild.resolve("y") == 2

def test_resolve_indexes_into_lists():
    root = frame({"items": [{"name": "a"}, {"name": "b"}]})
    assert root.resolve("items.1.name") == "b"
    with pytest.raises(UnresolvedReference):
        root.resolve("items.2.name")
    with pytest.raises(UnresolvedReference):
        root.resolve("items.first")

def test_resolve_does_not_descend_into_scalars():
    root = frame({"a": 5})
    with pytest.raises(UnresolvedReference):
        root.resolve("a.b")

def test_resolve_stored_none_is_found():
    root = frame({"a": None})
    assert root.resolve("a") is None
    assert "a" in root

def test_get_and_contains():
    root = frame({"a": {"b": 1}})
    child = root.extend()
    assert child.get("a.b") == 1
    assert child.get("a.z") is None
    assert child.get("a.z", 7) == 7
    assert "a.b" in child
    assert "a.z" not in child
    assert 123 not in child

def test_non_string_path_is_a_type_error():
    with pytest.raises(TypeError):
        frame().resolve(42)

# --- Scoping ---

def test_extend_then_bind_does_not_alter_parent():
    root = frame({"x": 0})
    child = root.extend().bind({"x": 1})
    assert child.resolve("x") == 1
    assert root.resolve("x") == 0

def test_extend_bind_unbound_name_stays_local():
    root = frame()
    child = root.extend().bind({"x": 1})
    assert child.resolve("x") == 1
    with pytest.raises(UnresolvedReference):
        root.resolve("x")

def test_extend_starts_empty_and_return_gives_parent():
    root = frame({"x": 1})
    child = root.extend()
    assert dict(child.bindings) == {}
    assert child.return_() is root
    assert child.parent is root
    assert root.return_() is None

def test_bind_is_shallow_last_write_wins():
    f = frame({"a": {"b": 1}, "c": 1})
    f.bind({"a": {"d": 2}})
    f.bind({"c": 2})
    assert f.resolve("a") == {"d": 2}
    assert f.resolve("c") == 2

def test_bind_returns_frame_for_chaining():
    f = Frame()
    assert f.bind({"a": 1}) is f

def test_bind_rejects_non_mappings_and_non_string_keys():
    with pytest.raises(TypeError):
        frame().bind([("a", 1)])
    with pytest.raises(TypeError):
        frame().bind({1: "a"})

def test_bindings_view_is_read_only():
    f = frame({"a": 1})
    with pytest.raises(TypeError):
        f.bindings["a"] = 2

def test_extend_helper():
    root = frame({"a": 1})
    child = extend(root, {"b": 2})
    assert child.parent is root
    assert child.resolve("b") == 2

# --- provide ---

def test_provide_writes_to_owning_ancestor():
    root = frame({"x": 1})
    child = root.extend()
    child.provide("x", 2)
    assert root.resolve("x") == 2
    assert "x" not in child.bindings

def test_provide_targets_nearest_owner():
    root = frame({"x": 1})
    middle = root.extend().bind({"x": 10})
    leaf = middle.extend()
    leaf.provide("x", 20)
    assert middle.resolve("x") == 20
    assert root.resolve("x") == 1

def test_provide_nested_path():
    root = frame({"cfg": {"db": {"port": 1}, "name": "n"}})
    root.extend().provide("cfg.db.port", 2)
    assert root.resolve("cfg.db.port") == 2
    assert root.resolve("cfg.name") == "n"

def test_provide_unbound_path_raises():
    root = frame({"x": 1})
    child = root.extend()
    with pytest.raises(PathNotFound) as ei:
        child.provide("y", 2)
    assert ei.value.path == "y"
    with pytest.raises(PathNotFound):
        child.provide("x.deeper", 2)

def test_provide_replaces_binding_set_instead_of_editing_it():
    inner = {"port": 1}
    root = frame({"cfg": inner})
    before = root.bindings
    snapshot = dict(before)
    root.provide("cfg.port", 2)
    assert snapshot["cfg"] is inner
    assert inner == {"port": 1}
    assert before["cfg"] == {"port": 1}
    assert root.resolve("cfg.port") == 2

def test_provide_into_list_element():
    root = frame({"items": [1, 2, 3]})
    root.provide("items.1", 20)
    assert root.resolve("items") == [1, 20, 3]

# --- value ---

def test_value_deep_merges_three_level_chain():
    root = frame({"a": {"x": 1, "y": 1}, "only_root": True, "shared": "root"})
    middle = root.extend().bind({"a": {"y": 2, "z": 2}, "shared": "middle"})
    leaf = middle.extend().bind({"a": {"z": 3}, "only_leaf": [1]})
    leaf.provide("only_root", False)

    assert leaf.value == {
        "a": {"x": 1, "y": 2, "z": 3},
        "only_root": False,
        "shared": "middle",
        "only_leaf": [1],
    }
    assert middle.value == {
        "a": {"x": 1, "y": 2, "z": 2},
        "only_root": False,
        "shared": "middle",
    }

def test_value_is_a_detached_projection():
    root = frame({"a": {"b": 1}})
    view = root.value
    view["a"]["b"] = 99
    assert root.resolve("a.b") == 1

def test_repr_lists_local_keys():
    root = frame({"a": 1})
    assert repr(root) == "<Frame bindings=[a]>"
    assert "parent=#" in repr(root.extend())

# --- Value resolution ---

def test_resolve_value_is_structure_preserving():
    f = frame({"cfg": {"n": 3}, "name": "bob"})
    fn = lambda x: x
    value = {"a": ["cfg.n", {"b": "name"}], "c": 4, "d": None, "e": True, "f": fn, "g": ("name",)}
    out = resolve(value, f)
    assert out == {"a": [3, {"b": "bob"}], "c": 4, "d": None, "e": True, "f": fn, "g": ("bob",)}
    # Input left untouched
    assert value["a"][0] == "cfg.n"

def test_resolve_value_missing_reference_raises():
    with pytest.raises(UnresolvedReference):
        resolve({"a": ["missing"]}, frame())
