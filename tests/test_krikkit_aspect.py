import pytest

from krikkit.krikkit_aspect import (
    aspect, apply_aspect, binding_form_aspect, sequence_aspect, namespace_aspect
)
from krikkit.krikkit_datatypes import Aspect, MissingRunner, RUNNER_KEY, UnresolvedReference
from krikkit.krikkit_frame import frame


def test_aspect_factory_and_decorator():
    fn = lambda value, scope: scope
    a = aspect("k", fn)
    assert isinstance(a, Aspect)
    assert a.key == "k" and a.apply is fn and a.resolves

    @aspect("other", resolves=False)
    def other(value, scope):
        return scope
    assert isinstance(other, Aspect)
    assert other.key == "other"
    assert other.resolves is False

def test_aspect_key_must_be_string():
    with pytest.raises(TypeError):
        Aspect(1, lambda v, f: f)

def test_aspect_equality_and_repr():
    fn = lambda value, scope: scope
    assert aspect("k", fn) == aspect("k", fn)
    assert aspect("k", fn) != aspect("j", fn)
    assert "'k'" in repr(aspect("k", fn))

def test_apply_aspect_passes_value_unchanged():
    seen = []

    def record(value, scope):
        seen.append(value)
        return scope
    f = frame()
    payload = {"anything": ["goes", 1]}
    assert apply_aspect(aspect("k", record), payload, f) is f
    assert seen[0] is payload

def test_apply_aspect_requires_a_frame_back():
    with pytest.raises(TypeError):
        apply_aspect(aspect("k", lambda v, f: None), 1, frame())

def test_aspect_errors_propagate_unchanged():
    class Boom(Exception):
        pass

    def explode(value, scope):
        raise Boom("x")
    with pytest.raises(Boom):
        apply_aspect(aspect("k", explode), 1, frame())

# --- binding-form ---

def test_binding_form_resolves_and_extends():
    root = frame({"cfg": {"n": 3}})
    out = apply_aspect(binding_form_aspect("let"), {"n": "cfg.n"}, root)
    assert out.parent is root
    assert out.resolve("n") == 3
    assert "n" not in root.bindings

def test_binding_form_takes_raw_values():
    assert binding_form_aspect("let").resolves is False

def test_binding_form_unresolved_reference():
    with pytest.raises(UnresolvedReference):
        apply_aspect(binding_form_aspect("let"), {"n": "nope"}, frame())

# --- sequence-of ---

def test_sequence_requires_runner():
    with pytest.raises(MissingRunner) as ei:
        apply_aspect(sequence_aspect("steps"), [{}], frame())
    assert ei.value.key == "steps"

def test_sequence_folds_left_to_right():
    calls = []

    def runner(sub, scope):
        calls.append(sub)
        return scope.extend().bind({"last": sub})
    root = frame({RUNNER_KEY: runner})
    out = apply_aspect(sequence_aspect("steps"), ["a", "b", "c"], root)
    assert calls == ["a", "b", "c"]
    assert out.resolve("last") == "c"
    assert out.parent.resolve("last") == "b"

def test_sequence_empty_list_returns_same_frame():
    root = frame({RUNNER_KEY: lambda sub, scope: scope})
    assert apply_aspect(sequence_aspect("steps"), [], root) is root

# --- namespace ---

def test_namespace_exposes_raw_value():
    root = frame()
    raw = {"math": {"double": "x * 2"}}
    out = apply_aspect(namespace_aspect("config"), raw, root)
    assert out.resolve("@config.math.double") == "x * 2"
    assert out.resolve("@config") is raw
    with pytest.raises(UnresolvedReference):
        out.resolve("math")
    assert namespace_aspect("config").resolves is False
