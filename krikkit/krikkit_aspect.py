"""
Aspect construction and dispatch, plus the synthetic aspects derived from
grammar shape (binding-form, sequence-of, namespace).
"""
from typing import Any, Callable, Optional

from krikkit.krikkit_datatypes import (
    Aspect, AspectFunction, MissingRunner, RUNNER_KEY, NAMESPACE_PREFIX
)
from krikkit.krikkit_frame import Frame, extend, resolve


def aspect(key: str, apply: Optional[AspectFunction] = None, *, resolves: bool = True):
    """Builds an Aspect for `key`.

    Without `apply` it returns a decorator, so an aspect function can be
    declared in place:

        @aspect('transform')
        def transform(value, frame): ...
    """
    if apply is None:
        def decorator(fn: AspectFunction) -> Aspect:
            return Aspect(key, fn, resolves)
        return decorator
    return Aspect(key, apply, resolves)


def apply_aspect(target: Aspect, value: Any, scope: Frame) -> Frame:
    """Invokes an aspect. The value is passed through untouched."""
    out = target.apply(value, scope)
    if not isinstance(out, Frame):
        raise TypeError(
            f"aspect {target.key!r} must return a Frame, not {type(out).__name__}"
        )
    return out


# -----------------------------------------------------------------
# Synthetic aspects
# -----------------------------------------------------------------

def binding_form_aspect(key: str) -> Aspect:
    """Resolves the value and pushes it as a new child scope."""
    def bind_form(value, scope: Frame) -> Frame:
        return extend(scope, resolve(value, scope))
    bind_form.__name__ = f"binding_form[{key}]"
    # Resolution happens inside apply so direct calls behave the same.
    return Aspect(key, bind_form, resolves=False)


def sequence_aspect(key: str) -> Aspect:
    """Runs each sub-program in order through the frame's '@runner'."""
    def run_sequence(value, scope: Frame) -> Frame:
        runner: Optional[Callable[[Any, Frame], Frame]] = scope.get(RUNNER_KEY)
        if runner is None:
            raise MissingRunner(key)
        current = scope
        for sub_program in value:
            current = runner(sub_program, current)
        return current
    run_sequence.__name__ = f"sequence_of[{key}]"
    return Aspect(key, run_sequence, resolves=False)


def namespace_aspect(key: str) -> Aspect:
    """Exposes the raw value verbatim under '@<key>' in a child scope."""
    name = f"{NAMESPACE_PREFIX}{key}"

    def bind_namespace(value, scope: Frame) -> Frame:
        return extend(scope, {name: value})
    bind_namespace.__name__ = f"namespace[{key}]"
    return Aspect(key, bind_namespace, resolves=False)
