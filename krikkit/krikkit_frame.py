"""
Frames: the chained, copy-on-write binding environment, and value resolution.
"""
import collections.abc
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional

from krikkit.krikkit_datatypes import PathNotFound, UnresolvedReference, Sentinel

_NOT_FOUND = Sentinel('not-found')


# -----------------------------------------------------------------
# Path helpers over plain nested structures
# -----------------------------------------------------------------

def split_path(path: str) -> List[str]:
    if not isinstance(path, str):
        raise TypeError(f"Frame path must be a str, not {type(path)}")
    return path.split('.')


def _is_sequence(obj) -> bool:
    return isinstance(obj, (list, tuple))


def _get_in(container: Any, parts: List[str]) -> Any:
    """Walks `parts` through mappings (by key) and lists/tuples (by index)."""
    current = container
    for part in parts:
        if isinstance(current, collections.abc.Mapping):
            if part not in current:
                return _NOT_FOUND
            current = current[part]
        elif _is_sequence(current):
            if not part.isdigit() or int(part) >= len(current):
                return _NOT_FOUND
            current = current[int(part)]
        else:
            return _NOT_FOUND
    return current


def _set_in(container: Any, parts: List[str], value: Any) -> Any:
    """Returns a copy of `container` with `value` at `parts`.

    Only the containers along the path are copied; every other branch is
    shared with the input. The path must already exist.
    """
    head, rest = parts[0], parts[1:]
    if isinstance(container, collections.abc.Mapping):
        out = dict(container)
        out[head] = _set_in(container[head], rest, value) if rest else value
        return out
    items = list(container)
    index = int(head)
    items[index] = _set_in(items[index], rest, value) if rest else value
    return tuple(items) if isinstance(container, tuple) else items


def _plain(value: Any) -> Any:
    """Fresh plain-dict/list copy of a nested structure; leaves are shared."""
    if isinstance(value, collections.abc.Mapping):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def _deep_merge(base: Dict[str, Any], top: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for key, val in top.items():
        if isinstance(val, collections.abc.Mapping) and isinstance(out.get(key), dict):
            out[key] = _deep_merge(out[key], val)
        else:
            out[key] = _plain(val)
    return out


# =================================================================
# Frame
# =================================================================

class Frame:
    """A scope in a singly-linked chain of scopes.

    Each frame owns a local binding set and an optional parent. Lookups
    walk the chain towards the root. The local binding set is never edited
    in place: `bind` and `provide` install a new mapping, so anyone holding
    the previous one (through `bindings`) keeps seeing it unchanged.
    """
    def __init__(self, parent: Optional['Frame'] = None):
        self._parent = parent
        self._bindings: Dict[str, Any] = {}

    @property
    def parent(self) -> Optional['Frame']:
        return self._parent

    @property
    def bindings(self) -> Mapping[str, Any]:
        """Read-only view of this frame's local binding set."""
        return MappingProxyType(self._bindings)

    def chain(self) -> Iterator['Frame']:
        """Yields this frame, then each ancestor up to the root."""
        current: Optional[Frame] = self
        while current is not None:
            yield current
            current = current._parent

    # --- Lookup ---

    def resolve(self, path: str) -> Any:
        """Returns the value at a dot-separated path, nearest frame first."""
        parts = split_path(path)
        for f in self.chain():
            val = _get_in(f._bindings, parts)
            if val is not _NOT_FOUND:
                return val
        raise UnresolvedReference(path)

    def get(self, path: str, default: Any = None) -> Any:
        """Like `resolve`, returning `default` instead of raising."""
        try:
            return self.resolve(path)
        except UnresolvedReference:
            return default

    def owner(self, path: str) -> Optional['Frame']:
        """Finds the frame in the chain whose local bindings hold `path`."""
        parts = split_path(path)
        for f in self.chain():
            if _get_in(f._bindings, parts) is not _NOT_FOUND:
                return f
        return None

    def __contains__(self, path: Any) -> bool:
        if not isinstance(path, str):
            return False
        return self.owner(path) is not None

    # --- Structure ---

    def bind(self, bindings: Mapping[str, Any]) -> 'Frame':
        """Merges top-level names into the local bindings; last write wins."""
        if not isinstance(bindings, collections.abc.Mapping):
            raise TypeError(f"bind expects a mapping, not {type(bindings).__name__}")
        merged = dict(self._bindings)
        for key, val in bindings.items():
            if not isinstance(key, str):
                raise TypeError(f"Frame key must be a str, not {type(key)}")
            merged[key] = val
        self._bindings = merged
        return self

    def extend(self) -> 'Frame':
        """Returns a new, empty child scope of this frame."""
        return Frame(parent=self)

    def return_(self) -> Optional['Frame']:
        """Returns the parent frame, or None for the root."""
        return self._parent

    def provide(self, path: str, value: Any) -> None:
        """Overwrites an existing slot in the nearest frame that owns `path`.

        Never declares a new name; use `bind` for that.
        """
        target = self.owner(path)
        if target is None:
            raise PathNotFound(path)
        target._bindings = _set_in(target._bindings, split_path(path), value)

    @property
    def value(self) -> Dict[str, Any]:
        """The effective view of the whole chain as plain nested dicts.

        Nested mappings are merged deeply; the nearer frame wins on
        conflicts. Writing to the result does not affect any frame.
        """
        out: Dict[str, Any] = {}
        for f in reversed(list(self.chain())):
            out = _deep_merge(out, f._bindings)
        return out

    def __repr__(self) -> str:
        keys = ', '.join(self._bindings.keys())
        parent_id = f", parent=#{id(self._parent)}" if self._parent else ""
        return f"<Frame bindings=[{keys}]{parent_id}>"


# =================================================================
# Module-level helpers
# =================================================================

def frame(bindings: Optional[Mapping[str, Any]] = None) -> Frame:
    """Creates a root frame with optional initial bindings."""
    f = Frame()
    if bindings:
        f.bind(bindings)
    return f


def extend(parent: Frame, bindings: Mapping[str, Any]) -> Frame:
    """Shorthand for `parent.extend().bind(bindings)`."""
    return parent.extend().bind(bindings)


def resolve(value: Any, scope: Frame) -> Any:
    """Resolves every string inside `value` as a path against `scope`.

    Lists, tuples and mappings are rebuilt with resolved members; any other
    value (numbers, booleans, None, callables) is returned unchanged.
    """
    if isinstance(value, str):
        return scope.resolve(value)
    if isinstance(value, list):
        return [resolve(v, scope) for v in value]
    if isinstance(value, tuple):
        return tuple(resolve(v, scope) for v in value)
    if isinstance(value, collections.abc.Mapping):
        return {k: resolve(v, scope) for k, v in value.items()}
    return value
