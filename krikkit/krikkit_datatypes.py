"""
Defines the core data types shared by the krikkit engine.

This module provides the error hierarchy, the grammar markers used to
describe a language's shape, and the small value types (Aspect, Program,
Sentinel) that the frame, language and runtime modules pass around.
"""

from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from krikkit.krikkit_frame import Frame
    from krikkit.krikkit_language import Language


# =================================================================
# Errors
# =================================================================

class KrikkitError(Exception):
    """Base class for all errors raised by the engine."""
    pass


class PathNotFound(KrikkitError, KeyError):
    """Raised by `provide` when no frame in the chain owns the path."""
    def __init__(self, path: str):
        super().__init__(path)
        self.path = path

    def __str__(self) -> str:
        return f"path not found in any frame: {self.path!r}"


class UnresolvedReference(KrikkitError, KeyError):
    """Raised by `resolve` when no frame in the chain holds the path."""
    def __init__(self, path: str):
        super().__init__(path)
        self.path = path

    def __str__(self) -> str:
        return f"unresolved reference: {self.path!r}"


class MissingRunner(KrikkitError):
    """Raised when a sequence aspect fires without '@runner' in the frame."""
    def __init__(self, key: str):
        super().__init__(f"'@runner' is not bound; cannot run sequence {key!r}")
        self.key = key


class LanguageError(KrikkitError, ValueError):
    """Raised when a language definition is inconsistent."""
    pass


class ExpressionError(KrikkitError, ValueError):
    """Raised when an expression string cannot be compiled."""
    def __init__(self, expression: str, message: str):
        super().__init__(f"{message} in expression {expression!r}")
        self.expression = expression


# =================================================================
# Grammar markers
# =================================================================

BINDING_FORM = 'binding-form'
SEQUENCE_OF = 'sequence-of'
NAMESPACE = 'namespace'
VALUE_REFERENCE = 'value-reference'
ARG_LIST = 'arg-list'

LEAF_MARKERS = (BINDING_FORM, NAMESPACE, VALUE_REFERENCE, ARG_LIST)

# Reserved frame names
RUNNER_KEY = '@runner'
NAMESPACE_PREFIX = '@'


def sequence_of(grammar: Dict[str, Any]) -> List[Any]:
    """Wraps a nested grammar as a sequence-of term: `[SEQUENCE_OF, grammar]`."""
    return [SEQUENCE_OF, grammar]


# =================================================================
# Core Runtime Types
# =================================================================

AspectFunction = Callable[[Any, 'Frame'], 'Frame']


class Aspect:
    """A named transformation `(value, frame) -> frame`.

    The engine dispatches on `key` alone and never inspects the value it
    hands to `apply`; each aspect interprets its own value. `resolves`
    controls whether the run loop resolves the value against the frame
    first (synthetic sequence and namespace aspects take raw data).
    """
    def __init__(self, key: str, apply: AspectFunction, resolves: bool = True):
        if not isinstance(key, str):
            raise TypeError(f"Aspect key must be a str, not {type(key)}")
        self.key = key
        self.apply = apply
        self.resolves = resolves

    def __repr__(self) -> str:
        name = getattr(self.apply, '__name__', '<callable>')
        raw = "" if self.resolves else ", raw"
        return f"<Aspect {self.key!r} -> {name}{raw}>"

    def __eq__(self, other):
        if not isinstance(other, Aspect):
            return NotImplemented
        return (self.key == other.key and self.apply is other.apply
                and self.resolves == other.resolves)

    def __hash__(self):
        return hash((self.key, id(self.apply)))


class Program:
    """Program data paired with the Language it is interpreted under."""
    def __init__(self, data: Dict[str, Any], language: 'Language'):
        self.program = data
        self.language = language

    def __repr__(self) -> str:
        keys = ', '.join(self.program.keys())
        return f"<Program keys=[{keys}] language=#{id(self.language)}>"

    def __eq__(self, other):
        if not isinstance(other, Program):
            return NotImplemented
        return self.program == other.program and self.language is other.language


class Sentinel:
    """A named marker value, compared by identity."""
    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"<{self.name}>"


def program(data: Optional[Dict[str, Any]], language: 'Language') -> Program:
    """Pairs program data with a language. No validation is performed."""
    return Program(data if data is not None else {}, language)
