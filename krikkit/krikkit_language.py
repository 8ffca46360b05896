"""
Language definitions: the grammar walk that derives synthetic aspects, and
the aspect table and execution order built from it.
"""
import collections.abc
import logging
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from krikkit.krikkit_datatypes import (
    Aspect, LanguageError,
    BINDING_FORM, SEQUENCE_OF, NAMESPACE, LEAF_MARKERS,
)
from krikkit.krikkit_aspect import binding_form_aspect, sequence_aspect, namespace_aspect

logger = logging.getLogger(__name__)


class Language:
    """A declared little language.

    `aspects` maps each key to the Aspect that consumes it (the binding key
    is never in it; its aspect lives in `binding_aspect`). `aspect_order`
    is the fixed sequence in which aspects fire during a run.
    """
    def __init__(self,
                 allowed_keys: Tuple[str, ...],
                 binding_key: str,
                 grammar: Mapping[str, Any],
                 aspects: Dict[str, Aspect],
                 aspect_order: Tuple[str, ...],
                 explicit_aspects: Tuple[Aspect, ...] = (),
                 binding_index: int = 0):
        self.allowed_keys = allowed_keys
        self.binding_key = binding_key
        self.grammar = grammar
        self.aspects: Mapping[str, Aspect] = MappingProxyType(dict(aspects))
        self.aspect_order = aspect_order
        self.binding_aspect = binding_form_aspect(binding_key)
        self.binding_index = binding_index
        self.explicit_aspects = explicit_aspects

    def execution_steps(self) -> List[Tuple[str, Aspect]]:
        """The (key, aspect) pairs a run walks through, in order.

        The binding key fires right after the namespace aspects, so its
        values may refer to namespaced data.
        """
        steps = [(key, self.aspects[key]) for key in self.aspect_order]
        steps.insert(self.binding_index, (self.binding_key, self.binding_aspect))
        return steps

    def __repr__(self) -> str:
        order = ', '.join(self.aspect_order)
        return f"<Language binding={self.binding_key!r} order=[{order}]>"


# -----------------------------------------------------------------
# Grammar walk
# -----------------------------------------------------------------

def _marker_of(term: Any) -> Optional[str]:
    if isinstance(term, str):
        if term not in LEAF_MARKERS:
            raise LanguageError(f"Unknown grammar marker: {term!r}")
        return term
    if isinstance(term, (list, tuple)) and len(term) == 2 and term[0] == SEQUENCE_OF:
        return SEQUENCE_OF
    return None


def _walk(grammar: Any, found: Dict[str, str]):
    if isinstance(grammar, (list, tuple)):
        for term in grammar:
            if isinstance(term, (collections.abc.Mapping, list, tuple)):
                _walk(term, found)
        return
    if not isinstance(grammar, collections.abc.Mapping):
        return
    for key, term in grammar.items():
        marker = _marker_of(term)
        if marker is not None:
            previous = found.setdefault(key, marker)
            if previous != marker:
                raise LanguageError(
                    f"Grammar key {key!r} is marked both {previous!r} and {marker!r}"
                )
        if isinstance(term, (collections.abc.Mapping, list, tuple)):
            _walk(term, found)


def grammar_markers(grammar: Mapping[str, Any]) -> Dict[str, str]:
    """Maps every marked key in a grammar tree to its marker, in walk order."""
    found: Dict[str, str] = {}
    _walk(grammar, found)
    return found


def _unique(keys: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(keys))


# -----------------------------------------------------------------
# Construction
# -----------------------------------------------------------------

def _check_explicit(aspects: Sequence[Aspect], allowed: Tuple[str, ...], binding_key: str):
    seen = set()
    for a in aspects:
        if not isinstance(a, Aspect):
            raise TypeError(f"Expected an Aspect, not {type(a).__name__}")
        if a.key == binding_key:
            raise LanguageError(f"Binding key {binding_key!r} cannot have an explicit aspect")
        if a.key not in allowed:
            raise LanguageError(f"Aspect key {a.key!r} is not an allowed key")
        if a.key in seen:
            raise LanguageError(f"More than one aspect declared for {a.key!r}")
        seen.add(a.key)


def language(allowed_keys: Iterable[str],
             binding_key: str,
             grammar: Mapping[str, Any],
             aspects: Iterable[Aspect] = ()) -> Language:
    """Declares a language and derives its aspect table and order.

    The grammar is walked once. Keys marked sequence-of, binding-form and
    namespace get synthetic aspects. The table is filled in the order
    namespace, binding-form, explicit, sequence (later entries win on a
    shared key). Aspects fire in the order namespace, explicit, sequence,
    binding-form, each key once.
    """
    allowed = _unique(allowed_keys)
    if binding_key not in allowed:
        raise LanguageError(f"Binding key {binding_key!r} is not an allowed key")
    explicit = tuple(aspects)
    _check_explicit(explicit, allowed, binding_key)

    markers = grammar_markers(grammar)
    unknown = [k for k in markers if k not in allowed]
    if unknown:
        raise LanguageError(f"Grammar keys are not allowed keys: {', '.join(unknown)}")
    if markers.get(binding_key, BINDING_FORM) != BINDING_FORM:
        raise LanguageError(
            f"Binding key {binding_key!r} is marked {markers[binding_key]!r}, not a binding form")

    sequence_keys = [k for k, m in markers.items() if m == SEQUENCE_OF]
    binding_keys = [k for k, m in markers.items() if m == BINDING_FORM and k != binding_key]
    namespace_keys = [k for k, m in markers.items() if m == NAMESPACE]

    table: Dict[str, Aspect] = {}
    for a in [
        *map(namespace_aspect, namespace_keys),
        *map(binding_form_aspect, binding_keys),
        *explicit,
        *map(sequence_aspect, sequence_keys),
    ]:
        table[a.key] = a

    order = _unique([
        *namespace_keys,
        *(a.key for a in explicit),
        *sequence_keys,
        *binding_keys,
    ])
    logger.debug("language binding=%r order=%s", binding_key, order)
    return Language(allowed, binding_key, grammar, table, order, explicit,
                    binding_index=len(namespace_keys))


def extend_language(base: Language,
                    keys: Iterable[str],
                    grammar: Optional[Mapping[str, Any]] = None,
                    aspects: Iterable[Aspect] = ()) -> Language:
    """Derives a related language with extra keys, grammar and aspects.

    Explicit aspects of `base` are kept unless a new aspect claims the same
    key. The binding key is unchanged.
    """
    merged_grammar = {**base.grammar, **(grammar or {})}
    by_key: Dict[str, Aspect] = {a.key: a for a in base.explicit_aspects}
    for a in aspects:
        by_key[a.key] = a
    return language(
        [*base.allowed_keys, *keys],
        base.binding_key,
        merged_grammar,
        list(by_key.values()),
    )


def ordered_aspects(lang: Language) -> List[Aspect]:
    """The language's aspects in execution order."""
    return [lang.aspects[key] for key in lang.aspect_order]
