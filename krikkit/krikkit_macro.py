"""
Macro definitions as data.

A macro describes a reusable pattern: its argument specification, default
values, the methods it can match and a template body. Only the data surface
lives here; nothing expands macros yet.
"""
from typing import Any, Dict, List, Optional, Sequence, Union

from krikkit.krikkit_datatypes import Program, BINDING_FORM, ARG_LIST
from krikkit.krikkit_language import Language, language

MERGE_OPERATOR = '...'
MACRO_KEYS = ('args', 'defaults', 'methods', 'body')

# True: no arguments; str: one named argument or the merge operator;
# list: named arguments, optionally ending with the merge operator.
MacroArgs = Union[bool, str, Sequence[str]]


class Macro:
    """A named macro definition."""
    def __init__(self, key: str, args: MacroArgs = True,
                 body: Optional[Dict[str, Any]] = None,
                 defaults: Optional[Dict[str, Any]] = None,
                 methods: Sequence[Any] = ()):
        self.key = key
        self.args = args
        self.body = dict(body or {})
        self.defaults = dict(defaults or {})
        self.methods = list(methods)

    @property
    def named_args(self) -> List[str]:
        """The named arguments, without the merge operator."""
        args = self.args
        if args is True or args == MERGE_OPERATOR:
            return []
        if isinstance(args, str):
            return [args]
        return [a for a in args if a != MERGE_OPERATOR]

    @property
    def merges(self) -> bool:
        """Whether the macro captures every input field (`...`)."""
        args = self.args
        if isinstance(args, str):
            return args == MERGE_OPERATOR
        if isinstance(args, (list, tuple)):
            return bool(args) and args[-1] == MERGE_OPERATOR
        return False

    def __repr__(self) -> str:
        return f"<Macro {self.key!r} args={self.args!r}>"

    def __eq__(self, other):
        if not isinstance(other, Macro):
            return NotImplemented
        return (self.key, self.args, self.body, self.defaults, self.methods) == \
            (other.key, other.args, other.body, other.defaults, other.methods)


def macro(key: str, args: MacroArgs = True, body: Optional[Dict[str, Any]] = None,
          defaults: Optional[Dict[str, Any]] = None, methods: Sequence[Any] = ()) -> Macro:
    return Macro(key, args, body, defaults, methods)


def macro_language(binding_key: str) -> Language:
    """The language macro definitions are written in."""
    return language(
        [*MACRO_KEYS, binding_key],
        binding_key,
        {
            binding_key: BINDING_FORM,
            'args': ARG_LIST,
            'defaults': [{}],
        },
    )


def macro_from_program(key: str, prog: Program) -> Macro:
    """Reads a macro definition out of a program in a macro language."""
    data = prog.program
    return Macro(
        key,
        data.get('args', True),
        data.get('body'),
        data.get('defaults'),
        data.get('methods', ()),
    )
