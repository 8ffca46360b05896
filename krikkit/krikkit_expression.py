"""
Expression evaluators: compile an expression string into a callable.

The engine never parses expressions itself. Aspects that need them are given
an ExpressionEvaluator; LarkEvaluator is the default implementation, covering
arithmetic, comparison and boolean operators over numbers, strings and the
named parameters.
"""
import ast
import logging
import operator
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from lark import Lark, Transformer, v_args
from lark.exceptions import UnexpectedInput, VisitError

from krikkit.krikkit_datatypes import ExpressionError

logger = logging.getLogger(__name__)


class ExpressionEvaluator(ABC):
    """Compiles expression strings into plain Python callables."""

    @abstractmethod
    def compile(self, expression: str, params: Sequence[str]) -> Callable[..., Any]:
        """Returns a function taking one positional argument per name in `params`."""
        raise NotImplementedError


EXPRESSION_GRAMMAR = r"""
?start: disjunction

?disjunction: conjunction
    | disjunction "or" conjunction      -> or_
?conjunction: inversion
    | conjunction "and" inversion       -> and_
?inversion: comparison
    | "not" inversion                   -> not_
?comparison: sum
    | sum "==" sum                      -> eq
    | sum "!=" sum                      -> ne
    | sum "<" sum                       -> lt
    | sum "<=" sum                      -> le
    | sum ">" sum                       -> gt
    | sum ">=" sum                      -> ge
?sum: product
    | sum "+" product                   -> add
    | sum "-" product                   -> sub
?product: unary
    | product "*" unary                 -> mul
    | product "/" unary                 -> truediv
    | product "//" unary                -> floordiv
    | product "%" unary                 -> mod
?unary: power
    | "-" unary                         -> neg
    | "+" unary                         -> pos
?power: atom
    | atom "**" unary                   -> pow
?atom: NUMBER                           -> number
    | ESCAPED_STRING                    -> string
    | "true"                            -> true
    | "false"                           -> false
    | "none"                            -> none
    | NAME                              -> var
    | "(" disjunction ")"

%import common.CNAME -> NAME
%import common.NUMBER
%import common.ESCAPED_STRING
%import common.WS
%ignore WS
"""

Env = Dict[str, Any]


def _binary(op):
    def method(self, left, right):
        return lambda env: op(left(env), right(env))
    return method


def _unary(op):
    def method(self, operand):
        return lambda env: op(operand(env))
    return method


def _constant(value):
    def method(self):
        return lambda env: value
    return method


@v_args(inline=True)
class ExpressionCompiler(Transformer):
    """Transforms an expression parse tree into a closure over a parameter env."""

    def __init__(self, expression: str, params: Sequence[str]):
        super().__init__()
        self.expression = expression
        self.params = tuple(params)

    def number(self, token):
        text = str(token)
        value = float(text) if any(c in text for c in '.eE') else int(text)
        return lambda env: value

    def string(self, token):
        value = ast.literal_eval(str(token))
        return lambda env: value

    def var(self, token):
        name = str(token)
        if name not in self.params:
            raise ExpressionError(self.expression, f"unknown name {name!r}")
        return lambda env: env[name]

    def or_(self, left, right):
        return lambda env: left(env) or right(env)

    def and_(self, left, right):
        return lambda env: left(env) and right(env)

    true = _constant(True)
    false = _constant(False)
    none = _constant(None)

    not_ = _unary(operator.not_)
    neg = _unary(operator.neg)
    pos = _unary(operator.pos)

    eq = _binary(operator.eq)
    ne = _binary(operator.ne)
    lt = _binary(operator.lt)
    le = _binary(operator.le)
    gt = _binary(operator.gt)
    ge = _binary(operator.ge)
    add = _binary(operator.add)
    sub = _binary(operator.sub)
    mul = _binary(operator.mul)
    truediv = _binary(operator.truediv)
    floordiv = _binary(operator.floordiv)
    mod = _binary(operator.mod)
    pow = _binary(operator.pow)


class LarkEvaluator(ExpressionEvaluator):
    """Default evaluator backed by a lark LALR parser."""

    _parser: Optional[Lark] = None

    def __init__(self):
        if LarkEvaluator._parser is None:
            LarkEvaluator._parser = Lark(EXPRESSION_GRAMMAR, parser='lalr')
        self.parser = LarkEvaluator._parser
        self._cache: Dict[Tuple[str, Tuple[str, ...]], Callable[..., Any]] = {}

    def _compile_body(self, expression: str, names: Tuple[str, ...]) -> Callable[[Env], Any]:
        try:
            tree = self.parser.parse(expression)
        except UnexpectedInput as e:
            raise ExpressionError(expression, f"syntax error at column {e.column}") from e
        try:
            return ExpressionCompiler(expression, names).transform(tree)
        except VisitError as e:
            raise e.orig_exc from None

    def compile(self, expression: str, params: Sequence[str]) -> Callable[..., Any]:
        if not isinstance(expression, str):
            raise ExpressionError(repr(expression), "expression must be a string")
        names = tuple(params)
        cached = self._cache.get((expression, names))
        if cached is not None:
            return cached

        body = self._compile_body(expression, names)
        logger.debug("compiled %r over %s", expression, names)

        def compiled(*args):
            if len(args) != len(names):
                raise TypeError(
                    f"expression {expression!r} takes {len(names)} argument(s), got {len(args)}"
                )
            return body(dict(zip(names, args)))
        compiled.__name__ = f"expr[{expression}]"
        compiled.expression = expression
        self._cache[(expression, names)] = compiled
        return compiled
