"""
A small pipeline language built on the engine.

A pipeline program carries a `config` namespace of expression strings and a
`steps` sequence. Each step (`transform`, `filter`, `when`) compiles the
expressions it refers to and appends a unary function to the `@pipeline`
list held in the root frame:

    {
        'config': {'math': {'double': 'x * 2'}, 'threshold': 10},
        'steps': [
            {'transform': {'expression': '@config.math.double'}},
            {'when': {'condition': '@config.predicates.greaterThan',
                      'args': ['@input', '@config.threshold'],
                      'consequent': '@config.math.double',
                      'alternative': '@config.math.identity'}},
        ],
    }
"""
from typing import Any, Callable, Iterable, List, Mapping, Optional

from krikkit.krikkit_datatypes import Sentinel, BINDING_FORM, NAMESPACE, sequence_of
from krikkit.krikkit_frame import Frame, frame as make_frame
from krikkit.krikkit_aspect import aspect
from krikkit.krikkit_language import Language, language
from krikkit.krikkit_expression import ExpressionEvaluator, LarkEvaluator

PIPELINE_KEY = '@pipeline'
INPUT_KEY = '@input'

# Stands in for the value flowing through the pipeline in `when` args.
INPUT = Sentinel('input')
# Returned by a filter step to drop the value.
DROPPED = Sentinel('dropped')

_ARG_NAMES = ('x', 'y', 'z')


def arg_names(count: int) -> tuple:
    """Parameter names for an expression of `count` arguments: x, y, z, x3, ..."""
    return tuple(_ARG_NAMES[i] if i < len(_ARG_NAMES) else f"x{i}" for i in range(count))


def _append_step(scope: Frame, step: Callable[[Any], Any]) -> Frame:
    pipeline = scope.resolve(PIPELINE_KEY)
    scope.provide(PIPELINE_KEY, [*pipeline, step])
    return scope


def pipeline_language(evaluator: Optional[ExpressionEvaluator] = None) -> Language:
    """Builds the pipeline language around an expression evaluator."""
    evaluator = evaluator or LarkEvaluator()
    unary = arg_names(1)

    @aspect('transform')
    def transform(value: Mapping[str, Any], scope: Frame) -> Frame:
        return _append_step(scope, evaluator.compile(value['expression'], unary))

    @aspect('filter')
    def filter_(value: Mapping[str, Any], scope: Frame) -> Frame:
        predicate = evaluator.compile(value['expression'], unary)

        def keep(item):
            return item if predicate(item) else DROPPED
        return _append_step(scope, keep)

    @aspect('when')
    def when(value: Mapping[str, Any], scope: Frame) -> Frame:
        args = list(value.get('args') or [INPUT])
        condition = evaluator.compile(value['condition'], arg_names(len(args)))
        consequent = evaluator.compile(value['consequent'], unary)
        alternative = evaluator.compile(value['alternative'], unary)

        def branch(item):
            actual = [item if a is INPUT else a for a in args]
            return consequent(item) if condition(*actual) else alternative(item)
        return _append_step(scope, branch)

    return language(
        ['config', 'steps', 'transform', 'filter', 'when', 'bind'],
        'bind',
        {
            'config': NAMESPACE,
            'steps': sequence_of({
                'transform': BINDING_FORM,
                'filter': BINDING_FORM,
                'when': BINDING_FORM,
            }),
        },
        [transform, filter_, when],
    )


def pipeline_frame(bindings: Optional[Mapping[str, Any]] = None) -> Frame:
    """A root frame with an empty pipeline and the input marker bound."""
    return make_frame({PIPELINE_KEY: [], INPUT_KEY: INPUT, **(bindings or {})})


def apply_steps(steps: Iterable[Callable[[Any], Any]], item: Any) -> Any:
    """Feeds one value through the steps; stops early once it is dropped."""
    for step in steps:
        item = step(item)
        if item is DROPPED:
            break
    return item


def compile_pipeline(scope: Frame) -> Callable[[Iterable[Any]], List[Any]]:
    """Turns the `@pipeline` of a finished run into a list-to-list function."""
    steps = list(scope.resolve(PIPELINE_KEY))

    def run_pipeline(values: Iterable[Any]) -> List[Any]:
        out = []
        for item in values:
            result = apply_steps(steps, item)
            if result is not DROPPED:
                out.append(result)
        return out
    return run_pipeline
