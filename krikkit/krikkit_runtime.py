"""
The run loop, and a ProgramRunner that wraps it for callers who want a
structured outcome instead of an exception.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

from krikkit.krikkit_datatypes import (
    Program, program as make_program, RUNNER_KEY,
    PathNotFound, UnresolvedReference, MissingRunner, LanguageError, ExpressionError,
)
from krikkit.krikkit_frame import Frame, frame as make_frame, resolve
from krikkit.krikkit_aspect import apply_aspect
from krikkit.krikkit_language import Language

logger = logging.getLogger(__name__)


def _trace(e: BaseException, key: str):
    """Records the aspect key on the exception, innermost first."""
    trace = getattr(e, 'krikkit_trace', None)
    if trace is None:
        trace = []
        try:
            e.krikkit_trace = trace
        except AttributeError:
            return
    trace.append(key)


def _runner_for(lang: Language):
    def runner(sub_program: Union[Program, Mapping[str, Any]], scope: Frame) -> Frame:
        if isinstance(sub_program, Program):
            return run(sub_program, scope)
        return run(make_program(sub_program, lang), scope)
    return runner


def _apply_key(key: str, target, data: Mapping[str, Any], scope: Frame) -> Frame:
    raw = data[key]
    logger.debug("apply %r", key)
    try:
        value = resolve(raw, scope) if target.resolves else raw
        return apply_aspect(target, value, scope)
    except Exception as e:
        _trace(e, key)
        raise


def run(prog: Program, scope: Frame) -> Frame:
    """Runs a program against a frame and returns the resulting frame.

    Every aspect in the language's execution order whose key appears in
    the data is applied, each receiving the frame produced by the one
    before. Keys absent from the data are skipped.
    """
    lang = prog.language
    data = prog.program
    current = scope.extend().bind({RUNNER_KEY: _runner_for(lang)})

    for key, target in lang.execution_steps():
        if key not in data:
            logger.debug("skip %r (absent)", key)
            continue
        current = _apply_key(key, target, data, current)
    return current


# ===================================================================
# Structured execution
# ===================================================================

@dataclass
class ExecutionResult:
    """The structured result of a program execution."""
    status: Literal['success', 'error']
    value: Optional[Frame] = None
    error_message: Optional[str] = None
    aspect_trace: List[str] = field(default_factory=list)

    def format_error(self) -> str:
        """Formats the error message with the aspect path that raised it."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        if self.aspect_trace:
            # Outermost aspect first
            path = " > ".join(reversed(self.aspect_trace))
            return f"{msg}\nIn aspect: {path}"
        return msg


class ProgramRunner:
    """Runs programs of one language from a fixed set of root bindings."""

    def __init__(self, lang: Language, bindings: Optional[Mapping[str, Any]] = None):
        self.language = lang
        self.bindings: Dict[str, Any] = dict(bindings or {})

    def root_frame(self) -> Frame:
        return make_frame(self.bindings)

    def _format_runtime_error(self, e: Exception) -> str:
        match e:
            case PathNotFound() as pn:
                return f"PathNotFound: {pn.path}"
            case UnresolvedReference() as ur:
                return f"UnresolvedReference: {ur.path}"
            case MissingRunner() as mr:
                return f"MissingRunner: {mr.key}"
            case ExpressionError():
                return f"ExpressionError: {e}"
            case LanguageError():
                return f"LanguageError: {e}"
            case KeyError() | IndexError():
                return f"{type(e).__name__}: {e}"
            case TypeError() | AttributeError():
                return f"TypeError: {e}"
            case _:
                return f"InternalError: {type(e).__name__}: {e}"

    def handle_program(self, data: Union[Program, Mapping[str, Any]],
                       scope: Optional[Frame] = None) -> ExecutionResult:
        """Runs `data` and reports the outcome instead of raising."""
        prog = data if isinstance(data, Program) else make_program(data, self.language)
        try:
            result = run(prog, scope if scope is not None else self.root_frame())
        except Exception as e:
            msg = self._format_runtime_error(e)
            trace = getattr(e, '__dict__', {}).pop('krikkit_trace', [])
            logger.warning("program failed: %s", msg)
            return ExecutionResult(
                'error',
                error_message=msg,
                aspect_trace=list(trace),
            )
        return ExecutionResult('success', value=result)
