from krikkit.krikkit_datatypes import (
    Aspect, Program, Sentinel, program, sequence_of,
    KrikkitError, PathNotFound, UnresolvedReference, MissingRunner, LanguageError, ExpressionError,
    BINDING_FORM, SEQUENCE_OF, NAMESPACE, VALUE_REFERENCE, ARG_LIST,
    RUNNER_KEY, NAMESPACE_PREFIX,
)
from krikkit.krikkit_frame import Frame, frame, extend, resolve
from krikkit.krikkit_aspect import aspect, apply_aspect
from krikkit.krikkit_language import Language, language, extend_language, ordered_aspects
from krikkit.krikkit_runtime import run, ProgramRunner, ExecutionResult
from krikkit.krikkit_expression import ExpressionEvaluator, LarkEvaluator
from krikkit.krikkit_serialize import serialize, deserialize
from krikkit.krikkit_file import read_program_file, program_from_file
from krikkit.krikkit_macro import Macro, macro, macro_language
