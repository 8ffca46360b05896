from __future__ import annotations
import collections.abc
import os
from typing import Any, Optional, TYPE_CHECKING

from krikkit.krikkit_serialize import deserialize
from krikkit.krikkit_datatypes import Program, program

if TYPE_CHECKING:
    from krikkit.krikkit_language import Language

_FORMATS = {
    '.json': 'json',
    '.yaml': 'yaml',
    '.yml': 'yaml',
    '.toml': 'toml',
}


def _resolve_path(path: str | os.PathLike, base_dir: Optional[str]) -> str:
    p = os.path.expanduser(os.fspath(path))
    if os.path.isabs(p):
        return p
    base = base_dir or os.getcwd()
    return os.path.normpath(os.path.join(base, p))


def read_program_file(path: str | os.PathLike, *, base_dir: Optional[str] = None) -> Any:
    """Reads program data from a .json, .yaml/.yml or .toml file.

    Relative paths are taken from `base_dir` (or the working directory).
    Files with any other extension are sniffed.
    """
    full = _resolve_path(path, base_dir)
    ext = os.path.splitext(full)[1].lower()
    with open(full, "r", encoding="utf-8") as f:
        text = f.read()
    return deserialize(text, fmt=_FORMATS.get(ext))


def program_from_file(path: str | os.PathLike, language: Language, *, base_dir: Optional[str] = None) -> Program:
    """Loads a program file and pairs it with `language`."""
    data = read_program_file(path, base_dir=base_dir)
    if not isinstance(data, collections.abc.Mapping):
        raise ValueError(f"Program file {os.fspath(path)!r} does not hold a mapping")
    return program(dict(data), language)
