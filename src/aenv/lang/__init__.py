"""aenv.lang: binding language parser, formatter and evaluator."""

from aenv.lang.ast import AST
from aenv.lang.errors import EvalError, LangError, ParseError, ValidationError
from aenv.lang.format import FuncRef, format_result
from aenv.lang.model import Kind, Namespace, Param, Value
from aenv.lang.parser import parse_reader, parse_string
from aenv.lang.registry import ParamInfo, ParamKind, Registry, is_function, param_kinds

__all__ = [
    "AST",
    "EvalError",
    "FuncRef",
    "Kind",
    "LangError",
    "Namespace",
    "Param",
    "ParamInfo",
    "ParamKind",
    "ParseError",
    "Registry",
    "ValidationError",
    "Value",
    "format_result",
    "is_function",
    "param_kinds",
    "parse_reader",
    "parse_string",
]
