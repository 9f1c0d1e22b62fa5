from __future__ import annotations
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .classes import SourceRange


class ErrorType(Enum):
    LEX = 'lex'
    PARSE = 'parse'
    RESOLVE = 'resolve'
    EVALUATE = 'evaluate'
    ENCODE = 'encode'


class ScriptExecutionError(Exception):
    """Error raised when an error is encountered during script execution."""
    ...


class CompilerError(Exception):
    """Base class for errors which end a compilation. Carries the
        source range of the offending excerpt, the id of the script in
        which it occurred, and any nested errors from referenced
        scripts.
    """
    error_type: ErrorType = ErrorType.RESOLVE

    def __init__(self, message: str, range: SourceRange|None = None,
                 script_id: str|None = None,
                 nested: list[CompilerError]|None = None) -> None:
        super().__init__(message)
        self.message = message
        self.range = range
        self.script_id = script_id
        self.nested = nested or []

    def locate(self, range: SourceRange|None, script_id: str|None) -> CompilerError:
        """Fill in the range and script id if they are not yet known."""
        if self.range is None:
            self.range = range
        if self.script_id is None:
            self.script_id = script_id
        return self


class LexError(CompilerError):
    """Error raised by the lexer for unterminated literals and invalid
        characters.
    """
    error_type = ErrorType.LEX


class ParseError(CompilerError):
    """Error raised by the parser for unbalanced brackets and malformed
        literals.
    """
    error_type = ErrorType.PARSE


class ResolutionError(CompilerError):
    """Error raised when an identifier cannot be resolved."""
    error_type = ErrorType.RESOLVE


class EvaluationExecutionError(CompilerError):
    """Error raised when an embedded evaluation does not run successfully."""
    error_type = ErrorType.EVALUATE


class EncodingError(CompilerError):
    """Error raised when a value cannot be encoded as bytecode."""
    error_type = ErrorType.ENCODE


def vert(condition: bool, message: str = '') -> None:
    """Replacement for assert preconditions. Raises ValueError with the
        given message if the condition check fails.
    """
    if condition:
        return
    raise ValueError(message)

def tert(condition: bool, message: str = '') -> None:
    """Replacement for assert preconditions. Raises TypeError with the
        given message if the condition check fails.
    """
    if condition:
        return
    raise TypeError(message)

def sert(condition: bool, message: str = '') -> None:
    """Replacement for assert preconditions. Raises ScriptExecutionError
        with the given message if the condition check fails.
    """
    if condition:
        return
    raise ScriptExecutionError(message)

def lert(condition: bool, message: str = '', range: SourceRange|None = None) -> None:
    """Raises LexError with the given message and range if the
        condition check fails.
    """
    if condition:
        return
    raise LexError(message, range)

def yert(condition: bool, message: str = '', range: SourceRange|None = None) -> None:
    """Raises ParseError with the given message and range if the
        condition check fails.
    """
    if condition:
        return
    raise ParseError(message, range)

def rert(condition: bool, message: str = '', range: SourceRange|None = None) -> None:
    """Raises ResolutionError with the given message and range if the
        condition check fails.
    """
    if condition:
        return
    raise ResolutionError(message, range)

def eert(condition: bool, message: str = '', range: SourceRange|None = None) -> None:
    """Raises EncodingError with the given message and range if the
        condition check fails.
    """
    if condition:
        return
    raise EncodingError(message, range)
