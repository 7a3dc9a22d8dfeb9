"""
Error handling for the Lumen interpreter with detailed error messages
Error dicts and formatting are pure functions; the exception classes carry
the same fields so every stage can fail fast with a position attached
"""

from typing import List, Optional, Dict, Any


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_error_dict(
    kind: str,
    message: str,
    source_name: str,
    line: int,
    expected: Optional[str] = None,
    found: Optional[str] = None,
    context: Optional[str] = None
) -> Dict:
    """Create an immutable error structure"""
    return {
        'kind': kind,
        'message': message,
        'source_name': source_name,
        'line': line,
        'expected': expected,
        'found': found,
        'context': context
    }


def format_error(error: Dict) -> str:
    """Format an error dict as string"""
    error_msg = f"{error['kind']} at {error['source_name']}:{error['line']}:\n"
    error_msg += f"  {error['message']}\n"

    if error['expected']:
        error_msg += f"  Expected: {error['expected']}\n"

    if error['found']:
        error_msg += f"  Found: {error['found']}\n"

    if error['context']:
        error_msg += f"  Context:\n{error['context']}\n"

    return error_msg


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, context_lines: int = 2) -> str:
    """Get numbered source lines around the error line"""
    lines = source_text.split('\n')
    if line_num < 1 or line_num > len(lines):
        return ""

    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        marker = ">" if i == line_num - 1 else " "
        context_parts.append(f"  {marker}{i+1:4d}: {lines[i]}")

    return '\n'.join(context_parts)


def error_kind(error: 'LumenError') -> str:
    """Human readable stage name for an error"""
    if isinstance(error, LumenLexError):
        return "Lex error"
    if isinstance(error, LumenParseError):
        return "Parse error"
    return "Runtime error"


# ============================================================================
# EXCEPTION CLASSES
# ============================================================================

class LumenError(Exception):
    """Base class for every error raised by the pipeline"""
    def __init__(self, message: str, position: Any = None):
        self.message = message
        self.position = position
        super().__init__(self._format_error())

    def _format_error(self) -> str:
        if self.position is not None:
            return f"{self.message} (at {self.position})"
        return self.message


class LumenLexError(LumenError):
    """Malformed character or token in the source text"""
    def __init__(self, message: str, character: str, position: Any = None):
        self.character = character
        super().__init__(message, position)


class LumenParseError(LumenError):
    """Unexpected token where a grammar production was expected"""
    def __init__(self, expected: str, found: str, position: Any = None):
        self.expected = expected
        self.found = found
        super().__init__(f"expected {expected}, found {found}", position)


class LumenRuntimeError(LumenError):
    """Error raised while evaluating a program"""
    pass


class UndefinedIdentifier(LumenRuntimeError):
    def __init__(self, name: str, position: Any = None):
        self.name = name
        super().__init__(f"undefined identifier `{name}`", position)


class UnknownBuiltin(LumenRuntimeError):
    def __init__(self, name: str, position: Any = None):
        self.name = name
        super().__init__(f"unknown builtin function: {name}", position)


class TypeMismatch(LumenRuntimeError):
    def __init__(self, operator: str, description: str, position: Any = None):
        self.operator = operator
        self.description = description
        super().__init__(f"Type mismatch, `{operator}` {description}", position)


class ArityMismatch(LumenRuntimeError):
    """Too few or too many arguments passed to a function"""
    def __init__(self, callee: str, expected: int, got: int,
                 missing: Optional[List[str]] = None, position: Any = None):
        self.callee = callee
        self.expected = expected
        self.got = got
        self.missing = missing or []
        if self.missing:
            names = ", ".join(f"`{name}`" for name in self.missing)
            message = (f"`{callee}` expected {expected} arguments but got {got}. "
                       f"Missing arguments are {names}")
        else:
            message = f"too many arguments passed to `{callee}`. Expected {expected} but got {got}"
        super().__init__(message, position)


class InvalidPlaceholder(LumenRuntimeError):
    pass


class ArgumentCountError(LumenRuntimeError):
    pass


class UnclosedPlaceholder(LumenRuntimeError):
    pass


# ============================================================================
# ERROR HANDLER (used by the command line front end)
# ============================================================================

class LumenErrorHandler:
    """Turns pipeline errors into printable reports with source context"""
    def __init__(self, source_text: str, source_name: str = "<input>"):
        self.source_text = source_text
        self.source_name = source_name

    def to_dict(self, error: LumenError) -> Dict:
        position = error.position
        line = getattr(position, 'line', 0)
        source_name = getattr(position, 'source_name', self.source_name)
        context = None
        # Builtin descriptors use line 0 and never have source context
        if line > 0 and source_name == self.source_name:
            context = get_context_lines(self.source_text, line) or None

        return make_error_dict(
            kind=error_kind(error),
            message=error.message,
            source_name=source_name,
            line=line,
            expected=getattr(error, 'expected', None) if isinstance(error, LumenParseError) else None,
            found=getattr(error, 'found', None) if isinstance(error, LumenParseError) else None,
            context=context
        )

    def describe(self, error: LumenError) -> str:
        return format_error(self.to_dict(error))
