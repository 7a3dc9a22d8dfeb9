"""
Lumen Standard Library
Builtin host functions and value rendering
Values are immutable dictionaries; builtins never mutate their arguments
"""

from typing import Dict, Any, List, NamedTuple, Optional
from enum import Enum
import math
import operator
import sys

# Loading readline gives input() line editing in readln
try:
  import readline  # noqa: F401
except ImportError:
  pass

from error_handling import (
  LumenRuntimeError,
  UnknownBuiltin,
  TypeMismatch,
  InvalidPlaceholder,
  ArgumentCountError,
  UnclosedPlaceholder
)
from utilities import (
  make_nil,
  make_bool,
  make_number,
  make_string,
  make_array,
  is_truthy,
  values_equal,
  type_label,
  ieee_div,
  ieee_mod,
  operand_error,
  binary_comparison_op,
  binary_arithmetic_op
)


# ============================================================================
# RENDERING
# ============================================================================

def render_number(number: float) -> str:
  """Numbers render like the language's own literals"""
  if math.isnan(number):
    return "NaN"
  if math.isinf(number):
    return "inf" if number > 0 else "-inf"
  if number == int(number) and abs(number) < 1e16:
    return str(int(number))
  return repr(number)


def render_value(value: Dict) -> str:
  """Canonical string form of a value, as written by write/writeln"""
  if value['type'] == "Number":
    return render_number(value['value'])
  elif value['type'] == "String":
    return value['value']
  elif value['type'] == "Boolean":
    return "true" if value['value'] else "false"
  elif value['type'] == "Nil":
    return "nil"
  elif value['type'] == "Array":
    return "[" + ", ".join(render_value(elem) for elem in value['value']) + "]"
  else:
    return f"<{value['type']}>"


def show_value(value: Dict) -> str:
  """Like render_value, but strings are quoted (used by the REPL)"""
  if value['type'] == "String":
    return '"' + value['value'].replace('\\', '\\\\').replace('"', '\\"') + '"'
  if value['type'] == "Array":
    return "[" + ", ".join(show_value(elem) for elem in value['value']) + "]"
  return render_value(value)


# ============================================================================
# I/O STREAMS
# ============================================================================

def make_io(stdout: Any = None, stdin: Any = None) -> Dict:
  """Streams used by write/writeln/readln; None means the process streams"""
  return {
      'stdout': stdout,
      'stdin': stdin
  }


def io_stdout(io: Optional[Dict]) -> Any:
  if io and io.get('stdout') is not None:
    return io['stdout']
  return sys.stdout


def io_stdin(io: Optional[Dict]) -> Any:
  if io and io.get('stdin') is not None:
    return io['stdin']
  return None


# ============================================================================
# BUILTIN DESCRIPTORS
# ============================================================================

class BuiltinParameter(NamedTuple):
  name: str
  is_variadic: bool = False


class Builtin(Enum):
  LEN = "len"
  FIRST = "first"
  LAST = "last"
  WRITE = "write"
  WRITELN = "writeln"
  READLN = "readln"
  POP = "pop"
  PUSH = "push"
  FORMAT = "format"

  @property
  def parameters(self) -> List[BuiltinParameter]:
    return BUILTIN_PARAMETERS[self]

  @classmethod
  def from_name(cls, name: str, position: Any = None) -> 'Builtin':
    """Dispatch by exact name"""
    for builtin in cls:
      if builtin.value == name:
        return builtin
    raise UnknownBuiltin(name, position)

  def execute(self, args: List[Dict], position: Any = None, io: Optional[Dict] = None) -> Dict:
    return execute_builtin(self, args, position, io)


BUILTIN_PARAMETERS: Dict[Builtin, List[BuiltinParameter]] = {
    Builtin.LEN: [BuiltinParameter("value")],
    Builtin.FIRST: [BuiltinParameter("value")],
    Builtin.LAST: [BuiltinParameter("value")],
    Builtin.WRITE: [BuiltinParameter("values", is_variadic=True)],
    Builtin.WRITELN: [BuiltinParameter("values", is_variadic=True)],
    Builtin.READLN: [BuiltinParameter("prompt")],
    Builtin.POP: [BuiltinParameter("popable")],
    Builtin.PUSH: [BuiltinParameter("pushable"), BuiltinParameter("value")],
    Builtin.FORMAT: [BuiltinParameter("template"), BuiltinParameter("args", is_variadic=True)],
}


def unsupported_argument(name: str, value: Dict, position: Any) -> LumenRuntimeError:
  return LumenRuntimeError(
      f"argument to `{name}` not supported, got {render_value(value)}", position
  )


# ============================================================================
# COMPARISON FUNCTIONS
# ============================================================================

def lumen_eq(x: Dict, y: Dict, position: Any = None) -> Dict:
  """Structural equality; never a type error"""
  return make_bool(values_equal(x, y))


def lumen_ne(x: Dict, y: Dict, position: Any = None) -> Dict:
  return make_bool(not values_equal(x, y))


# Numbers compare numerically, strings lexicographically
lumen_lt = binary_comparison_op(operator.lt, "<")
lumen_gt = binary_comparison_op(operator.gt, ">")
lumen_le = binary_comparison_op(operator.le, "<=")
lumen_ge = binary_comparison_op(operator.ge, ">=")


# ============================================================================
# LOGICAL FUNCTIONS
# ============================================================================

def lumen_and(x: Dict, y: Dict, position: Any = None) -> Dict:
  return make_bool(is_truthy(x) and is_truthy(y))


def lumen_or(x: Dict, y: Dict, position: Any = None) -> Dict:
  return make_bool(is_truthy(x) or is_truthy(y))


def lumen_not(x: Dict, position: Any = None) -> Dict:
  return make_bool(not is_truthy(x))


# ============================================================================
# ARITHMETIC FUNCTIONS
# ============================================================================

def lumen_add(x: Dict, y: Dict, position: Any = None) -> Dict:
  """Addition for numbers, concatenation for strings"""
  if x['type'] == "Number" and y['type'] == "Number":
    return make_number(x['value'] + y['value'])
  elif x['type'] == "String" and y['type'] == "String":
    return make_string(x['value'] + y['value'])
  raise operand_error("+", x, y, position)


lumen_sub = binary_arithmetic_op(operator.sub, "-")
lumen_mul = binary_arithmetic_op(operator.mul, "*")
lumen_div = binary_arithmetic_op(ieee_div, "/")
lumen_mod = binary_arithmetic_op(ieee_mod, "%")


def lumen_negate(x: Dict, position: Any = None) -> Dict:
  if x['type'] != "Number":
    raise TypeMismatch("-", f"does not support `{type_label(x)}` as it's operand", position)
  return make_number(-x['value'])


# ============================================================================
# ARRAY AND STRING FUNCTIONS
# ============================================================================

def lumen_len(value: Dict, position: Any = None) -> Dict:
  """Character count of a string or element count of an array"""
  if value['type'] in ("String", "Array"):
    return make_number(len(value['value']))
  raise unsupported_argument("len", value, position)


def lumen_first(value: Dict, position: Any = None) -> Dict:
  if value['type'] == "Array":
    return value['value'][0] if value['value'] else make_nil()
  raise unsupported_argument("first", value, position)


def lumen_last(value: Dict, position: Any = None) -> Dict:
  if value['type'] == "Array":
    return value['value'][-1] if value['value'] else make_nil()
  raise unsupported_argument("last", value, position)


def lumen_pop(value: Dict, position: Any = None) -> Dict:
  """Last element of an array; the array itself is left untouched"""
  if value['type'] == "Array":
    elements = list(value['value'])
    return elements.pop() if elements else make_nil()
  raise unsupported_argument("pop", value, position)


def lumen_push(value: Dict, item: Dict, position: Any = None) -> Dict:
  """New array with item appended"""
  if value['type'] == "Array":
    return make_array(value['value'] + [item])
  raise unsupported_argument("push", value, position)


# ============================================================================
# I/O FUNCTIONS
# ============================================================================

def lumen_write(values: List[Dict], io: Optional[Dict] = None) -> Dict:
  """Write values separated by spaces, no trailing line break"""
  stream = io_stdout(io)
  stream.write(" ".join(render_value(value) for value in values))
  stream.flush()
  return make_nil()


def lumen_writeln(values: List[Dict], io: Optional[Dict] = None) -> Dict:
  """Write values followed by a line break"""
  stream = io_stdout(io)
  stream.write(" ".join(render_value(value) for value in values) + "\n")
  stream.flush()
  return make_nil()


def lumen_readln(prompt: Dict, position: Any = None, io: Optional[Dict] = None) -> Dict:
  """Prompt and block for one line of input"""
  stdin = io_stdin(io)
  prompt_text = render_value(prompt)

  if stdin is None and (io is None or io.get('stdout') is None):
    # Interactive terminal: input() picks up readline editing when loaded
    try:
      line = input(prompt_text)
    except EOFError:
      raise LumenRuntimeError("failed to read line", position)
    except (OSError, RuntimeError) as e:
      raise LumenRuntimeError(f"failed to initialize readline: {e}", position)
    return make_string(line)

  stream = io_stdout(io)
  stream.write(prompt_text)
  stream.flush()
  if stdin is None:
    stdin = sys.stdin
  line = stdin.readline()
  if line == "":
    raise LumenRuntimeError("failed to read line", position)
  return make_string(line.rstrip("\r\n"))


# ============================================================================
# FORMAT
# ============================================================================

def format_template(template: str, args: List[Dict], position: Any = None) -> str:
  """
  Substitute placeholders in a template

  `{}` takes the next unused argument, `{N}` takes argument N without
  consuming it, `{{` and `}}` are literal braces.
  """
  result = []
  next_auto = 0
  i = 0
  length = len(template)

  while i < length:
    char = template[i]

    if char == '{':
      following = template[i + 1] if i + 1 < length else ''
      if following == '{':
        result.append('{')
        i += 2
      elif following == '}':
        if next_auto >= len(args):
          raise ArgumentCountError(
              f"format placeholder {{}} has no argument left, got {len(args)} arguments",
              position
          )
        result.append(render_value(args[next_auto]))
        next_auto += 1
        i += 2
      elif following == '':
        raise UnclosedPlaceholder("format placeholder `{` is never closed", position)
      elif '0' <= following <= '9':
        end = i + 1
        while end < length and '0' <= template[end] <= '9':
          end += 1
        if end >= length:
          raise UnclosedPlaceholder(
              f"format placeholder `{template[i:end]}` is never closed", position
          )
        if template[end] != '}':
          raise InvalidPlaceholder(
              f"invalid format placeholder `{template[i:end + 1]}`", position
          )
        index = int(template[i + 1:end])
        if index >= len(args):
          raise ArgumentCountError(
              f"format placeholder {{{index}}} is out of range, got {len(args)} arguments",
              position
          )
        result.append(render_value(args[index]))
        i = end + 1
      else:
        raise InvalidPlaceholder(
            f"invalid format placeholder `{{{following}`", position
        )

    elif char == '}':
      if i + 1 < length and template[i + 1] == '}':
        result.append('}')
        i += 2
      else:
        raise UnclosedPlaceholder("unmatched `}` in format string", position)

    else:
      result.append(char)
      i += 1

  return ''.join(result)


def lumen_format(template: Dict, pack: List[Dict], position: Any = None) -> Dict:
  """format(template, args...): a single array argument is the argument list"""
  if template['type'] != "String":
    raise unsupported_argument("format", template, position)
  if len(pack) == 1 and pack[0]['type'] == "Array":
    args = pack[0]['value']
  else:
    args = pack
  return make_string(format_template(template['value'], args, position))


# ============================================================================
# DISPATCH
# ============================================================================

def execute_builtin(builtin: Builtin, args: List[Dict], position: Any = None,
                    io: Optional[Dict] = None) -> Dict:
  """Run a builtin on raw evaluated call arguments"""
  if builtin is Builtin.LEN:
    return lumen_len(args[0], position)
  elif builtin is Builtin.FIRST:
    return lumen_first(args[0], position)
  elif builtin is Builtin.LAST:
    return lumen_last(args[0], position)
  elif builtin is Builtin.WRITE:
    return lumen_write(args, io)
  elif builtin is Builtin.WRITELN:
    return lumen_writeln(args, io)
  elif builtin is Builtin.READLN:
    return lumen_readln(args[0], position, io)
  elif builtin is Builtin.POP:
    return lumen_pop(args[0], position)
  elif builtin is Builtin.PUSH:
    return lumen_push(args[0], args[1], position)
  elif builtin is Builtin.FORMAT:
    return lumen_format(args[0], args[1:], position)
  raise UnknownBuiltin(str(builtin), position)


def list_builtin_functions() -> List[str]:
  """List all available builtin functions"""
  return [builtin.value for builtin in Builtin]
