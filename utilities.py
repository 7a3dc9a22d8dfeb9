"""
Utilities module for the Lumen interpreter
Contains value constructors, operator factories and common helpers shared by
the lexer, the standard library and the evaluator
"""

from typing import Any, Dict, List, Optional, Callable
import math

from error_handling import TypeMismatch


# ==================== VALUE CONSTRUCTION ====================

def make_value(value: Any, type_name: str = "Nil") -> Dict:
  """Create an immutable runtime value"""
  return {
      'value': value,
      'type': type_name
  }


def make_nil() -> Dict:
  return make_value(None, "Nil")


def make_number(value: float) -> Dict:
  return make_value(float(value), "Number")


def make_bool(value: bool) -> Dict:
  return make_value(bool(value), "Boolean")


def make_string(value: str) -> Dict:
  return make_value(value, "String")


def make_array(elements: List[Dict]) -> Dict:
  return make_value(list(elements), "Array")


# ==================== TYPE CHECKING UTILITIES ====================

def is_truthy(val: Dict) -> bool:
  """Only nil and false are falsy"""
  if val['type'] == "Nil":
    return False
  if val['type'] == "Boolean":
    return val['value']
  return True


def values_equal(x: Dict, y: Dict) -> bool:
  """
  Structural equality between two runtime values

  Values of different types are never equal. Arrays compare element-wise.
  """
  if x['type'] != y['type']:
    return False
  if x['type'] == "Array":
    if len(x['value']) != len(y['value']):
      return False
    return all(values_equal(a, b) for a, b in zip(x['value'], y['value']))
  return x['value'] == y['value']


def type_label(val: Dict) -> str:
  """Lower-case type name used in error messages"""
  return {
      "Number": "number",
      "String": "string",
      "Boolean": "boolean",
      "Nil": "nil",
      "Array": "array",
  }.get(val['type'], val['type'].lower())


# ==================== IEEE ARITHMETIC ====================

def ieee_div(x: float, y: float) -> float:
  """Float division without Python's ZeroDivisionError"""
  if y == 0.0:
    if x == 0.0 or math.isnan(x):
      return math.nan
    # Sign of a signed zero divisor decides the infinity
    return math.copysign(math.inf, x) * math.copysign(1.0, y)
  return x / y


def ieee_mod(x: float, y: float) -> float:
  """Truncated remainder; result takes the sign of the dividend"""
  if y == 0.0 or math.isinf(x) or math.isnan(x) or math.isnan(y):
    return math.nan
  if math.isinf(y):
    return x
  return math.fmod(x, y)


# ==================== ERROR MESSAGE BUILDERS ====================

def operand_error(op: str, left: Dict, right: Dict, position: Any = None) -> TypeMismatch:
  """
  Generate a binary operand type error

  Args:
    op: Operator lexeme
    left: Left operand value
    right: Right operand value
    position: Operator position

  Returns:
    TypeMismatch with formatted message
  """
  if left['type'] != right['type']:
    return TypeMismatch(op, "expects same type on both side", position)
  return TypeMismatch(op, f"doesn't support `{type_label(left)}` as it's operand", position)


# ==================== BINARY OPERATION FACTORIES ====================

def binary_comparison_op(
  op: Callable[[Any, Any], bool],
  op_name: str,
  allowed_types: Optional[List[str]] = None
) -> Callable[[Dict, Dict, Any], Dict]:
  """
  Factory for binary comparison operations

  Args:
    op: Python operator function (e.g., operator.lt)
    op_name: Operator lexeme for error messages
    allowed_types: Types that support this operation

  Returns:
    Function that performs the comparison

  Examples:
    lumen_lt = binary_comparison_op(operator.lt, "<")
    result = lumen_lt(make_number(1), make_number(2), position)
  """
  if allowed_types is None:
    allowed_types = ["Number", "String"]

  def comparison(x: Dict, y: Dict, position: Any = None) -> Dict:
    if x['type'] != y['type'] or x['type'] not in allowed_types:
      raise operand_error(op_name, x, y, position)
    return make_bool(op(x['value'], y['value']))

  return comparison


def binary_arithmetic_op(
  op: Callable[[Any, Any], Any],
  op_name: str,
  allowed_types: Optional[List[str]] = None
) -> Callable[[Dict, Dict, Any], Dict]:
  """
  Factory for binary arithmetic operations

  Args:
    op: Python operator function (e.g., operator.sub)
    op_name: Operator lexeme for error messages
    allowed_types: Types that support this operation

  Returns:
    Function that performs the arithmetic operation

  Examples:
    lumen_sub = binary_arithmetic_op(operator.sub, "-")
    result = lumen_sub(make_number(3), make_number(2), position)
  """
  if allowed_types is None:
    allowed_types = ["Number"]

  def arithmetic(x: Dict, y: Dict, position: Any = None) -> Dict:
    if x['type'] != y['type'] or x['type'] not in allowed_types:
      raise operand_error(op_name, x, y, position)
    return make_value(op(x['value'], y['value']), x['type'])

  return arithmetic
