"""
Lumen Interpreter - Functional Style
Tree-walking evaluator. Evaluation functions are pure over the environment:
each returns (outcome, updated_environment). Side effects (I/O) happen only
inside builtins.
"""

from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Union
import sys

from error_handling import LumenRuntimeError, ArityMismatch
from lexing import TokenKind
from parsing import create_parser
from syntax import (
  Program, Statement, Expression,
  LetStatement, AssignmentStatement, FunctionStatement, ReturnStatement, ExpressionStatement,
  BlockExpression, IfExpression, BinaryExpression, UnaryExpression, GroupExpression,
  CallExpression, IdentifierExpression, LiteralExpression, ArrayExpression,
  node_label
)
from environment import (
  make_environment,
  declare,
  get,
  assign,
  push_scope,
  pop_scope,
  declare_function,
  get_function
)
from utilities import make_nil, make_array, is_truthy
from stdlib import (
  Builtin,
  make_io,
  lumen_eq,
  lumen_ne,
  lumen_lt,
  lumen_gt,
  lumen_le,
  lumen_ge,
  lumen_and,
  lumen_or,
  lumen_not,
  lumen_add,
  lumen_sub,
  lumen_mul,
  lumen_div,
  lumen_mod,
  lumen_negate
)


# ============================================================================
# DATA STRUCTURES
# ============================================================================

class Completed(NamedTuple):
  """Statement or expression ran to completion"""
  value: Dict


class Returned(NamedTuple):
  """A `return` executed; unwinds blocks up to the enclosing call"""
  value: Dict


Outcome = Union[Completed, Returned]


def make_user_function(statement: FunctionStatement) -> Dict:
  """Function table entry for a function declared in source"""
  return {
      'type': 'user_function',
      'name': statement.identifier.lexeme,
      'params': statement.parameters,
      'body': statement.block
  }


def make_native_function(builtin: Builtin) -> Dict:
  """Function table entry for a host builtin"""
  return {
      'type': 'native_function',
      'name': builtin.value,
      'params': builtin.parameters,
      'builtin': builtin
  }


def make_execution_context(debug: bool = False, io: Optional[Dict] = None) -> Dict:
  """Per-interpreter settings threaded through evaluation"""
  return {
      'debug': debug,
      'io': io if io is not None else make_io()
  }


def create_builtin_environment() -> Dict:
  """Create an environment with every builtin registered"""
  env = make_environment()
  for builtin in Builtin:
    env = declare_function(env, builtin.value, make_native_function(builtin))
  return env


# ============================================================================
# BUILT-IN OPERATIONS
# ============================================================================

BINARY_OPERATORS = {
    TokenKind.AND: lumen_and,
    TokenKind.OR: lumen_or,
    TokenKind.EQUAL_EQUAL: lumen_eq,
    TokenKind.NOT_EQUAL: lumen_ne,
    TokenKind.LESS: lumen_lt,
    TokenKind.GREATER: lumen_gt,
    TokenKind.LESS_EQUAL: lumen_le,
    TokenKind.GREATER_EQUAL: lumen_ge,
    TokenKind.PLUS: lumen_add,
    TokenKind.MINUS: lumen_sub,
    TokenKind.STAR: lumen_mul,
    TokenKind.SLASH: lumen_div,
    TokenKind.MODULO: lumen_mod,
}

UNARY_OPERATORS = {
    TokenKind.NOT: lumen_not,
    TokenKind.MINUS: lumen_negate,
}


# ============================================================================
# STATEMENT EXECUTION
# ============================================================================

def execute_statement(statement: Statement, env: Dict, context: Dict) -> Tuple[Outcome, Dict]:
  """Execute one statement and return (outcome, updated_environment)"""
  if context['debug']:
    print(f"Executing: {node_label(statement)}", file=sys.stderr)

  if isinstance(statement, LetStatement):
    return execute_let(statement, env, context)
  elif isinstance(statement, AssignmentStatement):
    return execute_assignment(statement, env, context)
  elif isinstance(statement, FunctionStatement):
    return define_function(statement, env, context)
  elif isinstance(statement, ReturnStatement):
    return execute_return(statement, env, context)
  elif isinstance(statement, ExpressionStatement):
    return eval_expression(statement.expression, env, context)
  raise LumenRuntimeError(f"unknown statement: {type(statement).__name__}")


def execute_let(statement: LetStatement, env: Dict, context: Dict) -> Tuple[Outcome, Dict]:
  """Evaluate the initializer, then declare in the current scope"""
  outcome, env = eval_expression(statement.expression, env, context)
  env = declare(env, statement.identifier.lexeme, outcome.value)
  return outcome, env


def execute_assignment(statement: AssignmentStatement, env: Dict, context: Dict) -> Tuple[Outcome, Dict]:
  """Assignment requires a prior declaration reachable from this scope"""
  name = statement.identifier.lexeme
  position = statement.identifier.position
  get(env, name, position)
  outcome, env = eval_expression(statement.expression, env, context)
  env = assign(env, name, outcome.value, position)
  return outcome, env


def define_function(statement: FunctionStatement, env: Dict, context: Dict) -> Tuple[Outcome, Dict]:
  """Register the function; nothing runs until it is called"""
  env = declare_function(env, statement.identifier.lexeme, make_user_function(statement))
  return Completed(make_nil()), env


def execute_return(statement: ReturnStatement, env: Dict, context: Dict) -> Tuple[Outcome, Dict]:
  if statement.expression is None:
    return Returned(make_nil()), env
  outcome, env = eval_expression(statement.expression, env, context)
  return Returned(outcome.value), env


# ============================================================================
# EXPRESSION EVALUATION
# ============================================================================

def eval_expression(expression: Expression, env: Dict, context: Dict) -> Tuple[Outcome, Dict]:
  """
  Evaluate an expression and return (outcome, updated_environment).
  Only blocks can produce a Returned outcome; every other expression passes
  a Returned outcome of a sub-expression straight through.
  """
  if context['debug']:
    print(f"Evaluating: {node_label(expression)}", file=sys.stderr)

  if isinstance(expression, BinaryExpression):
    return eval_binary(expression, env, context)
  elif isinstance(expression, UnaryExpression):
    return eval_unary(expression, env, context)
  elif isinstance(expression, GroupExpression):
    return eval_expression(expression.child, env, context)
  elif isinstance(expression, CallExpression):
    return eval_call(expression, env, context)
  elif isinstance(expression, IdentifierExpression):
    identifier = expression.identifier
    return Completed(get(env, identifier.lexeme, identifier.position)), env
  elif isinstance(expression, BlockExpression):
    return eval_block(expression, env, context)
  elif isinstance(expression, IfExpression):
    return eval_if(expression, env, context)
  elif isinstance(expression, LiteralExpression):
    literal = expression.token.literal
    return Completed(literal if literal is not None else make_nil()), env
  elif isinstance(expression, ArrayExpression):
    return eval_array(expression, env, context)
  raise LumenRuntimeError(f"unknown expression: {type(expression).__name__}")


def eval_binary(expression: BinaryExpression, env: Dict, context: Dict) -> Tuple[Outcome, Dict]:
  """Both operands are always evaluated, left first"""
  left, env = eval_expression(expression.left, env, context)
  if isinstance(left, Returned):
    return left, env
  right, env = eval_expression(expression.right, env, context)
  if isinstance(right, Returned):
    return right, env

  operator = expression.operator
  implementation = BINARY_OPERATORS.get(operator.kind)
  if implementation is None:
    raise LumenRuntimeError(f"`{operator.lexeme}` is not a binary operator.", operator.position)
  return Completed(implementation(left.value, right.value, operator.position)), env


def eval_unary(expression: UnaryExpression, env: Dict, context: Dict) -> Tuple[Outcome, Dict]:
  right, env = eval_expression(expression.right, env, context)
  if isinstance(right, Returned):
    return right, env

  operator = expression.operator
  implementation = UNARY_OPERATORS.get(operator.kind)
  if implementation is None:
    raise LumenRuntimeError(f"`{operator.lexeme}` is not a unary operator.", operator.position)
  return Completed(implementation(right.value, operator.position)), env


def eval_block(block: BlockExpression, env: Dict, context: Dict) -> Tuple[Outcome, Dict]:
  """Run statements in a fresh scope; a Returned outcome stops the block"""
  env = push_scope(env)
  outcome: Outcome = Completed(make_nil())
  for statement in block.statements:
    outcome, env = execute_statement(statement, env, context)
    if isinstance(outcome, Returned):
      break
  return outcome, pop_scope(env)


def eval_if(expression: IfExpression, env: Dict, context: Dict) -> Tuple[Outcome, Dict]:
  condition, env = eval_expression(expression.condition, env, context)
  if isinstance(condition, Returned):
    return condition, env

  if is_truthy(condition.value):
    return eval_block(expression.if_block, env, context)
  elif isinstance(expression.else_branch, IfExpression):
    return eval_if(expression.else_branch, env, context)
  elif isinstance(expression.else_branch, BlockExpression):
    return eval_block(expression.else_branch, env, context)
  return Completed(make_nil()), env


def eval_array(expression: ArrayExpression, env: Dict, context: Dict) -> Tuple[Outcome, Dict]:
  """Literal elements are used directly, identifiers are looked up"""
  elements = []
  for token in expression.elements:
    if token.literal is not None:
      elements.append(token.literal)
    elif token.kind == TokenKind.IDENTIFIER:
      elements.append(get(env, token.lexeme, token.position))
    else:
      raise LumenRuntimeError(f"`{token.lexeme}` cannot appear in an array literal", token.position)
  return Completed(make_array(elements)), env


# ============================================================================
# FUNCTION CALLS
# ============================================================================

def check_arity(entry: Dict, got: int, position: Any) -> None:
  """Exact arity, except that a trailing pack takes one or more arguments"""
  params = entry['params']
  expected = len(params)
  variadic = expected > 0 and params[-1].is_variadic

  if got < expected:
    missing = [param.name for param in params[got:]]
    raise ArityMismatch(entry['name'], expected, got, missing, position)
  if got > expected and not variadic:
    raise ArityMismatch(entry['name'], expected, got, position=position)


def bind_parameters(params: List[Any], args: List[Dict]) -> List[Tuple[str, Dict]]:
  """Pair parameter names with values; a pack collects the rest into an array"""
  bindings = []
  for index, param in enumerate(params):
    if param.is_variadic:
      bindings.append((param.name, make_array(args[index:])))
    else:
      bindings.append((param.name, args[index]))
  return bindings


def eval_call(expression: CallExpression, env: Dict, context: Dict) -> Tuple[Outcome, Dict]:
  identifier = expression.identifier
  entry = get_function(env, identifier.lexeme, identifier.position)
  check_arity(entry, len(expression.arguments), identifier.position)

  # Arguments are evaluated in the caller's scope
  args = []
  for argument in expression.arguments:
    outcome, env = eval_expression(argument, env, context)
    if isinstance(outcome, Returned):
      return outcome, env
    args.append(outcome.value)

  if entry['type'] == 'native_function':
    result = entry['builtin'].execute(args, identifier.position, context['io'])
    return Completed(result), env

  return call_user_function(entry, args, env, context)


def call_user_function(entry: Dict, args: List[Dict], env: Dict, context: Dict) -> Tuple[Outcome, Dict]:
  """Bind parameters in a fresh scope and run the body; `return` ends here"""
  env = push_scope(env)
  for name, value in bind_parameters(entry['params'], args):
    env = declare(env, name, value)

  outcome, env = eval_block(entry['body'], env, context)
  return Completed(outcome.value), pop_scope(env)


# ============================================================================
# PROGRAM EVALUATION
# ============================================================================

def eval_program(program: Program, env: Dict, context: Dict) -> Tuple[Dict, Dict]:
  """
  Execute top-level statements in order, failing fast.
  Returns (value of the last statement, final environment).
  """
  value = make_nil()
  for statement in program:
    outcome, env = execute_statement(statement, env, context)
    value = outcome.value
  return value, env


# ============================================================================
# INTERPRETER OBJECT (used by main.py and the tests)
# ============================================================================

# Recursion is the only way to loop; one Lumen call costs about ten Python frames
RECURSION_LIMIT = 20000


class LumenInterpreter:
  """Holds one environment across calls; delegates to the functional core"""

  def __init__(self, debug: bool = False, stdout: Any = None, stdin: Any = None):
    self.debug = debug
    self.context = make_execution_context(debug, make_io(stdout, stdin))
    self.parser = create_parser(debug)
    self.environment = create_builtin_environment()
    if sys.getrecursionlimit() < RECURSION_LIMIT:
      sys.setrecursionlimit(RECURSION_LIMIT)

  def interpret(self, program: Program) -> Dict:
    """Run a parsed program; the environment only changes if it succeeds"""
    try:
      value, env = eval_program(program, self.environment, self.context)
    except RecursionError:
      raise LumenRuntimeError("maximum recursion depth exceeded") from None
    self.environment = env
    return value

  def run(self, source: str, source_name: str = "<input>") -> Dict:
    """Tokenize, parse and interpret source text"""
    return self.interpret(self.parser.parse_string(source, source_name))

  def evaluate(self, source: str, source_name: str = "<input>") -> Dict:
    """Evaluate a single expression without changing the environment"""
    expression = self.parser.parse_expression(source, source_name)
    try:
      outcome, _ = eval_expression(expression, self.environment, self.context)
    except RecursionError:
      raise LumenRuntimeError("maximum recursion depth exceeded") from None
    return outcome.value


def create_interpreter(debug: bool = False, stdout: Any = None, stdin: Any = None) -> LumenInterpreter:
  """Factory function returning an interpreter"""
  return LumenInterpreter(debug=debug, stdout=stdout, stdin=stdin)


def create_debug_interpreter(stdout: Any = None, stdin: Any = None) -> LumenInterpreter:
  """Factory function returning a debug interpreter"""
  return create_interpreter(debug=True, stdout=stdout, stdin=stdin)
