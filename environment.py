"""
Lumen runtime environment - Pure Functional Style
Variable and function binding tables as immutable stacks of frames.
Every operation returns a new environment; frames are never mutated in place.
"""

from typing import Any, Dict, Optional, Tuple

from error_handling import UndefinedIdentifier


Frames = Tuple[Dict[str, Any], ...]


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_environment(variables: Optional[Frames] = None, functions: Optional[Frames] = None) -> Dict:
  """Create an environment with one global frame per table"""
  return {
      'variables': variables if variables is not None else ({},),
      'functions': functions if functions is not None else ({},)
  }


# ============================================================================
# FRAME STACK OPERATIONS
# ============================================================================

def frames_declare(frames: Frames, name: str, value: Any) -> Frames:
  """Bind name in the innermost frame"""
  return frames[:-1] + ({**frames[-1], name: value},)


def frames_find(frames: Frames, name: str) -> Optional[int]:
  """Index of the innermost frame owning name, or None"""
  for index in range(len(frames) - 1, -1, -1):
    if name in frames[index]:
      return index
  return None


def frames_lookup(frames: Frames, name: str, position: Any = None) -> Any:
  index = frames_find(frames, name)
  if index is None:
    raise UndefinedIdentifier(name, position)
  return frames[index][name]


def frames_assign(frames: Frames, name: str, value: Any, position: Any = None) -> Frames:
  """Overwrite name in whichever frame owns it"""
  index = frames_find(frames, name)
  if index is None:
    raise UndefinedIdentifier(name, position)
  return frames[:index] + ({**frames[index], name: value},) + frames[index + 1:]


# ============================================================================
# VARIABLE BINDINGS
# ============================================================================

def declare(env: Dict, name: str, value: Dict) -> Dict:
  """Return new environment with name declared in the current scope"""
  return {**env, 'variables': frames_declare(env['variables'], name, value)}


def get(env: Dict, name: str, position: Any = None) -> Dict:
  """Look up a variable, innermost scope first"""
  return frames_lookup(env['variables'], name, position)


def assign(env: Dict, name: str, value: Dict, position: Any = None) -> Dict:
  """Return new environment with an already declared variable overwritten"""
  return {**env, 'variables': frames_assign(env['variables'], name, value, position)}


def push_scope(env: Dict) -> Dict:
  """Enter a block or call scope"""
  return {**env, 'variables': env['variables'] + ({},)}


def pop_scope(env: Dict) -> Dict:
  """Leave the current scope, dropping its declarations"""
  if len(env['variables']) == 1:
    raise ValueError("cannot pop the global scope")
  return {**env, 'variables': env['variables'][:-1]}


def scope_depth(env: Dict) -> int:
  return len(env['variables'])


def visible_variables(env: Dict) -> Dict[str, Dict]:
  """Flattened view of every variable reachable from the current scope"""
  result: Dict[str, Dict] = {}
  for frame in env['variables']:
    result.update(frame)
  return result


# ============================================================================
# FUNCTION BINDINGS
# ============================================================================

def declare_function(env: Dict, name: str, entry: Dict) -> Dict:
  """Return new environment with a function registered"""
  return {**env, 'functions': frames_declare(env['functions'], name, entry)}


def get_function(env: Dict, name: str, position: Any = None) -> Dict:
  """Look up a function entry by name"""
  return frames_lookup(env['functions'], name, position)


def visible_functions(env: Dict) -> Dict[str, Dict]:
  result: Dict[str, Dict] = {}
  for frame in env['functions']:
    result.update(frame)
  return result
