"""
Environment tests: scoped declare/get/assign and function bindings
"""

import pytest
from environment import (
  make_environment, declare, get, assign, push_scope, pop_scope, scope_depth,
  declare_function, get_function, visible_variables
)
from error_handling import UndefinedIdentifier
from utilities import make_number


class TestVariableBindings:
  """Test declare/get/assign"""

  def test_declare_then_get(self):
    env = declare(make_environment(), "x", make_number(1))
    assert get(env, "x") == make_number(1)

  def test_get_missing_name(self):
    with pytest.raises(UndefinedIdentifier) as exc_info:
      get(make_environment(), "missing", "pos")
    assert exc_info.value.name == "missing"
    assert exc_info.value.position == "pos"

  def test_redeclaration_overwrites(self):
    env = declare(make_environment(), "x", make_number(1))
    env = declare(env, "x", make_number(2))
    assert get(env, "x") == make_number(2)
    assert scope_depth(env) == 1

  def test_assign_requires_declaration(self):
    with pytest.raises(UndefinedIdentifier):
      assign(make_environment(), "x", make_number(1))

  def test_operations_do_not_mutate(self):
    env = make_environment()
    declared = declare(env, "x", make_number(1))
    assign(declared, "x", make_number(2))
    assert visible_variables(env) == {}
    assert get(declared, "x") == make_number(1)


class TestScopes:
  """Test shadowing and scope exit"""

  def test_shadowing_in_inner_scope(self):
    env = declare(make_environment(), "x", make_number(1))
    inner = declare(push_scope(env), "x", make_number(2))
    assert get(inner, "x") == make_number(2)
    assert get(pop_scope(inner), "x") == make_number(1)

  def test_inner_declaration_vanishes(self):
    inner = declare(push_scope(make_environment()), "y", make_number(1))
    with pytest.raises(UndefinedIdentifier):
      get(pop_scope(inner), "y")

  def test_assignment_to_outer_binding_survives(self):
    env = declare(make_environment(), "x", make_number(1))
    inner = assign(push_scope(env), "x", make_number(2))
    assert get(pop_scope(inner), "x") == make_number(2)

  def test_assignment_hits_innermost_owner(self):
    env = declare(make_environment(), "x", make_number(1))
    inner = declare(push_scope(env), "x", make_number(10))
    inner = assign(inner, "x", make_number(11))
    outer = pop_scope(inner)
    assert get(outer, "x") == make_number(1)

  def test_cannot_pop_global_scope(self):
    with pytest.raises(ValueError):
      pop_scope(make_environment())


class TestFunctionBindings:
  """Functions live in their own namespace"""

  def test_variable_and_function_share_a_name(self):
    env = declare(make_environment(), "f", make_number(1))
    env = declare_function(env, "f", {'type': 'user_function', 'name': 'f'})
    assert get(env, "f") == make_number(1)
    assert get_function(env, "f")['name'] == "f"

  def test_unknown_function(self):
    with pytest.raises(UndefinedIdentifier):
      get_function(make_environment(), "nope")

  def test_functions_are_not_scoped(self):
    env = declare_function(push_scope(make_environment()), "g", {'name': 'g'})
    assert get_function(pop_scope(env), "g") == {'name': 'g'}
