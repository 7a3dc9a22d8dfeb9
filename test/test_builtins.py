"""
Standard library tests: builtin descriptors, execution rules and format
"""

import io
import math
import pytest
from stdlib import (
  Builtin, make_io, render_value, show_value, format_template,
  lumen_len, lumen_first, lumen_last, lumen_pop, lumen_push, lumen_readln
)
from error_handling import (
  LumenRuntimeError, UnknownBuiltin, InvalidPlaceholder, ArgumentCountError,
  UnclosedPlaceholder
)
from utilities import make_number, make_string, make_bool, make_nil, make_array


def numbers(*values):
  return make_array([make_number(v) for v in values])


class TestDescriptors:
  """Test the closed builtin enumeration"""

  def test_dispatch_by_exact_name(self):
    assert Builtin.from_name("len") is Builtin.LEN
    assert Builtin.from_name("readln") is Builtin.READLN

  def test_unknown_builtin(self):
    with pytest.raises(UnknownBuiltin) as exc_info:
      Builtin.from_name("Len")
    assert exc_info.value.name == "Len"

  def test_parameter_lists(self):
    assert [p.name for p in Builtin.PUSH.parameters] == ["pushable", "value"]
    assert Builtin.WRITE.parameters[-1].is_variadic
    assert Builtin.WRITELN.parameters[-1].is_variadic
    assert Builtin.FORMAT.parameters[-1].is_variadic
    assert not Builtin.LEN.parameters[-1].is_variadic


class TestArrayFunctions:
  """Test len/first/last/pop/push"""

  def test_len(self):
    assert lumen_len(make_string("hello")) == make_number(5)
    assert lumen_len(numbers(1, 2, 3)) == make_number(3)

  def test_len_rejects_other_types(self):
    with pytest.raises(LumenRuntimeError):
      lumen_len(make_bool(True))

  def test_first_and_last(self):
    assert lumen_first(numbers(1, 2)) == make_number(1)
    assert lumen_last(numbers(1, 2)) == make_number(2)
    assert lumen_first(numbers()) == make_nil()
    assert lumen_last(numbers()) == make_nil()

  def test_first_rejects_strings(self):
    with pytest.raises(LumenRuntimeError):
      lumen_first(make_string("abc"))

  def test_pop_leaves_argument_untouched(self):
    array = numbers(1, 2, 3)
    assert lumen_pop(array) == make_number(3)
    assert array == numbers(1, 2, 3)
    assert lumen_pop(numbers()) == make_nil()

  def test_push_returns_new_array(self):
    array = numbers(1, 2)
    assert lumen_push(array, make_number(3)) == numbers(1, 2, 3)
    assert array == numbers(1, 2)

  def test_push_rejects_non_arrays(self):
    with pytest.raises(LumenRuntimeError):
      lumen_push(make_nil(), make_number(1))


class TestRendering:
  """Test canonical string forms"""

  @pytest.mark.parametrize("value, expected", [
      (make_number(3), "3"),
      (make_number(2.5), "2.5"),
      (make_number(-4), "-4"),
      (make_number(math.inf), "inf"),
      (make_number(math.nan), "NaN"),
      (make_string("hi"), "hi"),
      (make_bool(True), "true"),
      (make_nil(), "nil"),
      (make_array([make_number(1), make_string("a")]), "[1, a]"),
  ])
  def test_render_value(self, value, expected):
    assert render_value(value) == expected

  def test_show_quotes_strings(self):
    assert show_value(make_array([make_string("a")])) == '["a"]'


class TestFormat:
  """Test format placeholders"""

  def test_auto_placeholders(self):
    assert format_template("{}-{}", [make_number(1), make_number(2)]) == "1-2"

  def test_numbered_placeholders(self):
    assert format_template("{1}-{0}", [make_number(1), make_number(2)]) == "2-1"

  def test_numbered_placeholders_repeat(self):
    assert format_template("{0}{0}{}", [make_string("a")]) == "aaa"

  def test_brace_escapes(self):
    assert format_template("{{}}", []) == "{}"

  def test_auto_placeholder_without_argument(self):
    with pytest.raises(ArgumentCountError):
      format_template("{}", [])

  def test_numbered_placeholder_out_of_bounds(self):
    with pytest.raises(ArgumentCountError):
      format_template("{3}", [make_number(1)])

  def test_invalid_placeholder(self):
    with pytest.raises(InvalidPlaceholder):
      format_template("{x}", [make_number(1)])
    with pytest.raises(InvalidPlaceholder):
      format_template("{1x}", [make_number(1)])

  def test_lone_closing_brace(self):
    with pytest.raises(UnclosedPlaceholder):
      format_template("a } b", [])

  def test_open_brace_at_end(self):
    with pytest.raises(UnclosedPlaceholder):
      format_template("abc {", [])

  def test_errors_are_runtime_errors(self):
    with pytest.raises(LumenRuntimeError):
      format_template("{}", [])


class TestExecute:
  """Test execution through the descriptor"""

  def test_writeln_writes_all_arguments(self):
    out = io.StringIO()
    result = Builtin.WRITELN.execute([make_string("a"), make_number(1)], None, make_io(stdout=out))
    assert out.getvalue() == "a 1\n"
    assert result == make_nil()

  def test_write_has_no_line_break(self):
    out = io.StringIO()
    Builtin.WRITE.execute([make_string("x")], None, make_io(stdout=out))
    assert out.getvalue() == "x"

  def test_format_with_single_array(self):
    result = Builtin.FORMAT.execute([make_string("{}+{}"), numbers(1, 2)])
    assert result == make_string("1+2")

  def test_format_with_packed_arguments(self):
    result = Builtin.FORMAT.execute([make_string("{}+{}"), make_number(1), make_number(2)])
    assert result == make_string("1+2")

  def test_format_requires_string_template(self):
    with pytest.raises(LumenRuntimeError):
      Builtin.FORMAT.execute([make_number(1), numbers()])


class TestReadln:
  """Test line input through injected streams"""

  def test_reads_one_line(self):
    out = io.StringIO()
    stream = make_io(stdout=out, stdin=io.StringIO("alice\nbob\n"))
    assert lumen_readln(make_string("name? "), None, stream) == make_string("alice")
    assert out.getvalue() == "name? "

  def test_end_of_input_fails(self):
    stream = make_io(stdout=io.StringIO(), stdin=io.StringIO(""))
    with pytest.raises(LumenRuntimeError) as exc_info:
      lumen_readln(make_string("> "), None, stream)
    assert "failed to read line" in exc_info.value.message
