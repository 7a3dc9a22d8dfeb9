"""
Command line tests: script runs, debug dumps and error reports
"""

import pytest
from pathlib import Path
from main import create_arg_parser, run_script_file, parse_file, tokens_file
from error_handling import (
  LumenErrorHandler, LumenParseError, UndefinedIdentifier, get_context_lines, format_error
)
from lexing import Position


@pytest.fixture
def script(tmp_path):
  """Write source text to a script file and return its path"""
  def _script(source: str, name: str = "program.lm") -> str:
    path = tmp_path / name
    path.write_text(source, encoding='utf-8')
    return str(path)
  return _script


class TestArguments:
  """Test command line flags"""

  def test_script_and_flags(self):
    args = create_arg_parser().parse_args(["--parse", "--debug", "prog.lm"])
    assert args.script == "prog.lm"
    assert args.parse and args.debug
    assert not args.tokens and not args.interactive

  def test_defaults(self):
    args = create_arg_parser().parse_args([])
    assert args.script is None
    assert not args.interactive


class TestRunScript:
  """Test running script files"""

  def test_successful_run(self, script, capsys):
    path = script('let greeting = format("{}, {}!", "Hello", "world");\nwriteln(greeting);\n')
    assert run_script_file(path) == 0
    assert capsys.readouterr().out == "Hello, world!\n"

  def test_runtime_error_reports_position(self, script, capsys):
    path = script('writeln("before");\nlet y = x + 1;\n')
    assert run_script_file(path) == 1
    captured = capsys.readouterr()
    assert captured.out == "before\n"
    assert "Runtime error at " + path + ":2" in captured.err
    assert "undefined identifier `x`" in captured.err
    assert ">   2: let y = x + 1;" in captured.err

  def test_parse_error_runs_nothing(self, script, capsys):
    path = script('writeln("never");\nlet = 3;\n')
    assert run_script_file(path) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Parse error" in captured.err
    assert "Expected: identifier after `let`" in captured.err

  def test_lex_error(self, script, capsys):
    path = script("let a = 1 @ 2;")
    assert run_script_file(path) == 1
    assert "Lex error" in capsys.readouterr().err

  def test_missing_file(self, tmp_path, capsys):
    assert run_script_file(str(tmp_path / "absent.lm")) == 1
    assert "not found" in capsys.readouterr().out


class TestDumps:
  """Test --tokens and --parse output"""

  def test_tokens_dump(self, script, capsys):
    path = script("let x = 1;")
    assert tokens_file(path) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].split() == ["1", "LET", "let"]
    assert lines[-1].split() == ["1", "EOF"]

  def test_parse_dump(self, script, capsys):
    path = script("let x = 1;\nwriteln(x);")
    assert parse_file(path) == 0
    out = capsys.readouterr().out
    assert "Parsed 2 top-level statements:" in out
    assert "LetStatement" in out
    assert "CallExpression(writeln)" in out


class TestErrorHandler:
  """Test error report formatting"""

  def test_context_lines_mark_error_line(self):
    source = "a\nb\nc\nd\ne"
    context = get_context_lines(source, 3, context_lines=1)
    assert context.splitlines() == [
        "      2: b",
        "  >   3: c",
        "      4: d",
    ]

  def test_context_out_of_range(self):
    assert get_context_lines("a", 5) == ""

  def test_parse_error_dict(self):
    error = LumenParseError("`;`", "`let`", Position("demo.lm", 1))
    report = LumenErrorHandler("let x = 1 let", "demo.lm").to_dict(error)
    assert report['kind'] == "Parse error"
    assert report['expected'] == "`;`"
    assert report['found'] == "`let`"
    assert report['line'] == 1

  def test_error_without_position(self):
    error = UndefinedIdentifier("ghost")
    text = LumenErrorHandler("", "demo.lm").describe(error)
    assert text.startswith("Runtime error at demo.lm:0:")
    assert "Context" not in text

  def test_format_error(self):
    text = format_error({
        'kind': "Runtime error", 'message': "boom", 'source_name': "s.lm", 'line': 4,
        'expected': None, 'found': None, 'context': None
    })
    assert text == "Runtime error at s.lm:4:\n  boom\n"

  def test_exception_string_includes_position(self):
    assert str(UndefinedIdentifier("v", Position("f.lm", 7))) == "undefined identifier `v` (at f.lm:7)"
