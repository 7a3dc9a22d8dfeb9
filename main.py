"""
Lumen Programming Language - Main Entry Point
Runs scripts, dumps tokens or syntax trees, and hosts the interactive loop
"""

import sys
import argparse
from pathlib import Path
from typing import Optional
import os

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from error_handling import LumenError, LumenErrorHandler
from parsing import create_parser, create_debug_parser
from syntax import pretty_print_ast, FunctionStatement
from interpreter import create_interpreter, create_debug_interpreter
from environment import visible_variables, visible_functions
from stdlib import show_value, list_builtin_functions


VERSION = "Lumen v0.1.0"
HISTORY_FILE = "~/.lumen_history"
PROMPT = "lumen> "


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      description='Lumen Programming Language - a small dynamically-typed scripting language',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.lm              # Run a Lumen script
  %(prog)s -i                     # Interactive mode
  %(prog)s --tokens script.lm     # Tokenize file and show tokens
  %(prog)s --parse script.lm      # Parse file and show the syntax tree
  %(prog)s --debug script.lm      # Run with debug tracing on stderr
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='Lumen script file to execute'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--tokens',
      action='store_true',
      help='Tokenize file and show tokens (for debugging)'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse file and show the syntax tree (for debugging)'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug output for all stages'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


def read_source(script_path: str) -> Optional[str]:
  """Read a script, printing a hint and returning None on failure"""
  try:
    with open(script_path, 'r', encoding='utf-8') as f:
      return f.read()
  except FileNotFoundError:
    print(f"Error: Script file '{script_path}' not found")
    print(f"  Hint: Check the file path and make sure the file exists")
  except PermissionError:
    print(f"Error: Permission denied reading '{script_path}'")
    print(f"  Hint: Make sure you have read permissions for this file")
  except UnicodeDecodeError as e:
    print(f"Error: Cannot decode file '{script_path}': {e}")
    print(f"  Hint: Make sure the file is a text file with UTF-8 encoding")
  return None


def report_error(error: LumenError, source: str, source_name: str) -> None:
  """Print an error with its position and the surrounding source lines"""
  handler = LumenErrorHandler(source, source_name)
  print(handler.describe(error), file=sys.stderr)


def tokens_file(script_path: str, debug: bool = False) -> int:
  """Tokenize a Lumen script file and show the tokens"""
  source = read_source(script_path)
  if source is None:
    return 1

  parser = create_debug_parser() if debug else create_parser()
  try:
    tokens = parser.tokenize(source, script_path)
  except LumenError as e:
    report_error(e, source, script_path)
    return 1

  for token in tokens:
    print(f"{token.position.line:4d}  {token.kind.value:<14} {token.lexeme}")
  return 0


def parse_file(script_path: str, debug: bool = False) -> int:
  """Parse a Lumen script file and show the syntax tree"""
  source = read_source(script_path)
  if source is None:
    return 1

  parser = create_debug_parser() if debug else create_parser()
  try:
    program = parser.parse_string(source, script_path)
  except LumenError as e:
    report_error(e, source, script_path)
    return 1

  print(f"Parsed {len(program)} top-level statements:")
  print("=" * 50)
  for node in program:
    print(pretty_print_ast(node), end='')
  return 0


def run_script_file(script_path: str, debug: bool = False) -> int:
  """Run a Lumen script file with full interpretation"""
  source = read_source(script_path)
  if source is None:
    return 1

  interpreter = create_debug_interpreter() if debug else create_interpreter()
  try:
    interpreter.run(source, script_path)
  except LumenError as e:
    sys.stdout.flush()
    report_error(e, source, script_path)
    return 1
  return 0


def setup_readline() -> None:
  """Setup readline with history and auto-completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser(HISTORY_FILE)
  try:
    readline.read_history_file(history_file)
  except OSError:
    pass  # First run, or the history file is unreadable

  readline.set_history_length(1000)

  completions = [
      # Keywords
      "let", "fn", "if", "else", "return", "true", "false", "nil",
      "and", "or", "not",
      # REPL commands
      ":env", ":help", "exit",
  ] + list_builtin_functions()

  def completer(text, state):
    options = [cmd for cmd in completions if cmd.startswith(text)]
    if state < len(options):
      return options[state]
    return None

  readline.set_completer(completer)
  readline.parse_and_bind("tab: complete")

  import atexit
  atexit.register(readline.write_history_file, history_file)


def print_environment(interpreter) -> None:
  """Show user bindings and user-defined functions"""
  variables = visible_variables(interpreter.environment)
  functions = {
      name: entry for name, entry in visible_functions(interpreter.environment).items()
      if entry['type'] == 'user_function'
  }

  if not variables and not functions:
    print("  (no user-defined bindings)")
    return

  for name, value in variables.items():
    val_str = show_value(value)
    if len(val_str) > 60:
      val_str = val_str[:57] + "..."
    print(f"  {name} = {val_str}")
  for name, entry in functions.items():
    params = ", ".join(p.name + ("..." if p.is_variadic else "") for p in entry['params'])
    print(f"  fn {name}({params})")


def print_help() -> None:
  print("REPL Commands:")
  print("  :env              - Show current bindings")
  print("  :help             - Show this help")
  print("  exit              - Exit REPL")
  print()
  print("Language features:")
  print("  let x = 5;                    - Variable declaration")
  print("  x = x + 1;                    - Assignment")
  print("  fn add(a, b) { return a + b; } - Function definition")
  print("  if x > 1 { 1 } else { 2 }     - Conditional expression")
  print("  writeln(format(\"{}!\", [x]));  - Builtins")


def run_interactive_mode(debug: bool = False) -> None:
  """Run Lumen in interactive mode; one environment is shared by all inputs"""
  print(f"{VERSION} - Interactive Mode")
  print("Type 'exit' to quit, ':help' for commands")
  if READLINE_AVAILABLE:
    print("Readline enabled: Use ↑/↓ for history, Tab for completion")
  if debug:
    print("Debug mode enabled")
  print()

  setup_readline()
  interpreter = create_debug_interpreter() if debug else create_interpreter()

  while True:
    try:
      code = input(PROMPT)
    except (KeyboardInterrupt, EOFError):
      print("\nGoodbye!")
      break

    command = code.strip()
    if command == "exit":
      break
    if not command:
      continue
    if command == ":env":
      print("Current environment:")
      print_environment(interpreter)
      continue
    if command == ":help":
      print_help()
      continue

    try:
      program = interpreter.parser.parse_string(code, "<repl>")
      value = interpreter.interpret(program)
      if program and not isinstance(program[-1], FunctionStatement):
        print(f"=> {show_value(value)}")
    except LumenError as e:
      report_error(e, code, "<repl>")
    except KeyboardInterrupt:
      print("\nInterrupted")


def show_language_info() -> None:
  """Show Lumen language information"""
  print("Lumen Programming Language")
  print("=" * 50)
  print("A small dynamically-typed scripting language with:")
  print("• let bindings and block scoping")
  print("• functions with variadic parameters")
  print("• if expressions and arrays")
  print(f"• builtins: {', '.join(list_builtin_functions())}")
  print()


def main() -> None:
  """Main entry point for Lumen"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args()

  if len(sys.argv) == 1:
    # No arguments - show info and start interactive mode
    show_language_info()
    run_interactive_mode(debug=False)
    return

  if args.script:
    if not Path(args.script).exists():
      print(f"Error: Script file '{args.script}' does not exist")
      sys.exit(1)

    if args.tokens:
      status = tokens_file(args.script, debug=args.debug)
    elif args.parse:
      status = parse_file(args.script, debug=args.debug)
    else:
      status = run_script_file(args.script, debug=args.debug)
    sys.exit(status)

  elif args.interactive:
    run_interactive_mode(debug=args.debug)

  else:
    arg_parser.print_help()
    print()
    show_language_info()


if __name__ == "__main__":
  main()
