"""
Test configuration for Lumen tests
"""

import io
import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from parsing import create_parser
from interpreter import create_interpreter


@pytest.fixture
def parser():
  """Provide a fresh parser for each test"""
  return create_parser()


@pytest.fixture
def output():
  """Captured standard output for write/writeln"""
  return io.StringIO()


@pytest.fixture
def interpreter(output):
  """Interpreter whose standard output is captured in `output`"""
  return create_interpreter(stdout=output)


@pytest.fixture
def run(interpreter):
  """Run source text and return the value of its last statement"""
  def _run(source: str):
    return interpreter.run(source, "<test>")
  return _run
