"""
Tests for the syntax tree provider (offsets, navigation, layout scanning).
"""

from pathlib import Path

import libcst as cst
import pytest

from anyhint.core.errors import AnnotationInvariantError
from anyhint.core.tree import SourceTree, is_library_path, line_starts, offset_to_line_col

CODE = "x = 1\nif x:\n    y = (2)  # note\n"


@pytest.fixture
def tree() -> SourceTree:
  return SourceTree.parse(CODE)


def _second_target(tree: SourceTree) -> cst.Name:
  if_stmt = tree.module.body[1]
  return if_stmt.body.body[0].body[0].targets[0].target


def test_range_and_text(tree):
  name = _second_target(tree)
  start, end = tree.range_of(name)
  assert CODE[start:end] == "y"
  assert tree.text_of(name) == "y"
  assert tree.line_col(start) == (3, 4)


def test_parentheses_are_outside_positions(tree):
  assign = tree.module.body[1].body.body[0].body[0]
  assert tree.text_of(assign.value) == "2"
  start, end = tree.outer_range(assign.value)
  assert CODE[start:end] == "(2)"


def test_outer_range_spans_comments_inside_parentheses():
  code = "x = (  # note\n    (2)\n)\n"
  tree = SourceTree.parse(code)
  value = tree.module.body[0].body[0].value
  assert tree.text_of(value) == "2"
  start, end = tree.outer_range(value)
  assert code[start:end] == "(  # note\n    (2)\n)"


def test_foreign_node_raises(tree):
  with pytest.raises(AnnotationInvariantError):
    tree.range_of(cst.Name("z"))
  assert tree.code_range(cst.Name("z")) is None


def test_line_helpers(tree):
  name = _second_target(tree)
  offset = tree.start_of(name)
  assert tree.line_start(offset) == CODE.index("    y")
  assert tree.indent_at(offset) == "    "
  assert tree.next_line_start(offset) == len(CODE)
  assert tree.offset(3, 4) == offset


def test_navigation(tree):
  name = _second_target(tree)
  assert isinstance(tree.parent_of(name), cst.AssignTarget)
  assert isinstance(tree.first_ancestor(name, cst.If), cst.If)
  assert list(tree.ancestors(name))[-1] is tree.module
  assert any(node is name for node in tree.walk())


def test_scan_for_skips_layout():
  tree = SourceTree.parse("def f(a,  # c\n      b\n):\n  pass\n")
  func = tree.module.body[0]
  close = tree.scan_for(tree.end_of(func.params.params[-1].name), ")")
  assert tree.code[close] == ")"
  colon = tree.scan_for(close + 1, ":")
  assert tree.code[colon] == ":"


def test_scan_for_rejects_code():
  tree = SourceTree.parse("x = 1\n")
  with pytest.raises(AnnotationInvariantError):
    tree.scan_for(0, ":")


def test_newline_detection():
  assert SourceTree.parse("x = 1\r\n").newline == "\r\n"


def test_line_col_helpers():
  starts = line_starts("ab\ncd\n")
  assert starts == [0, 3, 6]
  assert offset_to_line_col(starts, 4) == (2, 1)


def test_library_paths(tmp_path):
  assert not is_library_path(None)
  assert is_library_path(Path("pkg/mod.pyi"))
  assert is_library_path(Path("/venv/lib/site-packages/pkg/mod.py"))
  plain = tmp_path / "mod.py"
  plain.write_text("x = 1\n")
  assert not is_library_path(plain, for_writing=True)
  assert SourceTree.parse("x = 1\n", path=Path("x/dist-packages/m.py")).is_library
  assert SourceTree.parse("x = 1\n", read_only=True).is_library
