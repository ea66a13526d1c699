"""
Tests for import injection.

Verifies that:
1.  Names already bound at module scope are not imported again.
2.  Imports land after the module docstring and ``__future__`` imports.
3.  Plain imports come first, ``from`` imports are grouped per module.
"""

from anyhint.analysis.scopes import ScopeAnalysis
from anyhint.core.imports import (
  ImportReq,
  build_import_statements,
  import_edit,
  insertion_point,
  missing_imports,
)
from anyhint.core.tree import SourceTree


def _tree(code: str):
  tree = SourceTree.parse(code)
  return tree, ScopeAnalysis.build(tree)


def test_bound_name():
  assert ImportReq("typing", "Any").bound_name == "Any"
  assert ImportReq("collections.abc").bound_name == "collections"


def test_requirements_sort_without_names():
  reqs = sorted({ImportReq("typing", "Any"), ImportReq("typing"), ImportReq("os")})
  assert reqs == [ImportReq("os"), ImportReq("typing"), ImportReq("typing", "Any")]


def test_missing_skips_bound_names():
  tree, scopes = _tree("from typing import Any\nimport os\n")
  reqs = [ImportReq("typing", "Any"), ImportReq("typing", "List"), ImportReq("os")]
  assert missing_imports(reqs, scopes) == [ImportReq("typing", "List")]


def test_statement_layout():
  module = SourceTree.parse("").module
  statements = build_import_statements(
    [ImportReq("typing", "List"), ImportReq("collections"), ImportReq("typing", "Any")]
  )
  code = "".join(module.code_for_node(s) for s in statements)
  assert code == "import collections\nfrom typing import Any, List\n"


def test_insertion_after_docstring_and_future():
  code = '"""Doc."""\nfrom __future__ import annotations\nx = 1\n'
  tree, _ = _tree(code)
  offset, prefix = insertion_point(tree)
  assert offset == code.index("x = 1")
  assert prefix == ""


def test_insertion_at_end_without_newline():
  code = '"""Doc."""'
  tree, _ = _tree(code)
  offset, prefix = insertion_point(tree)
  assert offset == len(code)
  assert prefix == "\n"


def test_import_edit():
  code = "x = 1\n"
  tree, scopes = _tree(code)
  edit = import_edit(tree, scopes, [ImportReq("typing", "Any")])
  assert edit.start == edit.end == 0
  assert edit.text == "from typing import Any\n"
  assert edit.order < 0
  assert not edit.exclusive


def test_import_edit_nothing_missing():
  tree, scopes = _tree("from typing import Any\n")
  assert import_edit(tree, scopes, [ImportReq("typing", "Any")]) is None
