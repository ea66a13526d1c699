"""
Import Injection.

Annotations may reference names that the module does not bind yet (most often
``Any`` from :mod:`typing`). This module computes the import statements that
are missing and a single text edit inserting them after the module docstring
and ``from __future__`` imports.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Union

import libcst as cst

from anyhint.analysis.scopes import ScopeAnalysis
from anyhint.core.document import TextEdit
from anyhint.core.tree import SourceTree

log = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class ImportReq:
  """
  A name an annotation needs at module scope.

  ``ImportReq("typing", "Any")`` renders as ``from typing import Any``,
  ``ImportReq("collections")`` as ``import collections``.
  """

  module: str
  name: str = ""

  @property
  def bound_name(self) -> str:
    """The module-level name the import binds."""
    if self.name:
      return self.name
    return self.module.split(".")[0]


def get_root_name(node: Union[cst.Name, cst.Attribute]) -> str:
  """
  Recursively extracts the root identifier from a Name or Attribute chain.

  Args:
      node: The CST node (e.g., ``Attribute(value=Name('typing'), ...)``).

  Returns:
      str: The root name (e.g., "typing").
  """
  if isinstance(node, cst.Name):
    return node.value
  if isinstance(node, cst.Attribute):
    return get_root_name(node.value)
  return ""


def create_dotted_name(name_str: str) -> Union[cst.Name, cst.Attribute]:
  """
  Creates a CST node structure for a dotted path string.

  Args:
      name_str (str): Dot-separated path (e.g. "collections.abc").

  Returns:
      Union[cst.Name, cst.Attribute]: The constructed node.
  """
  parts = name_str.split(".")
  node = cst.Name(parts[0])
  for part in parts[1:]:
    node = cst.Attribute(value=node, attr=cst.Name(part))
  return node


def is_docstring(node: cst.CSTNode, idx: int) -> bool:
  """
  Determines if a statement node represents a module docstring.

  Args:
      node: The statement node from the module body.
      idx: The index of this statement in the body list.

  Returns:
      bool: True if it is a docstring (string expression at index 0).
  """
  if idx != 0:
    return False
  if isinstance(node, cst.SimpleStatementLine):
    if len(node.body) == 1 and isinstance(node.body[0], cst.Expr):
      expr = node.body[0].value
      if isinstance(expr, (cst.SimpleString, cst.ConcatenatedString)):
        return True
  return False


def is_future_import(node: cst.CSTNode) -> bool:
  """
  Determines if a statement is a ``from __future__ import ...`` directive.
  """
  if isinstance(node, cst.SimpleStatementLine):
    for small_stmt in node.body:
      if isinstance(small_stmt, cst.ImportFrom):
        if small_stmt.module and isinstance(small_stmt.module, cst.Name):
          if small_stmt.module.value == "__future__":
            return True
  return False


def missing_imports(requirements: Iterable[ImportReq], scopes: ScopeAnalysis) -> List[ImportReq]:
  """
  Filters out requirements whose name is already bound at module scope.

  Returns:
      List[ImportReq]: Sorted, de-duplicated missing requirements.
  """
  module_names = scopes.module_scope.bindings
  return sorted({req for req in requirements if req.bound_name not in module_names})


def build_import_statements(requirements: Iterable[ImportReq]) -> List[cst.SimpleStatementLine]:
  """
  Creates import statements, grouping ``from`` imports by module.

  Args:
      requirements: The imports to create.

  Returns:
      List[cst.SimpleStatementLine]: Plain imports first, then ``from`` imports.
  """
  plain: List[str] = []
  grouped: Dict[str, List[str]] = {}
  for req in sorted(set(requirements)):
    if not req.name:
      plain.append(req.module)
    else:
      grouped.setdefault(req.module, []).append(req.name)

  statements = []
  for module in plain:
    statements.append(cst.SimpleStatementLine(body=[cst.Import(names=[cst.ImportAlias(name=create_dotted_name(module))])]))
  for module, names in grouped.items():
    statements.append(
      cst.SimpleStatementLine(
        body=[
          cst.ImportFrom(
            module=create_dotted_name(module),
            names=[cst.ImportAlias(name=cst.Name(name)) for name in names],
          )
        ]
      )
    )
  return statements


def insertion_point(tree: SourceTree) -> Tuple[int, str]:
  """
  Where new imports go: the start of the first statement that is neither the
  module docstring nor a ``__future__`` import.

  Returns:
      Tuple[int, str]: The offset and a prefix to emit before the imports
      (a newline when appending to a file lacking a trailing one).
  """
  body = list(tree.module.body)
  insert_idx = 0
  for i, stmt in enumerate(body):
    if is_docstring(stmt, i) or is_future_import(stmt):
      insert_idx = i + 1
    else:
      break

  if insert_idx < len(body):
    return tree.line_start(tree.start_of(body[insert_idx])), ""

  code = tree.code
  prefix = tree.newline if code and not code.endswith(("\n", "\r")) else ""
  return len(code), prefix


def import_edit(tree: SourceTree, scopes: ScopeAnalysis, requirements: Iterable[ImportReq]) -> Optional[TextEdit]:
  """
  Builds the edit inserting every missing import.

  The edit sorts before other insertions at the same offset.

  Returns:
      Optional[TextEdit]: None if nothing is missing.
  """
  missing = missing_imports(requirements, scopes)
  if not missing:
    return None
  offset, prefix = insertion_point(tree)
  text = prefix + "".join(tree.module.code_for_node(stmt) for stmt in build_import_statements(missing))
  log.debug("Injecting imports at offset %d: %s", offset, ", ".join(r.bound_name for r in missing))
  return TextEdit(
    start=offset,
    end=offset,
    text=text,
    order=-1,
    exclusive=False,
    description="imports",
  )
