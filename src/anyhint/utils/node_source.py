"""
Node Rendering Helpers.

Renders LibCST nodes "in vacuum" (detached from their module) for labels,
trace events and generated declaration text.
"""

from typing import Union

import libcst as cst

# A dummy module used as a context to render detached nodes.
_RENDER_CTX = cst.parse_module("")


def capture_node_source(node: cst.CSTNode) -> str:
  """
  Renders a LibCST node into its Python source code string representation.

  Args:
      node: The CST node to serialise.

  Returns:
      str: The Python code string.
  """
  try:
    return _RENDER_CTX.code_for_node(node)
  except Exception:
    return f"<Unrepresentable Node: {type(node).__name__}>"


def strip_parens(node: cst.BaseExpression) -> cst.BaseExpression:
  """Drops the parentheses LibCST folds into an expression node."""
  if getattr(node, "lpar", None) or getattr(node, "rpar", None):
    return node.with_changes(lpar=[], rpar=[])
  return node


def target_label(node: Union[cst.Name, cst.Attribute]) -> str:
  """
  Short human readable label for a binding target (``x``, ``self.x``).
  """
  return capture_node_source(strip_parens(node)).strip()
