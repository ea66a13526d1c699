"""
Function Discovery.

Collects function definitions whose signature can receive annotations, and
describes their parameters in declaration order (positional-only, regular,
``*args``, keyword-only, ``**kwargs``).
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

import libcst as cst

from anyhint.analysis.scopes import Scope, is_type_comment
from anyhint.enums import ScopeKind

if TYPE_CHECKING:
  from anyhint.core.context import AnnotationContext


def _decorator_names(func: cst.FunctionDef) -> List[str]:
  names = []
  for decorator in func.decorators:
    expr = decorator.decorator
    if isinstance(expr, cst.Call):
      expr = expr.func
    if isinstance(expr, cst.Name):
      names.append(expr.value)
    elif isinstance(expr, cst.Attribute):
      names.append(expr.attr.value)
  return names


def is_staticmethod(func: cst.FunctionDef) -> bool:
  return "staticmethod" in _decorator_names(func)


def implicit_receiver(func: cst.FunctionDef) -> Optional[cst.Param]:
  """
  The implicit first parameter of a method (``self`` / ``cls``).

  Callers must ensure ``func`` is defined directly in a class body.

  Returns:
      Optional[cst.Param]: The receiver parameter, or None for static methods
      and methods without positional parameters.
  """
  if is_staticmethod(func):
    return None
  positional = list(func.params.posonly_params) + list(func.params.params)
  if not positional:
    return None
  return positional[0]


def function_type_comment(func: cst.FunctionDef) -> Optional[str]:
  """
  Returns a legacy signature comment (``# type: (int) -> str``) if present.

  The comment may trail the header line or lead the first body statement.
  """
  body = func.body
  if isinstance(body, cst.IndentedBlock):
    if is_type_comment(body.header.comment):
      return body.header.comment.value
    if body.body:
      for line in body.body[0].leading_lines:
        if is_type_comment(line.comment):
          return line.comment.value
  elif isinstance(body, cst.SimpleStatementSuite):
    if is_type_comment(body.trailing_whitespace.comment):
      return body.trailing_whitespace.comment.value
  return None


@dataclass
class ParameterSite:
  """
  One parameter of a function signature.
  """

  node: cst.Param
  star: str
  """``""``, ``"*"`` or ``"**"``."""

  is_implicit: bool = False

  @property
  def name(self) -> str:
    return self.node.name.value

  @property
  def annotated(self) -> bool:
    return self.node.annotation is not None

  @property
  def default(self) -> Optional[cst.BaseExpression]:
    return self.node.default


@dataclass
class FunctionSite:
  """
  A function definition with its parameters in declaration order.
  """

  node: cst.FunctionDef
  parameters: List[ParameterSite]
  is_method: bool
  scope: Scope
  """The scope the definition appears in."""

  type_comment: Optional[str] = None

  @property
  def name(self) -> str:
    return self.node.name.value

  @property
  def returns(self) -> Optional[cst.Annotation]:
    return self.node.returns

  @property
  def explicit_parameters(self) -> List[ParameterSite]:
    """Parameters that may be annotated (the receiver excluded)."""
    return [p for p in self.parameters if not p.is_implicit]

  @property
  def is_fully_annotated(self) -> bool:
    if self.type_comment is not None:
      return True
    return self.returns is not None and all(p.annotated for p in self.explicit_parameters)


def build_function_site(func: cst.FunctionDef, scope: Scope) -> FunctionSite:
  """
  Describes a function definition.

  Args:
      func: The definition node.
      scope: The scope containing the definition.

  Returns:
      FunctionSite: The described signature.
  """
  is_method = scope.kind == ScopeKind.CLASS
  receiver = implicit_receiver(func) if is_method else None
  params = func.params

  sites: List[ParameterSite] = []
  for param in list(params.posonly_params) + list(params.params):
    sites.append(ParameterSite(param, "", is_implicit=param is receiver))
  if isinstance(params.star_arg, cst.Param):
    sites.append(ParameterSite(params.star_arg, "*"))
  for param in params.kwonly_params:
    sites.append(ParameterSite(param, ""))
  if params.star_kwarg is not None:
    sites.append(ParameterSite(params.star_kwarg, "**"))

  return FunctionSite(
    node=func,
    parameters=sites,
    is_method=is_method,
    scope=scope,
    type_comment=function_type_comment(func),
  )


def find_functions(context: "AnnotationContext") -> List[FunctionSite]:
  """
  Collects the functions of a buffer that still need annotations.

  Library sources yield nothing. Fully annotated functions (or ones carrying a
  signature type comment) are dropped unless overwriting is enabled.

  Args:
      context: The per-buffer annotation context.

  Returns:
      List[FunctionSite]: Functions in source order.
  """
  tree = context.tree
  if tree.is_library:
    return []
  found = []
  for node in tree.walk():
    if not isinstance(node, cst.FunctionDef):
      continue
    own_scope = context.scopes.scope_owned_by(node)
    enclosing = own_scope.parent if own_scope is not None and own_scope.parent is not None else context.scopes.module_scope
    site = build_function_site(node, enclosing)
    if site.is_fully_annotated and not context.config.overwrite_annotations:
      continue
    found.append(site)
  return found
