"""
Literal Type Oracle.

A shallow, purely syntactic oracle. It types a target from the value assigned
to it when that value is a literal, a builtin constructor call or the
instantiation of a class defined in the same module, and follows plain name
aliases (``y = x``) through the scope analysis.

It never guesses: anything it cannot see directly is "unknown" and receives
the placeholder type.
"""

from typing import TYPE_CHECKING, List, Optional, Set

import libcst as cst

from anyhint.analysis.targets import binding_site
from anyhint.enums import BindingKind
from anyhint.inference.oracle import InferredType, TypeOracle, register_oracle

if TYPE_CHECKING:
  from anyhint.analysis.functions import FunctionSite, ParameterSite
  from anyhint.core.context import AnnotationContext

# Builtin callables whose result type is the callable's own name.
_CONSTRUCTORS = frozenset(
  {"bool", "bytearray", "bytes", "complex", "dict", "float", "frozenset", "int", "list", "object", "range", "set", "str", "tuple"}
)

# Builtin functions with a fixed result type.
_BUILTIN_RESULTS = {
  "callable": "bool",
  "chr": "str",
  "format": "str",
  "hasattr": "bool",
  "hash": "int",
  "id": "int",
  "isinstance": "bool",
  "issubclass": "bool",
  "len": "int",
  "ord": "int",
  "repr": "str",
}

_MAX_DEPTH = 8


def _contains(pattern: cst.CSTNode, node: cst.CSTNode) -> bool:
  if pattern is node:
    return True
  if isinstance(pattern, (cst.Tuple, cst.List)):
    return any(_contains(element.value, node) for element in pattern.elements)
  return False


def paired_value(pattern: cst.BaseExpression, value: cst.BaseExpression, node: cst.CSTNode) -> Optional[cst.BaseExpression]:
  """
  Finds the part of ``value`` assigned to ``node`` inside ``pattern``.

  ``a, (b, c) = 1, (2, 3)`` pairs ``c`` with ``3``. Starred elements or arity
  mismatches make the pairing unknown.

  Returns:
      Optional[cst.BaseExpression]: The paired value expression, or None.
  """
  if pattern is node:
    return value
  if not isinstance(pattern, (cst.Tuple, cst.List)) or not isinstance(value, (cst.Tuple, cst.List)):
    return None
  if len(pattern.elements) != len(value.elements):
    return None
  for target_el, value_el in zip(pattern.elements, value.elements):
    if isinstance(target_el, cst.StarredElement) or isinstance(value_el, cst.StarredElement):
      return None
    if _contains(target_el.value, node):
      return paired_value(target_el.value, value_el.value, node)
  return None


class _ReturnCollector(cst.CSTVisitor):
  """Collects the ``return`` / ``yield`` of one function body, nested scopes excluded."""

  def __init__(self) -> None:
    self.returns: List[cst.Return] = []
    self.yields = False
    self.raises = False

  def visit_FunctionDef(self, node: cst.FunctionDef) -> bool:
    return False

  def visit_ClassDef(self, node: cst.ClassDef) -> bool:
    return False

  def visit_Lambda(self, node: cst.Lambda) -> bool:
    return False

  def visit_Return(self, node: cst.Return) -> None:
    self.returns.append(node)

  def visit_Yield(self, node: cst.Yield) -> None:
    self.yields = True

  def visit_Raise(self, node: cst.Raise) -> None:
    self.raises = True


@register_oracle("literal")
class LiteralOracle(TypeOracle):
  """
  Infers types from literal values visible in the buffer.
  """

  name = "literal"

  def _generic(self, base: str, args: List[str], context: "AnnotationContext") -> str:
    if context.version >= (3, 9):
      head = base
    else:
      head = base.capitalize() if base != "frozenset" else "FrozenSet"
    return f"{head}[{', '.join(args)}]"

  def _homogeneous(self, values: List[Optional[str]]) -> Optional[str]:
    if not values or any(v is None for v in values):
      return None
    if len(set(values)) == 1:
      return values[0]
    return None

  def type_of(self, expr: cst.BaseExpression, context: "AnnotationContext", seen: Optional[Set[int]] = None) -> Optional[str]:
    """
    Renders the type of a value expression.

    Args:
        expr: The value.
        context: The annotation context.
        seen: Ids of names already being followed (alias cycles).

    Returns:
        Optional[str]: The type text, or None if unknown.
    """
    seen = seen if seen is not None else set()
    if len(seen) > _MAX_DEPTH:
      return None

    if isinstance(expr, cst.Integer):
      return "int"
    if isinstance(expr, cst.Float):
      return "float"
    if isinstance(expr, cst.Imaginary):
      return "complex"
    if isinstance(expr, cst.SimpleString):
      return "bytes" if "b" in expr.prefix.lower() else "str"
    if isinstance(expr, cst.ConcatenatedString):
      return self.type_of(expr.left, context, seen)
    if isinstance(expr, cst.FormattedString):
      return "str"
    if isinstance(expr, cst.Comparison):
      return "bool"
    if isinstance(expr, cst.UnaryOperation):
      if isinstance(expr.operator, cst.Not):
        return "bool"
      operand = self.type_of(expr.expression, context, seen)
      return operand if operand in ("int", "float", "complex") else None
    if isinstance(expr, cst.BinaryOperation):
      left = self.type_of(expr.left, context, seen)
      right = self.type_of(expr.right, context, seen)
      if left is not None and left == right and left in ("int", "float", "str", "bytes"):
        if isinstance(expr.operator, cst.Divide) and left == "int":
          return "float"
        return left
      return None
    if isinstance(expr, cst.Name):
      return self._type_of_name(expr, context, seen)
    if isinstance(expr, (cst.List, cst.Set)):
      base = "list" if isinstance(expr, cst.List) else "set"
      if any(isinstance(el, cst.StarredElement) for el in expr.elements):
        return base
      item = self._homogeneous([self.type_of(el.value, context, seen) for el in expr.elements])
      return self._generic(base, [item], context) if item else base
    if isinstance(expr, cst.Tuple):
      if not expr.elements or any(isinstance(el, cst.StarredElement) for el in expr.elements):
        return "tuple"
      items = [self.type_of(el.value, context, seen) for el in expr.elements]
      if any(item is None for item in items):
        return "tuple"
      return self._generic("tuple", items, context)
    if isinstance(expr, cst.Dict):
      if any(not isinstance(el, cst.DictElement) for el in expr.elements):
        return "dict"
      keys = self._homogeneous([self.type_of(el.key, context, seen) for el in expr.elements])
      values = self._homogeneous([self.type_of(el.value, context, seen) for el in expr.elements])
      if keys and values:
        return self._generic("dict", [keys, values], context)
      return "dict"
    if isinstance(expr, cst.ListComp):
      return "list"
    if isinstance(expr, cst.SetComp):
      return "set"
    if isinstance(expr, cst.DictComp):
      return "dict"
    if isinstance(expr, cst.Call):
      return self._type_of_call(expr, context)
    return None

  def _type_of_call(self, call: cst.Call, context: "AnnotationContext") -> Optional[str]:
    if not isinstance(call.func, cst.Name):
      return None
    name = call.func.value
    scope = context.scopes.scope_of(call.func)
    info = context.scopes.resolve_class(scope, name)
    if info is not None:
      return info.name
    if scope.lookup(name):
      # Shadowed builtin or unknown local callable.
      return None
    if name in _CONSTRUCTORS:
      return name
    return _BUILTIN_RESULTS.get(name)

  def _type_of_name(self, name: cst.Name, context: "AnnotationContext", seen: Set[int]) -> Optional[str]:
    if name.value in ("True", "False"):
      return "bool"
    if name.value == "None":
      return "None"
    if id(name) in seen:
      return None
    seen = seen | {id(name)}

    bindings = context.scopes.scope_of(name).lookup(name.value)
    if not bindings:
      return None
    results = []
    for binding in bindings:
      if binding.kind == BindingKind.CLASS:
        results.append(self._generic("type", [name.value], context))
      elif binding.kind == BindingKind.ANNOTATION:
        site = binding_site(context.tree, binding.node)
        if site is None or not isinstance(site.statement, cst.AnnAssign):
          return None
        results.append(context.tree.text_of(site.statement.annotation.annotation))
      elif binding.kind == BindingKind.ASSIGNMENT:
        results.append(self._type_of_target(binding.node, context, seen))
      else:
        return None
    return self._homogeneous(results)

  def _type_of_target(self, node: cst.CSTNode, context: "AnnotationContext", seen: Set[int]) -> Optional[str]:
    site = binding_site(context.tree, node)
    if site is None:
      return None
    statement = site.statement
    if site.kind == BindingKind.ASSIGNMENT and isinstance(statement, cst.Assign):
      value = paired_value(site.topmost, statement.value, node)
      return self.type_of(value, context, seen) if value is not None else None
    if site.kind == BindingKind.FOR and isinstance(statement, cst.For) and site.topmost is node:
      return self._element_type(statement.iter, context, seen)
    return None

  def _element_type(self, iterable: cst.BaseExpression, context: "AnnotationContext", seen: Set[int]) -> Optional[str]:
    if isinstance(iterable, (cst.List, cst.Tuple, cst.Set)):
      if any(isinstance(el, cst.StarredElement) for el in iterable.elements):
        return None
      return self._homogeneous([self.type_of(el.value, context, seen) for el in iterable.elements])
    if isinstance(iterable, cst.SimpleString) and "b" not in iterable.prefix.lower():
      return "str"
    if isinstance(iterable, cst.Call) and isinstance(iterable.func, cst.Name) and iterable.func.value == "range":
      if not context.scopes.scope_of(iterable.func).lookup("range"):
        return "int"
    return None

  def _usable(self, text: Optional[str]) -> Optional[InferredType]:
    if text is None or text == "None":
      return None
    return InferredType.from_text(text)

  def infer(self, node: cst.BaseExpression, context: "AnnotationContext") -> Optional[InferredType]:
    return self._usable(self._type_of_target(node, context, set()))

  def infer_parameter(
    self, site: "FunctionSite", param: "ParameterSite", context: "AnnotationContext"
  ) -> Optional[InferredType]:
    if param.default is None or param.star:
      return None
    return self._usable(self.type_of(param.default, context))

  def infer_return(self, site: "FunctionSite", context: "AnnotationContext") -> Optional[InferredType]:
    collector = _ReturnCollector()
    site.node.body.visit(collector)
    if collector.yields:
      return None
    values = [ret.value for ret in collector.returns if ret.value is not None]
    if not values:
      if collector.raises:
        return None
      return InferredType.from_text("None")

    types: List[Optional[str]] = [self.type_of(value, context) for value in values]
    has_none = len(values) < len(collector.returns) or "None" in types
    concrete = [t for t in types if t != "None"]
    if not concrete:
      return InferredType.from_text("None")
    item = self._homogeneous(concrete)
    if item is None:
      return None
    if has_none:
      return InferredType.from_text(f"Optional[{item}]")
    return InferredType.from_text(item)

