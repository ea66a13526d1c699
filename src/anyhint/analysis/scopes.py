"""
Lexical Scope Analysis.

This module provides a static analysis pass that builds the scope tree of a
module before any annotation is synthesized. It answers the two resolution
questions the annotation passes ask:

1.  **Same-named bindings**: which bindings of ``x`` live in the scope that owns
    a given ``x = ...`` target (honouring ``global`` / ``nonlocal``)?
2.  **Class members**: which class-level definitions of ``attr`` are visible
    from a class, following base classes defined in the same module?

The `ScopeAnalyzer` visitor populates a `ScopeAnalysis` by tracking:

*   Module, class, function, lambda and comprehension scopes.
*   Every binding construct (assignments, loops, ``with``, imports, parameters,
    definitions, walrus and ``except ... as``) together with whether it carries
    an inline annotation or a ``# type:`` comment.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set

import libcst as cst

from anyhint.core.tree import SourceTree
from anyhint.enums import BindingKind, ScopeKind, TARGET_KINDS
from anyhint.utils.node_source import target_label

TYPE_COMMENT_RE = re.compile(r"^#\s*type:(?!\s*ignore\b)")


def is_type_comment(comment: Optional[cst.Comment]) -> bool:
  """True if a comment node is a PEP 484 type comment (``# type: ignore`` excluded)."""
  return comment is not None and bool(TYPE_COMMENT_RE.match(comment.value))


def _header_comment(body: cst.BaseSuite) -> Optional[cst.Comment]:
  if isinstance(body, cst.IndentedBlock):
    return body.header.comment
  if isinstance(body, cst.SimpleStatementSuite):
    return body.trailing_whitespace.comment
  return None


def type_comment_of(tree: SourceTree, statement: cst.CSTNode) -> Optional[str]:
  """
  Returns the type comment attached to a binding statement, if any.

  Args:
      tree: The source tree (for parent lookups).
      statement: An ``Assign`` / ``AnnAssign`` small statement, or a ``For`` /
          ``With`` compound statement.

  Returns:
      Optional[str]: The comment text (``# type: ...``) or None.
  """
  comment = None
  if isinstance(statement, (cst.For, cst.With)):
    comment = _header_comment(statement.body)
  else:
    line = tree.parent_of(statement)
    if isinstance(line, (cst.SimpleStatementLine, cst.SimpleStatementSuite)) and line.body[-1] is statement:
      comment = line.trailing_whitespace.comment
  if is_type_comment(comment):
    return comment.value
  return None


def bound_names(expr: cst.BaseExpression) -> Iterator[cst.Name]:
  """
  Yields the plain names bound by an assignment target expression.

  Tuple and list patterns are unpacked recursively. Attributes and subscripts
  do not bind names.
  """
  if isinstance(expr, cst.Name):
    yield expr
  elif isinstance(expr, (cst.Tuple, cst.List)):
    for element in expr.elements:
      yield from bound_names(element.value)
  elif isinstance(expr, cst.StarredElement):
    yield from bound_names(expr.value)


@dataclass
class Binding:
  """
  One binding of a name in a scope.
  """

  name: str
  node: cst.CSTNode
  """The node that receives the name (usually a ``cst.Name``)."""

  kind: BindingKind
  annotated: bool = False
  """True if the binding carries an inline annotation or a type comment."""

  definition: Optional[cst.CSTNode] = None
  """The ``ClassDef`` / ``FunctionDef`` for definition bindings."""


class Scope:
  """
  Represents a lexical scope (module, class, function, lambda or comprehension).
  """

  def __init__(self, kind: ScopeKind, node: cst.CSTNode, parent: Optional["Scope"] = None, name: str = "<module>"):
    """
    Args:
        kind: The scope kind.
        node: The node owning the scope (Module, ClassDef, FunctionDef, ...).
        parent: The enclosing scope (None for the module).
        name: Debug name for the scope.
    """
    self.kind = kind
    self.node = node
    self.parent = parent
    self.name = name
    self.children: List["Scope"] = []
    self.bindings: Dict[str, List[Binding]] = {}
    self.global_names: Set[str] = set()
    self.nonlocal_names: Set[str] = set()
    # Source labels of annotated attribute targets (``self.x: int = ...``).
    self.annotated_attributes: Set[str] = set()
    if parent is not None:
      parent.children.append(self)

  def __repr__(self) -> str:
    return f"Scope({self.kind.value}, {self.name!r})"

  @property
  def root(self) -> "Scope":
    scope = self
    while scope.parent is not None:
      scope = scope.parent
    return scope

  def declare(self, binding: Binding) -> None:
    """Registers a binding in this scope."""
    self.bindings.setdefault(binding.name, []).append(binding)

  def bindings_of(self, name: str) -> List[Binding]:
    """All bindings of ``name`` in this scope, in source order."""
    return list(self.bindings.get(name, []))

  def owner_for(self, name: str) -> "Scope":
    """
    The scope that actually owns bindings of ``name`` made from this scope.

    ``global`` redirects to the module scope, ``nonlocal`` to the closest
    enclosing function scope binding the name.
    """
    if name in self.global_names:
      return self.root
    if name in self.nonlocal_names:
      fallback = None
      scope = self.parent
      while scope is not None:
        if scope.kind in (ScopeKind.FUNCTION, ScopeKind.LAMBDA):
          if name in scope.bindings:
            return scope.owner_for(name)
          fallback = fallback or scope
        scope = scope.parent
      if fallback is not None:
        return fallback
    return self

  def lookup(self, name: str) -> List[Binding]:
    """
    Resolves ``name`` following Python's LEGB rule (class scopes are skipped
    when looking outwards).
    """
    owner = self.owner_for(name)
    if name in owner.bindings:
      return owner.bindings_of(name)
    scope = owner.parent
    while scope is not None:
      if scope.kind != ScopeKind.CLASS and name in scope.bindings:
        return scope.bindings_of(name)
      scope = scope.parent
    return []


@dataclass
class ClassInfo:
  """
  A class definition and its body scope.
  """

  node: cst.ClassDef
  scope: Scope

  @property
  def name(self) -> str:
    return self.node.name.value

  @property
  def base_names(self) -> List[str]:
    """Plain-name positional bases (``class A(B, C)`` -> ``['B', 'C']``)."""
    return [arg.value.value for arg in self.node.bases if arg.keyword is None and isinstance(arg.value, cst.Name)]


@dataclass
class ScopeAnalysis:
  """
  Container for analysis results.
  """

  module_scope: Scope
  classes: Dict[cst.ClassDef, ClassInfo] = field(default_factory=dict)
  _node_scopes: Dict[cst.CSTNode, Scope] = field(default_factory=dict)
  _owned_scopes: Dict[cst.CSTNode, Scope] = field(default_factory=dict)

  @classmethod
  def build(cls, tree: SourceTree) -> "ScopeAnalysis":
    """Runs the `ScopeAnalyzer` over a source tree."""
    analyzer = ScopeAnalyzer(tree)
    tree.module.visit(analyzer)
    return analyzer.analysis

  def scope_of(self, node: cst.CSTNode) -> Scope:
    """
    The scope a ``Name`` / ``Attribute`` node appears in.

    Unknown nodes fall back to the module scope.
    """
    return self._node_scopes.get(node, self.module_scope)

  def scope_owned_by(self, owner: cst.CSTNode) -> Optional[Scope]:
    """The scope opened by a ClassDef / FunctionDef / Lambda / comprehension."""
    return self._owned_scopes.get(owner)

  def class_for_scope(self, scope: Optional[Scope]) -> Optional[ClassInfo]:
    if scope is None or scope.kind != ScopeKind.CLASS:
      return None
    return self.classes.get(scope.node)

  def resolve_class(self, scope: Optional[Scope], name: str) -> Optional[ClassInfo]:
    """
    Resolves a class name visible from ``scope``.

    Returns None if the name is unbound or bound to something other than a class.
    """
    if scope is None:
      return None
    bindings = scope.lookup(name)
    if not bindings:
      return None
    last = bindings[-1]
    if last.kind == BindingKind.CLASS and last.definition is not None:
      return self.classes.get(last.definition)
    return None

  def mro(self, info: ClassInfo) -> List[ClassInfo]:
    """
    Linearised class hierarchy (depth-first, left-to-right, duplicates
    dropped), limited to classes defined in this module.
    """
    result: List[ClassInfo] = []
    seen: Set[int] = set()

    def visit(current: ClassInfo) -> None:
      if id(current.node) in seen:
        return
      seen.add(id(current.node))
      result.append(current)
      for base_name in current.base_names:
        base = self.resolve_class(current.scope.parent, base_name)
        if base is not None:
          visit(base)

    visit(info)
    return result

  def class_level_definitions(self, info: ClassInfo, name: str) -> List[Binding]:
    """
    Class-body target bindings of ``name`` for ``info`` or its first base
    class that defines any.
    """
    for klass in self.mro(info):
      definitions = [b for b in klass.scope.bindings_of(name) if b.kind in TARGET_KINDS]
      if definitions:
        return definitions
    return []


class ScopeAnalyzer(cst.CSTVisitor):
  """
  Static analysis pass populating a `ScopeAnalysis`.
  """

  def __init__(self, tree: SourceTree):
    """
    Args:
        tree: The source tree being analysed (used for type comment lookup).
    """
    self.tree = tree
    root = Scope(ScopeKind.MODULE, tree.module)
    self.analysis = ScopeAnalysis(module_scope=root)
    self.analysis._owned_scopes[tree.module] = root
    self.current = root

  # --- Scoping ---

  def _push(self, kind: ScopeKind, node: cst.CSTNode, name: str) -> Scope:
    scope = Scope(kind, node, parent=self.current, name=name)
    self.analysis._owned_scopes[node] = scope
    self.current = scope
    return scope

  def _pop(self) -> None:
    if self.current.parent is not None:
      self.current = self.current.parent

  def _declare(
    self,
    node: cst.Name,
    kind: BindingKind,
    annotated: bool = False,
    definition: Optional[cst.CSTNode] = None,
    scope: Optional[Scope] = None,
  ) -> None:
    scope = scope or self.current
    owner = scope.owner_for(node.value)
    owner.declare(Binding(node.value, node, kind, annotated=annotated, definition=definition))

  def visit_ClassDef(self, node: cst.ClassDef) -> None:
    self._declare(node.name, BindingKind.CLASS, definition=node)
    scope = self._push(ScopeKind.CLASS, node, node.name.value)
    self.analysis.classes[node] = ClassInfo(node=node, scope=scope)

  def leave_ClassDef(self, original_node: cst.ClassDef) -> None:
    self._pop()

  def visit_FunctionDef(self, node: cst.FunctionDef) -> None:
    self._declare(node.name, BindingKind.FUNCTION, definition=node)
    self._push(ScopeKind.FUNCTION, node, node.name.value)

  def leave_FunctionDef(self, original_node: cst.FunctionDef) -> None:
    self._pop()

  def visit_Lambda(self, node: cst.Lambda) -> None:
    self._push(ScopeKind.LAMBDA, node, "<lambda>")

  def leave_Lambda(self, original_node: cst.Lambda) -> None:
    self._pop()

  def visit_ListComp(self, node: cst.ListComp) -> None:
    self._push(ScopeKind.COMPREHENSION, node, "<listcomp>")

  def leave_ListComp(self, original_node: cst.ListComp) -> None:
    self._pop()

  def visit_SetComp(self, node: cst.SetComp) -> None:
    self._push(ScopeKind.COMPREHENSION, node, "<setcomp>")

  def leave_SetComp(self, original_node: cst.SetComp) -> None:
    self._pop()

  def visit_DictComp(self, node: cst.DictComp) -> None:
    self._push(ScopeKind.COMPREHENSION, node, "<dictcomp>")

  def leave_DictComp(self, original_node: cst.DictComp) -> None:
    self._pop()

  def visit_GeneratorExp(self, node: cst.GeneratorExp) -> None:
    self._push(ScopeKind.COMPREHENSION, node, "<genexpr>")

  def leave_GeneratorExp(self, original_node: cst.GeneratorExp) -> None:
    self._pop()

  # --- Usage positions ---

  def visit_Name(self, node: cst.Name) -> None:
    self.analysis._node_scopes[node] = self.current

  def visit_Attribute(self, node: cst.Attribute) -> None:
    self.analysis._node_scopes[node] = self.current

  # --- Declarations ---

  def visit_Global(self, node: cst.Global) -> None:
    for item in node.names:
      self.current.global_names.add(item.name.value)

  def visit_Nonlocal(self, node: cst.Nonlocal) -> None:
    for item in node.names:
      self.current.nonlocal_names.add(item.name.value)

  def visit_Param(self, node: cst.Param) -> None:
    self._declare(node.name, BindingKind.PARAMETER, annotated=node.annotation is not None)

  def _record_attributes(self, expr: cst.BaseExpression) -> None:
    if isinstance(expr, cst.Attribute):
      self.current.annotated_attributes.add(target_label(expr))
    elif isinstance(expr, (cst.Tuple, cst.List)):
      for element in expr.elements:
        self._record_attributes(element.value)

  def visit_Assign(self, node: cst.Assign) -> None:
    annotated = type_comment_of(self.tree, node) is not None
    for target in node.targets:
      for name in bound_names(target.target):
        self._declare(name, BindingKind.ASSIGNMENT, annotated=annotated)
      if annotated:
        self._record_attributes(target.target)

  def visit_AnnAssign(self, node: cst.AnnAssign) -> None:
    if isinstance(node.target, cst.Name):
      self._declare(node.target, BindingKind.ANNOTATION, annotated=True)
    else:
      self._record_attributes(node.target)

  def visit_For(self, node: cst.For) -> None:
    annotated = type_comment_of(self.tree, node) is not None
    for name in bound_names(node.target):
      self._declare(name, BindingKind.FOR, annotated=annotated)

  def visit_With(self, node: cst.With) -> None:
    annotated = type_comment_of(self.tree, node) is not None
    for item in node.items:
      if item.asname is not None:
        for name in bound_names(item.asname.name):
          self._declare(name, BindingKind.WITH, annotated=annotated)

  def visit_CompFor(self, node: cst.CompFor) -> None:
    for name in bound_names(node.target):
      self._declare(name, BindingKind.COMPREHENSION)

  def visit_NamedExpr(self, node: cst.NamedExpr) -> None:
    # Walrus targets leak out of comprehensions into the enclosing scope.
    scope = self.current
    while scope.kind == ScopeKind.COMPREHENSION and scope.parent is not None:
      scope = scope.parent
    for name in bound_names(node.target):
      self._declare(name, BindingKind.WALRUS, scope=scope)

  def visit_ExceptHandler(self, node: cst.ExceptHandler) -> None:
    if node.name is not None:
      for name in bound_names(node.name.name):
        self._declare(name, BindingKind.EXCEPT)

  def visit_Import(self, node: cst.Import) -> None:
    for alias in node.names:
      if alias.asname is not None and isinstance(alias.asname.name, cst.Name):
        self._declare(alias.asname.name, BindingKind.IMPORT)
      else:
        root = alias.name
        while isinstance(root, cst.Attribute):
          root = root.value
        if isinstance(root, cst.Name):
          self._declare(root, BindingKind.IMPORT)

  def visit_ImportFrom(self, node: cst.ImportFrom) -> None:
    if isinstance(node.names, cst.ImportStar):
      return
    for alias in node.names:
      bound = alias.asname.name if alias.asname is not None else alias.name
      if isinstance(bound, cst.Name):
        self._declare(bound, BindingKind.IMPORT)
