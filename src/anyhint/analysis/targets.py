"""
Binding Target Discovery.

Finds the names and attributes that receive a value in an assignment, a
``for`` header or a ``with`` item and do not carry a type annotation yet.

A target is reported when:

1.  The buffer is not library / read-only source.
2.  It is *annotatable*: not bound by an import, a comprehension ``for``, a
    ``global`` / ``nonlocal`` statement, and sitting in the target part of an
    assignment, ``for`` header or ``with`` item.
3.  It is not *already annotated*: neither itself nor a same-named binding of
    its owning scope carries an annotation. Instance attributes (``self.x``)
    consult the class-level definitions of ``x`` instead.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Hashable, List, Optional, Tuple, Union

import libcst as cst

from anyhint.analysis.functions import implicit_receiver
from anyhint.analysis.scopes import ClassInfo, Scope, ScopeAnalysis, type_comment_of
from anyhint.core.tree import SourceTree
from anyhint.enums import ANNOTATABLE_KINDS, BindingKind, ScopeKind
from anyhint.utils.node_source import target_label

if TYPE_CHECKING:
  from anyhint.core.context import AnnotationContext

TargetNode = Union[cst.Name, cst.Attribute]


@dataclass
class BindingSite:
  """
  Where a target node receives its value.

  Attributes:
      kind: The binding construct.
      statement: The statement (or clause) performing the binding.
      topmost: The outermost target pattern containing the node inside that
          statement (the node itself for a simple target).
      parent: The node's immediate parent.
  """

  kind: BindingKind
  statement: cst.CSTNode
  topmost: cst.BaseExpression
  parent: cst.CSTNode


def binding_site(tree: SourceTree, node: cst.CSTNode) -> Optional[BindingSite]:
  """
  Classifies a ``Name`` / ``Attribute`` node as a binding target.

  Climbs through tuple and list unpacking patterns and inspects the construct
  that owns the pattern.

  Returns:
      Optional[BindingSite]: None if the node is not being bound (loads,
      attribute parts, subscripts, augmented assignments, call keywords...).
  """
  if not isinstance(node, (cst.Name, cst.Attribute)):
    return None
  immediate = tree.parent_of(node)
  child: cst.CSTNode = node
  topmost: cst.BaseExpression = node
  parent = immediate

  while parent is not None:
    if isinstance(parent, (cst.Element, cst.StarredElement)) and parent.value is child:
      child, parent = parent, tree.parent_of(parent)
    elif isinstance(parent, (cst.Tuple, cst.List)) and any(e is child for e in parent.elements):
      topmost = parent
      child, parent = parent, tree.parent_of(parent)
    else:
      break

  if parent is None:
    return None

  site = None
  if isinstance(parent, cst.AssignTarget) and parent.target is child:
    site = BindingSite(BindingKind.ASSIGNMENT, tree.parent_of(parent), topmost, immediate)
  elif isinstance(parent, cst.AnnAssign) and parent.target is child:
    site = BindingSite(BindingKind.ANNOTATION, parent, topmost, immediate)
  elif isinstance(parent, cst.For) and parent.target is child:
    site = BindingSite(BindingKind.FOR, parent, topmost, immediate)
  elif isinstance(parent, cst.CompFor) and parent.target is child:
    site = BindingSite(BindingKind.COMPREHENSION, parent, topmost, immediate)
  elif isinstance(parent, cst.NamedExpr) and parent.target is child:
    site = BindingSite(BindingKind.WALRUS, parent, topmost, immediate)
  elif isinstance(parent, cst.ImportAlias) and parent.name is child:
    site = BindingSite(BindingKind.IMPORT, tree.parent_of(parent), topmost, immediate)
  elif isinstance(parent, cst.NameItem) and parent.name is child:
    statement = tree.parent_of(parent)
    kind = BindingKind.GLOBAL if isinstance(statement, cst.Global) else BindingKind.NONLOCAL
    site = BindingSite(kind, statement, topmost, immediate)
  elif isinstance(parent, cst.AsName) and parent.name is child:
    owner = tree.parent_of(parent)
    if isinstance(owner, cst.WithItem):
      site = BindingSite(BindingKind.WITH, tree.parent_of(owner), topmost, immediate)
    elif isinstance(owner, cst.ExceptHandler):
      site = BindingSite(BindingKind.EXCEPT, owner, topmost, immediate)
    elif isinstance(owner, cst.ImportAlias):
      site = BindingSite(BindingKind.IMPORT, tree.parent_of(owner), topmost, immediate)
  return site


@dataclass
class BindingTarget:
  """
  A name or attribute receiving a value.
  """

  node: TargetNode
  kind: BindingKind
  statement: cst.CSTNode
  topmost: cst.BaseExpression
  parent: cst.CSTNode
  scope: Scope
  enclosing_class: Optional[ClassInfo] = None
  is_instance_attribute: bool = False

  @property
  def name(self) -> str:
    if isinstance(self.node, cst.Attribute):
      return self.node.attr.value
    return self.node.value

  @property
  def label(self) -> str:
    return target_label(self.node)

  @property
  def is_qualified(self) -> bool:
    return isinstance(self.node, cst.Attribute)

  @property
  def is_simple(self) -> bool:
    """True if the target is the whole pattern of its statement."""
    return self.topmost is self.node

  @property
  def owner_scope(self) -> Scope:
    """The scope owning unqualified bindings of this target's name."""
    return self.scope.owner_for(self.name)

  def key(self) -> Tuple[Hashable, ...]:
    """
    Identity of the declared entity; one annotation per key and pass.
    """
    if not self.is_qualified:
      return ("name", id(self.owner_scope), self.name)
    if self.is_instance_attribute and self.enclosing_class is not None:
      return ("attribute", id(self.enclosing_class.node), self.name)
    return ("qualified", id(self.scope), self.label)


def _enclosing_class(scopes: ScopeAnalysis, scope: Scope) -> Optional[ClassInfo]:
  if scope.kind == ScopeKind.CLASS:
    return scopes.class_for_scope(scope)
  if scope.kind == ScopeKind.FUNCTION and scope.parent is not None:
    return scopes.class_for_scope(scope.parent)
  return None


def is_instance_attribute(node: cst.CSTNode, scope: Scope) -> bool:
  """
  True if ``node`` is ``q.attr`` where ``q`` is the receiver of the method
  whose body directly contains the node.

  Unresolvable qualifiers are simply not instance attributes.
  """
  if not isinstance(node, cst.Attribute) or not isinstance(node.value, cst.Name):
    return False
  if scope.kind != ScopeKind.FUNCTION or scope.parent is None or scope.parent.kind != ScopeKind.CLASS:
    return False
  if not isinstance(scope.node, cst.FunctionDef):
    return False
  receiver = implicit_receiver(scope.node)
  return receiver is not None and receiver.name.value == node.value.value


def build_target(tree: SourceTree, scopes: ScopeAnalysis, node: cst.CSTNode) -> Optional[BindingTarget]:
  """
  Wraps a node as a `BindingTarget` if it is being bound.
  """
  site = binding_site(tree, node)
  if site is None:
    return None
  scope = scopes.scope_of(node)
  return BindingTarget(
    node=node,
    kind=site.kind,
    statement=site.statement,
    topmost=site.topmost,
    parent=site.parent,
    scope=scope,
    enclosing_class=_enclosing_class(scopes, scope),
    is_instance_attribute=is_instance_attribute(node, scope),
  )


def can_be_annotated(target: BindingTarget) -> bool:
  """
  Annotatable policy.

  The immediate parent must not be an import, comprehension clause or
  ``global`` / ``nonlocal`` statement, and the binding must come from an
  assignment, a ``for`` header or a ``with`` item.
  """
  if isinstance(target.parent, (cst.ImportAlias, cst.CompFor, cst.NameItem)):
    return False
  if isinstance(target.parent, cst.AsName) and target.kind == BindingKind.IMPORT:
    return False
  return target.kind in ANNOTATABLE_KINDS


def _instance_declared_in_methods(info: ClassInfo, attr: str) -> bool:
  for child in info.scope.children:
    if child.kind != ScopeKind.FUNCTION or not isinstance(child.node, cst.FunctionDef):
      continue
    receiver = implicit_receiver(child.node)
    if receiver is not None and f"{receiver.name.value}.{attr}" in child.annotated_attributes:
      return True
  return False


def is_annotated(target: BindingTarget, tree: SourceTree, scopes: ScopeAnalysis) -> bool:
  """
  Already-annotated check.

  Args:
      target: The target to inspect.
      tree: The source tree.
      scopes: Scope analysis of the tree.

  Returns:
      bool: True if the target or the entity it declares is annotated.
  """
  if target.kind == BindingKind.ANNOTATION:
    return True
  if type_comment_of(tree, target.statement) is not None:
    return True

  if not target.is_qualified:
    return any(binding.annotated for binding in target.owner_scope.bindings_of(target.name))

  if target.is_instance_attribute and target.enclosing_class is not None:
    definitions = scopes.class_level_definitions(target.enclosing_class, target.name)
    if definitions:
      return any(binding.annotated for binding in definitions)
    return _instance_declared_in_methods(target.enclosing_class, target.name)

  return target.label in target.scope.annotated_attributes


def find_suitable_targets(context: "AnnotationContext") -> List[BindingTarget]:
  """
  Collects the binding targets of a buffer that should receive an annotation.

  Args:
      context: The per-buffer annotation context.

  Returns:
      List[BindingTarget]: Targets in source order.
  """
  tree = context.tree
  if tree.is_library:
    return []
  found = []
  for node in tree.walk():
    if not isinstance(node, (cst.Name, cst.Attribute)):
      continue
    target = build_target(tree, context.scopes, node)
    if target is None or not can_be_annotated(target):
      continue
    if is_annotated(target, tree, context.scopes):
      continue
    found.append(target)
  return found
