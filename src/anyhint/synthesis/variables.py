"""
Variable Annotation Synthesis.

Turns a `BindingTarget` into text edits against the original snapshot.

Two syntaxes are produced, depending on the target Python version:

*   **Inline** (3.6+): ``x: T = value`` when the target is the whole,
    single left-hand side of an assignment; otherwise a declaration line
    ``x: T`` inserted before the statement hosting the target, with that
    statement's indentation.
*   **Type comment**: ``x = value  # type: T`` appended to the assignment, or
    ``for x in xs:  # type: T`` after the colon of a ``for`` / ``with``
    header. Unpacking patterns are rendered as nested tuples of types:
    ``a, (b, c) = ...  # type: (A, (B, C))``.

Instance attributes (``self.x``) prefer the first class-level definition of
the attribute over the usage site.
"""

import logging
from typing import List, Optional

import libcst as cst

from anyhint.analysis.targets import BindingTarget, build_target
from anyhint.core.context import AnnotationContext
from anyhint.core.document import TextEdit
from anyhint.core.errors import UnsupportedLayoutError
from anyhint.enums import BindingKind
from anyhint.synthesis.info import AnnotationInfo, PlannedAnnotation

log = logging.getLogger(__name__)

TYPE_COMMENT_PREFIX = "  # type: "


def anchor_statement(context: AnnotationContext, statement: cst.CSTNode) -> cst.CSTNode:
  """
  The line-level statement hosting ``statement``.

  Small statements are hosted by their ``SimpleStatementLine``; statements of
  a one-line suite (``if c: x = 1``) by the compound statement owning it.

  Raises:
      UnsupportedLayoutError: If the host is a one-line ``def`` / ``class``
          (a declaration placed before it would land in the wrong scope).
  """
  tree = context.tree
  current = statement
  while True:
    parent = tree.parent_of(current)
    if parent is None or isinstance(parent, (cst.Module, cst.IndentedBlock)):
      break
    current = parent
  if current is not statement and isinstance(current, (cst.FunctionDef, cst.ClassDef)):
    raise UnsupportedLayoutError(f"no line to declare a variable inside one-line '{type(current).__name__}'")
  return current


def nested_type_hint(expr: cst.CSTNode, context: AnnotationContext, info: Optional[AnnotationInfo] = None) -> AnnotationInfo:
  """
  Renders the type of a (possibly unpacking) target pattern.

  Tuples and lists become ``(T1, T2, ...)``, parentheses are transparent,
  starred elements contribute the type of their operand, and every leaf
  records its range in the text.

  Args:
      expr: The topmost target pattern.
      context: The annotation context.
      info: Accumulator (created when None).

  Returns:
      AnnotationInfo: The rendered hint.

  Raises:
      IncompatibleTypeError: If any leaf type cannot be written.
  """
  info = info if info is not None else AnnotationInfo()
  if isinstance(expr, (cst.Tuple, cst.List)):
    info.append_text("(")
    for i, element in enumerate(expr.elements):
      if i > 0:
        info.append_text(", ")
      nested_type_hint(element.value, context, info)
    info.append_text(")")
  elif isinstance(expr, cst.StarredElement):
    nested_type_hint(expr.value, context, info)
  elif isinstance(expr, (cst.Name, cst.Attribute, cst.Subscript)):
    info.append_type(context.type_of_target(expr))
  return info


def _class_level_target(target: BindingTarget, context: AnnotationContext) -> Optional[BindingTarget]:
  if not target.is_instance_attribute or target.enclosing_class is None:
    return None
  definitions = context.scopes.class_level_definitions(target.enclosing_class, target.name)
  if not definitions:
    return None
  return build_target(context.tree, context.scopes, definitions[0].node)


# --- Inline syntax ---


def _inline_edit(target: BindingTarget, info: AnnotationInfo, context: AnnotationContext) -> Optional[TextEdit]:
  tree = context.tree
  statement = target.statement

  if target.kind == BindingKind.ANNOTATION:
    return None

  if (
    target.kind == BindingKind.ASSIGNMENT
    and target.is_simple
    and isinstance(statement, cst.Assign)
    and len(statement.targets) == 1
  ):
    end = tree.outer_range(target.node)[1]
    return TextEdit(
      start=end,
      end=end,
      text=": " + info.text,
      spans=info.spans(2),
      description=f"annotate {target.label}",
    )

  anchor = anchor_statement(context, statement)
  start = tree.start_of(anchor)
  line_start = tree.line_start(start)
  indent = tree.indent_at(start)
  prefix = f"{indent}{target.label}: "
  return TextEdit(
    start=line_start,
    end=line_start,
    text=prefix + info.text + tree.newline,
    exclusive=False,
    spans=info.spans(len(prefix)),
    description=f"declare {target.label}",
  )


def insert_variable_annotation(target: BindingTarget, context: AnnotationContext) -> List[PlannedAnnotation]:
  """
  Computes the inline annotation of one target.

  Args:
      target: The target to annotate.
      context: The annotation context.

  Returns:
      List[PlannedAnnotation]: Zero or one edit.

  Raises:
      IncompatibleTypeError: If the inferred type cannot be written.
      UnsupportedLayoutError: If no declaration line can host the annotation.
  """
  info = AnnotationInfo.single(context.type_of_target(target.node))
  definition = _class_level_target(target, context)
  site = definition if definition is not None else target
  if definition is not None:
    log.debug("Redirecting '%s' to its class-level definition", target.label)
  edit = _inline_edit(site, info, context)
  return [PlannedAnnotation(edit, info)] if edit is not None else []


# --- Type comment syntax ---


def _comment_offset(target: BindingTarget, context: AnnotationContext) -> int:
  tree = context.tree
  statement = target.statement

  if isinstance(statement, cst.Assign):
    line = tree.parent_of(statement)
    if line is None or line.body[-1] is not statement:
      raise UnsupportedLayoutError("a type comment needs the assignment to end its line")
    end = tree.end_of(statement)
    if isinstance(statement.semicolon, cst.Semicolon):
      end = tree.scan_for(end, ";") + 1
    return end

  if isinstance(statement, (cst.For, cst.With)):
    if not isinstance(statement.body, cst.IndentedBlock):
      raise UnsupportedLayoutError(f"no room for a type comment in a one-line '{type(statement).__name__}'")
    if isinstance(statement, cst.With):
      bound = [item for item in statement.items if item.asname is not None]
      if len(bound) > 1:
        raise UnsupportedLayoutError("a single type comment cannot describe several 'with' targets")
      header_end = tree.end_of(statement.items[-1])
    else:
      header_end = tree.end_of(statement.iter)
    return tree.scan_for(header_end, ":") + 1

  raise UnsupportedLayoutError(f"type comments are not supported on '{type(statement).__name__}'")


def _comment_edit(target: BindingTarget, info: AnnotationInfo, context: AnnotationContext) -> TextEdit:
  offset = _comment_offset(target, context)
  return TextEdit(
    start=offset,
    end=offset,
    text=TYPE_COMMENT_PREFIX + info.text,
    spans=info.spans(len(TYPE_COMMENT_PREFIX)),
    description=f"type comment for {target.label}",
  )


def insert_variable_type_comment(target: BindingTarget, context: AnnotationContext) -> List[PlannedAnnotation]:
  """
  Computes the type comment of one target.

  The comment describes the whole topmost pattern of the statement, so all
  targets unpacked by one statement share a single edit.

  Raises:
      IncompatibleTypeError: If any inferred type cannot be written.
      UnsupportedLayoutError: If the statement cannot carry a type comment.
  """
  definition = _class_level_target(target, context)
  if definition is not None:
    if definition.kind == BindingKind.ANNOTATION:
      return []
    if not definition.is_simple:
      raise UnsupportedLayoutError(f"class-level '{definition.label}' is part of an unpacking")
    info = AnnotationInfo.single(context.type_of_target(target.node))
    return [PlannedAnnotation(_comment_edit(definition, info, context), info)]

  info = nested_type_hint(target.topmost, context)
  return [PlannedAnnotation(_comment_edit(target, info, context), info)]


def annotate_target(target: BindingTarget, context: AnnotationContext) -> List[PlannedAnnotation]:
  """
  Annotates a target with the syntax the target version supports.
  """
  if context.supports_variable_annotations:
    return insert_variable_annotation(target, context)
  return insert_variable_type_comment(target, context)
