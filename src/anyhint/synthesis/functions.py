"""
Function Annotation Synthesis.

Python 3 targets receive inline annotations (``def f(x: T) -> R:``). Each
parameter and the return type is an independent field: a field whose type
cannot be written is reported and left alone while the others proceed.

Python 2 targets receive a signature type comment on the line after the
header::

    def f(self, x, *args):
        # type: (int, *str) -> bool

The implicit receiver (``self`` / ``cls``) is never annotated.
"""

import logging
from typing import Callable, List

import libcst as cst

from anyhint.analysis.functions import FunctionSite, ParameterSite
from anyhint.core.context import AnnotationContext
from anyhint.core.document import TextEdit
from anyhint.core.errors import AnnotationInvariantError, SkipAnnotation, UnsupportedLayoutError
from anyhint.inference.oracle import InferredType
from anyhint.synthesis.info import AnnotationInfo, PlannedAnnotation

log = logging.getLogger(__name__)

RETURN_PREFIX = " -> "
SIGNATURE_PREFIX = "# type: "


def _open_paren(site: FunctionSite, context: AnnotationContext) -> int:
  tree = context.tree
  anchor: cst.CSTNode = site.node.name
  type_parameters = getattr(site.node, "type_parameters", None)
  if type_parameters is not None:
    anchor = type_parameters
  return tree.scan_for(tree.end_of(anchor), "(")


def close_paren(site: FunctionSite, context: AnnotationContext) -> int:
  """
  Offset of the ``)`` closing the parameter list.

  Raises:
      AnnotationInvariantError: If the header does not have the expected layout.
  """
  tree = context.tree
  pos = _open_paren(site, context) + 1
  for param in site.parameters:
    pos = max(pos, _param_end(param, context))
  return tree.scan_for(pos, ")", extra="/*")


def _param_end(param: ParameterSite, context: AnnotationContext) -> int:
  tree = context.tree
  end = tree.end_of(param.node.name)
  if param.node.annotation is not None:
    end = max(end, tree.outer_range(param.node.annotation.annotation)[1])
  if param.default is not None:
    end = max(end, tree.outer_range(param.default)[1])
  return end


def _param_start(param: ParameterSite, context: AnnotationContext) -> int:
  tree = context.tree
  pos = tree.start_of(param.node.name)
  if not param.star:
    return pos
  while pos > 0 and tree.code[pos - 1] in " \t\f\\\r\n":
    pos -= 1
  if tree.code[pos - len(param.star) : pos] != param.star:
    raise AnnotationInvariantError(f"Expected '{param.star}' before parameter '{param.name}'")
  return pos - len(param.star)


# --- Inline syntax ---


def _parameter_annotation(site: FunctionSite, param: ParameterSite, context: AnnotationContext) -> PlannedAnnotation:
  tree = context.tree
  inferred = context.type_of_parameter(site, param)
  info = AnnotationInfo.single(inferred)

  head = f"{param.star}{param.name}: "
  text = head + info.text
  if param.default is not None:
    start, end = tree.outer_range(param.default)
    text += " = " + tree.code[start:end]

  edit = TextEdit(
    start=_param_start(param, context),
    end=_param_end(param, context),
    text=text,
    spans=info.spans(len(head)),
    description=f"annotate parameter {param.name} of {site.name}",
  )
  return PlannedAnnotation(edit, info)


def _return_annotation(site: FunctionSite, context: AnnotationContext) -> PlannedAnnotation:
  tree = context.tree
  info = AnnotationInfo.single(context.type_of_return(site))

  if site.returns is not None:
    start, end = tree.range_of(site.returns.annotation)
    edit = TextEdit(start=start, end=end, text=info.text, spans=info.spans(0), description=f"replace return of {site.name}")
  else:
    offset = close_paren(site, context) + 1
    edit = TextEdit(
      start=offset,
      end=offset,
      text=RETURN_PREFIX + info.text,
      spans=info.spans(len(RETURN_PREFIX)),
      description=f"annotate return of {site.name}",
    )
  return PlannedAnnotation(edit, info)


def annotate_signature(site: FunctionSite, context: AnnotationContext) -> List[PlannedAnnotation]:
  """
  Computes inline annotations for a function.

  Parameters are visited last-to-first, so each edit is computed before any
  edit to its left. Fields already annotated are kept unless
  ``overwrite_annotations`` is set.

  Args:
      site: The function to annotate.
      context: The annotation context.

  Returns:
      List[PlannedAnnotation]: One entry per annotated field.
  """
  overwrite = context.config.overwrite_annotations
  planned: List[PlannedAnnotation] = []

  if site.returns is None or overwrite:
    try:
      planned.append(_return_annotation(site, context))
    except SkipAnnotation as e:
      context.report_skip(e, subject=f"return of {site.name}", node=site.node.name)

  for param in reversed(site.explicit_parameters):
    if param.annotated and not overwrite:
      continue
    try:
      planned.append(_parameter_annotation(site, param, context))
    except SkipAnnotation as e:
      context.report_skip(e, subject=f"parameter {param.name} of {site.name}", node=param.node.name)

  return planned


# --- Signature type comment ---


def _field_type(
  context: AnnotationContext,
  compute: Callable[[], InferredType],
  subject: str,
  node: cst.CSTNode,
) -> InferredType:
  try:
    return compute()
  except SkipAnnotation as e:
    context.report_skip(e, subject=subject, node=node)
    return context.placeholder


def signature_comment(site: FunctionSite, context: AnnotationContext) -> AnnotationInfo:
  """
  Renders ``(T1, *T2, **T3) -> R`` for a function.

  A field whose type cannot be written falls back to the placeholder type.
  """
  info = AnnotationInfo()
  info.append_text("(")
  for i, param in enumerate(site.explicit_parameters):
    if i > 0:
      info.append_text(", ")
    info.append_text(param.star)
    inferred = _field_type(
      context,
      lambda param=param: context.type_of_parameter(site, param),
      f"parameter {param.name} of {site.name}",
      param.node.name,
    )
    info.append_type(inferred)
  info.append_text(")" + RETURN_PREFIX)
  inferred = _field_type(context, lambda: context.type_of_return(site), f"return of {site.name}", site.node.name)
  info.append_type(inferred)
  return info


def insert_signature_comment(site: FunctionSite, context: AnnotationContext) -> List[PlannedAnnotation]:
  """
  Inserts a signature type comment as the first line of the body.

  Raises:
      UnsupportedLayoutError: If the body shares the header line.
  """
  tree = context.tree
  body = site.node.body
  if not isinstance(body, cst.IndentedBlock) or not body.body:
    raise UnsupportedLayoutError(f"no line for a signature comment in one-line '{site.name}'")

  if site.returns is not None:
    header_end = tree.end_of(site.returns.annotation)
  else:
    header_end = close_paren(site, context) + 1
  colon = tree.scan_for(header_end, ":")
  offset = tree.next_line_start(colon)

  info = signature_comment(site, context)
  indent = tree.indent_at(tree.start_of(body.body[0]))
  head = indent + SIGNATURE_PREFIX
  edit = TextEdit(
    start=offset,
    end=offset,
    text=head + info.text + tree.newline,
    exclusive=False,
    spans=info.spans(len(head)),
    description=f"signature comment for {site.name}",
  )
  return [PlannedAnnotation(edit, info)]


def annotate_function(site: FunctionSite, context: AnnotationContext) -> List[PlannedAnnotation]:
  """
  Annotates a function with the syntax the target version supports.

  Functions carrying a signature type comment are left alone: inline
  annotations next to the comment would describe the signature twice.

  Raises:
      UnsupportedLayoutError: When a signature comment has no line to go to.
  """
  if site.type_comment is not None:
    log.debug("'%s' already has a signature comment", site.name)
    return []
  if context.supports_function_annotations:
    return annotate_signature(site, context)
  return insert_signature_comment(site, context)
