"""
Annotation Engine.

Orchestrates one invocation over a source buffer:

1.  **Discovery**: parse the buffer, collect suitable binding targets and
    functions.
2.  **Synthesis**: compute text edits against the original snapshot, one
    target or function at a time. Recoverable failures skip the target.
3.  **Mutation**: deduplicate the edits, add the missing imports and apply
    everything inside one document transaction.
"""

import logging
from pathlib import Path
from typing import Hashable, List, Optional, Set, Tuple

import libcst as cst
from rich.markup import escape

from anyhint.analysis.functions import find_functions
from anyhint.analysis.targets import find_suitable_targets
from anyhint.config import RuntimeConfig
from anyhint.core.context import AnnotationContext
from anyhint.core.document import Document, TextEdit
from anyhint.core.errors import AnnotationInvariantError, SkipAnnotation
from anyhint.core.imports import ImportReq, import_edit
from anyhint.core.result import AnnotationResult, Placeholder
from anyhint.core.tracer import TraceLogger
from anyhint.core.tree import SourceTree, line_starts, offset_to_line_col
from anyhint.enums import AnnotationSyntax
from anyhint.inference.oracle import TypeOracle, get_oracle
from anyhint.synthesis.functions import annotate_function
from anyhint.synthesis.info import PlannedAnnotation
from anyhint.synthesis.variables import annotate_target
from anyhint.utils.console import log_error

log = logging.getLogger(__name__)


class EditCollector:
  """
  Accumulates planned annotations in synthesis order.

  Every accepted edit receives an increasing ``order`` so that insertions at
  the same offset keep the order they were synthesized in.
  """

  def __init__(self) -> None:
    self.planned: List[PlannedAnnotation] = []
    self._exclusive: Set[Tuple[int, int]] = set()
    self._shared: Set[Tuple[int, int, str]] = set()

  def add(self, planned: PlannedAnnotation) -> bool:
    """
    Adds an annotation unless an equivalent edit is already collected.

    Exclusive edits collapse by range (first wins), shared ones by range and
    text.

    Returns:
        bool: True if the edit was accepted.
    """
    edit = planned.edit
    if edit.exclusive:
      key = (edit.start, edit.end)
      if key in self._exclusive:
        return False
      self._exclusive.add(key)
    else:
      shared_key = (edit.start, edit.end, edit.text)
      if shared_key in self._shared:
        return False
      self._shared.add(shared_key)

    ordered = TextEdit(
      start=edit.start,
      end=edit.end,
      text=edit.text,
      order=len(self.planned),
      exclusive=edit.exclusive,
      spans=edit.spans,
      description=edit.description,
    )
    self.planned.append(PlannedAnnotation(ordered, planned.info))
    return True

  @property
  def edits(self) -> List[TextEdit]:
    return [p.edit for p in self.planned]

  @property
  def imports(self) -> Set[ImportReq]:
    required: Set[ImportReq] = set()
    for planned in self.planned:
      required.update(planned.info.imports)
    return required


class AnnotationEngine:
  """
  The main annotation unit.

  Holds the settings and the type oracle; every call to :meth:`run` builds a
  fresh :class:`AnnotationContext` for the buffer it processes.
  """

  def __init__(self, config: Optional[RuntimeConfig] = None, oracle: Optional[TypeOracle] = None):
    """
    Args:
        config (RuntimeConfig, optional): Settings. Loaded from pyproject.toml if None.
        oracle (TypeOracle, optional): Type oracle. Built from ``config.oracle`` if None.

    Raises:
        AnnotationError: If the configured oracle cannot be constructed.
    """
    self.config = config or RuntimeConfig.load()
    self.oracle = oracle or get_oracle(self.config.oracle, self.config)

  def parse(self, code: str, path: Optional[Path] = None) -> SourceTree:
    """
    Parses source text into a tree with metadata.

    Raises:
        libcst.ParserSyntaxError: If the input code is invalid Python.
    """
    return SourceTree.parse(code, path=path)

  def _context(self, code: str, path: Optional[Path]) -> AnnotationContext:
    return AnnotationContext(self.parse(code, path), config=self.config, oracle=self.oracle, tracer=TraceLogger())

  def has_candidates(self, code: str, path: Optional[Path] = None) -> bool:
    """
    Availability check: True if a run would annotate anything.

    Unparseable code has no candidates.
    """
    try:
      context = self._context(code, path)
    except cst.ParserSyntaxError:
      return False
    if self.config.annotate_variables and find_suitable_targets(context):
      return True
    if self.config.annotate_functions and find_functions(context):
      return True
    return False

  def run(self, code: str, path: Optional[Path] = None) -> AnnotationResult:
    """
    Executes the full annotation pipeline.

    Args:
        code (str): The input source string.
        path (Path, optional): Where the code comes from (library detection).

    Returns:
        AnnotationResult: Object containing annotated code, hints and error logs.
    """
    tracer = TraceLogger()
    tracer.start_phase("Annotation Pipeline", str(path) if path else "<buffer>")

    # --- PHASE 1: DISCOVERY ---
    tracer.start_phase("Discovery", "Targets and functions")
    try:
      tree = self.parse(code, path)
    except cst.ParserSyntaxError as e:
      log_error(escape(f"Parse error: {e}"))
      return AnnotationResult(code=code, errors=[f"Parse Error: {e}"], success=False, trace_events=tracer.export())

    context = AnnotationContext(tree, config=self.config, oracle=self.oracle, tracer=tracer)
    if tree.is_library:
      tracer.log_inspection(str(path), "skipped", "library source")
      log.debug("Skipping library source %s", path)
      tracer.end_phase()
      tracer.end_phase()
      return AnnotationResult(code=code, trace_events=tracer.export())

    targets = find_suitable_targets(context) if self.config.annotate_variables else []
    functions = find_functions(context) if self.config.annotate_functions else []
    for target in targets:
      tracer.log_candidate(target.kind.value, target.label, tree.line_col(tree.start_of(target.node))[0])
    for site in functions:
      tracer.log_candidate("function", site.name, tree.line_col(tree.start_of(site.node.name))[0])
    tracer.end_phase()

    # --- PHASE 2: SYNTHESIS ---
    tracer.start_phase("Synthesis", f"{len(targets)} targets, {len(functions)} functions")
    collector = EditCollector()
    seen: Set[Tuple[Hashable, ...]] = set()

    try:
      for target in targets:
        key = target.key()
        if key in seen:
          tracer.log_inspection(target.label, "skipped", "already annotated in this run")
          continue
        seen.add(key)
        try:
          planned = annotate_target(target, context)
        except SkipAnnotation as e:
          context.report_skip(e, subject=target.label, node=target.node)
          continue
        self._collect(collector, planned, target.label, context.variable_syntax, context)

      for site in functions:
        try:
          planned = annotate_function(site, context)
        except SkipAnnotation as e:
          context.report_skip(e, subject=site.name, node=site.node.name)
          continue
        self._collect(collector, planned, site.name, context.function_syntax, context)
    except AnnotationInvariantError as e:
      return self._abort(code, e, context, tracer)
    tracer.end_phase()

    # --- PHASE 3: MUTATION ---
    tracer.start_phase("Mutation", f"{len(collector.planned)} edits")
    edits = collector.edits
    if edits and self.config.add_imports:
      imports = import_edit(tree, context.scopes, sorted(collector.imports))
      if imports is not None:
        tracer.log_import(imports.text.strip())
        edits.append(imports)

    document = Document(code)
    try:
      applied = document.apply(edits)
    except AnnotationInvariantError as e:
      return self._abort(code, e, context, tracer)

    final = line_starts(document.text)
    placeholders = []
    for item in applied:
      tracer.log_edit(item.edit.start, item.edit.end, item.edit.text, item.edit.description)
      for span in item.final_spans():
        line, column = offset_to_line_col(final, span.offset)
        placeholders.append(
          Placeholder(
            line=line,
            column=column,
            length=span.length,
            text=document.text[span.offset : span.offset + span.length],
          )
        )
    tracer.end_phase()
    tracer.end_phase()

    return AnnotationResult(
      code=document.text,
      hints=context.hints,
      edits_applied=len(applied),
      placeholders=placeholders,
      trace_events=tracer.export(),
    )

  def _collect(
    self,
    collector: EditCollector,
    planned: List[PlannedAnnotation],
    label: str,
    syntax: AnnotationSyntax,
    context: AnnotationContext,
  ) -> None:
    for item in planned:
      if collector.add(item):
        context.tracer.log_annotation(label, item.info.text, syntax.value)
      else:
        context.tracer.log_inspection(label, "duplicate", item.edit.description)


  def _abort(
    self,
    code: str,
    error: AnnotationInvariantError,
    context: AnnotationContext,
    tracer: TraceLogger,
  ) -> AnnotationResult:
    """Fails the invocation, leaving the buffer untouched."""
    log_error(escape(f"Annotation aborted: {error}"))
    tracer.end_phase()
    tracer.end_phase()
    return AnnotationResult(
      code=code,
      errors=[f"Invariant Error: {error}"],
      hints=context.hints,
      success=False,
      trace_events=tracer.export(),
    )
