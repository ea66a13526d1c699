"""
Per-Buffer Annotation Context.

Bundles everything the discovery and synthesis passes need for one source
buffer: the settings, the parsed tree, the scope analysis, the type oracle and
the trace. A context is created per invocation and discarded afterwards; no
pass reaches for global state.
"""

from typing import List, Optional, Tuple

import libcst as cst
from rich.markup import escape

from anyhint.analysis.functions import FunctionSite, ParameterSite
from anyhint.analysis.scopes import ScopeAnalysis
from anyhint.config import RuntimeConfig
from anyhint.core.errors import SkipAnnotation
from anyhint.core.tracer import TraceLogger
from anyhint.core.tree import SourceTree
from anyhint.enums import AnnotationSyntax
from anyhint.inference.oracle import InferredType, PlaceholderOracle, TypeOracle, check_compatibility, placeholder_type
from anyhint.utils.console import log_warning


class AnnotationContext:
  """
  Explicit context handed to every discovery and synthesis call.
  """

  def __init__(
    self,
    tree: SourceTree,
    config: Optional[RuntimeConfig] = None,
    oracle: Optional[TypeOracle] = None,
    scopes: Optional[ScopeAnalysis] = None,
    tracer: Optional[TraceLogger] = None,
  ):
    """
    Args:
        tree: The parsed buffer.
        config: Settings (defaults when None).
        oracle: Type oracle (knows nothing when None).
        scopes: Pre-computed scope analysis (computed when None).
        tracer: Trace sink (fresh when None).
    """
    self.tree = tree
    self.config = config or RuntimeConfig()
    self.oracle = oracle or PlaceholderOracle()
    self.scopes = scopes or ScopeAnalysis.build(tree)
    self.tracer = tracer or TraceLogger()
    self.hints: List[str] = []

  @classmethod
  def for_code(cls, code: str, config: Optional[RuntimeConfig] = None, oracle: Optional[TypeOracle] = None) -> "AnnotationContext":
    """Parses ``code`` and builds a context around it."""
    return cls(SourceTree.parse(code), config=config, oracle=oracle)

  # --- Language version ---

  @property
  def version(self) -> Tuple[int, int]:
    return self.config.version_tuple

  @property
  def supports_variable_annotations(self) -> bool:
    """Inline variable annotations (PEP 526) need Python 3.6."""
    return self.version >= (3, 6)

  @property
  def supports_function_annotations(self) -> bool:
    """Function annotations (PEP 3107) need Python 3."""
    return self.version >= (3, 0)

  @property
  def variable_syntax(self) -> AnnotationSyntax:
    return AnnotationSyntax.INLINE if self.supports_variable_annotations else AnnotationSyntax.COMMENT

  @property
  def function_syntax(self) -> AnnotationSyntax:
    return AnnotationSyntax.INLINE if self.supports_function_annotations else AnnotationSyntax.COMMENT

  # --- Types ---

  @property
  def placeholder(self) -> InferredType:
    return placeholder_type(self.config.placeholder_type)

  def resolve(self, inferred: Optional[InferredType]) -> InferredType:
    """
    Substitutes the placeholder for unknown types and validates the result.

    Raises:
        IncompatibleTypeError: If the type cannot be written for the target version.
    """
    result = inferred if inferred is not None else self.placeholder
    check_compatibility(result, self.version)
    return result

  def type_of_target(self, node: cst.BaseExpression) -> InferredType:
    return self.resolve(self.oracle.infer(node, self))

  def type_of_parameter(self, site: FunctionSite, param: ParameterSite) -> InferredType:
    return self.resolve(self.oracle.infer_parameter(site, param, self))

  def type_of_return(self, site: FunctionSite) -> InferredType:
    return self.resolve(self.oracle.infer_return(site, self))

  # --- Reporting ---

  def describe(self, node: cst.CSTNode) -> str:
    """``line:column`` of a node for messages."""
    line, column = self.tree.line_col(self.tree.start_of(node))
    return f"{line}:{column}"

  def report_skip(self, error: SkipAnnotation, subject: Optional[str] = None, node: Optional[cst.CSTNode] = None) -> None:
    """
    Records a target or field abandoned without aborting the invocation.

    The skip is logged, traced and kept as a user hint.
    """
    where = f" at {self.describe(node)}" if node is not None else ""
    subject = subject or error.subject or "annotation"
    hint = f"Skipped {subject}{where}: {error}"
    self.hints.append(hint)
    self.tracer.log_skip(subject, str(error))
    log_warning(escape(hint))
