"""
Type Table Oracle.

Reads types computed ahead of time by an external checker. The table uses the
Pyre query API layout, a list of located annotations::

    {"types": [{"location": {"path": "m.py",
                             "start": {"line": 1, "column": 0},
                             "stop": {"line": 1, "column": 1}},
                "annotation": "int"}]}

The ``{"response": [{"path": ..., "types": [...]}]}`` envelope returned by
``pyre query "types(...)"`` is accepted as well. Lines are 1-based and
columns 0-based, matching LibCST's `PositionProvider`.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

import libcst as cst
from pydantic import BaseModel, Field, ValidationError

from anyhint.core.errors import AnnotationError
from anyhint.inference.oracle import InferredType, TypeOracle, register_oracle
from anyhint.utils.node_source import capture_node_source

if TYPE_CHECKING:
  from anyhint.analysis.functions import FunctionSite, ParameterSite
  from anyhint.config import RuntimeConfig
  from anyhint.core.context import AnnotationContext
  from anyhint.core.tree import SourceTree

log = logging.getLogger(__name__)

RangeKey = Tuple[int, int, int, int]


class TablePosition(BaseModel):
  line: int
  column: int


class TableLocation(BaseModel):
  path: str = ""
  start: TablePosition
  stop: TablePosition

  @property
  def key(self) -> RangeKey:
    return (self.start.line, self.start.column, self.stop.line, self.stop.column)


class TableEntry(BaseModel):
  location: TableLocation
  annotation: str


class TableFile(BaseModel):
  path: str = ""
  types: List[TableEntry] = Field(default_factory=list)


class TypeTable(BaseModel):
  """
  Validated content of a type table file.
  """

  types: List[TableEntry] = Field(default_factory=list)
  response: List[TableFile] = Field(default_factory=list)

  def entries(self) -> List[TableEntry]:
    """All entries, with file-level paths pushed down into their locations."""
    collected = list(self.types)
    for item in self.response:
      for entry in item.types:
        if item.path and not entry.location.path:
          entry = entry.model_copy(update={"location": entry.location.model_copy(update={"path": item.path})})
        collected.append(entry)
    return collected


def load_type_table(path: Path) -> TypeTable:
  """
  Loads and validates a type table.

  Raises:
      AnnotationError: If the file is missing or malformed.
  """
  try:
    return TypeTable.model_validate_json(Path(path).read_text(encoding="utf-8"))
  except FileNotFoundError:
    raise AnnotationError(f"Type table not found: {path}")
  except ValidationError as e:
    raise AnnotationError(f"Invalid type table {path}: {e}")


def split_callable(annotation: str) -> Tuple[Optional[str], Optional[str]]:
  """
  Splits ``Callable[[A, B], R]`` into its parameter list and result texts.

  Returns:
      Tuple[Optional[str], Optional[str]]: ``("[A, B]", "R")`` or ``(None, None)``.
  """
  try:
    expr = cst.parse_expression(annotation)
  except cst.ParserSyntaxError:
    return None, None
  if not isinstance(expr, cst.Subscript) or len(expr.slice) != 2:
    return None, None
  head = expr.value
  head_name = head.attr.value if isinstance(head, cst.Attribute) else getattr(head, "value", None)
  if head_name != "Callable":
    return None, None
  texts = []
  for element in expr.slice:
    if not isinstance(element.slice, cst.Index):
      return None, None
    texts.append(capture_node_source(element.slice.value))
  return texts[0], texts[1]


def _matches(location_path: str, tree_path: Optional[Path]) -> bool:
  if not location_path or tree_path is None:
    return True
  candidate = Path(location_path)
  if candidate.is_absolute() and tree_path.is_absolute():
    return candidate == tree_path
  return tree_path.as_posix().endswith(candidate.as_posix()) or candidate.as_posix().endswith(tree_path.as_posix())


@register_oracle("table")
class TableOracle(TypeOracle):
  """
  Looks types up by the exact source range of the queried node.
  """

  name = "table"

  def __init__(self, table: TypeTable) -> None:
    self.table = table
    self._cache: Dict[Optional[Path], Dict[RangeKey, str]] = {}

  @classmethod
  def from_file(cls, path: Path) -> "TableOracle":
    return cls(load_type_table(path))

  @classmethod
  def from_config(cls, config: "RuntimeConfig") -> "TableOracle":
    if config.type_table is None:
      raise AnnotationError("The table oracle requires a type table (--types FILE)")
    return cls.from_file(config.type_table)

  def _lookup(self, tree: "SourceTree") -> Dict[RangeKey, str]:
    key = tree.path
    if key not in self._cache:
      lookup = {}
      for entry in self.table.entries():
        if _matches(entry.location.path, tree.path):
          lookup[entry.location.key] = entry.annotation
      log.debug("Type table provides %d entries for %s", len(lookup), tree.path or "<buffer>")
      self._cache[key] = lookup
    return self._cache[key]

  def _annotation_at(self, node: cst.CSTNode, context: "AnnotationContext") -> Optional[str]:
    code_range = context.tree.code_range(node)
    if code_range is None:
      return None
    key = (code_range.start.line, code_range.start.column, code_range.end.line, code_range.end.column)
    return self._lookup(context.tree).get(key)

  def infer(self, node: cst.BaseExpression, context: "AnnotationContext") -> Optional[InferredType]:
    annotation = self._annotation_at(node, context)
    return InferredType.from_text(annotation) if annotation else None

  def infer_parameter(
    self, site: "FunctionSite", param: "ParameterSite", context: "AnnotationContext"
  ) -> Optional[InferredType]:
    annotation = self._annotation_at(param.node.name, context)
    return InferredType.from_text(annotation) if annotation else None

  def infer_return(self, site: "FunctionSite", context: "AnnotationContext") -> Optional[InferredType]:
    annotation = self._annotation_at(site.node.name, context)
    if not annotation:
      return None
    _, result = split_callable(annotation)
    return InferredType.from_text(result) if result else None
