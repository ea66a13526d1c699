"""
Annotation Info.

The product of type synthesis before it is placed into the source: the
annotation text and, for every type it contains, where that type sits inside
the text. The ranges let callers report placeholder spots after the edit
lands.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, List, Tuple

from anyhint.core.document import TextEdit, TypeRange
from anyhint.core.imports import ImportReq
from anyhint.inference.oracle import InferredType


@dataclass
class AnnotationInfo:
  """
  Annotation text with per-type ranges.

  Attributes:
      text: The annotation (``int``, ``(int, str)``, ``(int) -> str``).
      types: The types in text order.
      ranges: Position of each type inside ``text``.
  """

  text: str = ""
  types: List[InferredType] = field(default_factory=list)
  ranges: List[TypeRange] = field(default_factory=list)

  @classmethod
  def single(cls, inferred: InferredType) -> "AnnotationInfo":
    """Info for a text that is exactly one type."""
    return cls(text=inferred.text, types=[inferred], ranges=[TypeRange(0, len(inferred.text))])

  def append_text(self, text: str) -> None:
    self.text += text

  def append_type(self, inferred: InferredType) -> None:
    """Appends a type and records its range."""
    self.types.append(inferred)
    self.ranges.append(TypeRange(len(self.text), len(inferred.text)))
    self.text += inferred.text

  @property
  def imports(self) -> FrozenSet[ImportReq]:
    """Imports required by every type in the text."""
    required = set()
    for inferred in self.types:
      required.update(inferred.imports)
    return frozenset(required)

  def spans(self, prefix_len: int) -> Tuple[TypeRange, ...]:
    """Type ranges shifted by a prefix emitted before the text (``": "``...)."""
    return tuple(r.shifted(prefix_len) for r in self.ranges)


@dataclass
class PlannedAnnotation:
  """
  An edit ready to apply, with the annotation it writes.

  The engine needs the info to collect the imports of every applied type.
  """

  edit: TextEdit
  info: AnnotationInfo
