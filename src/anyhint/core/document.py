"""
Text Buffer with Transactional Offset Edits.

The annotation passes never mutate the syntax tree. They compute
:class:`TextEdit` objects against the *original* snapshot of the source, and
this module splices them into a :class:`Document`.

Edits are committed from the structurally latest offset to the earliest, so an
offset computed before any mutation stays valid until its own edit is
applied. All edits of one invocation run inside a single transaction: either
every edit lands, or the buffer is restored to its previous text.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, NamedTuple, Sequence, Tuple

from anyhint.core.errors import AnnotationInvariantError


class TypeRange(NamedTuple):
  """
  A sub-range of an annotation text (offset relative to the text start).
  """

  offset: int
  length: int

  def shifted(self, delta: int) -> "TypeRange":
    """Returns the same range moved ``delta`` characters to the right."""
    return TypeRange(self.offset + delta, self.length)


@dataclass(frozen=True)
class TextEdit:
  """
  A replacement of ``[start, end)`` in the original text by ``text``.

  Insertions have ``start == end``.

  Attributes:
      start: Start offset in the original snapshot.
      end: End offset (exclusive) in the original snapshot.
      text: The replacement text.
      order: Tie breaker for edits at the same offset. Lower orders end up
          first in the final text.
      exclusive: If True, no other exclusive edit may claim the same range.
          Declaration lines are non-exclusive: several may share a line start.
      spans: Ranges of inserted type texts, relative to ``text``.
      description: Free-form label used in traces and logs.
  """

  start: int
  end: int
  text: str
  order: int = 0
  exclusive: bool = True
  spans: Tuple[TypeRange, ...] = ()
  description: str = ""

  @property
  def is_insertion(self) -> bool:
    """True if the edit removes nothing."""
    return self.start == self.end

  @property
  def delta(self) -> int:
    """Length change caused by this edit."""
    return len(self.text) - (self.end - self.start)


@dataclass(frozen=True)
class AppliedEdit:
  """
  An edit after commit, with its start offset in the *final* text.
  """

  edit: TextEdit
  final_start: int

  def final_spans(self) -> List[TypeRange]:
    """Type ranges translated to absolute offsets of the final text."""
    return [span.shifted(self.final_start) for span in self.edit.spans]


class Document:
  """
  A mutable text buffer.

  Direct mutation (:meth:`insert`, :meth:`replace`) is allowed only inside a
  :meth:`transaction` block.
  """

  def __init__(self, text: str) -> None:
    self._text = text
    self._history: List[str] = []
    self._depth = 0

  @property
  def text(self) -> str:
    """The current buffer contents."""
    return self._text

  @property
  def can_undo(self) -> bool:
    return bool(self._history)

  @contextmanager
  def transaction(self) -> Iterator["Document"]:
    """
    Scopes a group of edits as one revertible unit.

    If the block raises, the buffer is restored to the text it had when the
    outermost transaction started and the exception propagates.

    Yields:
        Document: This document.
    """
    snapshot = self._text
    self._depth += 1
    try:
      yield self
    except BaseException:
      self._text = snapshot
      raise
    else:
      if self._depth == 1 and snapshot != self._text:
        self._history.append(snapshot)
    finally:
      self._depth -= 1

  def undo(self) -> bool:
    """
    Reverts the last committed transaction.

    Returns:
        bool: False if there was nothing to undo.
    """
    if not self._history:
      return False
    self._text = self._history.pop()
    return True

  def insert(self, offset: int, text: str) -> None:
    """Inserts ``text`` at ``offset``."""
    self.replace(offset, offset, text)

  def replace(self, start: int, end: int, text: str) -> None:
    """
    Replaces ``[start, end)`` with ``text``.

    Raises:
        AnnotationInvariantError: Outside a transaction, or on an invalid range.
    """
    if self._depth == 0:
      raise AnnotationInvariantError("Document edits require an open transaction")
    if not 0 <= start <= end <= len(self._text):
      raise AnnotationInvariantError(f"Edit range [{start}, {end}) outside buffer of length {len(self._text)}")
    self._text = self._text[:start] + text + self._text[end:]

  def apply(self, edits: Sequence[TextEdit]) -> List[AppliedEdit]:
    """
    Applies edits computed against the current text.

    Edits are sorted by position, validated for overlap, then committed in
    reverse so that earlier offsets are untouched by later edits.

    Args:
        edits: Edits whose offsets refer to the current text.

    Returns:
        List[AppliedEdit]: The edits in final-text order with their new offsets.

    Raises:
        AnnotationInvariantError: If two edits overlap.
    """
    ordered = sorted(edits, key=lambda e: (e.start, e.end, e.order))
    for prev, nxt in zip(ordered, ordered[1:]):
      if prev.end > nxt.start:
        raise AnnotationInvariantError(
          f"Overlapping edits [{prev.start}, {prev.end}) '{prev.description}' and "
          f"[{nxt.start}, {nxt.end}) '{nxt.description}'"
        )

    with self.transaction():
      for edit in reversed(ordered):
        self.replace(edit.start, edit.end, edit.text)

    applied = []
    shift = 0
    for edit in ordered:
      applied.append(AppliedEdit(edit=edit, final_start=edit.start + shift))
      shift += edit.delta
    return applied
