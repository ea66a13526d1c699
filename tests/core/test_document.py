"""
Tests for the transactional text buffer.

Verifies:
1.  Edits computed against one snapshot are applied in descending order.
2.  Same-offset insertions keep their synthesis order.
3.  Overlapping edits abort the batch and leave the buffer untouched.
4.  Type spans are translated into final-text offsets.
"""

import pytest

from anyhint.core.document import Document, TextEdit, TypeRange
from anyhint.core.errors import AnnotationInvariantError


def test_apply_uses_original_offsets():
  doc = Document("a = 1\nb = 2\n")
  doc.apply([TextEdit(1, 1, ": int"), TextEdit(7, 7, ": str")])
  assert doc.text == "a: int = 1\nb: str = 2\n"


def test_same_offset_keeps_order():
  doc = Document("x")
  doc.apply(
    [
      TextEdit(0, 0, "second\n", order=1, exclusive=False),
      TextEdit(0, 0, "first\n", order=0, exclusive=False),
    ]
  )
  assert doc.text == "first\nsecond\nx"


def test_replacement_and_insertion_at_same_start():
  doc = Document("f(a)")
  doc.apply([TextEdit(2, 3, "a: int"), TextEdit(2, 2, "<")])
  assert doc.text == "f(<a: int)"


def test_overlap_rolls_back():
  doc = Document("abcdef")
  with pytest.raises(AnnotationInvariantError):
    doc.apply([TextEdit(0, 3, "x"), TextEdit(2, 4, "y")])
  assert doc.text == "abcdef"
  assert not doc.can_undo


def test_transaction_restores_on_error():
  doc = Document("hello")
  with pytest.raises(RuntimeError):
    with doc.transaction():
      doc.insert(0, ">> ")
      raise RuntimeError("boom")
  assert doc.text == "hello"


def test_edits_require_transaction():
  doc = Document("hello")
  with pytest.raises(AnnotationInvariantError):
    doc.insert(0, "x")


def test_invalid_range():
  doc = Document("abc")
  with pytest.raises(AnnotationInvariantError):
    with doc.transaction():
      doc.replace(2, 10, "x")


def test_undo_reverts_whole_batch():
  doc = Document("a = 1\n")
  doc.apply([TextEdit(1, 1, ": int"), TextEdit(0, 0, "import os\n", order=-1, exclusive=False)])
  assert doc.text == "import os\na: int = 1\n"
  assert doc.can_undo
  assert doc.undo()
  assert doc.text == "a = 1\n"
  assert not doc.undo()


def test_final_spans():
  doc = Document("a = 1\nb = 2\n")
  applied = doc.apply(
    [
      TextEdit(1, 1, ": int", spans=(TypeRange(2, 3),)),
      TextEdit(7, 7, ": str", spans=(TypeRange(2, 3),)),
    ]
  )
  starts = [span.offset for item in applied for span in item.final_spans()]
  assert [doc.text[s : s + 3] for s in starts] == ["int", "str"]


def test_edit_properties():
  edit = TextEdit(3, 5, "abcd")
  assert not edit.is_insertion
  assert edit.delta == 2
  assert TextEdit(1, 1, "x").is_insertion
