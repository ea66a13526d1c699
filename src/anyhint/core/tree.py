"""
Syntax Tree Provider.

Wraps a parsed LibCST module together with the metadata the annotation passes
need: parent links and source positions. Positions are exposed as absolute
character offsets into the original text, which is the coordinate system used
by :mod:`anyhint.core.document`.
"""

import bisect
import os
import re
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import libcst as cst
from libcst.metadata import CodeRange, MetadataWrapper, ParentNodeProvider, PositionProvider

from anyhint.core.errors import AnnotationInvariantError

_NEWLINE_RE = re.compile(r"\r\n|\r|\n")

# Path fragments identifying third-party / interpreter-owned sources.
_LIBRARY_DIRS = {"site-packages", "dist-packages", "typeshed", "__pypackages__"}


def is_library_path(path: Optional[Path], for_writing: bool = False) -> bool:
  """
  Decides whether a file is external (library) or read-only source.

  Args:
      path: File path, or None for in-memory buffers (never a library).
      for_writing: If True, files the current user cannot write count as read-only.

  Returns:
      bool: True if the file must not be annotated.
  """
  if path is None:
    return False
  if path.suffix == ".pyi":
    return True
  if any(part in _LIBRARY_DIRS for part in path.parts):
    return True
  if for_writing and path.exists() and not os.access(path, os.W_OK):
    return True
  return False


def line_starts(code: str) -> List[int]:
  """Offsets at which each line of ``code`` starts."""
  return [0] + [m.end() for m in _NEWLINE_RE.finditer(code)]


def offset_to_line_col(starts: List[int], offset: int) -> Tuple[int, int]:
  """Converts an offset into a 1-based line and 0-based column given line starts."""
  idx = bisect.bisect_right(starts, offset) - 1
  return idx + 1, offset - starts[idx]


class SourceTree:
  """
  A parsed source file with position and parent metadata.

  The tree is read-only: the annotation passes compute edits against it and
  never mutate nodes.
  """

  def __init__(self, module: cst.Module, code: str, path: Optional[Path] = None, read_only: bool = False):
    """
    Args:
        module: The parsed module.
        code: The exact text the module was parsed from.
        path: Optional file path of the source.
        read_only: Marks the buffer as non-writable (treated like library source).
    """
    self.wrapper = MetadataWrapper(module)
    # MetadataWrapper deep-copies the module, metadata is keyed by the copy.
    self.module = self.wrapper.module
    self.code = code
    self.path = path
    self.read_only = read_only
    self._positions = self.wrapper.resolve(PositionProvider)
    self._parents = self.wrapper.resolve(ParentNodeProvider)
    self._line_starts = line_starts(code)

  @classmethod
  def parse(cls, code: str, path: Optional[Path] = None, read_only: bool = False) -> "SourceTree":
    """
    Parses source text.

    Raises:
        libcst.ParserSyntaxError: If the input code is invalid Python.
    """
    return cls(cst.parse_module(code), code, path=path, read_only=read_only)

  @property
  def is_library(self) -> bool:
    """True if this source must never be annotated."""
    return self.read_only or is_library_path(self.path)

  @property
  def newline(self) -> str:
    return self.module.default_newline

  # --- Offsets ---

  def offset(self, line: int, column: int) -> int:
    """Converts a 1-based line and 0-based column into a character offset."""
    return self._line_starts[line - 1] + column

  def line_col(self, offset: int) -> Tuple[int, int]:
    """Converts a character offset into a 1-based line and 0-based column."""
    return offset_to_line_col(self._line_starts, offset)

  def code_range(self, node: cst.CSTNode) -> Optional[CodeRange]:
    """Line/column range of a node, or None if it is not part of this tree."""
    return self._positions.get(node)

  def range_of(self, node: cst.CSTNode) -> Tuple[int, int]:
    """
    Source range of a node as ``(start, end)`` offsets.

    Raises:
        AnnotationInvariantError: If the node does not belong to this tree.
    """
    try:
      code_range = self._positions[node]
    except KeyError:
      raise AnnotationInvariantError(f"Node {type(node).__name__} is not part of this tree")
    return (
      self.offset(code_range.start.line, code_range.start.column),
      self.offset(code_range.end.line, code_range.end.column),
    )

  def start_of(self, node: cst.CSTNode) -> int:
    return self.range_of(node)[0]

  def end_of(self, node: cst.CSTNode) -> int:
    return self.range_of(node)[1]

  def outer_range(self, node: cst.CSTNode) -> Tuple[int, int]:
    """
    Source range of a node including its own parentheses.

    Positions exclude the parentheses LibCST folds into ``lpar`` / ``rpar``.
    The paren tokens carry their own positions, which also cover any comment
    between a parenthesis and the node.
    """
    start, end = self.range_of(node)
    lpar = getattr(node, "lpar", ())
    rpar = getattr(node, "rpar", ())
    if lpar:
      start = min(start, self.range_of(lpar[0])[0])
    if rpar:
      end = max(end, self.range_of(rpar[-1])[1])
    return start, end

  def text_of(self, node: cst.CSTNode) -> str:
    """The original source text covered by a node."""
    start, end = self.range_of(node)
    return self.code[start:end]

  def line_start(self, offset: int) -> int:
    """Offset of the first character on the line containing ``offset``."""
    idx = bisect.bisect_right(self._line_starts, offset) - 1
    return self._line_starts[idx]

  def next_line_start(self, offset: int) -> int:
    """Offset of the line after the one containing ``offset`` (or end of text)."""
    idx = bisect.bisect_right(self._line_starts, offset)
    if idx < len(self._line_starts):
      return self._line_starts[idx]
    return len(self.code)

  def indent_at(self, offset: int) -> str:
    """Leading whitespace of the line containing ``offset``."""
    start = self.line_start(offset)
    end = start
    while end < len(self.code) and self.code[end] in " \t\f":
      end += 1
    return self.code[start:end]

  # --- Navigation ---

  def parent_of(self, node: cst.CSTNode) -> Optional[cst.CSTNode]:
    return self._parents.get(node)

  def ancestors(self, node: cst.CSTNode) -> Iterator[cst.CSTNode]:
    """Yields parents from the closest outwards, ending with the module."""
    current = self.parent_of(node)
    while current is not None:
      yield current
      current = self.parent_of(current)

  def first_ancestor(self, node: cst.CSTNode, *kinds: type) -> Optional[cst.CSTNode]:
    """Closest ancestor that is an instance of any of ``kinds``."""
    for ancestor in self.ancestors(node):
      if isinstance(ancestor, kinds):
        return ancestor
    return None

  def walk(self) -> Iterator[cst.CSTNode]:
    """Pre-order traversal of every node in source order."""
    stack: List[cst.CSTNode] = [self.module]
    while stack:
      node = stack.pop()
      yield node
      stack.extend(reversed(node.children))

  def scan_for(self, offset: int, char: str, extra: str = "") -> int:
    """
    Finds the next ``char`` at or after ``offset``, skipping layout.

    Whitespace, line continuations, commas, closing parentheses, comments and
    any character in ``extra`` are skipped. Anything else before ``char`` is
    an invariant violation.

    Returns:
        int: Offset of ``char``.
    """
    pos = offset
    code = self.code
    while pos < len(code):
      ch = code[pos]
      if ch == char:
        return pos
      if ch == "#":
        pos = self.next_line_start(pos)
        continue
      if ch in " \t\f\r\n\\,)" or ch in extra:
        pos += 1
        continue
      break
    raise AnnotationInvariantError(f"Expected '{char}' after offset {offset}")
