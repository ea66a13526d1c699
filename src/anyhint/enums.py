"""
Enumerations for anyhint.

This module defines the closed sets of kinds used across the analysis and
synthesis passes: what introduced a binding, what kind of scope owns it, and
which annotation syntax is being emitted.
"""

from enum import Enum


class BindingKind(str, Enum):
  """
  The syntactic construct that introduced a name binding.

  Only the assignment-like kinds (``ASSIGNMENT``, ``ANNOTATION``, ``FOR``,
  ``WITH``) can ever receive an annotation from anyhint. The other kinds are
  tracked so that scope lookups and exclusion rules see the whole picture.
  """

  ASSIGNMENT = "assignment"  # x = ...
  ANNOTATION = "annotation"  # x: T [= ...]
  FOR = "for"  # for x in ...
  WITH = "with"  # with ... as x
  WALRUS = "walrus"  # (x := ...)
  EXCEPT = "except"  # except E as x
  IMPORT = "import"  # import x / from m import x
  COMPREHENSION = "comprehension"  # [... for x in ...]
  GLOBAL = "global"  # global x
  NONLOCAL = "nonlocal"  # nonlocal x
  PARAMETER = "parameter"
  FUNCTION = "function"
  CLASS = "class"


# Kinds whose bound node is a "target expression" (a name receiving a value).
TARGET_KINDS = frozenset(
  {
    BindingKind.ASSIGNMENT,
    BindingKind.ANNOTATION,
    BindingKind.FOR,
    BindingKind.WITH,
    BindingKind.WALRUS,
    BindingKind.EXCEPT,
  }
)

# Kinds anyhint is willing to annotate.
ANNOTATABLE_KINDS = frozenset(
  {
    BindingKind.ASSIGNMENT,
    BindingKind.ANNOTATION,
    BindingKind.FOR,
    BindingKind.WITH,
  }
)


class ScopeKind(str, Enum):
  """
  Lexical scope owners.
  """

  MODULE = "module"
  CLASS = "class"
  FUNCTION = "function"
  LAMBDA = "lambda"
  COMPREHENSION = "comprehension"


class AnnotationSyntax(str, Enum):
  """
  The flavour of annotation emitted into the source.
  """

  INLINE = "inline"  # x: T = ..., def f(a: T) -> R
  COMMENT = "comment"  # x = ...  # type: T
