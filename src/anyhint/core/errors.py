"""
Error Taxonomy for the Annotation Pipeline.

Two families of failures exist:

1.  **Recoverable** (:class:`SkipAnnotation` subclasses): the annotation of a
    single target or signature field cannot be produced. The engine catches
    these per target, records a hint and moves on to the next target.
2.  **Invariant violations** (:class:`AnnotationInvariantError`): the mutation
    routine itself is broken (e.g. overlapping edits). These abort the
    invocation and the document transaction is rolled back.
"""


class AnnotationError(Exception):
  """Base class for all errors raised by anyhint."""


class SkipAnnotation(AnnotationError):
  """
  Base class for per-target failures that must not abort the batch.

  Attributes:
      subject (str): Human readable name of the target or field being skipped.
  """

  def __init__(self, message: str, subject: str = "") -> None:
    super().__init__(message)
    self.subject = subject


class IncompatibleTypeError(SkipAnnotation):
  """
  Raised when an inferred type cannot be written in the active annotation syntax.

  Examples are ``int | None`` when targeting Python 3.8, or a rendering that is
  not a valid Python expression at all.
  """


class UnsupportedLayoutError(SkipAnnotation):
  """
  Raised when the source layout has no legal place for the annotation.

  For instance a function with a one-line body cannot host a legacy
  ``# type: (...) -> R`` signature comment.
  """


class AnnotationInvariantError(AnnotationError):
  """Raised when the edit synthesis produced something structurally impossible."""
