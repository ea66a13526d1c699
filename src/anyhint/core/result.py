"""
Data structures representing the output of the annotation pipeline.

This module defines the `AnnotationResult` Pydantic model, which encapsulates
the annotated code, skipped targets, placeholder positions and the execution
trace logs.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class Placeholder(BaseModel):
  """
  An inserted type that a user is expected to refine.

  Positions refer to the annotated code.
  """

  line: int = Field(description="1-based line of the type.")
  column: int = Field(description="0-based column of the type.")
  length: int = Field(description="Length of the type text.")
  text: str = Field(description="The inserted type.")


class AnnotationResult(BaseModel):
  """
  Container for the results of one annotation invocation.
  """

  code: str = Field(default="", description="The annotated source code.")
  errors: List[str] = Field(default_factory=list, description="Fatal errors (parse failures, broken edits).")
  hints: List[str] = Field(default_factory=list, description="Targets or fields skipped without aborting.")
  success: bool = Field(
    default=True,
    description="True if the pipeline completed without fatal failures.",
  )
  edits_applied: int = Field(default=0, description="Number of text edits committed.")
  placeholders: List[Placeholder] = Field(default_factory=list, description="Inserted types, in text order.")
  trace_events: List[Dict[str, Any]] = Field(default_factory=list, description="Execution trace log data.")

  @property
  def has_errors(self) -> bool:
    """
    Check if the result contains any error messages.

    Returns:
        True if one or more errors are present.
    """
    return len(self.errors) > 0

  @property
  def changed(self) -> bool:
    """True if at least one edit was committed."""
    return self.edits_applied > 0
