"""
Annotation synthesis: turns discovered targets and functions into text edits.
"""

from anyhint.synthesis.functions import annotate_function
from anyhint.synthesis.info import AnnotationInfo, PlannedAnnotation
from anyhint.synthesis.variables import annotate_target, insert_variable_annotation, insert_variable_type_comment

__all__ = [
  "AnnotationInfo",
  "PlannedAnnotation",
  "annotate_function",
  "annotate_target",
  "insert_variable_annotation",
  "insert_variable_type_comment",
]
