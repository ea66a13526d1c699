"""
CLI Command Handlers Facade.

This module re-exports handlers from `anyhint.cli.handlers` so that the
dispatcher and tests have a single import point.
"""

from anyhint.cli.handlers.annotate import (
  handle_annotate,
  _annotate_single_file,
  _print_batch_summary,
)
from anyhint.cli.handlers.check import handle_check

__all__ = [
  "_annotate_single_file",
  "_print_batch_summary",
  "handle_annotate",
  "handle_check",
]
