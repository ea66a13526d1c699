from .annotate import handle_annotate, _annotate_single_file, _print_batch_summary
from .check import handle_check

__all__ = [
  "_annotate_single_file",
  "_print_batch_summary",
  "handle_annotate",
  "handle_check",
]
