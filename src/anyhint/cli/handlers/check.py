"""
Check Command Handler.

Reports files that still contain un-annotated targets or functions, without
modifying anything. Suitable as a CI gate: the exit code is 1 when any file
has candidates.
"""

from pathlib import Path
from typing import List, Optional

from rich.markup import escape

from anyhint.cli.handlers.annotate import collect_sources
from anyhint.config import RuntimeConfig
from anyhint.core.engine import AnnotationEngine
from anyhint.utils.console import log_error, log_success, log_warning


def handle_check(
  input_path: Path,
  target_version: Optional[str] = None,
  annotate_variables: Optional[bool] = None,
  annotate_functions: Optional[bool] = None,
) -> int:
  """
  Handles the 'check' command execution.

  Args:
      input_path: File or directory to inspect.
      target_version: Override for the target Python version.
      annotate_variables: Override for considering variables.
      annotate_functions: Override for considering functions.

  Returns:
      int: 0 if nothing would be annotated, 1 otherwise (or on errors).
  """
  if not input_path.exists():
    log_error(f"Input not found: {input_path}")
    return 1

  try:
    # The oracle never changes whether a slot is a candidate.
    config = RuntimeConfig.load(
      target_version=target_version,
      annotate_variables=annotate_variables,
      annotate_functions=annotate_functions,
      oracle="placeholder",
      search_path=input_path if input_path.is_dir() else input_path.parent,
    )
  except ValueError as e:
    log_error(escape(str(e)))
    return 1
  engine = AnnotationEngine(config=config)

  pending: List[Path] = []
  for path in collect_sources(input_path, config):
    try:
      code = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
      log_error(f"Failed to read {path}: {e}")
      return 1
    if engine.has_candidates(code, path=path):
      pending.append(path)
      log_warning(f"[path]{escape(str(path))}[/path] has un-annotated targets")

  if pending:
    log_warning(f"{len(pending)} file(s) would be annotated.")
    return 1

  log_success("Everything is annotated.")
  return 0
