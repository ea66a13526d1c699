"""
Annotate Command Handler.

This module implements the logic for the `anyhint annotate` command.
It orchestrates:
1. Configuration loading (pyproject.toml + CLI overrides).
2. File discovery, skipping library sources and excluded paths.
3. Annotation via the Engine.
4. Output writing (stdout, --out or --in-place) and trace logging.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional

from rich.markup import escape
from rich.table import Table

from anyhint.config import RuntimeConfig
from anyhint.core.engine import AnnotationEngine
from anyhint.core.errors import AnnotationError
from anyhint.core.result import AnnotationResult
from anyhint.core.tree import is_library_path
from anyhint.utils.console import console, log_error, log_info, log_success, log_warning


def collect_sources(input_path: Path, config: RuntimeConfig, for_writing: bool = False) -> List[Path]:
  """
  Lists the Python files to process below ``input_path``.

  Library files (stubs, site-packages, read-only files when writing) and
  files matching ``exclude`` are left out.

  Args:
      input_path: A file or a directory.
      config: Settings carrying the exclude globs.
      for_writing: True when files are rewritten in place.

  Returns:
      List[Path]: Files in a stable order.
  """
  if input_path.is_file():
    candidates = [input_path]
    root = input_path.parent
  else:
    candidates = sorted(input_path.rglob("*.py"))
    root = input_path

  selected = []
  for path in candidates:
    rel = path.relative_to(root)
    if is_library_path(path, for_writing=for_writing):
      log_info(f"Skipping library source [path]{escape(str(rel))}[/path]")
      continue
    if config.is_excluded(rel):
      log_info(f"Skipping excluded [path]{escape(str(rel))}[/path]")
      continue
    selected.append(path)
  return selected


def handle_annotate(
  input_path: Path,
  output_path: Optional[Path],
  in_place: bool = False,
  target_version: Optional[str] = None,
  oracle: Optional[str] = None,
  type_table: Optional[Path] = None,
  annotate_variables: Optional[bool] = None,
  annotate_functions: Optional[bool] = None,
  overwrite: Optional[bool] = None,
  add_imports: Optional[bool] = None,
  json_trace_path: Optional[Path] = None,
) -> int:
  """
  Handles the 'annotate' command execution.

  Args:
      input_path: Path to the source file or directory to annotate.
      output_path: Path where annotated code should be saved.
      in_place: If True, input files are rewritten.
      target_version: Override for the target Python version.
      oracle: Override for the type oracle.
      type_table: Override for the JSON type table.
      annotate_variables: Override for variable annotation.
      annotate_functions: Override for function annotation.
      overwrite: Override for replacing existing annotations.
      add_imports: Override for import injection.
      json_trace_path: Optional path to dump execution trace JSON.

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  if not input_path.exists():
    log_error(f"Input not found: {input_path}")
    return 1

  try:
    config = RuntimeConfig.load(
      target_version=target_version,
      annotate_variables=annotate_variables,
      annotate_functions=annotate_functions,
      oracle=oracle,
      type_table=type_table,
      overwrite_annotations=overwrite,
      add_imports=add_imports,
      search_path=input_path if input_path.is_dir() else input_path.parent,
    )
    engine = AnnotationEngine(config=config)
  except (ValueError, AnnotationError) as e:
    log_error(escape(str(e)))
    return 1

  batch_results: Dict[str, AnnotationResult] = {}

  if input_path.is_file():
    sources = collect_sources(input_path, config, for_writing=in_place)
    if not sources:
      return 0
    destination = input_path if in_place else output_path
    result = _annotate_single_file(input_path, destination, engine, json_trace_path)
    batch_results[input_path.name] = result
    _print_batch_summary(batch_results)
    return 0 if result.success else 1

  if not output_path and not in_place:
    log_error("Directory annotation requires --out destination directory or --in-place.")
    return 1

  py_files = collect_sources(input_path, config, for_writing=in_place)
  if not py_files:
    log_warning(f"No .py files found in {input_path}")
    return 0

  log_info(f"Processing {len(py_files)} files from {input_path}...")

  for src_file in py_files:
    rel_path = src_file.relative_to(input_path)
    dest_file = src_file if in_place else output_path / rel_path

    batch_trace = None
    if json_trace_path:
      # One trace per file, named after the file
      batch_trace = json_trace_path / rel_path.with_suffix(".trace.json")

    result = _annotate_single_file(src_file, dest_file, engine, batch_trace)
    batch_results[str(rel_path)] = result

  _print_batch_summary(batch_results)
  return 0 if all(r.success for r in batch_results.values()) else 1


def _annotate_single_file(
  input_path: Path,
  output_path: Optional[Path],
  engine: AnnotationEngine,
  json_trace_path: Optional[Path] = None,
) -> AnnotationResult:
  """
  Helper to execute annotation logic on a single file.

  Args:
      input_path: Source file path.
      output_path: Destination file path (stdout when None).
      engine: The configured engine.
      json_trace_path: Path to save trace event logs.

  Returns:
      AnnotationResult: Result object containing status and code.
  """
  try:
    with open(input_path, "rt", encoding="utf-8", newline="") as f:
      code = f.read()
  except (OSError, UnicodeDecodeError) as e:
    log_error(f"Failed to read {input_path}: {e}")
    return AnnotationResult(success=False, errors=[str(e)])

  result = engine.run(code, path=input_path)

  if json_trace_path and result.trace_events:
    try:
      json_trace_path.parent.mkdir(parents=True, exist_ok=True)
      with open(json_trace_path, "wt", encoding="utf-8") as f:
        json.dump(result.trace_events, f, indent=2)
      log_info(f"Trace saved to [path]{json_trace_path}[/path]")
    except OSError as e:
      log_error(f"Failed to write trace: {e}")

  if not result.success:
    return result

  if output_path:
    try:
      output_path.parent.mkdir(parents=True, exist_ok=True)
      with open(output_path, "wt", encoding="utf-8", newline="") as f:
        f.write(result.code)
    except OSError as e:
      log_error(f"Failed to write {output_path}: {e}")
      return AnnotationResult(code=result.code, success=False, errors=[str(e)], hints=result.hints)
    log_success(
      f"Annotated: [path]{input_path}[/path] -> [path]{output_path}[/path] ({result.edits_applied} edits)"
    )
  else:
    # Print to stdout if no output
    print(result.code, end="")

  return result


def _print_batch_summary(results: Dict[str, AnnotationResult]) -> None:
  """
  Renders a summary table of annotation results to the console.

  Args:
      results: Dictionary mapping filenames to annotation results.
  """
  total = len(results)
  clean = sum(1 for r in results.values() if r.success and not r.hints)
  issues = total - clean

  if issues == 0:
    log_success(f"Batch Complete: {clean}/{total} files annotated without skips.")
    return

  table = Table(title="Annotation Report")
  table.add_column("File", style="cyan")
  table.add_column("Status", justify="center")
  table.add_column("Edits", justify="right")
  table.add_column("Issues", style="red")

  for filename, res in results.items():
    if res.success and not res.hints:
      continue
    status = "❌ Failed" if not res.success else "⚠️ Skipped"
    details = "; ".join(res.errors or res.hints)
    table.add_row(escape(filename), status, str(res.edits_applied), escape(details))

  console.print(table)
  console.print(f"\n[bold]Summary:[/bold] {clean} Clean, {issues} with Issues.")
