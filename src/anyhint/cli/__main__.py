"""
Main Entry Point for anyhint CLI.

This module handles argument parsing and dispatches to specific command
handlers defined in `anyhint.cli.commands`.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from anyhint import __version__
from anyhint.cli import commands
from anyhint.inference import available_oracles
from anyhint.utils.console import set_verbosity


def main(argv: Optional[List[str]] = None) -> int:
  """
  Main CLI entry point.

  Parses arguments via argparse and calls the appropriate handler function.

  Args:
      argv: Optional list of command line arguments (defaults to sys.argv).

  Returns:
      int: Exit code (0 for success, non-zero for failure).
  """
  parser = argparse.ArgumentParser(description="anyhint: Best-effort type annotation inserter")
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
  parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
  parser.add_argument("-q", "--quiet", action="store_true", help="Only show warnings and errors")

  subparsers = parser.add_subparsers(dest="command", required=True)

  # --- Command: ANNOTATE ---
  cmd_ann = subparsers.add_parser("annotate", help="Insert type annotations into a file or directory")
  cmd_ann.add_argument("path", type=Path, help="Input source file or directory")
  out_group = cmd_ann.add_mutually_exclusive_group()
  out_group.add_argument("--out", type=Path, help="Output destination (file or dir)")
  out_group.add_argument("--in-place", action="store_true", help="Rewrite the input files")
  cmd_ann.add_argument("--target-version", default=None, help="Python version of the output, X.Y (default: from toml)")
  cmd_ann.add_argument(
    "--oracle",
    default=None,
    choices=available_oracles(),
    help="Type oracle (default: from toml, else placeholder)",
  )
  cmd_ann.add_argument("--types", type=Path, default=None, help="JSON type table for the 'table' oracle")
  cmd_ann.add_argument(
    "--no-variables", dest="variables", action="store_false", default=None, help="Do not annotate variables"
  )
  cmd_ann.add_argument(
    "--no-functions", dest="functions", action="store_false", default=None, help="Do not annotate functions"
  )
  cmd_ann.add_argument("--overwrite", action="store_true", default=None, help="Replace existing function annotations")
  cmd_ann.add_argument(
    "--no-imports", dest="imports", action="store_false", default=None, help="Do not insert missing imports"
  )
  cmd_ann.add_argument(
    "--json-trace", type=Path, default=None, help="Dump full execution trace (events, edits) to a JSON file."
  )

  # --- Command: CHECK ---
  cmd_check = subparsers.add_parser("check", help="Exit with 1 if anything would be annotated")
  cmd_check.add_argument("path", type=Path, help="Input source file or directory")
  cmd_check.add_argument("--target-version", default=None, help="Python version of the output, X.Y")
  cmd_check.add_argument(
    "--no-variables", dest="variables", action="store_false", default=None, help="Ignore variables"
  )
  cmd_check.add_argument(
    "--no-functions", dest="functions", action="store_false", default=None, help="Ignore functions"
  )

  args = parser.parse_args(argv)
  set_verbosity(verbose=args.verbose, quiet=args.quiet)

  if args.command == "annotate":
    return commands.handle_annotate(
      args.path,
      args.out,
      args.in_place,
      target_version=args.target_version,
      oracle=args.oracle,
      type_table=args.types,
      annotate_variables=args.variables,
      annotate_functions=args.functions,
      overwrite=args.overwrite,
      add_imports=args.imports,
      json_trace_path=args.json_trace,
    )

  elif args.command == "check":
    return commands.handle_check(
      args.path,
      target_version=args.target_version,
      annotate_variables=args.variables,
      annotate_functions=args.functions,
    )

  return 0


if __name__ == "__main__":
  sys.exit(main())
