"""
Tests for the JSON type table oracle.
"""

import json
from pathlib import Path

import pytest

from anyhint.analysis.functions import find_functions
from anyhint.analysis.targets import find_suitable_targets
from anyhint.config import RuntimeConfig
from anyhint.core.context import AnnotationContext
from anyhint.core.errors import AnnotationError
from anyhint.core.tree import SourceTree
from anyhint.inference.oracle import get_oracle
from anyhint.inference.table import TableOracle, TypeTable, load_type_table, split_callable


def _entry(annotation, start, stop, path=""):
  location = {"start": {"line": start[0], "column": start[1]}, "stop": {"line": stop[0], "column": stop[1]}}
  if path:
    location["path"] = path
  return {"location": location, "annotation": annotation}


CODE = "x = 1\ndef f(a):\n    return a\n"

TABLE = {
  "types": [
    _entry("int", (1, 0), (1, 1)),
    _entry("str", (2, 6), (2, 7)),
    _entry("typing.Callable[[str], str]", (2, 4), (2, 5)),
  ]
}


def _context(oracle, path=None):
  config = RuntimeConfig(oracle="table")
  return AnnotationContext(SourceTree.parse(CODE, path=path), config=config, oracle=oracle)


def test_lookup_by_exact_range():
  context = _context(TableOracle(TypeTable.model_validate(TABLE)))
  (target,) = find_suitable_targets(context)
  (site,) = find_functions(context)
  assert context.oracle.infer(target.node, context).text == "int"
  assert context.oracle.infer_parameter(site, site.parameters[0], context).text == "str"
  assert context.oracle.infer_return(site, context).text == "str"


def test_missing_ranges_are_unknown():
  context = _context(TableOracle(TypeTable()))
  (target,) = find_suitable_targets(context)
  (site,) = find_functions(context)
  assert context.oracle.infer(target.node, context) is None
  assert context.oracle.infer_return(site, context) is None


def test_response_envelope_and_paths(tmp_path):
  payload = {
    "response": [
      {"path": "pkg/mod.py", "types": [_entry("int", (1, 0), (1, 1))]},
      {"path": "pkg/other.py", "types": [_entry("bytes", (1, 0), (1, 1))]},
    ]
  }
  table_file = tmp_path / "types.json"
  table_file.write_text(json.dumps(payload), encoding="utf-8")

  oracle = TableOracle.from_file(table_file)
  assert len(oracle.table.entries()) == 2
  assert oracle.table.entries()[0].location.path == "pkg/mod.py"

  context = _context(oracle, path=Path("/work/pkg/mod.py"))
  (target,) = find_suitable_targets(context)
  assert oracle.infer(target.node, context).text == "int"


def test_oracle_from_config(tmp_path):
  table_file = tmp_path / "types.json"
  table_file.write_text(json.dumps(TABLE), encoding="utf-8")
  oracle = get_oracle("table", RuntimeConfig(oracle="table", type_table=table_file))
  assert isinstance(oracle, TableOracle)
  assert len(oracle.table.types) == 3


def test_load_errors(tmp_path):
  with pytest.raises(AnnotationError, match="not found"):
    load_type_table(tmp_path / "missing.json")
  broken = tmp_path / "broken.json"
  broken.write_text('{"types": [{"annotation": "int"}]}', encoding="utf-8")
  with pytest.raises(AnnotationError, match="Invalid type table"):
    load_type_table(broken)


@pytest.mark.parametrize(
  "annotation, expected",
  [
    ("Callable[[int, str], bool]", ("[int, str]", "bool")),
    ("typing.Callable[..., None]", ("...", "None")),
    ("List[int]", (None, None)),
    ("int", (None, None)),
    ("Callable[[", (None, None)),
  ],
)
def test_split_callable(annotation, expected):
  assert split_callable(annotation) == expected
