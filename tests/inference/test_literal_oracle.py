"""
Tests for the syntactic literal oracle.
"""

import textwrap

import libcst as cst
import pytest

from anyhint.analysis.functions import find_functions
from anyhint.analysis.targets import find_suitable_targets
from anyhint.inference.literals import LiteralOracle, paired_value


@pytest.fixture
def infer_all(make_context):
  def _infer(code: str, version: str = "3.8"):
    context = make_context(textwrap.dedent(code), oracle="literal", target_version=version)
    oracle = LiteralOracle()
    results = {}
    for target in find_suitable_targets(context):
      inferred = oracle.infer(target.node, context)
      results[target.label] = inferred.text if inferred else None
    return results

  return _infer


def test_scalar_literals(infer_all):
  assert infer_all(
    """
    a = 1
    b = 1.5
    c = 2j
    d = "s"
    e = b"raw"
    f = f"{a}"
    g = True
    h = a < 2
    i = -1
    j = not a
    """
  ) == {
    "a": "int",
    "b": "float",
    "c": "complex",
    "d": "str",
    "e": "bytes",
    "f": "str",
    "g": "bool",
    "h": "bool",
    "i": "int",
    "j": "bool",
  }


def test_none_is_unknown(infer_all):
  assert infer_all("x = None\n") == {"x": None}


def test_containers_by_version(infer_all):
  code = """
    a = [1, 2]
    b = {"k": 1}
    c = (1, "s")
    d = {1, 2}
    e = [1, "s"]
    f = []
    """
  assert infer_all(code) == {
    "a": "List[int]",
    "b": "Dict[str, int]",
    "c": "Tuple[int, str]",
    "d": "Set[int]",
    "e": "list",
    "f": "list",
  }
  assert infer_all(code, version="3.9")["a"] == "list[int]"
  assert infer_all(code, version="3.9")["c"] == "tuple[int, str]"


def test_calls_and_classes(infer_all):
  assert infer_all(
    """
    class Point:
        pass

    a = Point()
    b = int("3")
    c = len([])
    d = unknown()
    e = Point
    """
  ) == {"a": "Point", "b": "int", "c": "int", "d": None, "e": "Type[Point]"}


def test_shadowed_builtin_is_unknown(infer_all):
  assert infer_all(
    """
    def len(x):
        return x

    n = len([])
    """
  ) == {"n": None}


def test_aliases_and_unpacking(infer_all):
  assert infer_all(
    """
    base = 1
    alias = base
    a, (b, c) = 1, ("s", 2.0)
    first, *rest = 1, 2, 3
    """
  ) == {"base": "int", "alias": "int", "a": "int", "b": "str", "c": "float", "first": None, "rest": None}


def test_for_loop_elements(infer_all):
  assert infer_all(
    """
    for i in range(3):
        pass
    for s in "abc":
        pass
    for v in [1.0, 2.0]:
        pass
    for k, w in items:
        pass
    """
  ) == {"i": "int", "s": "str", "v": "float", "k": None, "w": None}


def test_paired_value_handles_mismatch():
  pattern = cst.parse_expression("a, b")
  value = cst.parse_expression("1, 2, 3")
  assert paired_value(pattern, value, pattern.elements[0].value) is None
  value = cst.parse_expression("1, 2")
  assert paired_value(pattern, value, pattern.elements[1].value) is value.elements[1].value


@pytest.mark.parametrize(
  "body, expected",
  [
    ("return 1", "int"),
    ("pass", "None"),
    ("return", "None"),
    ("return None", "None"),
    ("if x:\n        return 1\n    return None", "Optional[int]"),
    ("if x:\n        return 1\n    return 's'", None),
    ("yield 1", None),
    ("raise ValueError()", None),
  ],
)
def test_return_inference(make_context, body, expected):
  code = f"def f(x):\n    {body}\n"
  context = make_context(code, oracle="literal")
  (site,) = find_functions(context)
  inferred = LiteralOracle().infer_return(site, context)
  assert (inferred.text if inferred else None) == expected


def test_nested_function_returns_are_ignored(make_context):
  code = "def f():\n    def g():\n        return 1\n    return 's'\n"
  context = make_context(code, oracle="literal")
  outer = find_functions(context)[0]
  assert outer.name == "f"
  assert LiteralOracle().infer_return(outer, context).text == "str"


def test_parameters_from_defaults(make_context):
  context = make_context("def f(a, b=1, c=None, *args):\n    pass\n", oracle="literal")
  (site,) = find_functions(context)
  oracle = LiteralOracle()
  inferred = {p.name: oracle.infer_parameter(site, p, context) for p in site.parameters}
  assert inferred["a"] is None
  assert inferred["b"].text == "int"
  assert inferred["c"] is None
  assert inferred["args"] is None
