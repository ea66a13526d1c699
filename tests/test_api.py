"""
Tests for the package-level convenience API.
"""

import pytest

import anyhint
from anyhint import RuntimeConfig


def test_annotate_string():
  assert anyhint.annotate("x = 1", oracle="literal") == "x: int = 1"


def test_annotate_legacy_target():
  code = "def f(a):\n    return a\n"
  assert anyhint.annotate(code, target_version="2.7") == (
    "from typing import Any\ndef f(a):\n    # type: (Any) -> Any\n    return a\n"
  )


def test_annotate_with_config_object():
  config = RuntimeConfig(annotate_functions=False, oracle="literal")
  assert anyhint.annotate("def f(a):\n    b = 2\n", config=config) == "def f(a):\n    b: int = 2\n"


def test_annotate_raises_on_syntax_errors():
  with pytest.raises(ValueError, match="Annotation failed"):
    anyhint.annotate("def (:\n")


def test_has_candidates():
  assert anyhint.has_candidates("x = 1\n")
  assert not anyhint.has_candidates("x: int = 1\n")
  assert not anyhint.has_candidates("def f() -> None:\n    pass\n")
