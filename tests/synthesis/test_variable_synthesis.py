"""
Tests for variable annotation synthesis (inline and type comment syntax).
"""

import textwrap

import pytest

from anyhint.analysis.targets import build_target, find_suitable_targets
from anyhint.core.document import Document, TypeRange
from anyhint.core.errors import UnsupportedLayoutError
from anyhint.synthesis import annotate_target, insert_variable_annotation, insert_variable_type_comment


def _targets(context):
  return {t.label: t for t in find_suitable_targets(context)}


def _apply(context, planned):
  document = Document(context.tree.code)
  document.apply([p.edit for p in planned])
  return document.text


def test_simple_assignment_is_annotated_inline(make_context):
  context = make_context("x = 1\n")
  (planned,) = insert_variable_annotation(_targets(context)["x"], context)
  assert (planned.edit.start, planned.edit.end, planned.edit.text) == (1, 1, ": Any")
  assert planned.edit.spans == (TypeRange(2, 3),)
  assert planned.info.imports
  assert _apply(context, [planned]) == "x: Any = 1\n"


def test_parenthesized_target_keeps_parentheses(make_context):
  context = make_context("(x) = 1\n")
  (planned,) = insert_variable_annotation(_targets(context)["x"], context)
  assert _apply(context, [planned]) == "(x): Any = 1\n"


def test_for_target_gets_declaration_line(make_context):
  context = make_context("def f(xs):\n    for i in xs:\n        pass\n")
  (planned,) = insert_variable_annotation(_targets(context)["i"], context)
  assert not planned.edit.exclusive
  assert planned.edit.text == "    i: Any\n"
  assert planned.edit.spans == (TypeRange(7, 3),)
  assert _apply(context, [planned]) == "def f(xs):\n    i: Any\n    for i in xs:\n        pass\n"


def test_unpacking_declares_each_name(make_context):
  context = make_context("a, b = pair\n")
  targets = _targets(context)
  planned = annotate_target(targets["a"], context) + annotate_target(targets["b"], context)
  assert _apply(context, planned) == "a: Any\nb: Any\na, b = pair\n"


def test_one_line_suite_of_compound_statement(make_context):
  context = make_context("if c: a, b = pair\n")
  planned = annotate_target(_targets(context)["a"], context)
  assert _apply(context, planned) == "a: Any\nif c: a, b = pair\n"


def test_one_line_function_body_is_unsupported(make_context):
  context = make_context("def f(): a, b = 1, 2\n")
  with pytest.raises(UnsupportedLayoutError):
    insert_variable_annotation(_targets(context)["a"], context)


def test_instance_attribute_redirects_to_class_level(make_context):
  code = textwrap.dedent(
    """
    class A:
        y = None

        def __init__(self):
            self.y = 1
    """
  )
  context = make_context(code, oracle="literal")
  targets = _targets(context)
  (planned,) = insert_variable_annotation(targets["self.y"], context)
  class_level = targets["y"].node
  assert planned.edit.start == context.tree.end_of(class_level)
  assert planned.info.text == "int"
  assert "    y: int = None\n" in _apply(context, [planned])


def test_type_comment_for_unpacking(make_context):
  context = make_context("a, (b, c) = 1, ('s', 2.0)\n", target_version="2.7", oracle="literal")
  (planned,) = insert_variable_type_comment(_targets(context)["b"], context)
  assert planned.edit.text == "  # type: (int, (str, float))"
  assert planned.edit.spans == (TypeRange(11, 3), TypeRange(17, 3), TypeRange(22, 5))
  assert _apply(context, [planned]) == "a, (b, c) = 1, ('s', 2.0)  # type: (int, (str, float))\n"


def test_type_comment_for_starred_leaf(make_context):
  context = make_context("first, *rest = items\n", target_version="2.7")
  (planned,) = annotate_target(_targets(context)["rest"], context)
  assert planned.edit.text == "  # type: (Any, Any)"


def test_type_comment_after_header_colon(make_context):
  context = make_context("for i in range(3):\n    pass\n", target_version="2.7", oracle="literal")
  (planned,) = annotate_target(_targets(context)["i"], context)
  assert _apply(context, [planned]) == "for i in range(3):  # type: int\n    pass\n"

  context = make_context("with open('f') as fh:\n    pass\n", target_version="3.5")
  (planned,) = annotate_target(_targets(context)["fh"], context)
  assert _apply(context, [planned]) == "with open('f') as fh:  # type: Any\n    pass\n"


@pytest.mark.parametrize(
  "code, label",
  [
    ("x = 1; y = 2\n", "x"),
    ("with a as x, b as y:\n    pass\n", "x"),
    ("for i in xs: pass\n", "i"),
  ],
)
def test_type_comment_layout_errors(make_context, code, label):
  context = make_context(code, target_version="2.7")
  with pytest.raises(UnsupportedLayoutError):
    insert_variable_type_comment(_targets(context)[label], context)


def test_last_statement_of_line_takes_comment(make_context):
  context = make_context("x = 1; y = 2\n", target_version="2.7")
  planned = insert_variable_type_comment(_targets(context)["y"], context)
  assert _apply(context, planned) == "x = 1; y = 2  # type: Any\n"


def test_declared_class_attribute_needs_no_comment(make_context):
  code = textwrap.dedent(
    """
    class A:
        y: int

        def m(self):
            self.y = 1
    """
  )
  context = make_context(code, target_version="2.7")
  method = context.tree.module.body[0].body.body[1]
  attribute = method.body.body[0].body[0].targets[0].target
  target = build_target(context.tree, context.scopes, attribute)
  assert target is not None and target.is_instance_attribute
  assert insert_variable_type_comment(target, context) == []
