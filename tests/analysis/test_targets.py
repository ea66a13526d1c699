"""
Tests for binding target discovery.

Verifies the annotatable policy (imports, comprehensions, global/nonlocal,
augmented assignments and walrus targets are excluded), the already-annotated
check (same-scope bindings, type comments, class-level definitions) and
instance attribute detection.
"""

import textwrap
from pathlib import Path

import libcst as cst

from anyhint.analysis.targets import binding_site, build_target, find_suitable_targets
from anyhint.enums import BindingKind


def _labels(make_context, code: str, **settings):
  context = make_context(textwrap.dedent(code), **settings)
  return [t.label for t in find_suitable_targets(context)]


def test_assignment_for_and_with_targets(make_context):
  labels = _labels(
    make_context,
    """
    x = 1
    a, (b, c) = 1, (2, 3)
    for i, j in pairs:
        pass
    with open("f") as fh, lock:
        pass
    d = e = 0
    """,
  )
  assert labels == ["x", "a", "b", "c", "i", "j", "fh", "d", "e"]


def test_excluded_bindings(make_context):
  labels = _labels(
    make_context,
    """
    import os
    from m import a as b
    squares = [n * n for n in range(3)]
    total = 0
    total += 1
    if (w := 3):
        pass
    try:
        pass
    except ValueError as err:
        pass
    def f():
        global g
        g = 1
    print(key=1)
    """,
  )
  assert labels == ["squares", "total", "g"]


def test_nonlocal_name_item_is_not_a_target(make_context):
  context = make_context(
    textwrap.dedent(
      """
      def outer():
          n = 0
          def inner():
              nonlocal n
              n = 1
      """
    )
  )
  targets = find_suitable_targets(context)
  assert [t.label for t in targets] == ["n", "n"]
  assert all(t.kind == BindingKind.ASSIGNMENT for t in targets)
  assert targets[0].key() == targets[1].key()


def test_annotated_elsewhere_in_scope(make_context):
  labels = _labels(
    make_context,
    """
    x: int
    x = 1
    y = 2  # type: int
    def f():
        x = "local"
    """,
  )
  assert labels == ["x"]


def test_type_comment_on_for_and_with(make_context):
  labels = _labels(
    make_context,
    """
    for i in items:  # type: int
        pass
    with open("f") as fh:  # type: IO[str]
        pass
    """,
  )
  assert labels == []


def test_instance_attributes(make_context):
  context = make_context(
    textwrap.dedent(
      """
      class A:
          known: int = 0

          def __init__(self, other):
              self.known = 1
              self.fresh = 2
              other.attr = 3

          @staticmethod
          def make(self):
              self.not_instance = 4
      """
    )
  )
  targets = {t.label: t for t in find_suitable_targets(context)}
  assert set(targets) == {"self.fresh", "other.attr", "self.not_instance"}
  assert targets["self.fresh"].is_instance_attribute
  assert not targets["other.attr"].is_instance_attribute
  assert not targets["self.not_instance"].is_instance_attribute


def test_inherited_class_level_annotation(make_context):
  labels = _labels(
    make_context,
    """
    class Base:
        value: int = 0

    class Child(Base):
        def set(self):
            self.value = 1
            self.extra = 2
    """,
  )
  assert labels == ["self.extra"]


def test_attribute_declared_in_another_method(make_context):
  labels = _labels(
    make_context,
    """
    class A:
        def __init__(self):
            self.x: int = 0

        def reset(self):
            self.x = 0
    """,
  )
  assert labels == []


def test_library_source_yields_nothing(make_context):
  context = make_context("x = 1\n")
  context.tree.path = Path("venv/site-packages/pkg/mod.py")
  assert find_suitable_targets(context) == []


def test_binding_site_shapes(make_context):
  context = make_context("a, *rest = items\n")
  tree = context.tree
  assign = tree.module.body[0].body[0]
  pattern = assign.targets[0].target
  star = pattern.elements[1]
  site = binding_site(tree, star.value)
  assert site.kind == BindingKind.ASSIGNMENT
  assert site.statement is assign
  assert site.topmost is pattern

  target = build_target(tree, context.scopes, star.value)
  assert target.label == "rest"
  assert not target.is_simple


def test_loads_are_not_targets(make_context):
  context = make_context("y = x.attr[0]\n")
  tree = context.tree
  value = tree.module.body[0].body[0].value
  assert binding_site(tree, value.value) is None
  assert binding_site(tree, value.value.value) is None
  assert binding_site(tree, cst.Name("nowhere")) is None
