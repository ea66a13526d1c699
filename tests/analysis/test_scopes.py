"""
Tests for lexical scope analysis.

Covers binding collection per construct, ``global`` / ``nonlocal``
redirection, type comment detection and class hierarchy resolution.
"""

import textwrap

import libcst as cst

from anyhint.analysis.scopes import ScopeAnalysis, bound_names, type_comment_of
from anyhint.core.tree import SourceTree
from anyhint.enums import BindingKind, ScopeKind


def _analyse(code: str):
  tree = SourceTree.parse(textwrap.dedent(code))
  return tree, ScopeAnalysis.build(tree)


def test_module_bindings_by_kind():
  _, scopes = _analyse(
    """
    import os.path
    from m import a as b
    x = 1
    y: int = 2
    for i in range(3):
        pass
    with open("f") as fh:
        pass
    def f(p):
        pass
    class C:
        pass
    """
  )
  module = scopes.module_scope
  kinds = {name: [b.kind for b in bindings] for name, bindings in module.bindings.items()}
  assert kinds["os"] == [BindingKind.IMPORT]
  assert kinds["b"] == [BindingKind.IMPORT]
  assert kinds["x"] == [BindingKind.ASSIGNMENT]
  assert kinds["y"] == [BindingKind.ANNOTATION]
  assert kinds["i"] == [BindingKind.FOR]
  assert kinds["fh"] == [BindingKind.WITH]
  assert kinds["f"] == [BindingKind.FUNCTION]
  assert kinds["C"] == [BindingKind.CLASS]
  assert "p" not in module.bindings


def test_comprehension_and_walrus_scopes():
  _, scopes = _analyse(
    """
    vals = [n for n in range(3) if (last := n)]
    """
  )
  module = scopes.module_scope
  assert "n" not in module.bindings
  assert module.bindings["last"][0].kind == BindingKind.WALRUS
  (comp,) = module.children
  assert comp.kind == ScopeKind.COMPREHENSION
  assert comp.bindings["n"][0].kind == BindingKind.COMPREHENSION


def test_global_redirects_to_module():
  _, scopes = _analyse(
    """
    def f():
        global g
        g = 1
    """
  )
  module = scopes.module_scope
  assert [b.kind for b in module.bindings_of("g")] == [BindingKind.ASSIGNMENT]
  (func,) = module.children
  assert func.bindings_of("g") == []
  assert func.owner_for("g") is module


def test_nonlocal_redirects_to_enclosing_function():
  _, scopes = _analyse(
    """
    def outer():
        n = 0
        def inner():
            nonlocal n
            n = 1
    """
  )
  (outer,) = scopes.module_scope.children
  (inner,) = outer.children
  assert inner.owner_for("n") is outer
  assert len(outer.bindings_of("n")) == 2


def test_type_comments_mark_bindings():
  tree, scopes = _analyse(
    """
    a = []  # type: List[int]
    b = 1  # type: ignore
    for c in d:  # type: int
        pass
    """
  )
  module = scopes.module_scope
  assert module.bindings["a"][0].annotated
  assert not module.bindings["b"][0].annotated
  assert module.bindings["c"][0].annotated
  assign = tree.module.body[0].body[0]
  assert type_comment_of(tree, assign) == "# type: List[int]"


def test_type_comment_requires_last_statement():
  tree, _ = _analyse("a = 1; b = 2  # type: int\n")
  first, second = tree.module.body[0].body
  assert type_comment_of(tree, first) is None
  assert type_comment_of(tree, second) == "# type: int"


def test_annotated_attributes_recorded_per_scope():
  _, scopes = _analyse(
    """
    class A:
        def __init__(self):
            self.x: int = 0
            self.y = 1
    """
  )
  (klass,) = scopes.module_scope.children
  (method,) = klass.children
  assert method.annotated_attributes == {"self.x"}


def test_lookup_skips_class_scope():
  _, scopes = _analyse(
    """
    v = 1
    class A:
        v = 2
        def m(self):
            return v
    """
  )
  (klass,) = scopes.module_scope.children
  (method,) = klass.children
  (binding,) = method.lookup("v")
  assert any(b is binding for b in scopes.module_scope.bindings_of("v"))


def test_class_level_definitions_follow_bases():
  _, scopes = _analyse(
    """
    class Base:
        attr: int = 0
    class Mid(Base):
        pass
    class Leaf(Mid):
        other = 1
    """
  )
  leaf = next(info for info in scopes.classes.values() if info.name == "Leaf")
  assert [info.name for info in scopes.mro(leaf)] == ["Leaf", "Mid", "Base"]
  (definition,) = scopes.class_level_definitions(leaf, "attr")
  assert definition.annotated
  assert scopes.class_level_definitions(leaf, "missing") == []


def test_mro_tolerates_cycles():
  _, scopes = _analyse(
    """
    class A(B):
        pass
    class B(A):
        pass
    """
  )
  a = next(info for info in scopes.classes.values() if info.name == "A")
  assert [info.name for info in scopes.mro(a)] == ["A", "B"]


def test_bound_names_unpacks_patterns():
  expr = cst.parse_expression("a, (b, *c), d.e")
  assert [n.value for n in bound_names(expr)] == ["a", "b", "c"]
