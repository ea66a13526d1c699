"""
Type Oracle Contract.

The annotation passes do not infer types themselves. They ask a `TypeOracle`
for the type of a binding target, a parameter or a function's return value.
An oracle answers with an `InferredType` (rendered annotation text plus the
imports the text needs) or None when it does not know, in which case the
placeholder type is used.

`check_compatibility` validates that a rendered type is expressible under the
configured target Python version.
"""

import abc
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, FrozenSet, List, Optional, Tuple, Type

import libcst as cst

from anyhint.core.errors import IncompatibleTypeError
from anyhint.core.imports import ImportReq, get_root_name

if TYPE_CHECKING:
  from anyhint.analysis.functions import FunctionSite, ParameterSite
  from anyhint.config import RuntimeConfig
  from anyhint.core.context import AnnotationContext

# Names resolved from the typing module when used unqualified.
TYPING_NAMES = frozenset(
  {
    "Any",
    "AnyStr",
    "Awaitable",
    "Callable",
    "ClassVar",
    "Coroutine",
    "DefaultDict",
    "Deque",
    "Dict",
    "Final",
    "FrozenSet",
    "Generator",
    "Iterable",
    "Iterator",
    "List",
    "Literal",
    "Mapping",
    "MutableMapping",
    "MutableSequence",
    "NoReturn",
    "Optional",
    "Sequence",
    "Set",
    "Tuple",
    "Type",
    "Union",
  }
)

# Builtins that only became subscriptable in 3.9 (PEP 585).
_BUILTIN_GENERICS = frozenset({"dict", "frozenset", "list", "set", "tuple", "type"})

# Expression nodes that can never appear in an annotation.
_FORBIDDEN_NODES = (
  cst.Await,
  cst.BooleanOperation,
  cst.Call,
  cst.Comparison,
  cst.DictComp,
  cst.FormattedString,
  cst.GeneratorExp,
  cst.IfExp,
  cst.Lambda,
  cst.ListComp,
  cst.NamedExpr,
  cst.SetComp,
  cst.UnaryOperation,
  cst.Yield,
)


def _parse_type(text: str) -> Optional[cst.BaseExpression]:
  try:
    return cst.parse_expression(text)
  except cst.ParserSyntaxError:
    return None


class _RequirementCollector(cst.CSTVisitor):
  """Collects the imports a type expression needs."""

  def __init__(self) -> None:
    self.requirements = set()

  def visit_Attribute(self, node: cst.Attribute) -> bool:
    root = get_root_name(node)
    if root:
      self.requirements.add(ImportReq(root))
    return False

  def visit_Name(self, node: cst.Name) -> None:
    if node.value in TYPING_NAMES:
      self.requirements.add(ImportReq("typing", node.value))


@dataclass(frozen=True)
class InferredType:
  """
  An oracle answer: annotation text and the imports it relies on.
  """

  text: str
  imports: FrozenSet[ImportReq] = field(default_factory=frozenset)

  def __str__(self) -> str:
    return self.text

  @classmethod
  def from_text(cls, text: str) -> "InferredType":
    """
    Builds a type from its rendering, deriving imports.

    Unqualified typing names (``Optional``, ``List``...) require a
    ``from typing import`` and dotted names require their root module.
    """
    text = text.strip()
    expr = _parse_type(text)
    if expr is None:
      return cls(text)
    collector = _RequirementCollector()
    expr.visit(collector)
    return cls(text, frozenset(collector.requirements))


def placeholder_type(name: str = "Any") -> InferredType:
  """The universal fallback type."""
  return InferredType.from_text(name)


ANY = placeholder_type()


class _CompatibilityChecker(cst.CSTVisitor):
  def __init__(self, version: Tuple[int, int]) -> None:
    self.version = version
    self.problem: Optional[str] = None

  def _fail(self, reason: str) -> bool:
    if self.problem is None:
      self.problem = reason
    return False

  def on_visit(self, node: cst.CSTNode) -> bool:
    if isinstance(node, _FORBIDDEN_NODES):
      return self._fail(f"{type(node).__name__} is not a type expression")
    return super().on_visit(node)

  def visit_BinaryOperation(self, node: cst.BinaryOperation) -> Optional[bool]:
    if not isinstance(node.operator, cst.BitOr):
      return self._fail("only '|' unions are allowed in types")
    if self.version < (3, 10):
      return self._fail("'X | Y' unions require Python 3.10")
    return None

  def visit_Subscript(self, node: cst.Subscript) -> None:
    if isinstance(node.value, cst.Name) and node.value.value in _BUILTIN_GENERICS and self.version < (3, 9):
      self._fail(f"'{node.value.value}[...]' requires Python 3.9")


def check_compatibility(inferred: InferredType, version: Tuple[int, int]) -> None:
  """
  Validates that a type can be written as an annotation for ``version``.

  Args:
      inferred: The type to check.
      version: Target ``(major, minor)`` Python version.

  Raises:
      IncompatibleTypeError: If the text is not a valid type expression or
          uses syntax the version lacks.
  """
  expr = _parse_type(inferred.text)
  if expr is None:
    raise IncompatibleTypeError(f"'{inferred.text}' is not a valid expression", subject=inferred.text)
  if isinstance(expr, (cst.Integer, cst.Float, cst.Imaginary, cst.Dict, cst.Set, cst.Tuple)):
    raise IncompatibleTypeError(f"'{inferred.text}' is not a type", subject=inferred.text)
  checker = _CompatibilityChecker(version)
  expr.visit(checker)
  if checker.problem is not None:
    raise IncompatibleTypeError(f"'{inferred.text}': {checker.problem}", subject=inferred.text)


class TypeOracle(abc.ABC):
  """
  Abstract type inference backend.

  Every method returns None for "unknown".
  """

  name: str = "oracle"

  @classmethod
  def from_config(cls, config: "RuntimeConfig") -> "TypeOracle":
    """Creates the oracle from runtime settings."""
    return cls()

  @abc.abstractmethod
  def infer(self, node: cst.BaseExpression, context: "AnnotationContext") -> Optional[InferredType]:
    """
    Infers the type of a binding target.

    Args:
        node: The bound ``Name`` / ``Attribute`` (or another unpacking leaf).
        context: The per-buffer annotation context.
    """

  def infer_parameter(
    self, site: "FunctionSite", param: "ParameterSite", context: "AnnotationContext"
  ) -> Optional[InferredType]:
    """Infers the type of a function parameter."""
    return None

  def infer_return(self, site: "FunctionSite", context: "AnnotationContext") -> Optional[InferredType]:
    """Infers the return type of a function."""
    return None


_ORACLE_REGISTRY: Dict[str, Type[TypeOracle]] = {}


def register_oracle(name: str) -> Callable[[Type[TypeOracle]], Type[TypeOracle]]:
  def wrapper(cls):
    _ORACLE_REGISTRY[name] = cls
    return cls

  return wrapper


def available_oracles() -> List[str]:
  """
  Returns the keys of all registered oracles (e.g. ``['placeholder', 'literal']``).
  """
  return list(_ORACLE_REGISTRY.keys())


def get_oracle(name: str, config: Optional["RuntimeConfig"] = None) -> Optional[TypeOracle]:
  """
  Instantiates a registered oracle.

  Args:
      name: Registry key.
      config: Settings handed to the oracle factory (defaults when None).

  Returns:
      Optional[TypeOracle]: The oracle, or None for unknown keys.
  """
  cls = _ORACLE_REGISTRY.get(name)
  if cls is None:
    return None
  if config is None:
    from anyhint.config import RuntimeConfig

    config = RuntimeConfig()
  return cls.from_config(config)


@register_oracle("placeholder")
class PlaceholderOracle(TypeOracle):
  """
  Knows nothing: every slot receives the placeholder type.
  """

  name = "placeholder"

  def infer(self, node: cst.BaseExpression, context: "AnnotationContext") -> Optional[InferredType]:
    return None
