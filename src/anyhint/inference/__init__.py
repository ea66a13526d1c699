"""
Type Oracles.

Importing this package registers every built-in oracle:

- ``placeholder``: knows nothing, every slot receives ``Any``.
- ``literal``: shallow syntactic inference from literal values.
- ``table``: pre-computed types loaded from a Pyre-style JSON table.
"""

from anyhint.inference.oracle import (
  ANY,
  InferredType,
  PlaceholderOracle,
  TypeOracle,
  available_oracles,
  check_compatibility,
  get_oracle,
  register_oracle,
)
from anyhint.inference.literals import LiteralOracle
from anyhint.inference.table import TableOracle

__all__ = [
  "ANY",
  "InferredType",
  "LiteralOracle",
  "PlaceholderOracle",
  "TableOracle",
  "TypeOracle",
  "available_oracles",
  "check_compatibility",
  "get_oracle",
  "register_oracle",
]
