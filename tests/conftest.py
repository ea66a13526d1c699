"""
Pytest Configuration and Fixtures.

Includes:
- Syspath patching for local imports.
- Context factory for analysis and synthesis tests.
- Console capture for log assertions.
- Global registry isolation to prevent tests with custom oracles from leaking.
"""

import io
import sys
from pathlib import Path
from typing import Any, Callable

import pytest
from rich.console import Console

# Add src to path so we can import 'anyhint' without installing it
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from anyhint.config import RuntimeConfig  # noqa: E402
from anyhint.core.context import AnnotationContext  # noqa: E402
from anyhint.inference.oracle import _ORACLE_REGISTRY, get_oracle  # noqa: E402
from anyhint.utils.console import reset_console, set_console  # noqa: E402


@pytest.fixture
def make_context() -> Callable[..., AnnotationContext]:
  """
  Factory building an `AnnotationContext` for a code snippet.

  Keyword arguments are `RuntimeConfig` fields; ``oracle`` selects a
  registered oracle by name.
  """

  def _make(code: str, **settings: Any) -> AnnotationContext:
    config = RuntimeConfig(**settings)
    return AnnotationContext.for_code(code, config=config, oracle=get_oracle(config.oracle, config))

  return _make


@pytest.fixture
def captured_console():
  """Routes all console and logging output into a recording console."""
  recorder = Console(file=io.StringIO(), record=True, width=200, force_terminal=False)
  set_console(recorder)
  yield recorder
  reset_console()


@pytest.fixture(autouse=True)
def isolate_oracle_registry():
  """
  Ensures that oracles registered by a test do not leak between tests.
  """
  original_registry = _ORACLE_REGISTRY.copy()
  yield
  _ORACLE_REGISTRY.clear()
  _ORACLE_REGISTRY.update(original_registry)
