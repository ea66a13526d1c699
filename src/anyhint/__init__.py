"""
anyhint Package.

Inserts best-effort type annotations into Python source: variables
(assignment, ``for`` and ``with`` targets, ``self.x`` attributes), function
parameters and return types. Types come from a pluggable oracle; slots the
oracle knows nothing about receive ``Any``.

Usage
-----

Simple String Annotation
^^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    import anyhint
    print(anyhint.annotate("x = 1", oracle="literal"))
    # x: int = 1

Advanced Usage (Annotation Engine)
^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    from anyhint import AnnotationEngine, RuntimeConfig

    config = RuntimeConfig(target_version="2.7")
    engine = AnnotationEngine(config=config)
    res = engine.run("def f(a, b=1):\\n    return a\\n")

    if res.success:
        print(res.code)
        for spot in res.placeholders:
            print(spot.line, spot.column, spot.text)
"""

from typing import Optional

from anyhint.config import RuntimeConfig
from anyhint.core.engine import AnnotationEngine
from anyhint.core.result import AnnotationResult

__version__ = "0.1.0"


def annotate(
  code: str,
  target_version: str = "3.8",
  oracle: str = "placeholder",
  annotate_variables: bool = True,
  annotate_functions: bool = True,
  config: Optional[RuntimeConfig] = None,
) -> str:
  """
  Annotates a string of Python code.

  This is a high-level convenience wrapper around the `AnnotationEngine`. For
  file-based or batch processing, consider using `anyhint.cli` or using
  `AnnotationEngine` directly.

  Args:
      code (str): The source code to annotate.
      target_version (str): Python version the output must run on ("3.8", "2.7").
      oracle (str): Type oracle key ("placeholder", "literal", "table").
      annotate_variables (bool): Annotate assignment, for and with targets.
      annotate_functions (bool): Annotate parameters and return types.
      config (RuntimeConfig, optional): Full settings; overrides the other
          keyword arguments when given.

  Returns:
      str: The annotated source code.

  Raises:
      ValueError: If the annotation fails (e.g. syntax errors).
  """
  config = config or RuntimeConfig(
    target_version=target_version,
    oracle=oracle,
    annotate_variables=annotate_variables,
    annotate_functions=annotate_functions,
  )
  result = AnnotationEngine(config=config).run(code)

  if not result.success:
    error_msg = "\n".join(result.errors)
    raise ValueError(f"Annotation failed:\n{error_msg}")

  return result.code


def has_candidates(code: str, config: Optional[RuntimeConfig] = None) -> bool:
  """
  True if :func:`annotate` would change anything in ``code``.
  """
  return AnnotationEngine(config=config or RuntimeConfig()).has_candidates(code)


__all__ = [
  "AnnotationEngine",
  "AnnotationResult",
  "RuntimeConfig",
  "annotate",
  "has_candidates",
  "__version__",
]
