"""
Runtime Configuration Store.

Settings come from the ``[tool.anyhint]`` table of the nearest
``pyproject.toml`` and are overridden by CLI arguments.
"""

import fnmatch
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from anyhint.inference import available_oracles

if sys.version_info >= (3, 11):
  import tomllib
else:
  import tomli as tomllib

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)$")


class RuntimeConfig(BaseModel):
  """
  Configuration container for one annotation run.
  """

  target_version: str = Field("3.8", description="Python version the annotated code must run on (X.Y).")
  annotate_variables: bool = Field(True, description="Annotate assignment, for and with targets.")
  annotate_functions: bool = Field(True, description="Annotate parameters and return types.")
  oracle: str = Field("placeholder", description="Type oracle key (placeholder, literal, table).")
  type_table: Optional[Path] = Field(None, description="JSON type table used by the 'table' oracle.")
  overwrite_annotations: bool = Field(False, description="Replace existing function annotations.")
  add_imports: bool = Field(True, description="Insert imports required by the annotations.")
  placeholder_type: str = Field("Any", description="Type used when the oracle knows nothing.")
  exclude: List[str] = Field(default_factory=list, description="Glob patterns of files to skip.")

  @field_validator("target_version")
  @classmethod
  def validate_version(cls, v: str) -> str:
    """
    Ensures the version is written as ``major.minor``.

    Raises:
        ValueError: On malformed versions.
    """
    v_clean = v.strip()
    if not _VERSION_RE.match(v_clean):
      raise ValueError(f"Invalid target version: '{v}'. Expected 'X.Y' (e.g. '3.8').")
    return v_clean

  @field_validator("oracle")
  @classmethod
  def validate_oracle(cls, v: str) -> str:
    """
    Ensures the oracle is registered.

    Returns:
        str: The normalized (lowercase) oracle key.
    """
    v_clean = v.lower().strip()
    known = available_oracles()
    if known and v_clean not in known:
      raise ValueError(f"Unknown oracle: '{v_clean}'. Supported oracles: {known}")
    return v_clean

  @property
  def version_tuple(self) -> Tuple[int, int]:
    major, minor = self.target_version.split(".")
    return int(major), int(minor)

  def is_excluded(self, path: Path) -> bool:
    """True if ``path`` matches one of the ``exclude`` globs."""
    posix = path.as_posix()
    return any(fnmatch.fnmatch(posix, pattern) or fnmatch.fnmatch(path.name, pattern) for pattern in self.exclude)

  @classmethod
  def load(
    cls,
    target_version: Optional[str] = None,
    annotate_variables: Optional[bool] = None,
    annotate_functions: Optional[bool] = None,
    oracle: Optional[str] = None,
    type_table: Optional[Path] = None,
    overwrite_annotations: Optional[bool] = None,
    add_imports: Optional[bool] = None,
    search_path: Optional[Path] = None,
  ) -> "RuntimeConfig":
    """
    Loads configuration from pyproject.toml and overrides with CLI arguments.

    Arguments left as None fall back to the TOML value, then to the default.

    Args:
        target_version: Override for the target Python version.
        annotate_variables: Override for variable annotation.
        annotate_functions: Override for function annotation.
        oracle: Override for the oracle key.
        type_table: Override for the type table path.
        overwrite_annotations: Override for overwriting.
        add_imports: Override for import injection.
        search_path: Directory to start searching for TOML config.

    Returns:
        RuntimeConfig: The fully resolved configuration object.
    """
    start_dir = search_path or Path.cwd()
    toml_config, toml_dir = _load_toml_settings(start_dir)

    def pick(name: str, value: Any) -> Dict[str, Any]:
      if value is not None:
        return {name: value}
      if name in toml_config:
        return {name: toml_config[name]}
      return {}

    settings: Dict[str, Any] = {}
    settings.update(pick("target_version", target_version))
    settings.update(pick("annotate_variables", annotate_variables))
    settings.update(pick("annotate_functions", annotate_functions))
    settings.update(pick("oracle", oracle))
    settings.update(pick("overwrite_annotations", overwrite_annotations))
    settings.update(pick("add_imports", add_imports))
    settings.update(pick("placeholder_type", None))
    settings.update(pick("exclude", None))

    # Relative table paths in the TOML file are relative to the file.
    if type_table is not None:
      settings["type_table"] = Path(type_table)
    elif "type_table" in toml_config:
      table = Path(toml_config["type_table"])
      settings["type_table"] = (toml_dir / table).resolve() if toml_dir and not table.is_absolute() else table

    return cls(**settings)


def _load_toml_settings(start_path: Path) -> Tuple[Dict[str, Any], Optional[Path]]:
  """
  Recursively searches parents for 'pyproject.toml' and extracts config.

  Args:
      start_path (Path): Directory to start search from.

  Returns:
      Tuple[Dict, Optional[Path]]: The config dict and the directory it was found in.
  """
  current = start_path.resolve()
  if current.is_file():
    current = current.parent

  for parent in [current, *current.parents]:
    toml_path = parent / "pyproject.toml"
    if toml_path.exists() and toml_path.is_file():
      try:
        with open(toml_path, "rb") as f:
          data = tomllib.load(f)
      except (OSError, tomllib.TOMLDecodeError):
        return {}, None

      tool_section = data.get("tool", {})
      return tool_section.get("anyhint", {}), parent

  return {}, None
