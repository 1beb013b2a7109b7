"""
Runtime Configuration Store.

Settings are read from the ``[tool.stubsynth]`` table of the nearest
``pyproject.toml`` and overridden by command line arguments.
"""

import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from stubsynth.core.compiler import IGNORED_ALIASES
from stubsynth.core.probe import DEFAULT_CONCERN_MODULE
from stubsynth.packages.registry import IGNORED_PACKAGES

DEFAULT_OUT_DIR = Path("sorbet/rbi/gems")


class RuntimeConfig(BaseModel):
  """
  Global configuration container for stub generation.
  """

  out_dir: Path = Field(DEFAULT_OUT_DIR, description="Directory stub files are written to.")
  ignored_packages: List[str] = Field(
    default_factory=lambda: list(IGNORED_PACKAGES), description="Distributions never generated for."
  )
  ignored_aliases: List[str] = Field(
    default_factory=lambda: list(IGNORED_ALIASES), description="Infrastructure names never emitted as aliases."
  )
  concern_module: str = Field(DEFAULT_CONCERN_MODULE, description="Module whose ClassMethods convention is honored.")
  eager_load_paths: List[Path] = Field(default_factory=list, description="Host directories seeded for symbols.")
  app_dir: Optional[Path] = Field(None, description="Host application root; its own packages are skipped.")
  exclude: List[str] = Field(default_factory=list, description="Packages skipped when generating for all.")
  verbose: bool = Field(False, description="Emit DEBUG traces for skipped symbols.")

  @field_validator("ignored_packages", "exclude")
  @classmethod
  def normalize_names(cls, v: List[str]) -> List[str]:
    """
    Strips whitespace and drops empty entries from package name lists.

    Args:
        v (List[str]): Raw names.

    Returns:
        List[str]: Cleaned names, order preserved.
    """
    return [name.strip() for name in v if name and name.strip()]

  @classmethod
  def load(
    cls,
    out_dir: Optional[Path] = None,
    exclude: Optional[List[str]] = None,
    verbose: Optional[bool] = None,
    search_path: Optional[Path] = None,
  ) -> "RuntimeConfig":
    """
    Loads configuration from pyproject.toml and overrides with CLI arguments.

    Relative paths in the TOML table are resolved against the directory the
    file was found in.

    Args:
        out_dir (Optional[Path]): Override for the output directory.
        exclude (Optional[List[str]]): Extra packages to skip.
        verbose (Optional[bool]): Override for DEBUG output.
        search_path (Optional[Path]): Directory to start searching for TOML config.

    Returns:
        RuntimeConfig: The fully resolved configuration object.
    """
    start_dir = search_path or Path.cwd()
    toml_config, toml_dir = _load_toml_settings(start_dir)

    def resolve(raw: Any) -> Path:
      path = Path(raw)
      if toml_dir and not path.is_absolute():
        return (toml_dir / path).resolve()
      return path

    settings: Dict[str, Any] = {}
    for key in ("ignored_packages", "ignored_aliases", "concern_module", "exclude", "verbose"):
      if key in toml_config:
        settings[key] = toml_config[key]
    if "out_dir" in toml_config:
      settings["out_dir"] = resolve(toml_config["out_dir"])
    if "app_dir" in toml_config:
      settings["app_dir"] = resolve(toml_config["app_dir"])
    settings["eager_load_paths"] = [resolve(p) for p in toml_config.get("eager_load_paths", [])]

    if out_dir is not None:
      settings["out_dir"] = out_dir
    if exclude:
      settings["exclude"] = [*settings.get("exclude", []), *exclude]
    if verbose is not None:
      settings["verbose"] = verbose

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

  for parent in [current, *current.parents]:
    toml_path = parent / "pyproject.toml"
    if toml_path.exists() and toml_path.is_file():
      try:
        with open(toml_path, "rb") as f:
          data = tomllib.load(f)
      except (OSError, tomllib.TOMLDecodeError):
        return {}, None

      tool_section = data.get("tool", {})
      return tool_section.get("stubsynth", {}), parent

  return {}, None
