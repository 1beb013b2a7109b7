"""
Stub Generation Command Handlers.

Implements the ``generate`` (installed distributions, live reflection) and
``ghost`` (universe snapshot) commands.
"""

import sys
from pathlib import Path
from typing import List, Optional

from stubsynth.config import RuntimeConfig
from stubsynth.core.errors import SnapshotError, StubGenerationError
from stubsynth.packages.registry import DistributionPackage, PackageRegistry, normalize_name
from stubsynth.pipeline import generate_for_distribution, generate_from_snapshot, write_stub
from stubsynth.utils.console import log_error, log_info, log_success, log_warning, set_verbose


def _registry(config: RuntimeConfig) -> PackageRegistry:
  app_dir = str(config.app_dir) if config.app_dir else None
  return PackageRegistry(config.ignored_packages, app_dir=app_dir)


def handle_generate(
  package_names: List[str],
  all_packages: bool = False,
  out_dir: Optional[Path] = None,
  verbose: Optional[bool] = None,
) -> int:
  """
  Handles the 'generate' command.

  Imports each requested distribution, compiles its declarations and writes
  ``<out_dir>/<name>@<version>.rbi``. A failing package does not stop the others.

  Args:
      package_names (List[str]): Distributions to compile.
      all_packages (bool): Compile every eligible installed distribution instead.
      out_dir (Optional[Path]): Override for the output directory.
      verbose (Optional[bool]): Emit DEBUG traces.

  Returns:
      int: 0 if every package was written, 1 otherwise.
  """
  config = RuntimeConfig.load(out_dir=out_dir, verbose=verbose)
  set_verbose(config.verbose)
  registry = _registry(config)

  targets: List[DistributionPackage] = []
  if all_packages:
    excluded = {normalize_name(n) for n in config.exclude}
    targets = [p for p in registry.dependencies() if normalize_name(p.name) not in excluded]
  elif not package_names:
    log_error("Name at least one package, or pass --all.")
    return 1

  missing = 0
  for name in package_names:
    package = registry.package(name)
    if package is None:
      log_error(f"Package '{name}' is not installed.")
      missing += 1
      continue
    targets.append(package)

  if not targets:
    log_warning("No packages to generate stubs for.")
    return 1 if missing else 0

  failures = 0
  for package in targets:
    log_info(f"Compiling [code]{package.name}[/code]")
    try:
      content = generate_for_distribution(package, config)
    except StubGenerationError as e:
      log_error(str(e))
      failures += 1
      continue
    target = write_stub(package, content, config.out_dir)
    log_success(f"Wrote [path]{target}[/path]")

  return 1 if failures or missing else 0


def handle_ghost(
  snapshot_path: Path,
  out_dir: Optional[Path] = None,
  to_stdout: bool = False,
  verbose: Optional[bool] = None,
) -> int:
  """
  Handles the 'ghost' command.

  Compiles a universe snapshot without importing anything.

  Args:
      snapshot_path (Path): The snapshot JSON document.
      out_dir (Optional[Path]): Override for the output directory.
      to_stdout (bool): Print the document instead of writing a file.
      verbose (Optional[bool]): Emit DEBUG traces.

  Returns:
      int: Exit code.
  """
  config = RuntimeConfig.load(out_dir=out_dir, verbose=verbose)
  set_verbose(config.verbose)

  try:
    package, content = generate_from_snapshot(snapshot_path, config)
  except (SnapshotError, StubGenerationError) as e:
    log_error(str(e))
    return 1

  if to_stdout:
    sys.stdout.write(content)
    return 0

  target = write_stub(package, content, config.out_dir)
  log_success(f"Wrote [path]{target}[/path]")
  return 0
