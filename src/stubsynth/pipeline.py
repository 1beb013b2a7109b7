"""
Stub Generation Pipeline.

Connects the collaborators around the declaration compiler:

1.  **Snapshot flow**: a universe snapshot supplies the package, the seed
    symbols and the baseline; a :class:`SnapshotReflector` answers reflection.
2.  **Distribution flow**: the distribution's top-level modules are imported,
    the :class:`NamespaceSeeder` lists candidates, a :class:`PythonReflector`
    answers reflection. Modules loaded before the import form the baseline.

Any unexpected failure is reported as :class:`StubGenerationError` naming the
package; expected misses never surface here.
"""

import importlib
import logging
import sys
from pathlib import Path
from typing import Set, Tuple, Union

from stubsynth.config import RuntimeConfig
from stubsynth.core.compiler import DeclarationCompiler
from stubsynth.core.errors import SnapshotError, StubGenerationError
from stubsynth.packages.registry import DistributionPackage, SnapshotPackage
from stubsynth.packages.seeder import NamespaceSeeder, eager_load_symbols
from stubsynth.runtime.ghost import SnapshotReflector, UniverseSnapshot, load_snapshot
from stubsynth.runtime.live import PythonReflector

logger = logging.getLogger(__name__)


def generate_from_snapshot(
  source: Union[UniverseSnapshot, Path, str], config: RuntimeConfig
) -> Tuple[SnapshotPackage, str]:
  """
  Compiles the stub document of a snapshot universe.

  Args:
      source: A loaded snapshot, or the path to a snapshot JSON file.
      config (RuntimeConfig): Active settings.

  Returns:
      Tuple[SnapshotPackage, str]: The package described by the snapshot and its document.

  Raises:
      SnapshotError: If the document is invalid.
      StubGenerationError: If compilation fails.
  """
  snapshot = source if isinstance(source, UniverseSnapshot) else load_snapshot(source)
  package = SnapshotPackage(snapshot.package)

  try:
    reflector = SnapshotReflector(snapshot)
    compiler = DeclarationCompiler(
      reflector,
      package,
      baseline=reflector.baseline_symbols(),
      ignored_aliases=config.ignored_aliases,
      concern_module=config.concern_module,
    )
    return package, compiler.generate(snapshot.symbols)
  except SnapshotError:
    raise
  except Exception as e:
    raise StubGenerationError(package.name, str(e), e) from e


def _loaded_symbols(exclude_roots: Set[str]) -> Set[str]:
  symbols = set()
  for name in list(sys.modules):
    if name.split(".")[0] in exclude_roots:
      continue
    symbols.add(name.replace(".", "::"))
  return symbols


def generate_for_distribution(package: DistributionPackage, config: RuntimeConfig) -> str:
  """
  Imports an installed distribution and compiles its stub document.

  Args:
      package (DistributionPackage): The distribution.
      config (RuntimeConfig): Active settings.

  Returns:
      str: The stub document.

  Raises:
      StubGenerationError: If the distribution cannot be imported or compiled.
  """
  modules = package.top_level_modules()
  baseline = _loaded_symbols(set(modules))

  for module in modules:
    try:
      importlib.import_module(module)
    except Exception as e:
      raise StubGenerationError(package.name, f"cannot import '{module}': {e}", e) from e

  try:
    symbols = set(NamespaceSeeder(package).symbols())
    symbols.update(eager_load_symbols(config.eager_load_paths))
    symbols.update(m.replace(".", "::") for m in modules)

    compiler = DeclarationCompiler(
      PythonReflector(),
      package,
      baseline=baseline,
      ignored_aliases=config.ignored_aliases,
      concern_module=config.concern_module,
    )
    return compiler.generate(symbols)
  except Exception as e:
    raise StubGenerationError(package.name, str(e), e) from e


def write_stub(package: Union[DistributionPackage, SnapshotPackage], content: str, out_dir: Path) -> Path:
  """
  Writes a stub document as ``<out_dir>/<name>@<version>.rbi``.

  Returns:
      Path: The written file.
  """
  out_dir.mkdir(parents=True, exist_ok=True)
  target = out_dir / package.stub_file_name
  target.write_text(content, encoding="utf-8")
  logger.debug(f"Wrote {target}")
  return target
