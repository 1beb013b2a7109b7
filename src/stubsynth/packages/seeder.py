"""
Namespace Seeder.

Produces the candidate symbols handed to the declaration compiler. Sources are
read statically with Griffe, so no code runs while seeding; the live
reflector decides later what each symbol actually resolves to.

Module ``pkg/sub/engine.py`` seeds ``pkg::sub::engine`` plus one symbol per
public class and constant-like (capitalized) attribute, at module and class
level (``pkg::sub::engine::Engine``, ``pkg::sub::engine::LIMIT``). Nested
classes are seeded too. Imported names (Griffe aliases) are skipped;
re-exports are found through the namespace walk.
"""

import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

import griffe

logger = logging.getLogger(__name__)

# Griffe reports every unresolvable construct; those are expected here.
logging.getLogger("griffe").setLevel(logging.CRITICAL)

PathLike = Union[str, Path]


def module_path(path: PathLike, root: PathLike) -> Optional[str]:
  """
  Maps a source file to its dotted module name.

  Args:
      path: The ``.py`` file.
      root: The directory imports are resolved from (site-packages, a source root).

  Returns:
      Optional[str]: ``pkg.sub.module`` (``pkg.sub`` for ``__init__.py``), or None
      when the file is outside ``root`` or not importable by name.
  """
  try:
    relative = Path(path).resolve().relative_to(Path(root).resolve())
  except ValueError:
    return None

  parts = list(relative.parts)
  if not parts or not parts[-1].endswith(".py"):
    return None
  parts[-1] = parts[-1][: -len(".py")]
  if parts[-1] == "__init__":
    parts.pop()
  if not parts or not all(p.isidentifier() for p in parts):
    return None
  return ".".join(parts)


def _walk(obj: griffe.Object, prefix: str) -> Iterator[str]:
  for name, member in obj.members.items():
    if name.startswith("_") or member.is_alias:
      continue
    if member.is_class:
      symbol = f"{prefix}::{name}"
      yield symbol
      yield from _walk(member, symbol)
    elif member.is_attribute and name[:1].isupper():
      yield f"{prefix}::{name}"


def symbols_in_file(path: PathLike, root: PathLike) -> List[str]:
  """
  Lists the symbols one source file declares.

  Files that cannot be read or parsed contribute nothing.
  """
  module = module_path(path, root)
  if module is None:
    return []

  try:
    code = Path(path).read_text(encoding="utf-8")
    tree = griffe.visit(module.split(".")[-1], filepath=Path(path), code=code)
  except Exception as e:
    logger.debug(f"Skipping unparsable source {path}: {e}")
    return []

  prefix = module.replace(".", "::")
  return [prefix] + list(_walk(tree, prefix))


class NamespaceSeeder:
  """
  Seeds candidate symbols from a package's sources.

  Attributes:
      package: Anything exposing ``import_roots()`` and ``source_files()``
          (see :class:`~stubsynth.packages.registry.DistributionPackage`).
  """

  def __init__(self, package):
    self.package = package

  def symbols(self) -> List[str]:
    """Returns the sorted, de-duplicated candidate symbols of the package."""
    roots = self.package.import_roots()
    found = set()
    for source in self.package.source_files():
      root = next((r for r in roots if module_path(source, r) is not None), None)
      if root is None:
        logger.debug(f"No import root for {source}")
        continue
      found.update(symbols_in_file(source, root))
    logger.debug(f"Seeded {len(found)} symbols from {self.package}.")
    return sorted(found)


def eager_load_symbols(paths: Iterable[PathLike]) -> List[str]:
  """
  Seeds symbols from host application directories.

  Each directory is treated as an import root. Missing or unreadable
  directories are skipped.

  Args:
      paths: Directories to scan recursively for ``.py`` files.

  Returns:
      List[str]: Sorted candidate symbols; empty when nothing could be read.
  """
  found = set()
  for directory in paths:
    try:
      sources = sorted(Path(directory).rglob("*.py"))
    except OSError as e:
      logger.debug(f"Cannot scan eager-load path {directory}: {e}")
      continue
    for source in sources:
      found.update(symbols_in_file(source, directory))
  return sorted(found)
