"""
Package Registry.

Answers which installed distributions stubs are generated for, and whether a
given source file belongs to one of them. Metadata is read through
``importlib.metadata``; VCS installs (``pip install git+...``) carry the
recorded commit in their version string. Editable installs are attributed
through the locations the import system resolves their modules to.
"""

import importlib.metadata
import importlib.util
import json
import logging
import os
import posixpath
from pathlib import Path
from typing import Iterable, List, Optional

from stubsynth.runtime.ghost import PackageSnapshot

logger = logging.getLogger(__name__)

IGNORED_PACKAGES = ("stubsynth", "pip", "setuptools", "wheel")
STUB_EXTENSION = "rbi"
SITE_PACKAGES_MARKERS = ("site-packages", "dist-packages")
COMMIT_HASH_LENGTH = 8


def normalize_name(name: str) -> str:
  """Canonical form of a distribution name (``Foo_Bar`` and ``foo-bar`` compare equal)."""
  return name.lower().replace("_", "-").replace(".", "-")


class DistributionPackage:
  """
  An installed distribution.

  Attributes:
      distribution (importlib.metadata.Distribution): The metadata handle.
      ignored_packages (frozenset): Normalized names never generated for.
  """

  def __init__(self, distribution: importlib.metadata.Distribution, ignored_packages: Iterable[str] = IGNORED_PACKAGES):
    self.distribution = distribution
    self.ignored_packages = frozenset(normalize_name(n) for n in ignored_packages)
    self._files: Optional[List[str]] = None
    self._file_set: Optional[frozenset] = None
    self._locations: Optional[List[str]] = None

  def __repr__(self) -> str:
    return f"<DistributionPackage {self.name}>"

  @property
  def name(self) -> str:
    return self.distribution.metadata["Name"]

  @property
  def root(self) -> Path:
    """The directory the distribution's files are installed relative to."""
    return Path(self.distribution.locate_file("")).resolve()

  @property
  def version(self) -> str:
    """The installed version, suffixed with the VCS commit for direct installs."""
    version = self.distribution.version
    commit = self._commit_id()
    if commit:
      return f"{version}-{commit[:COMMIT_HASH_LENGTH]}"
    return version

  def _commit_id(self) -> Optional[str]:
    raw = self.distribution.read_text("direct_url.json")
    if not raw:
      return None
    try:
      return json.loads(raw).get("vcs_info", {}).get("commit_id")
    except (ValueError, AttributeError) as e:
      logger.debug(f"Unreadable direct_url.json for {self.name}: {e}")
      return None

  @property
  def files(self) -> List[str]:
    """Resolved absolute paths of every file the distribution installed."""
    if self._files is None:
      self._files = [
        os.path.realpath(self.distribution.locate_file(f)) for f in (self.distribution.files or [])
      ]
    return self._files

  def _installed_sources(self) -> List[str]:
    root = str(self.root)
    return [f for f in self.files if f.endswith(".py") and f.startswith(root + os.sep)]

  def module_locations(self) -> List[str]:
    """
    Where the top-level modules are imported from.

    Package directories and single-module files, with links resolved. Editable
    installs list files that do not exist under the install root; the import
    system still knows where their sources live.
    """
    if self._locations is None:
      locations: List[str] = []
      for module in self.top_level_modules():
        try:
          spec = importlib.util.find_spec(module)
        except (ImportError, ValueError) as e:
          logger.debug(f"Cannot locate module '{module}' of {self.name}: {e}")
          continue
        if spec is None:
          continue
        if spec.submodule_search_locations:
          candidates = list(spec.submodule_search_locations)
        elif spec.has_location and spec.origin:
          candidates = [spec.origin]
        else:
          candidates = []
        for candidate in candidates:
          location = os.path.realpath(candidate)
          if location not in locations:
            locations.append(location)
      self._locations = locations
    return self._locations

  def import_roots(self) -> List[str]:
    """Directories module names are resolved from: module parents first, then the install root."""
    roots: List[str] = []
    for location in self.module_locations():
      parent = os.path.dirname(location)
      if parent not in roots:
        roots.append(parent)
    root = str(self.root)
    if root not in roots:
      roots.append(root)
    return roots

  def source_files(self) -> List[str]:
    """Python sources of the distribution, installed or reached through its modules."""
    sources = set(self._installed_sources())
    for location in self.module_locations():
      if os.path.isdir(location):
        sources.update(os.path.realpath(p) for p in Path(location).rglob("*.py"))
      elif location.endswith(".py"):
        sources.add(location)
    return sorted(sources)

  def top_level_modules(self) -> List[str]:
    """Importable top-level module names provided by the distribution."""
    declared = self.distribution.read_text("top_level.txt")
    if declared:
      return sorted({line.strip() for line in declared.splitlines() if line.strip()})

    modules = set()
    root = self.root
    for source in self._installed_sources():
      first = Path(source).relative_to(root).parts[0]
      if first.endswith(".py"):
        first = first[: -len(".py")]
      if first.isidentifier():
        modules.add(first)
    return sorted(modules)

  def contains_path(self, path: str) -> bool:
    """
    Whether ``path`` (after resolving links) belongs to the distribution.

    A path belongs to it when it is one of the installed files, or lies inside
    (or is) one of its module locations.
    """
    if self._file_set is None:
      self._file_set = frozenset(self.files)
    real = os.path.realpath(path)
    if real in self._file_set:
      return True
    return any(real == location or real.startswith(location + os.sep) for location in self.module_locations())

  def ignore(self, app_dir: Optional[str] = None) -> bool:
    """
    Whether stubs should not be generated for this distribution.

    Args:
        app_dir (Optional[str]): The host application directory. Distributions
            living inside it are the application itself, unless they are
            installed into a site-packages directory.

    Returns:
        bool: True for deny-listed names and in-application sources.
    """
    if normalize_name(self.name) in self.ignored_packages:
      return True
    if not app_dir:
      return False

    root = str(self.root)
    app_root = os.path.realpath(app_dir)
    inside_app = root == app_root or root.startswith(app_root + os.sep)
    return inside_app and not any(marker in root for marker in SITE_PACKAGES_MARKERS)

  @property
  def stub_file_name(self) -> str:
    return f"{self.name}@{self.version}.{STUB_EXTENSION}"


class SnapshotPackage:
  """
  A package described inside a universe snapshot.

  Paths are compared after POSIX normalization, since snapshot files need not
  exist on disk.
  """

  def __init__(self, snapshot: PackageSnapshot):
    self.name = snapshot.name
    self.version = snapshot.version
    self.path = snapshot.path
    self.files = [posixpath.normpath(f) for f in snapshot.files]

  def __repr__(self) -> str:
    return f"<SnapshotPackage {self.name}>"

  def contains_path(self, path: str) -> bool:
    normalized = posixpath.normpath(path)
    if normalized in self.files:
      return True
    if self.path:
      root = posixpath.normpath(self.path)
      return normalized.startswith(root + "/")
    return False

  def ignore(self, app_dir: Optional[str] = None) -> bool:
    return False

  @property
  def stub_file_name(self) -> str:
    return f"{self.name}@{self.version}.{STUB_EXTENSION}"


class PackageRegistry:
  """
  The set of installed distributions eligible for stub generation.

  Attributes:
      ignored_packages (List[str]): Deny-listed distribution names.
      app_dir (Optional[str]): The host application directory.
  """

  def __init__(self, ignored_packages: Iterable[str] = IGNORED_PACKAGES, app_dir: Optional[str] = None):
    self.ignored_packages = list(ignored_packages)
    self.app_dir = app_dir

  def _wrap(self, distribution: importlib.metadata.Distribution) -> DistributionPackage:
    return DistributionPackage(distribution, self.ignored_packages)

  def dependencies(self) -> List[DistributionPackage]:
    """
    Lists installed distributions that are not ignored.

    Returns:
        List[DistributionPackage]: Unique by name, sorted by stub file name.
    """
    packages = {}
    for distribution in importlib.metadata.distributions():
      metadata = distribution.metadata
      if not metadata or not metadata.get("Name"):
        continue
      package = self._wrap(distribution)
      key = normalize_name(package.name)
      if key in packages or package.ignore(self.app_dir):
        continue
      packages[key] = package
    return sorted(packages.values(), key=lambda p: p.stub_file_name)

  def package(self, name: str) -> Optional[DistributionPackage]:
    """Looks up a single installed distribution by name."""
    try:
      return self._wrap(importlib.metadata.distribution(name))
    except importlib.metadata.PackageNotFoundError:
      return None
