"""
Tests for package metadata and path ownership.
"""

import importlib.metadata
import json
import os
from unittest.mock import MagicMock, patch

import pytest

from stubsynth.packages.registry import DistributionPackage, PackageRegistry, SnapshotPackage, normalize_name
from stubsynth.packages.seeder import NamespaceSeeder
from stubsynth.runtime.ghost import PackageSnapshot


def make_distribution(root, name="Demo_Pkg", version="1.0", files=(), texts=None):
  """A stand-in for ``importlib.metadata.Distribution`` rooted at ``root``."""
  texts = texts or {}
  dist = MagicMock()
  dist.metadata = {"Name": name}
  dist.version = version
  dist.files = list(files)
  dist.locate_file.side_effect = lambda f: root / str(f)
  dist.read_text.side_effect = lambda filename: texts.get(filename)
  return dist


@pytest.fixture
def site(tmp_path):
  root = tmp_path / "site-packages"
  (root / "stubsynth_site_demo").mkdir(parents=True)
  (root / "stubsynth_site_demo" / "__init__.py").write_text("")
  (root / "stubsynth_site_demo" / "core.py").write_text("")
  (root / "stubsynth_site_single.py").write_text("")
  return root


def test_snapshot_package_paths():
  package = SnapshotPackage(PackageSnapshot(name="demo", version="2.0", path="/gems/demo/lib", files=["/extra/./x.rb"]))

  assert package.contains_path("/gems/demo/lib/demo/a.rb")
  assert package.contains_path("/gems/demo/lib/../lib/demo.rb")
  assert package.contains_path("/extra/x.rb")
  assert not package.contains_path("/gems/demo/library.rb")
  assert not package.contains_path("/gems/other/lib/a.rb")
  assert package.stub_file_name == "demo@2.0.rbi"
  assert not package.ignore()


def test_snapshot_package_without_root():
  package = SnapshotPackage(PackageSnapshot(name="demo"))
  assert not package.contains_path("/anything.rb")


def test_version_carries_commit(site):
  direct_url = json.dumps({"url": "https://example.com/demo.git", "vcs_info": {"commit_id": "abcdef1234567890"}})
  package = DistributionPackage(make_distribution(site, texts={"direct_url.json": direct_url}))

  assert package.version == "1.0-abcdef12"
  assert package.stub_file_name == "Demo_Pkg@1.0-abcdef12.rbi"


def test_version_without_vcs_info(site):
  package = DistributionPackage(make_distribution(site, texts={"direct_url.json": "{}"}))
  assert package.version == "1.0"


def test_source_files_and_ownership(site):
  sources = ["stubsynth_site_demo/__init__.py", "stubsynth_site_demo/core.py", "stubsynth_site_single.py"]
  package = DistributionPackage(make_distribution(site, files=sources + ["demo-1.0.dist-info/METADATA"]))

  assert package.source_files() == sorted(str((site / f).resolve()) for f in sources)
  assert package.contains_path(str(site / "stubsynth_site_demo" / "core.py"))
  assert package.contains_path(str(site / "stubsynth_site_demo" / ".." / "stubsynth_site_demo" / "core.py"))
  assert not package.contains_path(str(site / "other.py"))


def test_top_level_modules_declared(site):
  package = DistributionPackage(make_distribution(site, texts={"top_level.txt": "stubsynth_site_demo\n\nstubsynth_site_single\n"}))
  assert package.top_level_modules() == ["stubsynth_site_demo", "stubsynth_site_single"]


def test_top_level_modules_derived(site):
  files = ["stubsynth_site_demo/__init__.py", "stubsynth_site_demo/core.py", "stubsynth_site_single.py"]
  package = DistributionPackage(make_distribution(site, files=files))
  assert package.top_level_modules() == ["stubsynth_site_demo", "stubsynth_site_single"]


def test_ignore_deny_list(site):
  package = DistributionPackage(make_distribution(site), ignored_packages=["demo-pkg"])
  assert package.ignore()


def test_ignore_application_sources(tmp_path):
  app = tmp_path / "app"
  (app / "lib").mkdir(parents=True)
  (app / ".venv" / "site-packages").mkdir(parents=True)

  local = DistributionPackage(make_distribution(app / "lib"))
  installed = DistributionPackage(make_distribution(app / ".venv" / "site-packages"))

  assert local.ignore(str(app))
  assert not installed.ignore(str(app))
  assert not local.ignore(None)


def test_registry_unknown_package():
  with patch("importlib.metadata.distribution", side_effect=importlib.metadata.PackageNotFoundError("nope")):
    assert PackageRegistry().package("nope") is None


def test_registry_dependencies(site):
  dists = [
    make_distribution(site, name="zeta"),
    make_distribution(site, name="Alpha"),
    make_distribution(site, name="alpha"),
    make_distribution(site, name="pip"),
    make_distribution(site, name=""),
  ]
  with patch("importlib.metadata.distributions", return_value=dists):
    packages = PackageRegistry().dependencies()

  assert [p.name for p in packages] == ["Alpha", "zeta"]


def test_normalize_name():
  assert normalize_name("Demo_Pkg") == "demo-pkg"
  assert normalize_name("zope.interface") == "zope-interface"
  assert normalize_name("demo-pkg") == normalize_name("DEMO.pkg")


def test_editable_install_is_located_through_imports(tmp_path, monkeypatch):
  site = tmp_path / "site-packages"
  site.mkdir()
  src = tmp_path / "checkout" / "src"
  module = src / "stubsynth_editable_demo"
  module.mkdir(parents=True)
  (module / "__init__.py").write_text("VERSION = '1'\n")
  (module / "core.py").write_text("class Engine:\n    pass\n")
  (tmp_path / "checkout" / "setup.py").write_text("")
  monkeypatch.syspath_prepend(str(src))

  files = ["__editable__.stubsynth_editable_demo-1.0.pth", "stubsynth_editable_demo/__init__.py"]
  dist = make_distribution(site, files=files, texts={"top_level.txt": "stubsynth_editable_demo\n"})
  package = DistributionPackage(dist)
  core = str(module / "core.py")

  assert package.module_locations() == [os.path.realpath(module)]
  assert package.contains_path(core)
  assert not package.contains_path(str(tmp_path / "checkout" / "setup.py"))
  assert os.path.realpath(core) in package.source_files()
  assert NamespaceSeeder(package).symbols() == [
    "stubsynth_editable_demo",
    "stubsynth_editable_demo::VERSION",
    "stubsynth_editable_demo::core",
    "stubsynth_editable_demo::core::Engine",
  ]
