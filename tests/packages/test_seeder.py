"""
Tests for static symbol seeding.
"""

import textwrap
from types import SimpleNamespace

import pytest

from stubsynth.packages.seeder import NamespaceSeeder, eager_load_symbols, module_path, symbols_in_file

CORE_SOURCE = textwrap.dedent(
  """
  import os

  LIMIT = 3
  _hidden = 1
  registry = {}


  class Engine:
      KIND = "x"
      speed = 1

      class Part:
          pass

      def run(self):
          pass


  def helper():
      pass
  """
)


@pytest.fixture
def tree(tmp_path):
  pkg = tmp_path / "pkg"
  pkg.mkdir()
  (pkg / "__init__.py").write_text("from .core import Engine\nVERSION = '1'\n")
  (pkg / "core.py").write_text(CORE_SOURCE)
  (pkg / "broken.py").write_text("def (:\n")
  return tmp_path


@pytest.mark.parametrize(
  "relative, expected",
  [
    ("pkg/core.py", "pkg.core"),
    ("pkg/__init__.py", "pkg"),
    ("pkg/sub/mod.py", "pkg.sub.mod"),
    ("my-pkg/mod.py", None),
    ("pkg/data.txt", None),
  ],
)
def test_module_path(tmp_path, relative, expected):
  assert module_path(tmp_path / relative, tmp_path) == expected


def test_module_path_outside_root(tmp_path):
  assert module_path("/elsewhere/mod.py", tmp_path) is None


def test_symbols_in_module(tree):
  symbols = symbols_in_file(tree / "pkg" / "core.py", tree)

  assert symbols[0] == "pkg::core"
  assert set(symbols) == {
    "pkg::core",
    "pkg::core::LIMIT",
    "pkg::core::Engine",
    "pkg::core::Engine::KIND",
    "pkg::core::Engine::Part",
  }


def test_imports_are_not_seeded(tree):
  assert symbols_in_file(tree / "pkg" / "__init__.py", tree) == ["pkg", "pkg::VERSION"]


def test_unparsable_source_is_skipped(tree):
  assert symbols_in_file(tree / "pkg" / "broken.py", tree) == []


def test_namespace_seeder(tree):
  package = SimpleNamespace(
    import_roots=lambda: [str(tree)],
    source_files=lambda: [str(tree / "pkg" / "__init__.py"), str(tree / "pkg" / "core.py")],
  )
  symbols = NamespaceSeeder(package).symbols()

  assert symbols == sorted(symbols)
  assert "pkg" in symbols
  assert "pkg::core::Engine::Part" in symbols
  assert "pkg::core::registry" not in symbols
  assert len(symbols) == len(set(symbols))


def test_namespace_seeder_uses_first_matching_root(tree, tmp_path):
  other = tmp_path / "elsewhere"
  other.mkdir()
  (other / "loose.py").write_text("Flag = True\n")
  package = SimpleNamespace(
    import_roots=lambda: [str(tree / "pkg"), str(tree)],
    source_files=lambda: [str(tree / "pkg" / "core.py"), str(other / "loose.py")],
  )

  symbols = NamespaceSeeder(package).symbols()

  assert "core::Engine" in symbols
  assert "elsewhere::loose::Flag" in symbols
  assert not any(s.startswith("pkg::") for s in symbols)


def test_eager_load_symbols(tree, tmp_path):
  symbols = eager_load_symbols([tree, tmp_path / "missing"])

  assert "pkg::VERSION" in symbols
  assert "pkg::core::Engine" in symbols
  assert eager_load_symbols([tmp_path / "missing"]) == []
