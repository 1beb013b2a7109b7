"""
Pytest Configuration and Fixtures.

Includes:
- Syspath patching for local imports.
- Snapshot universe builders for compiling small object graphs.
- Console isolation so log capture does not leak between tests.
"""

import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

# Add src to path so we can import 'stubsynth' without installing it
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from stubsynth.core.compiler import DeclarationCompiler  # noqa: E402
from stubsynth.packages.registry import SnapshotPackage  # noqa: E402
from stubsynth.runtime.ghost import SnapshotReflector, UniverseSnapshot, load_snapshot  # noqa: E402
from stubsynth.utils.console import reset_console  # noqa: E402

PACKAGE_ROOT = "/gems/demo/lib"


@pytest.fixture(autouse=True)
def _isolate_console():
  """Restores the default console after tests that swap it."""
  yield
  reset_console()


def make_snapshot(
  entities: Optional[Dict[str, Any]] = None,
  symbols: Optional[List[str]] = None,
  bindings: Optional[Dict[str, Optional[str]]] = None,
  private_constants: Optional[List[str]] = None,
  baseline: Optional[List[str]] = None,
) -> UniverseSnapshot:
  """
  Builds a validated snapshot for the ``demo`` package.

  Symbols default to every entity key, so each test only lists what it needs.
  """
  entities = entities or {}
  return load_snapshot(
    {
      "package": {"name": "demo", "version": "1.2.3", "path": PACKAGE_ROOT},
      "symbols": list(entities) if symbols is None else symbols,
      "entities": entities,
      "bindings": bindings or {},
      "private_constants": private_constants or [],
      "baseline": baseline or [],
    }
  )


def make_compiler(snapshot: UniverseSnapshot) -> DeclarationCompiler:
  """A compiler over ``snapshot`` with the prelude as baseline."""
  reflector = SnapshotReflector(snapshot)
  return DeclarationCompiler(reflector, SnapshotPackage(snapshot.package), baseline=reflector.baseline_symbols())


@pytest.fixture
def compile_universe() -> Callable[..., str]:
  """
  Factory fixture: compiles a universe described inline.

  Usage::

      doc = compile_universe({"Foo": {"superclass": "Bar"}, "Bar": {}}, symbols=["Foo"])
  """

  def _compile(entities: Optional[Dict[str, Any]] = None, **kwargs: Any) -> str:
    snapshot = make_snapshot(entities, **kwargs)
    return make_compiler(snapshot).generate(snapshot.symbols)

  return _compile


@pytest.fixture
def reflector_for() -> Callable[..., SnapshotReflector]:
  """Factory fixture: a :class:`SnapshotReflector` over an inline universe."""

  def _build(entities: Optional[Dict[str, Any]] = None, **kwargs: Any) -> SnapshotReflector:
    return SnapshotReflector(make_snapshot(entities, **kwargs))

  return _build


@pytest.fixture
def compiler_for() -> Callable[..., DeclarationCompiler]:
  """Factory fixture: a :class:`DeclarationCompiler` over an inline universe."""

  def _build(entities: Optional[Dict[str, Any]] = None, **kwargs: Any) -> DeclarationCompiler:
    return make_compiler(make_snapshot(entities, **kwargs))

  return _build
