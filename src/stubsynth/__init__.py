"""
stubsynth Package.

Generates static declaration stubs (RBI grammar) for a package by reflecting
over its loaded runtime state: classes and modules with their superclass and
mixins, methods with their parameter shapes and attached signatures, record
properties, and constants.

Usage
-----

Snapshot Universe
^^^^^^^^^^^^^^^^^

.. code-block:: python

    import stubsynth

    package, document = stubsynth.generate_from_snapshot("universe.json", stubsynth.RuntimeConfig())
    print(document)
    # class Foo < ::Bar
    # end

Direct Compiler Usage
^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    from stubsynth import DeclarationCompiler, SnapshotReflector, load_snapshot
    from stubsynth.packages import SnapshotPackage

    snapshot = load_snapshot("universe.json")
    compiler = DeclarationCompiler(SnapshotReflector(snapshot), SnapshotPackage(snapshot.package))
    print(compiler.generate(snapshot.symbols))
"""

from stubsynth.config import RuntimeConfig
from stubsynth.core.compiler import DeclarationCompiler
from stubsynth.core.errors import ProbeError, SnapshotError, StubGenerationError
from stubsynth.pipeline import generate_for_distribution, generate_from_snapshot, write_stub
from stubsynth.runtime.ghost import SnapshotReflector, UniverseSnapshot, load_snapshot
from stubsynth.runtime.live import PythonReflector

__version__ = "0.1.0"

__all__ = [
  "DeclarationCompiler",
  "ProbeError",
  "PythonReflector",
  "RuntimeConfig",
  "SnapshotError",
  "SnapshotReflector",
  "StubGenerationError",
  "UniverseSnapshot",
  "__version__",
  "generate_for_distribution",
  "generate_from_snapshot",
  "load_snapshot",
  "write_stub",
]
