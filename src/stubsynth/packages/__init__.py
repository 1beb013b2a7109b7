"""
Package Registry and Namespace Seeding.
"""

from stubsynth.packages.registry import DistributionPackage, PackageRegistry, SnapshotPackage
from stubsynth.packages.seeder import NamespaceSeeder, eager_load_symbols

__all__ = [
  "DistributionPackage",
  "NamespaceSeeder",
  "PackageRegistry",
  "SnapshotPackage",
  "eager_load_symbols",
]
