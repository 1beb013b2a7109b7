"""
Error types raised by the declaration pipeline.

Expected misses (unresolvable names, private types, filtered superclasses) are
not errors and never use these classes; they are plain ``None`` branches.
"""

from typing import Optional


class StubGenerationError(RuntimeError):
  """
  Raised when a package cannot be compiled at all.

  Attributes:
      package (str): Name of the package whose compilation aborted.
  """

  def __init__(self, package: str, reason: str, cause: Optional[BaseException] = None):
    self.package = package
    self.reason = reason
    self.__cause__ = cause
    super().__init__(f"Failed to generate stubs for '{package}': {reason}")


class ProbeError(RuntimeError):
  """Raised by a reflector when a simulated inclusion cannot be performed."""


class SnapshotError(ValueError):
  """Raised when a universe snapshot document is malformed."""
