"""
Output Assembler.

Provides :class:`StubWriter`, the indentation-scoped text builder used by every
compiler stage. Depth is only changed through :meth:`StubWriter.indented`, a
context manager, so it is restored on every exit path including early returns
and exceptions raised by a nested compilation step.
"""

from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

INDENT_WIDTH = 2


class StubWriter:
  """
  Indentation-aware line formatter.

  Attributes:
      depth (int): Current indentation depth in columns.
  """

  def __init__(self, depth: int = 0):
    self.depth = depth

  @contextmanager
  def indented(self, step: int = 1) -> Iterator[None]:
    """
    Increases the indentation for the duration of the ``with`` block.

    Args:
        step (int): Number of indentation levels to add.
    """
    self.depth += INDENT_WIDTH * step
    try:
      yield
    finally:
      self.depth -= INDENT_WIDTH * step

  def line(self, text: str) -> str:
    """
    Prefixes a line with the current indentation.

    Args:
        text (str): The line content.

    Returns:
        str: The indented line.
    """
    return " " * self.depth + text


def join_blocks(blocks: Iterable[Optional[str]], separator: str = "\n\n") -> str:
  """
  Joins non-empty text blocks.

  ``None`` and whitespace-only blocks are dropped before joining.
  """
  return separator.join(b for b in blocks if b is not None and b.strip() != "")
