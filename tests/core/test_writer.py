"""
Tests for StubWriter indentation handling.
"""

import pytest

from stubsynth.core.writer import StubWriter, join_blocks


def test_indented_restores_depth():
  writer = StubWriter()
  with writer.indented():
    assert writer.line("x") == "  x"
    with writer.indented(2):
      assert writer.line("y") == "      y"
  assert writer.depth == 0
  assert writer.line("z") == "z"


def test_indented_restores_depth_on_error():
  writer = StubWriter(2)
  with pytest.raises(RuntimeError):
    with writer.indented():
      raise RuntimeError("nested compilation failed")
  assert writer.depth == 2


def test_zero_step_keeps_depth():
  writer = StubWriter(4)
  with writer.indented(0):
    assert writer.line("a") == "    a"


def test_join_blocks_drops_empty_sections():
  assert join_blocks(["a", None, "", "  ", "b"]) == "a\n\nb"
  assert join_blocks(["a", "b"], separator="\n") == "a\nb"
  assert join_blocks([None, ""]) == ""
