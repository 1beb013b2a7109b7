"""
Core Declaration Compiler.

Runtime-agnostic pieces: the :class:`~stubsynth.core.reflection.Reflector`
query interface, the compiler and its collaborators (naming, ancestry,
mixin probing, method synthesis) and the indentation-aware writer.
"""
