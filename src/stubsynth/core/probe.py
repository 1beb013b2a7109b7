"""
Dynamic Mixin Prober.

Some modules add class-level behaviour to whatever includes them, from inside
their inclusion hook, instead of declaring it statically. The prober asks the
reflector to include a module into a disposable probe type, observes what the
probe's class-level ancestry gained, and turns that into directives:

*   ``include(::Nested)`` for every module the hook included in turn.
*   ``mixes_in_class_methods(::Mod)`` naming the module the hook extended the
    includer with (or the nested ``ClassMethods`` of a concern).

A probe that cannot run degrades to no directives.
"""

import logging
from typing import Any, List, Optional

from stubsynth.core.names import NameResolver
from stubsynth.core.reflection import IdentitySet, Reflector
from stubsynth.core.writer import StubWriter

logger = logging.getLogger(__name__)

DEFAULT_CONCERN_MODULE = "ActiveSupport::Concern"
CLASS_METHODS_MODULE = "ClassMethods"


class MixinProber:
  """
  Detects class-level mixins injected when a module is included.

  Attributes:
      reflector (Reflector): Reflection query interface.
      names (NameResolver): Canonical naming helper.
      concern_module (str): Name of the module marking the concern convention.
  """

  def __init__(self, reflector: Reflector, names: NameResolver, concern_module: str = DEFAULT_CONCERN_MODULE):
    self.reflector = reflector
    self.names = names
    self.concern_module = concern_module

  def directive_lines(self, constant: Any, writer: StubWriter) -> List[str]:
    """
    Builds the dynamic include and ``mixes_in_class_methods`` directives.

    Classes never receive these directives. Any failure while probing yields an
    empty list.

    Args:
        constant (Any): A module.
        writer (StubWriter): Indentation state.

    Returns:
        List[str]: Include lines, then (after a blank line) the class-methods line.
    """
    if self.reflector.is_class(constant):
      return []

    try:
      return self._probe(constant, writer)
    except Exception as e:
      logger.debug(f"Mixin probe of {self.reflector.raw_name_of(constant)} failed: {e}")
      return []

  def _probe(self, constant: Any, writer: StubWriter) -> List[str]:
    effects = self.reflector.probe_inclusion(constant)

    own_extends: List[Any] = []
    nested: List[Any] = []
    nested_extends = IdentitySet()
    for mod, extends in effects:
      if mod is constant:
        own_extends = list(extends)
        continue
      nested.append(mod)
      for ext in extends:
        nested_extends.add(ext)

    dynamic_extends = [m for m in own_extends if m not in nested_extends]

    lines = []
    for mod in nested:
      name = self.names.name_of(mod)
      if not name or self.names.is_type_system_name(name) or not self.names.is_public(mod):
        continue
      lines.append(writer.line(f"include({self.names.qualified_name_of(mod)})"))

    mixed_in = self._class_methods_module(constant, dynamic_extends)
    if mixed_in is None:
      return lines

    qualified_name = self.names.qualified_name_of(mixed_in)
    if not qualified_name:
      return lines

    if lines:
      lines.append("")
    lines.append(writer.line(f"mixes_in_class_methods({qualified_name})"))
    return lines

  def _class_methods_module(self, constant: Any, dynamic_extends: List[Any]) -> Optional[Any]:
    """
    Picks the module that carries the injected class-level behaviour.

    A concern's nested ``ClassMethods`` module takes precedence over the probed
    extensions.
    """
    singleton_ancestors = self.reflector.ancestors_of(self.reflector.singleton_of(constant))
    concern_name = f"::{self.concern_module}"
    extends_as_concern = any(self.names.qualified_name_of(mod) == concern_name for mod in singleton_ancestors)

    class_methods = self.reflector.resolve(f"{self.names.name_of(constant)}::{CLASS_METHODS_MODULE}")
    if extends_as_concern and self.reflector.is_type(class_methods):
      return class_methods

    for mod in dynamic_extends:
      if mod is not constant and self.names.is_public(mod):
        return mod
    return None
