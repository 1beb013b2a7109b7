"""
Ancestor Resolver.

Reconstructs the two structural facts a declaration header and body need from
raw reflection data:

1.  **Superclass**: the first class up the raw superclass chain that client code
    can actually name, skipping private classes and self-referential links.
2.  **Mixins**: the ancestors unique to a type (those not already contributed by
    its superclass), split into compositions that precede the type in method
    resolution order and those that follow it, plus the class-level modules it
    was extended with.
"""

import logging
from typing import Any, List, Optional, Tuple

from stubsynth.core.names import NameResolver
from stubsynth.core.reflection import IdentitySet, Reflector, identity_index
from stubsynth.core.writer import StubWriter

logger = logging.getLogger(__name__)


class AncestorResolver:
  """
  Superclass and mixin directive builder.

  Attributes:
      reflector (Reflector): Reflection query interface.
      names (NameResolver): Canonical naming helper.
  """

  def __init__(self, reflector: Reflector, names: NameResolver):
    self.reflector = reflector
    self.names = names

  def superclass_of(self, klass: Any) -> Optional[Any]:
    """
    Walks the raw superclass chain and returns the first acceptable superclass.

    A candidate is skipped when it is not publicly reachable, or when its name
    re-resolves to something named like the class it was reached from (which
    happens when a constant is reassigned to a subclass of its old value). The
    walk stops at the first entity seen twice.

    Args:
        klass (Any): The class whose superclass is wanted.

    Returns:
        Optional[Any]: The accepted superclass, or None when the chain is exhausted.
    """
    visited = IdentitySet.of([klass])
    constant = klass
    superclass = self.reflector.superclass_of(constant)

    while superclass is not None:
      if superclass in visited:
        logger.debug(f"Superclass chain of {self.reflector.raw_name_of(klass)} cycles; stopping walk.")
        return None
      visited.add(superclass)

      constant_name = self.names.name_of(constant)
      constant = superclass

      if self.names.is_public(superclass):
        resolved = self.reflector.resolve(self.names.name_of(superclass))
        if self.reflector.is_type(resolved) and self.names.name_of(resolved) != constant_name:
          return superclass

      superclass = self.reflector.superclass_of(constant)

    return None

  def superclass_clause(self, klass: Any) -> str:
    """
    Renders the `` < ::Superclass`` header suffix.

    Returns an empty string for the root type, delegation wrappers, anonymous
    or absent superclasses.
    """
    superclass = self.superclass_of(klass)
    if superclass is None:
      return ""
    if superclass is self.reflector.root_type:
      return ""
    if any(superclass is d for d in self.reflector.delegation_types):
      return ""

    name = self.names.name_of(superclass)
    if not name:
      return ""
    return f" < ::{name}"

  def inherited_ancestors_of(self, entity: Any) -> List[Any]:
    """
    Ancestors ``entity`` receives without composing anything itself.

    For named classes that is the ancestry of the accepted superclass; for
    class-level contexts the raw superclass; for modules the ancestry of the
    class every module is an instance of.
    """
    reflector = self.reflector
    if not reflector.is_class(entity):
      return reflector.ancestors_of(reflector.class_of(entity))

    if reflector.is_singleton(entity):
      parent = reflector.superclass_of(entity)
    else:
      parent = self.superclass_of(entity)
    return reflector.ancestors_of(parent if parent is not None else reflector.root_type)

  def interesting_ancestors_of(self, entity: Any) -> Tuple[List[Any], List[Any]]:
    """
    Splits the ancestors unique to ``entity`` around ``entity`` itself.

    Every composition that precedes ``entity`` in its ancestor list is kept,
    even when the same module also appears in the inherited chain; only the
    tail following ``entity`` is filtered against inherited ancestors.

    Returns:
        Tuple[List[Any], List[Any]]: (preceding, following) ancestors, in
        ancestor order.
    """
    ancestors = self.reflector.ancestors_of(entity)
    inherited = IdentitySet.of(self.inherited_ancestors_of(entity))

    position = identity_index(ancestors, entity)
    if position is None:
      return [m for m in ancestors if m not in inherited], []

    preceding = ancestors[:position]
    following = [m for m in ancestors[position + 1 :] if m not in inherited]
    return preceding, following

  def mixin_lines(self, constant: Any, writer: StubWriter) -> List[str]:
    """
    Builds ``include``/``extend`` directives for a type definition.

    Prepended and included modules are both rendered as ``include``. Extended
    modules are the plain modules unique to the class-level context.

    Args:
        constant (Any): The type definition.
        writer (StubWriter): Indentation state.

    Returns:
        List[str]: Directive lines, prepends first, then includes, then extends.
    """
    reflector = self.reflector
    singleton = reflector.singleton_of(constant)

    prepends, includes = self.interesting_ancestors_of(constant)
    singleton_before, singleton_after = self.interesting_ancestors_of(singleton)

    extends = [
      mod
      for mod in singleton_before + singleton_after
      if self.names.is_public(mod) and reflector.class_of(mod) is reflector.module_class and mod is not singleton
    ]

    lines = []
    for directive, mods in (("include", prepends), ("include", includes), ("extend", extends)):
      for mod in reversed(mods):
        name = self.names.name_of(mod)
        if not name or self.names.is_type_system_name(name):
          continue
        if not self.names.is_public(mod):
          continue
        lines.append(writer.line(f"{directive}({self.names.qualified_name_of(mod)})"))
    return lines
