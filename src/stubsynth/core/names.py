"""
Canonical naming helpers shared by the compiler stages.

A type definition only has a *canonical* name if the name it reports for itself
resolves back to the very same entity. Anything else (reassigned constants,
anonymous types, names that only exist in a private scope) is treated as unnamed.
"""

from typing import Any, Optional

from stubsynth.core.reflection import Reflector

TYPE_SYSTEM_PREFIX = "T::"
TYPE_SYSTEM_PRIVATE_PREFIX = "T::Private"


class NameResolver:
  """
  Computes canonical and qualified names through a :class:`Reflector`.
  """

  def __init__(self, reflector: Reflector):
    self.reflector = reflector

  def name_of(self, entity: Any) -> Optional[str]:
    """
    Returns the canonical name of a type definition.

    Forwarding proxies report the name of their target.

    Args:
        entity (Any): The type definition.

    Returns:
        Optional[str]: The name, or None if the entity is not reachable by it.
    """
    name = self.reflector.proxy_target_name(entity)
    if name:
      return name

    name = self.reflector.raw_name_of(entity)
    if name is None:
      return None

    if self.reflector.resolve(name, inherit=True) is not entity:
      return None
    return name

  def qualified_name_of(self, entity: Any) -> Optional[str]:
    """Canonical name prefixed with the root qualifier ``::``."""
    name = self.name_of(entity)
    if name is None:
      return None
    if name.startswith("::"):
      return name
    return f"::{name}"

  def is_public(self, entity: Any) -> bool:
    """
    Checks that a type definition is reachable by client code through its name.

    Types under the type system's private namespace are never public.
    """
    name = self.name_of(entity)
    if not name:
      return False
    if name.startswith(TYPE_SYSTEM_PRIVATE_PREFIX):
      return False

    return self.reflector.is_type(self.reflector.lookup_public(name))

  def is_type_system_name(self, name: Optional[str]) -> bool:
    """Whether ``name`` belongs to the type system's own namespace."""
    return name is not None and name.startswith(TYPE_SYSTEM_PREFIX)
