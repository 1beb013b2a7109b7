"""
Reflection Query Interface.

The declaration compiler never touches a runtime directly. It consumes the
read-only queries defined by :class:`Reflector`, implemented by thin adapters:

*   :class:`stubsynth.runtime.ghost.SnapshotReflector` answers from a universe
    snapshot (JSON document).
*   :class:`stubsynth.runtime.live.PythonReflector` answers from the loaded
    Python interpreter.

Entities returned by a reflector are opaque to the core. They are compared by
identity (``is``) only.

Classes:
    Parameter: One reflected method parameter.
    Signature: An attached static-type annotation.
    MethodInfo: A reflected method.
    Property: A declared structured-record field.
    Reflector: Abstract query interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from stubsynth.core.errors import ProbeError
from stubsynth.enums import ParameterKind, SignatureMode, TypeModifier, Visibility

VOID = "<VOID>"
NOT_TYPED = "<NOT-TYPED>"

POSITIONAL_KINDS = (ParameterKind.REQ, ParameterKind.OPT)


@dataclass(frozen=True)
class Parameter:
  """
  A single reflected parameter.

  ``name`` is ``None`` when the runtime does not expose one.
  ``type`` is only populated for parameters that belong to a signature.
  """

  kind: ParameterKind
  name: Optional[str] = None
  type: Optional[str] = None


@dataclass(frozen=True)
class Signature:
  """
  Static-type annotation attached to a method.

  Attributes:
      parameters: Authoritative parameter list, in declaration order.
      return_type: Rendered return type, or the ``VOID`` / ``NOT_TYPED`` markers.
      mode: Override/abstract modifier.
  """

  parameters: Tuple[Parameter, ...] = ()
  return_type: str = NOT_TYPED
  mode: SignatureMode = SignatureMode.STANDARD

  @property
  def positional_arity(self) -> int:
    """Number of required and optional positional parameters."""
    return sum(1 for p in self.parameters if p.kind in POSITIONAL_KINDS)


@dataclass(frozen=True, eq=False)
class MethodInfo:
  """
  A method as seen through reflection.

  Attributes:
      name: Method name.
      owner: The entity that defines the method.
      parameters: Raw runtime parameters.
      signature: Attached static signature, if any.
      source_file: File the method was defined in, if known.
  """

  name: str
  owner: Any
  parameters: Tuple[Parameter, ...] = ()
  signature: Optional[Signature] = None
  source_file: Optional[str] = None


@dataclass(frozen=True)
class Property:
  """A field declared by a structured-record type."""

  name: str
  type: Optional[str] = None
  immutable: bool = False
  has_default: bool = False


class Reflector(ABC):
  """
  Abstract read-only view of an object universe.

  Subclasses adapt a concrete runtime. Lookups that can legitimately miss
  return ``None`` or empty collections; only malformed state raises.
  """

  initializer_name: str = "initialize"

  # --- Well-known entities ---

  @property
  @abstractmethod
  def root(self) -> Any:
    """The namespace top-level symbols are bound in."""

  @property
  @abstractmethod
  def root_type(self) -> Any:
    """The universal base class."""

  @property
  def root_namespaces(self) -> Tuple[Any, ...]:
    """Namespaces whose children are already globally reachable."""
    return (self.root,)

  @property
  def delegation_types(self) -> Tuple[Any, ...]:
    """Wrapper classes that are never printed as superclasses."""
    return ()

  @property
  @abstractmethod
  def module_class(self) -> Any:
    """The class every plain (composable) module is an instance of."""

  # --- Name lookup ---

  @abstractmethod
  def resolve(self, symbol: str, inherit: bool = False) -> Optional[Any]:
    """
    Resolves a ``::``-separated symbol from the root namespace.

    Args:
        symbol (str): The symbol, optionally prefixed with ``::``.
        inherit (bool): Whether to search constants inherited through ancestors.

    Returns:
        Optional[Any]: The bound entity, or None if nothing is bound.
    """

  def lookup_public(self, symbol: str) -> Optional[Any]:
    """Resolves a symbol as ordinary client code would, honouring privacy."""
    return self.resolve(symbol, inherit=True)

  @abstractmethod
  def raw_name_of(self, entity: Any) -> Optional[str]:
    """The name a type definition reports for itself, or None when anonymous."""

  def proxy_target_name(self, entity: Any) -> Optional[str]:
    """Name of the target when ``entity`` is a forwarding proxy."""
    return None

  def is_binding_name(self, symbol: str) -> bool:
    """Whether a symbol follows the constant naming convention."""
    return symbol.lower() != symbol

  # --- Structure ---

  @abstractmethod
  def is_type(self, value: Any) -> bool:
    """Whether ``value`` is a class or module."""

  @abstractmethod
  def is_class(self, value: Any) -> bool:
    """Whether ``value`` is a class."""

  @abstractmethod
  def class_of(self, value: Any) -> Any:
    """The class ``value`` is an instance of."""

  @abstractmethod
  def superclass_of(self, klass: Any) -> Optional[Any]:
    """The raw superclass link of a class."""

  @abstractmethod
  def singleton_of(self, entity: Any) -> Any:
    """The class-level (singleton) context of a type definition."""

  @abstractmethod
  def ancestors_of(self, entity: Any) -> List[Any]:
    """Method-resolution order of ``entity``, including itself."""

  @abstractmethod
  def constants_of(self, namespace: Any) -> List[str]:
    """
    Local names of constants declared directly in ``namespace``.

    Raises:
        TypeError: If ``namespace`` cannot hold constants.
    """

  # --- Members ---

  @abstractmethod
  def method_names(self, entity: Any, visibility: Visibility) -> List[str]:
    """Names of instance methods of ``entity`` with the given visibility."""

  @abstractmethod
  def instance_method(self, entity: Any, name: str) -> Optional[MethodInfo]:
    """The method ``name`` resolves to on instances of ``entity``."""

  def initializer_of(self, entity: Any) -> Optional[MethodInfo]:
    """The initializer instances of ``entity`` are constructed with."""
    return self.instance_method(entity, self.initializer_name)

  def type_modifier(self, entity: Any) -> Optional[TypeModifier]:
    """Abstract/final/sealed metadata of a type definition."""
    return None

  def properties_of(self, entity: Any) -> Optional[List[Property]]:
    """Declared fields, or None when ``entity`` is not a structured record."""
    return None

  def source_files_of(self, entity: Any) -> List[str]:
    """Files a type definition is known to be defined in."""
    return []

  def probe_inclusion(self, module: Any) -> List[Tuple[Any, List[Any]]]:
    """
    Simulates including ``module`` into a disposable probe type.

    Returns:
        List[Tuple[Any, List[Any]]]: One entry per module included during the
        simulation (nested inclusions first, ``module`` itself last) pairing it
        with the class-level ancestors that appeared while it was included.

    Raises:
        ProbeError: If the simulation cannot be performed.
    """
    raise ProbeError(f"{type(self).__name__} cannot simulate inclusion")

  def is_singleton(self, entity: Any) -> bool:
    """Whether ``entity`` is a class-level (singleton) context."""
    return False


def identity_index(items: List[Any], target: Any) -> Optional[int]:
  """Position of ``target`` in ``items`` compared by identity."""
  for idx, item in enumerate(items):
    if item is target:
      return idx
  return None


@dataclass
class IdentitySet:
  """A set of entities keyed by ``id()``; entities need not be hashable."""

  _ids: Dict[int, Any] = field(default_factory=dict)

  def add(self, entity: Any) -> None:
    self._ids[id(entity)] = entity

  def __contains__(self, entity: Any) -> bool:
    return id(entity) in self._ids

  def __len__(self) -> int:
    return len(self._ids)

  @classmethod
  def of(cls, entities: List[Any]) -> "IdentitySet":
    result = cls()
    for entity in entities:
      result.add(entity)
    return result
