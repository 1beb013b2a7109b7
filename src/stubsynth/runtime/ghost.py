"""
Ghost Universe: Snapshot-backed Reflection.

This module lets the declaration compiler run against a *snapshot* of an object
universe instead of a live runtime ("Ghost Mode"). A snapshot is a JSON document
validated by the pydantic models below; it declares entities (classes, modules,
plain values), how they are composed (``includes``, ``prepends``, ``extends``),
their methods and signatures, and which names they are bound to.

The :class:`SnapshotReflector` derives everything else the way the runtime
would: ancestor linearization, class-level (singleton) chains, method lookup
through ancestors, constant lookup with and without inheritance, and the
inclusion-hook graph used by the mixin prober.

A bundled prelude (``snapshots/prelude.json``) provides the core hierarchy
(``BasicObject``, ``Object``, ``Module``, ``Class``, ``Kernel``, ``Integer``, ...)
so documents only need to describe the package itself.

Classes:
    ParamSnapshot, SignatureSnapshot, MethodSnapshot, PropSnapshot, IncludeHook,
    EntitySnapshot, PackageSnapshot, UniverseSnapshot: Document schema.
    SnapshotReflector: :class:`~stubsynth.core.reflection.Reflector` over a snapshot.
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from pydantic import BaseModel, Field, ValidationError

from stubsynth.core.errors import ProbeError, SnapshotError
from stubsynth.core.reflection import (
  NOT_TYPED,
  VOID,
  MethodInfo,
  Parameter,
  Property,
  Reflector,
  Signature,
  identity_index,
)
from stubsynth.enums import EntityKind, ParameterKind, SignatureMode, TypeModifier, Visibility

SNAPSHOT_DIR = Path(__file__).resolve().parent.parent / "snapshots"
PRELUDE_PATH = SNAPSHOT_DIR / "prelude.json"

CONSTANT_PATH = re.compile(r"^[A-Za-z_]\w*(::[A-Za-z_]\w*)*$")

ROOT_KEY = "Object"
BASIC_ROOT_KEY = "BasicObject"
MODULE_KEY = "Module"
CLASS_KEY = "Class"
DELEGATOR_KEY = "Delegator"


# --- Document Schema ---


class ParamSnapshot(BaseModel):
  """A method parameter; ``type`` is only read inside signatures."""

  kind: ParameterKind = ParameterKind.REQ
  name: Optional[str] = None
  type: Optional[str] = None


class SignatureSnapshot(BaseModel):
  """
  A static signature attached to a method.

  ``params`` replaces the method's own parameter list when given.
  """

  mode: SignatureMode = SignatureMode.STANDARD
  params: Optional[List[ParamSnapshot]] = None
  returns: Optional[str] = None
  void: bool = False


class MethodSnapshot(BaseModel):
  """A method defined directly by an entity."""

  name: str
  visibility: Visibility = Visibility.PUBLIC
  params: List[ParamSnapshot] = Field(default_factory=list)
  sig: Optional[SignatureSnapshot] = None
  file: Optional[str] = None


class PropSnapshot(BaseModel):
  """A structured-record field."""

  name: str
  type: Optional[str] = None
  immutable: bool = False
  default: bool = False


class IncludeHook(BaseModel):
  """
  What a module does to its includer when it is included.

  Attributes:
      extends: Modules the includer's class-level context is extended with.
      includes: Modules the includer additionally includes.
      fails: The hook raises when run against a probe.
  """

  extends: List[str] = Field(default_factory=list)
  includes: List[str] = Field(default_factory=list)
  fails: bool = False


class EntitySnapshot(BaseModel):
  """
  One entity of the universe.

  ``name`` defaults to the entity key; set it to null for anonymous types.
  ``superclass`` defaults to ``Object`` for classes; set it to null to end a chain.
  ``ancestors`` overrides the computed linearization when given.
  """

  kind: EntityKind = EntityKind.CLASS
  name: Optional[str] = None
  instance_of: Optional[str] = None
  superclass: Optional[str] = None
  includes: List[str] = Field(default_factory=list)
  prepends: List[str] = Field(default_factory=list)
  extends: List[str] = Field(default_factory=list)
  ancestors: Optional[List[str]] = None
  methods: List[MethodSnapshot] = Field(default_factory=list)
  singleton_methods: List[MethodSnapshot] = Field(default_factory=list)
  props: Optional[List[PropSnapshot]] = None
  modifier: Optional[TypeModifier] = None
  files: List[str] = Field(default_factory=list)
  proxy_for: Optional[str] = None
  on_include: Optional[IncludeHook] = None


class PackageSnapshot(BaseModel):
  """Metadata of the package a snapshot was captured for."""

  name: str
  version: str = "0.0.0"
  path: str = ""
  files: List[str] = Field(default_factory=list)


class UniverseSnapshot(BaseModel):
  """
  A complete snapshot document.

  Attributes:
      package: The package to generate stubs for.
      symbols: Candidate symbols (the seed set).
      baseline: Symbols that existed before the package was loaded.
      entities: Entities by key.
      bindings: Extra constant bindings (symbol to entity key); null unbinds.
      private_constants: Bindings hidden from public lookup.
  """

  package: PackageSnapshot
  symbols: List[str] = Field(default_factory=list)
  baseline: List[str] = Field(default_factory=list)
  entities: Dict[str, EntitySnapshot] = Field(default_factory=dict)
  bindings: Dict[str, Optional[str]] = Field(default_factory=dict)
  private_constants: List[str] = Field(default_factory=list)


def load_snapshot(source: Union[Path, str, Dict[str, Any]]) -> UniverseSnapshot:
  """
  Loads and validates a snapshot document.

  Args:
      source: A path to a JSON file, or an already-decoded dictionary.

  Returns:
      UniverseSnapshot: The validated document.

  Raises:
      SnapshotError: If the file cannot be read or does not match the schema.
  """
  try:
    if isinstance(source, dict):
      data = source
    else:
      data = json.loads(Path(source).read_text(encoding="utf-8"))
    return UniverseSnapshot.model_validate(data)
  except (OSError, json.JSONDecodeError, ValidationError) as e:
    raise SnapshotError(f"Invalid universe snapshot: {e}") from e


def load_prelude() -> Dict[str, EntitySnapshot]:
  """Loads the bundled core hierarchy."""
  data = json.loads(PRELUDE_PATH.read_text(encoding="utf-8"))
  return {key: EntitySnapshot.model_validate(value) for key, value in data["entities"].items()}


# --- Runtime Entities ---


@dataclass(eq=False)
class GhostEntity:
  """A materialized entity; compared by identity."""

  key: str
  spec: EntitySnapshot
  raw_name: Optional[str]
  constants: Dict[str, "GhostEntity"] = field(default_factory=dict)
  private: Set[str] = field(default_factory=set)

  def __repr__(self) -> str:
    return f"<GhostEntity {self.key}>"


@dataclass(eq=False)
class GhostSingleton:
  """The class-level context of a :class:`GhostEntity`."""

  attached: GhostEntity

  def __repr__(self) -> str:
    return f"<GhostSingleton {self.attached.key}>"


class SnapshotReflector(Reflector):
  """
  Reflection over a :class:`UniverseSnapshot`.

  Attributes:
      snapshot (UniverseSnapshot): The source document.
      prelude_keys (Set[str]): Keys contributed by the bundled prelude.
  """

  def __init__(self, snapshot: UniverseSnapshot, prelude: Optional[Dict[str, EntitySnapshot]] = None):
    self.snapshot = snapshot
    specs = dict(load_prelude() if prelude is None else prelude)
    self.prelude_keys = set(specs)
    specs.update(snapshot.entities)

    self._entities: Dict[str, GhostEntity] = {}
    for key, spec in specs.items():
      raw_name = spec.name if "name" in spec.model_fields_set else key
      self._entities[key] = GhostEntity(key=key, spec=spec, raw_name=raw_name)

    for required in (ROOT_KEY, BASIC_ROOT_KEY, MODULE_KEY, CLASS_KEY):
      if required not in self._entities:
        raise SnapshotError(f"Universe is missing the core entity '{required}'")

    self._singletons: Dict[str, GhostSingleton] = {}
    self._ancestors: Dict[int, List[Any]] = {}
    self._bind_constants()

  # --- Construction ---

  def _entity(self, key: Optional[str]) -> Optional[GhostEntity]:
    if key is None:
      return None
    try:
      return self._entities[key]
    except KeyError:
      raise SnapshotError(f"Reference to unknown entity '{key}'") from None

  def _bind_constants(self) -> None:
    defaults = sorted((k for k in self._entities if CONSTANT_PATH.match(k)), key=lambda k: (k.count("::"), k))
    for symbol in defaults:
      self._bind(symbol, self._entities[symbol])

    for symbol, key in sorted(self.snapshot.bindings.items(), key=lambda kv: (kv[0].count("::"), kv[0])):
      self._bind(symbol, self._entity(key))

    for symbol in self.snapshot.private_constants:
      parent, local = self._binding_site(symbol)
      parent.private.add(local)

  def _binding_site(self, symbol: str) -> Tuple[GhostEntity, str]:
    parts = symbol.lstrip(":").split("::")
    parent = self.root
    for part in parts[:-1]:
      child = parent.constants.get(part)
      if child is None:
        raise SnapshotError(f"Cannot bind '{symbol}': namespace '{part}' is not bound")
      parent = child
    return parent, parts[-1]

  def _bind(self, symbol: str, entity: Optional[GhostEntity]) -> None:
    parent, local = self._binding_site(symbol)
    if entity is None:
      parent.constants.pop(local, None)
    else:
      parent.constants[local] = entity

  # --- Well-known entities ---

  @property
  def root(self) -> GhostEntity:
    return self._entities[ROOT_KEY]

  @property
  def root_type(self) -> GhostEntity:
    return self._entities[ROOT_KEY]

  @property
  def root_namespaces(self) -> Tuple[Any, ...]:
    return (self._entities[ROOT_KEY], self._entities[BASIC_ROOT_KEY])

  @property
  def delegation_types(self) -> Tuple[Any, ...]:
    delegator = self._entities.get(DELEGATOR_KEY)
    return (delegator,) if delegator is not None else ()

  @property
  def module_class(self) -> GhostEntity:
    return self._entities[MODULE_KEY]

  def baseline_symbols(self) -> Set[str]:
    """Symbols that exist independently of the package."""
    return {k for k in self.prelude_keys if CONSTANT_PATH.match(k)} | set(self.snapshot.baseline)

  # --- Name lookup ---

  def _lookup(self, symbol: str, inherit: bool, public: bool) -> Optional[Any]:
    if not symbol:
      return None
    current: Any = self.root
    for part in symbol.lstrip(":").split("::"):
      if not isinstance(current, GhostEntity) or not self.is_type(current):
        return None
      scopes = self.ancestors_of(current) if inherit else [current]
      found = None
      for scope in scopes:
        if not isinstance(scope, GhostEntity):
          continue
        if part in scope.constants:
          if public and part in scope.private:
            return None
          found = scope.constants[part]
          break
      if found is None:
        return None
      current = found
    return current

  def resolve(self, symbol: str, inherit: bool = False) -> Optional[Any]:
    return self._lookup(symbol, inherit=inherit, public=False)

  def lookup_public(self, symbol: str) -> Optional[Any]:
    return self._lookup(symbol, inherit=True, public=True)

  def raw_name_of(self, entity: Any) -> Optional[str]:
    if isinstance(entity, GhostEntity):
      return entity.raw_name
    return None

  def proxy_target_name(self, entity: Any) -> Optional[str]:
    if isinstance(entity, GhostEntity) and entity.spec.proxy_for:
      return self._entity(entity.spec.proxy_for).raw_name
    return None

  # --- Structure ---

  def is_type(self, value: Any) -> bool:
    if isinstance(value, GhostSingleton):
      return True
    return isinstance(value, GhostEntity) and value.spec.kind != EntityKind.OBJECT

  def is_class(self, value: Any) -> bool:
    if isinstance(value, GhostSingleton):
      return True
    return isinstance(value, GhostEntity) and value.spec.kind == EntityKind.CLASS

  def is_singleton(self, entity: Any) -> bool:
    return isinstance(entity, GhostSingleton)

  def class_of(self, value: Any) -> Any:
    if isinstance(value, GhostSingleton):
      return self._entities[CLASS_KEY]
    if value.spec.instance_of:
      return self._entity(value.spec.instance_of)
    if value.spec.kind == EntityKind.CLASS:
      return self._entities[CLASS_KEY]
    if value.spec.kind == EntityKind.MODULE:
      return self._entities[MODULE_KEY]
    return self._entities[ROOT_KEY]

  def superclass_of(self, klass: Any) -> Optional[Any]:
    if isinstance(klass, GhostSingleton):
      attached = klass.attached
      if attached.spec.kind != EntityKind.CLASS:
        return self.class_of(attached)
      parent = self.superclass_of(attached)
      if parent is None:
        return self._entities[CLASS_KEY]
      return self.singleton_of(parent)

    if not isinstance(klass, GhostEntity) or klass.spec.kind != EntityKind.CLASS:
      return None
    if "superclass" in klass.spec.model_fields_set:
      return self._entity(klass.spec.superclass)
    if klass.key == BASIC_ROOT_KEY:
      return None
    return self._entities[ROOT_KEY]

  def singleton_of(self, entity: Any) -> GhostSingleton:
    singleton = self._singletons.get(entity.key)
    if singleton is None:
      singleton = GhostSingleton(attached=entity)
      self._singletons[entity.key] = singleton
    return singleton

  def ancestors_of(self, entity: Any) -> List[Any]:
    cached = self._ancestors.get(id(entity))
    if cached is None:
      cached = self._linearize(entity, frozenset())
      self._ancestors[id(entity)] = cached
    return list(cached)

  def _linearize(self, entity: Any, visiting: frozenset) -> List[Any]:
    if id(entity) in visiting:
      return []
    visiting = visiting | {id(entity)}

    if isinstance(entity, GhostSingleton):
      parent = self.superclass_of(entity)
      base = self._linearize(parent, visiting) if parent is not None else []
      extends = self._compose(entity.attached.spec.extends, base, visiting)
      return [entity] + extends + base

    if entity.spec.ancestors is not None:
      return [self._entity(key) for key in entity.spec.ancestors]

    base: List[Any] = []
    if entity.spec.kind == EntityKind.CLASS:
      parent = self.superclass_of(entity)
      if parent is not None:
        base = self._linearize(parent, visiting)

    prepends = self._compose(entity.spec.prepends, [], visiting)
    includes = self._compose(entity.spec.includes, base, visiting)
    return prepends + [entity] + includes + base

  def _compose(self, keys: List[str], skip: List[Any], visiting: frozenset) -> List[Any]:
    """Linearizes modules composed in call order; later compositions come first."""
    composed: List[Any] = []
    for key in keys:
      module = self._entity(key)
      fresh = [
        m
        for m in self._linearize(module, visiting)
        if identity_index(skip, m) is None and identity_index(composed, m) is None
      ]
      composed = fresh + composed
    return composed

  def constants_of(self, namespace: Any) -> List[str]:
    if isinstance(namespace, GhostSingleton):
      return []
    if not self.is_type(namespace):
      raise TypeError(f"{namespace!r} is not a namespace")
    return [name for name in namespace.constants if name not in namespace.private]

  # --- Members ---

  def _own_methods(self, entity: Any) -> List[MethodSnapshot]:
    if isinstance(entity, GhostSingleton):
      return entity.attached.spec.singleton_methods
    return entity.spec.methods

  def _lookup_method(self, entity: Any, name: str) -> Optional[Tuple[Any, MethodSnapshot]]:
    for ancestor in self.ancestors_of(entity):
      for method in self._own_methods(ancestor):
        if method.name == name:
          return ancestor, method
    return None

  def method_names(self, entity: Any, visibility: Visibility) -> List[str]:
    seen: Set[str] = set()
    names = []
    for ancestor in self.ancestors_of(entity):
      for method in self._own_methods(ancestor):
        if method.name in seen:
          continue
        seen.add(method.name)
        if method.visibility == visibility:
          names.append(method.name)
    return names

  def instance_method(self, entity: Any, name: str) -> Optional[MethodInfo]:
    found = self._lookup_method(entity, name)
    if found is None:
      return None
    owner, method = found

    return MethodInfo(
      name=method.name,
      owner=owner,
      parameters=tuple(_parameter(p) for p in method.params),
      signature=_signature(method),
      source_file=method.file,
    )

  def type_modifier(self, entity: Any) -> Optional[TypeModifier]:
    if isinstance(entity, GhostEntity):
      return entity.spec.modifier
    return None

  def properties_of(self, entity: Any) -> Optional[List[Property]]:
    if not isinstance(entity, GhostEntity) or entity.spec.props is None:
      return None
    return [
      Property(name=p.name, type=p.type, immutable=p.immutable, has_default=p.default) for p in entity.spec.props
    ]

  def source_files_of(self, entity: Any) -> List[str]:
    if isinstance(entity, GhostEntity):
      return list(entity.spec.files)
    return []

  # --- Probing ---

  def probe_inclusion(self, module: Any) -> List[Tuple[Any, List[Any]]]:
    """
    Replays inclusion hooks against an empty probe type.

    Nested inclusions are recorded before the module that triggered them.
    """
    if not isinstance(module, GhostEntity) or module.spec.kind != EntityKind.MODULE:
      raise ProbeError(f"{module!r} cannot be included")

    acquired: List[Any] = []
    effects: List[Tuple[Any, List[Any]]] = []

    def include(mod: GhostEntity, stack: Tuple[str, ...]) -> None:
      if mod.key in stack:
        raise ProbeError(f"Inclusion hook cycle through '{mod.key}'")
      hook = mod.spec.on_include
      before = list(acquired)

      if hook is not None:
        if hook.fails:
          raise ProbeError(f"Inclusion hook of '{mod.key}' raised")
        for key in hook.extends:
          extension = self._entity(key)
          fresh = [m for m in self.ancestors_of(extension) if identity_index(acquired, m) is None]
          acquired[:0] = fresh
        for key in hook.includes:
          include(self._entity(key), stack + (mod.key,))

      effects.append((mod, [m for m in acquired if identity_index(before, m) is None]))

    include(module, ())
    return effects


def _parameter(snapshot: ParamSnapshot) -> Parameter:
  return Parameter(kind=snapshot.kind, name=snapshot.name, type=snapshot.type)


def _signature(method: MethodSnapshot) -> Optional[Signature]:
  sig = method.sig
  if sig is None:
    return None

  params = sig.params if sig.params is not None else method.params
  if sig.void:
    return_type = VOID
  elif sig.returns is None:
    return_type = NOT_TYPED
  else:
    return_type = sig.returns

  return Signature(
    parameters=tuple(_parameter(p) for p in params),
    return_type=return_type,
    mode=sig.mode,
  )
