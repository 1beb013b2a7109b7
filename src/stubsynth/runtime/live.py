"""
Live Runtime Reflection for Python Packages.

This module provides :class:`PythonReflector`, which answers the declaration
compiler's queries from the loaded interpreter (``sys.modules``). Python's object
model is mapped onto the stub vocabulary as follows:

*   Modules are ``module`` definitions; classes are ``class`` definitions.
*   ``pkg.sub.Klass`` is addressed as the symbol ``pkg::sub::Klass``. Names are
    kept verbatim, so headers carry lowercase module segments
    (``class pkg::sub::Klass``). Such files are read as Python package
    descriptions; they are not meant to be loaded by a Ruby parser.
*   Module-level values that are neither submodules nor classes are constants
    only under an uppercase name; ``logger`` and ``counter`` are skipped.
*   The first base is the superclass; further bases surface as ``include``.
*   The class-level context of a class is its metaclass chain; its methods are
    the ``classmethod``/``staticmethod`` members. Module-level functions are the
    class-level methods of a module.
*   ``_name`` members are protected and name-mangled ``__name`` members private.
*   Properties become reader (``name``) and writer (``name=``) methods.
*   Dataclass fields become properties (``const`` when the dataclass is frozen).
*   Annotations become signatures: ``None`` returns are void, ``TypeVar`` becomes a
    type parameter, ``abc.abstractmethod`` and ``typing.override`` set the mode.

**Safety**: name resolution swallows every exception raised by attribute access
(lazy loaders and import hooks are common), since a failed lookup is a normal
miss for the compiler.
"""

import builtins
import dataclasses
import inspect
import logging
import sys
import types
import typing
from typing import Any, Dict, List, Mapping, Optional, Tuple

from stubsynth.core.reflection import NOT_TYPED, VOID, MethodInfo, Parameter, Property, Reflector, Signature
from stubsynth.enums import ParameterKind, SignatureMode, TypeModifier, Visibility

logger = logging.getLogger(__name__)

GENERATED_CODE_FILENAME = "<string>"
SYNTHESIZED_MEMBERS = frozenset({"__annotate__", "__annotate_func__"})
TYPING_MODULES = ("typing", "typing_extensions", "__future__")

_KIND_MAP = {
  inspect.Parameter.VAR_POSITIONAL: ParameterKind.REST,
  inspect.Parameter.VAR_KEYWORD: ParameterKind.KEYREST,
}

_CONTAINER_TYPES = {
  list: "T::Array",
  set: "T::Set",
  frozenset: "T::Set",
  dict: "T::Hash",
  type: "T.class_of",
}


class RootNamespace:
  """The namespace top-level packages and builtins are bound in."""

  def __repr__(self) -> str:
    return "<root>"


class ClassLevel:
  """
  The class-level context of a class or module.

  Attributes:
      attached (Any): The class or module this context belongs to.
  """

  def __init__(self, attached: Any):
    self.attached = attached

  def __repr__(self) -> str:
    return f"<ClassLevel {getattr(self.attached, '__name__', self.attached)!r}>"


class PythonReflector(Reflector):
  """
  Reflection over loaded Python modules.

  Attributes:
      modules (Mapping[str, types.ModuleType]): Loaded modules by dotted name.
  """

  initializer_name = "__init__"

  def __init__(self, modules: Optional[Mapping[str, types.ModuleType]] = None):
    self.modules = sys.modules if modules is None else modules
    self._root = RootNamespace()
    self._levels: Dict[int, Tuple[Any, ClassLevel]] = {}

  # --- Well-known entities ---

  @property
  def root(self) -> RootNamespace:
    return self._root

  @property
  def root_type(self) -> type:
    return object

  @property
  def root_namespaces(self) -> Tuple[Any, ...]:
    return (self._root, object)

  @property
  def module_class(self) -> type:
    return types.ModuleType

  # --- Name lookup ---

  def is_binding_name(self, symbol: str) -> bool:
    local = symbol.split("::")[-1]
    return local.isidentifier() and not local.startswith("_")

  def _top_level(self, name: str) -> Optional[Any]:
    if name in self.modules:
      return self.modules[name]
    return getattr(builtins, name, None)

  def _child(self, parent: Any, name: str, inherit: bool) -> Optional[Any]:
    try:
      if isinstance(parent, types.ModuleType):
        if name in vars(parent):
          return vars(parent)[name]
        return self.modules.get(f"{parent.__name__}.{name}")
      if isinstance(parent, type):
        if inherit:
          return getattr(parent, name, None)
        return vars(parent).get(name)
    except Exception as e:
      logger.debug(f"Lookup of {name!r} on {parent!r} failed: {e}")
    return None

  def _lookup(self, symbol: str, inherit: bool, public: bool) -> Optional[Any]:
    parts = symbol.lstrip(":").split("::")
    if not parts[0]:
      return None
    if public and any(p.startswith("_") and not p.startswith("__") for p in parts):
      return None

    current = self._top_level(parts[0])
    for part in parts[1:]:
      if current is None:
        return None
      current = self._child(current, part, inherit)
    return current

  def resolve(self, symbol: str, inherit: bool = False) -> Optional[Any]:
    return self._lookup(symbol, inherit=inherit, public=False)

  def lookup_public(self, symbol: str) -> Optional[Any]:
    return self._lookup(symbol, inherit=True, public=True)

  def raw_name_of(self, entity: Any) -> Optional[str]:
    if isinstance(entity, types.ModuleType):
      return entity.__name__.replace(".", "::")
    if isinstance(entity, type):
      module = getattr(entity, "__module__", None)
      qualname = getattr(entity, "__qualname__", entity.__name__)
      if module in (None, "builtins"):
        return qualname.replace(".", "::")
      return f"{module}.{qualname}".replace(".", "::")
    return None

  # --- Structure ---

  def is_type(self, value: Any) -> bool:
    return isinstance(value, (type, types.ModuleType, ClassLevel))

  def is_class(self, value: Any) -> bool:
    if isinstance(value, ClassLevel):
      return True
    return isinstance(value, type)

  def is_singleton(self, entity: Any) -> bool:
    return isinstance(entity, ClassLevel)

  def class_of(self, value: Any) -> Any:
    if isinstance(value, ClassLevel):
      return type(value.attached)
    return type(value)

  def superclass_of(self, klass: Any) -> Optional[Any]:
    if isinstance(klass, ClassLevel):
      attached = klass.attached
      if not isinstance(attached, type):
        return types.ModuleType
      if attached.__bases__:
        return self.singleton_of(attached.__bases__[0])
      return type(attached)
    if isinstance(klass, type) and klass.__bases__:
      return klass.__bases__[0]
    return None

  def singleton_of(self, entity: Any) -> ClassLevel:
    cached = self._levels.get(id(entity))
    if cached is None:
      cached = (entity, ClassLevel(entity))
      self._levels[id(entity)] = cached
    return cached[1]

  def ancestors_of(self, entity: Any) -> List[Any]:
    if isinstance(entity, ClassLevel):
      attached = entity.attached
      if isinstance(attached, type):
        return [self.singleton_of(c) for c in attached.__mro__] + list(type(attached).__mro__)
      return [entity, types.ModuleType, object]
    if isinstance(entity, type):
      return list(entity.__mro__)
    return [entity]

  def constants_of(self, namespace: Any) -> List[str]:
    if isinstance(namespace, RootNamespace):
      top_level = [name for name in self.modules if "." not in name and not name.startswith("_")]
      return top_level + [name for name in vars(builtins) if not name.startswith("_")]
    if isinstance(namespace, ClassLevel):
      return []
    if isinstance(namespace, types.ModuleType):
      return self._module_constants(namespace)
    if isinstance(namespace, type):
      return self._class_constants(namespace)
    raise TypeError(f"{namespace!r} is not a namespace")

  def _module_constants(self, module: types.ModuleType) -> List[str]:
    """
    Bindings of a module that are declared as constants.

    Submodules and classes keep their names; any other value is only a constant
    when its name starts with an uppercase letter (``logger`` or ``counter`` are
    plain module state).
    """
    members = vars(module)
    exported = getattr(module, "__all__", None)
    if isinstance(exported, (list, tuple)):
      return [
        name
        for name in exported
        if isinstance(name, str) and name in members and _is_constant_binding(name, members[name])
      ]

    names = []
    for name, value in members.items():
      if name.startswith("_"):
        continue
      if isinstance(value, types.ModuleType):
        if value.__name__ == f"{module.__name__}.{name}":
          names.append(name)
      elif isinstance(value, type):
        if value.__module__ == module.__name__:
          names.append(name)
      elif not _is_constant_binding(name, value):
        continue
      elif isinstance(value, typing.TypeVar) or type(value).__module__ not in TYPING_MODULES:
        names.append(name)
    return names

  def _class_constants(self, klass: type) -> List[str]:
    names = []
    for name, value in vars(klass).items():
      if name.startswith("_"):
        continue
      if isinstance(value, type):
        if value.__qualname__ == f"{klass.__qualname__}.{name}":
          names.append(name)
      elif name[0].isupper() and not _is_member_descriptor(value):
        names.append(name)
    return names

  # --- Members ---

  def _visibility(self, owner: Any, name: str) -> Visibility:
    if isinstance(owner, type) and name.startswith(f"_{owner.__name__.lstrip('_')}__"):
      return Visibility.PRIVATE
    if name.startswith("__") and name.endswith("__"):
      return Visibility.PUBLIC
    if name.startswith("_"):
      return Visibility.PROTECTED
    return Visibility.PUBLIC

  def _own_routines(self, entity: Any) -> Dict[str, Any]:
    """Methods ``entity`` defines itself, keyed by stub method name."""
    routines: Dict[str, Any] = {}

    if isinstance(entity, ClassLevel):
      attached = entity.attached
      for name, value in vars(attached).items():
        if name in SYNTHESIZED_MEMBERS:
          continue
        if isinstance(attached, type):
          if isinstance(value, (classmethod, staticmethod)):
            routines[name] = value
        elif inspect.isfunction(value) and value.__module__ == attached.__name__:
          routines[name] = value
      return routines

    if isinstance(entity, type):
      for name, value in vars(entity).items():
        if name in SYNTHESIZED_MEMBERS:
          continue
        if inspect.isfunction(value) and not _is_generated(value):
          routines[name] = value
        elif isinstance(value, property):
          routines[name] = value
          if value.fset is not None:
            routines[f"{name}="] = value
    return routines

  def method_names(self, entity: Any, visibility: Visibility) -> List[str]:
    owner = entity.attached if isinstance(entity, ClassLevel) else entity
    return [name for name in self._own_routines(entity) if self._visibility(owner, name) == visibility]

  def instance_method(self, entity: Any, name: str) -> Optional[MethodInfo]:
    if isinstance(entity, ClassLevel):
      value = self._own_routines(entity).get(name)
      if value is None:
        return None
      if isinstance(value, (classmethod, staticmethod)):
        return self._method_info(entity, name, value.__func__, bound=isinstance(value, classmethod))
      return self._method_info(entity, name, value, bound=False)

    if not isinstance(entity, type):
      return None
    for klass in entity.__mro__:
      value = self._own_routines(klass).get(name)
      if value is None:
        continue
      if isinstance(value, property):
        accessor = value.fset if name.endswith("=") else value.fget
        return self._method_info(klass, name, accessor, bound=True) if accessor else None
      return self._method_info(klass, name, value, bound=True)
    return None

  def _method_info(self, owner: Any, name: str, func: Any, bound: bool) -> MethodInfo:
    try:
      signature = inspect.signature(func)
    except (TypeError, ValueError):
      return MethodInfo(name=name, owner=owner, parameters=(), source_file=_source_file(func))

    raw = list(signature.parameters.values())
    if bound and raw:
      raw = raw[1:]

    hints = _type_hints(func)
    parameters = []
    typed = "return" in hints
    for param in raw:
      annotation = hints.get(param.name)
      typed = typed or annotation is not None
      parameters.append(
        Parameter(
          kind=_parameter_kind(param),
          name=param.name,
          type=render_annotation(annotation) if annotation is not None else None,
        )
      )

    attached = None
    if typed:
      if "return" not in hints:
        return_type = NOT_TYPED
      elif hints["return"] is None or hints["return"] is type(None):
        return_type = VOID
      else:
        return_type = render_annotation(hints["return"])
      attached = Signature(parameters=tuple(parameters), return_type=return_type, mode=_signature_mode(func))

    return MethodInfo(
      name=name,
      owner=owner,
      parameters=tuple(Parameter(kind=p.kind, name=p.name) for p in parameters),
      signature=attached,
      source_file=_source_file(func),
    )

  def type_modifier(self, entity: Any) -> Optional[TypeModifier]:
    if not isinstance(entity, type):
      return None
    if vars(entity).get("_is_protocol", False):
      return TypeModifier.INTERFACE
    if inspect.isabstract(entity):
      return TypeModifier.ABSTRACT
    if getattr(entity, "__final__", False) is True:
      return TypeModifier.FINAL
    return None

  def properties_of(self, entity: Any) -> Optional[List[Property]]:
    if not (isinstance(entity, type) and dataclasses.is_dataclass(entity)):
      return None

    frozen = entity.__dataclass_params__.frozen
    hints = _type_hints(entity)
    properties = []
    for f in dataclasses.fields(entity):
      annotation = hints.get(f.name, f.type)
      has_default = f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING
      properties.append(
        Property(name=f.name, type=render_annotation(annotation), immutable=frozen, has_default=has_default)
      )
    return properties

  def source_files_of(self, entity: Any) -> List[str]:
    if isinstance(entity, types.ModuleType):
      path = getattr(entity, "__file__", None)
      return [path] if path else []
    path = _source_file(entity)
    return [path] if path else []


def render_annotation(annotation: Any) -> str:
  """
  Spells a Python annotation in the stub type grammar.

  Args:
      annotation (Any): A runtime annotation object (or a string forward reference).

  Returns:
      str: The rendered type, e.g. ``T.nilable(String)`` or ``T::Array[int]``.
  """
  if isinstance(annotation, str):
    return annotation
  if annotation is typing.Any:
    return "T.untyped"
  if annotation is None or annotation is type(None):
    return "NilClass"
  if isinstance(annotation, typing.TypeVar):
    return f"T.type_parameter(:{annotation.__name__})"

  origin = typing.get_origin(annotation)
  args = typing.get_args(annotation)
  if origin is typing.Union or origin is types.UnionType:
    rest = [a for a in args if a is not type(None)]
    inner = render_annotation(rest[0]) if len(rest) == 1 else "T.any({})".format(", ".join(map(render_annotation, rest)))
    return f"T.nilable({inner})" if len(rest) < len(args) else inner
  if origin is tuple:
    return "[{}]".format(", ".join(render_annotation(a) for a in args if a is not Ellipsis))
  if origin in _CONTAINER_TYPES:
    if origin is type and args:
      return f"T.class_of({render_annotation(args[0])})"
    if args:
      return "{}[{}]".format(_CONTAINER_TYPES[origin], ", ".join(render_annotation(a) for a in args))
    return _CONTAINER_TYPES[origin]
  if origin is not None and args:
    return "{}[{}]".format(render_annotation(origin), ", ".join(render_annotation(a) for a in args))

  if isinstance(annotation, type):
    module = annotation.__module__
    qualname = annotation.__qualname__
    if module == "builtins":
      return qualname
    return f"{module}.{qualname}".replace(".", "::")
  return str(annotation).replace("typing.", "")


def _parameter_kind(param: inspect.Parameter) -> ParameterKind:
  if param.kind in _KIND_MAP:
    return _KIND_MAP[param.kind]
  has_default = param.default is not inspect.Parameter.empty
  if param.kind == inspect.Parameter.KEYWORD_ONLY:
    return ParameterKind.KEY if has_default else ParameterKind.KEYREQ
  return ParameterKind.OPT if has_default else ParameterKind.REQ


def _signature_mode(func: Any) -> SignatureMode:
  if getattr(func, "__isabstractmethod__", False):
    return SignatureMode.ABSTRACT
  if getattr(func, "__override__", False):
    return SignatureMode.OVERRIDE
  return SignatureMode.STANDARD


def _type_hints(obj: Any) -> Dict[str, Any]:
  try:
    return typing.get_type_hints(obj)
  except Exception:
    return dict(getattr(obj, "__annotations__", {}) or {})


def _source_file(obj: Any) -> Optional[str]:
  try:
    return inspect.getsourcefile(obj)
  except (TypeError, OSError):
    return None


def _is_generated(func: Any) -> bool:
  code = getattr(func, "__code__", None)
  return code is not None and code.co_filename == GENERATED_CODE_FILENAME


def _is_member_descriptor(value: Any) -> bool:
  return inspect.isroutine(value) or isinstance(value, (property, classmethod, staticmethod))


def _is_constant_binding(name: str, value: Any) -> bool:
  """Modules and classes are always bindable; other values need a constant-style name."""
  if isinstance(value, (types.ModuleType, type)):
    return True
  if inspect.isroutine(value):
    return False
  return name[:1].isupper()
