"""
Declaration Compiler.

Walks the namespace reachable from a set of candidate symbols and produces one
declaration block per accepted symbol::

    class Foo < ::Bar
      include(::Baz)

      def qux(a, b = T.unsafe(nil)); end
    end

    Foo::VERSION = T.let(T.unsafe(nil), String)

Each candidate is resolved, validated, classified (alias, type definition or
plain value) and compiled; nested constants of type definitions are compiled
recursively. A compiler instance owns its run state (seen symbols and alias
namespaces) and must not be shared between concurrent runs.
"""

import logging
from typing import AbstractSet, Any, Iterable, List, Optional, Protocol, Set

from stubsynth.core.ancestry import AncestorResolver
from stubsynth.core.methods import UNSPECIFIED_DEFAULT, UNTYPED, MethodSynthesizer
from stubsynth.core.names import NameResolver
from stubsynth.core.probe import DEFAULT_CONCERN_MODULE, MixinProber
from stubsynth.core.reflection import Reflector
from stubsynth.core.writer import StubWriter, join_blocks
from stubsynth.enums import ValueKind

logger = logging.getLogger(__name__)

IGNORED_ALIASES = ("YAML", "MiniTest", "Mutex")
IGNORED_VALUE_TYPE_PREFIXES = ("T::Types::", "T::Private::")
SYNTHETIC_NAME_PREFIX = "#<"


class PackageLike(Protocol):
  """The slice of the Package Registry the compiler consumes."""

  name: str

  def contains_path(self, path: str) -> bool: ...


class DeclarationCompiler:
  """
  Synthesizes the stub document for one package.

  Attributes:
      reflector (Reflector): Reflection query interface.
      package (PackageLike): The package being compiled.
      baseline (AbstractSet[str]): Symbols that existed before the package was
          loaded. They are only compiled for methods the package defines.
      ignored_aliases (AbstractSet[str]): Infrastructure names never emitted as aliases.
  """

  def __init__(
    self,
    reflector: Reflector,
    package: PackageLike,
    baseline: AbstractSet[str] = frozenset(),
    ignored_aliases: Iterable[str] = IGNORED_ALIASES,
    concern_module: str = DEFAULT_CONCERN_MODULE,
    indent: int = 0,
  ):
    self.reflector = reflector
    self.package = package
    self.baseline = frozenset(s.lstrip(":") for s in baseline)
    self.ignored_aliases = frozenset(ignored_aliases)

    self.names = NameResolver(reflector)
    self.ancestry = AncestorResolver(reflector, self.names)
    self.prober = MixinProber(reflector, self.names, concern_module)
    self.methods = MethodSynthesizer(reflector)
    self.writer = StubWriter(indent)

    self._seen: Set[str] = set()
    self._alias_namespaces: Set[str] = set()

  # --- Entry point ---

  def generate(self, symbols: Iterable[str]) -> str:
    """
    Compiles every candidate symbol into the final document.

    Args:
        symbols (Iterable[str]): Candidate symbols from the Namespace Seeder.

    Returns:
        str: Blank-line separated declaration blocks, sorted by symbol, with a
        trailing newline.
    """
    blocks = []
    for symbol in sorted(set(symbols)):
      block = self.generate_from_symbol(symbol)
      if block is not None:
        blocks.append(block)

    logger.debug(f"Compiled {len(blocks)} top-level declarations for {self.package.name}.")
    return "\n\n".join(blocks) + "\n"

  def generate_from_symbol(self, symbol: str) -> Optional[str]:
    """Resolves one candidate and compiles it; unresolvable names are skipped."""
    constant = self.reflector.resolve(symbol)
    if constant is None:
      return None
    return self.compile(symbol, constant)

  # --- Classification ---

  def classify(self, name: str, value: Any) -> ValueKind:
    """
    Decides how a resolved value is declared.

    Returns:
        ValueKind: ``ALIAS`` when a type definition is reached through a name
        other than its canonical one, ``TYPE_DEFINITION`` when the names match,
        ``PLAIN_VALUE`` otherwise.
    """
    if value is None:
      return ValueKind.UNRESOLVED
    if self.reflector.is_type(value):
      if self.names.name_of(value) != name:
        return ValueKind.ALIAS
      return ValueKind.TYPE_DEFINITION
    return ValueKind.PLAIN_VALUE

  def compile(self, name: Optional[str], constant: Any) -> Optional[str]:
    """
    Validates a symbol and compiles its declaration.

    Args:
        name (Optional[str]): The symbol.
        constant (Any): The value it resolved to.

    Returns:
        Optional[str]: The declaration block, or None if the symbol is skipped.
    """
    if constant is None or not name:
      return None
    if name.strip() == "":
      return None
    if name.startswith(SYNTHETIC_NAME_PREFIX):
      return None
    if not self.reflector.is_binding_name(name):
      return None
    if self._alias_namespaced(name):
      return None
    if name in self._seen:
      return None
    if not self._parent_declares_constant(name):
      return None

    self._seen.add(name)

    kind = self.classify(name, constant)
    if kind == ValueKind.ALIAS:
      return self.compile_alias(name, constant)
    if kind == ValueKind.TYPE_DEFINITION:
      return self.compile_type(name, constant)
    if kind == ValueKind.PLAIN_VALUE:
      return self.compile_object(name, constant)
    return None

  # --- Aliases and values ---

  def compile_alias(self, name: str, constant: Any) -> Optional[str]:
    """
    Declares ``name`` as another name for a type definition.

    The alias namespace is recorded even when nothing is emitted, so that no
    symbol below it is compiled independently.
    """
    self._alias_namespaces.add(f"{name}::")

    if self._symbol_ignored(name):
      return None
    if name in self.ignored_aliases:
      return None

    target = self.names.name_of(constant)
    if target is None:
      klass = self.reflector.class_of(constant)
      target = f"{self.names.name_of(klass) or self.reflector.raw_name_of(klass)}.new"

    return self.writer.line(f"{name} = {target}")

  def compile_object(self, name: str, value: Any) -> Optional[str]:
    """Declares a plain value with its class as type (or ``T.untyped``)."""
    if self._symbol_ignored(name):
      return None

    klass = self.reflector.class_of(value)
    klass_name = self.names.name_of(klass)
    if klass_name is not None and klass_name.startswith(IGNORED_VALUE_TYPE_PREFIXES):
      return None

    type_name = klass_name if klass_name and self.names.is_public(klass) else UNTYPED
    return self.writer.line(f"{name} = T.let({UNSPECIFIED_DEFAULT}, {type_name})")

  # --- Type definitions ---

  def compile_type(self, name: str, constant: Any) -> Optional[str]:
    """
    Declares a class or module, followed by its nested constants.

    Returns:
        Optional[str]: Header, body, ``end`` and nested declarations, or None
        when the type is private or not attributable to the package.
    """
    if not self.names.is_public(constant):
      return None
    if not self._defined_in_package(constant):
      return None

    if self.reflector.is_class(constant):
      header = self.writer.line(f"class {name}{self.ancestry.superclass_clause(constant)}")
    else:
      header = self.writer.line(f"module {name}")

    body = self.compile_body(name, constant)
    if self._symbol_ignored(name) and body is None:
      return None

    return join_blocks(
      [header, body, self.writer.line("end"), self.compile_subconstants(name, constant)],
      separator="\n",
    )

  def compile_body(self, name: str, constant: Any) -> Optional[str]:
    """Assembles modifier, mixin, property and method sections in order."""
    with self.writer.indented():
      methods = self.compile_methods(name, constant)
      if self._symbol_ignored(name) and methods is None:
        return None

      return join_blocks(
        [
          self.compile_type_modifier(constant),
          "\n".join(self.ancestry.mixin_lines(constant, self.writer)),
          "\n".join(self.prober.directive_lines(constant, self.writer)),
          self.compile_props(constant),
          methods,
        ]
      )

  def compile_type_modifier(self, constant: Any) -> str:
    """Renders ``abstract!``, ``interface!``, ``final!`` or ``sealed!``."""
    modifier = self.reflector.type_modifier(constant)
    if modifier is None:
      return ""
    return self.writer.line(f"{modifier.value}!")

  def compile_props(self, constant: Any) -> str:
    """Declares the fields of a structured-record type in declaration order."""
    properties = self.reflector.properties_of(constant)
    if not properties:
      return ""

    lines = []
    for prop in properties:
      method = "const" if prop.immutable else "prop"
      declaration = f"{method} :{prop.name}, {prop.type or UNTYPED}"
      if prop.has_default:
        declaration += f", default: {UNSPECIFIED_DEFAULT}"
      lines.append(self.writer.line(declaration))
    return "\n".join(lines)

  def compile_methods(self, name: str, constant: Any) -> Optional[str]:
    """
    Compiles the initializer, instance methods and class-level methods.

    Returns None for baseline symbols that gained no methods from the package.
    """
    ignored = self._symbol_ignored(name)
    owns_path = self.package.contains_path if ignored else None

    properties = self.reflector.properties_of(constant) or []
    excluded = frozenset(p.name for p in properties)

    initializer = self.methods.compile_method(
      constant, self.reflector.initializer_of(constant), self.writer, excluded, owns_path
    )
    instance_methods = self.methods.compile_directly_owned(constant, self.writer, excluded, owns_path)
    singleton_methods = self.methods.compile_directly_owned(
      self.reflector.singleton_of(constant), self.writer, frozenset(), owns_path
    )

    if ignored and not instance_methods and not singleton_methods:
      return None

    return join_blocks([initializer, instance_methods, singleton_methods])

  def compile_subconstants(self, name: str, constant: Any) -> str:
    """
    Compiles the constants nested in a type definition.

    Under the root namespaces, nested names are not re-qualified and nested
    type definitions are skipped (they are reachable on their own).
    """
    is_root = any(constant is r for r in self.reflector.root_namespaces)

    output: List[str] = []
    for constant_name in sorted(set(self.reflector.constants_of(constant))):
      symbol = constant_name if is_root else f"{name}::{constant_name}"
      subconstant = self.reflector.resolve(symbol)

      if subconstant is None:
        continue
      if is_root and self.reflector.is_type(subconstant):
        continue

      block = self.compile(symbol, subconstant)
      if block is not None:
        output.append(block)

    if not output:
      return ""
    return "\n" + "\n\n".join(output)

  # --- Run state and guards ---

  def _symbol_ignored(self, name: str) -> bool:
    return name.lstrip(":") in self.baseline

  def _alias_namespaced(self, name: str) -> bool:
    return any(name.startswith(namespace) for namespace in self._alias_namespaces)

  def _parent_declares_constant(self, name: str) -> bool:
    """
    Checks that the parent namespace really binds the symbol's local name.

    Reflection can report names that are not bindings of the parent (inherited
    lookups, for instance); those are rejected here.
    """
    parts = name.split("::")
    parent_name = "::".join(parts[:-1])
    if parent_name.startswith("::"):
      parent_name = parent_name[2:]

    if parent_name == "":
      parent = self.reflector.root
    else:
      parent = self.reflector.resolve(parent_name)
    if parent is None:
      return False

    return parts[-1] in self.reflector.constants_of(parent)

  def _defined_in_package(self, constant: Any) -> bool:
    """
    Checks that a type definition is attributable to the package.

    Types without any known source file are attributed to the package.
    """
    files = self.reflector.source_files_of(constant)
    if not files:
      return True
    return any(self.package.contains_path(f) for f in files)
