"""
Tests for DeclarationCompiler validation and classification.
"""

from types import SimpleNamespace

import pytest

from stubsynth.core.compiler import DeclarationCompiler
from stubsynth.enums import ValueKind


@pytest.fixture
def library():
  """A small universe: a module namespace, a class, a value and an alias."""
  return {
    "Lib": {"kind": "module"},
    "Lib::Client": {},
    "Lib::VERSION": {"kind": "object", "instance_of": "String"},
  }


def test_classify(compiler_for, library):
  compiler = compiler_for(library, bindings={"Lib::Api": "Lib::Client"})
  resolve = compiler.reflector.resolve

  assert compiler.classify("Lib::Client", resolve("Lib::Client")) == ValueKind.TYPE_DEFINITION
  assert compiler.classify("Lib::Api", resolve("Lib::Api")) == ValueKind.ALIAS
  assert compiler.classify("Lib::VERSION", resolve("Lib::VERSION")) == ValueKind.PLAIN_VALUE
  assert compiler.classify("Lib::Missing", None) == ValueKind.UNRESOLVED


def test_unresolvable_symbol_is_skipped(compiler_for, library):
  compiler = compiler_for(library, symbols=[])
  assert compiler.generate_from_symbol("Lib::Nope") is None


@pytest.mark.parametrize("name", ["", "   ", "#<Class:0x0001>", "lowercase"])
def test_invalid_names_are_rejected(compiler_for, library, name):
  compiler = compiler_for(library, symbols=[])
  client = compiler.reflector.resolve("Lib::Client")
  assert compiler.compile(name, client) is None


def test_symbol_not_declared_by_parent_is_rejected(compiler_for, library):
  """Constants reachable only by inheritance are not bindings of the parent."""
  entities = dict(library)
  entities["Lib::Sub"] = {"superclass": "Lib::Client"}
  entities["Lib::Client::LIMIT"] = {"kind": "object", "instance_of": "Integer"}
  compiler = compiler_for(entities, symbols=[])

  inherited = compiler.reflector.resolve("Lib::Client::LIMIT")
  assert compiler.compile("Lib::Sub::LIMIT", inherited) is None


def test_seen_symbols_are_compiled_once(compiler_for, library):
  compiler = compiler_for(library, symbols=[])
  client = compiler.reflector.resolve("Lib::Client")

  assert compiler.compile("Lib::Client", client) == "class Lib::Client\nend"
  assert compiler.compile("Lib::Client", client) is None


def test_alias_to_anonymous_type(compiler_for):
  compiler = compiler_for({"Anon": {"name": None}}, symbols=["Handle"], bindings={"Handle": "Anon"})
  assert compiler.generate(["Handle"]) == "Handle = Class.new\n"


def test_infrastructure_aliases_are_ignored(compiler_for, library):
  compiler = compiler_for(library, bindings={"Mutex": "Lib::Client"})
  assert compiler.generate(["Mutex"]) == "\n"


def test_ignored_aliases_are_configurable(compiler_for, library):
  compiler = compiler_for(library, bindings={"Legacy": "Lib::Client"})
  configured = DeclarationCompiler(
    compiler.reflector, compiler.package, baseline=compiler.baseline, ignored_aliases=["Legacy"]
  )
  assert configured.generate(["Legacy"]) == "\n"
  assert compiler.generate(["Legacy"]) == "Legacy = Lib::Client\n"


def test_plain_value_of_anonymous_class_is_untyped(compiler_for):
  entities = {
    "Anon": {"name": None},
    "Lib": {"kind": "module"},
    "Lib::DEFAULT": {"kind": "object", "instance_of": "Anon"},
  }
  compiler = compiler_for(entities, symbols=[])
  assert compiler.generate(["Lib::DEFAULT"]) == "Lib::DEFAULT = T.let(T.unsafe(nil), T.untyped)\n"


def test_plain_value_of_type_system_internals_is_skipped(compiler_for):
  entities = {
    "T::Types::Simple": {"superclass": "T::Types::Base"},
    "Lib": {"kind": "module"},
    "Lib::Shape": {"kind": "object", "instance_of": "T::Types::Simple"},
  }
  compiler = compiler_for(entities, symbols=[])
  assert compiler.generate(["Lib::Shape"]) == "\n"


def test_types_defined_outside_package_are_skipped(compiler_for):
  entities = {
    "Ours": {"files": ["/gems/demo/lib/demo/ours.rb"]},
    "Theirs": {"files": ["/gems/other/lib/theirs.rb"]},
  }
  compiler = compiler_for(entities)
  assert compiler.generate(["Ours", "Theirs"]) == "class Ours\nend\n"


def test_alias_namespace_recorded_even_when_alias_is_ignored(compiler_for, library):
  compiler = compiler_for(library, bindings={"Mutex": "Lib"})
  assert compiler.generate(["Mutex", "Mutex::Client"]) == "\n"


def test_custom_package_protocol(compiler_for, library):
  """Any object with ``name`` and ``contains_path`` can stand in for the package."""
  compiler = compiler_for(library, symbols=[])
  package = SimpleNamespace(name="custom", contains_path=lambda path: False)
  custom = DeclarationCompiler(compiler.reflector, package)
  assert custom.generate(["Lib::Client"]) == "class Lib::Client\nend\n"
