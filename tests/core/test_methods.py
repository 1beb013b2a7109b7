"""
Tests for the Method Signature Synthesizer.
"""

import re
from unittest.mock import MagicMock

import pytest
from hypothesis import given
from hypothesis import strategies as st

from stubsynth.core.methods import MethodSynthesizer, render_parameter, valid_method_name
from stubsynth.core.reflection import NOT_TYPED, VOID, Parameter, Signature
from stubsynth.enums import ParameterKind, SignatureMode


@pytest.fixture
def synthesizer():
  return MethodSynthesizer(MagicMock())


@pytest.mark.parametrize(
  "kind, expected",
  [
    (ParameterKind.REQ, "a"),
    (ParameterKind.OPT, "a = T.unsafe(nil)"),
    (ParameterKind.REST, "*a"),
    (ParameterKind.KEYREQ, "a:"),
    (ParameterKind.KEY, "a: T.unsafe(nil)"),
    (ParameterKind.KEYREST, "**a"),
    (ParameterKind.BLOCK, "&a"),
  ],
)
def test_parameter_fragments(kind, expected):
  assert render_parameter(kind, "a") == expected


@pytest.mark.parametrize("name", ["foo", "empty?", "save!", "name=", "==", "[]", "<=>", "`"])
def test_valid_method_names(name):
  assert valid_method_name(name)


@pytest.mark.parametrize("name", ["foo-bar", "with space", "", "a?b"])
def test_invalid_method_names(name):
  assert not valid_method_name(name)


def test_unnamed_parameters_get_positional_fallbacks(synthesizer):
  params = (Parameter(ParameterKind.REQ), Parameter(ParameterKind.REST))
  assert synthesizer.sanitize_parameters("call", params, None) == [
    (ParameterKind.REQ, "_arg0"),
    (ParameterKind.REST, "_arg1"),
  ]


def test_writer_parameter_takes_attribute_name(synthesizer):
  params = (Parameter(ParameterKind.REQ),)
  signature = Signature(parameters=params, return_type="Integer")
  assert synthesizer.sanitize_parameters("size=", params, signature) == [(ParameterKind.REQ, "size")]


def test_writer_without_signature_keeps_fallback(synthesizer):
  params = (Parameter(ParameterKind.REQ),)
  assert synthesizer.sanitize_parameters("size=", params, None) == [(ParameterKind.REQ, "_arg0")]


def test_invalid_characters_are_replaced(synthesizer):
  params = (Parameter(ParameterKind.REQ, "a-b"), Parameter(ParameterKind.KEY, "ok"))
  assert synthesizer.sanitize_parameters("call", params, None) == [
    (ParameterKind.REQ, "a_arg0b"),
    (ParameterKind.KEY, "ok"),
  ]


@given(st.lists(st.one_of(st.none(), st.text()), max_size=4))
def test_sanitized_names_are_identifiers(names):
  synthesizer = MethodSynthesizer(MagicMock())
  params = tuple(Parameter(ParameterKind.REQ, name) for name in names)
  for _, name in synthesizer.sanitize_parameters("call", params, None):
    assert re.fullmatch(r"[a-zA-Z0-9_]+", name)


def test_void_signature_with_mode(synthesizer):
  signature = Signature(
    parameters=(Parameter(ParameterKind.REQ, "x", "Integer"),),
    return_type=VOID,
    mode=SignatureMode.OVERRIDABLE,
  )
  rendered = synthesizer.compile_signature(signature, [(ParameterKind.REQ, "x")])
  assert rendered == "sig { overridable.params(x: Integer).void }"


@pytest.mark.parametrize(
  "mode, prefix",
  [
    (SignatureMode.STANDARD, ""),
    (SignatureMode.ABSTRACT, "abstract."),
    (SignatureMode.OVERRIDE, "override."),
    (SignatureMode.OVERRIDABLE, "overridable."),
    (SignatureMode.OVERRIDABLE_OVERRIDE, "overridable.override."),
  ],
)
def test_signature_modes(synthesizer, mode, prefix):
  signature = Signature(return_type="String", mode=mode)
  assert synthesizer.compile_signature(signature, []) == f"sig {{ {prefix}returns(String) }}"


def test_missing_types_are_untyped(synthesizer):
  signature = Signature(parameters=(Parameter(ParameterKind.REQ, "x"),), return_type=NOT_TYPED)
  rendered = synthesizer.compile_signature(signature, [(ParameterKind.REQ, "x")])
  assert rendered == "sig { params(x: T.untyped).returns(T.untyped) }"


def test_type_parameters_are_declared_once(synthesizer):
  generic = "T.type_parameter(:U)"
  signature = Signature(
    parameters=(Parameter(ParameterKind.REQ, "a", generic), Parameter(ParameterKind.REQ, "b", generic)),
    return_type=generic,
  )
  rendered = synthesizer.compile_signature(signature, [(ParameterKind.REQ, "a"), (ParameterKind.REQ, "b")])
  assert rendered == (
    "sig { type_parameters(:U).params(a: T.type_parameter(:U), b: T.type_parameter(:U))"
    ".returns(T.type_parameter(:U)) }"
  )


def test_attached_class_is_rewritten(synthesizer):
  signature = Signature(return_type="AttachedClass")
  assert synthesizer.compile_signature(signature, []) == "sig { returns(T.attached_class) }"


def test_visibility_groups(compile_universe):
  """
  Scenario: Public, protected and private methods, declared out of order.
  Expectation: Sorted within groups, public first, each other group introduced once.
  """
  entities = {
    "Foo": {
      "methods": [
        {"name": "b"},
        {"name": "secret", "visibility": "private"},
        {"name": "a"},
        {"name": "guarded", "visibility": "protected"},
        {"name": "hidden", "visibility": "private"},
      ]
    }
  }
  doc = compile_universe(entities)
  assert doc == (
    "class Foo\n"
    "  def a; end\n"
    "  def b; end\n"
    "\n"
    "  protected\n"
    "\n"
    "  def guarded; end\n"
    "\n"
    "  private\n"
    "\n"
    "  def hidden; end\n"
    "  def secret; end\n"
    "end\n"
  )
  assert doc.count("private") == 1


def test_signature_parameters_override_runtime_parameters(compile_universe):
  entities = {
    "Api": {
      "methods": [
        {
          "name": "fetch",
          "params": [{"kind": "rest", "name": "args"}],
          "sig": {
            "params": [{"kind": "req", "name": "id", "type": "Integer"}, {"kind": "key", "name": "cache"}],
            "returns": "String",
          },
        },
        {"name": "size=", "params": [{"kind": "req"}], "sig": {"params": [{"kind": "req"}], "returns": "Integer"}},
      ]
    }
  }
  doc = compile_universe(entities)
  assert doc == (
    "class Api\n"
    "  sig { params(id: Integer, cache: T.untyped).returns(String) }\n"
    "  def fetch(id, cache: T.unsafe(nil)); end\n"
    "  sig { params(size: T.untyped).returns(Integer) }\n"
    "  def size=(size); end\n"
    "end\n"
  )


def test_generated_and_unwritable_methods_are_skipped(compile_universe):
  entities = {
    "Rec": {
      "methods": [
        {"name": "__t_props_generated_x"},
        {"name": "weird-name"},
        {"name": "kept"},
      ]
    }
  }
  assert compile_universe(entities) == "class Rec\n  def kept; end\nend\n"


def test_inherited_methods_are_not_redeclared(compile_universe):
  entities = {
    "Base": {"methods": [{"name": "shared"}]},
    "Child": {"superclass": "Base", "methods": [{"name": "own"}]},
  }
  doc = compile_universe(entities, symbols=["Child"])
  assert doc == "class Child < ::Base\n  def own; end\nend\n"
