"""
Tests for MixinProber (dynamic include hooks).

Verifies:
1. Class-level extensions added by an inclusion hook become ``mixes_in_class_methods``.
2. Modules included by the hook become ``include`` lines, and their own
   extensions are not attributed to the outer module.
3. The concern convention prefers the nested ``ClassMethods`` module.
4. A failing probe degrades to no directives.
"""

from unittest.mock import MagicMock

from stubsynth.core.errors import ProbeError
from stubsynth.core.names import NameResolver
from stubsynth.core.probe import MixinProber
from stubsynth.core.writer import StubWriter


def test_hook_extension_is_mixed_in(compile_universe):
  entities = {
    "Plugin": {"kind": "module", "on_include": {"extends": ["Plugin::ClassMethods"]}},
    "Plugin::ClassMethods": {"kind": "module"},
  }
  doc = compile_universe(entities, symbols=["Plugin"])
  assert doc == (
    "module Plugin\n"
    "  mixes_in_class_methods(::Plugin::ClassMethods)\n"
    "end\n"
    "\n"
    "module Plugin::ClassMethods\n"
    "end\n"
  )


def test_nested_inclusion(compile_universe):
  entities = {
    "Outer": {"kind": "module", "on_include": {"includes": ["Inner"], "extends": ["OuterMethods"]}},
    "Inner": {"kind": "module", "on_include": {"extends": ["InnerMethods"]}},
    "OuterMethods": {"kind": "module"},
    "InnerMethods": {"kind": "module"},
  }
  doc = compile_universe(entities, symbols=["Outer"])
  assert doc == "module Outer\n  include(::Inner)\n\n  mixes_in_class_methods(::OuterMethods)\nend\n"


def test_concern_prefers_class_methods_module(compile_universe):
  entities = {
    "ActiveSupport": {"kind": "module"},
    "ActiveSupport::Concern": {"kind": "module"},
    "Other": {"kind": "module"},
    "Trackable": {"kind": "module", "extends": ["ActiveSupport::Concern"], "on_include": {"extends": ["Other"]}},
    "Trackable::ClassMethods": {"kind": "module"},
  }
  doc = compile_universe(entities, symbols=["Trackable"])
  assert doc == (
    "module Trackable\n"
    "  extend(::ActiveSupport::Concern)\n"
    "\n"
    "  mixes_in_class_methods(::Trackable::ClassMethods)\n"
    "end\n"
    "\n"
    "module Trackable::ClassMethods\n"
    "end\n"
  )


def test_failing_hook_yields_no_directives(compile_universe):
  entities = {"Boom": {"kind": "module", "on_include": {"fails": True, "extends": ["Boom"]}}}
  doc = compile_universe(entities, symbols=["Boom"])
  assert doc == "module Boom\nend\n"


def test_hook_cycle_yields_no_directives(compile_universe):
  entities = {
    "Ping": {"kind": "module", "on_include": {"includes": ["Pong"]}},
    "Pong": {"kind": "module", "on_include": {"includes": ["Ping"]}},
  }
  doc = compile_universe(entities, symbols=["Ping"])
  assert doc == "module Ping\nend\n"


def test_classes_are_never_probed(reflector_for):
  reflector = reflector_for({"Widget": {}})
  reflector.probe_inclusion = MagicMock()
  prober = MixinProber(reflector, NameResolver(reflector))

  assert prober.directive_lines(reflector.resolve("Widget"), StubWriter()) == []
  reflector.probe_inclusion.assert_not_called()


def test_probe_error_is_swallowed():
  reflector = MagicMock()
  reflector.is_class.return_value = False
  reflector.probe_inclusion.side_effect = ProbeError("not applicable")
  prober = MixinProber(reflector, NameResolver(reflector))

  assert prober.directive_lines(object(), StubWriter()) == []
