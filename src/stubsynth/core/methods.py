"""
Method Signature Synthesizer.

Turns reflected methods into stub definitions::

    sig { overridable.params(x: Integer).void }
    def foo(x); end

Only the name and parameter shape of a method are reproduced, never its body.
When a static signature is attached it is authoritative for the parameter list.
"""

import re
from typing import AbstractSet, Any, Callable, Dict, List, Optional, Tuple

from stubsynth.core.reflection import NOT_TYPED, VOID, MethodInfo, Parameter, Reflector, Signature
from stubsynth.core.writer import StubWriter
from stubsynth.enums import ParameterKind, SignatureMode, Visibility

GENERATED_ACCESSOR_PREFIX = "__t_props_generated_"

SPECIAL_METHOD_NAMES = frozenset(
  "! ~ +@ ** -@ * / % + - << >> & | ^ < <= => > >= == === != =~ !~ <=> [] []= `".split()
)

VALID_METHOD_NAME = re.compile(r"^\w+[?!=]?$")
INVALID_PARAMETER_CHARS = re.compile(r"[^a-zA-Z0-9_]")
TYPE_PARAMETER_MATCHER = re.compile(r"T\.type_parameter\(:?(\w+)\)")
ATTACHED_CLASS = re.compile(r"\bAttachedClass\b")
WRITER_SUFFIX = re.compile(r"=$")

UNSPECIFIED_DEFAULT = "T.unsafe(nil)"
UNTYPED = "T.untyped"

_MODE_PREFIXES: Dict[SignatureMode, str] = {
  SignatureMode.ABSTRACT: ".abstract",
  SignatureMode.OVERRIDE: ".override",
  SignatureMode.OVERRIDABLE_OVERRIDE: ".overridable.override",
  SignatureMode.OVERRIDABLE: ".overridable",
}


def valid_method_name(name: str) -> bool:
  """Whether ``name`` can be written as a ``def`` in the stub grammar."""
  if name in SPECIAL_METHOD_NAMES:
    return True
  return VALID_METHOD_NAME.match(name) is not None


def render_parameter(kind: ParameterKind, name: str) -> str:
  """
  Renders one parameter in declaration syntax.

  Args:
      kind (ParameterKind): Parameter shape.
      name (str): Sanitized parameter name.

  Returns:
      str: The declaration fragment (e.g. ``*args`` or ``opt: T.unsafe(nil)``).
  """
  if kind == ParameterKind.REQ:
    return name
  if kind == ParameterKind.OPT:
    return f"{name} = {UNSPECIFIED_DEFAULT}"
  if kind == ParameterKind.REST:
    return f"*{name}"
  if kind == ParameterKind.KEYREQ:
    return f"{name}:"
  if kind == ParameterKind.KEY:
    return f"{name}: {UNSPECIFIED_DEFAULT}"
  if kind == ParameterKind.KEYREST:
    return f"**{name}"
  if kind == ParameterKind.BLOCK:
    return f"&{name}"
  raise ValueError(f"Unknown parameter kind: {kind}")


def type_of(rendered: str) -> str:
  """Rewrites runtime type names into their stub spelling."""
  return ATTACHED_CLASS.sub("T.attached_class", rendered)


class MethodSynthesizer:
  """
  Compiles the method section of a type definition body.

  Attributes:
      reflector (Reflector): Reflection query interface.
  """

  def __init__(self, reflector: Reflector):
    self.reflector = reflector

  # --- Single methods ---

  def sanitize_parameters(
    self, method_name: str, parameters: Tuple[Parameter, ...], signature: Optional[Signature]
  ) -> List[Tuple[ParameterKind, str]]:
    """
    Assigns every parameter a usable name.

    Unnamed parameters become ``_argN``. The single parameter of a writer method
    (``name=``) backed by a one-argument signature takes the property name.
    Names containing characters outside ``[a-zA-Z0-9_]`` have each offending
    character replaced by the fallback name.
    """
    sanitized = []
    for index, param in enumerate(parameters):
      fallback = f"_arg{index}"
      name = param.name

      if not name:
        writer_with_sig = (
          signature is not None
          and param.kind == ParameterKind.REQ
          and len(parameters) == 1
          and signature.positional_arity == 1
          and method_name.endswith("=")
        )
        name = method_name[:-1] if writer_with_sig else fallback

      name = INVALID_PARAMETER_CHARS.sub(fallback, name)
      sanitized.append((param.kind, name))
    return sanitized

  def compile_signature(self, signature: Signature, parameters: List[Tuple[ParameterKind, str]]) -> str:
    """
    Renders the ``sig { ... }`` directive for a method.

    Args:
        signature (Signature): The attached static signature.
        parameters (List[Tuple[ParameterKind, str]]): Sanitized parameters, aligned
            with ``signature.parameters``.

    Returns:
        str: The directive text (without indentation).
    """
    rendered = []
    for index, (_, name) in enumerate(parameters):
      param_type = None
      if index < len(signature.parameters):
        param_type = signature.parameters[index].type
      rendered.append(f"{name}: {type_of(param_type or NOT_TYPED)}")
    params = ", ".join(rendered)

    returns = type_of(signature.return_type)

    type_parameters: List[str] = []
    for match in TYPE_PARAMETER_MATCHER.findall(params + returns):
      if match not in type_parameters:
        type_parameters.append(match)

    body = _MODE_PREFIXES.get(signature.mode, "")
    if type_parameters:
      body += ".type_parameters({})".format(", ".join(f":{p}" for p in type_parameters))
    if params:
      body += f".params({params})"
    body += f".returns({returns})"

    body = body.replace(f".returns({VOID})", ".void")
    body = body.replace(NOT_TYPED, UNTYPED)
    body = TYPE_PARAMETER_MATCHER.sub(r"T.type_parameter(:\1)", body)
    return f"sig {{ {body[1:]} }}"

  def compile_method(
    self,
    constant: Any,
    method: Optional[MethodInfo],
    writer: StubWriter,
    excluded_names: AbstractSet[str] = frozenset(),
    owns_path: Optional[Callable[[str], bool]] = None,
  ) -> Optional[str]:
    """
    Compiles one method directly owned by ``constant``.

    Args:
        constant (Any): The entity whose body is being compiled.
        method (Optional[MethodInfo]): The reflected method.
        writer (StubWriter): Indentation state.
        excluded_names (AbstractSet[str]): Names already covered by property declarations.
        owns_path (Optional[Callable[[str], bool]]): When given, only methods whose
            source file satisfies it are emitted.

    Returns:
        Optional[str]: The signature line (if any) and stub line, or None.
    """
    if method is None:
      return None
    if method.owner is not constant:
      return None
    if owns_path is not None and not (method.source_file and owns_path(method.source_file)):
      return None

    signature = method.signature
    method_name = method.name
    if not valid_method_name(method_name):
      return None
    if WRITER_SUFFIX.sub("", method_name) in excluded_names:
      return None
    if method_name.startswith(GENERATED_ACCESSOR_PREFIX):
      return None

    parameters = signature.parameters if signature is not None else method.parameters
    sanitized = self.sanitize_parameters(method_name, parameters, signature)

    parameter_list = ", ".join(render_parameter(kind, name) for kind, name in sanitized)
    if parameter_list:
      parameter_list = f"({parameter_list})"

    lines = []
    if signature is not None:
      lines.append(writer.line(self.compile_signature(signature, sanitized)))
    lines.append(writer.line(f"def {method_name}{parameter_list}; end"))
    return "\n".join(lines)

  # --- Method sections ---

  def compile_directly_owned(
    self,
    entity: Any,
    writer: StubWriter,
    excluded_names: AbstractSet[str] = frozenset(),
    owns_path: Optional[Callable[[str], bool]] = None,
  ) -> str:
    """
    Compiles the methods ``entity`` defines itself, grouped by visibility.

    Class-level contexts are wrapped in a ``class << self`` block. Each non-public
    group is introduced by its visibility marker, surrounded by blank lines.
    """
    is_singleton = self.reflector.is_singleton(entity)

    with writer.indented(1 if is_singleton else 0):
      compiled: List[str] = []
      for visibility in Visibility:
        group = []
        for name in sorted(self.reflector.method_names(entity, visibility)):
          if name == self.reflector.initializer_name:
            continue
          method = self.reflector.instance_method(entity, name)
          stub = self.compile_method(entity, method, writer, excluded_names, owns_path)
          if stub is not None:
            group.append(stub)

        if group and visibility != Visibility.PUBLIC:
          group = ["", writer.line(visibility.value), ""] + group
        compiled.extend(group)

      methods = "\n".join(compiled)

    if methods.strip() == "":
      return ""
    if not is_singleton:
      return methods
    return "\n".join([writer.line("class << self"), methods, writer.line("end")])
