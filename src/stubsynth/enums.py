"""
Enumerations for stubsynth.

This module defines the closed vocabularies shared by the declaration compiler
and the reflection adapters: parameter kinds, method visibility, signature modes,
type modifiers and the classification of resolved values.
"""

from enum import Enum


class Visibility(str, Enum):
  """
  Method visibility groups, in emission order.
  """

  PUBLIC = "public"
  PROTECTED = "protected"
  PRIVATE = "private"


class ParameterKind(str, Enum):
  """
  Shape of a single method parameter.

  Values mirror the reflection vocabulary used by snapshot documents.
  """

  REQ = "req"  # required positional
  OPT = "opt"  # optional positional
  REST = "rest"  # *args
  KEYREQ = "keyreq"  # required keyword
  KEY = "key"  # optional keyword
  KEYREST = "keyrest"  # **kwargs
  BLOCK = "block"  # &blk


class SignatureMode(str, Enum):
  """
  Modifier attached to a static signature.
  """

  STANDARD = "standard"
  ABSTRACT = "abstract"
  OVERRIDE = "override"
  OVERRIDABLE = "overridable"
  OVERRIDABLE_OVERRIDE = "overridable_override"


class TypeModifier(str, Enum):
  """
  Mutually exclusive type-level helpers emitted at the top of a body.
  """

  ABSTRACT = "abstract"
  INTERFACE = "interface"
  FINAL = "final"
  SEALED = "sealed"


class EntityKind(str, Enum):
  """
  Kind of an entity described by a universe snapshot.
  """

  CLASS = "class"
  MODULE = "module"
  OBJECT = "object"


class ValueKind(str, Enum):
  """
  Classification of a symbol's resolved value.
  """

  ALIAS = "alias"
  TYPE_DEFINITION = "type_definition"
  PLAIN_VALUE = "plain_value"
  UNRESOLVED = "unresolved"
