"""
Core module: the attribute-resolution and code-synthesis engine.

Stages, leaves first:

Attribute Model (attributes.py):
    - Attribute variants, one per recognized attribute
    - Placement rules: declaration kinds, repetition, combinations

Declaration Analyzer (analyzer.py):
    - TypeModel: coding mode, key strategy, inheritance directives
    - MemberModel: per-member paths, default, helper coder, ignore flags

Path Resolution Engine (paths.py):
    - PathTrie: arena of nested containers shared by member paths
    - DecodingFallback: how a missing value or container is tolerated

Case Synthesizer (cases.py):
    - CaseStrategy: tagged, untagged and raw-value enum coding

Code Emitter (emitter.py):
    - Keys classes, decode/encode methods, memberwise initializers

Diagnostics (diagnostics.py):
    - Diagnostic: severity, stable message id, location, fix-its
    - DiagnosticCollector: per-declaration sink that blocks emission

The Generator (generator.py) runs the stages for each declaration.
"""

from codablegen.core.analyzer import CodingMode, HelperCoderRef, MemberModel, TypeModel, analyze
from codablegen.core.attributes import Attribute, AttributeKind, parse_attribute, validate
from codablegen.core.cases import CaseModel, CaseStrategy, CaseStrategyKind, TagSpec
from codablegen.core.diagnostics import Diagnostic, DiagnosticCollector, FixIt, Scope, Severity
from codablegen.core.exceptions import (
    AttributeParseError,
    CodableGenError,
    DeclarationNotFoundError,
    ParseError,
)
from codablegen.core.generator import GeneratedType, Generator, GeneratorOptions
from codablegen.core.keys import CodingKeysMap, KeyStrategy
from codablegen.core.models import (
    AssociatedDecl,
    AttributeNode,
    CaseDecl,
    Declaration,
    DeclKind,
    MemberDecl,
    RawArgument,
    SourceLocation,
)
from codablegen.core.paths import DecodingFallback, PathTrie

__all__ = [
    # Models
    "AssociatedDecl",
    "AttributeNode",
    "CaseDecl",
    "Declaration",
    "DeclKind",
    "MemberDecl",
    "RawArgument",
    "SourceLocation",
    # Attributes
    "Attribute",
    "AttributeKind",
    "parse_attribute",
    "validate",
    # Analysis
    "CodingMode",
    "HelperCoderRef",
    "MemberModel",
    "TypeModel",
    "analyze",
    "KeyStrategy",
    "CodingKeysMap",
    "PathTrie",
    "DecodingFallback",
    "CaseModel",
    "CaseStrategy",
    "CaseStrategyKind",
    "TagSpec",
    # Diagnostics
    "Diagnostic",
    "DiagnosticCollector",
    "FixIt",
    "Scope",
    "Severity",
    # Exceptions
    "CodableGenError",
    "ParseError",
    "AttributeParseError",
    "DeclarationNotFoundError",
    # Generation
    "Generator",
    "GeneratorOptions",
    "GeneratedType",
]
