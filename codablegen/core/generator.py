"""Generation pipeline: analyze, resolve paths and cases, emit artifacts."""

from __future__ import annotations

import ast
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from codablegen.core import cases, emitter
from codablegen.core.analyzer import TypeModel, analyze
from codablegen.core.cases import CaseStrategy
from codablegen.core.diagnostics import Diagnostic, Scope
from codablegen.core.models import Declaration, DeclKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratorOptions:
    """Generator configuration.

    `runtime_module` is the import path rendered code uses for the support
    library. With `strict`, warnings block emission like errors do.
    """

    runtime_module: str = "codablegen.runtime"
    strict: bool = False


@dataclass
class GeneratedType:
    """Output for one declaration. Every artifact is a list of `ast` nodes;
    an empty list means the artifact was not requested or was blocked."""

    declaration: Declaration
    model: TypeModel
    strategy: CaseStrategy | None = None
    coding_keys: list[ast.ClassDef] = field(default_factory=list)
    decode: list[ast.FunctionDef] = field(default_factory=list)
    encode: list[ast.FunctionDef] = field(default_factory=list)
    initializers: list[ast.FunctionDef] = field(default_factory=list)
    case_constructors: list[ast.FunctionDef] = field(default_factory=list)

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return list(self.model.diagnostics)

    @property
    def has_errors(self) -> bool:
        return bool(self.model.diagnostics.errors)

    @property
    def members(self) -> list[ast.stmt]:
        """Every generated class-body statement, in output order."""
        return [
            *self.coding_keys,
            *self.initializers,
            *self.decode,
            *self.encode,
        ]


class Generator:
    """Runs the pipeline for declarations, one independent pass each."""

    def __init__(self, options: GeneratorOptions | None = None) -> None:
        self.options = options or GeneratorOptions()

    def generate(self, declaration: Declaration) -> GeneratedType:
        model = analyze(declaration, strict=self.options.strict)
        result = GeneratedType(declaration=declaration, model=model)
        diagnostics = model.diagnostics

        if declaration.kind is DeclKind.ENUM:
            if not declaration.is_raw_representable:
                result.case_constructors = [
                    cases.case_constructor(model, case) for case in declaration.cases
                ]
            if model.mode is None:
                return result
            result.strategy = cases.synthesize(model)
        elif model.member_init:
            result.initializers = emitter.memberwise_init(model)

        if model.mode is None:
            return result

        decode_blocked = diagnostics.blocks(Scope.DECODE)
        encode_blocked = diagnostics.blocks(Scope.ENCODE)
        if decode_blocked or encode_blocked:
            logger.warning(
                f"{declaration.qualified_name}: suppressing "
                f"{'decode ' if decode_blocked else ''}{'encode ' if encode_blocked else ''}"
                f"artifacts due to diagnostics"
            )

        if model.decodes and not decode_blocked:
            if result.strategy is not None:
                result.decode = cases.enum_decode(model, result.strategy)
            else:
                result.decode = emitter.struct_decode(model)
        if model.encodes and not encode_blocked:
            if result.strategy is not None:
                result.encode = cases.enum_encode(model, result.strategy)
            else:
                result.encode = emitter.struct_encode(model)

        if result.decode or result.encode:
            if len(model.keys):
                result.coding_keys.append(emitter.keys_class(model.keys))
            decoding_keys = result.strategy.decoding_keys if result.strategy else None
            if result.decode and decoding_keys is not None and len(decoding_keys):
                result.coding_keys.append(emitter.keys_class(decoding_keys))

        for node in result.members + result.case_constructors:
            ast.fix_missing_locations(node)
        logger.debug(
            f"Generated {declaration.qualified_name}: decode={bool(result.decode)} "
            f"encode={bool(result.encode)} diagnostics={len(diagnostics)}"
        )
        return result

    def generate_all(self, declarations: Iterable[Declaration]) -> list[GeneratedType]:
        return [self.generate(declaration) for declaration in declarations]
