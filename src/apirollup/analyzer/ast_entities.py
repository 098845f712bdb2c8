"""
ast_entities.py

Named things discovered in the analyzed module graph.

An AstEntity is either an AstSymbol (declared by the working package) or an
AstImport (reached through an import statement). Declarations live in an
arena owned by the Collector and are addressed by integer id, so the
symbol <-> declaration <-> parent relationships are plain id references.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field

from .syntax import SyntaxKind, SyntaxNode


class AstImportKind(enum.Enum):
    # import X from "y";
    DEFAULT_IMPORT = "default"
    # import { X } from "y";
    NAMED_IMPORT = "named"
    # import * as x from "y";
    STAR_IMPORT = "star"
    # import x = require("y");
    EQUALS_IMPORT = "equals"
    # import("y").X
    IMPORT_TYPE = "import_type"


class AstEntity:
    """Base for anything that can be emitted under a name."""

    @property
    def local_name(self) -> str:
        raise NotImplementedError


@dataclass(eq=False)
class AstImport(AstEntity):
    """
    A symbol reached through an import statement of an external module.

    `export_name` is the name being imported: "X" for `import X from "y"` and
    `import { X } from "y"`, the namespace name for star and equals imports,
    and a possibly dotted qualifier chain ("NS.Member") for import types.
    """

    import_kind: AstImportKind
    module_path: str
    export_name: str
    is_type_only_everywhere: bool = False

    @property
    def key(self) -> str:
        return AstImport.get_key(self.import_kind, self.module_path, self.export_name)

    @property
    def local_name(self) -> str:
        if self.import_kind == AstImportKind.IMPORT_TYPE:
            if self.export_name:
                return self.export_name.split(".")[0]
            # import("some-lib") used as a namespace
            base = self.module_path.rstrip("/").split("/")[-1]
            return re.sub(r"\W", "_", base) or "_module"
        return self.export_name

    @staticmethod
    def get_key(import_kind: AstImportKind, module_path: str, export_name: str) -> str:
        if import_kind == AstImportKind.STAR_IMPORT:
            return f"{module_path}:*"
        if import_kind == AstImportKind.EQUALS_IMPORT:
            return f"{module_path}:="
        if import_kind == AstImportKind.IMPORT_TYPE:
            return f"{module_path}:{export_name.split('.')[0] if export_name else '*'}"
        return f"{module_path}:{export_name}"


@dataclass(eq=False)
class AstSymbol(AstEntity):
    """
    A named symbol declared by the working package, possibly with several
    declarations (overloads, merged interfaces, accessor pairs).
    """

    name: str
    key: str
    declaration_ids: list[int] = field(default_factory=list)
    parent_symbol: AstSymbol | None = None
    is_external: bool = False

    @property
    def local_name(self) -> str:
        return self.name

    @property
    def root_symbol(self) -> AstSymbol:
        symbol = self
        while symbol.parent_symbol is not None:
            symbol = symbol.parent_symbol
        return symbol


@dataclass(eq=False)
class AstDeclaration:
    """One concrete declaration site of an AstSymbol."""

    declaration_id: int
    node: SyntaxNode
    symbol: AstSymbol
    parent_id: int | None = None
    child_ids: list[int] = field(default_factory=list)

    @property
    def kind(self) -> SyntaxKind:
        return self.node.kind

    @property
    def is_private(self) -> bool:
        return SyntaxKind.PRIVATE_KEYWORD in self.node.modifier_kinds()

    @property
    def is_static(self) -> bool:
        return SyntaxKind.STATIC_KEYWORD in self.node.modifier_kinds()
