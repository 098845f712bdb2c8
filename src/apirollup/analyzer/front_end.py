"""
front_end.py

What the external front-end and documentation layer hand to the core: the
parsed files, the symbols declared by the working package, the imports that
feed them, the identifier bindings, the entry point's exports, and a bag of
documentation flags per declaration node.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from .ast_entities import AstImportKind
from .syntax import SourceFile, SyntaxNode


class ReleaseTag(enum.IntEnum):
    """Release tiers, ordered from least to most visible."""

    NONE = 0
    INTERNAL = 1
    ALPHA = 2
    BETA = 3
    PUBLIC = 4

    @property
    def tag_name(self) -> str:
        if self == ReleaseTag.NONE:
            return "(none)"
        return f"@{self.name.lower()}"

    @classmethod
    def from_name(cls, name: str | None) -> ReleaseTag:
        if not name:
            return cls.NONE
        try:
            return cls[name.lstrip("@").upper()]
        except KeyError:
            raise ValueError(f'Unknown release tag "{name}"') from None


@dataclass(slots=True)
class DocFlags:
    """
    Flags computed by the documentation layer for one declaration.

    `needs_documentation` defaults to "not documented" when the layer does not
    say otherwise.
    """

    release_tag: ReleaseTag = ReleaseTag.NONE
    documented: bool = False
    is_sealed: bool = False
    is_virtual: bool = False
    is_override: bool = False
    is_event_property: bool = False
    has_deprecated_block: bool = False
    is_preapproved: bool = False
    needs_documentation: bool | None = None

    @property
    def undocumented(self) -> bool:
        if self.needs_documentation is not None:
            return self.needs_documentation
        return not self.documented


@dataclass(slots=True)
class SymbolInput:
    """A top-level symbol of the working package and its declaration nodes."""

    key: str
    local_name: str
    declarations: list[SyntaxNode]
    is_external: bool = False


@dataclass(slots=True)
class ImportInput:
    key: str
    import_kind: AstImportKind
    module_path: str
    export_name: str
    is_type_only_everywhere: bool = False


@dataclass(slots=True)
class MessageInput:
    """A diagnostic from the documentation layer, routed like analyzer issues."""

    message_id: str
    text: str
    node: SyntaxNode | None = None
    export_name: str | None = None


@dataclass
class AnalysisInput:
    """The complete, already-materialized input of one analysis pass."""

    package_name: str
    files: list[SourceFile]
    symbols: list[SymbolInput] = field(default_factory=list)
    imports: list[ImportInput] = field(default_factory=list)
    bindings: dict[int, str] = field(default_factory=dict)
    exports: list[tuple[str, str]] = field(default_factory=list)
    star_exports: list[str] = field(default_factory=list)
    global_names: set[str] = field(default_factory=set)
    doc_flags: dict[int, DocFlags] = field(default_factory=dict)
    messages: list[MessageInput] = field(default_factory=list)
    package_documentation: str | None = None
    entry_point: str | None = None

    def resolve(self, node: SyntaxNode) -> str | None:
        """Symbol binding lookup: the entity key an identifier refers to."""
        return self.bindings.get(node.node_id)

    def flags_for(self, node: SyntaxNode) -> DocFlags:
        return self.doc_flags.get(node.node_id) or DocFlags()

    @property
    def entry_point_file_name(self) -> str:
        path = self.entry_point or (self.files[0].path if self.files else "index.d.ts")
        return PurePosixPath(path).name

    @property
    def unscoped_package_name(self) -> str:
        return self.package_name.split("/")[-1]
