"""
syntax.py

The read-only syntax contract supplied by the external front-end.

The front-end parses and type-checks the sources; this module only describes
the resulting tree: a closed set of node kinds, immutable nodes addressing
ranges of a source file's text, and a builder that assembles a tree from a
nested description (nodes interleaved with raw trivia strings).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Union

from apirollup.shared.errors import InternalError


class SyntaxKind(enum.Enum):
    """
    Closed set of node kinds relevant to rewriting.

    Values match the names used by the front-end dump. Anything the front-end
    cannot map to a specific kind must be reported as one of the generic
    categories (Keyword, Punctuation, Literal, TypeNode, Expression).
    """

    # Containers
    SOURCE_FILE = "SourceFile"
    SYNTAX_LIST = "SyntaxList"
    MODULE_BLOCK = "ModuleBlock"
    VARIABLE_STATEMENT = "VariableStatement"
    VARIABLE_DECLARATION_LIST = "VariableDeclarationList"
    HERITAGE_CLAUSE = "HeritageClause"
    PARAMETER = "Parameter"
    TYPE_PARAMETER = "TypeParameter"
    TYPE_LITERAL = "TypeLiteral"
    TYPE_REFERENCE = "TypeReference"
    EXPRESSION_WITH_TYPE_ARGUMENTS = "ExpressionWithTypeArguments"
    IMPORT_TYPE = "ImportType"
    QUALIFIED_NAME = "QualifiedName"
    JSDOC_COMMENT = "JSDocComment"

    # API declarations
    CALL_SIGNATURE = "CallSignature"
    CLASS_DECLARATION = "ClassDeclaration"
    CONSTRUCT_SIGNATURE = "ConstructSignature"
    CONSTRUCTOR = "Constructor"
    ENUM_DECLARATION = "EnumDeclaration"
    ENUM_MEMBER = "EnumMember"
    FUNCTION_DECLARATION = "FunctionDeclaration"
    GET_ACCESSOR = "GetAccessor"
    INDEX_SIGNATURE = "IndexSignature"
    INTERFACE_DECLARATION = "InterfaceDeclaration"
    METHOD_DECLARATION = "MethodDeclaration"
    METHOD_SIGNATURE = "MethodSignature"
    MODULE_DECLARATION = "ModuleDeclaration"
    PROPERTY_DECLARATION = "PropertyDeclaration"
    PROPERTY_SIGNATURE = "PropertySignature"
    SET_ACCESSOR = "SetAccessor"
    TYPE_ALIAS_DECLARATION = "TypeAliasDeclaration"
    VARIABLE_DECLARATION = "VariableDeclaration"

    # Tokens
    IDENTIFIER = "Identifier"
    EXPORT_KEYWORD = "ExportKeyword"
    DEFAULT_KEYWORD = "DefaultKeyword"
    DECLARE_KEYWORD = "DeclareKeyword"
    INTERFACE_KEYWORD = "InterfaceKeyword"
    CLASS_KEYWORD = "ClassKeyword"
    ENUM_KEYWORD = "EnumKeyword"
    NAMESPACE_KEYWORD = "NamespaceKeyword"
    MODULE_KEYWORD = "ModuleKeyword"
    TYPE_KEYWORD = "TypeKeyword"
    FUNCTION_KEYWORD = "FunctionKeyword"
    IMPORT_KEYWORD = "ImportKeyword"
    CONST_KEYWORD = "ConstKeyword"
    LET_KEYWORD = "LetKeyword"
    VAR_KEYWORD = "VarKeyword"
    STATIC_KEYWORD = "StaticKeyword"
    PRIVATE_KEYWORD = "PrivateKeyword"
    PROTECTED_KEYWORD = "ProtectedKeyword"
    PUBLIC_KEYWORD = "PublicKeyword"
    READONLY_KEYWORD = "ReadonlyKeyword"
    ABSTRACT_KEYWORD = "AbstractKeyword"
    LESS_THAN_TOKEN = "LessThanToken"
    GREATER_THAN_TOKEN = "GreaterThanToken"
    COMMA_TOKEN = "CommaToken"
    DOT_TOKEN = "DotToken"
    OPEN_BRACE_TOKEN = "OpenBraceToken"
    CLOSE_BRACE_TOKEN = "CloseBraceToken"
    OPEN_PAREN_TOKEN = "OpenParenToken"
    CLOSE_PAREN_TOKEN = "CloseParenToken"
    COLON_TOKEN = "ColonToken"
    SEMICOLON_TOKEN = "SemicolonToken"
    EQUALS_TOKEN = "EqualsToken"

    # Generic categories
    KEYWORD = "Keyword"
    PUNCTUATION = "Punctuation"
    LITERAL = "Literal"
    TYPE_NODE = "TypeNode"
    EXPRESSION = "Expression"


DECLARATION_KINDS: frozenset[SyntaxKind] = frozenset(
    {
        SyntaxKind.CALL_SIGNATURE,
        SyntaxKind.CLASS_DECLARATION,
        SyntaxKind.CONSTRUCT_SIGNATURE,
        SyntaxKind.CONSTRUCTOR,
        SyntaxKind.ENUM_DECLARATION,
        SyntaxKind.ENUM_MEMBER,
        SyntaxKind.FUNCTION_DECLARATION,
        SyntaxKind.GET_ACCESSOR,
        SyntaxKind.INDEX_SIGNATURE,
        SyntaxKind.INTERFACE_DECLARATION,
        SyntaxKind.METHOD_DECLARATION,
        SyntaxKind.METHOD_SIGNATURE,
        SyntaxKind.MODULE_DECLARATION,
        SyntaxKind.PROPERTY_DECLARATION,
        SyntaxKind.PROPERTY_SIGNATURE,
        SyntaxKind.SET_ACCESSOR,
        SyntaxKind.TYPE_ALIAS_DECLARATION,
        SyntaxKind.VARIABLE_DECLARATION,
    }
)

# Symbol names the type checker assigns to unnamed members
_INTERNAL_MEMBER_NAMES: dict[SyntaxKind, str] = {
    SyntaxKind.CONSTRUCTOR: "__constructor",
    SyntaxKind.CALL_SIGNATURE: "__call",
    SyntaxKind.CONSTRUCT_SIGNATURE: "__new",
    SyntaxKind.INDEX_SIGNATURE: "__index",
}


def is_declaration_kind(kind: SyntaxKind) -> bool:
    return kind in DECLARATION_KINDS


@dataclass(slots=True)
class SourceFile:
    """One source file of the analyzed module graph."""

    path: str
    text: str = ""
    root: SyntaxNode | None = None


class SyntaxNode:
    """
    Immutable node of the front-end syntax tree.

    `start` is the offset of the node's first character (leading trivia
    excluded) and `end` is the offset just past its last character.
    """

    __slots__ = (
        "_kind",
        "_start",
        "_end",
        "_source_file",
        "_children",
        "_node_id",
        "_ref",
        "_parent",
    )

    def __init__(
        self,
        kind: SyntaxKind,
        start: int,
        end: int,
        source_file: SourceFile,
        children: tuple[SyntaxNode, ...] = (),
        *,
        node_id: int,
        ref: str | None = None,
    ) -> None:
        self._kind = kind
        self._start = start
        self._end = end
        self._source_file = source_file
        self._children = tuple(children)
        self._node_id = node_id
        self._ref = ref
        self._parent: SyntaxNode | None = None
        for child in self._children:
            child._parent = self

    @property
    def kind(self) -> SyntaxKind:
        return self._kind

    @property
    def start(self) -> int:
        return self._start

    @property
    def end(self) -> int:
        return self._end

    @property
    def source_file(self) -> SourceFile:
        return self._source_file

    @property
    def children(self) -> tuple[SyntaxNode, ...]:
        return self._children

    @property
    def node_id(self) -> int:
        return self._node_id

    @property
    def ref(self) -> str | None:
        return self._ref

    @property
    def parent(self) -> SyntaxNode | None:
        return self._parent

    def get_text(self) -> str:
        return self._source_file.text[self._start : self._end]

    def find_child(self, kind: SyntaxKind) -> SyntaxNode | None:
        for child in self._children:
            if child.kind == kind:
                return child
        return None

    def match_ancestor(self, kinds: list[SyntaxKind]) -> SyntaxNode | None:
        """
        Walks upwards matching `kinds` from the outermost ancestor down to this
        node, e.g. [VARIABLE_DECLARATION_LIST, VARIABLE_DECLARATION].
        Returns the outermost matched ancestor.
        """
        if not kinds or kinds[-1] != self._kind:
            return None
        current: SyntaxNode = self
        for kind in reversed(kinds[:-1]):
            parent = current.parent
            if parent is None or parent.kind != kind:
                return None
            current = parent
        return current

    def get_declaration_name(self) -> str:
        """The name the type checker would bind this declaration to."""
        if self._kind in _INTERNAL_MEMBER_NAMES:
            return _INTERNAL_MEMBER_NAMES[self._kind]
        name = self.find_child(SyntaxKind.IDENTIFIER)
        if name is None:
            name = self.find_child(SyntaxKind.LITERAL)
        if name is None:
            raise InternalError(
                f"Unable to determine the name of {self._kind.value}: {self.get_text()!r}"
            )
        return name.get_text()

    def modifier_kinds(self) -> set[SyntaxKind]:
        """Kinds found in the leading modifier list, if any."""
        if self._children and self._children[0].kind == SyntaxKind.SYNTAX_LIST:
            return {c.kind for c in self._children[0].children}
        return set()

    def __repr__(self) -> str:
        return f"SyntaxNode({self._kind.value}, {self._start}:{self._end}, id={self._node_id})"


# --- Tree Builder ---

NodePart = Union[str, "NodeSpec"]


@dataclass(slots=True)
class NodeSpec:
    """Nested description of a node: either leaf text or parts (nodes and trivia)."""

    kind: SyntaxKind
    text: str | None = None
    parts: list[NodePart] = field(default_factory=list)
    ref: str | None = None


def leaf(kind: SyntaxKind, text: str, ref: str | None = None) -> NodeSpec:
    return NodeSpec(kind=kind, text=text, ref=ref)


def node(kind: SyntaxKind, *parts: NodePart, ref: str | None = None) -> NodeSpec:
    return NodeSpec(kind=kind, parts=list(parts), ref=ref)


class SyntaxTreeBuilder:
    """
    Assembles immutable syntax trees from NodeSpec descriptions.

    Strings between nodes are trivia; the source text is their concatenation.
    Node ids are unique across every file built by the same builder, and
    `ref` labels are registered so bindings can address nodes.
    """

    def __init__(self) -> None:
        self._next_id = 1
        self._refs: dict[str, SyntaxNode] = {}
        self.files: list[SourceFile] = []

    @property
    def refs(self) -> dict[str, SyntaxNode]:
        return self._refs

    def build_file(self, path: str, *parts: NodePart) -> SourceFile:
        source = SourceFile(path=path)
        buffer: list[str] = []
        root = self._build(
            NodeSpec(kind=SyntaxKind.SOURCE_FILE, parts=list(parts)), source, buffer, 0
        )
        source.text = "".join(buffer)
        source.root = root
        self.files.append(source)
        return source

    def get(self, ref: str) -> SyntaxNode:
        if ref not in self._refs:
            raise ValueError(f'Unknown node reference "{ref}"')
        return self._refs[ref]

    def _build(
        self, spec: NodeSpec, source: SourceFile, buffer: list[str], start: int
    ) -> SyntaxNode:
        position = start
        children: list[SyntaxNode] = []

        if spec.text is not None:
            if spec.parts:
                raise ValueError(f"{spec.kind.value} cannot have both text and children")
            buffer.append(spec.text)
            position += len(spec.text)
        else:
            for part in spec.parts:
                if isinstance(part, str):
                    buffer.append(part)
                    position += len(part)
                else:
                    child = self._build(part, source, buffer, position)
                    children.append(child)
                    position = child.end

        node_id = self._next_id
        self._next_id += 1
        result = SyntaxNode(
            spec.kind, start, position, source, tuple(children), node_id=node_id, ref=spec.ref
        )
        if spec.ref is not None:
            if spec.ref in self._refs:
                raise ValueError(f'Duplicate node reference "{spec.ref}"')
            self._refs[spec.ref] = result
        return result
