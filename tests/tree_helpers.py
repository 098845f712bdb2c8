"""
Helpers for building small declaration-file syntax trees in tests.

The node layout mirrors what the front-end dump produces: a declaration's
modifiers sit in a leading SyntaxList, member lists sit in a SyntaxList
between the braces, and trivia is kept outside the nodes it separates.
"""

from apirollup.analyzer.ast_entities import AstImportKind
from apirollup.analyzer.front_end import (
    AnalysisInput,
    DocFlags,
    ImportInput,
    MessageInput,
    ReleaseTag,
    SymbolInput,
)
from apirollup.analyzer.syntax import NodeSpec, SyntaxKind, SyntaxTreeBuilder, leaf, node
from apirollup.collector.collector import Collector

K = SyntaxKind

_MODIFIER_KINDS = {
    "export": K.EXPORT_KEYWORD,
    "default": K.DEFAULT_KEYWORD,
    "declare": K.DECLARE_KEYWORD,
    "static": K.STATIC_KEYWORD,
    "private": K.PRIVATE_KEYWORD,
    "protected": K.PROTECTED_KEYWORD,
    "public": K.PUBLIC_KEYWORD,
    "readonly": K.READONLY_KEYWORD,
    "abstract": K.ABSTRACT_KEYWORD,
}


def ident(name: str, ref: str | None = None) -> NodeSpec:
    return leaf(K.IDENTIFIER, name, ref=ref)


def mods(*words: str) -> NodeSpec:
    parts: list = []
    for index, word in enumerate(words):
        if index:
            parts.append(" ")
        parts.append(leaf(_MODIFIER_KINDS[word], word))
    return node(K.SYNTAX_LIST, *parts)


def kw_type(text: str) -> NodeSpec:
    """A keyword type such as `string` or `void`."""
    return leaf(K.KEYWORD, text)


def type_ref(name: str, ref: str | None = None, args: tuple = ()) -> NodeSpec:
    parts: list = [ident(name, ref=ref)]
    if args:
        parts += [leaf(K.LESS_THAN_TOKEN, "<"), _comma_list(args), leaf(K.GREATER_THAN_TOKEN, ">")]
    return node(K.TYPE_REFERENCE, *parts)


def import_type(module: str, qualifier: str, ref: str, args: tuple = ()) -> NodeSpec:
    """`import("module").A.B<args>`"""
    names = qualifier.split(".")
    if len(names) == 1:
        qualifier_node = ident(names[0])
    else:
        qualifier_parts: list = []
        for index, name in enumerate(names):
            if index:
                qualifier_parts.append(leaf(K.DOT_TOKEN, "."))
            qualifier_parts.append(ident(name))
        qualifier_node = node(K.QUALIFIED_NAME, *qualifier_parts)

    parts: list = [
        leaf(K.IMPORT_KEYWORD, "import"),
        leaf(K.OPEN_PAREN_TOKEN, "("),
        leaf(K.LITERAL, f'"{module}"'),
        leaf(K.CLOSE_PAREN_TOKEN, ")"),
        leaf(K.DOT_TOKEN, "."),
        qualifier_node,
    ]
    if args:
        parts += [leaf(K.LESS_THAN_TOKEN, "<"), _comma_list(args), leaf(K.GREATER_THAN_TOKEN, ">")]
    return node(K.IMPORT_TYPE, *parts, ref=ref)


def _comma_list(items: tuple) -> NodeSpec:
    parts: list = []
    for index, item in enumerate(items):
        if index:
            parts += [leaf(K.COMMA_TOKEN, ","), " "]
        parts.append(item)
    return node(K.SYNTAX_LIST, *parts)


def _body(members: tuple, indent: str) -> list:
    if not members:
        return [leaf(K.OPEN_BRACE_TOKEN, "{"), leaf(K.CLOSE_BRACE_TOKEN, "}")]
    list_parts: list = []
    for index, member in enumerate(members):
        if index:
            list_parts.append("\n" + indent)
        list_parts.append(member)
    return [
        leaf(K.OPEN_BRACE_TOKEN, "{"),
        "\n" + indent,
        node(K.SYNTAX_LIST, *list_parts),
        "\n" + indent[:-4],
        leaf(K.CLOSE_BRACE_TOKEN, "}"),
    ]


def _with_mods(modifiers: tuple, *rest) -> list:
    if modifiers:
        return [mods(*modifiers), " ", *rest]
    return list(rest)


def class_decl(
    name: str,
    *members: NodeSpec,
    ref: str | None = None,
    modifiers: tuple = ("export", "declare"),
    heritage: NodeSpec | None = None,
    indent: str = "    ",
    doc: str | None = None,
    name_ref: str | None = None,
) -> NodeSpec:
    parts: list = []
    if doc:
        parts += [leaf(K.JSDOC_COMMENT, doc), "\n"]
    parts += _with_mods(modifiers, leaf(K.CLASS_KEYWORD, "class"), " ", ident(name, name_ref), " ")
    if heritage is not None:
        parts += [heritage, " "]
    parts += _body(members, indent)
    return node(K.CLASS_DECLARATION, *parts, ref=ref)


def extends(type_node: NodeSpec) -> NodeSpec:
    return node(K.HERITAGE_CLAUSE, leaf(K.KEYWORD, "extends"), " ", type_node)


def interface_decl(
    name: str,
    *members: NodeSpec,
    ref: str | None = None,
    modifiers: tuple = ("export",),
    indent: str = "    ",
) -> NodeSpec:
    parts = _with_mods(modifiers, leaf(K.INTERFACE_KEYWORD, "interface"), " ", ident(name), " ")
    parts += _body(members, indent)
    return node(K.INTERFACE_DECLARATION, *parts, ref=ref)


def enum_decl(
    name: str,
    *member_names: str,
    ref: str | None = None,
    member_refs: tuple = (),
    modifiers: tuple = ("export", "declare"),
) -> NodeSpec:
    list_parts: list = []
    for index, member_name in enumerate(member_names):
        if index:
            list_parts += [leaf(K.COMMA_TOKEN, ","), "\n    "]
        member_ref = member_refs[index] if index < len(member_refs) else None
        list_parts.append(
            node(
                K.ENUM_MEMBER,
                ident(member_name),
                " ",
                leaf(K.EQUALS_TOKEN, "="),
                " ",
                leaf(K.LITERAL, str(index)),
                ref=member_ref,
            )
        )
    parts = _with_mods(modifiers, leaf(K.ENUM_KEYWORD, "enum"), " ", ident(name), " ")
    parts += [
        leaf(K.OPEN_BRACE_TOKEN, "{"),
        "\n    ",
        node(K.SYNTAX_LIST, *list_parts),
        "\n",
        leaf(K.CLOSE_BRACE_TOKEN, "}"),
    ]
    return node(K.ENUM_DECLARATION, *parts, ref=ref)


def namespace_decl(
    name: str,
    *members: NodeSpec,
    ref: str | None = None,
    modifiers: tuple = ("export", "declare"),
) -> NodeSpec:
    parts = _with_mods(modifiers, leaf(K.NAMESPACE_KEYWORD, "namespace"), " ", ident(name), " ")
    parts.append(node(K.MODULE_BLOCK, *_body(members, "    ")))
    return node(K.MODULE_DECLARATION, *parts, ref=ref)


def function_decl(
    name: str,
    return_type: NodeSpec,
    *,
    ref: str | None = None,
    modifiers: tuple = ("export", "declare"),
) -> NodeSpec:
    parts = _with_mods(
        modifiers,
        leaf(K.FUNCTION_KEYWORD, "function"),
        " ",
        ident(name),
        leaf(K.OPEN_PAREN_TOKEN, "("),
        leaf(K.CLOSE_PAREN_TOKEN, ")"),
        leaf(K.COLON_TOKEN, ":"),
        " ",
        return_type,
        leaf(K.SEMICOLON_TOKEN, ";"),
    )
    return node(K.FUNCTION_DECLARATION, *parts, ref=ref)


def type_alias(
    name: str,
    type_node: NodeSpec,
    *,
    ref: str | None = None,
    modifiers: tuple = ("export", "declare"),
) -> NodeSpec:
    parts = _with_mods(
        modifiers,
        leaf(K.TYPE_KEYWORD, "type"),
        " ",
        ident(name),
        " ",
        leaf(K.EQUALS_TOKEN, "="),
        " ",
        type_node,
        leaf(K.SEMICOLON_TOKEN, ";"),
    )
    return node(K.TYPE_ALIAS_DECLARATION, *parts, ref=ref)


def const_statement(
    *declarations: NodeSpec,
    modifiers: tuple = ("export", "declare"),
    doc: str | None = None,
) -> NodeSpec:
    """A VariableStatement; the declarations come from `var_decl()`."""
    list_parts: list = [leaf(K.CONST_KEYWORD, "const"), " "]
    for index, declaration in enumerate(declarations):
        if index:
            list_parts += [leaf(K.COMMA_TOKEN, ","), " "]
        list_parts.append(declaration)
    parts: list = []
    if doc:
        parts += [leaf(K.JSDOC_COMMENT, doc), "\n"]
    parts += _with_mods(
        modifiers, node(K.VARIABLE_DECLARATION_LIST, *list_parts), leaf(K.SEMICOLON_TOKEN, ";")
    )
    return node(K.VARIABLE_STATEMENT, *parts)


def var_decl(name: str, type_node: NodeSpec, *, ref: str | None = None) -> NodeSpec:
    return node(
        K.VARIABLE_DECLARATION,
        ident(name),
        leaf(K.COLON_TOKEN, ":"),
        " ",
        type_node,
        ref=ref,
    )


def prop(
    name: str,
    type_node: NodeSpec,
    *,
    ref: str | None = None,
    modifiers: tuple = (),
    signature: bool = False,
) -> NodeSpec:
    kind = K.PROPERTY_SIGNATURE if signature else K.PROPERTY_DECLARATION
    parts = _with_mods(
        modifiers,
        ident(name),
        leaf(K.COLON_TOKEN, ":"),
        " ",
        type_node,
        leaf(K.SEMICOLON_TOKEN, ";"),
    )
    return node(kind, *parts, ref=ref)


def method(
    name: str, return_type: NodeSpec, *, ref: str | None = None, modifiers: tuple = ()
) -> NodeSpec:
    parts = _with_mods(
        modifiers,
        ident(name),
        leaf(K.OPEN_PAREN_TOKEN, "("),
        leaf(K.CLOSE_PAREN_TOKEN, ")"),
        leaf(K.COLON_TOKEN, ":"),
        " ",
        return_type,
        leaf(K.SEMICOLON_TOKEN, ";"),
    )
    return node(K.METHOD_DECLARATION, *parts, ref=ref)


def getter(name: str, type_node: NodeSpec, *, ref: str | None = None) -> NodeSpec:
    return node(
        K.GET_ACCESSOR,
        leaf(K.KEYWORD, "get"),
        " ",
        ident(name),
        leaf(K.OPEN_PAREN_TOKEN, "("),
        leaf(K.CLOSE_PAREN_TOKEN, ")"),
        leaf(K.COLON_TOKEN, ":"),
        " ",
        type_node,
        leaf(K.SEMICOLON_TOKEN, ";"),
        ref=ref,
    )


def setter(name: str, type_node: NodeSpec, *, ref: str | None = None) -> NodeSpec:
    return node(
        K.SET_ACCESSOR,
        leaf(K.KEYWORD, "set"),
        " ",
        ident(name),
        leaf(K.OPEN_PAREN_TOKEN, "("),
        node(K.PARAMETER, leaf(K.IDENTIFIER, "value"), leaf(K.COLON_TOKEN, ":"), " ", type_node),
        leaf(K.CLOSE_PAREN_TOKEN, ")"),
        leaf(K.SEMICOLON_TOKEN, ";"),
        ref=ref,
    )


class PackageBuilder:
    """
    Collects files, symbols, imports, bindings and exports, then produces an
    AnalysisInput. Bindings and doc flags are addressed by node ref.
    """

    def __init__(self, package_name: str = "example-lib", *, documentation: str | None = None):
        self.tree = SyntaxTreeBuilder()
        self.package_name = package_name
        self.documentation = documentation
        self.global_names: set[str] = set()
        self._symbols: list[tuple[str, str, tuple[str, ...]]] = []
        self._imports: list[ImportInput] = []
        self._bindings: dict[str, str] = {}
        self._flags: dict[str, DocFlags] = {}
        self._exports: list[tuple[str, str]] = []
        self._star_exports: list[str] = []
        self._messages: list[tuple[str, str, str | None, str | None]] = []

    def file(self, *parts, path: str = "index.d.ts") -> "PackageBuilder":
        self.tree.build_file(path, *parts)
        return self

    def symbol(self, key: str, *refs: str, local_name: str | None = None) -> "PackageBuilder":
        self._symbols.append((key, local_name or key, refs))
        return self

    def import_(
        self,
        key: str,
        kind: AstImportKind,
        module_path: str,
        export_name: str,
        *,
        type_only: bool = False,
    ) -> "PackageBuilder":
        self._imports.append(
            ImportInput(
                key=key,
                import_kind=kind,
                module_path=module_path,
                export_name=export_name,
                is_type_only_everywhere=type_only,
            )
        )
        return self

    def bind(self, ref: str, key: str) -> "PackageBuilder":
        self._bindings[ref] = key
        return self

    def flags(self, ref: str, release_tag: str | None = None, **kwargs) -> "PackageBuilder":
        kwargs.setdefault("documented", True)
        self._flags[ref] = DocFlags(release_tag=ReleaseTag.from_name(release_tag), **kwargs)
        return self

    def export(self, name: str, key: str | None = None) -> "PackageBuilder":
        self._exports.append((name, key or name))
        return self

    def star_export(self, module_path: str) -> "PackageBuilder":
        self._star_exports.append(module_path)
        return self

    def message(
        self, message_id: str, text: str, ref: str | None = None, export_name: str | None = None
    ) -> "PackageBuilder":
        self._messages.append((message_id, text, ref, export_name))
        return self

    def build(self) -> AnalysisInput:
        get = self.tree.get
        return AnalysisInput(
            package_name=self.package_name,
            files=list(self.tree.files),
            symbols=[
                SymbolInput(key=key, local_name=name, declarations=[get(r) for r in refs])
                for key, name, refs in self._symbols
            ],
            imports=list(self._imports),
            bindings={get(ref).node_id: key for ref, key in self._bindings.items()},
            exports=list(self._exports),
            star_exports=list(self._star_exports),
            global_names=set(self.global_names),
            doc_flags={get(ref).node_id: flags for ref, flags in self._flags.items()},
            messages=[
                MessageInput(
                    message_id=message_id,
                    text=text,
                    node=get(ref) if ref else None,
                    export_name=export_name,
                )
                for message_id, text, ref, export_name in self._messages
            ],
            package_documentation=self.documentation,
        )

    def collector(self, **kwargs) -> Collector:
        collector = Collector(self.build(), **kwargs)
        collector.analyze()
        return collector
