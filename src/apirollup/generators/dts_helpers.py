from collections.abc import Callable

from apirollup.analyzer.ast_entities import AstDeclaration, AstImport, AstImportKind
from apirollup.analyzer.span import Span
from apirollup.analyzer.syntax import SyntaxKind, is_declaration_kind
from apirollup.collector.collector import Collector
from apirollup.collector.collector_entity import CollectorEntity
from apirollup.shared.errors import InternalError

from .string_writer import StringWriter

ModifyNestedSpan = Callable[[Span, AstDeclaration], None]

# Keywords that introduce a declaration; modifiers are re-added in front of them
DECLARATION_KEYWORDS: frozenset[SyntaxKind] = frozenset(
    {
        SyntaxKind.INTERFACE_KEYWORD,
        SyntaxKind.CLASS_KEYWORD,
        SyntaxKind.ENUM_KEYWORD,
        SyntaxKind.NAMESPACE_KEYWORD,
        SyntaxKind.MODULE_KEYWORD,
        SyntaxKind.TYPE_KEYWORD,
        SyntaxKind.FUNCTION_KEYWORD,
    }
)


class DtsEmitHelpers:
    """
    Statement synthesis and span rewrites shared by the rollup and report
    generators.
    """

    @staticmethod
    def emit_import(writer: StringWriter, entity: CollectorEntity, ast_import: AstImport) -> None:
        import_prefix = "import type" if ast_import.is_type_only_everywhere else "import"
        name = entity.name_for_emit
        module_path = ast_import.module_path

        kind = ast_import.import_kind
        if kind == AstImportKind.DEFAULT_IMPORT:
            if name != ast_import.export_name:
                writer.write(f"{import_prefix} {{ default as {name} }}")
            else:
                writer.write(f"{import_prefix} {ast_import.export_name}")
            writer.write_line(f" from '{module_path}';")
        elif kind == AstImportKind.NAMED_IMPORT:
            if name == ast_import.export_name:
                writer.write(f"{import_prefix} {{ {ast_import.export_name} }}")
            else:
                writer.write(f"{import_prefix} {{ {ast_import.export_name} as {name} }}")
            writer.write_line(f" from '{module_path}';")
        elif kind == AstImportKind.STAR_IMPORT:
            writer.write_line(f"{import_prefix} * as {name} from '{module_path}';")
        elif kind == AstImportKind.EQUALS_IMPORT:
            writer.write_line(f"{import_prefix} {name} = require('{module_path}');")
        elif kind == AstImportKind.IMPORT_TYPE:
            if not ast_import.export_name:
                writer.write_line(f"{import_prefix} * as {name} from '{module_path}';")
            else:
                top_export_name = ast_import.export_name.split(".")[0]
                if name == top_export_name:
                    writer.write(f"{import_prefix} {{ {top_export_name} }}")
                else:
                    writer.write(f"{import_prefix} {{ {top_export_name} as {name} }}")
                writer.write_line(f" from '{module_path}';")
        else:
            raise InternalError(f"Unimplemented AstImportKind: {ast_import.import_kind}")

    @staticmethod
    def emit_named_export(writer: StringWriter, export_name: str, entity: CollectorEntity) -> None:
        if export_name == "default":
            writer.write_line(f"export default {entity.name_for_emit};")
        elif entity.name_for_emit != export_name:
            writer.write_line(f"export {{ {entity.name_for_emit} as {export_name} }}")
        else:
            writer.write_line(f"export {{ {export_name} }}")

    @staticmethod
    def emit_star_exports(writer: StringWriter, collector: Collector) -> None:
        module_paths = collector.star_exported_external_module_paths
        if module_paths:
            writer.write_line()
            for module_path in module_paths:
                writer.write_line(f'export * from "{module_path}";')

    @staticmethod
    def modify_span_type_arguments_and_get_text(
        span: Span,
        declaration: AstDeclaration,
        collector: Collector,
        modify_nested_span: ModifyNestedSpan,
    ) -> str:
        """
        Rewrites the spans between "<" and ">" and returns them as "<A, B>", or
        "" when the node has no type arguments.
        """
        kinds = [child.kind for child in span.children]
        has_type_arguments = (
            SyntaxKind.LESS_THAN_TOKEN in kinds
            or SyntaxKind.GREATER_THAN_TOKEN in kinds
            or SyntaxKind.SYNTAX_LIST in kinds
        )
        if not has_type_arguments:
            return ""

        less_than_pos = _index_of(kinds, SyntaxKind.LESS_THAN_TOKEN)
        greater_than_pos = _index_of(kinds, SyntaxKind.GREATER_THAN_TOKEN)
        if less_than_pos < 0 or greater_than_pos <= less_than_pos:
            raise InternalError("Invalid type arguments:\n" + span.node.get_text())

        type_argument_spans = span.children[less_than_pos + 1 : greater_than_pos]

        for child in type_argument_spans:
            child_declaration = declaration
            if is_declaration_kind(child.kind):
                child_declaration = collector.get_child_declaration_by_node(child.node, declaration)
            modify_nested_span(child, child_declaration)

        type_argument_strings: list[str] = []
        for child in type_argument_spans:
            if child.kind == SyntaxKind.SYNTAX_LIST:
                # The list holds the arguments and their commas
                for item in child.children:
                    if item.kind != SyntaxKind.COMMA_TOKEN:
                        type_argument_strings.append(DtsEmitHelpers._trimmed_text(item))
            elif child.kind != SyntaxKind.COMMA_TOKEN:
                type_argument_strings.append(DtsEmitHelpers._trimmed_text(child))

        return f"<{', '.join(type_argument_strings)}>"

    @staticmethod
    def modify_import_type_span(
        collector: Collector,
        span: Span,
        declaration: AstDeclaration,
        modify_nested_span: ModifyNestedSpan,
    ) -> None:
        """
        Rewrites `import("mod").NS.Member<Args>` to `Name.NS.Member<Args>`, where
        Name is the emitted name of the imported entity.
        """
        entity = collector.try_get_entity_for_node(span.node)
        if entity is None:
            return
        if not entity.name_for_emit:
            raise InternalError(f'The entity "{entity.ast_entity.local_name}" has no name_for_emit')

        type_arguments_text = DtsEmitHelpers.modify_span_type_arguments_and_get_text(
            span, declaration, collector, modify_nested_span
        )

        ast_entity = entity.ast_entity
        if (
            isinstance(ast_entity, AstImport)
            and ast_entity.import_kind == AstImportKind.IMPORT_TYPE
            and ast_entity.export_name
        ):
            # Only the top namespace of the chain is imported; keep the rest
            qualifier = span.node.find_child(SyntaxKind.QUALIFIED_NAME) or span.node.find_child(
                SyntaxKind.IDENTIFIER
            )
            qualifiers_text = qualifier.get_text() if qualifier is not None else ""
            nested_start = qualifiers_text.find(".")
            nested_qualifiers_text = qualifiers_text[nested_start:] if nested_start >= 0 else ""
            replacement = f"{entity.name_for_emit}{nested_qualifiers_text}{type_arguments_text}"
        else:
            replacement = f"{entity.name_for_emit}{type_arguments_text}"

        span.modification.skip_all()
        span.modification.prefix = replacement

    @staticmethod
    def modify_span_for_preapproved(span: Span, modifiers: str = "") -> None:
        """
        Reduces a class, interface, enum or namespace to a one-line stub:

            class _PreapprovedClass { /* (preapproved) */ }

        `modifiers` (e.g. "export declare ") is written before the declaration keyword.
        """
        skip_rest = False
        for child in span.children:
            if skip_rest or child.kind in (SyntaxKind.SYNTAX_LIST, SyntaxKind.JSDOC_COMMENT):
                child.modification.skip_all()
            elif modifiers and child.kind in DECLARATION_KEYWORDS:
                child.modification.prefix = modifiers + child.modification.prefix
            if child.kind == SyntaxKind.IDENTIFIER:
                skip_rest = True
                child.modification.omit_separator_after = True
                child.modification.suffix = " { /* (preapproved) */ }"

    @staticmethod
    def _trimmed_text(span: Span) -> str:
        # The separator of the last argument is whitespace before ">"
        return span.get_modified_text().strip()


def _index_of(kinds: list[SyntaxKind], kind: SyntaxKind) -> int:
    return kinds.index(kind) if kind in kinds else -1
