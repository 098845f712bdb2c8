"""
report_generator.py

Writes the API report: a Markdown file holding a fenced, normalized view of
every exported declaration, annotated with release tags and analysis warnings
so that API changes show up in code review.
"""

import re

from apirollup.analyzer.ast_entities import AstDeclaration, AstImport, AstSymbol
from apirollup.analyzer.span import Span
from apirollup.analyzer.syntax import SyntaxKind, is_declaration_kind
from apirollup.collector.collector import Collector
from apirollup.collector.collector_entity import CollectorEntity, get_sort_key_ignoring_underscore
from apirollup.collector.messages import ExtractorMessage
from apirollup.shared.errors import InternalError

from .dts_helpers import DECLARATION_KEYWORDS, DtsEmitHelpers
from .string_writer import StringWriter, convert_newlines

_TRIM_SPACES_RE = re.compile(r"[ \t]+$", re.MULTILINE)
_WHITESPACE_RE = re.compile(r"\s+")


class ApiReportGenerator:
    """
    Renders the exported surface of an analyzed Collector, ignoring release
    tiers.
    """

    @staticmethod
    def are_equivalent(actual: str, expected: str) -> bool:
        """
        True when two reports differ only in whitespace, such as newline
        conversion or trailing spaces stripped by an editor.
        """
        return _WHITESPACE_RE.sub(" ", actual) == _WHITESPACE_RE.sub(" ", expected)

    @staticmethod
    def generate(collector: Collector, *, newline_kind: str = "lf") -> str:
        writer = StringWriter()

        writer.write_line(
            "\n".join(
                [
                    f'## API Report File for "{collector.package_name}"',
                    "",
                    "> Do not edit this file. It is a report generated by apirollup.",
                    "",
                ]
            )
        )

        writer.write_line("```ts\n")

        imports_emitted = False
        for entity in collector.entities:
            if isinstance(entity.ast_entity, AstImport):
                DtsEmitHelpers.emit_import(writer, entity, entity.ast_entity)
                imports_emitted = True

        if imports_emitted:
            writer.write_line()

        for entity in collector.entities:
            if entity.exported:
                ApiReportGenerator._write_entity(writer, collector, entity)

        DtsEmitHelpers.emit_star_exports(writer, collector)

        unassociated = collector.message_router.fetch_unassociated_messages_for_review_file()
        if unassociated:
            writer.write_line()
            ApiReportGenerator._write_line_as_comments(
                writer, "Warnings were encountered during analysis:"
            )
            ApiReportGenerator._write_line_as_comments(writer, "")
            for message in unassociated:
                ApiReportGenerator._write_line_as_comments(
                    writer, message.format_message_with_location()
                )

        if collector.package_documentation is None:
            writer.write_line()
            ApiReportGenerator._write_line_as_comments(
                writer, "(No @packageDocumentation comment for this package)"
            )

        writer.write_line("\n```")

        return convert_newlines(_TRIM_SPACES_RE.sub("", writer.to_string()), newline_kind)

    @staticmethod
    def _write_entity(writer: StringWriter, collector: Collector, entity: CollectorEntity) -> None:
        # Messages that name an export are written next to that export statement
        exports_to_emit: dict[str, list[ExtractorMessage]] = {}
        if not entity.should_inline_export:
            for export_name in entity.export_names:
                exports_to_emit[export_name] = []

        ast_entity = entity.ast_entity
        if isinstance(ast_entity, AstSymbol):
            for declaration_id in ast_entity.declaration_ids:
                messages_to_report: list[ExtractorMessage] = []
                for message in collector.fetch_associated_messages_for_review_file(declaration_id):
                    if message.export_name and message.export_name in exports_to_emit:
                        exports_to_emit[message.export_name].append(message)
                    else:
                        messages_to_report.append(message)

                writer.write(
                    ApiReportGenerator._get_synopsis(collector, declaration_id, messages_to_report)
                )

                declaration = collector.get_declaration(declaration_id)
                span = Span(declaration.node)
                if collector.fetch_api_item_metadata(declaration_id).is_preapproved:
                    DtsEmitHelpers.modify_span_for_preapproved(span)
                else:
                    ApiReportGenerator._modify_span(collector, span, entity, declaration, False)

                span.write_modified_text(writer.string_builder)
                writer.write_line("\n")

        for export_name, messages in exports_to_emit.items():
            for message in messages:
                ApiReportGenerator._write_line_as_comments(
                    writer, "Warning: " + message.format_message_without_location()
                )
            DtsEmitHelpers.emit_named_export(writer, export_name, entity)
            writer.write_line()

    @staticmethod
    def _modify_span(
        collector: Collector,
        span: Span,
        entity: CollectorEntity,
        declaration: AstDeclaration,
        inside_type_literal: bool,
    ) -> None:
        if declaration.is_private:
            span.modification.skip_all()
            return

        previous_span = span.previous_sibling
        recurse_children = True
        sort_children = False
        kind = span.kind

        if kind == SyntaxKind.JSDOC_COMMENT:
            span.modification.skip_all()
            recurse_children = False

        elif kind in (
            SyntaxKind.EXPORT_KEYWORD,
            SyntaxKind.DEFAULT_KEYWORD,
            SyntaxKind.DECLARE_KEYWORD,
        ):
            span.modification.skip_all()

        elif kind in DECLARATION_KEYWORDS:
            replaced_modifiers = "export " if entity.should_inline_export else ""
            if previous_span is not None and previous_span.kind == SyntaxKind.SYNTAX_LIST:
                previous_span.modification.prefix = (
                    replaced_modifiers + previous_span.modification.prefix
                )
            else:
                span.modification.prefix = replaced_modifiers + span.modification.prefix

        elif kind == SyntaxKind.SYNTAX_LIST:
            parent = span.parent
            if parent is not None and (
                is_declaration_kind(parent.kind) or parent.kind == SyntaxKind.MODULE_BLOCK
            ):
                # Members of a class, interface, enum or namespace body
                sort_children = True

        elif kind == SyntaxKind.VARIABLE_DECLARATION:
            if span.parent is None:
                variable_list = span.node.match_ancestor(
                    [SyntaxKind.VARIABLE_DECLARATION_LIST, SyntaxKind.VARIABLE_DECLARATION]
                )
                if variable_list is None:
                    raise InternalError("Unsupported variable declaration")
                first_declaration = variable_list.find_child(SyntaxKind.VARIABLE_DECLARATION)
                list_prefix = span.node.source_file.text[variable_list.start : first_declaration.start]
                span.modification.prefix = list_prefix + span.modification.prefix
                span.modification.suffix = ";"
                if entity.should_inline_export:
                    span.modification.prefix = "export " + span.modification.prefix

        elif kind == SyntaxKind.IDENTIFIER:
            referenced_entity = collector.try_get_entity_for_node(span.node)
            if referenced_entity is not None:
                if not referenced_entity.name_for_emit:
                    raise InternalError(
                        f'The entity "{referenced_entity.ast_entity.local_name}" has no name_for_emit'
                    )
                span.modification.prefix = referenced_entity.name_for_emit

        elif kind == SyntaxKind.TYPE_LITERAL:
            inside_type_literal = True

        elif kind == SyntaxKind.IMPORT_TYPE:
            DtsEmitHelpers.modify_import_type_span(
                collector,
                span,
                declaration,
                lambda child, child_declaration: ApiReportGenerator._modify_span(
                    collector, child, entity, child_declaration, inside_type_literal
                ),
            )
            recurse_children = False

        if not recurse_children:
            return

        for child in span.children:
            child_declaration = declaration

            if is_declaration_kind(child.kind):
                child_declaration = collector.get_child_declaration_by_node(child.node, declaration)

                if sort_children:
                    span.modification.sort_children = True
                    child.modification.sort_key = get_sort_key_ignoring_underscore(
                        child_declaration.symbol.local_name
                    )

                if not inside_type_literal:
                    messages = collector.fetch_associated_messages_for_review_file(
                        child_declaration.declaration_id
                    )
                    synopsis = ApiReportGenerator._get_synopsis(
                        collector, child_declaration.declaration_id, messages
                    )
                    indented = ApiReportGenerator._add_indent_after_newlines(
                        synopsis, child.get_indent()
                    )
                    child.modification.prefix = indented + child.modification.prefix

                if collector.fetch_api_item_metadata(child_declaration.declaration_id).is_preapproved:
                    DtsEmitHelpers.modify_span_for_preapproved(child)
                    continue

            ApiReportGenerator._modify_span(
                collector, child, entity, child_declaration, inside_type_literal
            )

    @staticmethod
    def _get_synopsis(
        collector: Collector, declaration_id: int, messages_to_report: list[ExtractorMessage]
    ) -> str:
        """
        The comment lines written above a declaration: its warnings, then a
        footer with the release tag and documentation flags.
        """
        writer = StringWriter()

        for message in messages_to_report:
            ApiReportGenerator._write_line_as_comments(
                writer, "Warning: " + message.format_message_without_location()
            )

        if not collector.is_ancillary_declaration(declaration_id):
            footer_parts = collector.fetch_api_item_metadata(declaration_id).synopsis_footer()
            if footer_parts:
                if messages_to_report:
                    ApiReportGenerator._write_line_as_comments(writer, "")
                ApiReportGenerator._write_line_as_comments(writer, " ".join(footer_parts))

        return writer.to_string()

    @staticmethod
    def _write_line_as_comments(writer: StringWriter, line: str) -> None:
        for real_line in line.replace("\r\n", "\n").split("\n"):
            writer.write("// ")
            writer.write(real_line)
            writer.write_line()

    @staticmethod
    def _add_indent_after_newlines(text: str, indent: str) -> str:
        if not text or not indent:
            return text
        return text.replace("\n", "\n" + indent)
