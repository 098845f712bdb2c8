"""
rollup_generator.py

Writes the consolidated declaration file for one release tier.
"""

import re

from apirollup.analyzer.ast_entities import AstDeclaration, AstImport, AstSymbol
from apirollup.analyzer.span import Span
from apirollup.analyzer.syntax import SyntaxKind, is_declaration_kind
from apirollup.collector.collector import Collector
from apirollup.collector.collector_entity import CollectorEntity
from apirollup.collector.trim_policy import DtsRollupKind, TrimPlan
from apirollup.shared.errors import InternalError

from .dts_helpers import DECLARATION_KEYWORDS, DtsEmitHelpers
from .string_writer import StringWriter

_PACKAGE_DOCUMENTATION_RE = re.compile(r"(?:\s|\*)@packageDocumentation(?:\s|\*)", re.IGNORECASE)


class DtsRollupGenerator:
    """
    Renders the entities of an analyzed Collector as a single declaration file,
    trimmed to one release tier.
    """

    @staticmethod
    def generate(
        collector: Collector,
        kind: DtsRollupKind,
        *,
        omit_trimming_comments: bool = True,
        newline_kind: str = "lf",
        plan: TrimPlan | None = None,
    ) -> str:
        if plan is None:
            plan = TrimPlan.plan(collector, kind)
        generator = DtsRollupGenerator(collector, plan, omit_trimming_comments)
        return generator._generate().to_string(newline_kind)

    def __init__(self, collector: Collector, plan: TrimPlan, omit_trimming_comments: bool) -> None:
        self.collector = collector
        self.plan = plan
        self.omit_trimming_comments = omit_trimming_comments

    def _generate(self) -> StringWriter:
        writer = StringWriter()
        collector = self.collector

        if collector.package_documentation:
            writer.write_line(collector.package_documentation)
            writer.write_line()

        # Imports are never trimmed; every declaration below starts with a blank line
        for entity in collector.entities:
            if isinstance(entity.ast_entity, AstImport):
                DtsEmitHelpers.emit_import(writer, entity, entity.ast_entity)

        for entity in collector.entities:
            ast_entity = entity.ast_entity

            if isinstance(ast_entity, AstSymbol):
                kept_ids = [d for d in ast_entity.declaration_ids if self.plan.is_kept(d)]
                if not kept_ids:
                    if not self.omit_trimming_comments:
                        writer.write_line()
                        writer.write_line(
                            f"/* Excluded from this release type: {entity.name_for_emit} */"
                        )
                    continue

                for declaration_id in ast_entity.declaration_ids:
                    if not self.plan.is_kept(declaration_id):
                        if not self.omit_trimming_comments:
                            writer.write_line()
                            writer.write_line(
                                "/* Excluded declaration from this release type: "
                                f"{entity.name_for_emit} */"
                            )
                        continue

                    declaration = collector.get_declaration(declaration_id)
                    span = Span(declaration.node)
                    if collector.fetch_api_item_metadata(declaration_id).is_preapproved:
                        DtsEmitHelpers.modify_span_for_preapproved(
                            span, self._replaced_modifiers(entity, declaration)
                        )
                    else:
                        self._modify_span(span, entity, declaration)
                    writer.write_line()
                    span.write_modified_text(writer.string_builder)
                    writer.write_line()

            if not entity.should_inline_export:
                for export_name in entity.export_names:
                    DtsEmitHelpers.emit_named_export(writer, export_name, entity)

        DtsEmitHelpers.emit_star_exports(writer, collector)

        # Keeps consumers from importing declarations that lack an explicit "export"
        writer.write_line()
        writer.write_line("export { }")
        return writer

    @staticmethod
    def _replaced_modifiers(entity: CollectorEntity, declaration: AstDeclaration) -> str:
        modifiers = "declare " if declaration.parent_id is None else ""
        if entity.should_inline_export:
            modifiers = "export " + modifiers
        return modifiers

    def _modify_span(self, span: Span, entity: CollectorEntity, declaration: AstDeclaration) -> None:
        collector = self.collector
        previous_span = span.previous_sibling
        recurse_children = True
        kind = span.kind

        if kind == SyntaxKind.JSDOC_COMMENT:
            # The package documentation is written once at the top of the file
            if _PACKAGE_DOCUMENTATION_RE.search(span.node.get_text()):
                span.modification.skip_all()
            recurse_children = False

        elif kind in (
            SyntaxKind.EXPORT_KEYWORD,
            SyntaxKind.DEFAULT_KEYWORD,
            SyntaxKind.DECLARE_KEYWORD,
        ):
            # Re-added in front of the declaration keyword
            span.modification.skip_all()

        elif kind in DECLARATION_KEYWORDS:
            replaced_modifiers = self._replaced_modifiers(entity, declaration)
            if previous_span is not None and previous_span.kind == SyntaxKind.SYNTAX_LIST:
                # Before any remaining modifiers such as "abstract"
                previous_span.modification.prefix = (
                    replaced_modifiers + previous_span.modification.prefix
                )
            else:
                span.modification.prefix = replaced_modifiers + span.modification.prefix

        elif kind == SyntaxKind.VARIABLE_DECLARATION:
            if span.parent is None:
                self._modify_top_level_variable(span, entity)

        elif kind == SyntaxKind.IDENTIFIER:
            referenced_entity = collector.try_get_entity_for_node(span.node)
            if referenced_entity is not None:
                if not referenced_entity.name_for_emit:
                    raise InternalError(
                        f'The entity "{referenced_entity.ast_entity.local_name}" has no name_for_emit'
                    )
                span.modification.prefix = referenced_entity.name_for_emit

        elif kind == SyntaxKind.IMPORT_TYPE:
            DtsEmitHelpers.modify_import_type_span(
                collector,
                span,
                declaration,
                lambda child, child_declaration: self._modify_span(child, entity, child_declaration),
            )
            recurse_children = False

        if not recurse_children:
            return

        for child in span.children:
            child_declaration = declaration
            if is_declaration_kind(child.kind):
                child_declaration = collector.get_child_declaration_by_node(child.node, declaration)
                if not self.plan.is_kept(child_declaration.declaration_id):
                    self._trim_span(child, child_declaration)
                    continue
                if collector.fetch_api_item_metadata(child_declaration.declaration_id).is_preapproved:
                    DtsEmitHelpers.modify_span_for_preapproved(child)
                    continue
            self._modify_span(child, entity, child_declaration)

    def _modify_top_level_variable(self, span: Span, entity: CollectorEntity) -> None:
        # One VariableStatement can declare several variables; each one is
        # emitted as its own statement with a copy of the list's keyword.
        node = span.node
        variable_list = node.match_ancestor(
            [SyntaxKind.VARIABLE_DECLARATION_LIST, SyntaxKind.VARIABLE_DECLARATION]
        )
        if variable_list is None:
            raise InternalError("Unsupported variable declaration")

        first_declaration = variable_list.find_child(SyntaxKind.VARIABLE_DECLARATION)
        list_prefix = node.source_file.text[variable_list.start : first_declaration.start]

        span.modification.prefix = "declare " + list_prefix + span.modification.prefix
        span.modification.suffix = ";"
        if entity.should_inline_export:
            span.modification.prefix = "export " + span.modification.prefix

        # The doc comment is attached to the enclosing statement, outside this span
        statement = variable_list.parent
        if statement is not None and statement.kind == SyntaxKind.VARIABLE_STATEMENT:
            doc_comment = statement.find_child(SyntaxKind.JSDOC_COMMENT)
            if doc_comment is not None:
                comment_text = doc_comment.get_text()
                if not re.search(r"\r?\n\s*$", comment_text):
                    comment_text += "\n"
                span.modification.prefix = comment_text + span.modification.prefix

    def _trim_span(self, child: Span, child_declaration: AstDeclaration) -> None:
        node_to_trim = child
        # Trimming a variable removes its whole statement
        if child.kind == SyntaxKind.VARIABLE_DECLARATION:
            statement = child.find_first_parent(SyntaxKind.VARIABLE_STATEMENT)
            if statement is not None:
                node_to_trim = statement

        modification = node_to_trim.modification
        modification.omit_children = True
        if not self.omit_trimming_comments:
            modification.prefix = (
                f"/* Excluded from this release type: {child_declaration.symbol.local_name} */"
            )
        else:
            modification.prefix = ""
        modification.suffix = ""

        if node_to_trim.children:
            # The last grandchild's separator usually holds the line break
            modification.suffix = node_to_trim.children[-1].separator

        next_sibling = node_to_trim.next_sibling
        if next_sibling is not None and next_sibling.kind == SyntaxKind.COMMA_TOKEN:
            # e.g. an enum member
            modification.suffix += next_sibling.separator
            next_sibling.modification.skip_all()
