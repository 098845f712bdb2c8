"""
collector.py

Entity resolution for one analysis pass.

The Collector turns the front-end's symbols, imports, bindings and exports
into the tables every generator reads: one CollectorEntity per reachable
AstEntity with a collision-free name, a declaration arena with nested member
declarations, per-declaration metadata (release tags, ancillary grouping),
and the analysis messages. Everything is computed in analyze(); afterwards
the Collector is only read.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from apirollup.analyzer.ast_entities import AstDeclaration, AstEntity, AstImport, AstSymbol
from apirollup.analyzer.front_end import AnalysisInput, ReleaseTag
from apirollup.analyzer.syntax import SyntaxKind, SyntaxNode, is_declaration_kind
from apirollup.shared.errors import InternalError

from .collector_entity import CollectorEntity
from .messages import ExtractorMessage, ExtractorMessageId, MessageRouter
from .metadata import ApiItemMetadata, SignatureMetadata

PREAPPROVABLE_KINDS: frozenset[SyntaxKind] = frozenset(
    {
        SyntaxKind.CLASS_DECLARATION,
        SyntaxKind.ENUM_DECLARATION,
        SyntaxKind.INTERFACE_DECLARATION,
        SyntaxKind.MODULE_DECLARATION,
    }
)


class Collector:
    """
    Resolves the exported surface of a package into emission-ready entities.
    """

    def __init__(
        self,
        analysis: AnalysisInput,
        *,
        message_reporting: dict[str, Any] | None = None,
    ) -> None:
        self.analysis = analysis
        self.message_router = MessageRouter(message_reporting)

        # Declaration arena
        self._declarations: dict[int, AstDeclaration] = {}
        self._declaration_ids_by_node: dict[int, int] = {}
        self._references: dict[int, list[AstEntity]] = {}

        self._symbols_by_key: dict[str, AstSymbol] = {}
        self._imports_by_key: dict[str, AstImport] = {}

        self._entities: list[CollectorEntity] = []
        self._entities_by_ast_entity: dict[AstEntity, CollectorEntity] = {}

        self._signature_metadata: dict[int, SignatureMetadata] = {}
        self._api_item_metadata: dict[int, ApiItemMetadata] = {}

        self._star_exported_external_module_paths: list[str] = []
        self._analyzed = False

    # --- Public API ---

    @property
    def package_name(self) -> str:
        return self.analysis.package_name

    @property
    def package_documentation(self) -> str | None:
        return self.analysis.package_documentation

    @property
    def entities(self) -> list[CollectorEntity]:
        """Entities in emission order (sorted by their underscore-insensitive key)."""
        return list(self._entities)

    @property
    def star_exported_external_module_paths(self) -> list[str]:
        return list(self._star_exported_external_module_paths)

    def analyze(self) -> None:
        """
        Runs the whole resolution phase. Must complete before any rendering,
        since name collisions are only known once the reachable set is closed.
        """
        if self._analyzed:
            raise InternalError("Collector.analyze() was called more than once")

        self._build_symbol_table()
        self._collect_references()

        exported_entities: list[AstEntity] = []
        for export_name, key in self.analysis.exports:
            ast_entity = self._lookup_entity(key)
            if isinstance(ast_entity, AstSymbol) and ast_entity.parent_symbol is not None:
                raise InternalError(f'The export "{export_name}" refers to a nested member')
            self._create_collector_entity(ast_entity, export_name)
            if ast_entity not in exported_entities:
                exported_entities.append(ast_entity)

        # Exports are processed first so that they claim their entities before
        # indirect references do
        already_seen: set[AstEntity] = set()
        for ast_entity in exported_entities:
            self._create_entity_for_indirect_references(ast_entity, already_seen)

        self._make_unique_names()
        self._star_exported_external_module_paths = sorted(set(self.analysis.star_exports))

        self._calculate_metadata()
        self._route_front_end_messages()
        self._validate()

        self._entities.sort(key=lambda e: e.sort_key)
        self._analyzed = True

    def get_declaration(self, declaration_id: int) -> AstDeclaration:
        try:
            return self._declarations[declaration_id]
        except KeyError:
            raise InternalError(f"Unknown declaration id {declaration_id}") from None

    def get_declaration_for_node(self, node: SyntaxNode) -> AstDeclaration | None:
        declaration_id = self._declaration_ids_by_node.get(node.node_id)
        return self._declarations[declaration_id] if declaration_id is not None else None

    def get_child_declaration_by_node(
        self, node: SyntaxNode, parent: AstDeclaration
    ) -> AstDeclaration:
        child = self.get_declaration_for_node(node)
        if child is None or child.parent_id != parent.declaration_id:
            raise InternalError(
                f"Child declaration not found for {node.kind.value} under "
                f'"{parent.symbol.local_name}"'
            )
        return child

    def walk_declaration(self, declaration_id: int) -> Iterator[AstDeclaration]:
        """Pre-order walk over a declaration and its nested declarations."""
        declaration = self.get_declaration(declaration_id)
        yield declaration
        for child_id in declaration.child_ids:
            yield from self.walk_declaration(child_id)

    def iter_symbol_declarations(self, symbol: AstSymbol) -> Iterator[AstDeclaration]:
        for declaration_id in symbol.declaration_ids:
            yield from self.walk_declaration(declaration_id)

    def referenced_entities(self, declaration_id: int) -> list[AstEntity]:
        """Root-level entities referenced directly by a declaration's own syntax."""
        return list(self._references.get(declaration_id, []))

    def try_get_collector_entity(self, ast_entity: AstEntity) -> CollectorEntity | None:
        return self._entities_by_ast_entity.get(ast_entity)

    def try_get_entity_for_node(self, node: SyntaxNode) -> CollectorEntity | None:
        """The entity an identifier (or import type) is bound to, if it has one."""
        key = self.analysis.resolve(node)
        if key is None:
            return None
        return self._entities_by_ast_entity.get(self._lookup_entity(key))

    def fetch_signature_metadata(self, declaration_id: int) -> SignatureMetadata:
        try:
            return self._signature_metadata[declaration_id]
        except KeyError:
            raise InternalError(f"No signature metadata for declaration {declaration_id}") from None

    def fetch_api_item_metadata(self, declaration_id: int) -> ApiItemMetadata:
        signature = self.fetch_signature_metadata(declaration_id)
        if signature.is_ancillary:
            if signature.primary_declaration_id is None:
                raise InternalError("Ancillary declaration has no primary declaration")
            declaration_id = signature.primary_declaration_id
        try:
            return self._api_item_metadata[declaration_id]
        except KeyError:
            raise InternalError(f"No API item metadata for declaration {declaration_id}") from None

    def is_ancillary_declaration(self, declaration_id: int) -> bool:
        return self.fetch_signature_metadata(declaration_id).is_ancillary

    def fetch_max_release_tag(self, symbol: AstSymbol) -> ReleaseTag:
        result = ReleaseTag.NONE
        for declaration_id in symbol.declaration_ids:
            tag = self.fetch_api_item_metadata(declaration_id).effective_release_tag
            if tag > result:
                result = tag
        return result

    def fetch_associated_messages_for_review_file(
        self, declaration_id: int
    ) -> list[ExtractorMessage]:
        """
        Messages to print above a declaration in the API report. Messages of
        ancillary declarations are reported under their primary declaration.
        """
        signature = self.fetch_signature_metadata(declaration_id)
        if signature.is_ancillary:
            return []
        return self.message_router.fetch_associated_messages_for_review_file(
            [declaration_id, *signature.ancillary_declaration_ids]
        )

    # --- Symbol Table ---

    def _build_symbol_table(self) -> None:
        for symbol_input in self.analysis.symbols:
            if symbol_input.key in self._symbols_by_key:
                raise ValueError(f'Duplicate symbol key "{symbol_input.key}"')
            symbol = AstSymbol(
                name=symbol_input.local_name,
                key=symbol_input.key,
                is_external=symbol_input.is_external,
            )
            self._symbols_by_key[symbol.key] = symbol
            for node in symbol_input.declarations:
                self._add_declaration(node, symbol, None)

        for import_input in self.analysis.imports:
            if import_input.key in self._imports_by_key or import_input.key in self._symbols_by_key:
                raise ValueError(f'Duplicate entity key "{import_input.key}"')
            self._imports_by_key[import_input.key] = AstImport(
                import_kind=import_input.import_kind,
                module_path=import_input.module_path,
                export_name=import_input.export_name,
                is_type_only_everywhere=import_input.is_type_only_everywhere,
            )

    def _add_declaration(self, node: SyntaxNode, symbol: AstSymbol, parent_id: int | None) -> None:
        if not is_declaration_kind(node.kind):
            raise InternalError(f"{node.kind.value} is not a supported declaration kind")
        if node.node_id in self._declaration_ids_by_node:
            raise InternalError(f'The node {node!r} was declared twice ("{symbol.local_name}")')

        declaration_id = len(self._declarations) + 1
        declaration = AstDeclaration(
            declaration_id=declaration_id, node=node, symbol=symbol, parent_id=parent_id
        )
        self._declarations[declaration_id] = declaration
        self._declaration_ids_by_node[node.node_id] = declaration_id
        symbol.declaration_ids.append(declaration_id)
        if parent_id is not None:
            self._declarations[parent_id].child_ids.append(declaration_id)

        for child_node in self._find_nested_declaration_nodes(node):
            member_name = child_node.get_declaration_name()
            member_key = f"{symbol.key}#{member_name}"
            if SyntaxKind.STATIC_KEYWORD in child_node.modifier_kinds():
                member_key += ":static"
            member = self._symbols_by_key.get(member_key)
            if member is None:
                member = AstSymbol(
                    name=member_name,
                    key=member_key,
                    parent_symbol=symbol,
                    is_external=symbol.is_external,
                )
                self._symbols_by_key[member_key] = member
            self._add_declaration(child_node, member, declaration_id)

    @staticmethod
    def _find_nested_declaration_nodes(node: SyntaxNode) -> Iterator[SyntaxNode]:
        for child in node.children:
            if is_declaration_kind(child.kind):
                yield child
            else:
                yield from Collector._find_nested_declaration_nodes(child)

    def _collect_references(self) -> None:
        for declaration in self._declarations.values():
            found: list[AstEntity] = []
            own_root = declaration.symbol.root_symbol
            for node in self._iter_own_nodes(declaration.node):
                key = self.analysis.resolve(node)
                if key is None:
                    continue
                referenced = self._lookup_entity(key)
                if isinstance(referenced, AstSymbol):
                    referenced = referenced.root_symbol
                    if referenced is own_root:
                        continue
                if referenced not in found:
                    found.append(referenced)
            self._references[declaration.declaration_id] = found

    @staticmethod
    def _iter_own_nodes(node: SyntaxNode) -> Iterator[SyntaxNode]:
        """The declaration's nodes, excluding those of nested declarations."""
        yield node
        for child in node.children:
            if is_declaration_kind(child.kind):
                continue
            yield from Collector._iter_own_nodes(child)

    def _lookup_entity(self, key: str) -> AstEntity:
        if key in self._symbols_by_key:
            return self._symbols_by_key[key]
        if key in self._imports_by_key:
            return self._imports_by_key[key]
        raise InternalError(f'The binding refers to an unknown entity "{key}"')

    # --- Entities & Naming ---

    def _create_collector_entity(
        self, ast_entity: AstEntity, export_name: str | None
    ) -> CollectorEntity:
        entity = self._entities_by_ast_entity.get(ast_entity)
        if entity is None:
            entity = CollectorEntity(ast_entity)
            self._entities.append(entity)
            self._entities_by_ast_entity[ast_entity] = entity
        if export_name:
            entity.add_export_name(export_name)
        return entity

    def _create_entity_for_indirect_references(
        self, ast_entity: AstEntity, already_seen: set[AstEntity]
    ) -> None:
        if ast_entity in already_seen:
            return
        already_seen.add(ast_entity)

        if isinstance(ast_entity, AstSymbol):
            for declaration in self.iter_symbol_declarations(ast_entity):
                for referenced in self._references[declaration.declaration_id]:
                    self._create_collector_entity(referenced, None)
                    self._create_entity_for_indirect_references(referenced, already_seen)

    def _make_unique_names(self) -> None:
        # Examples:
        #   class X {}; export { X as A };                 -> "A"
        #   class X {}; export { X as A }; export { X as B } -> "X"
        #   ...plus class Y {}; export { Y as X };         -> X becomes "X_1"
        #   class X {}; export default X;                  -> "X" ("default" is never emitted)
        used_names: set[str] = set()
        global_names = self.analysis.global_names

        for entity in self._entities:
            for export_name in entity.export_names:
                if export_name in used_names:
                    raise InternalError(
                        f'A package cannot have two exports with the name "{export_name}"'
                    )
                used_names.add(export_name)

        for entity in self._entities:
            single = entity.single_export_name
            if single is not None and single != "default":
                ideal_name = single
            else:
                ideal_name = entity.ast_entity.local_name

            if (
                ideal_name in entity.export_names
                and ideal_name not in global_names
                and ideal_name != "default"
            ):
                entity.name_for_emit = ideal_name
                continue

            suffix = 0
            name_for_emit = ideal_name
            while (
                name_for_emit == "default"
                or name_for_emit in used_names
                or name_for_emit in global_names
            ):
                suffix += 1
                name_for_emit = f"{ideal_name}_{suffix}"

            entity.name_for_emit = name_for_emit
            used_names.add(name_for_emit)

    # --- Metadata ---

    def _calculate_metadata(self) -> None:
        for declaration in self._declarations.values():
            flags = self.analysis.flags_for(declaration.node)
            self._signature_metadata[declaration.declaration_id] = SignatureMetadata(
                documented=flags.documented
            )

        for symbol in self._symbols_by_key.values():
            for declaration_id in symbol.declaration_ids:
                declaration = self._declarations[declaration_id]
                if declaration.kind != SyntaxKind.SET_ACCESSOR:
                    continue
                for sibling_id in symbol.declaration_ids:
                    sibling = self._declarations[sibling_id]
                    if sibling_id != declaration_id and sibling.kind == SyntaxKind.GET_ACCESSOR:
                        self._add_ancillary_declaration(sibling_id, declaration_id)
                        break

        # Arena order visits parents before their children
        for declaration in self._declarations.values():
            self._calculate_api_item_metadata(declaration)

    def _add_ancillary_declaration(self, primary_id: int, ancillary_id: int) -> None:
        primary = self._signature_metadata[primary_id]
        ancillary = self._signature_metadata[ancillary_id]

        if ancillary_id in primary.ancillary_declaration_ids:
            return
        if self._declarations[primary_id].symbol is not self._declarations[ancillary_id].symbol:
            raise InternalError(
                "Invalid ancillary declaration: the declarations do not belong to the same symbol"
            )
        if primary.is_ancillary:
            raise InternalError("Invalid ancillary declaration: the target is ancillary itself")
        if ancillary.is_ancillary:
            raise InternalError(
                "Invalid ancillary declaration: the source is already ancillary to another declaration"
            )
        if ancillary.ancillary_declaration_ids:
            raise InternalError(
                "Invalid ancillary declaration: the source has ancillary declarations of its own"
            )

        ancillary.is_ancillary = True
        ancillary.primary_declaration_id = primary_id
        primary.ancillary_declaration_ids.append(ancillary_id)

    def _calculate_api_item_metadata(self, declaration: AstDeclaration) -> None:
        signature = self._signature_metadata[declaration.declaration_id]

        if signature.is_ancillary:
            if declaration.kind == SyntaxKind.SET_ACCESSOR and signature.documented:
                self.message_router.add_analyzer_issue(
                    ExtractorMessageId.SETTER_WITH_DOCS,
                    f'The doc comment for the property "{declaration.symbol.local_name}"'
                    " must appear on the getter, not the setter.",
                    declaration_id=declaration.declaration_id,
                    node=declaration.node,
                )
            return

        flags = self.analysis.flags_for(declaration.node)
        parent_metadata = (
            self._api_item_metadata[declaration.parent_id]
            if declaration.parent_id is not None
            else None
        )

        effective_release_tag = flags.release_tag
        if effective_release_tag == ReleaseTag.NONE and not declaration.symbol.is_external:
            if parent_metadata is not None:
                effective_release_tag = parent_metadata.effective_release_tag
            else:
                effective_release_tag = ReleaseTag.PUBLIC

        is_preapproved = flags.is_preapproved
        if is_preapproved and declaration.kind not in PREAPPROVABLE_KINDS:
            self.message_router.add_analyzer_issue(
                ExtractorMessageId.PREAPPROVED_UNSUPPORTED_TYPE,
                f'The @preapproved tag cannot be applied to "{declaration.symbol.local_name}"'
                " because it is not a supported declaration type",
                declaration_id=declaration.declaration_id,
                node=declaration.node,
            )
            is_preapproved = False

        self._api_item_metadata[declaration.declaration_id] = ApiItemMetadata(
            declared_release_tag=flags.release_tag,
            effective_release_tag=effective_release_tag,
            release_tag_same_as_parent=(
                parent_metadata is not None
                and parent_metadata.effective_release_tag == effective_release_tag
            ),
            is_sealed=flags.is_sealed,
            is_virtual=flags.is_virtual,
            is_override=flags.is_override,
            is_event_property=flags.is_event_property,
            is_preapproved=is_preapproved,
            has_deprecated_block=flags.has_deprecated_block,
            needs_documentation=flags.undocumented,
        )

    # --- Messages & Validation ---

    def _route_front_end_messages(self) -> None:
        for message in self.analysis.messages:
            declaration = None
            node = message.node
            while node is not None and declaration is None:
                declaration = self.get_declaration_for_node(node)
                node = node.parent
            self.message_router.add_analyzer_issue(
                message.message_id,
                message.text,
                declaration_id=declaration.declaration_id if declaration else None,
                node=message.node,
                export_name=message.export_name,
            )

    def _validate(self) -> None:
        already_warned: set[AstEntity] = set()
        for entity in self._entities:
            if not entity.exported or not isinstance(entity.ast_entity, AstSymbol):
                continue
            symbol = entity.ast_entity
            if symbol.is_external:
                continue

            self._check_missing_release_tag(entity, symbol)
            self._check_internal_underscore(entity, symbol)
            self._check_inconsistent_release_tags(symbol)

            for declaration in self.iter_symbol_declarations(symbol):
                self._check_references(declaration, already_warned)

    def _check_missing_release_tag(self, entity: CollectorEntity, symbol: AstSymbol) -> None:
        declared = [
            self._api_item_metadata[d].declared_release_tag for d in symbol.declaration_ids
        ]
        if any(tag != ReleaseTag.NONE for tag in declared):
            return
        first = self._declarations[symbol.declaration_ids[0]]
        self.message_router.add_analyzer_issue(
            ExtractorMessageId.MISSING_RELEASE_TAG,
            f'"{symbol.local_name}" is exported by the package, but it is missing a release tag'
            " (@alpha, @beta, @public, or @internal)",
            declaration_id=first.declaration_id,
            node=first.node,
        )

    def _check_internal_underscore(self, entity: CollectorEntity, symbol: AstSymbol) -> None:
        if self.fetch_max_release_tag(symbol) != ReleaseTag.INTERNAL:
            return
        first = self._declarations[symbol.declaration_ids[0]]
        for export_name in entity.export_names:
            if export_name.startswith("_") or export_name == "default":
                continue
            self.message_router.add_analyzer_issue(
                ExtractorMessageId.INTERNAL_MISSING_UNDERSCORE,
                f'The name "{export_name}" should be prefixed with an underscore because the'
                " declaration is marked as @internal",
                declaration_id=first.declaration_id,
                node=first.node,
                export_name=export_name,
            )

    def _check_inconsistent_release_tags(self, symbol: AstSymbol) -> None:
        if len(symbol.declaration_ids) < 2:
            return
        first_tag = self._api_item_metadata[symbol.declaration_ids[0]].effective_release_tag
        for declaration_id in symbol.declaration_ids[1:]:
            if self._api_item_metadata[declaration_id].effective_release_tag != first_tag:
                declaration = self._declarations[declaration_id]
                self.message_router.add_analyzer_issue(
                    ExtractorMessageId.DIFFERENT_RELEASE_TAGS,
                    "This symbol has another declaration with a different release tag",
                    declaration_id=declaration_id,
                    node=declaration.node,
                )

    def _check_references(
        self, declaration: AstDeclaration, already_warned: set[AstEntity]
    ) -> None:
        release_tag = self.fetch_api_item_metadata(declaration.declaration_id).effective_release_tag

        for referenced in self._references[declaration.declaration_id]:
            if not isinstance(referenced, AstSymbol) or referenced.is_external:
                continue

            entity = self._entities_by_ast_entity.get(referenced)
            if entity is not None and entity.exported:
                referenced_tag = self.fetch_max_release_tag(referenced)
                if release_tag > referenced_tag:
                    self.message_router.add_analyzer_issue(
                        ExtractorMessageId.INCOMPATIBLE_RELEASE_TAGS,
                        f'The symbol "{declaration.symbol.local_name}" is marked as'
                        f" {release_tag.tag_name}, but its signature references"
                        f' "{referenced.local_name}" which is marked as {referenced_tag.tag_name}',
                        declaration_id=declaration.declaration_id,
                        node=declaration.node,
                    )
            elif referenced not in already_warned:
                already_warned.add(referenced)
                local_name = (entity.name_for_emit if entity else None) or referenced.local_name
                self.message_router.add_analyzer_issue(
                    ExtractorMessageId.FORGOTTEN_EXPORT,
                    f'The symbol "{local_name}" needs to be exported by the entry point'
                    f" {self.analysis.entry_point_file_name}",
                    declaration_id=declaration.declaration_id,
                    node=declaration.node,
                )
