"""
trim_policy.py

Decides which declarations survive in each release-tier rollup.

A declaration is kept when its effective release tag is at least as visible
as the tier. A dropped top-level declaration that is still referenced by
something kept is put back in full ("rescued") and reported with an
`ae-incompatible-trim` message, so the rollup never references a name it
does not declare.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from apirollup.analyzer.ast_entities import AstDeclaration, AstSymbol
from apirollup.analyzer.front_end import ReleaseTag

from .messages import ExtractorMessage, ExtractorMessageId

if TYPE_CHECKING:
    from .collector import Collector


class DtsRollupKind(enum.Enum):
    """The rollup flavours, from least to most trimmed."""

    # Everything, including @internal declarations
    INTERNAL_RELEASE = "internal"
    # @alpha and above
    ALPHA_RELEASE = "alpha"
    # @beta and above
    BETA_RELEASE = "beta"
    # @public only
    PUBLIC_RELEASE = "public"

    @property
    def threshold(self) -> ReleaseTag:
        return _THRESHOLDS[self]


_THRESHOLDS: dict[DtsRollupKind, ReleaseTag] = {
    DtsRollupKind.INTERNAL_RELEASE: ReleaseTag.INTERNAL,
    DtsRollupKind.ALPHA_RELEASE: ReleaseTag.ALPHA,
    DtsRollupKind.BETA_RELEASE: ReleaseTag.BETA,
    DtsRollupKind.PUBLIC_RELEASE: ReleaseTag.PUBLIC,
}


class TrimPolicy:
    @staticmethod
    def should_include_release_tag(release_tag: ReleaseTag, kind: DtsRollupKind) -> bool:
        return _includes(release_tag, kind.threshold)


def _includes(release_tag: ReleaseTag, threshold: ReleaseTag) -> bool:
    # Untagged (external) declarations are never trimmed
    return release_tag == ReleaseTag.NONE or release_tag >= threshold


@dataclass
class TrimPlan:
    """The declarations kept for one rollup tier."""

    kind: DtsRollupKind
    kept_declaration_ids: set[int] = field(default_factory=set)
    rescued_declaration_ids: set[int] = field(default_factory=set)
    messages: list[ExtractorMessage] = field(default_factory=list)

    def is_kept(self, declaration_id: int) -> bool:
        return declaration_id in self.kept_declaration_ids

    @classmethod
    def plan(cls, collector: Collector, kind: DtsRollupKind) -> TrimPlan:
        result = cls(kind=kind)
        threshold = kind.threshold
        pending: list[AstDeclaration] = []

        symbols = [
            entity.ast_entity
            for entity in collector.entities
            if isinstance(entity.ast_entity, AstSymbol)
        ]

        for symbol in symbols:
            for declaration_id in symbol.declaration_ids:
                tag = collector.fetch_api_item_metadata(declaration_id).effective_release_tag
                if _includes(tag, threshold):
                    pending.extend(result._keep(collector, declaration_id, threshold))

        # Closure over references from kept declarations
        while pending:
            declaration = pending.pop(0)
            for referenced in collector.referenced_entities(declaration.declaration_id):
                if not isinstance(referenced, AstSymbol) or referenced.is_external:
                    continue
                if collector.try_get_collector_entity(referenced) is None:
                    continue
                for declaration_id in referenced.declaration_ids:
                    if declaration_id in result.kept_declaration_ids:
                        continue
                    pending.extend(
                        result._rescue(collector, declaration, declaration_id, threshold)
                    )

        return result

    def _keep(
        self, collector: Collector, declaration_id: int, threshold: ReleaseTag
    ) -> list[AstDeclaration]:
        """
        Marks a declaration and its qualifying members as kept. Returns the
        kept declarations whose references still need to be followed.
        """
        declaration = collector.get_declaration(declaration_id)
        metadata = collector.fetch_api_item_metadata(declaration_id)
        self.kept_declaration_ids.add(declaration_id)

        # The body of a preapproved declaration is never emitted
        if metadata.is_preapproved:
            return []

        kept = [declaration]
        for child_id in declaration.child_ids:
            tag = collector.fetch_api_item_metadata(child_id).effective_release_tag
            if _includes(tag, threshold):
                kept.extend(self._keep(collector, child_id, threshold))
        return kept

    def _rescue(
        self,
        collector: Collector,
        referencing: AstDeclaration,
        declaration_id: int,
        threshold: ReleaseTag,
    ) -> list[AstDeclaration]:
        declaration = collector.get_declaration(declaration_id)
        tag = collector.fetch_api_item_metadata(declaration_id).effective_release_tag
        self.rescued_declaration_ids.add(declaration_id)
        self.messages.append(
            collector.message_router.build_message(
                ExtractorMessageId.INCOMPATIBLE_TRIM,
                f'The symbol "{declaration.symbol.local_name}" is marked as {tag.tag_name}, but'
                f' it is referenced by "{referencing.symbol.local_name}" which is included in the'
                f" {self.kind.value} release; it was kept in the trimmed output",
                declaration_id=declaration_id,
                node=declaration.node,
            )
        )
        # Members as visible as the rescued declaration itself come along with it
        return self._keep(collector, declaration_id, min(threshold, tag))
