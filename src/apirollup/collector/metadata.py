from dataclasses import dataclass, field

from apirollup.analyzer.front_end import ReleaseTag


@dataclass(slots=True)
class SignatureMetadata:
    """
    Per-declaration state. Each AstDeclaration gets its own record, even when it
    is ancillary to another declaration.
    """

    documented: bool = False
    is_ancillary: bool = False
    ancillary_declaration_ids: list[int] = field(default_factory=list)
    primary_declaration_id: int | None = None


@dataclass(slots=True)
class ApiItemMetadata:
    """
    Per-API-item state. Ancillary declarations share the record of their
    primary declaration.
    """

    declared_release_tag: ReleaseTag = ReleaseTag.NONE
    effective_release_tag: ReleaseTag = ReleaseTag.NONE
    release_tag_same_as_parent: bool = False
    is_sealed: bool = False
    is_virtual: bool = False
    is_override: bool = False
    is_event_property: bool = False
    is_preapproved: bool = False
    has_deprecated_block: bool = False
    needs_documentation: bool = False

    def synopsis_footer(self) -> list[str]:
        parts: list[str] = []
        if not self.release_tag_same_as_parent and self.effective_release_tag != ReleaseTag.NONE:
            parts.append(self.effective_release_tag.tag_name)
        if self.is_sealed:
            parts.append("@sealed")
        if self.is_virtual:
            parts.append("@virtual")
        if self.is_override:
            parts.append("@override")
        if self.is_event_property:
            parts.append("@eventProperty")
        if self.has_deprecated_block:
            parts.append("@deprecated")
        if self.needs_documentation:
            parts.append("(undocumented)")
        return parts
