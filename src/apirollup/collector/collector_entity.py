from __future__ import annotations

from apirollup.analyzer.ast_entities import AstEntity, AstSymbol


def get_sort_key_ignoring_underscore(identifier: str | None) -> str:
    """
    Sort key that files "_foo" next to "foo". Case-insensitive first, with the
    original spelling and the underscore as tie-breakers.
    """
    if not identifier:
        return ""
    if identifier[0] == "_":
        without_underscore = identifier[1:]
        return f"{without_underscore.lower()}*{without_underscore}!_"
    return f"{identifier.lower()}*{identifier}"


class CollectorEntity:
    """
    The emission-level wrapper around one AstEntity: the name it is emitted
    under and the names the entry point exports it as.
    """

    def __init__(self, ast_entity: AstEntity) -> None:
        self.ast_entity = ast_entity
        self._name_for_emit: str | None = None
        # Insertion-ordered set
        self._export_names: dict[str, None] = {}

    @property
    def name_for_emit(self) -> str | None:
        return self._name_for_emit

    @name_for_emit.setter
    def name_for_emit(self, value: str) -> None:
        self._name_for_emit = value

    @property
    def export_names(self) -> list[str]:
        return list(self._export_names)

    @property
    def single_export_name(self) -> str | None:
        if len(self._export_names) == 1:
            return next(iter(self._export_names))
        return None

    @property
    def exported(self) -> bool:
        return bool(self._export_names)

    @property
    def should_inline_export(self) -> bool:
        """
        True when the `export` keyword can be written on the declaration itself
        instead of a separate `export { ... }` statement.
        """
        if not isinstance(self.ast_entity, AstSymbol):
            return False
        single = self.single_export_name
        if single is None or single == "default":
            return False
        return self._name_for_emit is None or self._name_for_emit == single

    @property
    def sort_key(self) -> str:
        return get_sort_key_ignoring_underscore(self._name_for_emit)

    def add_export_name(self, export_name: str) -> None:
        self._export_names[export_name] = None

    def __repr__(self) -> str:
        return (
            f"CollectorEntity({self.ast_entity.local_name!r}, "
            f"name_for_emit={self._name_for_emit!r}, exports={self.export_names})"
        )
