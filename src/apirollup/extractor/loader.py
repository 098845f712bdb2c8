"""
loader.py

Reads the front-end's YAML dump of an analyzed module graph and materializes
it as an AnalysisInput.

Layout of the dump:

    package: {name: "@scope/pkg", documentation: "/** ... */"}
    entry_point: index.d.ts
    global_names: [Promise]
    files:
      - path: index.d.ts
        tree:                       # strings are trivia, mappings are nodes
          - kind: ClassDeclaration
            ref: Widget             # label used by the sections below
            children: [...]
          - "\\n"
    symbols:
      - key: Widget
        local_name: Widget
        declarations: [Widget]      # node refs, or {ref: ..., <doc flags>}
        members: {Widget.size: {release_tag: beta}}
    imports:
      - {key: "lib:Base", kind: named, module_path: lib, export_name: Base}
    bindings: {Widget.base: "lib:Base"}
    exports: [{name: Widget, key: Widget}]
    star_exports: [other-lib]
    messages: [{id: ae-..., text: ..., ref: Widget}]
"""

from pathlib import Path
from typing import Any

import yaml

from apirollup.analyzer.ast_entities import AstImportKind
from apirollup.analyzer.front_end import (
    AnalysisInput,
    DocFlags,
    ImportInput,
    MessageInput,
    ReleaseTag,
    SymbolInput,
)
from apirollup.analyzer.syntax import NodePart, NodeSpec, SyntaxKind, SyntaxTreeBuilder

_DOC_FLAG_KEYS = frozenset(DocFlags.__slots__)


def _require(data: Any, key: str, section: str) -> Any:
    if not isinstance(data, dict) or data.get(key) in (None, ""):
        raise ValueError(f'Entry in "{section}" is missing "{key}": {data!r}')
    return data[key]



class FrontEndDumpLoader:
    """
    Converts a front-end dump into the syntax contract used by the Collector.
    """

    def load(self, path: str | Path) -> AnalysisInput:
        dump_path = Path(path)
        if not dump_path.is_file():
            raise FileNotFoundError(f"Front-end dump not found: {dump_path}")

        with open(dump_path, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Failed to parse front-end dump {dump_path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Front-end dump {dump_path} must contain a mapping")
        return self.load_data(data)

    def load_data(self, data: dict[str, Any]) -> AnalysisInput:
        package = data.get("package") or {}
        if not package.get("name"):
            raise ValueError('The front-end dump has no "package.name"')

        builder = SyntaxTreeBuilder()
        for file_data in data.get("files") or []:
            path = _require(file_data, "path", "files")
            parts = [self._to_part(p) for p in file_data.get("tree") or []]
            builder.build_file(path, *parts)

        analysis = AnalysisInput(
            package_name=package["name"],
            files=list(builder.files),
            global_names=set(data.get("global_names") or []),
            package_documentation=package.get("documentation"),
            entry_point=data.get("entry_point"),
        )

        for symbol_data in data.get("symbols") or []:
            analysis.symbols.append(self._load_symbol(symbol_data, builder, analysis))

        for import_data in data.get("imports") or []:
            analysis.imports.append(self._load_import(import_data))

        for ref, key in (data.get("bindings") or {}).items():
            analysis.bindings[builder.get(ref).node_id] = key

        for ref, flags in (data.get("doc_flags") or {}).items():
            analysis.doc_flags[builder.get(ref).node_id] = self._load_doc_flags(flags)

        for export_data in data.get("exports") or []:
            name = _require(export_data, "name", "exports")
            analysis.exports.append((name, _require(export_data, "key", "exports")))

        analysis.star_exports.extend(data.get("star_exports") or [])

        for message_data in data.get("messages") or []:
            ref = message_data.get("ref")
            analysis.messages.append(
                MessageInput(
                    message_id=_require(message_data, "id", "messages"),
                    text=_require(message_data, "text", "messages"),
                    node=builder.get(ref) if ref else None,
                    export_name=message_data.get("export_name"),
                )
            )

        return analysis

    # --- Private Helpers ---

    def _to_part(self, data: Any) -> NodePart:
        if isinstance(data, str):
            return data
        if not isinstance(data, dict):
            raise ValueError(f"Invalid tree entry: {data!r}")

        kind_name = data.get("kind")
        try:
            kind = SyntaxKind(kind_name)
        except ValueError:
            raise ValueError(f'Unsupported syntax kind "{kind_name}"') from None

        if "text" in data:
            return NodeSpec(kind=kind, text=str(data["text"]), ref=data.get("ref"))
        return NodeSpec(
            kind=kind,
            parts=[self._to_part(c) for c in data.get("children") or []],
            ref=data.get("ref"),
        )

    def _load_symbol(
        self, data: dict[str, Any], builder: SyntaxTreeBuilder, analysis: AnalysisInput
    ) -> SymbolInput:
        declarations = []
        for entry in data.get("declarations") or []:
            if isinstance(entry, str):
                declarations.append(builder.get(entry))
                continue
            flags = dict(entry)
            node = builder.get(_require(flags, "ref", "symbols"))
            del flags["ref"]
            declarations.append(node)
            if flags:
                analysis.doc_flags[node.node_id] = self._load_doc_flags(flags)

        for ref, flags in (data.get("members") or {}).items():
            analysis.doc_flags[builder.get(ref).node_id] = self._load_doc_flags(flags)

        return SymbolInput(
            key=_require(data, "key", "symbols"),
            local_name=data.get("local_name") or data["key"],
            declarations=declarations,
            is_external=bool(data.get("is_external", False)),
        )

    def _load_import(self, data: dict[str, Any]) -> ImportInput:
        kind_name = _require(data, "kind", "imports")
        try:
            import_kind = AstImportKind(kind_name)
        except ValueError:
            raise ValueError(f'Unsupported import kind "{kind_name}"') from None
        return ImportInput(
            key=_require(data, "key", "imports"),
            import_kind=import_kind,
            module_path=_require(data, "module_path", "imports"),
            export_name=data.get("export_name") or "",
            is_type_only_everywhere=bool(data.get("type_only", False)),
        )

    def _load_doc_flags(self, data: dict[str, Any]) -> DocFlags:
        unknown = set(data) - _DOC_FLAG_KEYS
        if unknown:
            raise ValueError(f"Unknown doc flags: {', '.join(sorted(unknown))}")
        values = dict(data)
        values["release_tag"] = ReleaseTag.from_name(values.get("release_tag"))
        return DocFlags(**values)
