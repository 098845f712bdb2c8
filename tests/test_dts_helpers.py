"""
Unit tests for statement synthesis shared by the generators.
"""

import pytest

from apirollup.analyzer.ast_entities import AstImport, AstImportKind, AstSymbol
from apirollup.collector.collector_entity import CollectorEntity, get_sort_key_ignoring_underscore
from apirollup.generators.dts_helpers import DtsEmitHelpers
from apirollup.generators.string_writer import StringWriter, convert_newlines


def _emit_import(kind, module_path, export_name, name, *, type_only=False) -> str:
    ast_import = AstImport(
        import_kind=kind,
        module_path=module_path,
        export_name=export_name,
        is_type_only_everywhere=type_only,
    )
    entity = CollectorEntity(ast_import)
    entity.name_for_emit = name
    writer = StringWriter()
    DtsEmitHelpers.emit_import(writer, entity, ast_import)
    return writer.to_string()


def _symbol_entity(name: str, *export_names: str) -> CollectorEntity:
    entity = CollectorEntity(AstSymbol(name=name, key=name))
    for export_name in export_names:
        entity.add_export_name(export_name)
    entity.name_for_emit = name
    return entity


class TestEmitImport:
    """Import statements for each import kind."""

    @pytest.mark.parametrize(
        "kind,module_path,export_name,name,expected",
        [
            (AstImportKind.DEFAULT_IMPORT, "lib", "X", "X", "import X from 'lib';\n"),
            (
                AstImportKind.DEFAULT_IMPORT,
                "lib",
                "X",
                "X_1",
                "import { default as X_1 } from 'lib';\n",
            ),
            (AstImportKind.NAMED_IMPORT, "lib", "Y", "Y", "import { Y } from 'lib';\n"),
            (AstImportKind.NAMED_IMPORT, "lib", "Y", "Y_1", "import { Y as Y_1 } from 'lib';\n"),
            (AstImportKind.STAR_IMPORT, "lib", "ns", "ns", "import * as ns from 'lib';\n"),
            (AstImportKind.EQUALS_IMPORT, "fs", "fs", "fs", "import fs = require('fs');\n"),
            (AstImportKind.IMPORT_TYPE, "lib", "NS.Member", "NS", "import { NS } from 'lib';\n"),
            (
                AstImportKind.IMPORT_TYPE,
                "lib",
                "NS.Member",
                "NS_1",
                "import { NS as NS_1 } from 'lib';\n",
            ),
            (
                AstImportKind.IMPORT_TYPE,
                "my-lib",
                "",
                "my_lib",
                "import * as my_lib from 'my-lib';\n",
            ),
        ],
    )
    def test_import_forms(self, kind, module_path, export_name, name, expected):
        assert _emit_import(kind, module_path, export_name, name) == expected

    def test_type_only_import(self):
        text = _emit_import(AstImportKind.NAMED_IMPORT, "lib", "Y", "Y", type_only=True)

        assert text == "import type { Y } from 'lib';\n"


class TestEmitNamedExport:
    """Export statements for entities that cannot be exported inline."""

    def test_default_export(self):
        writer = StringWriter()
        DtsEmitHelpers.emit_named_export(writer, "default", _symbol_entity("Foo", "default"))

        assert writer.to_string() == "export default Foo;\n"

    def test_aliased_export(self):
        writer = StringWriter()
        DtsEmitHelpers.emit_named_export(writer, "Bar", _symbol_entity("Foo", "Bar", "Baz"))

        assert writer.to_string() == "export { Foo as Bar }\n"

    def test_plain_export(self):
        writer = StringWriter()
        DtsEmitHelpers.emit_named_export(writer, "Foo", _symbol_entity("Foo", "Foo", "Bar"))

        assert writer.to_string() == "export { Foo }\n"


class TestImportLocalNames:
    """Local names and keys of imported entities."""

    def test_import_type_uses_top_of_qualifier_chain(self):
        ast_import = AstImport(
            import_kind=AstImportKind.IMPORT_TYPE, module_path="lib", export_name="NS.Member"
        )

        assert ast_import.local_name == "NS"
        assert ast_import.key == "lib:NS"

    def test_import_type_without_qualifier_uses_module_name(self):
        ast_import = AstImport(
            import_kind=AstImportKind.IMPORT_TYPE, module_path="@scope/my-lib", export_name=""
        )

        assert ast_import.local_name == "my_lib"
        assert ast_import.key == "@scope/my-lib:*"


class TestSortKeys:
    """Underscore-insensitive ordering."""

    def test_sort_key_format(self):
        assert get_sort_key_ignoring_underscore("_foo") == "foo*foo!_"
        assert get_sort_key_ignoring_underscore("Foo") == "foo*Foo"
        assert get_sort_key_ignoring_underscore(None) == ""

    def test_underscore_names_sort_next_to_plain_names(self):
        names = ["C", "_b", "a", "b"]

        assert sorted(names, key=get_sort_key_ignoring_underscore) == ["a", "b", "_b", "C"]


class TestStringWriter:
    """Newline conventions."""

    def test_crlf(self):
        writer = StringWriter()
        writer.write("a")
        writer.write_line()
        writer.write_line("b")

        assert writer.to_string("crlf") == "a\r\nb\r\n"

    def test_mixed_input_is_normalized(self):
        assert convert_newlines("a\r\nb\n", "lf") == "a\nb\n"

    def test_invalid_newline_kind(self):
        with pytest.raises(ValueError, match="newline_kind"):
            convert_newlines("a\n", "cr")
