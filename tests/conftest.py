import pytest

# A front-end dump of a package with one public class, a beta member typed
# with a named import, and a star export.
WIDGET_DUMP = """\
package:
  name: "@acme/widgets"
entry_point: index.d.ts
global_names: [Promise]
files:
  - path: index.d.ts
    tree:
      - kind: ClassDeclaration
        ref: Widget
        children:
          - kind: SyntaxList
            children:
              - {kind: ExportKeyword, text: export}
              - " "
              - {kind: DeclareKeyword, text: declare}
          - " "
          - {kind: ClassKeyword, text: class}
          - " "
          - {kind: Identifier, text: Widget}
          - " "
          - {kind: OpenBraceToken, text: "{"}
          - "\\n    "
          - kind: SyntaxList
            children:
              - kind: PropertyDeclaration
                ref: Widget.base
                children:
                  - {kind: Identifier, text: base}
                  - {kind: ColonToken, text: ":"}
                  - " "
                  - kind: TypeReference
                    children:
                      - {kind: Identifier, text: Base, ref: base_type}
                  - {kind: SemicolonToken, text: ";"}
          - "\\n"
          - {kind: CloseBraceToken, text: "}"}
      - "\\n"
symbols:
  - key: Widget
    local_name: Widget
    declarations:
      - {ref: Widget, release_tag: public, documented: true}
    members:
      Widget.base: {release_tag: beta, documented: true}
imports:
  - {key: "lib:Base", kind: named, module_path: lib, export_name: Base}
bindings:
  base_type: "lib:Base"
exports:
  - {name: Widget, key: Widget}
star_exports: [other-lib]
messages:
  - {id: ae-custom, text: Custom note, ref: Widget.base}
"""


@pytest.fixture
def widget_dump_path(tmp_path):
    """Writes the sample front-end dump and returns its path."""
    path = tmp_path / "module-graph.yaml"
    path.write_text(WIDGET_DUMP, encoding="utf-8")
    return path
