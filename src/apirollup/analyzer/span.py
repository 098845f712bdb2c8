"""
span.py

A rewritable overlay for a syntax tree.

A Span mirrors one SyntaxNode and its children, and divides the node's source
text into a prefix (text before the first child), the children, a suffix
(text after the last child), and a separator (trivia following the span,
before its next sibling). Edits are recorded on each span's SpanModification;
the underlying tree is never changed.
"""

from __future__ import annotations

from dataclasses import dataclass

from apirollup.shared.errors import InternalError

from .syntax import SyntaxKind, SyntaxNode


class SpanModification:
    """
    Edit instructions for a single Span.

    `prefix` and `suffix` default to the span's original text until they are
    assigned.
    """

    def __init__(self, span: Span) -> None:
        self._span = span
        self._prefix: str | None = None
        self._suffix: str | None = None
        self.omit_children = False
        self.omit_separator_after = False
        self.sort_children = False
        self.sort_key: str | None = None

    @property
    def prefix(self) -> str:
        return self._prefix if self._prefix is not None else self._span.prefix

    @prefix.setter
    def prefix(self, value: str) -> None:
        self._prefix = value

    @property
    def suffix(self) -> str:
        return self._suffix if self._suffix is not None else self._span.suffix

    @suffix.setter
    def suffix(self, value: str) -> None:
        self._suffix = value

    @property
    def skipped(self) -> bool:
        return (
            self.omit_children
            and self.omit_separator_after
            and self._prefix == ""
            and self._suffix == ""
        )

    def reset(self) -> None:
        self._prefix = None
        self._suffix = None
        self.omit_children = False
        self.omit_separator_after = False
        self.sort_children = False
        self.sort_key = None

    def skip_all(self) -> None:
        """The span contributes no text at all, including its separator."""
        self.prefix = ""
        self.suffix = ""
        self.omit_children = True
        self.omit_separator_after = True


@dataclass(slots=True)
class _WriteOptions:
    writer: list[str]
    separator_override: str | None = None


class Span:
    """
    Rewritable wrapper around one SyntaxNode.

    With no modifications anywhere in the subtree, get_modified_text()
    reproduces get_text() exactly.
    """

    def __init__(self, node: SyntaxNode) -> None:
        self.node = node
        self.start_index = node.start
        self.end_index = node.end
        self.children: list[Span] = []
        self.modification = SpanModification(self)

        self._parent: Span | None = None
        self._previous_sibling: Span | None = None
        self._next_sibling: Span | None = None
        self._separator_start_index = 0
        self._separator_end_index = 0

        previous: Span | None = None
        for child_node in node.children:
            child = Span(child_node)
            child._parent = self
            child._previous_sibling = previous

            if child.start_index < self.start_index or child.end_index > self.end_index:
                raise InternalError(
                    f"{child.kind.value} at {child.start_index}:{child.end_index} lies outside "
                    f"its parent {self.kind.value} at {self.start_index}:{self.end_index}"
                )

            if previous is not None:
                previous._next_sibling = child

                if child.start_index < previous.end_index:
                    raise InternalError(
                        f"{child.kind.value} overlaps its previous sibling {previous.kind.value}"
                    )

                if previous.end_index < child.start_index:
                    # Give the gap to the deepest trailing descendant that has no suffix
                    recipient = previous
                    while recipient.children:
                        last_child = recipient.children[-1]
                        if last_child.end_index != recipient.end_index:
                            break
                        recipient = last_child
                    recipient._separator_start_index = previous.end_index
                    recipient._separator_end_index = child.start_index

            self.children.append(child)
            previous = child

    @property
    def kind(self) -> SyntaxKind:
        return self.node.kind

    @property
    def parent(self) -> Span | None:
        return self._parent

    @property
    def previous_sibling(self) -> Span | None:
        return self._previous_sibling

    @property
    def next_sibling(self) -> Span | None:
        return self._next_sibling

    @property
    def prefix(self) -> str:
        """The original text before the first child (or the whole text of a leaf)."""
        if self.children:
            return self._get_substring(self.start_index, self.children[0].start_index)
        return self._get_substring(self.start_index, self.end_index)

    @property
    def suffix(self) -> str:
        """The original text after the last child."""
        if self.children:
            return self._get_substring(self.children[-1].end_index, self.end_index)
        return ""

    @property
    def separator(self) -> str:
        """Trivia following this span, before the next sibling of an ancestor."""
        return self._get_substring(self._separator_start_index, self._separator_end_index)

    def get_last_inner_separator(self) -> str:
        """
        Returns the separator of this span, or else of its deepest last
        descendant that carries one.
        """
        if self.separator:
            return self.separator
        if self.children:
            return self.children[-1].get_last_inner_separator()
        return ""

    def get_indent(self) -> str:
        """Whitespace between the start of the line and the start of this span."""
        text = self.node.source_file.text
        line_start = text.rfind("\n", 0, self.start_index) + 1
        indent = text[line_start : self.start_index]
        if indent.strip(" \t"):
            return ""
        return indent

    def find_first_parent(self, kind: SyntaxKind) -> Span | None:
        current = self._parent
        while current is not None:
            if current.kind == kind:
                return current
            current = current._parent
        return None

    def get_text(self) -> str:
        """The original text, including the separator."""
        parts: list[str] = []
        self._write_original_text(parts)
        return "".join(parts)

    def get_modified_text(self) -> str:
        parts: list[str] = []
        self.write_modified_text(parts)
        return "".join(parts)

    def write_modified_text(self, writer: list[str]) -> None:
        self._write_modified_text(_WriteOptions(writer=writer))

    def get_dump(self, indent: str = "") -> str:
        """Debugging view of the span tree and how the text was divided."""
        result = f"{indent}{self.kind.value}:"
        if self.prefix:
            result += f" pre=[{self.prefix}]"
        if self.suffix:
            result += f" suf=[{self.suffix}]"
        if self.separator:
            result += f" sep=[{self.separator}]"
        result += "\n"
        for child in self.children:
            result += child.get_dump(indent + "  ")
        return result

    # --- Private Helpers ---

    def _get_substring(self, start: int, end: int) -> str:
        if end <= start:
            return ""
        return self.node.source_file.text[start:end]

    def _write_original_text(self, writer: list[str]) -> None:
        writer.append(self.prefix)
        for child in self.children:
            child._write_original_text(writer)
        writer.append(self.suffix)
        writer.append(self.separator)

    def _write_modified_text(self, options: _WriteOptions) -> None:
        modification = self.modification
        options.writer.append(modification.prefix)

        child_count = len(self.children)

        if not modification.omit_children:
            if modification.sort_children and child_count > 1:
                sorted_subset = [c for c in self.children if c.modification.sort_key is not None]
                sorted_count = len(sorted_subset)

                if sorted_count > 1:
                    first_separator = sorted_subset[0].get_last_inner_separator()
                    last_separator = sorted_subset[-1].get_last_inner_separator()

                    sorted_subset.sort(key=lambda c: (c.modification.sort_key or "").casefold())

                    sorted_index = 0
                    for child in self.children:
                        if child.modification.sort_key is None:
                            current = child
                            child_options = _WriteOptions(writer=options.writer)
                        else:
                            current = sorted_subset[sorted_index]
                            sorted_index += 1
                            separator = (
                                first_separator if sorted_index < sorted_count else last_separator
                            )
                            child_options = _WriteOptions(
                                writer=options.writer, separator_override=separator
                            )
                        current._write_modified_text(child_options)

                    self._write_tail(options)
                    return

            if options.separator_override is not None:
                # Only the last child can contain the "last inner separator"
                for index, child in enumerate(self.children):
                    if index < child_count - 1 or self.separator:
                        child._write_modified_text(_WriteOptions(writer=options.writer))
                    else:
                        child._write_modified_text(options)
            else:
                for child in self.children:
                    child._write_modified_text(options)

        self._write_tail(options)

    def _write_tail(self, options: _WriteOptions) -> None:
        options.writer.append(self.modification.suffix)

        if options.separator_override is not None:
            if self.separator or not self.children:
                options.writer.append(options.separator_override)
        elif not self.modification.omit_separator_after:
            options.writer.append(self.separator)
