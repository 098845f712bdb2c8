"""
messages.py

Diagnostics produced while analyzing the package, and the router that decides
where each one ends up: next to a declaration in the API report, next to an
export statement, at the bottom of the report, or on the console.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from apirollup.analyzer.syntax import SyntaxNode


class ExtractorMessageId:
    MISSING_RELEASE_TAG = "ae-missing-release-tag"
    FORGOTTEN_EXPORT = "ae-forgotten-export"
    INCOMPATIBLE_RELEASE_TAGS = "ae-incompatible-release-tags"
    INTERNAL_MISSING_UNDERSCORE = "ae-internal-missing-underscore"
    DIFFERENT_RELEASE_TAGS = "ae-different-release-tags"
    SETTER_WITH_DOCS = "ae-setter-with-docs"
    PREAPPROVED_UNSUPPORTED_TYPE = "ae-preapproved-unsupported-type"
    INCOMPATIBLE_TRIM = "ae-incompatible-trim"


class LogLevel(enum.Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    VERBOSE = "verbose"
    NONE = "none"


@dataclass(slots=True)
class ExtractorMessage:
    message_id: str
    text: str
    source_path: str | None = None
    line: int | None = None
    column: int | None = None
    declaration_id: int | None = None
    export_name: str | None = None
    log_level: LogLevel = LogLevel.WARNING
    add_to_report: bool = True

    def format_message_without_location(self) -> str:
        return f"({self.message_id}) {self.text}"

    def format_message_with_location(self) -> str:
        if self.source_path is None:
            return self.format_message_without_location()
        location = self.source_path
        if self.line is not None:
            location += f":{self.line}:{self.column or 1}"
        return f"{location} - {self.format_message_without_location()}"


def _location_of(node: SyntaxNode) -> tuple[str, int, int]:
    text = node.source_file.text
    line = text.count("\n", 0, node.start) + 1
    column = node.start - (text.rfind("\n", 0, node.start) + 1) + 1
    return node.source_file.path, line, column


class MessageRouter:
    """
    Collects analysis messages and applies the configured reporting rules.

    Lookups used while rendering are pure: fetching the messages for a
    declaration does not change the router's state.
    """

    def __init__(self, reporting: dict[str, Any] | None = None) -> None:
        self._reporting = reporting or {}
        self._messages: list[ExtractorMessage] = []
        self._by_declaration: dict[int, list[ExtractorMessage]] = {}
        self._unassociated: list[ExtractorMessage] = []

    @property
    def messages(self) -> list[ExtractorMessage]:
        return list(self._messages)

    def build_message(
        self,
        message_id: str,
        text: str,
        *,
        declaration_id: int | None = None,
        node: SyntaxNode | None = None,
        export_name: str | None = None,
    ) -> ExtractorMessage:
        """Creates a message with the configured rule applied, without recording it."""
        log_level, add_to_report = self._rule_for(message_id)
        message = ExtractorMessage(
            message_id=message_id,
            text=text,
            declaration_id=declaration_id,
            export_name=export_name,
            log_level=log_level,
            add_to_report=add_to_report,
        )
        if node is not None:
            message.source_path, message.line, message.column = _location_of(node)
        return message

    def add_analyzer_issue(
        self,
        message_id: str,
        text: str,
        *,
        declaration_id: int | None = None,
        node: SyntaxNode | None = None,
        export_name: str | None = None,
    ) -> ExtractorMessage:
        message = self.build_message(
            message_id,
            text,
            declaration_id=declaration_id,
            node=node,
            export_name=export_name,
        )

        self._messages.append(message)
        if declaration_id is not None:
            self._by_declaration.setdefault(declaration_id, []).append(message)
        else:
            self._unassociated.append(message)
        return message

    def fetch_associated_messages_for_review_file(
        self, declaration_ids: list[int]
    ) -> list[ExtractorMessage]:
        result: list[ExtractorMessage] = []
        for declaration_id in declaration_ids:
            for message in self._by_declaration.get(declaration_id, []):
                if message.add_to_report:
                    result.append(message)
        return result

    def fetch_unassociated_messages_for_review_file(self) -> list[ExtractorMessage]:
        return [m for m in self._unassociated if m.add_to_report]

    def messages_for_console(self, report_enabled: bool) -> list[ExtractorMessage]:
        """Messages not already written into the API report."""
        return [
            m
            for m in self._messages
            if m.log_level != LogLevel.NONE and not (report_enabled and m.add_to_report)
        ]

    def _rule_for(self, message_id: str) -> tuple[LogLevel, bool]:
        rule = dict(self._reporting.get("default", {}))
        rule.update(self._reporting.get(message_id, {}))
        try:
            log_level = LogLevel(rule.get("log_level", "warning"))
        except ValueError:
            raise ValueError(
                f'Invalid log_level "{rule.get("log_level")}" for message "{message_id}"'
            ) from None
        return log_level, bool(rule.get("add_to_report", True))
