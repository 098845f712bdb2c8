from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from apirollup.analyzer.ast_entities import AstImport, AstSymbol
from apirollup.analyzer.front_end import AnalysisInput
from apirollup.collector.collector import Collector
from apirollup.collector.messages import ExtractorMessage, LogLevel
from apirollup.collector.trim_policy import DtsRollupKind, TrimPlan
from apirollup.generators.report_generator import ApiReportGenerator
from apirollup.generators.rollup_generator import DtsRollupGenerator
from apirollup.shared.console import ConsoleManager
from apirollup.shared.errors import InternalError

from .config import ConfigurationManager

_ROLLUP_PATH_KEYS: dict[DtsRollupKind, str] = {
    DtsRollupKind.INTERNAL_RELEASE: "untrimmed_file_path",
    DtsRollupKind.ALPHA_RELEASE: "alpha_trimmed_file_path",
    DtsRollupKind.BETA_RELEASE: "beta_trimmed_file_path",
    DtsRollupKind.PUBLIC_RELEASE: "public_trimmed_file_path",
}


@dataclass(slots=True)
class ExtractorResult:
    """Outcome of one ExtractorService.invoke() run."""

    succeeded: bool = False
    error_count: int = 0
    warning_count: int = 0
    api_report_changed: bool = False
    rollup_files: list[str] = field(default_factory=list)
    rollup_errors: dict[str, str] = field(default_factory=dict)
    report_error: str | None = None


class ExtractorService:
    """
    Core service: resolves the analyzed package, then writes the API report and
    the configured rollups.
    """

    def __init__(
        self,
        *,
        app_config: dict[str, Any],
        project_folder: Path,
        logger: ConsoleManager,
    ) -> None:
        self._app_config = app_config
        self._project_folder = project_folder
        self._logger = logger

    def invoke(self, analysis: AnalysisInput) -> ExtractorResult:
        """
        Executes the full extraction for one package.
        """
        config = self._resolve_config(analysis.package_name)
        result = ExtractorResult()
        newline_kind = config.get("newline_kind", "lf")

        self._logger.info(f"Analysis of {analysis.package_name}")
        collector = Collector(analysis, message_reporting=config.get("messages"))
        collector.analyze()

        if config.get("report_enabled"):
            try:
                result.api_report_changed = self._write_report(
                    collector, config, newline_kind, result
                )
            except InternalError as e:
                # Rollups are still written
                self._logger.error(f"Failed to generate the API report: {e}")
                result.report_error = str(e)
                result.error_count += 1

        console_messages: list[ExtractorMessage] = list(
            collector.message_router.messages_for_console(bool(config.get("report_enabled")))
        )

        if config.get("rollup_enabled"):
            for kind, path_key in _ROLLUP_PATH_KEYS.items():
                target = config.get(path_key)
                if not target:
                    continue
                try:
                    plan = TrimPlan.plan(collector, kind)
                    console_messages.extend(plan.messages)
                    content = DtsRollupGenerator.generate(
                        collector,
                        kind,
                        omit_trimming_comments=config.get("omit_trimming_comments", True),
                        newline_kind=newline_kind,
                        plan=plan,
                    )
                except InternalError as e:
                    # Other tiers are still written
                    self._logger.error(f"Failed to generate the {kind.value} rollup: {e}")
                    result.rollup_errors[kind.value] = str(e)
                    result.error_count += 1
                    continue

                output_path = self._write_file(target, content)
                result.rollup_files.append(str(output_path))
                self._logger.info(f"Writing package typings: {output_path}")

        if config.get("entity_table_path"):
            self.write_entity_table(collector, self._resolve_path(config["entity_table_path"]))

        for message in console_messages:
            if message.log_level == LogLevel.ERROR:
                result.error_count += 1
            elif message.log_level == LogLevel.WARNING:
                result.warning_count += 1
            self._logger.report_message(message)

        if config.get("local_build"):
            # Warnings are expected while iterating locally
            result.succeeded = result.error_count == 0
        else:
            result.succeeded = result.error_count == 0 and result.warning_count == 0

        return result

    def write_entity_table(self, collector: Collector, path: Path) -> None:
        """
        Writes the resolved entities (names, exports, declarations) to a YAML
        file for debugging.
        """
        entities: list[dict[str, Any]] = []
        for entity in collector.entities:
            ast_entity = entity.ast_entity
            entry: dict[str, Any] = {
                "name_for_emit": entity.name_for_emit,
                "local_name": ast_entity.local_name,
                "export_names": entity.export_names,
                "inline_export": entity.should_inline_export,
            }
            if isinstance(ast_entity, AstSymbol):
                entry["declarations"] = [
                    {
                        "kind": d.kind.value,
                        "release_tag": collector.fetch_api_item_metadata(
                            d.declaration_id
                        ).effective_release_tag.tag_name,
                        "text": d.node.get_text(),
                    }
                    for d in collector.iter_symbol_declarations(ast_entity)
                    if d.parent_id is None
                ]
            elif isinstance(ast_entity, AstImport):
                entry["import"] = {
                    "kind": ast_entity.import_kind.value,
                    "module_path": ast_entity.module_path,
                    "export_name": ast_entity.export_name,
                }
            entities.append(entry)

        data = {
            "package": collector.package_name,
            "entities": entities,
            "star_exports": collector.star_exported_external_module_paths,
        }

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            self._yaml_dump_no_alias(data, f)

        self._logger.info(f"Entity table written to: {path}")

    # --- Private Helpers ---

    def _resolve_config(self, package_name: str) -> dict[str, Any]:
        return ConfigurationManager.expand_paths(self._app_config, package_name)

    def _resolve_path(self, value: str) -> Path:
        path = Path(value)
        return path if path.is_absolute() else self._project_folder / path

    def _write_file(self, target: str, content: str) -> Path:
        output_path = self._resolve_path(target)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        # newline="" keeps the configured line endings
        with open(output_path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        return output_path

    def _write_report(
        self,
        collector: Collector,
        config: dict[str, Any],
        newline_kind: str,
        result: ExtractorResult,
    ) -> bool:
        """
        Writes the report to the temp folder and compares it with the approved
        copy. Returns True when they differ.
        """
        file_name = config["report_file_name"]
        actual_path = self._resolve_path(config["report_temp_folder"]) / file_name
        expected_path = self._resolve_path(config["report_folder"]) / file_name

        content = ApiReportGenerator.generate(collector, newline_kind=newline_kind)
        self._write_file(str(actual_path), content)

        if not expected_path.exists():
            if config.get("local_build"):
                self._write_file(str(expected_path), content)
                self._logger.warning(
                    f"The API report file was missing, so a new file was created: {expected_path}"
                )
            else:
                self._logger.error(
                    f"The API report file is missing. Please copy the file {actual_path}"
                    f" to {expected_path} and include it in your commit."
                )
                result.error_count += 1
            return True

        with open(expected_path, "r", encoding="utf-8", newline="") as f:
            expected = f.read()

        if ApiReportGenerator.are_equivalent(content, expected):
            self._logger.info(f"The API report is up to date: {expected_path}")
            return False

        if config.get("local_build"):
            self._write_file(str(expected_path), content)
            self._logger.warning(
                f"You have changed the public API signature for this project. Updating {expected_path}"
            )
        else:
            self._logger.warning(
                "You have changed the public API signature for this project."
                f" Please copy the file {actual_path} to {expected_path},"
                " or perform a local build (which does this automatically)."
            )
            result.warning_count += 1
        return True

    def _yaml_dump_no_alias(self, data: Any, stream: Any) -> None:
        class MultilineDumper(yaml.SafeDumper):
            def represent_scalar(self, tag, value, style=None):
                if isinstance(value, str) and "\n" in value:
                    style = "|"
                return super().represent_scalar(tag, value, style)

        class NoAliasDumper(MultilineDumper):
            def ignore_aliases(self, data):
                return True

        yaml.dump(
            data, stream, Dumper=NoAliasDumper, sort_keys=False, allow_unicode=True
        )
