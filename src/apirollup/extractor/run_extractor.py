"""
run_extractor.py

Command-line entry point. Loads the front-end's module-graph dump, then
writes the API report and the declaration rollups configured for the
package.

Exit codes: 0 success, 1 configuration or usage error, 2 analysis errors or
an unexpected failure, 3 when --fail-on-change is set and the API report
changed.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from apirollup.shared.console import ConsoleManager

from .config import ConfigurationManager
from .core import ExtractorService
from .loader import FrontEndDumpLoader


class CliInterface:
    """
    Handles command-line arguments and application bootstrapping.
    """

    def __init__(self) -> None:
        self._parser = self._build_parser()

    def run(self, argv: list[str] | None = None) -> None:
        args = self._parser.parse_args(argv)
        log_level = args.log_level or logging.INFO

        logging.basicConfig(
            level=log_level,
            format="%(message)s",  # Handled by ConsoleManager
            handlers=[logging.StreamHandler(sys.stderr)],
        )
        logger = ConsoleManager(level=log_level, no_color=args.no_color)

        try:
            config = self._build_config(args)
            analysis = FrontEndDumpLoader().load(args.input)

            service = ExtractorService(
                app_config=config,
                project_folder=Path(args.project_folder).resolve(),
                logger=logger,
            )
            result = service.invoke(analysis)

            if args.print_summary:
                logger.print_summary(result)

            if not result.succeeded:
                logger.error(
                    f"Extraction finished with {result.error_count} error(s)"
                    f" and {result.warning_count} warning(s)."
                )
                sys.exit(2)

            if args.fail_on_change and result.api_report_changed:
                logger.warning(
                    "Exiting with code 3: --fail-on-change was set and the API report changed."
                )
                sys.exit(3)

            sys.exit(0)

        except (FileNotFoundError, ValueError, TypeError) as e:
            logger.critical(f"Configuration or Usage Error: {e}")
            sys.exit(1)
        except Exception as e:
            logger.critical(
                f"An unexpected error occurred: {e}", exc_info=log_level == logging.DEBUG
            )
            sys.exit(2)

    def _build_config(self, args: argparse.Namespace) -> dict[str, Any]:
        overrides = {
            "local_build": args.local,
            "report_enabled": args.report_enabled,
            "rollup_enabled": args.rollup_enabled,
            "newline_kind": args.newline_kind,
            "omit_trimming_comments": args.omit_trimming_comments,
            "entity_table_path": args.entity_table_path,
        }

        mgr = ConfigurationManager()
        return mgr.load_config(args.config, overrides)

    def _build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="apirollup",
            description="Writes API reports and release-trimmed declaration rollups.",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Example:
  apirollup \\
    --input ./temp/module-graph.yaml \\
    --config ./apirollup.jsonc \\
    --local \\
    --print-summary
""",
        )

        # Core
        parser.add_argument(
            "-i", "--input", required=True, help="YAML module-graph dump from the front-end."
        )
        parser.add_argument("-c", "--config", help="JSON or JSONC configuration file.")
        parser.add_argument(
            "--project-folder",
            default=".",
            help="Folder that relative output paths are resolved against.",
        )

        # Toggles
        parser.add_argument(
            "-l",
            "--local",
            action="store_true",
            default=None,
            help="Local build: update the approved API report instead of warning.",
        )
        parser.add_argument("--report", action="store_true", dest="report_enabled", default=None)
        parser.add_argument("--no-report", action="store_false", dest="report_enabled")
        parser.add_argument("--rollup", action="store_true", dest="rollup_enabled", default=None)
        parser.add_argument("--no-rollup", action="store_false", dest="rollup_enabled")
        parser.add_argument(
            "--trimming-comments",
            action="store_false",
            dest="omit_trimming_comments",
            default=None,
            help="Write a comment where a declaration was trimmed.",
        )
        parser.add_argument("--newline", dest="newline_kind", choices=["lf", "crlf", "os"])
        parser.add_argument(
            "--entity-table",
            dest="entity_table_path",
            help="Also write the resolved entity table as YAML.",
        )
        parser.add_argument(
            "--fail-on-change",
            action="store_true",
            help="Exit with code 3 if the API report changed.",
        )

        # Log
        log_g = parser.add_mutually_exclusive_group()
        log_g.add_argument(
            "-v",
            "--verbose",
            action="store_const",
            dest="log_level",
            const=logging.DEBUG,
        )
        log_g.add_argument(
            "-q", "--quiet", action="store_const", dest="log_level", const=logging.ERROR
        )
        parser.add_argument("--no-color", action="store_true")
        parser.add_argument("--print-summary", action="store_true")

        return parser


def main() -> None:
    CliInterface().run()


if __name__ == "__main__":
    main()
