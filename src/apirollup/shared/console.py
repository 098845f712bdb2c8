from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from colorama import Fore, Style, init

from apirollup.collector.messages import ExtractorMessage, LogLevel

if TYPE_CHECKING:
    from apirollup.extractor.core import ExtractorResult


class ConsoleManager:
    """Manages console output, respecting quiet/verbose/color flags."""

    def __init__(self, level: int, no_color: bool):
        self.level = level
        self.no_color = no_color
        if not no_color:
            init(autoreset=True)

    def _log(self, msg: str, log_level: int, color: str = "", exc_info: bool = False):
        if log_level < self.level:
            return

        if not self.no_color and color:
            msg = f"{color}{msg}{Style.RESET_ALL}"

        if log_level >= logging.CRITICAL:
            logging.critical(msg, exc_info=exc_info)
        elif log_level >= logging.ERROR:
            logging.error(msg, exc_info=exc_info)
        elif log_level >= logging.WARNING:
            logging.warning(msg)
        elif log_level >= logging.INFO:
            logging.info(msg)
        else:
            logging.debug(msg)

    def debug(self, msg: str):
        self._log(msg, logging.DEBUG, Style.DIM)

    def info(self, msg: str):
        self._log(msg, logging.INFO)

    def warning(self, msg: str):
        self._log(msg, logging.WARNING, Fore.YELLOW)

    def error(self, msg: str, exc_info: bool = False):
        self._log(msg, logging.ERROR, Fore.RED, exc_info=exc_info)

    def critical(self, msg: str, exc_info: bool = False):
        self._log(msg, logging.CRITICAL, Fore.RED + Style.BRIGHT, exc_info=exc_info)

    def report_message(self, message: ExtractorMessage):
        """Log an analysis message at its configured level."""
        if message.log_level == LogLevel.NONE:
            return
        text = message.format_message_with_location()
        if message.log_level == LogLevel.ERROR:
            self.error(f"Error: {text}")
        elif message.log_level == LogLevel.WARNING:
            self.warning(f"Warning: {text}")
        elif message.log_level == LogLevel.INFO:
            self.info(text)
        else:
            self.debug(text)

    def print_summary(self, result: ExtractorResult):
        """Print the final summary table."""
        if self.level > logging.INFO:  # Only suppress if quiet
            return

        print("\n--- API Rollup Summary ---")

        def color_val(val, color_if_nonzero):
            if val > 0 and not self.no_color:
                return f"{color_if_nonzero}{val}{Style.RESET_ALL}"
            return str(val)

        summary_data = [
            ("Errors", result.error_count, Fore.RED + Style.BRIGHT),
            ("Warnings", result.warning_count, Fore.YELLOW),
            ("API Report Changed", int(result.api_report_changed), Fore.YELLOW),
            ("API Report Failed", int(result.report_error is not None), Fore.RED + Style.BRIGHT),
            ("Rollups Written", len(result.rollup_files), Fore.GREEN),
            ("Rollups Failed", len(result.rollup_errors), Fore.RED + Style.BRIGHT),
        ]

        max_label = max(len(label) for label, _, _ in summary_data)

        for label, value, color in summary_data:
            val_str = color_val(value, color)
            print(f"{label:<{max_label}} : {val_str}")

        print("--------------------------")
        if result.succeeded:
            self.info("Extraction completed successfully.")
        else:
            self.error("Extraction completed with errors.")
