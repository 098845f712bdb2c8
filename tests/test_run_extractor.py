"""
Tests for the command-line entry point and its exit codes.
"""

import pytest

from apirollup.extractor.run_extractor import CliInterface


def _run(*argv):
    with pytest.raises(SystemExit) as exc_info:
        CliInterface().run(list(argv))
    return exc_info.value.code


class TestCliInterface:
    def test_local_build_succeeds(self, tmp_path, widget_dump_path):
        code = _run(
            "-i", str(widget_dump_path), "--project-folder", str(tmp_path), "--local", "--no-color"
        )

        assert code == 0
        assert (tmp_path / "etc" / "widgets.api.md").is_file()

    def test_rollup_flag(self, tmp_path, widget_dump_path):
        code = _run(
            "-i",
            str(widget_dump_path),
            "--project-folder",
            str(tmp_path),
            "--local",
            "--rollup",
            "--no-color",
        )

        assert code == 0
        assert (tmp_path / "dist" / "widgets.d.ts").is_file()

    def test_fail_on_change(self, tmp_path, widget_dump_path):
        args = ["-i", str(widget_dump_path), "--project-folder", str(tmp_path), "--local"]

        assert _run(*args, "--no-color", "--fail-on-change") == 3
        assert _run(*args, "--no-color", "--fail-on-change") == 0

    def test_missing_report_exits_with_errors(self, tmp_path, widget_dump_path):
        code = _run("-i", str(widget_dump_path), "--project-folder", str(tmp_path), "--no-color")

        assert code == 2

    def test_missing_input(self, tmp_path):
        code = _run("-i", str(tmp_path / "missing.yaml"), "--no-color")

        assert code == 1

    def test_incomplete_dump_is_a_usage_error(self, tmp_path):
        dump = tmp_path / "module-graph.yaml"
        dump.write_text('package: {name: pkg}\nfiles:\n  - tree: []\n', encoding="utf-8")

        assert _run("-i", str(dump), "--project-folder", str(tmp_path), "--no-color") == 1

    def test_missing_config_file(self, tmp_path, widget_dump_path):
        code = _run(
            "-i", str(widget_dump_path), "-c", str(tmp_path / "missing.jsonc"), "--no-color"
        )

        assert code == 1

    def test_input_is_required(self):
        assert _run("--no-color") == 2

    def test_invalid_newline_choice(self, widget_dump_path):
        assert _run("-i", str(widget_dump_path), "--newline", "cr") == 2

    def test_print_summary(self, tmp_path, widget_dump_path, capsys):
        _run(
            "-i",
            str(widget_dump_path),
            "--project-folder",
            str(tmp_path),
            "--local",
            "--no-color",
            "--print-summary",
        )

        assert "--- API Rollup Summary ---" in capsys.readouterr().out
