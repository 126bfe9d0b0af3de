"""CLI surface: te run / json / adapters / version."""

from __future__ import annotations

import sys

from typer.testing import CliRunner

from toolenvelope import __version__
from toolenvelope.cli import app
from toolenvelope.config import CONFIG_FILENAME
from toolenvelope.errors import WRAPPER_FAILURE_EXIT
from toolenvelope.tracking import Tracker

runner = CliRunner()


class TestRun:
    def test_json_output_compacted(self):
        result = runner.invoke(app, ["run", sys.executable, "-c", "print('{\"a\": [1, 2, 3, 4]}')"])
        assert result.exit_code == 0
        assert '"a": [1, 2, 3, ...+1 more]' in result.stdout

    def test_exit_code_propagates(self, db_path):
        result = runner.invoke(app, ["run", sys.executable, "-c", "import sys; sys.exit(3)"])
        assert result.exit_code == 3
        rows = Tracker(db_path).recent()
        assert len(rows) == 1
        assert rows[0].exit_code == 3

    def test_wrapped_flags_not_parsed_by_te(self):
        result = runner.invoke(
            app, ["run", sys.executable, "-c", "import sys; print(sys.argv[1:])", "--raw", "-d", "1"]
        )
        assert result.exit_code == 0
        assert "['--raw', '-d', '1']" in result.stdout

    def test_adapter_option(self):
        code = "print('src/app.py:10:def handle():')"
        result = runner.invoke(app, ["run", "-a", "grep", sys.executable, "-c", code])
        assert result.exit_code == 0
        assert "1 matches in 1 files" in result.stdout

    def test_raw_option(self):
        result = runner.invoke(app, ["run", "--raw", sys.executable, "-c", "print('[1, 2, 3, 4, 5]')"])
        assert result.exit_code == 0
        assert "[1, 2, 3, 4, 5]" in result.stdout

    def test_raw_short_option(self):
        result = runner.invoke(app, ["run", "-r", sys.executable, "-c", "print('[1, 2, 3, 4, 5]')"])
        assert result.exit_code == 0
        assert "[1, 2, 3, 4, 5]" in result.stdout

    def test_depth_option(self):
        code = "print('{\"a\": {\"b\": 1}}')"
        result = runner.invoke(app, ["run", "-d", "0", sys.executable, "-c", code])
        assert "{...1 keys}" in result.stdout

    def test_disabled_in_config_is_passthrough(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("[tool_envelope]\nenabled = false\n")
        result = runner.invoke(app, ["run", sys.executable, "-c", "print('[1, 2, 3, 4, 5]')"])
        assert "[1, 2, 3, 4, 5]" in result.stdout

    def test_bad_success_pattern_keeps_exit_code(self, tmp_path, db_path):
        (tmp_path / CONFIG_FILENAME).write_text(
            "[tool_envelope.guard]\nextra_success_patterns = [\"(\"]\n"
        )
        result = runner.invoke(app, ["run", sys.executable, "-c", "import sys; sys.exit(3)"])
        assert result.exit_code == 3
        assert len(Tracker(db_path).recent()) == 1

    def test_section_not_a_table_keeps_exit_code(self, tmp_path, db_path):
        (tmp_path / CONFIG_FILENAME).write_text("[tool_envelope]\ncompact = 5\n")
        result = runner.invoke(app, ["run", sys.executable, "-c", "import sys; sys.exit(2)"])
        assert result.exit_code == 2
        assert Tracker(db_path).recent()[0].exit_code == 2

    def test_spawn_failure_is_wrapper_exit(self, db_path):
        result = runner.invoke(app, ["run", "te-definitely-not-a-real-command"])
        assert result.exit_code == WRAPPER_FAILURE_EXIT
        assert Tracker(db_path).recent() == []

    def test_cwd_option(self, tmp_path):
        (tmp_path / "sub").mkdir()
        code = "import os; print(os.path.basename(os.getcwd()))"
        result = runner.invoke(app, ["run", "-C", str(tmp_path / "sub"), sys.executable, "-c", code])
        assert result.exit_code == 0
        assert "sub" in result.stdout


class TestJson:
    def test_compact_file(self, fixtures_dir, db_path):
        result = runner.invoke(app, ["json", str(fixtures_dir / "gh_api_issues.json")])
        assert result.exit_code == 0
        assert '"Fix login bug"' in result.stdout
        assert '"number": 42' in result.stdout
        assert Tracker(db_path).recent()[0].mode == "structured"

    def test_schema(self, fixtures_dir):
        result = runner.invoke(app, ["json", "--schema", str(fixtures_dir / "gh_api_issues.json")])
        assert result.exit_code == 0
        assert "title: string" in result.stdout
        assert "Fix login bug" not in result.stdout

    def test_stdin(self):
        result = runner.invoke(app, ["json", "-"], input='{"id": 7, "tags": ["a", "b", "c", "d"]}')
        assert result.exit_code == 0
        assert '"id": 7' in result.stdout
        assert "...+1 more" in result.stdout

    def test_invalid_json(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{oops")
        result = runner.invoke(app, ["json", str(bad)])
        assert result.exit_code == 1

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["json", str(tmp_path / "missing.json")])
        assert result.exit_code == 1

    def test_deeply_nested_file(self, tmp_path):
        deep = tmp_path / "deep.json"
        deep.write_text("[" * 100_000 + "]" * 100_000)
        result = runner.invoke(app, ["json", str(deep)])
        assert result.exit_code == 1


class TestInfo:
    def test_adapters_listed(self):
        result = runner.invoke(app, ["adapters"])
        assert result.exit_code == 0
        for name in ("generic", "json", "prettier", "vitest", "grep", "find", "wc", "kubectl"):
            assert name in result.stdout

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert result.stdout.strip() == f"te {__version__}"
