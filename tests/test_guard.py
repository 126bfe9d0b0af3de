"""Failure-visibility guard."""

from __future__ import annotations

from toolenvelope.guard import DEFAULT_PATTERNS, SuccessPatterns, guard

SUCCESS = "✓ Prettier: All files formatted correctly"


class TestGuard:
    def test_exit_zero_never_touched(self):
        assert guard(SUCCESS, 0, "noise") == SUCCESS

    def test_success_text_with_failure_exit_is_flagged(self):
        out = guard(SUCCESS, 1)
        assert out.startswith(SUCCESS)
        assert "exited with code 1" in out
        assert "Re-run the raw command" in out

    def test_non_success_text_left_alone(self):
        text = "error: 3 failures in src/app.ts"
        assert guard(text, 1, "boom") == text

    def test_error_handler_message_not_mistaken_for_success(self):
        text = "no error handler registered for /api/orders"
        assert guard(text, 1, "boom") == text

    def test_stderr_head_included(self):
        stderr = "\n".join(f"err line {i}" for i in range(1, 9))
        out = guard(SUCCESS, 2, stderr)
        assert "[te] stderr (first 5 lines):" in out
        assert "  err line 5" in out
        assert "err line 6" not in out

    def test_stderr_line_count_configurable(self):
        out = guard(SUCCESS, 2, "a\nb\nc", stderr_lines=1)
        assert "  a" in out
        assert "  b" not in out

    def test_no_stderr_block_when_stderr_empty(self):
        assert "stderr" not in guard(SUCCESS, 2, "")

    def test_signal_exit_code_reported(self):
        assert "exited with code 143" in guard("ok", 143)

    def test_guard_only_appends(self):
        text = "ok\nline two\n"
        out = guard(text, 3)
        assert out.startswith(text.rstrip("\n"))
        assert "line two" in out


class TestSuccessPatterns:
    def test_defaults(self):
        for text in ("✓ done", "ok", "No issues found", "All tests passed", "0 failed"):
            assert DEFAULT_PATTERNS.matches(text), text

    def test_defaults_are_not_too_eager(self):
        for text in ("3 failed", "error: not found", "Prettier: 4 files need formatting"):
            assert not DEFAULT_PATTERNS.matches(text), text

    def test_no_errors_must_end_the_clause(self):
        for text in (
            "no errors.",
            "No errors found in 3 files",
            "no issues detected",
            "done, no errors",
        ):
            assert DEFAULT_PATTERNS.matches(text), text
        for text in ("no error handler registered", "no errors were reported but 2 warnings"):
            assert not DEFAULT_PATTERNS.matches(text), text

    def test_case_insensitive_multiline(self):
        assert DEFAULT_PATTERNS.matches("first line\n  OK")

    def test_build_adds_to_defaults(self):
        patterns = SuccessPatterns.build([r"^done\b"])
        assert patterns.matches("done.")
        assert patterns.matches("no errors")
        assert not DEFAULT_PATTERNS.matches("done.")

    def test_extend_ignores_duplicates(self):
        patterns = DEFAULT_PATTERNS.extend([r"\b0 failed\b", r"^all green$"])
        assert len(patterns.patterns) == len(DEFAULT_PATTERNS.patterns) + 1
        assert patterns.matches("all green")

    def test_custom_pattern_triggers_guard(self):
        patterns = SuccessPatterns.build([r"^done\b"])
        assert "exited with code 2" in guard("done.", 2, patterns=patterns)
        assert guard("done.", 2) == "done."
