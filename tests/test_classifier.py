"""Tiered classifier: structured, then degraded, then passthrough."""

from __future__ import annotations

from toolenvelope.adapters import Adapter, get_adapter
from toolenvelope.classifier import (
    HEURISTIC_WARNING,
    Degraded,
    Passthrough,
    Structured,
    classify,
    render,
)
from toolenvelope.process import RawExecution


def _raw(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0) -> RawExecution:
    return RawExecution(
        command_line="tool --flag",
        wrapped_command="te run tool --flag",
        returncode=returncode,
        stdout_bytes=stdout,
        stderr_bytes=stderr,
    )


class _FixedSummary(Adapter):
    name = "fixed"

    def __init__(self, result):
        self.result = result

    def try_degraded_parse(self, data):
        return self.result


class _Crashing(Adapter):
    name = "crashing"

    def try_structured_parse(self, data):
        raise RuntimeError("parser bug")

    def try_degraded_parse(self, data):
        raise RuntimeError("heuristic bug")


class TestStructuredTier:
    def test_json_object(self):
        outcome = classify(_raw(b'{"a": 1}\n'), get_adapter("generic"))
        assert isinstance(outcome, Structured)
        assert outcome.value == {"a": 1}
        assert outcome.mode == "structured"

    def test_json_array_with_ansi(self):
        outcome = classify(_raw(b"\x1b[0m[1, 2]\x1b[0m"), get_adapter("generic"))
        assert isinstance(outcome, Structured)
        assert outcome.value == [1, 2]

    def test_scalar_json_is_not_structured(self):
        outcome = classify(_raw(b"42\n"), get_adapter("generic"))
        assert isinstance(outcome, Passthrough)

    def test_structured_wins_over_degraded(self):
        adapter = _FixedSummary(("summary", []))
        outcome = classify(_raw(b'{"ok": true}'), adapter)
        assert isinstance(outcome, Structured)

    def test_structured_reads_stdout_only(self):
        outcome = classify(_raw(b'{"a": 1}', b"warning: deprecated"), get_adapter("generic"))
        assert isinstance(outcome, Structured)

    def test_nonzero_exit_still_structured(self):
        outcome = classify(_raw(b'{"message": "Not Found"}', returncode=1), get_adapter("generic"))
        assert isinstance(outcome, Structured)


class TestDegradedTier:
    def test_adapter_summary_used(self):
        outcome = classify(_raw(b"whatever"), _FixedSummary(("3 things", ["custom"])))
        assert outcome == Degraded("3 things", ("custom",))

    def test_default_warning_when_adapter_gives_none(self):
        outcome = classify(_raw(b"whatever"), _FixedSummary(("3 things", [])))
        assert isinstance(outcome, Degraded)
        assert outcome.warnings == (HEURISTIC_WARNING,)

    def test_empty_summary_falls_through(self):
        outcome = classify(_raw(b"some text"), _FixedSummary(("   ", ["w"])))
        assert isinstance(outcome, Passthrough)
        assert outcome.text == "some text"

    def test_prettier_output_is_degraded(self, fixtures_dir):
        data = (fixtures_dir / "prettier_check_failure.txt").read_bytes()
        outcome = classify(_raw(data, returncode=1), get_adapter("prettier"))
        assert isinstance(outcome, Degraded)
        assert outcome.warnings

    def test_degraded_sees_stderr(self):
        outcome = classify(
            _raw(b"", b"src/a.py:3:def main():\n"), get_adapter("grep")
        )
        assert isinstance(outcome, Degraded)
        assert "src/a.py" in outcome.summary


class TestPassthroughTier:
    def test_first_hundred_lines_and_omitted_count(self):
        data = "\n".join(f"line {i}" for i in range(1, 151)).encode()
        outcome = classify(_raw(data), get_adapter("generic"))
        assert isinstance(outcome, Passthrough)
        assert outcome.omitted_lines == 50

        lines = render(outcome).splitlines()
        assert lines[:100] == [f"line {i}" for i in range(1, 101)]
        assert lines[-1] == "... [50 lines omitted]"
        assert len(lines) == 101

    def test_short_output_verbatim(self):
        outcome = classify(_raw(b"hello\nworld\n"), get_adapter("generic"))
        assert render(outcome) == "hello\nworld"

    def test_configurable_line_cap(self):
        data = b"a\nb\nc\nd\n"
        outcome = classify(_raw(data), get_adapter("generic"), passthrough_lines=2)
        assert render(outcome) == "a\nb\n... [2 lines omitted]"

    def test_invalid_utf8_replaced(self):
        outcome = classify(_raw(b"ok \xff\xfe bad"), get_adapter("generic"))
        assert isinstance(outcome, Passthrough)
        assert "�" in outcome.text

    def test_stdout_then_stderr(self):
        outcome = classify(_raw(b"out", b"err"), get_adapter("generic"))
        assert outcome.text == "out\nerr"

    def test_empty_output(self):
        outcome = classify(_raw(), get_adapter("generic"))
        assert outcome == Passthrough("", 0)
        assert render(outcome) == ""

    def test_forced_passthrough_skips_parsing(self):
        outcome = classify(_raw(b'{"a": 1}'), get_adapter("generic"), force_passthrough=True)
        assert isinstance(outcome, Passthrough)
        assert outcome.text == '{"a": 1}'

    def test_crashing_adapter_falls_through(self):
        outcome = classify(_raw(b"plain"), _Crashing())
        assert isinstance(outcome, Passthrough)


class TestRender:
    def test_structured_is_compacted(self):
        assert render(Structured([1, 2, 3, 4])) == "[1, 2, 3, ...+1 more]"

    def test_degraded_lists_warnings(self):
        text = render(Degraded("2 files\n", ("heuristic", "partial")))
        assert text == "2 files\n[warning] heuristic\n[warning] partial"

    def test_classification_is_deterministic(self, fixtures_dir):
        data = (fixtures_dir / "prettier_syntax_error.txt").read_bytes()
        adapter = get_adapter("prettier")
        first = render(classify(_raw(data), adapter))
        second = render(classify(_raw(data), adapter))
        assert first == second
