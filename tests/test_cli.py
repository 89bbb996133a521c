"""Tests for the spanrender CLI."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from spanrender.cli import main

MAIN = "module Main\nlet x = foo\n"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def project(tmp_path):
    """A directory holding main.fun, with nothing else around it."""
    (tmp_path / "main.fun").write_text(MAIN)
    return tmp_path


def write_document(directory, diagnostics, sources=None):
    data = {"diagnostics": diagnostics}
    if sources is not None:
        data["sources"] = sources
    path = directory / "diagnostics.json"
    path.write_text(json.dumps(data))
    return path


def mismatch(severity="error"):
    return {
        "severity": severity,
        "code": "E001",
        "message": "type mismatch",
        "labels": [{"file": "main.fun", "start": 12, "end": 15, "message": "found `Nat`"}],
        "notes": ["expected String"],
    }


class TestCLI:
    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "render" in result.output
        assert "lines" in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestRenderCommand:
    def test_error_exits_one(self, runner, project):
        doc = write_document(project, [mismatch()])
        result = runner.invoke(main, ["render", str(doc)])
        assert result.exit_code == 1
        assert result.output == (
            "error[E001]: type mismatch\n"
            "  ┌─ main.fun:2:1\n"
            "  │\n"
            "2 │ let x = foo\n"
            "  │ ^^^ found `Nat`\n"
            "  │\n"
            "  = expected String\n"
        )

    def test_warning_exits_zero(self, runner, project):
        doc = write_document(project, [mismatch("warning")])
        result = runner.invoke(main, ["render", str(doc)])
        assert result.exit_code == 0
        assert result.output.startswith("warning[E001]: type mismatch\n")

    def test_diagnostics_in_order(self, runner, project):
        second = {"severity": "note", "message": "second one"}
        doc = write_document(project, [mismatch("help"), second])
        result = runner.invoke(main, ["render", str(doc)])
        assert result.exit_code == 0
        assert result.output.index("help[E001]") < result.output.index("note: second one")

    def test_short_style(self, runner, project):
        doc = write_document(project, [mismatch()])
        result = runner.invoke(main, ["render", str(doc), "--style", "short"])
        assert result.output == "main.fun:2:1: error[E001]: type mismatch: found `Nat`\n"

    def test_ascii_chars(self, runner, project):
        doc = write_document(project, [mismatch()])
        result = runner.invoke(main, ["render", str(doc), "--chars", "ascii"])
        assert "2 | let x = foo\n" in result.output

    def test_color(self, runner, project):
        doc = write_document(project, [mismatch()])
        result = runner.invoke(main, ["render", str(doc), "--color"])
        assert "\033[1;31merror[E001]\033[0m" in result.output

    def test_inline_sources(self, runner, tmp_path):
        label = {"file": "<stdin>", "start": 4, "end": 5, "style": "secondary"}
        doc = write_document(
            tmp_path,
            [{"severity": "warning", "message": "unused", "labels": [label]}],
            sources={"<stdin>": "let y = 2\n"},
        )
        result = runner.invoke(main, ["render", str(doc)])
        assert result.exit_code == 0
        assert "  │     -\n" in result.output

    def test_config_file_is_found(self, runner, project):
        (project / "spanrender.toml").write_text('[render]\nstyle = "short"\n')
        doc = write_document(project, [mismatch()])
        result = runner.invoke(main, ["render", str(doc)])
        assert result.output == "main.fun:2:1: error[E001]: type mismatch: found `Nat`\n"

    def test_option_overrides_config_file(self, runner, project):
        (project / "spanrender.toml").write_text(
            '[render]\nstyle = "short"\ncolor = true\n'
        )
        doc = write_document(project, [mismatch()])
        result = runner.invoke(main, ["render", str(doc), "--style", "rich", "--no-color"])
        assert result.output.startswith("error[E001]: type mismatch\n  ┌─ main.fun:2:1\n")

    def test_explicit_config(self, runner, project, tmp_path_factory):
        other = tmp_path_factory.mktemp("settings") / "spanrender.toml"
        other.write_text('[render]\nchars = "ascii"\n')
        doc = write_document(project, [mismatch()])
        result = runner.invoke(main, ["render", str(doc), "--config", str(other)])
        assert "  -- main.fun:2:1\n" in result.output

    def test_tab_width(self, runner, tmp_path):
        label = {"file": "t", "start": 1, "end": 2}
        doc = write_document(
            tmp_path,
            [{"severity": "error", "message": "m", "labels": [label]}],
            sources={"t": "\tx\n"},
        )
        result = runner.invoke(main, ["render", str(doc), "--tab-width", "2"])
        assert "1 │   x\n" in result.output


class TestRenderFailures:
    def test_invalid_span_exits_two(self, runner, project):
        bad = mismatch()
        bad["labels"][0]["end"] = 500
        doc = write_document(project, [bad])
        result = runner.invoke(main, ["render", str(doc)])
        assert result.exit_code == 2
        assert "invalid diagnostic" in result.output

    def test_malformed_json(self, runner, tmp_path):
        doc = tmp_path / "diagnostics.json"
        doc.write_text("{not json")
        result = runner.invoke(main, ["render", str(doc)])
        assert result.exit_code == 2
        assert "cannot load" in result.output

    def test_top_level_must_be_object(self, runner, tmp_path):
        doc = tmp_path / "diagnostics.json"
        doc.write_text("[]")
        result = runner.invoke(main, ["render", str(doc)])
        assert result.exit_code == 2

    def test_missing_source_file(self, runner, tmp_path):
        doc = write_document(tmp_path, [mismatch()])
        result = runner.invoke(main, ["render", str(doc)])
        assert result.exit_code == 2
        assert "cannot read source file `main.fun`" in result.output

    def test_malformed_label(self, runner, project):
        bad = mismatch()
        del bad["labels"][0]["start"]
        doc = write_document(project, [bad])
        result = runner.invoke(main, ["render", str(doc)])
        assert result.exit_code == 2
        assert "malformed label" in result.output

    def test_bad_tab_width_in_config(self, runner, project):
        (project / "spanrender.toml").write_text('[render]\ntab_width = "4"\n')
        doc = write_document(project, [mismatch()])
        result = runner.invoke(main, ["render", str(doc)])
        assert result.exit_code == 2
        assert "tab_width" in result.output

    def test_bad_config_file(self, runner, project):
        (project / "spanrender.toml").write_text("[render\n")
        doc = write_document(project, [mismatch()])
        result = runner.invoke(main, ["render", str(doc)])
        assert result.exit_code == 2


class TestLinesCommand:
    def test_lines(self, runner, project):
        result = runner.invoke(main, ["lines", str(project / "main.fun")])
        assert result.exit_code == 0
        assert result.output.splitlines() == [
            "    0     1  0..12",
            "    1     2  12..24",
            "    2     3  24..24",
        ]
