"""
CLI smoke tests with the fake backend.

Tests basic CLI functionality and command wiring without a real backend:
a CLIContext wired to the fake is injected as the click context object.
"""
from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from offsetwrite.cli import app
from offsetwrite.cli_context import CLIContext


@pytest.fixture
def cli_context(settings, tokens, store, composer, driver):
    return CLIContext(settings=settings, tokens=tokens, _store=store, _composer=composer,
                      _driver=driver)


class TestPlanCommand:
    """Offline manifest preview."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_plan_human(self):
        result = self.runner.invoke(app, ["plan", "--offset", "30", "--length", "20",
                                          "--existing-size", "100"])
        assert result.exit_code == 0, result.output
        assert "[0] copy   key range 0-30 (30 bytes)" in result.output
        assert "[1] direct 20 bytes" in result.output
        assert "[2] copy   key range 50--1 (50 bytes)" in result.output
        assert "Result size: 100 bytes" in result.output

    def test_plan_json(self):
        result = self.runner.invoke(app, ["plan", "-o", "150", "-n", "5", "-s", "100",
                                          "--key", "log", "--json"])
        assert result.exit_code == 0, result.output
        arg = json.loads(result.output)
        assert [p["type"] for p in arg["parts"]] == ["copy", "direct", "direct"]
        assert arg["parts"][0]["storageFile"] == "log"

    def test_plan_absent_key(self):
        result = self.runner.invoke(app, ["plan", "-o", "4", "-n", "2"])
        assert result.exit_code == 0, result.output
        assert "zero-fill 4 bytes" in result.output
        assert "whole-object PUT" in result.output

    def test_plan_negative_offset(self):
        result = self.runner.invoke(app, ["plan", "--offset=-1", "-n", "2"])
        assert result.exit_code == 2
        assert "offset must be non-negative" in result.output


class TestBackendCommands:
    """Commands that talk to the (fake) backend."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_write_file(self, cli_context, backend, tmp_path):
        backend.seed("k", b"0123456789")
        src = tmp_path / "payload.bin"
        src.write_bytes(b"ab")
        result = self.runner.invoke(app, ["write", "k", str(src), "--offset", "4"], obj=cli_context)
        assert result.exit_code == 0, result.output
        assert "Wrote 2 bytes to k at offset 4" in result.output
        assert backend.objects["k"] == b"0123ab6789"

    def test_write_stdin(self, cli_context, backend):
        result = self.runner.invoke(app, ["write", "new", "-"], input="hello", obj=cli_context)
        assert result.exit_code == 0, result.output
        assert backend.objects["new"] == b"hello"

    def test_write_without_token(self):
        result = self.runner.invoke(app, ["write", "k", "-"], input="x")
        assert result.exit_code == 2
        assert "Upload token required" in result.output

    def test_stat(self, cli_context, backend):
        backend.seed("a.txt", b"hello", mime_type="text/plain")
        result = self.runner.invoke(app, ["stat", "a.txt"], obj=cli_context)
        assert result.exit_code == 0, result.output
        assert "Size: 5 B (5 bytes)" in result.output
        assert "Content-Type: text/plain" in result.output

    def test_stat_missing(self, cli_context):
        result = self.runner.invoke(app, ["stat", "nope"], obj=cli_context)
        assert result.exit_code == 1

    def test_ls(self, cli_context, backend):
        for key in ["d/a", "d/sub/b"]:
            backend.seed(key, b"x")
        result = self.runner.invoke(app, ["ls", "d"], obj=cli_context)
        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == ["d/a", "d/sub"]

    def test_cat(self, cli_context, backend):
        backend.seed("a", b"0123456789")
        result = self.runner.invoke(app, ["cat", "a", "--offset", "7"], obj=cli_context)
        assert result.exit_code == 0, result.output
        assert result.stdout_bytes == b"789"

    def test_mv(self, cli_context, backend):
        backend.seed("a", b"x")
        result = self.runner.invoke(app, ["mv", "a", "b"], obj=cli_context)
        assert result.exit_code == 0, result.output
        assert backend.objects == {"b": b"x"}

    def test_rm_incomplete(self, cli_context, backend):
        for key in ["d/a", "d/b"]:
            backend.seed(key, b"x")
        backend.undeletable.add("d/a")
        result = self.runner.invoke(app, ["rm", "d"], obj=cli_context)
        assert result.exit_code == 7
        assert "d/a" in result.output
        assert backend.objects == {"d/a": b"x"}

    def test_url(self, cli_context):
        result = self.runner.invoke(app, ["url", "dir/a"], obj=cli_context)
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "http://cdn.kodo.test/dir/a"
