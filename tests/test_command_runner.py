"""
Tests for CommandRunner — real subprocesses via the test interpreter.
"""

import sys

import pytest

from devbox.adapters.shell.command import CommandRunner, format_argv
from devbox.core.errors import CommandError, OperationTimeoutError

PY = sys.executable


class TestCommandRunner:
    def test_captures_output(self):
        r = CommandRunner().run([PY, "-c", "print('hello')"])
        assert r.ok
        assert r.stdout.strip() == "hello"
        assert not r.dry_run

    def test_nonzero_without_check(self):
        r = CommandRunner().run([PY, "-c", "import sys; sys.stderr.write('bad'); sys.exit(3)"])
        assert r.returncode == 3
        assert r.stderr == "bad"
        assert not r.ok

    def test_long_stdout_kept_whole(self):
        r = CommandRunner().run([PY, "-c", "print('x' * 10000)"])
        assert len(r.stdout.strip()) == 10000

    def test_nonzero_with_check(self):
        with pytest.raises(CommandError) as exc:
            CommandRunner().run([PY, "-c", "import sys; sys.exit(5)"], check=True)
        assert exc.value.returncode == 5

    def test_timeout(self):
        with pytest.raises(OperationTimeoutError) as exc:
            CommandRunner().run([PY, "-c", "import time; time.sleep(10)"], timeout=0.5)
        assert exc.value.timeout == 0.5

    def test_missing_binary(self):
        with pytest.raises(CommandError, match="Command not found"):
            CommandRunner().run(["devbox-no-such-binary-xyz"])

    def test_env_is_merged(self):
        runner = CommandRunner(env={"DEBIAN_FRONTEND": "noninteractive"})
        r = runner.run([PY, "-c", "import os; print(os.environ['DEBIAN_FRONTEND'], 'PATH' in os.environ)"])
        assert r.stdout.split() == ["noninteractive", "True"]

    def test_input_text(self):
        r = CommandRunner().run([PY, "-c", "import sys; print(sys.stdin.read().upper())"], input_text="yes")
        assert r.stdout.strip() == "YES"

    def test_dry_run_skips_mutations(self, tmp_path):
        marker = tmp_path / "ran"
        runner = CommandRunner(dry_run=True)
        r = runner.run([PY, "-c", f"open({str(marker)!r}, 'w').close()"])
        assert r.ok
        assert r.dry_run
        assert not marker.exists()

    def test_dry_run_still_runs_queries(self):
        r = CommandRunner(dry_run=True).run([PY, "-c", "print('q')"], mutating=False)
        assert r.stdout.strip() == "q"
        assert not r.dry_run


class TestFormatArgv:
    def test_quotes_when_needed(self):
        assert format_argv(["dpkg-query", "-W", "-f=${Status}", "my pkg"]) == (
            "dpkg-query -W '-f=${Status}' 'my pkg'"
        )
