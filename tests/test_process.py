"""Tests for the process supervisor."""

import errno
import subprocess

import pytest

from vtsh import process
from vtsh.errors import CommandNotFoundError, ForkError, RedirectionError
from vtsh.parser import tokenize
from vtsh.process import ExitStatus, run_command, spawn
from vtsh.redirection import Command, build_command


def command(line: str, environ=None) -> Command:
    return build_command(tokenize(line), environ or {})


class TestExitStatus:
    """Decoding Popen return codes."""

    def test_normal_exit(self) -> None:
        status = ExitStatus.from_returncode(3)
        assert status.code == 3
        assert not status.signaled

    def test_signal(self) -> None:
        status = ExitStatus.from_returncode(-9)
        assert status.signal == 9
        assert status.code == 137

    def test_describe(self) -> None:
        assert ExitStatus(code=0).describe(0.5) == "exit status: 0; elapsed: 0.500000 s"
        assert (ExitStatus.from_returncode(-15).describe(1.25)
                == "terminated by signal: 15; elapsed: 1.250000 s")


class TestRunCommand:
    """Foreground execution of a single command."""

    def test_success(self, capfd) -> None:
        assert run_command(command("true")) == 0
        assert "exit status: 0; elapsed:" in capfd.readouterr().err

    def test_failure_code(self, capfd) -> None:
        assert run_command(command("false")) == 1
        assert "exit status: 1;" in capfd.readouterr().err

    def test_output_passes_through(self, capfd) -> None:
        run_command(command("echo hello world"))
        assert capfd.readouterr().out == "hello world\n"

    def test_empty_argument_is_passed(self, capfd) -> None:
        run_command(command("echo $UNSET_VAR end"))
        assert capfd.readouterr().out == " end\n"

    def test_not_found(self, capfd) -> None:
        assert run_command(command("no-such-program-vtsh")) == 127
        err = capfd.readouterr().err
        assert "no-such-program-vtsh: command not found" in err
        assert "exit status: 127;" in err

    def test_empty_program_name(self, capfd) -> None:
        assert run_command(command("$UNSET_VAR foo")) == 127

    def test_killed_by_signal(self, tmp_path, capfd) -> None:
        script = tmp_path / "suicide"
        script.write_text("#!/bin/sh\nkill -TERM $$\n")
        script.chmod(0o755)
        assert run_command(command(str(script))) == 128 + 15
        assert "terminated by signal: 15;" in capfd.readouterr().err

    def test_stdout_to_file(self, tmp_path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        assert run_command(command("ls -l > out.txt")) == 0
        assert (tmp_path / "out.txt").exists()
        assert "out.txt" in (tmp_path / "out.txt").read_text()

    def test_stdin_from_file(self, tmp_path, capfd) -> None:
        (tmp_path / "in.txt").write_text("b\na\n")
        run_command(command(f"sort < {tmp_path / 'in.txt'}"))
        assert capfd.readouterr().out == "a\nb\n"

    def test_append(self, tmp_path) -> None:
        target = tmp_path / "log"
        run_command(command(f"echo one >> {target}"))
        run_command(command(f"echo two >> {target}"))
        assert target.read_text() == "one\ntwo\n"

    def test_both_streams_to_file(self, tmp_path, noisy_script, capfd) -> None:
        target = tmp_path / "all"
        run_command(command(f"{noisy_script} > {target} 2>&1"))
        assert sorted(target.read_text().split()) == ["err", "out"]

    def test_dup_before_file_keeps_stderr_on_stdout(self, tmp_path, noisy_script, capfd) -> None:
        target = tmp_path / "only-out"
        run_command(command(f"{noisy_script} 2>&1 > {target}"))
        assert target.read_text() == "out\n"
        assert capfd.readouterr().out == "err\n"

    def test_missing_input_spawns_nothing(self, tmp_path, monkeypatch) -> None:
        def fail(*args, **kwargs):
            raise AssertionError("no process should start")
        monkeypatch.setattr(process, "spawn", fail)
        with pytest.raises(RedirectionError):
            run_command(command(f"cat < {tmp_path / 'missing'}"))


class TestSpawn:
    """Classification of spawn failures."""

    def test_not_found_raises(self) -> None:
        with pytest.raises(CommandNotFoundError) as info:
            spawn(["no-such-program-vtsh"])
        assert info.value.status == 127

    def test_permission_denied(self, tmp_path) -> None:
        script = tmp_path / "not-executable"
        script.write_text("#!/bin/sh\n")
        script.chmod(0o644)
        with pytest.raises(CommandNotFoundError) as info:
            spawn([str(script)])
        assert "permission denied" in str(info.value)

    def test_fork_failure(self, monkeypatch) -> None:
        def exhausted(*args, **kwargs):
            raise OSError(errno.EAGAIN, "Resource temporarily unavailable")
        monkeypatch.setattr(subprocess, "Popen", exhausted)
        with pytest.raises(ForkError) as info:
            spawn(["true"])
        assert info.value.status == 1

    def test_wait(self) -> None:
        proc = spawn(["sh", "-c", "exit 7"])
        assert process.wait(proc) == ExitStatus(code=7)
