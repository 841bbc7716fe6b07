import subprocess
from datetime import datetime, timedelta, timezone

import pytest

from gamelift_cli import executors
from gamelift_cli.cli_shared import NoCandidatesError, RemoteExecError
from gamelift_cli.executors import (
    INTERRUPTED_EXIT_CODE,
    ProcessRunner,
    log_file_path,
    open_shell,
    ssh_base_args,
    tail_log,
)
from gamelift_cli.models import Fleet, GameSession, RemoteAccessConfig


CFG = RemoteAccessConfig(
    host_alias="gamelift",
    host_name="10.0.0.7",
    user="gl-user-remote",
    identity_file="tmp_gamelift.pem",
    config_path="tmp_ssh.config",
)
FLEET = Fleet(fleet_id="fleet-1", name="battle", log_paths=("/local/game/logs",))
SESSION = GameSession(game_session_id="gs-1", name="match", status="ACTIVE", ip_address="10.0.0.7", port=7777)
NOW = datetime(2024, 3, 9, 17, 59, 59, tzinfo=timezone.utc)


class RecordingRunner:
    def __init__(self, captured: str = "4242\n", interrupt: bool = False):
        self.captured = captured
        self.interrupt = interrupt
        self.calls: list[tuple[str, list[str]]] = []

    def capture(self, argv):
        self.calls.append(("capture", list(argv)))
        return self.captured

    def stream(self, argv):
        self.calls.append(("stream", list(argv)))
        if self.interrupt:
            raise KeyboardInterrupt
        return 0

    def replace(self, argv):
        self.calls.append(("replace", list(argv)))


def test_log_file_path_uses_utc_hour_bucket():
    jst = timezone(timedelta(hours=9))
    local = datetime(2024, 3, 10, 2, 30, tzinfo=jst)
    assert log_file_path("/local/game/logs", "4242", local) == "/local/game/logs/4242/server.log.2024-03-09-17"


def test_tail_log_finds_listener_then_follows(capsys):
    runner = RecordingRunner(captured="4242\n4243\n")
    assert tail_log(SESSION, FLEET, CFG, runner, clock=lambda: NOW) == 0
    base = ["ssh", "-F", "tmp_ssh.config", "gamelift"]
    assert runner.calls == [
        ("capture", base + ["sudo", "lsof", "-i:7777", "-P", "-t"]),
        ("stream", base + ["tail", "-f", "/local/game/logs/4242/server.log.2024-03-09-17"]),
    ]
    assert "tail -f /local/game/logs/4242/server.log.2024-03-09-17" in capsys.readouterr().err


def test_tail_log_without_listener_fails():
    with pytest.raises(RemoteExecError):
        tail_log(SESSION, FLEET, CFG, RecordingRunner(captured="  \n"), clock=lambda: NOW)


def test_tail_log_needs_fleet_log_path():
    runner = RecordingRunner()
    with pytest.raises(NoCandidatesError):
        tail_log(SESSION, Fleet(fleet_id="fleet-1"), CFG, runner, clock=lambda: NOW)
    assert runner.calls == []


def test_tail_log_interrupt_returns_130():
    runner = RecordingRunner(interrupt=True)
    assert tail_log(SESSION, FLEET, CFG, runner, clock=lambda: NOW) == INTERRUPTED_EXIT_CODE


def test_open_shell_hands_over_fixed_argv():
    runner = RecordingRunner()
    open_shell(CFG, runner)
    assert runner.calls == [("replace", ssh_base_args(CFG))]
    assert ssh_base_args(CFG) == ["ssh", "-F", "tmp_ssh.config", "gamelift"]


def test_process_runner_missing_ssh(monkeypatch):
    monkeypatch.setattr(executors.shutil, "which", lambda name: None)
    with pytest.raises(RemoteExecError):
        ProcessRunner().capture(["ssh", "host"])


def test_process_runner_capture_nonzero_exit(monkeypatch):
    monkeypatch.setattr(executors.shutil, "which", lambda name: "/usr/bin/ssh")
    monkeypatch.setattr(
        executors.subprocess,
        "run",
        lambda argv, **kw: subprocess.CompletedProcess(argv, 255, stdout="", stderr="Permission denied"),
    )
    with pytest.raises(RemoteExecError) as exc:
        ProcessRunner().capture(["ssh", "host", "true"])
    assert "Permission denied" in str(exc.value)


def test_process_runner_replace_execs_resolved_path(monkeypatch):
    calls = []
    monkeypatch.setattr(executors.shutil, "which", lambda name: "/usr/bin/ssh")
    monkeypatch.setattr(executors.os, "execv", lambda path, argv: calls.append((path, argv)))
    ProcessRunner().replace(["ssh", "-F", "cfg", "gamelift"])
    assert calls == [("/usr/bin/ssh", ["ssh", "-F", "cfg", "gamelift"])]


def test_process_runner_replace_exec_failure(monkeypatch):
    def boom(path, argv):
        raise OSError("exec format error")

    monkeypatch.setattr(executors.shutil, "which", lambda name: "/usr/bin/ssh")
    monkeypatch.setattr(executors.os, "execv", boom)
    with pytest.raises(RemoteExecError):
        ProcessRunner().replace(["ssh"])


def test_tail_log_quiet_skips_path_line(capsys):
    runner = RecordingRunner()
    assert tail_log(SESSION, FLEET, CFG, runner, clock=lambda: NOW, quiet=True) == 0
    assert [kind for kind, _ in runner.calls] == ["capture", "stream"]
    assert capsys.readouterr().err == ""
