from __future__ import annotations

import os
import posixpath
import shutil
import subprocess
import sys
from datetime import datetime, timezone
from typing import Callable, NoReturn, Sequence

from .cli_shared import NoCandidatesError, RemoteExecError, _eprint
from .models import Fleet, GameSession, RemoteAccessConfig


INTERRUPTED_EXIT_CODE = 130

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProcessRunner:
    """Runs the local ssh client; swapped for a recording stub in tests."""

    def _which(self, name: str) -> str:
        path = shutil.which(name)
        if not path:
            raise RemoteExecError(f"{name} not found on PATH")
        return path

    def capture(self, argv: Sequence[str]) -> str:
        argv = list(argv)
        self._which(argv[0])
        try:
            proc = subprocess.run(argv, stdin=sys.stdin, capture_output=True, text=True)
        except OSError as e:
            raise RemoteExecError(f"{argv[0]} failed to start: {e}") from e
        if proc.returncode != 0:
            detail = (proc.stderr or "").strip()
            raise RemoteExecError(f"{' '.join(argv)} exited with {proc.returncode}: {detail}")
        return proc.stdout

    def stream(self, argv: Sequence[str]) -> int:
        argv = list(argv)
        self._which(argv[0])
        try:
            proc = subprocess.run(argv, stdin=sys.stdin)
        except OSError as e:
            raise RemoteExecError(f"{argv[0]} failed to start: {e}") from e
        if proc.returncode != 0:
            raise RemoteExecError(f"{' '.join(argv)} exited with {proc.returncode}")
        return 0

    def replace(self, argv: Sequence[str]) -> NoReturn:
        argv = list(argv)
        path = self._which(argv[0])
        sys.stdout.flush()
        sys.stderr.flush()
        try:
            os.execv(path, argv)
        except OSError as e:
            raise RemoteExecError(f"failed to exec {path}: {e}") from e


def ssh_base_args(cfg: RemoteAccessConfig) -> list[str]:
    return ["ssh", "-F", cfg.config_path, cfg.host_alias]


def log_file_path(log_dir: str, process_id: str, now: datetime) -> str:
    bucket = now.astimezone(timezone.utc).strftime("%Y-%m-%d-%H")
    return posixpath.join(log_dir, process_id, f"server.log.{bucket}")


def listening_process_id(output: str) -> str:
    for line in (output or "").splitlines():
        pid = line.strip()
        if pid:
            return pid
    return ""


def tail_log(
    session: GameSession,
    fleet: Fleet,
    cfg: RemoteAccessConfig,
    runner: ProcessRunner,
    *,
    clock: Clock = _utc_now,
    quiet: bool = False,
) -> int:
    if not fleet.log_paths:
        raise NoCandidatesError(f"fleet {fleet.fleet_id} has no log paths configured")
    base = ssh_base_args(cfg)
    out = runner.capture(base + ["sudo", "lsof", f"-i:{session.port}", "-P", "-t"])
    process_id = listening_process_id(out)
    if not process_id:
        raise RemoteExecError(f"no process is listening on port {session.port}")
    path = log_file_path(fleet.log_paths[0], process_id, clock())
    if not quiet:
        _eprint(f"tail -f {path}")
    try:
        return runner.stream(base + ["tail", "-f", path])
    except KeyboardInterrupt:
        return INTERRUPTED_EXIT_CODE


def open_shell(cfg: RemoteAccessConfig, runner: ProcessRunner) -> NoReturn:
    runner.replace(ssh_base_args(cfg))
