from __future__ import annotations

import os
import stat
import sys
from pathlib import Path
from typing import Protocol

from .cli_shared import DEFAULT_HOST_ALIAS, CredentialWriteError
from .control_plane import ControlPlaneClient
from .models import RemoteAccessConfig


KEY_FILE_NAME = "tmp_gamelift.pem"

# A pre-planted symlink at the key path must not redirect the write.
_PRIVATE_OPEN_FLAGS = os.O_WRONLY | os.O_CREAT | os.O_TRUNC | getattr(os, "O_NOFOLLOW", 0)


class KeyPathStrategy(Protocol):
    def resolve(self) -> Path:
        ...


class WorkingDirKeyPath:
    def __init__(self, base_dir: str | Path = "."):
        self.base_dir = Path(base_dir)

    def resolve(self) -> Path:
        return self.base_dir / KEY_FILE_NAME


class HomeSshKeyPath:
    """~/.ssh/tmp_gamelift.pem, for platforms where ssh rejects keys elsewhere."""

    def __init__(self, home: str | Path | None = None):
        self.home = Path(home) if home is not None else None

    def resolve(self) -> Path:
        home = self.home
        if home is None:
            try:
                home = Path.home()
            except RuntimeError:
                return Path(".") / KEY_FILE_NAME
        ssh_dir = home / ".ssh"
        try:
            ssh_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise CredentialWriteError(f"failed to create {ssh_dir}: {e}") from e
        return ssh_dir / KEY_FILE_NAME


def key_path_strategy_for(platform: str | None = None) -> KeyPathStrategy:
    platform = sys.platform if platform is None else platform
    if platform.startswith("win"):
        return HomeSshKeyPath()
    return WorkingDirKeyPath()


def _verify_private(path: Path) -> None:
    # Windows reports synthetic mode bits; access there is governed by the
    # profile directory ACL instead.
    if os.name != "posix":
        return
    mode = stat.S_IMODE(os.stat(path).st_mode)
    if mode & 0o077:
        raise CredentialWriteError(f"{path} is accessible by group/other (mode {mode:04o})")


def write_private_file(path: str | Path, text: str) -> Path:
    """Write text to path with owner-only read/write, restricting before any content lands."""
    p = Path(path)
    try:
        fd = os.open(str(p), _PRIVATE_OPEN_FLAGS, 0o600)
    except OSError as e:
        raise CredentialWriteError(f"failed to open {p} for writing: {e}") from e
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            os.chmod(p, 0o600)
            _verify_private(p)
            fh.write(text)
    except OSError as e:
        raise CredentialWriteError(f"failed to write {p}: {e}") from e
    return p


def _quote(value: str) -> str:
    if any(c.isspace() for c in value):
        return f'"{value}"'
    return value


def render_ssh_config(cfg: RemoteAccessConfig) -> str:
    return (
        "\n"
        f"Host {cfg.host_alias}\n"
        f"\tUser {cfg.user}\n"
        f"\tHostName {cfg.host_name}\n"
        f"\tIdentityFile {_quote(cfg.identity_file)}\n"
    )


def parse_ssh_config(text: str, *, config_path: str = "") -> RemoteAccessConfig:
    """Read back the first Host block written by render_ssh_config."""
    alias = ""
    fields: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, _, value = line.partition(" ")
        if not value:
            key, _, value = line.partition("\t")
        key = key.strip().lower()
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        if key == "host":
            if alias:
                break
            alias = value
            continue
        if alias:
            fields[key] = value
    if not alias:
        raise ValueError("no Host block in ssh config")
    return RemoteAccessConfig(
        host_alias=alias,
        host_name=fields.get("hostname", ""),
        user=fields.get("user", ""),
        identity_file=fields.get("identityfile", ""),
        config_path=config_path,
    )


def provision_config(
    client: ControlPlaneClient,
    fleet_id: str,
    instance_id: str,
    config_path: str | Path,
    key_strategy: KeyPathStrategy | None = None,
    *,
    host_alias: str = DEFAULT_HOST_ALIAS,
) -> RemoteAccessConfig:
    access = client.request_instance_access(fleet_id, instance_id)
    key_strategy = key_strategy or key_path_strategy_for()
    key_path = write_private_file(key_strategy.resolve(), access.credentials.secret)
    cfg = RemoteAccessConfig(
        host_alias=host_alias,
        host_name=access.ip_address,
        user=access.credentials.username,
        identity_file=str(key_path),
        config_path=str(config_path),
    )
    write_private_file(config_path, render_ssh_config(cfg))
    return cfg


def provision(
    client: ControlPlaneClient,
    fleet_id: str,
    instance_id: str,
    config_path: str | Path,
    key_strategy: KeyPathStrategy | None = None,
) -> str:
    return provision_config(client, fleet_id, instance_id, config_path, key_strategy).user
