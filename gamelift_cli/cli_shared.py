from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Any

try:
    import boto3  # type: ignore
except Exception:  # pragma: no cover - exercised only when deps are missing
    boto3 = None

from rich.console import Console
from rich.markup import escape


GAMELIFT_CLI_SSH_CONFIG = "GAMELIFT_CLI_SSH_CONFIG"
GAMELIFT_CLI_PLAIN_PICKER = "GAMELIFT_CLI_PLAIN_PICKER"

DEFAULT_SSH_CONFIG_PATH = "tmp_ssh.config"
DEFAULT_HOST_ALIAS = "gamelift"


class GameliftCliError(Exception):
    """Base for every error the pipeline surfaces to the operator."""

    def __init__(self, message: str, *, stage: str = "") -> None:
        super().__init__(message)
        self.stage = stage

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""


class UsageError(GameliftCliError):
    pass


class ControlPlaneError(GameliftCliError):
    """GameLift API, network or auth failure (or a malformed response)."""


class NoCandidatesError(GameliftCliError):
    """A fleet, session or instance list came back empty."""


class AmbiguousInputError(GameliftCliError):
    """The operator cancelled a pick or the input stream closed."""


class CorrelationMismatchError(GameliftCliError):
    """No fleet instance carries the game session's address."""


class CredentialWriteError(GameliftCliError):
    pass


class RemoteExecError(GameliftCliError):
    pass


@dataclass(frozen=True)
class GlobalOpts:
    profile: str
    region: str
    ssh_config_path: str = DEFAULT_SSH_CONFIG_PATH
    plain_picker: bool = False
    quiet: bool = False


def _eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


_ERROR_CONSOLE = Console(stderr=True)


def _rich_error(msg: str) -> None:
    _ERROR_CONSOLE.print(f"[bold red]error:[/bold red] {escape(msg)}", highlight=False)


def _progress(g: GlobalOpts, msg: str) -> None:
    if not g.quiet:
        _eprint(msg)


def _truthy(raw: str | None) -> bool:
    return str(raw or "").strip().lower() in {"1", "true", "yes", "on"}


def _env_or_none(*names: str) -> str | None:
    for n in names:
        v = (os.environ.get(n) or "").strip()
        if v:
            return v
    return None


def _require_boto3() -> Any:
    if boto3 is None:
        raise UsageError("missing dependency: boto3 (pip install gamelift-cli)")
    return boto3


def _account_session(g: GlobalOpts) -> Any:
    _require_boto3()
    kwargs: dict[str, str] = {}
    if g.profile:
        kwargs["profile_name"] = g.profile
    if g.region:
        kwargs["region_name"] = g.region
    try:
        return boto3.session.Session(**kwargs)
    except Exception as e:
        raise ControlPlaneError(f"failed to create AWS session: {e}") from e


def _apply_global_env(
    *,
    profile: str | None = None,
    region: str | None = None,
    ssh_config: str | None = None,
    plain_picker: bool = False,
    quiet: bool = False,
) -> GlobalOpts:
    if profile:
        os.environ["AWS_PROFILE"] = str(profile).strip()
    if region:
        os.environ["AWS_REGION"] = str(region).strip()
    ssh_config_path = (
        ssh_config or _env_or_none(GAMELIFT_CLI_SSH_CONFIG) or DEFAULT_SSH_CONFIG_PATH
    ).strip()
    if not ssh_config_path:
        raise UsageError(f"empty ssh config path (pass --ssh-config or set {GAMELIFT_CLI_SSH_CONFIG})")
    return GlobalOpts(
        profile=_env_or_none("AWS_PROFILE") or "",
        region=_env_or_none("AWS_REGION", "AWS_DEFAULT_REGION") or "",
        ssh_config_path=ssh_config_path,
        plain_picker=bool(plain_picker or _truthy(os.environ.get(GAMELIFT_CLI_PLAIN_PICKER))),
        quiet=bool(quiet),
    )
