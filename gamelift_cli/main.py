from __future__ import annotations

import sys

import typer

try:
    from dotenv import load_dotenv  # type: ignore
except Exception:  # pragma: no cover - exercised only when deps are missing
    load_dotenv = None

from . import __build__, __version__
from .cli_shared import (
    GAMELIFT_CLI_PLAIN_PICKER,
    GAMELIFT_CLI_SSH_CONFIG,
    GameliftCliError,
    GlobalOpts,
    UsageError,
    _apply_global_env,
    _rich_error,
)
from .control_plane import build_control_plane
from .executors import ProcessRunner
from .picker import default_picker
from .pipeline import PipelineDeps, run_log, run_shell


app = typer.Typer(
    name="gamelift-cli",
    help="Find a GameLift fleet instance, then tail its server log or open a shell on it.",
    no_args_is_help=True,
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"gamelift-cli {__version__} ({__build__})")
        raise typer.Exit(code=0)


def _bootstrap_env() -> None:
    if load_dotenv is None:
        raise UsageError("missing dependency: python-dotenv (pip install gamelift-cli)")
    # python-dotenv defaults: discover .env and never override exported values.
    load_dotenv()


@app.callback()
def app_callback(
    ctx: typer.Context,
    profile: str | None = typer.Option(None, "--profile", help="AWS credential profile name (sets AWS_PROFILE)"),
    region: str | None = typer.Option(None, "--region", help="AWS region (sets AWS_REGION)"),
    ssh_config: str | None = typer.Option(
        None,
        "--ssh-config",
        help=f"Where to write the generated ssh config (default: tmp_ssh.config; env: {GAMELIFT_CLI_SSH_CONFIG})",
    ),
    plain_picker: bool = typer.Option(
        False,
        "--plain-picker",
        help=f"Numbered prompts instead of the search picker (env: {GAMELIFT_CLI_PLAIN_PICKER})",
    ),
    quiet: bool = typer.Option(False, "--quiet", help="Suppress progress lines on stderr"),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    del version
    g = _apply_global_env(
        profile=profile,
        region=region,
        ssh_config=ssh_config,
        plain_picker=plain_picker,
        quiet=quiet,
    )
    ctx.obj = {"g": g}


def _ctx_global(ctx: typer.Context) -> GlobalOpts:
    if isinstance(ctx.obj, dict) and isinstance(ctx.obj.get("g"), GlobalOpts):
        return ctx.obj["g"]
    return _apply_global_env()


def build_deps(g: GlobalOpts) -> PipelineDeps:
    return PipelineDeps(
        g=g,
        client=build_control_plane(g),
        picker=default_picker(plain=g.plain_picker),
        runner=ProcessRunner(),
    )


@app.command("log", help="Tail the server log of a game session's instance.")
def log_command(ctx: typer.Context) -> int:
    return run_log(build_deps(_ctx_global(ctx)))


@app.command("ssh", help="Open an interactive ssh session on a fleet instance.")
def ssh_command(ctx: typer.Context) -> int:
    return run_shell(build_deps(_ctx_global(ctx)))


def _format_error(e: GameliftCliError) -> str:
    if e.stage:
        return f"[{e.stage}] {e.message}"
    return e.message


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    try:
        _bootstrap_env()
        result = app(args=argv, prog_name="gamelift-cli", standalone_mode=False)
        if result is None:
            return 0
        return int(result)
    except typer.Exit as e:
        return int(e.exit_code)
    except typer.Abort:
        _rich_error("aborted")
        return 1
    except typer.TyperException as e:
        _rich_error(e.format_message())
        return int(e.exit_code)
    except UsageError as e:
        _rich_error(_format_error(e))
        return 2
    except GameliftCliError as e:
        _rich_error(_format_error(e))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
