from __future__ import annotations

import re

import pytest
from typer.testing import CliRunner

from gamelift_cli import __version__
from gamelift_cli import main as main_mod
from gamelift_cli.cli_shared import ControlPlaneError, GlobalOpts, UsageError
from gamelift_cli.main import app, main


runner = CliRunner()

_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")


def _plain(s: str) -> str:
    return _ANSI_RE.sub("", s)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    # The CLI writes AWS_PROFILE/AWS_REGION into os.environ; register them so
    # monkeypatch restores the originals.
    monkeypatch.setenv("AWS_PROFILE", "")
    monkeypatch.setenv("AWS_REGION", "")
    monkeypatch.delenv("AWS_DEFAULT_REGION", raising=False)
    monkeypatch.delenv("GAMELIFT_CLI_SSH_CONFIG", raising=False)
    monkeypatch.delenv("GAMELIFT_CLI_PLAIN_PICKER", raising=False)
    monkeypatch.chdir(tmp_path)


def test_all_commands_have_help_text():
    from typer.core import TyperGroup
    from typer.main import get_command

    root = get_command(app)
    assert isinstance(root, TyperGroup)
    assert sorted(root.commands) == ["log", "ssh"]
    for name, cmd in root.commands.items():
        assert str(cmd.help or "").strip(), f"missing help text for command: {name}"


def test_version_flag():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"gamelift-cli {__version__} (unknown)" in result.stdout


def test_global_options_reach_pipeline(monkeypatch):
    seen: dict[str, GlobalOpts] = {}

    def fake_run_shell(deps):
        seen["g"] = deps
        return 0

    monkeypatch.setattr(main_mod, "build_deps", lambda g: g)
    monkeypatch.setattr(main_mod, "run_shell", fake_run_shell)
    result = runner.invoke(
        app,
        ["--profile", "ops", "--region", "ap-northeast-1", "--ssh-config", "x.config", "--plain-picker", "ssh"],
    )
    assert result.exit_code == 0, result.output
    g = seen["g"]
    assert g.profile == "ops"
    assert g.region == "ap-northeast-1"
    assert g.ssh_config_path == "x.config"
    assert g.plain_picker is True


def test_env_configures_defaults(monkeypatch):
    seen = {}
    monkeypatch.setenv("GAMELIFT_CLI_SSH_CONFIG", "env.config")
    monkeypatch.setenv("GAMELIFT_CLI_PLAIN_PICKER", "yes")
    monkeypatch.setattr(main_mod, "build_deps", lambda g: g)
    def fake_run_log(g):
        seen["g"] = g
        return 0

    monkeypatch.setattr(main_mod, "run_log", fake_run_log)
    result = runner.invoke(app, ["log"])
    assert result.exit_code == 0, result.output
    assert seen["g"].ssh_config_path == "env.config"
    assert seen["g"].plain_picker is True


def test_main_maps_pipeline_errors_to_exit_1(monkeypatch, capsys):
    def fail(deps):
        raise ControlPlaneError("gamelift describe-fleet-attributes failed: expired token", stage="fleet")

    monkeypatch.setattr(main_mod, "build_deps", lambda g: g)
    monkeypatch.setattr(main_mod, "run_log", fail)
    assert main(["log"]) == 1
    err = _plain(capsys.readouterr().err)
    assert "error: [fleet] gamelift describe-fleet-attributes failed: expired token" in err


def test_main_maps_usage_errors_to_exit_2(monkeypatch, capsys):
    def fail(deps):
        raise UsageError("missing dependency: boto3")

    monkeypatch.setattr(main_mod, "build_deps", lambda g: g)
    monkeypatch.setattr(main_mod, "run_shell", fail)
    assert main(["ssh"]) == 2
    assert "missing dependency: boto3" in _plain(capsys.readouterr().err)


def test_main_returns_action_exit_code(monkeypatch):
    monkeypatch.setattr(main_mod, "build_deps", lambda g: g)
    monkeypatch.setattr(main_mod, "run_log", lambda g: 130)
    assert main(["log"]) == 130


def test_main_unknown_command_is_usage_error(capsys):
    assert main(["nope"]) == 2
    assert "nope" in _plain(capsys.readouterr().err)


def test_main_unknown_option_is_usage_error(capsys):
    assert main(["--bogus", "ssh"]) == 2
    assert "--bogus" in _plain(capsys.readouterr().err)
