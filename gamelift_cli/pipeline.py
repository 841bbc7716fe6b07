"""Fleet -> game session -> instance -> access -> action.

Each stage hands its result to the next as a plain value; nothing about the
selection is kept at module level.
"""

from __future__ import annotations

import contextlib
from dataclasses import dataclass
from typing import Iterator

from .access import KeyPathStrategy, key_path_strategy_for, provision_config
from .cli_shared import GameliftCliError, GlobalOpts, NoCandidatesError, _progress
from .control_plane import ControlPlaneClient
from .executors import Clock, ProcessRunner, _utc_now, open_shell, tail_log
from .models import Fleet, FleetInstance, GameSession, RemoteAccessConfig
from .picker import Picker
from .resolver import IndexChooser, resolve_instance
from .selection import select_fleet, select_game_session


@dataclass
class PipelineDeps:
    g: GlobalOpts
    client: ControlPlaneClient
    picker: Picker
    runner: ProcessRunner
    key_strategy: KeyPathStrategy | None = None
    choose_index: IndexChooser | None = None
    clock: Clock = _utc_now


@dataclass(frozen=True)
class Target:
    fleet: Fleet
    session: GameSession | None
    instance: FleetInstance
    access: RemoteAccessConfig


@contextlib.contextmanager
def _stage(name: str) -> Iterator[None]:
    try:
        yield
    except GameliftCliError as e:
        if not e.stage:
            e.stage = name
        raise


def resolve_target(deps: PipelineDeps, *, require_session: bool = False) -> Target:
    g = deps.g
    with _stage("fleet"):
        fleet = select_fleet(deps.client.list_fleets(), deps.picker)
    _progress(g, f"fleet-id: {fleet.fleet_id}")

    with _stage("session"):
        session = select_game_session(deps.client.list_sessions(fleet.fleet_id), deps.picker)
        if session is None and require_session:
            raise NoCandidatesError(f"no game sessions for fleet {fleet.fleet_id}")
    _progress(g, f"gamesession: {session.name if session else '(none)'}")

    with _stage("instance"):
        instance = resolve_instance(
            fleet.fleet_id,
            session,
            deps.client.list_instances(fleet.fleet_id),
            choose=deps.choose_index,
        )
    _progress(g, f"instance-id: {instance.instance_id}")

    with _stage("access"):
        access = provision_config(
            deps.client,
            fleet.fleet_id,
            instance.instance_id,
            g.ssh_config_path,
            deps.key_strategy or key_path_strategy_for(),
        )
    _progress(g, f"access: {access.user}@{access.host_name}")

    return Target(fleet=fleet, session=session, instance=instance, access=access)


def run_log(deps: PipelineDeps) -> int:
    target = resolve_target(deps, require_session=True)
    with _stage("action"):
        return tail_log(
            target.session,
            target.fleet,
            target.access,
            deps.runner,
            clock=deps.clock,
            quiet=deps.g.quiet,
        )


def run_shell(deps: PipelineDeps) -> int:
    target = resolve_target(deps)
    with _stage("action"):
        open_shell(target.access, deps.runner)
    return 0
