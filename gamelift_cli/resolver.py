from __future__ import annotations

import sys
from typing import Callable, Sequence, TextIO

from .cli_shared import CorrelationMismatchError, NoCandidatesError
from .models import FleetInstance, GameSession, format_timestamp
from .picker import prompt_index


INSTANCE_PROMPT = "Select instance "

IndexChooser = Callable[[int, str], int]


def instance_line(i: int, ins: FleetInstance) -> str:
    return f"[{i}] {ins.ip_address} {ins.instance_id} {ins.status or '-'} {format_timestamp(ins.creation_time)}"


def resolve_instance(
    fleet_id: str,
    session: GameSession | None,
    instances: Sequence[FleetInstance],
    *,
    choose: IndexChooser | None = None,
    out: TextIO | None = None,
) -> FleetInstance:
    if not instances:
        raise NoCandidatesError(f"no instances for fleet {fleet_id}")

    if session is not None:
        for ins in instances:
            if session.ip_address and ins.ip_address == session.ip_address:
                return ins
        raise CorrelationMismatchError(
            f"no instance of fleet {fleet_id} has the game session address {session.ip_address or '(empty)'}"
        )

    if len(instances) == 1:
        return instances[0]

    out = out or sys.stderr
    for i, ins in enumerate(instances):
        out.write(instance_line(i, ins) + "\n")
    if choose is None:
        choose = prompt_index
    return instances[choose(len(instances), INSTANCE_PROMPT)]
