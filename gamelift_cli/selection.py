from __future__ import annotations

from typing import Sequence

from .cli_shared import NoCandidatesError
from .models import Fleet, GameSession
from .picker import Picker


SELECT_LIMIT = 10

SESSION_STATUS_ORDER = {
    "ACTIVE": 0,
    "ACTIVATING": 1,
    "TERMINATING": 2,
    "TERMINATED": 3,
}

LIVE_SESSION_STATUSES = frozenset({"ACTIVE", "ACTIVATING"})

FLEET_PROMPT = "Select Fleet > "
SESSION_PROMPT = "Select Game Session > "


def status_rank(status: str) -> int:
    # Statuses GameLift adds later (ERROR etc.) sort after TERMINATED.
    return SESSION_STATUS_ORDER.get(str(status or "").upper(), len(SESSION_STATUS_ORDER))


def rank_sessions(sessions: Sequence[GameSession]) -> list[GameSession]:
    """Live sessions first, newest first within the same status."""
    return sorted(sessions, key=lambda s: (status_rank(s.status), -s.creation_time))


def session_label(session: GameSession) -> str:
    return f"{session.name} [{session.status}]"


def select_fleet(fleets: Sequence[Fleet], picker: Picker) -> Fleet:
    if not fleets:
        raise NoCandidatesError("no fleets visible to this account/region")
    index = picker.pick([f.name for f in fleets], FLEET_PROMPT)
    return fleets[index]


def select_game_session(sessions: Sequence[GameSession], picker: Picker) -> GameSession | None:
    """Pick one session out of the ten best-ranked, or None if the fleet has none.

    A single live (ACTIVE/ACTIVATING) session among the capped list is taken
    without prompting.
    """
    if not sessions:
        return None
    candidates = rank_sessions(sessions)[:SELECT_LIMIT]
    live = [s for s in candidates if s.status in LIVE_SESSION_STATUSES]
    if len(live) == 1:
        return live[0]
    index = picker.pick([session_label(s) for s in candidates], SESSION_PROMPT)
    return candidates[index]
