from __future__ import annotations

from typing import Any, Callable

from .cli_shared import ControlPlaneError, GlobalOpts, _account_session
from .models import Fleet, FleetInstance, GameSession, InstanceAccess


_MAX_PAGES = 1000


class ControlPlaneClient:
    """Read-only GameLift queries used by the selection pipeline."""

    def __init__(self, session: Any):
        self.session = session
        self._client: Any = None

    @property
    def client(self) -> Any:
        if self._client is None:
            try:
                self._client = self.session.client("gamelift")
            except Exception as e:
                raise ControlPlaneError(f"failed to create gamelift client: {e}") from e
        return self._client

    def _call(self, op: str, fn: Callable[..., Any], **kwargs: Any) -> dict[str, Any]:
        try:
            resp = fn(**kwargs)
        except Exception as e:
            raise ControlPlaneError(f"gamelift {op} failed: {e}") from e
        if not isinstance(resp, dict):
            raise ControlPlaneError(f"gamelift {op} returned a malformed response")
        return resp

    def _collect(self, op: str, method: str, key: str, **kwargs: Any) -> list[Any]:
        fn = getattr(self.client, method)
        items: list[Any] = []
        token = ""
        for _ in range(_MAX_PAGES):
            call_kwargs = dict(kwargs)
            if token:
                call_kwargs["NextToken"] = token
            resp = self._call(op, fn, **call_kwargs)
            page = resp.get(key) or []
            if not isinstance(page, list):
                raise ControlPlaneError(f"gamelift {op} returned a malformed {key} list")
            items.extend(page)
            token = str(resp.get("NextToken") or "").strip()
            if not token:
                return items
        raise ControlPlaneError(f"gamelift {op} did not finish paging after {_MAX_PAGES} pages")

    def list_fleets(self) -> list[Fleet]:
        raw = self._collect("describe-fleet-attributes", "describe_fleet_attributes", "FleetAttributes")
        return [Fleet.from_api(item) for item in raw]

    def list_sessions(self, fleet_id: str) -> list[GameSession]:
        raw = self._collect(
            "describe-game-sessions",
            "describe_game_sessions",
            "GameSessions",
            FleetId=fleet_id,
        )
        return [GameSession.from_api(item) for item in raw]

    def list_instances(self, fleet_id: str) -> list[FleetInstance]:
        raw = self._collect(
            "describe-instances",
            "describe_instances",
            "Instances",
            FleetId=fleet_id,
        )
        return [FleetInstance.from_api(item) for item in raw]

    def request_instance_access(self, fleet_id: str, instance_id: str) -> InstanceAccess:
        resp = self._call(
            "get-instance-access",
            self.client.get_instance_access,
            FleetId=fleet_id,
            InstanceId=instance_id,
        )
        return InstanceAccess.from_api(resp)


def build_control_plane(g: GlobalOpts) -> ControlPlaneClient:
    return ControlPlaneClient(_account_session(g))
